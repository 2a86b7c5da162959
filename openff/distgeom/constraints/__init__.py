from openff.distgeom.constraints._distances import (
    BoundedDistance,
    CandidateDistances,
    DistanceConstraint,
    DistanceConstraintBuilder,
    DistanceConstraintTable,
    FixedDistance,
    table_to_bounds,
)
from openff.distgeom.constraints._geometric import (
    ConstraintType,
    GeometricConstraint,
    LineConstraintBuilder,
    PlanarityConstraintBuilder,
    StereoConstraintBuilder,
)
from openff.distgeom.constraints.exceptions import ConstraintError

__all__ = [
    "BoundedDistance",
    "CandidateDistances",
    "ConstraintError",
    "ConstraintType",
    "DistanceConstraint",
    "DistanceConstraintBuilder",
    "DistanceConstraintTable",
    "FixedDistance",
    "GeometricConstraint",
    "LineConstraintBuilder",
    "PlanarityConstraintBuilder",
    "StereoConstraintBuilder",
    "table_to_bounds",
]
