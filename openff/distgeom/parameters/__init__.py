"""Ideal bond lengths, bond angles and vdW radii"""

from openff.distgeom.parameters._parameters import (
    BondAngleModel,
    BondLengthModel,
    VdWRadiiType,
    compute_vdw_radii,
)

__all__ = ["BondAngleModel", "BondLengthModel", "VdWRadiiType", "compute_vdw_radii"]
