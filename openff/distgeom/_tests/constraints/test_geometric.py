import pytest

from openff.distgeom.constraints import (
    ConstraintType,
    GeometricConstraint,
    LineConstraintBuilder,
    PlanarityConstraintBuilder,
    StereoConstraintBuilder,
)
from openff.distgeom.molecule import AtomParity


def test_is_flat_bond(n_methylacetamide, butane, benzene):
    assert [
        PlanarityConstraintBuilder.is_flat_bond(n_methylacetamide, i)
        for i in range(n_methylacetamide.n_bonds)
    ] == [False, True, True, False]

    assert not any(
        PlanarityConstraintBuilder.is_flat_bond(butane, i)
        for i in range(butane.n_bonds)
    )
    assert all(
        PlanarityConstraintBuilder.is_flat_bond(benzene, i)
        for i in range(benzene.n_bonds)
    )


def test_is_weak_flat_bond(anisole):
    assert [
        PlanarityConstraintBuilder.is_weak_flat_bond(anisole, i)
        for i in range(anisole.n_bonds)
    ] == [False] * 6 + [True, False]


def test_planarity_amide(n_methylacetamide):
    constraints = PlanarityConstraintBuilder.build(n_methylacetamide)

    assert len(constraints) == 1
    assert constraints[0].type == ConstraintType.Plane
    assert sorted(constraints[0].atoms) == [0, 1, 2, 3, 4]


def test_planarity_benzene(benzene):
    constraints = PlanarityConstraintBuilder.build(benzene)

    assert len(constraints) == 1
    assert sorted(constraints[0].atoms) == [0, 1, 2, 3, 4, 5]


def test_planarity_anisole(anisole):
    constraints = PlanarityConstraintBuilder.build(anisole)

    assert [constraint.type for constraint in constraints] == [
        ConstraintType.Plane,
        ConstraintType.WeakPlane,
    ]
    assert sorted(constraints[0].atoms) == [0, 1, 2, 3, 4, 5, 6]
    assert sorted(constraints[1].atoms) == [0, 1, 5, 6, 7]


def test_planarity_none(butane):
    assert PlanarityConstraintBuilder.build(butane) == []


def test_line_constraints(propyne, but_2_yne, butane):
    assert LineConstraintBuilder.build(propyne) == [
        GeometricConstraint(ConstraintType.Line, (1, 2, 0))
    ]

    constraints = LineConstraintBuilder.build(but_2_yne)

    assert len(constraints) == 1
    assert sorted(constraints[0].atoms) == [0, 1, 2, 3]

    assert LineConstraintBuilder.build(butane) == []


@pytest.mark.parametrize(
    "parity, expected_atoms",
    [(AtomParity.EVEN, (1, 2, 3, 0)), (AtomParity.ODD, (2, 1, 3, 0))],
)
def test_stereo_constraints(parity, expected_atoms, build_graph):
    graph = build_graph(
        [6, 6, 6, 8, 6],
        [(0, 1, 1), (0, 2, 1), (0, 3, 1), (2, 4, 1)],
        atom_parities={0: parity},
    )
    constraints = StereoConstraintBuilder.build(graph)

    assert constraints == [GeometricConstraint(ConstraintType.Stereo, expected_atoms)]
    assert constraints[0].center == 0


def test_center_requires_stereo_constraint():
    with pytest.raises(ValueError, match="plane constraint does not have a center"):
        GeometricConstraint(ConstraintType.Plane, (0, 1, 2)).center


def test_stereo_constraints_four_neighbors(build_graph):
    graph = build_graph(
        [6, 6, 6, 8, 7],
        [(0, 4, 1), (0, 1, 1), (0, 2, 1), (0, 3, 1)],
        atom_parities={0: AtomParity.EVEN},
    )

    assert StereoConstraintBuilder.build(graph) == [
        GeometricConstraint(ConstraintType.Stereo, (1, 2, 3, 4, 0))
    ]


@pytest.mark.parametrize("parity", [AtomParity.NONE, AtomParity.UNKNOWN])
def test_stereo_constraints_undefined(parity, build_graph):
    graph = build_graph(
        [6, 6, 6, 8, 6],
        [(0, 1, 1), (0, 2, 1), (0, 3, 1), (2, 4, 1)],
        atom_parities={0: parity},
    )
    assert StereoConstraintBuilder.build(graph) == []
