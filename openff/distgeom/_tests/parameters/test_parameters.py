import math

import pytest

from openff.distgeom.parameters import (
    BondAngleModel,
    BondLengthModel,
    VdWRadiiType,
    compute_vdw_radii,
)
from openff.distgeom.parameters._parameters import DEFAULT_VDW_RADIUS


def test_compute_vdw_radii(build_graph):
    graph = build_graph([6, 8, 26], [(0, 1, 1), (1, 2, 1)])

    radii = compute_vdw_radii(graph, VdWRadiiType.Bondi)
    assert radii == pytest.approx([1.70, 1.52, DEFAULT_VDW_RADIUS])


def test_bond_lengths(ethane, propyne, benzene, e_but_2_ene, build_graph):
    assert BondLengthModel.compute(ethane) == pytest.approx([1.50])
    # the single bond next to the sp carbon is shortened
    assert BondLengthModel.compute(propyne) == pytest.approx([1.46, 1.20])
    assert BondLengthModel.compute(benzene) == pytest.approx([1.39] * 6)
    assert BondLengthModel.compute(e_but_2_ene) == pytest.approx([1.50, 1.34, 1.50])

    butadiene = build_graph([6, 6, 6, 6], [(0, 1, 2), (1, 2, 1), (2, 3, 2)])
    assert BondLengthModel.bond_length(butadiene, 1) == pytest.approx(1.47)


def test_default_bond_angles(butane, propyne, benzene):
    assert BondAngleModel.compute(butane)[(1, 0, 2)] == pytest.approx(
        math.radians(109.47)
    )
    assert BondAngleModel.compute(propyne)[(1, 0, 2)] == pytest.approx(math.pi)

    benzene_angles = BondAngleModel.compute(benzene)

    assert len(benzene_angles) == 6
    assert all(
        angle == pytest.approx(math.radians(120.0))
        for angle in benzene_angles.values()
    )


def test_heteroatom_bond_angles(n_methylacetamide, anisole):
    assert BondAngleModel.compute(n_methylacetamide)[(3, 1, 4)] == pytest.approx(
        math.radians(120.0)
    )
    assert BondAngleModel.compute(anisole)[(6, 0, 7)] == pytest.approx(
        math.radians(110.0)
    )


def test_ring_bond_angles(build_graph):
    cyclopropane = build_graph([6, 6, 6], [(0, 1, 1), (1, 2, 1), (2, 0, 1)])

    assert all(
        angle == pytest.approx(math.radians(60.0))
        for angle in BondAngleModel.compute(cyclopropane).values()
    )

    methylcyclobutene = build_graph(
        [6, 6, 6, 6, 6], [(0, 1, 2), (1, 2, 1), (2, 3, 1), (3, 0, 1), (0, 4, 1)]
    )
    angles = BondAngleModel.compute(methylcyclobutene)

    assert angles[(0, 1, 3)] == pytest.approx(math.radians(90.0))
    # the two exocyclic angles share what the ring angle leaves
    assert angles[(0, 1, 4)] == pytest.approx(math.radians(135.0))
    assert angles[(0, 3, 4)] == pytest.approx(math.radians(135.0))
