import math

import numpy
import pytest

from openff.distgeom.conformers import Conformer
from openff.distgeom.constraints import (
    BoundedDistance,
    CandidateDistances,
    DistanceConstraintBuilder,
    DistanceConstraintTable,
    FixedDistance,
    table_to_bounds,
)
from openff.distgeom.constraints._distances import RING_VDW_SCALE
from openff.distgeom.constraints.exceptions import ConstraintError
from openff.distgeom.torsions import TorsionDB

TETRAHEDRAL_13_DISTANCE = 1.5 * math.sqrt(2.0 - 2.0 * math.cos(math.radians(109.47)))


def test_candidate_nearest():
    candidates = CandidateDistances([2.5, 3.8, 2.9])

    assert candidates.lower == pytest.approx(2.5)
    assert candidates.upper == pytest.approx(3.8)

    assert candidates.nearest(3.0) == pytest.approx(2.9)
    assert candidates.nearest(10.0) == pytest.approx(3.8)
    # ties resolve to the first candidate
    assert CandidateDistances([1.0, 3.0]).nearest(2.0) == pytest.approx(1.0)

    assert candidates.bounds_for(2.6) == (2.5, 2.5)


def test_candidate_empty():
    with pytest.raises(ConstraintError, match="At least one candidate"):
        CandidateDistances([])


def test_table_first_writer_wins():
    table = DistanceConstraintTable(3)

    assert table.set_fixed(0, 2, 1.5)
    assert not table.set_bounded(2, 0, 3.0, 4.0)
    assert not table.set_candidates(0, 2, [2.0])

    assert isinstance(table[0, 2], FixedDistance)
    assert table.get(2, 0) is table.get(0, 2)

    assert table.get(1, 0) is None
    assert table.n_missing() == 2

    with pytest.raises(KeyError):
        table[0, 1]


def test_table_get_same_atom():
    with pytest.raises(ConstraintError, match="constrained to itself"):
        DistanceConstraintTable(3).get(1, 1)


def test_table_clamps_lower_bound():
    table = DistanceConstraintTable(2)
    table.set_bounded(0, 1, 4.0, 3.0)

    assert table[0, 1].lower == pytest.approx(3.0)
    assert table[0, 1].upper == pytest.approx(3.0)


def test_table_boost():
    table = DistanceConstraintTable(3)
    table.set_fixed(1, 0, 1.5)
    table.set_bounded(2, 0, 2.0, 5.0)
    table.set_bounded(2, 1, 2.0, 5.0)

    conformer = Conformer.from_array(
        numpy.array([[0.0, 0.0, 0.0], [1.5, 0.0, 0.0], [6.0, 0.0, 0.0]])
    )
    table.boost(conformer)

    assert table[0, 1].lower == pytest.approx(1.5)
    # the lower bound never exceeds the upper bound
    assert table[0, 2].lower == pytest.approx(5.0)
    assert table[1, 2].lower == pytest.approx(4.0)

    conformer.set_coordinates(2, (1.5, 1.0, 0.0))
    table.boost(conformer)

    assert table[1, 2].lower == pytest.approx(4.0)


def test_build_ethane(ethane):
    table = DistanceConstraintBuilder(ethane).build()

    assert isinstance(table[0, 1], FixedDistance)
    assert table[0, 1].distance == pytest.approx(1.50)
    assert table.counts() == {"FixedDistance": 1}


def test_build_butane(butane):
    table = DistanceConstraintBuilder.build_table(butane)

    assert isinstance(table[0, 2], FixedDistance)
    assert table[0, 2].distance == pytest.approx(TETRAHEDRAL_13_DISTANCE)

    assert isinstance(table[0, 3], CandidateDistances)
    assert len(table[0, 3].distances) == 3

    # the anti conformer is the furthest apart
    assert table[0, 3].distances[1] == pytest.approx(table[0, 3].upper)
    # the gauche conformers are near mirror images, but with the half degree bin
    # centre 60.5 degrees lies slightly further from eclipsed than 300.5 degrees
    assert table[0, 3].distances[0] == pytest.approx(
        table[0, 3].distances[2], abs=0.05
    )
    assert table[0, 3].distances[0] > table[0, 3].distances[2]


def test_build_unknown_torsion(butane, tmp_path):
    (tmp_path / "torsion-ids.txt").write_text("C3.C3-C3.N3\n")
    (tmp_path / "torsion-angles.txt").write_text("60,180\n")

    table = DistanceConstraintBuilder(butane, TorsionDB(str(tmp_path))).build()

    assert isinstance(table[0, 3], BoundedDistance)
    assert table[0, 3].lower == pytest.approx(3.4)
    assert table[0, 3].upper == pytest.approx(1.5 + TETRAHEDRAL_13_DISTANCE)


def test_build_disconnected(build_graph):
    table = DistanceConstraintBuilder(build_graph([6, 8], [])).build()

    assert isinstance(table[0, 1], BoundedDistance)
    assert table[0, 1].lower == pytest.approx(1.70 + 1.52)
    assert math.isinf(table[0, 1].upper)


def test_build_benzene(benzene):
    table = DistanceConstraintBuilder(benzene).build()

    assert isinstance(table[0, 1], FixedDistance)
    assert table[0, 1].distance == pytest.approx(1.39)

    assert table[0, 2].distance == pytest.approx(1.39 * math.sqrt(3.0))

    assert isinstance(table[0, 3], BoundedDistance)
    assert table[0, 3].lower == pytest.approx(3.4 * RING_VDW_SCALE)
    assert table[0, 3].upper == pytest.approx(1.39 * math.sqrt(3.0) + 1.39)


def test_build_double_bond_stereo(e_but_2_ene, z_but_2_ene):
    e_distance = DistanceConstraintBuilder(e_but_2_ene).build()[0, 3].distance
    z_distance = DistanceConstraintBuilder(z_but_2_ene).build()[0, 3].distance

    assert e_distance == pytest.approx(3.849, abs=1.0e-3)
    assert z_distance == pytest.approx(2.84, abs=1.0e-3)


def test_build_triple_bond(but_2_yne):
    table = DistanceConstraintBuilder(but_2_yne).build()
    assert table[0, 3].distance == pytest.approx(1.46 + 1.20 + 1.46)


def test_build_allene(penta_2_3_diene):
    table = DistanceConstraintBuilder(penta_2_3_diene).build()

    assert isinstance(table[0, 4], FixedDistance)
    assert table[0, 4].distance == pytest.approx(4.566, abs=1.0e-3)


@pytest.mark.parametrize(
    "fixture_name",
    [
        "butane",
        "benzene",
        "anisole",
        "butan_2_ol",
        "n_methylacetamide",
        "penta_2_3_diene",
        "cyclohexane",
    ],
)
def test_build_is_complete(fixture_name, request):
    graph = request.getfixturevalue(fixture_name)
    table = DistanceConstraintBuilder(graph).build()

    assert table.n_missing() == 0

    lower, upper = table_to_bounds(table)

    assert lower.shape == (graph.n_atoms, graph.n_atoms)
    assert numpy.allclose(lower, lower.T)
    assert numpy.all(lower <= upper)
    assert numpy.all(lower[~numpy.eye(graph.n_atoms, dtype=bool)] > 0.0)
