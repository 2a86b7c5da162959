import numpy
import pytest
from openff.units import unit

from openff.distgeom._pydantic import ValidationError
from openff.distgeom.conformers import (
    ConformationSampler,
    ConformerGenerationError,
    ConformerGenerator,
    ConformerSettings,
)
from openff.distgeom.constraints import BoundedDistance, ConstraintType
from openff.distgeom.utilities.geometry import fit_plane


def _bond_lengths(graph, coordinates):
    return numpy.array(
        [
            numpy.linalg.norm(
                coordinates[bond.atom1_index] - coordinates[bond.atom2_index]
            )
            for bond in graph.bonds
        ]
    )


@pytest.mark.parametrize(
    "settings, expected_error",
    [
        ({"max_conformers": 0}, "max_conformers"),
        ({"n_workers": 0}, "n_workers"),
        ({"seed": -1}, "seed"),
    ],
)
def test_settings_validation(settings, expected_error):
    with pytest.raises(ValidationError, match=expected_error):
        ConformerSettings(**settings)


def test_sampler_constraints(anisole, butan_2_ol):
    sampler = ConformationSampler(anisole)

    assert sampler.graph is anisole
    assert sampler.distance_constraints.n_missing() == 0
    assert [constraint.type for constraint in sampler.geometric_constraints] == [
        ConstraintType.Plane,
        ConstraintType.WeakPlane,
    ]

    sampler = ConformationSampler(
        butan_2_ol, ConformerSettings(use_stereo_constraints=True)
    )
    assert [constraint.type for constraint in sampler.geometric_constraints] == [
        ConstraintType.Stereo
    ]


def test_sampler_before_generation(ethane):
    sampler = ConformationSampler(ethane)

    with pytest.raises(ConformerGenerationError, match="no conformers"):
        sampler.get_conformer(0)
    with pytest.raises(ConformerGenerationError, match="no conformers"):
        sampler.get_strain()


def test_generate_ethane(ethane):
    sampler = ConformationSampler(ethane, ConformerSettings(seed=1234))
    sampler.generate_conformer()

    coordinates = sampler.get_conformer(0)

    assert coordinates.shape == (2, 3)
    assert coordinates.units == unit.angstrom

    distance = numpy.linalg.norm(coordinates[0].m - coordinates[1].m)
    assert distance == pytest.approx(1.50, abs=0.05)

    assert sampler.get_atom_x(0, 1) == pytest.approx(coordinates[1, 0].m)
    assert sampler.get_atom_y(0, 1) == pytest.approx(coordinates[1, 1].m)
    assert sampler.get_atom_z(0, 1) == pytest.approx(coordinates[1, 2].m)

    assert sampler.get_strain() < 1.0e-3


def test_generate_benzene(benzene):
    sampler = ConformationSampler(benzene, ConformerSettings(seed=1234))
    conformer = sampler.generate_conformer()

    coordinates = conformer.to_array()

    # the ring atoms lie in their best fit plane
    center, normal = fit_plane(coordinates)
    deviations = (coordinates - numpy.array(center)) @ numpy.array(normal)

    assert numpy.sqrt(numpy.mean(deviations**2)) < 0.1

    bond_lengths = _bond_lengths(benzene, coordinates)
    assert numpy.sqrt(numpy.mean((bond_lengths - 1.39) ** 2)) < 0.1


def test_generate_seeded(butane):
    sampler = ConformationSampler(butane)

    coordinates_a = sampler.generate_conformer(seed=1234).to_array()
    coordinates_b = sampler.generate_conformer(seed=1234).to_array()
    coordinates_c = sampler.generate_conformer(seed=4321).to_array()

    assert numpy.array_equal(coordinates_a, coordinates_b)
    assert not numpy.allclose(coordinates_a, coordinates_c)


def test_generate_conformers(butane):
    sampler = ConformationSampler(
        butane, ConformerSettings(max_conformers=3, seed=1234, n_workers=2)
    )
    conformers = sampler.generate_conformers()

    assert len(conformers) == 3
    assert sampler.conformers == conformers

    for conformer in conformers:
        assert numpy.allclose(
            _bond_lengths(butane, conformer.to_array()), 1.50, atol=0.05
        )

    assert len(sampler.generate_conformers(n_conformers=2)) == 2


def test_generate_stereo(butan_2_ol):
    sampler = ConformationSampler(
        butan_2_ol,
        ConformerSettings(
            max_conformers=10, seed=1234, n_workers=2, use_stereo_constraints=True
        ),
    )
    conformers = sampler.generate_conformers()

    n_correct = 0

    for conformer in conformers:
        coordinates = conformer.to_array()
        vectors = coordinates[[1, 2, 3]] - coordinates[0]

        n_correct += numpy.linalg.det(vectors) > 0.0

    assert n_correct >= 8


def test_boost_distance_constraints(build_graph):
    pentane = build_graph([6] * 5, [(i, i + 1, 1) for i in range(4)])

    sampler = ConformationSampler(pentane, ConformerSettings(seed=1234))
    sampler.generate_conformer()

    bounds_before = {
        (high, low): (entry.lower, entry.upper)
        for high, low, entry in sampler.distance_constraints
        if isinstance(entry, BoundedDistance)
    }
    assert len(bounds_before) > 0

    sampler.boost_distance_constraints()

    coordinates = sampler.conformers[0].to_array()

    for (high, low), (lower, upper) in bounds_before.items():
        distance = numpy.linalg.norm(coordinates[high] - coordinates[low])
        expected = min(distance - 0.5, upper) if lower < distance else lower

        assert sampler.distance_constraints[high, low].lower == pytest.approx(expected)


def test_optimize(ethane):
    sampler = ConformationSampler(ethane, ConformerSettings(seed=1234))
    conformer = sampler.generate_conformer()

    conformer.set_coordinates(1, (3.0, 0.0, 0.0))
    conformer.set_coordinates(0, (0.0, 0.0, 0.0))

    sampler.optimize(200, 0.2, 0.2)

    assert sampler.get_strain() == pytest.approx(0.0, abs=1.0e-8)


@pytest.mark.parametrize("max_conformers", [1, 3])
def test_conformer_generator(butane, max_conformers):
    conformers = ConformerGenerator.generate(
        butane, ConformerSettings(max_conformers=max_conformers, seed=1234)
    )

    assert len(conformers) == max_conformers
    assert all(conformer.shape == (4, 3) for conformer in conformers)
