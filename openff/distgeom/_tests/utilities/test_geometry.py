import math

import numpy
import pytest

from openff.distgeom.utilities.geometry import (
    calculate_torsion,
    centroid,
    cross,
    dot,
    fit_line,
    fit_plane,
    norm,
    scatter_matrix,
    signed_volume,
    symmetric_eigen_3x3,
)


def test_vector_helpers():
    assert cross((1.0, 0.0, 0.0), (0.0, 1.0, 0.0)) == (0.0, 0.0, 1.0)
    assert dot((1.0, 2.0, 3.0), (4.0, 5.0, 6.0)) == pytest.approx(32.0)
    assert norm((3.0, 4.0, 0.0)) == pytest.approx(5.0)
    assert centroid([(0.0, 0.0, 0.0), (2.0, 4.0, 6.0)]) == (1.0, 2.0, 3.0)


@pytest.mark.parametrize(
    "matrix",
    [
        [[3.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 2.0]],
        [[2.0, 1.0, 0.0], [1.0, 2.0, 0.5], [0.0, 0.5, 1.0]],
        [[4.0, -2.0, 1.0], [-2.0, 3.0, 0.3], [1.0, 0.3, 5.0]],
    ],
)
def test_symmetric_eigen_3x3(matrix):
    eigenvalues, eigenvectors = symmetric_eigen_3x3(matrix)

    expected_eigenvalues = numpy.linalg.eigvalsh(numpy.array(matrix))
    assert numpy.allclose(sorted(eigenvalues), expected_eigenvalues)

    matrix = numpy.array(matrix)
    eigenvectors = numpy.array(eigenvectors)

    for i in range(3):
        assert numpy.allclose(
            matrix @ eigenvectors[:, i], eigenvalues[i] * eigenvectors[:, i]
        )
        assert numpy.isclose(numpy.linalg.norm(eigenvectors[:, i]), 1.0)


def test_scatter_matrix_is_centered():
    points = [(1.0, 1.0, 1.0), (3.0, 1.0, 1.0)]

    matrix = scatter_matrix(points, centroid(points))
    assert numpy.allclose(matrix, [[2.0, 0.0, 0.0], [0.0, 0.0, 0.0], [0.0, 0.0, 0.0]])


def test_fit_plane():
    points = [(0.0, 0.0, 2.0), (1.0, 0.0, 2.0), (0.0, 1.0, 2.0), (1.0, 1.0, 2.0)]

    center, normal = fit_plane(points)

    assert numpy.allclose(center, (0.5, 0.5, 2.0))
    assert numpy.allclose(numpy.abs(normal), (0.0, 0.0, 1.0))


def test_fit_line():
    points = [(0.0, 0.0, 0.0), (1.0, 1.0, 1.0), (2.0, 2.0, 2.0)]

    center, direction = fit_line(points)

    assert numpy.allclose(center, (1.0, 1.0, 1.0))
    assert numpy.allclose(numpy.abs(direction), numpy.ones(3) / math.sqrt(3.0))


def test_signed_volume():
    origin = (0.0, 0.0, 0.0)

    assert signed_volume(origin, (1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0, 1.0)) > 0
    assert signed_volume(origin, (0.0, 1.0, 0.0), (1.0, 0.0, 0.0), (0.0, 0.0, 1.0)) < 0


@pytest.mark.parametrize(
    "point_4, expected_torsion",
    [
        ((1.0, 1.0, 0.0), 0.0),
        ((1.0, -1.0, 0.0), math.pi),
        ((1.0, 0.0, 1.0), math.pi / 2.0),
    ],
)
def test_calculate_torsion(point_4, expected_torsion):
    torsion = calculate_torsion(
        (0.0, 1.0, 0.0), (0.0, 0.0, 0.0), (1.0, 0.0, 0.0), point_4
    )
    assert abs(torsion) == pytest.approx(expected_torsion)


def test_calculate_torsion_sign_flips_with_mirror_image():
    torsion = calculate_torsion(
        (0.0, 1.0, 0.0), (0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (1.0, 0.0, 1.0)
    )
    mirrored = calculate_torsion(
        (0.0, 1.0, 0.0), (0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (1.0, 0.0, -1.0)
    )

    assert torsion == pytest.approx(-mirrored)
