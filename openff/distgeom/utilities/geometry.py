"""Small, dense geometry helpers used inside the relaxation loop.

The functions in this module operate on plain python floats rather than numpy
arrays as they are called many thousands of times per conformer on problems
with at most a few dozen points, where the overhead of creating arrays would
dominate.
"""
import math
from typing import List, Optional, Sequence, Tuple

Vector = Tuple[float, float, float]
Matrix = List[List[float]]

_JACOBI_MAX_SWEEPS = 50


def cross(vector_a: Sequence[float], vector_b: Sequence[float]) -> Vector:
    return (
        vector_a[1] * vector_b[2] - vector_a[2] * vector_b[1],
        vector_a[2] * vector_b[0] - vector_a[0] * vector_b[2],
        vector_a[0] * vector_b[1] - vector_a[1] * vector_b[0],
    )


def dot(vector_a: Sequence[float], vector_b: Sequence[float]) -> float:
    return (
        vector_a[0] * vector_b[0]
        + vector_a[1] * vector_b[1]
        + vector_a[2] * vector_b[2]
    )


def norm(vector: Sequence[float]) -> float:
    return math.sqrt(dot(vector, vector))


def subtract(vector_a: Sequence[float], vector_b: Sequence[float]) -> Vector:
    return (
        vector_a[0] - vector_b[0],
        vector_a[1] - vector_b[1],
        vector_a[2] - vector_b[2],
    )


def centroid(points: Sequence[Sequence[float]]) -> Vector:
    """Returns the arithmetic mean of a non-empty list of points."""

    n_points = len(points)

    return (
        sum(point[0] for point in points) / n_points,
        sum(point[1] for point in points) / n_points,
        sum(point[2] for point in points) / n_points,
    )


def scatter_matrix(points: Sequence[Sequence[float]], center: Vector) -> Matrix:
    """Computes the 3x3 scatter matrix of a set of points about ``center``."""

    matrix = [[0.0, 0.0, 0.0], [0.0, 0.0, 0.0], [0.0, 0.0, 0.0]]

    for point in points:
        delta = subtract(point, center)

        for j in range(3):
            for k in range(j, 3):
                matrix[j][k] += delta[j] * delta[k]

    matrix[1][0] = matrix[0][1]
    matrix[2][0] = matrix[0][2]
    matrix[2][1] = matrix[1][2]

    return matrix


def symmetric_eigen_3x3(matrix: Sequence[Sequence[float]]) -> Tuple[Vector, Matrix]:
    """Diagonalizes a symmetric 3x3 matrix using cyclic Jacobi rotations.

    Parameters
    ----------
    matrix
        The symmetric matrix to diagonalize. It is not modified.

    Returns
    -------
        The eigenvalues and a matrix whose *columns* are the corresponding unit
        eigenvectors. The eigenvalues are not sorted.
    """

    a = [list(map(float, row)) for row in matrix]
    v = [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]

    scale = sum(a[i][i] * a[i][i] for i in range(3))

    for _ in range(_JACOBI_MAX_SWEEPS):
        off_diagonal = a[0][1] * a[0][1] + a[0][2] * a[0][2] + a[1][2] * a[1][2]

        if off_diagonal <= 1.0e-30 * max(scale, 1.0e-300):
            break

        for p, q in ((0, 1), (0, 2), (1, 2)):
            if a[p][q] == 0.0:
                continue

            theta = (a[q][q] - a[p][p]) / (2.0 * a[p][q])
            t = (1.0 if theta >= 0.0 else -1.0) / (
                abs(theta) + math.sqrt(theta * theta + 1.0)
            )
            c = 1.0 / math.sqrt(t * t + 1.0)
            s = t * c

            for k in range(3):
                a_kp, a_kq = a[k][p], a[k][q]
                a[k][p] = c * a_kp - s * a_kq
                a[k][q] = s * a_kp + c * a_kq

            for k in range(3):
                a_pk, a_qk = a[p][k], a[q][k]
                a[p][k] = c * a_pk - s * a_qk
                a[q][k] = s * a_pk + c * a_qk

            for k in range(3):
                v_kp, v_kq = v[k][p], v[k][q]
                v[k][p] = c * v_kp - s * v_kq
                v[k][q] = s * v_kp + c * v_kq

    return (a[0][0], a[1][1], a[2][2]), v


def _eigenvector(points: Sequence[Sequence[float]], smallest: bool):
    center = centroid(points)
    eigenvalues, eigenvectors = symmetric_eigen_3x3(scatter_matrix(points, center))

    select = min if smallest else max
    index = select(range(3), key=lambda i: eigenvalues[i])

    vector = (eigenvectors[0][index], eigenvectors[1][index], eigenvectors[2][index])
    length = norm(vector)

    if length < 1.0e-12 or not math.isfinite(length):
        return None

    return center, (vector[0] / length, vector[1] / length, vector[2] / length)


def fit_plane(points: Sequence[Sequence[float]]) -> Optional[Tuple[Vector, Vector]]:
    """Fits a least-squares plane through a set of points.

    Parameters
    ----------
    points
        The points to fit with shape=(n_points, 3).

    Returns
    -------
        The centroid of the points and the unit normal of the plane, or ``None``
        if the fit is degenerate.
    """
    return _eigenvector(points, smallest=True)


def fit_line(points: Sequence[Sequence[float]]) -> Optional[Tuple[Vector, Vector]]:
    """Fits a least-squares line through a set of points.

    Returns
    -------
        The centroid of the points and the unit direction of the line, or ``None``
        if the fit is degenerate.
    """
    return _eigenvector(points, smallest=False)


def signed_volume(
    origin: Sequence[float],
    point_a: Sequence[float],
    point_b: Sequence[float],
    point_c: Sequence[float],
) -> float:
    """Returns ``det(a - o, b - o, c - o)``, i.e. six times the signed volume of
    the tetrahedron spanned by the four points."""

    return dot(
        cross(subtract(point_a, origin), subtract(point_b, origin)),
        subtract(point_c, origin),
    )


def calculate_torsion(
    point_1: Sequence[float],
    point_2: Sequence[float],
    point_3: Sequence[float],
    point_4: Sequence[float],
) -> float:
    """Calculates the signed torsion angle [rad] of a four point strand.

    Looking along the central bond the torsion is zero if the projections of the
    front and rear bonds point in the same direction, and becomes positive when
    the front bond is rotated clockwise.

    Returns
    -------
        The torsion in the range -pi <= torsion <= pi.
    """

    v1 = subtract(point_2, point_1)
    v2 = subtract(point_3, point_2)
    v3 = subtract(point_4, point_3)

    n1 = cross(v1, v2)
    n2 = cross(v2, v3)

    return -math.atan2(norm(v2) * dot(v1, n2), dot(n1, n2))
