"""
Point-cloud housekeeping.

Points are stored as the columns of a ``(dim, n)`` array. Equality is the
tolerant ``np.allclose`` test throughout; no function here rounds coordinates.
"""

import itertools

import numpy as np
from scipy.spatial import cKDTree

from .config import DEFAULT_ATOL, default_rtol
from .exceptions import InvalidInputError


def as_points(points, dim: int | None = None) -> np.ndarray:
    """Coerce input to a float ``(dim, n)`` array of column points.

    A 1D array is treated as a single point.
    """
    arr = np.asarray(points, dtype=float)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise InvalidInputError("Points must be the columns of a 2D array")
    if dim is not None and arr.shape[0] != dim:
        raise InvalidInputError(
            f"Points must have {dim} rows, got {arr.shape[0]}"
        )
    return arr


def contains(
    point: np.ndarray,
    points: np.ndarray,
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> bool:
    """Check whether ``point`` coincides with any column of ``points``."""
    point = np.asarray(point, dtype=float)
    points = as_points(points, point.shape[0])
    if rtol is None:
        rtol = default_rtol(points)
    return any(
        np.allclose(point, points[:, i], rtol=rtol, atol=atol)
        for i in range(points.shape[1])
    )


def _unique_indices(rows: np.ndarray, rtol: float, atol: float) -> list[int]:
    """Indices of the first occurrence of each distinct row.

    Neighbours come from a KD-tree query with a radius that bounds the
    ``np.allclose`` tolerance; each neighbour is then confirmed with
    ``np.allclose`` against the row that claims it.

    Args:
        rows: (n, k) array, one flattened item per row
        rtol: Relative tolerance
        atol: Absolute tolerance

    Returns:
        Increasing list of the indices to keep
    """
    n, k = rows.shape
    if n == 0:
        return []

    # allclose bounds each component by atol + rtol * |b|
    radius = np.sqrt(k) * (atol + rtol * float(np.max(np.abs(rows))))
    tree = cKDTree(rows)

    kept = []
    merged = np.zeros(n, dtype=bool)
    for i in range(n):
        if merged[i]:
            continue
        kept.append(i)
        for j in tree.query_ball_point(rows[i], radius):
            if j > i and not merged[j] and np.allclose(
                rows[j], rows[i], rtol=rtol, atol=atol
            ):
                merged[j] = True
    return kept


def unique_points(
    points: np.ndarray,
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> np.ndarray:
    """Remove near-duplicate columns, keeping first occurrences in order.

    Args:
        points: ``(dim, n)`` array of points as columns
        rtol: Relative tolerance
        atol: Absolute tolerance

    Returns:
        ``(dim, m)`` array with ``m <= n`` distinct points
    """
    points = as_points(points)
    if rtol is None:
        rtol = default_rtol(points)
    return points[:, _unique_indices(points.T, rtol, atol)]


def remove_duplicates(
    items: list[np.ndarray],
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> list[np.ndarray]:
    """Remove near-duplicate arrays (vectors or matrices) from a list."""
    if not items:
        return []
    if rtol is None:
        rtol = default_rtol(*items)

    rows = np.array([np.asarray(item, dtype=float).ravel() for item in items])
    return [items[i] for i in _unique_indices(rows, rtol, atol)]


def _points_in_ball(
    points: np.ndarray,
    radius: float,
    center: np.ndarray,
    rtol: float,
    atol: float
) -> np.ndarray:
    """Indices of the columns of ``points`` within ``radius`` of ``center``.

    Points on the sphere (within tolerance) are included.
    """
    center = np.asarray(center, dtype=float).reshape(-1, 1)
    distances = np.linalg.norm(points - center, axis=0)
    inside = (distances < radius) | np.isclose(
        distances, radius, rtol=rtol, atol=atol
    )
    return np.flatnonzero(inside)


def sample_ball(
    basis: np.ndarray,
    radius: float,
    center: np.ndarray | None = None,
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> np.ndarray:
    """Every lattice point within ``radius`` of ``center``.

    Args:
        basis: Lattice vectors as columns of a 2x2 or 3x3 matrix
        radius: Radius of the ball
        center: Center of the ball in Cartesian coordinates (origin if None)
        rtol: Relative tolerance for points on the sphere
        atol: Absolute tolerance for points on the sphere

    Returns:
        ``(dim, n)`` array of lattice points in Cartesian coordinates
    """
    basis = np.asarray(basis, dtype=float)
    dim = basis.shape[0]
    if basis.shape not in [(2, 2), (3, 3)]:
        raise InvalidInputError("The lattice basis must be a 2x2 or 3x3 matrix.")
    if radius < 0:
        raise InvalidInputError("The radius has to be a positive number.")
    if center is None:
        center = np.zeros(dim)
    center = np.asarray(center, dtype=float)
    if rtol is None:
        rtol = default_rtol(radius)

    inv_basis = np.linalg.inv(basis)
    offset = np.round(inv_basis @ center).astype(int)
    # Rows of the inverse are the plane normals; |row| is one over the
    # spacing between lattice planes along that axis.
    extents = np.ceil(radius * np.linalg.norm(inv_basis, axis=1)).astype(int) + 1

    ranges = [
        range(o - n, o + n + 1) for o, n in zip(offset, extents, strict=True)
    ]
    coords = np.array(list(itertools.product(*ranges)), dtype=float).T
    pts = basis @ coords

    return pts[:, _points_in_ball(pts, radius, center, rtol, atol)]
