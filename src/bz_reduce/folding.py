"""
Map points into the unit cell, the Brillouin zone and the irreducible zone.

Single points are 1D arrays. Batch forms take ``(dim, n)`` arrays of column
points, map every column and return the distinct results.
"""

import itertools
import logging

import numpy as np

from .config import CARTESIAN, DEFAULT_ATOL, LATTICE, check_coordinates, default_rtol
from .exceptions import FoldError
from .lattice import check_basis, minkowski_reduce
from .models import ConvexPolytope
from .utils import as_points, unique_points

logger = logging.getLogger(__name__)

MAX_DESCENT_STEPS = 100


def _fold_coordinates(coords: np.ndarray, rtol: float, atol: float) -> np.ndarray:
    """Reduce lattice coordinates modulo 1, snapping values near 1 to 0."""
    folded = np.mod(coords, 1.0)
    folded[np.isclose(folded, 1.0, rtol=rtol, atol=atol)] = 0.0
    return folded


def map_to_unitcell(
    point: np.ndarray,
    basis: np.ndarray,
    coordinates: str,
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> np.ndarray:
    """Map a point to the translationally equivalent point in the unit cell.

    Args:
        point: Point in lattice or Cartesian coordinates
        basis: Lattice vectors as columns
        coordinates: ``'lattice'`` or ``'Cartesian'``, for input and output
        rtol: Relative tolerance for snapping components close to 1
        atol: Absolute tolerance for snapping components close to 1

    Returns:
        The point with lattice coordinates in [0, 1), in the input frame
    """
    basis = check_basis(basis)
    coordinates = check_coordinates(coordinates)
    point = np.asarray(point, dtype=float)
    if rtol is None:
        rtol = default_rtol(np.linalg.inv(basis))

    if coordinates == CARTESIAN:
        coords = np.linalg.solve(basis, point)
        return basis @ _fold_coordinates(coords, rtol, atol)
    return _fold_coordinates(point, rtol, atol)


def map_to_unitcell_points(
    points: np.ndarray,
    basis: np.ndarray,
    coordinates: str,
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> np.ndarray:
    """Map columns of ``points`` to the unit cell and drop duplicates."""
    basis = check_basis(basis)
    points = as_points(points, basis.shape[0])
    if rtol is None:
        rtol = default_rtol(np.linalg.inv(basis))
    mapped = np.column_stack([
        map_to_unitcell(points[:, i], basis, coordinates, rtol=rtol, atol=atol)
        for i in range(points.shape[1])
    ])
    return unique_points(mapped, rtol=rtol, atol=atol)


def map_to_bz(
    kpoint: np.ndarray,
    recip_basis: np.ndarray,
    coordinates: str,
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> np.ndarray:
    """Map a k-point to a translationally equivalent point in the Brillouin zone.

    The point is folded into the unit cell of the reduced reciprocal lattice
    and the shortest of the cell corner images is kept. A descent over the
    neighbouring images then makes it the shortest image overall, so the
    result lies in the Voronoi cell of the origin.

    Args:
        kpoint: k-point in lattice or Cartesian coordinates
        recip_basis: Reciprocal lattice vectors as columns
        coordinates: ``'lattice'`` or ``'Cartesian'``, for input and output.
            Lattice coordinates refer to ``recip_basis``.
        rtol: Relative tolerance
        atol: Absolute tolerance

    Returns:
        The equivalent k-point in the Brillouin zone, in the input frame
    """
    recip_basis = check_basis(recip_basis)
    coordinates = check_coordinates(coordinates)
    if rtol is None:
        rtol = default_rtol(recip_basis)
    dim = recip_basis.shape[0]

    kpoint = np.asarray(kpoint, dtype=float)
    if coordinates == LATTICE:
        kpoint = recip_basis @ kpoint

    reduced = minkowski_reduce(recip_basis, rtol=rtol, atol=atol)
    bz_point = map_to_unitcell(kpoint, reduced, CARTESIAN, rtol=rtol, atol=atol)
    bz_dist = np.linalg.norm(bz_point)

    uc_point = bz_point
    for shift in itertools.product((-1, 0), repeat=dim):
        tpoint = uc_point + reduced @ np.array(shift, dtype=float)
        if np.linalg.norm(tpoint) < bz_dist:
            bz_point = tpoint
            bz_dist = np.linalg.norm(tpoint)

    shifts = [
        reduced @ np.array(s, dtype=float)
        for s in itertools.product((-1, 0, 1), repeat=dim) if any(s)
    ]
    for _ in range(MAX_DESCENT_STEPS):
        tol = atol + rtol * bz_dist
        for shift in shifts:
            tpoint = bz_point + shift
            if np.linalg.norm(tpoint) < bz_dist - tol:
                bz_point = tpoint
                bz_dist = np.linalg.norm(tpoint)
                break
        else:
            break

    if coordinates == LATTICE:
        return np.linalg.solve(recip_basis, bz_point)
    return bz_point


def map_to_bz_points(
    kpoints: np.ndarray,
    recip_basis: np.ndarray,
    coordinates: str,
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> np.ndarray:
    """Map columns of ``kpoints`` to the Brillouin zone and drop duplicates."""
    recip_basis = check_basis(recip_basis)
    kpoints = as_points(kpoints, recip_basis.shape[0])
    if rtol is None:
        rtol = default_rtol(recip_basis)
    mapped = np.column_stack([
        map_to_bz(kpoints[:, i], recip_basis, coordinates, rtol=rtol, atol=atol)
        for i in range(kpoints.shape[1])
    ])
    return unique_points(mapped, rtol=rtol, atol=atol)


def inside_hull(
    point: np.ndarray,
    hull: ConvexPolytope,
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> bool:
    """Check if a point lies within a convex hull, boundary included.

    Args:
        point: Cartesian point
        hull: Convex hull with unit outward facet normals
        rtol: Relative tolerance for points on the boundary
        atol: Absolute tolerance for points on the boundary

    Returns:
        True if the point is on the inner side of every facet
    """
    if rtol is None:
        rtol = default_rtol(hull.vertices)
    point = np.asarray(point, dtype=float)

    for normal, dist in zip(hull.normals, hull.offsets, strict=True):
        s = np.dot(point + dist * normal, normal)
        if not (s <= 0 or np.isclose(s, 0.0, rtol=rtol, atol=atol)):
            return False
    return True


def map_to_ibz(
    kpoint: np.ndarray,
    recip_basis: np.ndarray,
    ibz: ConvexPolytope,
    point_group: list[np.ndarray],
    coordinates: str,
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> np.ndarray:
    """Map a k-point to a symmetrically equivalent point in the IBZ.

    Operators are tried in the order of ``point_group``; the first image
    inside the IBZ is returned.

    Args:
        kpoint: k-point in lattice or Cartesian coordinates
        recip_basis: Reciprocal lattice vectors as columns
        ibz: Irreducible Brillouin zone as a convex hull
        point_group: Point operators acting on Cartesian points from the left
        coordinates: ``'lattice'`` or ``'Cartesian'``, for input and output
        rtol: Relative tolerance
        atol: Absolute tolerance

    Returns:
        The equivalent k-point in the IBZ, in the input frame

    Raises:
        FoldError: If no operator maps the point into the IBZ
    """
    recip_basis = check_basis(recip_basis)
    coordinates = check_coordinates(coordinates)
    if rtol is None:
        rtol = default_rtol(recip_basis)

    kpoint = np.asarray(kpoint, dtype=float)
    if coordinates == LATTICE:
        kpoint = recip_basis @ kpoint
    bz_point = map_to_bz(kpoint, recip_basis, CARTESIAN, rtol=rtol, atol=atol)

    for op in point_group:
        rot_point = op @ bz_point
        if inside_hull(rot_point, ibz, rtol=rtol, atol=atol):
            if coordinates == LATTICE:
                return np.linalg.solve(recip_basis, rot_point)
            return rot_point

    logger.error("No operator maps %s into the IBZ", bz_point)
    raise FoldError("Failed to map the k-point to the IBZ.")


def map_to_ibz_points(
    kpoints: np.ndarray,
    recip_basis: np.ndarray,
    ibz: ConvexPolytope,
    point_group: list[np.ndarray],
    coordinates: str,
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> np.ndarray:
    """Map columns of ``kpoints`` to the IBZ and drop duplicates.

    Raises:
        FoldError: On the first point that cannot be mapped
    """
    recip_basis = check_basis(recip_basis)
    kpoints = as_points(kpoints, recip_basis.shape[0])
    if rtol is None:
        rtol = default_rtol(recip_basis)
    mapped = np.column_stack([
        map_to_ibz(kpoints[:, i], recip_basis, ibz, point_group, coordinates,
                   rtol=rtol, atol=atol)
        for i in range(kpoints.shape[1])
    ])
    return unique_points(mapped, rtol=rtol, atol=atol)


def complete_orbit(
    point: np.ndarray,
    point_group: list[np.ndarray],
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> np.ndarray:
    """Images of a Cartesian point under every operator, without duplicates.

    Returns:
        (dim, n) array of the orbit points as columns
    """
    point = np.asarray(point, dtype=float)
    if rtol is None:
        rtol = default_rtol(point)
    images = np.column_stack([op @ point for op in point_group])
    return unique_points(images, rtol=rtol, atol=atol)


def complete_orbits(
    points: np.ndarray,
    point_group: list[np.ndarray],
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> np.ndarray:
    """Union of the orbits of the columns of ``points``."""
    points = as_points(points)
    if rtol is None:
        rtol = default_rtol(points)
    images = np.column_stack([
        op @ points[:, i] for i in range(points.shape[1]) for op in point_group
    ])
    return unique_points(images, rtol=rtol, atol=atol)
