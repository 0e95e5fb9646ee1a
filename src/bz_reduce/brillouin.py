"""
Brillouin zone and irreducible Brillouin zone construction.

The Brillouin zone is the Voronoi cell of the origin in the reciprocal
lattice, built as an intersection of perpendicular-bisector half-spaces. The
irreducible zone is cut out of it with one half-space per point operator.
"""

import itertools
import logging

import numpy as np

from .config import (
    BZ_SEARCH_RANGE,
    CARTESIAN,
    CONVEX_HULL,
    DEFAULT_ATOL,
    HALF_SPACE,
    LATTICE,
    VERTEX_MERGE_TOL,
    check_coordinates,
    check_format,
    default_rtol,
)
from .exceptions import GeometryError
from .geometry import convex_hull, halfspace_intersection, polytope_volume
from .lattice import cell_volume, check_basis, minkowski_reduce, reciprocal_basis
from .models import ConvexPolytope, HalfSpacePolytope
from .symmetry import make_primitive, symmetry_operators
from .utils import as_points

logger = logging.getLogger(__name__)


def _prepare_structure(basis, atom_types, atom_positions, coordinates,
                       make_prim, rtol, atol):
    """Return the (optionally primitive) basis, types and Cartesian positions."""
    basis = check_basis(basis)
    coordinates = check_coordinates(coordinates)
    if make_prim:
        cell = make_primitive(basis, atom_types, atom_positions, coordinates,
                              rtol=rtol, atol=atol)
        return cell.basis, cell.atom_types, cell.atom_positions

    positions = as_points(atom_positions, basis.shape[0])
    if coordinates == LATTICE:
        positions = basis @ positions
    return basis, list(atom_types), positions


def _vertex_tolerance(vertices_scale: float, rtol: float, atol: float) -> float:
    return max(VERTEX_MERGE_TOL, atol, rtol * vertices_scale)


def _bz_halfspaces(basis, convention, rtol, atol):
    """Bisector half-spaces of the reduced reciprocal lattice and its basis."""
    recip = minkowski_reduce(reciprocal_basis(basis, convention), rtol=rtol, atol=atol)
    dim = recip.shape[0]

    span = range(-BZ_SEARCH_RANGE, BZ_SEARCH_RANGE + 1)
    coords = np.array(
        [c for c in itertools.product(span, repeat=dim) if any(c)], dtype=float
    )
    latpts = coords @ recip.T
    offsets = np.einsum('ij,ij->i', latpts, latpts) / 2
    return HalfSpacePolytope(normals=latpts, offsets=offsets), recip


def brillouin_zone(
    basis: np.ndarray,
    atom_types: list[int],
    atom_positions: np.ndarray,
    coordinates: str,
    bz_format: str = CONVEX_HULL,
    make_prim: bool = False,
    convention: str = "ordinary",
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> ConvexPolytope | HalfSpacePolytope:
    """Calculate the Brillouin zone of a real-space lattice.

    Args:
        basis: Real-space lattice vectors as columns of a 2x2 or 3x3 matrix
        atom_types: One integer tag per atom
        atom_positions: Atom positions as columns
        coordinates: ``'lattice'`` or ``'Cartesian'`` for the positions
        bz_format: ``'convex hull'`` or ``'half-space'``
        make_prim: Make the cell primitive first
        convention: ``'ordinary'`` or ``'angular'`` reciprocal convention
        rtol: Relative tolerance
        atol: Absolute tolerance

    Returns:
        The Brillouin zone in the requested representation

    Raises:
        GeometryError: If the zone's volume differs from the reciprocal cell's
    """
    basis = check_basis(basis)
    bz_format = check_format(bz_format)
    if rtol is None:
        rtol = default_rtol(basis)

    prim_basis, _, _ = _prepare_structure(
        basis, atom_types, atom_positions, coordinates, make_prim, rtol, atol
    )
    bz, recip = _bz_halfspaces(prim_basis, convention, rtol, atol)

    scale = float(np.max(np.linalg.norm(recip, axis=0)))
    vertices = halfspace_intersection(
        bz.normals, bz.offsets, np.zeros(bz.dim),
        tolerance=_vertex_tolerance(scale, rtol, atol),
    )
    bz_volume = polytope_volume(vertices)
    expected = cell_volume(recip)

    if not np.isclose(bz_volume, expected, rtol=rtol, atol=atol):
        logger.error("BZ volume %g, reciprocal cell volume %g", bz_volume, expected)
        raise GeometryError("The area or volume of the Brillouin zone is incorrect.")

    if bz_format == HALF_SPACE:
        return bz
    return convex_hull(vertices)


def irreducible_brillouin_zone(
    basis: np.ndarray,
    atom_types: list[int],
    atom_positions: np.ndarray,
    coordinates: str,
    ibz_format: str = CONVEX_HULL,
    make_prim: bool = False,
    convention: str = "ordinary",
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> ConvexPolytope | HalfSpacePolytope:
    """Calculate the irreducible Brillouin zone of a crystal structure.

    Walks the vertices of the Brillouin zone. Every operator that moves the
    current vertex ``v`` contributes the cut ``(R v - v) . x <= 0``, which
    keeps ``v`` and drops its image, and is then retired. The walk stops when
    all operators are retired.

    Args:
        basis: Real-space lattice vectors as columns of a 2x2 or 3x3 matrix
        atom_types: One integer tag per atom
        atom_positions: Atom positions as columns
        coordinates: ``'lattice'`` or ``'Cartesian'`` for the positions
        ibz_format: ``'convex hull'`` or ``'half-space'``
        make_prim: Make the cell primitive first
        convention: ``'ordinary'`` or ``'angular'`` reciprocal convention
        rtol: Relative tolerance
        atol: Absolute tolerance

    Returns:
        The irreducible Brillouin zone in the requested representation

    Raises:
        GeometryError: If the zone's volume is not the BZ volume divided by
            the order of the point group
    """
    basis = check_basis(basis)
    ibz_format = check_format(ibz_format)
    if rtol is None:
        rtol = default_rtol(basis)

    prim_basis, prim_types, prim_pos = _prepare_structure(
        basis, atom_types, atom_positions, coordinates, make_prim, rtol, atol
    )
    pointgroup = symmetry_operators(
        prim_basis, prim_types, prim_pos, CARTESIAN, rtol=rtol, atol=atol
    )
    sizepg = len(pointgroup)

    bz = brillouin_zone(
        prim_basis, prim_types, prim_pos, CARTESIAN, HALF_SPACE, False,
        convention, rtol=rtol, atol=atol,
    )
    scale = float(np.max(np.abs(bz.offsets)))
    tolerance = _vertex_tolerance(np.sqrt(2 * scale), rtol, atol)
    bz_vertices = halfspace_intersection(
        bz.normals, bz.offsets, np.zeros(bz.dim), tolerance=tolerance
    )

    ibz = bz
    for v in bz_vertices:
        for i in range(len(pointgroup) - 1, -1, -1):
            image = pointgroup[i] @ v
            if not np.allclose(image, v, rtol=rtol, atol=atol):
                ibz = ibz.intersect(image - v, 0.0)
                del pointgroup[i]
        if not pointgroup:
            break
    logger.debug("Cut the BZ with %d half-spaces", len(ibz) - len(bz))

    ibz_vertices = halfspace_intersection(ibz.normals, ibz.offsets, tolerance=tolerance)
    bz_volume = polytope_volume(bz_vertices)
    ibz_volume = polytope_volume(ibz_vertices)

    if not np.isclose(ibz_volume, bz_volume / sizepg, rtol=rtol, atol=atol):
        logger.error(
            "IBZ volume %g, expected %g (BZ volume %g / %d operators)",
            ibz_volume, bz_volume / sizepg, bz_volume, sizepg,
        )
        raise GeometryError(
            "The area or volume of the irreducible Brillouin zone is incorrect."
        )

    if ibz_format == HALF_SPACE:
        return ibz
    return convex_hull(ibz_vertices)
