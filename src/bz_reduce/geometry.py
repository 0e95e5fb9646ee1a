"""
Polytope backend.

Converts half-space systems to vertices and builds convex hulls with merged,
ordered facets. Works in 2D and 3D.
"""

import logging

import numpy as np
from scipy.optimize import linprog
from scipy.spatial import ConvexHull, HalfspaceIntersection, QhullError, cKDTree

from .config import FACET_MERGE_RTOL, VERTEX_MERGE_TOL
from .exceptions import GeometryError
from .models import ConvexPolytope, HalfSpacePolytope

logger = logging.getLogger(__name__)


def _find_interior_point(
    normals: np.ndarray,
    offsets: np.ndarray
) -> np.ndarray | None:
    """Find interior point using linear programming (Chebyshev center).

    Finds the center of the largest ball that fits inside the polytope
    defined by the halfspaces. This is a robust way to find a strictly
    interior point, also when some planes pass through the origin.

    Args:
        normals: (m, dim) array of normal vectors
        offsets: (m,) array of offsets

    Returns:
        Interior point as a dim-element array, or None if no solution
    """
    n_constraints, dim = normals.shape

    # Maximize r subject to: n_i . x + r |n_i| <= d_i
    # Variables: [x_1, ..., x_dim, r]
    c = np.zeros(dim + 1)
    c[-1] = -1.0

    row_norms = np.linalg.norm(normals, axis=1).reshape(n_constraints, 1)
    A_ub = np.hstack([normals, row_norms])
    bounds = [(None, None)] * dim + [(0.0, None)]

    result = linprog(c, A_ub=A_ub, b_ub=offsets, bounds=bounds, method='highs')
    if result.success and result.x[-1] > 1e-10:
        return result.x[:dim]
    return None


def _iterative_interior_point(
    normals: np.ndarray,
    offsets: np.ndarray
) -> np.ndarray | None:
    """Find interior point by shrinking the centroid of the plane feet.

    Fallback method when linear programming fails.

    Args:
        normals: (m, dim) array of normal vectors
        offsets: (m,) array of offsets

    Returns:
        Interior point or None
    """
    def inside(point):
        return np.all(normals @ point < offsets - 1e-10)

    # Foot of the perpendicular from the origin on each plane
    sq_norms = np.einsum('ij,ij->i', normals, normals)
    feet = normals * (offsets / sq_norms)[:, None]
    centroid = feet.mean(axis=0)

    for scale in [1.0, 0.5, 0.3, 0.1, 0.05, 0.01, 0.0]:
        test_point = centroid * scale
        if inside(test_point):
            return test_point
    return None


def _deduplicate_vertices(
    vertices: np.ndarray,
    tolerance: float = VERTEX_MERGE_TOL
) -> np.ndarray:
    """Remove duplicate vertices using KD-tree for O(n log n) performance.

    Args:
        vertices: (n, dim) array of vertex positions
        tolerance: Distance threshold for considering vertices identical

    Returns:
        Array of unique vertices
    """
    if len(vertices) == 0:
        return vertices

    tree = cKDTree(vertices)

    unique_indices = []
    visited = set()

    for i in range(len(vertices)):
        if i in visited:
            continue

        # Find all vertices within tolerance
        neighbors = tree.query_ball_point(vertices[i], tolerance)

        for n in neighbors:
            visited.add(n)

        # Keep only the first vertex in this cluster
        unique_indices.append(i)

    return vertices[unique_indices]


def halfspace_intersection(
    normals: np.ndarray,
    offsets: np.ndarray,
    interior_point: np.ndarray | None = None,
    tolerance: float = VERTEX_MERGE_TOL
) -> np.ndarray:
    """Compute the vertices of an intersection of half-spaces.

    Each half-space is defined by: normal . x <= offset

    Args:
        normals: (m, dim) array of outward normals
        offsets: (m,) array of offsets
        interior_point: A point known to be strictly inside the intersection
        tolerance: Distance below which two vertices are merged

    Returns:
        (n, dim) array of unique vertices

    Raises:
        GeometryError: If the intersection is empty, flat or unbounded
    """
    normals_arr = np.asarray(normals, dtype=float)
    offsets_arr = np.asarray(offsets, dtype=float).reshape(-1)

    if interior_point is None:
        # Try Chebyshev center first (most robust)
        interior_point = _find_interior_point(normals_arr, offsets_arr)

        if interior_point is None:
            interior_point = _iterative_interior_point(normals_arr, offsets_arr)

        if interior_point is None:
            raise GeometryError("The half-spaces have no common interior point")

    # Build halfspace matrix for scipy
    # Format: [A | -b] where Ax <= b becomes Ax - b <= 0
    halfspaces = np.hstack([normals_arr, -offsets_arr.reshape(-1, 1)])

    try:
        hs = HalfspaceIntersection(halfspaces, interior_point)
    except QhullError as err:
        raise GeometryError(f"Half-space intersection failed: {err}") from err

    vertices = hs.intersections
    if not np.all(np.isfinite(vertices)):
        raise GeometryError("The half-space intersection is unbounded")

    vertices = _deduplicate_vertices(vertices, tolerance)
    logger.debug(
        "Intersected %d half-spaces into %d vertices", len(offsets_arr), len(vertices)
    )
    return vertices


def compute_face_vertices(
    vertices: np.ndarray,
    indices: list[int],
    normal: np.ndarray,
    tolerance: float = 1e-6
) -> list[int]:
    """Order the vertices of a planar 3D face.

    Args:
        vertices: All vertices
        indices: Indices of the vertices on the face
        normal: Outward face normal
        tolerance: Numerical tolerance

    Returns:
        The indices ordered counter-clockwise when viewed from outside
    """
    center = np.mean(vertices[indices], axis=0)

    # Create local coordinate system on face
    u = vertices[indices[0]] - center
    u = u - np.dot(u, normal) * normal
    if np.linalg.norm(u) < tolerance and len(indices) > 1:
        u = vertices[indices[1]] - center
        u = u - np.dot(u, normal) * normal
    u = u / (np.linalg.norm(u) + 1e-10)
    v = np.cross(normal, u)

    angles = []
    for idx in indices:
        vec = vertices[idx] - center
        angle = np.arctan2(np.dot(vec, v), np.dot(vec, u))
        angles.append((angle, idx))

    angles.sort()
    return [idx for _, idx in angles]


def _merge_coplanar_facets(hull: ConvexHull) -> tuple[list[list[int]], np.ndarray]:
    """Group hull simplices that share a plane into facets."""
    facets = []
    equations = []
    merged = np.zeros(len(hull.simplices), dtype=bool)

    for i, eq in enumerate(hull.equations):
        if merged[i]:
            continue
        same_plane = np.flatnonzero(
            ~merged & np.all(
                np.isclose(hull.equations, eq, rtol=FACET_MERGE_RTOL, atol=FACET_MERGE_RTOL),
                axis=1,
            )
        )
        merged[same_plane] = True
        indices = list(dict.fromkeys(int(k) for k in hull.simplices[same_plane].ravel()))
        facets.append(indices)
        equations.append(eq)

    return facets, np.array(equations)


def convex_hull(points: np.ndarray) -> ConvexPolytope:
    """Convex hull of a set of 2D or 3D points.

    Args:
        points: (n, dim) array of points

    Returns:
        ConvexPolytope holding only the hull vertices

    Raises:
        GeometryError: If the points do not span a full-dimensional hull
    """
    points = np.asarray(points, dtype=float)
    try:
        hull = ConvexHull(points)
        # Rebuild on the extreme points so facet indices refer to them
        vertices = points[hull.vertices]
        hull = ConvexHull(vertices)
    except QhullError as err:
        raise GeometryError(f"Convex hull failed: {err}") from err

    facets, equations = _merge_coplanar_facets(hull)

    if hull.ndim == 3:
        facets = [
            compute_face_vertices(vertices, face, eq[:-1])
            for face, eq in zip(facets, equations, strict=True)
        ]

    return ConvexPolytope(
        vertices=vertices,
        facets=facets,
        equations=equations,
        volume=float(hull.volume),
    )


def polytope_volume(points: np.ndarray) -> float:
    """Area (2D) or volume (3D) of the convex hull of ``points``."""
    try:
        return float(ConvexHull(np.asarray(points, dtype=float)).volume)
    except QhullError as err:
        raise GeometryError(f"Convex hull failed: {err}") from err


def halfspaces_to_hull(
    polytope: HalfSpacePolytope,
    interior_point: np.ndarray | None = None
) -> ConvexPolytope:
    """Convert a half-space representation into a convex hull."""
    vertices = halfspace_intersection(
        polytope.normals, polytope.offsets, interior_point
    )
    return convex_hull(vertices)
