"""
Tests for the polytope backend.
"""

import numpy as np
import pytest

from bz_reduce import (
    ConvexPolytope,
    GeometryError,
    HalfSpacePolytope,
    convex_hull,
    halfspace_intersection,
    halfspaces_to_hull,
)
from bz_reduce.geometry import compute_face_vertices, polytope_volume

CUBE_NORMALS = np.vstack([np.eye(3), -np.eye(3)])
CUBE_OFFSETS = np.ones(6)

OCTAHEDRON = np.vstack([np.eye(3), -np.eye(3)])


# =============================================================================
# Half-Space Intersection Tests
# =============================================================================

class TestHalfspaceIntersection:
    """Test conversion of half-spaces to vertices."""

    def test_cube(self):
        """Six faces give eight vertices."""
        vertices = halfspace_intersection(CUBE_NORMALS, CUBE_OFFSETS)
        assert vertices.shape == (8, 3)
        assert np.allclose(np.abs(vertices), 1.0)

    def test_with_interior_point(self):
        vertices = halfspace_intersection(CUBE_NORMALS, CUBE_OFFSETS, np.zeros(3))
        assert len(vertices) == 8

    def test_planes_through_origin(self):
        """A triangle with the origin as a vertex needs a computed interior point."""
        normals = np.array([[-1.0, 0.0], [0.0, -1.0], [1.0, 1.0]])
        offsets = np.array([0.0, 0.0, 1.0])
        vertices = halfspace_intersection(normals, offsets)

        assert len(vertices) == 3
        assert polytope_volume(vertices) == pytest.approx(0.5)

    def test_redundant_halfspaces(self):
        """Redundant planes do not add vertices."""
        normals = np.vstack([CUBE_NORMALS, [[1.0, 1.0, 1.0]]])
        offsets = np.append(CUBE_OFFSETS, 10.0)
        assert len(halfspace_intersection(normals, offsets)) == 8

    def test_infeasible(self):
        """Contradictory half-spaces raise GeometryError."""
        normals = np.array([[1.0, 0.0], [-1.0, 0.0], [0.0, 1.0], [0.0, -1.0]])
        offsets = np.array([-1.0, -1.0, 1.0, 1.0])
        with pytest.raises(GeometryError):
            halfspace_intersection(normals, offsets)


# =============================================================================
# Convex Hull Tests
# =============================================================================

class TestConvexHull:
    """Test convex hull construction."""

    def test_cube(self):
        """Coplanar triangles are merged into square faces."""
        points = np.array([[x, y, z] for x in (0, 1) for y in (0, 1) for z in (0, 1)],
                          dtype=float)
        hull = convex_hull(points)

        assert isinstance(hull, ConvexPolytope)
        assert hull.volume == pytest.approx(1.0)
        assert len(hull.facets) == 6
        assert all(len(face) == 4 for face in hull.facets)
        assert len(hull.get_edges()) == 12

    def test_octahedron(self):
        hull = convex_hull(OCTAHEDRON)

        assert len(hull.vertices) == 6
        assert len(hull.facets) == 8
        assert len(hull.get_edges()) == 12
        assert hull.euler_characteristic() == 2
        assert hull.volume == pytest.approx(4 / 3)

    def test_interior_points_dropped(self):
        points = np.vstack([OCTAHEDRON, [[0.1, 0.1, 0.1], [0.0, 0.0, 0.0]]])
        hull = convex_hull(points)
        assert len(hull.vertices) == 6

    def test_square_2d(self):
        points = np.array([[0, 0], [1, 0], [1, 1], [0, 1], [0.5, 0.5]], dtype=float)
        hull = convex_hull(points)

        assert hull.dim == 2
        assert len(hull.vertices) == 4
        assert len(hull.facets) == 4
        assert hull.volume == pytest.approx(1.0)
        assert hull.is_valid()

    def test_facets_counter_clockwise(self):
        """Face normals from consecutive edges point outward."""
        hull = convex_hull(OCTAHEDRON)
        for face, eq in zip(hull.facets, hull.equations):
            p0, p1, p2 = hull.vertices[face[:3]]
            normal = np.cross(p1 - p0, p2 - p0)
            assert np.dot(normal, eq[:3]) > 0

    def test_unit_normals(self):
        hull = convex_hull(OCTAHEDRON)
        assert np.allclose(np.linalg.norm(hull.normals, axis=1), 1.0)

    def test_flat_points(self):
        """Coplanar points do not span a 3D hull."""
        points = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [1, 1, 0]], dtype=float)
        with pytest.raises(GeometryError):
            convex_hull(points)


class TestComputeFaceVertices:
    """Test ordering of face vertices."""

    def test_square_face(self):
        vertices = np.array([
            [1, 1, 0], [-1, -1, 0], [1, -1, 0], [-1, 1, 0],
        ], dtype=float)
        order = compute_face_vertices(vertices, [0, 1, 2, 3], np.array([0.0, 0.0, 1.0]))

        assert sorted(order) == [0, 1, 2, 3]
        # Opposite corners are never adjacent
        pos = {idx: i for i, idx in enumerate(order)}
        assert abs(pos[0] - pos[1]) == 2
        assert abs(pos[2] - pos[3]) == 2


# =============================================================================
# Conversion Tests
# =============================================================================

class TestConversion:
    """Test conversion between representations."""

    def test_halfspaces_to_hull(self):
        polytope = HalfSpacePolytope(normals=CUBE_NORMALS, offsets=CUBE_OFFSETS)
        hull = halfspaces_to_hull(polytope)
        assert hull.volume == pytest.approx(8.0)
        assert len(hull.facets) == 6

    def test_round_trip_keeps_volume(self):
        hull = convex_hull(OCTAHEDRON)
        again = halfspaces_to_hull(hull.to_halfspaces())
        assert again.volume == pytest.approx(hull.volume)
        assert len(again.vertices) == len(hull.vertices)

    def test_polytope_volume_2d(self):
        points = np.array([[0, 0], [2, 0], [0, 3]], dtype=float)
        assert polytope_volume(points) == pytest.approx(3.0)
