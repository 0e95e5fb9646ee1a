"""
Tests for mapping points into the unit cell, the BZ and the IBZ.
"""

import numpy as np
import pytest

from bz_reduce import (
    FoldError,
    InvalidInputError,
    complete_orbit,
    complete_orbits,
    convex_hull,
    inside_hull,
    irreducible_brillouin_zone,
    map_to_bz,
    map_to_bz_points,
    map_to_ibz,
    map_to_ibz_points,
    map_to_unitcell,
    map_to_unitcell_points,
    point_group,
    reciprocal_basis,
)
from bz_reduce import lattice

KPOINTS_2D = np.array([
    [0.7, 0.2], [-1.3, 2.45], [3.1, -0.05], [0.49, 0.51], [-2.2, -2.2],
])


@pytest.fixture
def square_zone():
    """Reciprocal basis, IBZ and point group of the square lattice."""
    basis = np.eye(2)
    recip = reciprocal_basis(basis)
    ibz = irreducible_brillouin_zone(basis, [0], np.zeros((2, 1)), "Cartesian")
    return recip, ibz, point_group(basis)


# =============================================================================
# Unit Cell Tests
# =============================================================================

class TestMapToUnitcell:
    """Test folding into the unit cell."""

    def test_cartesian(self):
        basis = np.array([[0, 1, 2], [0, -1, 1], [1, 0, 0]])
        result = map_to_unitcell(np.array([1, 2, 3.2]), basis, "Cartesian")
        assert np.allclose(result, [0.0, 0.0, 0.2])

    def test_lattice(self):
        basis = lattice.hexagonal(1.0, 1.6)
        result = map_to_unitcell(np.array([1.25, -0.5, 3.0]), basis, "lattice")
        assert np.allclose(result, [0.25, 0.5, 0.0])

    def test_coordinates_case_insensitive(self):
        result = map_to_unitcell(np.array([1.5, -0.25]), np.eye(2), "cartesian")
        assert np.allclose(result, [0.5, 0.75])

    def test_idempotent(self):
        basis = lattice.oblique()
        once = map_to_unitcell(np.array([2.3, -1.7]), basis, "Cartesian")
        twice = map_to_unitcell(once, basis, "Cartesian")
        assert np.allclose(once, twice)

    def test_snaps_values_near_one(self):
        """Components a rounding error below 1 fold to 0."""
        result = map_to_unitcell(np.array([1 - 1e-14, -1e-15]), np.eye(2), "lattice")
        assert np.array_equal(result, [0.0, 0.0])

    def test_in_unit_cell(self):
        basis = lattice.fcc()
        for point in np.random.default_rng(0).uniform(-5, 5, size=(10, 3)):
            folded = map_to_unitcell(point, basis, "Cartesian")
            coords = np.linalg.solve(basis, folded)
            assert np.all(coords >= -1e-9) and np.all(coords < 1.0)

    def test_batch_removes_duplicates(self):
        points = np.array([[0.5, 0.5], [1.5, -0.5], [0.25, 0.0]]).T
        result = map_to_unitcell_points(points, np.eye(2), "lattice")
        assert result.shape == (2, 2)

    def test_unknown_coordinates(self):
        with pytest.raises(InvalidInputError):
            map_to_unitcell(np.zeros(2), np.eye(2), "polar")


# =============================================================================
# Brillouin Zone Folding Tests
# =============================================================================

class TestMapToBZ:
    """Test folding into the Brillouin zone."""

    def test_lattice_point_maps_to_origin(self):
        result = map_to_bz(np.array([2, 3, 2]), np.eye(3), "lattice")
        assert np.allclose(result, 0.0)

    def test_square(self):
        result = map_to_bz(np.array([0.7, 0.2]), np.eye(2), "Cartesian")
        assert np.allclose(result, [-0.3, 0.2])

    @pytest.mark.parametrize("kpoint", KPOINTS_2D)
    def test_shortest_image(self, kpoint):
        """The result is no longer than any neighbouring image."""
        recip = reciprocal_basis(lattice.hexagonal_2d())
        result = map_to_bz(kpoint, recip, "Cartesian")
        norm = np.linalg.norm(result)
        for i in (-1, 0, 1):
            for j in (-1, 0, 1):
                image = result + recip @ np.array([i, j])
                assert norm <= np.linalg.norm(image) + 1e-9

    @pytest.mark.parametrize("kpoint", KPOINTS_2D)
    def test_translationally_equivalent(self, kpoint):
        recip = reciprocal_basis(lattice.oblique())
        result = map_to_bz(kpoint, recip, "Cartesian")
        coords = np.linalg.solve(recip, result - kpoint)
        assert np.allclose(coords, np.round(coords), atol=1e-8)

    def test_skewed_basis(self):
        """An unreduced basis gives the same zone."""
        skewed = np.array([[1.0, 0.0], [4.0, 1.0]]).T
        result = map_to_bz(np.array([0.7, 0.2]), skewed, "Cartesian")
        assert np.allclose(result, [-0.3, 0.2])

    def test_lattice_frame(self):
        """Lattice input gives lattice output."""
        recip = reciprocal_basis(lattice.fcc())
        kpoint = np.array([0.9, -0.3, 1.4])
        in_lattice = map_to_bz(kpoint, recip, "lattice")
        in_cartesian = map_to_bz(recip @ kpoint, recip, "Cartesian")
        assert np.allclose(recip @ in_lattice, in_cartesian)

    def test_batch_removes_duplicates(self):
        kpoints = np.array([[0.2, 0.1], [1.2, 0.1], [-0.8, 2.1], [0.3, 0.0]]).T
        result = map_to_bz_points(kpoints, np.eye(2), "Cartesian")
        assert result.shape == (2, 2)


# =============================================================================
# Hull Membership Tests
# =============================================================================

class TestInsideHull:
    """Test point-in-hull checks."""

    def test_square(self):
        hull = convex_hull(np.array([[-0.5, -0.5], [0.5, -0.5], [0.5, 0.5], [-0.5, 0.5]]))
        assert inside_hull(np.array([0.0, 0.0]), hull)
        assert inside_hull(np.array([0.5, 0.1]), hull)
        assert not inside_hull(np.array([0.6, 0.0]), hull)

    def test_vertices_included(self):
        points = np.array([
            [0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1],
        ], dtype=float)
        hull = convex_hull(points)
        for vertex in hull.vertices:
            assert inside_hull(vertex, hull)

    def test_outside_tetrahedron(self):
        points = np.array([
            [0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1],
        ], dtype=float)
        hull = convex_hull(points)
        assert inside_hull(np.array([0.2, 0.2, 0.2]), hull)
        assert not inside_hull(np.array([0.5, 0.5, 0.5]), hull)


# =============================================================================
# Irreducible Zone Folding Tests
# =============================================================================

class TestMapToIBZ:
    """Test folding into the irreducible Brillouin zone."""

    def test_lattice_point_maps_to_origin(self, square_zone):
        recip, ibz, ops = square_zone
        result = map_to_ibz(np.array([2.0, 3.0]), recip, ibz, ops, "Cartesian")
        assert np.allclose(result, [0.0, 0.0])

    @pytest.mark.parametrize("kpoint", KPOINTS_2D)
    def test_lands_in_ibz(self, square_zone, kpoint):
        """The image is inside the IBZ and has the BZ image's length."""
        recip, ibz, ops = square_zone
        result = map_to_ibz(kpoint, recip, ibz, ops, "Cartesian")
        bz_point = map_to_bz(kpoint, recip, "Cartesian")

        assert inside_hull(result, ibz)
        assert np.linalg.norm(result) == pytest.approx(np.linalg.norm(bz_point))

    def test_lattice_frame(self, square_zone):
        recip, ibz, ops = square_zone
        result = map_to_ibz(np.array([0.7, 0.2]), recip, ibz, ops, "lattice")
        assert inside_hull(recip @ result, ibz)

    def test_no_operator_raises(self):
        """A point with no image in the hull raises FoldError."""
        hull = convex_hull(np.array([[0.1, 0.1], [0.2, 0.1], [0.1, 0.2]]))
        with pytest.raises(FoldError):
            map_to_ibz(np.array([0.4, -0.3]), np.eye(2), hull, [np.eye(2)],
                       "Cartesian")

    def test_batch_aborts_on_failure(self):
        """One unmappable point fails the whole batch."""
        hull = convex_hull(np.array([[0.1, 0.1], [0.2, 0.1], [0.1, 0.2]]))
        kpoints = np.array([[0.12, 0.12], [0.4, -0.3]]).T
        with pytest.raises(FoldError):
            map_to_ibz_points(kpoints, np.eye(2), hull, [np.eye(2)], "Cartesian")

    def test_batch(self, square_zone):
        """Points in one orbit collapse to a single IBZ point."""
        recip, ibz, ops = square_zone
        kpoints = np.array([[0.3, 0.1], [-0.1, 0.3], [0.3, -0.1], [1.3, 0.1]]).T
        result = map_to_ibz_points(kpoints, recip, ibz, ops, "Cartesian")
        assert result.shape == (2, 1)


# =============================================================================
# Orbit Tests
# =============================================================================

class TestCompleteOrbit:
    """Test orbits under a point group."""

    def test_axis_point(self):
        ops = point_group(np.eye(2))
        orbit = complete_orbit(np.array([0.05, 0.0]), ops)
        assert orbit.shape == (2, 4)

    def test_general_point(self):
        ops = point_group(np.eye(3))
        orbit = complete_orbit(np.array([0.1, 0.2, 0.3]), ops)
        assert orbit.shape == (3, 48)

    def test_orbit_is_closed(self):
        """The orbit of any orbit point is the same set."""
        ops = point_group(lattice.hexagonal_2d())
        orbit = complete_orbit(np.array([0.1, 0.05]), ops)
        other = complete_orbit(orbit[:, 3], ops)

        assert orbit.shape == other.shape
        for i in range(other.shape[1]):
            assert np.any(np.all(np.isclose(orbit, other[:, [i]]), axis=0))

    def test_multiple_points(self):
        ops = point_group(np.eye(2))
        points = np.array([[0.0, 0.0], [0.1, 0.0], [0.1, 0.1]]).T
        assert complete_orbits(points, ops).shape == (2, 9)
