"""
Lattice bases: reduction, reciprocal transform and common Bravais lattices.

A basis is a 2x2 or 3x3 array whose columns are the lattice vectors.
"""

import numpy as np
from ase.geometry import minkowski_reduce as ase_minkowski_reduce

from .config import ANGULAR, DEFAULT_ATOL, check_convention, default_rtol
from .exceptions import GeometryError, InvalidInputError


def check_basis(basis) -> np.ndarray:
    """Return ``basis`` as a float array, rejecting bad shapes and singular cells."""
    basis = np.asarray(basis, dtype=float)
    if basis.shape not in [(2, 2), (3, 3)]:
        raise InvalidInputError("The lattice basis must be a 2x2 or 3x3 matrix.")
    if abs(np.linalg.det(basis)) <= 1e-12 * np.prod(np.linalg.norm(basis, axis=0)):
        raise InvalidInputError("The lattice basis is singular.")
    return basis


def minkowski_reduce(
    basis: np.ndarray,
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> np.ndarray:
    """Minkowski-reduce a 2D or 3D lattice basis.

    The reduction itself is ``ase.geometry.minkowski_reduce``, which works on
    cells with the lattice vectors as rows. A 2D basis is embedded in a cell
    whose third direction is not periodic. The returned vectors are sorted
    by length and the sign of the determinant is preserved.

    Args:
        basis: Lattice vectors as columns
        rtol: Relative tolerance for checking the result spans the lattice
        atol: Absolute tolerance for checking the result spans the lattice

    Returns:
        Reduced basis generating the same lattice

    Raises:
        GeometryError: If the reduced vectors do not generate the lattice
    """
    basis = check_basis(basis)
    if rtol is None:
        rtol = default_rtol(basis)
    dim = basis.shape[0]

    cell = np.eye(3)
    cell[:dim, :dim] = basis.T
    pbc = [True] * dim + [False] * (3 - dim)
    rcell, _ = ase_minkowski_reduce(cell, pbc=pbc)
    reduced = np.asarray(rcell, dtype=float)[:dim, :dim].T

    order = np.argsort(np.linalg.norm(reduced, axis=0), kind="stable")
    reduced = reduced[:, order]
    if np.sign(np.linalg.det(reduced)) != np.sign(np.linalg.det(basis)):
        reduced[:, -1] = -reduced[:, -1]

    # Unimodular change of basis
    coords = np.linalg.solve(basis, reduced)
    if not (np.allclose(coords, np.round(coords), rtol=rtol, atol=atol)
            and np.isclose(abs(np.linalg.det(coords)), 1.0, rtol=rtol, atol=atol)):
        raise GeometryError("Minkowski reduction changed the lattice.")
    return reduced


def reciprocal_basis(basis: np.ndarray, convention: str = "ordinary") -> np.ndarray:
    """Reciprocal lattice vectors as columns.

    Args:
        basis: Real-space lattice vectors as columns
        convention: ``'ordinary'`` (``B = inv(A).T``) or ``'angular'``
            (``B = 2 pi inv(A).T``)

    Returns:
        Reciprocal basis, same shape as ``basis``
    """
    basis = check_basis(basis)
    convention = check_convention(convention)
    recip = np.linalg.inv(basis).T
    if convention == ANGULAR:
        recip = 2 * np.pi * recip
    return recip


def cell_volume(basis: np.ndarray) -> float:
    """Area (2D) or volume (3D) of the cell spanned by ``basis``."""
    return float(abs(np.linalg.det(np.asarray(basis, dtype=float))))


# =============================================================================
# Common lattices
# =============================================================================

def square(a: float = 1.0) -> np.ndarray:
    return a * np.eye(2)


def rectangular(a: float = 1.0, b: float = 2.0) -> np.ndarray:
    return np.diag([a, b]).astype(float)


def hexagonal_2d(a: float = 1.0) -> np.ndarray:
    """Triangular (2D hexagonal) lattice with a 120 degree angle."""
    return a * np.array([[1.0, -0.5], [0.0, np.sqrt(3) / 2]])


def oblique(a: float = 1.0, b: float = 1.3, gamma: float = 1.2) -> np.ndarray:
    """Oblique lattice; ``gamma`` is the angle between the vectors in radians."""
    return np.array([[a, b * np.cos(gamma)], [0.0, b * np.sin(gamma)]])


def cubic(a: float = 1.0) -> np.ndarray:
    return a * np.eye(3)


def tetragonal(a: float = 1.0, c: float = 1.5) -> np.ndarray:
    return np.diag([a, a, c]).astype(float)


def orthorhombic(a: float = 1.0, b: float = 1.5, c: float = 2.0) -> np.ndarray:
    return np.diag([a, b, c]).astype(float)


def hexagonal(a: float = 1.0, c: float = 1.6) -> np.ndarray:
    return np.array([
        [a, -a / 2, 0.0],
        [0.0, a * np.sqrt(3) / 2, 0.0],
        [0.0, 0.0, c],
    ])


def fcc(a: float = 1.0) -> np.ndarray:
    """Primitive vectors of the face-centered cubic lattice."""
    return a / 2 * np.array([
        [0.0, 1.0, 1.0],
        [1.0, 0.0, 1.0],
        [1.0, 1.0, 0.0],
    ])


def bcc(a: float = 1.0) -> np.ndarray:
    """Primitive vectors of the body-centered cubic lattice."""
    return a / 2 * np.array([
        [-1.0, 1.0, 1.0],
        [1.0, -1.0, 1.0],
        [1.0, 1.0, -1.0],
    ])


def from_parameters(
    a: float,
    b: float,
    c: float,
    alpha: float,
    beta: float,
    gamma: float
) -> np.ndarray:
    """3D basis from cell lengths and angles (radians).

    ``a`` lies along x and ``b`` in the xy-plane.
    """
    cos_a, cos_b, cos_g = np.cos(alpha), np.cos(beta), np.cos(gamma)
    sin_g = np.sin(gamma)

    cx = c * cos_b
    cy = c * (cos_a - cos_b * cos_g) / sin_g
    cz_sq = c**2 - cx**2 - cy**2
    if cz_sq <= 0:
        raise InvalidInputError("Cell angles do not describe a valid cell.")

    return np.array([
        [a, b * cos_g, cx],
        [0.0, b * sin_g, cy],
        [0.0, 0.0, np.sqrt(cz_sq)],
    ])
