"""
Point groups, space groups and primitive cells of 2D and 3D lattices.

Point operators act on Cartesian column vectors from the left. All searches
enumerate candidates in a fixed order, so results are deterministic for a
given input and tolerance.
"""

import itertools
import logging

import numpy as np

from .config import CARTESIAN, DEFAULT_ATOL, LATTICE, RADIUS_PADDING, check_coordinates, default_rtol
from .exceptions import InvalidInputError
from .folding import map_to_unitcell
from .lattice import check_basis, minkowski_reduce
from .models import PrimitiveCell, SpaceGroup
from .utils import as_points, contains, sample_ball

logger = logging.getLogger(__name__)


def _check_atoms(basis, atom_types, atom_positions, coordinates):
    """Validate a decorated lattice and return it with Cartesian positions."""
    basis = check_basis(basis)
    coordinates = check_coordinates(coordinates)
    atom_types = [int(t) for t in atom_types]
    atom_positions = as_points(atom_positions, basis.shape[0])

    if len(atom_types) != atom_positions.shape[1]:
        raise InvalidInputError(
            "The number of atom types and positions must be the same."
        )
    if not atom_types:
        raise InvalidInputError("At least one atom is required.")

    if coordinates == LATTICE:
        atom_positions = basis @ atom_positions
    return basis, atom_types, atom_positions


def point_group(
    basis: np.ndarray,
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> list[np.ndarray]:
    """Calculate the point group of a lattice in 2D or 3D.

    Every ordered choice of ``dim`` lattice points inside a ball slightly
    larger than the longest reduced basis vector is a candidate image of the
    basis. A candidate is kept when it preserves the basis vector lengths and
    the cell volume, and the operator mapping the basis onto it is
    orthogonal.

    Candidates are walked as the Cartesian product of per-column index lists
    into the sampled points, each list holding the points whose length
    matches that basis vector. Selections that repeat an index are skipped.

    Args:
        basis: Lattice vectors as columns of a 2x2 or 3x3 matrix
        rtol: Relative tolerance for lengths, volumes and orthogonality
        atol: Absolute tolerance for lengths, volumes and orthogonality

    Returns:
        List of orthogonal operators acting on Cartesian points
    """
    basis = check_basis(basis)
    if rtol is None:
        rtol = default_rtol(basis)
    dim = basis.shape[0]

    basis = minkowski_reduce(basis, rtol=rtol, atol=atol)
    norms = np.linalg.norm(basis, axis=0)
    radius = np.max(norms) * RADIUS_PADDING
    pts = sample_ball(basis, radius, np.zeros(dim), rtol=rtol, atol=atol)
    pt_norms = np.linalg.norm(pts, axis=0)

    size = abs(np.linalg.det(basis))
    inv_basis = np.linalg.inv(basis)
    identity = np.eye(dim)

    candidates = [
        np.flatnonzero(np.isclose(pt_norms, n, rtol=rtol, atol=atol))
        for n in norms
    ]
    logger.debug(
        "Sampled %d lattice points; candidates per vector: %s",
        pts.shape[1], [len(c) for c in candidates],
    )

    ops = []
    for perm in itertools.product(*candidates):
        if len(set(perm)) < dim:
            continue
        image = pts[:, list(perm)]
        # Point operations preserve lengths of lattice vectors and the
        # volume of the cell.
        if not np.isclose(abs(np.linalg.det(image)), size, rtol=rtol, atol=atol):
            continue
        op = image @ inv_basis
        if np.allclose(op.T @ op, identity, rtol=rtol, atol=atol):
            ops.append(op)

    logger.debug("Found %d point operators", len(ops))
    return ops


def space_group(
    basis: np.ndarray,
    atom_types: list[int],
    atom_positions: np.ndarray,
    coordinates: str,
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> SpaceGroup:
    """Calculate the space group of a crystal structure.

    The first atom is the reference. Under every point operator it must land
    on an atom of its own type, which fixes the candidate fractional
    translations. A (translation, rotation) pair is kept when it maps every
    atom onto an atom of the same type.

    Args:
        basis: Lattice vectors as columns
        atom_types: One integer tag per atom
        atom_positions: Atom positions as columns
        coordinates: ``'lattice'`` or ``'Cartesian'`` for the positions
        rtol: Relative tolerance
        atol: Absolute tolerance

    Returns:
        SpaceGroup with Cartesian translations folded into the unit cell
    """
    basis, atom_types, atom_pos = _check_atoms(
        basis, atom_types, atom_positions, coordinates
    )
    if rtol is None:
        rtol = default_rtol(basis)

    basis = minkowski_reduce(basis, rtol=rtol, atol=atol)
    operators = point_group(basis, rtol=rtol, atol=atol)
    num_atoms = len(atom_types)

    def fold(pt):
        return map_to_unitcell(pt, basis, CARTESIAN, rtol=rtol, atol=atol)

    atom_pos = np.column_stack([fold(atom_pos[:, i]) for i in range(num_atoms)])

    def lands_on_atom(pt, kind):
        return any(
            kind == atom_types[i] and np.allclose(pt, atom_pos[:, i], rtol=rtol, atol=atol)
            for i in range(num_atoms)
        )

    group = SpaceGroup()
    same_atoms = [i for i, t in enumerate(atom_types) if t == atom_types[0]]

    for op in operators:
        ref_image = op @ atom_pos[:, 0]

        for i in same_atoms:
            ftrans = fold(atom_pos[:, i] - ref_image)
            if not group.candidate_translations or not contains(
                ftrans, np.column_stack(group.candidate_translations), rtol=rtol, atol=atol
            ):
                group.candidate_translations.append(ftrans)

            # Every atom has to land on an atom of its own type.
            if all(
                lands_on_atom(fold(op @ atom_pos[:, j] + ftrans), atom_types[j])
                for j in range(num_atoms)
            ):
                group.rotations.append(op)
                group.translations.append(ftrans)

    logger.debug(
        "Space group: %d operations from %d point operators, %d candidate translations",
        len(group), len(operators), len(group.candidate_translations),
    )
    return group


def make_primitive(
    basis: np.ndarray,
    atom_types: list[int],
    atom_positions: np.ndarray,
    coordinates: str,
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> PrimitiveCell:
    """Make a unit cell primitive.

    Lattice translations of the decorated structure (the space-group
    translations paired with the identity) are pooled with the basis
    vectors. Combinations of ``dim`` pool vectors are tried in lexicographic
    index order; the first non-singular one in which every pool vector has
    integer lattice coordinates becomes the new basis. Its shape depends on
    that order; it is not reduced.

    Args:
        basis: Lattice vectors as columns
        atom_types: One integer tag per atom
        atom_positions: Atom positions as columns
        coordinates: ``'lattice'`` or ``'Cartesian'`` for the positions
        rtol: Relative tolerance
        atol: Absolute tolerance

    Returns:
        PrimitiveCell with Cartesian positions. With a single atom the
        basis and types are returned unchanged.
    """
    checked_basis, atom_types, atom_pos = _check_atoms(
        basis, atom_types, atom_positions, coordinates
    )
    if len(atom_types) == 1:
        return PrimitiveCell(
            basis=checked_basis,
            atom_types=atom_types,
            atom_positions=atom_pos,
        )
    basis = checked_basis
    if rtol is None:
        rtol = default_rtol(basis)
    dim = basis.shape[0]

    group = space_group(basis, atom_types, atom_pos, CARTESIAN, rtol=rtol, atol=atol)
    # The origin is always a translation and adds nothing.
    ftrans = [
        t for t in group.pure_translations(rtol=rtol, atol=atol)
        if not np.allclose(t, 0.0, rtol=rtol, atol=atol)
    ]

    prim_basis = basis
    if ftrans:
        pool = np.column_stack([basis, *ftrans])
        for combo in itertools.combinations(range(pool.shape[1]), dim):
            trial = pool[:, list(combo)]
            if np.isclose(np.linalg.det(trial), 0.0, atol=atol):
                continue
            # Every pool vector must be a lattice vector of the trial cell.
            coords = np.linalg.solve(trial, pool)
            if np.allclose(coords, np.round(coords), rtol=rtol, atol=atol):
                prim_basis = trial
                logger.info(
                    "Reduced cell volume from %g to %g",
                    abs(np.linalg.det(basis)), abs(np.linalg.det(trial)),
                )
                break

    # Fold atoms into the cell and merge coincident atoms of the same type.
    prim_types = []
    prim_pos = []
    for kind, pos in zip(atom_types, atom_pos.T, strict=True):
        folded = map_to_unitcell(pos, prim_basis, CARTESIAN, rtol=rtol, atol=atol)
        duplicate = any(
            kind == k and np.allclose(folded, p, rtol=rtol, atol=atol)
            for k, p in zip(prim_types, prim_pos, strict=True)
        )
        if not duplicate:
            prim_types.append(kind)
            prim_pos.append(folded)

    return PrimitiveCell(
        basis=prim_basis,
        atom_types=prim_types,
        atom_positions=np.column_stack(prim_pos),
    )


def symmetry_operators(
    basis: np.ndarray,
    atom_types: list[int],
    atom_positions: np.ndarray,
    coordinates: str,
    rtol: float | None = None,
    atol: float = DEFAULT_ATOL
) -> list[np.ndarray]:
    """Distinct point operators of a structure that need no translation."""
    basis = check_basis(basis)
    if rtol is None:
        rtol = default_rtol(basis)
    group = space_group(basis, atom_types, atom_positions, coordinates, rtol=rtol, atol=atol)
    return group.pure_rotations(rtol=rtol, atol=atol)
