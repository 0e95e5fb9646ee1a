"""
Data classes for polytopes, space groups and cells.

Polytopes come in two explicit representations: ``HalfSpacePolytope`` (an
intersection of inequalities) and ``ConvexPolytope`` (vertices with hull
facets). Conversion between them goes through ``bz_reduce.geometry``.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from .config import DEFAULT_ATOL, default_rtol
from .lattice import cell_volume
from .utils import remove_duplicates


@dataclass(frozen=True)
class HalfSpacePolytope:
    """Polytope as the intersection of half-spaces ``normals[i] . x <= offsets[i]``.

    Attributes:
        normals: (m, dim) array of (not necessarily unit) normals
        offsets: (m,) array of right-hand sides
    """
    normals: np.ndarray
    offsets: np.ndarray

    def __post_init__(self):
        normals = np.atleast_2d(np.asarray(self.normals, dtype=float))
        offsets = np.asarray(self.offsets, dtype=float).reshape(-1)
        if len(normals) != len(offsets):
            raise ValueError("Need one offset per normal")
        object.__setattr__(self, 'normals', normals)
        object.__setattr__(self, 'offsets', offsets)

    def __len__(self) -> int:
        return len(self.offsets)

    @property
    def dim(self) -> int:
        return self.normals.shape[1]

    def intersect(self, normal: np.ndarray, offset: float) -> 'HalfSpacePolytope':
        """Return a new polytope cut by ``normal . x <= offset``."""
        return HalfSpacePolytope(
            normals=np.vstack([self.normals, np.asarray(normal, dtype=float)]),
            offsets=np.append(self.offsets, float(offset)),
        )

    def contains(
        self,
        point: np.ndarray,
        rtol: float | None = None,
        atol: float = DEFAULT_ATOL
    ) -> bool:
        """Check whether a Cartesian point satisfies every inequality."""
        if rtol is None:
            rtol = default_rtol(self.offsets)
        lhs = self.normals @ np.asarray(point, dtype=float)
        return bool(np.all(
            (lhs <= self.offsets) | np.isclose(lhs, self.offsets, rtol=rtol, atol=atol)
        ))

    def to_dict(self) -> dict[str, Any]:
        return {
            'normals': self.normals.tolist(),
            'offsets': self.offsets.tolist(),
        }


@dataclass
class ConvexPolytope:
    """Polytope as a convex hull.

    Attributes:
        vertices: (n, dim) array of vertex positions
        facets: List of facets, each a list of vertex indices. 3D facets are
            ordered counter-clockwise when viewed from outside.
        equations: (k, dim + 1) array, one row ``[n, d]`` per facet with a
            unit outward normal ``n``; points inside satisfy ``n . x + d <= 0``
        volume: Area (2D) or volume (3D)
    """
    vertices: np.ndarray
    facets: list[list[int]]
    equations: np.ndarray
    volume: float

    @property
    def dim(self) -> int:
        return self.vertices.shape[1]

    @property
    def normals(self) -> np.ndarray:
        return self.equations[:, :-1]

    @property
    def offsets(self) -> np.ndarray:
        return self.equations[:, -1]

    def get_edges(self) -> list[tuple[int, int]]:
        """Get unique edges as (i, j) vertex index pairs with i < j."""
        if self.dim == 2:
            return sorted({tuple(sorted(f)) for f in self.facets})

        edges = set()
        for face in self.facets:
            for i in range(len(face)):
                edge = tuple(sorted((face[i], face[(i + 1) % len(face)])))
                edges.add(edge)
        return sorted(edges)

    def center(self) -> np.ndarray:
        """Mean of the vertices."""
        return np.mean(self.vertices, axis=0)

    def euler_characteristic(self) -> int:
        """V - E + F, which is 2 for a valid 3D polytope."""
        n_vertices = len(self.vertices)
        n_edges = len(self.get_edges())
        n_faces = len(self.facets)
        return n_vertices - n_edges + n_faces

    def is_valid(self) -> bool:
        """Check that the polytope is closed and has positive measure."""
        if self.volume <= 0 or len(self.vertices) < self.dim + 1:
            return False
        if self.dim == 2:
            return len(self.facets) == len(self.vertices)
        return self.euler_characteristic() == 2

    def to_halfspaces(self) -> HalfSpacePolytope:
        """Half-space representation built from the facet equations."""
        return HalfSpacePolytope(normals=self.normals, offsets=-self.offsets)

    def to_dict(self) -> dict[str, Any]:
        return {
            'vertices': self.vertices.tolist(),
            'facets': [list(f) for f in self.facets],
            'equations': self.equations.tolist(),
            'volume': float(self.volume),
        }


@dataclass
class SpaceGroup:
    """Symmetry operations of a decorated lattice.

    ``translations[i]`` accompanies ``rotations[i]``. Translations are in
    Cartesian coordinates, folded into the unit cell of the reduced lattice.
    Pairs found from different atoms are kept even when they repeat.

    Attributes:
        translations: Fractional translations of the retained pairs
        rotations: Point operators of the retained pairs
        candidate_translations: Every distinct translation tried
    """
    translations: list[np.ndarray] = field(default_factory=list)
    rotations: list[np.ndarray] = field(default_factory=list)
    candidate_translations: list[np.ndarray] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rotations)

    def __iter__(self) -> Iterator[tuple[np.ndarray, np.ndarray]]:
        return iter(zip(self.translations, self.rotations, strict=True))

    def pure_rotations(
        self,
        rtol: float | None = None,
        atol: float = DEFAULT_ATOL
    ) -> list[np.ndarray]:
        """Distinct rotations that are symmetries without a translation."""
        if rtol is None:
            rtol = default_rtol(*self.rotations)
        rotations = [
            rot for trans, rot in self
            if np.allclose(trans, 0.0, rtol=rtol, atol=atol)
        ]
        return remove_duplicates(rotations, rtol=rtol, atol=atol)

    def pure_translations(
        self,
        rtol: float | None = None,
        atol: float = DEFAULT_ATOL
    ) -> list[np.ndarray]:
        """Distinct translations paired with the identity rotation."""
        if rtol is None:
            rtol = default_rtol(*self.rotations)
        translations = [
            trans for trans, rot in self
            if np.allclose(rot, np.eye(len(rot)), rtol=rtol, atol=atol)
        ]
        return remove_duplicates(translations, rtol=rtol, atol=atol)


@dataclass
class PrimitiveCell:
    """A lattice basis with its atoms.

    Attributes:
        basis: Lattice vectors as columns
        atom_types: One integer tag per atom
        atom_positions: (dim, n) array of positions as columns
    """
    basis: np.ndarray
    atom_types: list[int]
    atom_positions: np.ndarray

    @property
    def volume(self) -> float:
        return cell_volume(self.basis)

    @property
    def num_atoms(self) -> int:
        return len(self.atom_types)
