"""
bz-reduce - Symmetry-reduced Brillouin zones.

Computes point groups, space groups and primitive cells of 2D and 3D
lattices, and uses them to build the Brillouin zone and the irreducible
Brillouin zone as polytopes.

Example:
    >>> import numpy as np
    >>> from bz_reduce import irreducible_brillouin_zone, point_group
    >>>
    >>> basis = np.eye(2)
    >>> len(point_group(basis))
    8
    >>> ibz = irreducible_brillouin_zone(basis, [0], np.zeros((2, 1)), "Cartesian")
    >>> round(ibz.volume, 6)
    0.125
"""

__version__ = "1.0.0"

# Zones
from .brillouin import brillouin_zone, irreducible_brillouin_zone

# Configuration
from .config import POINT_GROUP_ORDERS, point_group_order

# Errors
from .exceptions import BZReduceError, FoldError, GeometryError, InvalidInputError

# Point folding
from .folding import (
    complete_orbit,
    complete_orbits,
    inside_hull,
    map_to_bz,
    map_to_bz_points,
    map_to_ibz,
    map_to_ibz_points,
    map_to_unitcell,
    map_to_unitcell_points,
)

# Polytope backend
from .geometry import convex_hull, halfspace_intersection, halfspaces_to_hull

# Lattices
from .lattice import minkowski_reduce, reciprocal_basis

# Data classes
from .models import (
    ConvexPolytope,
    HalfSpacePolytope,
    PrimitiveCell,
    SpaceGroup,
)

# Symmetry
from .symmetry import make_primitive, point_group, space_group, symmetry_operators

# Point sets
from .utils import contains, sample_ball, unique_points

__all__ = [
    # Version
    "__version__",
    # Symmetry
    "point_group",
    "space_group",
    "make_primitive",
    "symmetry_operators",
    # Zones
    "brillouin_zone",
    "irreducible_brillouin_zone",
    # Point folding
    "map_to_unitcell",
    "map_to_unitcell_points",
    "map_to_bz",
    "map_to_bz_points",
    "inside_hull",
    "map_to_ibz",
    "map_to_ibz_points",
    "complete_orbit",
    "complete_orbits",
    # Lattices and point sets
    "minkowski_reduce",
    "reciprocal_basis",
    "sample_ball",
    "unique_points",
    "contains",
    # Polytope backend
    "halfspace_intersection",
    "convex_hull",
    "halfspaces_to_hull",
    # Data classes
    "ConvexPolytope",
    "HalfSpacePolytope",
    "SpaceGroup",
    "PrimitiveCell",
    # Configuration
    "POINT_GROUP_ORDERS",
    "point_group_order",
    # Errors
    "BZReduceError",
    "InvalidInputError",
    "GeometryError",
    "FoldError",
]
