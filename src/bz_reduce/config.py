"""
Constants, tolerance defaults and tag validation.

All comparisons in the package take an explicit ``(rtol, atol)`` pair. The
helpers here only supply defaults; nothing in this module is mutable.
"""

from types import MappingProxyType

import numpy as np

from .exceptions import InvalidInputError

DEFAULT_ATOL = 1e-9

# Search radius for the point group is the longest reduced basis vector
# scaled by this factor.
RADIUS_PADDING = 1.001

# Reciprocal lattice points with integer coordinates in
# [-BZ_SEARCH_RANGE, BZ_SEARCH_RANGE] bound the Brillouin zone.
BZ_SEARCH_RANGE = 2

# Hull facets whose plane equations agree within this relative tolerance
# are merged into one face.
FACET_MERGE_RTOL = 1e-6

VERTEX_MERGE_TOL = 1e-8

CARTESIAN = "Cartesian"
LATTICE = "lattice"
COORDINATES = (CARTESIAN, LATTICE)

CONVEX_HULL = "convex hull"
HALF_SPACE = "half-space"
FORMATS = (CONVEX_HULL, HALF_SPACE)

ORDINARY = "ordinary"
ANGULAR = "angular"
CONVENTIONS = (ORDINARY, ANGULAR)

LATTICE_TYPES = (
    "square", "rectangular", "triangular", "oblique", "triclinic",
    "monoclinic", "orthorhombic", "rhombohedral", "tetragonal",
    "hexagonal", "cubic",
)

POINT_GROUP_ORDERS = MappingProxyType(dict(zip(
    LATTICE_TYPES,
    (8, 4, 12, 2, 2, 4, 8, 12, 16, 24, 48),
    strict=True,
)))


def default_rtol(*arrays) -> float:
    """Relative tolerance scaled to the magnitude of the inputs.

    Returns ``sqrt(spacing(m))`` where ``m`` is the largest absolute entry of
    the given arrays (1.0 if they are all zero).
    """
    magnitude = max(
        (float(np.max(np.abs(np.asarray(a, dtype=float)))) for a in arrays
         if np.size(a) > 0),
        default=0.0,
    )
    if magnitude == 0.0:
        magnitude = 1.0
    return float(np.sqrt(np.spacing(magnitude)))


def check_coordinates(coordinates: str) -> str:
    """Return the canonical coordinate tag or raise InvalidInputError."""
    for tag in COORDINATES:
        if isinstance(coordinates, str) and coordinates.lower() == tag.lower():
            return tag
    raise InvalidInputError(
        f"Unknown coordinates {coordinates!r}; expected one of {COORDINATES}"
    )


def check_format(fmt: str) -> str:
    """Return the canonical polytope format tag or raise InvalidInputError."""
    if fmt not in FORMATS:
        raise InvalidInputError(
            f"Unknown format {fmt!r}; expected one of {FORMATS}"
        )
    return fmt


def check_convention(convention: str) -> str:
    if convention not in CONVENTIONS:
        raise InvalidInputError(
            f"Unknown convention {convention!r}; expected one of {CONVENTIONS}"
        )
    return convention


def point_group_order(lattice_type: str) -> int:
    """Order of the point group of a Bravais lattice type.

    Args:
        lattice_type: Name such as ``'square'`` or ``'cubic'``

    Returns:
        Number of point operators of the lattice
    """
    try:
        return POINT_GROUP_ORDERS[lattice_type]
    except KeyError:
        raise InvalidInputError(
            f"Unknown lattice type {lattice_type!r}; "
            f"expected one of {LATTICE_TYPES}"
        ) from None
