"""
Exceptions raised by bz-reduce.

Invalid input fails immediately. Geometric inconsistencies (a zone whose
volume disagrees with the lattice determinant) are fatal and are never
approximated away.
"""


class BZReduceError(Exception):
    """Base class for all bz-reduce errors."""


class InvalidInputError(BZReduceError, ValueError):
    """Raised for malformed arguments: shapes, counts, unknown tags."""


class GeometryError(BZReduceError, RuntimeError):
    """Raised when a constructed polytope is inconsistent with its lattice."""


class FoldError(GeometryError):
    """Raised when a point cannot be mapped into the irreducible zone."""
