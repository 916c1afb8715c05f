"""
Compilation Errors

Every failure of the compiler is surfaced immediately to the caller;
none of these are retried internally and no partial program is
returned alongside them.
"""


class CompilationError(Exception):
    """Base class for all unitary compilation failures."""


class ShapeError(CompilationError, ValueError):
    """Input is not a square matrix whose dimension is a power of two."""


class UnitarityError(CompilationError, ValueError):
    """Input deviates from unitarity by more than the configured tolerance."""


class DegenerateDecompositionError(CompilationError, ArithmeticError):
    """The two-qubit eigenbasis could not be resolved by the tie-break."""


class NumericOverflowError(CompilationError, ArithmeticError):
    """A Householder reflector norm underflowed or overflowed."""
