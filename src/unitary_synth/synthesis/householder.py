"""
Householder QR Factorizer

Unblocked, column-by-column Householder QR of a square complex matrix,
LAPACK-style packed: R on and above the diagonal, reflector tails below
it with an implicit leading 1, and one scale ``tau`` per column.

Reflectors are Hermitian, ``H = I - tau v v^H`` with ``tau = 2/|v|^2``, so
each is its own inverse and equals ``I - 2 u u^H`` for the unit vector
``u = v/|v|``. The compiler reinterprets every reflector as a physical
operation: prepare ``u``, reflect about |0...0>, unprepare.
"""

from typing import Iterator, Optional, Tuple

import numpy as np

from unitary_synth.errors import NumericOverflowError, ShapeError

# Smallest reflector pivot magnitude accepted before normalisation
_TINY = np.finfo(float).tiny


def qr_unblocked(A: np.ndarray, ncols: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    In-place Householder QR of the first ``ncols`` columns of ``A``.

    Parameters
    ----------
    A : ndarray, shape (m, m), complex128
        Matrix to factor; overwritten with the packed result.
    ncols : int, optional
        Number of leading columns to reduce (default: all).

    Returns
    -------
    A : ndarray, shape (m, m)
        Packed factorization (the same array object).
    tau : ndarray of float, shape (ncols,)
        Reflector scales; 0 where a column needed no reflection.

    Raises
    ------
    ShapeError
        If ``A`` is not square, or ``ncols`` is out of range.
    TypeError
        If ``A`` is not a complex128 array (in-place update impossible).
    NumericOverflowError
        If a reflector cannot be normalised in floating point.
    """
    if not isinstance(A, np.ndarray) or A.dtype != np.complex128:
        raise TypeError("qr_unblocked works in place on a complex128 ndarray.")
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ShapeError(f"Expected a square matrix, got shape {A.shape}.")
    m = A.shape[0]
    ncols = m if ncols is None else int(ncols)
    if not 0 <= ncols <= m:
        raise ShapeError(f"ncols must lie in [0, {m}], got {ncols}.")

    tau = np.zeros(ncols)
    for i in range(min(ncols, m - 1)):
        x = A[i:, i]
        tail_norm = np.linalg.norm(x[1:])
        if tail_norm == 0.0:
            continue

        alpha = x[0]
        xnorm = np.hypot(abs(alpha), tail_norm)
        phase = alpha / abs(alpha) if abs(alpha) > 0 else 1.0
        pivot = alpha + phase * xnorm
        if not np.isfinite(pivot) or abs(pivot) < _TINY:
            raise NumericOverflowError(
                f"Householder pivot of column {i} is not representable ({pivot})."
            )

        v = x / pivot
        v[0] = 1.0
        vnorm2 = np.real(np.vdot(v, v))
        if not np.isfinite(vnorm2):
            raise NumericOverflowError(f"Householder vector of column {i} overflowed.")
        t = 2.0 / vnorm2

        block = A[i:, i:]
        block -= t * np.outer(v, v.conj() @ block)
        A[i + 1:, i] = v[1:]
        tau[i] = t
    return A, tau


def householder_vector(packed: np.ndarray, tau: np.ndarray, i: int) -> Optional[np.ndarray]:
    """
    Unit reflector vector of column ``i``, embedded in the full dimension.

    Returns
    -------
    ndarray or None
        ``u`` with ``H_i = I - 2 u u^H`` (zero above index ``i``), or None
        when column ``i`` needed no reflection.
    """
    if tau[i] == 0.0:
        return None
    m = packed.shape[0]
    u = np.zeros(m, dtype=np.complex128)
    u[i] = 1.0
    u[i + 1:] = packed[i + 1:, i]
    norm = np.linalg.norm(u)
    if not np.isfinite(norm) or norm < _TINY:
        raise NumericOverflowError(f"Reflector {i} has no normalisable direction.")
    return u / norm


def reflector_matrix(u: np.ndarray) -> np.ndarray:
    """Householder reflection ``I - 2 u u^H`` for a unit vector ``u``."""
    u = np.asarray(u, dtype=np.complex128)
    return np.eye(u.shape[0], dtype=np.complex128) - 2.0 * np.outer(u, u.conj())


def reflections(packed: np.ndarray, tau: np.ndarray) -> Iterator[Tuple[int, np.ndarray]]:
    """Yield ``(i, u_i)`` for every non-trivial reflector, in column order."""
    for i in range(tau.shape[0]):
        u = householder_vector(packed, tau, i)
        if u is not None:
            yield i, u
