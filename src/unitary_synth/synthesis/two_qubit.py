"""
Two-Qubit (SO4) Decomposer

In the magic basis ``E`` every local gate ``A (x) B`` with A, B in SU(2)
becomes a real special orthogonal matrix, and every Bell-diagonal gate
becomes diagonal. A two-qubit unitary therefore factors as

    U ~ (A1 (x) B1) . E diag(k) E^dagger . (A2 (x) B2)

by diagonalising the symmetric unitary ``gamma = u u^T`` (``u = E^dagger U E``)
with a real orthogonal eigenbasis. The Bell-diagonal middle factor is
emitted as ``CNOT . (H (x) I) . diag . (H (x) I) . CNOT``.

The block extraction of A and B follows the appendix of Coffey &
Deiotte, https://link.springer.com/article/10.1007/s11128-009-0156-3
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from unitary_synth.circuit.gates import HadamardGate, controlled_not
from unitary_synth.circuit.program import CircuitGate, Program
from unitary_synth.config import MAGIC_BASIS, CompilerConfig
from unitary_synth.errors import DegenerateDecompositionError, ShapeError
from unitary_synth.synthesis.diagonal import SignMatrixCache, diagonal_gates
from unitary_synth.synthesis.single_qubit import single_qubit_gates

logger = logging.getLogger(__name__)

E = MAGIC_BASIS
Edag = MAGIC_BASIS.conj().T

# Tolerance on the imaginary residue of the recovered orthogonal factor
_REAL_ATOL = 1e-6


def su2su2_to_tensor_products(U: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split ``U = A (x) B`` in SU(2) x SU(2) into A and B.

    Writing ``A = [[a1, a2], [-a2*, a1*]]`` the 2x2 blocks of U are
    ``a1 B, a2 B, -a2* B, a1* B``, so ``C1 C4^dagger = a1^2 I`` and
    ``C2 C3^dagger = -a2^2 I``; the relative sign comes from
    ``C1 C2^dagger = a1 a2* I``.
    """
    C1 = U[0:2, 0:2]
    C2 = U[0:2, 2:4]
    C3 = U[2:4, 0:2]
    C4 = U[2:4, 2:4]

    a1 = np.sqrt(complex((C1 @ C4.conj().T)[0, 0]))
    a2 = np.sqrt(complex(-(C2 @ C3.conj().T)[0, 0]))
    C12 = C1 @ C2.conj().T
    if not np.isclose(a1 * np.conj(a2), C12[0, 0]):
        a2 = -a2

    A = np.array([[a1, a2], [-np.conj(a2), np.conj(a1)]], dtype=np.complex128)
    # Divide by the larger coefficient of A
    B = C1 / a1 if abs(a1) >= abs(a2) else C2 / a2
    return A, B


def decompose_so4(Q: np.ndarray, atol: float = 1e-8) -> Tuple[np.ndarray, np.ndarray]:
    """
    Factor a special orthogonal 4x4 matrix into two single-qubit unitaries.

    Parameters
    ----------
    Q : ndarray, shape (4, 4)
        Real orthogonal matrix with determinant +1.
    atol : float
        Tolerance of the orthogonality and realness checks.

    Returns
    -------
    A, B : ndarray, shape (2, 2)
        SU(2) matrices with ``kron(A, B) = E Q E^dagger``.

    Raises
    ------
    ValueError
        If ``Q`` is not a real special orthogonal 4x4 matrix; a
        determinant of -1 must be fixed by the caller first.
    """
    Q = np.asarray(Q)
    if Q.shape != (4, 4):
        raise ShapeError(f"Expected a (4, 4) matrix, got {Q.shape}.")
    if np.iscomplexobj(Q):
        if np.max(np.abs(Q.imag)) > atol:
            raise ValueError("SO(4) decomposition needs a real matrix.")
        Q = Q.real
    if not np.allclose(Q @ Q.T, np.eye(4), atol=atol):
        raise ValueError("Matrix is not orthogonal.")
    if np.linalg.det(Q) < 0:
        raise ValueError("Matrix has determinant -1; fix its parity before decomposing.")
    return su2su2_to_tensor_products(E @ Q @ Edag)


def _real_eigenbasis(gamma: np.ndarray, config: CompilerConfig) -> Tuple[np.ndarray, np.ndarray]:
    """
    Real orthogonal P with ``P^T gamma P`` diagonal, for symmetric unitary gamma.

    Re(gamma) and Im(gamma) commute, so a generic real combination of the
    two has their common eigenvectors. The first combination tried is
    ``Re + Im``; further ones come from a generator seeded with
    ``config.tiebreak_seed``. Columns are ordered by (rounded eigenphase,
    index) and the last column is negated if needed so that det P = +1.
    """
    rng = np.random.default_rng(config.tiebreak_seed)
    for attempt in range(config.max_tiebreak_attempts):
        c1, c2 = (1.0, 1.0) if attempt == 0 else rng.normal(size=2)
        _, P = np.linalg.eigh(c1 * gamma.real + c2 * gamma.imag)
        D = P.T @ gamma @ P
        if np.max(np.abs(D - np.diag(np.diag(D)))) < config.atol:
            if attempt > 0:
                logger.warning(
                    "Two-qubit eigenbasis resolved after %d tie-break attempts", attempt + 1
                )
            break
    else:
        raise DegenerateDecompositionError(
            f"Could not diagonalise gamma(U) with a real eigenbasis in "
            f"{config.max_tiebreak_attempts} attempts."
        )

    evals = np.diag(D)
    phases = np.round(np.angle(evals), config.phase_round_decimals)
    order = np.lexsort((np.arange(4), phases))
    P = P[:, order]
    evals = evals[order]
    if np.linalg.det(P) < 0:
        P[:, -1] = -P[:, -1]
    return P, evals


@dataclass
class KAKDecomposition:
    """
    ``U ~ kron(a1, b1) . E diag(k) E^dagger . kron(a2, b2)`` up to global phase.

    ``a2, b2`` act first, ``a1, b1`` last; ``k`` holds the four
    Bell-diagonal phases in magic-basis order.
    """
    a1: np.ndarray
    b1: np.ndarray
    k: np.ndarray
    a2: np.ndarray
    b2: np.ndarray

    def matrix(self) -> np.ndarray:
        middle = E @ np.diag(self.k) @ Edag
        return np.kron(self.a1, self.b1) @ middle @ np.kron(self.a2, self.b2)


def kak_decompose(U: np.ndarray, config: Optional[CompilerConfig] = None) -> KAKDecomposition:
    """
    Local-entangling-local factorization of a two-qubit unitary.

    Parameters
    ----------
    U : ndarray, shape (4, 4)
        Unitary matrix.
    config : CompilerConfig, optional
        Tolerances and tie-break settings.

    Returns
    -------
    KAKDecomposition

    Raises
    ------
    DegenerateDecompositionError
        If no real eigenbasis is found or the residual factor is not real.
    """
    config = config or CompilerConfig()
    U = np.asarray(U, dtype=np.complex128)
    if U.shape != (4, 4):
        raise ShapeError(f"Expected a (4, 4) matrix, got {U.shape}.")

    # Normalise to SU(4)
    U = U * np.exp(-1j * np.angle(np.linalg.det(U)) / 4)
    u = Edag @ U @ E
    gamma = u @ u.T

    P, evals = _real_eigenbasis(gamma, config)
    k = np.sqrt(evals)

    # u = P diag(k) O with O orthogonal and, being unitary too, real
    O = np.diag(1.0 / k) @ P.T @ u
    if np.max(np.abs(O.imag)) > _REAL_ATOL:
        raise DegenerateDecompositionError(
            "Residual factor of the two-qubit decomposition is not real."
        )
    O = O.real
    if np.linalg.det(O) < 0:
        k[0] = -k[0]
        O[0, :] = -O[0, :]

    a1, b1 = decompose_so4(P, atol=_REAL_ATOL)
    a2, b2 = decompose_so4(O, atol=_REAL_ATOL)
    return KAKDecomposition(a1=a1, b1=b1, k=k, a2=a2, b2=b2)


def bell_diagonal_gates(
    k: np.ndarray,
    wires: Sequence[int],
    cache: Optional[SignMatrixCache] = None,
) -> List[CircuitGate]:
    """
    Gates for ``E diag(k) E^dagger`` on two wires.

    ``CNOT . (H (x) I)`` maps |00>, |01>, |10>, |11> to the Bell states
    Phi+, Psi+, Phi-, Psi-, i.e. to magic-basis columns 0, 2, 1, 3.
    """
    w0, w1 = wires
    cnot = CircuitGate((w0, w1), controlled_not())
    hadamard = CircuitGate((w0,), HadamardGate())
    middle = diagonal_gates(np.array([k[0], k[2], k[1], k[3]]), (w0, w1), cache)
    return [cnot, hadamard] + middle + [hadamard, cnot]


def two_qubit_gates(
    U: np.ndarray,
    wires: Sequence[int],
    config: Optional[CompilerConfig] = None,
    cache: Optional[SignMatrixCache] = None,
) -> List[CircuitGate]:
    """Gates reproducing the two-qubit unitary ``U`` up to global phase."""
    config = config or CompilerConfig()
    w0, w1 = wires
    kak = kak_decompose(U, config)
    gates = single_qubit_gates(kak.a2, w0, config) + single_qubit_gates(kak.b2, w1, config)
    gates += bell_diagonal_gates(kak.k, (w0, w1), cache)
    gates += single_qubit_gates(kak.a1, w0, config) + single_qubit_gates(kak.b1, w1, config)
    logger.debug("Two-qubit unitary compiled to %d gates", len(gates))
    return gates


def compile_two_qubit(
    U: np.ndarray,
    wires: Sequence[int] = (0, 1),
    config: Optional[CompilerConfig] = None,
    cache: Optional[SignMatrixCache] = None,
) -> Program:
    """Compile a 4x4 unitary into a gate program on ``wires``."""
    wires = tuple(wires)
    if len(wires) != 2:
        raise ShapeError(f"Expected 2 wires, got {len(wires)}.")
    return Program(max(wires) + 1, two_qubit_gates(U, wires, config, cache))
