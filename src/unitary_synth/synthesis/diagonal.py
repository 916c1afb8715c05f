"""
Diagonal Phase Synthesizer

Compiles a diagonal unitary ``diag(exp(i phi_x))`` into Rz rotations,
CNOTs and one trailing phase shift, exact up to a global phase.

Pairing the entries on the least significant wire writes the diagonal
as ``(D' x I) . UCRz(theta)``: a rotation ``Rz(theta_c)`` on the last
wire whose angle depends on the value ``c`` of the other wires, and a
diagonal ``D'`` of half the size on the remaining wires. The rotation
angles are recovered from the second phase differences ``psi`` plus one
boundary value, mapped through the inverse Gray-code sign matrix, and
emitted as a CNOT ladder; ``D'`` is compiled recursively down to a
single phase shift.
"""

import logging
from typing import Dict, List, Optional, Sequence

import numpy as np
from scipy.linalg import solve_triangular

from unitary_synth.circuit.gates import PhaseShiftGate, RzGate, controlled_not
from unitary_synth.circuit.program import CircuitGate, Program
from unitary_synth.config import CompilerConfig
from unitary_synth.errors import ShapeError, UnitarityError
from unitary_synth.synthesis.gray_code import control_sequence, greyencode

logger = logging.getLogger(__name__)

# Rotations below this angle are dropped from ladders
ANGLE_EPS = 1e-14


def fill_psi(d: np.ndarray, buffer: np.ndarray, l: int) -> np.ndarray:
    """
    Fill ``buffer`` with the second phase differences of ``d``.

    ``buffer[i] = arg(d[2i] d[2i+3] / (d[2i+1] d[2i+2]))`` for
    ``0 <= i < l - 1``. The result is invariant under a global phase and
    under a phase on the least significant wire.

    Parameters
    ----------
    d : ndarray, shape (>= 2l,)
        Diagonal entries.
    buffer : ndarray, shape (>= l - 1,)
        Output buffer, overwritten in place.
    l : int
        Number of entry pairs.

    Returns
    -------
    ndarray
        ``buffer``.
    """
    d = np.asarray(d)
    if d.shape[0] < 2 * l or buffer.shape[0] < l - 1:
        raise ShapeError(
            f"fill_psi needs {2 * l} entries and a buffer of {l - 1}, "
            f"got {d.shape[0]} and {buffer.shape[0]}."
        )
    even = d[0:2 * l:2]
    odd = d[1:2 * l:2]
    buffer[:l - 1] = np.angle(even[:-1] * odd[1:] / (odd[:-1] * even[1:]))
    return buffer


def eta_col(n: int, i: int) -> np.ndarray:
    """
    Column ``i`` of the ``n x (n+1)`` forward-difference selection matrix.

    Column ``i`` adds its value to row ``i - 1`` and subtracts it from row
    ``i``, so the matrix maps ``n + 1`` rotation angles to the ``n``
    differences between neighbours.

    Examples
    --------
    >>> [eta_col(4, i).tolist() for i in range(5)]
    [[-1, 0, 0, 0], [1, -1, 0, 0], [0, 1, -1, 0], [0, 0, 1, -1], [0, 0, 0, 1]]
    """
    if not 0 <= i <= n:
        raise ValueError(f"Column index must lie in [0, {n}], got {i}.")
    col = np.zeros(n, dtype=int)
    if i > 0:
        col[i - 1] = 1
    if i < n:
        col[i] = -1
    return col


def sign_matrix(n: int) -> np.ndarray:
    """
    Gray-code sign matrix for a ladder over ``n - 1`` controls.

    ``M[c, j] = (-1)^popcount(c & g(j))``: the sign with which the
    rotation of Gray step ``j`` acts on control value ``c``.
    """
    if n < 1:
        raise ShapeError(f"Sign matrix needs at least one qubit, got {n}.")
    size = 1 << (n - 1)
    m = np.empty((size, size))
    for c in range(size):
        for j in range(size):
            m[c, j] = -1.0 if bin(c & greyencode(j)).count("1") % 2 else 1.0
    return m


def inverse_m(n: int) -> np.ndarray:
    """
    Inverse of ``sign_matrix(n)``, with entries ``+-2^-(n-1)``.

    The sign matrix is a column permutation of a Walsh-Hadamard matrix,
    hence ``M^-1 = M^T / 2^(n-1)``.
    """
    return sign_matrix(n).T / (1 << (n - 1))


class SignMatrixCache:
    """
    Lazily populated map from qubit count to ``inverse_m``.

    Entries are read-only once stored. Two callers racing on the same
    key compute identical matrices and ``setdefault`` keeps one of them.
    """

    def __init__(self):
        self._entries: Dict[int, np.ndarray] = {}

    def inverse_m(self, n: int) -> np.ndarray:
        m = self._entries.get(n)
        if m is None:
            m = inverse_m(n)
            m.setflags(write=False)
            m = self._entries.setdefault(n, m)
        return m

    def __contains__(self, n: int) -> bool:
        return n in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def _inverse_m(n: int, cache: Optional[SignMatrixCache]) -> np.ndarray:
    return cache.inverse_m(n) if cache is not None else inverse_m(n)


def uniformly_controlled_rotation(
    gate_cls,
    angles: np.ndarray,
    controls: Sequence[int],
    target: int,
    cache: Optional[SignMatrixCache] = None,
) -> List[CircuitGate]:
    """
    Rotation on ``target`` whose angle is selected by the control wires.

    Emits ``2^k`` rotations interleaved with ``2^k`` CNOTs in Gray-code
    order. Conjugating Rz or Ry by X negates its angle, so branch ``c``
    accumulates ``sum_j M[c, j] alpha_j``; choosing
    ``alpha = inverse_m(k + 1) angles`` makes that equal ``angles[c]``.

    Parameters
    ----------
    gate_cls : type
        ``RzGate`` or ``RyGate``.
    angles : ndarray, shape (2^k,)
        Angle for each control value, ``controls[0]`` most significant.
    controls : sequence of int
        Control wires (k of them, possibly none).
    target : int
        Target wire.
    cache : SignMatrixCache, optional
        Shared inverse sign matrices.

    Returns
    -------
    list of CircuitGate
    """
    angles = np.asarray(angles, dtype=float)
    k = len(controls)
    if angles.shape != (1 << k,):
        raise ShapeError(f"{k} controls need {1 << k} angles, got {angles.shape}.")
    if k == 0:
        if abs(angles[0]) <= ANGLE_EPS:
            return []
        return [CircuitGate((target,), gate_cls(float(angles[0])))]

    alpha = _inverse_m(k + 1, cache) @ angles
    if np.all(np.abs(alpha) <= ANGLE_EPS):
        return []
    sequence = control_sequence(k)
    cnot = controlled_not()
    gates = []
    for step, a in enumerate(alpha):
        if abs(a) > ANGLE_EPS:
            gates.append(CircuitGate((target,), gate_cls(float(a))))
        gates.append(CircuitGate((controls[sequence[step]], target), cnot))
    return gates


def _integrate_phase_differences(psi: np.ndarray, theta0: float) -> np.ndarray:
    """
    Rotation angles from their neighbour differences and the first angle.

    Solves the lower bidiagonal system whose first row fixes ``theta[0]``
    and whose remaining rows are the forward differences (``eta_col``).
    """
    l = psi.shape[0] + 1
    difference = np.column_stack([eta_col(l - 1, i) for i in range(l)]).reshape(l - 1, l)
    boundary = np.zeros((1, l))
    boundary[0, 0] = 1.0
    system = np.vstack([boundary, difference])
    rhs = np.concatenate([[theta0], psi])
    return solve_triangular(system, rhs, lower=True)


def diagonal_gates(
    d: np.ndarray,
    wires: Sequence[int],
    cache: Optional[SignMatrixCache] = None,
) -> List[CircuitGate]:
    """
    Gates implementing ``diag(d)`` on ``wires`` up to a global phase.

    Parameters
    ----------
    d : ndarray, shape (2^n,)
        Unit-modulus diagonal entries, ``wires[0]`` most significant.
    wires : sequence of int
        The n wires.
    cache : SignMatrixCache, optional
        Shared inverse sign matrices.

    Returns
    -------
    list of CircuitGate
    """
    d = np.asarray(d, dtype=np.complex128)
    n = len(wires)
    if d.shape != (1 << n,):
        raise ShapeError(f"A diagonal on {n} wires needs {1 << n} entries, got {d.shape}.")
    phases = np.angle(d)

    if n == 1:
        phi = phases[1] - phases[0]
        if abs(np.angle(np.exp(1j * phi))) <= ANGLE_EPS:
            return []
        return [CircuitGate((wires[0],), PhaseShiftGate(float(phi)))]

    l = 1 << (n - 1)
    psi = fill_psi(d, np.zeros(l - 1), l)
    theta = _integrate_phase_differences(psi, phases[1] - phases[0])
    # Any theta congruent mod 2pi to the pair difference works with this beta
    beta = phases[0::2] + theta / 2

    gates = uniformly_controlled_rotation(RzGate, theta, wires[:-1], wires[-1], cache)
    return gates + diagonal_gates(np.exp(1j * beta), wires[:-1], cache)


def compile_diagonal(
    U: np.ndarray,
    N: int,
    wires: Optional[Sequence[int]] = None,
    config: Optional[CompilerConfig] = None,
    cache: Optional[SignMatrixCache] = None,
) -> Program:
    """
    Compile a diagonal unitary into a gate program.

    Parameters
    ----------
    U : ndarray
        Diagonal unitary of shape (2^N, 2^N), or its diagonal as a
        vector of length 2^N.
    N : int
        Number of qubits.
    wires : sequence of int, optional
        Wires to act on, default ``range(N)``. The program width is
        ``max(wires) + 1``.
    config : CompilerConfig, optional
        Tolerances.
    cache : SignMatrixCache, optional
        Shared inverse sign matrices.

    Returns
    -------
    Program
        Reproduces ``U`` up to one global phase.

    Raises
    ------
    ShapeError
        If ``U`` has the wrong shape or is not diagonal.
    UnitarityError
        If a diagonal entry is not of unit modulus.
    """
    config = config or CompilerConfig()
    U = np.asarray(U, dtype=np.complex128)
    dim = 1 << N
    if U.ndim == 2:
        if U.shape != (dim, dim):
            raise ShapeError(f"Expected a ({dim}, {dim}) matrix, got {U.shape}.")
        d = np.diag(U).copy()
        if np.max(np.abs(U - np.diag(d)), initial=0.0) > config.diagonal_atol:
            raise ShapeError("Matrix is not diagonal within tolerance.")
    elif U.ndim == 1:
        if U.shape != (dim,):
            raise ShapeError(f"Expected {dim} diagonal entries, got {U.shape}.")
        d = U.copy()
    else:
        raise ShapeError(f"Expected a matrix or a vector, got {U.ndim} dimensions.")

    if np.max(np.abs(np.abs(d) - 1.0)) > config.atol:
        raise UnitarityError("Diagonal entries must have unit modulus.")

    wires = tuple(range(N)) if wires is None else tuple(wires)
    if len(wires) != N:
        raise ShapeError(f"Expected {N} wires, got {len(wires)}.")

    gates = diagonal_gates(d, wires, cache)
    logger.debug("Diagonal on %d qubits compiled to %d gates", N, len(gates))
    return Program(max(wires) + 1, gates)
