"""
Recursive Unitary Compiler

Classifies an input unitary and dispatches it to the matching
synthesizer:

- one qubit: a single matrix gate (or Z-Y-Z rotations)
- diagonal: the Gray-code phase synthesizer
- two qubits: the KAK decomposer
- anything else: recursive Householder peeling

Peeling works on frames. A frame owns the block of U acting on its
``d`` active wires while the ``p`` wires before them (the prefix) hold
|1...1>. The first half of the block's columns is reduced by Householder
QR; unitarity makes the reduced half a diagonal of phases, which is
deposited into one global phase vector, and the trailing quarter of the
block becomes the next frame with one more prefix wire. Each reflector
``I - 2 u u^dagger``, controlled on the prefix, is emitted as
``G . Z_P . G^dagger`` where ``G`` disentangles ``u`` and ``Z_P`` flips the
sign of the single basis state |1...1, 0...0>.

Every emitted sub-program is uncontrolled, so the global phases the
synthesizers drop combine into one global phase of the whole program.
"""

import enum
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from unitary_synth.circuit.program import CircuitGate, Program
from unitary_synth.config import CompilerConfig
from unitary_synth.errors import ShapeError, UnitarityError
from unitary_synth.synthesis.diagonal import SignMatrixCache, diagonal_gates
from unitary_synth.synthesis.householder import qr_unblocked, reflections
from unitary_synth.synthesis.single_qubit import single_qubit_gates
from unitary_synth.synthesis.state_prep import disentangling_gates
from unitary_synth.synthesis.two_qubit import two_qubit_gates

logger = logging.getLogger(__name__)


class UnitaryKind(enum.Enum):
    """Dispatch class of an input unitary."""
    SINGLE_QUBIT = "single_qubit"
    DIAGONAL = "diagonal"
    TWO_QUBIT = "two_qubit"
    GENERAL = "general"


def _is_diagonal(U: np.ndarray, atol: float) -> bool:
    off = U - np.diag(np.diag(U))
    return float(np.max(np.abs(off), initial=0.0)) <= atol


def validate_unitary(U: np.ndarray, N: int, config: Optional[CompilerConfig] = None) -> np.ndarray:
    """
    Check that ``U`` is a 2^N x 2^N unitary.

    Returns
    -------
    ndarray
        ``U`` as a complex128 array.

    Raises
    ------
    ShapeError
        If ``U`` is not a square matrix of dimension ``2^N``.
    UnitarityError
        If ``max|U U^dagger - I|`` exceeds ``config.atol`` or U holds
        non-finite entries.
    """
    config = config or CompilerConfig()
    if int(N) != N or N < 1:
        raise ShapeError(f"Qubit count must be a positive integer, got {N}.")
    U = np.asarray(U, dtype=np.complex128)
    if U.ndim != 2 or U.shape[0] != U.shape[1]:
        raise ShapeError(f"Expected a square matrix, got shape {U.shape}.")
    dim = U.shape[0]
    if dim & (dim - 1) or dim < 2:
        raise ShapeError(f"Matrix dimension {dim} is not a power of two.")
    if dim != 1 << N:
        raise ShapeError(f"A {N}-qubit unitary has dimension {1 << N}, got {dim}.")
    if not np.all(np.isfinite(U)):
        raise UnitarityError("Matrix has non-finite entries.")
    deviation = np.max(np.abs(U @ U.conj().T - np.eye(dim)))
    if deviation > config.atol:
        raise UnitarityError(
            f"Matrix is not unitary: max|UU^dagger - I| = {deviation:.3e} > {config.atol:.1e}."
        )
    return U


def classify(U: np.ndarray, config: Optional[CompilerConfig] = None) -> UnitaryKind:
    """
    Decide how ``U`` is compiled.

    One qubit wins over diagonal, which wins over two qubits.
    """
    config = config or CompilerConfig()
    dim = U.shape[0]
    if dim == 2:
        return UnitaryKind.SINGLE_QUBIT
    if _is_diagonal(U, config.diagonal_atol):
        return UnitaryKind.DIAGONAL
    if dim == 4:
        return UnitaryKind.TWO_QUBIT
    return UnitaryKind.GENERAL


@dataclass
class DecompositionFrame:
    """
    One level of the peeling recursion.

    Parameters
    ----------
    unitary : ndarray, shape (2^d, 2^d)
        Private copy of the block on the active wires.
    prefix : int
        Number of leading wires fixed to |1>.
    wires : tuple of int
        All wires of the program; the active ones are ``wires[prefix:]``.
    gates : list of CircuitGate
        Reflection gates of this frame, in application order.
    """
    unitary: np.ndarray
    prefix: int
    wires: tuple
    gates: List[CircuitGate] = field(default_factory=list)

    @property
    def active_wires(self) -> tuple:
        return self.wires[self.prefix:]

    @property
    def offset(self) -> int:
        """Basis index of |1...1 (prefix), 0...0 (active)>."""
        d = len(self.wires) - self.prefix
        return ((1 << self.prefix) - 1) << d


class UnitaryCompiler:
    """
    Compiles unitaries into gate programs.

    Holds the configuration and a ``SignMatrixCache`` shared by all
    compilations made through this instance.

    Parameters
    ----------
    config : CompilerConfig, optional
        Numerical settings.
    """

    def __init__(self, config: Optional[CompilerConfig] = None):
        self.config = config or CompilerConfig()
        self.cache = SignMatrixCache()

    def compile(self, U: np.ndarray, N: int, wires: Optional[Sequence[int]] = None) -> Program:
        """
        Compile ``U`` into a program reproducing it up to a global phase.

        Parameters
        ----------
        U : ndarray, shape (2^N, 2^N)
            Unitary to compile.
        N : int
            Number of qubits.
        wires : sequence of int, optional
            Physical wires, default ``range(N)``.

        Returns
        -------
        Program

        Raises
        ------
        ShapeError, UnitarityError
            On invalid input, before any synthesis starts.
        """
        U = validate_unitary(U, N, self.config)
        wires = tuple(range(N)) if wires is None else tuple(int(w) for w in wires)
        if len(wires) != N or len(set(wires)) != N:
            raise ShapeError(f"Expected {N} distinct wires, got {wires}.")

        kind = classify(U, self.config)
        logger.debug("Compiling %d-qubit unitary as %s", N, kind.value)
        if kind is UnitaryKind.SINGLE_QUBIT:
            gates = single_qubit_gates(U, wires[0], self.config)
        elif kind is UnitaryKind.DIAGONAL:
            gates = diagonal_gates(np.diag(U), wires, self.cache)
        elif kind is UnitaryKind.TWO_QUBIT:
            gates = two_qubit_gates(U, wires, self.config, self.cache)
        else:
            gates = self._compile_general(U, wires)

        program = Program(max(wires) + 1, gates)
        logger.debug("Emitted %d gates (%d entangling)", len(program), program.num_entangling())
        return program

    def _compile_general(self, U: np.ndarray, wires: tuple) -> List[CircuitGate]:
        N = len(wires)
        phases = np.ones(1 << N, dtype=np.complex128)
        frames = []
        frame = DecompositionFrame(np.array(U, dtype=np.complex128, copy=True), 0, wires)

        while frame is not None:
            frames.append(frame)
            frame = self._peel(frame, phases)

        gates = diagonal_gates(phases, wires, self.cache)
        for frame in reversed(frames):
            gates += frame.gates
        return gates

    def _peel(self, frame: DecompositionFrame, phases: np.ndarray) -> Optional[DecompositionFrame]:
        """Reduce one frame; return the next one, or None when done."""
        V = frame.unitary
        offset = frame.offset
        if _is_diagonal(V, self.config.diagonal_atol):
            logger.debug("Frame %d is diagonal, stopping", frame.prefix)
            phases[offset:offset + V.shape[0]] = np.diag(V)
            return None

        half = V.shape[0] // 2
        packed, tau = qr_unblocked(V, ncols=half)
        reflection_gates = [self._reflection(frame, u) for _, u in reflections(packed, tau)]
        # H_1 ... H_m V = R, so V = H_1 ... H_m R and H_m runs first
        for gates in reversed(reflection_gates):
            frame.gates += gates
        logger.debug(
            "Frame %d: %d reflections, %d gates",
            frame.prefix, len(reflection_gates), len(frame.gates),
        )

        phases[offset:offset + half] = np.diag(packed[:half, :half])
        rest = np.array(packed[half:, half:], copy=True)
        if half == 1:
            phases[offset + 1] = rest[0, 0]
            return None
        return DecompositionFrame(rest, frame.prefix + 1, frame.wires)

    def _reflection(self, frame: DecompositionFrame, u: np.ndarray) -> List[CircuitGate]:
        """``I - 2 u u^dagger`` on the active wires, controlled on the prefix."""
        G = disentangling_gates(u, frame.active_wires, self.cache)
        flip = np.ones(1 << len(frame.wires), dtype=np.complex128)
        flip[frame.offset] = -1.0
        Z_P = diagonal_gates(flip, frame.wires, self.cache)
        return G + Z_P + [cg.adjoint() for cg in reversed(G)]


def compile(U: np.ndarray, N: int, config: Optional[CompilerConfig] = None) -> Program:
    """
    Compile the N-qubit unitary ``U`` into a gate program.

    The program's matrix equals ``exp(i phi) U`` for some global phase.
    """
    return UnitaryCompiler(config).compile(U, N)
