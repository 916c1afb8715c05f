"""
State-Preparation Synthesizer

Disentangles an N-qubit amplitude vector down to |0...0>, one wire per
level: at level ``j`` a uniformly controlled Ry on wire ``N - j`` rotates
every amplitude pair onto its even member, halving the support of the
state. A diagonal phase-removal step comes first for complex input,
and one trailing Ry on wire 0 resolves the last pair. The adjoint
program prepares the state from |0...0>.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from unitary_synth.circuit.gates import RyGate
from unitary_synth.circuit.program import CircuitGate, Program
from unitary_synth.errors import ShapeError
from unitary_synth.synthesis.diagonal import (
    ANGLE_EPS,
    SignMatrixCache,
    diagonal_gates,
    uniformly_controlled_rotation,
)

logger = logging.getLogger(__name__)

# Amplitudes below this magnitude carry no meaningful phase
_AMPLITUDE_EPS = 1e-14


def _stateprep_gates(
    amplitudes: np.ndarray,
    N: int,
    level: int,
    wires: Sequence[int],
    cache: Optional[SignMatrixCache],
) -> List[CircuitGate]:
    a = np.abs(np.asarray(amplitudes))
    expected = 1 << (N - level + 1)
    if a.shape != (expected,):
        raise ShapeError(
            f"Level {level} of a {N}-qubit state needs {expected} amplitudes, got {a.shape}."
        )
    theta = -2.0 * np.arctan2(a[1::2], a[0::2])
    split = N - level
    return uniformly_controlled_rotation(
        RyGate, theta, list(wires[:split]), wires[split], cache
    )


def stateprep(
    amplitudes: np.ndarray,
    N: int,
    level: int,
    wires: Optional[Sequence[int]] = None,
    cache: Optional[SignMatrixCache] = None,
) -> Program:
    """
    One disentangling layer of an N-qubit state.

    Parameters
    ----------
    amplitudes : ndarray, shape (2^(N - level + 1),)
        The state sampled with stride ``2^(level - 1)``; only magnitudes
        are used, so phases must already be removed.
    N : int
        Number of qubits.
    level : int
        Layer index in ``[1, N)``; layer ``level`` targets wire
        ``N - level`` and is controlled by the wires before it.
    wires : sequence of int, optional
        Physical wires, default ``range(N)``.
    cache : SignMatrixCache, optional
        Shared inverse sign matrices.

    Returns
    -------
    Program
        A uniformly controlled Ry ladder mapping every pair
        ``(a[2c], a[2c+1])`` to ``(|(a[2c], a[2c+1])|, 0)``.
    """
    if not 1 <= level < N:
        raise ValueError(f"level must lie in [1, {N}), got {level}.")
    wires = tuple(range(N)) if wires is None else tuple(wires)
    if len(wires) != N:
        raise ShapeError(f"Expected {N} wires, got {len(wires)}.")
    gates = _stateprep_gates(amplitudes, N, level, wires, cache)
    return Program(max(wires) + 1, gates)


def disentangling_gates(
    psi: np.ndarray,
    wires: Sequence[int],
    cache: Optional[SignMatrixCache] = None,
) -> List[CircuitGate]:
    """
    Gates ``G`` with ``G psi`` proportional to |0...0> on ``wires``.

    Parameters
    ----------
    psi : ndarray, shape (2^n,)
        Non-zero state vector, ``wires[0]`` most significant.
    wires : sequence of int
        The n wires holding the state.
    cache : SignMatrixCache, optional
        Shared inverse sign matrices.

    Returns
    -------
    list of CircuitGate
    """
    psi = np.asarray(psi, dtype=np.complex128)
    n = len(wires)
    if psi.shape != (1 << n,):
        raise ShapeError(f"A state on {n} wires needs {1 << n} amplitudes, got {psi.shape}.")
    norm = np.linalg.norm(psi)
    if not np.isfinite(norm) or norm == 0.0:
        raise ValueError("Cannot disentangle a zero or non-finite state.")
    psi = psi / norm

    magnitudes = np.abs(psi)
    phases = np.where(magnitudes > _AMPLITUDE_EPS, np.angle(psi), 0.0)
    gates = []
    if np.ptp(phases) > ANGLE_EPS:
        gates += diagonal_gates(np.exp(-1j * phases), wires, cache)

    vec = magnitudes
    for level in range(1, n):
        gates += _stateprep_gates(vec, n, level, wires, cache)
        vec = np.hypot(vec[0::2], vec[1::2])

    theta = -2.0 * np.arctan2(vec[1], vec[0])
    if abs(theta) > ANGLE_EPS:
        gates.append(CircuitGate((wires[0],), RyGate(float(theta))))
    logger.debug("Disentangled %d-qubit state with %d gates", n, len(gates))
    return gates


def disentangle_state(
    psi: np.ndarray,
    N: int,
    wires: Optional[Sequence[int]] = None,
    cache: Optional[SignMatrixCache] = None,
) -> Program:
    """Program mapping ``psi`` to |0...0> up to a global phase."""
    wires = tuple(range(N)) if wires is None else tuple(wires)
    if len(wires) != N:
        raise ShapeError(f"Expected {N} wires, got {len(wires)}.")
    return Program(max(wires) + 1, disentangling_gates(psi, wires, cache))


def prepare_state(
    psi: np.ndarray,
    N: int,
    wires: Optional[Sequence[int]] = None,
    cache: Optional[SignMatrixCache] = None,
) -> Program:
    """
    Amplitude encoding: program mapping |0...0> to ``psi / |psi|``.

    Exact up to a global phase; the adjoint of ``disentangle_state``.
    """
    return disentangle_state(psi, N, wires, cache).adjoint()
