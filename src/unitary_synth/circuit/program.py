"""
Gate Programs

Ordered gate sequences over a fixed number of wires, and the tensor
contraction engine that applies them to state vectors and density
matrices.

Wire 0 is the most significant bit of a basis index, so a program on
two wires applying ``A`` to wire 0 and ``B`` to wire 1 has the matrix
``kron(A, B)``.
"""

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

import numpy as np

from unitary_synth.circuit.gates import Gate


def kron_full(ops: List[np.ndarray]) -> np.ndarray:
    """
    Compute Kronecker product of a list of operators.

    Parameters
    ----------
    ops : list of ndarray
        Operators to combine via tensor product, wire 0 first.

    Returns
    -------
    ndarray
        Full Hilbert space operator.
    """
    result = ops[0]
    for op in ops[1:]:
        result = np.kron(result, op)
    return result


@dataclass(frozen=True)
class CircuitGate:
    """
    A gate placed on specific wires.

    Parameters
    ----------
    wires : tuple of int
        Wires the gate acts on, in the gate's own wire order (for a
        controlled gate the controls come first).
    gate : Gate
        The gate itself.
    """
    wires: Tuple[int, ...]
    gate: Gate

    def __post_init__(self):
        wires = tuple(int(w) for w in self.wires)
        if len(wires) != self.gate.num_wires:
            raise ValueError(
                f"{self.gate.name} acts on {self.gate.num_wires} wire(s), "
                f"got wires {wires}."
            )
        if len(set(wires)) != len(wires):
            raise ValueError(f"Wires must be distinct, got {wires}.")
        object.__setattr__(self, "wires", wires)

    def adjoint(self) -> "CircuitGate":
        return CircuitGate(self.wires, self.gate.adjoint())


def _apply_matrix(m: np.ndarray, wires: Sequence[int], state: np.ndarray, num_wires: int) -> np.ndarray:
    """Contract ``m`` into the wire axes of a batched state of shape (2^n, batch)."""
    k = len(wires)
    batch = state.shape[1]
    psi = state.reshape((2,) * num_wires + (batch,))
    mt = m.reshape((2,) * (2 * k))
    out = np.tensordot(mt, psi, axes=(list(range(k, 2 * k)), list(wires)))
    out = np.moveaxis(out, list(range(k)), list(wires))
    return out.reshape(2 ** num_wires, batch)


def embed_gate(gate: np.ndarray, wires: Sequence[int], n_qubits: int) -> np.ndarray:
    """
    Embed a k-qubit gate into the full Hilbert space.

    Parameters
    ----------
    gate : ndarray, shape (2^k, 2^k)
        Gate matrix, in the order of ``wires``.
    wires : sequence of int
        Wires the gate acts on; need not be adjacent.
    n_qubits : int
        Total number of qubits.

    Returns
    -------
    ndarray, shape (2^n, 2^n)
        Full Hilbert space gate.
    """
    identity = np.eye(2 ** n_qubits, dtype=np.complex128)
    return _apply_matrix(np.asarray(gate, dtype=np.complex128), wires, identity, n_qubits)


class Program:
    """
    Immutable ordered sequence of ``CircuitGate`` objects on ``num_wires`` wires.

    The first gate is applied first. Programs are produced by the
    compiler and handed to the caller; they support iteration,
    concatenation, adjoints, and application to states.

    Parameters
    ----------
    num_wires : int
        Number of wires of the circuit.
    gates : iterable of CircuitGate
        Gates in application order.
    """

    def __init__(self, num_wires: int, gates: Iterable[CircuitGate] = ()):
        if num_wires < 1:
            raise ValueError("A program needs at least one wire.")
        self.num_wires = int(num_wires)
        self._gates = tuple(gates)
        for cg in self._gates:
            if max(cg.wires) >= self.num_wires or min(cg.wires) < 0:
                raise ValueError(
                    f"Gate {cg.gate.name} on wires {cg.wires} lies outside "
                    f"a {self.num_wires}-wire program."
                )

    @property
    def gates(self) -> Tuple[CircuitGate, ...]:
        return self._gates

    def __len__(self) -> int:
        return len(self._gates)

    def __iter__(self):
        return iter(self._gates)

    def __getitem__(self, index):
        return self._gates[index]

    def __add__(self, other: "Program") -> "Program":
        if not isinstance(other, Program):
            return NotImplemented
        if other.num_wires != self.num_wires:
            raise ValueError("Cannot concatenate programs of different width.")
        return Program(self.num_wires, self._gates + other._gates)

    def __repr__(self) -> str:
        return f"Program(num_wires={self.num_wires}, gates={len(self._gates)})"

    def adjoint(self) -> "Program":
        """Return the inverse program (reversed order, adjoint gates)."""
        return Program(self.num_wires, [cg.adjoint() for cg in reversed(self._gates)])

    def gate_counts(self) -> dict:
        """Count gates by name, e.g. ``{"CXGate": 12, "RzGate": 14}``."""
        counts = {}
        for cg in self._gates:
            counts[cg.gate.name] = counts.get(cg.gate.name, 0) + 1
        return counts

    def num_entangling(self) -> int:
        """Number of gates acting on more than one wire."""
        return sum(1 for cg in self._gates if len(cg.wires) > 1)

    def apply(self, state: np.ndarray) -> np.ndarray:
        """
        Apply the program to a state vector or density matrix.

        Parameters
        ----------
        state : ndarray
            State vector of shape (2^n,) or density matrix of shape
            (2^n, 2^n).

        Returns
        -------
        ndarray
            ``U psi`` for a vector, ``U rho U^dagger`` for a matrix.
        """
        state = np.asarray(state, dtype=np.complex128)
        dim = 2 ** self.num_wires
        if state.ndim == 1:
            if state.shape != (dim,):
                raise ValueError(f"State vector must have length {dim}, got {state.shape}.")
            return self._apply_columns(state[:, None])[:, 0]
        if state.ndim == 2:
            if state.shape != (dim, dim):
                raise ValueError(f"Density matrix must have shape ({dim}, {dim}), got {state.shape}.")
            left = self._apply_columns(state)
            return self._apply_columns(left.conj().T).conj().T
        raise ValueError("State must be a vector or a density matrix.")

    def _apply_columns(self, columns: np.ndarray) -> np.ndarray:
        out = np.array(columns, dtype=np.complex128, copy=True)
        for cg in self._gates:
            out = _apply_matrix(cg.gate.matrix(), cg.wires, out, self.num_wires)
        return out

    def matrix(self) -> np.ndarray:
        """Dense unitary of the whole program."""
        return self._apply_columns(np.eye(2 ** self.num_wires, dtype=np.complex128))


def apply(program: Program, state: np.ndarray) -> np.ndarray:
    """Apply ``program`` to a state vector or density matrix."""
    return program.apply(state)


def program_matrix(program: Program) -> np.ndarray:
    """Dense unitary implemented by ``program``."""
    return program.matrix()


def phase_aligned_error(actual: np.ndarray, target: np.ndarray) -> float:
    """
    Relative Frobenius error between two unitaries after removing the
    best global phase.

    Parameters
    ----------
    actual, target : ndarray
        Matrices of identical shape.

    Returns
    -------
    float
        ``min_phi ||e^{i phi} actual - target||_F / ||target||_F``.
    """
    actual = np.asarray(actual, dtype=np.complex128)
    target = np.asarray(target, dtype=np.complex128)
    overlap = np.vdot(actual, target)
    phase = overlap / abs(overlap) if abs(overlap) > 0 else 1.0
    return float(np.linalg.norm(phase * actual - target) / np.linalg.norm(target))
