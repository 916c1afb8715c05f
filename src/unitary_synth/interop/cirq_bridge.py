"""
Program -> Cirq Bridge

Exports compiled programs as ``cirq.Circuit`` objects so they can be
simulated, optimised or sent to hardware with the Cirq toolchain.

Wire ``w`` maps to ``cirq.LineQubit(w)``; both libraries treat the first
qubit as the most significant bit, so ``cirq.unitary(to_cirq(p))``
equals ``p.matrix()``.

Requires: pip install unitary-synth[cirq]
"""

import logging
from typing import Optional, Sequence

import numpy as np

try:
    import cirq
    CIRQ_AVAILABLE = True
except ImportError:
    cirq = None
    CIRQ_AVAILABLE = False

from unitary_synth.circuit import gates as g
from unitary_synth.circuit.program import Program

logger = logging.getLogger(__name__)


def _require_cirq():
    if not CIRQ_AVAILABLE:
        raise ImportError(
            "Cirq is required for circuit export. "
            "Install with: pip install unitary-synth[cirq]"
        )


def to_cirq_gate(gate: g.Gate):
    """
    Cirq equivalent of one gate.

    Fixed gates and axis rotations map to their native Cirq gates;
    anything else becomes a ``cirq.MatrixGate``.
    """
    _require_cirq()
    fixed = {
        g.XGate: cirq.X,
        g.YGate: cirq.Y,
        g.ZGate: cirq.Z,
        g.HadamardGate: cirq.H,
        g.SGate: cirq.S,
        g.SdagGate: cirq.S ** -1,
        g.TGate: cirq.T,
        g.TdagGate: cirq.T ** -1,
        g.SwapGate: cirq.SWAP,
    }
    if type(gate) in fixed:
        return fixed[type(gate)]
    if isinstance(gate, g.RxGate):
        return cirq.rx(gate.theta)
    if isinstance(gate, g.RyGate):
        return cirq.ry(gate.theta)
    if isinstance(gate, g.RzGate):
        return cirq.rz(gate.theta)
    if isinstance(gate, g.PhaseShiftGate):
        return cirq.ZPowGate(exponent=gate.phi / np.pi)
    if isinstance(gate, g.ControlledGate):
        if isinstance(gate.target, g.XGate) and gate.num_controls == 1:
            return cirq.CNOT
        return cirq.ControlledGate(to_cirq_gate(gate.target), num_controls=gate.num_controls)
    return cirq.MatrixGate(gate.matrix())


def to_cirq(program: Program, qubits: Optional[Sequence] = None):
    """
    Convert a program into a Cirq circuit.

    Parameters
    ----------
    program : Program
        Compiled program.
    qubits : sequence of cirq.Qid, optional
        Qubit for each wire, default ``cirq.LineQubit.range(num_wires)``.

    Returns
    -------
    cirq.Circuit
        One operation per gate, in program order.

    Raises
    ------
    ImportError
        If cirq is not installed.
    """
    _require_cirq()
    if qubits is None:
        qubits = cirq.LineQubit.range(program.num_wires)
    if len(qubits) != program.num_wires:
        raise ValueError(
            f"Program has {program.num_wires} wires but {len(qubits)} qubits were given."
        )

    circuit = cirq.Circuit()
    for cg in program:
        circuit.append(
            to_cirq_gate(cg.gate).on(*(qubits[w] for w in cg.wires)),
            strategy=cirq.InsertStrategy.EARLIEST,
        )
    logger.debug("Exported %d gates to a %d-moment circuit", len(program), len(circuit))
    return circuit
