"""
Tests for exporting compiled programs to Cirq.

Skipped when cirq is not installed.
"""

import numpy as np
import pytest
from scipy.stats import unitary_group

cirq = pytest.importorskip("cirq")

from unitary_synth.circuit.gates import (  # noqa: E402
    ControlledGate,
    HadamardGate,
    PhaseShiftGate,
    RotationGate,
    RyGate,
    SdagGate,
    SwapGate,
    TGate,
    controlled_not,
)
from unitary_synth.circuit.program import CircuitGate, Program  # noqa: E402
from unitary_synth.interop.cirq_bridge import to_cirq, to_cirq_gate  # noqa: E402
from unitary_synth.synthesis import compile  # noqa: E402


def _unitary(program):
    qubits = cirq.LineQubit.range(program.num_wires)
    return to_cirq(program, qubits).unitary(qubit_order=qubits)


@pytest.mark.parametrize("gate", [
    HadamardGate(), SdagGate(), TGate(), RyGate(0.7), PhaseShiftGate(1.3),
    RotationGate((0.2, -0.4, 0.9)), SwapGate(), controlled_not(),
    ControlledGate(RyGate(0.5), 2),
])
def test_gate_matrices_agree(gate):
    np.testing.assert_allclose(cirq.unitary(to_cirq_gate(gate)), gate.matrix(), atol=1e-10)


def test_cnot_maps_to_native():
    assert to_cirq_gate(controlled_not()) == cirq.CNOT


def test_wire_order_matches():
    program = Program(2, [CircuitGate((1, 0), controlled_not())])
    np.testing.assert_allclose(_unitary(program), program.matrix(), atol=1e-12)


@pytest.mark.parametrize("n", [1, 2, 3])
def test_compiled_program_roundtrip(n):
    U = unitary_group.rvs(1 << n, random_state=n)
    program = compile(U, n)
    np.testing.assert_allclose(_unitary(program), program.matrix(), atol=1e-9)


def test_qubit_count_mismatch():
    with pytest.raises(ValueError):
        to_cirq(Program(2), cirq.LineQubit.range(3))
