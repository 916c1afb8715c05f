"""
Circuit Layer

Gate catalogue, gate programs and the state-vector / density-matrix
apply engine.
"""

from unitary_synth.circuit.gates import (
    Gate as Gate,
    MatrixGate as MatrixGate,
    ControlledGate as ControlledGate,
    controlled_not as controlled_not,
)
from unitary_synth.circuit.program import (
    CircuitGate as CircuitGate,
    Program as Program,
    apply as apply,
    program_matrix as program_matrix,
    phase_aligned_error as phase_aligned_error,
)
