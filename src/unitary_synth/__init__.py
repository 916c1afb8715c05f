"""
unitary-synth: Unitary-to-Circuit Compiler

Synthesizes an ordered program of elementary gates (single-qubit
rotations, CNOT, phase corrections) that reproduces an arbitrary
numerically specified N-qubit unitary up to a global phase.

Layers: gate catalogue and apply engine (circuit), decomposition
primitives and the recursive compiler (synthesis), and export to
external circuit containers (interop).
"""

__version__ = "0.1.0"
