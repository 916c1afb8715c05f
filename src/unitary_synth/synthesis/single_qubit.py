"""
Single-Qubit Emission

Turns a 2x2 unitary into gates: either one generic matrix gate or the
Z-Y-Z Euler rotations ``Rz(omega) Ry(theta) Rz(phi)``, global phase dropped.
"""

from typing import List, Optional, Tuple

import numpy as np

from unitary_synth.circuit.gates import MatrixGate, RyGate, RzGate
from unitary_synth.circuit.program import CircuitGate
from unitary_synth.config import CompilerConfig
from unitary_synth.synthesis.diagonal import ANGLE_EPS


def zyz_rotation_angles(U: np.ndarray) -> Tuple[float, float, float, float]:
    """
    Euler angles with ``U = exp(i alpha) Rz(omega) Ry(theta) Rz(phi)``.

    Parameters
    ----------
    U : ndarray, shape (2, 2)
        Unitary matrix.

    Returns
    -------
    phi, theta, omega, alpha : float
        ``Rz(phi)`` is applied first.
    """
    U = np.asarray(U, dtype=np.complex128)
    alpha = np.angle(np.linalg.det(U)) / 2
    V = U * np.exp(-1j * alpha)
    a, b = V[0, 0], V[1, 0]
    theta = 2 * np.arctan2(abs(b), abs(a))
    arg_a = np.angle(a) if abs(a) > ANGLE_EPS else 0.0
    arg_b = np.angle(b) if abs(b) > ANGLE_EPS else 0.0
    omega = arg_b - arg_a
    phi = -arg_a - arg_b
    return float(phi), float(theta), float(omega), float(alpha)


def single_qubit_gates(
    U: np.ndarray, wire: int, config: Optional[CompilerConfig] = None
) -> List[CircuitGate]:
    """Gates reproducing the 2x2 unitary ``U`` on ``wire`` up to global phase."""
    config = config or CompilerConfig()
    if config.single_qubit == "matrix":
        return [CircuitGate((wire,), MatrixGate(U, atol=config.atol))]

    phi, theta, omega, _ = zyz_rotation_angles(U)
    gates = []
    for gate in (RzGate(phi), RyGate(theta), RzGate(omega)):
        if abs(gate.theta) > ANGLE_EPS:
            gates.append(CircuitGate((wire,), gate))
    return gates
