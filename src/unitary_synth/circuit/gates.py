"""
Gate Catalogue

Elementary gates consumed by the compiler: Pauli, Hadamard and phase
gates, the Rx/Ry/Rz and axis-angle rotation families, phase shifts,
generic matrix gates and controlled gates (CNOT being the fixed
entangling primitive).

Every gate is an immutable value exposing ``num_wires``, ``matrix()``,
``adjoint()`` and ``is_hermitian()``. Multi-wire matrices use Kronecker
order: the first wire of a gate is the most significant bit.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from unitary_synth.config import DEFAULT_ATOL, H_GATE, I2, X, Y, Z


def is_unitary(m: np.ndarray, atol: float = DEFAULT_ATOL) -> bool:
    """Return True if ``m`` is square and ``m m^dagger = I`` within ``atol``."""
    m = np.asarray(m)
    if m.ndim != 2 or m.shape[0] != m.shape[1]:
        return False
    return bool(np.allclose(m @ m.conj().T, np.eye(m.shape[0]), atol=atol))


def pauli_vector(nx: float, ny: float, nz: float) -> np.ndarray:
    """Return ``nx X + ny Y + nz Z``."""
    return nx * X + ny * Y + nz * Z


class Gate:
    """Base class for unitary gates acting on ``num_wires`` wires."""

    num_wires = 1

    def matrix(self) -> np.ndarray:
        raise NotImplementedError

    def adjoint(self) -> "Gate":
        raise NotImplementedError

    def is_hermitian(self) -> bool:
        return False

    @property
    def name(self) -> str:
        return type(self).__name__


# ---------------------------------------------------------------------------
# Fixed single-qubit gates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class XGate(Gate):
    """Pauli X gate."""

    def matrix(self) -> np.ndarray:
        return X.copy()

    def adjoint(self) -> "XGate":
        return self

    def is_hermitian(self) -> bool:
        return True


@dataclass(frozen=True)
class YGate(Gate):
    """Pauli Y gate."""

    def matrix(self) -> np.ndarray:
        return Y.copy()

    def adjoint(self) -> "YGate":
        return self

    def is_hermitian(self) -> bool:
        return True


@dataclass(frozen=True)
class ZGate(Gate):
    """Pauli Z gate."""

    def matrix(self) -> np.ndarray:
        return Z.copy()

    def adjoint(self) -> "ZGate":
        return self

    def is_hermitian(self) -> bool:
        return True


@dataclass(frozen=True)
class HadamardGate(Gate):
    """Hadamard gate, ``(X + Z) / sqrt(2)``."""

    def matrix(self) -> np.ndarray:
        return H_GATE.copy()

    def adjoint(self) -> "HadamardGate":
        return self

    def is_hermitian(self) -> bool:
        return True


@dataclass(frozen=True)
class SGate(Gate):
    """S gate, ``diag(1, i)``."""

    def matrix(self) -> np.ndarray:
        return np.diag([1, 1j]).astype(np.complex128)

    def adjoint(self) -> "SdagGate":
        return SdagGate()


@dataclass(frozen=True)
class SdagGate(Gate):
    """S^dagger gate, ``diag(1, -i)``."""

    def matrix(self) -> np.ndarray:
        return np.diag([1, -1j]).astype(np.complex128)

    def adjoint(self) -> SGate:
        return SGate()


@dataclass(frozen=True)
class TGate(Gate):
    """T gate, ``diag(1, exp(i pi/4))``."""

    def matrix(self) -> np.ndarray:
        return np.diag([1, np.exp(1j * np.pi / 4)])

    def adjoint(self) -> "TdagGate":
        return TdagGate()


@dataclass(frozen=True)
class TdagGate(Gate):
    """T^dagger gate, ``diag(1, exp(-i pi/4))``."""

    def matrix(self) -> np.ndarray:
        return np.diag([1, np.exp(-1j * np.pi / 4)])

    def adjoint(self) -> TGate:
        return TGate()


# ---------------------------------------------------------------------------
# Parametrized rotations
# ---------------------------------------------------------------------------

def _is_trivial_angle(theta: float) -> bool:
    return bool(np.mod(theta, 2 * np.pi) < np.finfo(float).eps)


@dataclass(frozen=True)
class RxGate(Gate):
    """Rotation about X: ``exp(-i theta X / 2)``."""
    theta: float

    def matrix(self) -> np.ndarray:
        c = np.cos(self.theta / 2)
        s = np.sin(self.theta / 2)
        return np.array([[c, -1j * s], [-1j * s, c]], dtype=np.complex128)

    def adjoint(self) -> "RxGate":
        return RxGate(-self.theta)

    def is_hermitian(self) -> bool:
        return _is_trivial_angle(self.theta)


@dataclass(frozen=True)
class RyGate(Gate):
    """Rotation about Y: ``exp(-i theta Y / 2)``."""
    theta: float

    def matrix(self) -> np.ndarray:
        c = np.cos(self.theta / 2)
        s = np.sin(self.theta / 2)
        return np.array([[c, -s], [s, c]], dtype=np.complex128)

    def adjoint(self) -> "RyGate":
        return RyGate(-self.theta)

    def is_hermitian(self) -> bool:
        return _is_trivial_angle(self.theta)


@dataclass(frozen=True)
class RzGate(Gate):
    """Rotation about Z: ``diag(exp(-i theta/2), exp(i theta/2))``."""
    theta: float

    def matrix(self) -> np.ndarray:
        return np.diag(
            [np.exp(-1j * self.theta / 2), np.exp(1j * self.theta / 2)]
        )

    def adjoint(self) -> "RzGate":
        return RzGate(-self.theta)

    def is_hermitian(self) -> bool:
        return _is_trivial_angle(self.theta)


@dataclass(frozen=True)
class RotationGate(Gate):
    """
    General rotation by ``|n_theta|`` about the unit axis ``n_theta/|n_theta|``.

    ``R_n(theta) = cos(theta/2) I - i sin(theta/2) (n . sigma)``

    Parameters
    ----------
    n_theta : tuple of float
        Rotation axis scaled by the rotation angle (length 3).
    """
    n_theta: Tuple[float, float, float]

    def __post_init__(self):
        if len(self.n_theta) != 3:
            raise ValueError("Rotation axis vector must have length 3.")
        object.__setattr__(self, "n_theta", tuple(float(v) for v in self.n_theta))

    @classmethod
    def from_axis_angle(cls, theta: float, axis) -> "RotationGate":
        axis = np.asarray(axis, dtype=float)
        if axis.shape != (3,):
            raise ValueError("Rotation axis vector must have length 3.")
        if not np.isclose(np.linalg.norm(axis), 1.0):
            raise ValueError("Norm of rotation axis vector must be 1.")
        return cls(tuple(theta * axis))

    def matrix(self) -> np.ndarray:
        theta = float(np.linalg.norm(self.n_theta))
        if theta == 0:
            return I2.copy()
        n = np.asarray(self.n_theta) / theta
        return np.cos(theta / 2) * I2 - 1j * np.sin(theta / 2) * pauli_vector(*n)

    def adjoint(self) -> "RotationGate":
        return RotationGate(tuple(-v for v in self.n_theta))

    def is_hermitian(self) -> bool:
        return _is_trivial_angle(float(np.linalg.norm(self.n_theta)))


@dataclass(frozen=True)
class PhaseShiftGate(Gate):
    """Phase shift ``diag(1, exp(i phi))``."""
    phi: float

    def matrix(self) -> np.ndarray:
        return np.diag([1, np.exp(1j * self.phi)])

    def adjoint(self) -> "PhaseShiftGate":
        return PhaseShiftGate(-self.phi)

    def is_hermitian(self) -> bool:
        return abs(self.phi) < np.finfo(float).eps


# ---------------------------------------------------------------------------
# Multi-wire gates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SwapGate(Gate):
    """Swap of two wires."""
    num_wires = 2

    def matrix(self) -> np.ndarray:
        return np.array(
            [[1, 0, 0, 0], [0, 0, 1, 0], [0, 1, 0, 0], [0, 0, 0, 1]],
            dtype=np.complex128,
        )

    def adjoint(self) -> "SwapGate":
        return self

    def is_hermitian(self) -> bool:
        return True


@dataclass(frozen=True, eq=False)
class MatrixGate(Gate):
    """
    Generic gate given by a unitary matrix of dimension 2^k.

    Raises
    ------
    ValueError
        If the matrix is not square, not of power-of-two dimension, or
        not unitary within ``atol``.
    """
    unitary: np.ndarray
    atol: float = DEFAULT_ATOL

    def __post_init__(self):
        m = np.array(self.unitary, dtype=np.complex128)
        if m.ndim != 2 or m.shape[0] != m.shape[1]:
            raise ValueError("Matrix gate requires a square matrix.")
        dim = m.shape[0]
        if dim < 2 or dim & (dim - 1):
            raise ValueError(f"Matrix gate dimension {dim} is not a power of two.")
        if not is_unitary(m, self.atol):
            raise ValueError("Quantum operators must be unitary.")
        m.setflags(write=False)
        object.__setattr__(self, "unitary", m)

    @property
    def num_wires(self) -> int:
        return int(self.unitary.shape[0]).bit_length() - 1

    def matrix(self) -> np.ndarray:
        return self.unitary.copy()

    def adjoint(self) -> "MatrixGate":
        return MatrixGate(self.unitary.conj().T, self.atol)

    def is_hermitian(self) -> bool:
        return bool(np.allclose(self.unitary, self.unitary.conj().T))

    def __eq__(self, other) -> bool:
        if not isinstance(other, MatrixGate):
            return NotImplemented
        return self.unitary.shape == other.unitary.shape and bool(
            np.allclose(self.unitary, other.unitary)
        )

    __hash__ = None


@dataclass(frozen=True)
class ControlledGate(Gate):
    """
    Gate ``target`` controlled on ``num_controls`` wires being |1>.

    The control wires come first in wire order; the target occupies the
    last (least significant) wires.
    """
    target: Gate
    num_controls: int = 1

    def __post_init__(self):
        if self.num_controls < 1:
            raise ValueError("A controlled gate needs at least one control wire.")

    @property
    def num_wires(self) -> int:
        return self.num_controls + self.target.num_wires

    def matrix(self) -> np.ndarray:
        u = self.target.matrix()
        cu = np.eye(2 ** self.num_wires, dtype=np.complex128)
        cu[-u.shape[0]:, -u.shape[1]:] = u
        return cu

    def adjoint(self) -> "ControlledGate":
        return ControlledGate(self.target.adjoint(), self.num_controls)

    def is_hermitian(self) -> bool:
        return self.target.is_hermitian()

    @property
    def name(self) -> str:
        return "C" * self.num_controls + self.target.name


def controlled_not() -> ControlledGate:
    """The CNOT entangling primitive (control first, target second)."""
    return ControlledGate(XGate(), 1)
