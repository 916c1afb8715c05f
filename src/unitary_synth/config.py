"""
Compiler Configuration

Standard operators, numerical tolerances and the ``CompilerConfig``
dataclass shared by every synthesis stage.
"""

from dataclasses import dataclass

import numpy as np

# Default tolerance for unitarity / diagonality checks (max-abs entry)
DEFAULT_ATOL = 1e-8

# Pauli matrices
I2 = np.eye(2, dtype=np.complex128)
X = np.array([[0, 1], [1, 0]], dtype=np.complex128)
Y = np.array([[0, -1j], [1j, 0]], dtype=np.complex128)
Z = np.array([[1, 0], [0, -1]], dtype=np.complex128)
H_GATE = np.array([[1, 1], [1, -1]], dtype=np.complex128) / np.sqrt(2)

# Magic basis: E Q E^dagger is in SU(2) x SU(2) for every Q in SO(4).
# Columns are, up to phase, the Bell states Phi+, Phi-, Psi+, Psi-.
MAGIC_BASIS = np.array(
    [
        [1, 1j, 0, 0],
        [0, 0, 1j, 1],
        [0, 0, 1j, -1],
        [1, -1j, 0, 0],
    ],
    dtype=np.complex128,
) / np.sqrt(2)

for _m in (I2, X, Y, Z, H_GATE, MAGIC_BASIS):
    _m.setflags(write=False)

SINGLE_QUBIT_MODES = ("matrix", "zyz")


@dataclass(frozen=True)
class CompilerConfig:
    """
    Numerical settings for unitary compilation.

    Parameters
    ----------
    atol : float
        Tolerance on ``max|U U^dagger - I|`` for input validation.
    diagonal_atol : float
        Off-diagonal magnitude below which a (sub-)unitary is treated as
        diagonal.
    single_qubit : str
        Emission mode for single-qubit unitaries: ``"matrix"`` keeps a
        generic matrix gate, ``"zyz"`` emits Rz-Ry-Rz Euler rotations.
    max_tiebreak_attempts : int
        Number of real linear combinations tried when resolving
        degenerate two-qubit eigenbases.
    tiebreak_seed : int
        Seed of the generator producing those combinations.
    phase_round_decimals : int
        Decimals kept when ordering eigenphases lexicographically.
    """
    atol: float = DEFAULT_ATOL
    diagonal_atol: float = DEFAULT_ATOL
    single_qubit: str = "matrix"
    max_tiebreak_attempts: int = 16
    tiebreak_seed: int = 0
    phase_round_decimals: int = 9

    def __post_init__(self):
        if self.atol <= 0 or self.diagonal_atol <= 0:
            raise ValueError("Tolerances must be positive.")
        if self.single_qubit not in SINGLE_QUBIT_MODES:
            raise ValueError(
                f"Unknown single-qubit mode '{self.single_qubit}'. "
                f"Choose from: {list(SINGLE_QUBIT_MODES)}"
            )
        if self.max_tiebreak_attempts < 1:
            raise ValueError("max_tiebreak_attempts must be at least 1.")
