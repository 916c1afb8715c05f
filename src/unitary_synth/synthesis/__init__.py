"""
Synthesis Layer

Decomposition primitives (Gray-code ladders, diagonal phases, two-qubit
KAK, Householder QR, state preparation) and the recursive compiler.
"""

from unitary_synth.synthesis.gray_code import (
    greyencode as greyencode,
    flip_state as flip_state,
)
from unitary_synth.synthesis.diagonal import (
    fill_psi as fill_psi,
    eta_col as eta_col,
    inverse_m as inverse_m,
    SignMatrixCache as SignMatrixCache,
    compile_diagonal as compile_diagonal,
)
from unitary_synth.synthesis.two_qubit import (
    decompose_so4 as decompose_so4,
    kak_decompose as kak_decompose,
    compile_two_qubit as compile_two_qubit,
)
from unitary_synth.synthesis.householder import (
    qr_unblocked as qr_unblocked,
)
from unitary_synth.synthesis.state_prep import (
    stateprep as stateprep,
    disentangle_state as disentangle_state,
    prepare_state as prepare_state,
)
from unitary_synth.synthesis.compiler import (
    UnitaryKind as UnitaryKind,
    UnitaryCompiler as UnitaryCompiler,
    classify as classify,
    validate_unitary as validate_unitary,
    compile as compile,
)
