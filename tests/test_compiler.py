"""
Tests for the recursive unitary compiler.

Correctness is checked through expectation values of random observables
and through the phase-aligned matrix error of the compiled program.
"""

import numpy as np
import pytest
from scipy.stats import unitary_group

from unitary_synth.circuit.gates import MatrixGate, PhaseShiftGate
from unitary_synth.circuit.program import phase_aligned_error
from unitary_synth.config import CompilerConfig
from unitary_synth.errors import ShapeError, UnitarityError
from unitary_synth.synthesis import compiler as compiler_module
from unitary_synth.synthesis.compiler import (
    DecompositionFrame,
    UnitaryCompiler,
    UnitaryKind,
    classify,
    compile,
    validate_unitary,
)


def _haar(n, seed):
    return unitary_group.rvs(1 << n, random_state=seed)


def _qr_unitary(n, seed):
    """Unitary factor of the QR decomposition of a random complex matrix."""
    rng = np.random.default_rng(seed)
    dim = 1 << n
    Q, _ = np.linalg.qr(rng.normal(size=(dim, dim)) + 1j * rng.normal(size=(dim, dim)))
    return Q


def _expectations_match(U, n, seed):
    rng = np.random.default_rng(seed)
    dim = 1 << n
    psi = rng.normal(size=dim) + 1j * rng.normal(size=dim)
    psi /= np.linalg.norm(psi)
    M = rng.normal(size=(dim, dim))

    ref = U @ psi
    out = compile(U, n).apply(psi)
    return np.vdot(ref, M @ ref) == pytest.approx(np.vdot(out, M @ out), abs=1e-9)


class TestClassify:

    def test_order(self):
        assert classify(np.eye(2)) is UnitaryKind.SINGLE_QUBIT
        assert classify(np.eye(4)) is UnitaryKind.DIAGONAL
        assert classify(_haar(2, 0)) is UnitaryKind.TWO_QUBIT
        assert classify(_haar(3, 0)) is UnitaryKind.GENERAL

    def test_diagonal_tolerance(self):
        U = np.eye(8, dtype=np.complex128)
        U[0, 1] = 1e-12
        assert classify(U) is UnitaryKind.DIAGONAL
        assert classify(U, CompilerConfig(diagonal_atol=1e-14)) is UnitaryKind.GENERAL


class TestValidation:

    def test_non_unitary(self):
        with pytest.raises(UnitarityError):
            compile(np.array([[1, 1], [0, 1]]), 1)

    def test_non_power_of_two(self):
        with pytest.raises(ShapeError):
            compile(np.eye(3), 2)

    def test_non_square(self):
        with pytest.raises(ShapeError):
            compile(np.zeros((2, 4)), 1)

    def test_qubit_count_mismatch(self):
        with pytest.raises(ShapeError):
            compile(np.eye(4), 3)

    def test_non_finite(self):
        U = np.eye(2, dtype=np.complex128)
        U[0, 0] = np.nan
        with pytest.raises(UnitarityError):
            validate_unitary(U, 1)

    def test_tolerance_is_configurable(self):
        U = np.eye(2) * (1 + 1e-6)
        with pytest.raises(UnitarityError):
            validate_unitary(U, 1)
        validate_unitary(U, 1, CompilerConfig(atol=1e-5))

    def test_no_synthesis_on_invalid_input(self, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("synthesis started")

        monkeypatch.setattr(compiler_module, "qr_unblocked", fail)
        with pytest.raises(UnitarityError):
            compile(2 * _haar(3, 1), 3)


class TestDispatch:

    def test_single_qubit_is_one_matrix_gate(self):
        U = _haar(1, 2)
        program = compile(U, 1)
        assert len(program) == 1
        assert isinstance(program[0].gate, MatrixGate)
        np.testing.assert_allclose(program.matrix(), U, atol=1e-12)

    def test_single_qubit_zyz(self):
        U = _haar(1, 3)
        program = compile(U, 1, CompilerConfig(single_qubit="zyz"))
        assert "MatrixGate" not in program.gate_counts()
        assert phase_aligned_error(program.matrix(), U) < 1e-10

    def test_diagonal_and_two_qubit_skip_qr(self, monkeypatch):
        def fail(*args, **kwargs):
            raise AssertionError("QR should not run")

        monkeypatch.setattr(compiler_module, "qr_unblocked", fail)
        rng = np.random.default_rng(4)
        D = np.diag(np.exp(1j * rng.uniform(0, 2 * np.pi, size=16)))
        assert phase_aligned_error(compile(D, 4).matrix(), D) < 1e-10
        U = _haar(2, 4)
        assert phase_aligned_error(compile(U, 2).matrix(), U) < 1e-9

    def test_diagonal_uses_no_matrix_gates(self):
        D = np.diag(np.exp(1j * np.arange(8)))
        names = compile(D, 3).gate_counts()
        assert set(names) <= {"RzGate", "CXGate", "PhaseShiftGate"}


class TestGeneralCompile:

    @pytest.mark.parametrize("n", [3, 4])
    def test_haar_random(self, n):
        U = _haar(n, seed=n)
        program = compile(U, n)
        assert program.num_wires == n
        assert phase_aligned_error(program.matrix(), U) < 1e-8

    def test_expectation_n1(self):
        assert _expectations_match(_qr_unitary(1, 1), 1, seed=1)

    def test_expectation_n2(self):
        assert _expectations_match(_qr_unitary(2, 2), 2, seed=2)

    def test_expectation_n5_diagonal(self):
        rng = np.random.default_rng(5)
        D = np.diag(np.exp(1j * rng.uniform(0, 2 * np.pi, size=32)))
        assert _expectations_match(D, 5, seed=5)

    @pytest.mark.slow
    def test_expectation_n6(self):
        assert _expectations_match(_qr_unitary(6, 6), 6, seed=6)

    def test_block_diagonal_stops_early(self):
        """A unitary acting only when wire 0 is |1> leaves the top frame diagonal."""
        V = _haar(2, 7)
        U = np.eye(8, dtype=np.complex128)
        U[4:, 4:] = V
        program = compile(U, 3)
        assert phase_aligned_error(program.matrix(), U) < 1e-9

    def test_permutation(self):
        perm = np.roll(np.eye(8), 1, axis=0).astype(np.complex128)
        program = compile(perm, 3)
        assert phase_aligned_error(program.matrix(), perm) < 1e-9

    def test_density_matrix(self):
        U = _haar(3, 8)
        rng = np.random.default_rng(8)
        psi = rng.normal(size=8) + 1j * rng.normal(size=8)
        psi /= np.linalg.norm(psi)
        rho = np.outer(psi, psi.conj())
        out = compile(U, 3).apply(rho)
        np.testing.assert_allclose(out, U @ rho @ U.conj().T, atol=1e-9)

    def test_deterministic(self):
        U = _haar(3, 9)
        a = compile(U, 3)
        b = compile(U, 3)
        assert a.gate_counts() == b.gate_counts()
        np.testing.assert_allclose(a.matrix(), b.matrix())

    def test_custom_wires(self):
        U = _haar(3, 10)
        program = UnitaryCompiler().compile(U, 3, wires=(3, 1, 2))
        assert program.num_wires == 4
        assert all(0 not in cg.wires for cg in program)

    def test_duplicate_wires_rejected(self):
        with pytest.raises(ShapeError):
            UnitaryCompiler().compile(_haar(2, 0), 2, wires=(1, 1))


class TestCompilerInstance:

    def test_cache_is_shared_between_compilations(self):
        compiler = UnitaryCompiler()
        compiler.compile(_haar(3, 11), 3)
        populated = len(compiler.cache)
        assert populated > 0
        compiler.compile(_haar(3, 12), 3)
        assert len(compiler.cache) == populated

    def test_frame_offset(self):
        frame = DecompositionFrame(np.eye(2), prefix=2, wires=(0, 1, 2))
        assert frame.active_wires == (2,)
        assert frame.offset == 0b110

    def test_phase_shift_terminates_diagonal(self):
        program = compile(np.diag([1, 1, 1, 1j]), 2)
        assert any(isinstance(cg.gate, PhaseShiftGate) for cg in program)
