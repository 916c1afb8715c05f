"""
Tests for the diagonal phase synthesizer and its sign-matrix helpers.
"""

import numpy as np
import pytest

from unitary_synth.circuit.gates import PhaseShiftGate, RyGate, RzGate
from unitary_synth.circuit.program import Program, phase_aligned_error
from unitary_synth.errors import ShapeError, UnitarityError
from unitary_synth.synthesis.diagonal import (
    SignMatrixCache,
    compile_diagonal,
    diagonal_gates,
    eta_col,
    fill_psi,
    inverse_m,
    sign_matrix,
    uniformly_controlled_rotation,
)


def _random_phases(n, seed):
    rng = np.random.default_rng(seed)
    return np.exp(1j * rng.uniform(-np.pi, np.pi, size=1 << n))


class TestHelpers:
    """Sign matrices, phase differences and the difference matrix."""

    def test_inverse_m_literal(self):
        a = 0.125
        mref = a * np.array([
            [1, 1, 1, 1, 1, 1, 1, 1],
            [1, -1, 1, -1, 1, -1, 1, -1],
            [1, -1, -1, 1, 1, -1, -1, 1],
            [1, 1, -1, -1, 1, 1, -1, -1],
            [1, 1, -1, -1, -1, -1, 1, 1],
            [1, -1, -1, 1, -1, 1, 1, -1],
            [1, -1, 1, -1, -1, 1, -1, 1],
            [1, 1, 1, 1, -1, -1, -1, -1],
        ])
        np.testing.assert_allclose(inverse_m(4), mref)

    @pytest.mark.parametrize("n", [1, 2, 3, 5])
    def test_inverse_m_inverts_sign_matrix(self, n):
        size = 1 << (n - 1)
        np.testing.assert_allclose(inverse_m(n) @ sign_matrix(n), np.eye(size), atol=1e-12)

    def test_eta_col_literal(self):
        ref = [[-1, 0, 0, 0], [1, -1, 0, 0], [0, 1, -1, 0], [0, 0, 1, -1], [0, 0, 0, 1]]
        for i in range(5):
            assert eta_col(4, i).tolist() == ref[i]

    def test_eta_col_out_of_range(self):
        with pytest.raises(ValueError):
            eta_col(4, 5)

    @pytest.mark.parametrize("n", [2, 3, 4])
    def test_fill_psi(self, n):
        d = _random_phases(n, seed=n)
        l = 1 << (n - 1)
        psi = fill_psi(d, np.zeros(l - 1), l)
        ref = [np.angle(d[2 * i] * d[2 * i + 3] / (d[2 * i + 1] * d[2 * i + 2])) for i in range(l - 1)]
        np.testing.assert_allclose(psi, ref)

    def test_fill_psi_short_buffer(self):
        with pytest.raises(ShapeError):
            fill_psi(np.ones(8), np.zeros(2), 4)

    def test_cache_is_lazy_and_read_only(self):
        cache = SignMatrixCache()
        assert 3 not in cache
        m = cache.inverse_m(3)
        assert 3 in cache and len(cache) == 1
        assert cache.inverse_m(3) is m
        with pytest.raises(ValueError):
            m[0, 0] = 2.0


class TestUniformlyControlledRotation:

    @pytest.mark.parametrize("gate_cls", [RzGate, RyGate])
    def test_selects_angle_per_control_value(self, gate_cls):
        rng = np.random.default_rng(11)
        k = 2
        angles = rng.uniform(-np.pi, np.pi, size=1 << k)
        gates = uniformly_controlled_rotation(gate_cls, angles, [0, 1], 2)
        matrix = Program(3, gates).matrix()

        for c in range(1 << k):
            block = matrix[2 * c:2 * c + 2, 2 * c:2 * c + 2]
            np.testing.assert_allclose(block, gate_cls(angles[c]).matrix(), atol=1e-10)

    def test_cnot_count(self):
        gates = uniformly_controlled_rotation(RzGate, np.ones(8), [0, 1, 2], 3)
        cnots = [cg for cg in gates if len(cg.wires) == 2]
        assert len(cnots) == 8

    def test_no_controls(self):
        assert uniformly_controlled_rotation(RzGate, [0.0], [], 0) == []
        (cg,) = uniformly_controlled_rotation(RzGate, [0.3], [], 1)
        assert cg.wires == (1,)

    def test_wrong_angle_count(self):
        with pytest.raises(ShapeError):
            uniformly_controlled_rotation(RzGate, np.ones(3), [0, 1], 2)


class TestCompileDiagonal:

    @pytest.mark.parametrize("n", [1, 2, 3, 5])
    def test_reproduces_diagonal(self, n):
        d = _random_phases(n, seed=100 + n)
        program = compile_diagonal(np.diag(d), n)
        assert program.num_wires == n
        assert phase_aligned_error(program.matrix(), np.diag(d)) < 1e-10

    def test_single_qubit_is_one_phase_shift(self):
        (cg,) = compile_diagonal(np.array([1.0, 1j]), 1)
        assert isinstance(cg.gate, PhaseShiftGate)
        assert cg.gate.phi == pytest.approx(np.pi / 2)

    def test_global_phase_only_is_empty(self):
        d = np.full(8, np.exp(0.7j))
        assert len(compile_diagonal(d, 3)) == 0

    def test_large_phase_differences_wrap(self):
        # Pair differences near +-pi exercise the 2pi ambiguity of psi
        d = np.exp(1j * np.array([3.1, -3.1, -3.1, 3.1, 0.0, 3.14, -3.14, 0.0]))
        program = compile_diagonal(d, 3)
        assert phase_aligned_error(program.matrix(), np.diag(d)) < 1e-10

    def test_expectation_values_n5(self):
        n = 5
        rng = np.random.default_rng(5)
        d = _random_phases(n, seed=55)
        psi = rng.normal(size=1 << n) + 1j * rng.normal(size=1 << n)
        psi /= np.linalg.norm(psi)
        M = rng.normal(size=(1 << n, 1 << n))

        ref = d * psi
        out = compile_diagonal(d, n).apply(psi)
        assert np.vdot(ref, M @ ref) == pytest.approx(np.vdot(out, M @ out))

    def test_wires_are_remapped(self):
        d = _random_phases(2, seed=7)
        program = compile_diagonal(d, 2, wires=(2, 0))
        assert program.num_wires == 3
        assert all(w in (0, 2) for cg in program for w in cg.wires)

    def test_not_diagonal(self):
        with pytest.raises(ShapeError, match="not diagonal"):
            compile_diagonal(np.array([[0, 1], [1, 0]]), 1)

    def test_not_unit_modulus(self):
        with pytest.raises(UnitarityError):
            compile_diagonal(np.array([1.0, 0.5]), 1)

    def test_wrong_shape(self):
        with pytest.raises(ShapeError):
            compile_diagonal(np.ones(4), 3)

    def test_shared_cache(self):
        cache = SignMatrixCache()
        diagonal_gates(_random_phases(3, seed=1), (0, 1, 2), cache)
        assert 3 in cache and 2 in cache
