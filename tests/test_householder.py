"""Tests for the unblocked Householder QR factorizer."""

import numpy as np
import pytest
from scipy.stats import unitary_group

from unitary_synth.errors import NumericOverflowError, ShapeError
from unitary_synth.synthesis.householder import (
    householder_vector,
    qr_unblocked,
    reflections,
    reflector_matrix,
)


def _random_complex(m, seed):
    rng = np.random.default_rng(seed)
    return rng.normal(size=(m, m)) + 1j * rng.normal(size=(m, m))


def _q_from_packed(packed, tau):
    m = packed.shape[0]
    Q = np.eye(m, dtype=np.complex128)
    for _, u in reflections(packed, tau):
        Q = Q @ reflector_matrix(u)
    return Q


class TestQRUnblocked:

    @pytest.mark.parametrize("m", [2, 4, 8])
    def test_full_factorization(self, m):
        A = _random_complex(m, seed=m)
        packed, tau = qr_unblocked(A.copy())
        R = np.triu(packed)
        Q = _q_from_packed(packed, tau)
        np.testing.assert_allclose(Q @ R, A, atol=1e-10)
        np.testing.assert_allclose(Q.conj().T @ Q, np.eye(m), atol=1e-10)

    def test_in_place(self):
        A = _random_complex(4, seed=1)
        packed, _ = qr_unblocked(A)
        assert packed is A

    def test_reflector_matches_tau(self):
        A = _random_complex(4, seed=2)
        packed, tau = qr_unblocked(A.copy())
        for i in range(3):
            v = np.zeros(4, dtype=np.complex128)
            v[i] = 1.0
            v[i + 1:] = packed[i + 1:, i]
            H_tau = np.eye(4) - tau[i] * np.outer(v, v.conj())
            np.testing.assert_allclose(H_tau, reflector_matrix(householder_vector(packed, tau, i)), atol=1e-12)

    def test_partial_on_unitary_gives_block_diagonal(self):
        U = unitary_group.rvs(8, random_state=3)
        packed, tau = qr_unblocked(U.copy(), ncols=4)
        assert tau.shape == (4,)
        # Reduced half of a unitary is a diagonal of phases with zero coupling
        top = packed[:4, :4]
        np.testing.assert_allclose(np.abs(np.diag(top)), np.ones(4), atol=1e-10)
        np.testing.assert_allclose(np.triu(top, 1), 0, atol=1e-10)
        np.testing.assert_allclose(packed[:4, 4:], 0, atol=1e-10)
        rest = packed[4:, 4:]
        np.testing.assert_allclose(rest @ rest.conj().T, np.eye(4), atol=1e-10)

    def test_zero_tail_skips_column(self):
        A = np.diag([1.0, 1j, -1.0, 1.0]).astype(np.complex128)
        _, tau = qr_unblocked(A)
        np.testing.assert_array_equal(tau, np.zeros(4))
        assert list(reflections(A, tau)) == []

    def test_rejects_non_complex(self):
        with pytest.raises(TypeError):
            qr_unblocked(np.eye(2))

    def test_rejects_non_square(self):
        with pytest.raises(ShapeError):
            qr_unblocked(np.zeros((2, 3), dtype=np.complex128))

    def test_rejects_bad_ncols(self):
        with pytest.raises(ShapeError):
            qr_unblocked(np.eye(2, dtype=np.complex128), ncols=3)

    def test_overflow(self):
        A = np.full((2, 2), 1e308, dtype=np.complex128)
        A[0, 0] = 1e308 + 1e308j
        with pytest.raises(NumericOverflowError):
            qr_unblocked(A)


def test_reflector_is_hermitian_involution():
    rng = np.random.default_rng(4)
    u = rng.normal(size=4) + 1j * rng.normal(size=4)
    u /= np.linalg.norm(u)
    H = reflector_matrix(u)
    np.testing.assert_allclose(H, H.conj().T, atol=1e-12)
    np.testing.assert_allclose(H @ H, np.eye(4), atol=1e-12)
    np.testing.assert_allclose(H @ u, -u, atol=1e-12)
