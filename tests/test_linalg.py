import math

import numpy as np
import pytest

from poseekf.linalg import (
    any_non_finite,
    chol,
    chol_psd,
    linsolve,
    mtimes,
    qr_r,
    svd,
)

SPD3 = np.array([[4.0, 1.0, 0.5], [1.0, 3.0, 0.2], [0.5, 0.2, 2.0]])
SPD2 = np.array([[2.0, 0.3], [0.3, 1.0]])


@pytest.mark.parametrize(
    "values, expected",
    [
        ([1.0, 2.0, 3.0], False),
        ([1.0, math.nan], True),
        ([[1.0, 2.0], [math.inf, 0.0]], True),
        ([-math.inf], True),
    ],
)
def test_any_non_finite(values, expected):
    assert any_non_finite(values) is expected


@pytest.mark.parametrize("matrix", [SPD2, SPD3])
def test_chol_reconstructs_positive_definite(matrix):
    r, info = chol(matrix)
    assert info == 0
    assert np.allclose(np.tril(r, -1), 0.0)
    assert np.all(np.diag(r) > 0)
    assert np.allclose(r.T @ r, matrix)


def test_chol_reads_upper_triangle_only():
    corrupted = SPD3.copy()
    corrupted[2, 0] = 99.0
    r, info = chol(corrupted)
    assert info == 0
    assert np.allclose(r.T @ r, SPD3)


def test_chol_reports_failing_column():
    r, info = chol([[1.0, 2.0], [2.0, 1.0]])
    assert info == 2
    assert r.shape == (1, 1)
    assert r[0, 0] == pytest.approx(1.0)


def test_chol_first_column_failure_gives_empty_factor():
    r, info = chol([[-1.0, 0.0], [0.0, 1.0]])
    assert info == 1
    assert r.shape == (0, 0)


def test_chol_rejects_non_square():
    with pytest.raises(ValueError):
        chol(np.ones((2, 3)))


@pytest.mark.parametrize("matrix", [SPD2, SPD3])
def test_chol_psd_lower_factor_for_positive_definite(matrix):
    value = chol_psd(matrix)
    assert np.allclose(np.triu(value, 1), 0.0)
    assert np.allclose(value @ value.T, matrix)


@pytest.mark.parametrize(
    "matrix",
    [
        np.array([[1.0, 1.0], [1.0, 1.0]]),
        np.zeros((3, 3)),
        np.array([[2.0, 0.0, 0.0], [0.0, 0.0, 0.0], [0.0, 0.0, 1.0]]),
    ],
)
def test_chol_psd_falls_back_for_semidefinite(matrix):
    assert chol(matrix).info != 0
    value = chol_psd(matrix)
    assert np.all(np.isfinite(value))
    assert np.allclose(value @ value.T, matrix)


def test_linsolve_lower_uses_lower_triangle():
    a = np.array([[2.0, 9.0], [1.0, 4.0]])
    b = np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
    x = linsolve(a, b, lower=True)
    assert x.shape == (2, 3)
    assert np.allclose(np.tril(a) @ x, b)


def test_linsolve_upper_uses_upper_triangle():
    a = np.array([[2.0, 1.0, 0.5], [7.0, 3.0, -1.0], [8.0, 8.0, 4.0]])
    b = np.array([1.0, -2.0, 0.5])
    x = linsolve(a, b, lower=False)
    assert x.shape == (3,)
    assert np.allclose(np.triu(a) @ x, b)


def test_linsolve_identity_returns_rhs():
    b = np.array([[1.5, -2.0], [3.0, 0.25]])
    assert np.allclose(linsolve(np.eye(2), b, lower=True), b)
    assert np.allclose(linsolve(np.eye(2), b, lower=False), b)


def test_linsolve_singular_gives_non_finite():
    x = linsolve([[0.0, 0.0], [1.0, 1.0]], [1.0, 1.0], lower=True)
    assert any_non_finite(x)


def test_linsolve_shape_mismatch():
    with pytest.raises(ValueError):
        linsolve(np.eye(2), np.ones(3), lower=True)


def test_mtimes_identity_right_gives_transpose():
    a = np.arange(9.0).reshape(3, 3)
    assert np.allclose(mtimes(a, np.eye(3)), a.T)


def test_mtimes_identity_left_gives_transpose():
    b = np.arange(6.0).reshape(2, 3)
    result = mtimes(np.eye(3), b)
    assert result.shape == (3, 2)
    assert np.allclose(result, b.T)


def test_mtimes_transpose_of_product():
    a = np.array([[1.0, 2.0, 0.0], [0.5, -1.0, 3.0], [2.0, 0.0, 1.0]])
    b = np.array([[0.0, 1.0, 4.0], [2.0, -2.0, 1.0], [1.0, 1.0, 1.0]])
    assert np.allclose(mtimes(a, b), mtimes(np.eye(3), b @ a))


def test_mtimes_shape_mismatch():
    with pytest.raises(ValueError):
        mtimes(np.ones((3, 3)), np.ones((3, 2)))


@pytest.mark.parametrize("shape", [(6, 3), (5, 3), (5, 2)])
def test_qr_r_is_triangular_factor(shape):
    rng = np.random.default_rng(7)
    a = rng.normal(size=shape)
    r = qr_r(a)
    n = shape[1]
    assert r.shape == (n, n)
    assert np.allclose(np.tril(r, -1), 0.0)
    assert np.allclose(r.T @ r, a.T @ a)


def test_svd_reconstructs():
    a = np.array([[3.0, 1.0, 0.0], [1.0, 2.0, -1.0], [0.5, 0.0, 4.0]])
    u, s, v = svd(a)
    assert np.allclose(u @ s @ v.T, a)
    assert np.allclose(u.T @ u, np.eye(3))
    assert np.allclose(v.T @ v, np.eye(3))
    d = np.diag(s)
    assert np.all(d >= 0)
    assert np.all(np.diff(d) <= 0)
    assert np.allclose(s - np.diag(d), 0.0)


def test_svd_non_finite_input_gives_nan():
    u, s, v = svd([[1.0, math.nan], [0.0, 1.0]])
    assert np.all(np.isnan(u))
    assert np.all(np.isnan(v))
    assert np.all(np.isnan(np.diag(s)))
    assert s[0, 1] == 0.0 and s[1, 0] == 0.0