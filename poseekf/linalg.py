"""Small dense linear-algebra helpers used by the square-root Kalman filter."""

from __future__ import annotations

import math
from typing import NamedTuple

import numpy as np

__all__ = [
    "CholeskyResult",
    "SVDResult",
    "any_non_finite",
    "chol",
    "chol_psd",
    "linsolve",
    "mtimes",
    "qr_r",
    "svd",
]


class CholeskyResult(NamedTuple):
    """Upper Cholesky factor and the failure index (0 on success)."""

    factor: np.ndarray
    info: int


class SVDResult(NamedTuple):
    """Singular value decomposition ``a == u @ s @ v.T``."""

    u: np.ndarray
    s: np.ndarray
    v: np.ndarray


def _matrix(a) -> np.ndarray:
    m = np.array(a, dtype=float)
    if m.ndim != 2:
        raise ValueError(f"expected a 2-D matrix, got shape {m.shape}")
    return m


def _square(a) -> np.ndarray:
    m = _matrix(a)
    if m.shape[0] != m.shape[1]:
        raise ValueError(f"expected a square matrix, got shape {m.shape}")
    return m


def any_non_finite(x) -> bool:
    """Return True if any element of ``x`` is infinite or NaN."""
    return not bool(np.all(np.isfinite(np.asarray(x, dtype=float))))


def chol(a) -> CholeskyResult:
    """Upper Cholesky factorisation ``r.T @ r == a`` using only the upper triangle.

    When ``a`` is not positive definite, ``info`` is the 1-based index of the
    column where the factorisation stopped and ``factor`` is the leading
    ``(info - 1) x (info - 1)`` block that was completed.
    """
    r = np.triu(_square(a))
    n = r.shape[0]
    info = 0
    for j in range(n):
        col = r[:j, j]
        ajj = r[j, j] - col @ col
        if not ajj > 0.0:
            info = j + 1
            break
        ajj = math.sqrt(ajj)
        r[j, j] = ajj
        if j + 1 < n:
            r[j, j + 1:] = (r[j, j + 1:] - col @ r[:j, j + 1:]) / ajj
    size = n if info == 0 else info - 1
    return CholeskyResult(r[:size, :size].copy(), info)


def chol_psd(a) -> np.ndarray:
    """Square-root factor ``v`` of a positive semi-definite matrix, ``v @ v.T == a``.

    The lower Cholesky factor is used when it exists; otherwise the factor is
    built from the singular value decomposition.
    """
    m = _square(a)
    factor, info = chol(m)
    if info == 0:
        return factor.T.copy()
    _, s, v = svd(m)
    return v @ np.sqrt(s)


def linsolve(a, b, lower=True) -> np.ndarray:
    """Solve the triangular system ``a @ x == b``.

    Only the lower (or upper) triangle of ``a`` is read. A zero on the
    diagonal yields infinite or NaN entries rather than an error.
    """
    m = _square(a)
    rhs = np.array(b, dtype=float)
    n = m.shape[0]
    if rhs.ndim not in (1, 2) or rhs.shape[0] != n:
        raise ValueError(f"right-hand side of shape {rhs.shape} does not match a {n}x{n} matrix")
    vector = rhs.ndim == 1
    x = rhs.reshape(n, -1).copy()
    rows = range(n) if lower else reversed(range(n))
    with np.errstate(divide="ignore", invalid="ignore"):
        for i in rows:
            known = slice(0, i) if lower else slice(i + 1, n)
            x[i] = (x[i] - m[i, known] @ x[known]) / m[i, i]
    return x.ravel() if vector else x


def mtimes(a, b) -> np.ndarray:
    """Product of the transposes, ``a.T @ b.T``."""
    left = _matrix(a)
    right = _matrix(b)
    if left.shape[0] != right.shape[1]:
        raise ValueError(f"cannot multiply transposes of shapes {left.shape} and {right.shape}")
    return left.T @ right.T


def qr_r(a) -> np.ndarray:
    """Upper-triangular factor of the economy QR decomposition of ``a``."""
    return np.linalg.qr(_matrix(a), mode="r")


def svd(a) -> SVDResult:
    """Singular value decomposition with ``s`` as a diagonal matrix.

    If ``a`` holds any non-finite value, ``u``, ``v`` and the diagonal of
    ``s`` are NaN.
    """
    m = _matrix(a)
    rows, cols = m.shape
    s = np.zeros((rows, cols))
    k = min(rows, cols)
    if any_non_finite(m):
        u = np.full((rows, rows), np.nan)
        v = np.full((cols, cols), np.nan)
        s[np.arange(k), np.arange(k)] = np.nan
        return SVDResult(u, s, v)
    u, values, vh = np.linalg.svd(m, full_matrices=True)
    s[np.arange(k), np.arange(k)] = values
    return SVDResult(u, s, vh.T)