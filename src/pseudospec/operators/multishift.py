# operators/multishift.py
from __future__ import annotations

from typing import Dict, Tuple

import numpy as np

from .columns import column_norms
from .convergence import cap_estimates


# ============================
# Input checks
# ============================

def as_triangular(T: np.ndarray) -> np.ndarray:
    """
    Validate the Schur factor: square, upper triangular, no NaN.

    The factor is returned as a read-only complex view so no shift's
    computation can modify it.
    """
    T = np.asarray(T)
    if T.ndim != 2 or T.shape[0] != T.shape[1]:
        raise ValueError(f"T must be square; got shape {T.shape}")
    if np.any(np.tril(T, -1) != 0):
        raise ValueError("T must be upper triangular (strictly lower part is nonzero)")
    if np.any(np.isnan(T)):
        raise ValueError("T contains NaN")
    T = np.asarray(T, dtype=np.complex128)
    if T.flags.writeable:
        T = T.view()
        T.flags.writeable = False
    return T


def _as_shift_vector(shifts: np.ndarray, m: int) -> np.ndarray:
    shifts = np.asarray(shifts, dtype=np.complex128).reshape(-1)
    if shifts.size != m:
        raise ValueError(f"got {shifts.size} shifts for {m} right-hand sides")
    return shifts


# ============================
# Multi-shift triangular solves
# ============================

def multishift_trsm(
    T: np.ndarray,
    shifts: np.ndarray,
    X: np.ndarray,
    *,
    adjoint: bool = False,
) -> np.ndarray:
    """
    Solve (T - z_j I) y_j = x_j  (or (T - z_j I)^H y_j = x_j) for every column j.

    One substitution sweep handles all shifts: row i of the solution is
    updated for all columns at once. Division by a zero pivot (a shift on an
    eigenvalue) yields inf/NaN without warnings; callers cap the result.

    Parameters
    ----------
    T:
        (n, n) upper-triangular factor (not modified)
    shifts:
        (m,) complex shifts
    X:
        (n, m) right-hand sides
    adjoint:
        solve with the conjugate transpose (lower-triangular sweep)
    """
    n = T.shape[0]
    X = np.asarray(X)
    if X.ndim != 2 or X.shape[0] != n:
        raise ValueError(f"X has shape {X.shape}, expected ({n}, numShifts)")
    shifts = _as_shift_vector(shifts, X.shape[1])

    Y = np.array(X, dtype=np.complex128, copy=True)
    if n == 0 or Y.shape[1] == 0:
        return Y

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        if not adjoint:
            for i in range(n - 1, -1, -1):
                if i < n - 1:
                    Y[i] -= np.sum(T[i, i + 1:, None] * Y[i + 1:], axis=0)
                Y[i] /= T[i, i] - shifts
        else:
            TH = np.conj(T)
            for i in range(n):
                if i > 0:
                    Y[i] -= np.sum(TH[:i, i, None] * Y[:i], axis=0)
                Y[i] /= np.conj(T[i, i] - shifts)
    return Y


def resolvent_gram_apply(T: np.ndarray, shifts: np.ndarray, X: np.ndarray) -> np.ndarray:
    """
    Apply (T - zI)^-H (T - zI)^-1 column-wise: two multi-shift solves.
    """
    Y = multishift_trsm(T, shifts, X, adjoint=False)
    return multishift_trsm(T, shifts, Y, adjoint=True)


def compute_residual(T: np.ndarray, shifts: np.ndarray, Y: np.ndarray, X: np.ndarray) -> np.ndarray:
    """
    R = X - (T - zI) Y, column-wise.
    """
    shifts = _as_shift_vector(shifts, Y.shape[1])
    return X - (T @ Y - Y * shifts[None, :])


def residual_norms(T: np.ndarray, shifts: np.ndarray, Y: np.ndarray, X: np.ndarray) -> Dict[str, float]:
    """
    Common residual diagnostics of a multi-shift solve.
    """
    R = compute_residual(T, shifts, Y, X)
    rn = column_norms(R)
    xn = column_norms(np.asarray(X))
    with np.errstate(divide="ignore", invalid="ignore"):
        rel = np.where(xn > 0, rn / xn, np.nan)
    return {
        "max ||r||2": float(np.max(rn)) if rn.size else 0.0,
        "max ||r||2/||x||2": float(np.nanmax(rel)) if rel.size and np.any(np.isfinite(rel)) else np.nan,
    }


# ============================
# Normal-matrix shortcut
# ============================

def numerically_normal(T: np.ndarray, tol: float) -> bool:
    """
    True if the strictly upper part is negligible relative to the diagonal:
        ||offdiag(T)||_F <= tol * ||diag(T)||_F
    """
    T = np.asarray(T)
    diag_frob = float(np.linalg.norm(np.diag(T)))
    upper_frob = float(np.linalg.norm(T))
    off_diag_frob = float(np.sqrt(max(upper_frob ** 2 - diag_frob ** 2, 0.0)))
    return off_diag_frob <= float(tol) * diag_frob


def normal_resolvent_norms(T: np.ndarray, shifts: np.ndarray) -> np.ndarray:
    """
    Exact resolvent norms of a normal triangular (i.e. diagonal) factor:
        ||(T - zI)^-1||_2 = 1 / min_i |T_ii - z|
    capped at the norm cap for shifts on an eigenvalue.
    """
    w = np.diag(np.asarray(T)).astype(np.complex128)
    shifts = np.asarray(shifts, dtype=np.complex128).reshape(-1)
    if w.size == 0:
        return cap_estimates(np.full(shifts.size, np.inf))
    dist = np.min(np.abs(w[:, None] - shifts[None, :]), axis=0)
    with np.errstate(divide="ignore"):
        return cap_estimates(1.0 / dist)


def eigen_distances(T: np.ndarray, shifts: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Distance from every shift to its nearest diagonal entry of T, and that entry's index.
    """
    w = np.diag(np.asarray(T)).astype(np.complex128)
    shifts = np.asarray(shifts, dtype=np.complex128).reshape(-1)
    D = np.abs(w[:, None] - shifts[None, :])
    return np.min(D, axis=0), np.argmin(D, axis=0)
