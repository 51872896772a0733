# operators/columns.py
from __future__ import annotations

from typing import Optional, Sequence

import numpy as np


# ============================
# Per-shift random directions
# ============================

def shift_rng(seed: int, global_index: int, *salt: int) -> np.random.Generator:
    """
    Deterministic per-shift RNG.

    Seeding by (seed, global_index, *salt) instead of drawing from one shared
    stream makes a shift's random vectors independent of which other shifts
    share its batch (deflation on/off, chunk layout, process count).
    """
    entropy = [int(seed), int(global_index)] + [int(s) for s in salt]
    return np.random.Generator(np.random.PCG64(entropy))


def gaussian_columns(
    n: int,
    global_index: np.ndarray,
    *,
    seed: int = 0,
    salt: Sequence[int] = (),
) -> np.ndarray:
    """
    (n, m) complex Gaussian columns with unit 2-norm, one per global index.
    """
    global_index = np.asarray(global_index, dtype=np.int64).reshape(-1)
    X = np.empty((int(n), global_index.size), dtype=np.complex128)
    for j, gid in enumerate(global_index):
        rng = shift_rng(seed, int(gid), *salt)
        x = rng.normal(size=int(n)) + 1j * rng.normal(size=int(n))
        X[:, j] = x / np.linalg.norm(x)
    return X


# ============================
# Column-wise kernels
# ============================

def column_norms(X: np.ndarray) -> np.ndarray:
    """
    Overflow-safe 2-norm of every column.

    Each column is scaled by its largest magnitude before squaring:
        ||x|| = s * sqrt(sum(|x_i / s|^2)),  s = max|x_i|
    A column containing NaN (or inf) yields NaN (or inf/NaN), never a silent 0.
    """
    X = np.asarray(X)
    if X.ndim != 2:
        raise ValueError(f"X must be 2D (n, numShifts); got ndim={X.ndim}")
    if X.shape[0] == 0:
        return np.zeros(X.shape[1], dtype=np.float64)

    A = np.abs(X)
    with np.errstate(invalid="ignore", over="ignore"):
        scale = A.max(axis=0)
        safe = np.where(scale > 0.0, scale, 1.0)
        return scale * np.sqrt(np.sum((A / safe) ** 2, axis=0))


def inner_products(X: np.ndarray, Y: np.ndarray) -> np.ndarray:
    """
    Column-wise <x_j, y_j> = x_j^H y_j.
    """
    if X.shape != Y.shape:
        raise ValueError(f"X and Y should have been aligned: {X.shape} vs {Y.shape}")
    with np.errstate(invalid="ignore", over="ignore"):
        return np.sum(np.conj(X) * Y, axis=0)


def column_subtractions(components: np.ndarray, X: np.ndarray, Y: np.ndarray) -> None:
    """
    In place: y_j -= components[j] * x_j.
    """
    if X.shape != Y.shape:
        raise ValueError(f"X and Y should have been aligned: {X.shape} vs {Y.shape}")
    components = np.asarray(components)
    if components.shape != (Y.shape[1],):
        raise ValueError(f"need {Y.shape[1]} components; got shape {components.shape}")
    with np.errstate(invalid="ignore", over="ignore"):
        Y -= components[None, :] * X


def inv_beta_scale(scales: np.ndarray, Y: np.ndarray) -> None:
    """
    In place: y_j /= scales[j]. Zero scales produce inf/NaN, which callers cap.
    """
    scales = np.asarray(scales)
    if scales.shape != (Y.shape[1],):
        raise ValueError(f"need {Y.shape[1]} scales; got shape {scales.shape}")
    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        Y /= scales[None, :]


def degenerate_columns(X: np.ndarray, norms: Optional[np.ndarray] = None) -> np.ndarray:
    """Columns with zero or non-finite norm."""
    if norms is None:
        norms = column_norms(X)
    return (norms == 0.0) | ~np.isfinite(norms)


def fix_columns(
    X: np.ndarray,
    *,
    global_index: np.ndarray,
    seed: int = 0,
    salt: Sequence[int] = (),
) -> np.ndarray:
    """
    Normalise every column of X in place.

    A column with zero (or non-finite) norm has no usable direction; it is
    replaced by a fresh seeded Gaussian unit vector instead.
    Returns the bool mask of repaired columns.
    """
    norms = column_norms(X)
    bad = degenerate_columns(X, norms)
    good = ~bad
    if np.any(good):
        X[:, good] /= norms[good][None, :]
    if np.any(bad):
        gids = np.asarray(global_index, dtype=np.int64)[bad]
        X[:, bad] = gaussian_columns(X.shape[0], gids, seed=seed, salt=salt)
    return bad


def has_nan(H: np.ndarray, axis=None) -> np.ndarray:
    """
    True where H contains NaN (real or imaginary part). With axis=None a single bool.
    """
    H = np.asarray(H)
    return np.any(np.isnan(H), axis=axis)
