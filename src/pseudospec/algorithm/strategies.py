# algorithm/strategies.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np

from pseudospec.core.config import EstimatorConfig
from pseudospec.operators.columns import (
    column_norms,
    column_subtractions,
    fix_columns,
    gaussian_columns,
    has_nan,
    inner_products,
    inv_beta_scale,
)
from pseudospec.operators.convergence import NORM_CAP
from pseudospec.operators.multishift import resolvent_gram_apply


# Both strategies share one call signature:
#
#   estimates, X_next = strategy.step(T, shifts, X, global_index=..., seed=..., iteration=...)
#
# X holds one unit-norm working vector per active shift (column). The returned
# estimates are raw (not yet capped); X_next is normalised and repaired.


@dataclass(frozen=True)
class PowerStrategy:
    """
    Direct variant: power iteration on M = (T - zI)^-H (T - zI)^-1.

    For unit x, ||M x|| grows to sigma_max(M) = ||(T - zI)^-1||^2, so the
    estimate is sqrt(||M x||).
    """
    name: str = "power"

    def step(
        self,
        T: np.ndarray,
        shifts: np.ndarray,
        X: np.ndarray,
        *,
        global_index: np.ndarray,
        seed: int,
        iteration: int,
    ) -> Tuple[np.ndarray, np.ndarray]:
        Y = resolvent_gram_apply(T, shifts, X)
        with np.errstate(invalid="ignore"):
            estimates = np.sqrt(column_norms(Y))
        fix_columns(Y, global_index=global_index, seed=seed, salt=(iteration,))
        return estimates, Y


@dataclass(frozen=True)
class ArnoldiStrategy:
    """
    Krylov variant: each outer iteration builds a krylov_size-step Arnoldi
    basis of M = (T - zI)^-H (T - zI)^-1 per shift, estimates ||(T - zI)^-1||
    as sqrt of the largest Ritz value, and restarts from the matching Ritz vector.

    The basis is clamped to n vectors and every new direction is
    orthogonalised twice (classical Gram-Schmidt with reorthogonalisation).
    When a shift's Krylov space is exhausted (beta <= n * eps * ||M v_j||) its
    basis is frozen: later vectors and their rows/columns of H stay zero, so
    they only add zero Ritz values, which never dominate since M is positive
    semi-definite. The basis for shift j lives in V[:, :, j].
    """
    krylov_size: int = 10
    name: str = "arnoldi"

    def __post_init__(self) -> None:
        if int(self.krylov_size) < 2:
            raise ValueError("ArnoldiStrategy requires krylov_size >= 2")

    def step(
        self,
        T: np.ndarray,
        shifts: np.ndarray,
        X: np.ndarray,
        *,
        global_index: np.ndarray,
        seed: int,
        iteration: int,
    ) -> Tuple[np.ndarray, np.ndarray]:
        n, m = X.shape
        k = min(int(self.krylov_size), n)
        breakdown_tol = n * np.finfo(np.float64).eps

        V = np.zeros((k + 1, n, m), dtype=np.complex128)
        H = np.zeros((m, k + 1, k), dtype=np.complex128)
        V[0] = X
        bad = np.zeros(m, dtype=bool)

        for j in range(k):
            W = resolvent_gram_apply(T, shifts, V[j])
            w_norm = column_norms(W)
            for _ in range(2):
                for i in range(j + 1):
                    h = inner_products(V[i], W)
                    column_subtractions(h, V[i], W)
                    H[:, i, j] += h
            beta = column_norms(W)

            # shift on an eigenvalue: report the cap, keep the rest finite
            bad |= has_nan(W, axis=0) | ~np.isfinite(beta)
            frozen = bad | (beta <= breakdown_tol * w_norm)
            beta[frozen] = 0.0
            inv_beta_scale(np.where(frozen, 1.0, beta), W)
            W[:, frozen] = 0.0

            H[:, j + 1, j] = beta
            V[j + 1] = W

        Hk = H[:, :k, :k]
        Hs = 0.5 * (Hk + np.conj(np.swapaxes(Hk, 1, 2)))
        Hs[bad] = np.eye(k)
        theta, Z = np.linalg.eigh(Hs)

        # eigh sorts ascending: last Ritz pair is the dominant one
        ritz = np.maximum(theta[:, -1], 0.0)
        estimates = np.sqrt(ritz)
        estimates[bad] = NORM_CAP

        y = Z[:, :, -1]
        X_next = np.einsum("jnm,mj->nm", V[:k], y)
        X_next[:, bad] = X[:, bad]
        fix_columns(X_next, global_index=global_index, seed=seed, salt=(iteration,))
        return estimates, X_next


Strategy = Union[PowerStrategy, ArnoldiStrategy]


def make_strategy(cfg: EstimatorConfig) -> Strategy:
    if cfg.variant == "power":
        return PowerStrategy()
    if cfg.variant == "arnoldi":
        return ArnoldiStrategy(krylov_size=int(cfg.krylov_size))
    raise ValueError(f"Unknown variant: {cfg.variant}")


def starting_vectors(n: int, global_index: np.ndarray, *, seed: int) -> np.ndarray:
    """Seeded unit-norm starting vectors, one column per shift."""
    return gaussian_columns(n, global_index, seed=seed)
