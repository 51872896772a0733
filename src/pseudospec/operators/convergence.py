# operators/convergence.py
from __future__ import annotations

import numpy as np


def norm_cap(dtype=np.float64) -> float:
    """Ceiling standing in for an unbounded resolvent norm: 1 / machine epsilon."""
    return float(1.0 / np.finfo(dtype).eps)


NORM_CAP = norm_cap(np.float64)


def cap_estimates(estimates: np.ndarray) -> np.ndarray:
    """
    Map NaN and anything >= NORM_CAP (including +inf) to NORM_CAP.
    """
    ests = np.array(estimates, dtype=np.float64, copy=True)
    ests[np.isnan(ests) | (ests >= NORM_CAP)] = NORM_CAP
    return ests


def is_converged(last_estimate: float, curr_estimate: float, tol: float) -> bool:
    """
    Scalar convergence test:
      - capped estimates are converged
      - otherwise |last - curr| / |curr| <= tol, provided curr != 0
    """
    last_estimate = float(last_estimate)
    curr_estimate = float(curr_estimate)
    if curr_estimate >= NORM_CAP:
        return True
    if abs(curr_estimate) > 0.0:
        return abs(last_estimate - curr_estimate) / abs(curr_estimate) <= float(tol)
    return False


def find_converged(last_estimates: np.ndarray, curr_estimates: np.ndarray, tol: float) -> np.ndarray:
    """
    Vectorised is_converged over parallel estimate arrays. Returns a bool mask.
    """
    last = np.asarray(last_estimates, dtype=np.float64)
    curr = np.asarray(curr_estimates, dtype=np.float64)
    if last.shape != curr.shape:
        raise ValueError(f"estimate arrays differ in shape: {last.shape} vs {curr.shape}")

    capped = curr >= NORM_CAP
    nonzero = np.abs(curr) > 0.0
    with np.errstate(divide="ignore", invalid="ignore"):
        rel = np.abs(last - curr) / np.where(nonzero, np.abs(curr), 1.0)
    return capped | (nonzero & (rel <= float(tol)))
