# core/window.py
from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, Tuple, Union

import numpy as np
import scipy.linalg as sla

from .config import WindowConfig, as_window_config


def choose_window_width(T: np.ndarray, *, verbose: bool = False) -> Tuple[float, str]:
    """
    Pick a square window width from the triangular factor.

    Rules:
      - zero matrix                       -> 1
      - radius >= 0.2 * ||T||_1           -> 2.5 * radius   (spectral radius)
      - otherwise                         -> 0.8 * ||T||_1  (one norm)

    Returns (width, reason).
    """
    T = np.asarray(T)
    if T.ndim != 2 or T.shape[0] != T.shape[1]:
        raise ValueError(f"T must be square; got shape {T.shape}")

    w = np.diag(T)
    radius = float(np.max(np.abs(w))) if w.size else 0.0
    one_norm = float(sla.norm(T, 1)) if T.size else 0.0

    if one_norm == 0.0 and radius == 0.0:
        width, reason = 1.0, "Setting width to 1 to handle zero matrix"
    elif radius >= 0.2 * one_norm:
        width = 2.5 * radius
        reason = f"Setting width to {width:g} based on the spectral radius, {radius:g}"
    else:
        width = 0.8 * one_norm
        reason = f"Setting width to {width:g} based on the one norm, {one_norm:g}"

    if verbose:
        print(reason)
    return float(width), reason


def resolve_window(
    window: Union[WindowConfig, Dict[str, Any]],
    T: np.ndarray,
    *,
    verbose: bool = False,
) -> WindowConfig:
    """
    Return `window` unchanged if both widths are set, else one with both widths
    chosen by choose_window_width.
    """
    window = as_window_config(window)
    if window.has_extent:
        return window
    width, _ = choose_window_width(T, verbose=verbose)
    return replace(window, real_width=width, imag_width=width)
