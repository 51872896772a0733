# core/grid.py
from __future__ import annotations

from typing import Tuple

import numpy as np


def idx(j: int, k: int, imag_size: int) -> int:
    """Row-major shift index of real sample j and imaginary sample k (scalars or arrays)."""
    return j * imag_size + k


def sample_axes(
    center: complex,
    real_width: float,
    imag_width: float,
    real_size: int,
    imag_size: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Cell-centred sample coordinates of a window.

    The window [c - w/2, c + w/2] is cut into `size` equal cells and each
    sample sits at the middle of its cell, so that adjacent chunks of a larger
    window reproduce exactly the samples of the full window.
    """
    real_size = int(real_size)
    imag_size = int(imag_size)
    if real_size < 1 or imag_size < 1:
        raise ValueError("sample_axes requires real_size, imag_size >= 1")

    center = complex(center)
    x_step = float(real_width) / real_size
    y_step = float(imag_width) / imag_size
    x0 = center.real - 0.5 * float(real_width)
    y0 = center.imag - 0.5 * float(imag_width)

    x = x0 + (np.arange(real_size) + 0.5) * x_step
    y = y0 + (np.arange(imag_size) + 0.5) * y_step
    return x, y


def window_shifts(
    center: complex,
    real_width: float,
    imag_width: float,
    real_size: int,
    imag_size: int,
) -> np.ndarray:
    """
    All shifts of a window as a flat complex vector, ordered by idx(j, k).
    """
    x, y = sample_axes(center, real_width, imag_width, real_size, imag_size)
    X, Y = np.meshgrid(x, y, indexing="ij")
    return (X + 1j * Y).reshape(-1)


def global_indices(
    real_offset: int,
    imag_offset: int,
    real_size: int,
    imag_size: int,
    imag_size_total: int,
) -> np.ndarray:
    """
    Position of every chunk-local shift in the unchunked row-major ordering.
    """
    J = int(real_offset) + np.arange(int(real_size))[:, None]
    K = int(imag_offset) + np.arange(int(imag_size))[None, :]
    return idx(J, K, int(imag_size_total)).reshape(-1).astype(np.int64)


# -----------------------------
# Result assembly
# -----------------------------

def reshape_into_grid(real_size: int, imag_size: int, x: np.ndarray) -> np.ndarray:
    """
    Reshape an original-order vector (realSize*imagSize,) to its (realSize, imagSize) grid.
    """
    x = np.asarray(x)
    if x.ndim != 1:
        raise ValueError(f"x must be 1D; got ndim={x.ndim}")
    if x.size != int(real_size) * int(imag_size):
        raise ValueError(f"x has size {x.size}, expected {int(real_size) * int(imag_size)}")
    return x.reshape(int(real_size), int(imag_size))


def assemble_chunk(
    global_map: np.ndarray,
    local: np.ndarray,
    chunk_slices: Tuple[slice, slice],
) -> np.ndarray:
    """
    Copy a chunk's (realChunkSize, imagChunkSize) grid into the caller-owned global map.

    `local` may also be given as the flat original-order vector of the chunk.
    Returns the written view of global_map.
    """
    if global_map.ndim != 2:
        raise ValueError("global_map must be 2D (realSize, imagSize)")
    si, sj = chunk_slices
    target = global_map[si, sj]

    local = np.asarray(local)
    if local.ndim == 1:
        local = reshape_into_grid(target.shape[0], target.shape[1], local)
    if local.shape != target.shape:
        raise ValueError(f"chunk has shape {local.shape}, slot in global map is {target.shape}")

    global_map[si, sj] = local
    return global_map[si, sj]

