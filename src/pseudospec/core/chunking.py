# core/chunking.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple, Union, Dict, Any

import numpy as np

from .config import WindowConfig, as_window_config
from .grid import global_indices, window_shifts


def block_sizes(total: int, num_chunks: int) -> List[int]:
    """
    Split `total` samples into `num_chunks` contiguous blocks.

    Every block has total // num_chunks samples except the last one, which
    absorbs the remainder:
        last = total - (num_chunks - 1) * (total // num_chunks)
    """
    total = int(total)
    num_chunks = int(num_chunks)
    if total < 1:
        raise ValueError("total must be >= 1")
    if num_chunks < 1 or num_chunks > total:
        raise ValueError(f"num_chunks must be in [1, {total}]; got {num_chunks}")

    block = total // num_chunks
    leftover = total - (num_chunks - 1) * block
    return [block] * (num_chunks - 1) + [leftover]


@dataclass(frozen=True)
class ChunkSpec:
    """
    One rectangular sub-window of the full sample grid.

    real_offset/imag_offset locate the chunk inside the global
    (realSize, imagSize) maps; chunk_slices selects its region there.
    """
    real_chunk: int
    imag_chunk: int
    real_offset: int
    imag_offset: int
    real_size: int
    imag_size: int
    center: complex
    real_width: float
    imag_width: float
    imag_size_total: int

    @property
    def num_shifts(self) -> int:
        return int(self.real_size) * int(self.imag_size)

    @property
    def chunk_slices(self) -> Tuple[slice, slice]:
        si = slice(self.real_offset, self.real_offset + self.real_size)
        sj = slice(self.imag_offset, self.imag_offset + self.imag_size)
        return si, sj

    @property
    def tag(self) -> str:
        return f"_{self.real_chunk}_{self.imag_chunk}"

    def shifts(self) -> np.ndarray:
        return window_shifts(self.center, self.real_width, self.imag_width, self.real_size, self.imag_size)

    def global_index(self) -> np.ndarray:
        return global_indices(
            self.real_offset, self.imag_offset, self.real_size, self.imag_size, self.imag_size_total
        )


def chunk_window(
    window: Union[WindowConfig, Dict[str, Any]],
    num_real: int,
    num_imag: int,
) -> List[ChunkSpec]:
    """
    Partition a window into num_real x num_imag chunks (real index outermost).

    Chunk geometry follows the full window's cell size:
        x_step = real_width / real_size
        corner = center - (real_width/2 + i imag_width/2)
        chunk_corner = corner + (x_step*rc*x_block + i y_step*ic*y_block)
        chunk_center = chunk_corner + 0.5*(x_step*real_chunk_size + i y_step*imag_chunk_size)
    """
    window = as_window_config(window)
    real_blocks = block_sizes(window.real_size, num_real)
    imag_blocks = block_sizes(window.imag_size, num_imag)
    x_block = real_blocks[0]
    y_block = imag_blocks[0]

    x_step = float(window.real_width) / int(window.real_size)
    y_step = float(window.imag_width) / int(window.imag_size)
    corner = complex(window.center) - complex(0.5 * float(window.real_width), 0.5 * float(window.imag_width))

    chunks: List[ChunkSpec] = []
    for rc, real_chunk_size in enumerate(real_blocks):
        for ic, imag_chunk_size in enumerate(imag_blocks):
            chunk_corner = corner + complex(x_step * rc * x_block, y_step * ic * y_block)
            chunk_center = chunk_corner + 0.5 * complex(x_step * real_chunk_size, y_step * imag_chunk_size)
            chunks.append(
                ChunkSpec(
                    real_chunk=rc,
                    imag_chunk=ic,
                    real_offset=rc * x_block,
                    imag_offset=ic * y_block,
                    real_size=int(real_chunk_size),
                    imag_size=int(imag_chunk_size),
                    center=complex(chunk_center),
                    real_width=float(x_step * real_chunk_size),
                    imag_width=float(y_step * imag_chunk_size),
                    imag_size_total=int(window.imag_size),
                )
            )
    return chunks
