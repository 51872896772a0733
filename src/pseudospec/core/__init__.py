"""
Core: problem definition (windows, chunk grids, configs, communicators).
"""

from .config import (
    WindowConfig,
    EstimatorConfig,
    SnapshotConfig,
    ImageStyle,
    DISCRETE_GRAYSCALE,
)
from .grid import window_shifts, global_indices, reshape_into_grid, assemble_chunk
from .chunking import ChunkSpec, block_sizes, chunk_window
from .window import choose_window_width, resolve_window
from .comm import SerialCommunicator, COMM_SELF, column_partition

__all__ = [
    # config.py
    "WindowConfig",
    "EstimatorConfig",
    "SnapshotConfig",
    "ImageStyle",
    "DISCRETE_GRAYSCALE",
    # grid.py
    "window_shifts",
    "global_indices",
    "reshape_into_grid",
    "assemble_chunk",
    # chunking.py
    "ChunkSpec",
    "block_sizes",
    "chunk_window",
    # window.py
    "choose_window_width",
    "resolve_window",
    # comm.py
    "SerialCommunicator",
    "COMM_SELF",
    "column_partition",
]
