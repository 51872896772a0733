"""
Chunked pseudospectra of triangular (Schur-form) matrices.

We keep three sibling subpackages:
- core: windows, chunking, grids, configs, communicators
- operators: multi-shift triangular solves + column kernels + convergence test
- algorithm: active-set estimator, deflation bookkeeping, snapshots, chunked driver
"""

from .core import EstimatorConfig, SnapshotConfig, WindowConfig, ImageStyle
from .algorithm import (
    EstimatorResult,
    ChunkedResult,
    triangular_pseudospectrum,
    chunked_pseudospectrum,
)

__version__ = "0.1.0"

__all__ = [
    "core",
    "operators",
    "algorithm",
    "EstimatorConfig",
    "SnapshotConfig",
    "WindowConfig",
    "ImageStyle",
    "EstimatorResult",
    "ChunkedResult",
    "triangular_pseudospectrum",
    "chunked_pseudospectrum",
]
