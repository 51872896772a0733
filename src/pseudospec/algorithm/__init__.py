"""
Algorithms: active-set estimation, deflation bookkeeping, snapshots, chunked driver.
"""

from .deflation import PreimageMapping, restore_ordering
from .strategies import PowerStrategy, ArnoldiStrategy, make_strategy
from .snapshot import SnapshotCheckpointer
from .estimator import ShiftStatus, EstimatorResult, triangular_pseudospectrum
from .driver import ChunkedResult, chunked_pseudospectrum

__all__ = [
    # deflation.py
    "PreimageMapping",
    "restore_ordering",
    # strategies.py
    "PowerStrategy",
    "ArnoldiStrategy",
    "make_strategy",
    # snapshot.py
    "SnapshotCheckpointer",
    # estimator.py
    "ShiftStatus",
    "EstimatorResult",
    "triangular_pseudospectrum",
    # driver.py
    "ChunkedResult",
    "chunked_pseudospectrum",
]
