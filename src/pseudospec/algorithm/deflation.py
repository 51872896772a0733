# algorithm/deflation.py
from __future__ import annotations

from typing import Tuple

import numpy as np


def _check_preimage(preimage: np.ndarray) -> np.ndarray:
    preimage = np.asarray(preimage, dtype=np.int64).reshape(-1)
    m = preimage.size
    seen = np.zeros(m, dtype=bool)
    if m and (preimage.min() < 0 or preimage.max() >= m):
        raise ValueError("preimage entries must lie in [0, numShifts)")
    seen[preimage] = True
    if not np.all(seen):
        raise ValueError("preimage is not a permutation")
    return preimage


def restore_ordering(preimage: np.ndarray, *arrays: np.ndarray, axis: int = 0) -> Tuple[np.ndarray, ...]:
    """
    Undo deflation reordering: out[preimage[j]] = array[j] along `axis`.

    All arrays are reordered with the same permutation before anything is
    returned, so entries that belonged together (estimate, iteration count,
    ...) stay paired. With an identity preimage the outputs equal the inputs.
    """
    preimage = _check_preimage(preimage)
    restored = []
    for a in arrays:
        a = np.asarray(a)
        if a.shape[axis] != preimage.size:
            raise ValueError(f"array has {a.shape[axis]} entries along axis {axis}; preimage has {preimage.size}")
        out = np.empty_like(a)
        dst = [slice(None)] * a.ndim
        dst[axis] = preimage
        out[tuple(dst)] = a
        restored.append(out)
    return tuple(restored)


class PreimageMapping:
    """
    Bookkeeping for an active set that shrinks as shifts converge.

    Working arrays keep their full size for the whole run; the active shifts
    are always the prefix [0, num_active). Deflating moves newly finished
    shifts behind that prefix (stable order on both sides) and records the
    move in `preimage`, which maps working position -> original index.
    """

    def __init__(self, num_shifts: int) -> None:
        num_shifts = int(num_shifts)
        if num_shifts < 0:
            raise ValueError("num_shifts must be >= 0")
        self.preimage = np.arange(num_shifts, dtype=np.int64)
        self.num_active = num_shifts

    @property
    def num_shifts(self) -> int:
        return int(self.preimage.size)

    @property
    def active(self) -> slice:
        return slice(0, self.num_active)

    def deflate(self, done: np.ndarray, *arrays: np.ndarray) -> int:
        """
        Move the shifts flagged in `done` (a mask over the active prefix) out
        of the active prefix, permuting `arrays` in place along their last
        axis (per-shift records (m,), working vectors (n, m)).

        Returns the number of shifts deflated.
        """
        done = np.asarray(done, dtype=bool).reshape(-1)
        na = self.num_active
        if done.size != na:
            raise ValueError(f"done mask has {done.size} entries; active set has {na}")
        num_done = int(np.count_nonzero(done))
        if num_done == 0:
            return 0

        for a in arrays:
            if a.shape[-1] != self.num_shifts:
                raise ValueError(f"array has {a.shape[-1]} shift entries; expected {self.num_shifts}")

        perm = np.concatenate([np.flatnonzero(~done), np.flatnonzero(done)])
        for a in arrays:
            a[..., :na] = a[..., :na][..., perm]
        self.preimage[:na] = self.preimage[:na][perm]
        self.num_active = na - num_done
        return num_done

    def restore(self, *arrays: np.ndarray, axis: int = 0) -> Tuple[np.ndarray, ...]:
        return restore_ordering(self.preimage, *arrays, axis=axis)
