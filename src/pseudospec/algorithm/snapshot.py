# algorithm/snapshot.py
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Union

import numpy as np

from pseudospec.core.comm import COMM_SELF
from pseudospec.core.config import SnapshotConfig, as_snapshot_config
from pseudospec.core.grid import reshape_into_grid
from pseudospec.diagnostics import write_map

from .deflation import restore_ordering


Persist = Callable[..., Any]


class SnapshotCheckpointer:
    """
    Periodically hands the current estimates of a chunk to a persistence collaborator.

    Two independent counters (numeric, image) count outer iterations since the
    last save of that channel. When a counter reaches its frequency the
    estimates are put back into original order, reshaped to
    (realSize, imagSize) and written as
        persist(grid, f"{base}-{num_its}", fmt, style=...)
    The image channel writes log(grid), plus a "-discrete" copy when a
    discrete style is configured.
    """

    def __init__(
        self,
        cfg: Optional[Union[SnapshotConfig, Dict[str, Any]]],
        real_size: int,
        imag_size: int,
        *,
        persist: Optional[Persist] = None,
    ) -> None:
        self.cfg = as_snapshot_config(cfg)
        self.real_size = int(real_size)
        self.imag_size = int(imag_size)
        self.persist = write_map if persist is None else persist
        self.num_count = 0
        self.img_count = 0
        self.saved: List[str] = []

    @property
    def num_due(self) -> bool:
        return int(self.cfg.num_freq) > 0 and self.num_count >= int(self.cfg.num_freq)

    @property
    def img_due(self) -> bool:
        return int(self.cfg.img_freq) > 0 and self.img_count >= int(self.cfg.img_freq)

    def tick(self) -> None:
        self.num_count += 1
        self.img_count += 1

    def _gather_grid(self, estimates: np.ndarray, preimage: Optional[np.ndarray], comm) -> np.ndarray:
        ests = np.asarray(estimates, dtype=np.float64)
        if preimage is not None:
            (ests,) = restore_ordering(preimage, ests)
        parts = comm.allgather(ests)
        return reshape_into_grid(self.real_size, self.imag_size, np.concatenate(parts))

    def maybe_snapshot(
        self,
        estimates: np.ndarray,
        preimage: Optional[np.ndarray],
        num_its: int,
        *,
        deflate: bool,
        comm=None,
    ) -> List[str]:
        """
        Write whichever channels are due; returns the names written.

        `estimates` are this process's per-shift estimates in working order,
        `preimage` the matching working -> original map (ignored unless deflating).
        Collective when a channel is due: every process must call it.
        """
        if self.real_size == 0 or self.imag_size == 0:
            return []
        num_save = self.num_due
        img_save = self.img_due
        if not (num_save or img_save):
            return []

        comm = COMM_SELF if comm is None else comm
        est_map = self._gather_grid(estimates, preimage if deflate else None, comm)
        root = comm.Get_rank() == 0

        written: List[str] = []
        if num_save:
            name = f"{self.cfg.num_base}-{int(num_its)}"
            if root:
                self.persist(est_map, name, self.cfg.num_format)
            written.append(name)
            self.num_count = 0
        if img_save:
            with np.errstate(divide="ignore"):
                log_map = np.log(est_map)
            name = f"{self.cfg.img_base}-{int(num_its)}"
            if root:
                self.persist(log_map, name, self.cfg.img_format, style=self.cfg.style)
            written.append(name)
            if self.cfg.discrete_style is not None:
                if root:
                    self.persist(log_map, name + "-discrete", self.cfg.img_format, style=self.cfg.discrete_style)
                written.append(name + "-discrete")
            self.img_count = 0

        self.saved.extend(written)
        return written
