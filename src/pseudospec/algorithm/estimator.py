# algorithm/estimator.py
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Union

import numpy as np

from pseudospec.core.comm import COMM_SELF, column_partition
from pseudospec.core.config import EstimatorConfig, as_estimator_config
from pseudospec.operators.convergence import NORM_CAP, cap_estimates, find_converged
from pseudospec.operators.multishift import as_triangular, normal_resolvent_norms, numerically_normal

from .deflation import PreimageMapping
from .snapshot import SnapshotCheckpointer
from .strategies import Strategy, make_strategy, starting_vectors


class ShiftStatus(IntEnum):
    ACTIVE = 0
    CONVERGED = 1
    CAPPED = 2
    EXHAUSTED = 3


# One record per shift, stored contiguously and indexed by working position.
SHIFT_STATE_DTYPE = np.dtype(
    [
        ("shift", np.complex128),
        ("global_index", np.int64),
        ("estimate", np.float64),
        ("last_estimate", np.float64),
        ("it_count", np.int64),
        ("status", np.int8),
    ]
)


@dataclass
class EstimatorResult:
    """
    Per-shift outputs in original shift order.

    estimates: resolvent-norm estimates (capped at NORM_CAP, never NaN)
    it_counts: iterations spent before convergence (<= max_its)
    status:    ShiftStatus codes
    num_its:   outer iterations performed
    """
    shifts: np.ndarray
    estimates: np.ndarray
    it_counts: np.ndarray
    status: np.ndarray
    num_its: int
    snapshots: List[str] = field(default_factory=list)
    history: Dict[str, List[float]] = field(default_factory=dict)

    def count(self, status: ShiftStatus) -> int:
        return int(np.count_nonzero(self.status == int(status)))


def init_shift_states(shifts: np.ndarray, global_index: np.ndarray) -> np.ndarray:
    state = np.zeros(np.asarray(shifts).size, dtype=SHIFT_STATE_DTYPE)
    state["shift"] = shifts
    state["global_index"] = global_index
    state["status"] = ShiftStatus.ACTIVE
    return state


def _advance(
    state: np.ndarray,
    estimates: np.ndarray,
    tol: float,
    max_its: int,
) -> None:
    """
    Record one step's estimates and move shifts through
        ACTIVE -> {CONVERGED, CAPPED, EXHAUSTED}.

    Only ACTIVE records change: shifts that already finished keep the value
    of the step that decided them, whether or not they are still iterated.
    """
    live = state["status"] == ShiftStatus.ACTIVE
    converged = find_converged(state["last_estimate"], estimates, tol)

    state["estimate"][live] = estimates[live]
    state["last_estimate"][live] = estimates[live]

    grow = live & ~converged
    state["it_count"][grow] += 1

    capped = live & (estimates >= NORM_CAP)
    state["status"][live & converged & ~capped] = ShiftStatus.CONVERGED
    state["status"][capped] = ShiftStatus.CAPPED
    state["status"][grow & (state["it_count"] >= int(max_its))] = ShiftStatus.EXHAUSTED


def _gather(local: np.ndarray, comm) -> np.ndarray:
    parts = comm.allgather(local)
    return np.concatenate(parts) if len(parts) > 1 else parts[0]


def _result_from_state(state: np.ndarray, num_its: int, snapshots, history) -> EstimatorResult:
    return EstimatorResult(
        shifts=state["shift"].copy(),
        estimates=state["estimate"].copy(),
        it_counts=state["it_count"].copy(),
        status=state["status"].copy(),
        num_its=int(num_its),
        snapshots=list(snapshots),
        history=history,
    )


def triangular_pseudospectrum(
    T: np.ndarray,
    shifts: np.ndarray,
    cfg: Optional[Union[EstimatorConfig, Dict[str, Any]]] = None,
    *,
    global_index: Optional[np.ndarray] = None,
    snapshot: Optional[SnapshotCheckpointer] = None,
    comm=None,
    strategy: Optional[Strategy] = None,
) -> EstimatorResult:
    """
    Estimate ||(T - zI)^-1||_2 for every shift z of one chunk.

    All still-active shifts advance together, one batched multi-shift solve
    per outer iteration. Shifts whose estimate settles (relative change
    <= tol), hits the norm cap, or runs out of iterations leave the active
    set; with cfg.deflate they are also removed from the batch.

    Parameters
    ----------
    T:
        (n, n) upper-triangular Schur factor, never modified
    shifts:
        (m,) complex sample points, in the chunk's original order
    cfg:
        EstimatorConfig or dict
    global_index:
        position of each shift in the unchunked ordering; seeds its random
        vectors (defaults to 0..m-1)
    snapshot:
        optional checkpointer ticked after every outer iteration
    comm:
        communicator over which the shifts are split in contiguous slices
        (mpi4py-compatible; serial by default). Collective.
    strategy:
        update rule; built from cfg.variant when omitted

    Returns
    -------
    EstimatorResult in original shift order (full chunk on every process).
    """
    cfg = as_estimator_config(cfg)
    T = as_triangular(T)
    n = T.shape[0]
    if n == 0:
        raise ValueError("T must have at least one row")

    shifts = np.asarray(shifts, dtype=np.complex128).reshape(-1)
    m = shifts.size
    if global_index is None:
        global_index = np.arange(m, dtype=np.int64)
    global_index = np.asarray(global_index, dtype=np.int64).reshape(-1)
    if global_index.size != m:
        raise ValueError(f"global_index has {global_index.size} entries for {m} shifts")

    comm = COMM_SELF if comm is None else comm
    rank = int(comm.Get_rank())
    part = column_partition(m, int(comm.Get_size()), rank)
    verbose = bool(cfg.progress) and rank == 0

    state = init_shift_states(shifts[part], global_index[part])
    history: Dict[str, List[float]] = {"num_active": [], "elapsed": []}
    t0 = time.perf_counter()

    if cfg.check_normality and numerically_normal(T, cfg.tol):
        if verbose:
            print("  T is numerically normal: using exact distances to the eigenvalues")
        ests = normal_resolvent_norms(T, state["shift"])
        state["estimate"] = ests
        state["status"] = np.where(ests >= NORM_CAP, ShiftStatus.CAPPED, ShiftStatus.CONVERGED)
        return _result_from_state(_gather(state, comm), 0, [], history)

    if strategy is None:
        strategy = make_strategy(cfg)

    X = starting_vectors(n, state["global_index"], seed=cfg.seed)
    mapping = PreimageMapping(state.size)
    num_its = 0

    for it in range(1, int(cfg.max_its) + 1):
        na = mapping.num_active
        if na > 0:
            active = state[:na]
            ests, X_next = strategy.step(
                T,
                active["shift"],
                X[:, :na],
                global_index=active["global_index"],
                seed=int(cfg.seed),
                iteration=it,
            )
            X[:, :na] = X_next
            _advance(active, cap_estimates(ests), cfg.tol, cfg.max_its)

            if cfg.deflate:
                mapping.deflate(active["status"] != ShiftStatus.ACTIVE, state, X)

        num_its = it
        if cfg.deflate:
            local_active = mapping.num_active
        else:
            local_active = int(np.count_nonzero(state["status"] == ShiftStatus.ACTIVE))
        global_active = int(comm.allreduce(local_active))

        elapsed = time.perf_counter() - t0
        history["num_active"].append(float(global_active))
        history["elapsed"].append(float(elapsed))
        if verbose:
            print(f"  iteration {it:4d} | {global_active:6d}/{m} shifts active | {elapsed:.2f}s")

        if snapshot is not None:
            snapshot.tick()
            snapshot.maybe_snapshot(state["estimate"], mapping.preimage, it, deflate=cfg.deflate, comm=comm)

        if global_active == 0:
            break

    (restored,) = mapping.restore(state)
    snapshots = snapshot.saved if snapshot is not None else []
    return _result_from_state(_gather(restored, comm), num_its, snapshots, history)
