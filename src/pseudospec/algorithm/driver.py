# algorithm/driver.py
from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
from tqdm import tqdm

from pseudospec.core.chunking import ChunkSpec, chunk_window
from pseudospec.core.comm import COMM_SELF
from pseudospec.core.config import (
    EstimatorConfig,
    SnapshotConfig,
    WindowConfig,
    as_estimator_config,
    as_snapshot_config,
)
from pseudospec.core.grid import assemble_chunk
from pseudospec.core.window import resolve_window
from pseudospec.diagnostics import append_jsonl, write_map

from .estimator import ShiftStatus, triangular_pseudospectrum
from .snapshot import Persist, SnapshotCheckpointer
from .strategies import Strategy


@dataclass
class ChunkedResult:
    """
    Global (realSize, imagSize) maps of a whole window plus one summary row per chunk.
    """
    window: WindowConfig
    est_map: np.ndarray
    it_map: np.ndarray
    log_map: np.ndarray
    chunks: List[ChunkSpec]
    rows: List[Dict[str, Any]] = field(default_factory=list)
    snapshots: List[str] = field(default_factory=list)


def _write_chunk_maps(
    persist: Persist,
    snap_cfg: SnapshotConfig,
    tag: str,
    est_grid: np.ndarray,
    it_grid: np.ndarray,
) -> None:
    with np.errstate(divide="ignore"):
        log_grid = np.log(est_grid)
    persist(est_grid, f"invNormMap{tag}", snap_cfg.num_format)
    persist(it_grid, f"itCountMap{tag}", snap_cfg.num_format)
    persist(log_grid, f"logInvNormMap{tag}", snap_cfg.img_format, style=snap_cfg.style)
    if snap_cfg.discrete_style is not None:
        persist(log_grid, f"discreteLogInvNormMap{tag}", snap_cfg.img_format, style=snap_cfg.discrete_style)


def chunked_pseudospectrum(
    T: np.ndarray,
    window: Union[WindowConfig, Dict[str, Any]],
    num_real: int = 1,
    num_imag: int = 1,
    cfg: Optional[Union[EstimatorConfig, Dict[str, Any]]] = None,
    snapshot: Optional[Union[SnapshotConfig, Dict[str, Any]]] = None,
    *,
    persist: Optional[Persist] = None,
    write_maps: bool = False,
    manifest_path: Optional[Path] = None,
    comm=None,
    strategy: Optional[Strategy] = None,
) -> ChunkedResult:
    """
    Estimate the pseudospectrum of T over a window, one chunk at a time.

    Parameters
    ----------
    window:
        WindowConfig or dict; zero widths are replaced by an automatic choice
    num_real, num_imag:
        number of chunks along each axis (each in [1, size])
    snapshot:
        periodic checkpointing of every chunk; base names get the chunk tag
        "_{rc}_{ic}" appended. Its formats and styles are also used for the
        per-chunk maps when write_maps is set.
    persist:
        persist(grid, name, fmt, *, style=None); defaults to diagnostics.write_map
    write_maps:
        hand invNormMap, itCountMap, logInvNormMap and discreteLogInvNormMap
        of every chunk to `persist` (rank 0 only)
    manifest_path:
        optional JSON-lines file receiving one summary row per chunk

    Returns
    -------
    ChunkedResult with estimate, iteration-count and log maps.
    """
    cfg = as_estimator_config(cfg)
    snap_cfg = as_snapshot_config(snapshot)
    comm = COMM_SELF if comm is None else comm
    root = int(comm.Get_rank()) == 0
    verbose = bool(cfg.progress) and root

    if persist is None:
        persist = write_map

    window = resolve_window(window, T, verbose=verbose)
    chunks = chunk_window(window, num_real, num_imag)

    est_map = np.zeros((int(window.real_size), int(window.imag_size)), dtype=np.float64)
    it_map = np.zeros((int(window.real_size), int(window.imag_size)), dtype=np.int64)
    rows: List[Dict[str, Any]] = []
    snapshots: List[str] = []

    t_all0 = time.perf_counter()
    for chunk in tqdm(chunks, desc="Chunks", disable=not verbose):
        if verbose:
            c = complex(chunk.center)
            print(f"Starting computation for chunk centered at {c.real:g}{c.imag:+g}i")

        checkpointer = None
        if snap_cfg.enabled:
            checkpointer = SnapshotCheckpointer(
                replace(
                    snap_cfg,
                    num_base=snap_cfg.num_base + chunk.tag,
                    img_base=snap_cfg.img_base + chunk.tag,
                ),
                chunk.real_size,
                chunk.imag_size,
                persist=persist,
            )

        comm.Barrier()
        t0 = time.perf_counter()
        res = triangular_pseudospectrum(
            T,
            chunk.shifts(),
            cfg,
            global_index=chunk.global_index(),
            snapshot=checkpointer,
            comm=comm,
            strategy=strategy,
        )
        seconds = time.perf_counter() - t0

        est_grid = assemble_chunk(est_map, res.estimates, chunk.chunk_slices)
        it_grid = assemble_chunk(it_map, res.it_counts, chunk.chunk_slices)
        snapshots.extend(res.snapshots)

        max_its = int(res.it_counts.max()) if res.it_counts.size else 0
        if verbose:
            print(f"  num seconds={seconds:.3f}")
            print(f"  num iterations={max_its}")

        if write_maps and root:
            _write_chunk_maps(persist, snap_cfg, chunk.tag, est_grid, it_grid)

        row = {
            "chunk": chunk.tag,
            "center": [float(chunk.center.real), float(chunk.center.imag)],
            "real_size": int(chunk.real_size),
            "imag_size": int(chunk.imag_size),
            "seconds": float(seconds),
            "num_its": int(res.num_its),
            "max_it_count": max_its,
            "converged": res.count(ShiftStatus.CONVERGED),
            "capped": res.count(ShiftStatus.CAPPED),
            "exhausted": res.count(ShiftStatus.EXHAUSTED),
        }
        rows.append(row)
        if manifest_path is not None and root:
            append_jsonl(Path(manifest_path), row)

    with np.errstate(divide="ignore"):
        log_map = np.log(est_map)

    if verbose:
        tot = time.perf_counter() - t_all0
        print(f"✅ Done {len(chunks)} chunk(s), {window.num_shifts} shifts in {tot:.1f}s")

    return ChunkedResult(
        window=window,
        est_map=est_map,
        it_map=it_map,
        log_map=log_map,
        chunks=chunks,
        rows=rows,
        snapshots=snapshots,
    )
