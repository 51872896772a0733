# diagnostics.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
import matplotlib as mpl
import matplotlib.pyplot as plt

from pseudospec.core.config import IMAGE_FORMATS, NUMERIC_FORMATS, ImageStyle


# -----------------------------
# I/O helpers
# -----------------------------

def save_npz(path: Path, **arrays: np.ndarray) -> None:
    """Save compressed .npz (creates parent dirs)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(path, **arrays)


def append_jsonl(path: Path, row: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(row) + "\n")


def _resolve_cmap(style: ImageStyle):
    name = style.cmap or mpl.rcParams["image.cmap"]
    cmap = mpl.colormaps[name]
    if style.levels is not None:
        cmap = cmap.resampled(int(style.levels))
    return cmap


# -----------------------------
# Plotting
# -----------------------------

def plot_map(
    grid: np.ndarray,
    *,
    title: str = "",
    path: Optional[Path] = None,
    style: Optional[ImageStyle] = None,
    extent: Optional[Tuple[float, float, float, float]] = None,
    show: bool = False,
    close: bool = True,
) -> None:
    """
    Plot a (realSize, imagSize) map with the real axis horizontal.

    Parameters
    ----------
    extent:
        [xmin, xmax, ymin, ymax] of the window in the complex plane; index
        coordinates are used when omitted.
    style:
        colormap and optional number of discrete levels; passed per call.
    show:
        If True, calls plt.show() so notebooks display inline.
    close:
        If True, closes figure (avoid piling up in long runs).
    """
    grid = np.asarray(grid)
    if grid.ndim != 2:
        raise ValueError(f"grid must be 2D (realSize, imagSize); got ndim={grid.ndim}")
    style = ImageStyle() if style is None else style

    fig, ax = plt.subplots()
    im = ax.imshow(
        grid.T,
        origin="lower",
        aspect="auto",
        cmap=_resolve_cmap(style),
        extent=extent,
    )
    fig.colorbar(im, ax=ax)
    ax.set_title(title)
    ax.set_xlabel("Re(z)" if extent is not None else "real index")
    ax.set_ylabel("Im(z)" if extent is not None else "imag index")
    fig.tight_layout()

    if path is not None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(path, dpi=int(style.dpi))

    if show:
        plt.show()

    if close:
        plt.close(fig)


# -----------------------------
# Persistence collaborator
# -----------------------------

def write_map(
    grid: np.ndarray,
    name: str,
    fmt: str,
    *,
    style: Optional[ImageStyle] = None,
    outdir: Path = Path("."),
    extent: Optional[Tuple[float, float, float, float]] = None,
) -> Path:
    """
    Default persist(grid, name, format) implementation.

    Numeric formats (npz, npy, txt, csv) store the raw grid; image formats
    (png, pdf, svg, jpg) render it with plot_map. Returns the written path.
    """
    grid = np.asarray(grid)
    outdir = Path(outdir)
    path = outdir / f"{name}.{fmt}"

    if fmt == "npz":
        save_npz(path, map=grid)
    elif fmt == "npy":
        path.parent.mkdir(parents=True, exist_ok=True)
        np.save(path, grid)
    elif fmt in ("txt", "csv"):
        path.parent.mkdir(parents=True, exist_ok=True)
        np.savetxt(path, grid, delimiter="," if fmt == "csv" else " ")
    elif fmt in IMAGE_FORMATS:
        plot_map(grid, title=name, path=path, style=style, extent=extent)
    else:
        raise ValueError(
            f"format '{fmt}' not recognized. "
            f"Use one of: {', '.join(NUMERIC_FORMATS + IMAGE_FORMATS)}."
        )
    return path
