# core/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

import numpy as np


VARIANTS = ("power", "arnoldi")
NUMERIC_FORMATS = ("npz", "npy", "txt", "csv")
IMAGE_FORMATS = ("png", "pdf", "svg", "jpg")


@dataclass(frozen=True)
class WindowConfig:
    """
    Rectangular window of the complex plane sampled on a realSize x imagSize grid.

    A zero width means "pick one from the matrix" (see core.window.resolve_window).
    """
    center: complex = 0j
    real_width: float = 0.0
    imag_width: float = 0.0
    real_size: int = 100
    imag_size: int = 100

    def __post_init__(self) -> None:
        if int(self.real_size) < 1 or int(self.imag_size) < 1:
            raise ValueError("WindowConfig requires real_size, imag_size >= 1.")
        if float(self.real_width) < 0.0 or float(self.imag_width) < 0.0:
            raise ValueError("WindowConfig requires non-negative widths.")

    @property
    def num_shifts(self) -> int:
        return int(self.real_size) * int(self.imag_size)

    @property
    def has_extent(self) -> bool:
        return float(self.real_width) > 0.0 and float(self.imag_width) > 0.0


@dataclass(frozen=True)
class EstimatorConfig:
    """
    Settings for the iterative resolvent-norm estimator.

    variant:
        "power"   - repeated multi-shift solves with (T - zI)^-1 and its adjoint
        "arnoldi" - restarted Krylov projection of the same operator
    krylov_size:
        basis size per shift (arnoldi only, must be >= 2)
    check_normality:
        if T is numerically normal, skip iterating and use 1/dist(z, eigs)
    """
    variant: str = "power"
    krylov_size: int = 10
    tol: float = 1e-6
    max_its: int = 200
    deflate: bool = True
    progress: bool = False
    seed: int = 0
    check_normality: bool = True

    def __post_init__(self) -> None:
        if self.variant not in VARIANTS:
            raise ValueError(f"Unknown variant '{self.variant}'. Use one of: {', '.join(VARIANTS)}.")
        if self.variant == "arnoldi" and int(self.krylov_size) < 2:
            raise ValueError("arnoldi variant requires krylov_size >= 2.")
        if int(self.max_its) < 1:
            raise ValueError("max_its must be >= 1.")
        if not np.isfinite(self.tol) or float(self.tol) < 0.0:
            raise ValueError("tol must be finite and >= 0.")
        if int(self.seed) < 0:
            raise ValueError("seed must be >= 0.")


@dataclass(frozen=True)
class ImageStyle:
    """How an image-format map is rendered. levels=None means a continuous colormap."""
    cmap: Optional[str] = None
    levels: Optional[int] = None
    dpi: int = 200


DISCRETE_GRAYSCALE = ImageStyle(cmap="gray", levels=16)


@dataclass(frozen=True)
class SnapshotConfig:
    """
    Periodic checkpointing of intermediate estimates.

    A frequency <= 0 disables that channel.
    """
    num_freq: int = 0
    num_base: str = "snap"
    num_format: str = "npz"
    img_freq: int = 0
    img_base: str = "logSnap"
    img_format: str = "png"
    style: ImageStyle = field(default_factory=ImageStyle)
    discrete_style: Optional[ImageStyle] = DISCRETE_GRAYSCALE

    def __post_init__(self) -> None:
        if self.num_format not in NUMERIC_FORMATS:
            raise ValueError(f"Unknown numerical format: {self.num_format}")
        if self.img_format not in IMAGE_FORMATS:
            raise ValueError(f"Unknown image format: {self.img_format}")

    @property
    def enabled(self) -> bool:
        return int(self.num_freq) > 0 or int(self.img_freq) > 0


def as_estimator_config(cfg: Optional[Union[EstimatorConfig, Dict[str, Any]]]) -> EstimatorConfig:
    if cfg is None:
        return EstimatorConfig()
    if isinstance(cfg, dict):
        return EstimatorConfig(**cfg)
    return cfg


def as_snapshot_config(cfg: Optional[Union[SnapshotConfig, Dict[str, Any]]]) -> SnapshotConfig:
    if cfg is None:
        return SnapshotConfig()
    if isinstance(cfg, dict):
        return SnapshotConfig(**cfg)
    return cfg


def as_window_config(cfg: Union[WindowConfig, Dict[str, Any]]) -> WindowConfig:
    if isinstance(cfg, dict):
        return WindowConfig(**cfg)
    return cfg
