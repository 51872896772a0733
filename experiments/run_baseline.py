from __future__ import annotations
from pathlib import Path
from functools import partial
import numpy as np
import scipy.linalg as sla

from pseudospec.core.config import EstimatorConfig, SnapshotConfig, WindowConfig
from pseudospec.algorithm.driver import chunked_pseudospectrum
from pseudospec.diagnostics import plot_map, save_npz, write_map


def grcar(n: int, k: int = 3) -> np.ndarray:
    """Grcar test matrix: -1 on the subdiagonal, 1 on the diagonal and k superdiagonals."""
    A = np.diag(-np.ones(n - 1), -1)
    for d in range(k + 1):
        A += np.diag(np.ones(n - d), d)
    return A


def schur_factor(A: np.ndarray) -> np.ndarray:
    T, _ = sla.schur(A.astype(np.complex128), output="complex")
    return np.triu(T)


def run_case(name: str, A: np.ndarray, window: WindowConfig, outdir: Path, variant: str = "power") -> dict[str, float]:
    outdir.mkdir(parents=True, exist_ok=True)
    T = schur_factor(A)

    cfg = EstimatorConfig(variant=variant, krylov_size=10, tol=1e-6, max_its=300, progress=True)
    snap = SnapshotConfig(num_freq=50, img_freq=50)
    persist = partial(write_map, outdir=outdir / "maps")

    res = chunked_pseudospectrum(
        T,
        window,
        2,
        2,
        cfg,
        snap,
        persist=persist,
        write_maps=True,
        manifest_path=outdir / "chunks.jsonl",
    )

    w = res.window
    extent = (
        w.center.real - 0.5 * w.real_width,
        w.center.real + 0.5 * w.real_width,
        w.center.imag - 0.5 * w.imag_width,
        w.center.imag + 0.5 * w.imag_width,
    )
    save_npz(outdir / "maps" / "global.npz", est=res.est_map, its=res.it_map, log=res.log_map)
    plot_map(res.log_map, title=f"{name}: log ||(T - zI)^-1||", path=outdir / "figs" / "logInvNormMap.png", extent=extent)
    plot_map(res.it_map, title=f"{name}: iterations", path=outdir / "figs" / "itCountMap.png", extent=extent)

    metrics = {
        "n": float(A.shape[0]),
        "max_log_norm": float(np.max(res.log_map)),
        "max_it_count": float(np.max(res.it_map)),
        "seconds": float(sum(r["seconds"] for r in res.rows)),
    }
    save_npz(outdir / "metrics.npz", **{k: np.array(v) for k, v in metrics.items()})
    return metrics


def main() -> None:
    base_out = Path("outputs")
    n = 100
    cases = {
        "grcar": (grcar(n), WindowConfig(center=1.5 + 0.0j, real_width=4.0, imag_width=6.0, real_size=60, imag_size=80)),
        "random": (np.random.default_rng(0).normal(size=(n, n)) / np.sqrt(n), WindowConfig(real_size=60, imag_size=60)),
    }

    for name, (A, window) in cases.items():
        for variant in ("power", "arnoldi"):
            outdir = base_out / f"case_{name}" / variant
            metrics = run_case(name, A, window, outdir, variant=variant)
            print(name, variant, metrics)


if __name__ == "__main__":
    main()
