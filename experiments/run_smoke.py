import numpy as np
import scipy.linalg as sla

from pseudospec.core.config import EstimatorConfig, WindowConfig
from pseudospec.core.grid import window_shifts
from pseudospec.algorithm.estimator import ShiftStatus, triangular_pseudospectrum
from pseudospec.algorithm.strategies import PowerStrategy
from pseudospec.operators.multishift import residual_norms, multishift_trsm


def main() -> None:
    rng = np.random.default_rng(0)
    A = rng.normal(size=(40, 40)) + 1j * rng.normal(size=(40, 40))
    T, _ = sla.schur(A, output="complex")
    T = np.triu(T)

    window = WindowConfig(center=0j, real_width=16.0, imag_width=16.0, real_size=20, imag_size=20)
    shifts = window_shifts(window.center, window.real_width, window.imag_width, window.real_size, window.imag_size)

    # one multi-shift solve, checked against its residual
    X = rng.normal(size=(40, shifts.size)) + 0j
    Y = multishift_trsm(T, shifts, X)
    print("trsm residual:", residual_norms(T, shifts, Y, X))

    for variant in ("power", "arnoldi"):
        cfg = EstimatorConfig(variant=variant, krylov_size=5, tol=1e-6, max_its=200, progress=True)
        res = triangular_pseudospectrum(T, shifts, cfg)
        print(
            f"{variant}: its={res.num_its} | converged={res.count(ShiftStatus.CONVERGED)} "
            f"| capped={res.count(ShiftStatus.CAPPED)} | exhausted={res.count(ShiftStatus.EXHAUSTED)} "
            f"| max log norm={np.log(res.estimates).max():.3f}"
        )

    # spot check against dense SVD
    z = shifts[0]
    smin = np.linalg.svd(T - z * np.eye(T.shape[0]), compute_uv=False)[-1]
    res = triangular_pseudospectrum(T, shifts[:1], strategy=PowerStrategy())
    print(f"z={z:.3f}: estimate {res.estimates[0]:.6e} vs 1/sigma_min {1.0 / smin:.6e}")


if __name__ == "__main__":
    main()
