import threading
from dataclasses import dataclass

import numpy as np
import pytest

from pseudospec.algorithm.estimator import ShiftStatus, triangular_pseudospectrum
from pseudospec.algorithm.strategies import ArnoldiStrategy
from pseudospec.core.comm import column_partition
from pseudospec.core.config import EstimatorConfig, WindowConfig
from pseudospec.core.grid import window_shifts
from pseudospec.operators.columns import gaussian_columns
from pseudospec.operators.convergence import NORM_CAP
from pseudospec.operators.multishift import eigen_distances


EIGS = np.array([1.0, 2.0, 1.0j, 2.0 + 1.0j])


def _scenario_a_shifts():
    window = WindowConfig(center=1.5 + 0.5j, real_width=1.7, imag_width=1.7, real_size=8, imag_size=8)
    return window_shifts(window.center, window.real_width, window.imag_width, window.real_size, window.imag_size)


def _nonnormal(n=6, seed=0):
    rng = np.random.default_rng(seed)
    T = np.triu(rng.normal(size=(n, n)) + 1j * rng.normal(size=(n, n)), 1)
    return T + np.diag(np.arange(n) * (0.5 + 0.25j))


def test_scenario_a_diagonal_matrix():
    T = np.diag(EIGS)
    shifts = _scenario_a_shifts()
    cfg = EstimatorConfig(variant="power", tol=1e-6, max_its=50, check_normality=False)

    res = triangular_pseudospectrum(T, shifts, cfg)
    dist, _ = eigen_distances(T, shifts)

    assert res.estimates.shape == (64,)
    assert np.all(np.isfinite(res.estimates))
    assert np.all(res.it_counts <= 50)
    assert np.median(res.it_counts) <= 40
    np.testing.assert_allclose(res.estimates, 1.0 / dist, rtol=2e-2)


def test_scenario_a_arnoldi():
    T = np.diag(EIGS)
    shifts = _scenario_a_shifts()
    cfg = EstimatorConfig(variant="arnoldi", krylov_size=3, tol=1e-6, max_its=50, check_normality=False)

    res = triangular_pseudospectrum(T, shifts, cfg)
    dist, _ = eigen_distances(T, shifts)
    assert np.all(res.it_counts <= 50)
    np.testing.assert_allclose(res.estimates, 1.0 / dist, rtol=2e-2)


def test_normal_shortcut_skips_iteration():
    T = np.diag(EIGS)
    shifts = _scenario_a_shifts()
    res = triangular_pseudospectrum(T, shifts, {"max_its": 50})
    dist, _ = eigen_distances(T, shifts)

    assert res.num_its == 0
    assert np.all(res.it_counts == 0)
    np.testing.assert_allclose(res.estimates, 1.0 / dist, rtol=1e-12)


def _inv_smin(T, z):
    return 1.0 / np.linalg.svd(T - z * np.eye(T.shape[0]), compute_uv=False)[-1]


@pytest.mark.parametrize("variant, n, rel", [("power", 5, 1e-3), ("arnoldi", 5, 1e-6), ("arnoldi", 4, 1e-6)])
def test_nonnormal_matches_dense_svd(variant, n, rel):
    # default krylov_size (10) exceeds n: the Krylov space is exhausted every step
    T = _nonnormal(n, seed=2)
    shifts = np.array([0.3 + 0.1j, -1.0 + 0.5j, 1.2 - 0.4j])
    res = triangular_pseudospectrum(T, shifts, EstimatorConfig(variant=variant, tol=1e-10, max_its=500))

    if variant == "arnoldi":
        assert np.all(res.status == ShiftStatus.CONVERGED)
    for z, est in zip(shifts, res.estimates):
        assert est == pytest.approx(_inv_smin(T, z), rel=rel)


def test_arnoldi_repeated_eigenvalues():
    T = np.diag(np.repeat(EIGS, 5))
    shifts = np.array([1.3 + 0.2j, 0.4 + 0.6j, 1.8 + 0.9j])
    cfg = EstimatorConfig(variant="arnoldi", krylov_size=10, tol=1e-10, max_its=100, check_normality=False)

    res = triangular_pseudospectrum(T, shifts, cfg)
    dist, _ = eigen_distances(T, shifts)

    assert np.all(res.status == ShiftStatus.CONVERGED)
    np.testing.assert_allclose(res.estimates, 1.0 / dist, rtol=1e-6)


@pytest.mark.parametrize("n, krylov_size", [(3, 5), (4, 10), (8, 10), (12, 10)])
def test_arnoldi_ritz_values_never_exceed_true_norm(n, krylov_size):
    T = _nonnormal(n, seed=7)
    shifts = np.array([0.2 - 0.3j, 1.1 + 0.4j, -0.5 + 0.1j])
    X = gaussian_columns(n, np.arange(3), seed=1)

    ests, X_next = ArnoldiStrategy(krylov_size=krylov_size).step(
        T, shifts, X, global_index=np.arange(3), seed=1, iteration=1
    )
    ref = np.array([_inv_smin(T, z) for z in shifts])
    assert np.all(ests <= ref * (1.0 + 1e-8))
    np.testing.assert_allclose(np.linalg.norm(X_next, axis=0), 1.0, rtol=1e-12)
    if krylov_size >= n:
        np.testing.assert_allclose(ests, ref, rtol=1e-8)


@pytest.mark.parametrize("variant", ["power", "arnoldi"])
def test_scenario_c_shift_on_eigenvalue(variant):
    T = np.array([[1.0, 2.0, 0.5], [0.0, 2.0, 1.0], [0.0, 0.0, 3.0]])
    shifts = np.array([2.0, 0.5 + 0.5j, 1.0])
    cfg = EstimatorConfig(variant=variant, krylov_size=2, max_its=40)

    res = triangular_pseudospectrum(T, shifts, cfg)

    assert np.all(np.isfinite(res.estimates))
    assert res.estimates[0] == NORM_CAP
    assert res.estimates[2] == NORM_CAP
    assert res.status[0] == ShiftStatus.CAPPED
    assert res.it_counts[0] == 0
    assert res.estimates[1] < NORM_CAP


def test_iteration_counts_bounded_by_max_its():
    T = _nonnormal(6, seed=1)
    shifts = window_shifts(1.0 + 0.5j, 3.0, 2.0, 4, 4)
    res = triangular_pseudospectrum(T, shifts, EstimatorConfig(tol=0.0, max_its=7))

    assert res.num_its <= 7
    assert np.all(res.it_counts <= 7)
    exhausted = res.status == ShiftStatus.EXHAUSTED
    assert np.all(res.it_counts[exhausted] == 7)


@pytest.mark.parametrize("variant", ["power", "arnoldi"])
def test_deflation_does_not_change_results(variant):
    T = _nonnormal(6, seed=3)
    shifts = window_shifts(1.0 + 0.5j, 4.0, 3.0, 5, 5)
    base = dict(variant=variant, krylov_size=3, tol=1e-8, max_its=60, seed=11)

    on = triangular_pseudospectrum(T, shifts, EstimatorConfig(deflate=True, **base))
    off = triangular_pseudospectrum(T, shifts, EstimatorConfig(deflate=False, **base))

    np.testing.assert_allclose(on.estimates, off.estimates, rtol=1e-9)
    np.testing.assert_array_equal(on.it_counts, off.it_counts)
    np.testing.assert_array_equal(on.status, off.status)
    np.testing.assert_array_equal(on.shifts, shifts)


def test_active_set_never_grows():
    T = _nonnormal(6, seed=4)
    shifts = window_shifts(0.5 + 0.5j, 3.0, 3.0, 4, 5)
    res = triangular_pseudospectrum(T, shifts, EstimatorConfig(tol=1e-6, max_its=80))

    active = res.history["num_active"]
    assert len(active) == res.num_its
    assert all(a >= b for a, b in zip(active, active[1:]))
    if res.num_its < 80:
        assert active[-1] == 0


def test_global_index_seeds_are_layout_independent():
    T = _nonnormal(5, seed=5)
    shifts = window_shifts(0.0, 2.0, 2.0, 3, 3)
    cfg = EstimatorConfig(tol=1e-8, max_its=40)

    full = triangular_pseudospectrum(T, shifts, cfg)
    part = triangular_pseudospectrum(T, shifts[4:], cfg, global_index=np.arange(4, 9))
    np.testing.assert_allclose(part.estimates, full.estimates[4:], rtol=1e-12)
    np.testing.assert_array_equal(part.it_counts, full.it_counts[4:])


def test_bad_inputs_raise():
    T = _nonnormal(4)
    with pytest.raises(ValueError):
        triangular_pseudospectrum(np.ones((4, 4)), [0.0])
    with pytest.raises(ValueError):
        triangular_pseudospectrum(T, [0.0, 1.0], global_index=[0])
    with pytest.raises(ValueError):
        triangular_pseudospectrum(T, [0.0], {"variant": "lanczos"})
    with pytest.raises(ValueError):
        EstimatorConfig(variant="arnoldi", krylov_size=1)
    with pytest.raises(ValueError):
        EstimatorConfig(max_its=0)


# -----------------------------
# Several processes, emulated with threads
# -----------------------------

class ThreadComm:
    """Thread-backed stand-in exposing the mpi4py collectives the estimator uses."""

    def __init__(self, rank, shared):
        self.rank = rank
        self.shared = shared

    def Get_rank(self):
        return self.rank

    def Get_size(self):
        return len(self.shared["slots"])

    def Barrier(self):
        self.shared["barrier"].wait()

    def allgather(self, value):
        self.shared["slots"][self.rank] = value
        self.Barrier()
        out = list(self.shared["slots"])
        self.Barrier()
        return out

    def allreduce(self, value):
        return sum(self.allgather(value))


def _run_threaded(size, fn):
    shared = {"slots": [None] * size, "barrier": threading.Barrier(size, timeout=60)}
    results = [None] * size
    errors = []

    def worker(rank):
        try:
            results[rank] = fn(ThreadComm(rank, shared))
        except Exception as exc:
            errors.append(exc)
            shared["barrier"].abort()

    threads = [threading.Thread(target=worker, args=(r,)) for r in range(size)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    if errors:
        raise errors[0]
    return results


def test_distributed_matches_serial():
    T = _nonnormal(6, seed=6)
    shifts = window_shifts(1.0 + 0.5j, 4.0, 3.0, 4, 5)
    cfg = EstimatorConfig(tol=1e-8, max_its=60)

    serial = triangular_pseudospectrum(T, shifts, cfg)
    results = _run_threaded(3, lambda comm: triangular_pseudospectrum(T, shifts, cfg, comm=comm))

    for res in results:
        np.testing.assert_allclose(res.estimates, serial.estimates, rtol=1e-12)
        np.testing.assert_array_equal(res.it_counts, serial.it_counts)
        assert res.num_its == serial.num_its


def test_column_partition_is_contiguous_cover():
    owned = [column_partition(11, 4, r) for r in range(4)]
    assert [s.stop - s.start for s in owned] == [3, 3, 3, 2]
    assert owned[0].start == 0 and owned[-1].stop == 11
    assert all(a.stop == b.start for a, b in zip(owned, owned[1:]))
