import numpy as np
import pytest

from pseudospec.operators.convergence import NORM_CAP, cap_estimates, is_converged, find_converged


def test_norm_cap_is_inverse_epsilon():
    assert NORM_CAP == pytest.approx(1.0 / np.finfo(np.float64).eps)


def test_is_converged_relative_change():
    assert is_converged(1.0, 1.0 + 1e-8, 1e-6)
    assert not is_converged(1.0, 1.1, 1e-6)
    assert not is_converged(0.0, 5.0, 1e-6)


def test_zero_estimate_never_converges():
    assert not is_converged(0.0, 0.0, 1e-6)
    assert not is_converged(1.0, 0.0, 1.0)


def test_capped_estimate_converges():
    assert is_converged(0.0, NORM_CAP, 0.0)
    assert is_converged(3.0, 2 * NORM_CAP, 1e-12)


def test_find_converged_matches_scalar():
    last = np.array([0.0, 1.0, 2.0, 0.0, 7.0, NORM_CAP])
    curr = np.array([0.0, 1.0 + 1e-9, 2.5, NORM_CAP, 7.0, NORM_CAP])
    mask = find_converged(last, curr, 1e-6)
    expected = [is_converged(a, b, 1e-6) for a, b in zip(last, curr)]
    assert mask.tolist() == expected


def test_find_converged_shape_mismatch():
    with pytest.raises(ValueError):
        find_converged(np.zeros(3), np.zeros(4), 1e-6)


def test_cap_estimates_maps_nan_and_inf():
    ests = np.array([1.0, np.nan, np.inf, 2 * NORM_CAP, 3.0])
    capped = cap_estimates(ests)
    np.testing.assert_array_equal(capped, [1.0, NORM_CAP, NORM_CAP, NORM_CAP, 3.0])
    assert np.isnan(ests[1])


def test_capping_is_monotone():
    last = NORM_CAP
    for curr in (NORM_CAP, np.inf, np.nan):
        curr = cap_estimates(np.array([curr]))[0]
        assert curr == NORM_CAP
        assert is_converged(last, curr, 1e-6)
        last = curr
