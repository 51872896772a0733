import numpy as np

import pseudospec
from pseudospec import EstimatorConfig, WindowConfig, chunked_pseudospectrum, triangular_pseudospectrum


def test_public_api_runs():
    T = np.triu(np.ones((4, 4))) + np.diag([0.0, 1.0, 2.0, 3.0])
    res = triangular_pseudospectrum(T, np.array([0.5 + 0.5j, 2.5 - 0.5j]))
    assert res.estimates.shape == (2,)
    assert np.all(np.isfinite(res.estimates))
    assert pseudospec.__version__


def test_chunked_smoke():
    T = np.triu(np.ones((3, 3)))
    window = WindowConfig(center=1.0, real_width=2.0, imag_width=2.0, real_size=3, imag_size=4)
    res = chunked_pseudospectrum(T, window, 1, 2, EstimatorConfig(max_its=20))
    assert res.est_map.shape == (3, 4)
    assert res.it_map.dtype.kind == "i"
    assert np.all(res.est_map > 0)
