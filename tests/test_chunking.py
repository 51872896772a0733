import numpy as np
import pytest

from pseudospec.core.config import WindowConfig
from pseudospec.core.chunking import block_sizes, chunk_window
from pseudospec.core.grid import window_shifts, global_indices, assemble_chunk, reshape_into_grid


def test_block_sizes_sum_to_total():
    for total in (1, 2, 7, 10, 33):
        for k in range(1, total + 1):
            sizes = block_sizes(total, k)
            assert len(sizes) == k
            assert sum(sizes) == total
            assert all(s == total // k for s in sizes[:-1])


def test_block_sizes_last_absorbs_remainder():
    assert block_sizes(10, 3) == [3, 3, 4]
    assert block_sizes(7, 7) == [1] * 7
    assert block_sizes(5, 1) == [5]


def test_block_sizes_rejects_bad_counts():
    with pytest.raises(ValueError):
        block_sizes(5, 0)
    with pytest.raises(ValueError):
        block_sizes(5, 6)


def test_chunks_tile_the_window():
    window = WindowConfig(center=1.0 + 0.5j, real_width=4.0, imag_width=2.0, real_size=10, imag_size=7)
    chunks = chunk_window(window, 3, 2)
    assert len(chunks) == 6
    assert [c.tag for c in chunks[:3]] == ["_0_0", "_0_1", "_1_0"]

    cover = np.zeros((10, 7), dtype=int)
    for c in chunks:
        si, sj = c.chunk_slices
        cover[si, sj] += 1
    assert np.all(cover == 1)
    assert sum(c.num_shifts for c in chunks) == window.num_shifts


def test_chunk_shifts_match_full_window():
    window = WindowConfig(center=-0.3 + 0.2j, real_width=3.0, imag_width=1.5, real_size=9, imag_size=5)
    full = window_shifts(window.center, window.real_width, window.imag_width, window.real_size, window.imag_size)

    for c in chunk_window(window, 2, 3):
        gid = c.global_index()
        np.testing.assert_allclose(c.shifts(), full[gid], rtol=0, atol=1e-12)


def test_global_indices_row_major():
    gid = global_indices(1, 2, 2, 3, 6)
    assert gid.tolist() == [8, 9, 10, 14, 15, 16]


def test_assemble_chunk_writes_slot_only():
    global_map = np.zeros((4, 5))
    local = np.arange(6, dtype=float)
    view = assemble_chunk(global_map, local, (slice(1, 3), slice(2, 5)))

    assert view.shape == (2, 3)
    np.testing.assert_array_equal(global_map[1:3, 2:5], reshape_into_grid(2, 3, local))
    assert global_map.sum() == local.sum()
    np.testing.assert_array_equal(global_map[1:3, 2:5], view)


def test_assemble_chunk_shape_mismatch():
    global_map = np.zeros((4, 5))
    with pytest.raises(ValueError):
        assemble_chunk(global_map, np.zeros(5), (slice(0, 2), slice(0, 3)))
    with pytest.raises(ValueError):
        assemble_chunk(global_map, np.zeros((3, 2)), (slice(0, 2), slice(0, 3)))
