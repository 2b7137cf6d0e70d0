# tests/integration/test_basin_map.py
"""
Grid driver: lattice layout, execution-order independence and rendering.
"""
from __future__ import annotations

import numpy as np
import pytest

from magbasin import (
    Attractor,
    BasinMap,
    CashKarp54,
    ClassifierConfig,
    GridSpec,
    PendulumSystem,
    basin_map,
    classify_point,
    NAN_DETECTED,
)
from magbasin.plot.basin import basin_image, color_for_code

INTEGRATOR = CashKarp54(rel_tol=1e-6, abs_tol=1e-6, max_step_size=0.1)
SHORT = ClassifierConfig(max_trials=60)


def _reference_system() -> PendulumSystem:
    return PendulumSystem(
        height=0.05,
        mass=1.0,
        gravity=9.8,
        drag=0.2,
        length=10.0,
        attractors=(
            Attractor(-0.5, 0.86602540378, 1.0),
            Attractor(-0.5, -0.86602540378, 1.0),
            Attractor(1.0, 0.0, 1.0),
        ),
    )


def test_grid_spec_layout():
    grid = GridSpec(resolution=0.5, extent=1.0)
    assert grid.dim == 2
    assert grid.shape == (4, 4)
    assert grid.n_points == 16
    np.testing.assert_array_equal(grid.indices(), [-2, -1, 0, 1])

    states = grid.initial_states()
    assert states.shape == (16, 4)
    # row (i + dim) * 2*dim + (j + dim) holds (i*res, j*res)
    i, j = 1, -2
    row = (i + 2) * 4 + (j + 2)
    np.testing.assert_array_equal(states[row], [0.5, -1.0, 0.0, 0.0])
    assert np.all(states[:, 2:] == 0.0)


def test_reference_grid_dimensions():
    grid = GridSpec(resolution=0.1, extent=7.5)
    assert grid.dim == 75
    assert grid.n_points == 150 * 150


@pytest.mark.parametrize("kwargs", [{"resolution": 0.0}, {"extent": -1.0}, {"resolution": 2.0, "extent": 1.0}])
def test_grid_spec_rejects_invalid(kwargs):
    with pytest.raises(ValueError):
        GridSpec(**kwargs)


def test_results_independent_of_execution_order():
    system = _reference_system()
    grid = GridSpec(resolution=0.5, extent=1.0)

    seq = basin_map(system, INTEGRATOR, grid, config=SHORT, jit=False, parallel_mode="none")
    thr = basin_map(system, INTEGRATOR, grid, config=SHORT, jit=False, parallel_mode="threads", max_workers=4)

    np.testing.assert_array_equal(seq.codes, thr.codes)
    np.testing.assert_array_equal(seq.times, thr.times)
    np.testing.assert_array_equal(seq.steps, thr.steps)
    np.testing.assert_array_equal(seq.status, thr.status)
    assert seq.meta["parallel_mode"] == "none"
    assert thr.meta["parallel_mode"] == "threads"


def test_grid_results_match_single_point_classification():
    system = _reference_system()
    grid = GridSpec(resolution=0.5, extent=1.0)
    basin = basin_map(system, INTEGRATOR, grid, config=SHORT, jit=False, parallel_mode="none")

    for i, j in [(-2, -2), (0, 0), (1, -1), (-1, 1)]:
        expected = classify_point(
            system, INTEGRATOR, [i * 0.5, j * 0.5, 0.0, 0.0], SHORT, jit=False
        )
        assert basin.result(i, j) == expected

    with pytest.raises(IndexError):
        basin.result(2, 0)


def test_pixels_follow_coordinate_transform_and_color_table():
    system = _reference_system()
    grid = GridSpec(resolution=0.5, extent=1.0)
    basin = basin_map(system, INTEGRATOR, grid, config=SHORT, jit=False, parallel_mode="threads")
    img = basin_image(basin)
    d = grid.dim

    assert img.shape == (2 * d + 1, 2 * d + 1, 3)
    assert img.dtype == np.uint8
    for i in range(-d, d):
        for j in range(-d, d):
            code = basin.result(i, j).converge_result
            assert tuple(img[d - j, i + d]) == color_for_code(code)
    # no lattice point maps to the top row or the right column
    assert not img[0].any()
    assert not img[:, 2 * d].any()
    np.testing.assert_array_equal(basin.to_image(), img)


def test_counts_and_meta():
    grid = GridSpec(resolution=0.5, extent=1.0)
    basin = basin_map(_reference_system(), INTEGRATOR, grid, config=SHORT, jit=False, parallel_mode="none")
    assert isinstance(basin, BasinMap)
    assert sum(basin.counts().values()) == grid.n_points
    assert basin.meta["n_points"] == grid.n_points
    assert basin.meta["jit"] is False
    assert 0.0 <= basin.converged_fraction <= 1.0


def test_points_outside_sphere_warn_and_do_not_abort():
    system = PendulumSystem(height=0.05, mass=1.0, gravity=9.8, drag=0.2, length=1.0)
    grid = GridSpec(resolution=0.5, extent=1.5)

    with pytest.warns(RuntimeWarning, match="non-finite error estimate"):
        basin = basin_map(system, INTEGRATOR, grid, config=SHORT, jit=False, parallel_mode="none")

    assert basin.status[0, 0] == NAN_DETECTED   # (-1.5, -1.5)
    assert basin.codes.shape == grid.shape


def test_unknown_parallel_mode_rejected():
    with pytest.raises(ValueError, match="parallel_mode"):
        basin_map(_reference_system(), INTEGRATOR, GridSpec(0.5, 1.0), jit=False, parallel_mode="gpu")


def test_numba_batch_matches_sequential():
    pytest.importorskip("numba")
    system = _reference_system()
    grid = GridSpec(resolution=0.5, extent=1.0)

    par = basin_map(system, INTEGRATOR, grid, config=SHORT, jit=True, parallel_mode="numba")
    seq = basin_map(system, INTEGRATOR, grid, config=SHORT, jit=True, parallel_mode="none")

    np.testing.assert_array_equal(par.codes, seq.codes)
    np.testing.assert_array_equal(par.times, seq.times)
    np.testing.assert_array_equal(par.steps, seq.steps)
    np.testing.assert_array_equal(par.status, seq.status)
