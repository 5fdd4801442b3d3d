import math
import random

import numpy as np
import pytest

from relxill.relutility import (
    RelxillError,
    binary_search,
    do_not_normalize_relline,
    get_fine_radial_grid,
    get_ipol_factor,
    get_ipol_factor_radius,
    get_lin_grid,
    get_log_grid,
    get_nthcomp_param,
    get_rzone_grid,
    gstar2ener,
    interp_lin_1d,
    interp_lin_2d,
    interp_log_1d,
    inv_binary_search,
    is_debug_run,
    relxill_table_path,
    should_aux_info_be_printed,
    should_outfiles_be_written,
    trapez_integ_single,
    trapez_integ_single_rad_ascending,
)


def test_interp_lin_1d_endpoints():
    assert interp_lin_1d(0.0, 2.0, 7.0) == pytest.approx(2.0)
    assert interp_lin_1d(1.0, 2.0, 7.0) == pytest.approx(7.0)


def test_interp_lin_1d_is_between():
    value = interp_lin_1d(0.3, 2.0, 7.0)
    assert 2.0 < value < 7.0


def test_interp_log_1d():
    assert interp_log_1d(0.5, 1.0, 100.0) == pytest.approx(10.0)
    assert interp_log_1d(0.0, 3.0, 50.0) == pytest.approx(3.0)
    assert interp_log_1d(1.0, 3.0, 50.0) == pytest.approx(50.0)


def test_interp_lin_2d_corners():
    corners = (1.0, 2.0, 3.0, 4.0)
    assert interp_lin_2d(0.0, 0.0, *corners) == pytest.approx(1.0)
    assert interp_lin_2d(1.0, 0.0, *corners) == pytest.approx(2.0)
    assert interp_lin_2d(0.0, 1.0, *corners) == pytest.approx(3.0)
    assert interp_lin_2d(1.0, 1.0, *corners) == pytest.approx(4.0)


def test_binary_search_inside_and_outside():
    arr = [0.0, 1.0, 2.0, 3.0]
    assert binary_search(arr, 1.5) == 1
    assert binary_search(arr, -5.0) == 0
    assert binary_search(arr, 10.0) == len(arr) - 2


def test_binary_search_too_short():
    assert binary_search([1.0], 1.0) == -1
    assert inv_binary_search([], 1.0) == -1


def test_binary_search_invariant():
    rng = random.Random(3)
    arr = sorted(rng.uniform(0, 100) for _ in range(40))
    for _ in range(200):
        val = rng.uniform(arr[0], arr[-1])
        k = binary_search(arr, val)
        assert arr[k] <= val
        assert val < arr[k + 1] or k == len(arr) - 2


def test_inv_binary_search_invariant():
    rng = random.Random(5)
    arr = sorted((rng.uniform(0, 100) for _ in range(40)), reverse=True)
    for _ in range(200):
        val = rng.uniform(arr[-1], arr[0])
        k = inv_binary_search(arr, val)
        assert arr[k] >= val
        assert val > arr[k + 1] or k == len(arr) - 2


def test_inv_binary_search_outside():
    arr = [3.0, 2.0, 1.0, 0.0]
    assert inv_binary_search(arr, 10.0) == 0
    assert inv_binary_search(arr, -10.0) == len(arr) - 2


def test_trapez_ascending_covers_disk():
    re = get_lin_grid(50, 2.0, 20.0)
    total = sum(trapez_integ_single_rad_ascending(re, ii) for ii in range(len(re)))
    assert total == pytest.approx(math.pi * (20.0 ** 2 - 2.0 ** 2) / 2.0)


def test_trapez_descending_matches_ascending():
    re = get_log_grid(30, 1.5, 400.0)
    rev = re[::-1]
    for ii in range(len(re)):
        assert trapez_integ_single(rev, len(re) - 1 - ii) == pytest.approx(
            trapez_integ_single_rad_ascending(re, ii)
        )


def test_gstar2ener_limits():
    assert gstar2ener(0.0, 0.6, 1.3, 6.4) == pytest.approx(0.6 * 6.4)
    assert gstar2ener(1.0, 0.6, 1.3, 6.4) == pytest.approx(1.3 * 6.4)


def test_log_grid_properties():
    grid = get_log_grid(11, 0.1, 1000.0)
    assert len(grid) == 11
    assert grid[0] == pytest.approx(0.1)
    assert grid[-1] == pytest.approx(1000.0)
    ratios = grid[1:] / grid[:-1]
    assert np.allclose(ratios, ratios[0])


def test_lin_grid_properties():
    grid = get_lin_grid(9, -2.0, 6.0)
    assert grid[0] == pytest.approx(-2.0)
    assert grid[-1] == pytest.approx(6.0)
    assert np.allclose(np.diff(grid), np.diff(grid)[0])


def test_rzone_grid_single_zone():
    assert list(get_rzone_grid(1.5, 400.0, 1, 3.0)) == [1.5, 400.0]


@pytest.mark.parametrize("h", [1.0, 3.0, 10.0, 100.0])
def test_rzone_grid_bounds_and_order(h):
    grid = get_rzone_grid(1.5, 400.0, 20, h)
    assert len(grid) == 21
    assert grid[0] == pytest.approx(1.5)
    assert grid[-1] == pytest.approx(400.0)
    assert np.all(np.diff(grid) > 0)


def test_rzone_grid_rejects_no_zones():
    with pytest.raises(RelxillError):
        get_rzone_grid(1.5, 400.0, 0, 3.0)


def test_fine_radial_grid():
    grid = get_fine_radial_grid(1.5, 1000.0, 100)
    assert len(grid) == 100
    assert grid[0] == pytest.approx(1000.0)
    assert grid[-1] == pytest.approx(1.5)
    assert np.all(np.diff(grid) < 0)


def test_fine_radial_grid_below_one_raises():
    with pytest.raises(RelxillError):
        get_fine_radial_grid(0.5, 1000.0, 10)


@pytest.mark.parametrize("del_inci", [0.2, 1.5])
def test_ipol_factor_radius_endpoints(del_inci):
    assert get_ipol_factor_radius(2.0, 5.0, del_inci, 2.0) == pytest.approx(0.0)
    assert get_ipol_factor_radius(2.0, 5.0, del_inci, 5.0) == pytest.approx(1.0)


def test_ipol_factor():
    arr = [0.0, 1.0, 2.0, 4.0]
    ind, ifac = get_ipol_factor(3.0, arr)
    assert ind == 2
    assert ifac == pytest.approx(0.5)
    ind, ifac = get_ipol_factor(1.0, arr)
    assert ind == 1
    assert ifac == pytest.approx(0.0)


def test_ipol_factor_too_short():
    with pytest.raises(RelxillError):
        get_ipol_factor(1.0, [1.0])


def test_nthcomp_param():
    assert get_nthcomp_param(2.0, 100.0, 0.1) == [2.0, 100.0, 0.05, 1.0, 0.1]


def test_table_path_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("RELXILL_TABLE_PATH", str(tmp_path))
    assert relxill_table_path() == str(tmp_path)


def test_table_path_default(monkeypatch):
    monkeypatch.delenv("RELXILL_TABLE_PATH", raising=False)
    assert relxill_table_path() == "./"


@pytest.mark.parametrize(
    "func, env",
    [
        (is_debug_run, "DEBUG_RELXILL"),
        (should_aux_info_be_printed, "RELXILL_PRINT_DETAILS"),
        (should_outfiles_be_written, "RELXILL_WRITE_FILES"),
        (do_not_normalize_relline, "RELLINE_PHYSICAL_NORM"),
    ],
)
def test_env_flags(monkeypatch, func, env):
    monkeypatch.delenv(env, raising=False)
    assert func() is False
    monkeypatch.setenv(env, "1")
    assert func() is True
    monkeypatch.setenv(env, "0")
    assert func() is False
    monkeypatch.setenv(env, "1.7")
    assert func() is True
    monkeypatch.setenv(env, "yes")
    assert func() is False