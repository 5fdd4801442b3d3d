import numpy as np
import pytest

from relxill.rebin import (
    calc_sum_in_energy_band,
    fft_r2ct,
    inv_rebin_mean,
    norm_spec,
    rebin_mean_flux,
    rebin_spectrum,
)
from relxill.relutility import RelxillError


def test_fft_round_trip():
    x = np.array([1.0, 2.0, -1.5, 0.25, 3.0, 0.0, 1.0, -2.0])
    y = np.array([0.5, 0.0, 1.0, -1.0, 0.0, 2.0, 0.0, 1.0])
    fx, fy = fft_r2ct(1, 3, x, y)
    bx, by = fft_r2ct(-1, 3, fx, fy)
    assert np.allclose(bx, x)
    assert np.allclose(by, y)


def test_fft_forward_of_constant_is_mean_at_zero():
    x = np.full(8, 2.5)
    y = np.zeros(8)
    fx, fy = fft_r2ct(1, 3, x, y)
    assert fx[0] == pytest.approx(2.5)
    assert np.allclose(fx[1:], 0.0)
    assert np.allclose(fy, 0.0)


def test_fft_parseval_forward():
    rng = np.random.default_rng(1)
    x = rng.normal(size=16)
    y = rng.normal(size=16)
    fx, fy = fft_r2ct(1, 4, x, y)
    energy_in = np.sum(x ** 2 + y ** 2)
    energy_out = np.sum(fx ** 2 + fy ** 2) * 16
    assert energy_out == pytest.approx(energy_in)


def test_fft_rejects_wrong_length_and_direction():
    with pytest.raises(RelxillError):
        fft_r2ct(1, 3, [1.0, 2.0], [0.0, 0.0])
    with pytest.raises(RelxillError):
        fft_r2ct(0, 1, [1.0, 2.0], [0.0, 0.0])


def test_rebin_spectrum_identity():
    ener = [1.0, 2.0, 3.0, 4.0]
    flux = [0.3, 1.7, 2.2]
    assert np.allclose(rebin_spectrum(ener, ener, flux), flux)


def test_rebin_spectrum_conserves_flux_on_coarser_grid():
    ener0 = [1.0, 2.0, 3.0, 4.0, 5.0]
    flu0 = [1.0, 2.0, 3.0, 4.0]
    out = rebin_spectrum([1.0, 3.0, 5.0], ener0, flu0)
    assert len(out) == 2
    assert out.sum() == pytest.approx(sum(flu0))
    assert out[0] == pytest.approx(flu0[0] + flu0[1])


def test_rebin_spectrum_outside_range_is_zero():
    out = rebin_spectrum([10.0, 20.0, 30.0], [1.0, 2.0, 3.0], [1.0, 1.0])
    assert list(out) == [0.0, 0.0]


def test_rebin_spectrum_fine_grid_conserves_flux():
    ener0 = np.linspace(1.0, 10.0, 10)
    flu0 = np.arange(1.0, 10.0)
    ener = np.linspace(1.0, 10.0, 37)
    out = rebin_spectrum(ener, ener0, flu0)
    assert out.sum() == pytest.approx(flu0.sum())


def test_inv_rebin_mean_linear_function():
    x0 = [5.0, 4.0, 3.0, 2.0, 1.0]
    y0 = [2.0 * v for v in x0]
    xn = [1.5, 2.5, 3.5]
    yn = inv_rebin_mean(x0, y0, xn)
    assert np.allclose(yn, [3.0, 5.0, 7.0])


def test_inv_rebin_mean_errors():
    x0 = [5.0, 4.0, 3.0]
    y0 = [1.0, 1.0, 1.0]
    with pytest.raises(RelxillError):
        inv_rebin_mean(x0, y0, [4.5, 3.5])
    with pytest.raises(RelxillError):
        inv_rebin_mean(x0, y0, [2.0, 4.0])


def test_rebin_mean_flux_linear_centres():
    x0 = [0.0, 1.0, 2.0, 3.0, 4.0, 5.0]
    y0 = [0.5, 1.5, 2.5, 3.5, 4.5]
    xn = [1.0, 2.0, 3.0]
    yn = rebin_mean_flux(xn, x0, y0)
    assert np.allclose(yn, [1.5, 2.5])


def test_rebin_mean_flux_wrong_order():
    with pytest.raises(RelxillError):
        rebin_mean_flux([3.0, 2.0, 1.0], [0.0, 1.0, 2.0, 3.0], [1.0, 1.0, 1.0])


def test_calc_sum_in_energy_band_only_full_bins():
    ener = np.arange(0.0, 11.0)
    flux = np.arange(10.0)
    total = calc_sum_in_energy_band(flux, ener, 2.0, 5.0)
    assert total == pytest.approx(9.0)
    assert calc_sum_in_energy_band(flux, ener, 2.5, 2.9) == 0.0


def test_norm_spec_sums_to_one_and_keeps_shape():
    spec = [1.0, 3.0, 4.0]
    normed = norm_spec(spec)
    assert normed.sum() == pytest.approx(1.0)
    assert normed[2] / normed[0] == pytest.approx(4.0)