"""Rebinning, resampling, normalisation and FFT helpers for spectra."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from relxill.relutility import RelxillError, interp_lin_1d


def fft_r2ct(direction: int, m: int, x: Sequence[float],
             y: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
    """Complex FFT of ``2**m`` points given as real part ``x`` and imaginary part ``y``.

    ``direction == 1`` is the forward transform, scaled by 1/n;
    ``direction == -1`` is the unscaled reverse transform.
    Returns the real and imaginary parts of the result.
    """
    if direction not in (1, -1):
        raise RelxillError(f"FFT direction must be 1 or -1, got {direction}")
    n = 1 << m
    x_arr = np.asarray(x, dtype=float)
    y_arr = np.asarray(y, dtype=float)
    if x_arr.shape != (n,) or y_arr.shape != (n,):
        raise RelxillError(f"FFT input must hold exactly 2**{m} = {n} points")

    values = x_arr + 1j * y_arr
    if direction == 1:
        result = np.fft.fft(values) / n
    else:
        result = np.fft.ifft(values) * n
    return result.real.copy(), result.imag.copy()


def rebin_spectrum(ener: Sequence[float], ener0: Sequence[float],
                   flu0: Sequence[float]) -> np.ndarray:
    """Rebin the binned flux ``flu0`` on grid ``ener0`` to the grid ``ener``.

    Both grids are ascending bin edges (one more edge than bins). Bins of the
    new grid outside the original range get zero flux.
    """
    ener = [float(e) for e in ener]
    ener0 = [float(e) for e in ener0]
    flu0 = [float(f) for f in flu0]
    nbins = len(ener) - 1
    nbins0 = len(ener0) - 1
    if nbins < 1 or nbins0 < 1:
        raise RelxillError("energy grids need at least two edges")
    if len(flu0) != nbins0:
        raise RelxillError("flux must have one value less than its energy grid")

    flu = np.zeros(nbins, dtype=float)
    imin = 0
    imax = 0

    for ii in range(nbins):
        if not (ener0[0] <= ener[ii + 1] and ener0[nbins0] >= ener[ii]):
            continue

        while imin <= nbins0 and ener0[imin] <= ener[ii]:
            imin += 1
        if imin > 0:
            imin -= 1
        imin = min(imin, nbins0 - 1)

        while imax < nbins0 and ener0[imax] <= ener[ii + 1]:
            imax += 1
        if imax > 0:
            imax -= 1

        elo = max(ener[ii], ener0[imin])
        ehi = min(ener[ii + 1], ener0[imax + 1])

        if imax == imin:
            flu[ii] = (ehi - elo) / (ener0[imin + 1] - ener0[imin]) * flu0[imin]
        else:
            dmin = (ener0[imin + 1] - elo) / (ener0[imin + 1] - ener0[imin])
            dmax = (ehi - ener0[imax]) / (ener0[imax + 1] - ener0[imax])
            total = flu0[imin] * dmin + flu0[imax] * dmax
            total += sum(flu0[imin + 1:imax])
            flu[ii] = total

    return flu


def inv_rebin_mean(x0: Sequence[float], y0: Sequence[float],
                   xn: Sequence[float]) -> np.ndarray:
    """Interpolate ``y0`` given on the descending grid ``x0`` to the ascending grid ``xn``.

    Points of ``xn`` that fall on no interval of ``x0`` are left at zero.
    """
    x0 = [float(v) for v in x0]
    y0 = [float(v) for v in y0]
    xn = [float(v) for v in xn]
    if not x0 or not xn:
        raise RelxillError("grids must not be empty")
    if len(y0) != len(x0):
        raise RelxillError("x0 and y0 must have the same length")
    if xn[0] > xn[-1] or x0[-1] > x0[0]:
        raise RelxillError("grid in wrong order")
    if xn[0] < x0[-1] or xn[-1] > x0[0]:
        raise RelxillError("new grid is larger than the input grid")

    yn = np.zeros(len(xn), dtype=float)
    index = len(xn) - 1
    for (x_hi, y_hi), (x_lo, y_lo) in zip(zip(x0, y0), zip(x0[1:], y0[1:])):
        if x_hi > xn[index] >= x_lo:
            ifac = (xn[index] - x_lo) / (x_hi - x_lo)
            yn[index] = interp_lin_1d(ifac, y_lo, y_hi)
            index -= 1
            if index < 0:
                break
    return yn


def rebin_mean_flux(xn: Sequence[float], x0: Sequence[float],
                    y0: Sequence[float]) -> np.ndarray:
    """Interpolate the binned values ``y0`` (edges ``x0``) to the bin centres of ``xn``.

    Both edge grids are ascending. New bins whose centre lies outside the
    covered range of bin centres are zero.
    """
    xn = [float(v) for v in xn]
    x0 = [float(v) for v in x0]
    y0 = [float(v) for v in y0]
    nn = len(xn) - 1
    n0 = len(x0) - 1
    if nn < 1 or n0 < 2:
        raise RelxillError("grids are too short to rebin")
    if len(y0) < n0:
        raise RelxillError("y0 must hold one value per bin of x0")
    if xn[0] > xn[nn] or x0[0] > x0[n0]:
        raise RelxillError("grid in wrong order")

    yn = np.zeros(nn, dtype=float)
    ii = 1
    for index in range(nn):
        xn_m = 0.5 * (xn[index] + xn[index + 1])
        while 0.5 * (x0[ii - 1] + x0[ii]) < xn_m:
            ii += 1
            if ii >= n0:
                break
        ii -= 1
        if ii == 0:
            ii = 1

        x0_m_lo = 0.5 * (x0[ii - 1] + x0[ii])
        x0_m_hi = 0.5 * (x0[ii] + x0[ii + 1])
        if x0_m_lo < xn_m <= x0_m_hi:
            ifac = (xn_m - x0_m_lo) / (x0_m_hi - x0_m_lo)
            yn[index] = interp_lin_1d(ifac, y0[ii - 1], y0[ii])
    return yn


def calc_sum_in_energy_band(flux: Sequence[float], ener: Sequence[float],
                            val_lo: float, val_hi: float) -> float:
    """Sum of the flux in all bins lying completely within [val_lo, val_hi]."""
    flux_arr = np.asarray(flux, dtype=float)
    ener_arr = np.asarray(ener, dtype=float)
    if len(ener_arr) != len(flux_arr) + 1:
        raise RelxillError("energy grid must have one value more than the flux")
    inside = (ener_arr[:-1] >= val_lo) & (ener_arr[1:] <= val_hi)
    return float(flux_arr[inside].sum())


def norm_spec(spec: Sequence[float]) -> np.ndarray:
    """Return the spectrum divided by its sum."""
    spec_arr = np.asarray(spec, dtype=float)
    return spec_arr / spec_arr.sum()