"""Interpolation, search, grid and environment helpers shared by the model code."""

from __future__ import annotations

import math
import os
import re
from bisect import bisect_right
from collections.abc import Sequence

import numpy as np

DEFAULT_TABLE_PATH = "./"

_LEADING_NUMBER = re.compile(
    r"\s*[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?)"
)


class RelxillError(Exception):
    """Raised when a model computation or a table operation fails."""


def interp_lin_1d(ifac: float, rlo: float, rhi: float) -> float:
    """Linear interpolation between ``rlo`` and ``rhi`` with factor ``ifac``."""
    return ifac * rhi + (1.0 - ifac) * rlo


def interp_log_1d(ifac: float, rlo: float, rhi: float) -> float:
    """Logarithmic interpolation between ``rlo`` and ``rhi`` with factor ``ifac``."""
    return math.exp(ifac * math.log(rhi) + (1.0 - ifac) * math.log(rlo))


def interp_lin_2d(ifac1: float, ifac2: float,
                  r11: float, r12: float, r21: float, r22: float) -> float:
    """Bilinear interpolation; ``ifac1`` runs from r11 to r12, ``ifac2`` from r11 to r21."""
    return ((1.0 - ifac1) * (1.0 - ifac2) * r11
            + ifac1 * (1.0 - ifac2) * r12
            + (1.0 - ifac1) * ifac2 * r21
            + ifac1 * ifac2 * r22)


def _clamp_bin(position: int, n: int) -> int:
    return min(max(position, 0), n - 2)


def binary_search(arr: Sequence[float], val: float) -> int:
    """Return k with arr[k] <= val < arr[k+1] for an ascending array.

    Values outside the array give the first or last bin; arrays with fewer
    than two elements give -1.
    """
    n = len(arr)
    if n <= 1:
        return -1
    return _clamp_bin(bisect_right(arr, val) - 1, n)


def inv_binary_search(arr: Sequence[float], val: float) -> int:
    """Return k with arr[k] >= val > arr[k+1] for a descending array.

    Values outside the array give the first or last bin; arrays with fewer
    than two elements give -1.
    """
    n = len(arr)
    if n <= 1:
        return -1
    return _clamp_bin(bisect_right(arr, -val, key=lambda a: -a) - 1, n)


def trapez_integ_single(re: Sequence[float], ii: int) -> float:
    """Half ring area (pi * r * dr) around bin ``ii`` of a descending radial grid."""
    nr = len(re)
    if ii == 0:
        dr = 0.5 * (re[ii] - re[ii + 1])
    elif ii == nr - 1:
        dr = 0.5 * (re[ii - 1] - re[ii])
    else:
        dr = 0.5 * (re[ii - 1] - re[ii + 1])
    return re[ii] * dr * math.pi


def trapez_integ_single_rad_ascending(re: Sequence[float], ii: int) -> float:
    """Half ring area (pi * r * dr) around bin ``ii`` of an ascending radial grid."""
    nr = len(re)
    if ii == 0:
        dr = 0.5 * (re[ii + 1] - re[ii])
    elif ii == nr - 1:
        dr = 0.5 * (re[ii] - re[ii - 1])
    else:
        dr = 0.5 * (re[ii + 1] - re[ii - 1])
    return re[ii] * dr * math.pi


def gstar2ener(g: float, gmin: float, gmax: float, ener: float) -> float:
    """Convert the normalised redshift g* to an energy."""
    return (g * (gmax - gmin) + gmin) * ener


def get_log_grid(n: int, emin: float, emax: float) -> np.ndarray:
    """Return ``n`` logarithmically spaced values from ``emin`` to ``emax``."""
    steps = np.arange(n, dtype=float) / (n - 1)
    return np.exp(steps * (math.log(emax) - math.log(emin)) + math.log(emin))


def get_lin_grid(n: int, emin: float, emax: float) -> np.ndarray:
    """Return ``n`` linearly spaced values from ``emin`` to ``emax``."""
    steps = np.arange(n, dtype=float) / (n - 1)
    return steps * (emax - emin) + emin


def get_rzone_grid(rmin: float, rmax: float, nzones: int, h: float) -> np.ndarray:
    """Radial zone boundaries (``nzones + 1`` values) on the accretion disk.

    Below the source height ``h`` the grid is logarithmic; above it the
    zones are spaced evenly in 1/r.
    """
    if nzones < 1:
        raise RelxillError(f"number of radial zones must be positive, got {nzones}")

    if nzones == 1:
        return np.array([rmin, rmax], dtype=float)

    rgrid = np.empty(nzones + 1, dtype=float)
    r_transition = rmin
    indr = 0

    if h > rmin:
        rgrid = get_log_grid(nzones + 1, rmin, rmax)
        indr = binary_search(rgrid, h)
        r_transition = rgrid[indr]

    if indr < nzones:
        rlo = r_transition
        rhi = rmax
        ii = np.arange(indr, nzones + 1, dtype=float)
        inv_r = (ii - indr) / (nzones - indr) * (1.0 / rhi - 1.0 / rlo) + 1.0 / rlo
        rgrid[indr:] = np.abs(1.0 / inv_r)

    return rgrid


def get_fine_radial_grid(rin: float, rout: float, nr: int) -> np.ndarray:
    """Descending radial grid from ``rout`` to ``rin``, evenly spaced in 1/sqrt(r)."""
    r1 = 1.0 / math.sqrt(rout)
    r2 = 1.0 / math.sqrt(rin)
    steps = np.arange(nr, dtype=float) * (r2 - r1) / (nr - 1) + r1
    re = (1.0 / steps) ** 2
    if np.any(re <= 1.0):
        raise RelxillError("radial grid must lie above r = 1")
    return re


def get_ipol_factor_radius(rlo: float, rhi: float, del_inci: float, radius: float) -> float:
    """Interpolation factor of ``radius`` between ``rlo`` and ``rhi``.

    For incidence angles above 75 degrees the factor is logarithmic.
    """
    if del_inci / math.pi * 180.0 <= 75.0:
        return (radius - rlo) / (rhi - rlo)
    return (math.log(radius) - math.log(rlo)) / (math.log(rhi) - math.log(rlo))


def get_ipol_factor(value: float, arr: Sequence[float]) -> tuple[int, float]:
    """Return the bin index of ``value`` in the ascending ``arr`` and its interpolation factor."""
    if len(arr) < 2:
        raise RelxillError("interpolation needs at least two grid values")
    ind = binary_search(arr, value)
    ifac = (value - arr[ind]) / (arr[ind + 1] - arr[ind])
    return ind, ifac


def get_nthcomp_param(gam: float, kte: float, z: float) -> list[float]:
    """Parameter list for the nthcomp continuum (seed temperature 0.05, black-body input)."""
    return [gam, kte, 0.05, 1.0, z]


def relxill_table_path() -> str:
    """Directory holding the model tables, from RELXILL_TABLE_PATH if set."""
    path = os.environ.get("RELXILL_TABLE_PATH")
    return path if path is not None else DEFAULT_TABLE_PATH


def _env_number(name: str) -> int | None:
    """Leading number of an environment variable truncated to an integer, or None if unset."""
    text = os.environ.get(name)
    if text is None:
        return None
    match = _LEADING_NUMBER.match(text)
    if match is None:
        return 0
    return int(float(match.group(0)))


def _env_flag(name: str) -> bool:
    return _env_number(name) == 1


def is_debug_run() -> bool:
    """True when DEBUG_RELXILL is set to 1."""
    return _env_flag("DEBUG_RELXILL")


def should_aux_info_be_printed() -> bool:
    """True when RELXILL_PRINT_DETAILS is set to 1."""
    return _env_flag("RELXILL_PRINT_DETAILS")


def should_outfiles_be_written() -> bool:
    """True when RELXILL_WRITE_FILES is set to 1."""
    return _env_flag("RELXILL_WRITE_FILES")


def do_not_normalize_relline() -> bool:
    """True when RELLINE_PHYSICAL_NORM is set to 1."""
    return _env_flag("RELLINE_PHYSICAL_NORM")