"""Interpolation of xillver table spectra to arbitrary parameter values."""

from __future__ import annotations

import itertools
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from relxill.relutility import RelxillError, is_debug_run
from relxill.xilltable import XillParam, XillTable, XillTableParam


@dataclass
class XillSpec:
    """Interpolated reflection spectra: bin edges, inclinations and one flux row per inclination."""

    ener: np.ndarray
    incl: np.ndarray
    flu: np.ndarray

    @property
    def n_ener(self) -> int:
        return len(self.ener) - 1

    @property
    def n_incl(self) -> int:
        return len(self.incl)


def _clamp_to_table(name: str, value: np.float32, lo: np.float32, hi: np.float32) -> np.float32:
    if value < lo:
        if is_debug_run():
            print(f" *** warning: paramter {name}={value:e} below lowest table value, "
                  f"restetting to {lo:e}")
        return lo
    if value > hi:
        if is_debug_run():
            print(f"\n *** warning: paramter {name}={value:e} above largest table value, "
                  f"restetting to {hi:e}")
        return hi
    return value


def _interpolation_factors(table: XillTable, param: XillTableParam,
                           ind: Sequence[int], is_xill: bool) -> list[float]:
    factors = []
    for name, index, values, i in zip(table.param_names, table.param_index,
                                      table.param_vals, ind):
        value = np.float32(param[index])
        if is_xill or index != XillParam.INC:
            value = _clamp_to_table(name, value, values[0], values[-1])
        factors.append(float((value - values[i]) / (values[i + 1] - values[i])))

    # gravitational redshift can ask for a cutoff outside the tabulated range
    pos_ect = table.param_position(XillParam.ECT)
    if pos_ect is not None:
        ect_vals = table.param_vals[pos_ect]
        if param.ect <= ect_vals[0]:
            factors[pos_ect] = 0.0
        if param.ect >= ect_vals[-1]:
            factors[pos_ect] = 1.0
    return factors


def _multilinear(table: XillTable, base: Sequence[int], axes: Sequence[int],
                 factors: Sequence[float]) -> np.ndarray:
    """Weighted sum of the table spectra at all corners of the cell starting at ``base``."""
    flu = np.zeros(table.n_ener, dtype=np.float64)
    for corner in itertools.product((0, 1), repeat=len(axes)):
        weight = math.prod(f if step else 1.0 - f for f, step in zip(factors, corner))
        key = list(base)
        for axis, step in zip(axes, corner):
            key[axis] += step
        flu += weight * table.spectrum(key).astype(np.float64)
    return flu


def interp_xill_table(table: XillTable, param: XillTableParam,
                      ind: Sequence[int], is_xill: bool) -> XillSpec:
    """Interpolate the loaded table spectra around the grid indices ``ind``.

    For a xillver model (``is_xill``) the inclination is interpolated as
    well and a single spectrum is returned; otherwise one spectrum is
    returned for every tabulated inclination. The spectra around ``ind``
    must have been loaded with :meth:`XillTable.load_spectra`.
    """
    ind = [int(i) for i in ind]
    if len(ind) != table.num_param:
        raise RelxillError(f"expected {table.num_param} indices, got {len(ind)}")
    for i, count in zip(ind, table.num_param_vals):
        if not 0 <= i <= count - 2:
            raise RelxillError(f"grid indices {ind} outside of the xillver table")

    n_incl = 1 if is_xill else table.n_incl
    ener = np.append(table.elo.astype(np.float64), np.float64(table.ehi[-1]))
    incl = table.incl[:n_incl].astype(np.float64)

    factors = _interpolation_factors(table, param, ind, is_xill)

    offset = 0 if table.num_param == 6 else 1
    n_axes = table.num_param if is_xill else table.num_param - 1
    axes = [offset + k for k in range(n_axes)]
    used = factors[:n_axes]

    rows = []
    for ii in range(n_incl):
        base = [0] * offset + ind[:n_axes]
        if not is_xill:
            base.append(ii)
        rows.append(_multilinear(table, base, axes, used))

    return XillSpec(ener=ener, incl=incl, flu=np.vstack(rows))