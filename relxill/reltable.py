"""Loading of the relativistic line table and the lamp-post table."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from relxill.fitstable import BinTable, FitsError, FitsFile
from relxill.relutility import RelxillError, relxill_table_path

_FIRST_DATA_HDU = 4


@dataclass
class RelDat:
    """One (spin, inclination) element of the relline table."""

    r: np.ndarray
    gmin: np.ndarray
    gmax: np.ndarray
    trff1: np.ndarray
    trff2: np.ndarray
    cosne1: np.ndarray
    cosne2: np.ndarray

    @property
    def n_r(self) -> int:
        return len(self.r)

    @property
    def n_g(self) -> int:
        return self.trff1.shape[1]


@dataclass
class RelTable:
    """The relline table on its grid of spins ``a`` and inclinations ``mu0``."""

    a: np.ndarray
    mu0: np.ndarray
    arr: list[list[RelDat]]

    def __post_init__(self) -> None:
        if len(self.arr) != len(self.a) or any(len(row) != len(self.mu0) for row in self.arr):
            raise RelxillError("relline data do not match the spin and inclination axes")

    @property
    def n_a(self) -> int:
        return len(self.a)

    @property
    def n_mu0(self) -> int:
        return len(self.mu0)

    @property
    def n_r(self) -> int:
        return self.arr[0][0].n_r

    @property
    def n_g(self) -> int:
        return self.arr[0][0].n_g


@dataclass
class LpDat:
    """Lamp-post data for one spin: intensity and angles on a height/radius grid."""

    h: np.ndarray
    rad: np.ndarray
    intens: np.ndarray
    delta: np.ndarray
    delta_inc: np.ndarray

    @property
    def n_h(self) -> int:
        return len(self.h)

    @property
    def n_rad(self) -> int:
        return len(self.rad)


@dataclass
class LpTable:
    """The lamp-post table on its grid of spins ``a``."""

    a: np.ndarray
    dat: list[LpDat]

    def __post_init__(self) -> None:
        if len(self.dat) != len(self.a):
            raise RelxillError("lamp-post data do not match the spin axis")

    @property
    def n_a(self) -> int:
        return len(self.a)

    @property
    def n_h(self) -> int:
        return self.dat[0].n_h

    @property
    def n_rad(self) -> int:
        return self.dat[0].n_rad


def _open_table(filename: str, table_path: str | Path | None, what: str) -> FitsFile:
    directory = Path(table_path) if table_path is not None else Path(relxill_table_path())
    path = directory / filename
    try:
        return FitsFile(path)
    except FitsError as err:
        raise RelxillError(f"opening of the {what} table failed (full path given: {path}): "
                           f"{err}") from err


def _float_vector(values: np.ndarray) -> np.ndarray:
    return np.asarray(values, dtype=np.float32).ravel()


def _read_axis(fits: FitsFile, extname: str, colname: str) -> np.ndarray:
    axis = _float_vector(fits.table(extname).column(colname))
    if axis.size == 0:
        raise RelxillError(f"axis {colname!r} of the table is empty")
    return axis


def _load_rel_dat(table: BinTable, extname: str) -> RelDat:
    r = _float_vector(table.column("r"))
    n_r = r.size
    if n_r == 0:
        raise RelxillError(f"extension {extname} of the rel table holds no rows")

    def matrix(name: str) -> np.ndarray:
        return np.asarray(table.column(name), dtype=np.float32).reshape(n_r, -1)

    dat = RelDat(
        r=r,
        gmin=_float_vector(table.column("gmin")),
        gmax=_float_vector(table.column("gmax")),
        trff1=matrix("trff1"),
        trff2=matrix("trff2"),
        cosne1=matrix("cosne1"),
        cosne2=matrix("cosne2"),
    )
    shapes = {m.shape for m in (dat.trff1, dat.trff2, dat.cosne1, dat.cosne2)}
    if len(shapes) != 1 or dat.gmin.size != n_r or dat.gmax.size != n_r:
        raise RelxillError(f"inconsistent column dimensions in extension {extname} of the rel table")
    return dat


def read_relline_table(filename: str, table_path: str | Path | None = None) -> RelTable:
    """Load the complete relline table from ``table_path`` (default: the table directory)."""
    fits = _open_table(filename, table_path, "rel")
    hdus = itertools.count(_FIRST_DATA_HDU)
    try:
        spins = _read_axis(fits, "a", "a")
        incls = _read_axis(fits, "mu0", "mu0")
        arr = [
            [_load_rel_dat(fits.table_at(next(hdus)), f"{ia}_{im}")
             for im, _ in enumerate(incls, start=1)]
            for ia, _ in enumerate(spins, start=1)
        ]
    except FitsError as err:
        raise RelxillError(f"failed to load data from the rel table into memory: {err}") from err

    first = arr[0][0]
    if any((dat.n_r, dat.n_g) != (first.n_r, first.n_g) for row in arr for dat in row):
        raise RelxillError("inconsistent number of rows in rel table")
    return RelTable(a=spins, mu0=incls, arr=arr)


def _row_vector(table: BinTable, name: str, row: int, size: int | None = None) -> np.ndarray:
    values = _float_vector(table.read(name, row))
    if size is not None and values.size != size:
        raise RelxillError(f"column {name!r} of the lp table has {values.size} values, "
                           f"expected {size}")
    return values


def _load_lp_dat(table: BinTable, row: int) -> LpDat:
    h = _row_vector(table, "hgrid", row)
    rad = _row_vector(table, "r", row)
    if h.size == 0 or rad.size == 0:
        raise RelxillError("lp table holds an empty height or radius grid")

    def stacked(prefix: str) -> np.ndarray:
        return np.stack([_row_vector(table, f"{prefix}{ih}", row, rad.size)
                         for ih in range(1, h.size + 1)])

    return LpDat(
        h=h,
        rad=rad,
        intens=stacked("h"),
        delta=np.abs(stacked("del")),
        delta_inc=np.abs(stacked("del_inc")),
    )


def read_lp_table(filename: str, table_path: str | Path | None = None) -> LpTable:
    """Load the complete lamp-post table from ``table_path`` (default: the table directory)."""
    fits = _open_table(filename, table_path, "lp")
    try:
        table = fits.table("I_h")
        spins = _float_vector(table.column("a"))
        if spins.size == 0:
            raise RelxillError("spin axis of the lp table is empty")
        dat = [_load_lp_dat(table, row) for row, _ in enumerate(spins)]
    except FitsError as err:
        raise RelxillError(f"failed to load data from the lp table into memory: {err}") from err

    first = dat[0]
    if any((d.n_h, d.n_rad) != (first.n_h, first.n_rad) for d in dat):
        raise RelxillError("inconsistent grid dimensions in lp table")
    return LpTable(a=spins, dat=dat)