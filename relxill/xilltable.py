"""Loading of xillver reflection tables and lazy caching of their spectra."""

from __future__ import annotations

import itertools
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import numpy as np

from relxill.fitstable import BinTable, FitsError, FitsFile
from relxill.relutility import RelxillError, binary_search, is_debug_run, relxill_table_path

_REFERENCE_DENSITY = 15.0


class XillParam(Enum):
    """Parameters a xillver table can be tabulated in; the value is the name in the table."""

    GAM = "Gamma"
    AFE = "A_Fe"
    LXI = "logXi"
    ECT = "Ecut"
    KTE = "kTe"
    DNS = "Dens"
    KTB = "kTbb"
    ACO = "A_CO"
    FRA = "Frac"
    INC = "Incl"


DEFAULT_PARAM_NAMES: dict[str, XillParam] = {param.value: param for param in XillParam}

# kTe axes are fed with the cutoff energy, A_CO axes with the abundance parameter
_ATTRIBUTE = {
    XillParam.GAM: "gam",
    XillParam.AFE: "afe",
    XillParam.LXI: "lxi",
    XillParam.ECT: "ect",
    XillParam.KTE: "ect",
    XillParam.DNS: "dens",
    XillParam.KTB: "ktbb",
    XillParam.ACO: "afe",
    XillParam.FRA: "frac_pl_bb",
    XillParam.INC: "incl",
}


@dataclass
class XillTableParam:
    """Parameter values at which a xillver table is evaluated."""

    gam: float
    afe: float
    lxi: float
    ect: float
    dens: float
    ktbb: float
    frac_pl_bb: float
    incl: float

    def __getitem__(self, param: XillParam) -> float:
        return float(getattr(self, _ATTRIBUTE[param]))


def renorm_xill_spec(spec: Sequence[float], lxi: float, dens: float) -> np.ndarray:
    """Divide a table spectrum by 10**lxi and, unless dens is 15, by 10**(dens - 15)."""
    out = (np.asarray(spec, dtype=np.float32).astype(np.float64) / 10.0 ** lxi).astype(np.float32)
    if abs(dens - _REFERENCE_DENSITY) > 1e-6:
        out = (out.astype(np.float64) / 10.0 ** (dens - _REFERENCE_DENSITY)).astype(np.float32)
    return out


def _column_at(table: BinTable, position: int) -> np.ndarray:
    columns = list(table.columns.values())
    if not 1 <= position <= len(columns):
        raise RelxillError(f"table {table.name!r} has no column number {position}")
    return columns[position - 1]


class XillTable:
    """A xillver table: parameter axes, energy grid and the spectra loaded so far."""

    def __init__(self, path: str | Path, param_names: Sequence[str],
                 param_index: Sequence[XillParam], param_vals: Sequence[np.ndarray],
                 elo: np.ndarray, ehi: np.ndarray) -> None:
        if len(param_names) not in (5, 6):
            raise RelxillError("wrong dimensionality of the xillver table")
        if not (len(param_names) == len(param_index) == len(param_vals)):
            raise RelxillError("parameter names, identifiers and values differ in number")
        self.path = Path(path)
        self.param_names = list(param_names)
        self.param_index = list(param_index)
        self.param_vals = [np.asarray(v, dtype=np.float32) for v in param_vals]
        self.elo = np.asarray(elo, dtype=np.float32)
        self.ehi = np.asarray(ehi, dtype=np.float32)
        if len(self.elo) != len(self.ehi):
            raise RelxillError("energy grid of the xillver table is inconsistent")
        self._storage: dict[tuple[int, ...], np.ndarray] = {}

    @property
    def num_param(self) -> int:
        return len(self.param_names)

    @property
    def num_param_vals(self) -> list[int]:
        return [len(v) for v in self.param_vals]

    @property
    def n_ener(self) -> int:
        return len(self.elo)

    @property
    def incl(self) -> np.ndarray:
        """Inclination axis (always the last parameter)."""
        return self.param_vals[-1]

    @property
    def n_incl(self) -> int:
        return len(self.incl)

    def param_position(self, param: XillParam) -> int | None:
        """Position of ``param`` among the table parameters, or None if not tabulated."""
        for position, index in enumerate(self.param_index):
            if index == param:
                return position
        return None

    def indices_for_params(self, param: XillTableParam) -> list[int]:
        """Lower grid index for each table parameter, kept within the tabulated range."""
        indices = []
        for values, index in zip(self.param_vals, self.param_index):
            ind = binary_search(values, np.float32(param[index]))
            ind = max(ind, 0)
            ind = min(ind, len(values) - 2)
            indices.append(ind)
        return indices

    def _row_number(self, key: tuple[int, ...]) -> int:
        idx = key if self.num_param == 6 else key[1:]
        row = 0
        for i, n in zip(idx, self.num_param_vals):
            if not 0 <= i < n:
                raise RelxillError(f"spectrum index {key} outside of the xillver table")
            row = row * n + i
        return row

    def _value_index(self, key: tuple[int, ...], position: int) -> int:
        return key[position] if self.num_param == 6 else key[position + 1]

    def _read_spectrum(self, spectra: BinTable, key: tuple[int, ...],
                       param: XillTableParam) -> np.ndarray:
        row = self._row_number(key)
        try:
            spec = np.asarray(_column_at(spectra, 2)[row], dtype=np.float32).ravel()
        except IndexError as err:
            raise RelxillError(f"failed reading table {self.path} (row {row + 1})") from err
        if spec.size != self.n_ener:
            raise RelxillError(f"spectrum in row {row + 1} of {self.path} has {spec.size} "
                               f"bins, expected {self.n_ener}")

        density = param.dens
        logxi = param.lxi
        pos_dens = self.param_position(XillParam.DNS)
        pos_lxi = self.param_position(XillParam.LXI)
        if pos_dens is not None:
            density = float(self.param_vals[pos_dens][self._value_index(key, pos_dens)])
        if pos_lxi is not None:
            logxi = float(self.param_vals[pos_lxi][self._value_index(key, pos_lxi)])
        return renorm_xill_spec(spec, logxi, density)

    def load_spectra(self, param: XillTableParam, ind: Sequence[int]) -> None:
        """Make sure all spectra around the grid indices ``ind`` (every inclination) are loaded."""
        ind = [int(i) for i in ind]
        if len(ind) != self.num_param:
            raise RelxillError(f"expected {self.num_param} indices, got {len(ind)}")
        if self.num_param == 6:
            first: Sequence[int] = (ind[0], ind[0] + 1)
            rest = ind[1:]
        else:
            first = (0,)
            rest = ind
        ranges = [first] + [(i, i + 1) for i in rest[:4]] + [range(self.n_incl)]
        missing = [key for key in itertools.product(*ranges) if key not in self._storage]
        if not missing:
            return

        try:
            spectra = FitsFile(self.path).table("SPECTRA")
        except FitsError as err:
            raise RelxillError(f"failed to read spectra from {self.path}: {err}") from err
        for key in missing:
            self._storage[key] = self._read_spectrum(spectra, key, param)

    def spectrum(self, indices: Sequence[int]) -> np.ndarray:
        """Loaded spectrum at the six grid indices (the first is 0 for 5-dim tables)."""
        key = tuple(int(i) for i in indices)
        try:
            return self._storage[key]
        except KeyError:
            raise RelxillError(f"spectrum {key} of the xillver table is not loaded") from None


def _table_file(filename: str, table_path: str | Path | None) -> Path:
    directory = Path(table_path) if table_path is not None else Path(relxill_table_path())
    return directory / filename


def _print_parameters(table: XillTable) -> None:
    for name, index, values in zip(table.param_names, table.param_index, table.param_vals):
        print(f" loaded parameter {name}  (index={index.name}) \t -  {len(values):02d} values "
              f"from {values[0]:.2f} to {values[-1]:.2f}")


def load_xillver_table(filename: str, table_path: str | Path | None = None,
                       param_names: Mapping[str, XillParam] | None = None) -> XillTable:
    """Read the parameter axes and energy grid of a xillver table; spectra load on demand.

    ``param_names`` maps the parameter names found in the table to their meaning.
    """
    names_map = DEFAULT_PARAM_NAMES if param_names is None else param_names
    path = _table_file(filename, table_path)
    try:
        fits = FitsFile(path)
    except FitsError as err:
        raise RelxillError(f"opening of the table failed (full path given: {path}): "
                           f"{err}") from err

    try:
        energies = fits.table("ENERGIES")
        elo = np.asarray(_column_at(energies, 1), dtype=np.float32).ravel()
        ehi = np.asarray(_column_at(energies, 2), dtype=np.float32).ravel()

        parameters = fits.table("PARAMETERS")
        if parameters.nrows not in (5, 6):
            raise RelxillError("wrong dimensionality of the xillver table")
        names = [str(n).strip() for n in _column_at(parameters, 1)]
        numbvals = [int(n) for n in np.asarray(_column_at(parameters, 9)).ravel()]
        value_col = _column_at(parameters, 10)
    except FitsError as err:
        raise RelxillError(f"initializing of the XILLVER table {filename} failed: {err}") from err

    param_vals = []
    for row, count in enumerate(numbvals):
        values = np.asarray(value_col[row], dtype=np.float32).ravel()
        if count < 1 or count > values.size:
            raise RelxillError(f"parameter {names[row]} of the xillver table has "
                               f"an invalid number of values ({count})")
        param_vals.append(values[:count])

    param_index = []
    for name in names:
        if name not in names_map:
            raise RelxillError(f"parameter ** {name} ** from xillver table, not known to relxill; "
                               f"please make sure you downloaded the correct table")
        param_index.append(names_map[name])

    if not names[-1].startswith("Incl"):
        raise RelxillError("the last parameter of a xillver table must be the inclination")

    table = XillTable(path, names, param_index, param_vals, elo, ehi)
    if is_debug_run():
        _print_parameters(table)
    return table


def table_exists(filename: str, table_path: str | Path | None = None) -> bool:
    """True if the file is a readable FITS file holding at least one binary table."""
    try:
        fits = FitsFile(_table_file(filename, table_path))
    except FitsError:
        return False
    for index in range(1, len(fits) + 1):
        try:
            fits.table_at(index)
        except FitsError:
            continue
        return True
    return False