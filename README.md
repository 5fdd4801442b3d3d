# relxill

Building blocks for relativistic X-ray reflection spectra, written in Python
on top of numpy. The package reads the model tables (relline, lamp-post and
xillver tables in FITS format), interpolates reflection spectra from them, and
offers the grid, search, interpolation and rebinning helpers that model
calculations are built from.

## Modules

- `relxill.relutility`: linear, logarithmic and bilinear interpolation
  (`interp_lin_1d`, `interp_log_1d`, `interp_lin_2d`), binary searches on
  ascending and descending arrays (`binary_search`, `inv_binary_search`),
  grids (`get_log_grid`, `get_lin_grid`, `get_rzone_grid`,
  `get_fine_radial_grid`), ring-area integration (`trapez_integ_single`,
  `trapez_integ_single_rad_ascending`), interpolation factors
  (`get_ipol_factor`, `get_ipol_factor_radius`), `gstar2ener`,
  `get_nthcomp_param`, and the error class `RelxillError`.
  It also reads the environment switches:
  - `RELXILL_TABLE_PATH` – table directory (`relxill_table_path()`, default `./`)
  - `DEBUG_RELXILL=1` – `is_debug_run()`
  - `RELXILL_PRINT_DETAILS=1` – `should_aux_info_be_printed()`
  - `RELXILL_WRITE_FILES=1` – `should_outfiles_be_written()`
  - `RELLINE_PHYSICAL_NORM=1` – `do_not_normalize_relline()`
- `relxill.rebin`: `rebin_spectrum` (binned flux onto a new energy grid),
  `inv_rebin_mean`, `rebin_mean_flux`, `calc_sum_in_energy_band`,
  `norm_spec`, and `fft_r2ct`, a complex FFT of `2**m` points (forward
  transform scaled by 1/n).
- `relxill.spectrum`: `XspecSpectrum` (a private copy of the bin edges with a
  shared flux array; energy shifts, flux scaling, `get_energy_flux` in
  erg/cm²/s), `DefaultSpec` (logarithmic grid, 0.1–1000 keV with 3000 bins by
  default, a single unit flux bin in the middle), `Spectrum` (given grid,
  zero flux) and `log_energy_grid`.
- `relxill.outfiles`: writes columns of numbers to plain text files
  (`write_data_to_file`, `write_binned_data_to_file`). The `save_*` helpers
  write to fixed file names in the current directory:
  `__relxillOutput_radialFluxProfile.dat`, `__relxillOutput_rellineProfile.dat`
  and `__relxillOutput_emisProfile.dat`; `save_xillver_spectrum` writes to the
  path it is given.
- `relxill.fitstable`: a small reader and writer for FITS files made of binary
  tables: `FitsFile` (`table(name)`, `table_at(hdu_number)`), `BinTable`
  (`column(name)`, `read(name, row)`), `write_bintables` and `FitsError`.
- `relxill.reltable`: `read_relline_table` and `read_lp_table`, returning
  `RelTable` (of `RelDat`) and `LpTable` (of `LpDat`).
- `relxill.xilltable`: `load_xillver_table` reads the parameter axes and the
  energy grid of a xillver table into an `XillTable`; spectra are read on
  demand with `XillTable.load_spectra` and kept in memory. Also
  `XillParam`, `XillTableParam`, `renorm_xill_spec` and `table_exists`.
- `relxill.xillinterp`: `interp_xill_table` interpolates the loaded spectra
  into an `XillSpec`.

## Installation

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Examples

Spectra and band sums:

```python
from relxill.spectrum import DefaultSpec
from relxill.rebin import calc_sum_in_energy_band

spec = DefaultSpec(0.1, 1000.0, 3000).get_xspec_spectrum()
spec.multiply_flux_by(2.0)
print(calc_sum_in_energy_band(spec.flux, spec.energy, 1.0, 1000.0))
print(spec.get_energy_flux())
```

Tables are looked up in the directory named by `RELXILL_TABLE_PATH`, unless
`table_path` is passed:

```python
from relxill.reltable import read_relline_table

table = read_relline_table("rel_table_v0.5a.fits", table_path="/data/tables")
print(table.n_a, table.n_mu0, table.n_r, table.n_g)
```

Interpolating a xillver spectrum:

```python
from relxill.xilltable import XillTableParam, load_xillver_table
from relxill.xillinterp import interp_xill_table

table = load_xillver_table("xillver-a-Ec5.fits", table_path="/data/tables")
param = XillTableParam(gam=2.0, afe=1.0, lxi=3.1, ect=300.0, dens=15.0,
                       ktbb=1.0, frac_pl_bb=0.0, incl=30.0)
ind = table.indices_for_params(param)
table.load_spectra(param, ind)
spec = interp_xill_table(table, param, ind, is_xill=True)
print(spec.ener.shape, spec.flu.shape)
```

With `is_xill=False` the inclination is not interpolated and `spec.flu` holds
one spectrum for every tabulated inclination.

Errors are raised as `relxill.relutility.RelxillError`;
`relxill.fitstable.FitsError` is a subclass of it.

## What this package does not do

It does not evaluate the complete models (relativistic line profiles,
convolution, or the full reflection spectra built from the tables), holds no
database of model definitions or parameters, and provides no command-line
program or fitting-host interface. It supplies the table access,
interpolation, grids and rebinning that such calculations use.