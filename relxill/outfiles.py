"""Writing of radial profiles and spectra to plain text files."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

RADIAL_FLUX_PROFILE_FILE = "__relxillOutput_radialFluxProfile.dat"
RELLINE_PROFILE_FILE = "__relxillOutput_rellineProfile.dat"
EMIS_PROFILE_FILE = "__relxillOutput_emisProfile.dat"


def write_binned_data_to_file(path: str | Path, rad: Sequence[float],
                              intens: Sequence[float]) -> Path:
    """Write lines ``lo hi value``; bin ``i`` spans rad[i] to rad[i+1]."""
    rad = list(rad)
    intens = list(intens)
    if len(rad) < len(intens) + 1:
        raise ValueError("binned data need one grid value more than data values")
    path = Path(path)
    with path.open("w") as fout:
        for lo, hi, value in zip(rad, rad[1:], intens):
            fout.write(f" {lo:e} \t {hi:e} \t {value:e} \n")
    return path


def write_data_to_file(path: str | Path, rad: Sequence[float],
                       intens: Sequence[float]) -> Path:
    """Write lines ``x y`` for each pair of values."""
    path = Path(path)
    with path.open("w") as fout:
        for x, y in zip(rad, intens, strict=True):
            fout.write(f" {x:e} \t {y:e} \n")
    return path


def save_relline_radial_flux_profile(rad: Sequence[float], intens: Sequence[float]) -> Path:
    """Write the radial flux profile to the standard output file."""
    return write_data_to_file(RADIAL_FLUX_PROFILE_FILE, rad, intens)


def save_relline_profile(ener: Sequence[float], flux: Sequence[float]) -> Path:
    """Write a binned line profile to the standard output file."""
    return write_binned_data_to_file(RELLINE_PROFILE_FILE, ener, flux)


def save_xillver_spectrum(ener: Sequence[float], flux: Sequence[float],
                          path: str | Path) -> Path:
    """Write a binned reflection spectrum to ``path``."""
    return write_binned_data_to_file(path, ener, flux)


def save_emis_profile(re: Sequence[float], emis: Sequence[float]) -> Path:
    """Write the emissivity profile to the standard output file."""
    return write_data_to_file(EMIS_PROFILE_FILE, re, emis)