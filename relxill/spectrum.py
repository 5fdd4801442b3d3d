"""Energy grids with binned flux, as handed over by the fitting host."""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

CONVERT_KEV2ERG = 1.602176634e-9


def log_energy_grid(n_energy: int, emin: float, emax: float) -> np.ndarray:
    """Return ``n_energy`` logarithmic grid values; the last one is exactly ``emax``."""
    if n_energy < 2:
        raise ValueError("an energy grid needs at least two values")
    steps = np.arange(n_energy, dtype=float) / (n_energy - 1.0)
    grid = np.exp(steps * (math.log(emax) - math.log(emin)) + math.log(emin))
    grid[-1] = emax
    return grid


class XspecSpectrum:
    """Energy bin edges (private copy) together with a flux array shared with the caller."""

    def __init__(self, energy: Sequence[float], flux: Sequence[float] | np.ndarray) -> None:
        self.energy = np.array(energy, dtype=float)
        self.flux = np.asarray(flux, dtype=float)
        if len(self.energy) != len(self.flux) + 1:
            raise ValueError("energy grid must have exactly one value more than the flux")

    @property
    def n_energy(self) -> int:
        return len(self.energy)

    @property
    def num_flux_bins(self) -> int:
        return len(self.flux)

    def shift_energy_grid_1kev(self, line_energy: float) -> None:
        """Scale the grid so that a line at ``line_energy`` appears at 1 keV."""
        self.energy /= line_energy

    def shift_energy_grid_redshift(self, z: float) -> None:
        """Scale the grid by (1 + z) for positive redshift."""
        if z > 0:
            self.energy *= 1 + z

    def multiply_flux_by(self, value: float) -> None:
        self.flux *= value

    def __imul__(self, value: float) -> XspecSpectrum:
        self.multiply_flux_by(value)
        return self

    def get_energy_flux(self) -> float:
        """Energy flux in erg/cm^2/s."""
        centres = 0.5 * (self.energy[:-1] + self.energy[1:])
        return float(np.sum(self.flux * centres)) * CONVERT_KEV2ERG


class DefaultSpec:
    """Logarithmic energy grid with a single unit flux bin in the middle."""

    def __init__(self, emin: float = 0.1, emax: float = 1000.0, n_bins: int = 3000) -> None:
        if n_bins < 1:
            raise ValueError("a spectrum needs at least one bin")
        self.energy = log_energy_grid(n_bins + 1, emin, emax)
        self.flux = np.zeros(n_bins, dtype=float)
        self.flux[n_bins // 2] = 1.0

    @property
    def num_flux_bins(self) -> int:
        return len(self.flux)

    def get_xspec_spectrum(self) -> XspecSpectrum:
        return XspecSpectrum(self.energy, self.flux)


class Spectrum:
    """Copy of a given energy grid with a zeroed flux array."""

    def __init__(self, energy: Sequence[float]) -> None:
        self.energy = np.array(energy, dtype=float)
        if len(self.energy) < 2:
            raise ValueError("an energy grid needs at least two values")
        self.flux = np.zeros(len(self.energy) - 1, dtype=float)

    @property
    def num_flux_bins(self) -> int:
        return len(self.flux)

    def get_xspec_spectrum(self) -> XspecSpectrum:
        return XspecSpectrum(self.energy, self.flux)

    def multiply_flux_by(self, value: float) -> None:
        self.flux *= value