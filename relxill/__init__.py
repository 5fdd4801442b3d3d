"""Table access, grids, interpolation and rebinning for relativistic X-ray reflection spectra."""

__version__ = "0.1.0"

__all__ = [
    "relutility",
    "rebin",
    "spectrum",
    "outfiles",
    "fitstable",
    "reltable",
    "xilltable",
    "xillinterp",
]