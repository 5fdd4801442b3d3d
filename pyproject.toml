[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "relxill"
version = "0.1.0"
description = "Table handling, grids, interpolation and rebinning for relativistic X-ray reflection models"
requires-python = ">=3.10"
keywords = ["astronomy", "x-ray", "reflection", "relativistic", "spectra", "fits", "xillver"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Astronomy",
    "Topic :: Scientific/Engineering :: Physics",
]
dependencies = [
    "numpy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["relxill"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
