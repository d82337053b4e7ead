[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vscell"
version = "0.1.0"
description = "Stochastic simulation of cell differentiation and mRNA expression in clonal cell populations"
requires-python = ">=3.10"
dependencies = []
keywords = ["simulation", "hematopoiesis", "stem cells", "mRNA", "stochastic", "differentiation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Bio-Informatics",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
vscell = "vscell.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["vscell"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
