"""Stochastic simulation of cell differentiation and mRNA expression."""

__version__ = "0.1.0"