"""
Financial Calculation Engine

Pure functions for time value of money, cash flow analysis and bonds.
Solvers return nan instead of raising when no solution exists.
"""

from fincalc.calculations import amortization, bonds, irr, solver, tvm

__all__ = ["amortization", "bonds", "irr", "solver", "tvm"]
