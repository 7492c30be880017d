"""
Register-based financial calculator built on the calculation engine.
"""

from fincalc.calculator.errors import (
    AmbiguousTargetError,
    CalculatorError,
    DegenerateSeriesError,
    InputError,
    InsufficientDataError,
    NumericDivergenceError,
)
from fincalc.calculator.machine import Calculator, CalculatorSnapshot
from fincalc.calculator.registers import CashFlowEntry, Register, RegisterSet, SolveEvent

__all__ = [
    "AmbiguousTargetError",
    "CalculatorError",
    "DegenerateSeriesError",
    "InputError",
    "InsufficientDataError",
    "NumericDivergenceError",
    "Calculator",
    "CalculatorSnapshot",
    "CashFlowEntry",
    "Register",
    "RegisterSet",
    "SolveEvent",
]
