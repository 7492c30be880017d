"""
Calculator error taxonomy.

The finance engine never raises; the calculator classifies failed solves
into these errors for user messaging.
"""


class CalculatorError(ValueError):
    """Base class for anything that puts the calculator in the Error state."""


class InputError(CalculatorError):
    """A keystroke or value that cannot be used."""


class InsufficientDataError(CalculatorError):
    """Fewer than four TVM registers are filled."""


class AmbiguousTargetError(InsufficientDataError):
    """Two registers are blank, so the solve target is not unique."""


class NumericDivergenceError(CalculatorError):
    """The engine returned a non-finite or implausible result."""


class DegenerateSeriesError(CalculatorError):
    """IRR was requested for fewer than two cash flows."""
