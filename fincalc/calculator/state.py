"""
Display states of the calculator.

Exactly one of these is current at any time; the entry buffer only
exists while Entering.
"""

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True)
class Idle:
    """No pending entry. ``value`` is what the display shows."""

    value: float = 0.0
    name = "idle"


@dataclass(frozen=True)
class Entering:
    """The user is typing a literal."""

    buffer: str
    name = "entering"

    def parse(self) -> float:
        """Numeric value of the buffer; malformed literals count as zero."""
        try:
            return float(self.buffer)
        except ValueError:
            return 0.0


@dataclass(frozen=True)
class Solved:
    """A result was just computed; the next digit starts a fresh entry."""

    target: str
    value: float
    name = "solved"


@dataclass(frozen=True)
class Error:
    """Terminal error indication, cleared by the next input."""

    message: str
    kind: str = "CalculatorError"
    name = "error"


DisplayState = Union[Idle, Entering, Solved, Error]


def displayed_value(state: DisplayState) -> float:
    """The number currently on screen (zero in the Error state)."""
    if isinstance(state, Entering):
        return state.parse()
    if isinstance(state, (Idle, Solved)):
        return state.value
    return 0.0
