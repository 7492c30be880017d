"""
Register-based financial calculator.

Holds the TVM registers and auxiliary state, turns keystrokes into stores
and solves, and reports every successful solve to subscribers. Instances
are not thread-safe; drive each one from a single input stream.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from fincalc.calculations import irr
from fincalc.calculator import keymap as default_keymap
from fincalc.calculator.errors import (
    CalculatorError,
    DegenerateSeriesError,
    InputError,
    InsufficientDataError,
    NumericDivergenceError,
)
from fincalc.calculator.formatting import format_number, format_short
from fincalc.calculator.registers import CashFlowEntry, Register, RegisterSet, SolveEvent
from fincalc.calculator.solve import periodic_rate, solve
from fincalc.calculator.state import (
    DisplayState,
    Entering,
    Error,
    Idle,
    Solved,
    displayed_value,
)

logger = logging.getLogger(__name__)

OPERATORS = ("+", "-", "*", "/")


@dataclass
class CalculatorSnapshot:
    """Everything a UI needs to render the calculator."""

    registers: Dict[str, Optional[float]]
    payments_per_year: int
    is_annuity_due: bool
    display: str
    display_text: str
    memory: float = 0.0
    stored: float = 0.0
    cash_flows: List[Dict] = field(default_factory=list)
    shift_active: bool = False
    register_text: Dict[str, str] = field(default_factory=dict)


def _evaluate(a: float, b: float, op: str) -> float:
    if op == "+":
        return a + b
    if op == "-":
        return a - b
    if op == "*":
        return a * b
    if b == 0:
        return float("nan")
    return a / b


class Calculator:
    """Financial calculator state machine."""

    def __init__(
        self,
        payments_per_year: int = 1,
        keymap: Optional[Dict] = None,
        shift_keymap: Optional[Dict] = None,
    ):
        self._default_payments_per_year = payments_per_year
        self.keymap = keymap if keymap is not None else default_keymap.KEYMAP
        self.shift_keymap = (
            shift_keymap if shift_keymap is not None else default_keymap.SHIFT_KEYMAP
        )
        self._listeners: List[Callable[[SolveEvent], None]] = []

        self.registers = RegisterSet()
        self.payments_per_year = payments_per_year
        self.is_annuity_due = False
        self.memory = 0.0
        self.stored = 0.0
        self.cash_flows: List[CashFlowEntry] = []
        self.state: DisplayState = Idle()
        self.shift_active = False
        self._pending_op: Optional[str] = None
        self._pending_operand: Optional[float] = None

    # ===== QUERIES =====

    @property
    def display_text(self) -> str:
        if isinstance(self.state, Entering):
            return self.state.buffer
        if isinstance(self.state, Error):
            return "Error"
        return format_number(self.state.value)

    def snapshot(self) -> CalculatorSnapshot:
        return CalculatorSnapshot(
            registers=self.registers.as_dict(),
            payments_per_year=self.payments_per_year,
            is_annuity_due=self.is_annuity_due,
            display=self.state.name,
            display_text=self.display_text,
            memory=self.memory,
            stored=self.stored,
            cash_flows=[{"amount": cf.amount, "count": cf.count} for cf in self.cash_flows],
            shift_active=self.shift_active,
            register_text={
                name: format_short(value) if value is not None else ""
                for name, value in self.registers.as_dict().items()
            },
        )

    def subscribe(self, callback: Callable[[SolveEvent], None]) -> Callable[[], None]:
        """Call ``callback`` after every successful TVM solve. Returns an unsubscriber."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    # ===== INTERNAL =====

    def _fail(self, error: CalculatorError) -> CalculatorError:
        """Enter the Error display for ``error`` and hand it back for raising."""
        self.state = Error(str(error), type(error).__name__)
        logger.debug(f"Calculator error: {type(error).__name__}: {error}")
        return error

    def _acknowledge_error(self) -> bool:
        """Clear a pending Error display. Returns True if there was one."""
        if not isinstance(self.state, Error):
            return False
        self.state = Idle()
        self._pending_op = None
        self._pending_operand = None
        return True

    def _take_value(self, value: Optional[float]) -> float:
        """An explicit argument, else the number on the display."""
        if value is not None:
            return float(value)
        return displayed_value(self.state)

    def _take_count(self, value, what: str) -> int:
        count = self._take_value(value)
        if not math.isfinite(count) or count != int(count) or count < 1:
            raise self._fail(InputError(f"{what} must be a positive whole number"))
        return int(count)

    # ===== ENTRY =====

    def enter_digit(self, digit) -> None:
        self._acknowledge_error()
        digit = str(digit)
        if len(digit) != 1 or not digit.isdigit():
            raise self._fail(InputError(f"Not a digit: {digit!r}"))

        buffer = self.state.buffer if isinstance(self.state, Entering) else ""
        if buffer == "0":
            buffer = digit
        elif buffer == "-0":
            buffer = "-" + digit
        else:
            buffer += digit
        self.state = Entering(buffer)

    def enter_decimal(self) -> None:
        self._acknowledge_error()
        buffer = self.state.buffer if isinstance(self.state, Entering) else ""
        if "." in buffer:
            return
        if buffer in ("", "-"):
            buffer += "0"
        self.state = Entering(buffer + ".")

    def toggle_sign(self) -> None:
        self._acknowledge_error()
        if isinstance(self.state, Entering):
            buffer = self.state.buffer
            self.state = Entering(buffer[1:] if buffer.startswith("-") else "-" + buffer)
            return
        value = displayed_value(self.state)
        if value != 0:
            self.state = Idle(-value)

    def backspace(self) -> None:
        self._acknowledge_error()
        if not isinstance(self.state, Entering):
            return
        buffer = self.state.buffer[:-1]
        if buffer in ("", "-"):
            self.state = Idle()
        else:
            self.state = Entering(buffer)

    # ===== TVM =====

    def press_register(self, register) -> Optional[float]:
        """Store the entry into ``register``, or solve if nothing is being entered."""
        if isinstance(self.state, Entering):
            self.store_register(register)
            return None
        return self.solve_register(register)

    def store_register(self, register, value: Optional[float] = None) -> float:
        """
        Assign a value to a TVM register.

        Uses ``value`` if given, otherwise the literal being entered.
        """
        self._acknowledge_error()
        register = Register.parse(register)
        if value is None:
            if not isinstance(self.state, Entering):
                raise self._fail(InputError(f"Nothing entered to store in {register.value}"))
            value = self.state.parse()
        value = float(value)

        self.registers.set(register, value)
        self.state = Idle(value)
        return value

    def solve_register(self, register) -> float:
        """
        Solve for the missing TVM variable; ``register`` is the key pressed.

        Raises:
            InsufficientDataError: fewer than four registers filled
            AmbiguousTargetError: two registers blank
            NumericDivergenceError: no finite solution

        On failure the calculator shows Error and the registers are untouched.
        """
        self._acknowledge_error()
        if isinstance(self.state, Entering):
            logger.debug(f"Discarding entry {self.state.buffer!r} for solve")

        try:
            target, solved = solve(
                self.registers,
                Register.parse(register),
                self.payments_per_year,
                self.is_annuity_due,
            )
        except CalculatorError as e:
            self._fail(e)
            raise

        value = solved.get(target)

        self.registers = solved
        self.state = Solved(target.value, value)

        event = SolveEvent(
            registers=solved.as_dict(),
            solved_field=target,
            payments_per_year=self.payments_per_year,
            is_annuity_due=self.is_annuity_due,
        )
        for listener in list(self._listeners):
            listener(event)
        return value

    def store_years(self, years: Optional[float] = None) -> float:
        """xP/YR: store years times payments per year into N."""
        self._acknowledge_error()
        if years is None and not isinstance(self.state, Entering):
            raise self._fail(InputError("Enter the number of years first"))
        n = self._take_value(years) * self.payments_per_year
        self.registers.N = n
        self.state = Idle(n)
        return n

    def toggle_timing(self) -> bool:
        """Switch between END (ordinary annuity) and BEGIN (annuity due)."""
        self._acknowledge_error()
        self.is_annuity_due = not self.is_annuity_due
        return self.is_annuity_due

    def set_payments_per_year(self, payments_per_year: Optional[int] = None) -> int:
        """
        Set P/YR from the argument or the entry. With neither, just show
        the current value.
        """
        self._acknowledge_error()
        if payments_per_year is None and not isinstance(self.state, Entering):
            self.state = Idle(float(self.payments_per_year))
            return self.payments_per_year

        self.payments_per_year = self._take_count(payments_per_year, "Payments per year")
        self.state = Idle(float(self.payments_per_year))
        return self.payments_per_year

    # ===== CLEAR =====

    def clear_entry(self) -> None:
        if self._acknowledge_error():
            return
        self.state = Idle()
        self._pending_op = None
        self._pending_operand = None

    def clear_all(self) -> None:
        self._acknowledge_error()
        self.clear_entry()
        self.registers.clear()
        self.payments_per_year = self._default_payments_per_year
        self.is_annuity_due = False
        self.memory = 0.0
        self.stored = 0.0
        self.cash_flows = []

    # ===== CASH FLOWS =====

    def add_cash_flow(self, amount: Optional[float] = None) -> int:
        """Append a cash flow (count 1). Returns its index; index 0 is CF0."""
        self._acknowledge_error()
        value = self._take_value(amount)
        self.cash_flows.append(CashFlowEntry(value))
        self.state = Idle(value)
        return len(self.cash_flows) - 1

    def set_repeat_count(self, count: Optional[int] = None) -> int:
        """Set how many consecutive periods the last cash flow repeats."""
        self._acknowledge_error()
        count = self._take_count(count, "Repeat count")
        if not self.cash_flows:
            raise self._fail(InputError("No cash flow to repeat"))
        if len(self.cash_flows) == 1:
            raise self._fail(InputError("The initial cash flow cannot repeat"))
        self.cash_flows[-1].count = count
        self.state = Idle(float(count))
        return count

    def clear_cash_flows(self) -> None:
        self._acknowledge_error()
        self.cash_flows = []

    def compute_npv(self, rate: Optional[float] = None) -> float:
        """
        NPV of the cash flow list.

        Args:
            rate: Annual discount rate in percent; defaults to the I/YR register
        """
        self._acknowledge_error()
        if rate is None:
            rate = self.registers.IYR
        if rate is None:
            raise self._fail(InsufficientDataError("Enter I/YR for the discount rate"))
        flows = irr.expand_cash_flows(self.cash_flows)
        if not flows:
            raise self._fail(InsufficientDataError("No cash flows entered"))

        value = irr.net_present_value(periodic_rate(rate, self.payments_per_year), flows)
        if not math.isfinite(value):
            raise self._fail(NumericDivergenceError("NPV is undefined at this rate"))
        self.state = Solved("NPV", value)
        return value

    def compute_irr(self) -> float:
        """IRR/YR of the cash flow list, in annual percent."""
        self._acknowledge_error()
        flows = irr.expand_cash_flows(self.cash_flows)
        if len(flows) < 2:
            raise self._fail(DegenerateSeriesError("IRR needs at least two cash flows"))

        changes = irr.sign_changes(flows)
        if changes > 1:
            logger.warning(f"Cash flows change sign {changes} times; IRR may not be unique")

        r = irr.internal_rate_of_return(flows)
        if not math.isfinite(r):
            raise self._fail(NumericDivergenceError("IRR did not converge"))
        value = r * self.payments_per_year * 100
        self.state = Solved("IRR", value)
        return value

    # ===== ARITHMETIC =====

    def operator(self, op: str) -> None:
        self._acknowledge_error()
        if op not in OPERATORS:
            raise self._fail(InputError(f"Unknown operator: {op!r}"))

        value = displayed_value(self.state)
        if self._pending_op and isinstance(self.state, Entering):
            value = _evaluate(self._pending_operand, value, self._pending_op)
            if not math.isfinite(value):
                raise self._fail(NumericDivergenceError("Division by zero"))
        self._pending_operand = value
        self._pending_op = op
        self.state = Idle(value)

    def equals(self) -> float:
        self._acknowledge_error()
        value = displayed_value(self.state)
        if self._pending_op:
            value = _evaluate(self._pending_operand, value, self._pending_op)
            self._pending_op = None
            self._pending_operand = None
            if not math.isfinite(value):
                raise self._fail(NumericDivergenceError("Division by zero"))
        self.state = Idle(value)
        return value

    def percent(self) -> float:
        """Divide the displayed value by 100. Never touches the registers."""
        self._acknowledge_error()
        value = displayed_value(self.state) / 100
        self.state = Idle(value)
        return value

    # ===== MEMORY =====

    def store_value(self) -> float:
        """STO: keep the displayed value."""
        self._acknowledge_error()
        self.stored = displayed_value(self.state)
        return self.stored

    def recall_value(self) -> float:
        """RCL: show the stored value."""
        self._acknowledge_error()
        self.state = Idle(self.stored)
        return self.stored

    def memory_add(self) -> float:
        """M+: add the displayed value to memory."""
        self._acknowledge_error()
        value = displayed_value(self.state)
        self.memory += value
        self.state = Idle(value)
        return self.memory

    def memory_recall(self) -> float:
        self._acknowledge_error()
        self.state = Idle(self.memory)
        return self.memory

    # ===== KEY DISPATCH =====

    def press_key(self, key_id: str):
        """
        Run the command bound to ``key_id`` in the keymap.

        The ``shift`` key arms the shifted layer for the next key only.
        Errors from the command propagate after the Error display is set.
        """
        if key_id == "shift":
            self._acknowledge_error()
            self.shift_active = not self.shift_active
            return None

        shifted = self.shift_active
        self.shift_active = False
        command = (self.shift_keymap if shifted else self.keymap).get(key_id)
        if command is None:
            if shifted and key_id in self.keymap:
                # Shifted key with no second function
                self._acknowledge_error()
                return None
            raise self._fail(InputError(f"Unknown key: {key_id!r}"))

        method, args = command
        return getattr(self, method)(*args)
