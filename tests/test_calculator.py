"""
Tests for the register-based calculator.
"""

import math

import pytest

from fincalc.calculator import (
    AmbiguousTargetError,
    Calculator,
    DegenerateSeriesError,
    InputError,
    InsufficientDataError,
    NumericDivergenceError,
    Register,
    RegisterSet,
)
from fincalc.calculator.formatting import DASH, format_money, format_number, format_percent, format_short
from fincalc.calculator.solve import resolve_target, solve
from fincalc.calculator.state import Entering, Error, Idle, Solved


def number_keys(text):
    """Key ids that type ``text``; a leading minus becomes +/- after the digits."""
    keys = ["decimal" if ch == "." else f"digit_{ch}" for ch in text.lstrip("-")]
    if text.startswith("-"):
        keys.append("plus_minus")
    return keys


def press(calc, *keys):
    """Press keys in order; numbers given as strings are typed digit by digit."""
    result = None
    for key in keys:
        if key[0].isdigit() or key[0] in "-.":
            for k in number_keys(key):
                calc.press_key(k)
        else:
            result = calc.press_key(key)
    return result


def fill(calc, **values):
    for name, value in values.items():
        calc.store_register(name, value)


class TestEntry:
    """Test digit entry and the entry buffer."""

    def test_digits_build_buffer(self, calculator):
        press(calculator, "123")
        assert calculator.state == Entering("123")
        assert calculator.display_text == "123"

    def test_leading_zero_replaced(self, calculator):
        press(calculator, "0", "5")
        assert calculator.state == Entering("5")

    def test_decimal(self, calculator):
        press(calculator, "decimal", "5", "decimal", "2")
        assert calculator.state == Entering("0.52")

    def test_plus_minus_during_entry(self, calculator):
        press(calculator, "1.5", "plus_minus")
        assert calculator.state == Entering("-1.5")
        press(calculator, "plus_minus")
        assert calculator.state == Entering("1.5")

    def test_plus_minus_on_result(self, calculator):
        press(calculator, "42", "equals", "plus_minus")
        assert calculator.state == Idle(-42.0)

    def test_backspace(self, calculator):
        press(calculator, "123", "backspace")
        assert calculator.state == Entering("12")
        press(calculator, "backspace", "backspace")
        assert calculator.state == Idle()

    def test_malformed_literal_is_zero(self):
        assert Entering("-").parse() == 0.0
        assert Entering("1.").parse() == 1.0

    def test_digit_after_solve_starts_fresh(self, calculator):
        fill(calculator, N=10, IYR=10, PV=-1000, PMT=0)
        calculator.solve_register("fv")
        press(calculator, "7")
        assert calculator.state == Entering("7")


class TestTVMSolve:
    """Test storing and solving TVM registers."""

    def test_mortgage_by_keystrokes(self, calculator, solve_events):
        """30-year mortgage at 6% with monthly payments."""
        press(calculator, "12", "shift", "iyr")
        assert calculator.payments_per_year == 12

        press(calculator, "360", "n", "6", "iyr", "-300000", "pv", "0", "fv")
        pmt = press(calculator, "pmt")

        assert abs(pmt - 1798.65) < 0.01
        assert calculator.registers.PMT == pmt
        assert calculator.state == Solved("PMT", pmt)
        assert calculator.display_text == "1,798.65"

        assert len(solve_events) == 1
        event = solve_events[0]
        assert event.solved_field is Register.PMT
        assert event.registers["PV"] == -300000
        assert event.payments_per_year == 12
        assert event.is_annuity_due is False

    def test_store_commits_buffer(self, calculator):
        press(calculator, "-1000", "pv")
        assert calculator.registers.PV == -1000
        assert calculator.state == Idle(-1000.0)

    def test_store_without_entry_fails(self, calculator):
        with pytest.raises(InputError):
            calculator.store_register("pv")
        assert isinstance(calculator.state, Error)

    def test_two_blanks_is_ambiguous(self, calculator, solve_events):
        """Two unknowns fail without touching the registers."""
        fill(calculator, IYR=5, PV=-1000, FV=1500)
        before = calculator.registers.as_dict()

        for register in Register:
            with pytest.raises(AmbiguousTargetError):
                calculator.solve_register(register)
            assert calculator.registers.as_dict() == before

        assert calculator.state.kind == "AmbiguousTargetError"
        assert calculator.display_text == "Error"
        assert solve_events == []

    def test_ambiguous_is_insufficient_data(self):
        assert issubclass(AmbiguousTargetError, InsufficientDataError)

    def test_single_blank_auto_target(self, calculator, solve_events):
        """Pressing FV with only N blank solves N."""
        fill(calculator, IYR=5, PV=-1000, PMT=-50, FV=1500)
        n = press(calculator, "fv")

        assert abs(n - math.log(1.25) / math.log(1.05)) < 1e-9
        assert calculator.registers.N == n
        assert calculator.registers.FV == 1500
        assert solve_events[0].solved_field is Register.N

    def test_resolve_all_filled(self, calculator):
        """With every register filled the pressed one is recomputed."""
        fill(calculator, N=10, IYR=10, PV=-1000, PMT=0, FV=999)
        fv = calculator.solve_register("fv")
        assert abs(fv - 1000 * 1.1 ** 10) < 1e-6

    def test_insufficient_data(self, calculator):
        fill(calculator, N=10, PV=-1000)
        with pytest.raises(InsufficientDataError) as exc_info:
            calculator.solve_register("pmt")
        assert not isinstance(exc_info.value, AmbiguousTargetError)

    def test_number_of_periods_divergence(self, calculator):
        fill(calculator, IYR=0, PV=-1000, PMT=0, FV=1000)
        with pytest.raises(NumericDivergenceError):
            calculator.solve_register("n")
        assert calculator.registers.N is None

    def test_periods_at_minus_hundred_percent_diverges(self, calculator):
        fill(calculator, IYR=-100, PV=-50, PMT=100, FV=0)
        with pytest.raises(NumericDivergenceError):
            calculator.solve_register("n")
        assert calculator.registers.N is None

    def test_rate_without_root_diverges(self, calculator):
        """Same-signed flows have no rate."""
        fill(calculator, N=10, PV=1000, PMT=100, FV=1000)
        with pytest.raises(NumericDivergenceError):
            calculator.solve_register("iyr")
        assert calculator.registers.IYR is None

    def test_rate_solve_annualized(self, calculator):
        """Solved rate is reported as an annual percent."""
        calculator.set_payments_per_year(12)
        fill(calculator, N=360, PV=-300000, PMT=1798.6515754582708, FV=0)
        iyr = calculator.solve_register("iyr")
        assert abs(iyr - 6) < 1e-6

    def test_annuity_due_payment(self, calculator):
        """BEGIN mode mortgage payment."""
        press(calculator, "shift", "pv")
        assert calculator.is_annuity_due is True

        calculator.set_payments_per_year(12)
        fill(calculator, N=360, IYR=6, PV=-300000, FV=0)
        pmt = calculator.solve_register("pmt")
        assert abs(pmt - 1789.70) < 0.01

    def test_store_years(self, calculator):
        calculator.set_payments_per_year(12)
        press(calculator, "30", "shift", "n")
        assert calculator.registers.N == 360

    def test_store_years_without_entry(self, calculator):
        with pytest.raises(InputError):
            press(calculator, "shift", "n")


class TestSolvePolicy:
    """Test target selection on bare register sets."""

    def test_one_blank_wins_over_pressed(self):
        registers = RegisterSet(N=None, IYR=5, PV=-1000, PMT=-50, FV=1500)
        assert resolve_target(registers, Register.FV) is Register.N

    def test_all_filled_needs_pressed(self):
        registers = RegisterSet(N=10, IYR=5, PV=-1000, PMT=0, FV=1500)
        assert resolve_target(registers, Register.PV) is Register.PV
        with pytest.raises(InsufficientDataError):
            resolve_target(registers)

    def test_solve_does_not_modify_input(self):
        registers = RegisterSet(N=10, IYR=10, PV=-1000, PMT=0, FV=None)
        target, solved = solve(registers)
        assert target is Register.FV
        assert registers.FV is None
        assert abs(solved.FV - 2593.7424601) < 1e-6

    def test_register_parse(self):
        assert Register.parse("i/yr") is Register.IYR
        assert Register.parse("pmt") is Register.PMT
        with pytest.raises(InputError):
            Register.parse("x")


class TestErrorState:
    """Test the Error display."""

    def test_next_input_clears_error(self, calculator):
        with pytest.raises(InsufficientDataError):
            calculator.solve_register("pv")
        assert isinstance(calculator.state, Error)

        press(calculator, "5")
        assert calculator.state == Entering("5")

    def test_clear_entry_acknowledges_error(self, calculator):
        fill(calculator, PV=-1000)
        with pytest.raises(InsufficientDataError):
            calculator.solve_register("fv")

        calculator.clear_entry()
        assert calculator.state == Idle()
        assert calculator.registers.PV == -1000

    def test_unknown_key(self, calculator):
        with pytest.raises(InputError):
            calculator.press_key("sqrt")
        assert calculator.snapshot().display == "error"

    def test_shifted_key_without_function(self, calculator):
        press(calculator, "shift", "digit_5")
        assert calculator.state == Idle()
        assert calculator.shift_active is False


class TestClear:
    """Test clear entry and clear all."""

    def test_clear_entry_keeps_registers(self, calculator):
        fill(calculator, PV=-1000)
        press(calculator, "123", "c")
        assert calculator.state == Idle()
        assert calculator.registers.PV == -1000

    def test_clear_all(self):
        calc = Calculator(payments_per_year=12)
        fill(calc, N=360, IYR=6, PV=-300000)
        calc.set_payments_per_year(4)
        calc.toggle_timing()
        calc.add_cash_flow(-100)
        calc.memory_add()

        press(calc, "shift", "c")

        assert calc.registers.blanks() == list(Register)
        assert calc.payments_per_year == 12
        assert calc.is_annuity_due is False
        assert calc.cash_flows == []
        assert calc.memory == 0
        assert calc.state == Idle()


class TestPaymentsPerYear:
    """Test P/YR entry."""

    def test_show_current(self, calculator):
        press(calculator, "shift", "iyr")
        assert calculator.state == Idle(1.0)

    @pytest.mark.parametrize("value", [0, -1, 2.5])
    def test_invalid(self, calculator, value):
        with pytest.raises(InputError):
            calculator.set_payments_per_year(value)
        assert calculator.payments_per_year == 1


class TestCashFlows:
    """Test cash flow entry with NPV and IRR."""

    def enter_flows(self, calc):
        press(calc, "-1000", "cfj", "300", "cfj", "5", "shift", "cfj")

    def test_repeat_count(self, calculator):
        self.enter_flows(calculator)
        assert [(cf.amount, cf.count) for cf in calculator.cash_flows] == [(-1000, 1), (300, 5)]

    def test_irr(self, calculator):
        self.enter_flows(calculator)
        value = press(calculator, "irr")
        assert 15.2 < value < 15.25
        assert calculator.state == Solved("IRR", value)
        # IRR leaves the I/YR register alone
        assert calculator.registers.IYR is None

    def test_irr_annualized(self, calculator):
        calculator.set_payments_per_year(12)
        for amount in (-1000, 300, 300, 300, 300, 300):
            calculator.add_cash_flow(amount)
        assert abs(calculator.compute_irr() / 12 - 15.238) < 0.01

    def test_npv_from_register(self, calculator):
        self.enter_flows(calculator)
        press(calculator, "10", "iyr")
        value = press(calculator, "npv")
        assert abs(value - 137.24) < 0.01
        assert calculator.state == Solved("NPV", value)

    def test_npv_explicit_rate(self, calculator):
        calculator.add_cash_flow(-100)
        calculator.add_cash_flow(110)
        assert abs(calculator.compute_npv(10)) < 1e-9

    def test_npv_without_rate(self, calculator):
        calculator.add_cash_flow(-100)
        with pytest.raises(InsufficientDataError):
            calculator.compute_npv()

    def test_initial_flow_cannot_repeat(self, calculator):
        press(calculator, "-1000", "cfj")
        with pytest.raises(InputError):
            press(calculator, "3", "shift", "cfj")

    def test_repeat_without_flows(self, calculator):
        with pytest.raises(InputError):
            calculator.set_repeat_count(2)

    def test_single_flow_irr(self, calculator):
        calculator.add_cash_flow(-1000)
        with pytest.raises(DegenerateSeriesError):
            calculator.compute_irr()

    def test_irr_no_sign_change(self, calculator):
        calculator.add_cash_flow(100)
        calculator.add_cash_flow(100)
        with pytest.raises(NumericDivergenceError):
            calculator.compute_irr()

    def test_clear_cash_flows(self, calculator):
        self.enter_flows(calculator)
        calculator.clear_cash_flows()
        assert calculator.cash_flows == []


class TestArithmetic:
    """Test plain arithmetic and memory keys."""

    def test_multiply(self, calculator):
        assert press(calculator, "6", "multiply", "7", "equals") == 42

    def test_chained(self, calculator):
        press(calculator, "2", "plus", "3", "plus")
        assert calculator.state == Idle(5.0)
        assert press(calculator, "4", "equals") == 9

    def test_divide_by_zero(self, calculator):
        with pytest.raises(NumericDivergenceError):
            press(calculator, "5", "divide", "0", "equals")
        assert isinstance(calculator.state, Error)

    def test_percent(self, calculator):
        fill(calculator, PV=-1000)
        assert press(calculator, "50", "percent") == 0.5
        assert calculator.registers.PV == -1000

    def test_memory(self, calculator):
        press(calculator, "12", "m_plus", "8", "m_plus", "c")
        assert press(calculator, "rm") == 20

    def test_store_recall(self, calculator):
        press(calculator, "7", "sto", "c")
        assert press(calculator, "rcl") == 7


class TestSubscribe:
    """Test solve notifications."""

    def test_unsubscribe(self, calculator):
        events = []
        unsubscribe = calculator.subscribe(events.append)
        fill(calculator, N=10, IYR=10, PV=-1000, PMT=0)
        calculator.solve_register("fv")
        unsubscribe()
        calculator.solve_register("fv")
        assert len(events) == 1

    def test_unsubscribe_twice(self, calculator):
        events = []
        unsubscribe = calculator.subscribe(events.append)
        unsubscribe()
        unsubscribe()
        fill(calculator, N=10, IYR=10, PV=-1000, PMT=0)
        calculator.solve_register("fv")
        assert events == []

    def test_snapshot(self, calculator):
        fill(calculator, PV=-1000)
        calculator.add_cash_flow(-5)
        snap = calculator.snapshot()
        assert snap.registers == {"N": None, "IYR": None, "PV": -1000, "PMT": None, "FV": None}
        assert snap.display == "idle"
        assert snap.cash_flows == [{"amount": -5, "count": 1}]
        assert snap.register_text == {"N": "", "IYR": "", "PV": "-1,000", "PMT": "", "FV": ""}


class TestFormatting:
    """Test display formatting."""

    def test_format_number(self):
        assert format_number(0) == "0.00"
        assert format_number(1234.5) == "1,234.50"
        assert format_number(-0.5) == "-0.5000"
        assert format_number(0.005) == "0.005000"
        assert format_number(1.5e10) == "1.5000e+10"
        assert format_number(float("nan")) == "Error"

    def test_format_short(self):
        assert format_short(1234.5) == "1,234.5"
        assert format_short(2.0) == "2"
        assert format_short(-0.001) == "0"

    def test_format_money_and_percent(self):
        assert format_money(-1234.5) == "-$1,234.50"
        assert format_money(float("inf")) == DASH
        assert format_percent(0.05) == "5.0000%"
        assert format_percent(0.1, decimals=2) == "10.00%"
