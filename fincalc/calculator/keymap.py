"""
Default keypad layout.

Maps key ids to calculator commands as ``(method name, args)``. A host
with a different keypad passes its own tables to Calculator.
"""

from typing import Dict, Tuple

from fincalc.calculator.registers import Register

Command = Tuple[str, tuple]

KEYMAP: Dict[str, Command] = {
    # TVM row
    "n": ("press_register", (Register.N,)),
    "iyr": ("press_register", (Register.IYR,)),
    "pv": ("press_register", (Register.PV,)),
    "pmt": ("press_register", (Register.PMT,)),
    "fv": ("press_register", (Register.FV,)),
    # Entry
    **{f"digit_{d}": ("enter_digit", (str(d),)) for d in range(10)},
    "decimal": ("enter_decimal", ()),
    "plus_minus": ("toggle_sign", ()),
    "backspace": ("backspace", ()),
    # Arithmetic
    "plus": ("operator", ("+",)),
    "minus": ("operator", ("-",)),
    "multiply": ("operator", ("*",)),
    "divide": ("operator", ("/",)),
    "equals": ("equals", ()),
    "percent": ("percent", ()),
    # Memory
    "sto": ("store_value", ()),
    "rcl": ("recall_value", ()),
    "m_plus": ("memory_add", ()),
    "rm": ("memory_recall", ()),
    # Cash flows
    "cfj": ("add_cash_flow", ()),
    "npv": ("compute_npv", ()),
    "irr": ("compute_irr", ()),
    "c": ("clear_entry", ()),
}

SHIFT_KEYMAP: Dict[str, Command] = {
    "n": ("store_years", ()),
    "iyr": ("set_payments_per_year", ()),
    "pv": ("toggle_timing", ()),
    "cfj": ("set_repeat_count", ()),
    "c": ("clear_all", ()),
}
