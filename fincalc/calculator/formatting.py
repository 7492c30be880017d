"""
Numeric display formatting.
"""

import math

DASH = "—"


def format_number(value: float) -> str:
    """
    Format a value the way the calculator display shows it.

    Two decimals by default, four below 1, six below 0.01, scientific
    notation from 1e10, thousands separators otherwise.
    """
    if not math.isfinite(value):
        return "Error"
    magnitude = abs(value)
    if magnitude == 0:
        return "0.00"
    if magnitude >= 1e10:
        return f"{value:.4e}"
    if magnitude < 0.01:
        decimals = 6
    elif magnitude < 1:
        decimals = 4
    else:
        decimals = 2
    return f"{value:,.{decimals}f}"


def format_short(value: float) -> str:
    """Compact register readout: up to two decimals, no trailing zeros."""
    if not math.isfinite(value):
        return "??"
    if abs(value) >= 1e7:
        return f"{value:.1e}"
    text = f"{value:,.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def format_money(value: float, decimals: int = 2) -> str:
    """Dollar amount with the sign before the symbol, e.g. -$1,234.50."""
    if not math.isfinite(value):
        return DASH
    prefix = "-$" if value < 0 else "$"
    return f"{prefix}{abs(value):,.{decimals}f}"


def format_percent(value: float, decimals: int = 4) -> str:
    """Decimal rate as a percent string, e.g. 0.05 -> 5.0000%."""
    if not math.isfinite(value):
        return DASH
    return f"{value * 100:.{decimals}f}%"
