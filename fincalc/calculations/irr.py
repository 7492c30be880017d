"""
IRR and NPV Calculations

Implements NPV and IRR for periodic cash flows, IRR by Newton-Raphson,
matching the calculator's CF/NPV/IRR keys.

Cash flow 0 is the initial outlay at time zero and is never discounted.
"""

from typing import Dict, Iterable, List, Sequence, Tuple, Union

import numpy as np

from fincalc.calculations.solver import NAN, nan_on_failure, newton_raphson

MAX_ITERATIONS = 500
TOLERANCE = 1e-10
RESIDUAL_TOLERANCE = 1e-8
CONVERGENCE_CHECK = 0.01
DEFAULT_GUESS = 0.1


def expand_cash_flows(entries: Iterable[Union[Tuple[float, int], object]]) -> List[float]:
    """
    Expand compact cash flow entries into the flat periodic series.

    Args:
        entries: (amount, count) pairs, or objects with ``amount`` and
            ``count`` attributes

    Returns:
        Each amount repeated ``count`` times, in order
    """
    flows: List[float] = []
    for entry in entries:
        if isinstance(entry, tuple):
            amount, count = entry
        else:
            amount, count = entry.amount, entry.count
        flows.extend([float(amount)] * int(count))
    return flows


@nan_on_failure
def net_present_value(rate: float, cash_flows: Sequence[float]) -> float:
    """
    Calculate NPV (Net Present Value) of periodic cash flows.

    Args:
        rate: Periodic discount rate as decimal (e.g., 0.10 for 10%)
        cash_flows: Array of cash flows (negative = outflow, positive = inflow)

    Returns:
        NPV value
    """
    flows = np.asarray(cash_flows, dtype=np.float64)
    periods = np.arange(flows.size, dtype=np.float64)
    return np.sum(flows / np.power(1 + np.float64(rate), periods))


def npv_breakdown(rate: float, cash_flows: Sequence[float]) -> List[Dict]:
    """Present value of each cash flow, one row per period."""
    rows = []
    with np.errstate(all="ignore"):
        for period, cf in enumerate(cash_flows):
            pv = np.float64(cf) / np.power(1 + np.float64(rate), period)
            rows.append({"period": period, "cash_flow": float(cf), "present_value": float(pv)})
    return rows


def _npv_derivative(cash_flows: np.ndarray, rate: float) -> float:
    """Calculate derivative of NPV with respect to rate (for Newton-Raphson)."""
    periods = np.arange(cash_flows.size, dtype=np.float64)
    return np.sum(-periods * cash_flows / np.power(1 + rate, periods + 1))


def internal_rate_of_return(
    cash_flows: Sequence[float],
    guess: float = DEFAULT_GUESS,
    max_iter: int = MAX_ITERATIONS,
) -> float:
    """
    Calculate IRR (Internal Rate of Return) using Newton-Raphson method.

    Args:
        cash_flows: Array of periodic cash flows
        guess: Initial guess for rate (default 0.1 = 10%)
        max_iter: Iteration cap

    Returns:
        Periodic IRR as decimal (e.g., 0.15 for 15%), or nan when fewer than
        two cash flows are given or the result does not price the series
        to (near) zero.
    """
    if len(cash_flows) < 2:
        return NAN

    flows = np.asarray(cash_flows, dtype=np.float64)

    def f(r):
        periods = np.arange(flows.size, dtype=np.float64)
        return np.sum(flows / np.power(1 + r, periods))

    result = newton_raphson(
        f,
        lambda r: _npv_derivative(flows, r),
        np.float64(guess or DEFAULT_GUESS),
        max_iter or MAX_ITERATIONS,
        TOLERANCE,
        residual_tol=RESIDUAL_TOLERANCE,
    )
    # A non-converged iterate is still accepted if it prices the flows to ~0
    check = net_present_value(result.root, cash_flows)
    if np.isfinite(check) and abs(check) < CONVERGENCE_CHECK:
        return result.root
    return NAN


def sign_changes(cash_flows: Sequence[float]) -> int:
    """
    Count sign changes between adjacent non-zero cash flows.

    More than one change means the series may have several IRRs.
    """
    changes = 0
    for prev, cur in zip(cash_flows, cash_flows[1:]):
        if prev != 0 and cur != 0 and (prev > 0) != (cur > 0):
            changes += 1
    return changes


def calculate_multiple(cash_flows: Sequence[float]) -> float:
    """
    Calculate equity multiple.

    Args:
        cash_flows: Array of cash flows (investments are negative)

    Returns:
        Multiple (e.g., 2.0 = 2.0x return)
    """
    total_inflows = sum(cf for cf in cash_flows if cf > 0)
    total_outflows = abs(sum(cf for cf in cash_flows if cf < 0))

    if total_outflows == 0:
        raise ValueError("No investment (outflows) found")

    return total_inflows / total_outflows


def calculate_profit(cash_flows: Sequence[float]) -> float:
    """Calculate profit (total inflows minus total outflows)."""
    return sum(cash_flows)
