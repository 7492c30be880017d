"""
Time Value of Money Calculations

Closed-form and iterative solutions of the standard annuity identity,
matching a dedicated financial calculator:

    PV*(1+r)^n + PMT*((1+r)^n - 1)/r*(1 + r*t) + FV = 0

where r is the periodic rate and t = 1 for an annuity due (BEGIN mode),
t = 0 for an ordinary annuity (END mode).

Sign convention: cash received is positive, cash paid is negative. Every
function returns nan instead of raising when no solution exists.
"""

import numpy as np

from fincalc.calculations.solver import NAN, nan_on_failure, newton_raphson

MAX_ITERATIONS = 200
TOLERANCE = 1e-10
DEFAULT_GUESS = 0.1
NEAR_ZERO_RATE = 1e-14


def _timing(is_due: bool) -> float:
    return 1.0 if is_due else 0.0


@nan_on_failure
def future_value(pv: float, pmt: float, r: float, n: float, is_due: bool = False) -> float:
    """
    Calculate the future value that balances the annuity identity.

    Args:
        pv: Present value
        pmt: Periodic payment
        r: Periodic rate as decimal (e.g., 0.005 for 0.5% per period)
        n: Number of periods
        is_due: True for payments at the start of each period

    Returns:
        Future value
    """
    pv, pmt, r, n = np.float64(pv), np.float64(pmt), np.float64(r), np.float64(n)
    if r == 0:
        return -(pv + pmt * n)
    factor = np.power(1 + r, n)
    return -(pv * factor + pmt * ((factor - 1) / r) * (1 + r * _timing(is_due)))


@nan_on_failure
def present_value(fv: float, pmt: float, r: float, n: float, is_due: bool = False) -> float:
    """Calculate the present value that balances the annuity identity."""
    fv, pmt, r, n = np.float64(fv), np.float64(pmt), np.float64(r), np.float64(n)
    if r == 0:
        return -(fv + pmt * n)
    factor = np.power(1 + r, n)
    return -(fv / factor + pmt * ((factor - 1) / r) * (1 + r * _timing(is_due)) / factor)


@nan_on_failure
def payment(pv: float, fv: float, r: float, n: float, is_due: bool = False) -> float:
    """
    Calculate the periodic payment that balances the annuity identity.

    Matches Excel's PMT() for the same sign convention.
    """
    pv, fv, r, n = np.float64(pv), np.float64(fv), np.float64(r), np.float64(n)
    if r == 0:
        return -(pv + fv) / n
    factor = np.power(1 + r, n)
    return -(pv * factor + fv) / (((factor - 1) / r) * (1 + r * _timing(is_due)))


@nan_on_failure
def number_of_periods(
    pv: float, fv: float, pmt: float, r: float, is_due: bool = False
) -> float:
    """
    Calculate the number of periods.

    Uses n = ln((PMT' - FV*r) / (PMT' + PV*r)) / ln(1+r) with PMT' the
    timing-adjusted payment. Returns nan when the logarithm argument is
    not positive or a denominator vanishes.
    """
    pv, fv, pmt, r = np.float64(pv), np.float64(fv), np.float64(pmt), np.float64(r)
    if r == 0:
        if pmt == 0:
            return NAN
        return -(pv + fv) / pmt
    if r <= -1:
        # ln(1+r) is undefined or -inf
        return NAN

    pmt_adj = pmt * (1 + r * _timing(is_due))
    if pmt_adj == 0:
        # Pure compounding: PV*(1+r)^n + FV = 0
        if pv == 0:
            return NAN
        ratio = -fv / pv
        if ratio <= 0:
            return NAN
        return np.log(ratio) / np.log1p(r)

    num = pmt_adj - fv * r
    den = pmt_adj + pv * r
    if den == 0 or num / den <= 0:
        return NAN
    return np.log(num / den) / np.log1p(r)


def rate(
    pv: float,
    fv: float,
    pmt: float,
    n: float,
    is_due: bool = False,
    guess: float = DEFAULT_GUESS,
) -> float:
    """
    Solve the annuity identity for the periodic rate.

    Newton-Raphson with the analytic derivative. Near r = 0 the derivative
    is replaced by its linearization. The last iterate is returned even if
    the iteration did not converge, so callers must check plausibility.

    Returns:
        Periodic rate as decimal
    """
    pv, fv, pmt, n = np.float64(pv), np.float64(fv), np.float64(pmt), np.float64(n)
    t = _timing(is_due)

    def f(r):
        if abs(r) < NEAR_ZERO_RATE:
            return pv + fv + pmt * n
        factor = np.power(1 + r, n)
        return pv * factor + pmt * ((factor - 1) / r) * (1 + r * t) + fv

    def fprime(r):
        if abs(r) < NEAR_ZERO_RATE:
            return pmt * n * (n - 1) / 2
        factor = np.power(1 + r, n)
        d_factor = n * np.power(1 + r, n - 1)
        d_ann_base = (r * d_factor - factor + 1) / (r * r)
        d_ann = d_ann_base * (1 + r * t) + ((factor - 1) / r) * t
        return pv * d_factor + pmt * d_ann

    result = newton_raphson(f, fprime, np.float64(guess or DEFAULT_GUESS), MAX_ITERATIONS, TOLERANCE)
    return result.root


@nan_on_failure
def apr_to_ear(apr: float, periods_per_year: int) -> float:
    """Convert a nominal annual rate to the effective annual rate."""
    m = np.float64(periods_per_year)
    return np.power(1 + np.float64(apr) / m, m) - 1


@nan_on_failure
def ear_to_apr(ear: float, periods_per_year: int) -> float:
    """Convert an effective annual rate to the nominal annual rate."""
    m = np.float64(periods_per_year)
    return m * (np.power(1 + np.float64(ear), 1 / m) - 1)
