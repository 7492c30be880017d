"""
Bond Calculations

Coupon bond price and yield (to maturity or to call). Coupons are always
based on face value; the terminal payment is face value for maturity and
the call price for a call.
"""

from typing import Optional

import numpy as np

from fincalc.calculations.solver import nan_on_failure, newton_raphson

MAX_ITERATIONS = 500
TOLERANCE = 1e-10
DEFAULT_GUESS = 0.05
NEAR_ZERO_RATE = 1e-14


@nan_on_failure
def bond_price(
    face_value: float,
    coupon_rate: float,
    ytm: float,
    years: float,
    payments_per_year: int = 2,
    redemption: Optional[float] = None,
) -> float:
    """
    Price a coupon bond.

    Args:
        face_value: Par amount
        coupon_rate: Annual coupon rate as decimal (e.g., 0.05 for 5%)
        ytm: Annual yield as decimal
        years: Years until the terminal payment
        payments_per_year: Coupons per year (2 = semiannual)
        redemption: Terminal payment, defaults to face value

    Returns:
        Clean price
    """
    face = np.float64(face_value)
    terminal = face if redemption is None else np.float64(redemption)
    m = np.float64(payments_per_year)
    c = (np.float64(coupon_rate) / m) * face
    r = np.float64(ytm) / m
    n = np.float64(years) * m

    if r == 0:
        return c * n + terminal

    pv_coupons = c * (1 - np.power(1 + r, -n)) / r
    pv_terminal = terminal / np.power(1 + r, n)
    return pv_coupons + pv_terminal


def bond_price_to_call(
    face_value: float,
    call_price: float,
    coupon_rate: float,
    years_to_call: float,
    ytc: float,
    payments_per_year: int = 2,
) -> float:
    """Price a callable bond assuming it is called at the call date."""
    return bond_price(
        face_value, coupon_rate, ytc, years_to_call, payments_per_year, redemption=call_price
    )


def _price_derivative(coupon: float, n: float, terminal: float, r: float) -> float:
    """Slope of bond price with respect to the periodic yield."""
    if abs(r) < NEAR_ZERO_RATE:
        # Limit as r -> 0: the coupons discount like sum(t), the terminal like n
        return -(coupon * n * (n + 1) / 2 + n * terminal)
    factor = np.power(1 + r, n)
    d_coupons = coupon * (r * n / np.power(1 + r, n + 1) - (1 - 1 / factor)) / (r * r)
    d_terminal = -n * terminal / np.power(1 + r, n + 1)
    return d_coupons + d_terminal


def bond_yield(
    price: float,
    face_value: float,
    coupon_rate: float,
    years: float,
    payments_per_year: int = 2,
    call_price: Optional[float] = None,
    guess: float = DEFAULT_GUESS,
) -> float:
    """
    Solve for the annual yield that reprices the bond.

    Yield to maturity when call_price is None, yield to call otherwise
    (years is then the years to call). Newton-Raphson on the periodic rate;
    the last iterate is returned annualized even without convergence.
    """
    face = np.float64(face_value)
    terminal = face if call_price is None else np.float64(call_price)
    m = np.float64(payments_per_year)
    c = (np.float64(coupon_rate) / m) * face
    n = np.float64(years) * m
    target = np.float64(price)

    def f(r):
        if abs(r) < NEAR_ZERO_RATE:
            return c * n + terminal - target
        factor = np.power(1 + r, n)
        return c * (1 - 1 / factor) / r + terminal / factor - target

    result = newton_raphson(
        f,
        lambda r: _price_derivative(c, n, terminal, r),
        np.float64(guess or DEFAULT_GUESS) / m,
        MAX_ITERATIONS,
        TOLERANCE,
    )
    return float(result.root * m)


def yield_to_maturity(
    price: float,
    face_value: float,
    coupon_rate: float,
    years_to_maturity: float,
    payments_per_year: int = 2,
    guess: float = DEFAULT_GUESS,
) -> float:
    """Annual yield to maturity as decimal."""
    return bond_yield(
        price, face_value, coupon_rate, years_to_maturity, payments_per_year, guess=guess
    )


def yield_to_call(
    price: float,
    face_value: float,
    call_price: float,
    coupon_rate: float,
    years_to_call: float,
    payments_per_year: int = 2,
    guess: float = DEFAULT_GUESS,
) -> float:
    """Annual yield to call as decimal."""
    return bond_yield(
        price,
        face_value,
        coupon_rate,
        years_to_call,
        payments_per_year,
        call_price=call_price,
        guess=guess,
    )


def current_yield(annual_coupon: float, price: float) -> float:
    """Annual coupon divided by market price."""
    if price == 0:
        return float("nan")
    return annual_coupon / price
