"""
Loan Amortization Calculations

Builds period-by-period amortization schedules on top of the TVM payment
solver, for ordinary annuities and annuities due.
"""

from typing import List, Dict, Optional
from datetime import date
from dateutil.relativedelta import relativedelta

from fincalc.calculations import tvm


def level_payment(
    principal: float,
    annual_rate: float,
    periods: int,
    payments_per_year: int = 12,
    is_due: bool = False,
) -> float:
    """
    Calculate the level payment that retires a loan.

    Args:
        principal: Loan principal amount
        annual_rate: Nominal annual rate as decimal (e.g., 0.06 for 6%)
        periods: Number of payments
        payments_per_year: Payments per year
        is_due: True when payments fall at the start of each period

    Returns:
        Payment amount (positive number)
    """
    if principal <= 0 or periods <= 0:
        return 0.0
    return -tvm.payment(principal, 0.0, annual_rate / payments_per_year, periods, is_due)


def _period_date(start_date: date, period: int, payments_per_year: int) -> date:
    if 12 % payments_per_year == 0:
        return start_date + relativedelta(months=(period - 1) * (12 // payments_per_year))
    return start_date + relativedelta(days=round((period - 1) * 365 / payments_per_year))


def generate_amortization_schedule(
    principal: float,
    annual_rate: float,
    periods: int,
    payments_per_year: int = 12,
    io_periods: int = 0,
    is_due: bool = False,
    start_date: Optional[date] = None,
) -> List[Dict]:
    """
    Generate a full amortization schedule.

    Args:
        principal: Loan principal amount
        annual_rate: Nominal annual rate as decimal
        periods: Amortizing payments after the interest-only period
        payments_per_year: Payments per year
        io_periods: Interest-only periods before amortization starts
        is_due: Payments at period start; the first payment carries no interest
        start_date: Date of first payment

    Returns:
        List of amortization rows
    """
    schedule = []
    balance = principal
    periodic_rate = annual_rate / payments_per_year

    if start_date is None:
        start_date = date.today()

    for period in range(1, io_periods + periods + 1):
        # Interest accrued since the previous payment
        if is_due and period == 1:
            interest = 0.0
        else:
            interest = balance * periodic_rate

        if period <= io_periods:
            principal_pmt = 0.0
            payment = interest
        else:
            remaining = io_periods + periods - period + 1
            # After the first BEGIN payment, the balance is one period ahead
            # of the next payment, i.e. an ordinary annuity
            payment = level_payment(
                balance, annual_rate, remaining, payments_per_year,
                is_due and period == 1,
            )
            principal_pmt = min(payment - interest, balance)
            payment = principal_pmt + interest

        ending_balance = balance - principal_pmt

        schedule.append(
            {
                "period": period,
                "date": _period_date(start_date, period, payments_per_year).isoformat(),
                "beginning_balance": round(balance, 2),
                "payment": round(payment, 2),
                "interest": round(interest, 2),
                "principal": round(principal_pmt, 2),
                "ending_balance": round(max(0, ending_balance), 2),
            }
        )

        balance = max(0.0, ending_balance)

        # Stop if balance is paid off
        if balance == 0:
            break

    return schedule


def calculate_total_interest(schedule: List[Dict]) -> float:
    """Calculate total interest paid over loan term."""
    return sum(row["interest"] for row in schedule)
