"""
Financial calculation API endpoints.

These endpoints accept inputs and return calculated results. They hold
no state; every request carries all of its numbers.
"""

import math
from datetime import date
from typing import Dict, List, Literal, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from fincalc.calculations import amortization, bonds, irr, tvm
from fincalc.calculator.errors import CalculatorError
from fincalc.calculator.formatting import format_money, format_percent
from fincalc.calculator.registers import Register, RegisterSet
from fincalc.calculator.solve import solve

router = APIRouter()


def _finite(value: float, message: str) -> float:
    """Reject engine sentinels before they reach JSON."""
    if not math.isfinite(value):
        raise HTTPException(status_code=400, detail=message)
    return value


class TVMInput(BaseModel):
    """TVM registers; leave exactly one blank, or name solve_for."""

    n: Optional[float] = None
    iyr: Optional[float] = None
    pv: Optional[float] = None
    pmt: Optional[float] = None
    fv: Optional[float] = None
    payments_per_year: int = Field(1, ge=1)
    is_annuity_due: bool = False
    solve_for: Optional[Register] = None


class TVMResponse(BaseModel):
    """Solved register set."""

    registers: Dict[str, Optional[float]]
    solved_field: Register
    payments_per_year: int
    is_annuity_due: bool


@router.post("/tvm", response_model=TVMResponse)
async def calculate_tvm(inputs: TVMInput):
    """Solve for the missing TVM variable."""
    registers = RegisterSet(
        N=inputs.n, IYR=inputs.iyr, PV=inputs.pv, PMT=inputs.pmt, FV=inputs.fv
    )
    try:
        target, solved = solve(
            registers, inputs.solve_for, inputs.payments_per_year, inputs.is_annuity_due
        )
    except CalculatorError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return TVMResponse(
        registers=solved.as_dict(),
        solved_field=target,
        payments_per_year=inputs.payments_per_year,
        is_annuity_due=inputs.is_annuity_due,
    )


class CashFlowInput(BaseModel):
    """A cash flow repeated over ``count`` consecutive periods."""

    amount: float
    count: int = Field(1, ge=1)


class NPVInput(BaseModel):
    """Input for NPV calculation."""

    cash_flows: List[CashFlowInput]
    rate: float  # periodic, decimal


class NPVResponse(BaseModel):
    """Response with NPV calculation."""

    npv: float
    breakdown: List[dict]


@router.post("/npv", response_model=NPVResponse)
async def calculate_npv_endpoint(inputs: NPVInput):
    """Calculate NPV for given cash flows."""
    flows = irr.expand_cash_flows((cf.amount, cf.count) for cf in inputs.cash_flows)
    npv = _finite(irr.net_present_value(inputs.rate, flows), "NPV is undefined at this rate")
    return NPVResponse(npv=npv, breakdown=irr.npv_breakdown(inputs.rate, flows))


class IRRInput(BaseModel):
    """Input for IRR calculation."""

    cash_flows: List[CashFlowInput]
    guess: float = irr.DEFAULT_GUESS


class IRRResponse(BaseModel):
    """Response with IRR calculation."""

    irr: float
    sign_changes: int
    multiple: float
    profit: float
    npv_at_10_percent: float


@router.post("/irr", response_model=IRRResponse)
async def calculate_irr_endpoint(inputs: IRRInput):
    """Calculate IRR for given cash flows."""
    flows = irr.expand_cash_flows((cf.amount, cf.count) for cf in inputs.cash_flows)
    if len(flows) < 2:
        raise HTTPException(status_code=400, detail="At least 2 cash flows required")

    irr_val = _finite(irr.internal_rate_of_return(flows, inputs.guess), "IRR did not converge")
    try:
        multiple = irr.calculate_multiple(flows)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return IRRResponse(
        irr=irr_val,
        sign_changes=irr.sign_changes(flows),
        multiple=multiple,
        profit=irr.calculate_profit(flows),
        npv_at_10_percent=irr.net_present_value(0.10, flows),
    )


class BondPriceInput(BaseModel):
    """Input for bond pricing; give call_price to price to the call date."""

    face_value: float = 1000.0
    coupon_rate: float
    ytm: float
    years: float
    payments_per_year: int = Field(2, ge=1)
    call_price: Optional[float] = None


class BondYieldInput(BaseModel):
    """Input for YTM, or YTC when call_price is given (years = years to call)."""

    price: float
    face_value: float = 1000.0
    coupon_rate: float
    years: float
    payments_per_year: int = Field(2, ge=1)
    call_price: Optional[float] = None
    guess: float = bonds.DEFAULT_GUESS


class BondResponse(BaseModel):
    """Bond price and yields."""

    price: float
    annual_yield: float
    basis: Literal["maturity", "call"]
    current_yield: float
    price_text: str = ""
    yield_text: str = ""


def _bond_response(
    price: float, annual_yield: float, annual_coupon: float, call_price: Optional[float]
) -> BondResponse:
    return BondResponse(
        price=price,
        annual_yield=annual_yield,
        basis="maturity" if call_price is None else "call",
        current_yield=_finite(
            bonds.current_yield(annual_coupon, price),
            "Current yield is undefined at a zero price",
        ),
        price_text=format_money(price),
        yield_text=format_percent(annual_yield),
    )


@router.post("/bond/price", response_model=BondResponse)
async def calculate_bond_price(inputs: BondPriceInput):
    """Price a coupon bond."""
    price = _finite(
        bonds.bond_price(
            inputs.face_value,
            inputs.coupon_rate,
            inputs.ytm,
            inputs.years,
            inputs.payments_per_year,
            redemption=inputs.call_price,
        ),
        "Bond price is undefined for these inputs",
    )
    return _bond_response(price, inputs.ytm, inputs.coupon_rate * inputs.face_value, inputs.call_price)


@router.post("/bond/yield", response_model=BondResponse)
async def calculate_bond_yield(inputs: BondYieldInput):
    """Solve for yield to maturity or yield to call."""
    annual_yield = bonds.bond_yield(
        inputs.price,
        inputs.face_value,
        inputs.coupon_rate,
        inputs.years,
        inputs.payments_per_year,
        call_price=inputs.call_price,
        guess=inputs.guess,
    )
    repriced = bonds.bond_price(
        inputs.face_value,
        inputs.coupon_rate,
        annual_yield,
        inputs.years,
        inputs.payments_per_year,
        redemption=inputs.call_price,
    )
    if not math.isfinite(repriced) or abs(repriced - inputs.price) > 1e-6 * max(1.0, abs(inputs.price)):
        raise HTTPException(status_code=400, detail="Yield did not converge")

    return _bond_response(
        inputs.price, annual_yield, inputs.coupon_rate * inputs.face_value, inputs.call_price
    )


class AmortizationInput(BaseModel):
    """Input for amortization calculation."""

    principal: float
    annual_rate: float
    periods: int = Field(..., ge=1)
    payments_per_year: int = Field(12, ge=1)
    io_periods: int = Field(0, ge=0)
    is_annuity_due: bool = False
    start_date: Optional[date] = None


@router.post("/amortization")
async def calculate_amortization(inputs: AmortizationInput):
    """Generate loan amortization schedule."""
    payment = _finite(
        amortization.level_payment(
            inputs.principal,
            inputs.annual_rate,
            inputs.periods,
            inputs.payments_per_year,
            inputs.is_annuity_due,
        ),
        "Payment is undefined for these inputs",
    )
    schedule = amortization.generate_amortization_schedule(
        principal=inputs.principal,
        annual_rate=inputs.annual_rate,
        periods=inputs.periods,
        payments_per_year=inputs.payments_per_year,
        io_periods=inputs.io_periods,
        is_due=inputs.is_annuity_due,
        start_date=inputs.start_date,
    )

    return {
        "payment": payment,
        "schedule": schedule,
        "total_interest": amortization.calculate_total_interest(schedule),
        "total_principal": sum(row["principal"] for row in schedule),
    }


class RateConversionInput(BaseModel):
    """Nominal/effective annual rate conversion."""

    rate: float
    periods_per_year: int = Field(12, ge=1)
    direction: Literal["apr_to_ear", "ear_to_apr"] = "apr_to_ear"


class RateConversionResponse(BaseModel):
    """Both forms of the rate."""

    apr: float
    ear: float
    periods_per_year: int


@router.post("/rates", response_model=RateConversionResponse)
async def convert_rate(inputs: RateConversionInput):
    """Convert between APR and EAR."""
    if inputs.direction == "apr_to_ear":
        apr = inputs.rate
        ear = tvm.apr_to_ear(apr, inputs.periods_per_year)
    else:
        ear = inputs.rate
        apr = tvm.ear_to_apr(ear, inputs.periods_per_year)

    return RateConversionResponse(
        apr=_finite(apr, "Rate is out of range"),
        ear=_finite(ear, "Rate is out of range"),
        periods_per_year=inputs.periods_per_year,
    )
