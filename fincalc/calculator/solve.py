"""
TVM solve policy.

Decides which register a solve request targets and computes it with the
finance engine. Shared by the keystroke calculator and the stateless
HTTP endpoint.
"""

import logging
import math
from typing import Optional, Tuple

from fincalc.calculations import tvm
from fincalc.calculator.errors import (
    AmbiguousTargetError,
    InsufficientDataError,
    NumericDivergenceError,
)
from fincalc.calculator.registers import Register, RegisterSet

logger = logging.getLogger(__name__)

# Relative FV mismatch above which a solved rate is rejected
RATE_RESIDUAL_TOLERANCE = 1e-6


def resolve_target(registers: RegisterSet, pressed: Optional[Register] = None) -> Register:
    """
    Pick the register to solve for.

    - fewer than four registers filled: fail
    - one blank register: solve it, whichever key was pressed
    - no blanks: re-solve the pressed register

    Raises:
        AmbiguousTargetError: exactly two registers are blank
        InsufficientDataError: three or more registers are blank, or no
            register was pressed while all five are filled
    """
    blanks = registers.blanks()

    if len(blanks) == 2:
        names = ", ".join(b.value for b in blanks)
        raise AmbiguousTargetError(f"Two unknowns ({names}); fill one of them first")
    if len(blanks) > 2:
        raise InsufficientDataError(
            f"{5 - len(blanks)} of 5 registers filled; at least 4 are required"
        )
    if len(blanks) == 1:
        return blanks[0]
    if pressed is None:
        raise InsufficientDataError("All registers filled; choose the one to solve for")
    return Register.parse(pressed)


def periodic_rate(iyr: float, payments_per_year: int) -> float:
    """Per-period decimal rate from the annual percent register."""
    return (iyr / 100) / payments_per_year


def compute_register(
    registers: RegisterSet,
    target: Register,
    payments_per_year: int = 1,
    is_due: bool = False,
) -> float:
    """
    Compute ``target`` from the other four registers.

    Returns the raw engine result, which may be non-finite. A solved rate
    is converted back to an annual percent.
    """
    target = Register.parse(target)
    n = registers.N
    pv = registers.PV
    pmt = registers.PMT
    fv = registers.FV

    if target is Register.IYR:
        r = tvm.rate(pv, fv, pmt, n, is_due)
        return r * payments_per_year * 100

    r = periodic_rate(registers.IYR, payments_per_year)
    if target is Register.FV:
        return tvm.future_value(pv, pmt, r, n, is_due)
    if target is Register.PV:
        return tvm.present_value(fv, pmt, r, n, is_due)
    if target is Register.PMT:
        return tvm.payment(pv, fv, r, n, is_due)
    return tvm.number_of_periods(pv, fv, pmt, r, is_due)


def _rate_is_plausible(registers: RegisterSet, iyr: float, payments_per_year: int, is_due: bool) -> bool:
    r = periodic_rate(iyr, payments_per_year)
    if not math.isfinite(r) or r <= -1:
        return False
    n, pv, pmt, fv = registers.N, registers.PV, registers.PMT, registers.FV
    implied_fv = tvm.future_value(pv, pmt, r, n, is_due)
    if not math.isfinite(implied_fv):
        return False
    scale = max(1.0, abs(pv), abs(fv), abs(pmt) * abs(n))
    return abs(implied_fv - fv) <= RATE_RESIDUAL_TOLERANCE * scale


def solve(
    registers: RegisterSet,
    pressed: Optional[Register] = None,
    payments_per_year: int = 1,
    is_due: bool = False,
) -> Tuple[Register, RegisterSet]:
    """
    Resolve the target, compute it and return it with an updated copy of
    the registers.

    The input register set is never modified.

    Raises:
        InsufficientDataError: see resolve_target
        NumericDivergenceError: the engine could not produce a usable value
    """
    target = resolve_target(registers, pressed)

    work = registers.copy()
    # Re-solving a filled register must not feed its old value to the engine
    work.set(target, None)
    result = compute_register(work, target, payments_per_year, is_due)

    if not math.isfinite(result):
        raise NumericDivergenceError(f"No solution for {target.value}")
    if target is Register.IYR and not _rate_is_plausible(work, result, payments_per_year, is_due):
        raise NumericDivergenceError("Rate did not converge")

    work.set(target, result)
    logger.info(f"Solved {target.value} = {result!r}")
    return target, work
