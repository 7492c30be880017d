"""
Root Finding

A single Newton-Raphson routine shared by the rate, IRR and bond yield
solvers, plus the guard that keeps every engine function from raising.
"""

import functools
import logging
from typing import Callable, NamedTuple, Optional

import numpy as np

logger = logging.getLogger(__name__)

NAN = float("nan")
DERIVATIVE_FLOOR = 1e-14
RATE_CLAMP = -0.99


class NewtonResult(NamedTuple):
    """Outcome of a Newton-Raphson run."""

    root: float
    iterations: int
    converged: bool


def newton_raphson(
    f: Callable[[float], float],
    fprime: Callable[[float], float],
    guess: float,
    max_iter: int,
    tol: float,
    clamp: float = RATE_CLAMP,
    residual_tol: Optional[float] = None,
) -> NewtonResult:
    """
    Find a root of f using Newton-Raphson iteration.

    Args:
        f: Function whose root is sought
        fprime: Analytic derivative of f
        guess: Starting point
        max_iter: Iteration cap (the last iterate is returned when reached)
        tol: Convergence threshold on successive iterates
        clamp: Value substituted for any iterate at or below -1
        residual_tol: If set, also require |f(x)| below this to converge

    Returns:
        NewtonResult with the final iterate. Never raises: a vanishing
        derivative or a non-finite step simply ends the iteration.
    """
    x = guess
    with np.errstate(all="ignore"):
        for i in range(max_iter):
            fx = f(x)
            dfx = fprime(x)

            if not np.isfinite(dfx) or abs(dfx) < DERIVATIVE_FLOOR:
                logger.debug(f"Newton-Raphson stopped at {x!r}: derivative {dfx!r}")
                return NewtonResult(float(x), i, False)

            x_new = x - fx / dfx
            if not np.isfinite(x_new):
                return NewtonResult(float(x_new), i + 1, False)

            if abs(x_new - x) < tol and (
                residual_tol is None or abs(fx) < residual_tol
            ):
                return NewtonResult(float(x_new), i + 1, True)

            x = x_new
            if x <= -1:
                x = clamp

    logger.debug(f"Newton-Raphson hit {max_iter} iterations at {x!r}")
    return NewtonResult(float(x), max_iter, False)


def nan_on_failure(func):
    """
    Evaluate an engine function so that it returns a float sentinel
    instead of raising.

    Numpy floating point errors are silenced (division by zero yields inf
    or nan, overflow yields inf) and any arithmetic exception raised by
    plain Python numbers is turned into nan.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        with np.errstate(all="ignore"):
            try:
                result = func(*args, **kwargs)
            except (ZeroDivisionError, OverflowError, ValueError) as e:
                logger.debug(f"{func.__name__} failed: {e}")
                return NAN
        return float(result)

    return wrapper
