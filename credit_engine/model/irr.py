"""
irr.py
------
Lender-side IRR and MOIC.

IRR is solved with Newton-Raphson on

    NPV(r) = −initial_investment + Σ cf_t / (1 + r)^t ,  t = 1..N

Iteration cap, step tolerance and the flat-derivative guard are explicit
parameters (defaults in config). `solve_irr` returns the rate in percent;
`solve_irr_detailed` returns the same rate plus whether it converged and
how many iterations it took.
"""

import logging
import math
from dataclasses import dataclass
from numbers import Real
from typing import Sequence

import numpy as np

from credit_engine.config import (IRR_DERIVATIVE_THRESHOLD, IRR_GUESS,
                                  IRR_MAX_ITERATIONS, IRR_TOLERANCE)
from credit_engine.errors import InvalidInput


logger = logging.getLogger(__name__)

TOLERANCE       = "tolerance"
FLAT_DERIVATIVE = "flat_derivative"
MAX_ITERATIONS  = "max_iterations"
OVERFLOW        = "overflow"


@dataclass(frozen=True)
class IrrSolution:
    rate_percent: float
    converged: bool
    iterations: int
    reason: str


def _check_inputs(initial_investment: float, cash_flows: Sequence[float]) -> list[float]:
    if isinstance(initial_investment, (bool, np.bool_)) \
            or not isinstance(initial_investment, (Real, np.number)):
        raise InvalidInput("initial investment must be numeric")
    if not math.isfinite(initial_investment) or initial_investment <= 0:
        raise InvalidInput(f"initial investment must be positive, got {initial_investment!r}")
    flows = []
    for t, cf in enumerate(cash_flows, start=1):
        if isinstance(cf, (bool, np.bool_)) or not isinstance(cf, (Real, np.number)):
            raise InvalidInput(f"cash flow in period {t} must be numeric, got {cf!r}")
        flows.append(float(cf))
    if not flows:
        raise InvalidInput("cash flow sequence is empty")
    if not all(math.isfinite(cf) for cf in flows):
        raise InvalidInput("cash flows must be finite")
    return flows


def npv(rate: float, initial_investment: float, cash_flows: Sequence[float]) -> float:
    """Net present value with the outlay at t=0 and flows from t=1."""
    return -initial_investment + sum(cf / (1 + rate) ** t
                                     for t, cf in enumerate(cash_flows, start=1))


def solve_irr_detailed(
    initial_investment: float,
    cash_flows: Sequence[float],
    guess: float = IRR_GUESS,
    *,
    max_iterations: int = IRR_MAX_ITERATIONS,
    tolerance: float = IRR_TOLERANCE,
    derivative_threshold: float = IRR_DERIVATIVE_THRESHOLD,
) -> IrrSolution:
    """
    Newton-Raphson IRR with convergence diagnostics.

    Stops with converged=True once a step moves the rate by less than
    `tolerance` (returning the updated rate). Stops with converged=False
    when |dNPV/dr| < `derivative_threshold`, when the rate leaves the
    domain (r <= −100%), or after `max_iterations`, returning the last rate.
    """
    flows = _check_inputs(initial_investment, cash_flows)
    rate  = guess

    for iteration in range(1, max_iterations + 1):
        if rate <= -1.0:
            return _unconverged(rate, iteration - 1, OVERFLOW)

        value      = -initial_investment
        derivative = 0.0
        try:
            for t, cf in enumerate(flows, start=1):
                value      += cf / (1 + rate) ** t
                derivative -= t * cf / (1 + rate) ** (t + 1)
        except (OverflowError, ZeroDivisionError):
            return _unconverged(rate, iteration - 1, OVERFLOW)

        if abs(derivative) < derivative_threshold:
            return _unconverged(rate, iteration, FLAT_DERIVATIVE)

        new_rate = rate - value / derivative
        if abs(new_rate - rate) < tolerance:
            return IrrSolution(new_rate * 100, True, iteration, TOLERANCE)
        rate = new_rate

    return _unconverged(rate, max_iterations, MAX_ITERATIONS)


def _unconverged(rate: float, iterations: int, reason: str) -> IrrSolution:
    logger.warning("IRR did not converge (%s after %d iterations); best estimate %.4f%%",
                   reason, iterations, rate * 100)
    return IrrSolution(rate * 100, False, iterations, reason)


def solve_irr(
    initial_investment: float,
    cash_flows: Sequence[float],
    guess: float = IRR_GUESS,
    *,
    max_iterations: int = IRR_MAX_ITERATIONS,
    tolerance: float = IRR_TOLERANCE,
    derivative_threshold: float = IRR_DERIVATIVE_THRESHOLD,
) -> float:
    """Annualized IRR in percent (e.g. 10.0 for 10%). Best estimate if not converged."""
    return solve_irr_detailed(
        initial_investment, cash_flows, guess,
        max_iterations=max_iterations,
        tolerance=tolerance,
        derivative_threshold=derivative_threshold,
    ).rate_percent


def moic(initial_investment: float, cash_flows: Sequence[float]) -> float:
    """Multiple on invested capital: total cash received / initial investment."""
    flows = _check_inputs(initial_investment, cash_flows)
    return sum(flows) / initial_investment
