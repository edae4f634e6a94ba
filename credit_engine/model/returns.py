"""
returns.py
----------
Lender returns on a single term-loan position.

Cash flow ledger per year of the hold period:
  - Interest on beginning principal at base rate + spread
  - Mandatory amortization (fixed % of original principal, capped at balance)
  - Exit year: prepayment of the remaining balance plus any prepayment
    premium from the call schedule (quoted as % of par, 102 = 2% premium)

Initial investment = principal − OID − upfront fee (the lender funds at a
discount). IRR is solved on the ledger's total cash; MOIC = total cash /
initial investment.
"""

import math
from dataclasses import asdict, dataclass, field, replace
from numbers import Real
from typing import Iterable

import numpy as np
import pandas as pd

from credit_engine.config import DEFAULT_HOLD_PERIODS, PAR
from credit_engine.errors import InvalidInput
from credit_engine.model.irr import IrrSolution, moic, solve_irr_detailed


@dataclass(frozen=True)
class ReturnsInput:
    principal: float
    oid_percent: float = 2.0
    upfront_fee_percent: float = 1.0
    spread_bps: float = 500.0
    base_rate: float = 5.25
    hold_period: int = 3
    prepayment_premiums: tuple[float, ...] = field(default=(102.0, 101.0, 100.0, 100.0, 100.0))
    mandatory_amort_percent: float = 5.0

    @property
    def all_in_rate(self) -> float:
        """Base rate + spread, in points."""
        return self.base_rate + self.spread_bps / 100

    @property
    def oid_amount(self) -> float:
        return self.principal * self.oid_percent / 100

    @property
    def upfront_fee_amount(self) -> float:
        return self.principal * self.upfront_fee_percent / 100

    @property
    def initial_investment(self) -> float:
        return self.principal - self.oid_amount - self.upfront_fee_amount

    def premium_rate(self, year: int) -> float:
        """Call price for a prepayment in `year` (par once the schedule runs out)."""
        if 1 <= year <= len(self.prepayment_premiums):
            return self.prepayment_premiums[year - 1]
        return PAR


@dataclass(frozen=True)
class LenderCashFlow:
    year: int
    beginning_principal: float
    interest: float
    amortization: float
    prepayment: float
    prepayment_premium: float
    total_cash: float
    ending_principal: float
    cumulative_cash: float


@dataclass(frozen=True)
class ReturnsResult:
    cash_flows: tuple[LenderCashFlow, ...]
    irr: float                  # percent
    moic: float
    total_cash_received: float
    total_interest: float
    total_principal: float
    total_fees: float
    average_yield: float        # percent per year on the initial investment
    initial_investment: float
    irr_solution: IrrSolution


def _finite(name: str, value) -> None:
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (Real, np.number)) \
            or not math.isfinite(value):
        raise InvalidInput(f"{name} must be a finite number, got {value!r}")


def _validate(inp: ReturnsInput) -> None:
    scalars = {
        "principal":               inp.principal,
        "oid_percent":             inp.oid_percent,
        "upfront_fee_percent":     inp.upfront_fee_percent,
        "spread_bps":              inp.spread_bps,
        "base_rate":               inp.base_rate,
        "mandatory_amort_percent": inp.mandatory_amort_percent,
    }
    for i, premium in enumerate(inp.prepayment_premiums):
        scalars[f"prepayment_premiums[{i}]"] = premium
    for name, value in scalars.items():
        _finite(name, value)

    hold = inp.hold_period
    if isinstance(hold, (bool, np.bool_)) or not isinstance(hold, (int, np.integer)) or hold < 1:
        raise InvalidInput(f"hold period must be a positive whole number of years, got {hold!r}")
    if inp.principal <= 0:
        raise InvalidInput(f"principal must be positive, got {inp.principal!r}")
    for name in ("oid_percent", "upfront_fee_percent", "spread_bps"):
        if scalars[name] < 0:
            raise InvalidInput(f"{name} cannot be negative, got {scalars[name]!r}")
    if not 0 <= inp.mandatory_amort_percent <= 100:
        raise InvalidInput(f"mandatory_amort_percent must be within 0-100, "
                           f"got {inp.mandatory_amort_percent!r}")
    for i, premium in enumerate(inp.prepayment_premiums):
        if premium < PAR:
            raise InvalidInput(f"prepayment_premiums[{i}] is a call price and cannot be "
                               f"below par, got {premium!r}")
    if inp.initial_investment <= 0:
        raise InvalidInput("OID and upfront fee consume the whole principal")


def compute_returns(inp: ReturnsInput) -> ReturnsResult:
    """
    Build the lender cash flow ledger and derive IRR / MOIC.

    Returns
    -------
    ReturnsResult with the year-by-year ledger and totals.
    """
    _validate(inp)

    annual_amort = inp.principal * inp.mandatory_amort_percent / 100
    current      = inp.principal
    cumulative   = 0.0
    ledger       = []

    for yr in range(1, inp.hold_period + 1):
        beginning    = current
        interest     = beginning * inp.all_in_rate / 100
        amortization = min(annual_amort, beginning)

        is_exit    = yr == inp.hold_period
        prepayment = beginning - amortization if is_exit else 0.0
        premium    = prepayment * (inp.premium_rate(yr) - PAR) / 100 if is_exit else 0.0

        ending     = beginning - amortization - prepayment
        total      = interest + amortization + prepayment + premium
        cumulative += total

        ledger.append(LenderCashFlow(
            year                = yr,
            beginning_principal = beginning,
            interest            = interest,
            amortization        = amortization,
            prepayment          = prepayment,
            prepayment_premium  = premium,
            total_cash          = total,
            ending_principal    = ending,
            cumulative_cash     = cumulative,
        ))
        current = ending

    initial     = inp.initial_investment
    totals      = [cf.total_cash for cf in ledger]
    total_cash  = sum(totals)
    premiums    = sum(cf.prepayment_premium for cf in ledger)
    solution    = solve_irr_detailed(initial, totals)

    return ReturnsResult(
        cash_flows          = tuple(ledger),
        irr                 = solution.rate_percent,
        moic                = moic(initial, totals),
        total_cash_received = total_cash,
        total_interest      = sum(cf.interest for cf in ledger),
        total_principal     = sum(cf.amortization + cf.prepayment for cf in ledger),
        total_fees          = inp.oid_amount + inp.upfront_fee_amount + premiums,
        average_yield       = (total_cash - initial) / initial / inp.hold_period * 100,
        initial_investment  = initial,
        irr_solution        = solution,
    )


def returns_by_hold_period(
    inp: ReturnsInput,
    hold_periods: Iterable[int] = DEFAULT_HOLD_PERIODS,
) -> dict[int, ReturnsResult]:
    """Re-run the returns for each exit year (IRR / MOIC by exit year)."""
    return {hold: compute_returns(replace(inp, hold_period=hold)) for hold in hold_periods}


def cash_flow_df(result: ReturnsResult) -> pd.DataFrame:
    """Ledger as a DataFrame indexed by year, rounded to whole currency units."""
    df = pd.DataFrame([asdict(cf) for cf in result.cash_flows]).set_index("year")
    return df.round(0)


def returns_summary_df(by_hold: dict[int, ReturnsResult]) -> pd.DataFrame:
    """IRR / MOIC by exit year."""
    rows = [{
        "Exit Year":     hold,
        "IRR (%)":       round(r.irr, 2),
        "MOIC (x)":      round(r.moic, 2),
        "Total Cash":    round(r.total_cash_received, 0),
        "Converged":     r.irr_solution.converged,
    } for hold, r in by_hold.items()]
    return pd.DataFrame(rows).set_index("Exit Year")
