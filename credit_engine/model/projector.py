"""
projector.py
------------
Advances one set of assumptions year-by-year into a debt paydown schedule.

Two explicit strategies, chosen by the caller (or by assumption shape):
  - GranularProjector   : LTM baseline row + full build
                          revenue → EBITDA → adj. EBITDA → EBIT → taxes →
                          net income → FCF after mandatory amortization
  - SimplifiedProjector : FCF = EBITDA − interest − 25% of EBITDA
                          (flat capex + cash-tax approximation)

Shared debt mechanics (both strategies):
  - Mandatory amortization = min(principal × amort rate, beginning debt)
  - Cash sweep = max(0, cash available after amortization) × sweep %
  - Ending debt = max(0, beginning − amortization − sweep)
  - Leverage = ending debt / EBITDA, 0 when EBITDA <= 0
  - DSCR = EBITDA / (interest + amortization), 0 when there is no debt service

Pure functions: identical assumptions always give identical schedules.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass

import numpy as np
import pandas as pd

from credit_engine.config import (LTM_LABEL, PROJECTION_YEARS,
                                  SIMPLIFIED_CAPEX_TAX_PERCENT, UNBOUNDED_COVERAGE)
from credit_engine.errors import InvalidAssumptions
from credit_engine.model.assumptions import (Assumptions, DebtStructure,
                                             GranularAssumptions, SimplifiedAssumptions)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class YearProjection:
    """One projected period. Year 0 is the LTM baseline (granular only)."""
    year: int
    label: str
    revenue: float
    revenue_growth: float
    gross_ebitda: float
    ebitda_margin: float
    adjustments: float
    adj_ebitda: float
    da: float
    ebit: float
    interest: float
    taxes: float
    net_income: float
    capex: float
    beginning_debt: float
    mandatory_amort: float
    fcf: float
    cash_available_for_sweep: float
    cash_sweep: float
    total_paydown: float
    ending_debt: float
    leverage_ratio: float
    dscr: float
    interest_coverage: float


@dataclass(frozen=True)
class ProjectionSummary:
    total_paydown: float
    paydown_percent: float
    exit_leverage: float
    average_dscr: float
    entry_leverage: float


@dataclass(frozen=True)
class ScenarioResult:
    """Ordered schedule plus summary for one run of the projector."""
    name: str
    assumptions: Assumptions
    projections: tuple[YearProjection, ...]
    summary: ProjectionSummary

    @property
    def forecast(self) -> tuple[YearProjection, ...]:
        """Forecast years only (drops the LTM baseline row)."""
        return tuple(p for p in self.projections if p.year > 0)


# ---------------------------------------------------------------------------
# Shared debt mechanics
# ---------------------------------------------------------------------------

def _mandatory_amort(debt: DebtStructure, beginning_debt: float) -> float:
    return min(debt.annual_amort, beginning_debt)


def _cash_sweep(cash_available: float, sweep_percent: float) -> float:
    return max(0.0, cash_available) * (sweep_percent / 100)


def _ending_debt(beginning_debt: float, mandatory_amort: float, cash_sweep: float) -> float:
    return max(0.0, beginning_debt - mandatory_amort - cash_sweep)


def _credit_ratios(ebitda: float, ending_debt: float,
                   interest: float, mandatory_amort: float) -> tuple[float, float, float]:
    """Returns (leverage, dscr, interest coverage) with the zero-denominator policy."""
    leverage     = ending_debt / ebitda if ebitda > 0 else 0.0
    debt_service = interest + mandatory_amort
    dscr         = ebitda / debt_service if debt_service > 0 else 0.0
    coverage     = ebitda / interest if interest > 0 else UNBOUNDED_COVERAGE
    return leverage, dscr, coverage


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

class ProjectionStrategy(ABC):
    """A cash-flow model that turns one assumption shape into a schedule."""

    name: str = ""
    assumption_type: type = object

    def check(self, assumptions) -> None:
        if not isinstance(assumptions, self.assumption_type):
            raise InvalidAssumptions(
                "assumptions",
                f"{self.name} projector needs {self.assumption_type.__name__}, "
                f"got {type(assumptions).__name__}",
            )

    @abstractmethod
    def project(self, assumptions) -> tuple[YearProjection, ...]:
        ...

    @abstractmethod
    def entry_leverage(self, assumptions, projections: tuple[YearProjection, ...]) -> float:
        ...


class GranularProjector(ProjectionStrategy):
    """Explicit tax / D&A / capex build with an LTM baseline row."""

    name = "granular"
    assumption_type = GranularAssumptions

    def project(self, assumptions: GranularAssumptions) -> tuple[YearProjection, ...]:
        self.check(assumptions)
        a    = assumptions
        debt = a.debt

        ltm_da = a.ltm_revenue * (a.da_percent / 100)
        rows = [YearProjection(
            year=0, label=LTM_LABEL,
            revenue=a.ltm_revenue, revenue_growth=0.0,
            gross_ebitda=a.ltm_ebitda,
            ebitda_margin=(a.ltm_ebitda / a.ltm_revenue * 100) if a.ltm_revenue > 0 else 0.0,
            adjustments=0.0, adj_ebitda=a.ltm_ebitda,
            da=ltm_da, ebit=a.ltm_ebitda - ltm_da,
            interest=debt.principal * (debt.interest_rate / 100),
            taxes=0.0, net_income=0.0, capex=0.0,
            beginning_debt=debt.principal, mandatory_amort=0.0,
            fcf=0.0, cash_available_for_sweep=0.0, cash_sweep=0.0, total_paydown=0.0,
            ending_debt=debt.principal,
            leverage_ratio=a.entry_leverage, dscr=0.0, interest_coverage=0.0,
        )]

        current_debt = debt.principal
        prev_revenue = a.ltm_revenue
        for i in range(PROJECTION_YEARS):
            yr        = i + 1
            beginning = current_debt
            growth    = a.revenue_growth[i]
            margin    = a.ebitda_margins[i]

            # --- Operating build ---
            revenue      = prev_revenue * (1 + growth / 100)
            gross_ebitda = revenue * (margin / 100)
            adj_ebitda   = gross_ebitda + a.adjustments[i]
            da           = revenue * (a.da_percent / 100)
            ebit         = adj_ebitda - da
            interest     = beginning * (debt.interest_rate / 100)
            pre_tax      = ebit - interest
            taxes        = max(0.0, pre_tax * (a.tax_rate / 100))
            net_income   = pre_tax - taxes
            capex        = revenue * (a.capex_percent[i] / 100)

            # --- Debt service ---
            amort  = _mandatory_amort(debt, beginning)
            fcf    = net_income + da - capex - amort
            sweep  = _cash_sweep(fcf, a.cash_sweep_percent)
            ending = _ending_debt(beginning, amort, sweep)
            leverage, dscr, coverage = _credit_ratios(adj_ebitda, ending, interest, amort)

            rows.append(YearProjection(
                year=yr, label=f"Year {yr}",
                revenue=revenue, revenue_growth=growth,
                gross_ebitda=gross_ebitda, ebitda_margin=margin,
                adjustments=a.adjustments[i], adj_ebitda=adj_ebitda,
                da=da, ebit=ebit, interest=interest,
                taxes=taxes, net_income=net_income, capex=capex,
                beginning_debt=beginning, mandatory_amort=amort,
                fcf=fcf, cash_available_for_sweep=fcf, cash_sweep=sweep,
                total_paydown=beginning - ending, ending_debt=ending,
                leverage_ratio=leverage, dscr=dscr, interest_coverage=coverage,
            ))

            current_debt = ending
            prev_revenue = revenue

        return tuple(rows)

    def entry_leverage(self, assumptions: GranularAssumptions, projections) -> float:
        return assumptions.entry_leverage


class SimplifiedProjector(ProjectionStrategy):
    """Growth / margin only; capex and cash taxes as a flat 25% of EBITDA."""

    name = "simplified"
    assumption_type = SimplifiedAssumptions

    def project(self, assumptions: SimplifiedAssumptions) -> tuple[YearProjection, ...]:
        self.check(assumptions)
        a    = assumptions
        debt = a.debt

        rows = []
        current_debt = debt.principal
        prev_revenue = a.base_revenue
        for i in range(PROJECTION_YEARS):
            yr        = i + 1
            beginning = current_debt
            growth    = a.revenue_growth[i]
            margin    = a.ebitda_margin[i]

            revenue  = prev_revenue * (1 + growth / 100)
            ebitda   = revenue * (margin / 100)
            interest = beginning * (debt.interest_rate / 100)
            capex_and_tax = ebitda * (SIMPLIFIED_CAPEX_TAX_PERCENT / 100)
            fcf      = ebitda - interest - capex_and_tax

            # Mandatory amortization is paid before anything is swept
            amort     = _mandatory_amort(debt, beginning)
            available = fcf - amort
            sweep     = _cash_sweep(available, a.cash_sweep_percent)
            ending    = _ending_debt(beginning, amort, sweep)
            leverage, dscr, coverage = _credit_ratios(ebitda, ending, interest, amort)

            rows.append(YearProjection(
                year=yr, label=f"Year {yr}",
                revenue=revenue, revenue_growth=growth,
                gross_ebitda=ebitda, ebitda_margin=margin,
                adjustments=0.0, adj_ebitda=ebitda,
                da=0.0, ebit=ebitda, interest=interest,
                taxes=0.0, net_income=0.0, capex=capex_and_tax,
                beginning_debt=beginning, mandatory_amort=amort,
                fcf=fcf, cash_available_for_sweep=available, cash_sweep=sweep,
                total_paydown=beginning - ending, ending_debt=ending,
                leverage_ratio=leverage, dscr=dscr, interest_coverage=coverage,
            ))

            current_debt = ending
            prev_revenue = revenue

        return tuple(rows)

    def entry_leverage(self, assumptions: SimplifiedAssumptions, projections) -> float:
        year1_ebitda = projections[0].adj_ebitda
        return assumptions.debt.principal / year1_ebitda if year1_ebitda > 0 else 0.0


STRATEGIES: dict[str, ProjectionStrategy] = {
    GranularProjector.name:   GranularProjector(),
    SimplifiedProjector.name: SimplifiedProjector(),
}


def strategy_for(assumptions) -> ProjectionStrategy:
    """Registered strategy for an assumption shape."""
    shape = getattr(assumptions, "shape", None)
    if shape not in STRATEGIES:
        raise InvalidAssumptions(
            "assumptions",
            f"expected SimplifiedAssumptions or GranularAssumptions, got {type(assumptions).__name__}",
        )
    return STRATEGIES[shape]


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def project(assumptions: Assumptions,
            strategy: ProjectionStrategy | None = None) -> tuple[YearProjection, ...]:
    """
    Project the five-year schedule.

    Parameters
    ----------
    assumptions : SimplifiedAssumptions | GranularAssumptions
    strategy    : projector to use; defaults to the one registered for the shape

    Returns
    -------
    tuple of YearProjection ordered by year (LTM row first for granular)
    """
    strategy = strategy or strategy_for(assumptions)
    logger.debug("Projecting %s assumptions with %s strategy",
                 getattr(assumptions, "shape", "?"), strategy.name)
    return strategy.project(assumptions)


def summarize(assumptions: Assumptions,
              projections: tuple[YearProjection, ...],
              strategy: ProjectionStrategy | None = None) -> ProjectionSummary:
    strategy  = strategy or strategy_for(assumptions)
    forecast  = [p for p in projections if p.year > 0]
    principal = assumptions.debt.principal
    exit_year = forecast[-1]

    total_paydown = principal - exit_year.ending_debt
    return ProjectionSummary(
        total_paydown   = total_paydown,
        paydown_percent = total_paydown / principal * 100 if principal > 0 else 0.0,
        exit_leverage   = exit_year.leverage_ratio,
        average_dscr    = float(np.mean([p.dscr for p in forecast])),
        entry_leverage  = strategy.entry_leverage(assumptions, forecast),
    )


def run_projection(assumptions: Assumptions,
                   strategy: ProjectionStrategy | None = None,
                   name: str = "Base") -> ScenarioResult:
    """Project and summarize in one call."""
    strategy    = strategy or strategy_for(assumptions)
    projections = project(assumptions, strategy)
    return ScenarioResult(
        name        = name,
        assumptions = assumptions,
        projections = projections,
        summary     = summarize(assumptions, projections, strategy),
    )


# ---------------------------------------------------------------------------
# DataFrame views
# ---------------------------------------------------------------------------

MONEY_COLUMNS = [
    "revenue", "gross_ebitda", "adjustments", "adj_ebitda", "da", "ebit",
    "interest", "taxes", "net_income", "capex", "beginning_debt",
    "mandatory_amort", "fcf", "cash_available_for_sweep", "cash_sweep",
    "total_paydown", "ending_debt",
]
RATIO_COLUMNS = ["leverage_ratio", "dscr", "interest_coverage"]


def projection_df(projections: tuple[YearProjection, ...]) -> pd.DataFrame:
    """Year-by-year schedule, money rounded to whole units and ratios to 0.01x."""
    df = pd.DataFrame([asdict(p) for p in projections]).set_index("label")
    df[MONEY_COLUMNS] = df[MONEY_COLUMNS].round(0)
    df[RATIO_COLUMNS] = df[RATIO_COLUMNS].round(2)
    return df
