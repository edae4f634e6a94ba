"""
stress.py
---------
Named downside stress cases run against covenant thresholds.

Each StressScenario replaces the growth / margin path and optionally
shifts the interest rate, then the granular projector is re-run and every
forecast year is checked against max leverage, min DSCR and min interest
coverage.

Risk level:
  low      → no breaches and worst leverage < 80% of the max covenant
  medium   → no breaches and worst leverage < 95% of the max covenant
  high     → at most two breaches
  critical → otherwise
"""

import logging
from dataclasses import dataclass, replace

import pandas as pd

from credit_engine.config import (HIGH_RISK_MAX_BREACHES, LOW_RISK_LEVERAGE_SHARE,
                                  MEDIUM_RISK_LEVERAGE_SHARE)
from credit_engine.analysis.covenants import (METRICS, CovenantThresholds, Status,
                                              classify)
from credit_engine.errors import InvalidAssumptions
from credit_engine.model.assumptions import GranularAssumptions
from credit_engine.model.projector import GranularProjector, ScenarioResult, run_projection


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StressScenario:
    name: str
    description: str
    revenue_growth: tuple[float, ...]
    ebitda_margins: tuple[float, ...]
    interest_rate_adjust: float = 0.0

    def apply(self, base: GranularAssumptions) -> GranularAssumptions:
        if not isinstance(base, GranularAssumptions):
            raise InvalidAssumptions(
                "assumptions",
                f"stress scenarios need GranularAssumptions, got {type(base).__name__}",
            )
        return replace(
            base,
            revenue_growth = self.revenue_growth,
            ebitda_margins = self.ebitda_margins,
            debt           = replace(base.debt,
                                     interest_rate=base.debt.interest_rate + self.interest_rate_adjust),
        )


STRESS_SCENARIOS = [
    StressScenario(
        name="Revenue Shock",
        description="Sharp revenue decline in Year 1, gradual recovery",
        revenue_growth=(-10.0, -5.0, 2.0, 4.0, 5.0),
        ebitda_margins=(22.0, 22.0, 23.0, 24.0, 25.0),
    ),
    StressScenario(
        name="Margin Compression",
        description="Sustained margin pressure from competition",
        revenue_growth=(3.0, 3.0, 4.0, 4.0, 5.0),
        ebitda_margins=(20.0, 18.0, 17.0, 17.0, 18.0),
    ),
    StressScenario(
        name="Rate Spike",
        description="Interest rates increase 200bps",
        revenue_growth=(5.0,) * 5,
        ebitda_margins=(25.0,) * 5,
        interest_rate_adjust=2.0,
    ),
    StressScenario(
        name="Perfect Storm",
        description="Revenue decline + margin pressure + rate spike",
        revenue_growth=(-8.0, -3.0, 0.0, 2.0, 3.0),
        ebitda_margins=(18.0, 16.0, 16.0, 17.0, 18.0),
        interest_rate_adjust=1.5,
    ),
]


@dataclass(frozen=True)
class CovenantBreach:
    year: int
    covenant: str
    threshold: float
    actual: float


@dataclass(frozen=True)
class StressTestResult:
    scenario: StressScenario
    result: ScenarioResult
    breaches: tuple[CovenantBreach, ...]
    worst_leverage: tuple[int, float]     # (year, value)
    worst_dscr: tuple[int, float]
    survives: bool
    risk_level: str


def _risk_level(survives: bool, worst_leverage: float, breach_count: int,
                thresholds: CovenantThresholds) -> str:
    if survives and worst_leverage < thresholds.max_leverage * LOW_RISK_LEVERAGE_SHARE:
        return "low"
    if survives and worst_leverage < thresholds.max_leverage * MEDIUM_RISK_LEVERAGE_SHARE:
        return "medium"
    if breach_count <= HIGH_RISK_MAX_BREACHES:
        return "high"
    return "critical"


def run_stress_test(base: GranularAssumptions, scenario: StressScenario,
                    thresholds: CovenantThresholds | None = None) -> StressTestResult:
    thresholds = thresholds or CovenantThresholds()
    result     = run_projection(scenario.apply(base), GranularProjector(), name=scenario.name)
    forecast   = result.forecast

    breaches = []
    for p in forecast:
        for metric in METRICS.values():
            threshold = metric.threshold(thresholds)
            value     = getattr(p, metric.key)
            if classify(value, threshold, metric.directionality).status == Status.BREACH:
                breaches.append(CovenantBreach(p.year, metric.label, threshold, value))

    worst_lev  = max(forecast, key=lambda p: p.leverage_ratio)
    worst_dscr = min(forecast, key=lambda p: p.dscr)
    survives   = not breaches

    return StressTestResult(
        scenario       = scenario,
        result         = result,
        breaches       = tuple(breaches),
        worst_leverage = (worst_lev.year, worst_lev.leverage_ratio),
        worst_dscr     = (worst_dscr.year, worst_dscr.dscr),
        survives       = survives,
        risk_level     = _risk_level(survives, worst_lev.leverage_ratio, len(breaches), thresholds),
    )


def run_stress_tests(base: GranularAssumptions,
                     thresholds: CovenantThresholds | None = None,
                     scenarios: list[StressScenario] | None = None) -> list[StressTestResult]:
    """Run every stress scenario (the standard four by default)."""
    scenarios = STRESS_SCENARIOS if scenarios is None else scenarios
    results = [run_stress_test(base, s, thresholds) for s in scenarios]
    logger.info("Stress tests: %d of %d scenarios survive covenants",
                sum(r.survives for r in results), len(results))
    return results


def stress_summary_df(results: list[StressTestResult]) -> pd.DataFrame:
    rows = []
    for r in results:
        s = r.result.summary
        rows.append({
            "Scenario":           r.scenario.name,
            "Exit Leverage (x)":  round(s.exit_leverage, 2),
            "Avg DSCR (x)":       round(s.average_dscr, 2),
            "Paydown (%)":        round(s.paydown_percent, 1),
            "Worst Leverage (x)": round(r.worst_leverage[1], 2),
            "Worst DSCR (x)":     round(r.worst_dscr[1], 2),
            "Breaches":           len(r.breaches),
            "Survives":           "YES" if r.survives else "NO",
            "Risk Level":         r.risk_level.title(),
        })
    return pd.DataFrame(rows).set_index("Scenario")
