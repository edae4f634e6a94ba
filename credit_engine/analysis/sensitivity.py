"""
sensitivity.py
--------------
Driver sensitivities on the paydown projection.

Tornado: each driver is flexed down and up by a % of its base value
(revenue growth, EBITDA margin, interest rate, cash sweep %) and the
change in one summary metric is recorded:
  exit_leverage | paydown_percent | average_dscr

Two-way table: revenue growth shift (rows) vs EBITDA margin shift (cols)
→ exit leverage.
"""

from dataclasses import dataclass, replace
from typing import Callable

import numpy as np
import pandas as pd

from credit_engine.config import DEFAULT_SENSITIVITY_VARIATION, MIN_INTEREST_RATE
from credit_engine.errors import InvalidInput
from credit_engine.model.assumptions import Assumptions
from credit_engine.model.projector import run_projection


SENSITIVITY_METRICS = ("exit_leverage", "paydown_percent", "average_dscr")


@dataclass(frozen=True)
class SensitivityCase:
    value: float        # driver value in this case
    result: float       # metric value
    impact: float       # result − base result


@dataclass(frozen=True)
class SensitivityResult:
    variable: str
    label: str
    base_value: float
    low: SensitivityCase
    high: SensitivityCase

    @property
    def swing(self) -> float:
        return abs(self.high.impact - self.low.impact)


@dataclass(frozen=True)
class _Driver:
    key: str
    label: str
    base: Callable[[Assumptions], float]
    flex: Callable[[Assumptions, float], Assumptions]   # signed delta


def _flex_growth(a: Assumptions, delta: float) -> Assumptions:
    return a.perturb(delta, 0.0)


def _flex_margin(a: Assumptions, delta: float) -> Assumptions:
    # perturb() applies the 60% cap / 5% floor
    return a.perturb(0.0, delta)


def _flex_rate(a: Assumptions, delta: float) -> Assumptions:
    rate = a.debt.interest_rate + delta
    if delta < 0:
        rate = max(MIN_INTEREST_RATE, rate)
    return replace(a, debt=replace(a.debt, interest_rate=rate))


def _flex_sweep(a: Assumptions, delta: float) -> Assumptions:
    return replace(a, cash_sweep_percent=min(100.0, max(0.0, a.cash_sweep_percent + delta)))


DRIVERS = [
    _Driver("revenue_growth", "Revenue Growth",
            lambda a: float(np.mean(a.revenue_growth)), _flex_growth),
    _Driver("ebitda_margin", "EBITDA Margin",
            lambda a: float(np.mean(a.ebitda_margins)), _flex_margin),
    _Driver("interest_rate", "Interest Rate",
            lambda a: a.debt.interest_rate, _flex_rate),
    _Driver("cash_sweep", "Cash Sweep %",
            lambda a: a.cash_sweep_percent, _flex_sweep),
]


def _metric(assumptions: Assumptions, metric: str) -> float:
    return getattr(run_projection(assumptions).summary, metric)


def run_sensitivity(base: Assumptions, metric: str = "exit_leverage",
                    variation_percent: float = DEFAULT_SENSITIVITY_VARIATION) -> list[SensitivityResult]:
    """
    Low / high impact of each driver on `metric`.

    Parameters
    ----------
    base              : base-case assumptions (either shape)
    metric            : one of SENSITIVITY_METRICS
    variation_percent : flex as % of each driver's base value
    """
    if metric not in SENSITIVITY_METRICS:
        raise InvalidInput(f"unknown sensitivity metric {metric!r}")
    base_result = _metric(base, metric)

    results = []
    for d in DRIVERS:
        base_value = d.base(base)
        delta      = abs(base_value) * variation_percent / 100
        low        = _metric(d.flex(base, -delta), metric)
        high       = _metric(d.flex(base, delta), metric)
        results.append(SensitivityResult(
            variable   = d.key,
            label      = d.label,
            base_value = base_value,
            low        = SensitivityCase(base_value - delta, low, low - base_result),
            high       = SensitivityCase(base_value + delta, high, high - base_result),
        ))
    return results


def tornado_df(results: list[SensitivityResult]) -> pd.DataFrame:
    """Tornado table, widest swing first."""
    rows = [{
        "Driver":      r.label,
        "Base":        round(r.base_value, 2),
        "Low Value":   round(r.low.value, 2),
        "Low Result":  round(r.low.result, 2),
        "Low Impact":  round(r.low.impact, 2),
        "High Value":  round(r.high.value, 2),
        "High Result": round(r.high.result, 2),
        "High Impact": round(r.high.impact, 2),
        "Swing":       round(r.swing, 2),
    } for r in sorted(results, key=lambda r: r.swing, reverse=True)]
    return pd.DataFrame(rows).set_index("Driver")


def growth_vs_margin(
    base: Assumptions,
    growth_shifts: list[float] = [-4.0, -2.0, 0.0, 2.0, 4.0],
    margin_shifts: list[float] = [-4.0, -2.0, 0.0, 2.0, 4.0],
    metric: str = "exit_leverage",
) -> pd.DataFrame:
    """
    Two-way table: rows = growth shift (pts), cols = margin shift (pts).
    """
    if metric not in SENSITIVITY_METRICS:
        raise InvalidInput(f"unknown sensitivity metric {metric!r}")
    data = {}
    for m_shift in margin_shifts:
        col = {}
        for g_shift in growth_shifts:
            col[f"{g_shift:+.1f} pts"] = _metric(base.perturb(g_shift, m_shift), metric)
        data[f"Margin {m_shift:+.1f} pts"] = col

    df = pd.DataFrame(data)
    df.index.name = "Growth Shift"
    return df
