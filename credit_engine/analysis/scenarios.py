"""
scenarios.py
------------
Defines Base / Upside / Downside scenarios and runs the projector for each.
Returns the three ScenarioResults plus a cross-scenario comparison.

  Upside   : growth +2 pts, EBITDA margin +2 pts (capped at 60%)
  Downside : growth −3 pts, EBITDA margin −3 pts (floored at 5%)

Each scenario is an independent projector run on a derived, frozen
assumption set. An optional ScenarioCache memoizes whole analyses on the
assumptions' content hash.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

import pandas as pd

from credit_engine.config import (DOWNSIDE_GROWTH_SHIFT, DOWNSIDE_MARGIN_SHIFT,
                                  UPSIDE_GROWTH_SHIFT, UPSIDE_MARGIN_SHIFT)
from credit_engine.model.assumptions import Assumptions
from credit_engine.model.projector import ScenarioResult, run_projection, strategy_for


logger = logging.getLogger(__name__)

BASE     = "base"
UPSIDE   = "upside"
DOWNSIDE = "downside"
SCENARIO_NAMES = [BASE, UPSIDE, DOWNSIDE]

COMPARISON_METRICS = ["exit_leverage", "paydown_percent", "average_dscr", "total_paydown"]


@dataclass(frozen=True)
class ScenarioAnalysisResult:
    base: ScenarioResult
    upside: ScenarioResult
    downside: ScenarioResult
    comparison: Mapping[str, Mapping[str, float]]   # read-only, shared by cache hits

    def __getitem__(self, name: str) -> ScenarioResult:
        if name not in SCENARIO_NAMES:
            raise KeyError(name)
        return getattr(self, name)


class ScenarioCache:
    """
    Memo of scenario analyses keyed by `canonical_key()` of the base case,
    so structurally equal assumption values share one entry.
    """

    def __init__(self):
        self._entries: dict[str, ScenarioAnalysisResult] = {}
        self.hits   = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, assumptions) -> bool:
        return assumptions.canonical_key() in self._entries

    def get_or_compute(self, assumptions: Assumptions, compute) -> ScenarioAnalysisResult:
        key = assumptions.canonical_key()
        if key in self._entries:
            self.hits += 1
            logger.debug("Scenario cache hit %s", key[:12])
            return self._entries[key]
        self.misses += 1
        result = compute(assumptions)
        self._entries[key] = result
        return result

    def clear(self) -> None:
        self._entries.clear()
        self.hits = self.misses = 0


def make_scenario_assumptions(base: Assumptions) -> dict[str, Assumptions]:
    """Derive the upside and downside assumption sets from the base case."""
    return {
        BASE:     base,
        UPSIDE:   base.perturb(UPSIDE_GROWTH_SHIFT, UPSIDE_MARGIN_SHIFT),
        DOWNSIDE: base.perturb(DOWNSIDE_GROWTH_SHIFT, DOWNSIDE_MARGIN_SHIFT),
    }


def _analyse(base_assumptions: Assumptions) -> ScenarioAnalysisResult:
    strategy  = strategy_for(base_assumptions)
    scenarios = make_scenario_assumptions(base_assumptions)
    results   = {name: run_projection(assum, strategy, name=name)
                 for name, assum in scenarios.items()}

    comparison = MappingProxyType({
        metric: MappingProxyType({name: getattr(results[name].summary, metric)
                                  for name in SCENARIO_NAMES})
        for metric in COMPARISON_METRICS
    })
    logger.debug("Scenario exit leverage: %s", dict(comparison["exit_leverage"]))

    return ScenarioAnalysisResult(
        base       = results[BASE],
        upside     = results[UPSIDE],
        downside   = results[DOWNSIDE],
        comparison = comparison,
    )


def run_scenarios(base_assumptions: Assumptions,
                  cache: ScenarioCache | None = None) -> ScenarioAnalysisResult:
    """
    Run all three scenarios.

    Parameters
    ----------
    base_assumptions : SimplifiedAssumptions | GranularAssumptions
    cache            : optional ScenarioCache; reused for structurally equal input

    Returns
    -------
    ScenarioAnalysisResult(base, upside, downside, comparison)
    """
    if cache is None:
        return _analyse(base_assumptions)
    return cache.get_or_compute(base_assumptions, _analyse)


def comparison_df(result: ScenarioAnalysisResult) -> pd.DataFrame:
    """Metrics (rows) by scenario (columns), rounded for side-by-side display."""
    labels = {
        "exit_leverage":   "Exit Leverage (x)",
        "paydown_percent": "Paydown (%)",
        "average_dscr":    "Avg DSCR (x)",
        "total_paydown":   "Total Paydown",
    }
    decimals = {"exit_leverage": 2, "paydown_percent": 1, "average_dscr": 2, "total_paydown": 0}
    rows = {
        labels[metric]: {name.title(): round(values[name], decimals[metric])
                         for name in SCENARIO_NAMES}
        for metric, values in result.comparison.items()
    }
    df = pd.DataFrame(rows).T
    df.index.name = "Metric"
    return df


def leverage_path_df(result: ScenarioAnalysisResult) -> pd.DataFrame:
    """Leverage by year for each scenario (LTM row included for granular runs)."""
    data = {
        name.title(): {p.label: round(p.leverage_ratio, 2) for p in result[name].projections}
        for name in SCENARIO_NAMES
    }
    return pd.DataFrame(data)
