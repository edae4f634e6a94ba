"""
covenants.py
------------
Covenant compliance classification with headroom quantification.

Metrics and direction:
  - Leverage (Total Debt / EBITDA)      : lower is better  → max covenant
  - DSCR (EBITDA / (Interest + Amort))  : higher is better → min covenant
  - Interest Coverage (EBITDA / Int.)   : higher is better → min covenant

Headroom is signed so positive = room before a breach:
  lower-is-better  : (threshold − value) / threshold × 100
  higher-is-better : (value − threshold) / threshold × 100

Status per period (no smoothing across years), first match wins:
  Breach  → value on the wrong side of the threshold
  Tight   → |headroom| < 10%
  Watch   → |headroom| < 15%
  Healthy → otherwise
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from credit_engine.config import (DEFAULT_MAX_LEVERAGE, DEFAULT_MIN_DSCR,
                                  DEFAULT_MIN_INTEREST_COVERAGE, TIGHT_HEADROOM,
                                  WATCH_HEADROOM)
from credit_engine.errors import InvalidInput
from credit_engine.model.projector import YearProjection


class Directionality(str, Enum):
    LOWER_IS_BETTER  = "lower_is_better"
    HIGHER_IS_BETTER = "higher_is_better"


class Status(str, Enum):
    BREACH  = "breach"
    TIGHT   = "tight"
    WATCH   = "watch"
    HEALTHY = "healthy"


@dataclass(frozen=True)
class CovenantStatus:
    status: Status
    headroom_percent: float


@dataclass(frozen=True)
class CovenantThresholds:
    max_leverage: float = DEFAULT_MAX_LEVERAGE
    min_dscr: float = DEFAULT_MIN_DSCR
    min_interest_coverage: float = DEFAULT_MIN_INTEREST_COVERAGE


@dataclass(frozen=True)
class CovenantMetric:
    key: str                  # attribute on YearProjection
    label: str
    threshold_field: str      # attribute on CovenantThresholds
    directionality: Directionality

    def threshold(self, thresholds: CovenantThresholds) -> float:
        return getattr(thresholds, self.threshold_field)


LEVERAGE = CovenantMetric("leverage_ratio", "Max Leverage", "max_leverage",
                          Directionality.LOWER_IS_BETTER)
DSCR = CovenantMetric("dscr", "Min DSCR", "min_dscr",
                      Directionality.HIGHER_IS_BETTER)
INTEREST_COVERAGE = CovenantMetric("interest_coverage", "Min Interest Coverage",
                                   "min_interest_coverage", Directionality.HIGHER_IS_BETTER)

METRICS = {m.key: m for m in (LEVERAGE, DSCR, INTEREST_COVERAGE)}


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def headroom_percent(value: float, threshold: float, directionality: Directionality) -> float:
    if directionality == Directionality.LOWER_IS_BETTER:
        return (threshold - value) / threshold * 100
    return (value - threshold) / threshold * 100


def is_breach(value: float, threshold: float, directionality: Directionality) -> bool:
    if directionality == Directionality.LOWER_IS_BETTER:
        return value > threshold
    return value < threshold


def classify(value: float, threshold: float,
             directionality: Directionality | str) -> CovenantStatus:
    """Status and signed headroom for one metric value against one threshold."""
    directionality = Directionality(directionality)
    if not (math.isfinite(value) and math.isfinite(threshold)):
        raise InvalidInput("covenant value and threshold must be finite")
    if threshold <= 0:
        raise InvalidInput(f"covenant threshold must be positive, got {threshold!r}")

    headroom = headroom_percent(value, threshold, directionality)
    if is_breach(value, threshold, directionality):
        status = Status.BREACH
    elif abs(headroom) < TIGHT_HEADROOM:
        status = Status.TIGHT
    elif abs(headroom) < WATCH_HEADROOM:
        status = Status.WATCH
    else:
        status = Status.HEALTHY
    return CovenantStatus(status, headroom)


def classify_covenant(series: Iterable[float], threshold: float,
                      directionality: Directionality | str) -> list[CovenantStatus]:
    """Classify each period of a metric series independently."""
    return [classify(value, threshold, directionality) for value in series]


def covenant_series(projections: Sequence[YearProjection], metric: str | CovenantMetric) -> list[float]:
    """Forecast-year values of `metric` (the LTM baseline row is excluded)."""
    key = metric.key if isinstance(metric, CovenantMetric) else metric
    if key not in METRICS:
        raise InvalidInput(f"unknown covenant metric {key!r}")
    return [getattr(p, key) for p in projections if p.year > 0]


# ---------------------------------------------------------------------------
# Report across the projection
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CovenantReport:
    metric: CovenantMetric
    threshold: float
    years: tuple[int, ...]
    values: tuple[float, ...]
    statuses: tuple[CovenantStatus, ...]
    worst_value: float
    worst_year: int
    average: float
    breach_count: int
    exit_value: float


def _metric_report(projections: Sequence[YearProjection], metric: CovenantMetric,
                   thresholds: CovenantThresholds) -> CovenantReport:
    forecast  = [p for p in projections if p.year > 0]
    values    = covenant_series(forecast, metric)
    threshold = metric.threshold(thresholds)
    statuses  = classify_covenant(values, threshold, metric.directionality)

    pick  = max if metric.directionality == Directionality.LOWER_IS_BETTER else min
    worst = pick(values)
    return CovenantReport(
        metric       = metric,
        threshold    = threshold,
        years        = tuple(p.year for p in forecast),
        values       = tuple(values),
        statuses     = tuple(statuses),
        worst_value  = worst,
        worst_year   = forecast[values.index(worst)].year,
        average      = float(np.mean(values)),
        breach_count = sum(1 for s in statuses if s.status == Status.BREACH),
        exit_value   = values[-1],
    )


def build_covenant_report(projections: Sequence[YearProjection],
                          thresholds: CovenantThresholds | None = None) -> dict[str, CovenantReport]:
    """
    Covenant trajectory for leverage, DSCR and interest coverage.

    Returns
    -------
    {metric key: CovenantReport}
    """
    thresholds = thresholds or CovenantThresholds()
    if not any(p.year > 0 for p in projections):
        raise InvalidInput("projection has no forecast years")
    return {key: _metric_report(projections, metric, thresholds)
            for key, metric in METRICS.items()}


def covenant_df(report: dict[str, CovenantReport]) -> pd.DataFrame:
    """Year-by-year value, covenant, headroom and status for each metric."""
    rows = {}
    for rep in report.values():
        for yr, value, st in zip(rep.years, rep.values, rep.statuses):
            row = rows.setdefault(yr, {"Year": yr})
            row[rep.metric.label.replace("Max ", "").replace("Min ", "")] = round(value, 2)
            row[f"{rep.metric.label} Covenant"] = rep.threshold
            row[f"{rep.metric.label} Headroom (%)"] = round(st.headroom_percent, 1)
            row[f"{rep.metric.label} Status"] = st.status.value.title()
    return pd.DataFrame(list(rows.values())).set_index("Year")
