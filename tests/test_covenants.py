import math

import pytest

from credit_engine.analysis.covenants import (DSCR, INTEREST_COVERAGE, LEVERAGE,
                                              CovenantThresholds, Directionality, Status,
                                              build_covenant_report, classify,
                                              classify_covenant, covenant_df,
                                              covenant_series)
from credit_engine.errors import InvalidInput
from credit_engine.model.projector import project

LOWER = Directionality.LOWER_IS_BETTER
HIGHER = Directionality.HIGHER_IS_BETTER


@pytest.mark.parametrize("value, threshold, directionality, status, headroom", [
    (4.0, 5.0, LOWER, Status.HEALTHY, 20.0),
    (4.25, 5.0, LOWER, Status.HEALTHY, 15.0),    # exactly 15% is not "watch"
    (4.3, 5.0, LOWER, Status.WATCH, 14.0),
    (4.6, 5.0, LOWER, Status.TIGHT, 8.0),
    (5.0, 5.0, LOWER, Status.TIGHT, 0.0),
    (5.1, 5.0, LOWER, Status.BREACH, -2.0),
    (1.3, 1.25, HIGHER, Status.TIGHT, 4.0),
    (1.25, 1.25, HIGHER, Status.TIGHT, 0.0),
    (1.1, 1.25, HIGHER, Status.BREACH, -12.0),
    (3.0, 2.0, HIGHER, Status.HEALTHY, 50.0),
])
def test_classify(value, threshold, directionality, status, headroom):
    result = classify(value, threshold, directionality)
    assert result.status == status
    assert result.headroom_percent == pytest.approx(headroom)


def test_classify_is_repeatable():
    for args in [(4.6, 5.0, LOWER), (1.1, 1.25, HIGHER), (999.0, 2.0, HIGHER)]:
        assert classify(*args) == classify(*args)
    assert classify_covenant([4.0, 5.5], 5.0, LOWER) == classify_covenant([4.0, 5.5], 5.0, LOWER)


def test_classify_accepts_string_directionality():
    assert classify(4.0, 5.0, "lower_is_better").status == Status.HEALTHY
    with pytest.raises(ValueError):
        classify(4.0, 5.0, "sideways")


@pytest.mark.parametrize("value, threshold", [
    (4.0, 0.0),
    (4.0, -5.0),
    (math.nan, 5.0),
    (4.0, math.inf),
])
def test_classify_rejects_bad_numbers(value, threshold):
    with pytest.raises(InvalidInput):
        classify(value, threshold, LOWER)


def test_each_period_classified_independently():
    statuses = classify_covenant([4.0, 5.5, 4.0], 5.0, LOWER)
    assert [s.status for s in statuses] == [Status.HEALTHY, Status.BREACH, Status.HEALTHY]


def test_series_excludes_ltm_row(granular):
    rows = project(granular)
    values = covenant_series(rows, LEVERAGE)
    assert len(values) == 5
    assert values == [p.leverage_ratio for p in rows[1:]]
    assert covenant_series(rows, "dscr") == [p.dscr for p in rows[1:]]
    with pytest.raises(InvalidInput):
        covenant_series(rows, "ebitda")


def test_report_on_base_case(granular):
    report = build_covenant_report(project(granular))
    assert set(report) == {LEVERAGE.key, DSCR.key, INTEREST_COVERAGE.key}

    lev = report[LEVERAGE.key]
    assert lev.threshold == 5.0
    assert lev.years == (1, 2, 3, 4, 5)
    assert lev.worst_value == max(lev.values)
    assert lev.worst_value == lev.values[0]        # deleveraging path
    assert lev.worst_year == 1
    assert lev.breach_count == 0
    assert lev.exit_value == lev.values[-1]
    assert lev.average == pytest.approx(sum(lev.values) / 5)

    dscr = report[DSCR.key]
    assert dscr.worst_value == min(dscr.values)


def test_report_counts_breaches(paydown):
    report = build_covenant_report(project(paydown))
    lev = report[LEVERAGE.key]
    assert lev.breach_count == 5
    assert all(s.status == Status.BREACH for s in lev.statuses)


def test_custom_thresholds(granular):
    tight = CovenantThresholds(max_leverage=2.0, min_dscr=4.0, min_interest_coverage=2.0)
    report = build_covenant_report(project(granular), tight)
    assert report[LEVERAGE.key].threshold == 2.0
    assert report[LEVERAGE.key].breach_count > 0


def test_covenant_df(granular):
    df = covenant_df(build_covenant_report(project(granular)))
    assert list(df.index) == [1, 2, 3, 4, 5]
    assert set(df["Max Leverage Status"]) <= {"Breach", "Tight", "Watch", "Healthy"}
    assert (df["Max Leverage Covenant"] == 5.0).all()
