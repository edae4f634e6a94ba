import pytest

from credit_engine.analysis.sensitivity import (DRIVERS, growth_vs_margin, run_sensitivity,
                                                tornado_df)
from credit_engine.errors import InvalidInput
from credit_engine.model.projector import run_projection


def _by_key(results):
    return {r.variable: r for r in results}


def test_one_result_per_driver(granular):
    results = run_sensitivity(granular)
    assert [r.variable for r in results] == [d.key for d in DRIVERS]


def test_driver_values(granular):
    r = _by_key(run_sensitivity(granular, variation_percent=20))
    growth = r["revenue_growth"]
    assert growth.base_value == pytest.approx(5.4)
    assert growth.low.value == pytest.approx(5.4 * 0.8)
    assert growth.high.value == pytest.approx(5.4 * 1.2)
    assert r["interest_rate"].base_value == pytest.approx(9.5)
    assert r["cash_sweep"].base_value == pytest.approx(50.0)


def test_impact_directions_on_exit_leverage(granular):
    r = _by_key(run_sensitivity(granular, "exit_leverage"))
    # better operations or more sweep -> lower exit leverage
    for key in ("revenue_growth", "ebitda_margin", "cash_sweep"):
        assert r[key].low.impact > 0 > r[key].high.impact
    # cheaper debt frees cash for the sweep
    assert r["interest_rate"].low.impact < 0 < r["interest_rate"].high.impact


def test_impact_is_relative_to_base(granular):
    base = run_projection(granular).summary.paydown_percent
    for r in run_sensitivity(granular, "paydown_percent"):
        assert r.low.impact == pytest.approx(r.low.result - base)
        assert r.high.impact == pytest.approx(r.high.result - base)
        assert r.swing == pytest.approx(abs(r.high.impact - r.low.impact))


def test_zero_variation_has_no_impact(paydown):
    for r in run_sensitivity(paydown, "average_dscr", variation_percent=0):
        assert r.low.impact == 0
        assert r.high.impact == 0


def test_unknown_metric(granular):
    with pytest.raises(InvalidInput):
        run_sensitivity(granular, "irr")
    with pytest.raises(InvalidInput):
        growth_vs_margin(granular, metric="irr")


def test_tornado_sorted_by_swing(granular):
    df = tornado_df(run_sensitivity(granular))
    assert len(df) == 4
    assert list(df["Swing"]) == sorted(df["Swing"], reverse=True)


def test_growth_vs_margin_grid(paydown):
    df = growth_vs_margin(paydown)
    assert df.shape == (5, 5)
    assert df.index.name == "Growth Shift"
    centre = df.loc["+0.0 pts", "Margin +0.0 pts"]
    assert centre == pytest.approx(run_projection(paydown).summary.exit_leverage)
    # more margin, lower leverage along the base-growth row
    row = list(df.loc["+0.0 pts"])
    assert row == sorted(row, reverse=True)
