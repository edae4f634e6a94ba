import pytest

from credit_engine.analysis.scenarios import (BASE, DOWNSIDE, UPSIDE, ScenarioCache,
                                              comparison_df, leverage_path_df,
                                              make_scenario_assumptions, run_scenarios)
from credit_engine.model.assumptions import assumptions_from_dict, base_case, paydown_case
from credit_engine.model.projector import run_projection


def test_derived_assumptions(granular):
    s = make_scenario_assumptions(granular)
    assert s[BASE] is granular
    assert s[UPSIDE].revenue_growth == (7.0, 8.0, 9.0, 7.0, 6.0)
    assert s[UPSIDE].ebitda_margins == (27.0, 28.0, 29.0, 29.0, 30.0)
    assert s[DOWNSIDE].revenue_growth == (2.0, 3.0, 4.0, 2.0, 1.0)
    assert s[DOWNSIDE].ebitda_margins == (22.0, 23.0, 24.0, 24.0, 25.0)
    # everything else carries over
    assert s[DOWNSIDE].debt == granular.debt
    assert s[DOWNSIDE].capex_percent == granular.capex_percent


def test_base_scenario_is_a_plain_projection(granular):
    result = run_scenarios(granular)
    assert result.base.projections == run_projection(granular).projections
    assert result[BASE] is result.base
    with pytest.raises(KeyError):
        result["sideways"]


@pytest.mark.parametrize("fixture", ["granular", "paydown"])
def test_scenario_ordering(request, fixture):
    result = run_scenarios(request.getfixturevalue(fixture))
    lev = result.comparison["exit_leverage"]
    assert lev[UPSIDE] <= lev[BASE] <= lev[DOWNSIDE]
    paydown = result.comparison["paydown_percent"]
    assert paydown[UPSIDE] >= paydown[BASE] >= paydown[DOWNSIDE]


def test_comparison_matches_summaries(paydown):
    result = run_scenarios(paydown)
    for name in (BASE, UPSIDE, DOWNSIDE):
        summary = result[name].summary
        assert result.comparison["exit_leverage"][name] == summary.exit_leverage
        assert result.comparison["average_dscr"][name] == summary.average_dscr
        assert result.comparison["total_paydown"][name] == summary.total_paydown


def test_cache_reuses_structurally_equal_input(granular):
    cache = ScenarioCache()
    first = run_scenarios(granular, cache)
    second = run_scenarios(base_case(), cache)
    assert second is first
    assert (cache.hits, cache.misses) == (1, 1)
    assert len(cache) == 1
    assert granular in cache


def test_cache_key_ignores_container_types(granular):
    cache = ScenarioCache()
    run_scenarios(granular, cache)
    rebuilt = assumptions_from_dict(granular.to_dict())
    run_scenarios(rebuilt, cache)
    assert cache.hits == 1


def test_cache_separates_different_inputs(granular, paydown):
    cache = ScenarioCache()
    run_scenarios(granular, cache)
    run_scenarios(paydown, cache)
    run_scenarios(granular.perturb(1.0, 0.0), cache)
    assert len(cache) == 3
    assert cache.hits == 0

    cache.clear()
    assert len(cache) == 0
    assert cache.misses == 0


def test_comparison_df(paydown):
    df = comparison_df(run_scenarios(paydown))
    assert list(df.columns) == ["Base", "Upside", "Downside"]
    assert "Exit Leverage (x)" in df.index


def test_leverage_path_df(granular):
    df = leverage_path_df(run_scenarios(granular))
    assert list(df.index) == ["LTM", "Year 1", "Year 2", "Year 3", "Year 4", "Year 5"]
    assert df.loc["LTM", "Base"] == df.loc["LTM", "Downside"] == 3.2


def test_cached_comparison_is_read_only(paydown):
    cache = ScenarioCache()
    first = run_scenarios(paydown, cache)
    with pytest.raises(TypeError):
        first.comparison["exit_leverage"][BASE] = -1.0
    with pytest.raises(TypeError):
        first.comparison["exit_leverage"] = {}

    again = run_scenarios(paydown_case(), cache)
    assert cache.hits == 1
    assert again.comparison["exit_leverage"][BASE] == run_projection(paydown).summary.exit_leverage


@pytest.mark.parametrize("fixture", ["granular", "paydown"])
def test_uncached_runs_are_identical(request, fixture):
    assumptions = request.getfixturevalue(fixture)
    first = run_scenarios(assumptions)
    second = run_scenarios(assumptions)
    assert first is not second
    for name in (BASE, UPSIDE, DOWNSIDE):
        assert first[name] == second[name]
    assert ({k: dict(v) for k, v in first.comparison.items()}
            == {k: dict(v) for k, v in second.comparison.items()})
