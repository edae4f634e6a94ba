import logging
import math

import pytest
from scipy.optimize import brentq

from credit_engine.errors import InvalidInput
from credit_engine.model.irr import (FLAT_DERIVATIVE, MAX_ITERATIONS, OVERFLOW, TOLERANCE,
                                     moic, npv, solve_irr, solve_irr_detailed)


def _reference_irr(initial, flows):
    """Bracketed root of the same NPV, in percent."""
    return brentq(lambda r: npv(r, initial, flows), -0.99, 10.0) * 100


# ---------------------------------------------------------------------------
# Converging cases
# ---------------------------------------------------------------------------

def test_single_period_ten_percent():
    sol = solve_irr_detailed(100.0, [110.0])
    assert sol.converged
    assert sol.reason == TOLERANCE
    assert sol.rate_percent == pytest.approx(10.0)


@pytest.mark.parametrize("years", [1, 5, 10])
@pytest.mark.parametrize("rate", [0.0, 0.05, 0.12, 0.3, 1.0, 2.0])
def test_recovers_known_rate(rate, years):
    flows = [0.0] * (years - 1) + [100 * (1 + rate) ** years]
    sol = solve_irr_detailed(100.0, flows)
    assert sol.converged
    assert sol.rate_percent == pytest.approx(rate * 100, abs=0.01)


def test_deep_loss_needs_a_nearby_guess():
    flows = [0.0] * 9 + [100 * 0.8 ** 10]
    # a full Newton step from 10% overshoots below -100%
    sol = solve_irr_detailed(100.0, flows)
    assert not sol.converged
    assert sol.reason == OVERFLOW
    assert solve_irr(100.0, flows, guess=-0.15) == pytest.approx(-20.0, abs=0.01)


@pytest.mark.parametrize("initial, flows", [
    (24_250_000, [3_812_500, 3_684_375, 24_806_250]),
    (95.0, [8.0, 8.0, 108.0]),
    (1_000.0, [300.0, 300.0, 300.0, 300.0]),
    (100.0, [50.0, 40.0, 20.0]),
])
def test_matches_bracketed_root(initial, flows):
    sol = solve_irr_detailed(initial, flows)
    assert sol.converged
    assert sol.rate_percent == pytest.approx(_reference_irr(initial, flows), abs=0.005)
    assert abs(npv(sol.rate_percent / 100, initial, flows)) < initial * 1e-4


def test_loss_gives_negative_irr():
    assert solve_irr(100.0, [30.0, 30.0, 30.0]) < 0


def test_custom_guess_reaches_same_root():
    flows = [8.0, 8.0, 108.0]
    assert solve_irr(95.0, flows, guess=0.25) == pytest.approx(solve_irr(95.0, flows), abs=1e-3)


# ---------------------------------------------------------------------------
# Non-convergence is reported, not hidden
# ---------------------------------------------------------------------------

def test_flat_derivative_returns_current_estimate(caplog):
    with caplog.at_level(logging.WARNING, logger="credit_engine.model.irr"):
        sol = solve_irr_detailed(100.0, [0.0, 0.0, 0.0])
    assert not sol.converged
    assert sol.reason == FLAT_DERIVATIVE
    assert sol.rate_percent == pytest.approx(10.0)
    assert sol.iterations == 1
    assert "did not converge" in caplog.text


def test_iteration_cap():
    flows = [0.0, 0.0, 0.0, 0.0, 100 * 1.12 ** 5]
    sol = solve_irr_detailed(100.0, flows, max_iterations=1)
    assert not sol.converged
    assert sol.reason == MAX_ITERATIONS
    assert sol.iterations == 1
    assert math.isfinite(sol.rate_percent)


def test_guess_outside_domain():
    sol = solve_irr_detailed(100.0, [110.0], guess=-1.0)
    assert not sol.converged
    assert sol.reason == OVERFLOW
    assert sol.iterations == 0


def test_loose_tolerance_stops_early():
    flows = [0.0, 0.0, 0.0, 0.0, 100 * 1.12 ** 5]
    tight = solve_irr_detailed(100.0, flows)
    loose = solve_irr_detailed(100.0, flows, tolerance=0.05)
    assert loose.converged
    assert loose.iterations <= tight.iterations


# ---------------------------------------------------------------------------
# Input validation and MOIC
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("initial, flows", [
    (0.0, [110.0]),
    (-100.0, [110.0]),
    (float("nan"), [110.0]),
    ("100", [110.0]),
    (True, [110.0]),
    (100.0, []),
    (100.0, [50.0, float("inf")]),
    (100.0, [50.0, "x"]),
    (100.0, ["110"]),
    (100.0, [None]),
    (100.0, [True, 110.0]),
])
def test_invalid_inputs(initial, flows):
    with pytest.raises(InvalidInput):
        solve_irr(initial, flows)


def test_moic():
    assert moic(100.0, [10.0, 10.0, 110.0]) == pytest.approx(1.3)


def test_moic_rejects_zero_investment():
    with pytest.raises(InvalidInput):
        moic(0.0, [10.0])
