import pytest

from credit_engine.model.assumptions import (DebtStructure, GranularAssumptions,
                                             base_case, paydown_case)
from credit_engine.model.returns import ReturnsInput


@pytest.fixture
def paydown():
    """$450M facility, 5% growth, 25% margin, 8% coupon, 5% amort, 50% sweep."""
    return paydown_case()


@pytest.fixture
def granular():
    return base_case()


@pytest.fixture
def deleveraging():
    """Small debt against strong cash flow; the sweep retires it early."""
    return GranularAssumptions(
        ltm_revenue=200_000_000,
        ltm_ebitda=60_000_000,
        revenue_growth=[8, 8, 8, 8, 8],
        ebitda_margins=[35, 35, 35, 35, 35],
        capex_percent=[2, 2, 2, 2, 2],
        tax_rate=21,
        da_percent=3,
        debt=DebtStructure(principal=60_000_000, interest_rate=7.0, amort_rate=10.0),
        cash_sweep_percent=100,
    )


@pytest.fixture
def returns_input():
    """$25M position, 2% OID, 1% fee, SOFR 5.25% + 500bps, 3-year hold."""
    return ReturnsInput(
        principal=25_000_000,
        oid_percent=2.0,
        upfront_fee_percent=1.0,
        spread_bps=500,
        base_rate=5.25,
        hold_period=3,
        prepayment_premiums=(102, 101, 100, 100, 100),
        mandatory_amort_percent=5.0,
    )
