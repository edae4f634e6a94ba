"""
config.py
---------
Named business constants and solver defaults for the credit engine.

Everything here is policy: scenario perturbations, margin bounds, covenant
headroom breakpoints and the IRR root-finder settings. Call sites import
these names rather than repeating the literals.

Rates and percentages are in percentage points (5.0 = 5%).
"""

# ---------------------------------------------------------------------------
# Projection horizon
# ---------------------------------------------------------------------------
PROJECTION_YEARS = 5                  # forecast years after the LTM baseline
LTM_LABEL = "LTM"

# Simplified paydown model: flat capex + cash taxes as % of EBITDA
SIMPLIFIED_CAPEX_TAX_PERCENT = 25.0

# Interest coverage reported when there is no interest expense
UNBOUNDED_COVERAGE = 999.0

# ---------------------------------------------------------------------------
# Scenario perturbations (percentage points)
# ---------------------------------------------------------------------------
UPSIDE_GROWTH_SHIFT   = 2.0
UPSIDE_MARGIN_SHIFT   = 2.0
DOWNSIDE_GROWTH_SHIFT = -3.0
DOWNSIDE_MARGIN_SHIFT = -3.0

MARGIN_CAP   = 60.0
MARGIN_FLOOR = 5.0

# ---------------------------------------------------------------------------
# Covenant headroom breakpoints (% of threshold)
# ---------------------------------------------------------------------------
TIGHT_HEADROOM = 10.0
WATCH_HEADROOM = 15.0

DEFAULT_MAX_LEVERAGE          = 5.0
DEFAULT_MIN_DSCR              = 1.25
DEFAULT_MIN_INTEREST_COVERAGE = 2.0

# Stress-test risk bands: worst leverage as a share of the max covenant
LOW_RISK_LEVERAGE_SHARE    = 0.80
MEDIUM_RISK_LEVERAGE_SHARE = 0.95
HIGH_RISK_MAX_BREACHES     = 2

# ---------------------------------------------------------------------------
# IRR solver (Newton-Raphson)
# ---------------------------------------------------------------------------
IRR_GUESS                = 0.10
IRR_MAX_ITERATIONS       = 100
IRR_TOLERANCE            = 0.0001
IRR_DERIVATIVE_THRESHOLD = 0.0001

# ---------------------------------------------------------------------------
# Lender returns
# ---------------------------------------------------------------------------
PAR = 100.0                            # prepayment premiums quoted as % of par
DEFAULT_HOLD_PERIODS = (1, 2, 3, 4, 5)

# ---------------------------------------------------------------------------
# Sensitivity
# ---------------------------------------------------------------------------
DEFAULT_SENSITIVITY_VARIATION = 20.0   # flex each driver by +/- 20% of base
MIN_INTEREST_RATE = 1.0
