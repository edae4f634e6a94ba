"""
assumptions.py
--------------
Immutable input model for the paydown projections.

Two shapes coexist:
  - SimplifiedAssumptions : revenue, growth, margin and a debt structure;
                            capex and cash taxes approximated as a flat
                            25% of EBITDA.
  - GranularAssumptions   : explicit tax / D&A / capex breakdown plus
                            EBITDA adjustments and an LTM baseline.

Both are frozen dataclasses validated at construction, so an invalid
assumption set can never reach the projector.

Rates and percentages in percentage points (e.g., 8.0 = 8%).
Per-year vectors cover the forecast horizon; index 0 = Year 1.
"""

import hashlib
import json
import math
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, field, replace
from numbers import Real
from typing import Any

import numpy as np

from credit_engine.config import MARGIN_CAP, MARGIN_FLOOR, PROJECTION_YEARS
from credit_engine.errors import InvalidAssumptions


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------

def _number(name: str, value: Any) -> float:
    """Coerce a scalar assumption to float, rejecting bools, strings and NaN."""
    if value is None:
        raise InvalidAssumptions(name, "is required")
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (Real, np.number)):
        raise InvalidAssumptions(name, f"must be numeric, got {type(value).__name__}")
    number = float(value)
    if not math.isfinite(number):
        raise InvalidAssumptions(name, "must be finite")
    return number


def _vector(name: str, value: Any, years: int = PROJECTION_YEARS) -> tuple[float, ...]:
    """
    Normalize a per-year driver to a tuple of `years` floats.

    A scalar is held flat across the horizon. Longer sequences are cut to
    the horizon; shorter ones are rejected.
    """
    if value is None:
        raise InvalidAssumptions(name, "is required")
    if isinstance(value, (str, bytes)):
        raise InvalidAssumptions(name, "must be numeric, got str")
    if not isinstance(value, (Sequence, np.ndarray)):
        return (_number(name, value),) * years
    if len(value) < years:
        raise InvalidAssumptions(name, f"needs {years} yearly values, got {len(value)}")
    return tuple(_number(f"{name}[{i}]", v) for i, v in enumerate(value[:years]))


def _check_range(name: str, value: float, low: float | None = None, high: float | None = None):
    if low is not None and value < low:
        raise InvalidAssumptions(name, f"must be >= {low:g}, got {value:g}")
    if high is not None and value > high:
        raise InvalidAssumptions(name, f"must be <= {high:g}, got {value:g}")


def _require(data: Mapping[str, Any], key: str) -> Any:
    if key not in data:
        raise InvalidAssumptions(key, "is required")
    return data[key]


# ---------------------------------------------------------------------------
# Debt structure
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DebtStructure:
    """Senior debt sized at close."""
    principal: float          # drawn at close
    interest_rate: float      # cash coupon (points)
    amort_rate: float         # required annual amortization, points of original principal

    def __post_init__(self):
        principal = _number("debt.principal", self.principal)
        rate      = _number("debt.interest_rate", self.interest_rate)
        amort     = _number("debt.amort_rate", self.amort_rate)
        _check_range("debt.principal", principal, low=0.0)
        _check_range("debt.interest_rate", rate, low=0.0)
        _check_range("debt.amort_rate", amort, low=0.0, high=100.0)
        object.__setattr__(self, "principal", principal)
        object.__setattr__(self, "interest_rate", rate)
        object.__setattr__(self, "amort_rate", amort)

    @property
    def annual_amort(self) -> float:
        """Required amortization per year before the outstanding-balance cap."""
        return self.principal * self.amort_rate / 100

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DebtStructure":
        if not isinstance(data, Mapping):
            raise InvalidAssumptions("debt", "must be a mapping")
        return cls(
            principal     = _require(data, "principal"),
            interest_rate = _require(data, "interest_rate"),
            amort_rate    = _require(data, "amort_rate"),
        )


def _debt(value: Any) -> DebtStructure:
    if isinstance(value, DebtStructure):
        return value
    if isinstance(value, Mapping):
        return DebtStructure.from_dict(value)
    raise InvalidAssumptions("debt", "is required")


# ---------------------------------------------------------------------------
# Shared behaviour
# ---------------------------------------------------------------------------

class _AssumptionsMixin:
    """Canonical hashing and scenario perturbation shared by both shapes."""

    shape: str = ""

    def to_dict(self) -> dict:
        """Plain-data record, tagged with the shape so it loads back as the same class."""
        return {"shape": self.shape, **asdict(self)}

    def canonical_key(self) -> str:
        """
        Content-derived cache key: SHA-256 of the sorted JSON rendering of
        the normalized fields, prefixed with the shape so equal numbers in
        different shapes never collide.
        """
        payload = json.dumps(self.to_dict(),
                             sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    @staticmethod
    def _shift_growth(growth: tuple[float, ...], shift: float) -> tuple[float, ...]:
        return tuple(g + shift for g in growth)

    @staticmethod
    def _shift_margins(margins: tuple[float, ...], shift: float) -> tuple[float, ...]:
        # Raising margins is capped, cutting them is floored
        if shift > 0:
            return tuple(min(MARGIN_CAP, m + shift) for m in margins)
        if shift < 0:
            return tuple(max(MARGIN_FLOOR, m + shift) for m in margins)
        return margins


# ---------------------------------------------------------------------------
# Simplified shape
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SimplifiedAssumptions(_AssumptionsMixin):
    """
    Paydown model inputs: operating detail limited to growth and margin.

    Year 1 revenue = base_revenue * (1 + revenue_growth[0]).
    """
    base_revenue: float
    revenue_growth: tuple[float, ...]
    ebitda_margin: tuple[float, ...]
    debt: DebtStructure
    cash_sweep_percent: float = 50.0

    shape = "simplified"

    def __post_init__(self):
        revenue = _number("base_revenue", self.base_revenue)
        _check_range("base_revenue", revenue, low=0.0)
        growth  = _vector("revenue_growth", self.revenue_growth)
        margins = _vector("ebitda_margin", self.ebitda_margin)
        for i, g in enumerate(growth):
            _check_range(f"revenue_growth[{i}]", g, low=-100.0)
        for i, m in enumerate(margins):
            _check_range(f"ebitda_margin[{i}]", m, low=-100.0, high=100.0)
        sweep = _number("cash_sweep_percent", self.cash_sweep_percent)
        _check_range("cash_sweep_percent", sweep, low=0.0, high=100.0)

        object.__setattr__(self, "base_revenue", revenue)
        object.__setattr__(self, "revenue_growth", growth)
        object.__setattr__(self, "ebitda_margin", margins)
        object.__setattr__(self, "debt", _debt(self.debt))
        object.__setattr__(self, "cash_sweep_percent", sweep)

    @property
    def ebitda_margins(self) -> tuple[float, ...]:
        return self.ebitda_margin

    def perturb(self, growth_shift: float, margin_shift: float) -> "SimplifiedAssumptions":
        """New assumption set with growth and margin shifted in points (margin bounded)."""
        return replace(
            self,
            revenue_growth = self._shift_growth(self.revenue_growth, growth_shift),
            ebitda_margin  = self._shift_margins(self.ebitda_margin, margin_shift),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SimplifiedAssumptions":
        return cls(
            base_revenue       = _require(data, "base_revenue"),
            revenue_growth     = _require(data, "revenue_growth"),
            ebitda_margin      = _require(data, "ebitda_margin"),
            debt               = _require(data, "debt"),
            cash_sweep_percent = data.get("cash_sweep_percent", 50.0),
        )


# ---------------------------------------------------------------------------
# Granular shape
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class GranularAssumptions(_AssumptionsMixin):
    """
    Full operating build: LTM baseline, per-year growth / margin / capex,
    EBITDA adjustments (absolute amounts), tax and D&A rates.
    """
    ltm_revenue: float
    ltm_ebitda: float
    revenue_growth: tuple[float, ...]
    ebitda_margins: tuple[float, ...]
    capex_percent: tuple[float, ...]
    tax_rate: float
    da_percent: float
    debt: DebtStructure
    adjustments: tuple[float, ...] = field(default=(0.0,) * PROJECTION_YEARS)
    cash_sweep_percent: float = 50.0

    shape = "granular"

    def __post_init__(self):
        revenue = _number("ltm_revenue", self.ltm_revenue)
        _check_range("ltm_revenue", revenue, low=0.0)
        ebitda  = _number("ltm_ebitda", self.ltm_ebitda)

        growth  = _vector("revenue_growth", self.revenue_growth)
        margins = _vector("ebitda_margins", self.ebitda_margins)
        capex   = _vector("capex_percent", self.capex_percent)
        adjust  = _vector("adjustments", self.adjustments)
        for i in range(PROJECTION_YEARS):
            _check_range(f"revenue_growth[{i}]", growth[i], low=-100.0)
            _check_range(f"ebitda_margins[{i}]", margins[i], low=-100.0, high=100.0)
            _check_range(f"capex_percent[{i}]", capex[i], low=0.0, high=100.0)

        tax   = _number("tax_rate", self.tax_rate)
        da    = _number("da_percent", self.da_percent)
        sweep = _number("cash_sweep_percent", self.cash_sweep_percent)
        _check_range("tax_rate", tax, low=0.0, high=100.0)
        _check_range("da_percent", da, low=0.0, high=100.0)
        _check_range("cash_sweep_percent", sweep, low=0.0, high=100.0)

        object.__setattr__(self, "ltm_revenue", revenue)
        object.__setattr__(self, "ltm_ebitda", ebitda)
        object.__setattr__(self, "revenue_growth", growth)
        object.__setattr__(self, "ebitda_margins", margins)
        object.__setattr__(self, "capex_percent", capex)
        object.__setattr__(self, "adjustments", adjust)
        object.__setattr__(self, "tax_rate", tax)
        object.__setattr__(self, "da_percent", da)
        object.__setattr__(self, "debt", _debt(self.debt))
        object.__setattr__(self, "cash_sweep_percent", sweep)

    @property
    def entry_leverage(self) -> float:
        """Senior debt / LTM EBITDA (0 when EBITDA is not positive)."""
        return self.debt.principal / self.ltm_ebitda if self.ltm_ebitda > 0 else 0.0

    def perturb(self, growth_shift: float, margin_shift: float) -> "GranularAssumptions":
        """New assumption set with growth and margin shifted in points (margin bounded)."""
        return replace(
            self,
            revenue_growth = self._shift_growth(self.revenue_growth, growth_shift),
            ebitda_margins = self._shift_margins(self.ebitda_margins, margin_shift),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GranularAssumptions":
        return cls(
            ltm_revenue        = _require(data, "ltm_revenue"),
            ltm_ebitda         = _require(data, "ltm_ebitda"),
            revenue_growth     = _require(data, "revenue_growth"),
            ebitda_margins     = _require(data, "ebitda_margins"),
            capex_percent      = _require(data, "capex_percent"),
            tax_rate           = _require(data, "tax_rate"),
            da_percent         = _require(data, "da_percent"),
            debt               = _require(data, "debt"),
            adjustments        = data.get("adjustments", 0.0),
            cash_sweep_percent = data.get("cash_sweep_percent", 50.0),
        )


Assumptions = SimplifiedAssumptions | GranularAssumptions

SHAPES = {
    SimplifiedAssumptions.shape: SimplifiedAssumptions,
    GranularAssumptions.shape:   GranularAssumptions,
}


def assumptions_from_dict(data: Mapping[str, Any]) -> Assumptions:
    """
    Build assumptions from a stored model record's ``assumptions`` payload.
    The ``shape`` key selects the class; missing keys raise InvalidAssumptions.
    """
    if not isinstance(data, Mapping):
        raise InvalidAssumptions("assumptions", "must be a mapping")
    shape = data.get("shape", GranularAssumptions.shape)
    if shape not in SHAPES:
        raise InvalidAssumptions("shape", f"unknown shape {shape!r}")
    return SHAPES[shape].from_dict(data)


# ---------------------------------------------------------------------------
# Convenience: reference cases
# ---------------------------------------------------------------------------

def paydown_case() -> SimplifiedAssumptions:
    """Interactive paydown model defaults for a $450M facility."""
    return SimplifiedAssumptions(
        base_revenue       = 72_000_000.0,
        revenue_growth     = 5.0,
        ebitda_margin      = 25.0,
        debt               = DebtStructure(principal=450_000_000.0,
                                           interest_rate=8.0, amort_rate=5.0),
        cash_sweep_percent = 50.0,
    )


def base_case() -> GranularAssumptions:
    """Sandbox financial model defaults ($500M LTM revenue, $400M senior)."""
    return GranularAssumptions(
        ltm_revenue        = 500_000_000.0,
        ltm_ebitda         = 125_000_000.0,
        revenue_growth     = (5.0, 6.0, 7.0, 5.0, 4.0),
        ebitda_margins     = (25.0, 26.0, 27.0, 27.0, 28.0),
        capex_percent      = (3.0, 3.0, 3.0, 2.5, 2.5),
        adjustments        = (5_000_000.0, 3_000_000.0, 2_000_000.0, 1_000_000.0, 0.0),
        tax_rate           = 25.0,
        da_percent         = 4.0,
        debt               = DebtStructure(principal=400_000_000.0,
                                           interest_rate=9.5, amort_rate=1.0),
        cash_sweep_percent = 50.0,
    )
