"""
credit_engine
-------------
Deterministic credit modeling core: debt paydown projection, lender
IRR / MOIC, Base / Upside / Downside scenarios and covenant classification.
"""

from credit_engine.errors import CreditEngineError, InvalidAssumptions, InvalidInput
from credit_engine.model.assumptions import (DebtStructure, GranularAssumptions,
                                             SimplifiedAssumptions, assumptions_from_dict)
from credit_engine.model.projector import (GranularProjector, SimplifiedProjector,
                                           YearProjection, project, run_projection)
from credit_engine.model.irr import IrrSolution, moic, solve_irr, solve_irr_detailed
from credit_engine.model.returns import ReturnsInput, ReturnsResult, compute_returns
from credit_engine.analysis.scenarios import ScenarioCache, run_scenarios
from credit_engine.analysis.covenants import (CovenantThresholds, Directionality,
                                              classify, classify_covenant)

__all__ = [
    "CreditEngineError", "InvalidAssumptions", "InvalidInput",
    "DebtStructure", "GranularAssumptions", "SimplifiedAssumptions", "assumptions_from_dict",
    "GranularProjector", "SimplifiedProjector", "YearProjection", "project", "run_projection",
    "IrrSolution", "moic", "solve_irr", "solve_irr_detailed",
    "ReturnsInput", "ReturnsResult", "compute_returns",
    "ScenarioCache", "run_scenarios",
    "CovenantThresholds", "Directionality", "classify", "classify_covenant",
]
