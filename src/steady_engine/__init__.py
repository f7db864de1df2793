"""steady_engine: drive a time-dependent device solver to steady state."""

from __future__ import annotations

from .config import StabilizeSettings
from .controller import (
    StabilizationController,
    StabilizationOutcome,
    StabilizeConfig,
    classify_outcome,
    next_horizon,
    stabilize,
)
from .errors import (
    HorizonError,
    SolverContractError,
    StabilizationTimeout,
    StateShapeError,
    SteadyEngineError,
)
from .horizon import HorizonBounds, HorizonCaps, equilibration_time, estimate_horizon
from .stability import (
    StabilizationWarning,
    suppress_stabilization_warnings,
    verify_stabilization,
)
from .state import (
    T0_RATIO,
    ParameterRecord,
    SimulationState,
    SolverFunction,
    StabilityPredicate,
    TimeMeshType,
)

__all__ = [
    "T0_RATIO",
    "HorizonBounds",
    "HorizonCaps",
    "HorizonError",
    "ParameterRecord",
    "SimulationState",
    "SolverContractError",
    "SolverFunction",
    "StabilityPredicate",
    "StabilizationController",
    "StabilizationOutcome",
    "StabilizationTimeout",
    "StabilizationWarning",
    "StabilizeConfig",
    "StabilizeSettings",
    "StateShapeError",
    "SteadyEngineError",
    "TimeMeshType",
    "classify_outcome",
    "equilibration_time",
    "estimate_horizon",
    "next_horizon",
    "stabilize",
    "suppress_stabilization_warnings",
    "verify_stabilization",
]

__version__ = "0.1.0"
