# src/steady_engine/errors.py
"""Error types and raise helpers for steady_engine.

This module centralizes explicit error classes with actionable messages.

Solver truncation, insufficient horizons and stale input states are *not*
errors: the stabilization loop recovers from them by adjusting the horizon.
Only precondition violations, contract breaches by the external solver and an
exceeded retry guard are raised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

if TYPE_CHECKING:
    from .state import SimulationState


class SteadyEngineError(Exception):
    """Base exception for steady_engine errors."""


class HorizonError(SteadyEngineError, ValueError):
    """Raised when a simulation horizon cannot be estimated or applied."""


class StateShapeError(SteadyEngineError, ValueError):
    """Raised when solution/time arrays of a state are inconsistent."""


class SolverContractError(SteadyEngineError, TypeError):
    """Raised when the external solver returns something other than a state."""


class StabilizationTimeout(SteadyEngineError, RuntimeError):
    """Raised when the stabilization loop exceeds its iteration or time guard.

    Attributes:
        iterations: Number of solver calls performed.
        elapsed: Wall-clock seconds spent in the loop.
        tmax: Horizon that would have been used for the next call.
        last_state: Most recent state returned by the solver (or the input).
    """

    def __init__(
        self,
        msg: str,
        *,
        iterations: int,
        elapsed: float,
        tmax: float,
        last_state: SimulationState,
    ) -> None:
        super().__init__(msg)
        self.iterations = iterations
        self.elapsed = elapsed
        self.tmax = tmax
        self.last_state = last_state


def raise_no_active_mobility(*, mu_ionic: float, mu_electronic: float) -> NoReturn:
    """Raise a standardized HorizonError for the no-transport case.

    Args:
        mu_ionic: Ionic mobility.
        mu_electronic: Electronic mobility.

    Raises:
        HorizonError: Always.
    """
    msg = (
        "Cannot estimate a stabilization horizon: the electronic mobility is "
        f"zero (mu_ionic={mu_ionic!r}, mu_electronic={mu_electronic!r}).\n"
        "Enable electronic transport (mu_electronic > 0), optionally together "
        "with ionic transport, before stabilizing."
    )
    raise HorizonError(msg)


def raise_invalid_horizon(*, name: str, value: object) -> NoReturn:
    """Raise a standardized HorizonError for a bad scalar input.

    Args:
        name: Name of the offending quantity.
        value: Observed value.

    Raises:
        HorizonError: Always.
    """
    msg = f"{name} must be a finite positive number. Got: {value!r}."
    raise HorizonError(msg)


def raise_state_shape_error(*, name: str, expected: str, got: object) -> NoReturn:
    """Raise a standardized StateShapeError.

    Args:
        name: Name of the object with the shape issue.
        expected: Human-readable expected shape description.
        got: Actual observed shape/value.

    Raises:
        StateShapeError: Always.
    """
    msg = f"{name} has an invalid shape/value. Expected {expected}. Got: {got!r}."
    raise StateShapeError(msg)


def raise_solver_contract_error(result: object) -> NoReturn:
    """Raise a standardized SolverContractError.

    Args:
        result: Object returned by the solver.

    Raises:
        SolverContractError: Always.
    """
    msg = (
        "The solver must return a SimulationState; "
        f"got {type(result).__name__}."
    )
    raise SolverContractError(msg)


def raise_floor_above_ceiling(*, floor: float, ceiling: float) -> NoReturn:
    """Raise a standardized HorizonError for a floor the loop cannot reach.

    Args:
        floor: Largest minimum horizon of the estimate caps.
        ceiling: Largest horizon the loop grows to.

    Raises:
        HorizonError: Always.
    """
    msg = (
        f"The minimum horizon ({floor!r} s) exceeds the horizon ceiling "
        f"({ceiling!r} s); stabilization could never complete.\n"
        "Lower ionic_cap/electronic_cap or raise tmax_ceiling."
    )
    raise HorizonError(msg)
