# src/steady_engine/controller.py
"""Stabilization controller: run the device solver until steady state.

The controller repeatedly invokes an external solver with a growing horizon,
classifies every run and adapts the horizon until a stability predicate
accepts the latest solution:

    FAILED     the run did not reach every requested time point
               -> horizon / shrink_factor, run again
    UNDERRUN   the run completed over less than the minimum horizon
               -> horizon * growth_factor (capped), run again
    COMPLETED  the run completed over at least the minimum horizon
               -> horizon * growth_factor (capped), run again only if the
                  stability predicate rejects the solution

Each run starts from the final point of the previous one (the solver receives
the latest state). Parameter records are immutable; every horizon change makes
a new record with ``t0 == tmax / T0_RATIO``.

The loop disables the solver's analysis step while it runs, since analysis of
a truncated run fails, and restores the caller's setting on the returned
state. An optional iteration/wall-clock guard turns a loop that never settles
into :class:`~steady_engine.errors.StabilizationTimeout`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from time import monotonic
from typing import TYPE_CHECKING, Final

from .errors import (
    StabilizationTimeout,
    raise_floor_above_ceiling,
    raise_solver_contract_error,
)
from .horizon import HorizonBounds, HorizonCaps, estimate_horizon
from .stability import suppress_stabilization_warnings, verify_stabilization
from .state import SimulationState, TimeMeshType

if TYPE_CHECKING:
    from .state import ParameterRecord, SolverFunction, StabilityPredicate

logger = logging.getLogger(__name__)

_DEFAULT_LABEL: Final[str] = "state"
_ITERATION_LIMIT_MSG: Final[str] = (
    "Stabilization of {label} did not settle within {limit} solver call(s) "
    "(next horizon {tmax:g} s)."
)
_WALL_TIME_LIMIT_MSG: Final[str] = (
    "Stabilization of {label} did not settle within {limit:g} s of wall-clock "
    "time after {iterations} solver call(s) (next horizon {tmax:g} s)."
)


class StabilizationOutcome(Enum):
    """Classification of one completed solver call."""

    FAILED = "failed"
    UNDERRUN = "underrun"
    COMPLETED = "completed"


@dataclass(slots=True, frozen=True)
class StabilizeConfig:
    """Configuration for the stabilization loop.

    Attributes:
        tpoints: Number of output time points requested from every run.
        tmesh_type: Output time mesh spacing requested from every run.
        rtol: Relative tolerance handed to the stability predicate.
        growth_factor: Horizon multiplier after a completed run.
        shrink_factor: Horizon divisor after a failed run.
        tmax_ceiling: Largest horizon the loop grows to.
        max_iterations: Maximum number of solver calls, or None for no limit.
        max_wall_time: Maximum wall-clock seconds, or None for no limit.
        caps: Constants for the initial horizon estimate.

    Raises:
        HorizonError: If a regime's minimum horizon exceeds tmax_ceiling.
    """

    tpoints: int = 10
    tmesh_type: TimeMeshType = TimeMeshType.LOG
    rtol: float = 1e-3
    growth_factor: float = 5.0
    shrink_factor: float = 10.0
    tmax_ceiling: float = 1e4
    max_iterations: int | None = 100
    max_wall_time: float | None = None
    caps: HorizonCaps = field(default_factory=HorizonCaps)

    def __post_init__(self) -> None:
        floor = max(self.caps.ionic_cap, self.caps.electronic_cap)
        if floor > self.tmax_ceiling:
            raise_floor_above_ceiling(floor=floor, ceiling=self.tmax_ceiling)


def classify_outcome(
    state: SimulationState,
    params: ParameterRecord,
    min_tmax: float,
) -> StabilizationOutcome:
    """Classify a solver result.

    Args:
        state: State returned by the solver.
        params: Parameters the solver was called with.
        min_tmax: Minimum horizon for a run to count as settled.

    Returns:
        FAILED if fewer (or more) rows than ``params.tpoints`` were produced,
        UNDERRUN if the horizon was below ``min_tmax``, COMPLETED otherwise.
    """
    if state.n_time_points != params.tpoints:
        return StabilizationOutcome.FAILED
    if params.tmax < min_tmax:
        return StabilizationOutcome.UNDERRUN
    return StabilizationOutcome.COMPLETED


def next_horizon(
    outcome: StabilizationOutcome,
    tmax: float,
    *,
    config: StabilizeConfig,
) -> float:
    """Return the horizon to use after a run with the given outcome."""
    if outcome is StabilizationOutcome.FAILED:
        return tmax / config.shrink_factor
    return min(tmax * config.growth_factor, config.tmax_ceiling)


def _restore_analysis(
    state: SimulationState,
    analysis_enabled: bool,  # noqa: FBT001
) -> SimulationState:
    if state.params.analysis_enabled == analysis_enabled:
        return state
    return state.with_params(state.params.replace(analysis_enabled=analysis_enabled))


class StabilizationController:
    """Drive an external solver to a stabilized steady state."""

    def __init__(
        self,
        solver: SolverFunction,
        predicate: StabilityPredicate = verify_stabilization,
        config: StabilizeConfig | None = None,
    ) -> None:
        """Initialize StabilizationController.

        Args:
            solver: External solver, ``solver(state, params) -> new_state``.
            predicate: Steady-state test, ``predicate(solution, t, rtol)``.
            config: Loop configuration; defaults to StabilizeConfig().
        """
        self.solver = solver
        self.predicate = predicate
        self.config = config or StabilizeConfig()

    # ------------------------------------------------------------------
    # Preparation
    # ------------------------------------------------------------------

    def prepare_params(
        self,
        state: SimulationState,
    ) -> tuple[ParameterRecord, HorizonBounds]:
        """Derive the loop's parameter record from an input state.

        JV configuration and analysis are switched off, the output mesh is set
        to ``config.tpoints`` points with ``config.tmesh_type`` spacing, and
        the horizon is replaced by the mobility-based estimate.

        Args:
            state: Input state.

        Raises:
            HorizonError: If no horizon can be estimated for the mobilities.

        Returns:
            (params, bounds) for the first solver call.
        """
        src = state.params
        bounds = estimate_horizon(
            src.mu_ionic,
            src.mu_electronic,
            src.tmax,
            caps=self.config.caps,
        )
        params = src.replace(
            jv_enabled=False,
            tpoints=self.config.tpoints,
            tmesh_type=self.config.tmesh_type,
            analysis_enabled=False,
        ).with_horizon(bounds.tmax)
        return params, bounds

    @staticmethod
    def needs_forcing(state: SimulationState, params: ParameterRecord) -> bool:
        """Return True if the input state cannot be trusted as-is.

        A state that did not reach its own target time-point count is an
        incomplete run; a state computed over a shorter horizon than the new
        estimate may only look stable because it had little time to evolve.

        Args:
            state: Input state.
            params: Loop parameters from :meth:`prepare_params`.

        Returns:
            True when at least one solver call is required.
        """
        if not state.reached_target:
            return True
        return state.params.tmax < params.tmax

    def is_stable(self, state: SimulationState) -> bool:
        """Evaluate the stability predicate on a state."""
        return bool(self.predicate(state.solution, state.t, self.config.rtol))

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _check_guard(
        self,
        *,
        label: str,
        iterations: int,
        started: float,
        params: ParameterRecord,
        last_state: SimulationState,
        analysis_enabled: bool,
    ) -> None:
        """Raise StabilizationTimeout if an iteration or time limit is hit.

        Raises:
            StabilizationTimeout: If a configured limit has been reached.
        """
        cfg = self.config
        elapsed = monotonic() - started

        msg: str | None = None
        if cfg.max_iterations is not None and iterations >= cfg.max_iterations:
            msg = _ITERATION_LIMIT_MSG.format(
                label=label,
                limit=cfg.max_iterations,
                tmax=params.tmax,
            )
        elif cfg.max_wall_time is not None and elapsed >= cfg.max_wall_time:
            msg = _WALL_TIME_LIMIT_MSG.format(
                label=label,
                limit=cfg.max_wall_time,
                iterations=iterations,
                tmax=params.tmax,
            )
        if msg is None:
            return

        logger.error(msg)
        raise StabilizationTimeout(
            msg,
            iterations=iterations,
            elapsed=elapsed,
            tmax=params.tmax,
            last_state=_restore_analysis(last_state, analysis_enabled),
        )

    def run(
        self,
        state: SimulationState,
        force_stabilization: bool = True,  # noqa: FBT001, FBT002
        *,
        label: str | None = None,
    ) -> SimulationState:
        """Run the solver until the output is stable.

        Args:
            state: Input state; the first run starts from its final point.
            force_stabilization: If True, run the solver at least once. If
                False, run only when the input is incomplete, was computed
                over a shorter horizon than the new estimate, or fails the
                stability predicate.
            label: Name of the state used in progress messages.

        Raises:
            HorizonError: If no horizon can be estimated for the mobilities.
            SolverContractError: If the solver returns a non-state.
            StabilizationTimeout: If a configured iteration or time limit is
                reached before the output settles.

        Returns:
            The stabilized state, with the input's analysis setting and JV
            disabled. When no solver call was needed the input state itself is
            returned, JV setting included.
        """
        name = label or _DEFAULT_LABEL
        analysis_enabled = state.params.analysis_enabled
        params, bounds = self.prepare_params(state)

        force = bool(force_stabilization)
        if not force and self.needs_forcing(state, params):
            logger.debug("Input %s is incomplete or too short; forcing a run", name)
            force = True

        output = state
        iterations = 0
        started = monotonic()

        with suppress_stabilization_warnings():
            while force or not self.is_stable(output):
                self._check_guard(
                    label=name,
                    iterations=iterations,
                    started=started,
                    params=params,
                    last_state=output,
                    analysis_enabled=analysis_enabled,
                )
                logger.info(
                    "Stabilizing %s over %g s with an applied voltage of %g V",
                    name,
                    params.tmax,
                    params.applied_voltage,
                )

                result = self.solver(output, params)
                if not isinstance(result, SimulationState):
                    raise_solver_contract_error(result)
                output = result
                iterations += 1

                outcome = classify_outcome(output, params, bounds.min_tmax)
                tmax_next = next_horizon(outcome, params.tmax, config=self.config)
                if outcome is StabilizationOutcome.FAILED:
                    logger.warning(
                        "Run of %s reached %d of %d time points; "
                        "reducing horizon from %g s to %g s",
                        name,
                        output.n_time_points,
                        params.tpoints,
                        params.tmax,
                        tmax_next,
                    )
                else:
                    logger.debug(
                        "Run %d of %s %s over %g s; next horizon %g s",
                        iterations,
                        name,
                        outcome.value,
                        params.tmax,
                        tmax_next,
                    )

                params = params.with_horizon(tmax_next)
                force = outcome is not StabilizationOutcome.COMPLETED

        if iterations == 0:
            return state

        logger.info("Stabilized %s after %d solver call(s)", name, iterations)
        return _restore_analysis(output, analysis_enabled)


def stabilize(
    state: SimulationState,
    force_stabilization: bool = True,  # noqa: FBT001, FBT002
    *,
    solver: SolverFunction,
    predicate: StabilityPredicate = verify_stabilization,
    config: StabilizeConfig | None = None,
    label: str | None = None,
) -> SimulationState:
    """Simulate ``state`` with increasing horizons until steady state.

    Example:
        ``stabilize(sol, False, solver=solve)`` returns ``sol`` untouched if it
        is already a stabilized steady state, and runs the solver otherwise;
        ``stabilize(sol, solver=solve)`` always runs at least once.

    Every parameter record handed to the solver has JV disabled and analysis
    switched off. When no solver call is needed the input state is returned
    as is, so its own ``jv_enabled`` setting is kept; JV is only cleared on a
    state that went through at least one run.

    Args:
        state: Input state.
        force_stabilization: Run at least once even if the input looks stable.
        solver: External solver, ``solver(state, params) -> new_state``.
        predicate: Steady-state test, ``predicate(solution, t, rtol)``.
        config: Loop configuration; defaults to StabilizeConfig().
        label: Name of the state used in progress messages.

    Returns:
        Stabilized state.
    """
    controller = StabilizationController(solver, predicate=predicate, config=config)
    return controller.run(state, force_stabilization, label=label)
