# src/steady_engine/state.py
"""Immutable state and parameter containers exchanged with the device solver.

This module defines the two values the stabilization loop passes around:

- ParameterRecord: the configuration handed to each solver invocation.
- SimulationState: the solution bundle a solver invocation produces.

Both are frozen dataclasses. The loop never mutates them; every horizon change
produces a new ParameterRecord via :meth:`ParameterRecord.with_horizon`, which
keeps ``t0 == tmax / T0_RATIO`` by construction.

The solver and the stability predicate are external collaborators; only their
call signatures are described here (see :class:`SolverFunction` and
:class:`StabilityPredicate`).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Final, Protocol

import numpy as np
import numpy.typing as npt

from .errors import raise_invalid_horizon, raise_state_shape_error

if TYPE_CHECKING:
    from collections.abc import Mapping


# Constants -----------------------------------------------------------------

T0_RATIO: Final[float] = 1e8

# Typing helpers ------------------------------------------------------------

FloatArray = npt.NDArray[np.floating[Any]]


class TimeMeshType(Enum):
    """Spacing of the output time mesh requested from the solver."""

    LINEAR = 1
    LOG = 2


def _frozen_mapping(values: Mapping[str, object] | None) -> Mapping[str, object]:
    return MappingProxyType(dict(values or {}))


@dataclass(slots=True, frozen=True)
class ParameterRecord:
    """Configuration passed into each solver invocation.

    Attributes:
        tmax: Simulation horizon.
        t0: Initial time step; kept equal to ``tmax / T0_RATIO``.
        tpoints: Target number of output time points.
        tmesh_type: Spacing of the output time mesh.
        analysis_enabled: Whether the solver runs its post-processing.
        jv_enabled: Whether the solver applies a JV sweep configuration.
        applied_voltage: Applied voltage (V).
        mu_ionic: Ionic mobility; zero disables ionic transport.
        mu_electronic: Electronic mobility; zero disables electronic transport.
        extra: Opaque solver-specific parameters, passed through unchanged.
    """

    tmax: float
    t0: float
    tpoints: int
    tmesh_type: TimeMeshType = TimeMeshType.LOG
    analysis_enabled: bool = True
    jv_enabled: bool = False
    applied_voltage: float = 0.0
    mu_ionic: float = 0.0
    mu_electronic: float = 0.0
    extra: Mapping[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Freeze the pass-through mapping."""
        object.__setattr__(self, "extra", _frozen_mapping(self.extra))

    @classmethod
    def from_horizon(cls, tmax: float, tpoints: int, **kwargs: Any) -> ParameterRecord:
        """Build a record whose ``t0`` is derived from ``tmax``.

        Args:
            tmax: Simulation horizon.
            tpoints: Target number of output time points.
            **kwargs: Remaining ParameterRecord fields.

        Returns:
            New ParameterRecord.
        """
        return cls(tmax=tmax, t0=tmax / T0_RATIO, tpoints=tpoints, **kwargs)

    def with_horizon(self, tmax: float) -> ParameterRecord:
        """Return a copy with a new horizon and the matching initial step.

        Args:
            tmax: New simulation horizon.

        Raises:
            HorizonError: If tmax is not finite and positive.

        Returns:
            Updated ParameterRecord.
        """
        tmax_f = float(tmax)
        if not math.isfinite(tmax_f) or tmax_f <= 0.0:
            raise_invalid_horizon(name="tmax", value=tmax)
        return replace(self, tmax=tmax_f, t0=tmax_f / T0_RATIO)

    def replace(self, **changes: Any) -> ParameterRecord:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


@dataclass(slots=True, frozen=True, eq=False)
class SimulationState:
    """Solution bundle produced by the external solver.

    Attributes:
        solution: Solution array; the first axis is time.
        t: Time points actually reached, shape (n_time_points,).
        params: Parameters the solution was computed with.
    """

    solution: FloatArray
    t: FloatArray
    params: ParameterRecord

    def __post_init__(self) -> None:
        """Validate that solution and time arrays agree.

        Raises:
            StateShapeError: If the arrays are inconsistent.
        """
        sol = np.asarray(self.solution, dtype=np.float64)
        times = np.asarray(self.t, dtype=np.float64)

        if sol.ndim < 1:
            raise_state_shape_error(
                name="solution",
                expected="an array with a leading time axis",
                got=sol.shape,
            )
        if times.ndim != 1:
            raise_state_shape_error(name="t", expected="a 1D array", got=times.shape)
        if times.shape[0] != sol.shape[0]:
            raise_state_shape_error(
                name="t",
                expected=f"length {sol.shape[0]} to match solution rows",
                got=times.shape[0],
            )

        object.__setattr__(self, "solution", sol)
        object.__setattr__(self, "t", times)

    @property
    def n_time_points(self) -> int:
        """Number of time points the run actually reached."""
        return int(self.solution.shape[0])

    @property
    def reached_target(self) -> bool:
        """Whether the run produced every requested time point."""
        return self.n_time_points == self.params.tpoints

    @property
    def final_time(self) -> float:
        """Last time point reached, or 0.0 when no point was stored."""
        if self.n_time_points == 0:
            return 0.0
        return float(self.t[-1])

    def with_params(self, params: ParameterRecord) -> SimulationState:
        """Return a copy carrying a different parameter record."""
        return replace(self, params=params)


class SolverFunction(Protocol):
    """External device solver: ``solve(state, params) -> new_state``.

    A truncated run is signalled by a returned state with fewer rows than
    ``params.tpoints``; the solver must not raise for it.
    """

    def __call__(
        self,
        state: SimulationState,
        params: ParameterRecord,
    ) -> SimulationState:
        """Run one simulation starting from ``state`` with ``params``."""
        ...


class StabilityPredicate(Protocol):
    """External steady-state test over a solution and its time series."""

    def __call__(
        self,
        solution: FloatArray,
        t: FloatArray,
        rtol: float,
    ) -> bool:
        """Return True when the solution no longer changes within rtol."""
        ...
