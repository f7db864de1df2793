"""Global pytest configuration and shared fixtures for steady_engine."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

import numpy as np
import pytest

from steady_engine.state import ParameterRecord, SimulationState

StateFactory = Callable[..., SimulationState]


# -----------------------------------------------------------------------------
# Fake collaborators
# -----------------------------------------------------------------------------


class ScriptedSolver:
    """Fake solver returning a scripted number of rows per call.

    Each call records the parameter record it received. Once the script is
    exhausted every run completes (``params.tpoints`` rows).
    """

    def __init__(self, rows: Iterable[int] = ()) -> None:
        self._rows = list(rows)
        self.calls: list[ParameterRecord] = []
        self.inputs: list[SimulationState] = []

    def __call__(
        self,
        state: SimulationState,
        params: ParameterRecord,
    ) -> SimulationState:
        self.calls.append(params)
        self.inputs.append(state)
        n_rows = self._rows.pop(0) if self._rows else params.tpoints
        t = np.linspace(0.0, params.tmax, params.tpoints)[:n_rows]
        solution = np.ones((n_rows, 2), dtype=float)
        return SimulationState(solution=solution, t=t, params=params)

    @property
    def horizons(self) -> list[float]:
        """Horizons of every recorded call, in order."""
        return [p.tmax for p in self.calls]


class ScriptedPredicate:
    """Fake stability predicate answering from a script, then True."""

    def __init__(self, answers: Iterable[bool] = ()) -> None:
        self._answers = list(answers)
        self.calls = 0

    def __call__(self, solution: Any, t: Any, rtol: float) -> bool:  # noqa: ARG002
        self.calls += 1
        if self._answers:
            return self._answers.pop(0)
        return True


# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def make_state() -> StateFactory:
    """Return a factory for SimulationState instances.

    Usage:
        state = make_state(rows=10, tpoints=10, tmax=50.0, mu_electronic=1e-2)
    """

    def _make(
        *,
        rows: int = 10,
        tpoints: int = 10,
        tmax: float = 1e-3,
        mu_ionic: float = 0.0,
        mu_electronic: float = 1e-2,
        analysis_enabled: bool = True,
        jv_enabled: bool = False,
        applied_voltage: float = 0.0,
    ) -> SimulationState:
        params = ParameterRecord.from_horizon(
            tmax,
            tpoints=tpoints,
            analysis_enabled=analysis_enabled,
            jv_enabled=jv_enabled,
            applied_voltage=applied_voltage,
            mu_ionic=mu_ionic,
            mu_electronic=mu_electronic,
        )
        t = np.linspace(0.0, tmax, max(rows, 1))[:rows]
        solution = np.ones((rows, 2), dtype=float)
        return SimulationState(solution=solution, t=t, params=params)

    return _make


@pytest.fixture
def scripted_solver() -> Callable[..., ScriptedSolver]:
    """Return a factory for ScriptedSolver instances."""
    return ScriptedSolver


@pytest.fixture
def scripted_predicate() -> Callable[..., ScriptedPredicate]:
    """Return a factory for ScriptedPredicate instances."""
    return ScriptedPredicate
