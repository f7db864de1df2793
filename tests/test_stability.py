# tests/test_stability.py
"""Unit tests for the default stability predicate and its warning channel."""

from __future__ import annotations

import warnings

import numpy as np
import pytest

from steady_engine.errors import StateShapeError
from steady_engine.stability import (
    StabilizationWarning,
    relative_change,
    suppress_stabilization_warnings,
    verify_stabilization,
)


def _series(final_change: float, n_points: int = 10) -> tuple[np.ndarray, np.ndarray]:
    """Two-variable solution whose last step changes by final_change (relative)."""
    t = np.logspace(-6, 2, n_points)
    sol = np.ones((n_points, 2), dtype=float)
    sol[:, 1] = 2.0
    sol[-1, 0] = 1.0 + final_change
    return sol, t


# -------------------------------------------------------------------
# relative_change
# -------------------------------------------------------------------


def test_relative_change_scaled_by_peak_magnitude() -> None:
    """Changes are divided by each variable's peak magnitude over the run."""
    sol = np.array([[0.0, 4.0], [1.0, 4.0], [3.0, 2.0]])
    change = relative_change(sol)

    assert change == pytest.approx([2.0 / 3.0, 2.0 / 4.0])


def test_relative_change_zero_variable_is_zero() -> None:
    """A variable that is identically zero reports no change."""
    sol = np.zeros((3, 2))
    sol[:, 1] = [1.0, 1.0, 1.0]

    assert relative_change(sol) == pytest.approx([0.0, 0.0])


def test_relative_change_flattens_extra_axes() -> None:
    """Solutions with spatial axes are compared per (variable, point)."""
    sol = np.ones((4, 3, 5))
    sol[-1, 2, 4] = 2.0

    change = relative_change(sol)
    assert change.shape == (15,)
    assert change[-1] == pytest.approx(0.5)
    assert np.count_nonzero(change) == 1


# -------------------------------------------------------------------
# verify_stabilization
# -------------------------------------------------------------------


def test_constant_solution_is_stable() -> None:
    """A solution that does not change is stable without warnings."""
    sol, t = _series(0.0)
    with warnings.catch_warnings():
        warnings.simplefilter("error", StabilizationWarning)
        assert verify_stabilization(sol, t, 1e-3) is True


def test_change_within_tolerance_is_stable() -> None:
    """A final change below rtol counts as stable."""
    sol, t = _series(5e-4)
    assert verify_stabilization(sol, t, 1e-3) is True


def test_change_above_tolerance_warns_and_is_unstable() -> None:
    """A final change above rtol warns and returns False."""
    sol, t = _series(1e-2)
    with pytest.warns(StabilizationWarning, match="not stable"):
        assert verify_stabilization(sol, t, 1e-3) is False


def test_tighter_tolerance_rejects() -> None:
    """The same solution can be stable at 1e-3 and unstable at 1e-4."""
    sol, t = _series(5e-4)
    assert verify_stabilization(sol, t, 1e-3) is True
    with pytest.warns(StabilizationWarning):
        assert verify_stabilization(sol, t, 1e-4) is False


def test_single_point_is_not_stable() -> None:
    """One stored time point cannot demonstrate stability."""
    with pytest.warns(StabilizationWarning, match="at least 2"):
        assert verify_stabilization(np.ones((1, 2)), np.zeros(1)) is False


@pytest.mark.parametrize("bad", [np.nan, np.inf, -np.inf])
def test_non_finite_final_rows_are_not_stable(bad: float) -> None:
    """A diverged run is never accepted as a steady state."""
    sol = np.array([[1.0, 2.0], [1.0, 2.0], [1.0, bad]])
    t = np.array([0.0, 1.0, 2.0])

    with pytest.warns(StabilizationWarning, match="non-finite"):
        assert verify_stabilization(sol, t, 1e-3) is False


def test_all_nan_solution_is_not_stable() -> None:
    """NaN everywhere would otherwise report zero relative change."""
    sol = np.full((4, 2), np.nan)

    with pytest.warns(StabilizationWarning, match="non-finite"):
        assert verify_stabilization(sol, np.arange(4.0)) is False


def test_warning_is_runtime_warning() -> None:
    """StabilizationWarning can be filtered as a RuntimeWarning."""
    assert issubclass(StabilizationWarning, RuntimeWarning)


def test_shape_mismatch_raises() -> None:
    """t must have one entry per solution row."""
    with pytest.raises(StateShapeError):
        verify_stabilization(np.ones((4, 2)), np.zeros(3))


# -------------------------------------------------------------------
# Scoped suppression
# -------------------------------------------------------------------


def test_suppression_silences_only_inside_block() -> None:
    """Warnings are dropped inside the block and emitted again after it."""
    sol, t = _series(1e-1)

    with warnings.catch_warnings(record=True) as record:
        warnings.simplefilter("always")
        with suppress_stabilization_warnings():
            assert verify_stabilization(sol, t) is False
        assert not record

        assert verify_stabilization(sol, t) is False
        assert len(record) == 1
        assert issubclass(record[0].category, StabilizationWarning)


def test_suppression_restored_after_exception() -> None:
    """Filters are restored even when the block raises."""
    sol, t = _series(1e-1)

    with pytest.raises(RuntimeError, match="boom"):  # noqa: PT012
        with suppress_stabilization_warnings():
            verify_stabilization(sol, t)
            msg = "boom"
            raise RuntimeError(msg)

    with pytest.warns(StabilizationWarning):
        verify_stabilization(sol, t)


def test_suppression_leaves_other_warnings_alone() -> None:
    """Only StabilizationWarning is silenced."""
    with pytest.warns(RuntimeWarning, match="other"):  # noqa: SIM117
        with suppress_stabilization_warnings():
            warnings.warn("other diagnostic", RuntimeWarning, stacklevel=1)
