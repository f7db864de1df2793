# src/steady_engine/stability.py
"""Default steady-state test and its warning channel.

:func:`verify_stabilization` is the predicate the stabilization loop uses when
no other one is supplied. It looks at the last two stored time points: every
variable must have changed by at most ``rtol`` times its peak magnitude over
the run. When the test fails it emits :class:`StabilizationWarning`, which
callers that poll the predicate repeatedly can silence for the duration of a
block with :func:`suppress_stabilization_warnings`.
"""

from __future__ import annotations

import warnings
from contextlib import contextmanager
from typing import TYPE_CHECKING, Final

import numpy as np

from .errors import raise_state_shape_error

if TYPE_CHECKING:
    from collections.abc import Iterator

    from .state import FloatArray

_NOT_ENOUGH_POINTS_MSG: Final[str] = (
    "Stability cannot be verified with {n} stored time point(s); at least 2 needed."
)
_NOT_FINITE_MSG: Final[str] = (
    "Solution is not stable at t={t:.6g}: the last two time points hold "
    "non-finite values."
)
_NOT_STABLE_MSG: Final[str] = (
    "Solution is not stable at t={t:.6g}: relative change {change:.3g} "
    "exceeds rtol={rtol:.3g} (variable index {index})."
)


class StabilizationWarning(RuntimeWarning):
    """Emitted when a solution has not yet reached steady state."""


def relative_change(solution: FloatArray) -> FloatArray:
    """Per-variable change between the last two time points.

    The change is scaled by each variable's peak magnitude over the whole run;
    variables that are identically zero report zero change.

    Args:
        solution: Solution array whose first axis is time (at least 2 rows).

    Returns:
        Flattened array of relative changes, one per variable.
    """
    sol = np.asarray(solution, dtype=np.float64)
    n_points = sol.shape[0]
    flat = sol.reshape(n_points, -1)

    delta = np.abs(flat[-1] - flat[-2])
    scale = np.max(np.abs(flat), axis=0)

    out = np.zeros_like(delta)
    np.divide(delta, scale, out=out, where=scale > 0.0)
    return out


def verify_stabilization(
    solution: FloatArray,
    t: FloatArray,
    rtol: float = 1e-3,
) -> bool:
    """Return True if the solution is at steady state within ``rtol``.

    A NaN or infinite value in the last two time points is never stable.

    Args:
        solution: Solution array whose first axis is time.
        t: Time points, one per solution row.
        rtol: Relative tolerance on the final change of every variable.

    Raises:
        StateShapeError: If t does not match the solution's time axis.

    Returns:
        True when stable; False otherwise (a StabilizationWarning is emitted).
    """
    sol = np.asarray(solution, dtype=np.float64)
    times = np.asarray(t, dtype=np.float64)
    if sol.ndim < 1 or times.ndim != 1 or times.shape[0] != sol.shape[0]:
        raise_state_shape_error(
            name="t",
            expected="a 1D array with one entry per solution row",
            got=times.shape,
        )

    n_points = int(sol.shape[0])
    if n_points < 2:  # noqa: PLR2004
        warnings.warn(
            _NOT_ENOUGH_POINTS_MSG.format(n=n_points),
            StabilizationWarning,
            stacklevel=2,
        )
        return False

    if not bool(np.all(np.isfinite(sol[-2:]))):
        warnings.warn(
            _NOT_FINITE_MSG.format(t=float(times[-1])),
            StabilizationWarning,
            stacklevel=2,
        )
        return False

    change = relative_change(sol)
    if change.size == 0 or bool(np.all(change <= rtol)):
        return True

    worst = int(np.argmax(change))
    warnings.warn(
        _NOT_STABLE_MSG.format(
            t=float(times[-1]),
            change=float(change[worst]),
            rtol=rtol,
            index=worst,
        ),
        StabilizationWarning,
        stacklevel=2,
    )
    return False


@contextmanager
def suppress_stabilization_warnings() -> Iterator[None]:
    """Ignore StabilizationWarning inside the block only.

    The previous warning filters are restored on exit, including when the
    block raises.
    """
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", StabilizationWarning)
        yield
