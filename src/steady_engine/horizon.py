# src/steady_engine/horizon.py
"""Initial simulation horizon estimate from transport mobilities.

A horizon that is too short makes a snapshot look stable even when it is not;
one that is too long lets the solver diverge or run for too long. The estimate
is therefore the minimum of an absolute regime cap, a generously scaled prior
horizon and a mobility-derived equilibration time (lower mobility, slower
equilibration, larger estimate):

    ionic regime (mu_ionic > 0 and mu_electronic > 0):
        tmax = min(10, hint * 1e4, 2**(-log10(mu_ionic)) / 10
                                   + 2**(-log10(mu_electronic)))
        min_tmax = 10

    electronic regime (mu_ionic == 0, mu_electronic > 0):
        tmax = min(1, hint * 1e4, 2**(-log10(mu_electronic)))
        min_tmax = 1

One second is enough for the electronic regime at least down to 1e-10 suns.
With no electronic transport there is nothing to equilibrate and the estimate
is rejected with :class:`~steady_engine.errors.HorizonError`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal

import numpy as np

from .errors import raise_invalid_horizon, raise_no_active_mobility
from .state import T0_RATIO

Regime = Literal["ionic", "electronic"]


@dataclass(slots=True, frozen=True)
class HorizonCaps:
    """Constants bounding the initial horizon.

    Attributes:
        ionic_cap: Horizon ceiling and floor when ionic transport is active.
        electronic_cap: Horizon ceiling and floor for electronic-only transport.
        hint_scale: Factor applied to the caller's prior horizon.
        ionic_mobility_divisor: Divisor applied to the ionic equilibration term.
    """

    ionic_cap: float = 10.0
    electronic_cap: float = 1.0
    hint_scale: float = 1e4
    ionic_mobility_divisor: float = 10.0


@dataclass(slots=True, frozen=True)
class HorizonBounds:
    """Result of the horizon estimate.

    Attributes:
        tmax: Initial simulation horizon.
        t0: Initial time step, ``tmax / T0_RATIO``.
        min_tmax: Shortest horizon a run must cover to count as settled.
        regime: Transport regime the estimate was taken in.
    """

    tmax: float
    t0: float
    min_tmax: float
    regime: Regime


def equilibration_time(mobility: float) -> float:
    """Return the mobility-derived equilibration time ``2**(-log10(mu))``."""
    return float(np.power(2.0, -np.log10(mobility)))


def _check_mobility(name: str, value: float) -> float:
    value_f = float(value)
    if not math.isfinite(value_f) or value_f < 0.0:
        raise_invalid_horizon(name=name, value=value)
    return value_f


def estimate_horizon(
    mu_ionic: float,
    mu_electronic: float,
    tmax_hint: float,
    *,
    caps: HorizonCaps | None = None,
) -> HorizonBounds:
    """Estimate the initial horizon and its minimum floor.

    Args:
        mu_ionic: Ionic mobility (zero disables ionic transport).
        mu_electronic: Electronic mobility (zero disables electronic transport).
        tmax_hint: Prior horizon of the state being stabilized; may be stale.
        caps: Optional override of the regime constants.

    Raises:
        HorizonError: If a mobility is negative/non-finite, the hint is not
            positive, or electronic transport is disabled.

    Returns:
        HorizonBounds with tmax, t0, min_tmax and the regime used.
    """
    caps = caps or HorizonCaps()
    mu_i = _check_mobility("mu_ionic", mu_ionic)
    mu_e = _check_mobility("mu_electronic", mu_electronic)

    hint = float(tmax_hint)
    if not math.isfinite(hint) or hint <= 0.0:
        raise_invalid_horizon(name="tmax_hint", value=tmax_hint)

    regime: Regime
    if mu_i and mu_e:
        regime = "ionic"
        estimate = (
            equilibration_time(mu_i) / caps.ionic_mobility_divisor
            + equilibration_time(mu_e)
        )
        tmax = min(caps.ionic_cap, hint * caps.hint_scale, estimate)
        min_tmax = caps.ionic_cap
    elif mu_e:
        regime = "electronic"
        tmax = min(
            caps.electronic_cap,
            hint * caps.hint_scale,
            equilibration_time(mu_e),
        )
        min_tmax = caps.electronic_cap
    else:
        raise_no_active_mobility(mu_ionic=mu_i, mu_electronic=mu_e)

    return HorizonBounds(
        tmax=tmax,
        t0=tmax / T0_RATIO,
        min_tmax=min_tmax,
        regime=regime,
    )
