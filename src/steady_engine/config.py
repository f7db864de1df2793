# src/steady_engine/config.py
"""Configuration model for the stabilization loop.

This module defines a pydantic model suitable for YAML/JSON configuration files
and translates it into the native :class:`~steady_engine.controller.StabilizeConfig`.

Notes:
    - Unknown fields are allowed and ignored (`extra="allow"`), so the settings
      can live in a larger simulation configuration block.
    - `None` for `max_iterations` or `max_wall_time` disables that guard.
    - The regime caps double as minimum horizons, so they may not exceed
      `tmax_ceiling`.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from steady_engine.controller import StabilizeConfig
from steady_engine.horizon import HorizonCaps
from steady_engine.state import TimeMeshType

MeshName = Literal["linear", "log"]

_MESH_TYPES: dict[str, TimeMeshType] = {
    "linear": TimeMeshType.LINEAR,
    "log": TimeMeshType.LOG,
}


class StabilizeSettings(BaseModel):
    """Configuration schema for the stabilization loop.

    This model mirrors StabilizeConfig and HorizonCaps fields with
    file-friendly names, defaults and validation.
    """

    model_config = ConfigDict(extra="allow")

    tpoints: int = Field(
        default=10,
        ge=2,
        description="Output time points requested from every solver run",
    )
    tmesh_type: MeshName = Field(
        default="log",
        description="Output time mesh spacing",
    )
    rtol: float = Field(
        default=1e-3,
        gt=0.0,
        description="Relative tolerance of the stability predicate",
    )

    # Horizon updates
    growth_factor: float = Field(default=5.0, gt=1.0)
    shrink_factor: float = Field(default=10.0, gt=1.0)
    tmax_ceiling: float = Field(default=1e4, gt=0.0)

    # Retry guards
    max_iterations: int | None = Field(default=100, ge=1)
    max_wall_time: float | None = Field(default=None, gt=0.0)

    # Initial horizon estimate
    ionic_cap: float = Field(default=10.0, gt=0.0)
    electronic_cap: float = Field(default=1.0, gt=0.0)
    hint_scale: float = Field(default=1e4, gt=0.0)
    ionic_mobility_divisor: float = Field(default=10.0, gt=0.0)

    @model_validator(mode="after")
    def _validate_floors_below_ceiling(self) -> StabilizeSettings:
        floor = max(self.ionic_cap, self.electronic_cap)
        if floor > self.tmax_ceiling:
            msg = (
                "ionic_cap and electronic_cap must not exceed tmax_ceiling "
                f"({self.tmax_ceiling!r}); got a minimum horizon of {floor!r}."
            )
            raise ValueError(msg)
        return self

    def to_horizon_caps(self) -> HorizonCaps:
        """Convert the estimate constants to a HorizonCaps instance."""
        return HorizonCaps(
            ionic_cap=self.ionic_cap,
            electronic_cap=self.electronic_cap,
            hint_scale=self.hint_scale,
            ionic_mobility_divisor=self.ionic_mobility_divisor,
        )

    def to_stabilize_config(self) -> StabilizeConfig:
        """Convert this model to a native StabilizeConfig.

        Returns:
            Fully constructed StabilizeConfig instance.
        """
        return StabilizeConfig(
            tpoints=self.tpoints,
            tmesh_type=_MESH_TYPES[self.tmesh_type],
            rtol=self.rtol,
            growth_factor=self.growth_factor,
            shrink_factor=self.shrink_factor,
            tmax_ceiling=self.tmax_ceiling,
            max_iterations=self.max_iterations,
            max_wall_time=self.max_wall_time,
            caps=self.to_horizon_caps(),
        )
