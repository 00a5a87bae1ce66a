"""Engine configuration."""

from __future__ import annotations

from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field


class EngineSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_stay_nights: int = Field(default=1, ge=1)
    snap_tolerance_days: int = Field(default=1, ge=0)
    max_stay_nights: int = Field(default=30, ge=1)
    max_guests: int = Field(default=20, ge=1)

    @property
    def min_stay(self) -> timedelta:
        return timedelta(days=self.min_stay_nights)


DEFAULT_SETTINGS = EngineSettings()
