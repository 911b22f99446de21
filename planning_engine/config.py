"""Planner settings loaded from YAML and validated with pydantic."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

_TIME_FORMAT_HINT = "expected HH:MM"


def _check_time(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    hours, sep, minutes = value.partition(":")
    if not sep or not hours.isdigit() or not minutes.isdigit():
        raise ValueError(_TIME_FORMAT_HINT)
    if not (0 <= int(hours) <= 23 and 0 <= int(minutes) <= 59):
        raise ValueError(_TIME_FORMAT_HINT)
    return f"{int(hours):02d}:{int(minutes):02d}"


def parse_clock(value: str) -> tuple[int, int]:
    hours, _, minutes = value.partition(":")
    return int(hours), int(minutes)


class NotificationPreferences(BaseModel):
    model_config = ConfigDict(extra="allow")
    enabled: bool = Field(default=True)
    frequency: Literal["aggressive", "moderate", "minimal", "custom"] = Field(default="moderate")
    quiet_hours_enabled: bool = Field(default=True)
    quiet_hours_start: str = Field(default="22:00")
    quiet_hours_end: str = Field(default="08:00")
    productive_hours_start: Optional[str] = None
    productive_hours_end: Optional[str] = None
    weekend_strategy: Literal["same", "reduced", "off"] = Field(default="reduced")
    due_soon_hours: int = Field(default=24, ge=1)

    @field_validator("quiet_hours_start", "quiet_hours_end", "productive_hours_start", "productive_hours_end")
    @classmethod
    def check_clock(cls, value: Optional[str]) -> Optional[str]:
        return _check_time(value)


class HeuristicPreferences(BaseModel):
    model_config = ConfigDict(extra="allow")
    enabled: bool = Field(default=True)
    motivation_style: Literal["encouraging", "neutral", "challenging"] = Field(default="encouraging")
    energy_tracking_enabled: bool = Field(default=True)
    energy_check_in_frequency: Literal["hourly", "every-3-hours", "daily", "manual"] = Field(
        default="every-3-hours"
    )
    adaptive_weights_enabled: bool = Field(default=True)
    show_learning_transparency: bool = Field(default=True)


class WorkingHours(BaseModel):
    model_config = ConfigDict(extra="allow")
    start: str = Field(default="09:00")
    end: str = Field(default="17:00")

    @field_validator("start", "end")
    @classmethod
    def check_clock(cls, value: str) -> str:
        return _check_time(value)


class PlannerSettings(BaseModel):
    model_config = ConfigDict(extra="allow")
    notifications: NotificationPreferences = Field(default_factory=NotificationPreferences)
    heuristics: HeuristicPreferences = Field(default_factory=HeuristicPreferences)
    working_hours: WorkingHours = Field(default_factory=WorkingHours)
    distribution_strategy: Literal["even", "frontload", "balanced"] = Field(default="even")


def load_settings(path: str | Path | None = None) -> PlannerSettings:
    """Load settings from a YAML file, falling back to defaults on any problem."""

    if path is None:
        return PlannerSettings()

    yaml_path = Path(path)
    try:
        if yaml_path.exists():
            with open(yaml_path, encoding="utf-8") as handle:
                raw = yaml.safe_load(handle) or {}
        else:
            raw = {}
        return PlannerSettings.model_validate(raw)
    except Exception as exc:
        logger.warning("Settings validation failed for %s: %s, using defaults", yaml_path, exc)
        return PlannerSettings()
