"""Application configuration (YAML file validated with pydantic)."""

from __future__ import annotations

from pathlib import Path
from typing import Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from .buffer import window_capacity

MIN_ACQUISITION_FPS = 10.0
MAX_ACQUISITION_FPS = 60.0


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""


class CameraConfig(BaseModel):
    device_index: int = Field(0, ge=0)
    fps: float = Field(30.0, gt=0.0)
    acquisition_fps: float = 10.0
    # [x, y, w, h]; zero area means "use the whole frame"
    frame_roi: tuple[int, int, int, int] = (0, 0, 0, 0)

    @field_validator("acquisition_fps")
    @classmethod
    def _clamp_fps(cls, v: float) -> float:
        return min(max(float(v), MIN_ACQUISITION_FPS), MAX_ACQUISITION_FPS)


class AnalysisConfig(BaseModel):
    window_duration_seconds: float = Field(8.5, ge=1.0)
    min_bpm: float = Field(45.0, gt=0.0)
    max_bpm: float = Field(180.0, gt=0.0)
    noise_floor: float = Field(1e-6, ge=0.0)

    @model_validator(mode="after")
    def _check_band(self) -> "AnalysisConfig":
        if self.max_bpm <= self.min_bpm:
            raise ValueError("max_bpm must be greater than min_bpm")
        return self


class HudConfig(BaseModel):
    width: int = Field(960, ge=160)
    height: int = Field(720, ge=120)
    color: tuple[int, int, int] = (255, 64, 64)
    debug: bool = False


class AppConfig(BaseModel):
    camera: CameraConfig = Field(default_factory=CameraConfig)
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    hud: HudConfig = Field(default_factory=HudConfig)

    @property
    def window_size(self) -> int:
        return window_capacity(
            self.analysis.window_duration_seconds, self.camera.acquisition_fps
        )


def load_config(path: Union[str, Path]) -> AppConfig:
    """Read and validate a YAML config file.

    Missing sections and keys fall back to defaults.

    Raises:
        ConfigError: file missing, unparsable, or failing validation.
    """
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config missing: {p}")
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {p}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {p}")
    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
