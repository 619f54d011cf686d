from __future__ import annotations

from pathlib import Path

import pytest

from pulsehud.config import AppConfig, ConfigError, load_config


def test_defaults() -> None:
    cfg = AppConfig()
    assert cfg.camera.acquisition_fps == 10.0
    assert cfg.analysis.window_duration_seconds == 8.5
    assert (cfg.analysis.min_bpm, cfg.analysis.max_bpm) == (45.0, 180.0)
    assert cfg.window_size == 85


def test_acquisition_fps_is_clamped(tmp_path: Path) -> None:
    p = tmp_path / "config.yaml"
    p.write_text("camera:\n  acquisition_fps: 120\n")
    assert load_config(p).camera.acquisition_fps == 60.0
    p.write_text("camera:\n  acquisition_fps: 2\n")
    assert load_config(p).camera.acquisition_fps == 10.0


def test_partial_file_keeps_defaults(tmp_path: Path) -> None:
    p = tmp_path / "config.yaml"
    p.write_text(
        "camera:\n  frame_roi: [10, 20, 300, 200]\n"
        "analysis:\n  window_duration_seconds: 6\n"
        "hud:\n  debug: true\n"
    )
    cfg = load_config(p)
    assert cfg.camera.frame_roi == (10, 20, 300, 200)
    assert cfg.window_size == 60
    assert cfg.hud.debug is True
    assert cfg.analysis.max_bpm == 180.0


def test_missing_file_raises() -> None:
    with pytest.raises(ConfigError):
        load_config("/nonexistent/config.yaml")


@pytest.mark.parametrize(
    "text",
    [
        "analysis:\n  min_bpm: 120\n  max_bpm: 60\n",
        "analysis:\n  window_duration_seconds: 0.2\n",
        "camera: [1, 2\n",
        "- just\n- a list\n",
    ],
)
def test_invalid_file_raises(tmp_path: Path, text: str) -> None:
    p = tmp_path / "config.yaml"
    p.write_text(text)
    with pytest.raises(ConfigError):
        load_config(p)
