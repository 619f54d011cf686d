from __future__ import annotations

import time
from typing import Optional

import numpy as np

from pulsehud.analyzer import HeartbeatAnalyzer
from pulsehud.app import ProcessingWorker, compose_debug_overlay
from pulsehud.config import AppConfig, CameraConfig
from pulsehud.handoff import DisplayState
from pulsehud.roi import ColorSample


class _FakeCapture:
    def __init__(self, fail_with: Optional[Exception] = None) -> None:
        self.reads = 0
        self.fail_with = fail_with

    def read(self):
        self.reads += 1
        if self.fail_with is not None:
            raise self.fail_with
        return time.perf_counter(), np.full((240, 320, 3), 80, dtype=np.uint8)


class _FlakySource:
    """No face, except that the second call raises."""

    def __init__(self) -> None:
        self.calls = 0

    def landmarks(self, frame_bgr: np.ndarray) -> Optional[np.ndarray]:
        self.calls += 1
        if self.calls == 2:
            raise RuntimeError("detector failed")
        return None


def _worker(capture: _FakeCapture, source=None) -> tuple[ProcessingWorker, DisplayState]:
    cfg = AppConfig(camera=CameraConfig(acquisition_fps=60.0))
    state = DisplayState()
    return ProcessingWorker(cfg, state, capture, source or _FlakySource()), state


def _wait_for(cond, timeout: float = 3.0) -> bool:
    deadline = time.perf_counter() + timeout
    while time.perf_counter() < deadline:
        if cond():
            return True
        time.sleep(0.01)
    return False


def test_debug_overlay_blits_plots_top_right() -> None:
    an = HeartbeatAnalyzer(16, 10.0)
    rng = np.random.RandomState(0)
    for _ in range(16):
        an.add_sample(ColorSample(*(100.0 + rng.randn(3))))
    frame = np.zeros((480, 640, 3), dtype=np.uint8)
    compose_debug_overlay(frame, an)
    assert not frame.any()  # no plots cached yet
    an.calculate_bpm(45.0, 180.0, debug=True)
    compose_debug_overlay(frame, an)
    assert frame[:, 320:].any()
    assert not frame[:, :300].any()


def test_worker_survives_landmark_errors() -> None:
    cap = _FakeCapture()
    worker, state = _worker(cap)
    worker.start()
    try:
        assert _wait_for(lambda: cap.reads >= 5)
        assert worker.is_alive()
        assert state.running()
        assert state.frame() is not None
    finally:
        state.stop()
        worker.join()
    assert not worker.is_alive()
    assert state.bpm() is None


def test_worker_stops_state_when_camera_fails() -> None:
    worker, state = _worker(_FakeCapture(RuntimeError("Camera read failed")))
    worker.start()
    assert _wait_for(lambda: not state.running())
    worker.join()
    assert not worker.is_alive()


def test_worker_stops_state_on_unexpected_error() -> None:
    worker, state = _worker(_FakeCapture(ValueError("bad frame")))
    worker.start()
    assert _wait_for(lambda: not state.running())
    worker.join()
    assert not worker.is_alive()


def test_join_waits_for_worker_exit() -> None:
    cap = _FakeCapture()
    worker, state = _worker(cap)
    worker.start()
    assert _wait_for(lambda: cap.reads >= 1)
    state.stop()
    worker.join()
    reads = cap.reads
    time.sleep(0.05)
    assert cap.reads == reads
