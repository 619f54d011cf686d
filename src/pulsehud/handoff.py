"""Thread-safe handoff between the processing worker and the HUD thread.

Only the latest BPM and a copy of the latest display frame cross the thread
boundary. The debug flag stands in for the external command source (hotkey,
checkbox) that toggles diagnostics.
"""

from __future__ import annotations

import threading
from typing import Optional

import numpy as np


class DisplayState:
    def __init__(self, debug: bool = False) -> None:
        self._lock = threading.Lock()
        self._bpm: Optional[float] = None
        self._frame: Optional[np.ndarray] = None
        self._debug = threading.Event()
        self._running = threading.Event()
        self._running.set()
        if debug:
            self._debug.set()

    def publish_bpm(self, bpm: float) -> None:
        with self._lock:
            self._bpm = float(bpm)

    def bpm(self) -> Optional[float]:
        with self._lock:
            return self._bpm

    def publish_frame(self, frame: np.ndarray) -> None:
        copy = frame.copy()
        with self._lock:
            self._frame = copy

    def frame(self) -> Optional[np.ndarray]:
        """Latest display frame (a private copy), or None before the first one."""
        with self._lock:
            return None if self._frame is None else self._frame.copy()

    def set_debug(self, enabled: bool) -> None:
        if enabled:
            self._debug.set()
        else:
            self._debug.clear()

    def is_debug(self) -> bool:
        return self._debug.is_set()

    def stop(self) -> None:
        self._running.clear()

    def running(self) -> bool:
        return self._running.is_set()
