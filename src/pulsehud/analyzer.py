"""Heart-rate analyzer: sliding colour window -> POS pulse -> BPM."""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from .bpm import DEFAULT_NOISE_FLOOR, BpmEstimate, BpmStatus, estimate_bpm
from .buffer import TemporalWindow, window_capacity
from .plot import render_line_plot
from .pos import pos_pulse
from .roi import ColorSample

logger = logging.getLogger(__name__)


class HeartbeatAnalyzer:
    """Owns the temporal window and turns it into BPM estimates.

    Estimation is stateless apart from the window itself; the only other
    state is the cache of debug plots, which never influences the result.
    """

    def __init__(
        self,
        window_size: int,
        fps: float,
        noise_floor: float = DEFAULT_NOISE_FLOOR,
        plot_size: tuple[int, int] = (320, 160),
    ) -> None:
        self.window = TemporalWindow(window_size)
        self.fps = float(fps)
        self.noise_floor = float(noise_floor)
        self.plot_size = plot_size
        self._plot_input: Optional[np.ndarray] = None
        self._plot_magnitude: Optional[np.ndarray] = None

    @classmethod
    def for_duration(
        cls, duration_sec: float, fps: float, noise_floor: float = DEFAULT_NOISE_FLOOR
    ) -> "HeartbeatAnalyzer":
        return cls(window_capacity(duration_sec, fps), fps, noise_floor=noise_floor)

    def add_sample(self, color: ColorSample) -> None:
        self.window.add_sample(color)

    def buffer_size(self) -> int:
        return self.window.size()

    def window_size(self) -> int:
        return self.window.capacity()

    def pulse(self) -> Optional[np.ndarray]:
        """Windowed POS pulse for the current window, or None while buffering."""
        if not self.window.is_full():
            return None
        R, G, B = self.window.channels()
        return pos_pulse(R, G, B)

    def calculate_bpm(
        self, min_bpm: float = 45.0, max_bpm: float = 180.0, debug: bool = False
    ) -> BpmEstimate:
        h = self.pulse()
        if h is None:
            return BpmEstimate.buffering()
        est = estimate_bpm(
            h,
            self.fps,
            min_bpm=min_bpm,
            max_bpm=max_bpm,
            debug=debug,
            noise_floor=self.noise_floor,
        )
        if debug and est.spectrum is not None:
            w, ph = self.plot_size
            self._plot_input = render_line_plot(h, w, ph)
            self._plot_magnitude = render_line_plot(est.spectrum, w, ph)
        elif not debug:
            self.clear_debug_plots()
        if est.status is BpmStatus.READY:
            logger.debug("BPM %.1f (bin %s)", est.bpm, est.peak_index)
        return est

    def clear_debug_plots(self) -> None:
        self._plot_input = None
        self._plot_magnitude = None

    def has_debug_plots(self) -> bool:
        return self._plot_input is not None and self._plot_input.size > 0

    def debug_fft_input(self) -> np.ndarray:
        if self._plot_input is None:
            return np.zeros((0, 0, 3), dtype=np.uint8)
        return self._plot_input

    def debug_fft_magnitude(self) -> np.ndarray:
        if self._plot_magnitude is None:
            return np.zeros((0, 0, 3), dtype=np.uint8)
        return self._plot_magnitude
