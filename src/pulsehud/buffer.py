"""Fixed-capacity sliding window of colour samples."""

from __future__ import annotations

from collections import deque
from typing import Deque, Iterator, Tuple

import numpy as np

from .roi import ColorSample


def window_capacity(duration_sec: float, fps: float) -> int:
    """Samples needed to cover `duration_sec` at `fps` (at least 2)."""
    return max(2, int(round(duration_sec * fps)))


class TemporalWindow:
    """FIFO of ColorSample; the oldest sample is evicted at capacity."""

    def __init__(self, capacity: int) -> None:
        if int(capacity) < 2:
            raise ValueError("capacity must be >= 2")
        self._buf: Deque[ColorSample] = deque(maxlen=int(capacity))

    @classmethod
    def for_duration(cls, duration_sec: float, fps: float) -> "TemporalWindow":
        return cls(window_capacity(duration_sec, fps))

    def add_sample(self, color: ColorSample) -> None:
        self._buf.append(ColorSample(*(float(c) for c in color)))

    def size(self) -> int:
        return len(self._buf)

    def capacity(self) -> int:
        return self._buf.maxlen  # type: ignore[return-value]

    def is_full(self) -> bool:
        return len(self._buf) == self._buf.maxlen

    def __len__(self) -> int:
        return len(self._buf)

    def __iter__(self) -> Iterator[ColorSample]:
        return iter(self._buf)

    def channels(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return (R, G, B) arrays, oldest first."""
        if not self._buf:
            empty = np.zeros(0, dtype=np.float64)
            return empty, empty.copy(), empty.copy()
        bgr = np.array(self._buf, dtype=np.float64)
        return bgr[:, 2].copy(), bgr[:, 1].copy(), bgr[:, 0].copy()
