"""Camera capture utilities (OpenCV-based)."""

from __future__ import annotations

from dataclasses import dataclass
from time import perf_counter
from typing import Optional, Tuple

import numpy as np


def crop_frame_roi(frame: np.ndarray, roi: Tuple[int, int, int, int]) -> np.ndarray:
    """Crop `frame` to roi (x, y, w, h) intersected with the frame.

    A zero-area ROI (or one entirely outside the frame) returns the frame as is.
    """
    x, y, w, h = (int(v) for v in roi)
    if w <= 0 or h <= 0:
        return frame
    fh, fw = frame.shape[:2]
    x0, y0 = max(0, x), max(0, y)
    x1, y1 = min(fw, x + w), min(fh, y + h)
    if x1 <= x0 or y1 <= y0:
        return frame
    return frame[y0:y1, x0:x1]


@dataclass
class CaptureConfig:
    device_index: int = 0
    fps: float = 30.0
    frame_roi: Tuple[int, int, int, int] = (0, 0, 0, 0)


class Capture:
    """Thin wrapper around OpenCV VideoCapture.

    Imports cv2 lazily to avoid import-time side effects in non-camera contexts.
    """

    def __init__(self, cfg: Optional[CaptureConfig] = None) -> None:
        self.cfg = cfg or CaptureConfig()
        self._cap = None

    def open(self) -> None:
        import cv2  # local import

        self._cap = cv2.VideoCapture(self.cfg.device_index)
        if not self._cap.isOpened():  # type: ignore[union-attr]
            raise RuntimeError("Failed to open camera")
        self._cap.set(cv2.CAP_PROP_FPS, self.cfg.fps)  # type: ignore[union-attr]

    def properties(self) -> Tuple[float, float, float]:
        """(width, height, fps) as reported by the driver."""
        import cv2

        if self._cap is None:
            raise RuntimeError("Capture is not opened")
        return (
            float(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            float(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            float(self._cap.get(cv2.CAP_PROP_FPS)),
        )

    def read(self) -> Tuple[float, np.ndarray]:
        """Read a frame and return (timestamp, frame[BGR]) cropped to frame_roi."""
        if self._cap is None:
            raise RuntimeError("Capture is not opened")
        ts = perf_counter()
        ok, frame = self._cap.read()
        if not ok:
            raise RuntimeError("Camera read failed")
        return ts, crop_frame_roi(frame, self.cfg.frame_roi)

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()  # type: ignore[union-attr]
            self._cap = None
