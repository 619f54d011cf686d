"""Raster debug plots and overlay drawing (OpenCV-based)."""

from __future__ import annotations

from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

PLOT_BG = (20, 20, 20)
PLOT_FG = (0, 255, 0)
LABEL_COLOR = (0, 255, 255)


def render_line_plot(
    values: Sequence[float] | np.ndarray,
    width: int = 320,
    height: int = 160,
    margin: int = 5,
) -> np.ndarray:
    """Render a 1D sequence as a min-max normalized line plot.

    Returns:
        height x width x 3 uint8 BGR image, or an empty (0, 0, 3) image when
        fewer than 2 samples are given.
    """
    y = np.asarray(values, dtype=np.float64).ravel()
    if y.size < 2:
        return np.zeros((0, 0, 3), dtype=np.uint8)
    y = np.nan_to_num(y, nan=0.0, posinf=0.0, neginf=0.0)
    img = np.full((height, width, 3), PLOT_BG, dtype=np.uint8)
    lo = float(y.min())
    span = float(y.max()) - lo
    if span <= 0.0:
        # flat input
        span = 1.0
    normed = (y - lo) / span
    usable_h = max(1, height - 2 * margin)
    xs = np.round(np.arange(y.size) * (width - 1) / (y.size - 1)).astype(int)
    ys = np.round(height - margin - 1 - normed * (usable_h - 1)).astype(int)
    for i in range(1, y.size):
        cv2.line(
            img,
            (int(xs[i - 1]), int(ys[i - 1])),
            (int(xs[i]), int(ys[i])),
            PLOT_FG,
            1,
            cv2.LINE_AA,
        )
    return img


def resize_plot_to_fit(plot: np.ndarray, max_w: int, max_h: int) -> np.ndarray:
    """Shrink a plot to fit max_w x max_h (never enlarges, never below 10%)."""
    if plot.size == 0 or max_w <= 0 or max_h <= 0:
        return np.zeros((0, 0, 3), dtype=np.uint8)
    ph, pw = plot.shape[:2]
    scale = min(max_w / pw, max_h / ph)
    scale = float(np.clip(scale, 0.1, 1.0))
    w = max(2, int(round(pw * scale)))
    h = max(2, int(round(ph * scale)))
    return cv2.resize(plot, (w, h), interpolation=cv2.INTER_AREA)


def blit_plot(
    frame: np.ndarray,
    plot: np.ndarray,
    origin: Tuple[int, int],
    label: Optional[str] = None,
) -> None:
    """Copy `plot` into `frame` at `origin` (clipped), with border and label."""
    if frame.size == 0 or plot.size == 0:
        return
    fh, fw = frame.shape[:2]
    x = int(np.clip(origin[0], 0, fw - 1))
    y = int(np.clip(origin[1], 0, fh - 1))
    w = min(plot.shape[1], fw - x)
    h = min(plot.shape[0], fh - y)
    if w < 2 or h < 2:
        return
    frame[y : y + h, x : x + w] = plot[:h, :w]
    cv2.rectangle(frame, (x, y), (x + w - 1, y + h - 1), LABEL_COLOR, 1)
    if label:
        cv2.putText(
            frame, label, (x + 4, y + 16), cv2.FONT_HERSHEY_SIMPLEX, 0.5, LABEL_COLOR, 1, cv2.LINE_AA
        )


def draw_debug(
    frame: np.ndarray,
    landmarks: np.ndarray,
    corners: Optional[np.ndarray] = None,
) -> None:
    """Draw landmarks, their bounding box and the forehead ROI polygon in place."""
    pts = np.asarray(landmarks, dtype=np.float64)
    pts = pts[np.isfinite(pts).all(axis=1)]
    for px, py in pts:
        cv2.circle(frame, (int(round(px)), int(round(py))), 2, (0, 255, 255), -1)
    if pts.shape[0] > 0:
        x0, y0 = np.floor(pts.min(axis=0)).astype(int)
        x1, y1 = np.ceil(pts.max(axis=0)).astype(int)
        cv2.rectangle(frame, (int(x0), int(y0)), (int(x1), int(y1)), (255, 0, 0), 2)
    if corners is not None:
        poly = np.round(np.asarray(corners)).astype(np.int32).reshape(-1, 1, 2)
        cv2.polylines(frame, [poly], isClosed=True, color=(0, 255, 0), thickness=2)
