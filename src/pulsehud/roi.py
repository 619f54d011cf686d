"""ROI colour sampling.

`mean_bgr` reduces a stabilized forehead patch to one colour sample.

The legacy helpers (`legacy_forehead_rect`, `mean_hue`) size an axis-aligned
forehead box straight from eyebrow/eye landmarks and sample its hue. They do
not follow head rotation and are kept only for comparison recordings.
"""

from __future__ import annotations

import warnings
from typing import NamedTuple, Tuple

import numpy as np

# dlib 68-point layout
EYEBROW_RANGE = range(17, 27)
NOSE_BRIDGE = 27
LEFT_EYE_OUTER = 36
RIGHT_EYE_OUTER = 45


class ColorSample(NamedTuple):
    b: float
    g: float
    r: float


def mean_bgr(patch_bgr: np.ndarray) -> ColorSample:
    """Compute the per-channel mean of an HxWx3 BGR patch.

    No masking is applied; the stabilized crop is assumed to be all skin.
    """
    if patch_bgr.ndim != 3 or patch_bgr.shape[2] != 3:
        raise ValueError("patch_bgr must be HxWx3 array")
    if patch_bgr.size == 0:
        raise ValueError("patch_bgr is empty")
    b_mean, g_mean, r_mean = patch_bgr.reshape(-1, 3).astype(np.float64).mean(axis=0)
    return ColorSample(float(b_mean), float(g_mean), float(r_mean))


def legacy_forehead_rect(landmarks: np.ndarray) -> Tuple[int, int, int, int]:
    """Deprecated eyebrow-based forehead box as (x, y, w, h).

    Height of the box is anchored on the mean eyebrow line, its size on the
    outer eye-corner distance, and it is centred on the nose bridge.
    """
    warnings.warn(
        "legacy_forehead_rect is deprecated; use ForeheadStabilizer",
        DeprecationWarning,
        stacklevel=2,
    )
    pts = np.asarray(landmarks, dtype=np.float64)
    eyebrow_y = int(pts[EYEBROW_RANGE.start : EYEBROW_RANGE.stop, 1].astype(np.int64).sum() // 10)
    eye_dist = int(pts[RIGHT_EYE_OUTER, 0]) - int(pts[LEFT_EYE_OUTER, 0])
    w = int(eye_dist * 0.5)
    h = int(eye_dist * 0.2)
    x = int(pts[NOSE_BRIDGE, 0]) - w // 2
    y = int(eyebrow_y - h - 10)
    return x, y, w, h


def mean_hue(frame_bgr: np.ndarray, rect: Tuple[int, int, int, int]) -> float:
    """Deprecated mean OpenCV hue (0-180) inside `rect`, clipped to the frame."""
    import cv2

    warnings.warn(
        "mean_hue is deprecated; use mean_bgr on a stabilized patch",
        DeprecationWarning,
        stacklevel=2,
    )
    fh, fw = frame_bgr.shape[:2]
    x, y, w, h = rect
    x0, y0 = max(0, x), max(0, y)
    x1, y1 = min(fw, x + w), min(fh, y + h)
    if x1 <= x0 or y1 <= y0:
        return 0.0
    hsv = cv2.cvtColor(np.ascontiguousarray(frame_bgr[y0:y1, x0:x1]), cv2.COLOR_BGR2HSV)
    return float(hsv[:, :, 0].mean())
