"""Landmark-driven forehead stabilization.

Three facial anchors (both eyebrow peaks and the nose bridge) are mapped onto
fixed positions of a 200x200 canonical face. A forehead rectangle defined in
that canonical space is projected back into the frame, and only the pixels of
its bounding box are warped into a fixed-size patch. The patch therefore shows
the same patch of skin from frame to frame regardless of head pose.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

# dlib 68-point layout: left eyebrow peak, right eyebrow peak, nose bridge
ANCHOR_INDICES: Tuple[int, int, int] = (19, 24, 27)
MIN_LANDMARKS = 68

CANONICAL_SIZE = (200, 200)
CANONICAL_ANCHORS = np.array([[60.0, 80.0], [140.0, 80.0], [100.0, 110.0]], dtype=np.float32)
# (x, y, w, h) in canonical units; also the output patch size
FOREHEAD_RECT: Tuple[int, int, int, int] = (70, 35, 60, 45)

MIN_ROI_SIDE = 2
MIN_TRIANGLE_AREA = 1.0  # px^2
# |area| / longest_side^2; the canonical anchors give 0.1875
MIN_TRIANGLE_SHAPE = 0.01


@dataclass
class StabilizedForehead:
    """Warped forehead patch; `patch` is empty when stabilization failed."""

    patch: np.ndarray
    # ROI corners in source-frame coordinates (TL, TR, BR, BL), if requested
    corners: Optional[np.ndarray] = None

    @property
    def ok(self) -> bool:
        return self.patch.size > 0


def triangle_area(pts: np.ndarray) -> float:
    """Signed area of a 3x2 point array."""
    (x0, y0), (x1, y1), (x2, y2) = pts.astype(np.float64)
    return 0.5 * ((x1 - x0) * (y2 - y0) - (x2 - x0) * (y1 - y0))


def is_degenerate_triangle(pts: np.ndarray) -> bool:
    """True for tiny or near-collinear triangles, independent of their scale."""
    area = abs(triangle_area(pts))
    if area < MIN_TRIANGLE_AREA:
        return True
    p = pts.astype(np.float64)
    longest_sq = max(float(np.sum((p[i] - p[(i + 1) % 3]) ** 2)) for i in range(3))
    return area / longest_sq < MIN_TRIANGLE_SHAPE


def apply_affine(M: np.ndarray, pts: np.ndarray) -> np.ndarray:
    """Apply a 2x3 affine matrix to an Nx2 point array."""
    pts = np.asarray(pts, dtype=np.float64)
    return pts @ M[:, :2].T + M[:, 2]


class ForeheadStabilizer:
    """Warps the forehead into a motion-invariant canonical patch."""

    def __init__(
        self,
        anchors: np.ndarray = CANONICAL_ANCHORS,
        forehead: Tuple[int, int, int, int] = FOREHEAD_RECT,
        anchor_indices: Sequence[int] = ANCHOR_INDICES,
    ) -> None:
        self.anchors = np.asarray(anchors, dtype=np.float32).reshape(3, 2)
        self.forehead = tuple(int(v) for v in forehead)
        self.anchor_indices = tuple(int(i) for i in anchor_indices)
        x, y, w, h = self.forehead
        self._rect_corners = np.array(
            [[x, y], [x + w, y], [x + w, y + h], [x, y + h]], dtype=np.float64
        )

    @property
    def patch_size(self) -> Tuple[int, int]:
        """(width, height) of the output patch."""
        return self.forehead[2], self.forehead[3]

    def _empty(self, corners: Optional[np.ndarray] = None) -> StabilizedForehead:
        return StabilizedForehead(np.zeros((0, 0, 3), dtype=np.uint8), corners)

    def source_anchors(self, landmarks: np.ndarray) -> Optional[np.ndarray]:
        pts = np.asarray(landmarks, dtype=np.float64)
        if pts.ndim != 2 or pts.shape[0] < MIN_LANDMARKS or pts.shape[1] < 2:
            return None
        src = pts[list(self.anchor_indices), :2]
        if not np.isfinite(src).all():
            return None
        return src.astype(np.float32)

    def stabilize(
        self,
        frame_bgr: np.ndarray,
        landmarks: np.ndarray,
        with_corners: bool = False,
    ) -> StabilizedForehead:
        """Extract the stabilized forehead patch.

        Args:
            frame_bgr: HxWx3 BGR frame.
            landmarks: Kx2 landmark coordinates (K >= 68, dlib layout).
            with_corners: also return the ROI polygon in frame coordinates.

        Returns:
            StabilizedForehead; `ok` is False when the anchors are degenerate
            or the projected ROI is smaller than 2 px after clipping.
        """
        if frame_bgr.ndim != 3 or frame_bgr.shape[2] != 3:
            raise ValueError("frame_bgr must be HxWx3 array")
        src = self.source_anchors(landmarks)
        if src is None:
            logger.debug("Stabilizer: missing or non-finite anchor landmarks")
            return self._empty()
        if is_degenerate_triangle(src):
            logger.debug("Stabilizer: degenerate anchor triangle")
            return self._empty()

        M = cv2.getAffineTransform(src, self.anchors)
        if not np.isfinite(M).all():
            return self._empty()
        M_inv = cv2.invertAffineTransform(M)
        if not np.isfinite(M_inv).all():
            return self._empty()
        corners = apply_affine(M_inv, self._rect_corners)
        out_corners = corners.copy() if with_corners else None

        fh, fw = frame_bgr.shape[:2]
        x0 = max(0, int(math.floor(float(corners[:, 0].min()))))
        y0 = max(0, int(math.floor(float(corners[:, 1].min()))))
        x1 = min(fw, int(math.ceil(float(corners[:, 0].max()))))
        y1 = min(fh, int(math.ceil(float(corners[:, 1].max()))))
        if x1 - x0 < MIN_ROI_SIDE or y1 - y0 < MIN_ROI_SIDE:
            logger.debug("Stabilizer: ROI too small after clipping (%dx%d)", x1 - x0, y1 - y0)
            return self._empty(out_corners)

        # Re-solve relative to the crop so only the bounding box is warped
        fx, fy = self.forehead[:2]
        pw, ph = self.patch_size
        src_local = src - np.array([x0, y0], dtype=np.float32)
        dst_local = self.anchors - np.array([fx, fy], dtype=np.float32)
        M_local = cv2.getAffineTransform(src_local, dst_local)
        crop = np.ascontiguousarray(frame_bgr[y0:y1, x0:x1])
        patch = cv2.warpAffine(
            crop,
            M_local,
            (pw, ph),
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_REPLICATE,
        )
        return StabilizedForehead(patch, out_corners)
