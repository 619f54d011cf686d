"""Per-frame processing: landmarks -> stabilized patch -> sample -> BPM.

Every outcome is reported as a value. Losing the face, a degenerate ROI or a
noisy spectrum only affect the current frame; the caller keeps showing the
last good BPM.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from time import perf_counter
from typing import Optional

import numpy as np

from .analyzer import HeartbeatAnalyzer
from .bpm import BpmEstimate, BpmStatus
from .roi import mean_bgr
from .stabilizer import ForeheadStabilizer

logger = logging.getLogger(__name__)


class FrameStatus(str, Enum):
    NO_FACE = "no_face"
    GEOMETRY_FAILURE = "geometry_failure"
    BUFFERING = "buffering"
    READY = "ready"
    NOISE_FLOOR = "noise_floor"


_FROM_BPM = {
    BpmStatus.BUFFERING: FrameStatus.BUFFERING,
    BpmStatus.READY: FrameStatus.READY,
    BpmStatus.NOISE_FLOOR: FrameStatus.NOISE_FLOOR,
}


@dataclass
class FrameTimings:
    """Milliseconds spent per stage of one frame."""

    stabilize_ms: float = 0.0
    sample_ms: float = 0.0
    bpm_ms: float = 0.0

    @property
    def total_ms(self) -> float:
        return self.stabilize_ms + self.sample_ms + self.bpm_ms


@dataclass
class FrameResult:
    status: FrameStatus
    estimate: Optional[BpmEstimate] = None
    corners: Optional[np.ndarray] = None
    timings: FrameTimings = field(default_factory=FrameTimings)

    @property
    def bpm(self) -> Optional[float]:
        if self.estimate is not None and self.estimate.ready:
            return self.estimate.bpm
        return None

    @property
    def sample_added(self) -> bool:
        return self.status not in (FrameStatus.NO_FACE, FrameStatus.GEOMETRY_FAILURE)


class FramePipeline:
    def __init__(
        self,
        analyzer: HeartbeatAnalyzer,
        min_bpm: float = 45.0,
        max_bpm: float = 180.0,
        stabilizer: Optional[ForeheadStabilizer] = None,
    ) -> None:
        self.analyzer = analyzer
        self.stabilizer = stabilizer or ForeheadStabilizer()
        self.min_bpm = float(min_bpm)
        self.max_bpm = float(max_bpm)

    def process(
        self,
        frame_bgr: np.ndarray,
        landmarks: Optional[np.ndarray],
        debug: bool = False,
    ) -> FrameResult:
        timings = FrameTimings()
        if landmarks is None:
            return FrameResult(FrameStatus.NO_FACE, timings=timings)

        t0 = perf_counter()
        roi = self.stabilizer.stabilize(frame_bgr, landmarks, with_corners=debug)
        t1 = perf_counter()
        timings.stabilize_ms = (t1 - t0) * 1e3
        if not roi.ok:
            logger.debug("Geometry failure; sample skipped")
            return FrameResult(FrameStatus.GEOMETRY_FAILURE, corners=roi.corners, timings=timings)

        self.analyzer.add_sample(mean_bgr(roi.patch))
        t2 = perf_counter()
        timings.sample_ms = (t2 - t1) * 1e3

        est = self.analyzer.calculate_bpm(self.min_bpm, self.max_bpm, debug=debug)
        timings.bpm_ms = (perf_counter() - t2) * 1e3
        return FrameResult(_FROM_BPM[est.status], est, roi.corners, timings)


@dataclass
class RunningStats:
    """Welford running mean/variance with min/max."""

    count: int = 0
    mean: float = 0.0
    m2: float = 0.0
    min: float = 0.0
    max: float = 0.0

    def add(self, x: float) -> None:
        if self.count == 0:
            self.min = self.max = x
        else:
            self.min = min(self.min, x)
            self.max = max(self.max, x)
        self.count += 1
        delta = x - self.mean
        self.mean += delta / self.count
        self.m2 += delta * (x - self.mean)

    def variance(self) -> float:
        return self.m2 / (self.count - 1) if self.count > 1 else 0.0

    def std(self) -> float:
        return math.sqrt(self.variance())
