from __future__ import annotations

from typing import Callable

import numpy as np
import pytest

from pulsehud.stabilizer import ANCHOR_INDICES, CANONICAL_ANCHORS


def _make_landmarks(offset=(100.0, 100.0), scale: float = 1.0) -> np.ndarray:
    """68 points; anchors sit at the canonical positions scaled and shifted."""
    pts = np.zeros((68, 2), dtype=np.float64)
    anchors = CANONICAL_ANCHORS.astype(np.float64) * scale + np.asarray(offset, dtype=np.float64)
    for idx, p in zip(ANCHOR_INDICES, anchors):
        pts[idx] = p
    return pts


@pytest.fixture
def make_landmarks() -> Callable[..., np.ndarray]:
    return _make_landmarks
