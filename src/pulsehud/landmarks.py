"""Facial landmark source.

The pipeline consumes points in the dlib 68-point layout. `FaceMeshLandmarks`
runs MediaPipe Face Mesh and fills the 68-point slots the pipeline needs
(eyebrows, nose bridge, outer eye corners); the other slots are NaN.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Protocol

import numpy as np

# dlib-68 index -> MediaPipe Face Mesh index (image-left first)
FACEMESH_TO_DLIB68: Dict[int, int] = {
    17: 70,
    18: 63,
    19: 105,
    20: 66,
    21: 107,
    22: 336,
    23: 296,
    24: 334,
    25: 293,
    26: 300,
    27: 168,
    36: 33,
    45: 263,
}


class LandmarkSource(Protocol):
    def landmarks(self, frame_bgr: np.ndarray) -> Optional[np.ndarray]:
        """Return a Kx2 array (K >= 68) in pixel coordinates, or None if no face."""
        ...


def facemesh_to_dlib68(points: np.ndarray) -> np.ndarray:
    """Map Nx2 Face Mesh pixel points to a 68x2 array (NaN where unmapped)."""
    out = np.full((68, 2), np.nan, dtype=np.float64)
    pts = np.asarray(points, dtype=np.float64)
    for dlib_idx, mesh_idx in FACEMESH_TO_DLIB68.items():
        if mesh_idx < pts.shape[0]:
            out[dlib_idx] = pts[mesh_idx, :2]
    return out


def central_face_index(faces: list[np.ndarray], width: int, height: int) -> int:
    """Index of the face whose landmark centroid is closest to the frame centre."""
    centre = np.array([width / 2.0, height / 2.0])
    dists = [float(np.linalg.norm(np.nanmean(f, axis=0) - centre)) for f in faces]
    return int(np.argmin(dists))


@dataclass
class FaceMeshConfig:
    max_faces: int = 2
    min_confidence: float = 0.5


class FaceMeshLandmarks:
    """MediaPipe Face Mesh landmark source (picks the most central face)."""

    def __init__(self, cfg: Optional[FaceMeshConfig] = None) -> None:
        self.cfg = cfg or FaceMeshConfig()
        self._fm = None

    def _ensure_model(self) -> None:
        if self._fm is None:
            try:
                import mediapipe as mp  # type: ignore

                self._fm = mp.solutions.face_mesh.FaceMesh(
                    static_image_mode=False,
                    max_num_faces=self.cfg.max_faces,
                    refine_landmarks=False,
                    min_detection_confidence=self.cfg.min_confidence,
                )
            except Exception as exc:  # pragma: no cover - optional path
                raise RuntimeError(f"Failed to initialize MediaPipe FaceMesh: {exc}") from exc

    def open(self) -> None:
        """Load the model up front so startup fails fast."""
        self._ensure_model()

    def landmarks(self, frame_bgr: np.ndarray) -> Optional[np.ndarray]:  # pragma: no cover
        import cv2

        self._ensure_model()
        h, w = frame_bgr.shape[:2]
        rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
        result = self._fm.process(rgb)  # type: ignore[union-attr]
        if not result.multi_face_landmarks:
            return None
        faces = [
            facemesh_to_dlib68(np.array([[p.x * w, p.y * h] for p in face.landmark]))
            for face in result.multi_face_landmarks
        ]
        return faces[central_face_index(faces, w, h)]

    def close(self) -> None:
        if self._fm is not None:
            self._fm.close()  # type: ignore[union-attr]
            self._fm = None
