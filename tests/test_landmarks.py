from __future__ import annotations

import numpy as np

from pulsehud.landmarks import FACEMESH_TO_DLIB68, central_face_index, facemesh_to_dlib68


def test_facemesh_mapping_fills_anchor_slots() -> None:
    mesh = np.stack([np.arange(468.0), np.arange(468.0) * 2], axis=1)
    pts = facemesh_to_dlib68(mesh)
    assert pts.shape == (68, 2)
    for dlib_idx, mesh_idx in FACEMESH_TO_DLIB68.items():
        assert np.array_equal(pts[dlib_idx], mesh[mesh_idx])
    assert np.isnan(pts[0]).all()
    assert np.isfinite(pts[[19, 24, 27]]).all()


def test_central_face_is_closest_to_centre() -> None:
    a = np.full((68, 2), np.nan)
    a[27] = (10, 10)
    b = np.full((68, 2), np.nan)
    b[27] = (310, 230)
    assert central_face_index([a, b], 640, 480) == 1
