"""POS (Plane-Orthogonal-to-Skin) color projection."""

from __future__ import annotations

import numpy as np
from scipy.signal import get_window

EPS = 1e-6


def normalize_channel(x: np.ndarray) -> np.ndarray:
    """Divide a channel by its temporal mean and center it (ratio minus 1)."""
    x = np.asarray(x, dtype=np.float64)
    return x / (float(x.mean()) + EPS) - 1.0


def pos_signal(Rn: np.ndarray, Gn: np.ndarray, Bn: np.ndarray) -> np.ndarray:
    """Compute POS composite signal for a window of normalized RGB.

    Args:
        Rn, Gn, Bn: 1D arrays of equal length (temporally normalized).
    """
    Rn = np.asarray(Rn, dtype=np.float64)
    Gn = np.asarray(Gn, dtype=np.float64)
    Bn = np.asarray(Bn, dtype=np.float64)
    X = Gn - Bn
    Y = Gn + Bn - 2.0 * Rn
    # population std (ddof=0)
    alpha = float(np.std(X)) / (float(np.std(Y)) + EPS)
    return X + alpha * Y


def pos_pulse(R: np.ndarray, G: np.ndarray, B: np.ndarray) -> np.ndarray:
    """Turn raw per-channel means (oldest first) into a windowed pulse waveform.

    Each channel is normalized by its own mean, projected with POS,
    re-centered, and tapered with a symmetric Hamming window so the result
    can be fed straight into the spectral estimator.

    Args:
        R, G, B: 1D arrays of equal length N >= 2.

    Returns:
        float64 array of length N.
    """
    R = np.asarray(R, dtype=np.float64)
    G = np.asarray(G, dtype=np.float64)
    B = np.asarray(B, dtype=np.float64)
    if not (R.shape == G.shape == B.shape) or R.ndim != 1:
        raise ValueError("R, G, B must be 1D arrays of equal length")
    n = R.size
    if n < 2:
        raise ValueError("need at least 2 samples")
    h = pos_signal(normalize_channel(R), normalize_channel(G), normalize_channel(B))
    h = h - float(h.mean())
    # 0.54 - 0.46 cos(2*pi*i/(N-1))
    return h * get_window("hamming", n, fftbins=False)
