"""BPM estimation from a windowed pulse waveform.

The magnitude spectrum is searched for its strongest bin inside the
physiological band. Flat spectra (e.g. a perfectly still, constant colour)
are reported as a noise-floor result instead of a bogus BPM.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_NOISE_FLOOR = 1e-6


class BpmStatus(str, Enum):
    READY = "ready"
    BUFFERING = "buffering"
    NOISE_FLOOR = "noise_floor"


@dataclass(frozen=True)
class SpectralPeak:
    index: int
    bpm: float
    magnitude: float


@dataclass(frozen=True)
class PeakDiagnostics:
    """Top in-band peaks and how far the winner stands out (debug only)."""

    peaks: Tuple[SpectralPeak, ...]
    ratio: Optional[float]  # m1 / m2
    gap_db: Optional[float]  # 20*log10(m1 / m2)


@dataclass(frozen=True)
class BpmEstimate:
    status: BpmStatus
    bpm: Optional[float] = None
    peak_index: Optional[int] = None
    bin_width_bpm: Optional[float] = None
    diagnostics: Optional[PeakDiagnostics] = None
    # magnitude spectrum, kept only for debug plotting
    spectrum: Optional[np.ndarray] = field(default=None, repr=False, compare=False)

    @property
    def ready(self) -> bool:
        return self.status is BpmStatus.READY

    @classmethod
    def buffering(cls) -> "BpmEstimate":
        return cls(BpmStatus.BUFFERING)


def magnitude_spectrum(signal: np.ndarray) -> np.ndarray:
    """Magnitude of the first floor(N/2) DFT bins of a real signal."""
    x = np.asarray(signal, dtype=np.float64)
    # real part = signal, imaginary channel = 0
    X = np.fft.fft(x.astype(np.complex128))
    return np.abs(X[: x.size // 2])


def band_bins(n: int, fs: float, min_bpm: float, max_bpm: float) -> Tuple[int, int]:
    """Map a BPM band to an inclusive bin range, excluding DC.

    Frequencies are clamped into [0, fs/2] before conversion; both ends are
    then clamped into [1, floor(n/2) - 1].
    """
    nyq = 0.5 * fs
    min_hz = min(max(min_bpm / 60.0, 0.0), nyq)
    max_hz = min(max(max_bpm / 60.0, 0.0), nyq)
    top = n // 2 - 1
    low = int(math.floor(min_hz * n / fs))
    high = int(math.ceil(max_hz * n / fs))
    low = max(1, min(low, top))
    high = max(1, min(high, top))
    return low, high


def top_peaks(mag: np.ndarray, low: int, high: int, count: int = 3) -> list[tuple[int, float]]:
    """Return up to `count` (index, magnitude) pairs in descending order.

    Insertion is strict, so equal magnitudes keep the lower (first-seen) index
    ahead.
    """
    top: list[tuple[int, float]] = []
    for i in range(low, high + 1):
        v = float(mag[i])
        for j, (_, tv) in enumerate(top):
            if v > tv:
                top.insert(j, (i, v))
                break
        else:
            top.append((i, v))
        del top[count:]
    return top


def peak_diagnostics(
    mag: np.ndarray, low: int, high: int, n: int, fs: float
) -> PeakDiagnostics:
    top = top_peaks(mag, low, high)
    peaks = tuple(SpectralPeak(i, i * fs / n * 60.0, m) for i, m in top)
    ratio: Optional[float] = None
    gap_db: Optional[float] = None
    if len(top) >= 2 and top[1][1] > 0.0:
        ratio = top[0][1] / top[1][1]
        gap_db = 20.0 * math.log10(ratio) if ratio > 0.0 else None
    return PeakDiagnostics(peaks, ratio, gap_db)


def estimate_bpm(
    signal: np.ndarray,
    fs: float,
    min_bpm: float = 45.0,
    max_bpm: float = 180.0,
    debug: bool = False,
    noise_floor: float = DEFAULT_NOISE_FLOOR,
) -> BpmEstimate:
    """Estimate BPM by peak in band-limited magnitude spectrum.

    Args:
        signal: windowed pulse waveform (length N).
        fs: sampling rate [Hz].
        min_bpm, max_bpm: search band [BPM].
        debug: attach top-3 peak diagnostics and the spectrum.
        noise_floor: peaks at or below this magnitude are rejected.

    Returns:
        BpmEstimate with status READY or NOISE_FLOOR.
    """
    x = np.asarray(signal, dtype=np.float64)
    n = x.size
    if n < 4 or fs <= 0:
        return BpmEstimate(BpmStatus.NOISE_FLOOR)
    mag = magnitude_spectrum(x)
    spectrum = mag if debug else None
    low, high = band_bins(n, fs, min_bpm, max_bpm)
    if high < low:
        return BpmEstimate(BpmStatus.NOISE_FLOOR, spectrum=spectrum)
    # argmax keeps the first maximum
    idx = int(np.argmax(mag[low : high + 1])) + low
    if idx <= 0 or not float(mag[idx]) > noise_floor:
        logger.debug("No spectral peak above noise floor (max %.3g)", float(mag[idx]))
        return BpmEstimate(BpmStatus.NOISE_FLOOR, spectrum=spectrum)

    bin_width = fs / n * 60.0
    bpm = idx * bin_width
    diagnostics: Optional[PeakDiagnostics] = None
    if debug:
        diagnostics = peak_diagnostics(mag, low, high, n, fs)
        logger.debug(
            "FFT peaks: %s ratio=%s gap_db=%s",
            ", ".join(f"#{k + 1} bin {p.index} {p.bpm:.1f}bpm mag {p.magnitude:.4g}"
                      for k, p in enumerate(diagnostics.peaks)),
            "n/a" if diagnostics.ratio is None else f"{diagnostics.ratio:.2f}",
            "n/a" if diagnostics.gap_db is None else f"{diagnostics.gap_db:.1f}",
        )
    return BpmEstimate(
        BpmStatus.READY,
        bpm=float(bpm),
        peak_index=idx,
        bin_width_bpm=float(bin_width),
        diagnostics=diagnostics,
        spectrum=spectrum,
    )
