from __future__ import annotations

import numpy as np

from pulsehud.analyzer import HeartbeatAnalyzer
from pulsehud.bpm import BpmStatus
from pulsehud.roi import ColorSample


def _analyzer() -> HeartbeatAnalyzer:
    return HeartbeatAnalyzer.for_duration(8.5, 10.0)


def test_window_size_from_duration() -> None:
    an = _analyzer()
    assert an.window_size() == 85
    assert an.buffer_size() == 0


def test_buffering_until_window_is_full() -> None:
    an = _analyzer()
    for _ in range(84):
        an.add_sample(ColorSample(120.0, 130.0, 110.0))
    assert an.calculate_bpm(45.0, 180.0).status is BpmStatus.BUFFERING
    assert an.pulse() is None


def test_identical_samples_hit_noise_floor() -> None:
    an = _analyzer()
    for _ in range(85):
        an.add_sample(ColorSample(120.0, 130.0, 110.0))
    est = an.calculate_bpm(45.0, 180.0)
    assert est.status is BpmStatus.NOISE_FLOOR
    assert est.bpm is None


def test_72_bpm_oscillation_is_recovered() -> None:
    fps = 10.0
    an = _analyzer()
    rng = np.random.RandomState(0)
    for i in range(85):
        pulse = np.sin(2 * np.pi * 1.2 * i / fps)
        g = 130.0 * (1 + 0.02 * pulse) + 0.05 * rng.randn()
        an.add_sample(ColorSample(120.0 + 0.05 * rng.randn(), g, 110.0 + 0.05 * rng.randn()))
    est = an.calculate_bpm(45.0, 180.0)
    assert est.status is BpmStatus.READY
    assert abs(est.bpm - 72.0) <= 60.0 * fps / 85


def test_repeated_calls_are_bit_identical() -> None:
    an = _analyzer()
    rng = np.random.RandomState(5)
    for _ in range(90):
        an.add_sample(ColorSample(*(100.0 + rng.randn(3))))
    first = an.calculate_bpm(45.0, 180.0, debug=True)
    second = an.calculate_bpm(45.0, 180.0, debug=False)
    third = an.calculate_bpm(45.0, 180.0, debug=True)
    assert first.status is second.status is third.status
    assert first.bpm == second.bpm == third.bpm


def test_debug_plots_cached_only_in_debug_mode() -> None:
    an = _analyzer()
    rng = np.random.RandomState(2)
    for _ in range(85):
        an.add_sample(ColorSample(*(100.0 + rng.randn(3))))
    an.calculate_bpm(45.0, 180.0)
    assert not an.has_debug_plots()
    assert an.debug_fft_input().size == 0
    an.calculate_bpm(45.0, 180.0, debug=True)
    assert an.has_debug_plots()
    assert an.debug_fft_input().shape == (160, 320, 3)
    assert an.debug_fft_magnitude().shape == (160, 320, 3)


def test_non_debug_estimate_drops_stale_plots() -> None:
    an = _analyzer()
    rng = np.random.RandomState(3)
    for _ in range(85):
        an.add_sample(ColorSample(*(100.0 + rng.randn(3))))
    an.calculate_bpm(45.0, 180.0, debug=True)
    assert an.has_debug_plots()
    an.calculate_bpm(45.0, 180.0, debug=False)
    assert not an.has_debug_plots()
    assert an.debug_fft_magnitude().size == 0


def test_clear_debug_plots() -> None:
    an = _analyzer()
    rng = np.random.RandomState(4)
    for _ in range(85):
        an.add_sample(ColorSample(*(100.0 + rng.randn(3))))
    an.calculate_bpm(45.0, 180.0, debug=True)
    an.clear_debug_plots()
    assert not an.has_debug_plots()
