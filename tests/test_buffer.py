from __future__ import annotations

import numpy as np
import pytest

from pulsehud.buffer import TemporalWindow, window_capacity
from pulsehud.roi import ColorSample


def test_window_capacity_rule() -> None:
    assert window_capacity(8.5, 10.0) == 85
    assert window_capacity(8.5, 30.0) == 255
    assert window_capacity(0.05, 10.0) == 2


@pytest.mark.parametrize("extra", [0, 1, 7, 40])
def test_window_keeps_last_capacity_samples_in_order(extra: int) -> None:
    cap = 5
    w = TemporalWindow(cap)
    pushed = [ColorSample(float(i), float(i) + 0.5, float(i) + 0.25) for i in range(cap + extra)]
    for k, s in enumerate(pushed):
        w.add_sample(s)
        assert w.size() <= w.capacity()
        assert w.size() == min(k + 1, cap)
    assert list(w) == pushed[-cap:]
    assert w.is_full()


def test_channels_split_in_arrival_order() -> None:
    w = TemporalWindow(3)
    for b, g, r in [(1, 2, 3), (4, 5, 6), (7, 8, 9)]:
        w.add_sample(ColorSample(b, g, r))
    R, G, B = w.channels()
    assert np.array_equal(R, [3, 6, 9])
    assert np.array_equal(G, [2, 5, 8])
    assert np.array_equal(B, [1, 4, 7])


def test_capacity_below_two_is_rejected() -> None:
    with pytest.raises(ValueError):
        TemporalWindow(1)
    assert TemporalWindow.for_duration(0.01, 10.0).capacity() == 2
