from __future__ import annotations

import threading

import numpy as np

from pulsehud.handoff import DisplayState


def test_bpm_and_frame_handoff() -> None:
    st = DisplayState()
    assert st.bpm() is None
    assert st.frame() is None
    st.publish_bpm(72.5)
    frame = np.zeros((4, 4, 3), dtype=np.uint8)
    st.publish_frame(frame)
    frame[:] = 255  # later mutation must not leak through
    assert st.bpm() == 72.5
    out = st.frame()
    assert out is not None and not out.any()


def test_debug_toggle_and_stop() -> None:
    st = DisplayState(debug=True)
    assert st.is_debug()
    st.set_debug(False)
    assert not st.is_debug()
    assert st.running()
    st.stop()
    assert not st.running()


def test_publish_from_worker_thread() -> None:
    st = DisplayState()

    def worker() -> None:
        for i in range(100):
            st.publish_bpm(float(i))

    t = threading.Thread(target=worker)
    t.start()
    t.join()
    assert st.bpm() == 99.0
