"""DearPyGUI heart-rate HUD with a background processing worker.

Run with: `python run_app.py [--config config.yaml]`

The worker thread owns the camera, the landmark source and the pipeline. The
UI thread only reads the latest BPM and display frame from `DisplayState`.
"""

from __future__ import annotations

import argparse
import logging
import threading
import time
from pathlib import Path
from typing import Optional, Sequence

import numpy as np

from .analyzer import HeartbeatAnalyzer
from .capture import Capture, CaptureConfig
from .config import AppConfig, ConfigError, load_config
from .handoff import DisplayState
from .landmarks import LandmarkSource
from .pipeline import FramePipeline, FrameResult, FrameStatus, RunningStats
from .plot import blit_plot, draw_debug, resize_plot_to_fit

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path("config.yaml")
BUFFER_LOG_SEC = 2.0
STATS_LOG_SEC = 2.0


def setup_logging(logs_dir: Path) -> None:
    """Log to logs/app.log and stderr; dump fatal tracebacks via faulthandler."""
    try:
        logs_dir.mkdir(exist_ok=True)
    except OSError:
        pass
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    try:
        handlers.append(logging.FileHandler(logs_dir / "app.log", encoding="utf-8"))
    except OSError:
        pass
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        handlers=handlers,
    )
    try:
        import faulthandler

        fh = (logs_dir / "faulthandler.log").open("w")
        faulthandler.enable(fh)
    except OSError:
        pass


def compose_debug_overlay(frame: np.ndarray, analyzer: HeartbeatAnalyzer, margin: int = 10) -> None:
    """Blit the cached FFT input/magnitude plots into the top-right corner."""
    if not analyzer.has_debug_plots():
        return
    fh, fw = frame.shape[:2]
    max_w = min(360, max(160, fw // 2))
    max_h = min(180, max(120, (fh - 3 * margin) // 2))
    plot_input = resize_plot_to_fit(analyzer.debug_fft_input(), max_w, max_h)
    plot_fft = resize_plot_to_fit(analyzer.debug_fft_magnitude(), max_w, max_h)
    x = fw - plot_input.shape[1] - margin
    y = margin
    blit_plot(frame, plot_input, (x, y), "FFT Input")
    y += plot_input.shape[0] + margin
    if plot_fft.size > 0:
        x = fw - plot_fft.shape[1] - margin
        blit_plot(frame, plot_fft, (x, y), "FFT Mag")


class ProcessingWorker:
    """Acquisition-paced loop: read frame, find face, run pipeline, publish."""

    def __init__(
        self,
        cfg: AppConfig,
        state: DisplayState,
        capture: Capture,
        source: LandmarkSource,
    ) -> None:
        self.cfg = cfg
        self.state = state
        self.capture = capture
        self.source = source
        self.analyzer = HeartbeatAnalyzer(
            cfg.window_size, cfg.camera.acquisition_fps, noise_floor=cfg.analysis.noise_floor
        )
        self.pipeline = FramePipeline(
            self.analyzer, cfg.analysis.min_bpm, cfg.analysis.max_bpm
        )
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self.run, name="pulsehud-worker", daemon=True)
        self._thread.start()

    def join(self) -> None:
        """Wait for the loop to exit; it checks `state.running()` every frame."""
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(self) -> None:
        try:
            self._loop()
        except Exception:
            logger.exception("Processing worker crashed")
        finally:
            self.state.stop()

    def _detect(self, frame: np.ndarray, debug: bool) -> tuple[Optional[np.ndarray], FrameResult]:
        """Landmarks + pipeline for one frame; a failure counts as no face."""
        try:
            lms = self.source.landmarks(frame)
            return lms, self.pipeline.process(frame, lms, debug=debug)
        except Exception:
            logger.exception("Frame processing failed; treating frame as no face")
            return None, FrameResult(FrameStatus.NO_FACE)

    def _loop(self) -> None:
        interval = 1.0 / self.cfg.camera.acquisition_fps
        window = self.analyzer.window_size()
        last_buffer_log = last_stats_log = time.perf_counter()
        dt_stats = RunningStats()
        last_sample: Optional[float] = None
        frame_count = face_count = 0
        buffer_ready_logged = False
        last_debug = False
        root = logging.getLogger()
        base_level = root.level

        while self.state.running():
            frame_start = time.perf_counter()
            try:
                _, frame = self.capture.read()
            except RuntimeError:
                logger.exception("Camera read failed; stopping worker")
                self.state.stop()
                break
            read_end = time.perf_counter()
            frame_count += 1

            debug = self.state.is_debug()
            if debug != last_debug:
                logger.info("Debug mode %s", "ON" if debug else "OFF")
                root.setLevel(logging.DEBUG if debug else base_level)
                self.analyzer.clear_debug_plots()
                last_debug = debug

            lms, result = self._detect(frame, debug)
            face_end = time.perf_counter()
            if lms is not None:
                face_count += 1
            if result.bpm is not None:
                self.state.publish_bpm(result.bpm)
            if debug and result.sample_added:
                now = time.perf_counter()
                if last_sample is not None:
                    dt_stats.add((now - last_sample) * 1e3)
                last_sample = now

            plots_start = time.perf_counter()
            if debug:
                if lms is not None:
                    draw_debug(frame, lms, result.corners)
                compose_debug_overlay(frame, self.analyzer)
            plots_end = time.perf_counter()
            self.state.publish_frame(frame)
            elapsed = time.perf_counter() - frame_start

            if debug:
                t = result.timings
                logger.debug(
                    "Timing ms: read %.2f, face %.2f, forehead %.2f, sample %.2f, bpm %.2f, "
                    "plots %.2f, overlay %.2f, total %.2f (%s)",
                    (read_end - frame_start) * 1e3,
                    (face_end - read_end) * 1e3 - t.total_ms,
                    t.stabilize_ms,
                    t.sample_ms,
                    t.bpm_ms,
                    (plots_end - plots_start) * 1e3,
                    (time.perf_counter() - plots_end) * 1e3,
                    elapsed * 1e3,
                    result.status.value,
                )
                now = time.perf_counter()
                if now - last_stats_log > STATS_LOG_SEC and dt_stats.count > 1:
                    target_ms = 1e3 * interval
                    logger.debug(
                        "Sample dt: mean %.2f ms (std %.2f), min %.2f, max %.2f, est %.2f fps, "
                        "jitter [min %.2f, max %.2f] ms, faces %.0f%% (%d/%d)",
                        dt_stats.mean,
                        dt_stats.std(),
                        dt_stats.min,
                        dt_stats.max,
                        1e3 / dt_stats.mean if dt_stats.mean > 0 else 0.0,
                        dt_stats.min - target_ms,
                        dt_stats.max - target_ms,
                        100.0 * face_count / max(1, frame_count),
                        face_count,
                        frame_count,
                    )
                    last_stats_log = now
                    dt_stats = RunningStats()
                    frame_count = face_count = 0

            if elapsed > 2 * interval:
                logger.warning(
                    "Frame processing overrun: %.1f ms (interval %.1f ms)",
                    elapsed * 1e3,
                    interval * 1e3,
                )
            if not buffer_ready_logged and self.analyzer.buffer_size() >= window:
                logger.info("Buffer filled: %d samples", window)
                buffer_ready_logged = True
            elif not buffer_ready_logged and result.status is not FrameStatus.READY:
                now = time.perf_counter()
                if now - last_buffer_log > BUFFER_LOG_SEC:
                    logger.info(
                        "Buffering: %d/%d (%.0f%%)",
                        self.analyzer.buffer_size(),
                        window,
                        100.0 * self.analyzer.buffer_size() / window,
                    )
                    last_buffer_log = now
            if elapsed < interval:
                time.sleep(interval - elapsed)


def _to_texture(frame_bgr: np.ndarray, tex_w: int, tex_h: int) -> np.ndarray:
    import cv2

    rgba = cv2.cvtColor(cv2.resize(frame_bgr, (tex_w, tex_h)), cv2.COLOR_BGR2RGBA)
    return (rgba.astype(np.float32) / 255.0).ravel()


def run_hud(cfg: AppConfig, state: DisplayState) -> None:  # pragma: no cover - UI
    """Minimal DearPyGUI window: preview, BPM readout, debug toggle."""
    import dearpygui.dearpygui as dpg

    tex_w, tex_h = 640, 480
    dpg.create_context()
    dpg.create_viewport(title="pulsehud", width=cfg.hud.width, height=cfg.hud.height + 80)
    with dpg.texture_registry():
        dpg.add_dynamic_texture(
            tex_w, tex_h, np.zeros(tex_w * tex_h * 4, dtype=np.float32), tag="preview_tex"
        )

    def on_debug(sender, app_data, user_data) -> None:
        state.set_debug(bool(app_data))

    with dpg.window(tag="primary_window", label="pulsehud"):
        with dpg.group(horizontal=True):
            bpm_text = dpg.add_text("-- BPM", color=tuple(cfg.hud.color))
            dpg.add_spacer(width=12)
            dpg.add_checkbox(label="Debug", default_value=state.is_debug(), callback=on_debug)
        dpg.add_image("preview_tex", width=cfg.hud.width - 20, height=cfg.hud.height - 20)

    with dpg.handler_registry():
        dpg.add_key_press_handler(dpg.mvKey_Escape, callback=lambda: dpg.stop_dearpygui())

    dpg.setup_dearpygui()
    dpg.show_viewport()
    dpg.set_primary_window("primary_window", True)
    while dpg.is_dearpygui_running() and state.running():
        frame = state.frame()
        if frame is not None:
            dpg.set_value("preview_tex", _to_texture(frame, tex_w, tex_h))
        bpm = state.bpm()
        dpg.set_value(bpm_text, "-- BPM" if bpm is None else f"{bpm:.0f} BPM")
        dpg.render_dearpygui_frame()
    state.stop()
    dpg.destroy_context()


def resolve_config(path: Optional[str]) -> AppConfig:
    """Load the config; without an explicit path a missing config.yaml means defaults."""
    if path is None:
        if not DEFAULT_CONFIG.exists():
            logger.info("No %s found; using defaults", DEFAULT_CONFIG)
            return AppConfig()
        path = str(DEFAULT_CONFIG)
    return load_config(path)


def main(argv: Optional[Sequence[str]] = None) -> int:  # pragma: no cover - integration
    parser = argparse.ArgumentParser(description="Webcam rPPG heart-rate HUD")
    parser.add_argument("--config", default=None, help="YAML config path")
    args = parser.parse_args(argv)

    setup_logging(Path("logs"))
    logger.info("Starting pulsehud...")
    t0 = time.perf_counter()
    try:
        cfg = resolve_config(args.config)
    except ConfigError as exc:
        logger.error("Config Error: %s", exc)
        return 1
    logger.info("Config loaded in %.1f ms", (time.perf_counter() - t0) * 1e3)
    logger.info(
        "Camera fps=%s, acquisition_fps=%s, window_duration_seconds=%s",
        cfg.camera.fps,
        cfg.camera.acquisition_fps,
        cfg.analysis.window_duration_seconds,
    )

    from .landmarks import FaceMeshLandmarks

    cap = Capture(
        CaptureConfig(cfg.camera.device_index, cfg.camera.fps, cfg.camera.frame_roi)
    )
    source = FaceMeshLandmarks()
    try:
        t0 = time.perf_counter()
        cap.open()
        logger.info("Camera opened in %.1f ms", (time.perf_counter() - t0) * 1e3)
        logger.info("Camera props: %.0fx%.0f @ %.1f fps", *cap.properties())
        t0 = time.perf_counter()
        source.open()
        logger.info("Landmark model loaded in %.1f ms", (time.perf_counter() - t0) * 1e3)
    except RuntimeError as exc:
        logger.error("Fatal: %s", exc)
        cap.release()
        return 1

    state = DisplayState(debug=cfg.hud.debug)
    worker = ProcessingWorker(cfg, state, cap, source)
    logger.info(
        "Analysis window: %d samples (~%.2fs)",
        worker.analyzer.window_size(),
        worker.analyzer.window_size() / cfg.camera.acquisition_fps,
    )
    worker.start()
    try:
        run_hud(cfg, state)
    finally:
        state.stop()
        worker.join()
        cap.release()
        source.close()
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
