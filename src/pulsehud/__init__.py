"""Webcam heart-rate monitor (rPPG).

Forehead stabilization, POS pulse extraction and FFT-based BPM estimation,
with a small DearPyGUI HUD on top.
"""

__all__ = [
    "analyzer",
    "app",
    "bpm",
    "buffer",
    "capture",
    "config",
    "handoff",
    "landmarks",
    "pipeline",
    "plot",
    "pos",
    "roi",
    "stabilizer",
]

__version__ = "0.1.0"
