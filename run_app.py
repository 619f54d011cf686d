"""Local runner for the heart-rate HUD with src/ layout.

Usage: python run_app.py [--config config.yaml]
"""

from __future__ import annotations

import sys
from pathlib import Path


def main() -> int:
    # Ensure src/ is on sys.path so `import pulsehud` resolves
    root = Path(__file__).resolve().parent
    src = root / "src"
    if src.exists():
        sys.path.insert(0, str(src))
    from pulsehud.app import main as app_main  # type: ignore

    return app_main()


if __name__ == "__main__":
    raise SystemExit(main())
