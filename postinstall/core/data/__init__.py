"""Bundled static data — the default setup.yml lives next to this file."""

from __future__ import annotations

from pathlib import Path

DATA_DIR = Path(__file__).parent
DEFAULT_SETUP_FILE = DATA_DIR / "setup.yml"
