# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Make the src layout importable and pin Hypothesis profiles for the suite",
#   "sections": [
#     {"id": "globals", "name": "Globals", "anchor": "GLOBALS", "kind": "infra"},
#     {"id": "pytest-configure", "name": "pytest_configure", "anchor": "function-pytest-configure", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Puts ``src`` on ``sys.path`` so the suite runs against a plain checkout, and
registers a deterministic Hypothesis profile for CI runs.

Usage:
    HYPOTHESIS_PROFILE=ci pytest
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from hypothesis import settings

# --- Globals ---

ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

settings.register_profile("ci", derandomize=True, deadline=None, print_blob=True)
settings.register_profile("dev", deadline=None)


def pytest_configure(config) -> None:
    """Load the Hypothesis profile named by ``HYPOTHESIS_PROFILE`` (default ``dev``)."""

    settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "dev"))
