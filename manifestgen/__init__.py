"""Build-time manifest generator for the Stills and Motion media trees."""
from __future__ import annotations

from .config import BuildContext
from .orchestrator import RunReport, run, run_once

__version__ = "1.0.0"

__all__ = [
    "BuildContext",
    "RunReport",
    "run",
    "run_once",
]
