"""
emission.cli — command line tools for emission schedules and saved state.

Run as ``python -m emission.cli --help``.
"""
from __future__ import annotations

from .main import app, get_app

__all__ = ["app", "get_app"]
