from __future__ import annotations

"""
emission.version — package version with an optional git-describe suffix.

- BASE_VERSION is bumped on intentional releases.
- ANIMICA_VERSION or EMISSION_VERSION in the environment wins outright.
- Inside a git checkout a PEP 440 local suffix is appended, e.g.
  ``0.1.0+gabc1234.dirty``.
"""


import os
import re
import subprocess
from typing import Optional

BASE_VERSION = "0.1.0"


def _git_describe() -> Optional[str]:
    try:
        out = subprocess.check_output(
            ["git", "describe", "--tags", "--dirty", "--always", "--abbrev=7"],
            stderr=subprocess.DEVNULL,
            cwd=os.path.dirname(os.path.abspath(__file__)),
        )
    except (OSError, subprocess.CalledProcessError):
        return None
    return out.decode("utf-8", "replace").strip() or None


def _pep440_local(desc: str) -> str:
    s = desc.replace("-", ".").replace("+", ".")
    if s.startswith("v") and len(s) > 1 and s[1].isdigit():
        s = s[1:]
    s = re.sub(r"[^a-zA-Z0-9.]+", ".", s)
    s = re.sub(r"\.{2,}", ".", s).strip(".")
    if not s.lower().startswith(("git.", "g")):
        s = f"git.{s}"
    return s


def build_version() -> str:
    for key in ("ANIMICA_VERSION", "EMISSION_VERSION"):
        v = os.getenv(key)
        if v:
            return v
    desc = _git_describe()
    if not desc:
        return BASE_VERSION
    return f"{BASE_VERSION}+{_pep440_local(desc)}"


__version__ = build_version()


def get_version() -> str:
    return __version__


__all__ = ["__version__", "get_version", "BASE_VERSION"]
