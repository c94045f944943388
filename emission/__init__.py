from __future__ import annotations
"""
emission — linear token emission streams.

Distributes a fixed allocation to a fixed set of entities linearly over a time
window. Each entity's controller (direct owner, delegate, or a registered
custody module) may claim what has accrued at any time. Submodules are lazily
imported to keep import time minimal.

Public surface (lazily loaded):
- config, errors, events, metrics, types
- math, ledger, ownership, dispatcher, lifecycle, access
- contract, token, cli
"""


from typing import List

from .version import __version__

__all__: List[str] = [
    "__version__",
    # lazily importable subpackages/modules
    "config",
    "errors",
    "events",
    "metrics",
    "types",
    "math",
    "ledger",
    "ownership",
    "dispatcher",
    "lifecycle",
    "access",
    "contract",
    "token",
    "cli",
]

# --- Lazy module loader (PEP 562) -------------------------------------------------
import importlib


_lazy_modules = set(__all__) - {"__version__"}


def __getattr__(name: str):
    if name in _lazy_modules:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(set(globals().keys()) | _lazy_modules)


def get_version() -> str:
    """Return the emission package version string."""
    return __version__
