"""
emission.math — integer-only emission arithmetic.

Re-exports the pure calculator so callers can write
``from emission.math import compute_claimable``.
"""
from __future__ import annotations

from .calculator import Accrual, compute_claimable

__all__ = ["Accrual", "compute_claimable"]
