"""
emission.ledger — per-entity stream accounting and the financing ledger.
"""
from __future__ import annotations

from .financing import DEADLINE_BUFFER_SECONDS, FinancingLedger, FinancingState
from .streams import Stream, StreamLedger

__all__ = [
    "DEADLINE_BUFFER_SECONDS",
    "FinancingLedger",
    "FinancingState",
    "Stream",
    "StreamLedger",
]
