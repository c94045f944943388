# -*- coding: utf-8 -*-
"""
emission.lifecycle
==================

Global lifecycle switch for the emission contract.

States
------
ACTIVE  ──pause()──▶ PAUSED ──unpause()──▶ ACTIVE
                       │
                       └──freeze()──▶ FROZEN   (one way)

- ``pause``   owner or operator; only from ACTIVE.
- ``unpause`` owner only; only from PAUSED; refused once frozen.
- ``freeze``  owner only; only from PAUSED; irreversible. FROZEN is layered on
  top of PAUSED: `is_paused()` stays True, claims and financing stay blocked,
  and the emergency exit becomes available.

Pause is reversible containment. Freeze admits containment will not be lifted,
which is why it alone unlocks the emergency exit (handled by the facade,
which owns the token).

Authorization is delegated to `emission.access.AccessControl`; this module
only tracks the state and enforces legal transitions.

Errors
------
- ContractPaused : operation requires ACTIVE
- NotPaused      : operation requires PAUSED
- IsFrozen       : already frozen
- NotFrozen      : operation requires FROZEN
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from emission.access import AccessControl
from emission.errors import ContractPaused, IsFrozen, NotFrozen, NotPaused
from emission.types import Address, Timestamp

log = logging.getLogger(__name__)


class LifecycleState(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    FROZEN = "frozen"


class Lifecycle:
    def __init__(self, access: AccessControl) -> None:
        self._access = access
        self._paused = False
        self._frozen_at: Optional[Timestamp] = None

    # ---- Queries ----------------------------------------------------------------

    @property
    def state(self) -> LifecycleState:
        if self._frozen_at is not None:
            return LifecycleState.FROZEN
        return LifecycleState.PAUSED if self._paused else LifecycleState.ACTIVE

    def is_paused(self) -> bool:
        return self._paused

    def is_frozen(self) -> bool:
        return self._frozen_at is not None

    @property
    def frozen_at(self) -> Optional[Timestamp]:
        return self._frozen_at

    # ---- Guards -----------------------------------------------------------------

    def require_active(self) -> None:
        if self._paused:
            raise ContractPaused()

    def require_paused(self) -> None:
        if not self._paused:
            raise NotPaused()

    def require_frozen(self) -> None:
        if self._frozen_at is None:
            raise NotFrozen()

    # ---- Transitions ------------------------------------------------------------

    def pause(self, caller: Address) -> Address:
        sender = self._access.require_owner_or_operator(caller)
        self.require_active()
        self._paused = True
        log.info("paused by=%s", sender)
        return sender

    def unpause(self, caller: Address) -> Address:
        sender = self._access.require_owner(caller)
        if self.is_frozen():
            raise IsFrozen()
        self.require_paused()
        self._paused = False
        log.info("unpaused by=%s", sender)
        return sender

    def freeze(self, caller: Address, now: Timestamp) -> Timestamp:
        self._access.require_owner(caller)
        if self.is_frozen():
            raise IsFrozen()
        self.require_paused()
        self._frozen_at = int(now)
        log.warning("frozen at=%s", self._frozen_at)
        return self._frozen_at

    # ---- load/save ----------------------------------------------------------------

    def dump(self) -> Dict[str, Any]:
        return {"paused": self._paused, "frozen_at": self._frozen_at}

    def load(self, data: Mapping[str, Any]) -> None:
        frozen_at = data.get("frozen_at")
        paused = bool(data.get("paused", False))
        if frozen_at is not None and not paused:
            raise ValueError("frozen lifecycle must also be paused")
        self._paused = paused
        self._frozen_at = int(frozen_at) if frozen_at is not None else None


__all__ = ["LifecycleState", "Lifecycle"]
