from __future__ import annotations

"""
Stream Ledger — per-entity accrual records
------------------------------------------

Holds one `Stream` per entity id in a plain dict keyed by id. Records are
created lazily on first mutation with ``last_accrual_time = start_time``, so a
never-touched entity costs nothing and reads as "nothing claimed yet".

Only this module mutates streams. Each accrual:
  • returns 0 without touching state when called twice at the same instant
    (batches may repeat ids; a re-entrant claim sees the updated record)
  • returns 0 once the stream has reached ``end_time``
  • refuses paused streams with `StreamPaused`
  • otherwise applies the calculator and persists ``claimed`` and
    ``last_accrual_time`` after checking ``claimed <= allocation_per_entity``

The ledger is storage-agnostic: `dump()` returns a JSON-friendly dict and
`load()` restores it.

Rollback uses nested checkpoints (`begin` / `commit` / `revert`). While a
checkpoint is open, the first write to an entity records its prior record (or
its absence) in the top frame, so reverting costs O(entities touched) rather
than O(ledger).
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from emission.errors import IncorrectClaimable, InvariantError, StreamPaused
from emission.math.calculator import compute_claimable
from emission.types import (Amount, EntityId, StreamConfig, Timestamp,
                            require_entity_id, require_entity_ids, to_u64,
                            to_u128)

log = logging.getLogger(__name__)


@dataclass
class Stream:
    claimed: Amount
    last_accrual_time: Timestamp
    is_paused: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "claimed": self.claimed,
            "last_accrual_time": self.last_accrual_time,
            "is_paused": self.is_paused,
        }

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "Stream":
        return Stream(
            claimed=to_u128(int(d["claimed"]), "claimed"),
            last_accrual_time=to_u64(int(d["last_accrual_time"]), "last_accrual_time"),
            is_paused=bool(d.get("is_paused", False)),
        )


class StreamLedger:
    """
    In-memory keyed store of per-entity streams.

    Usage:
        ledger = StreamLedger(config)
        amount = ledger.accrue(7, now=1_700_000_000)
        ledger.set_paused([7, 8], True)
    """

    def __init__(self, config: StreamConfig) -> None:
        self.config = config
        self._streams: Dict[EntityId, Stream] = {}
        self._paused: Set[EntityId] = set()
        # checkpoint stack: entity id -> record before the first write in that frame
        self._journal: List[Dict[EntityId, Optional[Stream]]] = []

    # --- introspection ---

    def get(self, entity_id: EntityId) -> Stream:
        """Return a *copy* of the entity's stream (default record if untouched)."""
        s = self._streams.get(require_entity_id(entity_id))
        if s is None:
            return self._default()
        return Stream(claimed=s.claimed, last_accrual_time=s.last_accrual_time, is_paused=s.is_paused)

    def is_paused(self, entity_id: EntityId) -> bool:
        s = self._streams.get(require_entity_id(entity_id))
        return bool(s and s.is_paused)

    def claimed_total(self) -> Amount:
        return sum(s.claimed for s in self._streams.values())

    def items(self) -> List[Tuple[EntityId, Stream]]:
        return sorted(self._streams.items())

    def __len__(self) -> int:
        return len(self._streams)

    def paused_count(self) -> int:
        return len(self._paused)

    # --- load/save ---

    def dump(self) -> Dict[str, Any]:
        return {"streams": {str(k): v.to_dict() for k, v in sorted(self._streams.items())}}

    def load(self, data: Mapping[str, Any]) -> None:
        streams: Dict[EntityId, Stream] = {}
        for k, v in (data.get("streams") or {}).items():
            eid = require_entity_id(int(k))
            streams[eid] = Stream.from_dict(v)
        self._streams = streams
        self._paused = {eid for eid, s in streams.items() if s.is_paused}
        self._journal = []
        self.assert_consistent()

    # --- mutations ---

    def accrue(self, entity_id: EntityId, now: Timestamp) -> Amount:
        eid = require_entity_id(entity_id)
        stream = self._touch(eid)

        if stream.last_accrual_time == now:
            return 0
        if stream.last_accrual_time == self.config.end_time:
            return 0
        if stream.is_paused:
            raise StreamPaused(entity_id=eid)

        acc = compute_claimable(self.config, stream.last_accrual_time, stream.claimed, now)
        new_claimed = stream.claimed + acc.claimable
        if new_claimed > self.config.allocation_per_entity:
            raise IncorrectClaimable(
                entity_id=eid,
                claimed=stream.claimed,
                claimable=acc.claimable,
                allocation=self.config.allocation_per_entity,
            )

        stream.claimed = to_u128(new_claimed, "claimed")
        # Never move backwards, even if a caller supplies a stale `now`.
        stream.last_accrual_time = max(stream.last_accrual_time, acc.accrual_time)
        log.debug(
            "accrued entity=%s amount=%s claimed=%s last=%s",
            eid, acc.claimable, stream.claimed, stream.last_accrual_time,
        )
        return acc.claimable

    def set_paused(self, entity_ids: Iterable[EntityId], value: bool) -> List[EntityId]:
        ids = require_entity_ids(entity_ids)
        for eid in ids:
            self._touch(eid).is_paused = bool(value)
            self._sync_paused(eid)
        return ids

    # --- checkpoints ---

    def begin(self) -> None:
        self._journal.append({})

    def commit(self) -> None:
        frame = self._journal.pop()
        if self._journal:
            parent = self._journal[-1]
            for eid, prior in frame.items():
                parent.setdefault(eid, prior)

    def revert(self) -> None:
        frame = self._journal.pop()
        for eid, prior in frame.items():
            if prior is None:
                self._streams.pop(eid, None)
            else:
                self._streams[eid] = prior
            self._sync_paused(eid)

    # --- views ---

    def peek_claimable(self, entity_id: EntityId, now: Timestamp) -> Amount:
        """Claimable amount at `now` without mutating state; ignores pause."""
        s = self._streams.get(require_entity_id(entity_id)) or self._default()
        if s.last_accrual_time == now:
            return 0
        return compute_claimable(self.config, s.last_accrual_time, s.claimed, now).claimable

    # --- utilities ---

    def assert_consistent(self) -> None:
        cfg = self.config
        for eid, s in self._streams.items():
            if s.claimed > cfg.allocation_per_entity:
                raise InvariantError(
                    "stream claimed above allocation",
                    details={"entity_id": eid, "claimed": s.claimed},
                )
            if not (cfg.start_time <= s.last_accrual_time <= cfg.end_time):
                raise InvariantError(
                    "stream accrual time outside window",
                    details={"entity_id": eid, "last_accrual_time": s.last_accrual_time},
                )

    # --- internal helpers ---

    def _default(self) -> Stream:
        return Stream(claimed=0, last_accrual_time=self.config.start_time)

    def _fetch(self, eid: EntityId) -> Stream:
        s: Optional[Stream] = self._streams.get(eid)
        if s is None:
            s = self._default()
            self._streams[eid] = s
        return s

    def _touch(self, eid: EntityId) -> Stream:
        """Fetch for writing, journaling the prior record in the open checkpoint."""
        if self._journal:
            frame = self._journal[-1]
            if eid not in frame:
                s = self._streams.get(eid)
                frame[eid] = None if s is None else Stream(s.claimed, s.last_accrual_time, s.is_paused)
        return self._fetch(eid)

    def _sync_paused(self, eid: EntityId) -> None:
        s = self._streams.get(eid)
        if s is not None and s.is_paused:
            self._paused.add(eid)
        else:
            self._paused.discard(eid)


__all__ = ["Stream", "StreamLedger"]
