from __future__ import annotations

"""
Notifications emitted by the emission contract.

Every state-changing entry point appends exactly one event to the contract's
in-process `EventLog` when it succeeds. A failed call leaves no event behind:
the facade wraps each call in an `EventLog` checkpoint and reverts it on
failure. Listeners only hear about events once the outermost checkpoint
commits.

Events:
  - Claimed:                  one claim call (per-id amounts and recipients)
  - Deposited / Withdrawn:    financing movements
  - DeadlineUpdated:          claim cutoff / withdrawal opening moved
  - DepositorUpdated / OperatorUpdated
  - OwnershipTransferStarted / OwnershipTransferred
  - ModuleUpdated:            custodial module enabled or disabled
  - StreamsPaused / StreamsUnpaused
  - Paused / Unpaused / Frozen
  - EmergencyExit:            full balance swept after a freeze

Timestamps are the contract clock's UNIX seconds at the time of the call.
All payloads are JSON-friendly via `to_dict()`; `event_from_dict` inverts it.
"""

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from typing import (Any, Callable, Dict, Iterator, List, Mapping, Optional,
                    Type, TypeVar, Union)


class EventType(str, Enum):
    CLAIMED = "Claimed"
    DEPOSITED = "Deposited"
    WITHDRAWN = "Withdrawn"
    DEADLINE_UPDATED = "DeadlineUpdated"
    DEPOSITOR_UPDATED = "DepositorUpdated"
    OPERATOR_UPDATED = "OperatorUpdated"
    OWNERSHIP_TRANSFER_STARTED = "OwnershipTransferStarted"
    OWNERSHIP_TRANSFERRED = "OwnershipTransferred"
    MODULE_UPDATED = "ModuleUpdated"
    STREAMS_PAUSED = "StreamsPaused"
    STREAMS_UNPAUSED = "StreamsUnpaused"
    PAUSED = "Paused"
    UNPAUSED = "Unpaused"
    FROZEN = "Frozen"
    EMERGENCY_EXIT = "EmergencyExit"


E = TypeVar("E", bound="_Event")


# ────────────────────────────────────────────────────────────────────────────────
# Event payloads
# ────────────────────────────────────────────────────────────────────────────────


@dataclass
class _Event:
    ts: int

    ETYPE = EventType.CLAIMED  # overridden by every subclass

    @property
    def etype(self) -> EventType:
        return self.ETYPE

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["etype"] = self.ETYPE.value
        return d

    @classmethod
    def from_dict(cls: Type[E], d: Mapping[str, Any]) -> E:
        kwargs = {f.name: d[f.name] for f in fields(cls) if f.name in d}
        return cls(**kwargs)


@dataclass
class Claimed(_Event):
    claimant: str = ""
    path: str = "direct"
    entity_ids: List[int] = field(default_factory=list)
    amounts: List[int] = field(default_factory=list)
    recipients: List[str] = field(default_factory=list)
    total: int = 0
    module: Optional[str] = None

    ETYPE = EventType.CLAIMED

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Claimed":
        return cls(
            ts=int(d["ts"]),
            claimant=str(d["claimant"]),
            path=str(d.get("path", "direct")),
            entity_ids=[int(x) for x in d.get("entity_ids", [])],
            amounts=[int(x) for x in d.get("amounts", [])],
            recipients=[str(x) for x in d.get("recipients", [])],
            total=int(d.get("total", 0)),
            module=d.get("module"),
        )


@dataclass
class Deposited(_Event):
    depositor: str = ""
    amount: int = 0
    total_deposited: int = 0

    ETYPE = EventType.DEPOSITED


@dataclass
class Withdrawn(_Event):
    depositor: str = ""
    amount: int = 0

    ETYPE = EventType.WITHDRAWN


@dataclass
class DeadlineUpdated(_Event):
    previous: int = 0
    deadline: int = 0

    ETYPE = EventType.DEADLINE_UPDATED


@dataclass
class DepositorUpdated(_Event):
    previous: str = ""
    depositor: str = ""

    ETYPE = EventType.DEPOSITOR_UPDATED


@dataclass
class OperatorUpdated(_Event):
    previous: str = ""
    operator: str = ""

    ETYPE = EventType.OPERATOR_UPDATED


@dataclass
class OwnershipTransferStarted(_Event):
    owner: str = ""
    pending_owner: str = ""

    ETYPE = EventType.OWNERSHIP_TRANSFER_STARTED


@dataclass
class OwnershipTransferred(_Event):
    previous: str = ""
    owner: str = ""

    ETYPE = EventType.OWNERSHIP_TRANSFERRED


@dataclass
class ModuleUpdated(_Event):
    module: str = ""
    enabled: bool = False

    ETYPE = EventType.MODULE_UPDATED


@dataclass
class StreamsPaused(_Event):
    sender: str = ""
    entity_ids: List[int] = field(default_factory=list)

    ETYPE = EventType.STREAMS_PAUSED


@dataclass
class StreamsUnpaused(_Event):
    sender: str = ""
    entity_ids: List[int] = field(default_factory=list)

    ETYPE = EventType.STREAMS_UNPAUSED


@dataclass
class Paused(_Event):
    sender: str = ""

    ETYPE = EventType.PAUSED


@dataclass
class Unpaused(_Event):
    sender: str = ""

    ETYPE = EventType.UNPAUSED


@dataclass
class Frozen(_Event):
    sender: str = ""

    ETYPE = EventType.FROZEN


@dataclass
class EmergencyExit(_Event):
    receiver: str = ""
    amount: int = 0

    ETYPE = EventType.EMERGENCY_EXIT


EmissionEvent = Union[
    Claimed,
    Deposited,
    Withdrawn,
    DeadlineUpdated,
    DepositorUpdated,
    OperatorUpdated,
    OwnershipTransferStarted,
    OwnershipTransferred,
    ModuleUpdated,
    StreamsPaused,
    StreamsUnpaused,
    Paused,
    Unpaused,
    Frozen,
    EmergencyExit,
]

_BY_TYPE: Dict[EventType, Type[_Event]] = {
    cls.ETYPE: cls
    for cls in (
        Claimed,
        Deposited,
        Withdrawn,
        DeadlineUpdated,
        DepositorUpdated,
        OperatorUpdated,
        OwnershipTransferStarted,
        OwnershipTransferred,
        ModuleUpdated,
        StreamsPaused,
        StreamsUnpaused,
        Paused,
        Unpaused,
        Frozen,
        EmergencyExit,
    )
}


def event_from_dict(d: Mapping[str, Any]) -> _Event:
    """Decode any event dict produced by `to_dict()`."""
    etype = EventType(d["etype"])
    return _BY_TYPE[etype].from_dict(d)


# ────────────────────────────────────────────────────────────────────────────────
# Log
# ────────────────────────────────────────────────────────────────────────────────


Listener = Callable[[_Event], None]


class EventLog:
    """
    Append-only list of events with optional synchronous listeners.

    Checkpoints nest like the ledgers': `begin()` marks the current length,
    `revert()` drops everything emitted since, `commit()` keeps it. Events
    emitted inside a checkpoint are delivered to listeners only when the
    outermost checkpoint commits, so listeners never observe a call that was
    later rolled back.
    """

    def __init__(self) -> None:
        self._events: List[_Event] = []
        self._listeners: List[Listener] = []
        self._marks: List[int] = []

    def emit(self, event: _Event) -> _Event:
        self._events.append(event)
        if not self._marks:
            self._notify([event])
        return event

    def subscribe(self, fn: Listener) -> None:
        self._listeners.append(fn)

    def events(self, etype: Optional[EventType] = None) -> List[_Event]:
        if etype is None:
            return list(self._events)
        return [e for e in self._events if e.etype == etype]

    def last(self) -> Optional[_Event]:
        return self._events[-1] if self._events else None

    # ---- checkpoints ----

    def begin(self) -> None:
        self._marks.append(len(self._events))

    def commit(self) -> None:
        mark = self._marks.pop()
        if not self._marks:
            self._notify(self._events[mark:])

    def revert(self) -> None:
        del self._events[self._marks.pop():]

    def _notify(self, events: List[_Event]) -> None:
        for event in events:
            for fn in list(self._listeners):
                fn(event)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[_Event]:
        return iter(list(self._events))


__all__ = [
    "EventType",
    "Claimed",
    "Deposited",
    "Withdrawn",
    "DeadlineUpdated",
    "DepositorUpdated",
    "OperatorUpdated",
    "OwnershipTransferStarted",
    "OwnershipTransferred",
    "ModuleUpdated",
    "StreamsPaused",
    "StreamsUnpaused",
    "Paused",
    "Unpaused",
    "Frozen",
    "EmergencyExit",
    "EmissionEvent",
    "event_from_dict",
    "EventLog",
]
