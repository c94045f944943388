from __future__ import annotations

"""
Core value types shared across the emission package.

- Addresses are hex strings (``0x`` + 40 hex chars), normalised to lower case.
- Amounts and timestamps are plain Python ints. They are only *narrowed* when
  stored in a stream record: ``claimed`` is a uint128 and timestamps are
  uint64. Narrowing is always checked (`to_u128` / `to_u64`) and raises
  `AmountOverflow` rather than wrapping.
- `StreamConfig` is the immutable emission schedule, validated once.
- Clocks supply "now" in UNIX seconds; `ManualClock` is used by tests and the
  CLI, `SystemClock` by live embedders.
"""

import re
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Mapping, Protocol

from emission.errors import (AmountOverflow, EmptyArray, InvalidAddress,
                             InvalidEntityCount, InvalidEntityId,
                             InvalidTimeWindow, ZeroAddress, ZeroAllocation,
                             ZeroEmissionRate)

Address = str
EntityId = int
Amount = int
Timestamp = int

U64_MAX: int = (1 << 64) - 1
U128_MAX: int = (1 << 128) - 1
U256_MAX: int = (1 << 256) - 1

ZERO_ADDRESS: Address = "0x" + "00" * 20

_ADDR_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


# -------------------------- Addresses --------------------------


def normalize_address(value: Any) -> Address:
    """Return the canonical lower-case form of `value` or raise InvalidAddress."""
    if not isinstance(value, str) or not _ADDR_RE.match(value):
        raise InvalidAddress(value=value)
    return value.lower()


def require_nonzero_address(value: Any, field: str) -> Address:
    addr = normalize_address(value)
    if addr == ZERO_ADDRESS:
        raise ZeroAddress(field=field)
    return addr


# -------------------------- Checked narrowing --------------------------


def _to_width(value: int, bits: int, limit: int, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{field or 'value'} must be int, got {type(value).__name__}")
    if value < 0 or value > limit:
        raise AmountOverflow(value=value, bits=bits, field=field)
    return value


def to_u64(value: int, field: str = "") -> int:
    return _to_width(value, 64, U64_MAX, field)


def to_u128(value: int, field: str = "") -> int:
    return _to_width(value, 128, U128_MAX, field)


def to_u256(value: int, field: str = "") -> int:
    return _to_width(value, 256, U256_MAX, field)


# -------------------------- Entity ids --------------------------


def require_entity_id(entity_id: Any) -> EntityId:
    if isinstance(entity_id, bool) or not isinstance(entity_id, int):
        raise InvalidEntityId(entity_id=entity_id)
    if entity_id < 0 or entity_id > U256_MAX:
        raise InvalidEntityId(entity_id=entity_id)
    return entity_id


def require_entity_ids(entity_ids: Iterable[Any]) -> List[EntityId]:
    """Validate a batch of ids. Order and duplicates are preserved."""
    ids = [require_entity_id(x) for x in entity_ids]
    if not ids:
        raise EmptyArray()
    return ids


# -------------------------- Schedule --------------------------


@dataclass(frozen=True)
class StreamConfig:
    """
    Immutable emission schedule shared by every entity.

    Use `StreamConfig.create` rather than the constructor: it validates the
    window and derives the per-second rate and the total allocation.
    """
    start_time: Timestamp
    end_time: Timestamp
    allocation_per_entity: Amount
    entity_count: int
    emission_rate_per_second: Amount
    total_allocation: Amount

    @property
    def window_length(self) -> int:
        return self.end_time - self.start_time

    @classmethod
    def create(
        cls,
        *,
        start_time: int,
        end_time: int,
        allocation_per_entity: int,
        entity_count: int,
    ) -> "StreamConfig":
        start = to_u64(int(start_time), "start_time")
        end = to_u64(int(end_time), "end_time")
        if end <= start:
            raise InvalidTimeWindow(start_time=start, end_time=end)
        if int(allocation_per_entity) <= 0:
            raise ZeroAllocation()
        allocation = to_u128(int(allocation_per_entity), "allocation_per_entity")
        if int(entity_count) <= 0:
            raise InvalidEntityCount(entity_count=entity_count)
        window = end - start
        rate = allocation // window
        if rate == 0:
            raise ZeroEmissionRate(allocation_per_entity=allocation, window_length=window)
        total = to_u256(allocation * int(entity_count), "total_allocation")
        return cls(
            start_time=start,
            end_time=end,
            allocation_per_entity=allocation,
            entity_count=int(entity_count),
            emission_rate_per_second=rate,
            total_allocation=total,
        )

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "StreamConfig":
        return cls.create(
            start_time=int(d["start_time"]),
            end_time=int(d["end_time"]),
            allocation_per_entity=int(d["allocation_per_entity"]),
            entity_count=int(d["entity_count"]),
        )


# -------------------------- Clocks --------------------------


class Clock(Protocol):
    def now(self) -> Timestamp: ...


class SystemClock:
    """Wall-clock seconds."""

    def now(self) -> Timestamp:
        return int(time.time())


class ManualClock:
    """A settable clock for tests and offline simulation."""

    def __init__(self, now: Timestamp = 0) -> None:
        self._now = int(now)

    def now(self) -> Timestamp:
        return self._now

    def set(self, now: Timestamp) -> None:
        if int(now) < self._now:
            raise ValueError(f"clock cannot go backwards ({now} < {self._now})")
        self._now = int(now)

    def advance(self, seconds: int) -> Timestamp:
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        self._now += int(seconds)
        return self._now


__all__ = [
    "Address",
    "EntityId",
    "Amount",
    "Timestamp",
    "U64_MAX",
    "U128_MAX",
    "U256_MAX",
    "ZERO_ADDRESS",
    "normalize_address",
    "require_nonzero_address",
    "to_u64",
    "to_u128",
    "to_u256",
    "require_entity_id",
    "require_entity_ids",
    "StreamConfig",
    "Clock",
    "SystemClock",
    "ManualClock",
]
