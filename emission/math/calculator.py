# -*- coding: utf-8 -*-
"""
emission.math.calculator
========================

Pure, integer-only linear emission calculator.

Given the schedule, an entity's last accrual time and cumulative claimed
amount, and the current time, return how much the entity may claim now and
the accrual time to persist.

Rules
-----
- ``effective_now = min(now, end_time)``
- Final tick (``effective_now == end_time``): claimable is the full remainder
  ``allocation_per_entity - claimed_so_far``. The per-second rate is rounded
  down at configuration time, so the remainder carries the division dust and
  the entity ends the window with exactly its allocation.
- Otherwise ``claimable = rate * (effective_now - max(last, start_time))``,
  floored at zero when ``now`` precedes the window.

Arithmetic runs on Python ints (no wrap). The result is validated against the
uint128 storage width of ``Stream.claimed`` before it is returned, so a value
that could never be stored fails loudly with `AmountOverflow` instead of being
truncated later.
"""
from __future__ import annotations

from dataclasses import dataclass

from emission.errors import IncorrectClaimable
from emission.types import Amount, StreamConfig, Timestamp, to_u64, to_u128


@dataclass(frozen=True)
class Accrual:
    claimable: Amount
    accrual_time: Timestamp


def compute_claimable(
    config: StreamConfig,
    last_accrual_time: Timestamp,
    claimed_so_far: Amount,
    now: Timestamp,
) -> Accrual:
    effective_now = min(now, config.end_time)

    if effective_now == config.end_time:
        claimable = config.allocation_per_entity - claimed_so_far
        if claimable < 0:
            raise IncorrectClaimable(
                entity_id=None,
                claimed=claimed_so_far,
                claimable=claimable,
                allocation=config.allocation_per_entity,
            )
    else:
        effective_last = max(last_accrual_time, config.start_time)
        elapsed = effective_now - effective_last
        claimable = config.emission_rate_per_second * elapsed if elapsed > 0 else 0

    return Accrual(
        claimable=to_u128(claimable, "claimable"),
        accrual_time=to_u64(max(effective_now, 0), "accrual_time"),
    )


__all__ = ["Accrual", "compute_claimable"]
