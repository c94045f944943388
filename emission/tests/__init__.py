from __future__ import annotations
"""
Emission test suite package.

Stable addresses and a small builder shared by the fixtures in conftest.py and
by the hypothesis tests (which cannot take function-scoped fixtures).

The default deployment mirrors the walkthrough window used throughout the
tests: ``start_time=2, end_time=12, allocation_per_entity=10`` (1 token/s),
four entities, Alice owning 1 and 2 and Bob owning 3 and 4.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from emission.contract import EmissionStream
from emission.ownership import AllowlistModule, DelegationBook, StaticOwnership
from emission.token import InMemoryToken
from emission.types import ManualClock, StreamConfig


def addr(n: int) -> str:
    """Deterministic 20-byte address for small integers."""
    return "0x" + f"{n:040x}"


OWNER = addr(0xA1)
DEPOSITOR = addr(0xD1)
OPERATOR = addr(0x0B)
CONTRACT = addr(0xC0)
MODULE = addr(0x30)
ALICE = addr(0x11)
BOB = addr(0x22)
CAROL = addr(0x33)
DAVE = addr(0x44)
STRANGER = addr(0x99)


@dataclass
class Deployment:
    stream: EmissionStream
    token: InMemoryToken
    clock: ManualClock
    ownership: StaticOwnership
    delegation: DelegationBook
    module: AllowlistModule
    modules: Dict[str, object] = field(default_factory=dict)


def build(
    *,
    start_time: int = 2,
    end_time: int = 12,
    allocation_per_entity: int = 10,
    entity_count: int = 4,
    owners: Optional[Dict[int, str]] = None,
    now: int = 0,
    fund: bool = False,
) -> Deployment:
    config = StreamConfig.create(
        start_time=start_time,
        end_time=end_time,
        allocation_per_entity=allocation_per_entity,
        entity_count=entity_count,
    )
    clock = ManualClock(now=now)
    token = InMemoryToken()
    token.mint(DEPOSITOR, config.total_allocation)
    token.approve(DEPOSITOR, CONTRACT, config.total_allocation)

    ownership = StaticOwnership(owners if owners is not None else {1: ALICE, 2: ALICE, 3: BOB, 4: BOB})
    delegation = DelegationBook()
    module = AllowlistModule()
    modules: Dict[str, object] = {MODULE: module}

    stream = EmissionStream(
        config,
        owner=OWNER,
        depositor=DEPOSITOR,
        operator=OPERATOR,
        contract_address=CONTRACT,
        token=token,
        ownership=ownership,
        delegation=delegation,
        modules=modules,  # type: ignore[arg-type]
        clock=clock,
    )
    if fund:
        stream.deposit(DEPOSITOR, config.total_allocation)
    return Deployment(stream, token, clock, ownership, delegation, module, modules)


__all__ = [
    "addr",
    "OWNER",
    "DEPOSITOR",
    "OPERATOR",
    "CONTRACT",
    "MODULE",
    "ALICE",
    "BOB",
    "CAROL",
    "DAVE",
    "STRANGER",
    "Deployment",
    "build",
]
