from __future__ import annotations

"""
Financing Ledger — deposits, claims and the withdrawal deadline
---------------------------------------------------------------

Tracks four numbers against the schedule's ``total_allocation``:

    total_deposited   tokens pulled in through `deposit` (never above the allocation)
    total_claimed     tokens paid out to claimants (sum of every Stream.claimed)
    total_withdrawn   unclaimed tokens returned to the depositor after the deadline
    deadline          claim cutoff / withdrawal opening; 0 means "not set"

``total_claimed <= total_deposited`` is *expected* but not enforced here: a
shortfall is a funding failure that surfaces as a failed payout, not an
accounting error.

The ledger only does bookkeeping and rule checks. Moving tokens is the
caller's job (the contract facade pulls after `record_deposit` and pays after
`prepare_withdrawal` + `record_withdrawal`), keeping state changes ahead of external calls.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping

from emission.errors import (ExcessDeposit, InvalidAmount, InvalidNewDeadline,
                             InvariantError, PrematureWithdrawal,
                             WithdrawDisabled)
from emission.types import Amount, StreamConfig, Timestamp, to_u64, to_u256

log = logging.getLogger(__name__)

# Minimum gap between max(end_time, now) and any new deadline. Gives claimants
# two weeks to react before the depositor can withdraw.
DEADLINE_BUFFER_SECONDS: int = 14 * 24 * 60 * 60


@dataclass
class FinancingState:
    total_deposited: Amount = 0
    total_claimed: Amount = 0
    total_withdrawn: Amount = 0
    deadline: Timestamp = 0

    @property
    def has_deadline(self) -> bool:
        return self.deadline != 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Mapping[str, Any]) -> "FinancingState":
        return FinancingState(
            total_deposited=to_u256(int(d.get("total_deposited", 0)), "total_deposited"),
            total_claimed=to_u256(int(d.get("total_claimed", 0)), "total_claimed"),
            total_withdrawn=to_u256(int(d.get("total_withdrawn", 0)), "total_withdrawn"),
            deadline=to_u64(int(d.get("deadline", 0)), "deadline"),
        )


class FinancingLedger:
    def __init__(self, config: StreamConfig) -> None:
        self.config = config
        self.state = FinancingState()

    # --- load/save ---

    def dump(self) -> Dict[str, int]:
        return self.state.to_dict()

    def load(self, data: Mapping[str, Any]) -> None:
        self.state = FinancingState.from_dict(data)
        self.assert_consistent()

    # --- queries ---

    @property
    def total_deposited(self) -> Amount:
        return self.state.total_deposited

    @property
    def total_claimed(self) -> Amount:
        return self.state.total_claimed

    @property
    def deadline(self) -> Timestamp:
        return self.state.deadline

    def withdrawable(self) -> Amount:
        """Deposited funds neither paid to claimants nor already withdrawn (floored at 0)."""
        st = self.state
        left = st.total_deposited - st.total_claimed - st.total_withdrawn
        return left if left > 0 else 0

    def minimum_deadline(self, now: Timestamp) -> Timestamp:
        return max(self.config.end_time, now) + DEADLINE_BUFFER_SECONDS

    def is_past_deadline(self, now: Timestamp) -> bool:
        return self.state.has_deadline and now > self.state.deadline

    # --- mutations ---

    def record_deposit(self, amount: Amount) -> Amount:
        """Account for an incoming deposit; returns the new total."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmount(amount=amount)
        st = self.state
        if st.total_deposited + amount > self.config.total_allocation:
            raise ExcessDeposit(
                total_deposited=st.total_deposited,
                amount=amount,
                total_allocation=self.config.total_allocation,
            )
        st.total_deposited = to_u256(st.total_deposited + amount, "total_deposited")
        log.info("deposit recorded amount=%s total_deposited=%s", amount, st.total_deposited)
        return st.total_deposited

    def record_claimed(self, amount: Amount) -> Amount:
        if amount < 0:
            raise InvalidAmount(amount=amount)
        st = self.state
        st.total_claimed = to_u256(st.total_claimed + amount, "total_claimed")
        return st.total_claimed

    def prepare_withdrawal(self, now: Timestamp) -> Amount:
        """
        Check the withdrawal window and return the amount owed to the depositor.
        The amount is ``total_deposited - total_claimed`` less anything already
        withdrawn; tokens that reached the contract outside `deposit` are not
        counted.
        """
        st = self.state
        if not st.has_deadline:
            raise WithdrawDisabled()
        if now <= st.deadline:
            raise PrematureWithdrawal(now=now, deadline=st.deadline)
        return self.withdrawable()

    def record_withdrawal(self, amount: Amount) -> Amount:
        st = self.state
        st.total_withdrawn = to_u256(st.total_withdrawn + amount, "total_withdrawn")
        log.info("withdrawal recorded amount=%s total_withdrawn=%s", amount, st.total_withdrawn)
        return st.total_withdrawn

    def set_deadline(self, new_deadline: Timestamp, now: Timestamp) -> Timestamp:
        minimum = self.minimum_deadline(now)
        if new_deadline < minimum:
            raise InvalidNewDeadline(new_deadline=new_deadline, minimum=minimum)
        previous = self.state.deadline
        self.state.deadline = to_u64(int(new_deadline), "deadline")
        log.info("deadline updated previous=%s new=%s", previous, self.state.deadline)
        return previous

    # --- utilities ---

    def assert_consistent(self) -> None:
        if self.state.total_deposited > self.config.total_allocation:
            raise InvariantError(
                "total deposited above allocation",
                details={
                    "total_deposited": self.state.total_deposited,
                    "total_allocation": self.config.total_allocation,
                },
            )


__all__ = ["DEADLINE_BUFFER_SECONDS", "FinancingState", "FinancingLedger"]
