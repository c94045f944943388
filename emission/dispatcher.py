# -*- coding: utf-8 -*-
"""
emission.dispatcher
===================

Claim dispatch: turn one claim request into ledger updates and payouts.

Flow (single call, all-or-nothing together with the facade's atomic scope):

1. The chosen `OwnershipResolver` authorizes the caller for every id and
   names the payout address per id. Any refusal aborts before state changes.
2. Each id is accrued on the `StreamLedger` in request order. A repeated id in
   the same batch accrues 0 the second time (same instant).
3. The batch total is added to the financing ledger's ``total_claimed``.
4. The contract balance must cover the batch total (`InsufficientBalance`
   otherwise), checked before the first transfer.
5. Amounts are aggregated per recipient (first-seen order) and only then paid
   through the token, one transfer per recipient with a non-zero amount.

All bookkeeping finishes before the first token call, so a recipient that runs
code on receipt and re-enters the contract observes the updated ledger and
can only claim what accrued since.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from emission.errors import InsufficientBalance
from emission.ledger import FinancingLedger, StreamLedger
from emission.ownership import OwnershipResolver
from emission.token import PayoutToken
from emission.types import Address, Amount, EntityId, Timestamp

log = logging.getLogger(__name__)


@dataclass
class ClaimResult:
    """Per-id breakdown of one claim call."""
    entity_ids: List[EntityId] = field(default_factory=list)
    amounts: List[Amount] = field(default_factory=list)
    recipients: List[Address] = field(default_factory=list)
    total: Amount = 0
    # recipient -> aggregated amount (dicts keep insertion order)
    payouts: Dict[Address, Amount] = field(default_factory=dict)
    path: str = "direct"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_ids": list(self.entity_ids),
            "amounts": list(self.amounts),
            "recipients": list(self.recipients),
            "total": self.total,
            "payouts": dict(self.payouts),
            "path": self.path,
        }


class ClaimDispatcher:
    def __init__(
        self,
        streams: StreamLedger,
        financing: FinancingLedger,
        token: PayoutToken,
        contract_address: Address,
    ) -> None:
        self.streams = streams
        self.financing = financing
        self.token = token
        self.contract_address = contract_address

    def dispatch(
        self,
        resolver: OwnershipResolver,
        caller: Address,
        entity_ids: Sequence[EntityId],
        now: Timestamp,
    ) -> ClaimResult:
        resolution = resolver.resolve(caller, entity_ids)

        result = ClaimResult(path=resolver.path)
        for eid, recipient in resolution:
            amount = self.streams.accrue(eid, now)
            result.entity_ids.append(eid)
            result.amounts.append(amount)
            result.recipients.append(recipient)
            result.total += amount
            if amount:
                result.payouts[recipient] = result.payouts.get(recipient, 0) + amount

        self.financing.record_claimed(result.total)

        # Refuse before the first transfer if the batch cannot be covered.
        available = self.token.balance_of(self.contract_address)
        if available < result.total:
            raise InsufficientBalance(account=self.contract_address, balance=available, amount=result.total)

        for recipient, amount in result.payouts.items():
            self.token.transfer(self.contract_address, recipient, amount)

        log.debug(
            "dispatched claim path=%s caller=%s ids=%s total=%s",
            result.path, caller, result.entity_ids, result.total,
        )
        return result


__all__ = ["ClaimResult", "ClaimDispatcher"]
