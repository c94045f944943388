# -*- coding: utf-8 -*-
"""
emission.contract
=================

`EmissionStream` is the single entry point of a linear emission deployment.
It wires the components together and gives every public call the same
shape:

    with self._atomic():
        guards (access, lifecycle, time window)
        effects (ledgers, roles, lifecycle)
        interactions (token transfers)
        one event

Atomicity
---------
Each call runs inside an atomic scope. On entry the scope opens a checkpoint on
the stream ledger, the payout token and the event log, and copies the small
fixed-size state (financing totals, lifecycle, roles and module registry). Any
exception reverts the checkpoints, restores the copies and re-raises, so a
failed call leaves no trace, token payouts included. Checkpoints journal only
what a call touches. Metrics and event listeners run once the outermost scope
commits. Scopes nest: a payout recipient that re-enters the contract
from a token receive hook gets its own scope inside the outer one.

A re-entrant `threading.RLock` serialises calls from different threads while
still allowing the same-thread re-entry above.

Callers are explicit: every mutating method takes the calling address first.
Time comes from the injected clock.

Example
-------
    clock = ManualClock(now=0)
    stream = EmissionStream(
        StreamConfig.create(start_time=2, end_time=12, allocation_per_entity=10, entity_count=3),
        owner=OWNER, depositor=DEPOSITOR, contract_address=CONTRACT,
        token=token, ownership=owners, clock=clock,
    )
    stream.deposit(DEPOSITOR, 30)
    clock.set(5)
    stream.claim(ALICE, [1]).total   # 3
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import (Any, Callable, Dict, Iterator, List, Mapping, Optional,
                    Sequence, Tuple)

from emission import metrics
from emission.access import AccessControl, Roles
from emission.dispatcher import ClaimDispatcher, ClaimResult
from emission.errors import (ConfigError, DeadlineExceeded, EmissionError,
                             InvariantError, NotStarted)
from emission.events import (Claimed, DeadlineUpdated, Deposited,
                             DepositorUpdated, EmergencyExit, EventLog, Frozen,
                             ModuleUpdated, OperatorUpdated,
                             OwnershipTransferred, OwnershipTransferStarted,
                             Paused, StreamsPaused, StreamsUnpaused, Unpaused,
                             Withdrawn)
from emission.ledger import FinancingLedger, FinancingState, Stream, StreamLedger
from emission.lifecycle import Lifecycle, LifecycleState
from emission.ownership import (DelegatedResolver, DelegationBook,
                                DelegationOracle, DirectResolver,
                                ModuleCustodiedResolver, ModuleDirectory,
                                OwnershipOracle, OwnershipResolver)
from emission.token import PayoutToken, supports_checkpoints
from emission.types import (ZERO_ADDRESS, Address, Amount, Clock, EntityId,
                            StreamConfig, SystemClock, Timestamp,
                            normalize_address, require_nonzero_address)

log = logging.getLogger(__name__)


class EmissionStream:
    def __init__(
        self,
        config: StreamConfig,
        *,
        owner: Address,
        depositor: Address,
        contract_address: Address,
        token: PayoutToken,
        ownership: OwnershipOracle,
        operator: Address = ZERO_ADDRESS,
        delegation: Optional[DelegationOracle] = None,
        modules: Optional[ModuleDirectory] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = config
        self.contract_address = require_nonzero_address(contract_address, "contract_address")
        if not supports_checkpoints(token):
            raise ConfigError(
                "payout token must provide begin/commit/revert checkpoints",
                details={"token": type(token).__name__},
            )
        self.token = token
        self.clock: Clock = clock or SystemClock()
        self.events = EventLog()

        self._access = AccessControl(owner=owner, depositor=depositor, operator=operator)
        self._lifecycle = Lifecycle(self._access)
        self._streams = StreamLedger(config)
        self._financing = FinancingLedger(config)
        self._dispatcher = ClaimDispatcher(self._streams, self._financing, token, self.contract_address)

        self._direct = DirectResolver(ownership)
        self._delegated = DelegatedResolver(ownership, delegation or DelegationBook(), self.contract_address)
        self._modules: ModuleDirectory = modules if modules is not None else {}

        self._lock = threading.RLock()
        self._depth = 0
        self._on_commit: List[Callable[[], None]] = []

    @classmethod
    def from_config(
        cls,
        cfg: Any,
        *,
        token: PayoutToken,
        ownership: OwnershipOracle,
        delegation: Optional[DelegationOracle] = None,
        modules: Optional[ModuleDirectory] = None,
        clock: Optional[Clock] = None,
    ) -> "EmissionStream":
        """Build from an `emission.config.EmissionConfig`."""
        cfg.validate()
        return cls(
            cfg.stream_config(),
            owner=cfg.roles.owner,
            depositor=cfg.roles.depositor,
            operator=cfg.roles.operator,
            contract_address=cfg.contract_address,
            token=token,
            ownership=ownership,
            delegation=delegation,
            modules=modules,
            clock=clock,
        )

    # ────────────────────────────────────────────────────────────────────────
    # Claims
    # ────────────────────────────────────────────────────────────────────────

    def claim_single(self, caller: Address, entity_id: EntityId) -> Amount:
        """Direct claim for one entity; returns the amount paid."""
        return self.claim(caller, [entity_id]).total

    def claim(self, caller: Address, entity_ids: Sequence[EntityId]) -> ClaimResult:
        """Direct claim: the caller owns every entity and is paid."""
        return self._claim(lambda: self._direct, caller, entity_ids)

    def claim_delegated(self, caller: Address, entity_ids: Sequence[EntityId]) -> ClaimResult:
        """Delegated claim: the caller acts for the owners, who are paid."""
        return self._claim(lambda: self._delegated, caller, entity_ids)

    def claim_via_module(self, caller: Address, module: Address, entity_ids: Sequence[EntityId]) -> ClaimResult:
        """Custodial claim: a registered module vouches for the caller, who is paid."""

        def make() -> OwnershipResolver:
            return ModuleCustodiedResolver(module, is_registered=self._access.is_module, directory=self._modules)

        return self._claim(make, caller, entity_ids, module=module)

    def peek_claimable(self, entity_id: EntityId) -> Amount:
        with self._lock:
            return self._streams.peek_claimable(entity_id, self._now())

    def _claim(
        self,
        make_resolver: Callable[[], OwnershipResolver],
        caller: Address,
        entity_ids: Sequence[EntityId],
        module: Optional[Address] = None,
    ) -> ClaimResult:
        with self._atomic():
            now = self._now()
            self._lifecycle.require_active()
            self._require_claim_window(now)
            resolver = make_resolver()
            result = self._dispatcher.dispatch(resolver, caller, entity_ids, now)
            self.events.emit(Claimed(
                ts=now,
                claimant=normalize_address(caller),
                path=result.path,
                entity_ids=list(result.entity_ids),
                amounts=list(result.amounts),
                recipients=list(result.recipients),
                total=result.total,
                module=normalize_address(module) if module is not None else None,
            ))
            self._after_commit(lambda: metrics.record_claim(result.path, result.total))
        log.info("claimed path=%s caller=%s ids=%d total=%s", result.path, caller, len(result.entity_ids), result.total)
        return result

    def _require_claim_window(self, now: Timestamp) -> None:
        if now < self.config.start_time:
            raise NotStarted(now=now, start_time=self.config.start_time)
        if self._financing.is_past_deadline(now):
            raise DeadlineExceeded(now=now, deadline=self._financing.deadline)

    # ────────────────────────────────────────────────────────────────────────
    # Financing
    # ────────────────────────────────────────────────────────────────────────

    def deposit(self, caller: Address, amount: Amount) -> Amount:
        """Pull `amount` from the depositor; returns the new total deposited."""
        with self._atomic():
            depositor = self._access.require_depositor(caller)
            self._lifecycle.require_active()
            total = self._financing.record_deposit(amount)
            self.token.transfer_from(self.contract_address, depositor, self.contract_address, amount)
            self.events.emit(Deposited(ts=self._now(), depositor=depositor, amount=amount, total_deposited=total))
            self._after_commit(lambda: metrics.record_financing("deposit", amount))
        return total

    def withdraw(self, caller: Address) -> Amount:
        """Return unclaimed deposits to the depositor once the deadline has passed."""
        with self._atomic():
            depositor = self._access.require_depositor(caller)
            self._lifecycle.require_active()
            now = self._now()
            amount = self._financing.prepare_withdrawal(now)
            self._financing.record_withdrawal(amount)
            if amount:
                self.token.transfer(self.contract_address, depositor, amount)
            self.events.emit(Withdrawn(ts=now, depositor=depositor, amount=amount))
            self._after_commit(lambda: metrics.record_financing("withdraw", amount))
        return amount

    def update_deadline(self, caller: Address, new_deadline: Timestamp) -> Timestamp:
        """Set the claim cutoff; returns the previous deadline (0 if unset)."""
        with self._atomic():
            self._access.require_owner(caller)
            now = self._now()
            previous = self._financing.set_deadline(new_deadline, now)
            self.events.emit(DeadlineUpdated(ts=now, previous=previous, deadline=self._financing.deadline))
        return previous

    # ────────────────────────────────────────────────────────────────────────
    # Roles & modules
    # ────────────────────────────────────────────────────────────────────────

    def update_depositor(self, caller: Address, depositor: Address) -> Address:
        with self._atomic():
            previous = self._access.update_depositor(caller, depositor)
            self.events.emit(DepositorUpdated(ts=self._now(), previous=previous, depositor=self._access.depositor))
        return previous

    def update_operator(self, caller: Address, operator: Address) -> Address:
        with self._atomic():
            previous = self._access.update_operator(caller, operator)
            self.events.emit(OperatorUpdated(ts=self._now(), previous=previous, operator=self._access.operator))
        return previous

    def update_module(self, caller: Address, module: Address, enabled: bool) -> bool:
        with self._atomic():
            previous = self._access.update_module(caller, module, enabled)
            self.events.emit(ModuleUpdated(ts=self._now(), module=normalize_address(module), enabled=bool(enabled)))
        return previous

    def transfer_ownership(self, caller: Address, new_owner: Address) -> Address:
        with self._atomic():
            pending = self._access.transfer_ownership(caller, new_owner)
            self.events.emit(OwnershipTransferStarted(ts=self._now(), owner=self._access.owner, pending_owner=pending))
        return pending

    def accept_ownership(self, caller: Address) -> Tuple[Address, Address]:
        with self._atomic():
            previous, new = self._access.accept_ownership(caller)
            self.events.emit(OwnershipTransferred(ts=self._now(), previous=previous, owner=new))
        return previous, new

    # ────────────────────────────────────────────────────────────────────────
    # Per-stream pause
    # ────────────────────────────────────────────────────────────────────────

    def pause_streams(self, caller: Address, entity_ids: Sequence[EntityId]) -> None:
        with self._atomic():
            sender = self._access.require_owner_or_operator(caller)
            ids = self._streams.set_paused(entity_ids, True)
            self.events.emit(StreamsPaused(ts=self._now(), sender=sender, entity_ids=ids))
            self._after_commit(lambda: metrics.set_paused_streams(self._streams.paused_count()))

    def unpause_streams(self, caller: Address, entity_ids: Sequence[EntityId]) -> None:
        with self._atomic():
            sender = self._access.require_owner(caller)
            ids = self._streams.set_paused(entity_ids, False)
            self.events.emit(StreamsUnpaused(ts=self._now(), sender=sender, entity_ids=ids))
            self._after_commit(lambda: metrics.set_paused_streams(self._streams.paused_count()))

    # ────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ────────────────────────────────────────────────────────────────────────

    def pause(self, caller: Address) -> None:
        with self._atomic():
            sender = self._lifecycle.pause(caller)
            self.events.emit(Paused(ts=self._now(), sender=sender))
            self._after_commit(lambda: metrics.record_transition(LifecycleState.PAUSED.value))

    def unpause(self, caller: Address) -> None:
        with self._atomic():
            sender = self._lifecycle.unpause(caller)
            self.events.emit(Unpaused(ts=self._now(), sender=sender))
            self._after_commit(lambda: metrics.record_transition(LifecycleState.ACTIVE.value))

    def freeze(self, caller: Address) -> Timestamp:
        with self._atomic():
            frozen_at = self._lifecycle.freeze(caller, self._now())
            self.events.emit(Frozen(ts=frozen_at, sender=normalize_address(caller)))
            self._after_commit(lambda: metrics.record_transition(LifecycleState.FROZEN.value))
        return frozen_at

    def emergency_exit(self, caller: Address, receiver: Address) -> Amount:
        """Frozen only: sweep the contract's whole token balance to `receiver`."""
        with self._atomic():
            self._access.require_owner(caller)
            self._lifecycle.require_frozen()
            to = require_nonzero_address(receiver, "receiver")
            amount = self.token.balance_of(self.contract_address)
            if amount:
                self.token.transfer(self.contract_address, to, amount)
            self.events.emit(EmergencyExit(ts=self._now(), receiver=to, amount=amount))
            self._after_commit(lambda: metrics.record_financing("emergency_exit", amount))
        log.warning("emergency exit receiver=%s amount=%s", to, amount)
        return amount

    # ────────────────────────────────────────────────────────────────────────
    # Views
    # ────────────────────────────────────────────────────────────────────────

    def stream(self, entity_id: EntityId) -> Stream:
        return self._streams.get(entity_id)

    def financing(self) -> FinancingState:
        st = self._financing.state
        return FinancingState(
            total_deposited=st.total_deposited,
            total_claimed=st.total_claimed,
            total_withdrawn=st.total_withdrawn,
            deadline=st.deadline,
        )

    def state(self) -> LifecycleState:
        return self._lifecycle.state

    def is_paused(self) -> bool:
        return self._lifecycle.is_paused()

    def roles(self) -> Roles:
        return self._access.roles()

    def is_module(self, module: Address) -> bool:
        return self._access.is_module(module)

    def dump(self) -> Dict[str, Any]:
        """JSON-friendly picture of the whole deployment (see `emission inspect`)."""
        with self._lock:
            lifecycle = self._lifecycle.dump()
            lifecycle["state"] = self._lifecycle.state.value
            return {
                "config": self.config.to_dict(),
                "contract_address": self.contract_address,
                "now": self._now(),
                "lifecycle": lifecycle,
                "access": self._access.dump(),
                "financing": self._financing.dump(),
                "streams": self._streams.dump()["streams"],
                "token_balance": self.token.balance_of(self.contract_address),
                "events": len(self.events),
            }

    def assert_consistent(self) -> None:
        """Raise `InvariantError` if the ledgers disagree."""
        with self._lock:
            self._streams.assert_consistent()
            self._financing.assert_consistent()
            ledger_sum = self._streams.claimed_total()
            if ledger_sum != self._financing.total_claimed:
                raise InvariantError(
                    "stream ledger and financing ledger disagree",
                    details={"ledger_sum": ledger_sum, "total_claimed": self._financing.total_claimed},
                )

    # ────────────────────────────────────────────────────────────────────────
    # Internals
    # ────────────────────────────────────────────────────────────────────────

    def _now(self) -> Timestamp:
        return int(self.clock.now())

    def _after_commit(self, fn: Callable[[], None]) -> None:
        """Run `fn` once the outermost atomic scope has committed."""
        self._on_commit.append(fn)

    def _snapshot(self) -> Dict[str, Any]:
        return {
            "financing": self._financing.dump(),
            "lifecycle": self._lifecycle.dump(),
            "access": self._access.dump(),
            "on_commit": len(self._on_commit),
        }

    def _restore(self, snap: Mapping[str, Any]) -> None:
        self._financing.load(snap["financing"])
        self._lifecycle.load(snap["lifecycle"])
        self._access.load(snap["access"])
        del self._on_commit[snap["on_commit"]:]

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        with self._lock:
            snap = self._snapshot()
            self._streams.begin()
            self.token.begin()
            self.events.begin()
            self._depth += 1
            try:
                yield
            except Exception as e:
                self.events.revert()
                self.token.revert()
                self._streams.revert()
                self._restore(snap)
                if self._depth == 1 and isinstance(e, EmissionError):
                    metrics.record_failure(e.code)
                    log.debug("call rejected: %s", e)
                raise
            else:
                self._streams.commit()
                self.token.commit()
                self.events.commit()
                if self._depth == 1:
                    pending, self._on_commit = self._on_commit, []
                    for fn in pending:
                        fn()
            finally:
                self._depth -= 1


__all__ = ["EmissionStream"]
