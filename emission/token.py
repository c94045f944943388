# -*- coding: utf-8 -*-
"""
emission.token
==============

The payout token as seen by the emission contract, and a deterministic
in-memory fungible token used by tests, the CLI and local embedders.

Interface consumed by the contract (`PayoutToken`)
--------------------------------------------------
    balance_of(account) -> int
    transfer(sender, to, amount) -> None            sender pays
    transfer_from(spender, owner, to, amount) -> None  allowance-based pull
    begin() / commit() / revert()                   nested checkpoints

Both transfers raise an `emission.errors.TokenError` on failure; the contract
never inspects return values. The checkpoint methods are mandatory: the
contract opens a checkpoint around every call and reverts it on failure, so a
payout that already landed is taken back when a later step of the same call
fails. `EmissionStream` refuses tokens that do not provide them.

`InMemoryToken`
---------------
- Integer balances and allowances (no floats), U256-checked.
- Optional *receive hooks*: ``token.on_receive(addr, fn)`` registers a callable
  invoked as ``fn(token, sender, amount)`` after a transfer credits `addr`.
  This models recipients that run code on receipt and is how the reentrancy
  tests drive a malicious payout target back into the claim path.
- Checkpoints journal the prior value of each balance and allowance on first
  write, so reverting costs O(entries touched).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Protocol, Tuple

from emission.errors import (InsufficientAllowance, InsufficientBalance,
                             InvalidAmount)
from emission.types import Address, normalize_address, to_u256

log = logging.getLogger(__name__)

ReceiveHook = Callable[["InMemoryToken", Address, int], None]

CHECKPOINT_METHODS = ("begin", "commit", "revert")


class PayoutToken(Protocol):
    def balance_of(self, account: Address) -> int: ...

    def transfer(self, sender: Address, to: Address, amount: int) -> None: ...

    def transfer_from(self, spender: Address, owner: Address, to: Address, amount: int) -> None: ...

    def begin(self) -> None: ...

    def commit(self) -> None: ...

    def revert(self) -> None: ...


def supports_checkpoints(token: object) -> bool:
    return all(callable(getattr(token, name, None)) for name in CHECKPOINT_METHODS)


@dataclass
class _Frame:
    total_supply: int
    transfers: int
    balances: Dict[Address, Optional[int]] = field(default_factory=dict)
    allowances: Dict[Tuple[Address, Address], Optional[int]] = field(default_factory=dict)


class InMemoryToken:
    def __init__(self, symbol: str = "ANM", decimals: int = 18) -> None:
        self.symbol = symbol
        self.decimals = int(decimals)
        self.total_supply = 0
        self._balances: Dict[Address, int] = {}
        self._allowances: Dict[Tuple[Address, Address], int] = {}
        self._hooks: Dict[Address, ReceiveHook] = {}
        self._journal: List[_Frame] = []
        self.transfers: List[Tuple[Address, Address, int]] = []

    # ---- Queries ------------------------------------------------------------------

    def balance_of(self, account: Address) -> int:
        return self._balances.get(normalize_address(account), 0)

    def allowance(self, owner: Address, spender: Address) -> int:
        return self._allowances.get((normalize_address(owner), normalize_address(spender)), 0)

    # ---- Supply ---------------------------------------------------------------------

    def mint(self, to: Address, amount: int) -> None:
        _require_amount(amount)
        a = normalize_address(to)
        self.total_supply = to_u256(self.total_supply + amount, "total_supply")
        self._set_balance(a, self._balances.get(a, 0) + amount)

    # ---- Transfers ------------------------------------------------------------------

    def approve(self, owner: Address, spender: Address, amount: int) -> None:
        if amount < 0:
            raise InvalidAmount(amount=amount)
        self._set_allowance((normalize_address(owner), normalize_address(spender)), to_u256(amount, "allowance"))

    def transfer(self, sender: Address, to: Address, amount: int) -> None:
        self._move(normalize_address(sender), normalize_address(to), amount)

    def transfer_from(self, spender: Address, owner: Address, to: Address, amount: int) -> None:
        o, s = normalize_address(owner), normalize_address(spender)
        current = self._allowances.get((o, s), 0)
        if current < amount:
            raise InsufficientAllowance(owner=o, spender=s, allowance=current, amount=amount)
        self._set_allowance((o, s), current - amount)
        self._move(o, normalize_address(to), amount)

    # ---- Hooks ------------------------------------------------------------------------

    def on_receive(self, account: Address, hook: ReceiveHook) -> None:
        self._hooks[normalize_address(account)] = hook

    # ---- Checkpoints --------------------------------------------------------------------

    def begin(self) -> None:
        self._journal.append(_Frame(total_supply=self.total_supply, transfers=len(self.transfers)))

    def commit(self) -> None:
        frame = self._journal.pop()
        if self._journal:
            parent = self._journal[-1]
            for a, prior in frame.balances.items():
                parent.balances.setdefault(a, prior)
            for k, prior_allowance in frame.allowances.items():
                parent.allowances.setdefault(k, prior_allowance)

    def revert(self) -> None:
        frame = self._journal.pop()
        for a, prior in frame.balances.items():
            if prior is None:
                self._balances.pop(a, None)
            else:
                self._balances[a] = prior
        for k, prior_allowance in frame.allowances.items():
            if prior_allowance is None:
                self._allowances.pop(k, None)
            else:
                self._allowances[k] = prior_allowance
        self.total_supply = frame.total_supply
        del self.transfers[frame.transfers:]

    # ---- internal ----------------------------------------------------------------------

    def _set_balance(self, account: Address, value: int) -> None:
        if self._journal:
            self._journal[-1].balances.setdefault(account, self._balances.get(account))
        self._balances[account] = value

    def _set_allowance(self, key: Tuple[Address, Address], value: int) -> None:
        if self._journal:
            self._journal[-1].allowances.setdefault(key, self._allowances.get(key))
        self._allowances[key] = value

    def _move(self, frm: Address, to: Address, amount: int) -> None:
        _require_amount(amount)
        bal = self._balances.get(frm, 0)
        if bal < amount:
            raise InsufficientBalance(account=frm, balance=bal, amount=amount)
        self._set_balance(frm, bal - amount)
        self._set_balance(to, self._balances.get(to, 0) + amount)
        self.transfers.append((frm, to, amount))
        log.debug("transfer from=%s to=%s amount=%s", frm, to, amount)
        hook = self._hooks.get(to)
        if hook is not None:
            hook(self, frm, amount)


def _require_amount(amount: int) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise InvalidAmount(amount=amount)


__all__ = ["PayoutToken", "ReceiveHook", "InMemoryToken", "supports_checkpoints"]
