# -*- coding: utf-8 -*-
"""
emission.access
===============

Explicit role holder and guard functions for the emission contract.

Three roles, each a single address:

- **owner**: administrative authority. Transfer is two-step: the current owner
  nominates a pending owner (`transfer_ownership`), who must then call
  `accept_ownership`. Nominating the zero address cancels a pending transfer.
- **depositor**: the only account allowed to `deposit` / `withdraw`.
  Reassignable by the owner; never the zero address.
- **operator**: may pause (globally and per stream) but never unpause.
  Reassignable by the owner; the zero address means "no operator".

The module registry (trusted custodial-module addresses) lives here too since
only the owner can change it.

Guards raise `OnlyOwner` / `OnlyDepositor` / `OnlyOwnerOrOperator` /
`OnlyPendingOwner`. Setters return the previous value so the caller can emit a
notification; this component does not emit anything itself.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Set, Tuple

from emission.errors import (OnlyDepositor, OnlyOwner, OnlyOwnerOrOperator,
                             OnlyPendingOwner)
from emission.types import (ZERO_ADDRESS, Address, normalize_address,
                            require_nonzero_address)

log = logging.getLogger(__name__)


@dataclass
class Roles:
    owner: Address
    depositor: Address
    operator: Address = ZERO_ADDRESS
    pending_owner: Address = ZERO_ADDRESS

    def to_dict(self) -> Dict[str, str]:
        return {
            "owner": self.owner,
            "depositor": self.depositor,
            "operator": self.operator,
            "pending_owner": self.pending_owner,
        }


class AccessControl:
    def __init__(self, *, owner: Address, depositor: Address, operator: Address = ZERO_ADDRESS) -> None:
        self._roles = Roles(
            owner=require_nonzero_address(owner, "owner"),
            depositor=require_nonzero_address(depositor, "depositor"),
            operator=normalize_address(operator),
        )
        self._modules: Set[Address] = set()

    # ---- Queries ----------------------------------------------------------------

    @property
    def owner(self) -> Address:
        return self._roles.owner

    @property
    def depositor(self) -> Address:
        return self._roles.depositor

    @property
    def operator(self) -> Address:
        return self._roles.operator

    @property
    def pending_owner(self) -> Address:
        return self._roles.pending_owner

    def roles(self) -> Roles:
        r = self._roles
        return Roles(owner=r.owner, depositor=r.depositor, operator=r.operator, pending_owner=r.pending_owner)

    def is_module(self, module: Address) -> bool:
        return normalize_address(module) in self._modules

    def modules(self) -> List[Address]:
        return sorted(self._modules)

    # ---- Guards -----------------------------------------------------------------

    def require_owner(self, caller: Address) -> Address:
        c = normalize_address(caller)
        if c != self._roles.owner:
            raise OnlyOwner(caller=c)
        return c

    def require_depositor(self, caller: Address) -> Address:
        c = normalize_address(caller)
        if c != self._roles.depositor:
            raise OnlyDepositor(caller=c)
        return c

    def require_owner_or_operator(self, caller: Address) -> Address:
        c = normalize_address(caller)
        if c == self._roles.owner:
            return c
        if self._roles.operator != ZERO_ADDRESS and c == self._roles.operator:
            return c
        raise OnlyOwnerOrOperator(caller=c)

    def require_pending_owner(self, caller: Address) -> Address:
        c = normalize_address(caller)
        if self._roles.pending_owner == ZERO_ADDRESS or c != self._roles.pending_owner:
            raise OnlyPendingOwner(caller=c)
        return c

    # ---- Mutations (owner only unless noted) --------------------------------------

    def transfer_ownership(self, caller: Address, new_owner: Address) -> Address:
        """Nominate `new_owner`; returns the new pending owner."""
        self.require_owner(caller)
        self._roles.pending_owner = normalize_address(new_owner)
        log.info("ownership transfer started owner=%s pending=%s", self._roles.owner, self._roles.pending_owner)
        return self._roles.pending_owner

    def accept_ownership(self, caller: Address) -> Tuple[Address, Address]:
        """Pending owner only. Returns (previous, new)."""
        c = self.require_pending_owner(caller)
        previous = self._roles.owner
        self._roles.owner = c
        self._roles.pending_owner = ZERO_ADDRESS
        log.info("ownership transferred previous=%s new=%s", previous, c)
        return previous, c

    def update_depositor(self, caller: Address, depositor: Address) -> Address:
        self.require_owner(caller)
        new = require_nonzero_address(depositor, "depositor")
        previous = self._roles.depositor
        self._roles.depositor = new
        log.info("depositor updated previous=%s new=%s", previous, new)
        return previous

    def update_operator(self, caller: Address, operator: Address) -> Address:
        self.require_owner(caller)
        new = normalize_address(operator)
        previous = self._roles.operator
        self._roles.operator = new
        log.info("operator updated previous=%s new=%s", previous, new)
        return previous

    def update_module(self, caller: Address, module: Address, enabled: bool) -> bool:
        """Enable/disable a custodial module. Returns the previous flag."""
        self.require_owner(caller)
        m = require_nonzero_address(module, "module")
        previous = m in self._modules
        if enabled:
            self._modules.add(m)
        else:
            self._modules.discard(m)
        log.info("module updated module=%s enabled=%s", m, bool(enabled))
        return previous

    # ---- load/save ----------------------------------------------------------------

    def dump(self) -> Dict[str, Any]:
        return {"roles": self._roles.to_dict(), "modules": sorted(self._modules)}

    def load(self, data: Mapping[str, Any]) -> None:
        r = data["roles"]
        self._roles = Roles(
            owner=require_nonzero_address(r["owner"], "owner"),
            depositor=require_nonzero_address(r["depositor"], "depositor"),
            operator=normalize_address(r.get("operator", ZERO_ADDRESS)),
            pending_owner=normalize_address(r.get("pending_owner", ZERO_ADDRESS)),
        )
        self._modules = {require_nonzero_address(m, "module") for m in data.get("modules", [])}


__all__ = ["Roles", "AccessControl"]
