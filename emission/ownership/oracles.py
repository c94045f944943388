from __future__ import annotations

"""
External oracle interfaces consumed by the ownership resolvers, plus small
in-memory implementations used by tests, the CLI and local embedders.

The engine never implements ownership, delegation or custody itself. It only
asks three narrow questions:

  OwnershipOracle.owner_of(entity_id) -> address
  DelegationOracle.check_delegate_for_token(delegate, vault, contract, entity_id) -> bool
  CustodyModule.verify_claim(caller, entity_ids) -> None   (raise to refuse)

Custody modules are addressed by the caller, so the contract also needs a
`ModuleDirectory` mapping addresses to live module objects. Whether a module
is *trusted* is decided separately by the owner-managed registry in
`emission.access`.
"""

from typing import Dict, Mapping, Optional, Protocol, Sequence, Set, Tuple

from emission.errors import EmissionError
from emission.types import (Address, EntityId, normalize_address,
                            require_entity_id)


class OwnershipOracle(Protocol):
    def owner_of(self, entity_id: EntityId) -> Address: ...


class DelegationOracle(Protocol):
    def check_delegate_for_token(
        self, delegate: Address, vault: Address, contract: Address, entity_id: EntityId
    ) -> bool: ...


class CustodyModule(Protocol):
    def verify_claim(self, caller: Address, entity_ids: Sequence[EntityId]) -> Optional[bool]: ...


ModuleDirectory = Mapping[Address, CustodyModule]


# ────────────────────────────────────────────────────────────────────────────────
# In-memory implementations
# ────────────────────────────────────────────────────────────────────────────────


class UnknownEntity(EmissionError):
    code = "EMISSION_UNKNOWN_ENTITY"

    def __init__(self, *, entity_id: int) -> None:
        super().__init__("entity has no owner", details={"entity_id": int(entity_id)})


class StaticOwnership:
    """Owner lookup backed by a dict; `transfer` moves an entity."""

    def __init__(self, owners: Optional[Mapping[EntityId, Address]] = None) -> None:
        self._owners: Dict[EntityId, Address] = {}
        for eid, owner in (owners or {}).items():
            self._owners[require_entity_id(eid)] = normalize_address(owner)

    def owner_of(self, entity_id: EntityId) -> Address:
        owner = self._owners.get(entity_id)
        if owner is None:
            raise UnknownEntity(entity_id=entity_id)
        return owner

    def transfer(self, entity_id: EntityId, to: Address) -> None:
        self._owners[require_entity_id(entity_id)] = normalize_address(to)


class DelegationBook:
    """
    Delegations keyed by (delegate, vault). A delegation is either contract-wide
    (``entity_id=None``) or scoped to a single entity of that contract.
    """

    def __init__(self) -> None:
        self._all: Set[Tuple[Address, Address, Address]] = set()
        self._token: Set[Tuple[Address, Address, Address, EntityId]] = set()

    def delegate_for_contract(self, vault: Address, delegate: Address, contract: Address, value: bool = True) -> None:
        key = (normalize_address(delegate), normalize_address(vault), normalize_address(contract))
        if value:
            self._all.add(key)
        else:
            self._all.discard(key)

    def delegate_for_token(
        self, vault: Address, delegate: Address, contract: Address, entity_id: EntityId, value: bool = True
    ) -> None:
        key = (normalize_address(delegate), normalize_address(vault), normalize_address(contract), require_entity_id(entity_id))
        if value:
            self._token.add(key)
        else:
            self._token.discard(key)

    def check_delegate_for_token(
        self, delegate: Address, vault: Address, contract: Address, entity_id: EntityId
    ) -> bool:
        d, v, c = normalize_address(delegate), normalize_address(vault), normalize_address(contract)
        return (d, v, c) in self._all or (d, v, c, entity_id) in self._token


class ModuleRefused(EmissionError):
    code = "EMISSION_MODULE_REFUSED"


class AllowlistModule:
    """
    Custody module that vouches for (caller, entity) pairs it has been told
    about, e.g. a staking vault holding entities on behalf of depositors.
    Refuses by raising `ModuleRefused`.
    """

    def __init__(self, custody: Optional[Mapping[EntityId, Address]] = None) -> None:
        self._custody: Dict[EntityId, Address] = {}
        self.calls = 0
        for eid, holder in (custody or {}).items():
            self.assign(eid, holder)

    def assign(self, entity_id: EntityId, holder: Address) -> None:
        self._custody[require_entity_id(entity_id)] = normalize_address(holder)

    def verify_claim(self, caller: Address, entity_ids: Sequence[EntityId]) -> None:
        self.calls += 1
        c = normalize_address(caller)
        for eid in entity_ids:
            if self._custody.get(eid) != c:
                raise ModuleRefused("caller does not hold entity", details={"entity_id": eid, "caller": c})


__all__ = [
    "OwnershipOracle",
    "DelegationOracle",
    "CustodyModule",
    "ModuleDirectory",
    "UnknownEntity",
    "StaticOwnership",
    "DelegationBook",
    "ModuleRefused",
    "AllowlistModule",
]
