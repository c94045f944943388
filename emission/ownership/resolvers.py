from __future__ import annotations

"""
Ownership resolvers — who may claim for entity X, and who gets paid.

Each strategy turns ``(caller, entity_ids)`` into a list of
``(entity_id, payout_address)`` pairs in request order, or raises:

  DirectResolver          caller == owner_of(id) for every id    → pay caller
  DelegatedResolver       caller is a delegate of owner_of(id)   → pay owner_of(id)
  ModuleCustodiedResolver a registered module vouches for caller → pay caller

A request must name at least one id (`EmptyArray`). Duplicate ids are passed
through untouched; the stream ledger makes the repeat worth 0.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, List, Sequence, Tuple

from emission.errors import (EmissionError, InvalidDelegate, InvalidOwner,
                             ModuleCheckFailed, UnregisteredModule)
from emission.ownership.oracles import (DelegationOracle, ModuleDirectory,
                                        OwnershipOracle)
from emission.types import (Address, EntityId, normalize_address,
                            require_entity_ids, require_nonzero_address)

log = logging.getLogger(__name__)

Resolution = List[Tuple[EntityId, Address]]


class OwnershipResolver(ABC):
    """Strategy interface; `path` names the custody path for events/metrics."""

    path: str = "unknown"

    def resolve(self, caller: Address, entity_ids: Sequence[EntityId]) -> Resolution:
        ids = require_entity_ids(entity_ids)
        return self._resolve(normalize_address(caller), ids)

    @abstractmethod
    def _resolve(self, caller: Address, entity_ids: List[EntityId]) -> Resolution:
        raise NotImplementedError


class DirectResolver(OwnershipResolver):
    path = "direct"

    def __init__(self, ownership: OwnershipOracle) -> None:
        self.ownership = ownership

    def _resolve(self, caller: Address, entity_ids: List[EntityId]) -> Resolution:
        for eid in entity_ids:
            owner = normalize_address(self.ownership.owner_of(eid))
            if owner != caller:
                raise InvalidOwner(caller=caller, entity_id=eid, owner=owner)
        return [(eid, caller) for eid in entity_ids]


class DelegatedResolver(OwnershipResolver):
    path = "delegated"

    def __init__(self, ownership: OwnershipOracle, delegation: DelegationOracle, contract: Address) -> None:
        self.ownership = ownership
        self.delegation = delegation
        # The entity collection the delegation is scoped to.
        self.contract = normalize_address(contract)

    def _resolve(self, caller: Address, entity_ids: List[EntityId]) -> Resolution:
        out: Resolution = []
        for eid in entity_ids:
            vault = normalize_address(self.ownership.owner_of(eid))
            if not self.delegation.check_delegate_for_token(caller, vault, self.contract, eid):
                raise InvalidDelegate(caller=caller, entity_id=eid, vault=vault)
            out.append((eid, vault))
        return out


class ModuleCustodiedResolver(OwnershipResolver):
    """
    Bound to one module address per call. `is_registered` is the owner-managed
    trust check; `directory` maps addresses to module objects.
    """

    path = "module"

    def __init__(self, module: Address, *, is_registered: Callable[[Address], bool], directory: ModuleDirectory) -> None:
        self.module = require_nonzero_address(module, "module")
        if not is_registered(self.module):
            raise UnregisteredModule(module=self.module)
        self.directory = directory

    def _resolve(self, caller: Address, entity_ids: List[EntityId]) -> Resolution:
        impl = self.directory.get(self.module)
        if impl is None:
            raise ModuleCheckFailed(module=self.module, caller=caller, reason="no module at address")
        try:
            verdict = impl.verify_claim(caller, list(entity_ids))
        except EmissionError as e:
            raise ModuleCheckFailed(module=self.module, caller=caller, reason=e.code) from e
        except Exception as e:
            raise ModuleCheckFailed(module=self.module, caller=caller, reason=type(e).__name__) from e
        # Modules must raise to refuse; any falsy verdict other than None counts too.
        if verdict is not None and not verdict:
            raise ModuleCheckFailed(module=self.module, caller=caller, reason="returned false")
        log.debug("module %s vouched for caller=%s ids=%s", self.module, caller, entity_ids)
        return [(eid, caller) for eid in entity_ids]


__all__ = [
    "Resolution",
    "OwnershipResolver",
    "DirectResolver",
    "DelegatedResolver",
    "ModuleCustodiedResolver",
]
