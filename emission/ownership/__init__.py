"""
emission.ownership — custody paths and the oracle interfaces they consume.
"""
from __future__ import annotations

from .oracles import (AllowlistModule, CustodyModule, DelegationBook,
                      DelegationOracle, ModuleDirectory, ModuleRefused,
                      OwnershipOracle, StaticOwnership, UnknownEntity)
from .resolvers import (DelegatedResolver, DirectResolver,
                        ModuleCustodiedResolver, OwnershipResolver, Resolution)

__all__ = [
    "AllowlistModule",
    "CustodyModule",
    "DelegationBook",
    "DelegationOracle",
    "ModuleDirectory",
    "ModuleRefused",
    "OwnershipOracle",
    "StaticOwnership",
    "UnknownEntity",
    "DelegatedResolver",
    "DirectResolver",
    "ModuleCustodiedResolver",
    "OwnershipResolver",
    "Resolution",
]
