from __future__ import annotations
# emission/errors.py
"""
Error types for linear emission streams. Every failure raised by the engine
is an ``EmissionError`` subclass carrying a stable ``code`` plus a small
``details`` mapping, so callers (RPC, CLI, tests) can match on the class or on
the code string without parsing messages.

Families:
- ConfigError        construction-time validation (no instance is created)
- TemporalError      not started / deadline exceeded
- AuthorizationError ownership, delegation, module and role mismatches
- InputError         malformed call arguments (empty batches, bad ids)
- LifecycleError     global pause / freeze gating
- FinancingError     deposit, withdraw and deadline rules
- InvariantError     internal sanity checks that should never fire
- TokenError         payout token failures
"""


from typing import Any, Dict, Mapping, Optional
import json


class EmissionError(Exception):
    """Base class for emission stream errors."""

    code: str = "EMISSION_ERROR"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            try:
                packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"))
            except (TypeError, ValueError):
                packed = str(self.details)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


# ────────────────────────────────────────────────────────────────────────────────
# Families
# ────────────────────────────────────────────────────────────────────────────────


class ConfigError(EmissionError):
    code = "EMISSION_CONFIG_ERROR"


class TemporalError(EmissionError):
    code = "EMISSION_TEMPORAL_ERROR"


class AuthorizationError(EmissionError):
    code = "EMISSION_UNAUTHORIZED"


class InputError(EmissionError):
    code = "EMISSION_INPUT_ERROR"


class LifecycleError(EmissionError):
    code = "EMISSION_LIFECYCLE_ERROR"


class FinancingError(EmissionError):
    code = "EMISSION_FINANCING_ERROR"


class InvariantError(EmissionError):
    code = "EMISSION_INVARIANT_ERROR"


class TokenError(EmissionError):
    code = "EMISSION_TOKEN_ERROR"


# ────────────────────────────────────────────────────────────────────────────────
# Construction
# ────────────────────────────────────────────────────────────────────────────────


class InvalidTimeWindow(ConfigError):
    """end_time must be strictly after start_time."""
    code = "EMISSION_INVALID_TIME_WINDOW"

    def __init__(self, *, start_time: int, end_time: int, message: str = "end time must be after start time") -> None:
        super().__init__(message, details={"start_time": int(start_time), "end_time": int(end_time)})


class ZeroAllocation(ConfigError):
    code = "EMISSION_ZERO_ALLOCATION"

    def __init__(self, message: str = "allocation per entity must be positive") -> None:
        super().__init__(message)


class ZeroEmissionRate(ConfigError):
    """allocation / window rounds down to zero tokens per second."""
    code = "EMISSION_ZERO_EMISSION_RATE"

    def __init__(self, *, allocation_per_entity: int, window_length: int) -> None:
        super().__init__(
            "emission rate rounds to zero",
            details={"allocation_per_entity": int(allocation_per_entity), "window_length": int(window_length)},
        )


class InvalidEntityCount(ConfigError):
    code = "EMISSION_INVALID_ENTITY_COUNT"

    def __init__(self, *, entity_count: int) -> None:
        super().__init__("entity count must be positive", details={"entity_count": int(entity_count)})


# ────────────────────────────────────────────────────────────────────────────────
# Temporal gating
# ────────────────────────────────────────────────────────────────────────────────


class NotStarted(TemporalError):
    code = "EMISSION_NOT_STARTED"

    def __init__(self, *, now: int, start_time: int) -> None:
        super().__init__("emission has not started", details={"now": int(now), "start_time": int(start_time)})


class DeadlineExceeded(TemporalError):
    code = "EMISSION_DEADLINE_EXCEEDED"

    def __init__(self, *, now: int, deadline: int) -> None:
        super().__init__("claim deadline exceeded", details={"now": int(now), "deadline": int(deadline)})


# ────────────────────────────────────────────────────────────────────────────────
# Ownership / authorization
# ────────────────────────────────────────────────────────────────────────────────


class InvalidOwner(AuthorizationError):
    code = "EMISSION_INVALID_OWNER"

    def __init__(self, *, caller: str, entity_id: int, owner: Optional[str] = None) -> None:
        d: Dict[str, Any] = {"caller": caller, "entity_id": int(entity_id)}
        if owner is not None:
            d["owner"] = owner
        super().__init__("caller does not own entity", details=d)


class InvalidDelegate(AuthorizationError):
    code = "EMISSION_INVALID_DELEGATE"

    def __init__(self, *, caller: str, entity_id: int, vault: str) -> None:
        super().__init__(
            "caller is not a delegate for entity",
            details={"caller": caller, "entity_id": int(entity_id), "vault": vault},
        )


class ModuleCheckFailed(AuthorizationError):
    code = "EMISSION_MODULE_CHECK_FAILED"

    def __init__(self, *, module: str, caller: str, reason: str = "") -> None:
        d: Dict[str, Any] = {"module": module, "caller": caller}
        if reason:
            d["reason"] = reason
        super().__init__("custody module refused claim", details=d)


class UnregisteredModule(AuthorizationError):
    code = "EMISSION_UNREGISTERED_MODULE"

    def __init__(self, *, module: str) -> None:
        super().__init__("module is not registered", details={"module": module})


class OnlyOwner(AuthorizationError):
    code = "EMISSION_ONLY_OWNER"

    def __init__(self, *, caller: str) -> None:
        super().__init__("caller is not the owner", details={"caller": caller})


class OnlyPendingOwner(AuthorizationError):
    code = "EMISSION_ONLY_PENDING_OWNER"

    def __init__(self, *, caller: str) -> None:
        super().__init__("caller is not the pending owner", details={"caller": caller})


class OnlyDepositor(AuthorizationError):
    code = "EMISSION_ONLY_DEPOSITOR"

    def __init__(self, *, caller: str) -> None:
        super().__init__("caller is not the depositor", details={"caller": caller})


class OnlyOwnerOrOperator(AuthorizationError):
    code = "EMISSION_ONLY_OWNER_OR_OPERATOR"

    def __init__(self, *, caller: str) -> None:
        super().__init__("caller is neither owner nor operator", details={"caller": caller})


# ────────────────────────────────────────────────────────────────────────────────
# Input validation
# ────────────────────────────────────────────────────────────────────────────────


class EmptyArray(InputError):
    code = "EMISSION_EMPTY_ARRAY"

    def __init__(self, message: str = "entity id list is empty") -> None:
        super().__init__(message)


class ZeroAddress(InputError):
    code = "EMISSION_ZERO_ADDRESS"

    def __init__(self, *, field: str) -> None:
        super().__init__("zero address not allowed", details={"field": field})


class InvalidAddress(InputError):
    code = "EMISSION_INVALID_ADDRESS"

    def __init__(self, *, value: Any) -> None:
        super().__init__("malformed address", details={"value": repr(value)})


class InvalidEntityId(InputError):
    code = "EMISSION_INVALID_ENTITY_ID"

    def __init__(self, *, entity_id: Any) -> None:
        super().__init__("entity id must be an unsigned 256-bit integer", details={"entity_id": repr(entity_id)})


class InvalidAmount(InputError):
    code = "EMISSION_INVALID_AMOUNT"

    def __init__(self, *, amount: Any) -> None:
        super().__init__("amount must be a positive integer", details={"amount": repr(amount)})


# ────────────────────────────────────────────────────────────────────────────────
# Lifecycle
# ────────────────────────────────────────────────────────────────────────────────


class ContractPaused(LifecycleError):
    code = "EMISSION_PAUSED"

    def __init__(self, message: str = "contract is paused") -> None:
        super().__init__(message)


class NotPaused(LifecycleError):
    code = "EMISSION_NOT_PAUSED"

    def __init__(self, message: str = "contract is not paused") -> None:
        super().__init__(message)


class IsFrozen(LifecycleError):
    code = "EMISSION_IS_FROZEN"

    def __init__(self, message: str = "contract is frozen") -> None:
        super().__init__(message)


class NotFrozen(LifecycleError):
    code = "EMISSION_NOT_FROZEN"

    def __init__(self, message: str = "contract is not frozen") -> None:
        super().__init__(message)


class StreamPaused(LifecycleError):
    code = "EMISSION_STREAM_PAUSED"

    def __init__(self, *, entity_id: int) -> None:
        super().__init__("stream is paused", details={"entity_id": int(entity_id)})


# ────────────────────────────────────────────────────────────────────────────────
# Financing
# ────────────────────────────────────────────────────────────────────────────────


class ExcessDeposit(FinancingError):
    code = "EMISSION_EXCESS_DEPOSIT"

    def __init__(self, *, total_deposited: int, amount: int, total_allocation: int) -> None:
        super().__init__(
            "deposit exceeds total allocation",
            details={
                "total_deposited": int(total_deposited),
                "amount": int(amount),
                "total_allocation": int(total_allocation),
            },
        )


class WithdrawDisabled(FinancingError):
    code = "EMISSION_WITHDRAW_DISABLED"

    def __init__(self, message: str = "withdraw disabled until a deadline is set") -> None:
        super().__init__(message)


class PrematureWithdrawal(FinancingError):
    code = "EMISSION_PREMATURE_WITHDRAWAL"

    def __init__(self, *, now: int, deadline: int) -> None:
        super().__init__("deadline has not passed", details={"now": int(now), "deadline": int(deadline)})


class InvalidNewDeadline(FinancingError):
    code = "EMISSION_INVALID_NEW_DEADLINE"

    def __init__(self, *, new_deadline: int, minimum: int) -> None:
        super().__init__(
            "deadline too early",
            details={"new_deadline": int(new_deadline), "minimum": int(minimum)},
        )


# ────────────────────────────────────────────────────────────────────────────────
# Internal sanity
# ────────────────────────────────────────────────────────────────────────────────


class IncorrectClaimable(InvariantError):
    """Claimable would push an entity above its allocation."""
    code = "EMISSION_INCORRECT_CLAIMABLE"

    def __init__(self, *, entity_id: Optional[int], claimed: int, claimable: int, allocation: int) -> None:
        d: Dict[str, Any] = {"claimed": int(claimed), "claimable": int(claimable), "allocation": int(allocation)}
        if entity_id is not None:
            d["entity_id"] = int(entity_id)
        super().__init__("claimable exceeds allocation", details=d)


class AmountOverflow(InvariantError):
    """A value does not fit the storage width it is narrowed to."""
    code = "EMISSION_AMOUNT_OVERFLOW"

    def __init__(self, *, value: int, bits: int, field: str = "") -> None:
        d: Dict[str, Any] = {"value": str(value), "bits": int(bits)}
        if field:
            d["field"] = field
        super().__init__("value out of range for storage width", details=d)


# ────────────────────────────────────────────────────────────────────────────────
# Token
# ────────────────────────────────────────────────────────────────────────────────


class InsufficientBalance(TokenError):
    code = "EMISSION_TOKEN_INSUFFICIENT_BALANCE"

    def __init__(self, *, account: str, balance: int, amount: int) -> None:
        super().__init__(
            "insufficient token balance",
            details={"account": account, "balance": int(balance), "amount": int(amount)},
        )


class InsufficientAllowance(TokenError):
    code = "EMISSION_TOKEN_INSUFFICIENT_ALLOWANCE"

    def __init__(self, *, owner: str, spender: str, allowance: int, amount: int) -> None:
        super().__init__(
            "insufficient token allowance",
            details={"owner": owner, "spender": spender, "allowance": int(allowance), "amount": int(amount)},
        )


__all__ = [
    "EmissionError",
    "ConfigError",
    "TemporalError",
    "AuthorizationError",
    "InputError",
    "LifecycleError",
    "FinancingError",
    "InvariantError",
    "TokenError",
    "InvalidTimeWindow",
    "ZeroAllocation",
    "ZeroEmissionRate",
    "InvalidEntityCount",
    "NotStarted",
    "DeadlineExceeded",
    "InvalidOwner",
    "InvalidDelegate",
    "ModuleCheckFailed",
    "UnregisteredModule",
    "OnlyOwner",
    "OnlyPendingOwner",
    "OnlyDepositor",
    "OnlyOwnerOrOperator",
    "EmptyArray",
    "ZeroAddress",
    "InvalidAddress",
    "InvalidEntityId",
    "InvalidAmount",
    "ContractPaused",
    "NotPaused",
    "IsFrozen",
    "NotFrozen",
    "StreamPaused",
    "ExcessDeposit",
    "WithdrawDisabled",
    "PrematureWithdrawal",
    "InvalidNewDeadline",
    "IncorrectClaimable",
    "AmountOverflow",
    "InsufficientBalance",
    "InsufficientAllowance",
]
