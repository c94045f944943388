from __future__ import annotations

"""
Prometheus metrics for linear emission streams.

We expose counters covering:
- claims: successful claim calls and claimed token amounts, by custody path
- financing: deposits and withdrawals (count and amount)
- lifecycle: pause / unpause / freeze / emergency exit transitions
- failures: rejected calls by error code

Amounts are raw token units. Counters accept floats, so very large integer
amounts lose precision in the exported value; the on-ledger figures stay exact.
"""

from typing import Optional

from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry, Counter,
                               Gauge, generate_latest)

# Use a dedicated registry so embedding apps can choose to merge or expose it directly.
REGISTRY = CollectorRegistry()

# ────────────────────────────────────────────────────────────────────────────────
# Label conventions
#   path: "direct" | "delegated" | "module"
#   kind: "deposit" | "withdraw" | "emergency_exit"
#   state: "paused" | "active" | "frozen"
#   code: EmissionError.code, e.g. "EMISSION_STREAM_PAUSED"
# ────────────────────────────────────────────────────────────────────────────────

CLAIMS = Counter(
    "animica_emission_claims_total",
    "Successful claim calls by custody path.",
    labelnames=("path",),
    registry=REGISTRY,
)

CLAIMED_AMOUNT = Counter(
    "animica_emission_claimed_amount_total",
    "Tokens paid to claimants by custody path.",
    labelnames=("path",),
    registry=REGISTRY,
)

FINANCING_OPS = Counter(
    "animica_emission_financing_ops_total",
    "Financing operations by kind.",
    labelnames=("kind",),
    registry=REGISTRY,
)

FINANCING_AMOUNT = Counter(
    "animica_emission_financing_amount_total",
    "Token amounts moved by financing operations, by kind.",
    labelnames=("kind",),
    registry=REGISTRY,
)

LIFECYCLE_TRANSITIONS = Counter(
    "animica_emission_lifecycle_transitions_total",
    "Lifecycle transitions by target state.",
    labelnames=("state",),
    registry=REGISTRY,
)

FAILED_CALLS = Counter(
    "animica_emission_failed_calls_total",
    "Rejected entry-point calls by error code.",
    labelnames=("code",),
    registry=REGISTRY,
)

PAUSED_STREAMS = Gauge(
    "animica_emission_paused_streams",
    "Streams currently paused individually.",
    registry=REGISTRY,
)

# ────────────────────────────────────────────────────────────────────────────────
# Recording helpers
# ────────────────────────────────────────────────────────────────────────────────


def record_claim(path: str, amount: int) -> None:
    """Record one successful claim call and the total it paid."""
    CLAIMS.labels(path=path).inc()
    if amount > 0:
        CLAIMED_AMOUNT.labels(path=path).inc(float(amount))


def record_financing(kind: str, amount: int) -> None:
    FINANCING_OPS.labels(kind=kind).inc()
    if amount > 0:
        FINANCING_AMOUNT.labels(kind=kind).inc(float(amount))


def record_transition(state: str) -> None:
    LIFECYCLE_TRANSITIONS.labels(state=state).inc()


def record_failure(code: str) -> None:
    FAILED_CALLS.labels(code=code).inc()


def set_paused_streams(count: int) -> None:
    PAUSED_STREAMS.set(count)


def render_latest(registry: Optional[CollectorRegistry] = None) -> bytes:
    """Text exposition of the registry, e.g. for a `/metrics` handler."""
    return generate_latest(registry or REGISTRY)


__all__ = [
    "REGISTRY",
    "CONTENT_TYPE_LATEST",
    "CLAIMS",
    "CLAIMED_AMOUNT",
    "FINANCING_OPS",
    "FINANCING_AMOUNT",
    "LIFECYCLE_TRANSITIONS",
    "FAILED_CALLS",
    "PAUSED_STREAMS",
    "record_claim",
    "record_financing",
    "record_transition",
    "record_failure",
    "set_paused_streams",
    "render_latest",
]
