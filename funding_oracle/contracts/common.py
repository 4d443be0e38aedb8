"""
common — Lifecycle state values, Redis key names, and timestamps.

This is the SINGLE source of truth for lifecycle state names.
The paper contract, the model, the invariants and the reports all import
from here — no inline copies.
"""

from __future__ import annotations

import time
from enum import Enum


# ── Lifecycle State ──────────────────────────────────────────

class LifecycleState(str, Enum):
    """Five phases of the funding state machine.

    The str mixin keeps values usable as plain strings (FSM tables, JSON).
    """

    ACCUMULATING = "liquidityAccumulating"
    LOCKED = "liquidityLocked"
    EXPOSED = "liquidityExposed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    def __str__(self) -> str:
        return self.value


# Contract ordinal → state (declaration order of the on-chain enum)
_STATE_BY_ORDINAL = {
    0: LifecycleState.ACCUMULATING,
    1: LifecycleState.LOCKED,
    2: LifecycleState.EXPOSED,
    3: LifecycleState.COMPLETED,
    4: LifecycleState.CANCELLED,
}

_ORDINAL_BY_STATE = {state: ordinal for ordinal, state in _STATE_BY_ORDINAL.items()}

# Pre-lock phases: liquidity may still move in or out
ACCUMULATION_PHASES = frozenset({LifecycleState.ACCUMULATING, LifecycleState.CANCELLED})


def parse_state(ordinal: int) -> LifecycleState:
    """0→ACCUMULATING ... 4→CANCELLED.

    Raises ValueError for anything else.
    """
    state = _STATE_BY_ORDINAL.get(ordinal)
    if state is None:
        raise ValueError(f"Unhandled state: {ordinal}")
    return state


def state_ordinal(state: LifecycleState) -> int:
    """Inverse of parse_state."""
    return _ORDINAL_BY_STATE[LifecycleState(state)]


# ── Timestamps ───────────────────────────────────────────────

def ts_ms() -> int:
    """Current timestamp in milliseconds."""
    return int(time.time() * 1000)


# ── Redis Key Prefixes ───────────────────────────────────────

class RedisKey:
    """All Redis key patterns used by the reporting surface."""

    COUNTEREXAMPLE_TTL = 86400  # 24h

    @staticmethod
    def counterexample(name: str) -> str:
        return f"oracle:counterexample:{name}"

    @staticmethod
    def event_channel(event_type: str) -> str:
        return f"oracle:events:{event_type}"


class EventType:
    """Redis PUB/SUB event type names.

    Channel format: oracle:events:{event_type}
    """

    COUNTEREXAMPLE = "counterexample"
