"""
state_machines — Formal finite state machine definition for the funding lifecycle.

The FSM definition holds:
    - Set of valid states
    - Initial state
    - Set of valid transitions (current_state, event) → new_state
    - Set of terminal (absorbing) states

Usage:
    FUNDING_FSM.validate_transition(current_state, event) → new_state or raises
"""

from __future__ import annotations

from typing import Dict, List, Set, Tuple

from .common import LifecycleState
from .invariants import InvariantViolation


# ══════════════════════════════════════════════════════════════
# FSM Type & Validator
# ══════════════════════════════════════════════════════════════

class FSM:
    """Immutable finite state machine definition."""

    def __init__(
        self,
        name: str,
        states: Set[str],
        initial: str,
        terminal: Set[str],
        transitions: Dict[Tuple[str, str], str],
    ):
        self.name = name
        self.states = frozenset(states)
        self.initial = initial
        self.terminal = frozenset(terminal)
        self.transitions = dict(transitions)

        # Self-validate
        assert initial in states, f"{name}: initial state {initial!r} not in states"
        assert terminal <= states, f"{name}: terminal states not subset of states"
        for (src, evt), dst in transitions.items():
            assert src in states, f"{name}: transition source {src!r} not in states"
            assert dst in states, f"{name}: transition dest {dst!r} not in states"

    def validate_transition(self, current: str, event: str) -> str:
        """
        Validate and apply a state transition.

        Returns new state on success.
        Raises InvariantViolation if:
            - current state is not in FSM
            - trying to transition from a terminal state
            - transition is not defined
        """
        if current not in self.states:
            raise InvariantViolation(
                f"{self.name}: unknown state {current!r}, valid: {sorted(self.states)}"
            )
        if current in self.terminal:
            raise InvariantViolation(
                f"{self.name}: cannot transition from terminal state {current!r} "
                f"via {event!r}"
            )
        key = (current, event)
        if key not in self.transitions:
            raise InvariantViolation(
                f"{self.name}: no transition ({current!r}, {event!r}), "
                f"valid events from {current!r}: {self.valid_events_from(current)}"
            )
        return self.transitions[key]

    def valid_events_from(self, state: str) -> List[str]:
        """List all valid events from a given state."""
        return [e for (s, e) in self.transitions if s == state]

    def is_terminal(self, state: str) -> bool:
        return state in self.terminal

    def reachable_from(self, state: str) -> Set[str]:
        """All states reachable from `state` (including itself)."""
        seen = {state}
        frontier = [state]
        while frontier:
            src = frontier.pop()
            for (s, _), dst in self.transitions.items():
                if s == src and dst not in seen:
                    seen.add(dst)
                    frontier.append(dst)
        return seen


# ══════════════════════════════════════════════════════════════
# Funding Lifecycle FSM
# ══════════════════════════════════════════════════════════════
#
# State diagram:
#
#   ACCUMULATING ──FILL──────────→ LOCKED ──EXPOSE──→ EXPOSED ──COMPLETE──→ COMPLETED
#     │    ▲
#     │    └──RESUME──┐
#     └──CANCEL───────→ CANCELLED
#
# Only the CANCELLED ⇄ ACCUMULATING pair runs both ways.
#

class FundingEvent:
    FILL = "FILL"
    CANCEL = "CANCEL"
    RESUME = "RESUME"
    EXPOSE = "EXPOSE"
    COMPLETE = "COMPLETE"


_S = LifecycleState

FUNDING_FSM = FSM(
    name="ReserveFunding",
    states={s.value for s in LifecycleState},
    initial=_S.ACCUMULATING.value,
    terminal={_S.COMPLETED.value},
    transitions={
        (_S.ACCUMULATING.value, FundingEvent.FILL):     _S.LOCKED.value,
        (_S.ACCUMULATING.value, FundingEvent.CANCEL):   _S.CANCELLED.value,
        (_S.CANCELLED.value,    FundingEvent.RESUME):   _S.ACCUMULATING.value,
        (_S.LOCKED.value,       FundingEvent.EXPOSE):   _S.EXPOSED.value,
        (_S.EXPOSED.value,      FundingEvent.COMPLETE): _S.COMPLETED.value,
    },
)
