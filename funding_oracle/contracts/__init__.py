"""
contracts — Single source of truth for the funding domain's shared shapes.

Defines:
  - Lifecycle states and the funding FSM
  - Funding invariants (checked against the real system after every command)
  - The counterexample report handed to test-runner integrations

Conventions:
  - Amounts: integer token units, never floats
  - Actors:  0x-prefixed wallet-style addresses
  - Time:    milliseconds everywhere
  - Keys:    camelCase in serialized reports
"""

from .common import LifecycleState, parse_state, state_ordinal, ts_ms, EventType, RedisKey
from .invariants import InvariantViolation, funding_invariants
from .report import FailureReport
from .state_machines import FSM, FUNDING_FSM, FundingEvent
