"""
PaperReserveFunding — In-memory reserve funding contract.

Drop-in stand-in for the deployed contract: same async calls, same reverts,
state exposed as the contract's enum ordinal (see contracts.common.parse_state).

Lifecycle (validated by FUNDING_FSM):

    ACCUMULATING ──add_liquidity fills target──▶ LOCKED ──expose──▶ EXPOSED ──complete──▶ COMPLETED
         │  ▲
  cancel │  │ resume        (authority only)
         ▼  │
       CANCELLED

Contributions are capped at the remaining target; the contribution that
reaches the target locks the contract. Actors may clear (withdraw) their
contribution in any pre-lock phase.

Faults inject known defects so tests can prove the oracle catches them:
    overfill          accept the full amount, ignoring the target cap
    refund_shortfall  withhold this many units from every refund
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict

from funding_oracle.contracts.common import ACCUMULATION_PHASES, LifecycleState, state_ordinal
from funding_oracle.contracts.invariants import InvariantViolation
from funding_oracle.contracts.state_machines import FUNDING_FSM, FundingEvent

from .token import PaperRevert, PaperToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Faults:
    overfill: bool = False
    refund_shortfall: int = 0

    @classmethod
    def named(cls, name: str) -> "Faults":
        """CLI names: none | overfill | refund-shortfall."""
        if name in ("", "none"):
            return cls()
        if name == "overfill":
            return cls(overfill=True)
        if name == "refund-shortfall":
            return cls(refund_shortfall=1)
        raise ValueError(f"Unknown fault: {name!r}")


class PaperReserveFunding:
    """Reserve funding contract with an authority-controlled lifecycle."""

    def __init__(
        self,
        token: PaperToken,
        target_liquidity: int,
        authority: str,
        address: str = "0x" + "5e" * 20,
        faults: Faults = Faults(),
    ):
        if target_liquidity <= 0:
            raise ValueError(f"target_liquidity must be > 0, got {target_liquidity}")
        self.address = address
        self._token = token
        self._target = target_liquidity
        self._authority = authority
        self._faults = faults
        self._state = LifecycleState(FUNDING_FSM.initial)
        self._liquidity: Dict[str, int] = {}
        self._total = 0

    # ── Views ──

    async def state(self) -> int:
        return state_ordinal(self._state)

    async def target_liquidity(self) -> int:
        return self._target

    async def total_liquidity(self) -> int:
        return self._total

    async def liquidity(self, actor: str) -> int:
        return self._liquidity.get(actor, 0)

    async def authority(self) -> str:
        return self._authority

    # ── Liquidity ──

    async def add_liquidity(self, actor: str, amount: int) -> int:
        """Pull up to `amount` from actor (needs allowance). Returns amount accepted."""
        if self._state != LifecycleState.ACCUMULATING:
            raise PaperRevert(f"addLiquidity: not accumulating (state={self._state})")
        remaining = self._target - self._total
        accepted = amount if self._faults.overfill else min(amount, remaining)
        if accepted > 0:
            await self._token.transfer_from(self.address, actor, self.address, accepted)
            self._liquidity[actor] = self._liquidity.get(actor, 0) + accepted
            self._total += accepted
        logger.debug("addLiquidity %s: %d of %d (total=%d)", actor[:10], accepted, amount, self._total)

        if self._total >= self._target:
            self._transition(FundingEvent.FILL)
        return accepted

    async def clear_liquidity(self, actor: str) -> int:
        """Refund the actor's whole contribution. Returns amount refunded."""
        if self._state not in ACCUMULATION_PHASES:
            raise PaperRevert(f"clearLiquidity: liquidity is {self._state}")
        amount = self._liquidity.pop(actor, 0)
        self._total -= amount
        refund = max(amount - self._faults.refund_shortfall, 0)
        if refund > 0:
            await self._token.transfer(self.address, actor, refund)
        logger.debug("clearLiquidity %s: %d (total=%d)", actor[:10], refund, self._total)
        return refund

    # ── Authority Transitions ──

    async def cancel_accumulating(self, caller: str) -> None:
        self._only_authority(caller, "cancelAccumulating")
        self._transition(FundingEvent.CANCEL)

    async def resume_accumulating(self, caller: str) -> None:
        self._only_authority(caller, "resumeAccumulating")
        self._transition(FundingEvent.RESUME)

    async def expose_liquidity(self, caller: str) -> None:
        self._only_authority(caller, "exposeLiquidity")
        self._transition(FundingEvent.EXPOSE)

    async def complete(self, caller: str) -> None:
        self._only_authority(caller, "complete")
        self._transition(FundingEvent.COMPLETE)

    # ── Internals ──

    def _only_authority(self, caller: str, operation: str) -> None:
        if caller != self._authority:
            raise PaperRevert(f"{operation}: caller {caller} is not the authority")

    def _transition(self, event: str) -> None:
        try:
            new_state = FUNDING_FSM.validate_transition(self._state.value, event)
        except InvariantViolation as e:
            raise PaperRevert(str(e)) from e
        logger.debug("ReserveFunding %s --%s--> %s", self._state, event, new_state)
        self._state = LifecycleState(new_state)

    def __repr__(self) -> str:
        return (f"PaperReserveFunding(state={self._state}, total={self._total}, "
                f"target={self._target})")
