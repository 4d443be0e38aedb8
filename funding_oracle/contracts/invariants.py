"""
invariants — Assertable funding invariants.

Every function here checks one rule that the reserve funding contract must
NEVER violate. They raise InvariantViolation with a descriptive message on
failure.

Usage:
    - In model runs: registered on a CommandFactory and re-checked against the
      real system after every command
    - In tests: awaited directly against a FundingSystem
"""

from __future__ import annotations

from typing import Iterable, List, Sequence

from funding_oracle.engine.factory import Invariant

from .common import ACCUMULATION_PHASES, parse_state


class InvariantViolation(Exception):
    """A system invariant has been violated."""
    pass


# ══════════════════════════════════════════════════════════════
# Comparison Assertions
# ══════════════════════════════════════════════════════════════

def expect_equal(actual: int, expected: int, what: str = "value") -> None:
    if actual != expected:
        raise InvariantViolation(f"{what}: expected {expected}, got {actual}")


def expect_at_most(actual: int, bound: int, what: str = "value") -> None:
    if actual > bound:
        raise InvariantViolation(f"{what}: {actual} > {bound}")


def expect_less_than(actual: int, bound: int, what: str = "value") -> None:
    if actual >= bound:
        raise InvariantViolation(f"{what}: {actual} >= {bound}")


def sum_amounts(amounts: Iterable[int]) -> int:
    total = 0
    for amount in amounts:
        total += amount
    return total


# ══════════════════════════════════════════════════════════════
# Funding Invariants
# ══════════════════════════════════════════════════════════════
#
# Each takes the real FundingSystem and only queries it.

async def total_liquidity_must_not_exceed_target_liquidity(real) -> None:
    total = await real.reserve_funding.total_liquidity()
    target = await real.reserve_funding.target_liquidity()
    expect_at_most(total, target, "totalLiquidity vs targetLiquidity")


async def total_liquidity_must_equal_balance(real) -> None:
    """Committed liquidity is fully custodied by the contract."""
    total = await real.reserve_funding.total_liquidity()
    balance = await real.token.balance_of(real.reserve_funding.address)
    expect_equal(total, balance, "totalLiquidity vs custodied balance")


def total_liquidity_must_equal_sum_of_actor_liquidity(actors: Sequence[str]):
    """Build the per-actor sum invariant over a fixed actor set."""

    async def total_liquidity_must_equal_sum_of_actor_liquidity(real) -> None:
        total = await real.reserve_funding.total_liquidity()
        per_actor = [await real.reserve_funding.liquidity(a) for a in actors]
        expect_equal(sum_amounts(per_actor), total, "sum of actor liquidity vs totalLiquidity")

    return total_liquidity_must_equal_sum_of_actor_liquidity


async def total_liquidity_must_trail_target_while_accumulating(real) -> None:
    """
    While still in a pre-lock phase (ACCUMULATING or CANCELLED), the total
    stays strictly below target. Reaching the target locks the contract.
    """
    state = parse_state(await real.reserve_funding.state())
    if state not in ACCUMULATION_PHASES:
        return
    total = await real.reserve_funding.total_liquidity()
    target = await real.reserve_funding.target_liquidity()
    expect_less_than(total, target, f"totalLiquidity while {state}")


def funding_invariants(actors: Sequence[str]) -> List[Invariant]:
    """The four funding invariants, in check order, as engine Invariants."""
    checks = [
        total_liquidity_must_not_exceed_target_liquidity,
        total_liquidity_must_equal_balance,
        total_liquidity_must_equal_sum_of_actor_liquidity(actors),
        total_liquidity_must_trail_target_while_accumulating,
    ]
    return [Invariant.of(check) for check in checks]
