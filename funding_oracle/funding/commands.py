"""
Funding lifecycle commands — the reference domain run by the oracle.

    AddLiquidity(amount, actor)   pre: not CANCELLED     actor approves + contributes
    ClearLiquidity(actor)                                actor withdraws; balance == baseline
    CancelAccumulating()          pre: not CANCELLED     authority cancels; state == CANCELLED
    ResumeAccumulating()          pre: CANCELLED         authority resumes; state != CANCELLED

Global gate: the lifecycle is still in a pre-lock phase (ACCUMULATING or
CANCELLED). Resync: the model's state is re-queried from the contract after
every command.
"""

from __future__ import annotations

from typing import List, Sequence

from funding_oracle.contracts.common import ACCUMULATION_PHASES, LifecycleState
from funding_oracle.contracts.invariants import InvariantViolation, expect_equal
from funding_oracle.engine.arbitrary import CommandGenerator, ConstantFrom, Integers
from funding_oracle.engine.factory import Command, CommandFactory, CommandSpec, Invariant

from .model import FundingModel, FundingSystem, query_state


def global_check(model: FundingModel) -> bool:
    return model.state in ACCUMULATION_PHASES


async def resync(model: FundingModel, real: FundingSystem) -> FundingModel:
    return model.evolve(state=await query_state(real))


def not_cancelled(model: FundingModel) -> bool:
    return model.state != LifecycleState.CANCELLED


def cancelled(model: FundingModel) -> bool:
    return model.state == LifecycleState.CANCELLED


def create_command_factory(invariants: Sequence[Invariant] = ()) -> CommandFactory:
    return CommandFactory(global_check=global_check, resync=resync, invariants=invariants)


# ── Command Builders ─────────────────────────────────────────

def add_liquidity(factory: CommandFactory, amount: int, actor: str) -> Command:
    async def run(model: FundingModel, real: FundingSystem) -> None:
        await real.token.approve(actor, real.reserve_funding.address, amount)
        await real.reserve_funding.add_liquidity(actor, amount)

    return factory.create_command(
        CommandSpec(label=f"AddLiquidity({amount}, {actor})", run=run, check=not_cancelled),
        params=(amount, actor),
    )


def clear_liquidity(factory: CommandFactory, actor: str) -> Command:
    async def run(model: FundingModel, real: FundingSystem) -> None:
        await real.reserve_funding.clear_liquidity(actor)

        # Everything the actor ever put in must come back
        balance = await real.token.balance_of(actor)
        expect_equal(balance, model.baseline(actor), f"balance of {actor} after clearLiquidity")

    return factory.create_command(
        CommandSpec(label=f"ClearLiquidity({actor})", run=run),
        params=(actor,),
    )


def cancel_accumulating(factory: CommandFactory) -> Command:
    async def run(model: FundingModel, real: FundingSystem) -> None:
        await real.reserve_funding.cancel_accumulating(real.authority)
        state = await query_state(real)
        if state != LifecycleState.CANCELLED:
            raise InvariantViolation(f"cancelAccumulating left state {state}, expected cancelled")

    return factory.create_command(
        CommandSpec(label="CancelAccumulating()", run=run, check=not_cancelled),
    )


def resume_accumulating(factory: CommandFactory) -> Command:
    async def run(model: FundingModel, real: FundingSystem) -> None:
        await real.reserve_funding.resume_accumulating(real.authority)
        state = await query_state(real)
        if state == LifecycleState.CANCELLED:
            raise InvariantViolation("resumeAccumulating left state cancelled")

    return factory.create_command(
        CommandSpec(label="ResumeAccumulating()", run=run, check=cancelled),
    )


# ── Generator Pool ───────────────────────────────────────────

def create_generators(
    target_liquidity: int,
    actors: Sequence[str],
    invariants: Sequence[Invariant] = (),
) -> List[CommandGenerator]:
    """Weighted pool: contributions dominate, lifecycle toggles are rarer."""
    factory = create_command_factory(invariants)
    actor = ConstantFrom(*actors)
    amount = Integers(0, target_liquidity * 2)

    return [
        CommandGenerator(
            "AddLiquidity",
            lambda a, who: add_liquidity(factory, a, who),
            arbitraries=(amount, actor),
            weight=4,
        ),
        CommandGenerator(
            "ClearLiquidity",
            lambda who: clear_liquidity(factory, who),
            arbitraries=(actor,),
            weight=2,
        ),
        CommandGenerator("CancelAccumulating", lambda: cancel_accumulating(factory)),
        CommandGenerator("ResumeAccumulating", lambda: resume_accumulating(factory)),
    ]
