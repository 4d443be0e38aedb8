"""
Funding domain — model, fixture, lifecycle commands, and end-to-end oracle runs
against the paper contract (correct and with injected faults).

Run: python -m pytest funding_oracle/tests/test_funding.py -v
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import replace

import pytest

from funding_oracle.contracts.common import LifecycleState, parse_state
from funding_oracle.contracts.invariants import InvariantViolation, funding_invariants
from funding_oracle.engine.errors import BODY
from funding_oracle.engine.runner import run_trial
from funding_oracle.engine.shrink import DeltaDebuggingShrinker
from funding_oracle.funding.commands import (
    add_liquidity,
    cancel_accumulating,
    clear_liquidity,
    create_command_factory,
    create_generators,
    global_check,
    resume_accumulating,
)
from funding_oracle.funding.model import FundingFixture, FundingModel, create_actor_addresses, query_state
from funding_oracle.funding.scenario import ORACLE_NAME, build_funding_oracle
from funding_oracle.paper.reserve_funding import Faults

SEED = int(os.environ.get("ORACLE_TEST_SEED", 42))

TARGET = 100
ACTORS = create_actor_addresses(10, seed=0)
A, B = ACTORS[0], ACTORS[1]
S = LifecycleState


def _run(coro):
    return asyncio.run(coro)


class CapturingFixture(FundingFixture):
    """FundingFixture that remembers the last real system it built."""

    last_real = None

    async def __call__(self):
        model, real = await super().__call__()
        self.last_real = real
        return model, real


def _fixture(balance=200, faults=Faults()):
    return CapturingFixture(TARGET, {actor: balance for actor in ACTORS}, faults=faults)


def _generators():
    return {g.name: g for g in create_generators(TARGET, ACTORS, funding_invariants(ACTORS))}


# ── Model & Fixture ──────────────────────────────────────────

class TestActorAddresses:
    def test_distinct_and_well_formed(self):
        addresses = create_actor_addresses(25, seed=1)
        assert len(set(addresses)) == 25
        assert all(a.startswith("0x") and len(a) == 42 for a in addresses)

    def test_deterministic_per_seed(self):
        assert create_actor_addresses(5, seed=9) == create_actor_addresses(5, seed=9)


class TestFundingModel:
    def test_evolve_returns_new_value(self):
        model = FundingModel({A: 10})
        moved = model.evolve(state=S.CANCELLED)
        assert model.state == S.ACCUMULATING
        assert moved.state == S.CANCELLED
        assert moved.baseline(A) == 10

    def test_baselines_are_read_only(self):
        model = FundingModel({A: 10})
        with pytest.raises(TypeError):
            model.initial_actor_balances[A] = 0

    @pytest.mark.parametrize("state,allowed", [
        (S.ACCUMULATING, True),
        (S.CANCELLED, True),
        (S.LOCKED, False),
        (S.EXPOSED, False),
        (S.COMPLETED, False),
    ])
    def test_global_gate(self, state, allowed):
        assert global_check(FundingModel({}, state=state)) is allowed


class TestFundingFixture:
    def test_fresh_system_every_call(self):
        fixture = _fixture()

        async def go():
            _, first = await fixture()
            _, second = await fixture()
            return first, second

        first, second = _run(go())
        assert first.reserve_funding is not second.reserve_funding
        assert first.token is not second.token
        assert fixture.deployments == 2

    def test_baselines_minted(self):
        fixture = _fixture(balance=777)

        async def go():
            model, real = await fixture()
            return model, [await real.token.balance_of(a) for a in ACTORS]

        model, balances = _run(go())
        assert balances == [777] * len(ACTORS)
        assert model.state == S.ACCUMULATING
        assert dict(model.initial_actor_balances) == {a: 777 for a in ACTORS}
        assert fixture.actors == ACTORS


# ── Commands ─────────────────────────────────────────────────

class TestCommands:
    def setup_method(self):
        self.factory = create_command_factory(funding_invariants(ACTORS))

    def test_labels(self):
        assert add_liquidity(self.factory, 60, A).label == f"AddLiquidity(60, {A})"
        assert clear_liquidity(self.factory, A).label == f"ClearLiquidity({A})"
        assert cancel_accumulating(self.factory).label == "CancelAccumulating()"
        assert resume_accumulating(self.factory).label == "ResumeAccumulating()"

    def test_preconditions(self):
        accumulating = FundingModel({}, state=S.ACCUMULATING)
        cancelled = FundingModel({}, state=S.CANCELLED)
        locked = FundingModel({}, state=S.LOCKED)

        add = add_liquidity(self.factory, 1, A)
        clear = clear_liquidity(self.factory, A)
        cancel = cancel_accumulating(self.factory)
        resume = resume_accumulating(self.factory)

        assert add.check(accumulating) and not add.check(cancelled) and not add.check(locked)
        assert clear.check(accumulating) and clear.check(cancelled) and not clear.check(locked)
        assert cancel.check(accumulating) and not cancel.check(cancelled)
        assert resume.check(cancelled) and not resume.check(accumulating) and not resume.check(locked)

    def test_resync_tracks_lock(self):
        fixture = _fixture()
        commands = [add_liquidity(self.factory, 100, A)]
        result = _run(run_trial(fixture, commands))
        assert result.passed
        assert result.model.state == S.LOCKED

    def test_generator_pool(self):
        generators = _generators()
        assert set(generators) == {"AddLiquidity", "ClearLiquidity", "CancelAccumulating", "ResumeAccumulating"}
        assert generators["AddLiquidity"].weight > generators["CancelAccumulating"].weight
        rebuilt = generators["AddLiquidity"].rebuild((60, A))
        assert rebuilt == add_liquidity(self.factory, 60, A)


# ── Hand-built Scenarios ─────────────────────────────────────

class TestScenarios:
    def test_cancel_clear_resume_lock(self):
        g = _generators()
        commands = [
            g["AddLiquidity"].rebuild((30, A)),
            g["CancelAccumulating"].rebuild(()),
            g["AddLiquidity"].rebuild((10, B)),        # skipped: cancelled
            g["ClearLiquidity"].rebuild((A,)),
            g["ResumeAccumulating"].rebuild(()),
            g["AddLiquidity"].rebuild((150, B)),       # capped at 100, locks
            g["ClearLiquidity"].rebuild((B,)),         # skipped: locked
        ]
        fixture = _fixture()
        result = _run(run_trial(fixture, commands))
        assert result.passed
        assert [c.label for c in result.skipped] == [commands[2].label, commands[6].label]
        assert result.model.state == S.LOCKED

        async def observed():
            real = fixture.last_real
            return (parse_state(await real.reserve_funding.state()),
                    await real.reserve_funding.total_liquidity(),
                    await real.token.balance_of(A),
                    await real.token.balance_of(B))

        assert _run(observed()) == (S.LOCKED, TARGET, 200, 100)

    def test_model_converges_with_real_at_every_trial_point(self):
        oracle = build_funding_oracle(target_liquidity=TARGET, actors=ACTORS, seed=SEED)
        fixture = _fixture(balance=10_000)
        checkpoints = []

        def converging(command):
            body = command.body

            async def checked(model, real):
                # model here is the previous command's resync output (or the setup model)
                observed = await query_state(real)
                assert model.state == observed, f"model {model.state} vs real {observed} before {command}"
                checkpoints.append(command.label)
                return await body(model, real)

            return replace(command, body=checked)

        for trial_seed in range(40):
            commands = [converging(c) for c in oracle.sequence_engine.generate(SEED + trial_seed)]
            result = _run(run_trial(fixture, commands))
            assert result.passed, result.failure
            assert result.model.state == _run(query_state(fixture.last_real))
        assert checkpoints

    def test_overfill_counterexample_shrinks_to_two_commands(self):
        g = _generators()
        commands = [g["AddLiquidity"].rebuild((60, A)), g["AddLiquidity"].rebuild((50, B))]
        setup = _fixture(faults=Faults(overfill=True))

        first = _run(run_trial(setup, commands))
        assert first.failed
        assert first.failed_index == 1
        assert first.failure.source == "total_liquidity_must_not_exceed_target_liquidity"
        assert isinstance(first.failure.cause, InvariantViolation)

        shrunk = _run(DeltaDebuggingShrinker().shrink(setup, commands, first.failure, first.failed_index))
        assert len(shrunk.commands) == 2
        assert all(c.label.startswith("AddLiquidity(") for c in shrunk.commands)
        assert sum(c.params[0] for c in shrunk.commands) == TARGET + 1

    def test_refund_shortfall_fails_in_clear_body(self):
        g = _generators()
        commands = [g["AddLiquidity"].rebuild((10, A)), g["ClearLiquidity"].rebuild((A,))]
        result = _run(run_trial(_fixture(faults=Faults(refund_shortfall=1)), commands))
        assert result.failed
        assert result.failure.source == BODY
        assert result.failure.label == f"ClearLiquidity({A})"
        assert "balance of" in str(result.failure.cause)


# ── Oracle Runs ──────────────────────────────────────────────

class TestFundingOracle:
    def test_correct_contract_holds(self):
        oracle = build_funding_oracle(target_liquidity=TARGET, num_runs=100, seed=SEED)
        result = _run(oracle.assert_holds())
        assert result.passed
        assert oracle.name == ORACLE_NAME

    def test_overfill_detected(self):
        oracle = build_funding_oracle(
            target_liquidity=TARGET, faults=Faults(overfill=True), num_runs=100, seed=SEED,
        )
        result = _run(oracle.check())
        assert not result.passed
        assert result.report.name == ORACLE_NAME
        assert result.report.source == "total_liquidity_must_not_exceed_target_liquidity"
        assert result.report.commands[-1].startswith("AddLiquidity(")
        assert sum(c.params[0] for c in result.commands if c.label.startswith("AddLiquidity(")) == TARGET + 1

    def test_refund_shortfall_detected(self):
        actors = create_actor_addresses(2, seed=0)
        oracle = build_funding_oracle(
            target_liquidity=TARGET, actors=actors, faults=Faults(refund_shortfall=1),
            num_runs=200, seed=SEED,
        )
        result = _run(oracle.check())
        assert not result.passed
        assert result.report.source == BODY
        add, clear = result.report.commands
        assert add.startswith("AddLiquidity(1, ")
        assert clear.startswith("ClearLiquidity(")
        assert add.endswith(clear[len("ClearLiquidity("):])
