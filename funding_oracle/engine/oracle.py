"""
ModelBasedOracle — Generate, run, shrink, report.

    for each trial seed (derived from one master seed):
        commands = SequenceEngine.generate(trial_seed)
        result   = run_trial(setup, commands)        fresh (model, real)
        if FAILED:
            shrunk = shrinker.shrink(setup, commands, failure)
            return FailureReport(shrunk commands, violated property, cause)

Trials may run concurrently (`concurrency > 1`): each one gets its own setup
output, so nothing is shared. Shrinking always runs alone. With concurrent
batches the reported failure is the first failing trial in seed order. When a
trial's setup fails, the rest of its batch is cancelled before SetupError
propagates, so no command runs unsupervised.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from funding_oracle.contracts.report import FailureReport

from .arbitrary import CommandGenerator
from .errors import CommandFailure, CounterexampleFound
from .factory import Command
from .runner import Setup, TrialResult, run_trial
from .sequence import SequenceEngine, derive_seeds
from .shrink import DeltaDebuggingShrinker, ShrinkStrategy

logger = logging.getLogger(__name__)


@dataclass
class OracleResult:
    passed: bool
    runs: int                                   # trials started
    seed: int                                   # master seed
    report: Optional[FailureReport] = None
    failure: Optional[CommandFailure] = None
    commands: List[Command] = field(default_factory=list)   # shrunk counterexample


class ModelBasedOracle:
    """
    Property: for every generated sequence, the model run never fails.

    `check()` returns an OracleResult; `assert_holds()` raises
    CounterexampleFound instead of returning a failing result.
    """

    def __init__(
        self,
        setup: Setup,
        generators: Sequence[CommandGenerator],
        name: str = "model run",
        num_runs: int = 100,
        seed: Optional[int] = None,
        min_length: int = 0,
        max_length: int = 10,
        shrinker: Optional[ShrinkStrategy] = None,
        concurrency: int = 1,
    ):
        if num_runs < 1:
            raise ValueError(f"num_runs must be >= 1, got {num_runs}")
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        self.name = name
        self._setup = setup
        self._engine = SequenceEngine(generators, min_length=min_length, max_length=max_length)
        self.num_runs = num_runs
        self.seed = seed if seed is not None else random.SystemRandom().getrandbits(31)
        self._shrinker = shrinker or DeltaDebuggingShrinker()
        self.concurrency = concurrency

    @property
    def sequence_engine(self) -> SequenceEngine:
        return self._engine

    # ── Entry Points ──

    async def check(self) -> OracleResult:
        seeds = derive_seeds(self.seed, self.num_runs)
        logger.info(
            "%s: %d runs, seed=%d, size=%d, concurrency=%d",
            self.name, self.num_runs, self.seed, self._engine.size, self.concurrency,
        )

        started = 0
        for batch_start in range(0, len(seeds), self.concurrency):
            batch = list(enumerate(seeds))[batch_start:batch_start + self.concurrency]
            started += len(batch)
            outcomes = await self._run_batch(batch)

            for run_index, trial_seed, commands, result in outcomes:
                if result.failed:
                    return await self._counterexample(run_index, trial_seed, commands, result, started)

        logger.info("%s: passed %d runs", self.name, started)
        return OracleResult(passed=True, runs=started, seed=self.seed)

    async def replay(self, trial_seed: int, run_index: int = 0) -> OracleResult:
        """Re-run a single reported trial seed (and shrink again if it still fails)."""
        commands = self._engine.generate(trial_seed)
        result = await run_trial(self._setup, commands)
        if result.failed:
            return await self._counterexample(run_index, trial_seed, commands, result, 1)
        logger.info("%s: replay of seed %d passed", self.name, trial_seed)
        return OracleResult(passed=True, runs=1, seed=self.seed)

    async def assert_holds(self) -> OracleResult:
        result = await self.check()
        if not result.passed:
            raise CounterexampleFound(result.report, result.failure)
        return result

    # ── Internals ──

    async def _run_batch(
        self, batch: List[Tuple[int, int]],
    ) -> List[Tuple[int, int, List[Command], TrialResult]]:
        async def one(run_index: int, trial_seed: int):
            commands = self._engine.generate(trial_seed)
            result = await run_trial(self._setup, commands)
            return run_index, trial_seed, commands, result

        if len(batch) == 1:
            return [await one(*batch[0])]

        tasks = [asyncio.ensure_future(one(i, s)) for i, s in batch]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            # A fatal trial stops its siblings before the error leaves the batch
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _counterexample(
        self,
        run_index: int,
        trial_seed: int,
        commands: List[Command],
        result: TrialResult,
        runs: int,
    ) -> OracleResult:
        original = commands[:result.failed_index + 1]
        logger.info(
            "%s: run %d (seed=%d) failed after %d commands, shrinking",
            self.name, run_index, trial_seed, len(original),
        )
        shrunk = await self._shrinker.shrink(
            self._setup, commands, result.failure, result.failed_index,
        )
        failure = shrunk.failure
        report = FailureReport(
            name=self.name,
            seed=trial_seed,
            run_index=run_index,
            commands=[c.label for c in shrunk.commands],
            original_length=len(original),
            source=failure.source,
            failing_command=failure.label,
            error_type=type(failure.cause).__name__,
            error=str(failure.cause),
            shrink_steps=shrunk.steps,
        )
        logger.warning("%s", report.describe())
        return OracleResult(
            passed=False,
            runs=runs,
            seed=self.seed,
            report=report,
            failure=failure,
            commands=shrunk.commands,
        )
