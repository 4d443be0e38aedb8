"""
Shrink search — Minimises a failing command sequence.

Every candidate is replayed with run_trial from a FRESH setup; real-system
side effects are not reversible, so nothing is reused from earlier runs.
A candidate is kept iff it still fails with the same signature
(failure source + cause type). A candidate whose setup fails counts as not
reproducing; the counterexample already found is never lost.

DeltaDebuggingShrinker:

    1. truncate   drop everything after the failing command
    2. remove     chunk sizes n//2 … 1; drop each chunk in turn
    3. params     per generator-built command, try each shrink_params candidate
    4. repeat 2-3 until neither makes progress (or the attempt budget runs out)

At the fixpoint no single command can be removed while still reproducing the
violation. Any object with the same `shrink` coroutine can replace it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Sequence

from .errors import CommandFailure, SetupError
from .factory import Command
from .runner import Setup, TrialResult, run_trial

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 2000


@dataclass
class ShrinkResult:
    commands: List[Command]
    failure: CommandFailure
    steps: int = 0              # accepted candidates
    attempts: int = 0           # replayed candidates
    exhausted: bool = False     # attempt budget ran out before the fixpoint


class ShrinkStrategy(Protocol):
    async def shrink(
        self,
        setup: Setup,
        commands: Sequence[Command],
        failure: CommandFailure,
        failed_index: Optional[int] = None,
    ) -> ShrinkResult:
        ...


class _BudgetExhausted(Exception):
    pass


class DeltaDebuggingShrinker:
    """Remove elements first, then shrink their parameters."""

    def __init__(self, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        self.max_attempts = max_attempts

    async def shrink(
        self,
        setup: Setup,
        commands: Sequence[Command],
        failure: CommandFailure,
        failed_index: Optional[int] = None,
    ) -> ShrinkResult:
        state = _ShrinkState(setup, failure.signature, self.max_attempts)
        current = list(commands)
        if failed_index is not None:
            current = current[:failed_index + 1]
        best_failure = failure
        exhausted = False

        try:
            while True:
                progressed = False

                removed = await self._remove_chunks(state, current)
                if removed is not None:
                    current, best_failure = removed
                    progressed = True

                edited = await self._shrink_params(state, current)
                if edited is not None:
                    current, best_failure = edited
                    progressed = True

                if not progressed:
                    break
        except _BudgetExhausted:
            exhausted = True
            logger.warning(
                "Shrink budget of %d attempts exhausted, result may not be minimal",
                self.max_attempts,
            )
            if state.best is not None:
                current, best_failure = state.best

        logger.info(
            "Shrunk %d → %d commands (%d steps, %d attempts)",
            len(commands), len(current), state.steps, state.attempts,
        )
        return ShrinkResult(
            commands=current,
            failure=best_failure,
            steps=state.steps,
            attempts=state.attempts,
            exhausted=exhausted,
        )

    async def _remove_chunks(self, state: "_ShrinkState", commands: List[Command]):
        """Returns (commands, failure) if anything was removed, else None."""
        current = list(commands)
        best_failure = None
        chunk = max(len(current) // 2, 1)
        while chunk >= 1 and current:
            start = 0
            while start < len(current):
                candidate = current[:start] + current[start + chunk:]
                found = await state.try_candidate(candidate)
                if found is not None:
                    current, best_failure = found
                    # same start now points at the next unexamined chunk
                    continue
                start += chunk
            chunk //= 2
        if best_failure is None:
            return None
        return current, best_failure

    async def _shrink_params(self, state: "_ShrinkState", commands: List[Command]):
        """Returns (commands, failure) if any param was shrunk, else None."""
        current = list(commands)
        best_failure = None
        i = 0
        while i < len(current):
            command = current[i]
            accepted = False
            if command.generator is not None:
                for params in command.generator.shrink_params(command.params):
                    candidate = current[:i] + [command.generator.rebuild(params)] + current[i + 1:]
                    found = await state.try_candidate(candidate)
                    if found is not None:
                        current, best_failure = found
                        accepted = True
                        break
            # retry the same position after a successful edit
            if not accepted:
                i += 1
        if best_failure is None:
            return None
        return current, best_failure


class _ShrinkState:
    """Replays candidates and keeps attempt/step counters."""

    def __init__(self, setup: Setup, signature: tuple, max_attempts: int):
        self._setup = setup
        self._signature = signature
        self._max_attempts = max_attempts
        self.attempts = 0
        self.steps = 0
        self.best: Any = None

    async def try_candidate(self, candidate: List[Command]):
        """(truncated candidate, failure) if it reproduces the violation, else None."""
        if self.attempts >= self._max_attempts:
            raise _BudgetExhausted()
        self.attempts += 1
        try:
            result: TrialResult = await run_trial(self._setup, candidate)
        except SetupError as e:
            logger.warning("Shrink candidate %d not replayed: %s", self.attempts, e)
            return None
        if not result.failed or result.failure.signature != self._signature:
            return None
        kept = list(candidate[:result.failed_index + 1])
        self.steps += 1
        self.best = (kept, result.failure)
        logger.debug("shrink step %d: %d commands", self.steps, len(kept))
        return kept, result.failure
