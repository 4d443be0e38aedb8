"""
Run driver — Replays one command sequence against a fresh (model, real) pair.

Trial state machine:

    INIT ──setup()──▶ STEP ──precondition false──▶ (skip) STEP
                        │
                        └──precondition true──▶ EXECUTE ──ok──▶ STEP
                                                   │
                                                   └──CommandFailure──▶ FAILED
    STEP ──sequence consumed──▶ PASSED

Exactly one command executes at a time: the next command is not looked at
until the previous body, invariant checks and resync have all completed.
A failure aborts the trial; no later command runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Tuple

from .errors import CommandFailure, SetupError
from .factory import Command

logger = logging.getLogger(__name__)

Setup = Callable[[], Awaitable[Tuple[Any, Any]]]


class TrialStatus(str, Enum):
    PASSED = "PASSED"
    FAILED = "FAILED"


@dataclass
class TrialResult:
    status: TrialStatus
    executed: List[Command] = field(default_factory=list)
    skipped: List[Command] = field(default_factory=list)
    failure: Optional[CommandFailure] = None
    failed_index: Optional[int] = None      # index into the input sequence
    model: Any = None                       # last model reached

    @property
    def passed(self) -> bool:
        return self.status == TrialStatus.PASSED

    @property
    def failed(self) -> bool:
        return self.status == TrialStatus.FAILED


async def setup_trial(setup: Setup) -> Tuple[Any, Any]:
    try:
        model, real = await setup()
    except Exception as e:
        logger.error("Setup failed: %s", e)
        raise SetupError(f"setup failed: {type(e).__name__}: {e}") from e
    return model, real


async def run_trial(setup: Setup, commands: Sequence[Command]) -> TrialResult:
    """
    Run `commands` from a freshly set-up (model, real) pair.

    Raises SetupError if setup fails; command failures are returned as a
    FAILED TrialResult, never raised.
    """
    model, real = await setup_trial(setup)
    result = TrialResult(status=TrialStatus.PASSED, model=model)

    for index, command in enumerate(commands):
        if not command.check(model):
            logger.debug("skip %s (precondition false)", command.label)
            result.skipped.append(command)
            continue

        try:
            model = await command.execute(model, real)
        except CommandFailure as failure:
            logger.debug("FAILED at #%d %s: %s", index, command.label, failure)
            result.status = TrialStatus.FAILED
            result.failure = failure
            result.failed_index = index
            return result

        result.executed.append(command)
        result.model = model
        logger.debug("ran %s", command.label)

    return result
