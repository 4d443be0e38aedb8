"""
errors — Failure types raised by the model-run engine.

    CommandFailure       a command body, invariant or resync step rejected
    SetupError           the setup collaborator could not build (model, real)
    CounterexampleFound  the oracle found (and shrank) a failing sequence

Precondition mismatches are not errors: the run driver skips those commands.
"""

from __future__ import annotations

from typing import Optional

BODY = "command body"
RESYNC = "resync"


class CommandFailure(Exception):
    """A command aborted its trial.

    `source` is the invariant name, BODY or RESYNC; `cause` is the
    underlying exception.
    """

    def __init__(self, label: str, source: str, cause: BaseException):
        self.label = label
        self.source = source
        self.cause = cause
        super().__init__(f"{label} failed in {source}: {type(cause).__name__}: {cause}")

    @property
    def signature(self) -> tuple:
        """Two failures are 'the same violation' iff their signatures match."""
        return (self.source, type(self.cause).__name__)

    @property
    def is_invariant_violation(self) -> bool:
        return self.source not in (BODY, RESYNC)


class SetupError(Exception):
    """Setup failed. Fatal to the trial, nothing to shrink."""
    pass


class CounterexampleFound(AssertionError):
    """Raised by ModelBasedOracle.assert_holds with the shrunk report attached."""

    def __init__(self, report, failure: Optional[CommandFailure] = None):
        self.report = report
        self.failure = failure
        super().__init__(report.describe())
