"""
CommandFactory — Wraps raw command bodies into ready-to-run Commands.

Every Command produced by a factory:

    precondition = global_check(model) AND local_check(model)

    execute(model, real):
        1. body(model, real)          → model'   (None = unchanged)
        2. invariant.check(real)      for every registered invariant, in order
        3. resync(model', real)       → model''  (None = unchanged)

The order is fixed: invariant failures are attributed to the command whose
body caused them, before the model is synchronised with the real system.

Models are treated as values. Bodies and resync return a new model instead of
mutating the one they were given, so a shrink replay never shares state with
the run it was derived from.

resync is the ONLY place model state is re-derived from the real system.
Anything that changes the real system outside a command body is invisible to
the model until the next resync, which is a source of model/real drift.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable, Optional, Tuple

from .errors import BODY, RESYNC, CommandFailure

logger = logging.getLogger(__name__)

Check = Callable[[Any], bool]
Body = Callable[[Any, Any], Awaitable[Any]]
Resync = Callable[[Any, Any], Awaitable[Any]]


# ── Precondition ─────────────────────────────────────────────

@dataclass(frozen=True)
class Precondition:
    """Global gate AND optional per-command gate, evaluated against the model."""
    global_check: Optional[Check] = None
    local_check: Optional[Check] = None

    def holds(self, model: Any) -> bool:
        if self.global_check is not None and not self.global_check(model):
            return False
        return self.local_check is None or bool(self.local_check(model))


# ── Invariant ────────────────────────────────────────────────

@dataclass(frozen=True)
class Invariant:
    """Named read-only check over the real system."""
    name: str
    check: Callable[[Any], Awaitable[None]] = field(repr=False)

    @classmethod
    def of(cls, fn: Callable[[Any], Awaitable[None]]) -> "Invariant":
        """Name the invariant after its check function."""
        return cls(name=fn.__name__, check=fn)


# ── Command ──────────────────────────────────────────────────

@dataclass(frozen=True)
class CommandSpec:
    """Raw command body as written by a domain: label, body, optional local check."""
    label: str
    run: Body = field(repr=False)
    check: Optional[Check] = field(default=None, repr=False)


@dataclass(frozen=True)
class Command:
    """
    Preconditioned, model-and-real transforming unit of work.

    Constructing a Command has no side effect. Equality covers the label and
    sampled params only, so a command rebuilt from the same params compares
    equal to the original.
    """
    label: str
    precondition: Precondition = field(compare=False, repr=False)
    body: Body = field(compare=False, repr=False)
    params: Tuple[Any, ...] = ()
    generator: Any = field(default=None, compare=False, repr=False)
    factory: "CommandFactory" = field(default=None, compare=False, repr=False)

    def check(self, model: Any) -> bool:
        return self.precondition.holds(model)

    async def execute(self, model: Any, real: Any) -> Any:
        """Run body → invariants → resync. Returns the next model."""
        if self.factory is None:
            return await _run_body(self, model, real)
        return await self.factory.execute(self, model, real)

    def __str__(self) -> str:
        return self.label


async def _run_body(command: Command, model: Any, real: Any) -> Any:
    try:
        result = await command.body(model, real)
    except Exception as e:
        raise CommandFailure(command.label, BODY, e) from e
    return model if result is None else result


async def _identity_resync(model: Any, real: Any) -> Any:
    return model


# ── Factory ──────────────────────────────────────────────────

class CommandFactory:
    """
    Produces Commands sharing one global gate, invariant set and resync hook.

    All options are optional: no global gate, no invariants, identity resync.
    """

    def __init__(
        self,
        global_check: Optional[Check] = None,
        resync: Optional[Resync] = None,
        invariants: Iterable[Invariant] = (),
    ):
        self._global_check = global_check
        self._resync = resync or _identity_resync
        self._invariants: Tuple[Invariant, ...] = tuple(invariants)

    @property
    def invariants(self) -> Tuple[Invariant, ...]:
        return self._invariants

    def create_command(
        self,
        spec: CommandSpec,
        params: Tuple[Any, ...] = (),
        generator: Any = None,
    ) -> Command:
        return Command(
            label=spec.label,
            precondition=Precondition(self._global_check, spec.check),
            body=spec.run,
            params=tuple(params),
            generator=generator,
            factory=self,
        )

    async def execute(self, command: Command, model: Any, real: Any) -> Any:
        model = await _run_body(command, model, real)

        for invariant in self._invariants:
            try:
                await invariant.check(real)
            except Exception as e:
                logger.debug("%s broke invariant %s: %s", command.label, invariant.name, e)
                raise CommandFailure(command.label, invariant.name, e) from e

        try:
            synced = await self._resync(model, real)
        except Exception as e:
            raise CommandFailure(command.label, RESYNC, e) from e
        return model if synced is None else synced
