"""
SequenceEngine — Seeded generation of command sequences.

Sequences are generated WITHOUT consulting preconditions: which commands are
admissible depends on the model state reached by earlier commands of the same
sequence, so preconditions are evaluated lazily by the run driver.

Determinism: same seed + same generators (same order, weights, arbitraries)
→ same sequence of labels and params. Shrinking and replaying a reported
failure both depend on this.
"""

from __future__ import annotations

import logging
import random
from typing import List, Sequence, Union

from .arbitrary import CommandGenerator
from .factory import Command

logger = logging.getLogger(__name__)

SeedLike = Union[int, random.Random]


def _as_rng(seed: SeedLike) -> random.Random:
    if isinstance(seed, random.Random):
        return seed
    return random.Random(seed)


def derive_seeds(seed: int, count: int) -> List[int]:
    """Per-trial seeds for one oracle run, all drawn from one master seed."""
    master = random.Random(seed)
    return [master.getrandbits(63) for _ in range(count)]


class SequenceEngine:
    """Produces sequences of length in [min_length, max_length] from a generator pool."""

    def __init__(
        self,
        generators: Sequence[CommandGenerator],
        min_length: int = 0,
        max_length: int = 10,
    ):
        if not generators:
            raise ValueError("SequenceEngine needs at least one generator")
        if min_length < 0:
            raise ValueError(f"min_length must be >= 0, got {min_length}")
        if max_length < min_length:
            raise ValueError(f"max_length ({max_length}) < min_length ({min_length})")
        self._generators = list(generators)
        self._weights = [g.weight for g in self._generators]
        self.min_length = min_length
        self.max_length = max_length

    @property
    def size(self) -> int:
        """The single size knob: the maximum sequence length."""
        return self.max_length

    @property
    def generators(self) -> List[CommandGenerator]:
        return list(self._generators)

    def generate(self, seed: SeedLike) -> List[Command]:
        rng = _as_rng(seed)
        length = rng.randint(self.min_length, self.max_length)
        commands = []
        for _ in range(length):
            generator = rng.choices(self._generators, weights=self._weights, k=1)[0]
            commands.append(generator.generate(rng))
        logger.debug("Generated %d commands", length)
        return commands
