"""
arbitrary — Random value sources and command generators.

An Arbitrary samples a value from a seeded random.Random and proposes
strictly "smaller" replacements for a value during shrinking:

    Integers(lo, hi)      shrinks toward lo, halving the distance each time
    ConstantFrom(*vs)     shrinks toward earlier elements
    Just(v)               never shrinks

A CommandGenerator turns sampled params into a concrete Command through a
`build(*params)` callable, and can rebuild the same Command from its params;
the shrinker relies on that to replay edited sequences.
"""

from __future__ import annotations

import random
from dataclasses import replace
from typing import Any, Callable, Iterator, Sequence, Tuple

from .factory import Command


class Arbitrary:
    """Base value source."""

    def sample(self, rng: random.Random) -> Any:
        raise NotImplementedError

    def shrink(self, value: Any) -> Iterator[Any]:
        return iter(())


class Integers(Arbitrary):
    def __init__(self, min_value: int, max_value: int):
        if min_value > max_value:
            raise ValueError(f"min_value ({min_value}) > max_value ({max_value})")
        self.min_value = min_value
        self.max_value = max_value

    def sample(self, rng: random.Random) -> int:
        return rng.randint(self.min_value, self.max_value)

    def shrink(self, value: int) -> Iterator[int]:
        """lo, then value minus half the remaining distance, down to value-1."""
        if value <= self.min_value:
            return
        yield self.min_value
        distance = value - self.min_value
        step = distance // 2
        while step > 0:
            candidate = value - step
            if candidate != self.min_value:
                yield candidate
            step //= 2

    def __repr__(self) -> str:
        return f"Integers({self.min_value}, {self.max_value})"


class ConstantFrom(Arbitrary):
    def __init__(self, *values: Any):
        if not values:
            raise ValueError("ConstantFrom needs at least one value")
        self.values: Tuple[Any, ...] = tuple(values)

    def sample(self, rng: random.Random) -> Any:
        return rng.choice(self.values)

    def shrink(self, value: Any) -> Iterator[Any]:
        try:
            index = self.values.index(value)
        except ValueError:
            return
        yield from self.values[:index]

    def __repr__(self) -> str:
        return f"ConstantFrom({len(self.values)} values)"


class Just(Arbitrary):
    def __init__(self, value: Any):
        self.value = value

    def sample(self, rng: random.Random) -> Any:
        return self.value

    def __repr__(self) -> str:
        return f"Just({self.value!r})"


class CommandGenerator:
    """
    Weighted recipe for one kind of Command.

    `build(*params)` must be free of side effects and deterministic in its
    params: rebuilding from the same params yields an equal Command.
    """

    def __init__(
        self,
        name: str,
        build: Callable[..., Any],
        arbitraries: Sequence[Arbitrary] = (),
        weight: int = 1,
    ):
        if weight < 1:
            raise ValueError(f"{name}: weight must be >= 1, got {weight}")
        self.name = name
        self._build = build
        self.arbitraries: Tuple[Arbitrary, ...] = tuple(arbitraries)
        self.weight = weight

    def generate(self, rng: random.Random) -> Command:
        params = tuple(arb.sample(rng) for arb in self.arbitraries)
        return self.rebuild(params)

    def rebuild(self, params: Sequence[Any]) -> Command:
        params = tuple(params)
        if len(params) != len(self.arbitraries):
            raise ValueError(
                f"{self.name}: expected {len(self.arbitraries)} params, got {len(params)}"
            )
        command = self._build(*params)
        # Stamp the origin so the shrinker can edit params and rebuild.
        return replace(command, params=params, generator=self)

    def shrink_params(self, params: Sequence[Any]) -> Iterator[Tuple[Any, ...]]:
        """One param at a time, left to right, each arbitrary's own candidates."""
        params = tuple(params)
        for i, arb in enumerate(self.arbitraries):
            for candidate in arb.shrink(params[i]):
                yield params[:i] + (candidate,) + params[i + 1:]

    def __repr__(self) -> str:
        return f"CommandGenerator({self.name!r}, weight={self.weight})"
