"""
Wires the funding domain into a ModelBasedOracle.

    actors ──▶ FundingFixture (setup)
           ──▶ funding_invariants + create_generators (command pool)
           ──▶ ModelBasedOracle
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence

from funding_oracle.contracts.invariants import funding_invariants
from funding_oracle.engine.oracle import ModelBasedOracle
from funding_oracle.engine.shrink import DeltaDebuggingShrinker
from funding_oracle.paper.reserve_funding import Faults

from .commands import create_generators
from .model import FundingFixture, create_actor_addresses

ORACLE_NAME = "LiquidityAccumulatingModel"


def build_funding_oracle(
    target_liquidity: int = 100,
    actors: Optional[Sequence[str]] = None,
    actor_balance: int = 10_000_000_000_000,
    faults: Faults = Faults(),
    num_runs: int = 100,
    seed: Optional[int] = None,
    max_length: int = 10,
    max_shrink_attempts: int = 2000,
    concurrency: int = 1,
) -> ModelBasedOracle:
    if actors is None:
        actors = create_actor_addresses(10, seed=0)
    balances: Dict[str, int] = {actor: actor_balance for actor in actors}

    fixture = FundingFixture(target_liquidity, balances, faults=faults)
    generators = create_generators(target_liquidity, list(actors), funding_invariants(list(actors)))

    return ModelBasedOracle(
        setup=fixture,
        generators=generators,
        name=ORACLE_NAME,
        num_runs=num_runs,
        seed=seed,
        max_length=max_length,
        shrinker=DeltaDebuggingShrinker(max_attempts=max_shrink_attempts),
        concurrency=concurrency,
    )
