"""
Funding model, real-system handles, and the per-trial setup fixture.

    FundingModel   expected state: actor baselines (fixed at setup) + lifecycle state
    FundingSystem  handles to the live system: contract, token, authority
    FundingFixture async () → (FundingModel, FundingSystem), fresh every call
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, List, Mapping, Optional, Tuple

from funding_oracle.contracts.common import LifecycleState, parse_state
from funding_oracle.paper.reserve_funding import Faults, PaperReserveFunding
from funding_oracle.paper.token import PaperToken

logger = logging.getLogger(__name__)


def create_actor_addresses(n: int, seed: Optional[int] = None) -> List[str]:
    """n distinct wallet-style addresses (0x + 40 hex), deterministic per seed."""
    rng = random.Random(seed)
    addresses: List[str] = []
    seen = set()
    while len(addresses) < n:
        address = "0x" + format(rng.getrandbits(160), "040x")
        if address not in seen:
            seen.add(address)
            addresses.append(address)
    return addresses


@dataclass(frozen=True)
class FundingModel:
    """Independent expected state. Never mutated, use evolve()."""
    initial_actor_balances: Mapping[str, int] = field(default_factory=dict)
    state: LifecycleState = LifecycleState.ACCUMULATING

    def __post_init__(self):
        object.__setattr__(self, "initial_actor_balances",
                           MappingProxyType(dict(self.initial_actor_balances)))

    def evolve(self, **changes) -> "FundingModel":
        return replace(self, **changes)

    def baseline(self, actor: str) -> int:
        return self.initial_actor_balances[actor]


@dataclass(frozen=True)
class FundingSystem:
    """Handles to the real system for one trial."""
    reserve_funding: Any
    token: Any
    authority: str


async def query_state(real: FundingSystem) -> LifecycleState:
    return parse_state(await real.reserve_funding.state())


class FundingFixture:
    """
    Setup collaborator: every call deploys a new token + contract, funds the
    actors with their baselines, and queries the initial lifecycle state.
    """

    def __init__(
        self,
        target_liquidity: int,
        actor_balances: Mapping[str, int],
        authority: str = "0x" + "a0" * 20,
        faults: Faults = Faults(),
    ):
        self.target_liquidity = target_liquidity
        self.actor_balances = dict(actor_balances)
        self.authority = authority
        self.faults = faults
        self.deployments = 0

    @property
    def actors(self) -> List[str]:
        return list(self.actor_balances)

    async def __call__(self) -> Tuple[FundingModel, FundingSystem]:
        token = PaperToken()
        for actor, balance in self.actor_balances.items():
            await token.mint(actor, balance)

        reserve_funding = PaperReserveFunding(
            token=token,
            target_liquidity=self.target_liquidity,
            authority=self.authority,
            faults=self.faults,
        )
        real = FundingSystem(reserve_funding=reserve_funding, token=token, authority=self.authority)
        self.deployments += 1
        logger.debug("Deployment #%d: target=%d, %d actors", self.deployments,
                     self.target_liquidity, len(self.actor_balances))

        model = FundingModel(
            initial_actor_balances=self.actor_balances,
            state=await query_state(real),
        )
        return model, real
