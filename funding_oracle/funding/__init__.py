"""
funding — Reference domain: the reserve funding lifecycle under model-based test.
"""

from .model import FundingFixture, FundingModel, FundingSystem, create_actor_addresses, query_state
from .commands import (
    add_liquidity, clear_liquidity, cancel_accumulating, resume_accumulating,
    create_command_factory, create_generators, global_check, resync,
)
from .scenario import ORACLE_NAME, build_funding_oracle
