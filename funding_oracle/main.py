"""
Funding Oracle — Command-line entry point.

Runs the reserve funding model against the paper contract and reports the
shrunk counterexample, if any:

    ┌──────────────────────────────────────────────────────────┐
    │                   main.py (this file)                    │
    ├───────────────┬────────────────┬─────────────────────────┤
    │ OracleConfig  │ FundingFixture │ ModelBasedOracle        │
    │ (env + flags) │ (paper setup)  │ (generate/run/shrink)   │
    ├───────────────┴────────────────┼─────────────────────────┤
    │ FailureStore (SQLite history)  │ ReportPublisher (Redis) │
    └────────────────────────────────┴─────────────────────────┘

Usage:
    python -m funding_oracle.main --runs 200 --seed 7
    python -m funding_oracle.main --fault overfill
    python -m funding_oracle.main --fault overfill --replay 1234567

Exit status: 0 when the property holds, 1 on a counterexample, 2 on setup failure.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from funding_oracle.config import OracleConfig
from funding_oracle.contracts.report import FailureReport
from funding_oracle.engine.errors import SetupError
from funding_oracle.funding.model import create_actor_addresses
from funding_oracle.funding.scenario import build_funding_oracle
from funding_oracle.paper.reserve_funding import Faults

logger = logging.getLogger("funding_oracle")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Model-based oracle for the reserve funding lifecycle")
    parser.add_argument("--runs", type=int, help="trials to run (ORACLE_NUM_RUNS)")
    parser.add_argument("--seed", type=int, help="master seed (ORACLE_SEED)")
    parser.add_argument("--max-length", type=int, help="max commands per trial (ORACLE_MAX_LENGTH)")
    parser.add_argument("--concurrency", type=int, help="trials run at once (ORACLE_CONCURRENCY)")
    parser.add_argument("--fault", default="none", choices=["none", "overfill", "refund-shortfall"],
                        help="inject a known defect into the paper contract")
    parser.add_argument("--replay", type=int, metavar="SEED", help="replay a single trial seed")
    parser.add_argument("--no-store", action="store_true", help="do not persist counterexamples")
    return parser.parse_args(argv)


def apply_overrides(config: OracleConfig, args: argparse.Namespace) -> OracleConfig:
    if args.runs is not None:
        config.num_runs = args.runs
    if args.seed is not None:
        config.seed = args.seed
    if args.max_length is not None:
        config.max_length = args.max_length
    if args.concurrency is not None:
        config.concurrency = args.concurrency
    return config


async def run(config: OracleConfig, fault: str = "none", replay: Optional[int] = None,
              store_reports: bool = True) -> int:
    """Run the oracle once. Returns the process exit status."""

    # ── 1. Oracle ──
    oracle = build_funding_oracle(
        target_liquidity=config.target_liquidity,
        actors=create_actor_addresses(config.actor_count, seed=0),
        actor_balance=config.actor_balance,
        faults=Faults.named(fault),
        num_runs=config.num_runs,
        seed=config.seed,
        max_length=config.max_length,
        max_shrink_attempts=config.max_shrink_attempts,
        concurrency=config.concurrency,
    )
    logger.info("Oracle %s built (fault=%s, seed=%d)", oracle.name, fault, oracle.seed)

    # ── 2. Run ──
    try:
        if replay is not None:
            result = await oracle.replay(replay)
        else:
            result = await oracle.check()
    except SetupError as e:
        logger.error("Aborted: %s", e)
        return 2

    if result.passed:
        logger.info("Property holds after %d runs (seed=%d)", result.runs, result.seed)
        return 0

    # ── 3. Report ──
    print(result.report.describe())
    if store_reports:
        await _store(config, result.report)
    if config.redis_url:
        await _publish(config, result.report)
    return 1


async def _store(config: OracleConfig, report: FailureReport) -> None:
    """Best effort: the counterexample is already printed."""
    from funding_oracle.reporting.store import FailureStore

    store = FailureStore(config.db_path)
    try:
        await store.connect()
        await store.save(report)
    except Exception as e:
        logger.warning("Could not store counterexample (non-fatal): %s", e)
    finally:
        await store.close()


async def _publish(config: OracleConfig, report: FailureReport) -> None:
    from funding_oracle.reporting.publisher import ReportPublisher

    publisher = ReportPublisher.from_url(config.redis_url)
    try:
        await publisher.publish(report)
    except Exception as e:
        logger.warning("Could not publish counterexample to %s (non-fatal): %s", config.redis_url, e)
    finally:
        try:
            await publisher.close()
        except Exception as e:
            logger.debug("Redis close failed: %s", e)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    config = apply_overrides(OracleConfig.from_env(), args)

    # ── 0. Logging ──
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        return asyncio.run(run(config, args.fault, args.replay, not args.no_store))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
