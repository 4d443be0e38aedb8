"""
Oracle configuration — environment variables with a project-root .env fallback.

The .env file never overrides variables already set in the environment.

    ORACLE_SEED                  master seed (unset = random, logged)
    ORACLE_NUM_RUNS              trials per check            (100)
    ORACLE_MAX_LENGTH            max commands per sequence   (10)
    ORACLE_MAX_SHRINK_ATTEMPTS   shrink replay budget        (2000)
    ORACLE_CONCURRENCY           trials run at once          (1)
    ORACLE_TARGET_LIQUIDITY      funding target              (100)
    ORACLE_ACTOR_COUNT           number of actors            (10)
    ORACLE_ACTOR_BALANCE         token baseline per actor    (10_000_000_000_000)
    ORACLE_DB_PATH               SQLite counterexample store (oracle_failures.db)
    REDIS_URL                    publish reports when set
    LOG_LEVEL                    logging level               (INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

_PROJECT_ROOT = Path(__file__).resolve().parents[1]
_ENV_FILE = _PROJECT_ROOT / ".env"


def load_env_file(path: Path = _ENV_FILE) -> None:
    """KEY=VALUE lines into os.environ (setdefault, comments skipped)."""
    if not path.exists():
        return
    with open(path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, _, value = line.partition("=")
                os.environ.setdefault(key.strip(), value.strip())


def _int_env(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class OracleConfig:
    seed: Optional[int] = None
    num_runs: int = 100
    max_length: int = 10
    max_shrink_attempts: int = 2000
    concurrency: int = 1
    target_liquidity: int = 100
    actor_count: int = 10
    actor_balance: int = 10_000_000_000_000
    db_path: str = "oracle_failures.db"
    redis_url: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env_file: Path = _ENV_FILE) -> "OracleConfig":
        load_env_file(env_file)
        defaults = cls()
        return cls(
            seed=_int_env("ORACLE_SEED", None),
            num_runs=_int_env("ORACLE_NUM_RUNS", defaults.num_runs),
            max_length=_int_env("ORACLE_MAX_LENGTH", defaults.max_length),
            max_shrink_attempts=_int_env("ORACLE_MAX_SHRINK_ATTEMPTS", defaults.max_shrink_attempts),
            concurrency=_int_env("ORACLE_CONCURRENCY", defaults.concurrency),
            target_liquidity=_int_env("ORACLE_TARGET_LIQUIDITY", defaults.target_liquidity),
            actor_count=_int_env("ORACLE_ACTOR_COUNT", defaults.actor_count),
            actor_balance=_int_env("ORACLE_ACTOR_BALANCE", defaults.actor_balance),
            db_path=os.getenv("ORACLE_DB_PATH", defaults.db_path),
            redis_url=os.getenv("REDIS_URL", ""),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        )
