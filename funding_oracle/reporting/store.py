"""
FailureStore — Persists counterexample reports in SQLite (aiosqlite).

Each stored report keeps the trial seed, so a failure found in one session
can be replayed in the next with ModelBasedOracle.replay(seed).

Usage:
    store = FailureStore("oracle_failures.db")
    await store.connect()
    report_id = await store.save(report)
    latest = await store.latest("LiquidityAccumulatingModel")
    await store.close()
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import aiosqlite

from funding_oracle.contracts.report import FailureReport

logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_DB_PATH = _PROJECT_ROOT / "oracle_failures.db"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS counterexamples (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    seed INTEGER,
    source TEXT NOT NULL,
    command_count INTEGER NOT NULL,
    payload TEXT NOT NULL,
    created_at INTEGER NOT NULL
)
"""


class FailureStore:
    """Async SQLite store for FailureReports."""

    def __init__(self, path: str = str(DEFAULT_DB_PATH)):
        self._path = path
        self._conn: Any = None  # aiosqlite.Connection

    async def connect(self) -> None:
        """Open connection and create the table. Idempotent."""
        if self._conn is not None:
            return
        self._conn = await aiosqlite.connect(self._path, timeout=10)
        self._conn.row_factory = aiosqlite.Row
        if self._path != ":memory:":
            await self._conn.execute("PRAGMA journal_mode=WAL")
        await self._conn.execute(_SCHEMA)
        await self._conn.commit()
        logger.info("FailureStore: SQLite connected (%s)", self._path)

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def save(self, report: FailureReport) -> int:
        """Insert a report, return its row id."""
        assert self._conn, "FailureStore not connected"
        cursor = await self._conn.execute(
            "INSERT INTO counterexamples (name, seed, source, command_count, payload, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                report.name,
                report.seed,
                report.source,
                len(report.commands),
                report.to_json(),
                report.created_at,
            ),
        )
        await self._conn.commit()
        logger.info("Stored counterexample #%d for %s (seed=%s)", cursor.lastrowid, report.name, report.seed)
        return cursor.lastrowid

    async def latest(self, name: Optional[str] = None) -> Optional[FailureReport]:
        """Most recent report, optionally for one property name."""
        assert self._conn, "FailureStore not connected"
        if name is None:
            cursor = await self._conn.execute(
                "SELECT payload FROM counterexamples ORDER BY id DESC LIMIT 1"
            )
        else:
            cursor = await self._conn.execute(
                "SELECT payload FROM counterexamples WHERE name = ? ORDER BY id DESC LIMIT 1",
                (name,),
            )
        row = await cursor.fetchone()
        return FailureReport.from_dict(json.loads(row["payload"])) if row else None

    async def list(self, limit: int = 20) -> List[FailureReport]:
        """Newest first."""
        assert self._conn, "FailureStore not connected"
        cursor = await self._conn.execute(
            "SELECT payload FROM counterexamples ORDER BY id DESC LIMIT ?", (limit,)
        )
        rows = await cursor.fetchall()
        return [FailureReport.from_dict(json.loads(row["payload"])) for row in rows]
