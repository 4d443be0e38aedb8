"""
ReportPublisher — Hands counterexample reports to test-runner integrations via Redis.

    oracle ──FailureReport──▶ ReportPublisher
                                 │
                                 ├── SET     oracle:counterexample:{name}   (JSON, 24h TTL)
                                 └── PUBLISH oracle:events:counterexample   (JSON)
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from funding_oracle.contracts.common import EventType, RedisKey
from funding_oracle.contracts.report import FailureReport

logger = logging.getLogger(__name__)


class ReportPublisher:
    def __init__(self, redis_client: Any, ttl: int = RedisKey.COUNTEREXAMPLE_TTL):
        self._redis = redis_client
        self._ttl = ttl

    @classmethod
    def from_url(cls, redis_url: str) -> "ReportPublisher":
        import redis.asyncio as aioredis
        return cls(aioredis.from_url(redis_url, decode_responses=True))

    async def publish(self, report: FailureReport) -> int:
        """Store the latest report for its property and announce it. Returns subscriber count."""
        payload = report.to_json()
        await self._redis.set(RedisKey.counterexample(report.name), payload, ex=self._ttl)
        receivers = await self._redis.publish(
            RedisKey.event_channel(EventType.COUNTEREXAMPLE), payload,
        )
        logger.info("Published counterexample for %s to %d subscribers", report.name, receivers)
        return receivers

    async def latest(self, name: str) -> Optional[FailureReport]:
        raw = await self._redis.get(RedisKey.counterexample(name))
        if not raw:
            return None
        raw = raw.decode() if isinstance(raw, bytes) else raw
        return FailureReport.from_dict(json.loads(raw))

    async def close(self) -> None:
        await self._redis.close()
