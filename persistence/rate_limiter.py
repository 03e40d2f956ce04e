"""
Proctor Stream Rate Limiter

Redis counter-based rate limit for observation pushes.

Key Schema:
    STREAM_RATE:{session_id}:{second}  -> push counter (expires after 2s)

Fails open: an unconfigured or unreachable Redis never blocks ingestion.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import redis
from redis.exceptions import RedisError

from .connection import get_redis_client


logger = logging.getLogger(__name__)


class StreamRateLimiter:
    """Per-session, per-second push limit."""

    STREAM_RATE_LIMIT: int = 10  # per second

    def __init__(self, client: Optional[redis.Redis], limit: int = STREAM_RATE_LIMIT) -> None:
        self.client = client
        self.limit = limit

    @classmethod
    def from_env(cls) -> StreamRateLimiter:
        try:
            client = get_redis_client()
        except (ValueError, RedisError) as e:
            logger.warning(f"Rate limiting disabled, Redis unavailable: {e}")
            client = None
        return cls(client)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _rate_key(self, session_id: str) -> str:
        return f"STREAM_RATE:{session_id}:{int(time.time())}"

    def allow(self, session_id: str) -> bool:
        """Count one push; False when the session exceeded the limit this second."""
        if self.client is None:
            return True
        key = self._rate_key(session_id)
        try:
            count = self.client.incr(key)
            if count == 1:
                self.client.expire(key, 2)  # Auto-cleanup
            return count <= self.limit
        except RedisError as e:
            logger.warning(f"Rate limit check failed: {e}")
            return True  # Fail open
