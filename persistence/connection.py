"""
Proctor Backend Connections

Process-wide Redis and Supabase clients, built lazily from environment
variables and cached for the life of the process.

Redis only backs the stream rate limiter; Supabase backs durable event and
session storage. Both are optional and callers fall back when a client
cannot be built.
"""

import os
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

import redis
from redis.exceptions import RedisError, AuthenticationError
from supabase import create_client, Client

logger = logging.getLogger(__name__)

# Rate checks sit on the ingestion path and must not stall it
_REDIS_POOL_OPTIONS: Dict[str, Any] = {
    "decode_responses": True,
    "max_connections": 20,
    "socket_timeout": 2.0,
}


def _build_redis_pool() -> redis.ConnectionPool:
    url = os.getenv("REDIS_URL")
    if url:
        return redis.ConnectionPool.from_url(url, **_REDIS_POOL_OPTIONS)

    password = os.getenv("REDIS_PASSWORD")
    if not password:
        logger.warning("Neither REDIS_URL nor REDIS_PASSWORD is set.")
        raise ValueError("REDIS_URL or REDIS_PASSWORD is required to connect to Redis.")

    return redis.ConnectionPool(
        host=os.getenv("REDIS_HOST", "localhost"),
        port=int(os.getenv("REDIS_PORT", 6379)),
        db=int(os.getenv("REDIS_DB", 0)),
        password=password,
        **_REDIS_POOL_OPTIONS,
    )


@lru_cache(maxsize=1)
def get_redis_client() -> redis.Redis:
    """
    Shared Redis client for rate limiting.

    Reads either REDIS_URL, or REDIS_HOST / REDIS_PORT / REDIS_DB plus the
    required REDIS_PASSWORD. The client is pinged once before it is cached.

    Raises:
        ValueError: No Redis credentials configured.
        RedisError: Redis unreachable or authentication rejected.
    """
    pool = _build_redis_pool()
    client = redis.Redis(connection_pool=pool)

    try:
        client.ping()
    except AuthenticationError:
        logger.error("Redis authentication failed; check the configured password.")
        pool.disconnect()
        raise
    except RedisError as e:
        logger.error(f"Could not reach Redis: {e}")
        pool.disconnect()
        raise

    logger.info(f"Connected to Redis ({pool.connection_kwargs.get('host', 'url')})")
    return client


@lru_cache(maxsize=1)
def get_supabase_client() -> Optional[Client]:
    """Shared Supabase client, or None when SUPABASE_URL / SUPABASE_KEY are missing."""
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_KEY")

    if not url or not key:
        logger.warning("Supabase credentials missing - remote persistence disabled")
        return None

    return create_client(url, key)
