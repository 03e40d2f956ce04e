"""
Proctor Persistence Layer

Public exports for persistence gateways and the stream rate limiter.
"""

from .connection import get_redis_client, get_supabase_client
from .gateway import (
    PersistenceError,
    PersistenceGateway,
    InMemoryPersistenceGateway,
)
from .supabase_gateway import SupabasePersistenceGateway, build_gateway
from .rate_limiter import StreamRateLimiter

__all__ = [
    "get_redis_client",
    "get_supabase_client",
    "PersistenceError",
    "PersistenceGateway",
    "InMemoryPersistenceGateway",
    "SupabasePersistenceGateway",
    "build_gateway",
    "StreamRateLimiter",
]
