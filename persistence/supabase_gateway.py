"""
Proctor Supabase Gateway

Inserts integrity events and final session snapshots into Supabase.

Schema:
    proctoring_events (
        event_id   TEXT PRIMARY KEY,      -- "{session_id}:{event.id}"
        session_id TEXT,
        payload    JSONB,
        created_at TIMESTAMPTZ DEFAULT now()
    )
    proctoring_sessions (
        session_id TEXT PRIMARY KEY,
        candidate_name TEXT,
        integrity_score INT,
        payload    JSONB,
        created_at TIMESTAMPTZ DEFAULT now()
    )
"""

from __future__ import annotations

import logging
from typing import Optional

from supabase import Client

from core.schemas.outputs import CanonicalEvent, SessionSnapshot
from .connection import get_supabase_client
from .gateway import InMemoryPersistenceGateway, PersistenceError, PersistenceGateway


logger = logging.getLogger(__name__)


class SupabasePersistenceGateway(PersistenceGateway):
    """
    Supabase-backed gateway.

    Every failure is re-raised as PersistenceError so the orchestrator can
    surface it without rolling back in-memory state.
    """

    EVENTS_TABLE = "proctoring_events"
    SESSIONS_TABLE = "proctoring_sessions"

    def __init__(self, client: Client) -> None:
        self._client = client

    def record_event(self, session_id: str, event: CanonicalEvent) -> None:
        row = {
            "event_id": f"{session_id}:{event.id}",
            "session_id": session_id,
            "payload": event.model_dump(mode="json"),
        }
        try:
            self._client.table(self.EVENTS_TABLE).insert(row).execute()
        except Exception as e:
            raise PersistenceError(f"Event insert failed for {row['event_id']}: {e}") from e
        logger.debug(f"Event persisted: {row['event_id']}")

    def finalize_session(self, snapshot: SessionSnapshot) -> None:
        row = {
            "session_id": snapshot.session_id,
            "candidate_name": snapshot.candidate_name,
            "integrity_score": snapshot.integrity_score,
            "payload": snapshot.model_dump(mode="json"),
        }
        try:
            self._client.table(self.SESSIONS_TABLE).insert(row).execute()
        except Exception as e:
            raise PersistenceError(
                f"Session insert failed for {snapshot.session_id}: {e}"
            ) from e
        logger.info(f"Session {snapshot.session_id} persisted to Supabase")


def build_gateway(client: Optional[Client] = None) -> PersistenceGateway:
    """Supabase gateway when credentials are configured, in-memory otherwise."""
    client = client or get_supabase_client()
    if client is None:
        logger.info("Using in-memory persistence gateway")
        return InMemoryPersistenceGateway()
    logger.info("Using Supabase persistence gateway")
    return SupabasePersistenceGateway(client)
