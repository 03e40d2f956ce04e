"""
Proctor Persistence Gateway

Contract for durable storage of integrity events and final session
snapshots. Calls are fire-and-forget from the pipeline's perspective:
gateways raise PersistenceError on failure and the orchestrator turns it
into a logged, non-fatal alert.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, List

from core.schemas.outputs import CanonicalEvent, SessionSnapshot


logger = logging.getLogger(__name__)


class PersistenceError(Exception):
    """Raised when a payload could not be delivered to the store."""
    pass


class PersistenceGateway(ABC):
    """Receives per-event and end-of-session payloads."""

    @abstractmethod
    def record_event(self, session_id: str, event: CanonicalEvent) -> None:
        """Persist one event. Raises PersistenceError on failure."""

    @abstractmethod
    def finalize_session(self, snapshot: SessionSnapshot) -> None:
        """Persist the final snapshot. Raises PersistenceError on failure."""


class InMemoryPersistenceGateway(PersistenceGateway):
    """
    Process-local gateway used when no remote store is configured.

    Payloads are kept in memory and exposed for inspection.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.events: Dict[str, List[CanonicalEvent]] = {}
        self.sessions: Dict[str, SessionSnapshot] = {}

    def record_event(self, session_id: str, event: CanonicalEvent) -> None:
        with self._lock:
            self.events.setdefault(session_id, []).append(event)

    def finalize_session(self, snapshot: SessionSnapshot) -> None:
        with self._lock:
            self.sessions[snapshot.session_id] = snapshot
        logger.debug(f"Session {snapshot.session_id} stored in memory")
