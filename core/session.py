"""
Proctor Session Aggregator

Thread-safe, in-memory single source of truth for the active proctoring
session: the append-only event log, its derived counters and the running
integrity score.

Lifecycle:
    IDLE --start--> ACTIVE --append--> ACTIVE --end--> ENDED --start--> ACTIVE

Each append updates the log, counters, stats and score under one lock, so
readers never observe a counter without its event (or vice versa).

Usage:
    aggregator = SessionAggregator()
    aggregator.start("Ada Lovelace")
    event = aggregator.append(draft)
    snapshot = aggregator.end()
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from core.models.classifier import (
    FOCUS_EVENT_TYPES,
    INITIAL_INTEGRITY_SCORE,
    SUSPICIOUS_EVENT_TYPES,
    ClassifiedSignal,
    apply_deduction,
    integrity_rating,
)
from core.schemas.outputs import (
    Alert,
    CanonicalEvent,
    DetectionStats,
    EventCategory,
    EventType,
    SessionSnapshot,
    SessionStateResponse,
    SessionStatus,
)


logger = logging.getLogger(__name__)


class SessionStateError(Exception):
    """Raised on a lifecycle violation (e.g. appending to a non-active session)."""
    pass


# =============================================================================
# Session State
# =============================================================================

@dataclass
class SessionState:
    """Mutable state of one active session. Owned by SessionAggregator."""

    session_id: str
    candidate_name: str
    started_at: float
    events: List[CanonicalEvent] = field(default_factory=list)
    focus_lost_count: int = 0
    suspicious_event_count: int = 0
    integrity_score: int = INITIAL_INTEGRITY_SCORE
    detection_stats: DetectionStats = field(default_factory=DetectionStats)


_OBJECT_STAT_FIELDS = {
    EventType.PHONE_DETECTED: "phone",
    EventType.BOOK_DETECTED: "book",
    EventType.DEVICE_DETECTED: "device",
}


# =============================================================================
# Aggregator
# =============================================================================

class SessionAggregator:
    """
    Owns the SessionState and enforces the IDLE/ACTIVE/ENDED state machine.

    Attributes:
        _lock: Guards every read and write of `_state` and `_status`.
        _event_ids: Process-wide monotonic event id sequence.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._status = SessionStatus.IDLE
        self._state: Optional[SessionState] = None
        self._event_ids = itertools.count(1)

    @property
    def status(self) -> SessionStatus:
        with self._lock:
            return self._status

    @property
    def session_id(self) -> Optional[str]:
        with self._lock:
            return self._state.session_id if self._state else None

    @property
    def started_at(self) -> Optional[float]:
        with self._lock:
            return self._state.started_at if self._state else None

    def start(self, candidate_name: str, session_id: Optional[str] = None) -> str:
        """
        Begin a new session with an empty log and a score of 100.

        Raises:
            SessionStateError: If a session is already ACTIVE.
        """
        with self._lock:
            if self._status == SessionStatus.ACTIVE:
                raise SessionStateError(
                    f"Session {self._state.session_id} is still active; end it first"
                )
            now = self._clock()
            sid = session_id or f"session_{uuid.uuid4().hex[:12]}"
            self._state = SessionState(
                session_id=sid,
                candidate_name=candidate_name,
                started_at=now,
            )
            self._status = SessionStatus.ACTIVE

        logger.info(f"Session {sid} started for candidate '{candidate_name}'")
        return sid

    def append(self, draft: ClassifiedSignal) -> CanonicalEvent:
        """
        Create the canonical event and apply it in a single atomic step.

        Raises:
            SessionStateError: If no session is ACTIVE.
        """
        with self._lock:
            if self._status != SessionStatus.ACTIVE:
                raise SessionStateError(
                    f"Cannot append {draft.event_type.value}: session is {self._status.value}"
                )
            state = self._state

            event = CanonicalEvent(
                id=next(self._event_ids),
                event_type=draft.event_type,
                category=draft.category,
                timestamp=self._clock(),
                confidence=draft.confidence,
                details=draft.details,
                deduction=draft.deduction,
            )

            state.events.append(event)
            if event.event_type in FOCUS_EVENT_TYPES:
                state.focus_lost_count += 1
            if event.event_type in SUSPICIOUS_EVENT_TYPES:
                state.suspicious_event_count += 1
            state.integrity_score = apply_deduction(state.integrity_score, event.deduction)

            stats = state.detection_stats
            stats.total += 1
            if event.category == EventCategory.FACE:
                stats.face += 1
            else:
                stats.object += 1
                stat_field = _OBJECT_STAT_FIELDS.get(event.event_type)
                if stat_field:
                    setattr(stats, stat_field, getattr(stats, stat_field) + 1)

            score = state.integrity_score

        logger.info(
            f"Event #{event.id} {event.event_type.value} "
            f"(-{event.deduction}) -> integrity score {score}"
        )
        return event

    def end(self) -> SessionSnapshot:
        """
        Stop accepting events and return the final snapshot.

        The in-memory state is discarded once the snapshot is taken.

        Raises:
            SessionStateError: If no session is ACTIVE.
        """
        with self._lock:
            if self._status != SessionStatus.ACTIVE:
                raise SessionStateError(f"Cannot end session: session is {self._status.value}")
            snapshot = self._snapshot_locked(end_time=self._clock())
            self._status = SessionStatus.ENDED
            self._state = None

        logger.info(
            f"Session {snapshot.session_id} ended: {len(snapshot.events)} events, "
            f"score {snapshot.integrity_score} ({snapshot.rating.value})"
        )
        return snapshot

    def view(self, alerts: Sequence[Alert] = ()) -> SessionStateResponse:
        """Read-only copy of the current state."""
        with self._lock:
            if self._state is None:
                return SessionStateResponse(status=self._status, alerts=list(alerts))
            state = self._state
            return SessionStateResponse(
                session_id=state.session_id,
                candidate_name=state.candidate_name,
                status=self._status,
                events=list(state.events),
                focus_lost_count=state.focus_lost_count,
                suspicious_event_count=state.suspicious_event_count,
                integrity_score=state.integrity_score,
                rating=integrity_rating(state.integrity_score),
                detection_stats=state.detection_stats.model_copy(),
                alerts=list(alerts),
            )

    def _snapshot_locked(self, end_time: float) -> SessionSnapshot:
        state = self._state
        return SessionSnapshot(
            session_id=state.session_id,
            candidate_name=state.candidate_name,
            start_time=state.started_at,
            end_time=end_time,
            duration_seconds=max(end_time - state.started_at, 0.0),
            events=list(state.events),
            focus_lost_count=state.focus_lost_count,
            suspicious_event_count=state.suspicious_event_count,
            integrity_score=state.integrity_score,
            rating=integrity_rating(state.integrity_score),
            detection_stats=state.detection_stats.model_copy(),
        )
