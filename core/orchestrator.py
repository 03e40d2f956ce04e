"""
Proctor Orchestrator

Tick-driven integrity pipeline for a single live session.

Pipeline (one tick):
    PerceptionAdapter.observe()
        -> FaceStateProcessor / ObjectPresenceProcessor (StabilityFilter)
        -> EventClassifier
        -> SessionAggregator.append
        -> AlertScheduler.add + PersistenceGateway.record_event (fire-and-forget)

Concurrency:
- At most one tick is in flight. A tick that finds the pipeline busy is
  counted as skipped instead of waiting.
- Session start/end take the same tick lock, so they never interleave with
  a running tick.
- Persistence calls run on an executor; failures become warning alerts and
  never roll back in-memory state.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Optional, Tuple

from core.alerts import AlertScheduler
from core.config import ProctorConfig
from core.models.classifier import OBJECT_EVENT_TYPES, ClassifiedSignal, EventClassifier
from core.perception import PerceptionAdapter
from core.processors import FACE_LABEL, FaceStateProcessor, ObjectPresenceProcessor
from core.processors.stability import QualifyingSignal
from core.schemas.inputs import ObservationSource, RawObservation
from core.schemas.outputs import (
    AlertSeverity,
    CanonicalEvent,
    EventType,
    SessionSnapshot,
    SessionStateResponse,
    SessionStatus,
)
from core.session import SessionAggregator, SessionStateError

if TYPE_CHECKING:
    from persistence.gateway import PersistenceGateway


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

_ALERT_SEVERITIES = {
    EventType.FOCUS_LOST: AlertSeverity.WARNING,
    EventType.FACE_ABSENT: AlertSeverity.ERROR,
    EventType.MULTIPLE_FACES: AlertSeverity.ERROR,
    EventType.PHONE_DETECTED: AlertSeverity.ERROR,
    EventType.BOOK_DETECTED: AlertSeverity.ERROR,
    EventType.DEVICE_DETECTED: AlertSeverity.WARNING,
}

_FACE_ALERT_MESSAGES = {
    EventType.FOCUS_LOST: "User is looking away from screen",
    EventType.FACE_ABSENT: "No face detected - user may have left",
    EventType.MULTIPLE_FACES: "Multiple faces detected",
}


@dataclass
class TickResult:
    """Outcome of one pipeline run."""
    events: List[CanonicalEvent] = field(default_factory=list)
    skipped: bool = False
    perception_failed: bool = False


# =============================================================================
# Polling Loop
# =============================================================================

class _TickLoop(threading.Thread):
    """
    Fixed-period driver for ProctorOrchestrator.run_tick.

    Ticks whose deadline passed while a slow tick was running are counted
    as skipped rather than run back-to-back.
    """

    def __init__(self, orchestrator: ProctorOrchestrator, period: float) -> None:
        super().__init__(name="proctor-tick-loop", daemon=True)
        self._orchestrator = orchestrator
        self._period = period
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def run(self) -> None:
        next_deadline = time.monotonic() + self._period
        while not self._stop_event.wait(max(0.0, next_deadline - time.monotonic())):
            if not self._orchestrator.paused:
                self._orchestrator.run_tick()
            next_deadline += self._period

            now = time.monotonic()
            if now > next_deadline:
                missed = int((now - next_deadline) // self._period) + 1
                self._orchestrator._count_skipped(missed)
                next_deadline += missed * self._period


# =============================================================================
# Orchestrator
# =============================================================================

class ProctorOrchestrator:
    """
    Owns the per-session processors and drives the tick pipeline.

    Args:
        adapter: Perception source polled once per tick.
        gateway: Durable store for events and snapshots.
        config: Tunables (defaults to reference values).
        clock: Wall-clock source in epoch seconds.
        executor: Runs persistence calls off the tick path.
        auto_poll: Start the fixed-period polling loop on session start.
    """

    def __init__(
        self,
        adapter: PerceptionAdapter,
        gateway: PersistenceGateway,
        config: Optional[ProctorConfig] = None,
        clock: Callable[[], float] = time.time,
        executor: Optional[Executor] = None,
        auto_poll: bool = True,
    ) -> None:
        self.adapter = adapter
        self.gateway = gateway
        self.config = config or ProctorConfig()
        self._clock = clock
        self._executor = executor or ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="proctor-persist"
        )
        self.auto_poll = auto_poll

        self.classifier = EventClassifier(self.config.deductions)
        self.aggregator = SessionAggregator(clock=clock)
        self.alerts = AlertScheduler(clock=clock)

        self.face_processor: Optional[FaceStateProcessor] = None
        self.object_processor: Optional[ObjectPresenceProcessor] = None

        self._tick_lock = threading.Lock()
        self._counter_lock = threading.Lock()
        self._loop: Optional[_TickLoop] = None
        self._paused = False

        self.ticks_run = 0
        self.ticks_skipped = 0

        logger.info(f"ProctorOrchestrator initialized (tick={self.config.tick_seconds}s)")

    # -------------------------------------------------------------------------
    # Session Lifecycle
    # -------------------------------------------------------------------------

    def start_session(
        self,
        candidate_name: str,
        session_id: Optional[str] = None,
    ) -> SessionStateResponse:
        """Reset all session state and (optionally) begin polling."""
        with self._tick_lock:
            sid = self.aggregator.start(candidate_name, session_id)
            started_at = self.aggregator.started_at

            self.face_processor = FaceStateProcessor(self.config.face, started_at=started_at)
            self.object_processor = ObjectPresenceProcessor(
                self.config.objects, tracked_classes=OBJECT_EVENT_TYPES.keys()
            )
            self.alerts.clear()
            self.adapter.reset()
            self._paused = False

        if self.auto_poll:
            self.start_polling()
        logger.info(f"Monitoring started for session {sid}")
        return self.get_state()

    def end_session(self) -> SessionSnapshot:
        """
        Stop polling, close the session and hand the snapshot to persistence.

        Raises:
            SessionStateError: If no session is active.
        """
        self.stop_polling()
        with self._tick_lock:
            snapshot = self.aggregator.end()
            self.alerts.clear()
            self.face_processor = None
            self.object_processor = None

        self._dispatch(
            "finalize_session",
            snapshot.session_id,
            self.gateway.finalize_session,
            snapshot,
        )
        return snapshot

    def pause(self) -> None:
        self._require_active()
        self._paused = True
        logger.info("Monitoring paused")

    def resume(self) -> None:
        self._require_active()
        self._paused = False
        logger.info("Monitoring resumed")

    @property
    def paused(self) -> bool:
        return self._paused

    def get_state(self) -> SessionStateResponse:
        return self.aggregator.view(self.alerts.list())

    def _require_active(self) -> None:
        if self.aggregator.status != SessionStatus.ACTIVE:
            raise SessionStateError(f"No active session ({self.aggregator.status.value})")

    # -------------------------------------------------------------------------
    # Polling
    # -------------------------------------------------------------------------

    def start_polling(self) -> None:
        if self._loop is not None and self._loop.is_alive():
            return
        self._loop = _TickLoop(self, self.config.tick_seconds)
        self._loop.start()
        logger.info("Polling started")

    def stop_polling(self) -> None:
        loop, self._loop = self._loop, None
        if loop is None:
            return
        loop.stop()
        if loop is not threading.current_thread():
            loop.join(timeout=self.config.tick_seconds * 2)
        logger.info("Polling stopped")

    # -------------------------------------------------------------------------
    # Tick Pipeline
    # -------------------------------------------------------------------------

    def run_tick(self) -> TickResult:
        """
        Run one full pipeline pass.

        Non-reentrant: if a tick is already in flight this call returns
        immediately with `skipped=True`.
        """
        if not self._tick_lock.acquire(blocking=False):
            self._count_skipped(1)
            logger.warning("Tick skipped: previous tick still in flight")
            return TickResult(skipped=True)

        try:
            if self.aggregator.status != SessionStatus.ACTIVE:
                return TickResult(skipped=True)
            result = self._run_tick_locked()
            with self._counter_lock:
                self.ticks_run += 1
            return result
        finally:
            self._tick_lock.release()

    def _run_tick_locked(self) -> TickResult:
        now = self._clock()
        result = TickResult()

        try:
            observations = list(self.adapter.observe())
        except Exception as e:
            logger.warning(f"Perception unavailable this tick: {e}")
            self.face_processor.miss(now)
            self.object_processor.miss(now)
            result.perception_failed = True
            return result

        faces, objects = self._split(observations)

        signals: List[Tuple[ObservationSource, QualifyingSignal]] = []
        signals.extend(
            (ObservationSource.FACE, s) for s in self.face_processor.process(faces, now)
        )
        signals.extend(
            (ObservationSource.OBJECT, s) for s in self.object_processor.process(objects, now)
        )

        session_id = self.aggregator.session_id
        for source, signal in signals:
            draft = self.classifier.classify(source, signal)
            if draft is None:
                continue
            event = self.aggregator.append(draft)
            result.events.append(event)
            self._raise_event_alert(draft)
            self._dispatch(
                "record_event", session_id, self.gateway.record_event, session_id, event
            )

        return result

    def _split(
        self,
        observations: List[RawObservation],
    ) -> Tuple[List[RawObservation], List[RawObservation]]:
        faces: List[RawObservation] = []
        objects: List[RawObservation] = []
        for observation in observations:
            if observation.source == ObservationSource.FACE:
                if observation.label == FACE_LABEL:
                    faces.append(observation)
                else:
                    logger.debug(f"Ignoring unknown face label '{observation.label}'")
            else:
                objects.append(observation)
        return faces, objects

    def _count_skipped(self, count: int) -> None:
        with self._counter_lock:
            self.ticks_skipped += count
        logger.debug(f"{count} tick(s) skipped")

    # -------------------------------------------------------------------------
    # Side Effects
    # -------------------------------------------------------------------------

    def _raise_event_alert(self, draft: ClassifiedSignal) -> None:
        message = _FACE_ALERT_MESSAGES.get(draft.event_type, f"{draft.label} detected")
        self.alerts.add(
            _ALERT_SEVERITIES[draft.event_type],
            message,
            self.config.alerts.ttl_for(draft.event_type.value),
        )

    def _dispatch(
        self,
        operation: str,
        session_id: str,
        fn: Callable[..., None],
        *args,
    ) -> None:
        """Fire-and-forget persistence call with its own failure channel."""
        try:
            future = self._executor.submit(fn, *args)
        except RuntimeError as e:
            # Executor already shut down
            self._on_delivery_failure(operation, session_id, e)
            return
        future.add_done_callback(
            lambda f: self._on_delivery_done(operation, session_id, f)
        )

    def _on_delivery_done(self, operation: str, session_id: str, future: Future) -> None:
        error = future.exception()
        if error is not None:
            self._on_delivery_failure(operation, session_id, error)

    def _on_delivery_failure(
        self,
        operation: str,
        session_id: str,
        error: BaseException,
    ) -> None:
        """
        Log the failure and surface it as a warning alert.

        The alert is only raised while the failed session is still the
        current one (active, or ended with no successor). A failure that
        lands after another session started is logged only, so it never
        shows up in that session's alerts.
        """
        logger.error(f"Persistence {operation} failed for session {session_id}: {error}")
        current = self.aggregator.session_id
        if current is not None and current != session_id:
            logger.warning(
                f"Dropping save-failure alert for {session_id}: session {current} is active"
            )
            return
        self.alerts.add(
            AlertSeverity.WARNING,
            "Failed to save session data",
            self.config.alerts.persistence_failure_ttl,
        )

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------

    def shutdown(self) -> None:
        """Stop polling, cancel alert timers and drain pending persistence calls."""
        self.stop_polling()
        self.alerts.clear()
        self._executor.shutdown(wait=True)
        logger.info("ProctorOrchestrator shut down")
