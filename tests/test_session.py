"""
Session Aggregator Tests

Tests the IDLE/ACTIVE/ENDED lifecycle, atomic event application, counter
and stats invariants, and the end-of-session snapshot.
"""

import threading

import pytest

from core.models.classifier import EventClassifier, replay_integrity_score
from core.processors.face import FACE_ABSENT, LOOKING_AWAY, MULTIPLE_FACES
from core.processors.stability import QualifyingSignal
from core.schemas.inputs import ObservationSource
from core.schemas.outputs import EventType, IntegrityRating, SessionStatus
from core.session import SessionAggregator, SessionStateError
from tests.conftest import FakeClock


classifier = EventClassifier()


def draft(source, label, confidence=0.9):
    return classifier.classify(
        source, QualifyingSignal(label=label, confidence=confidence, fired_at=0.0)
    )


PHONE = draft(ObservationSource.OBJECT, "cell phone")
BOOK = draft(ObservationSource.OBJECT, "book")
LAPTOP = draft(ObservationSource.OBJECT, "laptop")
FOCUS = draft(ObservationSource.FACE, LOOKING_AWAY)
ABSENT = draft(ObservationSource.FACE, FACE_ABSENT)
MULTI = draft(ObservationSource.FACE, MULTIPLE_FACES)


@pytest.fixture
def clock():
    return FakeClock(start=500.0)


@pytest.fixture
def aggregator(clock):
    agg = SessionAggregator(clock=clock)
    agg.start("Ada Lovelace", session_id="session_test")
    return agg


# =============================================================================
# Lifecycle Tests
# =============================================================================

class TestLifecycle:

    def test_initial_status_is_idle(self):
        assert SessionAggregator().status == SessionStatus.IDLE

    def test_start_resets_state(self, aggregator):
        view = aggregator.view()
        assert view.status == SessionStatus.ACTIVE
        assert view.session_id == "session_test"
        assert view.candidate_name == "Ada Lovelace"
        assert view.integrity_score == 100
        assert view.events == []
        assert view.detection_stats.total == 0

    def test_generated_session_id(self):
        agg = SessionAggregator()
        sid = agg.start("Grace")
        assert sid.startswith("session_")

    def test_append_when_idle_fails_loudly(self):
        with pytest.raises(SessionStateError):
            SessionAggregator().append(PHONE)

    def test_append_after_end_fails_loudly(self, aggregator):
        aggregator.end()
        assert aggregator.status == SessionStatus.ENDED
        with pytest.raises(SessionStateError):
            aggregator.append(PHONE)

    def test_double_start_rejected(self, aggregator):
        with pytest.raises(SessionStateError):
            aggregator.start("Someone Else")

    def test_end_when_idle_rejected(self):
        with pytest.raises(SessionStateError):
            SessionAggregator().end()

    def test_restart_after_end_starts_clean(self, aggregator):
        aggregator.append(PHONE)
        aggregator.end()
        aggregator.start("Next Candidate")
        view = aggregator.view()
        assert view.integrity_score == 100
        assert view.events == []
        assert view.suspicious_event_count == 0

    def test_view_after_end_is_empty(self, aggregator):
        aggregator.append(PHONE)
        aggregator.end()
        view = aggregator.view()
        assert view.status == SessionStatus.ENDED
        assert view.session_id is None
        assert view.events == []


# =============================================================================
# Event Application Tests
# =============================================================================

class TestAppend:

    def test_phone_drops_score_by_twenty(self, aggregator):
        event = aggregator.append(PHONE)
        assert event.event_type == EventType.PHONE_DETECTED
        assert aggregator.view().integrity_score == 80

    def test_event_ids_are_monotonic(self, aggregator):
        ids = [aggregator.append(FOCUS).id for _ in range(5)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 5

    def test_event_timestamp_from_clock(self, aggregator, clock):
        clock.advance(42.0)
        assert aggregator.append(BOOK).timestamp == 542.0

    def test_counters(self, aggregator):
        for d in (FOCUS, FOCUS, PHONE, MULTI, ABSENT, LAPTOP, BOOK):
            aggregator.append(d)
        view = aggregator.view()
        assert view.focus_lost_count == 2
        assert view.suspicious_event_count == 4
        assert view.focus_lost_count + view.suspicious_event_count <= len(view.events)

    def test_detection_stats_partition_events(self, aggregator):
        for d in (FOCUS, PHONE, MULTI, ABSENT, LAPTOP, BOOK, PHONE):
            aggregator.append(d)
        stats = aggregator.view().detection_stats
        assert stats.total == 7
        assert stats.face == 3
        assert stats.object == 4
        assert stats.face + stats.object == stats.total
        assert (stats.phone, stats.book, stats.device) == (2, 1, 1)

    def test_score_never_negative_and_non_increasing(self, aggregator):
        previous = 100
        for _ in range(10):
            aggregator.append(PHONE)
            score = aggregator.view().integrity_score
            assert 0 <= score <= previous
            previous = score
        assert previous == 0

    def test_rating_follows_score(self, aggregator):
        aggregator.append(PHONE)
        assert aggregator.view().rating == IntegrityRating.GOOD
        aggregator.append(PHONE)
        assert aggregator.view().rating == IntegrityRating.FAIR
        aggregator.append(PHONE)
        assert aggregator.view().rating == IntegrityRating.POOR

    def test_concurrent_appends_keep_log_and_counters_consistent(self, aggregator):
        def worker():
            for _ in range(50):
                aggregator.append(FOCUS)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        view = aggregator.view()
        assert len(view.events) == 200
        assert view.focus_lost_count == 200
        assert view.detection_stats.total == 200
        assert len({e.id for e in view.events}) == 200


# =============================================================================
# Snapshot Tests
# =============================================================================

class TestSnapshot:

    def test_snapshot_contents(self, aggregator, clock):
        aggregator.append(PHONE)
        aggregator.append(FOCUS)
        clock.advance(90.0)
        snapshot = aggregator.end()

        assert snapshot.session_id == "session_test"
        assert snapshot.candidate_name == "Ada Lovelace"
        assert snapshot.start_time == 500.0
        assert snapshot.end_time == 590.0
        assert snapshot.duration_seconds == 90.0
        assert [e.event_type for e in snapshot.events] == [
            EventType.PHONE_DETECTED, EventType.FOCUS_LOST
        ]
        assert snapshot.integrity_score == 75
        assert snapshot.focus_lost_count == 1
        assert snapshot.suspicious_event_count == 1
        assert snapshot.rating == IntegrityRating.FAIR

    def test_replay_reproduces_final_score(self, aggregator):
        for d in (PHONE, MULTI, FOCUS, BOOK, ABSENT, LAPTOP, PHONE, FOCUS):
            aggregator.append(d)
        snapshot = aggregator.end()
        assert replay_integrity_score(snapshot.events) == snapshot.integrity_score
