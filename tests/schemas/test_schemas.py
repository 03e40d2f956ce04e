"""
Pydantic Schema Validation Tests

Tests for input and output schemas to ensure proper validation,
serialization, and type enforcement.
"""

import pytest
from pydantic import ValidationError

from core.schemas.inputs import (
    ObservationBatchPayload,
    ObservationSource,
    RawObservation,
    StartSessionPayload,
)
from core.schemas.outputs import (
    Alert,
    AlertSeverity,
    CanonicalEvent,
    EventCategory,
    EventType,
    IntegrityRating,
    SessionStateResponse,
    SessionStatus,
)


# =============================================================================
# Enum Tests
# =============================================================================

class TestEnums:

    def test_event_type_values(self):
        assert {e.value for e in EventType} == {
            "focus_lost",
            "face_absent",
            "multiple_faces",
            "phone_detected",
            "book_detected",
            "device_detected",
        }

    def test_severity_and_rating_values(self):
        assert AlertSeverity.WARNING == "warning"
        assert IntegrityRating.POOR == "POOR"
        assert SessionStatus.ENDED == "ENDED"


# =============================================================================
# Input Schema Tests
# =============================================================================

class TestRawObservation:

    def test_face_observation_valid(self):
        obs = RawObservation(source="face", label="face", confidence=0.9, timestamp=1.0, metric=0.25)
        assert obs.source == ObservationSource.FACE
        assert obs.metric == 0.25

    def test_metric_optional(self):
        obs = RawObservation(source="object", label="book", confidence=0.8, timestamp=1.0)
        assert obs.metric is None

    @pytest.mark.parametrize("confidence", [-0.1, 1.01])
    def test_confidence_bounds(self, confidence):
        with pytest.raises(ValidationError):
            RawObservation(source="object", label="book", confidence=confidence, timestamp=1.0)

    def test_empty_label_rejected(self):
        with pytest.raises(ValidationError):
            RawObservation(source="object", label="", confidence=0.8, timestamp=1.0)

    def test_unknown_source_rejected(self):
        with pytest.raises(ValidationError):
            RawObservation(source="audio", label="speech", confidence=0.8, timestamp=1.0)

    def test_negative_metric_rejected(self):
        with pytest.raises(ValidationError):
            RawObservation(source="face", label="face", confidence=0.9, timestamp=1.0, metric=-0.1)


class TestPayloads:

    def test_batch_defaults_to_empty(self):
        payload = ObservationBatchPayload(session_id="session_1")
        assert payload.observations == []

    def test_batch_requires_session_id(self):
        with pytest.raises(ValidationError):
            ObservationBatchPayload(observations=[])

    def test_start_payload(self):
        payload = StartSessionPayload(candidate_name="Ada")
        assert payload.session_id is None
        with pytest.raises(ValidationError):
            StartSessionPayload(candidate_name="")


# =============================================================================
# Output Schema Tests
# =============================================================================

class TestOutputSchemas:

    def test_canonical_event_is_immutable(self):
        event = CanonicalEvent(
            id=1,
            event_type=EventType.BOOK_DETECTED,
            category=EventCategory.OBJECT,
            timestamp=10.0,
            confidence=0.9,
            deduction=20,
        )
        with pytest.raises(ValidationError):
            event.deduction = 0

    def test_event_serializes_enum_values(self):
        event = CanonicalEvent(
            id=7,
            event_type=EventType.FOCUS_LOST,
            category=EventCategory.FACE,
            timestamp=10.0,
            confidence=0.9,
            details="User looking away from screen",
            deduction=5,
        )
        data = event.model_dump(mode="json")
        assert data["event_type"] == "focus_lost"
        assert data["category"] == "face"

    def test_alert_ttl_must_be_positive(self):
        with pytest.raises(ValidationError):
            Alert(id=1, severity=AlertSeverity.INFO, message="x", created_at=0.0, ttl=0)

    def test_state_response_defaults(self):
        state = SessionStateResponse(status=SessionStatus.IDLE)
        assert state.integrity_score == 100
        assert state.rating == IntegrityRating.GOOD
        assert state.detection_stats.total == 0

    def test_score_bounds(self):
        with pytest.raises(ValidationError):
            SessionStateResponse(status=SessionStatus.ACTIVE, integrity_score=-5)
