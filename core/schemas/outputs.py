"""
Proctor Core Output Schemas

This module defines Pydantic V2 models for integrity events, alerts,
live session state and the end-of-session snapshot.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================

class EventType(str, Enum):
    """Canonical integrity event types."""
    FOCUS_LOST = "focus_lost"
    FACE_ABSENT = "face_absent"
    MULTIPLE_FACES = "multiple_faces"
    PHONE_DETECTED = "phone_detected"
    BOOK_DETECTED = "book_detected"
    DEVICE_DETECTED = "device_detected"


class EventCategory(str, Enum):
    """Origin of an event."""
    FACE = "face"
    OBJECT = "object"


class AlertSeverity(str, Enum):
    """User-facing alert severity."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class IntegrityRating(str, Enum):
    """Coarse verdict derived from the integrity score."""
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"


class SessionStatus(str, Enum):
    """SessionAggregator lifecycle state."""
    IDLE = "IDLE"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


# =============================================================================
# Events & Alerts
# =============================================================================

class CanonicalEvent(BaseModel):
    """Immutable, de-duplicated integrity event."""
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Monotonic event identifier")
    event_type: EventType = Field(..., description="Canonical event type")
    category: EventCategory = Field(..., description="face or object origin")
    timestamp: float = Field(..., description="Emission time in epoch seconds")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Diagnostic confidence")
    details: str = Field("", description="Human-readable description")
    deduction: int = Field(..., ge=0, description="Score points removed by this event")


class Alert(BaseModel):
    """Short-lived advisory notification."""
    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="Alert identifier")
    severity: AlertSeverity = Field(..., description="info, warning or error")
    message: str = Field(..., description="Display text")
    created_at: float = Field(..., description="Creation time in epoch seconds")
    ttl: float = Field(..., gt=0.0, description="Seconds until automatic removal")


# =============================================================================
# Session State
# =============================================================================

class DetectionStats(BaseModel):
    """Per-category event counters."""
    total: int = 0
    face: int = 0
    object: int = 0
    phone: int = 0
    book: int = 0
    device: int = 0


class SessionStateResponse(BaseModel):
    """Live, read-only view of the current session."""
    session_id: Optional[str] = Field(None, description="Active session identifier")
    candidate_name: str = Field("", description="Candidate display name")
    status: SessionStatus = Field(..., description="Lifecycle state")
    events: List[CanonicalEvent] = Field(default_factory=list)
    focus_lost_count: int = Field(0, ge=0)
    suspicious_event_count: int = Field(0, ge=0)
    integrity_score: int = Field(100, ge=0, le=100)
    rating: IntegrityRating = Field(IntegrityRating.GOOD)
    detection_stats: DetectionStats = Field(default_factory=DetectionStats)
    alerts: List[Alert] = Field(default_factory=list)


class SessionSnapshot(BaseModel):
    """Final session record handed to the persistence gateway."""
    session_id: str = Field(..., description="Session identifier")
    candidate_name: str = Field(..., description="Candidate display name")
    start_time: float = Field(..., description="Start time in epoch seconds")
    end_time: float = Field(..., description="End time in epoch seconds")
    duration_seconds: float = Field(..., ge=0.0)
    events: List[CanonicalEvent] = Field(default_factory=list)
    focus_lost_count: int = Field(..., ge=0)
    suspicious_event_count: int = Field(..., ge=0)
    integrity_score: int = Field(..., ge=0, le=100)
    rating: IntegrityRating = Field(...)
    detection_stats: DetectionStats = Field(...)
