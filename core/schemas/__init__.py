"""
Proctor Core Schemas

Public exports for input and output Pydantic models.
"""

# Input schemas
from core.schemas.inputs import (
    ObservationSource,
    RawObservation,
    ObservationBatchPayload,
    StartSessionPayload,
)

# Output schemas
from core.schemas.outputs import (
    EventType,
    EventCategory,
    AlertSeverity,
    IntegrityRating,
    SessionStatus,
    CanonicalEvent,
    Alert,
    DetectionStats,
    SessionStateResponse,
    SessionSnapshot,
)

__all__ = [
    # Input
    "ObservationSource",
    "RawObservation",
    "ObservationBatchPayload",
    "StartSessionPayload",
    # Output
    "EventType",
    "EventCategory",
    "AlertSeverity",
    "IntegrityRating",
    "SessionStatus",
    "CanonicalEvent",
    "Alert",
    "DetectionStats",
    "SessionStateResponse",
    "SessionSnapshot",
]
