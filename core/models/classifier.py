"""
Proctor Event Classifier

Pure policy logic mapping qualifying stability labels to canonical events.
This module is STATELESS and DETERMINISTIC.

Deductions come from a fixed table, never from confidence. Confidence is
carried on the event for diagnostics only.

Score:
    integrity_score = max(0, integrity_score - deduction), once per event
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional

from core.processors.face import FACE_ABSENT, LOOKING_AWAY, MULTIPLE_FACES
from core.processors.stability import QualifyingSignal
from core.schemas.inputs import ObservationSource
from core.schemas.outputs import (
    CanonicalEvent,
    EventCategory,
    EventType,
    IntegrityRating,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Policy Tables
# =============================================================================

INITIAL_INTEGRITY_SCORE = 100

FACE_EVENT_TYPES: Dict[str, EventType] = {
    LOOKING_AWAY: EventType.FOCUS_LOST,
    FACE_ABSENT: EventType.FACE_ABSENT,
    MULTIPLE_FACES: EventType.MULTIPLE_FACES,
}

# Detector class names (COCO) -> event type
OBJECT_EVENT_TYPES: Dict[str, EventType] = {
    "cell phone": EventType.PHONE_DETECTED,
    "phone": EventType.PHONE_DETECTED,
    "book": EventType.BOOK_DETECTED,
    "laptop": EventType.DEVICE_DETECTED,
    "mouse": EventType.DEVICE_DETECTED,
    "keyboard": EventType.DEVICE_DETECTED,
}

DEFAULT_DEDUCTIONS: Dict[EventType, int] = {
    EventType.FOCUS_LOST: 5,
    EventType.FACE_ABSENT: 10,
    EventType.MULTIPLE_FACES: 10,
    EventType.PHONE_DETECTED: 20,
    EventType.BOOK_DETECTED: 20,
    EventType.DEVICE_DETECTED: 10,
}

EVENT_CATEGORIES: Dict[EventType, EventCategory] = {
    EventType.FOCUS_LOST: EventCategory.FACE,
    EventType.FACE_ABSENT: EventCategory.FACE,
    EventType.MULTIPLE_FACES: EventCategory.FACE,
    EventType.PHONE_DETECTED: EventCategory.OBJECT,
    EventType.BOOK_DETECTED: EventCategory.OBJECT,
    EventType.DEVICE_DETECTED: EventCategory.OBJECT,
}

FOCUS_EVENT_TYPES = frozenset({EventType.FOCUS_LOST})

SUSPICIOUS_EVENT_TYPES = frozenset({
    EventType.MULTIPLE_FACES,
    EventType.PHONE_DETECTED,
    EventType.BOOK_DETECTED,
    EventType.DEVICE_DETECTED,
})

_FACE_DETAILS: Dict[EventType, str] = {
    EventType.FOCUS_LOST: "User looking away from screen",
    EventType.FACE_ABSENT: "No face detected in frame",
    EventType.MULTIPLE_FACES: "Multiple faces detected in frame",
}

# Rating bands (lower bound inclusive)
GOOD_RATING_THRESHOLD = 80
FAIR_RATING_THRESHOLD = 60


# =============================================================================
# Classified Signal
# =============================================================================

@dataclass(frozen=True)
class ClassifiedSignal:
    """Event draft; SessionAggregator assigns the id and timestamp."""
    event_type: EventType
    category: EventCategory
    label: str
    confidence: float
    details: str
    deduction: int


# =============================================================================
# Event Classifier
# =============================================================================

class EventClassifier:
    """
    Stateless mapping from qualifying labels to canonical event drafts.

    Unknown labels yield None and are dropped by the caller.
    """

    def __init__(self, deductions: Optional[Mapping[str, int]] = None) -> None:
        self.deductions: Dict[EventType, int] = dict(DEFAULT_DEDUCTIONS)
        for key, value in (deductions or {}).items():
            self.deductions[EventType(key)] = int(value)

    def event_type_for(self, source: ObservationSource, label: str) -> Optional[EventType]:
        if source == ObservationSource.FACE:
            return FACE_EVENT_TYPES.get(label)
        return OBJECT_EVENT_TYPES.get(label)

    def deduction_for(self, event_type: EventType) -> int:
        return self.deductions[event_type]

    def classify(
        self,
        source: ObservationSource,
        signal: QualifyingSignal,
    ) -> Optional[ClassifiedSignal]:
        event_type = self.event_type_for(source, signal.label)
        if event_type is None:
            logger.debug(f"Ignoring unknown {source.value} label '{signal.label}'")
            return None

        if source == ObservationSource.FACE:
            details = _FACE_DETAILS[event_type]
        else:
            details = f"{signal.label} detected with {signal.confidence * 100:.1f}% confidence"

        return ClassifiedSignal(
            event_type=event_type,
            category=EVENT_CATEGORIES[event_type],
            label=signal.label,
            confidence=signal.confidence,
            details=details,
            deduction=self.deduction_for(event_type),
        )


# =============================================================================
# Scoring
# =============================================================================

def apply_deduction(score: int, deduction: int) -> int:
    """Running score reduction. Underflow clamps at 0."""
    return max(0, score - deduction)


def replay_integrity_score(
    events: Iterable[CanonicalEvent],
    initial: int = INITIAL_INTEGRITY_SCORE,
) -> int:
    """Reproduce the running score by replaying events in original order."""
    score = initial
    for event in events:
        score = apply_deduction(score, event.deduction)
    return score


def integrity_rating(score: int) -> IntegrityRating:
    if score >= GOOD_RATING_THRESHOLD:
        return IntegrityRating.GOOD
    if score >= FAIR_RATING_THRESHOLD:
        return IntegrityRating.FAIR
    return IntegrityRating.POOR
