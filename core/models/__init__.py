"""
Proctor Core Models

Event classification and integrity scoring policy.
"""

from core.models.classifier import (
    ClassifiedSignal,
    EventClassifier,
    integrity_rating,
    replay_integrity_score,
)

__all__ = [
    "ClassifiedSignal",
    "EventClassifier",
    "integrity_rating",
    "replay_integrity_score",
]
