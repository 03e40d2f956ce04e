"""
Proctor Core Processors

Public exports for signal stabilization processors.
"""

from core.processors.stability import QualifyingSignal, StabilityFilter, StabilityState
from core.processors.face import FACE_LABEL, FaceState, FaceStateProcessor
from core.processors.objects import ObjectPresenceProcessor

__all__ = [
    "StabilityFilter",
    "StabilityState",
    "QualifyingSignal",
    "FACE_LABEL",
    "FaceState",
    "FaceStateProcessor",
    "ObjectPresenceProcessor",
]
