"""
Proctor Face-State Processor

Reduces per-face observations to one of four mutually exclusive per-tick
states and feeds the non-attentive states into a StabilityFilter.

State selection per tick:
    - >= 2 faces                          -> MULTIPLE
    - 1 face, eye aspect ratio < threshold -> LOOKING_AWAY
    - 1 face otherwise                    -> ATTENTIVE (never fires)
    - 0 faces                             -> ABSENT

ABSENT only counts toward its label once the time since any face was last
seen exceeds the absence threshold, so single-frame dropouts are ignored.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Sequence, Tuple

from core.config import FacePolicy
from core.processors.stability import QualifyingSignal, StabilityFilter
from core.schemas.inputs import RawObservation


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Observation label used by the face-geometry classifier for one face
FACE_LABEL = "face"

# Stability labels
LOOKING_AWAY = "looking_away"
MULTIPLE_FACES = "multiple_faces"
FACE_ABSENT = "face_absent"


class FaceState(str, Enum):
    """Per-tick face state."""
    ATTENTIVE = "present_attentive"
    LOOKING_AWAY = "present_looking_away"
    ABSENT = "absent"
    MULTIPLE = "multiple"


# =============================================================================
# Face-State Processor
# =============================================================================

class FaceStateProcessor:
    """
    Stateful face-state classifier for a single session.

    Tracks LOOKING_AWAY, MULTIPLE_FACES and FACE_ABSENT as independent labels
    inside one StabilityFilter.
    """

    def __init__(self, policy: FacePolicy, started_at: float) -> None:
        self.policy = policy
        self.filter = StabilityFilter({
            LOOKING_AWAY: policy.looking_away,
            MULTIPLE_FACES: policy.multiple_faces,
            FACE_ABSENT: policy.absent,
        })
        self._last_face_seen_at = started_at

    @property
    def last_face_seen_at(self) -> float:
        return self._last_face_seen_at

    def is_looking_away(self, face: RawObservation) -> bool:
        """A face without an openness metric is treated as attentive."""
        if face.metric is None:
            return False
        return face.metric < self.policy.eye_aspect_ratio_threshold

    def classify(
        self,
        faces: Sequence[RawObservation],
        now: float,
    ) -> Tuple[FaceState, Dict[str, float]]:
        """
        Determine this tick's face state and the labels it contributes.

        Returns:
            (state, present_labels) where present_labels maps stability
            labels to confidence.
        """
        if len(faces) >= 2:
            self._last_face_seen_at = now
            confidence = max(face.confidence for face in faces)
            return FaceState.MULTIPLE, {MULTIPLE_FACES: confidence}

        if len(faces) == 1:
            self._last_face_seen_at = now
            face = faces[0]
            if self.is_looking_away(face):
                return FaceState.LOOKING_AWAY, {LOOKING_AWAY: face.confidence}
            return FaceState.ATTENTIVE, {}

        absent_for = now - self._last_face_seen_at
        if absent_for > self.policy.absence_threshold_seconds:
            return FaceState.ABSENT, {FACE_ABSENT: self.policy.absent_confidence}
        return FaceState.ABSENT, {}

    def process(self, faces: Sequence[RawObservation], now: float) -> List[QualifyingSignal]:
        state, present = self.classify(faces, now)
        logger.debug(f"Face state at {now:.3f}: {state.value} ({len(faces)} faces)")
        return self.filter.update(present, now)

    def miss(self, now: float) -> List[QualifyingSignal]:
        """Record a tick with no usable observation: every label resets."""
        return self.filter.update({}, now)
