"""
Proctor Object Presence Processor

Collapses per-frame object detections into per-class presence and runs
them through a StabilityFilter. Each tracked detector class (e.g.
"cell phone", "laptop") is its own stability label.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence

from core.config import ObjectPolicy
from core.processors.stability import QualifyingSignal, StabilityFilter
from core.schemas.inputs import RawObservation


logger = logging.getLogger(__name__)


# Detector spellings of the same class share one stability label
LABEL_ALIASES: Dict[str, str] = {
    "phone": "cell phone",
    "cellphone": "cell phone",
    "mobile phone": "cell phone",
}


def normalize_label(label: str) -> str:
    label = " ".join(label.strip().lower().split())
    return LABEL_ALIASES.get(label, label)


class ObjectPresenceProcessor:
    """
    Stateful object-class filter for a single session.

    Classes outside `tracked_classes` are dropped before they reach the
    stability filter.
    """

    def __init__(self, policy: ObjectPolicy, tracked_classes: Iterable[str]) -> None:
        self.policy = policy
        self.tracked_classes = frozenset(normalize_label(c) for c in tracked_classes)
        self.filter = StabilityFilter(
            {label: policy.policy for label in self.tracked_classes}
        )

    def collapse(self, observations: Sequence[RawObservation]) -> Dict[str, float]:
        """Highest confidence per tracked class for this frame."""
        present: Dict[str, float] = {}
        for observation in observations:
            label = normalize_label(observation.label)
            if label not in self.tracked_classes:
                logger.debug(f"Ignoring untracked object class '{observation.label}'")
                continue
            present[label] = max(present.get(label, 0.0), observation.confidence)
        return present

    def process(self, observations: Sequence[RawObservation], now: float) -> List[QualifyingSignal]:
        return self.filter.update(self.collapse(observations), now)

    def miss(self, now: float) -> List[QualifyingSignal]:
        """Record a tick with no usable observation: every class resets."""
        return self.filter.update({}, now)
