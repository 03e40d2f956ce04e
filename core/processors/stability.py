"""
Proctor Stability Filter

Debounce + cooldown state machine for noisy, rapidly sampled classifier
labels. Converts bursty per-tick presence into at most one qualifying
signal per label per cooldown window.

Per-label rules:
    - Present this tick   -> hit count + 1
    - Absent this tick    -> hit count reset to 0 (no partial decay)
    - Below threshold     -> treated as absent
    - Qualifies when      hits >= min_stable_ticks
                          AND confidence >= detection_threshold
                          AND (never fired OR now - last_fired_at >= cooldown)
    - On fire             last_fired_at = now, hit count reset to 0

The filter is synchronous and performs no I/O. It is not thread-safe on its
own; callers serialize ticks (see ProctorOrchestrator.run_tick).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Mapping, Optional

from core.config import LabelPolicy


logger = logging.getLogger(__name__)


# =============================================================================
# Data Structures
# =============================================================================

@dataclass
class StabilityState:
    """Accumulated stability state for one label."""
    consecutive_hit_count: int = 0
    last_fired_at: Optional[float] = None


@dataclass(frozen=True)
class QualifyingSignal:
    """A label that passed the stability and cooldown checks."""
    label: str
    confidence: float
    fired_at: float


# =============================================================================
# Stability Filter
# =============================================================================

class StabilityFilter:
    """
    Per-label debounce and cooldown filter for one label space.

    Labels without a policy (and no default policy) are ignored entirely:
    they are neither tracked nor fired.
    """

    def __init__(
        self,
        policies: Optional[Mapping[str, LabelPolicy]] = None,
        default_policy: Optional[LabelPolicy] = None,
    ) -> None:
        self._policies: Dict[str, LabelPolicy] = dict(policies or {})
        self._default_policy = default_policy
        self._states: Dict[str, StabilityState] = {}

    def policy_for(self, label: str) -> Optional[LabelPolicy]:
        return self._policies.get(label, self._default_policy)

    def update(self, present: Mapping[str, float], now: float) -> List[QualifyingSignal]:
        """
        Apply one tick of observations.

        Args:
            present: Labels observed this tick mapped to their confidence.
            now: Tick time in seconds.

        Returns:
            Qualifying signals, in the iteration order of `present`.
        """
        tracked = {}
        for label, confidence in present.items():
            policy = self.policy_for(label)
            if policy is None:
                continue
            if confidence < policy.detection_threshold:
                # A weak detection is no detection
                continue
            tracked[label] = confidence

        for label in tracked:
            state = self._states.setdefault(label, StabilityState())
            state.consecutive_hit_count += 1

        for label, state in self._states.items():
            if label not in tracked:
                state.consecutive_hit_count = 0

        fired: List[QualifyingSignal] = []
        for label, confidence in tracked.items():
            policy = self.policy_for(label)
            state = self._states[label]

            if state.consecutive_hit_count < policy.min_stable_ticks:
                continue
            if confidence < policy.detection_threshold:
                continue
            if (
                state.last_fired_at is not None
                and now - state.last_fired_at < policy.cooldown_seconds
            ):
                continue

            fired.append(QualifyingSignal(label=label, confidence=confidence, fired_at=now))
            state.last_fired_at = now
            # Force re-accumulation even after the cooldown has expired
            state.consecutive_hit_count = 0
            logger.debug(f"Label '{label}' qualified at {now:.3f} (confidence={confidence:.2f})")

        return fired

    def state_for(self, label: str) -> StabilityState:
        """Return a copy of the state for `label` (default state if untracked)."""
        state = self._states.get(label)
        return replace(state) if state is not None else StabilityState()

    def reset(self) -> None:
        """Forget every tracked label."""
        self._states.clear()
