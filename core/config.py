"""
Proctor Configuration

Tunable constants for the stabilization, classification and alerting
pipeline. Every value has a reference default; `ProctorConfig.from_env()`
applies overrides from environment variables.

Usage:
    config = ProctorConfig.from_env()
    config.objects.policy.min_stable_ticks  # 2
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Dict


# =============================================================================
# Label Policies
# =============================================================================

@dataclass(frozen=True)
class LabelPolicy:
    """Debounce and cooldown rules for a single tracked label."""

    min_stable_ticks: int = 2
    """Consecutive ticks a label must be present before it may fire."""

    cooldown_seconds: float = 8.0
    """Minimum time between two firings of the same label."""

    detection_threshold: float = 0.0
    """Minimum confidence at the qualifying tick."""

    def __post_init__(self) -> None:
        if self.min_stable_ticks < 1:
            raise ValueError(f"min_stable_ticks must be >= 1, got {self.min_stable_ticks}")
        if self.cooldown_seconds < 0:
            raise ValueError(f"cooldown_seconds must be >= 0, got {self.cooldown_seconds}")
        if not 0.0 <= self.detection_threshold <= 1.0:
            raise ValueError(
                f"detection_threshold must be within [0, 1], got {self.detection_threshold}"
            )


@dataclass(frozen=True)
class FacePolicy:
    """Face-state classification settings."""

    eye_aspect_ratio_threshold: float = 0.22
    absence_threshold_seconds: float = 10.0
    absent_confidence: float = 0.8
    looking_away: LabelPolicy = field(default_factory=lambda: LabelPolicy(min_stable_ticks=5))
    multiple_faces: LabelPolicy = field(default_factory=lambda: LabelPolicy(min_stable_ticks=4))
    absent: LabelPolicy = field(default_factory=lambda: LabelPolicy(min_stable_ticks=5))

    def __post_init__(self) -> None:
        if self.absence_threshold_seconds < 0:
            raise ValueError("absence_threshold_seconds must be >= 0")


@dataclass(frozen=True)
class ObjectPolicy:
    """Object presence settings. One policy shared by every tracked class."""

    policy: LabelPolicy = field(
        default_factory=lambda: LabelPolicy(min_stable_ticks=2, detection_threshold=0.75)
    )


@dataclass(frozen=True)
class AlertPolicy:
    """Alert lifetimes in seconds, keyed by event type value."""

    ttl_by_event: Dict[str, float] = field(default_factory=lambda: {
        "focus_lost": 3.0,
        "face_absent": 5.0,
        "multiple_faces": 5.0,
        "phone_detected": 5.0,
        "book_detected": 5.0,
        "device_detected": 5.0,
    })
    default_ttl: float = 5.0
    persistence_failure_ttl: float = 3.0

    def ttl_for(self, event_type: str) -> float:
        return self.ttl_by_event.get(event_type, self.default_ttl)


# =============================================================================
# Root Configuration
# =============================================================================

@dataclass(frozen=True)
class ProctorConfig:
    """Main configuration for the proctoring pipeline."""

    tick_seconds: float = 2.0
    face: FacePolicy = field(default_factory=FacePolicy)
    objects: ObjectPolicy = field(default_factory=ObjectPolicy)
    alerts: AlertPolicy = field(default_factory=AlertPolicy)
    deductions: Dict[str, int] = field(default_factory=lambda: {
        "focus_lost": 5,
        "face_absent": 10,
        "multiple_faces": 10,
        "phone_detected": 20,
        "book_detected": 20,
        "device_detected": 10,
    })

    def __post_init__(self) -> None:
        if self.tick_seconds <= 0:
            raise ValueError(f"tick_seconds must be > 0, got {self.tick_seconds}")
        for event_type, deduction in self.deductions.items():
            if deduction < 0:
                raise ValueError(f"Deduction for {event_type} must be >= 0, got {deduction}")

    @classmethod
    def from_env(cls) -> ProctorConfig:
        """
        Build configuration from environment variables.

        Reads:
        - PROCTOR_TICK_SECONDS: Polling period (default: 2.0)
        - PROCTOR_COOLDOWN_SECONDS: Cooldown for every label (default: 8.0)
        - PROCTOR_OBJECT_THRESHOLD: Object confidence threshold (default: 0.75)
        - PROCTOR_ABSENCE_SECONDS: Face absence threshold (default: 10.0)
        - PROCTOR_EAR_THRESHOLD: Eye aspect ratio threshold (default: 0.22)
        """
        tick = float(os.getenv("PROCTOR_TICK_SECONDS", 2.0))
        cooldown = float(os.getenv("PROCTOR_COOLDOWN_SECONDS", 8.0))
        object_threshold = float(os.getenv("PROCTOR_OBJECT_THRESHOLD", 0.75))
        absence = float(os.getenv("PROCTOR_ABSENCE_SECONDS", 10.0))
        ear = float(os.getenv("PROCTOR_EAR_THRESHOLD", 0.22))

        face = FacePolicy(
            eye_aspect_ratio_threshold=ear,
            absence_threshold_seconds=absence,
            looking_away=LabelPolicy(min_stable_ticks=5, cooldown_seconds=cooldown),
            multiple_faces=LabelPolicy(min_stable_ticks=4, cooldown_seconds=cooldown),
            absent=LabelPolicy(min_stable_ticks=5, cooldown_seconds=cooldown),
        )
        objects = ObjectPolicy(
            policy=LabelPolicy(
                min_stable_ticks=2,
                cooldown_seconds=cooldown,
                detection_threshold=object_threshold,
            )
        )
        return cls(tick_seconds=tick, face=face, objects=objects)
