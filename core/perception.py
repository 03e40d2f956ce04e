"""
Proctor Perception Adapters

The perception models (face geometry, object detection) run outside the
core. The pipeline polls them once per tick through `observe()`.

A failing `observe()` means "no observation this tick"; the orchestrator
treats it as an empty tick, never as a fatal error.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from core.schemas.inputs import RawObservation


logger = logging.getLogger(__name__)


class PerceptionUnavailable(Exception):
    """Raised by an adapter that has no observation for the current tick."""
    pass


class PerceptionAdapter(ABC):
    """Polled source of RawObservation records."""

    @abstractmethod
    def observe(self) -> Sequence[RawObservation]:
        """Return the observations for the current tick."""

    def reset(self) -> None:
        """Drop any buffered input (called on session start)."""


class BufferedPerceptionAdapter(PerceptionAdapter):
    """
    Push-fed adapter for clients that run the models themselves.

    Each pushed batch replaces the previous one; `observe()` drains the
    latest batch. A tick with no fresh batch raises PerceptionUnavailable.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._latest: Optional[List[RawObservation]] = None

    def push(self, observations: Sequence[RawObservation]) -> None:
        with self._lock:
            if self._latest is not None:
                logger.debug(f"Replacing unconsumed batch of {len(self._latest)} observations")
            self._latest = list(observations)

    def observe(self) -> Sequence[RawObservation]:
        with self._lock:
            batch, self._latest = self._latest, None
        if batch is None:
            raise PerceptionUnavailable("No observation batch received since last tick")
        return batch

    def reset(self) -> None:
        with self._lock:
            self._latest = None
