"""
Proctor Alert Scheduler

Short-lived, user-facing notifications. Every alert owns an independent
timer that removes it after its TTL; there is no global sweep.

Timers only touch the alert collection, never event or score state.
Removing an id that is already gone is a no-op.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from typing import Callable, Dict, List

from core.schemas.outputs import Alert, AlertSeverity


logger = logging.getLogger(__name__)


class AlertScheduler:
    """
    Thread-safe alert collection with per-alert expiry timers.

    Attributes:
        _lock: Guards `_alerts` and `_timers`; timers call `remove` which
            takes the same lock, so insertions and expiries interleave safely.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.time,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
    ) -> None:
        self._clock = clock
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._alerts: Dict[int, Alert] = {}
        self._timers: Dict[int, threading.Timer] = {}
        self._ids = itertools.count(1)

    def add(self, severity: AlertSeverity, message: str, ttl: float) -> Alert:
        """Insert an alert and schedule its own removal after `ttl` seconds."""
        with self._lock:
            alert = Alert(
                id=next(self._ids),
                severity=severity,
                message=message,
                created_at=self._clock(),
                ttl=ttl,
            )
            timer = self._timer_factory(ttl, self.remove, args=(alert.id,))
            timer.daemon = True
            self._alerts[alert.id] = alert
            self._timers[alert.id] = timer
            timer.start()

        logger.debug(f"Alert #{alert.id} [{severity.value}] '{message}' (ttl={ttl}s)")
        return alert

    def remove(self, alert_id: int) -> bool:
        """Remove an alert by id. Returns False when it was already gone."""
        with self._lock:
            alert = self._alerts.pop(alert_id, None)
            timer = self._timers.pop(alert_id, None)
        if timer is not None:
            timer.cancel()
        return alert is not None

    def clear(self) -> None:
        """Drop every alert and cancel all pending timers."""
        with self._lock:
            timers = list(self._timers.values())
            self._alerts.clear()
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    def list(self) -> List[Alert]:
        with self._lock:
            return sorted(self._alerts.values(), key=lambda a: a.id)

    def pending_timers(self) -> int:
        with self._lock:
            return len(self._timers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)
