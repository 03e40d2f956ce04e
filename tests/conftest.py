"""
Proctor Test Suite - Shared Pytest Fixtures

This conftest.py provides fixtures for all test categories including:
- A controllable wall clock
- A scripted perception adapter
- A synchronous executor so persistence side effects are deterministic
- Observation builders

Usage:
    pytest tests/ -v
"""

from collections import deque
from concurrent.futures import Executor, Future
from typing import Iterable, List, Optional, Sequence, Union

import pytest

from core.config import ProctorConfig
from core.perception import PerceptionAdapter, PerceptionUnavailable
from core.schemas.inputs import ObservationSource, RawObservation


# =============================================================================
# Test Doubles
# =============================================================================

class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class ScriptedAdapter(PerceptionAdapter):
    """
    Returns queued batches in order. A queued exception is raised instead of
    returned. An exhausted queue behaves as "no observation".
    """

    def __init__(self) -> None:
        self._queue: deque = deque()
        self.reset_calls = 0

    def queue(self, *batches: Union[Sequence[RawObservation], Exception]) -> None:
        self._queue.extend(batches)

    def observe(self) -> Sequence[RawObservation]:
        if not self._queue:
            raise PerceptionUnavailable("script exhausted")
        item = self._queue.popleft()
        if isinstance(item, Exception):
            raise item
        return item

    def reset(self) -> None:
        self.reset_calls += 1


class ImmediateExecutor(Executor):
    """Runs submitted callables inline and returns a completed Future."""

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


class DeferredExecutor(Executor):
    """Queues submitted callables until `drain()` runs them."""

    def __init__(self) -> None:
        self._pending: deque = deque()

    def submit(self, fn, *args, **kwargs) -> Future:
        future: Future = Future()
        self._pending.append((future, fn, args, kwargs))
        return future

    def drain(self) -> None:
        while self._pending:
            future, fn, args, kwargs = self._pending.popleft()
            try:
                future.set_result(fn(*args, **kwargs))
            except Exception as e:
                future.set_exception(e)


class ManualTimer:
    """threading.Timer stand-in fired explicitly by the test."""

    instances: List["ManualTimer"] = []

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False
        ManualTimer.instances.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function(*self.args, **self.kwargs)


# =============================================================================
# Observation Builders
# =============================================================================

def make_face(metric: Optional[float] = 0.30, confidence: float = 0.95, ts: float = 0.0) -> RawObservation:
    """One detected face with the given eye aspect ratio."""
    return RawObservation(
        source=ObservationSource.FACE,
        label="face",
        confidence=confidence,
        timestamp=ts,
        metric=metric,
    )


def make_object(label: str, confidence: float = 0.9, ts: float = 0.0) -> RawObservation:
    """One object detection."""
    return RawObservation(
        source=ObservationSource.OBJECT,
        label=label,
        confidence=confidence,
        timestamp=ts,
    )


def attentive_frame(*objects: RawObservation) -> List[RawObservation]:
    """A single attentive face plus any objects."""
    return [make_face(), *objects]


def run_ticks(orchestrator, clock: FakeClock, count: int, period: float = 2.0) -> List:
    """Advance the clock and run `count` ticks, collecting emitted events."""
    events = []
    for _ in range(count):
        clock.advance(period)
        events.extend(orchestrator.run_tick().events)
    return events


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> ProctorConfig:
    return ProctorConfig()


@pytest.fixture
def adapter() -> ScriptedAdapter:
    return ScriptedAdapter()


@pytest.fixture
def gateway():
    from persistence.gateway import InMemoryPersistenceGateway
    return InMemoryPersistenceGateway()


@pytest.fixture
def orchestrator(adapter, gateway, config, clock):
    """Orchestrator driven manually (no polling thread)."""
    from core.orchestrator import ProctorOrchestrator
    orch = ProctorOrchestrator(
        adapter=adapter,
        gateway=gateway,
        config=config,
        clock=clock,
        executor=ImmediateExecutor(),
        auto_poll=False,
    )
    yield orch
    orch.shutdown()
