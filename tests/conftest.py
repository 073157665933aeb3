"""Pytest configuration and fixtures."""

import asyncio

import pytest

from toolgraph.core.events import ExecutionEvent
from toolgraph.core.orchestrator import Orchestrator
from toolgraph.core.types import Output


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class EchoCapability:
    """Returns its input; records every call and peak concurrency."""

    def __init__(self, name: str = "Echo", delay: float = 0.0):
        self.name = name
        self.description = "Echoes its input"
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def execute(self, input: str) -> Output:
        self.calls.append(input)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            return Output(result=input, raw={"echo": input})
        finally:
            self.in_flight -= 1


class FlakyCapability:
    """Raises for the first ``failures`` calls, then echoes."""

    def __init__(self, failures: int, name: str = "Flaky", error_type: type[Exception] = RuntimeError):
        self.name = name
        self.description = "Fails a few times before succeeding"
        self.failures = failures
        self.error_type = error_type
        self.calls = 0

    async def execute(self, input: str) -> Output:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error_type(f"attempt {self.calls} failed")
        return Output(result=f"ok:{input}")


class RecordingSink:
    """Event sink that keeps every event."""

    def __init__(self):
        self.events: list[ExecutionEvent] = []

    def emit(self, event: ExecutionEvent) -> None:
        self.events.append(event)

    def types(self, node_id: str | None = None) -> list[str]:
        return [e.event_type for e in self.events if node_id is None or e.node_id == node_id]


async def no_sleep(seconds: float) -> None:
    """Retry sleep that returns immediately."""
    await asyncio.sleep(0)


@pytest.fixture
def clock():
    """Manually advanced clock."""
    return FakeClock()


@pytest.fixture
def sink():
    """Recording event sink."""
    return RecordingSink()


@pytest.fixture
def echo():
    """Echo capability named "Echo"."""
    return EchoCapability()


@pytest.fixture
def orchestrator(clock, sink, echo):
    """Orchestrator with Echo registered, fake clock and instant retries."""
    return Orchestrator(default_tools=[echo], event_sink=sink, clock=clock, sleep=no_sleep)


@pytest.fixture
def make_echo():
    """Factory for extra echo capabilities, e.g. ``make_echo(name="Slow", delay=0.01)``."""
    return EchoCapability


@pytest.fixture
def make_flaky():
    """Factory for capabilities that fail a set number of times first."""
    return FlakyCapability


@pytest.fixture
def instant_sleep():
    """Retry sleep that returns immediately."""
    return no_sleep
