"""
Shared fixtures for the Smart Calendar test suite
"""
from concurrent.futures import Future
from datetime import datetime, timezone

import pytest

from src.alerts.position_source import Position, PositionSource, PositionUnavailableError
from src.events.event_store import EventStore
from src.events.models import CalendarEvent, Priority
from src.scheduler.smart_scheduler import SmartScheduler


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class ImmediateExecutor:
    """Runs submitted work inline so position fetches complete synchronously"""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True, cancel_futures=False):
        pass


class ManualExecutor:
    """Holds submitted work until the test completes it, in any order"""

    def __init__(self):
        self.jobs = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.jobs.append((future, fn, args, kwargs))
        return future

    def complete(self, index: int):
        future, fn, args, kwargs = self.jobs[index]
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)

    def shutdown(self, wait=True, cancel_futures=False):
        pass


class SequencePositionSource(PositionSource):
    """Returns queued samples one by one; an Exception entry is raised instead"""

    def __init__(self, samples):
        self.samples = list(samples)
        self.calls = 0

    def get_position(self) -> Position:
        self.calls += 1
        sample = self.samples.pop(0)
        if isinstance(sample, Exception):
            raise sample
        return sample


@pytest.fixture
def make_event():
    def _make(event_id="", start=None, end=None, title="Event", priority=Priority.NONE, **kwargs):
        start = start or utc(2024, 6, 3, 9, 0)
        end = end or utc(2024, 6, 3, 10, 0)
        return CalendarEvent(start=start, end=end, title=title, event_id=event_id,
                             priority=priority, **kwargs)
    return _make


@pytest.fixture
def store():
    return EventStore()


@pytest.fixture
def scheduler(store):
    return SmartScheduler(store=store)


@pytest.fixture
def immediate_executor():
    return ImmediateExecutor()


@pytest.fixture
def manual_executor():
    return ManualExecutor()


@pytest.fixture
def unavailable():
    return PositionUnavailableError("GPS off")
