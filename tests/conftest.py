"""Central test fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from event_projections.application.events import (
    BroadcastSource,
    ObservableEventStream,
    SynchronousDelivery,
)


class FakeClock:
    """Manually advanced clock for time-aware aggregation strategies."""

    def __init__(self) -> None:
        self.now = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock starting at a fixed UTC instant."""
    return FakeClock()


@pytest.fixture
def sync_events() -> ObservableEventStream[int]:
    """Create an event stream delivering to listeners synchronously."""
    return ObservableEventStream(BroadcastSource(SynchronousDelivery()))
