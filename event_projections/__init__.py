"""event_projections - Observable queries over in-process event streams.

This module provides the public API for publishing domain events, aggregating
related events into one, and projecting events onto query results.
"""

from .application import (
    AggregationStrategy,
    EntityMapping,
    EventStream,
    ObservableEventStream,
    Projection,
    ProjectionFactory,
    Sequential,
    Stream,
)
from .config import ProjectionSettings
from .domain import Event, Query, StreamClosedError, make_event_name

__all__ = [
    # Domain primitives
    "Event",
    "Query",
    "make_event_name",
    "StreamClosedError",
    # Event streams
    "EventStream",
    "ObservableEventStream",
    "Stream",
    # Aggregation
    "AggregationStrategy",
    "EntityMapping",
    "Sequential",
    # Projections
    "Projection",
    "ProjectionFactory",
    # Configuration
    "ProjectionSettings",
]
