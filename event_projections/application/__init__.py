"""Stream and projection infrastructure for event_projections.

This package contains the runtime half of the library: broadcast streams,
event aggregation and projections.
"""

from .events import (
    AggregationStrategy,
    AsynchronousDelivery,
    BroadcastSource,
    Delivery,
    EntityMapping,
    EventStream,
    EventSubscription,
    ObservableEventStream,
    Sequential,
    Stream,
    StreamIterator,
    SynchronousDelivery,
    aggregate,
)
from .projections import Projection, ProjectionFactory

__all__ = [
    # Event streams
    "EventStream",
    "ObservableEventStream",
    "BroadcastSource",
    "EventSubscription",
    "Stream",
    "StreamIterator",
    "Delivery",
    "SynchronousDelivery",
    "AsynchronousDelivery",
    # Aggregation
    "AggregationStrategy",
    "EntityMapping",
    "Sequential",
    "aggregate",
    # Projections
    "Projection",
    "ProjectionFactory",
]
