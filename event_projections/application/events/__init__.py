"""Event stream infrastructure for event_projections.

This package provides:
- EventStream / ObservableEventStream: Entry points for publishing events
- BroadcastSource / Stream / EventSubscription: Multicast stream primitives
- Delivery: Synchronous or asynchronous listener invocation
- Aggregation: Folding related events into one synthetic event
"""

from .aggregation import AggregationStrategy, EntityMapping, Sequential, aggregate
from .delivery import AsynchronousDelivery, Delivery, SynchronousDelivery
from .streams import EventStream, ObservableEventStream
from .transport import BroadcastSource, EventSubscription, Stream, StreamIterator

__all__ = [
    # Event streams
    "EventStream",
    "ObservableEventStream",
    # Stream primitives
    "BroadcastSource",
    "EventSubscription",
    "Stream",
    "StreamIterator",
    # Delivery strategies
    "Delivery",
    "SynchronousDelivery",
    "AsynchronousDelivery",
    # Aggregation
    "AggregationStrategy",
    "EntityMapping",
    "Sequential",
    "aggregate",
]
