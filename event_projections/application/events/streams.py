"""Event streams handed to domain code and to projections."""

import logging
from typing import TYPE_CHECKING, Generic, TypeVar

from ...domain import Event
from .transport import BroadcastSource, Stream

if TYPE_CHECKING:
    from .aggregation import AggregationStrategy

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class EventStream(Generic[T]):
    """Publish-only proxy to a broadcast source of events.

    Pass this object into domain model classes: it allows publishing events
    and errors, and nothing else.

    Example:
        >>> class User:
        ...     def __init__(self, name: str, events: EventStream[str]):
        ...         self.name = name
        ...         self.events = events
        ...
        ...     def post_message(self) -> None:
        ...         self.events.publish(Event("User sent message", {"user": self.name}))
    """

    def __init__(self, source: BroadcastSource[Event[T]] | None = None) -> None:
        """Create a proxy to ``source``.

        Args:
            source: Broadcast source to publish to. A new source with
                asynchronous delivery is created when omitted.
        """
        self._source: BroadcastSource[Event[T]] = (
            source if source is not None else BroadcastSource()
        )

    def publish(self, event: Event[T]) -> None:
        """Publish ``event`` to every current listener.

        Raises:
            StreamClosedError: If the underlying source has been closed
        """
        LOGGER.debug("Publishing event", extra={"event_name": event.name})
        self._source.add(event)

    def error(self, error: Exception) -> None:
        """Publish an error notification to every current listener.

        Raises:
            StreamClosedError: If the underlying source has been closed
        """
        self._source.add_error(error)


class ObservableEventStream(EventStream[T]):
    """Event stream that can also be listened to and aggregated.

    This is what the application wiring keeps: projections read from
    ``stream`` and aggregated streams are derived with ``aggregate()``.
    """

    @property
    def stream(self) -> Stream[Event[T]]:
        """Read-only view of the published events."""
        return self._source.stream

    def aggregate(self, strategy: "AggregationStrategy[T]") -> Stream[Event[T]]:
        """Derive a stream of aggregated events using ``strategy``.

        Every event observed on this stream is passed to
        ``strategy.try_to_aggregate_on``; only completed aggregations are
        emitted, in the order of the events that completed them.

        Note:
            Strategies are stateful and the derived stream drives the strategy
            once per listener. Listen to the returned stream once, or publish
            its events into another EventStream to share them.

        Args:
            strategy: Aggregation strategy to apply

        Returns:
            Stream of aggregated events
        """
        return self.stream.map(strategy.try_to_aggregate_on).where(
            lambda aggregated: aggregated is not None
        )
