import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta
from typing import Any, Generic, TypeVar

from ....domain import Event, make_event_name, normalize_event_names, utc_now
from .mapping import EntityMapping

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def aggregate(
    events: Iterable[Event[T]],
    name: Any,
    mapping: EntityMapping | None = None,
) -> Event[T]:
    """Fold several events into a single event named ``name``.

    Every entity of every event is copied into the aggregated event under the
    role ``mapping.get(event.name, role)``. When two events write the same
    target role, the later event in ``events`` wins.

    Args:
        events: Events to fold, in order
        name: Name of the aggregated event
        mapping: Role rename table; roles are kept as-is when omitted

    Returns:
        The aggregated event
    """
    mapping = mapping if mapping is not None else EntityMapping()
    entities: dict[str, T] = {}
    for event in events:
        for role, entity_id in event.entities.items():
            entities[mapping.get(event.name, role)] = entity_id
    return Event(name, entities)


class AggregationStrategy(ABC, Generic[T]):
    """Rule folding a sequence of related events into one synthetic event.

    A strategy is fed every event of a stream, one at a time and in order.
    For each event it either completes an aggregation and returns the
    aggregated event, or returns None to signal "not yet".

    Strategies keep state between calls and assume serialized delivery.
    They are driven by ``ObservableEventStream.aggregate()``.

    Implementations:
    - Sequential: Completes once every expected event type has occurred
    """

    @abstractmethod
    def try_to_aggregate_on(self, event: Event[T]) -> Event[T] | None:
        """Consider the next event of the stream.

        Args:
            event: The event that just occurred

        Returns:
            The aggregated event if this event completed an aggregation,
            None otherwise
        """
        ...

    def aggregate(
        self,
        events: Iterable[Event[T]],
        name: Any,
        mapping: EntityMapping | None = None,
    ) -> Event[T]:
        """Fold ``events`` into one event. See the module-level ``aggregate``."""
        return aggregate(events, name, mapping)


class Sequential(AggregationStrategy[T]):
    """Aggregate once every expected event type has occurred.

    The strategy collects events whose names are among the expected types.
    As soon as each expected type has been seen since the last completion,
    the collected events are folded into one event and collection starts
    over.

    **Timeout:**
    With a positive timeout, partial progress older than the timeout is
    discarded. The check happens before the incoming event is considered,
    so a stale partial aggregation never completes with fresh events.
    Only matching events refresh the timeout clock. A zero timeout keeps
    partial progress indefinitely.

    **Repeated types:**
    Completion depends on which types occurred, not on how many times. When
    a type occurs again before completion, the latest occurrence replaces the
    earlier one and its entities are the ones folded in.

    Only sequential, non-interleaved occurrences are supported: two
    aggregations of the same types progressing at the same time are mixed
    together.

    Attributes:
        expected_types: Event names that must all occur
        name: Name of the aggregated events
        mapping: Role rename table used when folding
        timeout: Maximum age of partial progress, zero disables expiry

    Example:
        >>> mapping = EntityMapping()
        >>> mapping.set("sausage is placed on bread", "bread", "bread_with_sausage")
        >>> strategy = Sequential(
        ...     ["bread is plastered with butter", "sausage is placed on bread"],
        ...     "sandwich is ready",
        ...     mapping=mapping,
        ...     timeout=500,
        ... )
        >>> sandwiches = events.aggregate(strategy)
    """

    def __init__(
        self,
        event_types: Any,
        name: Any,
        *,
        mapping: EntityMapping | None = None,
        timeout: timedelta | float = 0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the strategy.

        Args:
            event_types: Event name or iterable of event names to wait for
            name: Name of the aggregated events
            mapping: Role rename table, identity when omitted
            timeout: Timeout as a timedelta or in milliseconds (int or float),
                0 disables it
            clock: Source of the current time

        Raises:
            ValueError: If no event types are given or timeout is negative
        """
        if isinstance(timeout, (int, float)):
            timeout = timedelta(milliseconds=timeout)
        if timeout < timedelta():
            raise ValueError("Timeout must not be negative")
        self.expected_types = normalize_event_names(event_types)
        self.name = make_event_name(name)
        self.mapping = mapping if mapping is not None else EntityMapping()
        self.timeout = timeout
        self.clock = clock
        self.collected: dict[str, Event[T]] = {}
        self.last_match: datetime | None = None

    @property
    def pending_types(self) -> frozenset[str]:
        """Expected event names that have not occurred yet."""
        return self.expected_types.difference(self.collected)

    def reset(self) -> None:
        """Discard partial progress."""
        self.collected.clear()

    def try_to_aggregate_on(self, event: Event[T]) -> Event[T] | None:
        now = self.clock()
        if self._timed_out(now):
            LOGGER.debug(
                "Discarding timed out aggregation",
                extra={
                    "aggregation": self.name,
                    "collected": sorted(self.collected),
                },
            )
            self.reset()

        if event.name in self.expected_types:
            self.collected[event.name] = event
            self.last_match = now

        if not self.expected_types.issubset(self.collected):
            return None

        aggregated = self.aggregate(self.collected.values(), self.name, self.mapping)
        self.reset()
        LOGGER.debug("Aggregation completed", extra={"aggregation": self.name})
        return aggregated

    def _timed_out(self, now: datetime) -> bool:
        if not self.timeout or self.last_match is None or not self.collected:
            return False
        return now > self.last_match + self.timeout
