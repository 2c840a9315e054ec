"""Broadcast streams and subscriptions.

This module provides:
- EventSubscription: Handle to one listener, released with ``cancel()``
- Stream: Read-only view that listeners attach to, with derived streams
- StreamIterator: Async iterator adapter over a stream subscription
- BroadcastSource: Multicast publish point fanning items out to listeners
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from ulid import ULID

from ...domain import StreamClosedError
from .delivery import AsynchronousDelivery, Delivery

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

OnNext = Callable[[Any], Any]
OnError = Callable[[Exception], Any]
OnDone = Callable[[], Any]
Subscribe = Callable[[OnNext, OnError | None, OnDone | None], "EventSubscription[Any]"]


def _report_unhandled(error: Exception) -> None:
    LOGGER.warning(
        "Unhandled stream error",
        extra={"error_type": type(error).__name__},
    )


def _ignore_done() -> None:
    pass


class EventSubscription(Generic[T]):
    """Handle to a listener registered on a stream.

    The subscription is active from creation until it is cancelled or the
    stream completes. Inactive subscriptions receive nothing, including
    deliveries that were already scheduled when they became inactive.

    Attributes:
        id: Unique identifier of this subscription
    """

    __slots__ = ("id", "on_next", "on_error", "on_done", "_release", "_active")

    def __init__(
        self,
        on_next: OnNext,
        on_error: OnError | None = None,
        on_done: OnDone | None = None,
        release: Callable[["EventSubscription[T]"], None] | None = None,
    ) -> None:
        self.id = ULID()
        self.on_next = on_next
        self.on_error = on_error if on_error is not None else _report_unhandled
        self.on_done = on_done if on_done is not None else _ignore_done
        self._release = release
        self._active = True

    @property
    def is_active(self) -> bool:
        """True until the subscription is cancelled or its stream completes."""
        return self._active

    def cancel(self) -> None:
        """Stop receiving items. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        if self._release is not None:
            self._release(self)

    def deliver(self, item: T) -> None:
        if self._active:
            self.on_next(item)

    def deliver_error(self, error: Exception) -> None:
        if self._active:
            self.on_error(error)

    def deliver_done(self) -> None:
        if self._active:
            self._active = False
            self.on_done()


class Stream(Generic[T]):
    """Read-only view of a sequence of items, errors and a completion signal.

    Streams are broadcast: each listener independently observes every item
    published after it subscribed, in publish order. Nothing is replayed to
    late listeners.

    Derived streams (``where``, ``map``) apply their function once per item
    per listener. An exception raised by that function is delivered to the
    listener as an error notification and the subscription stays alive.

    Examples:
        Callback style:

        >>> subscription = stream.listen(on_next=print, on_error=log_error)
        >>> subscription.cancel()

        Async iteration:

        >>> async for item in stream.where(lambda e: e.name == "Purchase"):
        ...     print(item)
    """

    def __init__(self, subscribe: Subscribe) -> None:
        """Create a stream backed by a subscribe function.

        Args:
            subscribe: Callable registering ``(on_next, on_error, on_done)``
                and returning the resulting subscription
        """
        self._subscribe = subscribe

    def listen(
        self,
        on_next: OnNext,
        on_error: OnError | None = None,
        on_done: OnDone | None = None,
    ) -> EventSubscription[T]:
        """Register a listener on this stream.

        Args:
            on_next: Called with each item
            on_error: Called with each error notification. Errors of listeners
                without a handler are logged and dropped.
            on_done: Called once when the stream completes

        Returns:
            Subscription handle; cancel it to stop listening.
        """
        return self._subscribe(on_next, on_error, on_done)

    def where(self, predicate: Callable[[T], bool]) -> "Stream[T]":
        """Derive a stream holding only the items matching ``predicate``."""

        def subscribe(
            on_next: OnNext, on_error: OnError | None, on_done: OnDone | None
        ) -> EventSubscription[Any]:
            forward_error = on_error if on_error is not None else _report_unhandled

            def filtered(item: T) -> None:
                try:
                    matches = predicate(item)
                except Exception as error:
                    forward_error(error)
                    return
                if matches:
                    on_next(item)

            return self.listen(filtered, on_error, on_done)

        return Stream(subscribe)

    def map(self, transform: Callable[[T], R]) -> "Stream[R]":
        """Derive a stream holding ``transform(item)`` for every item."""

        def subscribe(
            on_next: OnNext, on_error: OnError | None, on_done: OnDone | None
        ) -> EventSubscription[Any]:
            forward_error = on_error if on_error is not None else _report_unhandled

            def transformed(item: T) -> None:
                try:
                    result = transform(item)
                except Exception as error:
                    forward_error(error)
                    return
                on_next(result)

            return self.listen(transformed, on_error, on_done)

        return Stream(subscribe)

    def __aiter__(self) -> "StreamIterator[T]":
        return StreamIterator(self)


class StreamIterator(Generic[T]):
    """Async iterator over a stream.

    Subscribes as soon as it is created, so items published between creating
    the iterator and the first ``__anext__`` call are buffered, not lost.
    Error notifications are raised from ``__anext__``; iteration may continue
    afterwards. Completion ends the iteration.
    """

    def __init__(self, stream: Stream[T]) -> None:
        self._items: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()
        self._finished = False
        self._subscription = stream.listen(
            lambda item: self._items.put_nowait(("next", item)),
            lambda error: self._items.put_nowait(("error", error)),
            lambda: self._items.put_nowait(("done", None)),
        )

    def __aiter__(self) -> "StreamIterator[T]":
        return self

    async def __anext__(self) -> T:
        if self._finished:
            raise StopAsyncIteration
        kind, value = await self._items.get()
        if kind == "done":
            self._finished = True
            raise StopAsyncIteration
        if kind == "error":
            raise value
        return value  # type: ignore[no-any-return]

    async def aclose(self) -> None:
        """Cancel the underlying subscription and end the iteration."""
        self._subscription.cancel()
        self._items.put_nowait(("done", None))


class BroadcastSource(Generic[T]):
    """Multicast publish point with zero or more independent listeners.

    Every item or error added to the source is dispatched to each listener
    registered at that moment, through the configured delivery strategy.
    There is no buffering: listeners attaching later never see earlier items.

    Closing the source delivers the completion signal to all listeners and
    releases them. Nothing may be added afterwards.

    Attributes:
        delivery: Strategy deciding when listener callbacks run

    Example:
        >>> source = BroadcastSource[int](SynchronousDelivery())
        >>> received = []
        >>> source.stream.listen(received.append)
        >>> source.add(1)
        >>> received
        [1]
    """

    def __init__(self, delivery: Delivery | None = None) -> None:
        """Initialize an open source without listeners.

        Args:
            delivery: Delivery strategy, AsynchronousDelivery by default
        """
        self.delivery = delivery if delivery is not None else AsynchronousDelivery()
        self._subscriptions: dict[ULID, EventSubscription[T]] = {}
        self._closed = False
        self._stream: Stream[T] = Stream(self._subscribe)

    @property
    def stream(self) -> Stream[T]:
        """Read-only view of this source."""
        return self._stream

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def has_listeners(self) -> bool:
        return bool(self._subscriptions)

    def add(self, item: T) -> None:
        """Broadcast an item to all current listeners.

        Raises:
            StreamClosedError: If the source has been closed
        """
        if self._closed:
            raise StreamClosedError("Cannot add an item to a closed stream")
        for subscription in list(self._subscriptions.values()):
            self.delivery.dispatch(subscription.deliver, item)

    def add_error(self, error: Exception) -> None:
        """Broadcast an error notification to all current listeners.

        Raises:
            StreamClosedError: If the source has been closed
        """
        if self._closed:
            raise StreamClosedError("Cannot add an error to a closed stream")
        for subscription in list(self._subscriptions.values()):
            self.delivery.dispatch(subscription.deliver_error, error)

    def close(self) -> None:
        """Complete the stream and release every listener. Idempotent."""
        if self._closed:
            return
        self._closed = True
        subscriptions = list(self._subscriptions.values())
        self._subscriptions.clear()
        for subscription in subscriptions:
            self.delivery.dispatch(subscription.deliver_done)

    def _subscribe(
        self,
        on_next: OnNext,
        on_error: OnError | None,
        on_done: OnDone | None,
    ) -> EventSubscription[T]:
        subscription: EventSubscription[T] = EventSubscription(
            on_next, on_error, on_done, release=self._release
        )
        if self._closed:
            self.delivery.dispatch(subscription.deliver_done)
        else:
            self._subscriptions[subscription.id] = subscription
        return subscription

    def _release(self, subscription: EventSubscription[T]) -> None:
        self._subscriptions.pop(subscription.id, None)
