"""Projection of an event stream onto the results of a query.

A projection is an observable query: it runs its query when started and
again whenever a matching event arrives, and republishes every result on its
own stream.
"""

import asyncio
import logging
from typing import Any, Generic, TypeVar

from ulid import ULID

from ...domain import Event, Query, normalize_event_names
from ..events import (
    AsynchronousDelivery,
    BroadcastSource,
    EventSubscription,
    Stream,
    SynchronousDelivery,
)

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
TResponse = TypeVar("TResponse")

# Tells a projection worker that its subscription was released
_DETACHED = object()


class Projection(Generic[T, TResponse]):
    """Binds a query to the events of a stream.

    **Lifecycle:**
    A projection is idle until started. ``start`` subscribes to the incoming
    stream and runs the initial query; ``stop`` releases the subscription and
    completes the output stream. Stopping a projection that was never started
    does nothing.

    **Event handling:**
    Events whose name is in ``event_names`` are handed to
    ``query.execute_on`` one at a time: the next event is not queried before
    the previous result has been published, so results keep the order of the
    events that triggered them. The initial query runs concurrently with
    event handling; its result may come before or after results of early
    events.

    **Results and errors:**
    Non-None results are published on ``stream``. Exceptions raised by the
    query, and errors published on the incoming stream, are delivered to
    listeners of ``stream`` as error notifications. They never stop event
    handling.

    **Restarting:**
    Starting a running projection cancels its current subscription and
    subscribes to the new stream. Results produced after ``stop`` are
    discarded. Starting a stopped projection opens a new output stream, so
    listeners must subscribe to ``stream`` again.

    Attributes:
        id: Unique identifier of the projection, used in log records
        query: Query executed by the projection
        event_names: Names of the events triggering the query
        sync: Whether results are delivered within the publishing call
        initial_load: Task running the initial query of the last start

    Example:
        >>> projection = Projection(GetUserAndLastMessage(users, messages), "User sent message")
        >>> await projection.start(events.stream)
        >>> async for user_to_last_message in projection.stream:
        ...     render(user_to_last_message)
    """

    def __init__(
        self,
        query: Query[T, TResponse],
        event_names: Any,
        *,
        sync: bool = False,
    ) -> None:
        """Create an idle projection.

        Args:
            query: Query to execute
            event_names: Event name, or iterable of event names, triggering
                the query. Names are converted with ``make_event_name``.
            sync: Deliver results to listeners within the publishing call
                instead of on a later loop turn

        Raises:
            ValueError: If no event names are given
        """
        self.id = ULID()
        self.query = query
        self.event_names = normalize_event_names(event_names)
        self.sync = sync
        self.initial_load: asyncio.Task[None] | None = None
        self._output: BroadcastSource[TResponse] = self._open_output()
        self._subscription: EventSubscription[Event[T]] | None = None
        self._pending: asyncio.Queue[Any] | None = None
        self._workers: set[asyncio.Task[None]] = set()

    @property
    def is_started(self) -> bool:
        """True while the projection is subscribed to a stream."""
        return self._subscription is not None

    @property
    def stream(self) -> Stream[TResponse]:
        """Stream of query results and query errors.

        A new stream is opened when a stopped projection is started again.
        """
        return self._output.stream

    async def start(self, stream: Stream[Event[T]]) -> None:
        """Start listening to matching events on ``stream``.

        Returns once the subscription is installed and the initial query has
        finished. Events keep being handled afterwards.

        Args:
            stream: Stream of incoming events
        """
        await self.start_nowait(stream)

    def start_nowait(self, stream: Stream[Event[T]]) -> "asyncio.Task[None]":
        """Subscribe to ``stream`` and schedule the initial query.

        The projection is started when this method returns.

        Args:
            stream: Stream of incoming events

        Returns:
            Task running the initial query

        Raises:
            RuntimeError: If there is no running event loop
        """
        loop = asyncio.get_running_loop()
        if self._subscription is not None:
            LOGGER.warning("Projection restarted, replacing its subscription", extra=self._log_extra())
            self._detach()
        if self._output.is_closed:
            self._output = self._open_output()

        pending: asyncio.Queue[Any] = asyncio.Queue()
        self._pending = pending
        self._subscription = stream.where(self._matches).listen(
            pending.put_nowait,
            pending.put_nowait,
        )
        worker = loop.create_task(self._process(pending))
        self._workers.add(worker)
        worker.add_done_callback(self._workers.discard)
        self.initial_load = loop.create_task(self.load())
        LOGGER.debug(
            "Projection started",
            extra={**self._log_extra(), "event_names": sorted(self.event_names)},
        )
        return self.initial_load

    async def stop(self) -> None:
        """Stop listening to events and complete the output stream.

        Queries already running are not interrupted, but their results are
        discarded.
        """
        if self._subscription is None:
            return
        self._detach()
        self._output.close()
        LOGGER.debug("Projection stopped", extra=self._log_extra())

    async def load(self) -> None:
        """Run the initial query and publish its result."""
        try:
            data = await self.query.execute()
        except Exception as error:
            LOGGER.warning(
                "Initial query failed",
                extra={**self._log_extra(), "error_type": type(error).__name__},
            )
            self._emit_error(error)
            return
        if data is not None:
            self._emit(data)

    async def wait_until_idle(self) -> None:
        """Wait for the initial query and for every event received so far.

        Events still being delivered by an asynchronous incoming stream get
        one loop turn to arrive.
        """
        await asyncio.sleep(0)
        if self.initial_load is not None:
            await self.initial_load
        if self._pending is not None:
            await self._pending.join()

    def _matches(self, event: Event[T]) -> bool:
        return event.name in self.event_names

    async def _process(self, pending: "asyncio.Queue[Any]") -> None:
        while True:
            item = await pending.get()
            try:
                if item is _DETACHED:
                    return
                if isinstance(item, Exception):
                    self._emit_error(item)
                else:
                    await self._execute_on(item)
            finally:
                pending.task_done()

    async def _execute_on(self, event: Event[T]) -> None:
        try:
            data = await self.query.execute_on(event)
        except Exception as error:
            LOGGER.warning(
                "Query failed on event",
                extra={
                    **self._log_extra(),
                    "event_name": event.name,
                    "error_type": type(error).__name__,
                },
            )
            self._emit_error(error)
            return
        if data is not None:
            self._emit(data)

    def _emit(self, data: TResponse) -> None:
        if self._output.is_closed:
            LOGGER.debug("Discarding result of stopped projection", extra=self._log_extra())
            return
        try:
            self._output.add(data)
        except Exception as error:
            self._report_listener_failure(error)

    def _emit_error(self, error: Exception) -> None:
        if self._output.is_closed:
            LOGGER.debug("Discarding error of stopped projection", extra=self._log_extra())
            return
        try:
            self._output.add_error(error)
        except Exception as listener_error:
            self._report_listener_failure(listener_error)

    def _report_listener_failure(self, error: Exception) -> None:
        # Synchronous listeners run inside _emit; their failures must not end the worker
        LOGGER.warning(
            "Projection listener failed",
            extra={**self._log_extra(), "error_type": type(error).__name__},
        )

    def _open_output(self) -> BroadcastSource[TResponse]:
        return BroadcastSource(SynchronousDelivery() if self.sync else AsynchronousDelivery())

    def _detach(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        if self._pending is not None:
            self._pending.put_nowait(_DETACHED)
            self._pending = None

    def _log_extra(self) -> dict[str, str]:
        return {
            "projection_id": str(self.id),
            "query_type": type(self.query).__name__,
        }
