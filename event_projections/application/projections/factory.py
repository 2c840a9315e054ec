from typing import Any, Generic, TypeVar

from ...config import ProjectionSettings
from ...domain import Event, Query
from ..events import EntityMapping, ObservableEventStream, Sequential, Stream
from .projection import Projection

T = TypeVar("T")
TResponse = TypeVar("TResponse")


class ProjectionFactory(Generic[T]):
    """Creates projections listening to one shared event stream.

    Attributes:
        event_stream: Stream every created projection listens to
        settings: Defaults for created projections and aggregations
        projections: Projections created by this factory

    Example:
        >>> factory = ProjectionFactory(events, ProjectionSettings(sync_delivery=True))
        >>> projection = factory.create(GetUserAndLastMessage(users, messages), UserSentMessage)
        >>> projection.is_started
        True
    """

    def __init__(
        self,
        event_stream: ObservableEventStream[T],
        settings: ProjectionSettings | None = None,
    ) -> None:
        self.event_stream = event_stream
        self.settings = settings if settings is not None else ProjectionSettings()
        self.projections: list[Projection[T, Any]] = []

    def create(
        self,
        query: Query[T, TResponse],
        event_names: Any,
    ) -> Projection[T, TResponse]:
        """Create and start a projection of ``query`` triggered by ``event_names``.

        The projection is started when returned; its initial query may still
        be running (see ``Projection.initial_load``).

        Raises:
            RuntimeError: If there is no running event loop
        """
        projection: Projection[T, TResponse] = Projection(
            query, event_names, sync=self.settings.sync_delivery
        )
        projection.start_nowait(self.event_stream.stream)
        self.projections.append(projection)
        return projection

    def aggregate(
        self,
        event_types: Any,
        name: Any,
        mapping: EntityMapping | None = None,
    ) -> Stream[Event[T]]:
        """Derive a stream of events aggregated with a Sequential strategy.

        The strategy uses the configured aggregation timeout.
        """
        strategy: Sequential[T] = Sequential(
            event_types,
            name,
            mapping=mapping,
            timeout=self.settings.aggregation_timeout,
        )
        return self.event_stream.aggregate(strategy)

    async def stop_all(self) -> None:
        """Stop every projection created by this factory."""
        for projection in self.projections:
            await projection.stop()
        self.projections.clear()
