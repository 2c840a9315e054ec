"""Query contract executed by projections.

Queries are the application-owned half of a projection: they know how to
fetch data from a repository, a database or a remote service. The projection
only decides *when* to run them.
"""

from abc import ABC
from typing import Generic, TypeVar

from .event import Event

T = TypeVar("T")
TResponse = TypeVar("TResponse")


class Query(ABC, Generic[T, TResponse]):
    """Base class for queries bound to a projection.

    A projection executes its query once when it starts (``execute``) and again
    each time a matching event arrives (``execute_on``). Both methods default
    to returning ``None``, so subclasses override only what they need.

    ``None`` is the "no update" signal: the projection ignores it and does not
    notify its listeners. Raise only for real failures; exceptions are caught
    by the projection and delivered to its listeners as error notifications.

    Type Parameters:
        T: Type of the entity identifiers carried by events
        TResponse: Type of the data returned by the query

    Examples:
        >>> class GetLastMessageOfUser(Query[str, Message]):
        ...     def __init__(self, messages: MessageRepository):
        ...         self.messages = messages
        ...
        ...     async def execute_on(self, event: Event[str]) -> Message | None:
        ...         return await self.messages.last_of(event.get_id_of("user"))
    """

    async def execute(self) -> TResponse | None:
        """Execute the query when its projection starts.

        Returns:
            The initial query result, or None if there is nothing to report.
        """
        return None

    async def execute_on(self, event: Event[T]) -> TResponse | None:
        """Execute the query when its projection receives a matching event.

        The fact that an event happened may or may not mean that the queried
        data has changed.

        Args:
            event: The event that triggered the execution.

        Returns:
            The updated query result, or None if there is nothing to report.
        """
        return None
