import copy
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator

T = TypeVar("T")


def utc_now() -> datetime:
    """Get the current UTC timestamp.

    Returns:
        Current datetime with UTC timezone information

    Note:
        Used as the default clock of time-aware aggregation strategies so
        that timeouts are measured in UTC regardless of system timezone.
    """
    return datetime.now(tz=timezone.utc)


def make_event_name(value: Any) -> str:
    """Convert an event name specification into its canonical string key.

    The canonical key is what events carry in ``Event.name`` and what
    projections and aggregation strategies match against, so two events are
    of the same type iff their converted names are equal.

    Args:
        value: A string, an Enum member, a class used as a type tag, or any
            other value with a stable ``str()``.

    Returns:
        The canonical event name.

    Examples:
        >>> make_event_name("User sent message")
        'User sent message'
        >>> make_event_name(UserSentMessage)
        'UserSentMessage'
        >>> make_event_name(ChatEvents.MESSAGE_SENT)
        'message sent'
    """
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, str):
        return value
    if isinstance(value, bytes):
        return value.decode()
    if isinstance(value, type):
        return value.__name__
    return str(value)


def normalize_event_names(value: Any) -> frozenset[str]:
    """Resolve a single event name or an iterable of names into a set of keys.

    Strings, bytes and non-iterable values are treated as one name. Any other
    iterable, including an Enum class, is treated as a collection of names.

    Args:
        value: Event name specification.

    Returns:
        Non-empty set of canonical event names.

    Raises:
        ValueError: If the iterable holds no names.
    """
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        names = frozenset([make_event_name(value)])
    else:
        names = frozenset(make_event_name(item) for item in value)
    if not names:
        raise ValueError("At least one event name is required")
    return names


class Event(BaseModel, Generic[T]):
    """Immutable record of something that happened in the domain model.

    Events deliberately carry no entity attributes, since those change often
    during development. Instead an event references every affected entity by
    its *role* in the event ("user", "bread", "order"), mapped to whatever
    identifies that entity: a plain ID, or a repository specification in
    applications without simple IDs.

    - **Immutable**: The model is frozen, the entity mapping is deep-copied
      on construction and exposed read-only; ``to_map()`` hands out copies
    - **Structural**: Two events are equal iff their names and entity
      mappings are equal; the hash is consistent with that
    - **Typed**: Generic type parameter T is the type of entity identifiers

    Type Parameters:
        T: Type of the objects identifying entities

    Attributes:
        name: Canonical event name (see ``make_event_name``)
        entities: Read-only view of the entity role to identifier mapping

    Examples:
        >>> event = Event("User sent message", {"user": 15})
        >>> event.get_id_of("user")
        15
        >>> Event("User sent message", {"user": 15}) == event
        True
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Canonical name of the event")
    _entities: dict[str, T] = PrivateAttr(default_factory=dict)

    def __init__(self, name: Any, entities: Mapping[str, T] | None = None, **data: Any) -> None:
        """Create an event.

        Args:
            name: Event name, converted with ``make_event_name``.
            entities: Every entity related to this event, keyed by its role.
                The mapping is copied, later changes to it do not affect
                the event.
        """
        super().__init__(name=name, **data)
        self._entities = copy.deepcopy(dict(entities)) if entities is not None else {}

    @field_validator("name", mode="before")
    @classmethod
    def _canonical_name(cls, value: Any) -> str:
        return make_event_name(value)

    @property
    def entities(self) -> Mapping[str, T]:
        """Read-only view of the affected entities and their IDs."""
        return MappingProxyType(self._entities)

    def get_id_of(self, entity: str) -> T | None:
        """Get the identifier of the entity playing ``entity`` role in this event.

        Args:
            entity: Role of the entity.

        Returns:
            The identifier, or None if no entity has that role.
        """
        return self._entities.get(entity)

    def to_map(self) -> dict[str, T]:
        """Return a copy of the mapping of affected entities to their IDs."""
        return copy.deepcopy(self._entities)

    def __repr_args__(self) -> Any:
        yield from super().__repr_args__()
        yield "entities", self._entities

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Event):
            return NotImplemented
        return self.name == other.name and self._entities == other._entities

    def __hash__(self) -> int:
        try:
            return hash((self.name, frozenset(self._entities.items())))
        except TypeError:
            # Unhashable identifiers: fall back to the roles only
            return hash((self.name, frozenset(self._entities)))
