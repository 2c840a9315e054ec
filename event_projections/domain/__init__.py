"""Domain primitives for event projections.

This module contains the building blocks that application code works with
directly:

- Event: Immutable record of which entities an occurrence affected
- Query: Contract a projection executes on start and on every matching event
- make_event_name / normalize_event_names: Canonical event name conversion
- StreamClosedError: Raised when publishing to a closed stream
"""

from .event import Event, make_event_name, normalize_event_names, utc_now
from .exceptions import StreamClosedError
from .query import Query

__all__ = [
    "Event",
    "Query",
    "make_event_name",
    "normalize_event_names",
    "utc_now",
    "StreamClosedError",
]
