"""Projections: observable queries driven by event streams.

This package provides:
- Projection: Binds a query to an event stream and republishes its results
- ProjectionFactory: Creates started projections on a shared event stream
"""

from .factory import ProjectionFactory
from .projection import Projection

__all__ = [
    "Projection",
    "ProjectionFactory",
]
