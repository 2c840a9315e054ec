"""Aggregation of several related events into one synthetic event.

- AggregationStrategy: Contract for stateful aggregation rules
- Sequential: Completes once every expected event type has occurred
- EntityMapping: Role rename table used when folding events
- aggregate: Folds events into one event using a mapping
"""

from .mapping import EntityMapping
from .strategies import AggregationStrategy, Sequential, aggregate

__all__ = [
    "AggregationStrategy",
    "EntityMapping",
    "Sequential",
    "aggregate",
]
