"""Projection settings using pydantic-settings."""

from datetime import timedelta

from pydantic_settings import BaseSettings


class ProjectionSettings(BaseSettings):
    """Defaults applied by ProjectionFactory.

    All settings can be configured via environment variables with the
    EVENT_PROJECTIONS_ prefix. For example:
    - EVENT_PROJECTIONS_SYNC_DELIVERY=true
    - EVENT_PROJECTIONS_AGGREGATION_TIMEOUT=PT0.5S

    Attributes:
        sync_delivery: Deliver projection results to listeners within the
            publishing call instead of on a later loop turn.
        aggregation_timeout: Timeout of aggregations built by the factory,
            zero disables it. Accepts seconds or ISO 8601 durations.

    Example:
        >>> settings = ProjectionSettings(sync_delivery=True)
        >>> factory = ProjectionFactory(events, settings)
    """

    sync_delivery: bool = False
    aggregation_timeout: timedelta = timedelta()

    model_config = {"env_prefix": "EVENT_PROJECTIONS_"}
