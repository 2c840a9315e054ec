from .core import StreamRecorder, StubQuery
from .projection_scenario import ProjectionScenario

__all__ = [
    "ProjectionScenario",
    "StreamRecorder",
    "StubQuery",
]
