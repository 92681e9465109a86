"""Pipeline orchestration: the cycle coordinator and its retry feeder."""

from enex2paperless.pipeline.coordinator import PipelineCoordinator
from enex2paperless.pipeline.failure_catcher import FailureCatcher, feed_notes

__all__ = [
    "FailureCatcher",
    "PipelineCoordinator",
    "feed_notes",
]
