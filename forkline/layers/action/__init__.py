"""Action Layer - Polling, extraction and collection."""

from forkline.layers.action.collector import AllAnchorsFailed, RecordCollector
from forkline.layers.action.extractor import ExtractionRecord, PollingExtractor
from forkline.layers.action.poller import Poller, PollTask, TaskRegistry, TaskState

__all__ = [
    "AllAnchorsFailed",
    "RecordCollector",
    "ExtractionRecord",
    "PollingExtractor",
    "Poller",
    "PollTask",
    "TaskRegistry",
    "TaskState",
]
