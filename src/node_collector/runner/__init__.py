"""Runner layer: wait for job completion and read its logs."""

from node_collector.runner.logs import LogsReader, read_all
from node_collector.runner.models import JobState
from node_collector.runner.runner import JobRunner, observe_state

__all__ = [
    "JobRunner",
    "JobState",
    "LogsReader",
    "observe_state",
    "read_all",
]
