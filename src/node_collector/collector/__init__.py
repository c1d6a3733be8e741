"""Collector layer: the apply / wait / collect / teardown workflows."""

from node_collector.collector.collector import COLLECTOR_CONTAINER, Collector
from node_collector.collector.models import (
    AUTO_CREATED_LABEL,
    COLLECTOR_NAME_LABEL,
    RESOURCE_KIND_LABEL,
    RESOURCE_NAME_LABEL,
    CollectorConfig,
    CollectorConfigBuilder,
)

__all__ = [
    "AUTO_CREATED_LABEL",
    "COLLECTOR_CONTAINER",
    "COLLECTOR_NAME_LABEL",
    "RESOURCE_KIND_LABEL",
    "RESOURCE_NAME_LABEL",
    "Collector",
    "CollectorConfig",
    "CollectorConfigBuilder",
]
