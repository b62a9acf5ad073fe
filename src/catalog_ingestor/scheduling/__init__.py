"""
Scheduling for the Kubernetes catalog ingestor.

Runs each entity provider on its own timer with a per-run timeout.
"""

from catalog_ingestor.scheduling.scheduler import ProviderRun, ProviderTask, TaskRunner

__all__ = [
    "ProviderRun",
    "ProviderTask",
    "TaskRunner",
]
