"""Processing module: worker pool, outcomes and run aggregation."""

from .models import Outcome, OutcomeStatus, WorkItem
from .dispatcher import WorkerPool, dispatch, default_thread_count
from .aggregator import FailureRecord, RunAggregator, RunSummary
from .run import SortRun

__all__ = [
    "Outcome",
    "OutcomeStatus",
    "WorkItem",
    "WorkerPool",
    "dispatch",
    "default_thread_count",
    "FailureRecord",
    "RunAggregator",
    "RunSummary",
    "SortRun",
]
