"""Jira ticket status-time reconstruction."""

from jira_timing.analytics.metrics.status_time import build_timeline, compute_bucket_durations
from jira_timing.core.errors import InvalidInputError, TimingError
from jira_timing.core.models import BucketDurations, ChangelogEvent, StatusBucketConfig, TicketTimeline

__all__ = [
    "BucketDurations",
    "ChangelogEvent",
    "InvalidInputError",
    "StatusBucketConfig",
    "TicketTimeline",
    "TimingError",
    "build_timeline",
    "compute_bucket_durations",
]
