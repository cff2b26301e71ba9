"""Domain data models for changelog events, bucket configuration, and results."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .config import BUCKET_CONFIG_KEYS, BUCKET_ORDER, BUCKET_RECORD_COLUMNS, CLOSING_CONFIG_KEY
from .errors import InvalidInputError

# Bucket name -> StatusBucketConfig attribute
BUCKET_ATTRIBUTES: dict[str, str] = {
    "refinement": "refinement_statuses",
    "ready_for_development": "ready_for_development_statuses",
    "in_progress": "in_progress_statuses",
    "blocked": "blocked_statuses",
    "review": "review_statuses",
    "promotion": "promotion_statuses",
}


@dataclass(slots=True)
class ChangelogEvent:
    timestamp: datetime | None
    to_status: str
    from_status: str | None = None


@dataclass(frozen=True, slots=True)
class StatusBucketConfig:
    refinement_statuses: tuple[str, ...] = ()
    ready_for_development_statuses: tuple[str, ...] = ()
    in_progress_statuses: tuple[str, ...] = ()
    blocked_statuses: tuple[str, ...] = ()
    review_statuses: tuple[str, ...] = ()
    promotion_statuses: tuple[str, ...] = ()
    ticket_closes_statuses: tuple[str, ...] = ()

    def statuses_for(self, bucket: str) -> tuple[str, ...]:
        return getattr(self, BUCKET_ATTRIBUTES[bucket])

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> StatusBucketConfig:
        """Build a config from a configuration row.

        Accepts the camelCase keys of stored configurations
        (``inProgressStatuses``) as well as the attribute names
        (``in_progress_statuses``). Missing lists default to empty.
        """
        if not isinstance(data, Mapping):
            raise InvalidInputError(f"status configuration must be a mapping, got {type(data).__name__}")
        keys = {BUCKET_ATTRIBUTES[b]: BUCKET_CONFIG_KEYS[b] for b in BUCKET_ORDER}
        keys["ticket_closes_statuses"] = CLOSING_CONFIG_KEY
        kwargs: dict[str, tuple[str, ...]] = {}
        for attr, camel in keys.items():
            value = data.get(camel, data.get(attr))
            if value is None:
                continue
            if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
                raise InvalidInputError(f"{camel} must be a list of status names")
            kwargs[attr] = tuple(str(v) for v in value if v is not None)
        return cls(**kwargs)

    def to_mapping(self) -> dict[str, list[str]]:
        out = {BUCKET_CONFIG_KEYS[b]: list(self.statuses_for(b)) for b in BUCKET_ORDER}
        out[CLOSING_CONFIG_KEY] = list(self.ticket_closes_statuses)
        return out


@dataclass(slots=True)
class StatusInterval:
    status: str
    start: datetime
    end: datetime
    bucket: str | None = None

    @property
    def raw_seconds(self) -> float:
        return (self.end - self.start).total_seconds()

    @property
    def duration_seconds(self) -> float:
        return max(self.raw_seconds, 0.0)


@dataclass(slots=True)
class TicketTimeline:
    created_at: datetime | None
    resolved_at: datetime | None
    intervals: list[StatusInterval] = field(default_factory=list)
    statuses: list[str] = field(default_factory=list)
    anomalies: int = 0
    chain_breaks: int = 0


@dataclass(slots=True)
class BucketDurations:
    refinement: int = 0
    ready_for_development: int = 0
    in_progress: int = 0
    blocked: int = 0
    review: int = 0
    promotion: int = 0
    total_resolution_time: int | None = None
    created_at: datetime | None = None
    resolved_at: datetime | None = None
    anomalies: int = 0
    unmapped_statuses: list[str] = field(default_factory=list)

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None

    def as_dict(self) -> dict[str, int]:
        return {bucket: getattr(self, bucket) for bucket in BUCKET_ORDER}

    def bucket_sum(self) -> int:
        return sum(self.as_dict().values())

    def to_record(self) -> dict[str, Any]:
        out: dict[str, Any] = {BUCKET_RECORD_COLUMNS[b]: getattr(self, b) for b in BUCKET_ORDER}
        out["totalResolutionTime"] = self.total_resolution_time
        return out


@dataclass(slots=True)
class JiraConfiguration:
    name: str
    bucket_config: StatusBucketConfig
    server_url: str | None = None
    jql: str | None = None
    is_active: bool = True


@dataclass(slots=True)
class TicketRecord:
    jira_id: str
    link: str | None
    title: str | None
    priority: str
    status: str
    create_date: datetime | None
    end_date: datetime | None
    original_estimate: int | None
    durations: BucketDurations
    due_date: datetime | None = None
    assignee: str | None = None
    reporter: str | None = None
    components: list[str] = field(default_factory=list)

    @property
    def unmapped_statuses(self) -> list[str]:
        return self.durations.unmapped_statuses

    def to_record(self) -> dict[str, Any]:
        row: dict[str, Any] = {
            "jiraId": self.jira_id,
            "link": self.link,
            "title": self.title,
            "priority": self.priority,
            "status": self.status,
            "createDate": self.create_date,
            "endDate": self.end_date,
            "originalEstimate": self.original_estimate,
            "components": list(self.components),
            "dueDate": self.due_date,
            "assignee": self.assignee,
            "reporter": self.reporter,
        }
        row.update(self.durations.to_record())
        row["unmappedStatuses"] = list(self.unmapped_statuses)
        return row


@dataclass(slots=True)
class SyncReport:
    total_tickets: int = 0
    records: list[TicketRecord] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    skipped: int = 0

    @property
    def extracted_count(self) -> int:
        return len(self.records)

    @property
    def error_count(self) -> int:
        return len(self.errors)
