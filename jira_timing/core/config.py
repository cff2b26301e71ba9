"""Central configuration, constants, feature flags, and persisted column names."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

# =============================================================================
# Jira Connection Settings
# =============================================================================
TIMEZONE = "UTC"
JIRA_REST_API_VERSION = "3"

# =============================================================================
# Status Bucket Configuration
# =============================================================================
# Fixed classification precedence: a status listed under several buckets is
# attributed to the first one in this order.
BUCKET_ORDER: Sequence[str] = (
    "refinement",
    "ready_for_development",
    "in_progress",
    "blocked",
    "review",
    "promotion",
)

# Bucket name -> configuration key holding its status list (camelCase, as
# stored by the configuration rows).
BUCKET_CONFIG_KEYS: dict[str, str] = {
    "refinement": "refinementStatuses",
    "ready_for_development": "readyForDevelopmentStatuses",
    "in_progress": "inProgressStatuses",
    "blocked": "blockedStatuses",
    "review": "reviewStatuses",
    "promotion": "promotionStatuses",
}
CLOSING_CONFIG_KEY = "ticketClosesStatuses"

# Bucket name -> persisted duration column
BUCKET_RECORD_COLUMNS: dict[str, str] = {
    "refinement": "refinementTime",
    "ready_for_development": "readyForDevelopmentTime",
    "in_progress": "inProgressTime",
    "blocked": "blockedTime",
    "review": "reviewTime",
    "promotion": "promotionTime",
}

# Bucket name -> key used in statistics payloads
BUCKET_LABELS: dict[str, str] = {
    "refinement": "refinement",
    "ready_for_development": "readyForDevelopment",
    "in_progress": "inProgress",
    "blocked": "blocked",
    "review": "review",
    "promotion": "promotion",
}

# Raw strings that Jira exports sometimes carry instead of a real status
NULL_LIKE_STATUSES: frozenset[str] = frozenset({"nan", "none", "null"})

# =============================================================================
# Ingestion Feature Flags
# =============================================================================
# Historical behaviour dropped tickets that never reached a closing status.
# Keep them by default; the sync service can still opt in to skipping.
SKIP_UNRESOLVED_TICKETS = False

# Changelog is required to rebuild status intervals
JIRA_FETCH_EXPAND = "changelog"

# Default file holding per-project status lists
DEFAULT_CONFIGURATION_FILE = "statuses.yaml"

# Priorities reported in aggregate statistics
STATISTICS_PRIORITIES: Sequence[str] = ("High", "Medium", "Low")

TICKET_RECORD_COLUMNS: Sequence[str] = (
    "jiraId",
    "link",
    "title",
    "priority",
    "status",
    "createDate",
    "endDate",
    "originalEstimate",
    "components",
    "dueDate",
    "assignee",
    "reporter",
    "refinementTime",
    "readyForDevelopmentTime",
    "inProgressTime",
    "blockedTime",
    "reviewTime",
    "promotionTime",
    "totalResolutionTime",
    "unmappedStatuses",
)


@dataclass(slots=True)
class AppSettings:
    unknown_label: str = "Unknown"
    browse_path: str = "/browse/"


SETTINGS = AppSettings()
