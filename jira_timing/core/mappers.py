"""Mapping raw Jira issue JSON into changelog events and ticket records."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import pandas as pd

from jira_timing.analytics.metrics.status_time import compute_bucket_durations, normalize_to_utc

from .config import SETTINGS, TICKET_RECORD_COLUMNS
from .errors import InvalidInputError
from .models import ChangelogEvent, StatusBucketConfig, TicketRecord


def parse_dt(val):
    if not val:
        return None
    return normalize_to_utc(val)


def _display_name(value: Any) -> str | None:
    if isinstance(value, dict):
        return value.get("displayName") or value.get("name")
    return None


def _named(value: Any) -> str | None:
    if isinstance(value, dict):
        return value.get("name")
    return None


def _mapping_field(raw: dict[str, Any], name: str, key) -> dict[str, Any]:
    value = raw.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise InvalidInputError(f"{name} must be a mapping, got {type(value).__name__}", ticket_key=key)
    return value


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


def _parse_estimate(value) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return None
    seconds = pd.to_numeric(value, errors="coerce")
    if seconds is None or pd.isna(seconds):
        return None
    return int(seconds)


def extract_status_events(raw: dict[str, Any]) -> list[ChangelogEvent]:
    """Pull status transitions out of ``changelog.histories``.

    Non-status items are ignored. A status item without a target status is a
    structural error, since the interval it opens cannot be attributed.
    """
    if not isinstance(raw, dict):
        raise InvalidInputError(f"issue payload must be a mapping, got {type(raw).__name__}")
    key = raw.get("key")
    histories = _mapping_field(raw, "changelog", key).get("histories") or []
    if not isinstance(histories, list):
        raise InvalidInputError("changelog.histories must be a list", ticket_key=key)

    events: list[ChangelogEvent] = []
    for h in histories:
        if not isinstance(h, dict):
            raise InvalidInputError("changelog history entry must be a mapping", ticket_key=key)
        items = h.get("items") or []
        if not isinstance(items, list):
            raise InvalidInputError("changelog history items must be a list", ticket_key=key)
        created = parse_dt(h.get("created"))
        for item in items:
            if not isinstance(item, dict):
                raise InvalidInputError("changelog item must be a mapping", ticket_key=key)
            field_name = str(item.get("field") or "").lower()
            if field_name != "status":
                continue
            to_status = item.get("toString")
            if not to_status:
                raise InvalidInputError(
                    f"status change at {h.get('created')!r} has no toString", ticket_key=key
                )
            events.append(
                ChangelogEvent(
                    timestamp=created,
                    to_status=to_status,
                    from_status=item.get("fromString"),
                )
            )
    return events


def map_ticket(
    raw: dict[str, Any],
    config: StatusBucketConfig,
    *,
    server_url: str | None,
    as_of,
) -> TicketRecord:
    events = extract_status_events(raw)
    key = raw.get("key")
    if not key:
        raise InvalidInputError("issue payload has no key")
    fields = _mapping_field(raw, "fields", key)

    try:
        durations = compute_bucket_durations(
            events,
            config,
            as_of,
            created_at=parse_dt(fields.get("created")),
        )
    except InvalidInputError as exc:
        tagged = exc.with_ticket(key)
        if tagged is exc:
            raise
        raise tagged from exc

    link = f"{server_url.rstrip('/')}{SETTINGS.browse_path}{key}" if server_url else None
    return TicketRecord(
        jira_id=key,
        link=link,
        title=fields.get("summary"),
        priority=_named(fields.get("priority")) or SETTINGS.unknown_label,
        status=_named(fields.get("status")) or SETTINGS.unknown_label,
        create_date=parse_dt(fields.get("created")),
        end_date=durations.resolved_at,
        original_estimate=_parse_estimate(fields.get("timeoriginalestimate")),
        durations=durations,
        due_date=parse_dt(fields.get("duedate")),
        assignee=_display_name(fields.get("assignee")),
        reporter=_display_name(fields.get("reporter")),
        components=[c.get("name") for c in _as_list(fields.get("components")) if isinstance(c, dict)],
    )


def records_to_dataframe(records: Iterable[TicketRecord]) -> pd.DataFrame:
    rows = [r.to_record() for r in records]
    if not rows:
        return pd.DataFrame(columns=list(TICKET_RECORD_COLUMNS))
    df = pd.DataFrame(rows, columns=list(TICKET_RECORD_COLUMNS))
    for col in ("createDate", "endDate", "dueDate"):
        df[col] = pd.to_datetime(df[col], utc=True, errors="coerce")
    return df
