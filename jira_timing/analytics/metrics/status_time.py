"""Status interval reconstruction and per-bucket duration analysis.

This module rebuilds the sequence of statuses a ticket went through from its
changelog and accumulates the wall-clock time spent in each configured bucket.
All functions are pure: configuration and the "now" bound are passed in.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime

import pandas as pd
import pytz

from jira_timing.core.config import BUCKET_ORDER, TIMEZONE
from jira_timing.core.errors import InvalidInputError
from jira_timing.core.models import (
    BucketDurations,
    ChangelogEvent,
    StatusBucketConfig,
    StatusInterval,
    TicketTimeline,
)
from jira_timing.core.status import (
    classify_status,
    clean_status_name,
    find_unmapped_statuses,
    is_closing_status,
)

logger = logging.getLogger(__name__)

_UTC = pytz.timezone(TIMEZONE)

_TIMESTAMP_KEYS = ("timestamp", "created", "ts")
_TO_STATUS_KEYS = ("toStatus", "to_status", "toString")
_FROM_STATUS_KEYS = ("fromStatus", "from_status", "fromString")


def normalize_to_utc(value) -> datetime | None:
    """Normalize a timestamp value to a UTC-aware datetime.

    Parameters
    ----------
    value : datetime-like or None
        Raw timestamp value (ISO-8601 string, datetime, or None). Naive
        datetimes are assumed to already be in UTC.

    Returns
    -------
    datetime or None
        UTC datetime, or None if conversion fails.
    """
    if value is None or isinstance(value, bool) or not isinstance(value, (str, datetime, int, float)):
        return None
    if pd.isna(value):
        return None
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return _UTC.localize(value)
        return value.astimezone(_UTC)
    try:
        ts = pd.to_datetime(value, utc=True, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return None
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


def _first_present(entry: Mapping, keys: tuple[str, ...]):
    for key in keys:
        if key in entry:
            return True, entry[key]
    return False, None


def coerce_events(events) -> list[ChangelogEvent]:
    """Validate raw changelog entries and convert them to ``ChangelogEvent``.

    Entries may be ``ChangelogEvent`` instances or mappings using the
    ``timestamp``/``fromStatus``/``toStatus`` keys (snake_case and Jira's
    ``created``/``fromString``/``toString`` are accepted too).

    Raises
    ------
    InvalidInputError
        If ``events`` is not a list, an entry is not a mapping, the timestamp
        key is absent, or the target status is missing. An unparseable
        timestamp value is not an error; it is kept as None.
    """
    if not isinstance(events, (list, tuple)):
        raise InvalidInputError(f"events must be a list, got {type(events).__name__}")

    out: list[ChangelogEvent] = []
    for idx, entry in enumerate(events):
        if isinstance(entry, ChangelogEvent):
            raw_ts, raw_to, raw_from = entry.timestamp, entry.to_status, entry.from_status
        elif isinstance(entry, Mapping):
            has_ts, raw_ts = _first_present(entry, _TIMESTAMP_KEYS)
            if not has_ts:
                raise InvalidInputError(f"event {idx} has no timestamp")
            _, raw_to = _first_present(entry, _TO_STATUS_KEYS)
            _, raw_from = _first_present(entry, _FROM_STATUS_KEYS)
        else:
            raise InvalidInputError(f"event {idx} must be a mapping, got {type(entry).__name__}")

        to_status = clean_status_name(raw_to)
        if to_status is None:
            raise InvalidInputError(f"event {idx} has no toStatus")
        out.append(
            ChangelogEvent(
                timestamp=normalize_to_utc(raw_ts),
                to_status=to_status,
                from_status=clean_status_name(raw_from),
            )
        )
    return out


def _require_instant(value, name: str) -> datetime:
    ts = normalize_to_utc(value)
    if ts is None:
        raise InvalidInputError(f"{name} must be a timestamp, got {value!r}")
    return ts


def _same_status(a: str | None, b: str | None) -> bool:
    return (a or "").casefold() == (b or "").casefold()


def build_timeline(
    events,
    config: StatusBucketConfig,
    as_of,
    *,
    created_at=None,
    resolved_at=None,
) -> TicketTimeline:
    """Rebuild the ordered status intervals of a single ticket.

    Events are stably sorted by timestamp, so collisions keep input order.
    Each event opens an interval in its target status that closes at the next
    event. The first transition into a closing status resolves the ticket;
    later events (re-opens included) are ignored. An unresolved ticket's last
    interval runs to ``resolved_at`` when given (ticket end date), otherwise
    to ``as_of``. No interval extends past ``as_of``. An event with an
    unparseable timestamp is pinned to the event before it in input order and
    both intervals touching it count as zero.

    Parameters
    ----------
    events : list
        Raw changelog entries, see ``coerce_events``.
    config : StatusBucketConfig
        Bucket lists used to classify intervals and detect closing.
    as_of : datetime-like
        Upper bound for still-open intervals (normally "now").
    created_at : datetime-like, optional
        Ticket creation time. When it precedes the first event and that event
        records a ``from_status``, the time in that initial status is counted.
    resolved_at : datetime-like, optional
        Explicit end date bounding the last interval when no closing
        transition exists. It does not mark the ticket resolved.

    Returns
    -------
    TicketTimeline
        Intervals with their bucket, plus resolution bounds and diagnostics.
    """
    parsed = coerce_events(events)
    as_of_ts = _require_instant(as_of, "as_of")
    created_hint = normalize_to_utc(created_at)
    resolved_hint = normalize_to_utc(resolved_at)

    # An event whose timestamp cannot be parsed is pinned to the previous
    # event in input order; both intervals touching it collapse to zero.
    anomalies = 0
    placed: list[tuple[ChangelogEvent, bool]] = []
    anchor = created_hint
    for event in parsed:
        if event.timestamp is not None:
            anchor = event.timestamp
            placed.append((event, False))
        elif anchor is not None:
            logger.debug(
                "Pinning transition to %r with unparseable timestamp at %s",
                event.to_status,
                anchor.isoformat(),
            )
            placed.append((replace(event, timestamp=anchor), True))
        else:
            anomalies += 1
            logger.debug("Dropping transition to %r with unparseable timestamp", event.to_status)

    ordered = sorted(placed, key=lambda p: p[0].timestamp)
    if not ordered:
        return TicketTimeline(created_at=created_hint, resolved_at=None, anomalies=anomalies)

    chain_breaks = 0
    for (prev, _), (curr, _) in zip(ordered, ordered[1:]):
        if curr.from_status is not None and not _same_status(curr.from_status, prev.to_status):
            chain_breaks += 1
            logger.debug(
                "Changelog chain break at %s: expected from %r, got %r",
                curr.timestamp.isoformat(),
                prev.to_status,
                curr.from_status,
            )

    close_idx = next(
        (i for i, (e, _) in enumerate(ordered) if is_closing_status(e.to_status, config)),
        None,
    )
    if close_idx is not None:
        resolved = ordered[close_idx][0].timestamp
        active = ordered[:close_idx]
        end_bound = resolved
    elif resolved_hint is not None:
        # An explicit end date bounds the timeline but does not resolve it.
        resolved = None
        active = [p for p in ordered if p[0].timestamp <= resolved_hint]
        end_bound = resolved_hint
    else:
        resolved = None
        active = ordered
        end_bound = as_of_ts

    first = ordered[0][0]
    created = first.timestamp
    statuses = [e.to_status for e, _ in ordered]
    intervals: list[StatusInterval] = []
    if created_hint is not None and created_hint < first.timestamp:
        created = created_hint
        if first.from_status is not None:
            statuses.insert(0, first.from_status)
            intervals.append(
                StatusInterval(
                    status=first.from_status,
                    start=created_hint,
                    end=min(first.timestamp, end_bound, as_of_ts),
                    bucket=classify_status(first.from_status, config),
                )
            )

    for idx, (event, pinned) in enumerate(active):
        if pinned:
            end = event.timestamp
        else:
            end = active[idx + 1][0].timestamp if idx + 1 < len(active) else end_bound
        intervals.append(
            StatusInterval(
                status=event.to_status,
                start=event.timestamp,
                end=min(end, as_of_ts),
                bucket=classify_status(event.to_status, config),
            )
        )

    for interval in intervals:
        if interval.raw_seconds <= 0:
            anomalies += 1
            logger.debug(
                "Anomalous interval in %r: %s -> %s clamped to zero",
                interval.status,
                interval.start.isoformat(),
                interval.end.isoformat(),
            )

    return TicketTimeline(
        created_at=created,
        resolved_at=resolved,
        intervals=intervals,
        statuses=statuses,
        anomalies=anomalies,
        chain_breaks=chain_breaks,
    )


def compute_bucket_durations(
    events,
    config: StatusBucketConfig,
    as_of,
    *,
    created_at=None,
    resolved_at=None,
) -> BucketDurations:
    """Compute seconds spent in each status bucket for one ticket.

    Unclassified statuses consume wall-clock time but add to no bucket.
    ``total_resolution_time`` is the span from creation to resolution, or
    None while the ticket is unresolved.

    Examples
    --------
    >>> cfg = StatusBucketConfig(in_progress_statuses=("In Progress",), ticket_closes_statuses=("Done",))
    >>> out = compute_bucket_durations(
    ...     [
    ...         {"timestamp": "2024-01-01T00:00:00Z", "toStatus": "Backlog"},
    ...         {"timestamp": "2024-01-02T00:00:00Z", "fromStatus": "Backlog", "toStatus": "In Progress"},
    ...         {"timestamp": "2024-01-03T00:00:00Z", "fromStatus": "In Progress", "toStatus": "Done"},
    ...     ],
    ...     cfg,
    ...     "2024-02-01T00:00:00Z",
    ... )
    >>> out.in_progress, out.total_resolution_time
    (86400, 172800)
    """
    timeline = build_timeline(events, config, as_of, created_at=created_at, resolved_at=resolved_at)

    totals: defaultdict[str, float] = defaultdict(float)
    for interval in timeline.intervals:
        if interval.bucket is None:
            continue
        totals[interval.bucket] += interval.duration_seconds

    total_resolution: int | None = None
    if timeline.resolved_at is not None and timeline.created_at is not None:
        span = (timeline.resolved_at - timeline.created_at).total_seconds()
        total_resolution = int(round(max(span, 0.0)))

    return BucketDurations(
        **{bucket: int(round(totals.get(bucket, 0.0))) for bucket in BUCKET_ORDER},
        total_resolution_time=total_resolution,
        created_at=timeline.created_at,
        resolved_at=timeline.resolved_at,
        anomalies=timeline.anomalies,
        unmapped_statuses=find_unmapped_statuses(timeline.statuses, config),
    )


def build_status_duration_frame(results: Mapping[str, BucketDurations]) -> pd.DataFrame:
    """Build a long-form DataFrame of bucket durations for many tickets.

    Parameters
    ----------
    results : Mapping[str, BucketDurations]
        Ticket key -> computed durations.

    Returns
    -------
    pd.DataFrame
        Columns: key, bucket, duration_seconds, is_resolved. Buckets with no
        time are omitted; an empty DataFrame is returned when nothing remains.
    """
    records: list[dict[str, object]] = []
    for key, durations in results.items():
        for bucket, seconds in durations.as_dict().items():
            if not seconds:
                continue
            records.append(
                {
                    "key": key,
                    "bucket": bucket,
                    "duration_seconds": int(seconds),
                    "is_resolved": durations.is_resolved,
                }
            )
    if not records:
        return pd.DataFrame()
    return pd.DataFrame(records)
