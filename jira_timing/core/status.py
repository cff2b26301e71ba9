"""Status normalization and bucket classification utilities.

This module is the single place where raw Jira status strings are matched
against a ``StatusBucketConfig``. Matching ignores surrounding whitespace and
case, and buckets are tried in the fixed ``BUCKET_ORDER`` precedence.
"""

from __future__ import annotations

from collections.abc import Iterable

from .config import BUCKET_ORDER, NULL_LIKE_STATUSES
from .models import StatusBucketConfig


def clean_status_name(value: str | None) -> str | None:
    """Sanitize a status string, converting null-like values to ``None``.

    Parameters
    ----------
    value : str | None
        Raw status string.

    Returns
    -------
    str | None
        Trimmed status string, or None for empty/null-like values.

    Examples
    --------
    >>> clean_status_name("  In Progress ")
    'In Progress'
    >>> clean_status_name("null") is None
    True
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in NULL_LIKE_STATUSES:
        return None
    return text


def _status_key(value: str | None) -> str:
    cleaned = clean_status_name(value)
    return cleaned.casefold() if cleaned else ""


def _matches(status_key: str, candidates: Iterable[str]) -> bool:
    if not status_key:
        return False
    return any(status_key == _status_key(c) for c in candidates)


def classify_status(status: str | None, config: StatusBucketConfig) -> str | None:
    """Map a raw status to its bucket name.

    Parameters
    ----------
    status : str | None
        Raw status string from the changelog.
    config : StatusBucketConfig
        Status lists for the ticket's project.

    Returns
    -------
    str | None
        The first bucket in ``BUCKET_ORDER`` whose list contains the status,
        or None when the status is unclassified.
    """
    key = _status_key(status)
    for bucket in BUCKET_ORDER:
        if _matches(key, config.statuses_for(bucket)):
            return bucket
    return None


def is_closing_status(status: str | None, config: StatusBucketConfig) -> bool:
    """Check whether entering ``status`` resolves the ticket."""
    return _matches(_status_key(status), config.ticket_closes_statuses)


def find_unmapped_statuses(statuses: Iterable[str | None], config: StatusBucketConfig) -> list[str]:
    """Return statuses that no bucket list nor the closing list mentions.

    Order of first appearance is preserved and duplicates (case-insensitive)
    are dropped.
    """
    seen: set[str] = set()
    out: list[str] = []
    for status in statuses:
        cleaned = clean_status_name(status)
        if cleaned is None:
            continue
        key = cleaned.casefold()
        if key in seen:
            continue
        seen.add(key)
        if classify_status(cleaned, config) is None and not is_closing_status(cleaned, config):
            out.append(cleaned)
    return out
