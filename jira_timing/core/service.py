"""TicketTimingService: orchestrates fetching, per-ticket timing, and batch reporting."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

import pytz

from .bucket_config import EMPTY_BUCKET_CONFIG, find_configuration_for_ticket
from .config import SKIP_UNRESOLVED_TICKETS, TIMEZONE
from .errors import InactiveConfigurationError, InvalidInputError
from .jira_client import JiraAPI
from .mappers import map_ticket
from .models import JiraConfiguration, SyncReport, TicketRecord

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int | None, int | None], None]


def _utc_now() -> datetime:
    return datetime.now(pytz.timezone(TIMEZONE))


class TicketTimingService:
    def __init__(
        self,
        api: JiraAPI | None,
        configurations: Iterable[JiraConfiguration],
        *,
        clock: Callable[[], datetime] | None = None,
    ):
        self.api = api
        self.configurations = list(configurations)
        self._clock = clock or _utc_now

    # ------------------ Fetch Methods ------------------
    def sync(
        self,
        jql: str,
        *,
        as_of: datetime | None = None,
        progress: ProgressCallback | None = None,
        skip_unresolved: bool = SKIP_UNRESOLVED_TICKETS,
    ) -> SyncReport:
        """Fetch issues matching ``jql`` and compute their status timings."""
        if self.api is None:
            raise RuntimeError("Jira API client not configured")
        if progress:
            progress("Querying Jira issues", None, None)
        raw = self.api.search_issues_raw(jql)
        logger.info("Fetched %s issues for %r", len(raw), jql)
        return self.extract(raw, as_of=as_of, progress=progress, skip_unresolved=skip_unresolved)

    def sync_configuration(self, configuration: JiraConfiguration, **kwargs) -> SyncReport:
        """Sync using a stored configuration's JQL (must be active)."""
        if not configuration.is_active:
            raise InactiveConfigurationError(
                f"Cannot sync tickets from inactive configuration {configuration.name}"
            )
        if not configuration.jql:
            raise InvalidInputError(f"configuration {configuration.name} has no JQL query")
        logger.info("Starting sync for configuration: %s", configuration.name)
        report = self.sync(configuration.jql, **kwargs)
        logger.info("Sync completed for configuration: %s", configuration.name)
        return report

    def sync_ticket(self, issue_key: str, *, as_of: datetime | None = None) -> TicketRecord:
        """Re-fetch one issue by key and recompute its status timings."""
        if self.api is None:
            raise RuntimeError("Jira API client not configured")
        raw = self.api.fetch_issue_raw(issue_key)
        logger.info("Fetched issue %s for resync", issue_key)
        return self.extract_one(raw, as_of=as_of)

    # ------------------ Extraction Pipeline ------------------
    def extract(
        self,
        raw_issues: list[dict[str, Any]],
        *,
        as_of: datetime | None = None,
        progress: ProgressCallback | None = None,
        skip_unresolved: bool = SKIP_UNRESOLVED_TICKETS,
    ) -> SyncReport:
        """Compute timings for each raw issue, isolating per-ticket failures.

        A structurally malformed ticket is logged and recorded in
        ``SyncReport.errors``; the rest of the batch still goes through. All
        tickets in one call share the same ``as_of`` bound.
        """
        as_of = as_of or self._clock()
        report = SyncReport(total_tickets=len(raw_issues))
        if progress:
            progress("Calculating status times", 0, len(raw_issues))
        for idx, raw in enumerate(raw_issues, start=1):
            key = raw.get("key") if isinstance(raw, dict) else None
            try:
                record = self.extract_one(raw, as_of=as_of)
            except InvalidInputError as exc:
                logger.warning("Failed to extract ticket %s: %s", key, exc)
                report.errors.append(f"Failed to extract data for ticket {key}: {exc.reason}")
                continue
            finally:
                if progress:
                    progress("Calculating status times", idx, len(raw_issues))
            if skip_unresolved and not record.durations.is_resolved:
                logger.info("Skipping ticket %s - no closing status reached", record.jira_id)
                report.skipped += 1
                continue
            report.records.append(record)

        logger.info(
            "Jira ticket extraction completed: %s/%s extracted, %s errors, %s skipped",
            report.extracted_count,
            report.total_tickets,
            report.error_count,
            report.skipped,
        )
        return report

    def extract_one(self, raw: dict[str, Any], *, as_of: datetime | None = None) -> TicketRecord:
        if not isinstance(raw, dict) or not raw.get("key"):
            raise InvalidInputError("issue payload has no key")
        key = raw["key"]
        configuration = find_configuration_for_ticket(key, self.configurations)
        bucket_config = configuration.bucket_config if configuration else EMPTY_BUCKET_CONFIG
        server_url = (configuration.server_url if configuration else None) or (
            self.api.server if self.api is not None else None
        )
        record = map_ticket(raw, bucket_config, server_url=server_url, as_of=as_of or self._clock())
        if record.unmapped_statuses:
            logger.info("Ticket %s has unmapped statuses: %s", key, ", ".join(record.unmapped_statuses))
        return record
