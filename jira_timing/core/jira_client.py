"""Jira API client wrapper (REST v3, changelog-expanded searches)."""

from __future__ import annotations

from typing import Any

from jira import JIRA, JIRAError

from .config import JIRA_FETCH_EXPAND, JIRA_REST_API_VERSION


class JiraAPI:
    def __init__(self, server: str, email: str, token: str):
        self.server = server.rstrip("/")
        self.client = JIRA(
            basic_auth=(email, token),
            options={"server": self.server, "rest_api_version": JIRA_REST_API_VERSION},
        )

    def search_issues_raw(self, jql: str) -> list[dict[str, Any]]:
        """Run ``jql`` and return every matching issue as raw JSON with its changelog.

        Paging is left to the ``jira`` library (``maxResults=False`` fetches
        all pages).
        """
        try:
            issues = self.client.search_issues(jql, maxResults=False, expand=JIRA_FETCH_EXPAND)
        except JIRAError as exc:  # pragma: no cover - network error path
            raise RuntimeError(f"Jira search failed for {jql!r}: {exc}") from exc
        return [issue.raw if hasattr(issue, "raw") else issue for issue in issues]

    def fetch_issue_raw(self, issue_key: str) -> dict[str, Any]:
        """Fetch a single issue, changelog included, as raw JSON."""
        try:
            issue = self.client.issue(issue_key, expand=JIRA_FETCH_EXPAND)
        except JIRAError as exc:
            raise RuntimeError(f"Jira fetch failed for {issue_key}: {exc}") from exc
        return issue.raw if hasattr(issue, "raw") else issue
