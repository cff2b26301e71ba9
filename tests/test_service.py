from datetime import UTC, datetime
from types import SimpleNamespace

import pytest
from jira import JIRAError

from jira_timing.core.errors import InactiveConfigurationError, InvalidInputError
from jira_timing.core.jira_client import JiraAPI
from jira_timing.core.models import JiraConfiguration, StatusBucketConfig
from jira_timing.core.service import TicketTimingService

PLAT_CONFIG = JiraConfiguration(
    name="PLAT",
    jql="project = PLAT",
    bucket_config=StatusBucketConfig(
        refinement_statuses=("Backlog",),
        in_progress_statuses=("In Progress",),
        ticket_closes_statuses=("Done",),
    ),
)


def _issue(key, transitions, created="2024-05-01T08:00:00.000+0000"):
    return {
        "key": key,
        "fields": {"summary": key, "created": created, "priority": {"name": "Medium"}},
        "changelog": {
            "histories": [
                {
                    "created": ts,
                    "items": [{"field": "status", "fromString": frm, "toString": to}],
                }
                for ts, frm, to in transitions
            ]
        },
    }


RESOLVED = _issue(
    "PLAT-1",
    [
        ("2024-05-01T09:00:00.000+0000", "Backlog", "In Progress"),
        ("2024-05-01T11:00:00.000+0000", "In Progress", "Done"),
    ],
)
BROKEN = _issue("PLAT-2", [("2024-05-01T09:00:00.000+0000", "Backlog", None)])
OPEN = _issue("PLAT-3", [("2024-05-01T09:00:00.000+0000", "Backlog", "In Progress")])
UNCONFIGURED = _issue("DATA-1", [("2024-05-01T09:00:00.000+0000", "New", "Doing")])

AS_OF = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)


class FakeJiraClient:
    def __init__(self, issues):
        self.by_key = {i["key"]: i for i in issues if isinstance(i, dict) and "key" in i}
        self.fetched = []

    def issue(self, key, expand=None):
        self.fetched.append((key, expand))
        if key not in self.by_key:
            raise JIRAError(status_code=404, text=f"Issue {key} does not exist")
        return SimpleNamespace(raw=self.by_key[key])


class DummyAPI(JiraAPI):
    def __init__(self, issues):
        self.server = "https://example.atlassian.net"
        self.client = FakeJiraClient(issues)
        self.issues = issues
        self.queries = []

    def search_issues_raw(self, jql):
        self.queries.append(jql)
        return self.issues


def test_sync_isolates_broken_tickets():
    api = DummyAPI([RESOLVED, BROKEN, OPEN, UNCONFIGURED])
    svc = TicketTimingService(api, [PLAT_CONFIG])
    report = svc.sync("project = PLAT", as_of=AS_OF)
    assert api.queries == ["project = PLAT"]
    assert report.total_tickets == 4
    assert report.extracted_count == 3
    assert report.error_count == 1
    assert "PLAT-2" in report.errors[0]

    by_key = {r.jira_id: r for r in report.records}
    assert by_key["PLAT-1"].durations.in_progress == 7200
    assert by_key["PLAT-1"].durations.total_resolution_time == 3 * 3600
    assert by_key["PLAT-1"].link == "https://example.atlassian.net/browse/PLAT-1"
    assert by_key["PLAT-3"].durations.in_progress == 3 * 3600
    assert by_key["PLAT-3"].end_date is None
    # No configuration: time is unattributed and every status is unmapped
    assert by_key["DATA-1"].durations.bucket_sum() == 0
    assert by_key["DATA-1"].unmapped_statuses == ["New", "Doing"]


def test_skip_unresolved():
    svc = TicketTimingService(DummyAPI([RESOLVED, BROKEN, OPEN]), [PLAT_CONFIG])
    report = svc.sync("project = PLAT", as_of=AS_OF, skip_unresolved=True)
    assert [r.jira_id for r in report.records] == ["PLAT-1"]
    assert report.skipped == 1
    assert report.error_count == 1


def test_clock_used_when_as_of_missing():
    svc = TicketTimingService(None, [PLAT_CONFIG], clock=lambda: AS_OF)
    report = svc.extract([OPEN])
    assert report.records[0].durations.in_progress == 3 * 3600
    assert report.records[0].link is None


def test_progress_callback():
    calls = []
    svc = TicketTimingService(DummyAPI([RESOLVED, BROKEN]), [PLAT_CONFIG])
    svc.sync("project = PLAT", as_of=AS_OF, progress=lambda msg, done, total: calls.append((done, total)))
    assert calls[0] == (None, None)
    assert calls[-1] == (2, 2)


def test_payload_without_key_is_an_error():
    svc = TicketTimingService(None, [PLAT_CONFIG])
    report = svc.extract([{"fields": {}}, "garbage"], as_of=AS_OF)
    assert report.extracted_count == 0
    assert report.error_count == 2


def test_sync_configuration_guards():
    svc = TicketTimingService(DummyAPI([RESOLVED]), [PLAT_CONFIG])
    inactive = JiraConfiguration(name="OLD", bucket_config=StatusBucketConfig(), jql="x", is_active=False)
    with pytest.raises(InactiveConfigurationError):
        svc.sync_configuration(inactive)
    with pytest.raises(InvalidInputError):
        svc.sync_configuration(JiraConfiguration(name="NOJQL", bucket_config=StatusBucketConfig()))
    report = svc.sync_configuration(PLAT_CONFIG, as_of=AS_OF)
    assert report.extracted_count == 1


def test_sync_requires_api():
    svc = TicketTimingService(None, [PLAT_CONFIG])
    with pytest.raises(RuntimeError):
        svc.sync("project = PLAT")


@pytest.mark.parametrize(
    "bad",
    [
        {**RESOLVED, "key": "PLAT-9", "fields": "oops"},
        {"key": "PLAT-9", "fields": {}, "changelog": {"histories": [{"created": "2024-05-01", "items": 5}]}},
        {"key": "PLAT-9", "fields": {}, "changelog": "oops"},
    ],
)
def test_malformed_ticket_does_not_stop_the_batch(bad):
    svc = TicketTimingService(None, [PLAT_CONFIG])
    report = svc.extract([bad, RESOLVED], as_of=AS_OF)
    assert [r.jira_id for r in report.records] == ["PLAT-1"]
    assert report.error_count == 1
    assert "PLAT-9" in report.errors[0]


def test_unparseable_estimate_is_not_an_error():
    bad = {**RESOLVED, "key": "PLAT-9", "fields": {**RESOLVED["fields"], "timeoriginalestimate": "2h"}}
    report = TicketTimingService(None, [PLAT_CONFIG]).extract([bad, RESOLVED], as_of=AS_OF)
    assert report.error_count == 0
    assert [r.original_estimate for r in report.records] == [None, None]


def test_sync_ticket_fetches_by_key():
    api = DummyAPI([RESOLVED, OPEN])
    svc = TicketTimingService(api, [PLAT_CONFIG])
    record = svc.sync_ticket("PLAT-3", as_of=AS_OF)
    assert api.client.fetched == [("PLAT-3", "changelog")]
    assert record.jira_id == "PLAT-3"
    assert record.durations.in_progress == 3 * 3600
    assert record.link == "https://example.atlassian.net/browse/PLAT-3"


def test_sync_ticket_wraps_jira_errors():
    svc = TicketTimingService(DummyAPI([RESOLVED]), [PLAT_CONFIG])
    with pytest.raises(RuntimeError, match="PLAT-404"):
        svc.sync_ticket("PLAT-404", as_of=AS_OF)
    with pytest.raises(RuntimeError):
        TicketTimingService(None, [PLAT_CONFIG]).sync_ticket("PLAT-1")
