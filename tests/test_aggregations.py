from datetime import UTC, datetime

import pandas as pd

from jira_timing.analytics.aggregations.tickets import aggregate_by_assignee, summarize_tickets
from jira_timing.core.mappers import map_ticket, records_to_dataframe
from jira_timing.core.models import StatusBucketConfig

CONFIG = StatusBucketConfig(
    refinement_statuses=("Backlog",),
    in_progress_statuses=("In Progress",),
    review_statuses=("Code Review",),
    ticket_closes_statuses=("Done",),
)


def _raw(key, priority, created, transitions, assignee=None, estimate=None):
    fields = {"summary": key, "created": created, "priority": {"name": priority}}
    if assignee:
        fields["assignee"] = {"displayName": assignee}
    if estimate:
        fields["timeoriginalestimate"] = estimate
    return {
        "key": key,
        "fields": fields,
        "changelog": {
            "histories": [
                {"created": ts, "items": [{"field": "status", "fromString": frm, "toString": to}]}
                for ts, frm, to in transitions
            ]
        },
    }


def _sample_df():
    as_of = datetime(2024, 3, 2, 5, 0, tzinfo=UTC)
    closed = _raw(
        "PLAT-7",
        "High",
        "2024-03-01T09:00:00.000+0000",
        [
            ("2024-03-01T10:00:00.000+0000", "Backlog", "In Progress"),
            ("2024-03-01T12:00:00.000+0000", "In Progress", "Code Review"),
            ("2024-03-01T13:30:00.000+0000", "Code Review", "Done"),
        ],
        assignee="Alice",
        estimate=7200,
    )
    open_ = _raw(
        "PLAT-9",
        "Medium",
        "2024-03-02T00:00:00.000+0000",
        [("2024-03-02T01:00:00.000+0000", "Backlog", "In Progress")],
    )
    records = [map_ticket(r, CONFIG, server_url=None, as_of=as_of) for r in (closed, open_)]
    return records_to_dataframe(records)


def test_summarize_tickets():
    summary = summarize_tickets(_sample_df())
    assert summary["totalTickets"] == 2
    assert summary["completedTickets"] == 1
    assert summary["inProgressTickets"] == 1
    assert summary["averageTicketResolutionTime"] == 16200
    assert summary["totalTimeSpent"] == 7200
    assert summary["ticketsByPriority"] == {"high": 1, "medium": 1, "low": 0}
    assert summary["ticketsByStatus"]["inProgress"] == 10800
    assert summary["ticketsByStatus"]["refinement"] == 3600
    assert summary["ticketsByStatus"]["review"] == 2700
    assert summary["ticketsByStatus"]["blocked"] == 0


def test_summarize_empty():
    summary = summarize_tickets(pd.DataFrame())
    assert summary["totalTickets"] == 0
    assert summary["averageTicketResolutionTime"] == 0
    assert summary["ticketsByStatus"]["promotion"] == 0


def test_aggregate_by_assignee():
    out = aggregate_by_assignee(_sample_df())
    assert set(out["assignee"]) == {"Alice", "Unassigned"}
    alice = out[out["assignee"] == "Alice"].iloc[0]
    assert alice["tickets"] == 1
    assert alice["completed"] == 1
    assert alice["inProgressTime"] == 7200
    assert alice["reviewTime"] == 5400
