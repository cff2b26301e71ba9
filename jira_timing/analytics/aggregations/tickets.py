"""Ticket-level and assignee-based aggregations over computed status times."""

from __future__ import annotations

import pandas as pd

from jira_timing.core.config import (
    BUCKET_LABELS,
    BUCKET_ORDER,
    BUCKET_RECORD_COLUMNS,
    STATISTICS_PRIORITIES,
)

_BUCKET_COLUMNS = [BUCKET_RECORD_COLUMNS[b] for b in BUCKET_ORDER]


def _empty_summary() -> dict:
    return {
        "totalTickets": 0,
        "completedTickets": 0,
        "inProgressTickets": 0,
        "averageTicketResolutionTime": 0,
        "totalTimeSpent": 0,
        "ticketsByPriority": {p.lower(): 0 for p in STATISTICS_PRIORITIES},
        "ticketsByStatus": {BUCKET_LABELS[b]: 0 for b in BUCKET_ORDER},
    }


def summarize_tickets(df: pd.DataFrame) -> dict:
    """Summarize a ticket frame (see ``records_to_dataframe``).

    Returns
    -------
    dict
        Ticket counts, the average creation-to-close time in seconds over
        closed tickets, the summed original estimates, counts per priority,
        and the average seconds per bucket across all tickets.
    """
    if df.empty:
        return _empty_summary()

    total = len(df)
    closed = df["endDate"].notna()
    out = _empty_summary()
    out["totalTickets"] = total
    out["completedTickets"] = int(closed.sum())
    out["inProgressTickets"] = int(total - closed.sum())

    with_dates = df[closed & df["createDate"].notna()]
    if not with_dates.empty:
        spans = (with_dates["endDate"] - with_dates["createDate"]).dt.total_seconds()
        out["averageTicketResolutionTime"] = int(round(spans.mean()))

    out["totalTimeSpent"] = int(pd.to_numeric(df["originalEstimate"], errors="coerce").fillna(0).sum())
    out["ticketsByPriority"] = {p.lower(): int((df["priority"] == p).sum()) for p in STATISTICS_PRIORITIES}

    bucket_totals = df[_BUCKET_COLUMNS].apply(pd.to_numeric, errors="coerce").fillna(0).sum()
    out["ticketsByStatus"] = {
        BUCKET_LABELS[b]: int(round(bucket_totals[BUCKET_RECORD_COLUMNS[b]] / total)) for b in BUCKET_ORDER
    }
    return out


def aggregate_by_assignee(df: pd.DataFrame, limit: int = 200) -> pd.DataFrame:
    if df.empty:
        return df
    out = df.copy()
    out["assignee"] = out["assignee"].fillna("Unassigned")
    out[_BUCKET_COLUMNS] = out[_BUCKET_COLUMNS].apply(pd.to_numeric, errors="coerce").fillna(0)
    out["is_completed"] = out["endDate"].notna()
    agg = (
        out.groupby("assignee", dropna=False)
        .agg(
            tickets=("jiraId", "count"),
            completed=("is_completed", "sum"),
            **{col: (col, "mean") for col in _BUCKET_COLUMNS},
        )
        .sort_values(by=["tickets", "completed"], ascending=False)
        .head(limit)
    )
    agg[_BUCKET_COLUMNS] = agg[_BUCKET_COLUMNS].round().astype(int)
    agg["completed"] = agg["completed"].astype(int)
    return agg.reset_index()
