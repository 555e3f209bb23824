"""Compact encoding: a framed header and one table row per cluster."""

from __future__ import annotations

from clusterctx.alerts.history import urgency_breakdown
from clusterctx.models.snapshot import ContextSnapshot, Section
from clusterctx.tables import format_table, framed

NOT_AVAILABLE = "n/a"


def _count(snapshot: ContextSnapshot, section: Section, value: int) -> str:
    return NOT_AVAILABLE if snapshot.is_unavailable(section) else str(value)


def compact_row(snapshot: ContextSnapshot) -> list[str]:
    """Return the table cells for one cluster."""
    high = low = 0
    for service_id in snapshot.alert_service_ids:
        h, lo = urgency_breakdown(snapshot.current_incidents.get(service_id, ()))
        high += h
        low += lo

    if snapshot.is_unavailable(Section.LIMITED_SUPPORT):
        supported = NOT_AVAILABLE
    else:
        supported = "Yes" if snapshot.supported else "No"

    current = (
        NOT_AVAILABLE if snapshot.is_unavailable(Section.CURRENT_INCIDENTS) else f"H: {high} | L: {low}"
    )

    return [
        snapshot.cluster.name,
        snapshot.cluster.version,
        supported,
        _count(snapshot, Section.SERVICE_LOGS, len(snapshot.service_logs)),
        _count(snapshot, Section.JIRA_ISSUES, len(snapshot.jira_issues)),
        current,
        _count(snapshot, Section.HISTORICAL_INCIDENTS, snapshot.historical_alert_total),
    ]


def compact_headers(window_days: int) -> list[str]:
    return [
        "Cluster",
        "Version",
        "Supported?",
        f"SLs (last {window_days} d)",
        "Jira Tickets",
        "Current Alerts",
        f"Historical Alerts (last {window_days} d)",
    ]


def render_compact(snapshot: ContextSnapshot) -> str:
    header = framed(f"{snapshot.cluster.name} -- {snapshot.cluster.cluster_id}")
    table = format_table(compact_headers(snapshot.window_days), [compact_row(snapshot)])
    return f"{header}\n{table}"
