"""Detailed encoding: every snapshot section as a headed narrative block.

Sections start with a ``>> Title`` line. A section whose collaborator failed
prints ``data unavailable`` instead of an empty body.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Final

from clusterctx.alerts.history import summarize_incident_history
from clusterctx.links.builder import alert_service_link, issue_link
from clusterctx.models.cluster import AuditEvent, JiraIssue, UserBanStatus
from clusterctx.models.snapshot import ContextSnapshot, Section
from clusterctx.tables import DATA_UNAVAILABLE, format_table, framed

BAN_CODE_EXPORT_CONTROL_COMPLIANCE: Final[str] = "export_control_compliance"
EXPORT_CONTROL_REMEDIATION: Final[str] = (
    "User banned due to export control compliance.\n"
    "Please follow the steps detailed here: "
    "https://github.com/openshift/ops-sop/blob/master/v4/alerts/UpgradeConfigSyncFailureOver4HrSRE.md"
    "#user-banneddisabled-due-to-export-control-compliance ."
)


def _section(title: str) -> list[str]:
    return ["", f">> {title}"]


def _timestamp(value: datetime | None) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%SZ") if value is not None else ""


def _detail_line(label: str, value: object) -> str:
    return f"{label + ':':<18}{value}"


def cluster_header(snapshot: ContextSnapshot) -> str:
    return framed(f"{snapshot.cluster.name} -- {snapshot.cluster.cluster_id}")


def cluster_detail_lines(snapshot: ContextSnapshot) -> list[str]:
    cluster = snapshot.cluster
    lines = _section("Cluster Details")
    lines.append(_detail_line("Cluster ID", cluster.cluster_id))
    lines.append(_detail_line("External ID", cluster.external_id))
    lines.append(_detail_line("Infra ID", cluster.infra_id))
    lines.append(_detail_line("Version", cluster.version))
    lines.append(_detail_line("Environment", snapshot.environment))
    lines.append(_detail_line("Topology", "Hosted control plane" if cluster.hypershift else "Standalone"))
    if cluster.created_at is not None:
        lines.append(_detail_line("Created", _timestamp(cluster.created_at)))
    if cluster.cloud_provider:
        lines.append(_detail_line("Cloud", f"{cluster.cloud_provider} / {cluster.region}"))
    if cluster.description:
        lines.append("")
        lines.append(cluster.description)
    return lines


def limited_support_lines(snapshot: ContextSnapshot) -> list[str]:
    lines = _section("Limited Support Status")
    if snapshot.is_unavailable(Section.LIMITED_SUPPORT):
        lines.append(DATA_UNAVAILABLE)
        return lines
    if snapshot.supported:
        lines.append("Cluster is fully supported")
        return lines
    lines.append(f"Cluster is in Limited Support for {len(snapshot.limited_support_reasons)} reason(s):")
    for reason in snapshot.limited_support_reasons:
        lines.append(f"- {reason.summary}: {reason.details}")
    return lines


def service_log_lines(snapshot: ContextSnapshot) -> list[str]:
    lines = _section(f"Service Logs sent in the past {snapshot.window_days} Days")
    if snapshot.is_unavailable(Section.SERVICE_LOGS):
        lines.append(DATA_UNAVAILABLE)
    elif not snapshot.service_logs:
        lines.append("None")
    for entry in snapshot.service_logs:
        lines.append(f"- {_timestamp(entry.timestamp)}  {entry.description}")
    return lines


def issue_lines(issues: Sequence[JiraIssue], verbose: bool = False) -> list[str]:
    lines: list[str] = []
    for issue in issues:
        lines.append(f"[{issue.key}]: {issue.issue_type} [{issue.priority}]")
        lines.append(f"- Link: {issue_link(issue.key)}")
        lines.append(f"- Summary: {issue.summary}")
        lines.append(f"- Status: {issue.status}")
        if verbose and issue.description:
            lines.append(f"- Description: {issue.description}")
        lines.append("")
    return lines


def jira_lines(snapshot: ContextSnapshot, verbose: bool = False) -> list[str]:
    lines = _section("OHSS Cards")
    if snapshot.is_unavailable(Section.JIRA_ISSUES):
        lines.append(DATA_UNAVAILABLE)
    elif not snapshot.jira_issues:
        lines.append("None")
    lines.extend(issue_lines(snapshot.jira_issues, verbose))
    return lines


def support_exception_lines(snapshot: ContextSnapshot, verbose: bool = False) -> list[str]:
    lines = _section("Support Exceptions")
    if snapshot.is_unavailable(Section.SUPPORT_EXCEPTIONS):
        lines.append(DATA_UNAVAILABLE)
    elif not snapshot.support_exceptions:
        lines.append("None")
    lines.extend(issue_lines(snapshot.support_exceptions, verbose))
    return lines


def _failed_services(snapshot: ContextSnapshot, section: Section, failed: Sequence[str]) -> frozenset[str]:
    # A section marked unavailable without per-service detail covers every service
    if failed or not snapshot.is_unavailable(section):
        return frozenset(failed)
    return frozenset(snapshot.alert_service_ids)


def _discovery_lines(snapshot: ContextSnapshot) -> list[str]:
    if snapshot.is_unavailable(Section.ALERT_SERVICES):
        return [f"Service discovery: {DATA_UNAVAILABLE}"]
    if not snapshot.alert_service_ids:
        return ["No alerting services found"]
    return []


def current_alert_lines(snapshot: ContextSnapshot) -> list[str]:
    lines = _section("PagerDuty Alerts")
    lines += _discovery_lines(snapshot)
    failed = _failed_services(snapshot, Section.CURRENT_INCIDENTS, snapshot.failed_current_services)
    for service_id in snapshot.alert_service_ids:
        incidents = snapshot.current_incidents.get(service_id, ())
        lines.append(f"Service: {alert_service_link(service_id)}:")
        if service_id in failed:
            lines.append(f"\t{DATA_UNAVAILABLE}")
            continue
        if not incidents:
            lines.append("\tNone")
            continue
        rows = [(i.urgency, i.title, i.status, _timestamp(i.created_at)) for i in incidents]
        lines.append(format_table(("Urgency", "Title", "Status", "Created"), rows, indent="\t"))
    return lines


def historical_alert_lines(snapshot: ContextSnapshot) -> list[str]:
    lines = _section("PagerDuty Historical Alerts")
    lines += _discovery_lines(snapshot)
    summary = summarize_incident_history(
        snapshot.alert_service_ids,
        snapshot.historical_incidents,
        snapshot.window_days,
        service_label=alert_service_link,
        unavailable=_failed_services(snapshot, Section.HISTORICAL_INCIDENTS, snapshot.failed_historical_services),
    )
    lines.append(summary.text)
    return lines


def audit_event_lines(events: Sequence[AuditEvent], unavailable: bool = False) -> list[str]:
    lines = _section("Potentially interesting CloudTrail events")
    if unavailable:
        lines.append(DATA_UNAVAILABLE)
        return lines
    if not events:
        lines.append("None")
        return lines
    rows = [(e.event_id, e.name, e.username or "", _timestamp(e.event_time)) for e in events]
    lines.append(format_table(("EventId", "EventName", "User name", "Event Time"), rows))
    return lines


def environment_health_lines(snapshot: ContextSnapshot) -> list[str]:
    health = snapshot.environment_health
    if snapshot.is_unavailable(Section.ENVIRONMENT_HEALTH):
        return _section("Dynatrace Details") + [DATA_UNAVAILABLE]
    if not health.tenant_url and not health.logs_url:
        return []
    return _section("Dynatrace Details") + [
        f"{'Dynatrace Tenant URL':<23}{health.tenant_url}",
        f"{'Logs App URL':<23}{health.logs_url}",
    ]


def user_ban_lines(ban: UserBanStatus, unavailable: bool = False) -> list[str]:
    lines = _section("User Ban Details")
    if unavailable:
        lines.append(DATA_UNAVAILABLE)
        return lines
    if not ban.banned:
        lines.append("User is not banned")
        return lines
    lines.append("User is banned")
    lines.append(f"Ban code = {ban.code}")
    lines.append(f"Ban description = {ban.description}")
    if ban.code == BAN_CODE_EXPORT_CONTROL_COMPLIANCE:
        lines.extend(EXPORT_CONTROL_REMEDIATION.splitlines())
    return lines


def other_link_lines(snapshot: ContextSnapshot) -> list[str]:
    links = snapshot.links
    rows: list[tuple[str, str]] = [
        ("OHSS Cards", links.ticket_search),
        ("CCX dashboard", links.insights_dashboard),
        ("Splunk Audit Logs", links.audit_log),
    ]
    rows.extend((f"PagerDuty Service {sid}", alert_service_link(sid)) for sid in snapshot.alert_service_ids)
    return _section("Other Links") + [format_table(("Link Name", "Link"), rows)]


def render_detailed(snapshot: ContextSnapshot, verbose: bool = False) -> str:
    """Render every section of *snapshot* for a deep single-cluster read."""
    lines = [cluster_header(snapshot)]
    lines += cluster_detail_lines(snapshot)
    lines += limited_support_lines(snapshot)
    lines += service_log_lines(snapshot)
    lines += jira_lines(snapshot, verbose)
    lines += support_exception_lines(snapshot, verbose)
    lines += current_alert_lines(snapshot)
    lines += historical_alert_lines(snapshot)
    lines += audit_event_lines(snapshot.audit_events, snapshot.is_unavailable(Section.AUDIT_TRAIL))
    lines += environment_health_lines(snapshot)
    lines += user_ban_lines(snapshot.user_ban, snapshot.is_unavailable(Section.USER_BAN))
    lines += other_link_lines(snapshot)
    return "\n".join(lines)
