"""The assembled cluster context and the request that produces it."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from clusterctx.models.alerts import Incident, IncidentOccurrenceTracker
from clusterctx.models.cluster import (
    AuditEvent,
    ClusterIdentity,
    EnvironmentHealth,
    JiraIssue,
    LimitedSupportReason,
    ServiceLogEntry,
    UserBanStatus,
)

DEFAULT_WINDOW_DAYS = 30
DEFAULT_PAGE_LIMIT = 40


class Section(StrEnum):
    """Snapshot sections that a single collaborator populates."""

    LIMITED_SUPPORT = "limited_support"
    USER_BAN = "user_ban"
    SERVICE_LOGS = "service_logs"
    JIRA_ISSUES = "jira_issues"
    SUPPORT_EXCEPTIONS = "support_exceptions"
    ENVIRONMENT_HEALTH = "environment_health"
    ALERT_SERVICES = "alert_services"
    CURRENT_INCIDENTS = "current_incidents"
    HISTORICAL_INCIDENTS = "historical_incidents"
    AUDIT_TRAIL = "audit_trail"


@dataclass(frozen=True)
class ContextRequest:
    """Parameters of one context invocation.

    Attributes:
        cluster_key:    Cluster id, external id or name to resolve.
        window_days:    Lookback window for service logs and alert history.
        page_limit:     Maximum number of audit-trail pages to read.
        service_ids:    Alerting service ids configured by the operator; listed
                        before any discovered ids.
        full:           Also read the audit trail (the slowest collaborator).
        all_service_logs:           Include service logs from every sender.
        internal_service_logs_only: Restrict service logs to internal ones.
        fail_fast:      Abort on the first collaborator failure instead of
                        degrading the affected section.
    """

    cluster_key: str
    window_days: int = DEFAULT_WINDOW_DAYS
    page_limit: int = DEFAULT_PAGE_LIMIT
    service_ids: tuple[str, ...] = ()
    full: bool = False
    all_service_logs: bool = False
    internal_service_logs_only: bool = False
    fail_fast: bool = False


@dataclass(frozen=True)
class DiagnosticLinks:
    """Deep links synthesised from cluster identity and environment.

    An empty string means the link could not be built safely.
    """

    audit_log: str = ""
    ticket_search: str = ""
    insights_dashboard: str = ""


@dataclass(frozen=True)
class ContextSnapshot:
    """Immutable aggregated view of one cluster for one report invocation.

    ``current_incidents`` and ``historical_incidents`` share the key space of
    ``alert_service_ids``; iterate that tuple, never the dicts, to keep the
    output order stable. Both dicts are built once by the assembler and never
    mutated afterwards; renderers only read them.

    ``failed_current_services`` and ``failed_historical_services`` list, in
    ``alert_service_ids`` order, the services whose fetch failed. Their entry
    in the matching dict is empty because the data is missing, not because
    the service has no incidents.
    """

    cluster: ClusterIdentity = field(default_factory=ClusterIdentity)
    environment: str = "unknown"
    window_days: int = DEFAULT_WINDOW_DAYS
    limited_support_reasons: tuple[LimitedSupportReason, ...] = ()
    user_ban: UserBanStatus = field(default_factory=UserBanStatus)
    service_logs: tuple[ServiceLogEntry, ...] = ()
    jira_issues: tuple[JiraIssue, ...] = ()
    support_exceptions: tuple[JiraIssue, ...] = ()
    alert_service_ids: tuple[str, ...] = ()
    current_incidents: dict[str, tuple[Incident, ...]] = field(default_factory=dict)
    historical_incidents: dict[str, tuple[IncidentOccurrenceTracker, ...]] = field(default_factory=dict)
    failed_current_services: tuple[str, ...] = ()
    failed_historical_services: tuple[str, ...] = ()
    historical_alert_total: int = 0
    audit_events: tuple[AuditEvent, ...] = ()
    environment_health: EnvironmentHealth = field(default_factory=EnvironmentHealth)
    links: DiagnosticLinks = field(default_factory=DiagnosticLinks)
    unavailable_sections: tuple[str, ...] = ()

    @property
    def supported(self) -> bool:
        """True when the cluster carries no limited-support reason."""
        return not self.limited_support_reasons

    def is_unavailable(self, section: str) -> bool:
        return section in self.unavailable_sections
