"""Cluster inventory, ticketing and audit-trail data structures."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ClusterIdentity:
    """Resolved identity of a cluster as reported by the inventory service.

    ``hypershift`` selects the topology: True for hosted-control-plane
    clusters, False for standalone ones.
    """

    cluster_id: str = ""
    external_id: str = ""
    infra_id: str = ""
    name: str = ""
    created_at: datetime | None = None
    hypershift: bool = False
    version: str = ""
    description: str = ""
    organization_id: str = ""
    subscription_id: str = ""
    base_domain: str = ""
    cloud_provider: str = ""
    region: str = ""
    state: str = ""


@dataclass(frozen=True)
class LimitedSupportReason:
    """One reason a cluster was placed in limited support."""

    summary: str = ""
    details: str = ""
    created_at: datetime | None = None


@dataclass(frozen=True)
class UserBanStatus:
    """Ban state of the account that owns the cluster subscription."""

    banned: bool = False
    code: str = ""
    description: str = ""


@dataclass(frozen=True)
class ServiceLogEntry:
    """A service-log message sent to the cluster owner."""

    description: str
    timestamp: datetime
    summary: str = ""
    severity: str = ""
    service_name: str = ""


@dataclass(frozen=True)
class JiraIssue:
    """Summary of a ticketing issue."""

    key: str
    issue_type: str = ""
    priority: str = ""
    summary: str = ""
    status: str = ""
    description: str = ""


@dataclass(frozen=True)
class AuditEvent:
    """One audit-trail event.

    ``username`` is None when the trail carried no actor or when the actor was
    an automated service account and got redacted.
    """

    event_id: str
    name: str
    username: str | None = None
    event_time: datetime | None = None


@dataclass(frozen=True)
class EnvironmentHealth:
    """Entry points into the hosted-control-plane health system."""

    tenant_url: str = ""
    logs_url: str = ""
