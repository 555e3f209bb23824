"""Diagnostic link builder.

Synthesises deep links from cluster identity and deployment environment.

The audit-log link branches on topology first:

* hosted control plane -- the audit index is keyed by environment label,
  cluster id and cluster name;
* standalone -- the audit index is keyed by the infra id only.

Only the ``production`` and ``stage`` environments have audit indexes. Any
other environment yields an empty link: a link into the wrong environment is
worse than no link at all.
"""

from __future__ import annotations

from typing import Final
from urllib.parse import quote

from clusterctx.models.cluster import ClusterIdentity
from clusterctx.models.snapshot import DiagnosticLinks

PRODUCTION: Final[str] = "production"
STAGE: Final[str] = "stage"

HCP_AUDIT_INDEX: Final[str] = "openshift_managed_hypershift_audit"
CLASSIC_AUDIT_INDEX: Final[str] = "openshift_managed_audit"

HCP_AUDIT_URL: Final[str] = (
    "https://osdsecuritylogs.splunkcloud.com/en-US/app/search/search"
    "?q=search%20index%3D%22{index}%22%20annotations.managed.openshift.io"
    "%2Fhosted-cluster-id%3Docm-{environment}-{cluster_id}-{cluster_name}"
)
CLASSIC_AUDIT_URL: Final[str] = (
    "https://osdsecuritylogs.splunkcloud.com/en-US/app/search/search"
    "?q=search%20index%3D%22{index}%22%20clusterid%3D%22{infra_id}%22"
)

JIRA_BROWSE_URL: Final[str] = "https://issues.redhat.com/browse/{key}"
JIRA_SEARCH_URL: Final[str] = "https://issues.redhat.com/issues/?jql={jql}"
INSIGHTS_DASHBOARD_URL: Final[str] = "https://kraken.psi.redhat.com/clusters/{external_id}"
ALERT_SERVICE_URL: Final[str] = "https://redhat.pagerduty.com/service-directory/{service_id}"

# Internal environment tag -> label used inside hosted audit records
_HCP_ENVIRONMENT_LABELS: Final[dict[str, str]] = {
    PRODUCTION: "production",
    STAGE: "staging",
}


def _audit_index(base: str, environment: str) -> str:
    return f"{base}_stage" if environment == STAGE else base


def build_audit_log_link(cluster: ClusterIdentity, environment: str) -> str:
    """Return the audit-log search URL, or ``""`` for an unrecognised environment."""
    if environment not in (PRODUCTION, STAGE):
        return ""

    if cluster.hypershift:
        return HCP_AUDIT_URL.format(
            index=_audit_index(HCP_AUDIT_INDEX, environment),
            environment=_HCP_ENVIRONMENT_LABELS[environment],
            cluster_id=cluster.cluster_id,
            cluster_name=cluster.name,
        )

    return CLASSIC_AUDIT_URL.format(
        index=_audit_index(CLASSIC_AUDIT_INDEX, environment),
        infra_id=cluster.infra_id,
    )


def ticket_search_link(cluster_id: str, external_id: str) -> str:
    """Search for support cards that mention either cluster identifier."""
    jql = (
        f'project = OHSS and ("Cluster ID" ~ "{cluster_id}" OR "Cluster ID" ~ "{external_id}" '
        f'OR description ~ "{cluster_id}" OR description ~ "{external_id}")'
    )
    return JIRA_SEARCH_URL.format(jql=quote(jql, safe=""))


def insights_dashboard_link(external_id: str) -> str:
    return INSIGHTS_DASHBOARD_URL.format(external_id=external_id)


def alert_service_link(service_id: str) -> str:
    return ALERT_SERVICE_URL.format(service_id=service_id)


def issue_link(key: str) -> str:
    return JIRA_BROWSE_URL.format(key=key)


def build_links(cluster: ClusterIdentity, environment: str) -> DiagnosticLinks:
    """Build every per-cluster link the detailed report prints."""
    return DiagnosticLinks(
        audit_log=build_audit_log_link(cluster, environment),
        ticket_search=ticket_search_link(cluster.cluster_id, cluster.external_id),
        insights_dashboard=insights_dashboard_link(cluster.external_id) if cluster.external_id else "",
    )
