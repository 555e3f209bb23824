"""Issue tracker client (Jira REST API v2)."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from clusterctx.errors import MalformedResponseError
from clusterctx.models.cluster import JiraIssue
from clusterctx.models.config import JiraConfig

_logger = structlog.get_logger(component="jira_client")

_COLLABORATOR = "ticketing"
_MAX_RESULTS = 100
_FIELDS = "issuetype,priority,summary,status,description"

CLUSTER_ISSUES_JQL = (
    'project = "OpenShift Hosted SRE Support" AND ('
    '"Cluster ID" ~ "{cluster_id}" OR "Cluster ID" ~ "{external_id}" '
    'OR description ~ "{cluster_id}" OR description ~ "{external_id}") '
    "ORDER BY created DESC"
)
SUPPORT_EXCEPTIONS_JQL = (
    'project = "Support Exceptions" AND type = Story AND Resolution = Unresolved '
    'AND ("Customer Name" ~ "{organization_id}" OR "Organization ID" ~ "{organization_id}")'
)


def _name(value: object) -> str:
    if isinstance(value, dict):
        return str(value.get("name", ""))
    return ""


def issue_from_json(raw: dict[str, Any]) -> JiraIssue:
    try:
        fields = raw.get("fields") or {}
        return JiraIssue(
            key=raw["key"],
            issue_type=_name(fields.get("issuetype")),
            priority=_name(fields.get("priority")),
            summary=fields.get("summary", "") or "",
            status=_name(fields.get("status")),
            description=fields.get("description", "") or "",
        )
    except (KeyError, TypeError, AttributeError) as exc:
        raise MalformedResponseError(_COLLABORATOR, f"cannot map issue: {exc}") from exc


class JiraClient:
    """JiraIssueFetcher backed by the Jira search API."""

    def __init__(self, config: JiraConfig, timeout: float = 30.0, client: httpx.AsyncClient | None = None) -> None:
        headers = {"Accept": "application/json"}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._client = client or httpx.AsyncClient(
            base_url=config.url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _search(self, jql: str) -> list[JiraIssue]:
        response = await self._client.get(
            "/rest/api/2/search",
            params={"jql": jql, "fields": _FIELDS, "maxResults": str(_MAX_RESULTS)},
        )
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise MalformedResponseError(_COLLABORATOR, "search response is not an object")
        issues = [issue_from_json(raw) for raw in body.get("issues") or []]
        _logger.debug("jira_search", jql=jql, count=len(issues))
        return issues

    async def get_issues_for_cluster(self, cluster_id: str, external_id: str) -> list[JiraIssue]:
        return await self._search(CLUSTER_ISSUES_JQL.format(cluster_id=cluster_id, external_id=external_id))

    async def get_support_exceptions_for_org(self, organization_id: str) -> list[JiraIssue]:
        return await self._search(SUPPORT_EXCEPTIONS_JQL.format(organization_id=organization_id))
