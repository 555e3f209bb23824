"""Environment-health client for hosted-control-plane clusters (Dynatrace)."""

from __future__ import annotations

from urllib.parse import quote

import httpx
import structlog

from clusterctx.errors import CollaboratorUnavailableError, MalformedResponseError
from clusterctx.models.cluster import EnvironmentHealth
from clusterctx.models.config import DynatraceConfig

_logger = structlog.get_logger(component="dynatrace_client")

_COLLABORATOR = "environment_health"

LOGS_APP_PATH = "/ui/apps/dynatrace.logs/"
LOGS_QUERY = 'fetch logs\n| filter matchesValue(dt.kubernetes.cluster.name, "{cluster_key}")\n| sort timestamp desc'


def logs_app_link(tenant_url: str, cluster_key: str) -> str:
    """Deep link into the Logs app, pre-filtered on the cluster."""
    query = quote(LOGS_QUERY.format(cluster_key=cluster_key), safe="")
    return f"{tenant_url.rstrip('/')}{LOGS_APP_PATH}?gtf=-2h&gf=all&sortDirection=desc#{query}"


class DynatraceClient:
    """EnvironmentHealthFetcher backed by the Dynatrace entities API."""

    def __init__(
        self,
        config: DynatraceConfig,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not config.url:
            raise ValueError("Dynatrace url must not be empty")
        self._tenant_url = config.url.rstrip("/")
        headers = {"Authorization": f"Api-Token {config.token}"} if config.token else {}
        self._client = client or httpx.AsyncClient(
            base_url=self._tenant_url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_cluster_details(self, cluster_key: str) -> EnvironmentHealth:
        """Confirm the tenant monitors *cluster_key* and return its entry points."""
        response = await self._client.get(
            "/api/v2/entities",
            params={"entitySelector": f'type("KUBERNETES_CLUSTER"),entityName.equals("{cluster_key}")'},
        )
        response.raise_for_status()
        body = response.json()
        entities = body.get("entities") if isinstance(body, dict) else None
        if not isinstance(entities, list):
            raise MalformedResponseError(_COLLABORATOR, "entities response has no 'entities' list")
        if not entities:
            raise CollaboratorUnavailableError(_COLLABORATOR, f"cluster {cluster_key} is not monitored")

        _logger.debug("dynatrace_entity_found", cluster_key=cluster_key, entities=len(entities))
        return EnvironmentHealth(
            tenant_url=self._tenant_url,
            logs_url=logs_app_link(self._tenant_url, cluster_key),
        )
