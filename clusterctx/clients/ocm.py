"""Cluster inventory and service-log client (OCM REST API).

Wraps the clusters_mgmt, accounts_mgmt and service_logs APIs behind the
ClusterFetcher and ServiceLogFetcher interfaces. Uses one httpx.AsyncClient
connection pool; the caller is responsible for calling aclose().
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any
from urllib.parse import urlparse

import httpx
import structlog

from clusterctx.errors import ClusterNotFoundError, MalformedResponseError
from clusterctx.models.cluster import ClusterIdentity, LimitedSupportReason, ServiceLogEntry, UserBanStatus
from clusterctx.models.config import OcmConfig

_logger = structlog.get_logger(component="ocm_client")

_COLLABORATOR = "inventory"
_SERVICE_LOG_PAGE_SIZE = 100

# API host -> deployment environment tag
_ENVIRONMENTS: dict[str, str] = {
    "api.openshift.com": "production",
    "api.stage.openshift.com": "stage",
    "api.integration.openshift.com": "integration",
}


def environment_from_url(url: str) -> str:
    """Return the environment tag of an OCM API URL, ``unknown`` if unrecognised."""
    host = urlparse(url).hostname or ""
    return _ENVIRONMENTS.get(host, "unknown")


def parse_timestamp(value: object) -> datetime | None:
    """Parse an RFC 3339 timestamp; empty values yield None."""
    if not value:
        return None
    if not isinstance(value, str):
        raise ValueError(f"expected timestamp string, got {type(value).__name__}")
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _describe(raw: dict[str, Any]) -> str:
    product = raw.get("product", {}).get("id", "")
    description = f"{product.upper()} cluster, state {raw.get('state', 'unknown')}".strip(" ,")
    console = raw.get("console", {}).get("url", "")
    if console:
        description += f", console {console}"
    return description


def cluster_from_json(raw: dict[str, Any]) -> ClusterIdentity:
    """Map a clusters_mgmt cluster object to ClusterIdentity."""
    try:
        return ClusterIdentity(
            cluster_id=raw["id"],
            external_id=raw.get("external_id", ""),
            infra_id=raw.get("infra_id", ""),
            name=raw.get("name", ""),
            created_at=parse_timestamp(raw.get("creation_timestamp")),
            hypershift=bool(raw.get("hypershift", {}).get("enabled", False)),
            version=raw.get("version", {}).get("raw_id", ""),
            description=_describe(raw),
            subscription_id=raw.get("subscription", {}).get("id", ""),
            base_domain=raw.get("dns", {}).get("base_domain", ""),
            cloud_provider=raw.get("cloud_provider", {}).get("id", ""),
            region=raw.get("region", {}).get("id", ""),
            state=raw.get("state", ""),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise MalformedResponseError(_COLLABORATOR, f"cannot map cluster: {exc}") from exc


class OcmClient:
    """ClusterFetcher and ServiceLogFetcher backed by the OCM REST API."""

    def __init__(self, config: OcmConfig, timeout: float = 30.0, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        headers = {"Authorization": f"Bearer {config.token}"} if config.token else {}
        self._client = client or httpx.AsyncClient(
            base_url=config.url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
        )

    @property
    def environment(self) -> str:
        return environment_from_url(self._config.url)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        response = await self._client.get(path, params=params)
        response.raise_for_status()
        body = response.json()
        if not isinstance(body, dict):
            raise MalformedResponseError(_COLLABORATOR, f"expected JSON object from {path}")
        return body

    async def get_cluster(self, key: str) -> ClusterIdentity:
        """Resolve *key* (internal id, external id or name) to exactly one cluster."""
        # Quotes would terminate the search literal and change the query
        if "'" in key:
            raise ClusterNotFoundError(key, "cluster key must not contain quotes")
        search = f"id = '{key}' or external_id = '{key}' or name = '{key}'"
        body = await self._get_json("/api/clusters_mgmt/v1/clusters", params={"search": search, "size": "2"})
        items = body.get("items") or []
        if not items:
            raise ClusterNotFoundError(key)
        if len(items) > 1:
            raise ClusterNotFoundError(key, "more than one cluster matches")

        cluster = cluster_from_json(items[0])
        if cluster.subscription_id:
            subscription = await self._get_json(f"/api/accounts_mgmt/v1/subscriptions/{cluster.subscription_id}")
            cluster = replace(cluster, organization_id=subscription.get("organization_id", "") or "")
        _logger.debug("cluster_found", key=key, cluster_id=cluster.cluster_id, hypershift=cluster.hypershift)
        return cluster

    async def get_limited_support_reasons(self, cluster_id: str) -> list[LimitedSupportReason]:
        body = await self._get_json(f"/api/clusters_mgmt/v1/clusters/{cluster_id}/limited_support_reasons")
        try:
            return [
                LimitedSupportReason(
                    summary=item.get("summary", ""),
                    details=item.get("details", ""),
                    created_at=parse_timestamp(item.get("creation_timestamp")),
                )
                for item in body.get("items") or []
            ]
        except (TypeError, ValueError, AttributeError) as exc:
            raise MalformedResponseError(_COLLABORATOR, f"cannot map limited support reason: {exc}") from exc

    async def get_user_ban_status(self, cluster: ClusterIdentity) -> UserBanStatus:
        """Ban state of the account that created the cluster subscription."""
        if not cluster.subscription_id:
            return UserBanStatus()
        subscription = await self._get_json(
            f"/api/accounts_mgmt/v1/subscriptions/{cluster.subscription_id}",
            params={"fetchAccounts": "true"},
        )
        creator = subscription.get("creator") or {}
        if not isinstance(creator, dict):
            raise MalformedResponseError(_COLLABORATOR, "subscription creator is not an object")
        return UserBanStatus(
            banned=bool(creator.get("banned", False)),
            code=creator.get("ban_code", "") or "",
            description=creator.get("ban_description", "") or "",
        )

    async def get_logs_since(
        self,
        cluster_id: str,
        since: datetime,
        all_messages: bool,
        internal_only: bool,
    ) -> list[ServiceLogEntry]:
        """Service logs newer than *since*, newest first.

        Without *all_messages* only messages sent by SRE are returned.
        """
        search = f"timestamp >= '{since.strftime('%Y-%m-%dT%H:%M:%SZ')}'"
        if not all_messages:
            search += " and service_name = 'SREManualAction'"
        if internal_only:
            search += " and internal_only = 'true'"

        entries: list[ServiceLogEntry] = []
        page = 1
        while True:
            body = await self._get_json(
                f"/api/service_logs/v1/clusters/{cluster_id}/cluster_logs",
                params={
                    "search": search,
                    "orderBy": "timestamp desc",
                    "page": str(page),
                    "size": str(_SERVICE_LOG_PAGE_SIZE),
                },
            )
            items = body.get("items") or []
            try:
                for item in items:
                    timestamp = parse_timestamp(item.get("timestamp"))
                    if timestamp is None:
                        raise ValueError("service log without timestamp")
                    entries.append(
                        ServiceLogEntry(
                            description=item.get("description", ""),
                            timestamp=timestamp,
                            summary=item.get("summary", ""),
                            severity=item.get("severity", ""),
                            service_name=item.get("service_name", ""),
                        )
                    )
            except (TypeError, ValueError, AttributeError) as exc:
                raise MalformedResponseError("service_logs", f"cannot map service log: {exc}") from exc

            if len(items) < _SERVICE_LOG_PAGE_SIZE or len(entries) >= int(body.get("total", len(entries))):
                break
            page += 1
        return entries
