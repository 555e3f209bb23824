"""Alerting client (PagerDuty REST API v2).

Offset pagination is followed here until the API reports ``more: false``;
the assembler never sees partial pages.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import httpx
import structlog

from clusterctx.alerts.history import track_occurrences
from clusterctx.clients.ocm import parse_timestamp
from clusterctx.errors import MalformedResponseError
from clusterctx.models.alerts import Incident, IncidentOccurrenceTracker
from clusterctx.models.cluster import ClusterIdentity
from clusterctx.models.config import PagerDutyConfig

_logger = structlog.get_logger(component="pagerduty_client")

_COLLABORATOR = "alerting"
_PAGE_SIZE = 100
_OPEN_STATUSES = ("triggered", "acknowledged")


def incident_from_json(raw: dict[str, Any]) -> Incident:
    try:
        return Incident(
            incident_id=raw["id"],
            incident_key=raw.get("incident_key", "") or "",
            title=raw.get("title", "") or "",
            urgency=raw.get("urgency", "") or "",
            status=raw.get("status", "") or "",
            created_at=parse_timestamp(raw.get("created_at")),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise MalformedResponseError(_COLLABORATOR, f"cannot map incident: {exc}") from exc


class PagerDutyClient:
    """AlertFetcher backed by the PagerDuty REST API."""

    def __init__(
        self,
        config: PagerDutyConfig,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {"Accept": "application/vnd.pagerduty+json;version=2"}
        if config.token:
            headers["Authorization"] = f"Token token={config.token}"
        self._client = client or httpx.AsyncClient(
            base_url=config.url,
            headers=headers,
            timeout=httpx.Timeout(timeout),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _paginate(self, path: str, key: str, params: list[tuple[str, str]]) -> list[dict[str, Any]]:
        results: list[dict[str, Any]] = []
        offset = 0
        while True:
            response = await self._client.get(
                path,
                params=[*params, ("limit", str(_PAGE_SIZE)), ("offset", str(offset))],
            )
            response.raise_for_status()
            body = response.json()
            items = body.get(key) if isinstance(body, dict) else None
            if not isinstance(items, list):
                raise MalformedResponseError(_COLLABORATOR, f"{path} response has no {key!r} list")
            results.extend(items)
            if not body.get("more", False) or not items:
                return results
            offset += len(items)

    async def get_service_ids(self, cluster: ClusterIdentity) -> list[str]:
        """Services whose name mentions the cluster's base domain."""
        if not cluster.base_domain:
            return []
        services = await self._paginate("/services", "services", [("query", cluster.base_domain)])
        service_ids = [str(s["id"]) for s in services if isinstance(s, dict) and "id" in s]
        _logger.debug("services_discovered", base_domain=cluster.base_domain, service_ids=service_ids)
        return service_ids

    async def get_current_incidents(self, service_id: str) -> list[Incident]:
        params = [("service_ids[]", service_id)] + [("statuses[]", s) for s in _OPEN_STATUSES]
        raw = await self._paginate("/incidents", "incidents", params)
        return [incident_from_json(item) for item in raw]

    async def get_historical_trackers(self, service_id: str, since: datetime) -> list[IncidentOccurrenceTracker]:
        params = [
            ("service_ids[]", service_id),
            ("since", since.isoformat()),
            ("until", datetime.now(tz=UTC).isoformat()),
        ]
        raw = await self._paginate("/incidents", "incidents", params)
        return track_occurrences(incident_from_json(item) for item in raw)
