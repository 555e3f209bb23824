"""Audit-trail client (AWS CloudTrail via boto3).

boto3 is synchronous; lookups run in a worker thread so the assembler's other
collaborators keep making progress.
"""

from __future__ import annotations

import asyncio
from typing import Any

import boto3
import structlog

from clusterctx.errors import MalformedResponseError
from clusterctx.models.cluster import AuditEvent, ClusterIdentity
from clusterctx.models.config import AwsConfig

_logger = structlog.get_logger(component="cloudtrail_client")

_COLLABORATOR = "audit_trail"
_DEFAULT_REGION = "us-east-1"


def event_from_json(raw: dict[str, Any]) -> AuditEvent:
    try:
        return AuditEvent(
            event_id=raw["EventId"],
            name=raw["EventName"],
            username=raw.get("Username"),
            event_time=raw.get("EventTime"),
        )
    except (KeyError, TypeError) as exc:
        raise MalformedResponseError(_COLLABORATOR, f"cannot map audit event: {exc}") from exc


class CloudTrailClient:
    """AuditTrailFetcher over one boto3 CloudTrail client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def _lookup(self, page_limit: int) -> list[AuditEvent]:
        paginator = self._client.get_paginator("lookup_events")
        events: list[AuditEvent] = []
        for page_number, page in enumerate(paginator.paginate(), start=1):
            events.extend(event_from_json(raw) for raw in page.get("Events", []))
            if page_number >= page_limit:
                break
        _logger.debug("cloudtrail_lookup", pages_limit=page_limit, events=len(events))
        return events

    async def lookup_events(self, page_limit: int) -> list[AuditEvent]:
        """Newest-first audit events, reading at most *page_limit* pages."""
        return await asyncio.to_thread(self._lookup, page_limit)


class CloudTrailClientGenerator:
    """Builds a CloudTrailClient in the cluster's region from a named profile."""

    def __init__(self, config: AwsConfig) -> None:
        self._config = config

    def for_cluster(self, cluster: ClusterIdentity) -> CloudTrailClient:
        region = self._config.region or cluster.region or _DEFAULT_REGION
        session = boto3.Session(profile_name=self._config.profile or None, region_name=region)
        return CloudTrailClient(session.client("cloudtrail"))
