"""Context Assembler -- gathers every collaborator's view of one cluster.

Decision flow:
  1. Resolve the cluster identity (exactly one inventory lookup). Failure is
     fatal and no other collaborator is called.
  2. Fetch every other section concurrently. Sections write disjoint fields,
     so no locking is needed.
  3. A failing section is left empty and recorded in
     ``unavailable_sections`` unless the request asks to fail fast. Alerting
     failures are also recorded per service id. With fail fast, the first
     failure cancels and awaits every other pending fetch before it
     propagates.
  4. Build diagnostic links and the historical alert total from the
     gathered data and freeze everything into a ContextSnapshot.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol, TypeVar

import structlog

from clusterctx.alerts.history import history_total
from clusterctx.audit.classifier import classify
from clusterctx.errors import ClusterNotFoundError, CollaboratorUnavailableError
from clusterctx.links.builder import build_links
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
from clusterctx.models.snapshot import ContextRequest, ContextSnapshot, Section

_T = TypeVar("_T")

_logger = structlog.get_logger(component="context_assembler")

_AlertSections = tuple[
    tuple[str, ...],
    dict[str, tuple[Incident, ...]],
    dict[str, tuple[IncidentOccurrenceTracker, ...]],
    tuple[str, ...],
    tuple[str, ...],
]

# Collaborator that populates each section, as reported in fail-fast errors
_SECTION_COLLABORATORS: dict[Section, str] = {
    Section.LIMITED_SUPPORT: "inventory",
    Section.USER_BAN: "inventory",
    Section.SERVICE_LOGS: "service_logs",
    Section.JIRA_ISSUES: "ticketing",
    Section.SUPPORT_EXCEPTIONS: "ticketing",
    Section.ENVIRONMENT_HEALTH: "environment_health",
    Section.ALERT_SERVICES: "alerting",
    Section.CURRENT_INCIDENTS: "alerting",
    Section.HISTORICAL_INCIDENTS: "alerting",
    Section.AUDIT_TRAIL: "audit_trail",
}


class ClusterFetcher(Protocol):
    """Cluster inventory interface required by ContextAssembler."""

    @property
    def environment(self) -> str: ...

    async def get_cluster(self, key: str) -> ClusterIdentity: ...

    async def get_limited_support_reasons(self, cluster_id: str) -> list[LimitedSupportReason]: ...

    async def get_user_ban_status(self, cluster: ClusterIdentity) -> UserBanStatus: ...


class ServiceLogFetcher(Protocol):
    async def get_logs_since(
        self,
        cluster_id: str,
        since: datetime,
        all_messages: bool,
        internal_only: bool,
    ) -> list[ServiceLogEntry]: ...


class JiraIssueFetcher(Protocol):
    async def get_issues_for_cluster(self, cluster_id: str, external_id: str) -> list[JiraIssue]: ...

    async def get_support_exceptions_for_org(self, organization_id: str) -> list[JiraIssue]: ...


class EnvironmentHealthFetcher(Protocol):
    async def fetch_cluster_details(self, cluster_key: str) -> EnvironmentHealth: ...


class AlertFetcher(Protocol):
    """Alerting interface; both incident views are keyed by service id."""

    async def get_service_ids(self, cluster: ClusterIdentity) -> list[str]: ...

    async def get_current_incidents(self, service_id: str) -> list[Incident]: ...

    async def get_historical_trackers(self, service_id: str, since: datetime) -> list[IncidentOccurrenceTracker]: ...


class AuditTrailFetcher(Protocol):
    async def lookup_events(self, page_limit: int) -> list[AuditEvent]: ...


class AuditClientGenerator(Protocol):
    """Builds an audit-trail client scoped to one cluster's account."""

    def for_cluster(self, cluster: ClusterIdentity) -> AuditTrailFetcher: ...


async def _gather_all(*aws: Awaitable[Any]) -> list[Any]:
    """Run *aws* concurrently like asyncio.gather.

    When one of them raises, the others are cancelled and awaited before the
    error propagates, so no task outlives the call.
    """
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class _SectionGuard:
    """Runs section fetches, turning failures into empty sections."""

    def __init__(self, cluster_key: str, fail_fast: bool) -> None:
        self._log = _logger.bind(cluster_key=cluster_key)
        self._fail_fast = fail_fast
        self._failed: set[str] = set()
        self._failed_keys: dict[str, set[str]] = {}

    async def run(
        self,
        section: Section,
        call: Callable[[], Awaitable[_T]],
        default: _T,
        key: str | None = None,
    ) -> _T:
        """Await *call*; on failure return *default* and record *section*.

        *key* names the item within the section (a service id) so partial
        failures can be reported per item.
        """
        try:
            return await call()
        except Exception as exc:  # noqa: BLE001
            collaborator = _SECTION_COLLABORATORS[section]
            if self._fail_fast:
                if isinstance(exc, CollaboratorUnavailableError):
                    raise
                raise CollaboratorUnavailableError(collaborator, str(exc)) from exc
            self._log.warning(
                "section_unavailable",
                section=section.value,
                collaborator=collaborator,
                key=key,
                error=str(exc),
            )
            self._failed.add(section.value)
            if key is not None:
                self._failed_keys.setdefault(section.value, set()).add(key)
            return default

    def unavailable(self) -> tuple[str, ...]:
        """Failed sections in declaration order, independent of completion order."""
        return tuple(s.value for s in Section if s.value in self._failed)

    def failed_keys(self, section: Section, order: Iterable[str]) -> tuple[str, ...]:
        """Keys of *section* whose fetch failed, in *order*."""
        failed = self._failed_keys.get(section.value, set())
        return tuple(k for k in order if k in failed)


class ContextAssembler:
    """Orchestrates the collaborators that make up a cluster context.

    Collaborators other than the inventory and service-log fetchers are
    optional; a missing one leaves its section empty without marking it
    unavailable.
    """

    def __init__(
        self,
        cluster_fetcher: ClusterFetcher,
        service_log_fetcher: ServiceLogFetcher,
        jira_fetcher: JiraIssueFetcher | None = None,
        health_fetcher: EnvironmentHealthFetcher | None = None,
        alert_fetcher: AlertFetcher | None = None,
        audit_clients: AuditClientGenerator | None = None,
    ) -> None:
        self._cluster_fetcher = cluster_fetcher
        self._service_log_fetcher = service_log_fetcher
        self._jira_fetcher = jira_fetcher
        self._health_fetcher = health_fetcher
        self._alert_fetcher = alert_fetcher
        self._audit_clients = audit_clients

    async def assemble(self, request: ContextRequest) -> ContextSnapshot:
        """Gather every section for *request* into one snapshot.

        Raises ClusterNotFoundError or CollaboratorUnavailableError when the
        identity lookup fails, and CollaboratorUnavailableError on the first
        section failure when ``request.fail_fast`` is set.
        """
        cluster = await self._resolve(request.cluster_key)
        environment = self._cluster_fetcher.environment
        since = datetime.now(tz=UTC) - timedelta(days=request.window_days)
        guard = _SectionGuard(request.cluster_key, request.fail_fast)

        (
            limited_support,
            user_ban,
            service_logs,
            jira_issues,
            support_exceptions,
            environment_health,
            (service_ids, current, historical, failed_current, failed_historical),
            audit_events,
        ) = await _gather_all(
            guard.run(
                Section.LIMITED_SUPPORT,
                lambda: self._cluster_fetcher.get_limited_support_reasons(cluster.cluster_id),
                [],
            ),
            guard.run(
                Section.USER_BAN,
                lambda: self._cluster_fetcher.get_user_ban_status(cluster),
                UserBanStatus(),
            ),
            guard.run(
                Section.SERVICE_LOGS,
                lambda: self._service_log_fetcher.get_logs_since(
                    cluster.cluster_id,
                    since,
                    request.all_service_logs,
                    request.internal_service_logs_only,
                ),
                [],
            ),
            self._jira_issues(guard, cluster),
            self._support_exceptions(guard, cluster),
            self._environment_health(guard, cluster),
            self._alerts(guard, request, cluster, since),
            self._audit_trail(guard, request, cluster),
        )

        snapshot = ContextSnapshot(
            cluster=cluster,
            environment=environment,
            window_days=request.window_days,
            limited_support_reasons=tuple(limited_support),
            user_ban=user_ban,
            service_logs=tuple(service_logs),
            jira_issues=tuple(jira_issues),
            support_exceptions=tuple(support_exceptions),
            alert_service_ids=service_ids,
            current_incidents=current,
            historical_incidents=historical,
            failed_current_services=failed_current,
            failed_historical_services=failed_historical,
            historical_alert_total=history_total(service_ids, historical),
            audit_events=audit_events,
            environment_health=environment_health,
            links=build_links(cluster, environment),
            unavailable_sections=guard.unavailable(),
        )
        _logger.info(
            "context_assembled",
            cluster_id=cluster.cluster_id,
            environment=environment,
            unavailable_sections=list(snapshot.unavailable_sections),
        )
        return snapshot

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    async def _resolve(self, key: str) -> ClusterIdentity:
        try:
            cluster = await self._cluster_fetcher.get_cluster(key)
        except ClusterNotFoundError:
            _logger.warning("cluster_not_found", cluster_key=key)
            raise
        except Exception as exc:
            _logger.error("cluster_lookup_failed", cluster_key=key, error=str(exc))
            raise CollaboratorUnavailableError("inventory", str(exc)) from exc
        _logger.debug("cluster_resolved", cluster_key=key, cluster_id=cluster.cluster_id)
        return cluster

    async def _jira_issues(self, guard: _SectionGuard, cluster: ClusterIdentity) -> list[JiraIssue]:
        fetcher = self._jira_fetcher
        if fetcher is None:
            return []
        return await guard.run(
            Section.JIRA_ISSUES,
            lambda: fetcher.get_issues_for_cluster(cluster.cluster_id, cluster.external_id),
            [],
        )

    async def _support_exceptions(self, guard: _SectionGuard, cluster: ClusterIdentity) -> list[JiraIssue]:
        fetcher = self._jira_fetcher
        if fetcher is None or not cluster.organization_id:
            return []
        return await guard.run(
            Section.SUPPORT_EXCEPTIONS,
            lambda: fetcher.get_support_exceptions_for_org(cluster.organization_id),
            [],
        )

    async def _environment_health(self, guard: _SectionGuard, cluster: ClusterIdentity) -> EnvironmentHealth:
        fetcher = self._health_fetcher
        if fetcher is None or not cluster.hypershift:
            return EnvironmentHealth()
        return await guard.run(
            Section.ENVIRONMENT_HEALTH,
            lambda: fetcher.fetch_cluster_details(cluster.cluster_id),
            EnvironmentHealth(),
        )

    async def _alerts(
        self,
        guard: _SectionGuard,
        request: ContextRequest,
        cluster: ClusterIdentity,
        since: datetime,
    ) -> _AlertSections:
        fetcher = self._alert_fetcher
        service_ids = list(dict.fromkeys(request.service_ids))
        if fetcher is None:
            return tuple(service_ids), {}, {}, (), ()

        discovered = await guard.run(Section.ALERT_SERVICES, lambda: fetcher.get_service_ids(cluster), [])
        for service_id in discovered:
            if service_id not in service_ids:
                service_ids.append(service_id)

        def _current(service_id: str) -> Awaitable[list[Incident]]:
            return guard.run(
                Section.CURRENT_INCIDENTS,
                lambda: fetcher.get_current_incidents(service_id),
                [],
                key=service_id,
            )

        def _historical(service_id: str) -> Awaitable[list[IncidentOccurrenceTracker]]:
            return guard.run(
                Section.HISTORICAL_INCIDENTS,
                lambda: fetcher.get_historical_trackers(service_id, since),
                [],
                key=service_id,
            )

        current_results, historical_results = await _gather_all(
            _gather_all(*(_current(sid) for sid in service_ids)),
            _gather_all(*(_historical(sid) for sid in service_ids)),
        )
        current = {sid: tuple(found) for sid, found in zip(service_ids, current_results, strict=True)}
        historical = {sid: tuple(found) for sid, found in zip(service_ids, historical_results, strict=True)}
        return (
            tuple(service_ids),
            current,
            historical,
            guard.failed_keys(Section.CURRENT_INCIDENTS, service_ids),
            guard.failed_keys(Section.HISTORICAL_INCIDENTS, service_ids),
        )

    async def _audit_trail(
        self,
        guard: _SectionGuard,
        request: ContextRequest,
        cluster: ClusterIdentity,
    ) -> tuple[AuditEvent, ...]:
        generator = self._audit_clients
        if generator is None or not request.full:
            return ()

        async def _lookup() -> tuple[AuditEvent, ...]:
            # boto3 reads credentials and service models from disk
            client = await asyncio.to_thread(generator.for_cluster, cluster)
            return classify(await client.lookup_events(request.page_limit))

        return await guard.run(Section.AUDIT_TRAIL, _lookup, ())
