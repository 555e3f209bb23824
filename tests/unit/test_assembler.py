"""Unit tests for clusterctx.assembler.context."""

from __future__ import annotations

import asyncio
import threading
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from clusterctx.assembler.context import ContextAssembler
from clusterctx.errors import ClusterNotFoundError, CollaboratorUnavailableError
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
from clusterctx.models.snapshot import ContextRequest
from clusterctx.render.detailed import render_detailed

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _cluster(**overrides: object) -> ClusterIdentity:
    fields: dict[str, object] = {
        "cluster_id": "c-123",
        "external_id": "ext-123",
        "infra_id": "infra-123",
        "name": "demo",
        "organization_id": "org-1",
        "base_domain": "demo.example.com",
    }
    fields.update(overrides)
    return ClusterIdentity(**fields)  # type: ignore[arg-type]


def _cluster_fetcher(cluster: ClusterIdentity | None = None) -> MagicMock:
    fetcher = MagicMock()
    fetcher.environment = "production"
    fetcher.get_cluster = AsyncMock(return_value=cluster or _cluster())
    fetcher.get_limited_support_reasons = AsyncMock(return_value=[])
    fetcher.get_user_ban_status = AsyncMock(return_value=UserBanStatus())
    return fetcher


def _service_log_fetcher() -> MagicMock:
    fetcher = MagicMock()
    fetcher.get_logs_since = AsyncMock(
        return_value=[ServiceLogEntry(description="upgrade scheduled", timestamp=datetime(2024, 5, 1, tzinfo=UTC))]
    )
    return fetcher


def _jira_fetcher() -> MagicMock:
    fetcher = MagicMock()
    fetcher.get_issues_for_cluster = AsyncMock(return_value=[JiraIssue(key="OHSS-1")])
    fetcher.get_support_exceptions_for_org = AsyncMock(return_value=[JiraIssue(key="SUPPORTEX-1")])
    return fetcher


def _alert_fetcher(discovered: list[str] | None = None) -> MagicMock:
    fetcher = MagicMock()
    fetcher.get_service_ids = AsyncMock(return_value=discovered if discovered is not None else ["PDAUTO"])
    fetcher.get_current_incidents = AsyncMock(return_value=[Incident(incident_id="i1", urgency="high")])
    fetcher.get_historical_trackers = AsyncMock(
        return_value=[IncidentOccurrenceTracker(incident_name="NodeDown", count=2, last_occurrence="2024-05-01")]
    )
    return fetcher


def _assembler(**overrides: object) -> ContextAssembler:
    parts: dict[str, object] = {
        "cluster_fetcher": _cluster_fetcher(),
        "service_log_fetcher": _service_log_fetcher(),
        "jira_fetcher": _jira_fetcher(),
        "alert_fetcher": _alert_fetcher(),
    }
    parts.update(overrides)
    return ContextAssembler(**parts)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Identity resolution
# ---------------------------------------------------------------------------


class TestIdentityResolution:
    @pytest.mark.asyncio
    async def test_not_found_is_fatal_and_stops_everything(self) -> None:
        cluster_fetcher = _cluster_fetcher()
        cluster_fetcher.get_cluster = AsyncMock(side_effect=ClusterNotFoundError("missing"))
        service_logs = _service_log_fetcher()
        jira = _jira_fetcher()
        alerts = _alert_fetcher()
        assembler = _assembler(
            cluster_fetcher=cluster_fetcher,
            service_log_fetcher=service_logs,
            jira_fetcher=jira,
            alert_fetcher=alerts,
        )

        with pytest.raises(ClusterNotFoundError):
            await assembler.assemble(ContextRequest(cluster_key="missing"))

        cluster_fetcher.get_limited_support_reasons.assert_not_awaited()
        service_logs.get_logs_since.assert_not_awaited()
        jira.get_issues_for_cluster.assert_not_awaited()
        alerts.get_service_ids.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inventory_outage_is_fatal(self) -> None:
        cluster_fetcher = _cluster_fetcher()
        cluster_fetcher.get_cluster = AsyncMock(side_effect=RuntimeError("connection reset"))
        assembler = _assembler(cluster_fetcher=cluster_fetcher)

        with pytest.raises(CollaboratorUnavailableError) as exc_info:
            await assembler.assemble(ContextRequest(cluster_key="c-123"))
        assert exc_info.value.collaborator == "inventory"


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestAssemble:
    @pytest.mark.asyncio
    async def test_populates_every_section(self) -> None:
        cluster_fetcher = _cluster_fetcher()
        cluster_fetcher.get_limited_support_reasons = AsyncMock(
            return_value=[LimitedSupportReason(summary="Upgrade blocked", details="manual")]
        )
        snapshot = await _assembler(cluster_fetcher=cluster_fetcher).assemble(
            ContextRequest(cluster_key="demo", window_days=7, service_ids=("PDCONF",))
        )

        assert snapshot.cluster.cluster_id == "c-123"
        assert snapshot.environment == "production"
        assert snapshot.window_days == 7
        assert not snapshot.supported
        assert len(snapshot.service_logs) == 1
        assert [i.key for i in snapshot.jira_issues] == ["OHSS-1"]
        assert [i.key for i in snapshot.support_exceptions] == ["SUPPORTEX-1"]
        assert snapshot.alert_service_ids == ("PDCONF", "PDAUTO")
        assert set(snapshot.current_incidents) == {"PDCONF", "PDAUTO"}
        assert snapshot.historical_alert_total == 4
        assert snapshot.links.audit_log
        assert snapshot.unavailable_sections == ()

    @pytest.mark.asyncio
    async def test_passes_window_and_filters_to_service_logs(self) -> None:
        service_logs = _service_log_fetcher()
        before = datetime.now(tz=UTC)
        await _assembler(service_log_fetcher=service_logs).assemble(
            ContextRequest(cluster_key="demo", window_days=10, all_service_logs=True, internal_service_logs_only=True)
        )

        args = service_logs.get_logs_since.await_args.args
        assert args[0] == "c-123"
        assert 9 < (before - args[1]).total_seconds() / 86400 < 11
        assert args[2] is True
        assert args[3] is True

    @pytest.mark.asyncio
    async def test_discovered_services_are_deduplicated_after_configured_ones(self) -> None:
        alerts = _alert_fetcher(discovered=["PDB", "PDA", "PDB"])
        snapshot = await _assembler(alert_fetcher=alerts).assemble(
            ContextRequest(cluster_key="demo", service_ids=("PDA", "PDC"))
        )
        assert snapshot.alert_service_ids == ("PDA", "PDC", "PDB")

    @pytest.mark.asyncio
    async def test_support_exceptions_skipped_without_organization(self) -> None:
        jira = _jira_fetcher()
        snapshot = await _assembler(
            cluster_fetcher=_cluster_fetcher(_cluster(organization_id="")),
            jira_fetcher=jira,
        ).assemble(ContextRequest(cluster_key="demo"))

        jira.get_support_exceptions_for_org.assert_not_awaited()
        assert snapshot.support_exceptions == ()
        assert "support_exceptions" not in snapshot.unavailable_sections

    @pytest.mark.asyncio
    async def test_optional_collaborators_may_be_absent(self) -> None:
        snapshot = await ContextAssembler(_cluster_fetcher(), _service_log_fetcher()).assemble(
            ContextRequest(cluster_key="demo", full=True, service_ids=("PDCONF",))
        )
        assert snapshot.jira_issues == ()
        assert snapshot.alert_service_ids == ("PDCONF",)
        assert snapshot.current_incidents == {}
        assert snapshot.audit_events == ()
        assert snapshot.unavailable_sections == ()


class TestEnvironmentHealth:
    @pytest.mark.asyncio
    async def test_fetched_for_hosted_clusters_only(self) -> None:
        health = MagicMock()
        health.fetch_cluster_details = AsyncMock(return_value=EnvironmentHealth(tenant_url="https://dt"))

        standalone = await _assembler(health_fetcher=health).assemble(ContextRequest(cluster_key="demo"))
        health.fetch_cluster_details.assert_not_awaited()
        assert standalone.environment_health == EnvironmentHealth()

        hosted = await _assembler(
            cluster_fetcher=_cluster_fetcher(_cluster(hypershift=True)),
            health_fetcher=health,
        ).assemble(ContextRequest(cluster_key="demo"))
        health.fetch_cluster_details.assert_awaited_once_with("c-123")
        assert hosted.environment_health.tenant_url == "https://dt"


class TestAuditTrail:
    def _generator(self, events: list[AuditEvent]) -> MagicMock:
        client = MagicMock()
        client.lookup_events = AsyncMock(return_value=events)
        generator = MagicMock()
        generator.for_cluster = MagicMock(return_value=client)
        return generator

    @pytest.mark.asyncio
    async def test_skipped_without_full(self) -> None:
        generator = self._generator([AuditEvent(event_id="1", name="DeleteBucket")])
        snapshot = await _assembler(audit_clients=generator).assemble(ContextRequest(cluster_key="demo"))
        generator.for_cluster.assert_not_called()
        assert snapshot.audit_events == ()

    @pytest.mark.asyncio
    async def test_events_are_classified(self) -> None:
        generator = self._generator(
            [
                AuditEvent(event_id="1", name="GetObject", username="alice"),
                AuditEvent(event_id="2", name="DeleteBucket", username="RH-SRE-bot"),
            ]
        )
        snapshot = await _assembler(audit_clients=generator).assemble(
            ContextRequest(cluster_key="demo", full=True, page_limit=5)
        )

        generator.for_cluster.return_value.lookup_events.assert_awaited_once_with(5)
        assert snapshot.audit_events == (AuditEvent(event_id="2", name="DeleteBucket", username=None),)

    @pytest.mark.asyncio
    async def test_client_is_built_off_the_event_loop_thread(self) -> None:
        generator = self._generator([])
        built_on: list[int] = []
        client = generator.for_cluster.return_value

        def for_cluster(_cluster: ClusterIdentity) -> MagicMock:
            built_on.append(threading.get_ident())
            return client

        generator.for_cluster = MagicMock(side_effect=for_cluster)
        await _assembler(audit_clients=generator).assemble(ContextRequest(cluster_key="demo", full=True))

        assert len(built_on) == 1
        assert built_on[0] != threading.get_ident()


# ---------------------------------------------------------------------------
# Degradation
# ---------------------------------------------------------------------------


class TestDegradation:
    @pytest.mark.asyncio
    async def test_ticketing_failure_leaves_empty_section(self) -> None:
        jira = _jira_fetcher()
        jira.get_issues_for_cluster = AsyncMock(side_effect=CollaboratorUnavailableError("ticketing", "503"))

        snapshot = await _assembler(jira_fetcher=jira).assemble(ContextRequest(cluster_key="demo"))

        assert snapshot.jira_issues == ()
        assert snapshot.unavailable_sections == ("jira_issues",)
        assert len(snapshot.service_logs) == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_also_degrades(self) -> None:
        service_logs = _service_log_fetcher()
        service_logs.get_logs_since = AsyncMock(side_effect=KeyError("items"))

        snapshot = await _assembler(service_log_fetcher=service_logs).assemble(ContextRequest(cluster_key="demo"))

        assert snapshot.service_logs == ()
        assert snapshot.is_unavailable("service_logs")

    @pytest.mark.asyncio
    async def test_unavailable_sections_follow_declaration_order(self) -> None:
        cluster_fetcher = _cluster_fetcher()
        cluster_fetcher.get_user_ban_status = AsyncMock(side_effect=RuntimeError("boom"))
        alerts = _alert_fetcher()
        alerts.get_historical_trackers = AsyncMock(side_effect=RuntimeError("boom"))
        jira = _jira_fetcher()
        jira.get_issues_for_cluster = AsyncMock(side_effect=RuntimeError("boom"))

        snapshot = await _assembler(
            cluster_fetcher=cluster_fetcher, alert_fetcher=alerts, jira_fetcher=jira
        ).assemble(ContextRequest(cluster_key="demo"))

        assert snapshot.unavailable_sections == ("user_ban", "jira_issues", "historical_incidents")
        assert snapshot.historical_alert_total == 0

    @pytest.mark.asyncio
    async def test_fail_fast_raises_collaborator_error(self) -> None:
        jira = _jira_fetcher()
        jira.get_issues_for_cluster = AsyncMock(side_effect=RuntimeError("503"))

        with pytest.raises(CollaboratorUnavailableError) as exc_info:
            await _assembler(jira_fetcher=jira).assemble(ContextRequest(cluster_key="demo", fail_fast=True))
        assert exc_info.value.collaborator == "ticketing"

    @pytest.mark.asyncio
    async def test_fail_fast_cancels_pending_fetches(self) -> None:
        finished: list[str] = []

        async def slow_logs(*_args: object, **_kwargs: object) -> list[ServiceLogEntry]:
            await asyncio.sleep(0.2)
            finished.append("service_logs")
            return []

        service_logs = _service_log_fetcher()
        service_logs.get_logs_since = AsyncMock(side_effect=slow_logs)
        jira = _jira_fetcher()
        jira.get_issues_for_cluster = AsyncMock(side_effect=RuntimeError("503"))

        with pytest.raises(CollaboratorUnavailableError):
            await _assembler(service_log_fetcher=service_logs, jira_fetcher=jira).assemble(
                ContextRequest(cluster_key="demo", fail_fast=True)
            )

        assert [t for t in asyncio.all_tasks() if t is not asyncio.current_task()] == []
        await asyncio.sleep(0.3)
        assert finished == []

    @pytest.mark.asyncio
    async def test_one_failing_alert_service_keeps_the_others(self) -> None:
        async def current(service_id: str) -> list[Incident]:
            if service_id == "PDFAIL":
                raise RuntimeError("502")
            return [Incident(incident_id="i1", title="KubeAPIDown", urgency="high")]

        async def historical(service_id: str, _since: datetime) -> list[IncidentOccurrenceTracker]:
            if service_id == "PDFAIL":
                raise RuntimeError("502")
            return [IncidentOccurrenceTracker(incident_name="NodeDown", count=2, last_occurrence="2024-05-01")]

        alerts = _alert_fetcher(discovered=[])
        alerts.get_current_incidents = AsyncMock(side_effect=current)
        alerts.get_historical_trackers = AsyncMock(side_effect=historical)

        snapshot = await _assembler(alert_fetcher=alerts).assemble(
            ContextRequest(cluster_key="demo", service_ids=("PDFAIL", "PDOK"))
        )

        assert snapshot.alert_service_ids == ("PDFAIL", "PDOK")
        assert snapshot.failed_current_services == ("PDFAIL",)
        assert snapshot.failed_historical_services == ("PDFAIL",)
        assert snapshot.unavailable_sections == ("current_incidents", "historical_incidents")
        assert snapshot.historical_alert_total == 2

        text = render_detailed(snapshot)
        failed_block = "Service: https://redhat.pagerduty.com/service-directory/PDFAIL:\n\tdata unavailable"
        assert text.count(failed_block) == 2
        assert "PDFAIL:\n\tNone" not in text
        assert "KubeAPIDown" in text
        assert "NodeDown" in text
        assert "Total number of incidents [ 2 ] in [ 30 ] days" in text
