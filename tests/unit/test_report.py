"""Unit tests for clusterctx.report."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from clusterctx.errors import InvalidConfigurationError
from clusterctx.models.cluster import ClusterIdentity
from clusterctx.models.config import ContextConfig, DynatraceConfig, PagerDutyConfig
from clusterctx.models.snapshot import ContextRequest, ContextSnapshot
from clusterctx.report import generate_report, open_assembler


def _assembler() -> MagicMock:
    assembler = MagicMock()
    assembler.assemble = AsyncMock(
        return_value=ContextSnapshot(cluster=ClusterIdentity(cluster_id="c-1", name="demo"))
    )
    return assembler


class TestGenerateReport:
    @pytest.mark.asyncio
    async def test_unknown_output_makes_no_collaborator_calls(self) -> None:
        assembler = _assembler()
        with pytest.raises(InvalidConfigurationError):
            await generate_report(ContextRequest(cluster_key="c-1"), "xml", assembler)
        assembler.assemble.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_renders_assembled_snapshot(self) -> None:
        assembler = _assembler()
        request = ContextRequest(cluster_key="c-1")
        text = await generate_report(request, "short", assembler)
        assembler.assemble.assert_awaited_once_with(request)
        assert "demo -- c-1" in text


class TestOpenAssembler:
    @pytest.mark.asyncio
    async def test_optional_collaborators_follow_configuration(self) -> None:
        with (
            patch("clusterctx.report.PagerDutyClient") as pagerduty_cls,
            patch("clusterctx.report.DynatraceClient") as dynatrace_cls,
        ):
            async with open_assembler(ContextConfig()) as assembler:
                assert assembler is not None
            pagerduty_cls.assert_not_called()
            dynatrace_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_closes_every_client(self) -> None:
        config = ContextConfig(
            pagerduty=PagerDutyConfig(token="pd"),
            dynatrace=DynatraceConfig(url="https://tenant.example.com"),
        )
        with (
            patch("clusterctx.report.OcmClient") as ocm_cls,
            patch("clusterctx.report.JiraClient") as jira_cls,
            patch("clusterctx.report.PagerDutyClient") as pagerduty_cls,
            patch("clusterctx.report.DynatraceClient") as dynatrace_cls,
        ):
            for cls in (ocm_cls, jira_cls, pagerduty_cls, dynatrace_cls):
                cls.return_value.aclose = AsyncMock()

            async with open_assembler(config):
                pass

            for cls in (ocm_cls, jira_cls, pagerduty_cls, dynatrace_cls):
                cls.return_value.aclose.assert_awaited_once()
