"""Report pipeline: validate output, assemble the context, render it.

``open_assembler`` wires the real collaborators from configuration and closes
their connection pools on exit.
"""

from __future__ import annotations

import contextlib
from collections.abc import AsyncIterator
from typing import Protocol

from clusterctx.assembler.context import ContextAssembler
from clusterctx.clients.cloudtrail import CloudTrailClientGenerator
from clusterctx.clients.dynatrace import DynatraceClient
from clusterctx.clients.jira import JiraClient
from clusterctx.clients.ocm import OcmClient
from clusterctx.clients.pagerduty import PagerDutyClient
from clusterctx.models.config import ContextConfig
from clusterctx.models.snapshot import ContextRequest, ContextSnapshot
from clusterctx.observability.logging import get_logger
from clusterctx.render import render, resolve_output_format


class _AssemblerProto(Protocol):
    async def assemble(self, request: ContextRequest) -> ContextSnapshot: ...


async def generate_report(
    request: ContextRequest,
    output: str,
    assembler: _AssemblerProto,
    verbose: bool = False,
) -> str:
    """Return the rendered report for *request*.

    The output format is validated before the assembler is touched, so an
    InvalidConfigurationError never costs a network call.
    """
    resolve_output_format(output)
    snapshot = await assembler.assemble(request)
    return render(snapshot, output, verbose=verbose)


@contextlib.asynccontextmanager
async def open_assembler(config: ContextConfig) -> AsyncIterator[ContextAssembler]:
    """Yield a ContextAssembler backed by the real collaborators."""
    log = get_logger("report")
    timeout = float(config.http_timeout_seconds)

    ocm = OcmClient(config.ocm, timeout)
    jira = JiraClient(config.jira, timeout)
    pagerduty = PagerDutyClient(config.pagerduty, timeout) if config.pagerduty.token else None
    dynatrace = DynatraceClient(config.dynatrace, timeout) if config.dynatrace.url else None
    if pagerduty is None:
        log.info("collaborator_not_configured", collaborator="alerting")
    if dynatrace is None:
        log.info("collaborator_not_configured", collaborator="environment_health")

    try:
        yield ContextAssembler(
            cluster_fetcher=ocm,
            service_log_fetcher=ocm,
            jira_fetcher=jira,
            health_fetcher=dynatrace,
            alert_fetcher=pagerduty,
            audit_clients=CloudTrailClientGenerator(config.aws),
        )
    finally:
        await ocm.aclose()
        await jira.aclose()
        if pagerduty is not None:
            await pagerduty.aclose()
        if dynatrace is not None:
            await dynatrace.aclose()
