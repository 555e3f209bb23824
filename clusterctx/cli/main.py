"""clusterctx command-line interface.

Commands:
    clusterctx context CLUSTER_ID [-o long|short|json]   Print the cluster context.
    clusterctx version                                   Print version and exit.

Collaborator endpoints and credentials come from ``CLUSTERCTX_*`` environment
variables; the flags below override them for a single run.  The report goes
to stdout, logs go to stderr.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace

import click

from clusterctx import __version__
from clusterctx.config import load_config
from clusterctx.errors import ContextError
from clusterctx.models.config import ContextConfig
from clusterctx.models.snapshot import ContextRequest
from clusterctx.observability.logging import bind_run_context, setup_logging
from clusterctx.render import resolve_output_format
from clusterctx.report import generate_report, open_assembler

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _merge_flags(
    config: ContextConfig,
    profile: str | None,
    jira_token: str | None,
    pd_token: str | None,
    service_ids: tuple[str, ...],
) -> ContextConfig:
    """Overlay per-run flags on the environment configuration."""
    if profile:
        config = replace(config, aws=replace(config.aws, profile=profile))
    if jira_token:
        config = replace(config, jira=replace(config.jira, token=jira_token))
    if pd_token:
        config = replace(config, pagerduty=replace(config.pagerduty, token=pd_token))
    if service_ids:
        config = replace(config, pagerduty=replace(config.pagerduty, service_ids=service_ids))
    return config


async def _run(config: ContextConfig, request: ContextRequest, output: str, verbose: bool) -> str:
    async with open_assembler(config) as assembler:
        return await generate_report(request, output, assembler, verbose=verbose)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
def cli() -> None:
    """clusterctx: one-shot diagnostic context for a managed cluster."""


# ---------------------------------------------------------------------------
# clusterctx version
# ---------------------------------------------------------------------------


@cli.command("version")
def cmd_version() -> None:
    """Print the clusterctx version and exit."""
    click.echo(f"clusterctx {__version__}")


# ---------------------------------------------------------------------------
# clusterctx context
# ---------------------------------------------------------------------------


@cli.command("context")
@click.argument("cluster_id")
@click.option("--output", "-o", default=None, metavar="FORMAT", help="Output format: long, short or json.")
@click.option("--days", "-d", type=int, default=None, help="Lookback window in days for service logs and alerts.")
@click.option("--pages", type=int, default=None, help="Maximum number of CloudTrail pages to read.")
@click.option("--profile", "-p", default=None, help="AWS profile used for the CloudTrail lookup.")
@click.option("--full", is_flag=True, default=False, help="Also read the CloudTrail audit trail (slow).")
@click.option("--verbose", is_flag=True, default=False, help="Show issue descriptions and debug logs.")
@click.option("--jiratoken", "jira_token", default=None, help="Jira personal access token.")
@click.option("--pd-token", "pd_token", default=None, help="PagerDuty API token.")
@click.option(
    "--service-id",
    "service_ids",
    multiple=True,
    help="PagerDuty service id to report on.  Repeatable; listed before discovered services.",
)
@click.option("--all-service-logs", is_flag=True, default=False, help="Include service logs from every sender.")
@click.option("--internal-only", is_flag=True, default=False, help="Only show internal service logs.")
@click.option(
    "--fail-fast",
    is_flag=True,
    default=False,
    help="Abort on the first collaborator failure instead of marking the section unavailable.",
)
def cmd_context(
    cluster_id: str,
    output: str | None,
    days: int | None,
    pages: int | None,
    profile: str | None,
    full: bool,
    verbose: bool,
    jira_token: str | None,
    pd_token: str | None,
    service_ids: tuple[str, ...],
    all_service_logs: bool,
    internal_only: bool,
    fail_fast: bool,
) -> None:
    """Print the diagnostic context of CLUSTER_ID (id, external id or name).

    Example:

        clusterctx context 1a2b3c4d -o short --days 7
    """
    try:
        config = load_config()
    except ValueError as err:
        raise click.ClickException(str(err)) from err

    output = output or config.output
    # Reject a bad format before any collaborator is built.
    try:
        resolve_output_format(output)
    except ContextError as err:
        raise click.ClickException(str(err)) from err

    if days is not None and days < 1:
        raise click.UsageError(f"--days must be at least 1, got: {days}")
    if pages is not None and pages < 1:
        raise click.UsageError(f"--pages must be at least 1, got: {pages}")

    setup_logging("debug" if verbose else config.log.level)
    bind_run_context(cluster_key=cluster_id, output=output)
    config = _merge_flags(config, profile, jira_token, pd_token, service_ids)

    request = ContextRequest(
        cluster_key=cluster_id,
        window_days=days if days is not None else config.days,
        page_limit=pages if pages is not None else config.pages,
        service_ids=config.pagerduty.service_ids,
        full=full,
        all_service_logs=all_service_logs,
        internal_service_logs_only=internal_only,
        fail_fast=fail_fast or config.fail_fast,
    )

    try:
        report = asyncio.run(_run(config, request, output, verbose))
    except ContextError as err:
        raise click.ClickException(str(err)) from err

    click.echo(report)


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
