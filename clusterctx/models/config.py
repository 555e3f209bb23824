"""Configuration tree for clusterctx."""

from __future__ import annotations

from dataclasses import dataclass, field

from clusterctx.models.snapshot import DEFAULT_PAGE_LIMIT, DEFAULT_WINDOW_DAYS


@dataclass(frozen=True)
class OcmConfig:
    """Cluster inventory and service-log API."""

    url: str = "https://api.openshift.com"
    token: str = ""


@dataclass(frozen=True)
class JiraConfig:
    url: str = "https://issues.redhat.com"
    token: str = ""


@dataclass(frozen=True)
class PagerDutyConfig:
    """Alerting API. ``service_ids`` are always reported, in this order."""

    url: str = "https://api.pagerduty.com"
    token: str = ""
    service_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class DynatraceConfig:
    """Hosted-control-plane health tenant. Empty ``url`` disables the lookup."""

    url: str = ""
    token: str = ""


@dataclass(frozen=True)
class AwsConfig:
    profile: str = ""
    region: str = ""


@dataclass(frozen=True)
class LogConfig:
    level: str = "warning"


@dataclass(frozen=True)
class ContextConfig:
    """Top-level configuration, populated from CLUSTERCTX_* env vars."""

    output: str = "long"
    days: int = DEFAULT_WINDOW_DAYS
    pages: int = DEFAULT_PAGE_LIMIT
    fail_fast: bool = False
    http_timeout_seconds: int = 30
    ocm: OcmConfig = field(default_factory=OcmConfig)
    jira: JiraConfig = field(default_factory=JiraConfig)
    pagerduty: PagerDutyConfig = field(default_factory=PagerDutyConfig)
    dynatrace: DynatraceConfig = field(default_factory=DynatraceConfig)
    aws: AwsConfig = field(default_factory=AwsConfig)
    log: LogConfig = field(default_factory=LogConfig)
