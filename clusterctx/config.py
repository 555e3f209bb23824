"""Load ContextConfig from CLUSTERCTX_* environment variables.

Unset variables fall back to the dataclass defaults. Integer values are
clamped to their allowed range rather than rejected; an unknown log level is
rejected with ValueError.
"""

from __future__ import annotations

import os

from clusterctx.models.config import (
    AwsConfig,
    ContextConfig,
    DynatraceConfig,
    JiraConfig,
    LogConfig,
    OcmConfig,
    PagerDutyConfig,
)

_PREFIX = "CLUSTERCTX_"
_TRUTHY = frozenset({"1", "true", "yes", "on"})
_LOG_LEVELS = frozenset({"debug", "info", "warning", "error", "critical"})


def _env(name: str, default: str = "") -> str:
    return os.environ.get(_PREFIX + name, default).strip()


def _env_bool(name: str, default: bool = False) -> bool:
    raw = _env(name)
    if not raw:
        return default
    return raw.lower() in _TRUTHY


def _env_int(name: str, default: int, minimum: int, maximum: int) -> int:
    raw = _env(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError as err:
        raise ValueError(f"{_PREFIX}{name} must be an integer, got: {raw!r}") from err
    return max(minimum, min(value, maximum))


def _env_list(name: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in _env(name).split(",") if item.strip())


def _log_level() -> str:
    level = _env("LOG_LEVEL", "warning").lower()
    if level not in _LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level!r}. Must be one of {sorted(_LOG_LEVELS)}")
    return level


def load_config() -> ContextConfig:
    """Build a ContextConfig from the process environment."""
    return ContextConfig(
        output=_env("OUTPUT", "long"),
        days=_env_int("DAYS", 30, 1, 365),
        pages=_env_int("PAGES", 40, 1, 500),
        fail_fast=_env_bool("FAIL_FAST"),
        http_timeout_seconds=_env_int("HTTP_TIMEOUT", 30, 1, 300),
        ocm=OcmConfig(
            url=_env("OCM_URL", "https://api.openshift.com"),
            token=_env("OCM_TOKEN"),
        ),
        jira=JiraConfig(
            url=_env("JIRA_URL", "https://issues.redhat.com"),
            token=_env("JIRA_TOKEN"),
        ),
        pagerduty=PagerDutyConfig(
            url=_env("PAGERDUTY_URL", "https://api.pagerduty.com"),
            token=_env("PAGERDUTY_TOKEN"),
            service_ids=_env_list("PAGERDUTY_SERVICE_IDS"),
        ),
        dynatrace=DynatraceConfig(
            url=_env("DYNATRACE_URL"),
            token=_env("DYNATRACE_TOKEN"),
        ),
        aws=AwsConfig(
            profile=_env("AWS_PROFILE"),
            region=_env("AWS_REGION"),
        ),
        log=LogConfig(level=_log_level()),
    )
