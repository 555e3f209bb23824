"""Audit-trail event classifier.

Incident responders scanning an audit trail drown in read-only calls and
automation chatter. Two passes keep the trail readable:

1. Noise filter -- an event whose name contains any fragment of
   ``_NOISE_FRAGMENTS`` (case-sensitive substring match) is dropped. Names
   that match nothing are kept: the filter fails open.

2. Actor redaction -- for kept events, an actor that starts with the
   automated service-account prefix is cleared to None. The event itself
   stays in the trail.

This is a precision filter for humans, not a security control.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import Final

from clusterctx.models.cluster import AuditEvent

# Read-only, descriptive and routine key-management operations
_NOISE_FRAGMENTS: Final[tuple[str, ...]] = (
    "Get",
    "List",
    "Describe",
    "AssumeRole",
    "Encrypt",
    "Decrypt",
    "LookupEvents",
    "GenerateDataKey",
)

AUTOMATED_ACTOR_PREFIX: Final[str] = "RH-SRE-"


def is_noise_event(event_name: str) -> bool:
    """Return True if *event_name* contains a known noise fragment."""
    return any(fragment in event_name for fragment in _NOISE_FRAGMENTS)


def redact_actor(username: str | None) -> str | None:
    """Clear *username* when it names an automated service account."""
    if username is not None and username.startswith(AUTOMATED_ACTOR_PREFIX):
        return None
    return username


def classify(events: Iterable[AuditEvent]) -> tuple[AuditEvent, ...]:
    """Drop noise events and redact automated actors, preserving order."""
    kept: list[AuditEvent] = []
    for event in events:
        if is_noise_event(event.name):
            continue
        username = redact_actor(event.username)
        if username != event.username:
            event = replace(event, username=username)
        kept.append(event)
    return tuple(kept)
