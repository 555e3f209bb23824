"""Alerting incident data structures."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class Urgency(StrEnum):
    """Alerting urgency buckets."""

    HIGH = "high"
    LOW = "low"


@dataclass(frozen=True)
class Incident:
    """A currently open alerting incident."""

    incident_id: str = ""
    incident_key: str = ""
    title: str = ""
    urgency: str = ""
    status: str = ""
    created_at: datetime | None = None


@dataclass(frozen=True)
class IncidentOccurrenceTracker:
    """Rollup of one incident type within a service's alerting history.

    Created fresh for every report; never persisted.
    """

    incident_name: str = ""
    count: int = 0
    last_occurrence: str = ""
