"""Incident history summarizer.

Turns the per-service incident rollups of the alerting system into a report
section. Output order follows the caller-supplied service id list, never the
mapping's iteration order, so two runs over the same data print the same text.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from clusterctx.models.alerts import Incident, IncidentOccurrenceTracker, Urgency
from clusterctx.tables import DATA_UNAVAILABLE, format_table

_HEADERS = ("Type", "Count", "Last Occurrence")


@dataclass(frozen=True)
class IncidentHistorySummary:
    """Rendered history section and the grand total it reports."""

    text: str
    total: int


def summarize_incident_history(
    service_ids: Sequence[str],
    trackers_by_service: Mapping[str, Sequence[IncidentOccurrenceTracker]],
    window_days: int,
    service_label: Callable[[str], str] = str,
    unavailable: Collection[str] = (),
) -> IncidentHistorySummary:
    """Summarise incident history per service, in *service_ids* order.

    A service without history is still listed, with no rows, so the reader
    sees which services were checked. Services in *unavailable* print
    ``data unavailable`` instead of a table and add nothing to the total.
    The closing line echoes *window_days* verbatim.
    """
    blocks: list[str] = []
    total = 0
    for service_id in service_ids:
        if service_id in unavailable:
            blocks.append(f"Service: {service_label(service_id)}:")
            blocks.append(f"\t{DATA_UNAVAILABLE}")
            continue
        trackers = trackers_by_service.get(service_id, ())
        rows = [(t.incident_name, t.count, t.last_occurrence) for t in trackers]
        total += sum(t.count for t in trackers)
        blocks.append(f"Service: {service_label(service_id)}:")
        blocks.append(format_table(_HEADERS, rows, indent="\t"))
    blocks.append(f"\tTotal number of incidents [ {total} ] in [ {window_days} ] days")
    return IncidentHistorySummary(text="\n".join(blocks), total=total)


def history_total(
    service_ids: Sequence[str],
    trackers_by_service: Mapping[str, Sequence[IncidentOccurrenceTracker]],
) -> int:
    """Sum of all tracked counts across *service_ids*."""
    return sum(t.count for sid in service_ids for t in trackers_by_service.get(sid, ()))


def track_occurrences(incidents: Iterable[Incident]) -> list[IncidentOccurrenceTracker]:
    """Group raw historical incidents by title into occurrence trackers.

    Trackers come out in order of first appearance; ``last_occurrence`` is the
    newest creation date seen for the title, formatted ``YYYY-MM-DD``.
    """
    counts: dict[str, int] = {}
    newest: dict[str, datetime | None] = {}
    for incident in incidents:
        name = incident.title
        counts[name] = counts.get(name, 0) + 1
        seen = newest.get(name)
        if incident.created_at is not None and (seen is None or incident.created_at > seen):
            newest[name] = incident.created_at
        else:
            newest.setdefault(name, None)

    trackers: list[IncidentOccurrenceTracker] = []
    for name, count in counts.items():
        last = newest[name]
        trackers.append(
            IncidentOccurrenceTracker(
                incident_name=name,
                count=count,
                last_occurrence=last.strftime("%Y-%m-%d") if last is not None else "",
            )
        )
    return trackers


def urgency_breakdown(incidents: Iterable[Incident]) -> tuple[int, int]:
    """Return ``(high, low)`` counts; unknown urgencies count as neither."""
    high = low = 0
    for incident in incidents:
        urgency = incident.urgency.lower()
        if urgency == Urgency.HIGH:
            high += 1
        elif urgency == Urgency.LOW:
            low += 1
    return high, low
