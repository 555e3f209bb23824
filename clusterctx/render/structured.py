"""Structured encoding: the whole snapshot as one JSON object.

Field names are the dataclass field names and form a stable contract for
downstream tooling. Only raw snapshot fields are emitted; nothing is
pre-formatted.
"""

from __future__ import annotations

from pydantic import TypeAdapter

from clusterctx.models.snapshot import ContextSnapshot

_SNAPSHOT_ADAPTER: TypeAdapter[ContextSnapshot] = TypeAdapter(ContextSnapshot)


def render_structured(snapshot: ContextSnapshot) -> str:
    return _SNAPSHOT_ADAPTER.dump_json(snapshot, indent=2).decode("utf-8")


def parse_structured(document: str | bytes) -> ContextSnapshot:
    """Decode a structured report back into a ContextSnapshot."""
    return _SNAPSHOT_ADAPTER.validate_json(document)
