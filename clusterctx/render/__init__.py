"""Report rendering: one ContextSnapshot, three encodings.

Every encoding derives its content from the snapshot alone and is pure: the
same snapshot always renders to the same text.
"""

from __future__ import annotations

from enum import StrEnum

from clusterctx.errors import InvalidConfigurationError
from clusterctx.models.snapshot import ContextSnapshot
from clusterctx.render.compact import render_compact
from clusterctx.render.detailed import render_detailed
from clusterctx.render.structured import render_structured


class OutputFormat(StrEnum):
    """Accepted values of the ``--output`` option."""

    SHORT = "short"
    LONG = "long"
    JSON = "json"


def resolve_output_format(value: str) -> OutputFormat:
    """Map an option value to an OutputFormat.

    Raises InvalidConfigurationError for anything else; there is no fallback.
    """
    try:
        return OutputFormat(value)
    except ValueError as err:
        raise InvalidConfigurationError(f"unknown Output Format: {value}") from err


def render(snapshot: ContextSnapshot, output: str, verbose: bool = False) -> str:
    """Render *snapshot* in the encoding named by *output*."""
    output_format = resolve_output_format(output)
    if output_format is OutputFormat.SHORT:
        return render_compact(snapshot)
    if output_format is OutputFormat.JSON:
        return render_structured(snapshot)
    return render_detailed(snapshot, verbose=verbose)


__all__ = ["OutputFormat", "render", "resolve_output_format"]
