"""Error kinds raised while building and rendering a cluster context."""

from __future__ import annotations


class ContextError(Exception):
    """Base class for every error clusterctx raises on purpose."""


class ClusterNotFoundError(ContextError):
    """The inventory lookup did not resolve to exactly one cluster."""

    def __init__(self, key: str, reason: str = "") -> None:
        message = f"cluster not found: {key}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.key = key


class CollaboratorUnavailableError(ContextError):
    """A collaborator could not deliver its section of the snapshot."""

    def __init__(self, collaborator: str, detail: str = "") -> None:
        message = f"{collaborator} unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.collaborator = collaborator


class MalformedResponseError(CollaboratorUnavailableError):
    """A collaborator answered with data that does not fit the snapshot shape.

    Handled exactly like CollaboratorUnavailableError by the assembler.
    """


class InvalidConfigurationError(ContextError):
    """A configuration value was rejected before any network call."""
