from __future__ import annotations

from collections.abc import Iterator

import pytest
import structlog


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """Undo setup_logging() and bind_run_context() calls between tests."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
