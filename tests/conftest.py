"""Pytest configuration shared across the suite."""

import pytest

try:
    from . import _bootstrap  # noqa: F401
except ImportError:  # pragma: no cover - fallback for rootdir-less runs
    import _bootstrap  # type: ignore # noqa: F401


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"
