"""Shared test fixtures for the Docs Agent test suite."""

from __future__ import annotations

import os
from unittest.mock import AsyncMock, MagicMock

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py won't fail on module load.
    """
    os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key-123")


@pytest.fixture
def mock_docs_client():
    """A Context7Client stand-in with async search/fetch methods."""
    client = MagicMock()
    client.search_libraries = AsyncMock(return_value=[])
    client.fetch_documentation = AsyncMock(return_value="")
    return client


@pytest.fixture
def mock_runtime():
    """An AgentRuntime stand-in whose scheduling calls can be inspected."""
    runtime = MagicMock()
    runtime.schedule = AsyncMock()
    runtime.get_schedules = AsyncMock(return_value=[])
    runtime.cancel_schedule = AsyncMock(return_value=None)
    return runtime


@pytest.fixture
def tool_context(mock_runtime, mock_docs_client):
    from src.tools.registry import ToolContext

    return ToolContext("test-session", mock_runtime, mock_docs_client)


@pytest.fixture
def mock_http_response():
    """Factory fixture for creating mock httpx responses."""

    def _make(*, json_data=None, text: str = "", status_code: int = 200):
        mock = MagicMock()
        mock.status_code = status_code
        mock.is_success = 200 <= status_code < 300
        mock.json.return_value = json_data
        mock.text = text
        return mock

    return _make
