"""Pytest configuration and fixtures for quick-search tests."""

from collections.abc import Callable

import httpx
import pytest

from quick_search.credentials import CredentialStore
from quick_search.sources import default_sources
from quick_search.transport import FetchTransport


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "e2e: End-to-end tests hitting the real sources and a real browser")
    config.addinivalue_line("markers", "slow: Tests that take longer to run")


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def store(tmp_path) -> CredentialStore:
    return CredentialStore(directory=tmp_path / "credentials")


@pytest.fixture
def sources():
    return default_sources()


@pytest.fixture
def make_transport(store) -> Callable[..., FetchTransport]:
    """Build a FetchTransport whose requests are answered by `handler`."""

    def _make(handler: Callable[[httpx.Request], httpx.Response], timeout_ms: int = 1000) -> FetchTransport:
        return FetchTransport(credentials=store, default_timeout_ms=timeout_ms, http_transport=httpx.MockTransport(handler))

    return _make
