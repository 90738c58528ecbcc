"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

import copy
from typing import Any, Generator

import pytest
from fastapi.testclient import TestClient

from chatrelay.core.sessions import SessionStore
from chatrelay.main import create_app
from chatrelay.settings import GatewaySettings, load_settings
from chatrelay.testing import FakeRelayUpstream, FakeSite

SITE_URL = "http://site.local"
RELAY_URL = "http://relay.local/coding"


# =============================================================================
# Configuration Builders
# =============================================================================


def build_config(**sections: Any) -> dict[str, Any]:
    """Build a gateway config pointing at the in-process fakes.

    Keyword arguments replace (or add) top-level config sections.
    """
    config: dict[str, Any] = {
        "site": {
            "base_url": SITE_URL,
            "cookie": "wordpress_logged_in=abc",
            "ajax_nonce": "nonce-123",
            "session_id": "site-session",
            "post_id": "42",
        },
        "models": {"gpt-4o-mini": "25865", "deepseek-v3": "25873"},
        "relay": {"base_url": RELAY_URL},
    }
    config.update(copy.deepcopy(sections))
    return config


def build_settings(**sections: Any) -> GatewaySettings:
    """Settings from ``build_config`` with an empty environment."""
    return load_settings(build_config(**sections), environ={})


# =============================================================================
# Fake Upstream Fixtures
# =============================================================================


@pytest.fixture
def fake_site() -> FakeSite:
    """A fake aipkit site; its ``transport`` stands in for SITE_URL."""
    return FakeSite()


@pytest.fixture
def fake_relay() -> FakeRelayUpstream:
    """A fake OpenAI-compatible upstream; its ``transport`` stands in for RELAY_URL."""
    return FakeRelayUpstream()


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def settings() -> GatewaySettings:
    return build_settings()


@pytest.fixture
def client(
    settings: GatewaySettings, store: SessionStore, fake_site: FakeSite, fake_relay: FakeRelayUpstream
) -> Generator[TestClient, None, None]:
    """A TestClient over an app wired to the fakes and sharing the ``store`` fixture."""
    app = create_app(
        settings, store=store, site_transport=fake_site.transport, relay_transport=fake_relay.transport
    )
    with TestClient(app) as test_client:
        yield test_client
