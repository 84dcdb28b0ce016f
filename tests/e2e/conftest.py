"""Playwright fixtures and configuration for E2E tests.

These tests drive a running documentation site in a real browser. They are
skipped unless ``DOCSFRONT_E2E_BASE_URL`` points at one, e.g. a local build
serving the packaged fixture content.
"""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load .env file from project root
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(env_path)


def pytest_collection_modifyitems(config, items):
    if os.environ.get("DOCSFRONT_E2E_BASE_URL"):
        return
    skip_e2e = pytest.mark.skip(reason="DOCSFRONT_E2E_BASE_URL not set")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


@pytest.fixture(scope="session")
def base_url():
    """Base URL of the documentation site under test."""
    return os.environ.get("DOCSFRONT_E2E_BASE_URL", "http://localhost:4000").rstrip("/")


@pytest.fixture(scope="session")
def search_enabled():
    """Search needs a search backend; set DOCSFRONT_E2E_SEARCH=1 when one is running."""
    if not os.environ.get("DOCSFRONT_E2E_SEARCH"):
        pytest.skip("No search backend, no tests involving search")
    return True


@pytest.fixture(scope="session")
def browser_context_args(browser_context_args, base_url):
    """Configure browser context settings."""
    return {
        **browser_context_args,
        "base_url": base_url,
        "viewport": {"width": 1280, "height": 720},
        "ignore_https_errors": True,
    }


@pytest.fixture
def recorded_events(page):
    """Intercept analytics posts; returns the non-exit payloads seen so far."""
    events = []

    def handle(route):
        payload = route.request.post_data_json or {}
        route.fulfill(status=200, json={"ok": True})
        # Exit events go out as beacons whose payload is not observable.
        if payload.get("type") != "exit":
            events.append(payload)

    page.route("**/api/events", handle)
    return events
