"""pytest fixtures for docsfront."""

from __future__ import annotations

import asyncio
import json
import sys
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from docsfront.analytics import AnalyticsDispatcher
from docsfront.catalog import PageCatalog
from docsfront.client import DocsApiClient
from docsfront.main import EventLog, create_app
from docsfront.models import PageInfo, Suggestion
from docsfront.session import BrowsingSession
from docsfront.settings import WidgetTimings
from docsfront.store import MemoryPreferenceStore

FIXTURES_DIR = SRC_DIR / "docsfront" / "fixtures"


class FakeRedis:
    """Minimal sync Redis stub for tests."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def ping(self) -> bool:
        return True


class BrokenStore:
    """Preference store whose every operation fails."""

    def get(self, key: str) -> str | None:
        raise ConnectionError("store offline")

    def set(self, key: str, value: str) -> None:
        raise ConnectionError("store offline")

    def delete(self, key: str) -> None:
        raise ConnectionError("store offline")


class FakeSearchSource:
    """Suggestion source with scripted answers and optional gates.

    A gate is an ``asyncio.Event`` that the lookup for that query waits on,
    which lets a test hold an older response back until a newer one landed.
    """

    def __init__(
        self,
        suggestions: dict[str, list[str]] | None = None,
        results: dict[str, list[tuple[str, str]]] | None = None,
    ) -> None:
        self.suggestion_answers = suggestions or {}
        self.search_answers = results or {}
        self.gates: dict[str, asyncio.Event] = {}
        self.failing: set[str] = set()
        self.calls: list[str] = []

    async def suggestions(self, query: str) -> list[Suggestion]:
        self.calls.append(query)
        gate = self.gates.get(query)
        if gate is not None:
            await gate.wait()
        if query in self.failing:
            raise httpx.ConnectError("suggestions unavailable")
        return [Suggestion(text=text) for text in self.suggestion_answers.get(query, [])]

    async def search(self, query: str) -> list[Suggestion]:
        gate = self.gates.get(query)
        if gate is not None:
            await gate.wait()
        if query in self.failing:
            raise httpx.ConnectError("search unavailable")
        return [
            Suggestion(text=title, target_url=url)
            for title, url in self.search_answers.get(query, [])
        ]


class FakePreviewSource:
    """Page info lookups served from a dict."""

    def __init__(self, pages: dict[str, PageInfo] | None = None) -> None:
        self.pages = pages or {}
        self.calls: list[str] = []

    async def page_info(self, pathname: str) -> PageInfo:
        self.calls.append(pathname)
        if pathname not in self.pages:
            raise LookupError(pathname)
        return self.pages[pathname]


@pytest.fixture()
def fast_timings() -> WidgetTimings:
    return WidgetTimings(search_debounce=0.01, hover_show_delay=0.01, hover_hide_delay=0.01)


@pytest.fixture()
def search_source() -> FakeSearchSource:
    return FakeSearchSource(
        suggestions={
            "": [
                "What is GitHub and how do I get started?",
                "What is GitHub Copilot and how do I get started?",
                "How do I connect to GitHub with SSH?",
                "How do I generate a personal access token?",
                "How do I clone a repository?",
            ],
            "rest": [
                "How do I manage OAuth app access restrictions for my organization?",
                "How do I test my SSH connection to GitHub?",
                "How do I list REST endpoints?",
            ],
        },
        results={
            "serve playwright": [("For Playwright", "/get-started/foo/for-playwright")],
        },
    )


@pytest.fixture()
def preview_source() -> FakePreviewSource:
    return FakePreviewSource(
        {
            "/en/get-started/start-your-journey": PageInfo(
                title="Start your journey",
                intro="Get started using HubGit to manage Git repositories.",
            ),
            "/en/pages/quickstart": PageInfo(
                title="Quickstart for HubGit Pages",
                intro="You can use HubGit Pages to showcase some open source projects.",
            ),
        }
    )


@pytest.fixture()
def store() -> MemoryPreferenceStore:
    return MemoryPreferenceStore()


@pytest.fixture()
def broken_store() -> BrokenStore:
    return BrokenStore()


@pytest.fixture()
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture()
def catalog() -> PageCatalog:
    return PageCatalog.load(FIXTURES_DIR)


@pytest.fixture()
def event_log() -> EventLog:
    return EventLog()


@pytest.fixture()
def app(catalog: PageCatalog, event_log: EventLog) -> FastAPI:
    return create_app(catalog=catalog, event_log=event_log)


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.fixture()
def beacon_transport(client: TestClient) -> httpx.MockTransport:
    """Sync transport that forwards beacon posts to the fixture app."""

    def handler(request: httpx.Request) -> httpx.Response:
        response = client.post(
            request.url.path,
            content=request.content,
            headers={"content-type": "application/json"},
        )
        return httpx.Response(response.status_code, content=response.content)

    return httpx.MockTransport(handler)


@pytest.fixture()
async def api_client(app: FastAPI) -> AsyncIterator[DocsApiClient]:
    api = DocsApiClient("http://test", transport=ASGITransport(app=app))
    try:
        yield api
    finally:
        await api.close()


@pytest.fixture()
async def session(
    catalog: PageCatalog,
    api_client: DocsApiClient,
    store: MemoryPreferenceStore,
    fast_timings: WidgetTimings,
    beacon_transport: httpx.MockTransport,
) -> AsyncIterator[BrowsingSession]:
    dispatcher = AnalyticsDispatcher(api_client, beacon_transport=beacon_transport)
    browsing = BrowsingSession(
        catalog,
        client=api_client,
        store=store,
        dispatcher=dispatcher,
        timings=fast_timings,
    )
    try:
        yield browsing
    finally:
        await browsing.close()


@pytest.fixture()
def posted_events() -> list[dict[str, Any]]:
    return []


@pytest.fixture()
def recording_transport(posted_events: list[dict[str, Any]]) -> httpx.MockTransport:
    """Transport that records every analytics payload it receives."""

    def handler(request: httpx.Request) -> httpx.Response:
        posted_events.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    return httpx.MockTransport(handler)


@pytest.fixture()
async def dispatcher(
    recording_transport: httpx.MockTransport,
) -> AsyncIterator[AnalyticsDispatcher]:
    api = DocsApiClient("http://test", transport=recording_transport)
    events_dispatcher = AnalyticsDispatcher(api, beacon_transport=recording_transport)
    try:
        yield events_dispatcher
    finally:
        await events_dispatcher.close()
        await api.close()
