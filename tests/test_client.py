"""Docs API client tests."""

from __future__ import annotations

import httpx
import pytest

from docsfront.client import DocsAPIError, DocsApiClient, MalformedResponseError
from docsfront.models import AnalyticsEvent


def _client_for(payload, status_code: int = 200) -> DocsApiClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if isinstance(payload, str):
            return httpx.Response(status_code, text=payload)
        return httpx.Response(status_code, json=payload)

    return DocsApiClient("http://test", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_client_calls(api_client, event_log) -> None:
    health = await api_client.health()
    assert health["status"] == "ok"

    await api_client.post_event(AnalyticsEvent(type="pageview", path="/en"))
    assert [event.type for event in event_log.recorded()] == ["pageview"]

    suggestions = await api_client.suggestions("")
    assert len(suggestions) == 5

    results = await api_client.search("serve playwright")
    assert results[0].target_url == "/get-started/foo/for-playwright"

    info = await api_client.page_info("/en/pages/quickstart")
    assert info.title == "Quickstart for HubGit Pages"
    assert info.product == "Pages"


@pytest.mark.asyncio
async def test_client_raises_api_error(api_client) -> None:
    with pytest.raises(DocsAPIError) as excinfo:
        await api_client.page_info("/en/nowhere")
    assert excinfo.value.status_code == 404
    assert "Page not found" in str(excinfo.value)


@pytest.mark.asyncio
async def test_client_error_with_text_payload() -> None:
    async with _client_for("upstream down", status_code=502) as client:
        with pytest.raises(DocsAPIError) as excinfo:
            await client.suggestions("rest")
    assert excinfo.value.payload == "upstream down"
    assert str(excinfo.value).endswith("upstream down")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {"results": []},
        {"hits": "nope"},
        {"hits": [{"title": "no text"}]},
        ["not", "an", "object"],
    ],
)
async def test_malformed_suggestions_rejected(payload) -> None:
    async with _client_for(payload) as client:
        with pytest.raises(MalformedResponseError):
            await client.suggestions("rest")


@pytest.mark.asyncio
async def test_malformed_search_and_pageinfo_rejected() -> None:
    async with _client_for({"hits": [{"title": "missing url"}]}) as client:
        with pytest.raises(MalformedResponseError):
            await client.search("rest")
    async with _client_for({"title": "not wrapped"}) as client:
        with pytest.raises(MalformedResponseError):
            await client.page_info("/en")


@pytest.mark.asyncio
async def test_suggestion_target_url_is_optional() -> None:
    payload = {"hits": [{"text": "a"}, {"text": "b", "target_url": "/en/b"}, {"text": "c", "target_url": ""}]}
    async with _client_for(payload) as client:
        hits = await client.suggestions("x")
    assert [hit.target_url for hit in hits] == [None, "/en/b", None]


def test_from_env_uses_api_url(monkeypatch) -> None:
    monkeypatch.setenv("DOCSFRONT_API_URL", "http://docs.example:8080/")
    client = DocsApiClient.from_env()
    assert client.base_url == "http://docs.example:8080"
