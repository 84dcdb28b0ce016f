"""HTTP client for the documentation site's JSON endpoints."""

from __future__ import annotations

from collections.abc import Mapping
from types import TracebackType
from typing import Any, cast

import httpx

from docsfront.models import AnalyticsEvent, PageInfo, Suggestion
from docsfront.settings import get_api_url

EVENTS_PATH = "/api/events"
SUGGESTIONS_PATH = "/api/search/ai-search-autocomplete"
SEARCH_PATH = "/api/search/v1"
PAGEINFO_PATH = "/api/pageinfo/v1"


class DocsAPIError(RuntimeError):
    """Structured API error raised for non-2xx responses."""

    def __init__(
        self,
        *,
        method: str,
        path: str,
        status_code: int,
        payload: dict[str, Any] | str | None,
    ) -> None:
        self.method = method
        self.path = path
        self.status_code = status_code
        self.payload = payload
        message = f"{method} {path} failed with status {status_code}"
        if isinstance(payload, dict) and isinstance(payload.get("detail"), str):
            message = f"{message}: {payload['detail']}"
        elif isinstance(payload, dict) and isinstance(payload.get("error"), str):
            message = f"{message}: {payload['error']}"
        elif isinstance(payload, str) and payload:
            message = f"{message}: {payload}"
        super().__init__(message)


class MalformedResponseError(ValueError):
    """Raised when a 2xx response does not have the expected shape."""


class DocsApiClient:
    """Async client for the analytics sink, search and page info endpoints."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        headers: Mapping[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._headers: dict[str, str] = dict(headers or {})
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_env(cls, *, base_url: str | None = None) -> DocsApiClient:
        """Create a client from ``DOCSFRONT_API_URL``."""
        return cls((base_url or get_api_url()).strip())

    @staticmethod
    def _decode_payload(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        response = await self._client.request(
            method=method,
            url=path,
            json=json_body,
            params=params,
            headers=self._headers or None,
        )
        payload = self._decode_payload(response)
        if response.status_code >= 400:
            raise DocsAPIError(
                method=method,
                path=path,
                status_code=response.status_code,
                payload=payload if isinstance(payload, dict | str) else None,
            )
        return payload

    async def health(self) -> dict[str, Any]:
        """Fetch service health details."""
        payload = await self._request_json("GET", "/health")
        return cast(dict[str, Any], payload) if isinstance(payload, dict) else {}

    async def post_event(self, event: AnalyticsEvent) -> None:
        """Deliver one analytics event."""
        await self._request_json("POST", EVENTS_PATH, json_body=event.to_payload())

    async def suggestions(self, query: str) -> list[Suggestion]:
        """Fetch autocomplete suggestions for ``query``.

        Raises:
            DocsAPIError: The endpoint answered with an error status.
            MalformedResponseError: The body is not ``{"hits": [...]}``.
        """
        payload = await self._request_json(
            "GET", SUGGESTIONS_PATH, params={"query": query}
        )
        if not isinstance(payload, dict) or not isinstance(payload.get("hits"), list):
            raise MalformedResponseError("suggestion response must contain a hits list")
        hits: list[Suggestion] = []
        for hit in payload["hits"]:
            if not isinstance(hit, dict) or not isinstance(hit.get("text"), str):
                raise MalformedResponseError("suggestion hit must have a text field")
            target = hit.get("target_url")
            hits.append(
                Suggestion(
                    text=hit["text"],
                    target_url=target if isinstance(target, str) and target else None,
                )
            )
        return hits

    async def search(self, query: str) -> list[Suggestion]:
        """Run a general search and return article hits as navigable options.

        Raises:
            DocsAPIError: The endpoint answered with an error status.
            MalformedResponseError: The body is not ``{"hits": [...]}``.
        """
        payload = await self._request_json("GET", SEARCH_PATH, params={"query": query})
        if not isinstance(payload, dict) or not isinstance(payload.get("hits"), list):
            raise MalformedResponseError("search response must contain a hits list")
        results: list[Suggestion] = []
        for hit in payload["hits"]:
            if (
                not isinstance(hit, dict)
                or not isinstance(hit.get("title"), str)
                or not isinstance(hit.get("url"), str)
            ):
                raise MalformedResponseError("search hit must have title and url")
            results.append(Suggestion(text=hit["title"], target_url=hit["url"]))
        return results

    async def page_info(self, pathname: str) -> PageInfo:
        """Fetch title and intro of the page at ``pathname``."""
        payload = await self._request_json(
            "GET", PAGEINFO_PATH, params={"pathname": pathname}
        )
        info = payload.get("info") if isinstance(payload, dict) else None
        if not isinstance(info, dict):
            raise MalformedResponseError("pageinfo response must contain an info object")
        return PageInfo.model_validate(info)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> DocsApiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
