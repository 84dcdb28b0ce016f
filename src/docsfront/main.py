"""FastAPI fixture server for docsfront.

Serves the JSON endpoints the widgets talk to, backed by the packaged
fixture data, so that sessions and end-to-end suites run without the real
documentation backend.

Key endpoints:
    - POST /api/events: Analytics sink (pageview, survey, exit)
    - GET /api/events: Events recorded so far, optionally filtered by type
    - DELETE /api/events: Forget recorded events
    - GET /api/search/ai-search-autocomplete: Autocomplete suggestions
    - GET /api/search/v1: General search over page titles and intros
    - GET /api/pageinfo/v1: Title and intro of one page (hover cards)
    - GET /health: Health check with fixture status
    - GET /metrics: Prometheus metrics endpoint
"""

from __future__ import annotations

import json
import time
import uuid
from collections.abc import Awaitable, Callable
from threading import Lock
from typing import Any

from fastapi import FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from docsfront import __version__
from docsfront.catalog import PageCatalog
from docsfront.client import EVENTS_PATH, PAGEINFO_PATH, SEARCH_PATH, SUGGESTIONS_PATH
from docsfront.logging import (
    bind_correlation_id,
    clear_logging_context,
    configure_logging,
    get_logger,
)
from docsfront.metrics import get_metrics
from docsfront.models import AnalyticsEvent
from docsfront.negotiation import DEFAULT_LOCALE, split_url
from docsfront.settings import get_fixtures_path, get_log_level

logger = get_logger(__name__)

# Analytics payloads are small; anything bigger is rejected before parsing.
MAX_REQUEST_SIZE = 64 * 1024
MAX_AUTOCOMPLETE_HITS = 5


class EventLog:
    """Thread-safe in-memory record of accepted analytics events."""

    def __init__(self) -> None:
        self._events: list[AnalyticsEvent] = []
        self._lock = Lock()

    def append(self, event: AnalyticsEvent) -> None:
        with self._lock:
            self._events.append(event)

    def recorded(self, event_type: str | None = None) -> list[AnalyticsEvent]:
        with self._lock:
            events = list(self._events)
        if event_type is None:
            return events
        return [event for event in events if event.type == event_type]

    def clear(self) -> int:
        with self._lock:
            count = len(self._events)
            self._events.clear()
        return count


def create_app(
    *,
    catalog: PageCatalog | None = None,
    event_log: EventLog | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(get_log_level())

    app = FastAPI(
        title="docsfront fixture server",
        version=__version__,
        description="Analytics sink, search and page info endpoints backed by fixtures",
    )

    fixtures_loaded = True
    if catalog is None:
        fixtures_path = get_fixtures_path()
        try:
            catalog = PageCatalog.load(fixtures_path)
        except FileNotFoundError:
            logger.warning("fixtures_missing", path=str(fixtures_path))
            catalog = PageCatalog([])
            fixtures_loaded = False

    app.state.catalog = catalog
    app.state.event_log = event_log or EventLog()
    app.state.fixtures_loaded = fixtures_loaded

    @app.middleware("http")
    async def request_size_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Reject requests that exceed the maximum allowed size."""
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > MAX_REQUEST_SIZE:
            return JSONResponse(
                {"error": "Request body too large"},
                status_code=413,
            )
        return await call_next(request)

    @app.middleware("http")
    async def correlation_middleware(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Tag each request with a correlation ID and time it."""
        correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
        bind_correlation_id(correlation_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            get_metrics().request_duration_seconds.observe(
                time.perf_counter() - start, request.url.path
            )
        response.headers["X-Correlation-ID"] = correlation_id
        clear_logging_context()
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Return validation errors with actionable guidance."""
        hint = "Review request payload and required fields."
        example: dict[str, Any] | None = None

        if request.url.path == EVENTS_PATH:
            hint = "Send a JSON object whose type is pageview, survey or exit."
            example = {"type": "survey", "path": "/en/get-started", "survey_vote": True}
        elif request.url.path == PAGEINFO_PATH:
            hint = "Pass the page path as ?pathname=/en/some/page."

        detail = json.loads(json.dumps(exc.errors(), default=str))
        payload: dict[str, Any] = {
            "error": "Invalid request",
            "message": "Request validation failed.",
            "hint": hint,
            "detail": detail,
        }
        if example is not None:
            payload["example"] = example
        return JSONResponse(payload, status_code=422)

    @app.get("/health")
    async def health() -> JSONResponse:
        """Return health status of the fixture data."""
        loaded = bool(app.state.fixtures_loaded)
        get_metrics().health_status.set(1.0 if loaded else 0.0, "fixtures")
        return JSONResponse({
            "status": "ok" if loaded else "degraded",
            "version": app.version,
            "fixtures": loaded,
            "pages": len(app.state.catalog),
        })

    @app.get("/metrics")
    async def metrics_endpoint() -> PlainTextResponse:
        """Expose Prometheus metrics."""
        return PlainTextResponse(
            get_metrics().collect_all(),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    @app.post(EVENTS_PATH)
    async def record_event(event: AnalyticsEvent) -> JSONResponse:
        """Accept one analytics event."""
        app.state.event_log.append(event)
        get_metrics().events_received_total.inc(event.type)
        logger.info("event_received", type=event.type, page_id=event.page_id, path=event.path)
        return JSONResponse({"ok": True})

    @app.get(EVENTS_PATH)
    async def list_events(
        event_type: str | None = Query(default=None, alias="type"),
    ) -> JSONResponse:
        """Return recorded events, oldest first."""
        events = app.state.event_log.recorded(event_type)
        return JSONResponse({"events": [event.to_payload() for event in events]})

    @app.delete(EVENTS_PATH)
    async def clear_events() -> JSONResponse:
        cleared = app.state.event_log.clear()
        return JSONResponse({"cleared": cleared})

    @app.get(SUGGESTIONS_PATH)
    async def autocomplete(
        query: str = Query(default="", max_length=256),
    ) -> JSONResponse:
        """Top queries for an empty query, otherwise related queries.

        The typed text itself is not part of the hits; the overlay adds it.
        """
        kind = "query" if query.strip() else "top"
        get_metrics().suggestion_requests_total.inc(kind)
        hits = app.state.catalog.autocomplete(query, limit=MAX_AUTOCOMPLETE_HITS)
        return JSONResponse({
            "meta": {"query": query, "found": len(hits)},
            "hits": [hit.model_dump(exclude_none=True) for hit in hits],
        })

    @app.get(SEARCH_PATH)
    async def search(
        query: str = Query(..., min_length=1, max_length=256),
        language: str = DEFAULT_LOCALE,
    ) -> JSONResponse:
        """General search over page titles, intros and keywords."""
        pages = app.state.catalog.search(query)
        hits = [
            {
                "title": page.localized_title(language),
                "url": page.path,
                "intro": page.localized_intro(language),
            }
            for page in pages
        ]
        return JSONResponse({"meta": {"query": query, "found": len(hits)}, "hits": hits})

    @app.get(PAGEINFO_PATH)
    async def page_info(pathname: str = Query(..., min_length=1)) -> JSONResponse:
        """Title and intro of the page at ``pathname`` (locale and version optional)."""
        locale, _, segments, _ = split_url(pathname)
        page = app.state.catalog.page("/" + "/".join(segments))
        if page is None:
            return JSONResponse(
                {"error": "Page not found", "pathname": pathname},
                status_code=404,
            )
        info = page.info(locale or DEFAULT_LOCALE)
        return JSONResponse({"info": info.model_dump(exclude_none=True)})

    return app
