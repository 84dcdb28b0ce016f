"""Fire-and-forget delivery of analytics events.

Events are posted to ``POST /api/events``. Delivery never blocks the user
action that produced the event and failures are logged and dropped; no
retries are attempted. The unload path uses ``send_beacon``: a blocking POST on
its own connection, run off the event loop so leaving a page never waits on
the sink. The delivery belongs to the dispatcher, not the page, so it
survives the page being torn down.

Event types emitted by the widgets:
    - pageview: once per page load
    - survey: survey vote and survey submission
    - exit: when a page is left
"""

from __future__ import annotations

import asyncio
import uuid
from typing import Any

import httpx

from docsfront.client import EVENTS_PATH, DocsApiClient
from docsfront.logging import get_logger
from docsfront.metrics import get_metrics
from docsfront.models import AnalyticsEvent
from docsfront.settings import get_analytics_timeout, get_api_url

logger = get_logger(__name__)


class AnalyticsDispatcher:
    """Deliver analytics events without blocking the caller.

    Configuration via environment:
        DOCSFRONT_API_URL: Base URL of the events sink
        DOCSFRONT_ANALYTICS_TIMEOUT: Request timeout in seconds (default: 5)
    """

    def __init__(
        self,
        client: DocsApiClient | None = None,
        *,
        base_url: str | None = None,
        timeout: float | None = None,
        beacon_transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.timeout = timeout if timeout is not None else get_analytics_timeout()
        self.base_url = (base_url or (client.base_url if client else get_api_url())).rstrip("/")
        self._client = client
        self._owns_client = client is None
        self._beacon_transport = beacon_transport
        self._pending: set[asyncio.Task[None]] = set()

    def _get_client(self) -> DocsApiClient:
        if self._client is None:
            self._client = DocsApiClient(self.base_url, timeout=self.timeout)
        return self._client

    def send(self, event: AnalyticsEvent) -> None:
        """Schedule delivery of ``event`` and return immediately.

        Without a running event loop the event goes out through the beacon
        path instead.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._beacon(event)
            return
        self._track(loop.create_task(self._deliver(event)))

    def _track(self, task: asyncio.Task[None]) -> None:
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, event: AnalyticsEvent) -> None:
        try:
            await self._get_client().post_event(event)
            logger.debug("analytics_delivered", type=event.type)
        except Exception as exc:
            get_metrics().events_dropped_total.inc(event.type)
            logger.warning("analytics_delivery_failed", type=event.type, error=str(exc))

    def send_beacon(self, event: AnalyticsEvent) -> None:
        """Deliver ``event`` for page unload, best effort.

        Inside a running loop the blocking POST runs in a worker thread and
        ``flush`` waits for it; without a loop it runs inline.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._beacon(event)
            return
        self._track(loop.create_task(asyncio.to_thread(self._beacon, event)))

    def _beacon(self, event: AnalyticsEvent) -> None:
        try:
            with httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._beacon_transport,
            ) as client:
                response = client.post(EVENTS_PATH, json=event.to_payload())
                response.raise_for_status()
        except Exception as exc:
            get_metrics().events_dropped_total.inc(event.type)
            logger.warning("analytics_beacon_failed", type=event.type, error=str(exc))

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def flush(self) -> None:
        """Wait for every scheduled delivery to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        await self.flush()
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None


class PageEvents:
    """Analytics emitter bound to one page load.

    Stamps every event with the page identity and guarantees a single
    ``pageview`` per page load.
    """

    def __init__(
        self,
        dispatcher: AnalyticsDispatcher,
        *,
        path: str,
        locale: str | None = None,
        version: str | None = None,
        page_id: str | None = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.path = path
        self.locale = locale
        self.version = version
        self.page_id = page_id or str(uuid.uuid4())
        self._pageview_sent = False
        self._exit_sent = False

    def _event(self, event_type: str, **fields: Any) -> AnalyticsEvent:
        return AnalyticsEvent(
            type=event_type,  # type: ignore[arg-type]
            page_id=self.page_id,
            path=self.path,
            locale=self.locale,
            version=self.version,
            **fields,
        )

    def pageview(self) -> bool:
        """Emit the page view; later calls for the same page load are ignored."""
        if self._pageview_sent:
            return False
        self._pageview_sent = True
        self.dispatcher.send(self._event("pageview"))
        return True

    def survey(
        self,
        *,
        vote: bool,
        comment: str | None = None,
        email: str | None = None,
    ) -> None:
        self.dispatcher.send(
            self._event(
                "survey",
                survey_vote=vote,
                survey_comment=comment or None,
                survey_email=email or None,
            )
        )

    def exit(self) -> bool:
        """Emit the exit event through the beacon path, once."""
        if self._exit_sent:
            return False
        self._exit_sent = True
        self.dispatcher.send_beacon(self._event("exit"))
        return True
