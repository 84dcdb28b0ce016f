"""Search overlay and header search box.

The overlay shows two groups of options while the user types:

- general results: article hits, each with a target URL
- autocomplete suggestions: for an empty query the top queries (at most
  four); otherwise the typed text followed by related queries (at most
  three in total)

Keystrokes are debounced. Every fetch carries a sequence number and only
the most recently issued one may update the lists, so a slow response for
an older query can never overwrite fresher results. A failed or malformed
fetch empties the affected list instead of leaving stale entries behind.

Keyboard navigation walks general results first, then suggestions.
ArrowDown past the last option (or ArrowUp past the first) clears the
highlight; pressing again re-enters from the other end.
"""

from __future__ import annotations

import asyncio
from typing import Protocol
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from docsfront.logging import get_logger
from docsfront.metrics import get_metrics
from docsfront.models import Suggestion
from docsfront.settings import WidgetTimings

logger = get_logger(__name__)

MAX_TOP_QUERIES = 4
MAX_QUERY_SUGGESTIONS = 3
MAX_GENERAL_RESULTS = 4

OVERLAY_INPUT_PARAM = "search-overlay-input"
QUERY_PARAM = "query"


class SuggestionSource(Protocol):
    """Backend for the overlay; ``DocsApiClient`` implements it."""

    async def suggestions(self, query: str) -> list[Suggestion]:
        """Autocomplete queries for ``query`` (top queries when empty)."""

    async def search(self, query: str) -> list[Suggestion]:
        """General search hits for ``query``, each with a target URL."""


def append_query_param(url: str, name: str, value: str) -> str:
    """Add ``name=value`` to ``url`` keeping its existing query and fragment."""
    parts = urlsplit(url)
    params = parse_qsl(parts.query, keep_blank_values=True)
    params.append((name, value))
    return urlunsplit(parts._replace(query=urlencode(params)))


def general_search_url(
    query: str, *, overlay_input: str | None = None, search_path: str = "/search"
) -> str:
    params: list[tuple[str, str]] = []
    if overlay_input is not None:
        params.append((OVERLAY_INPUT_PARAM, overlay_input))
    params.append((QUERY_PARAM, query))
    return f"{search_path}?{urlencode(params)}"


def build_suggestion_list(query: str, hits: list[Suggestion]) -> list[Suggestion]:
    """Order and cap autocomplete hits for display; ``query`` is echoed as typed."""
    if not query.strip():
        return hits[:MAX_TOP_QUERIES]
    if not hits:
        return []
    related = [hit for hit in hits if hit.text != query.strip()]
    return [Suggestion(text=query), *related][:MAX_QUERY_SUGGESTIONS]


class SearchOverlay:
    """Controller for the search overlay of one page."""

    def __init__(
        self,
        source: SuggestionSource,
        *,
        timings: WidgetTimings | None = None,
        search_path: str = "/search",
    ) -> None:
        self.source = source
        self.timings = timings or WidgetTimings()
        self.search_path = search_path
        self.is_open = False
        self.input_focused = False
        self.text = ""
        self.suggestions: list[Suggestion] = []
        self.general_results: list[Suggestion] = []
        self.highlighted: int | None = None
        self._issued = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def options(self) -> list[Suggestion]:
        """Keyboard-navigable options in display order."""
        return [*self.general_results, *self.suggestions]

    @property
    def suggestions_visible(self) -> bool:
        return self.is_open and bool(self.suggestions)

    @property
    def highlighted_option(self) -> Suggestion | None:
        if self.highlighted is None:
            return None
        return self.options[self.highlighted]

    def open(self) -> None:
        """Show the overlay, focus its input and load the top queries."""
        self.is_open = True
        self.input_focused = True
        self._schedule(self.text, delay=0.0)

    def close(self) -> None:
        self.is_open = False
        self.input_focused = False
        self.highlighted = None
        self._cancel_pending()

    def on_input(self, text: str) -> None:
        """Replace the input text and schedule a debounced fetch."""
        if not self.is_open:
            raise RuntimeError("search overlay is not open")
        self.text = text
        self.highlighted = None
        self._schedule(text, delay=self.timings.search_debounce)

    def _cancel_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _schedule(self, text: str, *, delay: float) -> None:
        self._cancel_pending()
        self._issued += 1
        self._task = asyncio.get_running_loop().create_task(
            self._fetch(self._issued, text, delay)
        )

    async def _fetch(self, request_id: int, text: str, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        query = text.strip()
        if query:
            results = await asyncio.gather(
                self.source.suggestions(query),
                self.source.search(query),
                return_exceptions=True,
            )
        else:
            results = [await self._safe_top_queries(), []]
        if request_id != self._issued:
            logger.debug("suggestions_discarded", request_id=request_id, latest=self._issued)
            return
        hits, general = (self._absorb(result, query) for result in results)
        self.suggestions = build_suggestion_list(text, hits)
        self.general_results = [hit for hit in general if hit.target_url][:MAX_GENERAL_RESULTS]
        self.highlighted = None

    async def _safe_top_queries(self) -> list[Suggestion] | BaseException:
        try:
            return await self.source.suggestions("")
        except Exception as exc:
            return exc

    @staticmethod
    def _absorb(
        result: list[Suggestion] | BaseException, query: str
    ) -> list[Suggestion]:
        if isinstance(result, BaseException):
            get_metrics().suggestion_fetch_failures_total.inc()
            logger.warning("suggestions_fetch_failed", query=query, error=str(result))
            return []
        if not isinstance(result, list) or any(
            not isinstance(item, Suggestion) for item in result
        ):
            get_metrics().suggestion_fetch_failures_total.inc()
            logger.warning("suggestions_malformed", query=query)
            return []
        return result

    async def wait_idle(self) -> None:
        """Wait for the pending debounce/fetch, if any, to finish."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    def press(self, key: str) -> str | None:
        """Handle a key press; returns a URL when the key triggers navigation."""
        if not self.is_open:
            return None
        if key == "ArrowDown":
            self._move(1)
        elif key == "ArrowUp":
            self._move(-1)
        elif key == "Escape":
            self.close()
        elif key == "Enter":
            return self.submit()
        return None

    def _move(self, step: int) -> None:
        count = len(self.options)
        if count == 0:
            self.highlighted = None
            return
        # Positions 0..count-1 are options, position count means "no highlight".
        position = count if self.highlighted is None else self.highlighted
        position = (position + step) % (count + 1)
        self.highlighted = None if position == count else position

    def submit(self) -> str | None:
        """Navigate for Enter: highlighted option, else a general search."""
        raw = self.text.strip()
        option = self.highlighted_option
        if option is not None and option.target_url:
            url = append_query_param(option.target_url, OVERLAY_INPUT_PARAM, raw)
        elif option is not None:
            url = general_search_url(
                option.text.strip(), overlay_input=raw, search_path=self.search_path
            )
        elif raw:
            url = general_search_url(raw, overlay_input=raw, search_path=self.search_path)
        else:
            return None
        logger.info("search_submitted", url=url)
        self.close()
        return url


class SiteSearch:
    """Header search box (the non-overlay search input)."""

    def __init__(self, *, search_path: str = "/search") -> None:
        self.search_path = search_path

    def submit(self, text: str) -> str | None:
        query = text.strip()
        if not query:
            return None
        return general_search_url(query, search_path=self.search_path)
