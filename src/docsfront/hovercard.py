"""Hover card previews for internal article links.

A hover card shows the title and intro of the page a link points at. Only
internal links inside the article body or the article intro get one; links
in the navigation sidebar, the minitoc, the header and all external links
never do. Eligibility is decided once, when the link is constructed.

Opening is delayed so that sweeping the pointer across a paragraph does not
flicker cards open. Closing is delayed too, and is skipped when the pointer
moves from the link onto the card. Keyboard users open the card for the
focused link with Alt+ArrowUp; focus alone never opens it. Escape closes
the card however it was opened.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Literal, Protocol
from urllib.parse import urlsplit

from docsfront.logging import get_logger
from docsfront.models import PageInfo
from docsfront.settings import WidgetTimings

logger = get_logger(__name__)

LinkRegion = Literal["article", "intro", "sidebar", "minitoc", "header"]
ELIGIBLE_REGIONS: frozenset[str] = frozenset({"article", "intro"})
OPEN_KEY = "Alt+ArrowUp"
CLOSE_KEY = "Escape"


class PreviewSource(Protocol):
    """Lookup of page summaries; ``DocsApiClient`` implements it."""

    async def page_info(self, pathname: str) -> PageInfo:
        """Return the summary of the page at ``pathname``."""


def is_internal_href(href: str) -> bool:
    """Same-site path or same-page anchor."""
    if href.startswith("#"):
        return True
    parts = urlsplit(href)
    return not parts.scheme and not parts.netloc and href.startswith("/")


@dataclass(frozen=True)
class DocsLink:
    """A rendered link and where on the page it lives."""

    href: str
    text: str
    region: LinkRegion
    page_path: str = "/"
    eligible: bool = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "eligible",
            self.region in ELIGIBLE_REGIONS and is_internal_href(self.href),
        )

    @property
    def target_pathname(self) -> str:
        """Path of the page previewed for this link; anchors preview this page."""
        if self.href.startswith("#"):
            return self.page_path
        return urlsplit(self.href).path


class HoverCardController:
    """Show and hide the preview card for one page."""

    def __init__(
        self,
        source: PreviewSource,
        *,
        timings: WidgetTimings | None = None,
    ) -> None:
        self.source = source
        self.timings = timings or WidgetTimings()
        self.card: PageInfo | None = None
        self.card_link: DocsLink | None = None
        self.focused: DocsLink | None = None
        self.pointer_on_card = False
        self._show_task: asyncio.Task[None] | None = None
        self._hide_task: asyncio.Task[None] | None = None

    @property
    def visible(self) -> bool:
        return self.card is not None

    def on_hover(self, link: DocsLink) -> bool:
        """Pointer entered ``link``; returns False for ineligible links."""
        if not link.eligible:
            return False
        self._cancel("_hide_task")
        if self.visible and self.card_link == link:
            return True
        self._cancel("_show_task")
        self._show_task = self._spawn(self.timings.hover_show_delay, lambda: self._show(link))
        return True

    def on_unhover(self) -> None:
        """Pointer left the link it was hovering."""
        self._cancel("_show_task")
        if self.visible and not self.pointer_on_card:
            self._schedule_hide()

    def on_card_enter(self) -> None:
        self.pointer_on_card = True
        self._cancel("_hide_task")

    def on_card_leave(self) -> None:
        self.pointer_on_card = False
        if self.visible:
            self._schedule_hide()

    def on_focus(self, link: DocsLink) -> None:
        self.focused = link

    def on_blur(self) -> None:
        self.focused = None

    def press(self, key: str) -> bool:
        """Handle a key combination; returns True when it was consumed."""
        if key == CLOSE_KEY:
            if not self.visible and self._show_task is None:
                return False
            self.close()
            return True
        if key == OPEN_KEY and self.focused is not None and self.focused.eligible:
            link = self.focused
            self._cancel("_hide_task")
            self._cancel("_show_task")
            self._show_task = self._spawn(0.0, lambda: self._show(link))
            return True
        return False

    def close(self) -> None:
        self._cancel("_show_task")
        self._cancel("_hide_task")
        self.card = None
        self.card_link = None
        self.pointer_on_card = False

    def _schedule_hide(self) -> None:
        self._cancel("_hide_task")
        self._hide_task = self._spawn(self.timings.hover_hide_delay, self._hide)

    async def _hide(self) -> None:
        if not self.pointer_on_card:
            self.card = None
            self.card_link = None

    async def _show(self, link: DocsLink) -> None:
        try:
            info = await self.source.page_info(link.target_pathname)
        except Exception as exc:
            logger.warning(
                "hovercard_preview_failed", pathname=link.target_pathname, error=str(exc)
            )
            return
        self.card = info
        self.card_link = link

    def _spawn(
        self, delay: float, action: Callable[[], Awaitable[None]]
    ) -> asyncio.Task[None]:
        async def runner() -> None:
            if delay > 0:
                await asyncio.sleep(delay)
            await action()

        return asyncio.get_running_loop().create_task(runner())

    def _cancel(self, attribute: str) -> None:
        task: asyncio.Task[None] | None = getattr(self, attribute)
        if task is not None and not task.done():
            task.cancel()
        setattr(self, attribute, None)

    async def wait_idle(self) -> None:
        """Wait for pending show/hide timers to fire."""
        for task in (self._show_task, self._hide_task):
            if task is None:
                continue
            try:
                await task
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
