"""Browsing session: one tab navigating between rendered pages.

A navigation is the scope boundary for every widget. Leaving a page sends
its exit event, cancels its pending timers and discards its widgets; the
next page starts with a fresh survey, search overlay and hover card
controller, and re-reads the preference store for its pickers. The
preference store outlives navigations.
"""

from __future__ import annotations

from types import TracebackType
from urllib.parse import parse_qsl, urlsplit

from docsfront.analytics import AnalyticsDispatcher, PageEvents
from docsfront.catalog import PageCatalog, PageDefinition
from docsfront.client import DocsApiClient
from docsfront.hovercard import DocsLink, HoverCardController
from docsfront.layout import HeaderLayout, article_breadcrumbs, layout_for
from docsfront.logging import bind_page_context, clear_logging_context, get_logger
from docsfront.models import ContentSection, MinitocEntry, PickerSelection, ResolvedNavigation
from docsfront.negotiation import LocaleVersionNegotiator, VersionContext
from docsfront.pickers import PickerStateManager
from docsfront.search import SearchOverlay, SiteSearch
from docsfront.settings import WidgetTimings, get_fixtures_path, get_redis_url
from docsfront.store import MemoryPreferenceStore, PreferenceStore, RedisPreferenceStore
from docsfront.survey import SurveyWidget

logger = get_logger(__name__)

DEFAULT_VIEWPORT_WIDTH = 1280
MAX_REDIRECTS = 5


class PageNotFound(LookupError):
    """Raised when a navigation resolves to a path the catalog does not render."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"no page rendered at {path!r}")


class TooManyRedirects(RuntimeError):
    """Raised when negotiation keeps redirecting."""


class Page:
    """Widgets of one page load."""

    def __init__(
        self,
        url: str,
        definition: PageDefinition,
        navigation: ResolvedNavigation,
        *,
        client: DocsApiClient,
        dispatcher: AnalyticsDispatcher,
        store: PreferenceStore,
        negotiator: LocaleVersionNegotiator,
        catalog: PageCatalog,
        timings: WidgetTimings,
        viewport_width: int,
    ) -> None:
        self.url = url
        self.definition = definition
        self.navigation = navigation
        self.locale = navigation.effective_locale
        self.version = navigation.effective_version
        self._negotiator = negotiator
        self._catalog = catalog
        self.url_path = _url_path(url)
        self.prefix = _url_prefix(self.url_path, navigation.path)

        self.events = PageEvents(
            dispatcher, path=self.url_path, locale=self.locale, version=self.version
        )
        url_params = dict(parse_qsl(navigation.query, keep_blank_values=True))
        self.pickers = PickerStateManager(
            definition.picker_declarations(),
            store=store,
            sections=definition.sections,
            minitoc=definition.minitoc,
            path=self.url_path,
            url_params=url_params,
        )
        self.survey = SurveyWidget(self.events) if definition.survey else None
        search_path = f"/{self.locale}/search"
        self.search = SearchOverlay(client, timings=timings, search_path=search_path)
        self.site_search = SiteSearch(search_path=search_path)
        self.hovercards = HoverCardController(client, timings=timings)
        self.version_context = VersionContext(
            self.version, custom_domain=negotiator.custom_domain()
        )
        self.links: list[DocsLink] = definition.render_links(self.url_path, self.prefix)
        self.layout: HeaderLayout = layout_for(viewport_width)
        self.viewport_width = viewport_width
        self.closed = False

    @property
    def page_id(self) -> str:
        return self.events.page_id

    @property
    def title(self) -> str:
        return self.definition.localized_title(self.locale)

    @property
    def intro(self) -> str:
        return self.definition.localized_intro(self.locale)

    @property
    def home_url(self) -> str:
        return self._negotiator.home_url(self.locale, self.version)

    @property
    def visible_sections(self) -> list[ContentSection]:
        return self.pickers.visible_sections

    @property
    def visible_minitoc(self) -> list[MinitocEntry]:
        return self.pickers.visible_minitoc

    @property
    def code_samples(self) -> list[str]:
        return [
            self.version_context.render(sample)
            for sample in self.definition.render_code_samples()
        ]

    def link(self, text: str) -> DocsLink:
        for link in self.links:
            if link.text == text:
                return link
        raise KeyError(text)

    def select_picker(self, kind: str, value: str) -> PickerSelection:
        """Choose a picker value in place; the address bar follows the picker link."""
        selection = self.pickers.select(kind, value)
        self.url = self.pickers.url_for(kind, value)
        return selection

    def select_version(self, version: str) -> str:
        """Switch the rendered version without reloading the page."""
        self.url = self._negotiator.select_version(self.url, version)
        self.url_path = _url_path(self.url)
        self.pickers.path = self.url_path
        self.prefix = _url_prefix(self.url_path, self.navigation.path)
        self.links = self.definition.render_links(self.url_path, self.prefix)
        self.version = self._negotiator.split(self.url)[1] or self._negotiator.default_version
        self.version_context.switch(self.version)
        self.events.version = self.version
        logger.info("version_switched", version=self.version)
        return self.url

    def resize(self, width: int) -> None:
        self.viewport_width = width
        self.layout = layout_for(width)

    @property
    def breadcrumbs(self) -> list[tuple[str, str]]:
        """(title, url) for each ancestor page the catalog renders, ending with this page."""
        crumbs: list[tuple[str, str]] = []
        segments = [segment for segment in self.navigation.path.split("/") if segment]
        for index in range(1, len(segments) + 1):
            path = "/" + "/".join(segments[:index])
            page = self._catalog.page(path)
            if page is not None:
                crumbs.append((page.localized_title(self.locale), self.prefix + path))
        return crumbs

    @property
    def article_breadcrumbs(self) -> list[tuple[str, str]]:
        return article_breadcrumbs(self.breadcrumbs, self.viewport_width)

    def leave(self) -> None:
        """Tear down the page: exit event, pending timers, overlay state."""
        if self.closed:
            return
        self.closed = True
        self.events.exit()
        self.search.close()
        self.hovercards.close()


class BrowsingSession:
    """A single browser tab driving the widgets of successive pages."""

    def __init__(
        self,
        catalog: PageCatalog,
        *,
        client: DocsApiClient,
        store: PreferenceStore | None = None,
        dispatcher: AnalyticsDispatcher | None = None,
        timings: WidgetTimings | None = None,
        viewport_width: int = DEFAULT_VIEWPORT_WIDTH,
        max_redirects: int = MAX_REDIRECTS,
    ) -> None:
        self.catalog = catalog
        self.client = client
        self.store: PreferenceStore = store if store is not None else MemoryPreferenceStore()
        self.dispatcher = dispatcher or AnalyticsDispatcher(client)
        self.timings = timings or WidgetTimings()
        self.viewport_width = viewport_width
        self.max_redirects = max_redirects
        self.negotiator = LocaleVersionNegotiator(self.store)
        self.page: Page | None = None
        self.history: list[str] = []
        self.redirects: list[str] = []

    @classmethod
    def from_env(
        cls,
        *,
        catalog: PageCatalog | None = None,
        viewport_width: int = DEFAULT_VIEWPORT_WIDTH,
    ) -> BrowsingSession:
        """Build a session from ``DOCSFRONT_*`` environment variables."""
        redis_url = get_redis_url()
        store: PreferenceStore = (
            RedisPreferenceStore.from_url(redis_url) if redis_url else MemoryPreferenceStore()
        )
        return cls(
            catalog or PageCatalog.load(get_fixtures_path()),
            client=DocsApiClient.from_env(),
            store=store,
            timings=WidgetTimings.from_env(),
            viewport_width=viewport_width,
        )

    async def navigate(self, url: str) -> Page:
        """Leave the current page and load ``url``, following negotiation redirects."""
        self._leave_current()
        self.redirects = []
        navigation = self.negotiator.resolve(url)
        while navigation.redirect_to is not None:
            if len(self.redirects) >= self.max_redirects:
                raise TooManyRedirects(f"too many redirects starting at {url!r}")
            self.redirects.append(navigation.redirect_to)
            url = navigation.redirect_to
            navigation = self.negotiator.resolve(url)

        definition = self.catalog.page(navigation.path)
        if definition is None:
            logger.info("page_not_found", url=url, path=navigation.path)
            raise PageNotFound(navigation.path)

        page = Page(
            url,
            definition,
            navigation,
            client=self.client,
            dispatcher=self.dispatcher,
            store=self.store,
            negotiator=self.negotiator,
            catalog=self.catalog,
            timings=self.timings,
            viewport_width=self.viewport_width,
        )
        self.page = page
        self.history.append(url)
        bind_page_context(page.page_id, page.url_path)
        page.events.pageview()
        logger.info("page_loaded", url=url, locale=page.locale, version=page.version)
        return page

    async def reload(self) -> Page:
        return await self.navigate(self._current().url)

    async def follow(self, link: DocsLink) -> Page:
        """Click ``link``; same-page anchors do not navigate."""
        page = self._current()
        if link.href.startswith("#"):
            return page
        return await self.navigate(link.href)

    async def select_locale(self, locale: str) -> Page:
        """Choose a language from the header picker; this always navigates."""
        target = self.negotiator.select_locale(self._current().url, locale)
        return await self.navigate(target)

    async def press(self, key: str) -> Page:
        """Send a key press to the focused widget, following any navigation it triggers."""
        page = self._current()
        if page.search.is_open:
            target = page.search.press(key)
            if target is not None:
                return await self.navigate(target)
            return page
        page.hovercards.press(key)
        return page

    async def submit_site_search(self, text: str) -> Page:
        page = self._current()
        target = page.site_search.submit(text)
        if target is None:
            return page
        return await self.navigate(target)

    def resize(self, width: int) -> None:
        self.viewport_width = width
        if self.page is not None:
            self.page.resize(width)

    def _current(self) -> Page:
        if self.page is None:
            raise RuntimeError("no page loaded")
        return self.page

    def _leave_current(self) -> None:
        if self.page is not None:
            self.page.leave()
            self.page = None
        clear_logging_context()

    async def close(self) -> None:
        self._leave_current()
        await self.dispatcher.close()
        await self.client.close()

    async def __aenter__(self) -> BrowsingSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


def _url_path(url: str) -> str:
    """Path of ``url`` without query, fragment, empty segments or trailing slash."""
    segments = [segment for segment in urlsplit(url).path.split("/") if segment]
    return "/" + "/".join(segments)


def _url_prefix(url_path: str, page_path: str) -> str:
    """Locale and version segments in front of ``page_path``."""
    segments = [segment for segment in url_path.split("/") if segment]
    page_segments = [segment for segment in page_path.split("/") if segment]
    if page_segments and segments[-len(page_segments) :] != page_segments:
        raise ValueError(f"{url_path!r} does not end with {page_path!r}")
    lead = segments[: len(segments) - len(page_segments)]
    return "/" + "/".join(lead) if lead else ""
