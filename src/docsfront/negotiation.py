"""Locale and product version negotiation.

URL shape::

    /<locale>/<version>/<path>?<query>

The locale segment is required on rendered pages; the version segment is
omitted for the default version. Requests are resolved against the
preference store on every navigation:

- no locale segment: redirect to the cookie locale, else the default
- locale segment differs from the cookie locale: redirect to the cookie
  locale, keeping path and query
- no cookie yet: honor the URL locale and remember it
- REST reference pages without ``apiVersion``: redirect with the
  remembered (or default) API version appended

A page is never rendered for a locale other than the one in its URL.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urlsplit

from docsfront.logging import get_logger
from docsfront.metrics import get_metrics
from docsfront.models import LocaleVersionContext, ResolvedNavigation
from docsfront.store import Preference, PreferenceStore

logger = get_logger(__name__)

DEFAULT_LOCALE = "en"
SUPPORTED_LOCALES: tuple[str, ...] = ("en", "es", "ja", "pt", "zh", "ru", "fr", "ko", "de")
LOCALE_NAMES: dict[str, str] = {
    "en": "English",
    "es": "Español",
    "ja": "日本語",
    "pt": "Português do Brasil",
    "zh": "简体中文",
    "ru": "Русский",
    "fr": "Français",
    "ko": "한국어",
    "de": "Deutsch",
}

DEFAULT_VERSION = "free-pro-team@latest"
SUPPORTED_VERSIONS: tuple[str, ...] = (
    DEFAULT_VERSION,
    "enterprise-cloud@latest",
    "enterprise-server@3.14",
    "enterprise-server@3.13",
    "enterprise-server@3.12",
)
VERSION_NAMES: dict[str, str] = {
    DEFAULT_VERSION: "Free, Pro, & Team",
    "enterprise-cloud@latest": "Enterprise Cloud",
}

DEFAULT_API_VERSION = "2022-11-28"
SUPPORTED_API_VERSIONS: tuple[str, ...] = ("2022-11-28", "2026-03-10")

HOSTNAME_PLACEHOLDER = "HOSTNAME"
_DOMAIN_RE = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?(?:\.[A-Za-z0-9-]{1,63})+$")

LOCALE_COOKIE = "locale"
VERSION_COOKIE = "version"
API_VERSION_COOKIE = "apiVersion"
DOMAIN_COOKIE = "ghdomain"


def version_name(version: str) -> str:
    if version in VERSION_NAMES:
        return VERSION_NAMES[version]
    plan, _, release = version.partition("@")
    if plan == "enterprise-server":
        return f"Enterprise Server {release}"
    return version


def is_enterprise_server(version: str) -> bool:
    return version.startswith("enterprise-server@")


def normalize_version(segment: str, versions: Iterable[str] = SUPPORTED_VERSIONS) -> str | None:
    """Map a URL version segment to a supported version; '@latest' picks the newest server."""
    versions = tuple(versions)
    if segment in versions:
        return segment
    if segment == "enterprise-server@latest":
        servers = [version for version in versions if is_enterprise_server(version)]
        return servers[0] if servers else None
    return None


def split_url(
    url: str,
    *,
    locales: Iterable[str] = SUPPORTED_LOCALES,
    versions: Iterable[str] = SUPPORTED_VERSIONS,
) -> tuple[str | None, str | None, list[str], str]:
    """Split ``url`` into (locale, version, remaining segments, query)."""
    parts = urlsplit(url)
    segments = [segment for segment in parts.path.split("/") if segment]
    locale = None
    if segments and segments[0] in tuple(locales):
        locale = segments.pop(0)
    version = None
    if segments:
        version = normalize_version(segments[0], versions)
        if version is not None:
            segments.pop(0)
    return locale, version, segments, parts.query


def _join(segments: Iterable[str], query: str) -> str:
    path = "/" + "/".join(segment for segment in segments if segment)
    return f"{path}?{query}" if query else path


class LocaleVersionNegotiator:
    """Resolve the effective locale and version of each navigation."""

    def __init__(
        self,
        store: PreferenceStore,
        *,
        locales: Iterable[str] = SUPPORTED_LOCALES,
        versions: Iterable[str] = SUPPORTED_VERSIONS,
        api_versions: Iterable[str] = SUPPORTED_API_VERSIONS,
        default_locale: str = DEFAULT_LOCALE,
        default_version: str = DEFAULT_VERSION,
    ) -> None:
        self.locales = tuple(locales)
        self.versions = tuple(versions)
        self.api_versions = tuple(api_versions)
        self.default_locale = default_locale
        self.default_version = default_version
        self._locale = Preference(store, LOCALE_COOKIE)
        self._version = Preference(store, VERSION_COOKIE)
        self._api_version = Preference(store, API_VERSION_COOKIE)
        self._domain = Preference(store, DOMAIN_COOKIE)

    def split(self, url: str) -> tuple[str | None, str | None, list[str], str]:
        return split_url(url, locales=self.locales, versions=self.versions)

    def context_for(self, url: str) -> LocaleVersionContext:
        locale, version, _, _ = self.split(url)
        cookie_locale = self._locale.read()
        cookie_version = self._version.read()
        return LocaleVersionContext(
            requested_locale=locale,
            cookie_locale=cookie_locale if cookie_locale in self.locales else None,
            requested_version=version,
            cookie_version=cookie_version if cookie_version in self.versions else None,
        )

    def resolve(self, url: str) -> ResolvedNavigation:
        """Resolve ``url``; the result carries a redirect when one is needed."""
        segments, query = self.split(url)[2:]
        context = self.context_for(url)
        effective_version = context.requested_version or self.default_version
        if context.cookie_version and context.cookie_version != effective_version:
            # The URL version is authoritative; the cookie never redirects.
            logger.debug(
                "version_cookie_ignored",
                url_version=effective_version,
                cookie_version=context.cookie_version,
            )
        set_cookies: dict[str, str] = {}
        reasons: list[str] = []

        if context.requested_locale is None:
            effective_locale = context.cookie_locale or self.default_locale
            reasons.append("missing_locale")
        elif context.cookie_locale and context.cookie_locale != context.requested_locale:
            effective_locale = context.cookie_locale
            reasons.append("cookie_locale")
        else:
            effective_locale = context.requested_locale
            if context.cookie_locale is None and self._locale.write(effective_locale):
                set_cookies[LOCALE_COOKIE] = effective_locale

        params = parse_qsl(query, keep_blank_values=True)
        domain = dict(params).get(DOMAIN_COOKIE)
        if domain and _DOMAIN_RE.match(domain) and self._domain.write(domain):
            set_cookies[DOMAIN_COOKIE] = domain

        if segments[:1] == ["rest"] and not any(name == "apiVersion" for name, _ in params):
            stored_api = self._api_version.read()
            api_version = stored_api if stored_api in self.api_versions else DEFAULT_API_VERSION
            params.append(("apiVersion", api_version))
            query = urlencode(params)
            reasons.append("api_version")

        requested = context.requested_version
        version_segment = requested if requested and requested != self.default_version else None
        path = _join(segments, "")
        redirect_to = None
        if reasons:
            redirect_to = _join([effective_locale, version_segment or "", *segments], query)
            for reason in reasons:
                get_metrics().locale_redirects_total.inc(reason)
            logger.info("locale_redirect", url=url, redirect_to=redirect_to, reasons=reasons)

        return ResolvedNavigation(
            effective_locale=effective_locale,
            effective_version=effective_version,
            path=path,
            query=query,
            redirect_to=redirect_to,
            set_cookies=set_cookies,
        )

    def select_locale(self, url: str, locale: str) -> str:
        """Remember ``locale`` and return the URL to navigate to."""
        if locale not in self.locales:
            raise ValueError(f"unsupported locale {locale!r}")
        self._locale.write(locale)
        _, version, segments, query = self.split(url)
        version_segment = version if version and version != self.default_version else ""
        return _join([locale, version_segment, *segments], query)

    def select_version(self, url: str, version: str) -> str:
        """Remember ``version`` and return the same page under that version."""
        normalized = normalize_version(version, self.versions)
        if normalized is None:
            raise ValueError(f"unsupported version {version!r}")
        self._version.write(normalized)
        locale, _, segments, query = self.split(url)
        version_segment = normalized if normalized != self.default_version else ""
        return _join([locale or self.default_locale, version_segment, *segments], query)

    def home_url(self, locale: str, version: str) -> str:
        """Target of the site logo: the home page of the current version."""
        version_segment = version if version != self.default_version else ""
        return _join([locale, version_segment], "")

    def custom_domain(self) -> str | None:
        domain = self._domain.read()
        if domain and _DOMAIN_RE.match(domain):
            return domain
        return None


@dataclass(frozen=True)
class CodeSample:
    """Code block whose ``HOSTNAME`` may be replaced by a custom domain."""

    text: str
    replace_domain: bool = False


class VersionContext:
    """Version-dependent rendering of a page, switchable without a reload."""

    def __init__(self, version: str, *, custom_domain: str | None = None) -> None:
        self.version = version
        self.custom_domain = custom_domain

    def switch(self, version: str) -> None:
        self.version = version

    @property
    def domain_active(self) -> bool:
        return bool(self.custom_domain) and is_enterprise_server(self.version)

    def render(self, sample: CodeSample) -> str:
        if sample.replace_domain and self.domain_active:
            return sample.text.replace(HOSTNAME_PLACEHOLDER, self.custom_domain or "")
        return sample.text
