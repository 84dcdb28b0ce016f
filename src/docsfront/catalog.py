"""Catalog of rendered pages and search fixture data.

The catalog describes what the server renders for each page: title, intro,
picker declarations, picker-gated sections, minitoc, links and code
samples. It also carries the search fixtures (top queries and the
autocomplete corpus) served by the fixture API.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from docsfront.hovercard import DocsLink, LinkRegion
from docsfront.models import (
    ContentSection,
    MinitocEntry,
    PageInfo,
    PickerKind,
    PickerOption,
    Suggestion,
)
from docsfront.negotiation import CodeSample
from docsfront.pickers import PickerDeclaration

MAX_SEARCH_HITS = 10
MIN_FUZZY_TERM = 4


class PickerSpec(BaseModel):
    options: list[PickerOption]
    default: str


class LinkSpec(BaseModel):
    href: str
    text: str
    region: LinkRegion = "article"


class CodeSampleSpec(BaseModel):
    text: str
    replace_domain: bool = False


class PageDefinition(BaseModel):
    """One page as rendered by the documentation server."""

    path: str = Field(..., description="Path without locale or version segments")
    title: str
    intro: str = ""
    product: str | None = None
    keywords: list[str] = Field(default_factory=list)
    survey: bool = True
    pickers: dict[PickerKind, PickerSpec] = Field(default_factory=dict)
    sections: list[ContentSection] = Field(default_factory=list)
    minitoc: list[MinitocEntry] = Field(default_factory=list)
    links: list[LinkSpec] = Field(default_factory=list)
    code_samples: list[CodeSampleSpec] = Field(default_factory=list)
    translations: dict[str, dict[str, str]] = Field(default_factory=dict)

    def localized_title(self, locale: str) -> str:
        return self.translations.get(locale, {}).get("title", self.title)

    def localized_intro(self, locale: str) -> str:
        return self.translations.get(locale, {}).get("intro", self.intro)

    def picker_declarations(self) -> list[PickerDeclaration]:
        return [
            PickerDeclaration(kind=kind, options=spec.options, default=spec.default)
            for kind, spec in self.pickers.items()
        ]

    def render_links(self, page_path: str, prefix: str = "") -> list[DocsLink]:
        """Render links for a page served at ``page_path``.

        Site-relative hrefs gain ``prefix`` (the locale and version segments of
        the current URL) so that following a link keeps the reader's version.
        """
        return [
            DocsLink(
                href=_prefixed(link.href, prefix),
                text=link.text,
                region=link.region,
                page_path=page_path,
            )
            for link in self.links
        ]

    def render_code_samples(self) -> list[CodeSample]:
        return [
            CodeSample(text=sample.text, replace_domain=sample.replace_domain)
            for sample in self.code_samples
        ]

    def info(self, locale: str = "en") -> PageInfo:
        return PageInfo(
            title=self.localized_title(locale),
            intro=self.localized_intro(locale),
            product=self.product,
        )


class PageCatalog:
    """Pages and search fixtures loaded from JSON."""

    def __init__(
        self,
        pages: list[PageDefinition],
        *,
        top_queries: list[str] | None = None,
        queries: list[str] | None = None,
    ) -> None:
        self._pages = {_normalize(page.path): page for page in pages}
        self.top_queries = list(top_queries or [])
        self.queries = list(queries or [])

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> PageCatalog:
        pages = [PageDefinition.model_validate(item) for item in payload.get("pages", [])]
        return cls(
            pages,
            top_queries=payload.get("topQueries", []),
            queries=payload.get("queries", []),
        )

    @classmethod
    def load(cls, fixtures_path: Path) -> PageCatalog:
        """Load ``pages.json`` and ``queries.json`` from ``fixtures_path``."""
        pages_payload = json.loads((fixtures_path / "pages.json").read_text(encoding="utf-8"))
        queries_path = fixtures_path / "queries.json"
        queries_payload: dict[str, Any] = {}
        if queries_path.exists():
            queries_payload = json.loads(queries_path.read_text(encoding="utf-8"))
        return cls.from_dict({**pages_payload, **queries_payload})

    def __len__(self) -> int:
        return len(self._pages)

    def page(self, path: str) -> PageDefinition | None:
        return self._pages.get(_normalize(path))

    def autocomplete(self, query: str, limit: int = 5) -> list[Suggestion]:
        """Top queries for an empty query, else corpus queries matching a query term.

        A term matches a word it is part of, or the start of a word that
        differs from it in a single letter (``rest`` matches ``test``).
        """
        cleaned = query.strip().lower()
        if not cleaned:
            return [Suggestion(text=text) for text in self.top_queries][:limit]
        terms = cleaned.split()
        hits = [
            Suggestion(text=text)
            for text in self.queries
            if any(_term_matches(term, word) for term in terms for word in _words(text))
        ]
        return hits[:limit]

    def search(self, query: str, limit: int = MAX_SEARCH_HITS) -> list[PageDefinition]:
        """Pages matching every query term, best title matches first."""
        terms = query.strip().lower().split()
        if not terms:
            return []
        scored: list[tuple[int, str, PageDefinition]] = []
        for path, page in self._pages.items():
            haystack = " ".join([page.title, page.intro, *page.keywords]).lower()
            if not all(term in haystack for term in terms):
                continue
            title_hits = sum(1 for term in terms if term in page.title.lower())
            scored.append((-title_hits, path, page))
        scored.sort(key=lambda item: (item[0], item[1]))
        return [page for _, _, page in scored[:limit]]


def _words(text: str) -> list[str]:
    return [word for word in re.split(r"[^\w]+", text.lower()) if word]


def _term_matches(term: str, word: str) -> bool:
    if term in word:
        return True
    if len(term) < MIN_FUZZY_TERM or len(word) < len(term):
        return False
    return sum(1 for a, b in zip(term, word, strict=False) if a != b) <= 1


def _prefixed(href: str, prefix: str) -> str:
    if not prefix or not href.startswith("/") or href.startswith("//"):
        return href
    return prefix if href == "/" else prefix + href


def _normalize(path: str) -> str:
    cleaned = "/" + path.strip("/")
    return cleaned if cleaned != "/" else "/"
