"""Responsive header and navigation layout.

Where each header control lives depends on the viewport width. Controls
that do not fit in the header move into the mobile menu rather than
disappearing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Breakpoint:
    name: str
    min_width: int
    max_width: int | None = None

    def contains(self, width: int) -> bool:
        return width >= self.min_width and (self.max_width is None or width <= self.max_width)


BREAKPOINTS: tuple[Breakpoint, ...] = (
    Breakpoint("xsmall", 0, 543),
    Breakpoint("small", 544, 767),
    Breakpoint("medium", 768, 1011),
    Breakpoint("large", 1012, 1279),
    Breakpoint("xlarge", 1280, 1399),
    Breakpoint("xxlarge", 1400),
)
_ORDER = {breakpoint.name: index for index, breakpoint in enumerate(BREAKPOINTS)}


def breakpoint_for(width: int) -> Breakpoint:
    if width < 0:
        raise ValueError("viewport width must be non-negative")
    for breakpoint in BREAKPOINTS:
        if breakpoint.contains(width):
            return breakpoint
    return BREAKPOINTS[-1]


@dataclass(frozen=True)
class HeaderLayout:
    """Visibility of header and navigation controls at one width."""

    breakpoint: str
    header_signup: bool
    language_picker_in_header: bool
    version_picker_in_header: bool
    search_input_in_header: bool
    header_breadcrumbs: bool
    article_breadcrumbs: bool
    sidebar_hamburger: bool

    @property
    def mobile_menu_items(self) -> list[str]:
        items: list[str] = []
        if not self.version_picker_in_header:
            items.append("version-picker")
        if not self.language_picker_in_header:
            items.append("language-picker")
        if not self.header_signup:
            items.append("mobile-signup")
        return items

    @property
    def mobile_menu(self) -> bool:
        return bool(self.mobile_menu_items)


def _at_least(breakpoint: Breakpoint, name: str) -> bool:
    return _ORDER[breakpoint.name] >= _ORDER[name]


def layout_for(width: int) -> HeaderLayout:
    breakpoint = breakpoint_for(width)
    wide = _at_least(breakpoint, "xlarge")
    return HeaderLayout(
        breakpoint=breakpoint.name,
        header_signup=_at_least(breakpoint, "large"),
        language_picker_in_header=_at_least(breakpoint, "large"),
        version_picker_in_header=_at_least(breakpoint, "small"),
        search_input_in_header=_at_least(breakpoint, "small"),
        header_breadcrumbs=not wide,
        article_breadcrumbs=wide,
        sidebar_hamburger=not wide,
    )


def article_breadcrumbs(crumbs: list[T], width: int) -> list[T]:
    """Breadcrumbs shown inside the article; the widest layout drops the current page."""
    breakpoint = breakpoint_for(width)
    if not _at_least(breakpoint, "xlarge"):
        return []
    if breakpoint.name == "xxlarge":
        return crumbs[:-1]
    return list(crumbs)
