"""Content picker state: platform, tool, language and version choices.

Each page declares, per picker kind, the options it offers and a default.
The manager keeps exactly one active value per declared kind, persists the
last explicit choice through the preference store and derives which content
sections and minitoc entries are visible.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from urllib.parse import urlencode

from docsfront.logging import get_logger
from docsfront.metrics import get_metrics
from docsfront.models import (
    ContentSection,
    MinitocEntry,
    PickerKind,
    PickerOption,
    PickerSelection,
)
from docsfront.store import Preference, PreferenceStore

logger = get_logger(__name__)


class InvalidSelection(ValueError):
    """Raised when a picker value is not offered on the current page."""

    def __init__(self, kind: str, value: str, allowed: Iterable[str]) -> None:
        self.kind = kind
        self.value = value
        self.allowed = list(allowed)
        if self.allowed:
            message = (
                f"{value!r} is not a valid {kind} on this page "
                f"(expected one of: {', '.join(self.allowed)})"
            )
        else:
            message = f"this page has no {kind} picker"
        super().__init__(message)


@dataclass
class PickerDeclaration:
    """Options and default a page declares for one picker kind."""

    kind: PickerKind
    options: list[PickerOption]
    default: str
    _values: tuple[str, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._values = tuple(option.value for option in self.options)
        if self.default not in self._values:
            raise ValueError(
                f"default {self.default!r} is not one of the {self.kind} options"
            )

    @property
    def values(self) -> tuple[str, ...]:
        return self._values

    def label_for(self, value: str) -> str:
        for option in self.options:
            if option.value == value:
                return option.label
        raise KeyError(value)


class PickerStateManager:
    """Track picker selections for one page render."""

    def __init__(
        self,
        declarations: Iterable[PickerDeclaration],
        *,
        store: PreferenceStore,
        sections: Iterable[ContentSection] = (),
        minitoc: Iterable[MinitocEntry] = (),
        path: str = "/",
        url_params: Mapping[str, str] | None = None,
    ) -> None:
        self.path = path
        self._declarations: dict[str, PickerDeclaration] = {
            declaration.kind: declaration for declaration in declarations
        }
        self._preferences = {
            kind: Preference(store, kind) for kind in self._declarations
        }
        self._sections = list(sections)
        self._minitoc = list(minitoc)
        self._current: dict[str, str] = {}
        self._visible_section_ids: set[str] = set()

        params = url_params or {}
        for kind, declaration in self._declarations.items():
            requested = params.get(kind)
            if requested is not None and requested in declaration.values:
                self._current[kind] = requested
                self._preferences[kind].write(requested)
                continue
            if requested is not None:
                logger.info("picker_url_value_ignored", kind=kind, value=requested)
            self._current[kind] = self.resolve_initial(kind, declaration.default)
        self._recompute()

    def allowed_values(self, kind: str) -> tuple[str, ...]:
        declaration = self._declarations.get(kind)
        return declaration.values if declaration else ()

    def resolve_initial(self, kind: str, page_default: str) -> str:
        """Return the stored value for ``kind`` if still valid here, else the default."""
        preference = self._preferences.get(kind)
        stored = preference.read() if preference else None
        if stored is not None and stored in self.allowed_values(kind):
            return stored
        return page_default

    def select(self, kind: str, value: str) -> PickerSelection:
        """Make ``value`` the active choice for ``kind``.

        Raises:
            InvalidSelection: ``value`` is not offered for ``kind`` on this page.
        """
        allowed = self.allowed_values(kind)
        if value not in allowed:
            raise InvalidSelection(kind, value, allowed)
        self._current[kind] = value
        self._preferences[kind].write(value)
        self._recompute()
        get_metrics().picker_selections_total.inc(kind)
        logger.info("picker_selected", kind=kind, value=value)
        return PickerSelection(kind=kind, value=value)  # type: ignore[arg-type]

    def current(self, kind: str) -> str:
        return self._current[kind]

    @property
    def selections(self) -> list[PickerSelection]:
        return [
            PickerSelection(kind=kind, value=value)  # type: ignore[arg-type]
            for kind, value in self._current.items()
        ]

    def _recompute(self) -> None:
        self._visible_section_ids = {
            section.id for section in self._sections if section.is_visible(self._current)
        }

    def is_section_visible(self, section_id: str) -> bool:
        return section_id in self._visible_section_ids

    @property
    def visible_sections(self) -> list[ContentSection]:
        return [section for section in self._sections if section.id in self._visible_section_ids]

    @property
    def visible_minitoc(self) -> list[MinitocEntry]:
        return [
            entry
            for entry in self._minitoc
            if entry.section_id is None or entry.section_id in self._visible_section_ids
        ]

    def url_for(self, kind: str, value: str) -> str:
        """URL a picker link for ``value`` points at."""
        if value not in self.allowed_values(kind):
            raise InvalidSelection(kind, value, self.allowed_values(kind))
        return f"{self.path}?{urlencode({kind: value})}"
