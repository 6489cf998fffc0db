"""Widget template lookup for Widgetizer.

Widget types are looked up in tiers: the core widget set shipped with the
engine first, then the widgets of the project's theme. A lookup returns a
tagged result, WidgetFound or WidgetNotFound, rather than raising.

Key classes:
- WidgetFound / WidgetNotFound: Lookup results.
- DirectoryWidgetSource: Widgets stored as <root>/<type>/widget.html.jinja + schema.json.
- InMemoryWidgetSource: Widgets registered from strings.
- WidgetRegistry: Ordered tiers of sources.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from .models import WidgetSchema
from .protocols import WidgetSource
from .schema import load_schema

TEMPLATE_CANDIDATES = ("widget.html.jinja", "widget.jinja", "widget.html")
GLOBAL_WIDGET_TYPES = ("header", "footer")

_WIDGET_TYPE_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")


@dataclass(frozen=True)
class WidgetFound:
    """A widget type with its template source and schema."""

    widget_type: str
    template: str
    schema: WidgetSchema
    source: str = ""


@dataclass(frozen=True)
class WidgetNotFound:
    """A widget type no tier knows about."""

    widget_type: str
    searched: tuple[str, ...] = field(default_factory=tuple)


WidgetLookup = Union[WidgetFound, WidgetNotFound]


def is_valid_widget_type(widget_type: str) -> bool:
    return bool(_WIDGET_TYPE_RE.match(widget_type or ""))


class DirectoryWidgetSource:
    """Widgets stored one per folder under a root directory.

    Attributes:
        root: Directory containing one folder per widget type.
        label: Name of the tier, reported in lookups.
        global_types: Types looked up in ``root/global`` first.
    """

    def __init__(self, root: Path, label: str, global_types: Iterable[str] = ()):
        self.root = root
        self.label = label
        self.global_types = tuple(global_types)

    def _candidate_dirs(self, widget_type: str) -> list[Path]:
        dirs = []
        if widget_type in self.global_types:
            dirs.append(self.root / "global" / widget_type)
        dirs.append(self.root / widget_type)
        return dirs

    def find(self, widget_type: str) -> WidgetLookup:
        if not is_valid_widget_type(widget_type):
            return WidgetNotFound(widget_type)
        searched = []
        for widget_dir in self._candidate_dirs(widget_type):
            for name in TEMPLATE_CANDIDATES:
                template_path = widget_dir / name
                searched.append(str(template_path))
                if template_path.is_file():
                    return WidgetFound(
                        widget_type=widget_type,
                        template=template_path.read_text(encoding="utf-8"),
                        schema=load_schema(widget_dir / "schema.json", widget_type),
                        source=self.label,
                    )
        return WidgetNotFound(widget_type, tuple(searched))


class InMemoryWidgetSource:
    """Widgets registered directly as template strings and schema dicts."""

    def __init__(self, label: str = "memory"):
        self.label = label
        self._widgets: dict[str, tuple[str, WidgetSchema]] = {}

    def register(
        self, widget_type: str, template: str, schema: Mapping[str, Any] | None = None
    ) -> None:
        """Register a widget type.

        Args:
            widget_type: Type string.
            template: Template source.
            schema: Schema dict in schema.json form.
        """
        parsed = WidgetSchema.from_dict(dict(schema or {}), widget_type)
        self._widgets[widget_type] = (template, parsed)

    def find(self, widget_type: str) -> WidgetLookup:
        entry = self._widgets.get(widget_type)
        if entry is None:
            return WidgetNotFound(widget_type, (f"{self.label}:{widget_type}",))
        template, schema = entry
        return WidgetFound(widget_type, template, schema, self.label)


class WidgetRegistry:
    """Ordered tiers of widget sources; the first tier that knows a type wins."""

    def __init__(self, sources: Iterable[WidgetSource] = ()):
        self._sources: list[WidgetSource] = list(sources)

    def register(self, source: WidgetSource) -> None:
        """Append a source as the lowest-priority tier."""
        self._sources.append(source)

    def find(self, widget_type: str) -> WidgetLookup:
        searched: list[str] = []
        for source in self._sources:
            result = source.find(widget_type)
            if isinstance(result, WidgetFound):
                return result
            searched.extend(result.searched)
        return WidgetNotFound(widget_type, tuple(searched))
