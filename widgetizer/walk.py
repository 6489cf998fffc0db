"""Tree walking over widget settings.

Rendering and the media usage index read the same content trees. Both go
through the helpers in this module so that "which values does a widget hold"
and "is this value a media reference" have a single definition.

Key functions:
- iter_widget_values: Every setting value of a widget and of its blocks.
- iter_page_values: Every setting value of a page, plus its SEO image.
- map_widget_settings: Copy a widget tree, transforming each settings map.
- normalize_media_path: Canonical form used to compare media paths.

Key class:
- MediaReferenceMatcher: Predicate matching strings against known media paths.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import MediaRecord


def is_link_value(value: Any) -> bool:
    """Return True for link objects, i.e. mappings carrying an ``href`` key."""
    return isinstance(value, Mapping) and "href" in value


def iter_widget_values(widget: Mapping[str, Any] | None) -> Iterator[Any]:
    """Yield every setting value of a widget and of each of its blocks."""
    if not isinstance(widget, Mapping):
        return
    settings = widget.get("settings")
    if isinstance(settings, Mapping):
        yield from settings.values()
    blocks = widget.get("blocks")
    if isinstance(blocks, Mapping):
        for block in blocks.values():
            if isinstance(block, Mapping) and isinstance(block.get("settings"), Mapping):
                yield from block["settings"].values()


def iter_page_values(page: Mapping[str, Any] | None) -> Iterator[Any]:
    """Yield every widget setting value of a page, then its SEO og_image."""
    if not isinstance(page, Mapping):
        return
    widgets = page.get("widgets")
    if isinstance(widgets, Mapping):
        for widget in widgets.values():
            yield from iter_widget_values(widget)
    seo = page.get("seo")
    if isinstance(seo, Mapping) and seo.get("og_image"):
        yield seo["og_image"]


def map_widget_settings(
    widget: Mapping[str, Any],
    transform: Callable[[dict[str, Any], str | None], dict[str, Any]],
) -> dict[str, Any]:
    """Copy a widget, passing its settings and each block's settings through ``transform``.

    Args:
        widget: Widget mapping with ``settings`` and ``blocks``.
        transform: Called with a settings dict and the owning block type
            (None for the widget itself); returns the new settings dict.

    Returns:
        A new widget dict; the input is not modified.
    """
    result = dict(widget)
    result["settings"] = transform(dict(widget.get("settings") or {}), None)
    blocks = {}
    for block_id, block in (widget.get("blocks") or {}).items():
        block = dict(block or {})
        block["settings"] = transform(dict(block.get("settings") or {}), block.get("type"))
        blocks[block_id] = block
    result["blocks"] = blocks
    return result


def normalize_media_path(value: str) -> str:
    """Normalize a media path to a single leading slash.

    Examples:
        >>> normalize_media_path("uploads/images/hero.jpg")
        '/uploads/images/hero.jpg'
    """
    return "/" + value.strip().lstrip("/")


class MediaReferenceMatcher:
    """Match setting values against the paths of known media records.

    A value is a media reference when it is a non-empty string whose
    normalized form equals the normalized path of a known record.
    """

    def __init__(self, records: Iterable[MediaRecord]):
        self._by_path: dict[str, MediaRecord] = {}
        for record in records:
            if record.path:
                self._by_path.setdefault(normalize_media_path(record.path), record)

    def match(self, value: Any) -> MediaRecord | None:
        if not isinstance(value, str) or not value.strip():
            return None
        return self._by_path.get(normalize_media_path(value))

    def __call__(self, value: Any) -> bool:
        return self.match(value) is not None

    def collect(self, values: Iterable[Any]) -> list[str]:
        """Return the normalized paths referenced by ``values``, deduplicated in order."""
        found: list[str] = []
        for value in values:
            record = self.match(value)
            if record is None:
                continue
            path = normalize_media_path(record.path)
            if path not in found:
                found.append(path)
        return found
