"""Theme settings helpers.

The raw theme document groups settings by category::

    {"settings": {"global": {"colors": [{"id": "primary", "value": "#06c", "default": "#000"}]}}}

Templates read a flattened ``{category: {id: value}}`` map; layouts may also
emit selected settings as CSS custom properties.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from typing import Any

logger = logging.getLogger(__name__)


def _global_settings(raw: Mapping[str, Any] | None) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        return {}
    settings = raw.get("settings")
    if not isinstance(settings, Mapping):
        return {}
    global_settings = settings.get("global")
    return global_settings if isinstance(global_settings, Mapping) else {}


def effective_value(item: Mapping[str, Any]) -> Any:
    """Return an item's value, falling back to its default, then None."""
    if item.get("value") is not None:
        return item["value"]
    return item.get("default")


def iter_theme_items(raw: Mapping[str, Any] | None) -> Iterator[tuple[str, Mapping[str, Any]]]:
    """Yield ``(category, item)`` for every setting item of a raw theme document."""
    for category, items in _global_settings(raw).items():
        if not isinstance(items, list):
            logger.warning(
                "Expected a list for theme settings category '%s', got %s",
                category,
                type(items).__name__,
            )
            continue
        for item in items:
            if isinstance(item, Mapping):
                yield category, item


def iter_theme_values(raw: Mapping[str, Any] | None) -> Iterator[Any]:
    """Yield the effective value of every theme setting item."""
    for _category, item in iter_theme_items(raw):
        yield effective_value(item)


def preprocess_theme_settings(raw: Mapping[str, Any] | None) -> dict[str, dict[str, Any]]:
    """Flatten a raw theme document into ``{category: {id: value}}``.

    Args:
        raw: Raw theme settings, possibly None.

    Returns:
        Flattened settings; empty when the document has no global settings.
    """
    processed: dict[str, dict[str, Any]] = {}
    for category, item in iter_theme_items(raw):
        bucket = processed.setdefault(category, {})
        if not item.get("id"):
            logger.warning("Theme setting in category '%s' is missing an 'id'", category)
            continue
        bucket[item["id"]] = effective_value(item)
    return processed


def theme_css_variables(raw: Mapping[str, Any] | None) -> dict[str, Any]:
    """Collect CSS custom properties from the theme settings.

    Font pickers contribute ``--<category>-<id>-family`` and ``-weight``;
    other items contribute ``--<category>-<id>`` when flagged ``outputAsCssVar``.
    """
    variables: dict[str, Any] = {}
    for category, item in iter_theme_items(raw):
        item_id = item.get("id")
        if not item_id:
            continue
        value = effective_value(item)
        if item.get("type") == "font_picker":
            if isinstance(value, Mapping) and value.get("stack") and value.get("weight") is not None:
                base = f"--{category}-{item_id}"
                variables[f"{base}-family"] = value["stack"]
                variables[f"{base}-weight"] = value["weight"]
        elif item.get("outputAsCssVar") is True and value is not None:
            variables[f"--{category}-{item_id}"] = value
    return variables
