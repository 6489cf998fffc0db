"""Schema resolution for Widgetizer.

Merges the settings of a widget instance, and of each of its blocks, with the
defaults declared by the corresponding schema. Resolution is pure: missing
settings take the schema default, settings unknown to the schema pass through
untouched, and nothing here raises on malformed content.
"""

from __future__ import annotations

import copy
import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .models import SettingDefinition, WidgetInstance, WidgetSchema

logger = logging.getLogger(__name__)


@dataclass
class ResolvedWidget:
    """A widget whose settings have been merged with schema defaults.

    Attributes:
        id: Widget instance id.
        type: Widget type.
        settings: Effective widget settings.
        blocks: Effective blocks keyed by id, each ``{id, type, settings}``.
        blocks_order: Display order of block ids.
    """

    id: str
    type: str
    settings: dict[str, Any] = field(default_factory=dict)
    blocks: dict[str, dict[str, Any]] = field(default_factory=dict)
    blocks_order: list[str] = field(default_factory=list)


def apply_defaults(
    definitions: Iterable[SettingDefinition], settings: Mapping[str, Any] | None
) -> dict[str, Any]:
    """Return ``settings`` completed with the defaults of ``definitions``.

    Every data-holding definition gets a key; provided values win. Keys that
    no definition declares are kept as they are.
    """
    effective: dict[str, Any] = {}
    for definition in definitions:
        if definition.holds_data:
            effective[definition.id] = copy.deepcopy(definition.default)
    if settings:
        effective.update(settings)
    return effective


def resolve_widget(widget: WidgetInstance, schema: WidgetSchema) -> ResolvedWidget:
    """Merge a widget instance and its blocks with schema defaults.

    Each block is resolved with the schema of its own block type; blocks of a
    type the widget schema does not declare keep their settings unchanged.
    """
    blocks: dict[str, dict[str, Any]] = {}
    for block_id, block in widget.blocks.items():
        block_schema = schema.block_schema(block.type)
        definitions = block_schema.settings if block_schema else []
        blocks[block_id] = {
            "id": block.id,
            "type": block.type,
            "settings": apply_defaults(definitions, block.settings),
        }
    return ResolvedWidget(
        id=widget.id,
        type=widget.type,
        settings=apply_defaults(schema.settings, widget.settings),
        blocks=blocks,
        blocks_order=list(widget.blocks_order),
    )


def load_schema(path: Path, widget_type: str = "") -> WidgetSchema:
    """Load a widget schema from a JSON file.

    A missing or unreadable schema yields an empty schema so the widget can
    still render with the settings it carries.

    Args:
        path: Path to schema.json.
        widget_type: Type used when the file does not name one.

    Returns:
        The parsed WidgetSchema.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.warning("Widget schema not found at %s; using empty schema", path)
        return WidgetSchema.empty(widget_type)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Widget schema at %s is invalid (%s); using empty schema", path, exc)
        return WidgetSchema.empty(widget_type)
    if not isinstance(data, dict):
        logger.warning("Widget schema at %s is not an object; using empty schema", path)
        return WidgetSchema.empty(widget_type)
    return WidgetSchema.from_dict(data, widget_type)
