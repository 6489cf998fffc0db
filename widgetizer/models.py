"""Data model for Widgetizer.

Widget and block instances are authored elsewhere and stored as loosely-typed
JSON. The dataclasses here give that JSON a shape at the seams where the
engine needs one: schemas, widget trees, link values and media records.

Key classes:
- SettingDefinition, BlockSchema, WidgetSchema: Schema declarations.
- WidgetInstance, BlockInstance: Authored content trees.
- LinkValue: A link setting, optionally bound to a page by uuid.
- MediaRecord: One media file and the tokens of the entities using it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Non-data dividers in a settings panel; they never carry a value.
STRUCTURAL_TYPES = frozenset({"header"})
MEDIA_TYPES = frozenset({"image", "video", "audio"})
RICH_TEXT_TYPES = frozenset({"richtext"})

_LINK_TARGET_DEFAULT = "_self"


@dataclass
class SettingDefinition:
    """A single setting declared by a widget, block or theme schema.

    Attributes:
        id: Setting id, or None for structural entries.
        type: Declared type (text, number, link, menu, image, header, ...).
        default: Value used when an instance does not provide one.
        options: Remaining keys of the declaration (label, outputAsCssVar, ...).
    """

    id: str | None
    type: str
    default: Any = None
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def holds_data(self) -> bool:
        return bool(self.id) and self.type not in STRUCTURAL_TYPES

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SettingDefinition:
        options = {
            k: v for k, v in data.items() if k not in ("id", "type", "default")
        }
        return cls(
            id=data.get("id"),
            type=str(data.get("type") or "text"),
            default=data.get("default"),
            options=options,
        )


@dataclass
class BlockSchema:
    """Schema of one block type nested in a widget."""

    type: str
    settings: list[SettingDefinition] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BlockSchema:
        return cls(
            type=str(data.get("type") or ""),
            settings=_parse_settings(data.get("settings")),
        )


@dataclass
class WidgetSchema:
    """Schema of a widget type: its settings and the block types it accepts.

    Attributes:
        type: Widget type string.
        settings: Ordered setting definitions.
        blocks: Block schemas keyed by block type.
    """

    type: str
    settings: list[SettingDefinition] = field(default_factory=list)
    blocks: dict[str, BlockSchema] = field(default_factory=dict)

    @classmethod
    def empty(cls, widget_type: str = "") -> WidgetSchema:
        return cls(type=widget_type)

    @classmethod
    def from_dict(cls, data: dict[str, Any], widget_type: str = "") -> WidgetSchema:
        blocks: dict[str, BlockSchema] = {}
        raw_blocks = data.get("blocks")
        if isinstance(raw_blocks, list):
            for raw in raw_blocks:
                if isinstance(raw, dict) and raw.get("type"):
                    block = BlockSchema.from_dict(raw)
                    blocks[block.type] = block
        return cls(
            type=str(data.get("type") or widget_type),
            settings=_parse_settings(data.get("settings")),
            blocks=blocks,
        )

    def block_schema(self, block_type: str | None) -> BlockSchema | None:
        if not block_type:
            return None
        return self.blocks.get(block_type)


def _parse_settings(raw: Any) -> list[SettingDefinition]:
    if not isinstance(raw, list):
        return []
    return [SettingDefinition.from_dict(item) for item in raw if isinstance(item, dict)]


@dataclass
class BlockInstance:
    """A nested, repeatable sub-unit of a widget."""

    id: str
    type: str
    settings: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, block_id: str, data: dict[str, Any] | None) -> BlockInstance:
        data = data or {}
        settings = data.get("settings")
        return cls(
            id=str(data.get("id") or block_id),
            type=str(data.get("type") or ""),
            settings=dict(settings) if isinstance(settings, dict) else {},
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type, "settings": self.settings}


@dataclass
class WidgetInstance:
    """An authored widget: type, settings and ordered child blocks.

    Attributes:
        id: Instance id within its page or global slot.
        type: Widget type string used to find the template and schema.
        settings: Setting values keyed by setting id.
        blocks: Child blocks keyed by block id.
        blocks_order: Display order of the block ids.
    """

    id: str
    type: str
    settings: dict[str, Any] = field(default_factory=dict)
    blocks: dict[str, BlockInstance] = field(default_factory=dict)
    blocks_order: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, widget_id: str, data: dict[str, Any] | None) -> WidgetInstance:
        data = data or {}
        settings = data.get("settings")
        raw_blocks = data.get("blocks")
        blocks: dict[str, BlockInstance] = {}
        if isinstance(raw_blocks, dict):
            for block_id, raw in raw_blocks.items():
                blocks[block_id] = BlockInstance.from_dict(
                    block_id, raw if isinstance(raw, dict) else None
                )
        order = data.get("blocksOrder")
        return cls(
            id=str(data.get("id") or widget_id),
            type=str(data.get("type") or ""),
            settings=dict(settings) if isinstance(settings, dict) else {},
            blocks=blocks,
            blocks_order=[str(b) for b in order] if isinstance(order, list) else [],
        )


@dataclass
class LinkValue:
    """A link setting value.

    When ``page_uuid`` is set, ``href`` is a cached copy of the target page's
    URL and is re-derived at render time.
    """

    href: str = ""
    text: str = ""
    target: str = _LINK_TARGET_DEFAULT
    page_uuid: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LinkValue:
        extra = {
            k: v
            for k, v in data.items()
            if k not in ("href", "text", "target", "pageUuid")
        }
        return cls(
            href=str(data.get("href") or ""),
            text=str(data.get("text") or ""),
            target=str(data.get("target") or _LINK_TARGET_DEFAULT),
            page_uuid=data.get("pageUuid") or None,
            extra=extra,
        )

    @classmethod
    def cleared(cls) -> LinkValue:
        return cls()

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update({"href": self.href, "text": self.text, "target": self.target})
        if self.page_uuid:
            data["pageUuid"] = self.page_uuid
        return data


@dataclass
class MediaRecord:
    """A media file of a project and the entities that reference it.

    Attributes:
        id: Media file id.
        filename: Stored filename.
        path: Public path such as /uploads/images/hero.jpg.
        type: MIME type.
        used_in: Reference tokens (page id, "global:<slot>",
            "global:theme-settings"), without duplicates.
        extra: Any other persisted keys (width, sizes, metadata, ...).
    """

    id: str
    filename: str
    path: str
    type: str = ""
    used_in: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MediaRecord:
        extra = {
            k: v
            for k, v in data.items()
            if k not in ("id", "filename", "path", "type", "usedIn")
        }
        used_in: list[str] = []
        for token in data.get("usedIn") or []:
            if isinstance(token, str) and token not in used_in:
                used_in.append(token)
        return cls(
            id=str(data.get("id") or ""),
            filename=str(data.get("filename") or ""),
            path=str(data.get("path") or ""),
            type=str(data.get("type") or ""),
            used_in=used_in,
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "filename": self.filename,
            "path": self.path,
            "type": self.type,
        }
        data.update(self.extra)
        data["usedIn"] = list(self.used_in)
        return data

    def add_usage(self, token: str) -> bool:
        if token in self.used_in:
            return False
        self.used_in.append(token)
        return True

    def remove_usage(self, token: str) -> bool:
        if token not in self.used_in:
            return False
        self.used_in = [t for t in self.used_in if t != token]
        return True
