"""Reference resolution for Widgetizer.

Settings may point at other entities: a link at a page, a menu setting at a
menu, a media setting at an uploaded file. This module resolves those forward
references for one render session.

Dangling references never raise. A link to a deleted page is cleared, an
unknown menu becomes an empty menu, and media paths pass through unchecked.
Rich text is cleaned down to the editor's formatting tags before it is
marked as trusted markup.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from markupsafe import Markup

from .context import RenderContext
from .html_utils import page_url, sanitize_href, sanitize_rich_text
from .models import RICH_TEXT_TYPES, LinkValue, SettingDefinition, WidgetSchema
from .protocols import MenuStore, PageStore
from .schema import ResolvedWidget
from .stores import StoreError
from .walk import is_link_value, map_widget_settings

logger = logging.getLogger(__name__)


def empty_menu() -> dict[str, Any]:
    return {"items": []}


class ReferenceResolver:
    """Resolves link, menu and rich-text settings against the entity stores.

    Lookups go through the RenderContext so that pages and menus are loaded
    once per render session.

    Attributes:
        context: The render session.
        pages: Page store of the project.
        menus: Menu store of the project.
    """

    def __init__(self, context: RenderContext, pages: PageStore, menus: MenuStore):
        self.context = context
        self.pages = pages
        self.menus = menus

    def resolve_link(self, value: Any) -> Any:
        """Resolve a link value.

        Links bound to a page by ``pageUuid`` get the page's current URL; when
        the page no longer exists the link is cleared. Unbound links pass
        through. Hrefs using script-capable protocols are dropped.
        """
        if not is_link_value(value):
            return value
        link = LinkValue.from_dict(dict(value))
        if link.page_uuid:
            page = self.context.pages_by_uuid(self.pages).get(link.page_uuid)
            if page is None:
                logger.warning("Link target page %s no longer exists; clearing link", link.page_uuid)
                return LinkValue.cleared().to_dict()
            link.href = page_url(str(page.get("slug") or page.get("id") or ""))
        link.href = sanitize_href(link.href)
        return link.to_dict()

    def resolve_menu_items(self, items: Any) -> Any:
        """Rewrite ``link`` of items bound to a page, recursing into ``items``."""
        if not isinstance(items, list):
            return items
        pages = self.context.pages_by_uuid(self.pages)
        resolved = []
        for item in items:
            if not isinstance(item, Mapping):
                continue
            item = dict(item)
            page_uuid = item.get("pageUuid")
            if page_uuid:
                page = pages.get(page_uuid)
                if page is not None:
                    item["link"] = page_url(str(page.get("slug") or page.get("id") or ""))
                else:
                    item["link"] = ""
                    item.pop("pageUuid", None)
            if isinstance(item.get("link"), str):
                item["link"] = sanitize_href(item["link"])
            if item.get("items"):
                item["items"] = self.resolve_menu_items(item["items"])
            resolved.append(item)
        return resolved

    def find_menu(self, reference: str) -> dict[str, Any] | None:
        """Find a menu by uuid first, then by slug id."""
        menus = self.context.menus(self.menus)
        for menu in menus:
            if menu.get("uuid") == reference:
                return menu
        for menu in menus:
            if menu.get("id") == reference:
                return menu
        try:
            return self.menus.get_menu(reference)
        except StoreError as exc:
            logger.warning("Could not read menu %s: %s", reference, exc)
            return None

    def resolve_menu(self, value: Any) -> dict[str, Any]:
        """Resolve a menu setting (uuid, slug or menu object) to a menu object."""
        if isinstance(value, Mapping):
            menu = dict(value)
        elif isinstance(value, str) and value:
            menu = self.find_menu(value)
            if menu is None:
                logger.warning("Menu %s not found; rendering an empty menu", value)
                return empty_menu()
            menu = dict(menu)
        else:
            return empty_menu()
        menu["items"] = self.resolve_menu_items(menu.get("items") or [])
        return menu

    def resolve_value(self, value: Any, setting_type: str | None) -> Any:
        if setting_type == "menu":
            return self.resolve_menu(value)
        if setting_type in RICH_TEXT_TYPES:
            return Markup(sanitize_rich_text(value)) if isinstance(value, str) else value
        if setting_type == "link" or is_link_value(value):
            return self.resolve_link(value)
        return value

    def resolve_settings(
        self, settings: Mapping[str, Any], definitions: list[SettingDefinition]
    ) -> dict[str, Any]:
        """Resolve every setting by its declared type.

        Settings absent from ``definitions`` are still checked for link objects.
        """
        types = {d.id: d.type for d in definitions if d.holds_data}
        return {key: self.resolve_value(value, types.get(key)) for key, value in settings.items()}

    def resolve_widget(self, widget: ResolvedWidget, schema: WidgetSchema) -> ResolvedWidget:
        """Resolve the references of a widget and of all its blocks."""

        def transform(settings: dict[str, Any], block_type: str | None) -> dict[str, Any]:
            if block_type is None:
                return self.resolve_settings(settings, schema.settings)
            block_schema = schema.block_schema(block_type)
            return self.resolve_settings(settings, block_schema.settings if block_schema else [])

        tree = map_widget_settings({"settings": widget.settings, "blocks": widget.blocks}, transform)
        return ResolvedWidget(
            id=widget.id,
            type=widget.type,
            settings=tree["settings"],
            blocks=tree["blocks"],
            blocks_order=list(widget.blocks_order),
        )
