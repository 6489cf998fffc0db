"""Render-session context for Widgetizer.

A RenderContext is created by the caller for one page render or export pass,
passed by reference to every widget and layout render of that pass, then
discarded. It caches lookups that would otherwise repeat once per widget and
collects the assets templates enqueue.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .assets import RENDER_MODES
from .models import MediaRecord
from .protocols import MediaStore, MenuStore, PageStore
from .stores import StoreError

logger = logging.getLogger(__name__)

DEFAULT_ASSET_PRIORITY = 10


@dataclass
class RenderContext:
    """Mutable, caller-owned state shared by the renders of one session.

    Attributes:
        project_id: Project being rendered.
        render_mode: "preview" or "publish".
        theme_settings_raw: Raw theme settings document.
        enqueued_styles: Stylesheet options keyed by file path.
        enqueued_scripts: Script options keyed by file path.
        enqueued_preloads: Preload options keyed by URL.
    """

    project_id: str
    render_mode: str = "preview"
    theme_settings_raw: dict[str, Any] | None = None
    enqueued_styles: dict[str, dict[str, Any]] = field(default_factory=dict)
    enqueued_scripts: dict[str, dict[str, Any]] = field(default_factory=dict)
    enqueued_preloads: dict[str, dict[str, Any]] = field(default_factory=dict)
    _pages_by_uuid: dict[str, dict[str, Any]] | None = field(default=None, repr=False)
    _menus: list[dict[str, Any]] | None = field(default=None, repr=False)
    _media_files: list[MediaRecord] | None = field(default=None, repr=False)

    def __post_init__(self):
        if self.render_mode not in RENDER_MODES:
            raise ValueError(f"Unknown render mode: {self.render_mode}")

    def pages_by_uuid(self, store: PageStore) -> dict[str, dict[str, Any]]:
        """Return the project's pages keyed by uuid, loading them once per session.

        A store failure is logged and leaves an empty index for the session.
        """
        if self._pages_by_uuid is None:
            index: dict[str, dict[str, Any]] = {}
            try:
                for page in store.list_pages():
                    if page.get("uuid"):
                        index[page["uuid"]] = page
            except StoreError as exc:
                logger.warning("Could not load pages for link resolution: %s", exc)
            self._pages_by_uuid = index
        return self._pages_by_uuid

    def menus(self, store: MenuStore) -> list[dict[str, Any]]:
        """Return the project's menus, loading them once per session."""
        if self._menus is None:
            try:
                self._menus = store.list_menus()
            except StoreError as exc:
                logger.warning("Could not load menus: %s", exc)
                self._menus = []
        return self._menus

    def media_files(self, store: MediaStore) -> list[MediaRecord]:
        """Return the project's media records, loading them once per session."""
        if self._media_files is None:
            try:
                self._media_files = store.list_media()
            except StoreError as exc:
                logger.warning("Could not load media for project %s: %s", self.project_id, exc)
                self._media_files = []
        return self._media_files

    def enqueue_style(
        self,
        filepath: str,
        *,
        priority: int = DEFAULT_ASSET_PRIORITY,
        location: str = "header",
        source: str = "theme",
        widget_type: str | None = None,
        **attrs: Any,
    ) -> None:
        """Register a stylesheet; a path enqueued twice is kept once."""
        self.enqueued_styles[filepath] = {
            "priority": priority,
            "location": location,
            "source": source,
            "widget_type": widget_type,
            **attrs,
        }

    def enqueue_script(
        self,
        filepath: str,
        *,
        priority: int = DEFAULT_ASSET_PRIORITY,
        location: str = "footer",
        source: str = "theme",
        widget_type: str | None = None,
        **attrs: Any,
    ) -> None:
        """Register a script; a path enqueued twice is kept once."""
        self.enqueued_scripts[filepath] = {
            "priority": priority,
            "location": location,
            "source": source,
            "widget_type": widget_type,
            **attrs,
        }

    def enqueue_preload(self, href: str, **attrs: Any) -> None:
        self.enqueued_preloads[href] = dict(attrs)

    def assets_at(self, location: str) -> tuple[list[tuple[str, dict]], list[tuple[str, dict]]]:
        """Return ``(styles, scripts)`` enqueued for a location, sorted by priority."""

        def pick(enqueued: dict[str, dict[str, Any]]) -> list[tuple[str, dict]]:
            items = [(path, opts) for path, opts in enqueued.items() if opts.get("location") == location]
            return sorted(items, key=lambda item: item[1].get("priority", DEFAULT_ASSET_PRIORITY))

        return pick(self.enqueued_styles), pick(self.enqueued_scripts)

    def template_vars(self) -> dict[str, Any]:
        """Return the session values exposed at the top level of template contexts."""
        return {
            "project_id": self.project_id,
            "render_mode": self.render_mode,
            "theme_settings_raw": self.theme_settings_raw,
            "enqueued_styles": self.enqueued_styles,
            "enqueued_scripts": self.enqueued_scripts,
        }
