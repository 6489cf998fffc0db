"""Media usage index for Widgetizer.

Each media record keeps a ``usedIn`` list naming the entities that currently
reference its path: a page id, ``global:<slot>`` for a global widget, or
``global:theme-settings``. The index is updated incrementally whenever one
entity is saved or removed, and can be rebuilt from the stores to repair drift.

Every update is a read-modify-write of the project's media collection done
under a lock scoped to that project, so concurrent updates for different
entities are all retained and a rebuild never interleaves with them.

Key class:
- MediaUsageIndex: The six index operations.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from .models import MediaRecord
from .stores import ProjectStores, Workspace
from .theme import iter_theme_values
from .walk import MediaReferenceMatcher, iter_page_values, iter_widget_values, normalize_media_path

logger = logging.getLogger(__name__)

GLOBAL_PREFIX = "global:"
THEME_SETTINGS_TOKEN = "global:theme-settings"


class MediaNotFoundError(LookupError):
    """Error raised when a media file id is unknown.

    Attributes:
        project_id: Project that was searched.
        file_id: The requested media file id.
    """

    def __init__(self, project_id: str, file_id: str):
        self.project_id = project_id
        self.file_id = file_id
        super().__init__(f"Media file not found: {file_id}")


def global_widget_token(slot_id: str) -> str:
    """Return the usage token of a global widget slot.

    Examples:
        >>> global_widget_token("header")
        'global:header'
        >>> global_widget_token("global:header")
        'global:header'
    """
    return slot_id if slot_id.startswith(GLOBAL_PREFIX) else f"{GLOBAL_PREFIX}{slot_id}"


def extract_page_media(page: Mapping[str, Any] | None, matcher: MediaReferenceMatcher) -> list[str]:
    """Return the media paths referenced by a page's widgets, blocks and SEO image."""
    return matcher.collect(iter_page_values(page))


def extract_widget_media(widget: Mapping[str, Any] | None, matcher: MediaReferenceMatcher) -> list[str]:
    """Return the media paths referenced by one widget and its blocks."""
    return matcher.collect(iter_widget_values(widget))


def extract_theme_media(theme: Mapping[str, Any] | None, matcher: MediaReferenceMatcher) -> list[str]:
    """Return the media paths referenced by theme settings values."""
    return matcher.collect(iter_theme_values(theme))


def _apply_usage(records: Iterable[MediaRecord], token: str, paths: Iterable[str]) -> bool:
    """Make ``token`` appear exactly on the records whose path is in ``paths``.

    Only records whose membership changes are touched.

    Returns:
        True if any record changed.
    """
    wanted = set(paths)
    changed = False
    for record in records:
        if normalize_media_path(record.path) in wanted:
            changed |= record.add_usage(token)
        else:
            changed |= record.remove_usage(token)
    return changed


class MediaUsageIndex:
    """Maintains the ``usedIn`` reverse index of every project in a workspace.

    One index instance should serve a workspace so that all writers share the
    same per-project locks.

    Attributes:
        workspace: Workspace the projects live in.
    """

    def __init__(self, workspace: Workspace):
        self.workspace = workspace
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, stores: ProjectStores) -> threading.Lock:
        key = str(stores.project_dir.resolve())
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def _update(
        self,
        stores: ProjectStores,
        token: str,
        extract: Callable[[MediaReferenceMatcher], list[str]],
    ) -> list[str]:
        with self._lock_for(stores):
            records = stores.media.list_media()
            paths = extract(MediaReferenceMatcher(records))
            if _apply_usage(records, token, paths):
                stores.media.write_media(records)
            logger.debug("Usage of %s in project %s: %s", token, stores.project_id, paths)
            return paths

    def update_page_media_usage(
        self,
        project_id: str,
        page_id: str,
        page_data: Mapping[str, Any] | None,
        scope: str | None = None,
    ) -> dict[str, Any]:
        """Record the media a page references, replacing its previous usage.

        Returns:
            ``{"success": True, "mediaPaths": [...]}``; an empty list is not an error.
        """
        stores = self.workspace.project(project_id, scope)
        paths = self._update(stores, page_id, lambda m: extract_page_media(page_data, m))
        return {"success": True, "mediaPaths": paths}

    def update_global_widget_media_usage(
        self,
        project_id: str,
        slot_id: str,
        widget_data: Mapping[str, Any] | None,
        scope: str | None = None,
    ) -> dict[str, Any]:
        """Record the media a global widget (header, footer, ...) references."""
        stores = self.workspace.project(project_id, scope)
        token = global_widget_token(slot_id)
        paths = self._update(stores, token, lambda m: extract_widget_media(widget_data, m))
        return {"success": True, "mediaPaths": paths}

    def update_theme_settings_media_usage(
        self,
        project_id: str,
        theme_data: Mapping[str, Any] | None,
        scope: str | None = None,
    ) -> dict[str, Any]:
        """Record the media the theme settings reference (favicon, logo, ...)."""
        stores = self.workspace.project(project_id, scope)
        paths = self._update(
            stores, THEME_SETTINGS_TOKEN, lambda m: extract_theme_media(theme_data, m)
        )
        return {"success": True, "mediaPaths": paths}

    def remove_page_from_media_usage(
        self, project_id: str, page_id: str, scope: str | None = None
    ) -> dict[str, Any]:
        """Drop a page from every ``usedIn`` list."""
        stores = self.workspace.project(project_id, scope)
        self._update(stores, page_id, lambda m: [])
        return {"success": True}

    def get_media_usage(
        self, project_id: str, file_id: str, scope: str | None = None
    ) -> dict[str, Any]:
        """Return the usage of one media file.

        Raises:
            MediaNotFoundError: If no media record has this id.
        """
        stores = self.workspace.project(project_id, scope)
        with self._lock_for(stores):
            records = stores.media.list_media()
        for record in records:
            if record.id == file_id:
                return {
                    "fileId": file_id,
                    "filename": record.filename,
                    "usedIn": list(record.used_in),
                    "isInUse": bool(record.used_in),
                }
        raise MediaNotFoundError(project_id, file_id)

    def refresh_all_media_usage(
        self, project_id: str, scope: str | None = None
    ) -> dict[str, Any]:
        """Rebuild every ``usedIn`` list from the pages, global widgets and theme.

        Everything is read before anything is written, so a failing store
        leaves the persisted index untouched.

        Returns:
            ``{"success": True, "message": ...}``; the message tells a project
            without a pages directory apart from one with zero pages.
        """
        stores = self.workspace.project(project_id, scope)
        with self._lock_for(stores):
            if not stores.pages.exists():
                return {"success": True, "message": "No pages directory found"}

            records = stores.media.list_media()
            before = [list(record.used_in) for record in records]
            matcher = MediaReferenceMatcher(records)
            usage: list[tuple[str, list[str]]] = []

            pages = stores.pages.list_pages()
            for page in pages:
                usage.append((page["id"], extract_page_media(page, matcher)))
            for slot_id in stores.global_widgets.list_slots():
                widget = stores.global_widgets.get_global_widget(slot_id)
                usage.append((global_widget_token(slot_id), extract_widget_media(widget, matcher)))
            theme = stores.theme.get_theme_settings()
            usage.append((THEME_SETTINGS_TOKEN, extract_theme_media(theme, matcher)))

            for record in records:
                record.used_in = []
            for token, paths in usage:
                _apply_usage(records, token, paths)

            if [record.used_in for record in records] != before:
                stores.media.write_media(records)
            logger.info("Rebuilt media usage for project %s from %d pages", project_id, len(pages))
            return {
                "success": True,
                "message": f"Refreshed usage tracking for {len(pages)} pages",
            }
