"""File-system entity stores for Widgetizer.

Each project lives in its own directory under the workspace data directory::

    <data_dir>/projects/<project_id>/            (unscoped)
    <data_dir>/users/<scope>/projects/<project_id>/  (scoped to a user)
        pages/<page_id>.json
        pages/global/<slot>.json
        menus/<menu_id>.json
        media.json
        theme.json
        widgets/<type>/, widgets/global/<type>/
        snippets/
        layout.html.jinja

Key classes:
- Workspace: Resolves project directories and hands out ProjectStores.
- ProjectStores: The stores of one project, bundled.
- FileSystemPageStore, FileSystemMenuStore, FileSystemMediaStore,
  FileSystemGlobalWidgetStore, FileSystemThemeSettingsStore: JSON-backed
  implementations of the protocols in protocols.py.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .models import MediaRecord

LAYOUT_CANDIDATES = ("layout.html.jinja", "layout.jinja", "layout.html")


class ProjectNotFoundError(Exception):
    """Error raised when a project directory cannot be resolved.

    Attributes:
        project_id: The requested project id.
        scope: The user scope the lookup ran in, if any.
    """

    def __init__(self, project_id: str, scope: str | None = None):
        self.project_id = project_id
        self.scope = scope
        where = f" for scope '{scope}'" if scope else ""
        super().__init__(f"Project '{project_id}' not found{where}")


class StoreError(Exception):
    """Error raised when a store file exists but cannot be read or parsed.

    Attributes:
        path: Path of the offending file.
        message: Human-readable error message.
        original_error: The original exception that was caught.
    """

    def __init__(
        self,
        path: Path,
        message: str,
        original_error: Exception | None = None,
    ):
        self.path = path
        self.message = message
        self.original_error = original_error
        super().__init__(f"{path}: {message}")


def _safe_name(name: str) -> str:
    """Validate an id used as a file or directory name."""
    if not name or name in (".", "..") or "/" in name or "\\" in name or "\x00" in name:
        raise ValueError(f"Invalid identifier: {name!r}")
    return name


def _read_json(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as exc:
        raise StoreError(path, f"Invalid JSON on line {exc.lineno}: {exc.msg}", exc) from exc
    except OSError as exc:
        raise StoreError(path, f"Could not read file: {exc.strerror or exc}", exc) from exc


def _write_json(path: Path, data: Any) -> None:
    """Write JSON atomically: a temp file in the same directory, then replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class FileSystemPageStore:
    """Pages stored as pages/<page_id>.json; the file stem is the page id."""

    def __init__(self, pages_dir: Path):
        self.pages_dir = pages_dir

    def exists(self) -> bool:
        return self.pages_dir.is_dir()

    def list_pages(self) -> list[dict[str, Any]]:
        if not self.pages_dir.is_dir():
            return []
        pages = []
        for path in sorted(self.pages_dir.glob("*.json")):
            if not path.is_file():
                continue
            data = _read_json(path)
            if isinstance(data, dict):
                pages.append({**data, "id": path.stem})
        return pages

    def get_page(self, page_id: str) -> dict[str, Any] | None:
        path = self.pages_dir / f"{_safe_name(page_id)}.json"
        if not path.is_file():
            return None
        data = _read_json(path)
        return {**data, "id": page_id} if isinstance(data, dict) else None

    def put_page(self, page_id: str, page: Mapping[str, Any]) -> None:
        payload = {k: v for k, v in page.items() if k != "id"}
        _write_json(self.pages_dir / f"{_safe_name(page_id)}.json", payload)

    def delete_page(self, page_id: str) -> None:
        (self.pages_dir / f"{_safe_name(page_id)}.json").unlink(missing_ok=True)


class FileSystemMenuStore:
    """Menus stored as menus/<menu_id>.json."""

    def __init__(self, menus_dir: Path):
        self.menus_dir = menus_dir

    def list_menus(self) -> list[dict[str, Any]]:
        if not self.menus_dir.is_dir():
            return []
        menus = []
        for path in sorted(self.menus_dir.glob("*.json")):
            data = _read_json(path)
            if isinstance(data, dict):
                menus.append({**data, "id": data.get("id") or path.stem})
        return menus

    def get_menu(self, menu_id: str) -> dict[str, Any] | None:
        try:
            path = self.menus_dir / f"{_safe_name(menu_id)}.json"
        except ValueError:
            return None
        if not path.is_file():
            return None
        data = _read_json(path)
        if not isinstance(data, dict):
            return None
        return {**data, "id": data.get("id") or menu_id}


class FileSystemMediaStore:
    """The media collection stored as media.json ({"files": [...]})."""

    def __init__(self, media_path: Path):
        self.media_path = media_path

    def _read_document(self) -> dict[str, Any]:
        if not self.media_path.exists():
            return {"files": []}
        data = _read_json(self.media_path)
        if not isinstance(data, dict):
            raise StoreError(self.media_path, "Expected a JSON object")
        return data

    def list_media(self) -> list[MediaRecord]:
        files = self._read_document().get("files") or []
        return [MediaRecord.from_dict(f) for f in files if isinstance(f, dict)]

    def write_media(self, records: list[MediaRecord]) -> None:
        document = self._read_document()
        document["files"] = [record.to_dict() for record in records]
        _write_json(self.media_path, document)


class FileSystemGlobalWidgetStore:
    """Global widget slots stored as pages/global/<slot>.json."""

    def __init__(self, global_dir: Path):
        self.global_dir = global_dir

    def list_slots(self) -> list[str]:
        if not self.global_dir.is_dir():
            return []
        return sorted(p.stem for p in self.global_dir.glob("*.json") if p.is_file())

    def get_global_widget(self, slot_id: str) -> dict[str, Any] | None:
        path = self.global_dir / f"{_safe_name(slot_id)}.json"
        if not path.is_file():
            return None
        data = _read_json(path)
        return data if isinstance(data, dict) else None

    def put_global_widget(self, slot_id: str, widget: Mapping[str, Any]) -> None:
        _write_json(self.global_dir / f"{_safe_name(slot_id)}.json", dict(widget))


class FileSystemThemeSettingsStore:
    """The raw theme settings document stored as theme.json."""

    def __init__(self, theme_path: Path):
        self.theme_path = theme_path

    def get_theme_settings(self) -> dict[str, Any] | None:
        if not self.theme_path.is_file():
            return None
        data = _read_json(self.theme_path)
        return data if isinstance(data, dict) else None

    def put_theme_settings(self, settings: Mapping[str, Any]) -> None:
        _write_json(self.theme_path, dict(settings))


@dataclass
class ProjectStores:
    """The entity stores and template locations of one project.

    Attributes:
        project_id: Project id.
        scope: User scope, or None for unscoped projects.
        project_dir: Root directory of the project.
    """

    project_id: str
    scope: str | None
    project_dir: Path
    pages: FileSystemPageStore
    menus: FileSystemMenuStore
    media: FileSystemMediaStore
    global_widgets: FileSystemGlobalWidgetStore
    theme: FileSystemThemeSettingsStore

    @classmethod
    def at(cls, project_id: str, scope: str | None, project_dir: Path) -> ProjectStores:
        pages_dir = project_dir / "pages"
        return cls(
            project_id=project_id,
            scope=scope,
            project_dir=project_dir,
            pages=FileSystemPageStore(pages_dir),
            menus=FileSystemMenuStore(project_dir / "menus"),
            media=FileSystemMediaStore(project_dir / "media.json"),
            global_widgets=FileSystemGlobalWidgetStore(pages_dir / "global"),
            theme=FileSystemThemeSettingsStore(project_dir / "theme.json"),
        )

    @property
    def widgets_dir(self) -> Path:
        return self.project_dir / "widgets"

    @property
    def snippets_dir(self) -> Path:
        return self.project_dir / "snippets"

    def layout_source(self) -> str | None:
        """Return the source of the project's layout template, if any."""
        for name in LAYOUT_CANDIDATES:
            path = self.project_dir / name
            if path.is_file():
                return path.read_text(encoding="utf-8")
        return None


class Workspace:
    """Resolves project directories under a data directory.

    Attributes:
        data_dir: Root directory holding all projects.
    """

    def __init__(self, data_dir: Path):
        self.data_dir = data_dir

    def project_dir(self, project_id: str, scope: str | None = None) -> Path:
        base = self.data_dir
        if scope:
            base = base / "users" / _safe_name(scope)
        return base / "projects" / _safe_name(project_id)

    def project(self, project_id: str, scope: str | None = None) -> ProjectStores:
        """Return the stores of a project.

        Raises:
            ProjectNotFoundError: If the project directory does not exist.
        """
        if not project_id:
            raise ProjectNotFoundError(project_id, scope)
        try:
            project_dir = self.project_dir(project_id, scope)
        except ValueError as exc:
            raise ProjectNotFoundError(project_id, scope) from exc
        if not project_dir.is_dir():
            raise ProjectNotFoundError(project_id, scope)
        return ProjectStores.at(project_id, scope, project_dir)
