import json

import pytest

from conftest import PROJECT_ID, write_json
from widgetizer.models import MediaRecord
from widgetizer.stores import ProjectNotFoundError, StoreError, Workspace


def test_workspace_project_paths(tmp_path):
    workspace = Workspace(tmp_path)
    assert workspace.project_dir("site") == tmp_path / "projects" / "site"
    assert workspace.project_dir("site", "alice") == tmp_path / "users" / "alice" / "projects" / "site"
    with pytest.raises(ProjectNotFoundError, match="site"):
        workspace.project("site")
    with pytest.raises(ProjectNotFoundError):
        workspace.project("../escape")
    with pytest.raises(ProjectNotFoundError):
        workspace.project("")


def test_page_store(workspace, project_dir):
    pages = workspace.project(PROJECT_ID).pages
    assert [p["id"] for p in pages.list_pages()] == ["about", "home"]
    assert pages.get_page("home")["uuid"] == "page-uuid-home"
    assert pages.get_page("nope") is None
    pages.put_page("new", {"id": "ignored", "name": "New", "slug": "new"})
    stored = json.loads((project_dir / "pages" / "new.json").read_text(encoding="utf-8"))
    assert stored == {"name": "New", "slug": "new"}
    pages.delete_page("new")
    assert pages.get_page("new") is None
    with pytest.raises(ValueError):
        pages.get_page("../theme")


def test_invalid_json_raises_store_error(workspace, project_dir):
    (project_dir / "pages" / "bad.json").write_text('{"a": ', encoding="utf-8")
    with pytest.raises(StoreError) as excinfo:
        workspace.project(PROJECT_ID).pages.list_pages()
    assert excinfo.value.path.name == "bad.json"
    assert "Invalid JSON" in excinfo.value.message


def test_menu_store(workspace, project_dir):
    write_json(project_dir / "menus" / "footer.json", {"name": "Footer", "items": []})
    menus = workspace.project(PROJECT_ID).menus
    assert [m["id"] for m in menus.list_menus()] == ["footer", "main-nav"]
    assert menus.get_menu("main-nav")["uuid"] == "menu-uuid-main-nav"
    assert menus.get_menu("footer")["id"] == "footer"
    assert menus.get_menu("missing") is None
    assert menus.get_menu("../x") is None


def test_media_store_round_trip_keeps_document_keys(workspace, project_dir):
    write_json(project_dir / "media.json", {"files": [{"id": "a", "filename": "a.jpg", "path": "/uploads/images/a.jpg", "usedIn": ["x", "x"]}], "version": 2})
    media = workspace.project(PROJECT_ID).media
    records = media.list_media()
    assert records[0].used_in == ["x"]
    records.append(MediaRecord(id="b", filename="b.jpg", path="/uploads/images/b.jpg"))
    media.write_media(records)
    document = json.loads((project_dir / "media.json").read_text(encoding="utf-8"))
    assert document["version"] == 2
    assert [f["id"] for f in document["files"]] == ["a", "b"]
    assert document["files"][1]["usedIn"] == []
    assert not list(project_dir.glob(".media.json.*"))


def test_media_store_rejects_non_object(workspace, project_dir):
    (project_dir / "media.json").write_text("[]", encoding="utf-8")
    with pytest.raises(StoreError):
        workspace.project(PROJECT_ID).media.list_media()


def test_global_widget_and_theme_stores(workspace, project_dir):
    stores = workspace.project(PROJECT_ID)
    assert stores.global_widgets.list_slots() == []
    stores.global_widgets.put_global_widget("header", {"type": "header", "settings": {}})
    assert stores.global_widgets.list_slots() == ["header"]
    assert stores.global_widgets.get_global_widget("header")["type"] == "header"
    assert stores.global_widgets.get_global_widget("footer") is None
    assert stores.theme.get_theme_settings()["settings"]["global"]["colors"][0]["id"] == "primary_color"
    stores.theme.put_theme_settings({"settings": {}})
    assert stores.theme.get_theme_settings() == {"settings": {}}


def test_layout_source_candidates(workspace, project_dir):
    stores = workspace.project(PROJECT_ID)
    assert "<!DOCTYPE html>" in stores.layout_source()
    (project_dir / "layout.html.jinja").unlink()
    assert stores.layout_source() is None
    (project_dir / "layout.html").write_text("<html>{{ main_content }}</html>", encoding="utf-8")
    assert stores.layout_source() == "<html>{{ main_content }}</html>"


def test_default_implementations_satisfy_protocols(workspace, project_dir):
    from widgetizer.protocols import (
        GlobalWidgetStore,
        MediaStore,
        MenuStore,
        PageStore,
        TemplateExecutor,
        ThemeSettingsStore,
        WidgetSource,
    )
    from widgetizer.registry import DirectoryWidgetSource, InMemoryWidgetSource
    from widgetizer.templates import JinjaTemplateExecutor

    stores = workspace.project(PROJECT_ID)
    assert isinstance(stores.pages, PageStore)
    assert isinstance(stores.menus, MenuStore)
    assert isinstance(stores.media, MediaStore)
    assert isinstance(stores.global_widgets, GlobalWidgetStore)
    assert isinstance(stores.theme, ThemeSettingsStore)
    assert isinstance(JinjaTemplateExecutor(), TemplateExecutor)
    assert isinstance(DirectoryWidgetSource(project_dir / "widgets", "project"), WidgetSource)
    assert isinstance(InMemoryWidgetSource(), WidgetSource)
