import json
from pathlib import Path

import pytest

from widgetizer.media_usage import MediaUsageIndex
from widgetizer.rendering import Renderer
from widgetizer.stores import Workspace

PROJECT_ID = "demo"

RAW_THEME_SETTINGS = {
    "settings": {
        "global": {
            "colors": [
                {"id": "primary_color", "type": "color", "value": "#0066cc", "default": "#000000", "outputAsCssVar": True},
            ],
            "typography": [
                {"id": "body_font", "type": "font_picker", "default": {"stack": "Inter, sans-serif", "weight": 400}},
            ],
        }
    }
}

LAYOUT = """<!DOCTYPE html>
<html lang="en">
<head>
{{ seo_tags() }}
{{ theme_settings() }}
{{ header_assets() }}
</head>
<body class="{{ body_class }}">
{{ header }}
<main>{{ main_content }}</main>
{{ footer }}
{{ footer_assets() }}
</body>
</html>
"""

TEST_HERO_TEMPLATE = """<section class="hero">
  <h1>{{ widget.settings.heading }}</h1>
  {% if widget.settings.subtitle %}<p>{{ widget.settings.subtitle }}</p>{% endif %}
  {% if widget.settings.cta_link.href %}<a class="cta" href="{{ widget.settings.cta_link.href }}">{{ widget.settings.cta_link.text }}</a>{% endif %}
  <nav>{% for item in widget.settings.nav_menu["items"] %}<a href="{{ item.link }}">{{ item.label }}</a>{% endfor %}</nav>
  {% for block_id in widget.blocksOrder %}<div class="feature">{{ widget.blocks[block_id].settings.label }}</div>{% endfor %}
  <p class="index">{{ widget.index }}</p>
</section>
"""

TEST_HERO_SCHEMA = {
    "type": "test-hero",
    "settings": [
        {"type": "header", "label": "Content"},
        {"id": "heading", "type": "text", "default": "Default Heading"},
        {"id": "subtitle", "type": "text", "default": ""},
        {"id": "cta_link", "type": "link", "default": {"href": "", "text": "", "target": "_self"}},
        {"id": "nav_menu", "type": "menu", "default": None},
    ],
    "blocks": [
        {
            "type": "feature",
            "settings": [
                {"id": "label", "type": "text", "default": "Feature"},
                {"id": "link", "type": "link", "default": {"href": "", "text": ""}},
            ],
        }
    ],
}

MAIN_MENU = {
    "id": "main-nav",
    "uuid": "menu-uuid-main-nav",
    "name": "Main Navigation",
    "items": [
        {"id": "item_1", "label": "Home", "link": "/", "pageUuid": "page-uuid-home"},
        {"id": "item_2", "label": "About", "link": "/about", "pageUuid": "page-uuid-about"},
        {"id": "item_3", "label": "External", "link": "https://external.com"},
        {
            "id": "item_4",
            "label": "Parent",
            "link": "#",
            "items": [{"id": "item_4_1", "label": "Child", "link": "/child", "pageUuid": "page-uuid-gone"}],
        },
    ],
}


def default_media_files():
    return [
        {
            "id": "img-1",
            "filename": "hero.jpg",
            "path": "/uploads/images/hero.jpg",
            "type": "image/jpeg",
            "width": 800,
            "height": 600,
            "sizes": {"medium": {"path": "/uploads/images/hero-medium.jpg", "width": 400, "height": 300}},
            "metadata": {"alt": "A hero"},
            "usedIn": [],
        },
        {"id": "img-2", "filename": "logo.png", "path": "/uploads/images/logo.png", "type": "image/png", "usedIn": []},
        {"id": "vid-1", "filename": "intro.mp4", "path": "/uploads/videos/intro.mp4", "type": "video/mp4", "usedIn": []},
        {"id": "aud-1", "filename": "theme.mp3", "path": "/uploads/audios/theme.mp3", "type": "audio/mpeg", "usedIn": []},
    ]


def write_json(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def read_media(project_dir: Path) -> dict:
    data = json.loads((project_dir / "media.json").read_text(encoding="utf-8"))
    return {f["id"]: f for f in data["files"]}


@pytest.fixture
def workspace(tmp_path):
    return Workspace(tmp_path / "data")


@pytest.fixture
def project_dir(workspace):
    root = workspace.project_dir(PROJECT_ID)
    (root / "pages" / "global").mkdir(parents=True)
    (root / "snippets").mkdir()
    write_json(root / "media.json", {"files": default_media_files()})
    write_json(root / "theme.json", RAW_THEME_SETTINGS)
    write_json(
        root / "pages" / "home.json",
        {"name": "Home", "slug": "home", "uuid": "page-uuid-home", "widgets": {}, "widgetsOrder": []},
    )
    write_json(
        root / "pages" / "about.json",
        {"name": "About Us", "slug": "about-us", "uuid": "page-uuid-about", "widgets": {}, "widgetsOrder": []},
    )
    write_json(root / "menus" / "main-nav.json", MAIN_MENU)
    (root / "layout.html.jinja").write_text(LAYOUT, encoding="utf-8")
    hero_dir = root / "widgets" / "test-hero"
    hero_dir.mkdir(parents=True)
    (hero_dir / "widget.html.jinja").write_text(TEST_HERO_TEMPLATE, encoding="utf-8")
    write_json(hero_dir / "schema.json", TEST_HERO_SCHEMA)
    return root


@pytest.fixture
def renderer(workspace, project_dir):
    return Renderer(workspace, server_url="http://localhost:3001")


@pytest.fixture
def media_index(workspace, project_dir):
    return MediaUsageIndex(workspace)
