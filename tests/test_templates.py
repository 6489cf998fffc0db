from markupsafe import Markup

from conftest import RAW_THEME_SETTINGS
from widgetizer.assets import AssetUrlResolver
from widgetizer.context import RenderContext
from widgetizer.models import MediaRecord
from widgetizer.templates import JinjaTemplateExecutor
from widgetizer.walk import MediaReferenceMatcher


def _context(mode="preview", theme=None, media=()):
    render_context = RenderContext("demo", mode, theme)
    assets = AssetUrlResolver("demo", mode, "http://localhost:3001", "")
    return render_context, {
        "theme_settings_raw": theme,
        "render_context": render_context,
        "assets": assets,
        "media_matcher": MediaReferenceMatcher(media),
    }


def test_plain_values_escaped_markup_kept():
    executor = JinjaTemplateExecutor()
    _, context = _context()
    html = executor.execute(
        "<p>{{ text }}</p>{{ rich }}", {**context, "text": "<script>x</script>", "rich": Markup("<em>ok</em>")}
    )
    assert "&lt;script&gt;" in html
    assert "<script>" not in html
    assert "<em>ok</em>" in html


def test_compiled_templates_are_reused():
    executor = JinjaTemplateExecutor()
    source = "{{ a }}"
    assert executor.execute(source, {"a": 1}) == "1"
    assert executor.execute(source, {"a": 2}) == "2"
    assert executor._template.cache_info().currsize == 1


def test_snippets_resolve_project_then_core(tmp_path):
    snippets = tmp_path / "snippets"
    snippets.mkdir()
    (snippets / "card.html.jinja").write_text("<div class='card'>{{ title }}</div>", encoding="utf-8")
    executor = JinjaTemplateExecutor([snippets, tmp_path / "missing"])
    assert executor.execute('{% include "card.html.jinja" %}', {"title": "T"}) == "<div class='card'>T</div>"
    html = executor.execute(
        '{% with link = l %}{% include "link.html.jinja" %}{% endwith %}',
        {"l": {"href": "/a.html", "text": "A", "target": "_self"}},
    )
    assert html == '<a href="/a.html" target="_self">A</a>'


def test_enqueued_assets_emitted_in_priority_order():
    executor = JinjaTemplateExecutor()
    render_context, context = _context()
    executor.execute(
        '{{ enqueue_style("b.css", priority=20) }}{{ enqueue_style("a.css", priority=1) }}'
        '{{ enqueue_script("app.js", defer=True) }}{{ enqueue_preload("font.woff2", fetchpriority="high", crossorigin=True) }}',
        {**context, "widget": {"type": "hero"}},
    )
    assert render_context.enqueued_styles["a.css"]["source"] == "widget"
    head = executor.execute("{{ header_assets() }}", context)
    lines = head.splitlines()
    assert lines[0] == '<link rel="preload" href="font.woff2" fetchpriority="high" crossorigin>'
    assert "widgets/hero/a.css" in lines[1]
    assert "widgets/hero/b.css" in lines[2]
    assert "app.js" not in head
    foot = executor.execute("{{ footer_assets() }}", context)
    assert foot == '<script src="http://localhost:3001/api/preview/assets/demo/widgets/hero/app.js" defer></script>'


def test_theme_assets_in_publish_mode():
    executor = JinjaTemplateExecutor()
    _, context = _context("publish")
    executor.execute('{{ enqueue_style("base.css") }}', context)
    assert executor.execute("{{ header_assets() }}", context) == '<link rel="stylesheet" href="assets/base.css">'


def test_theme_settings_css_variables():
    executor = JinjaTemplateExecutor()
    _, context = _context(theme=RAW_THEME_SETTINGS)
    html = executor.execute("{{ theme_settings() }}", context)
    assert '<style id="theme-settings-styles">' in html
    assert "--colors-primary_color: #0066cc;" in html
    assert "--typography-body_font-family: Inter, sans-serif;" in html
    assert "--typography-body_font-weight: 400;" in html

    _, empty = _context()
    assert executor.execute("{{ theme_settings() }}", empty) == ""


def test_seo_tags_without_page_data():
    executor = JinjaTemplateExecutor()
    assert executor.execute("{{ seo_tags() }}", {}) == "<!-- SEO: no page data -->"


def test_image_helper():
    media = [
        MediaRecord(
            id="img-1",
            filename="hero.jpg",
            path="/uploads/images/hero.jpg",
            type="image/jpeg",
            extra={
                "width": 800,
                "height": 600,
                "sizes": {"medium": {"path": "/uploads/images/hero-medium.jpg", "width": 400, "height": 300}},
                "metadata": {"alt": "A hero"},
            },
        )
    ]
    executor = JinjaTemplateExecutor()
    _, context = _context("publish", media=media)
    html = executor.execute('{{ image("/uploads/images/hero.jpg") }}', context)
    assert html == '<img src="assets/images/hero-medium.jpg" alt="A hero" width="400" height="300" loading="lazy">'

    html = executor.execute('{{ image("uploads/images/hero.jpg", size="full", lazy=False, alt="<x>") }}', context)
    assert 'src="assets/images/hero.jpg"' in html
    assert 'alt="&lt;x&gt;"' in html
    assert "loading" not in html

    url = executor.execute('{{ image("/uploads/images/hero.jpg", output="url") }}', context)
    assert url == "assets/images/hero-medium.jpg"

    missing = executor.execute('{{ image("/uploads/images/nope.jpg") }}', context)
    assert missing == '<!-- image: media file "nope.jpg" not found -->'


def test_media_url_filter():
    executor = JinjaTemplateExecutor()
    _, preview = _context()
    assert (
        executor.execute('{{ "/uploads/videos/intro.mp4" | media_url }}', preview)
        == "http://localhost:3001/api/media/projects/demo/uploads/videos/intro.mp4"
    )
    _, publish = _context("publish")
    assert executor.execute('{{ "/uploads/audios/a.mp3" | media_url }}', publish) == "assets/audios/a.mp3"


def test_explicit_asset_source_overrides_widget():
    executor = JinjaTemplateExecutor()
    render_context, context = _context()
    html = executor.execute(
        '{{ enqueue_style("base.css", source="theme") }}{{ enqueue_script("slider.js", widget_type="slider") }}ok',
        {**context, "widget": {"type": "hero"}},
    )
    assert html == "ok"
    assert render_context.enqueued_styles["base.css"]["source"] == "theme"
    assert render_context.enqueued_styles["base.css"]["widget_type"] is None
    assert render_context.enqueued_scripts["slider.js"]["source"] == "widget"
    assert render_context.enqueued_scripts["slider.js"]["widget_type"] == "slider"
    foot = executor.execute("{{ footer_assets() }}", context)
    assert "/widgets/slider/slider.js" in foot
    head = executor.execute("{{ header_assets() }}", context)
    assert "/api/preview/assets/demo/assets/base.css" in head
