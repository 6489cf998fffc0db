"""Template execution for Widgetizer.

This module uses Jinja2 to execute widget and layout templates. Plain values
are auto-escaped; values wrapped in ``markupsafe.Markup`` (rich text, already
rendered sections) are emitted as they are.

Key class:
- JinjaTemplateExecutor: Implements the TemplateExecutor protocol.

Template helpers read the render session from the ``render_context`` and
``assets`` entries of the template context:
- enqueue_style, enqueue_script, enqueue_preload: Register assets, output nothing.
- header_assets, footer_assets: Emit the registered assets for a location.
- theme_settings: Emit theme CSS custom properties.
- seo_tags: Emit title, description, Open Graph and Twitter meta tags.
- image: Emit an <img> (or its URL) for a media file.
- media_url (filter): URL of a stored media path in the current render mode.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, Template, pass_context, select_autoescape
from jinja2.runtime import Context
from markupsafe import Markup, escape

from .config import CORE_SNIPPETS_DIR
from .theme import theme_css_variables
from .walk import MediaReferenceMatcher

__all__ = ["JinjaTemplateExecutor"]

# Compiled widget and layout sources kept per executor.
TEMPLATE_CACHE_SIZE = 256


def _session(ctx: Context):
    return ctx.get("render_context"), ctx.get("assets")


def _widget_source(ctx: Context) -> tuple[str, str | None]:
    widget = ctx.get("widget")
    if isinstance(widget, Mapping) and widget.get("type"):
        return "widget", widget["type"]
    return "theme", None


def _apply_widget_source(ctx: Context, options: dict[str, Any]) -> None:
    # explicit source or widget_type in the template call wins
    source, widget_type = _widget_source(ctx)
    options.setdefault("source", source)
    options.setdefault("widget_type", widget_type)


@pass_context
def enqueue_style(ctx: Context, filepath: str, **options: Any) -> str:
    render_context, _ = _session(ctx)
    if render_context is None or not filepath:
        return ""
    _apply_widget_source(ctx, options)
    render_context.enqueue_style(filepath, **options)
    return ""


@pass_context
def enqueue_script(ctx: Context, filepath: str, **options: Any) -> str:
    render_context, _ = _session(ctx)
    if render_context is None or not filepath:
        return ""
    _apply_widget_source(ctx, options)
    render_context.enqueue_script(filepath, **options)
    return ""


@pass_context
def enqueue_preload(ctx: Context, href: str, **options: Any) -> str:
    render_context, _ = _session(ctx)
    if render_context is not None and href:
        render_context.enqueue_preload(href, **options)
    return ""


_STYLE_ATTRS = ("media", "id")
_SCRIPT_FLAGS = ("defer", "async")
_PRELOAD_ATTRS = ("as", "type", "fetchpriority", "media", "imagesrcset", "imagesizes")


def _style_tag(url: str, options: Mapping[str, Any]) -> str:
    attrs = "".join(
        f' {name}="{escape(options[name])}"' for name in _STYLE_ATTRS if options.get(name)
    )
    return f'<link rel="stylesheet" href="{escape(url)}"{attrs}>'


def _script_tag(url: str, options: Mapping[str, Any]) -> str:
    flags = "".join(f" {name}" for name in _SCRIPT_FLAGS if options.get(name))
    id_attr = f' id="{escape(options["id"])}"' if options.get("id") else ""
    return f'<script src="{escape(url)}"{flags}{id_attr}></script>'


def _render_assets(ctx: Context, location: str) -> Markup:
    render_context, assets = _session(ctx)
    if render_context is None or assets is None:
        return Markup("")
    lines = []
    if location == "header":
        for href, options in render_context.enqueued_preloads.items():
            attrs = "".join(
                f' {name}="{escape(options[name])}"' for name in _PRELOAD_ATTRS if options.get(name)
            )
            crossorigin = " crossorigin" if options.get("crossorigin") else ""
            lines.append(f'<link rel="preload" href="{escape(href)}"{attrs}{crossorigin}>')
    styles, scripts = render_context.assets_at(location)
    for filepath, options in styles:
        url = assets.asset_url(filepath, options.get("source", "theme"), options.get("widget_type"))
        lines.append(_style_tag(url, options))
    for filepath, options in scripts:
        url = assets.asset_url(filepath, options.get("source", "theme"), options.get("widget_type"))
        lines.append(_script_tag(url, options))
    return Markup("\n".join(lines))


@pass_context
def header_assets(ctx: Context) -> Markup:
    return _render_assets(ctx, "header")


@pass_context
def footer_assets(ctx: Context) -> Markup:
    return _render_assets(ctx, "footer")


def _css_text(value: Any) -> str:
    # Values land inside a <style> element, where entities are not decoded.
    return str(value).replace("<", "").replace(">", "")


@pass_context
def theme_settings(ctx: Context) -> Markup:
    variables = theme_css_variables(ctx.get("theme_settings_raw"))
    if not variables:
        return Markup("")
    body = "\n  ".join(f"{_css_text(name)}: {_css_text(value)};" for name, value in variables.items())
    return Markup(f'<style id="theme-settings-styles">\n:root {{\n  {body}\n}}\n</style>')


@pass_context
def seo_tags(ctx: Context) -> Markup:
    """Emit the SEO meta tags of the current page."""
    seo = ctx.get("seo")
    if not isinstance(seo, Mapping):
        return Markup("<!-- SEO: no page data -->")
    tags = [f"<title>{escape(seo['title'])}</title>"]
    if seo.get("description"):
        tags.append(f'<meta name="description" content="{escape(seo["description"])}">')
    tags.append(f'<meta name="robots" content="{escape(seo["robots"])}">')
    if seo.get("canonical_url"):
        tags.append(f'<link rel="canonical" href="{escape(seo["canonical_url"])}">')
    tags.append(f'<meta property="og:title" content="{escape(seo["og_title"])}">')
    if seo.get("description"):
        tags.append(f'<meta property="og:description" content="{escape(seo["description"])}">')
    tags.append(f'<meta property="og:type" content="{escape(seo["og_type"])}">')
    if seo.get("og_image_url"):
        tags.append(f'<meta property="og:image" content="{escape(seo["og_image_url"])}">')
    tags.append(f'<meta name="twitter:card" content="{escape(seo["twitter_card"])}">')
    tags.append(f'<meta name="twitter:title" content="{escape(seo["og_title"])}">')
    if seo.get("description"):
        tags.append(f'<meta name="twitter:description" content="{escape(seo["description"])}">')
    if seo.get("og_image_url"):
        tags.append(f'<meta name="twitter:image" content="{escape(seo["og_image_url"])}">')
    return Markup("\n".join(tags))


@pass_context
def media_url(ctx: Context, value: Any, kind: str | None = None) -> str:
    _, assets = _session(ctx)
    if assets is None or not isinstance(value, str):
        return ""
    return assets.media_url(value, kind)


@pass_context
def image(ctx: Context, src: Any, **options: Any) -> Markup | str:
    """Emit an <img> for a media file, picking a named size when it exists.

    Options: size (default "medium"), class, alt, title, lazy (default True),
    output ("url" to return only the URL).
    """
    _, assets = _session(ctx)
    if not src or not isinstance(src, str) or assets is None:
        return ""
    matcher = ctx.get("media_matcher")
    record = matcher.match(src) if isinstance(matcher, MediaReferenceMatcher) else None
    if record is None:
        return Markup(f'<!-- image: media file "{escape(Path(src).name)}" not found -->')

    is_svg = record.type == "image/svg+xml" or record.filename.lower().endswith(".svg")
    size = options.get("size", "medium")
    sizes = record.extra.get("sizes") or {}
    variant = None if is_svg else sizes.get(size)
    if isinstance(variant, Mapping) and variant.get("path"):
        path, width, height = variant["path"], variant.get("width"), variant.get("height")
    else:
        path = record.path
        width = None if is_svg else record.extra.get("width")
        height = None if is_svg else record.extra.get("height")
    url = assets.media_url(path, "image")
    if options.get("output") in ("url", "path"):
        return url

    metadata = record.extra.get("metadata") or {}
    alt = options.get("alt") or metadata.get("alt") or ""
    title = options.get("title") or metadata.get("title") or ""
    attrs = [f'src="{escape(url)}"', f'alt="{escape(alt)}"']
    if title:
        attrs.append(f'title="{escape(title)}"')
    if width and height:
        attrs.append(f'width="{escape(width)}" height="{escape(height)}"')
    if options.get("class"):
        attrs.append(f'class="{escape(options["class"])}"')
    if options.get("lazy", True):
        attrs.append('loading="lazy"')
    return Markup(f"<img {' '.join(attrs)}>")


class JinjaTemplateExecutor:
    """Executes template sources with Jinja2.

    Attributes:
        env: Jinja2 environment; includes resolve against ``search_paths``
            then the core snippets directory.
    """

    def __init__(self, search_paths: Iterable[Path] = ()):
        """Initialize the executor.

        Args:
            search_paths: Snippet directories, most specific first.
        """
        paths = [p for p in search_paths if p.is_dir()]
        paths.append(CORE_SNIPPETS_DIR)
        self.env = Environment(
            loader=FileSystemLoader(paths),
            autoescape=select_autoescape(
                ["html", "xml", "jinja"], default_for_string=True, default=True
            ),
            enable_async=False,
        )
        self._template = lru_cache(maxsize=TEMPLATE_CACHE_SIZE)(self._compile)
        self._install_globals()

    def _install_globals(self) -> None:
        """Install template helpers in the Jinja environment."""
        self.env.globals["enqueue_style"] = enqueue_style
        self.env.globals["enqueue_script"] = enqueue_script
        self.env.globals["enqueue_preload"] = enqueue_preload
        self.env.globals["header_assets"] = header_assets
        self.env.globals["footer_assets"] = footer_assets
        self.env.globals["theme_settings"] = theme_settings
        self.env.globals["seo_tags"] = seo_tags
        self.env.globals["image"] = image
        self.env.filters["media_url"] = media_url

    def _compile(self, source: str) -> Template:
        return self.env.from_string(source)

    def execute(self, source: str, context: Mapping[str, Any]) -> str:
        """Execute a template source.

        Args:
            source: Template source.
            context: Variables to make available in the template.

        Returns:
            Rendered string.
        """
        return self._template(source).render(**context)
