"""HTML utility functions for Widgetizer.

This module provides HTML string helpers: escaping, URL joining, page URLs,
href and rich-text sanitization, and the error fragments the renderers
return in place of content that cannot be rendered.

Functions:
    escape_html: Escape special HTML characters in a string.
    join_root_url: Join a base URL with a path.
    page_url: URL of a page derived from its slug.
    sanitize_href: Drop hrefs using script-capable protocols.
    sanitize_rich_text: Allowlist-clean rich-text HTML.
    missing_widget_fragment: Fragment for a widget type with no template.
    widget_error_fragment: Fragment for a widget whose template failed.
    layout_error_document: Document returned when the layout cannot render.
"""

from __future__ import annotations

import re

import nh3

# Formatting produced by the rich-text editor; everything else is stripped.
RICH_TEXT_TAGS = frozenset({"p", "strong", "em", "a", "br", "span", "ul", "ol", "li"})
RICH_TEXT_ATTRIBUTES = {"*": {"href", "target", "rel", "class"}}

_DANGEROUS_PROTOCOL_RE = re.compile(r"^\s*(javascript|data|vbscript)\s*:", re.IGNORECASE)


def escape_html(text: str) -> str:
    """Escape special HTML characters in a string.

    Converts the following characters to their HTML entity equivalents:
    - & becomes &amp;
    - < becomes &lt;
    - > becomes &gt;
    - " becomes &quot;

    Args:
        text: The string to escape.

    Returns:
        The escaped string, safe for inclusion in HTML.

    Examples:
        >>> escape_html('<script>alert("XSS")</script>')
        '&lt;script&gt;alert(&quot;XSS&quot;)&lt;/script&gt;'

        >>> escape_html('Tom & Jerry')
        'Tom &amp; Jerry'
    """
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def join_root_url(root_url: str, path: str) -> str:
    """Safely join a root URL and a path, avoiding double slashes.

    Args:
        root_url: Base URL (e.g., http://localhost:3001).
        path: Path beginning with or without a leading slash.

    Returns:
        Combined URL with proper slash handling.

    Examples:
        >>> join_root_url('http://localhost:3001', '/api/media')
        'http://localhost:3001/api/media'

        >>> join_root_url('http://localhost:3001/', 'api/media')
        'http://localhost:3001/api/media'
    """
    if not root_url:
        return path
    base = root_url.rstrip("/")
    suffix = path if path.startswith("/") else f"/{path}"
    return f"{base}{suffix}"


def page_url(slug: str) -> str:
    """Return the site-relative URL of a page.

    Examples:
        >>> page_url("about-us")
        'about-us.html'
    """
    return f"{slug}.html"


def sanitize_href(href: str) -> str:
    """Return ``href`` unless it uses a javascript:, data: or vbscript: URL."""
    if _DANGEROUS_PROTOCOL_RE.match(href):
        return ""
    return href


def sanitize_rich_text(html: str) -> str:
    """Reduce rich-text HTML to the allowed formatting tags and attributes.

    Script and style elements are dropped with their content, other
    disallowed tags are unwrapped, and hrefs keep only safe URL schemes.

    Examples:
        >>> sanitize_rich_text('<p onclick="x()">Hi<script>bad()</script></p>')
        '<p>Hi</p>'
    """
    return nh3.clean(
        html,
        tags=set(RICH_TEXT_TAGS),
        attributes={tag: set(attrs) for tag, attrs in RICH_TEXT_ATTRIBUTES.items()},
        link_rel=None,
    )


def missing_widget_fragment(widget_id: str, widget_type: str) -> str:
    """Return the fragment rendered for a widget type without a template."""
    return (
        f'<div class="widget-error" data-widget-id="{escape_html(widget_id)}" '
        f'data-widget-type="{escape_html(widget_type or "unknown")}">'
        f"Widget template not found: {escape_html(widget_type or 'unknown')}</div>"
    )


def widget_error_fragment(widget_id: str, widget_type: str, message: str) -> str:
    """Return the fragment rendered for a widget whose template failed."""
    safe_type = escape_html(widget_type or "unknown")
    return (
        f'<div class="widget-error" data-widget-id="{escape_html(widget_id)}" '
        f'data-widget-type="{safe_type}">\n'
        f"  <p><strong>Error rendering widget!</strong></p>\n"
        f"  <p>Type: {safe_type}</p>\n"
        f"  <p>ID: {escape_html(widget_id)}</p>\n"
        f"  <pre>{escape_html(message)}</pre>\n"
        f"</div>"
    )


def layout_error_document(title: str, message: str, *sections: str) -> str:
    """Return a minimal document for a layout that could not be rendered.

    The already rendered ``sections`` are carried over unchanged.
    """
    body = "\n".join(s for s in sections if s)
    return (
        f"<html><body><h1>{escape_html(title)}</h1>"
        f"<pre>{escape_html(message)}</pre>\n{body}</body></html>"
    )
