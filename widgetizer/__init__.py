"""Widgetizer content resolution and rendering engine.

This package renders schema-described widget trees to HTML and keeps a
reverse "used by" index for media files.

Two subsystems walk the same content trees in opposite directions:
- Rendering resolves forward references (links, menus, media) against the
  entity stores and executes widget and layout templates with Jinja2.
- The media usage index resolves backward references, recording which pages,
  global widgets and theme settings currently point at each media file.

Architecture:
- Entity stores and the template executor are protocols (see protocols.py);
  the file-system stores and the Jinja2 executor are the default implementations.
- Render-session caches live on an explicit, caller-owned RenderContext.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
