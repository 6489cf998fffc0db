"""Asset URL resolution for Widgetizer.

Media files and enqueued theme assets are served from the preview server while
editing and from relative ``assets/`` paths in a published export.

Key class:
- AssetUrlResolver: Maps media paths and asset files to render-mode URLs.
"""

from __future__ import annotations

from pathlib import PurePosixPath

from .html_utils import join_root_url

RENDER_MODES = ("preview", "publish")


class AssetUrlResolver:
    """Resolves media and asset URLs for one project and render mode.

    Attributes:
        project_id: Project the assets belong to.
        render_mode: "preview" or "publish".
        server_url: Base URL of the preview server.
        export_version: Cache-busting version appended in publish mode.
    """

    # uploads/<folder> -> assets/<folder>
    MEDIA_FOLDERS = {"image": "images", "video": "videos", "audio": "audios"}

    def __init__(
        self,
        project_id: str,
        render_mode: str = "preview",
        server_url: str = "",
        export_version: str = "",
    ):
        """Initialize the resolver.

        Args:
            project_id: Project id.
            render_mode: "preview" or "publish".
            server_url: Preview server URL, unused in publish mode.
            export_version: Optional version for published asset URLs.
        """
        if render_mode not in RENDER_MODES:
            raise ValueError(f"Unknown render mode: {render_mode}")
        self.project_id = project_id
        self.render_mode = render_mode
        self.server_url = server_url if render_mode == "preview" else ""
        self.export_version = export_version

    def media_base(self, kind: str = "image") -> str:
        """Return the base URL for a kind of media ("image", "video" or "audio").

        Raises:
            ValueError: If the kind is unknown.
        """
        folder = self.MEDIA_FOLDERS.get(kind)
        if folder is None:
            raise ValueError(f"Unknown media kind: {kind}")
        if self.render_mode == "publish":
            return f"assets/{folder}"
        return join_root_url(
            self.server_url, f"/api/media/projects/{self.project_id}/uploads/{folder}"
        )

    def media_kind(self, path: str) -> str:
        """Infer the media kind from an upload path such as /uploads/videos/a.mp4."""
        parts = PurePosixPath(path).parts
        for kind, folder in self.MEDIA_FOLDERS.items():
            if folder in parts:
                return kind
        return "image"

    def media_url(self, path: str, kind: str | None = None) -> str:
        """Return the URL of a media file given its stored path."""
        if not path:
            return ""
        if path.startswith(("http://", "https://", "//")):
            return path
        kind = kind or self.media_kind(path)
        return f"{self.media_base(kind)}/{PurePosixPath(path).name}"

    def asset_url(
        self, filepath: str, source: str = "theme", widget_type: str | None = None
    ) -> str:
        """Return the URL of an enqueued stylesheet, script or other asset.

        Args:
            filepath: Asset path relative to the theme assets or widget folder.
            source: "widget" for files shipped next to a widget, else "theme".
            widget_type: Widget type when ``source`` is "widget".
        """
        if filepath.startswith(("http://", "https://", "//")):
            return filepath
        if self.render_mode == "publish":
            url = f"assets/{filepath}"
            return f"{url}?v={self.export_version}" if self.export_version else url
        if source == "widget" and widget_type:
            path = f"/api/preview/assets/{self.project_id}/widgets/{widget_type}/{filepath}"
        else:
            path = f"/api/preview/assets/{self.project_id}/assets/{filepath}"
        return join_root_url(self.server_url, path)
