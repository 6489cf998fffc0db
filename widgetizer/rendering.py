"""Widget and page rendering for Widgetizer.

This module orchestrates schema resolution, reference resolution and template
execution for widgets, and assembles rendered sections into full documents.

Content problems never fail a page: an unknown widget type or a failing widget
template renders as a ``widget-error`` fragment, and a missing layout renders
as an error document that still carries the page sections. Failing to resolve
the project itself is raised to the caller.

Key class:
- Renderer: render_widget, render_page_layout and render_page.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from markupsafe import Markup

from .assets import AssetUrlResolver
from .config import CORE_WIDGETS_DIR
from .context import RenderContext
from .html_utils import layout_error_document, missing_widget_fragment, widget_error_fragment
from .models import WidgetInstance
from .protocols import TemplateExecutor
from .references import ReferenceResolver
from .registry import GLOBAL_WIDGET_TYPES, DirectoryWidgetSource, WidgetNotFound, WidgetRegistry
from .schema import resolve_widget
from .stores import ProjectNotFoundError, ProjectStores, Workspace
from .templates import JinjaTemplateExecutor
from .theme import preprocess_theme_settings
from .walk import MediaReferenceMatcher

logger = logging.getLogger(__name__)

ExecutorFactory = Callable[[ProjectStores], TemplateExecutor]

# Projects whose template executor stays cached; least recently used go first.
MAX_CACHED_EXECUTORS = 32


class PageNotFoundError(LookupError):
    """Error raised when a page to render does not exist.

    Attributes:
        project_id: Project that was searched.
        page_id: The requested page id.
    """

    def __init__(self, project_id: str, page_id: str):
        self.project_id = project_id
        self.page_id = page_id
        super().__init__(f"Page '{page_id}' not found in project '{project_id}'")


@dataclass
class PageSections:
    """Rendered HTML of the three regions of a page."""

    header_content: str = ""
    main_content: str = ""
    footer_content: str = ""


def default_executor_factory(stores: ProjectStores) -> TemplateExecutor:
    return JinjaTemplateExecutor([stores.snippets_dir])


class Renderer:
    """Renders widgets and pages of the projects in a workspace.

    Attributes:
        workspace: Workspace the projects live in.
        core_widgets_dir: Directory of the core widget set.
        server_url: Preview server URL used for preview-mode asset URLs.
        export_version: Version appended to published asset URLs.
    """

    def __init__(
        self,
        workspace: Workspace,
        core_widgets_dir: Path = CORE_WIDGETS_DIR,
        executor_factory: ExecutorFactory | None = None,
        server_url: str = "",
        export_version: str = "",
    ):
        """Initialize the renderer.

        Args:
            workspace: Workspace holding the projects.
            core_widgets_dir: Directory of the core widget set.
            executor_factory: Builds the template executor of a project;
                defaults to a Jinja2 executor over the project snippets.
            server_url: Preview server URL.
            export_version: Cache-busting version for published assets.
        """
        self.workspace = workspace
        self.core_widgets_dir = core_widgets_dir
        self.server_url = server_url
        self.export_version = export_version
        self._executor_factory = executor_factory or default_executor_factory
        self._executors: OrderedDict[Path, TemplateExecutor] = OrderedDict()
        self._executors_lock = threading.Lock()

    def create_context(
        self,
        project_id: str,
        theme_settings_raw: dict[str, Any] | None = None,
        render_mode: str = "preview",
    ) -> RenderContext:
        """Create a render context for one page render or export pass."""
        return RenderContext(
            project_id=project_id,
            render_mode=render_mode,
            theme_settings_raw=theme_settings_raw,
        )

    def registry_for(self, stores: ProjectStores) -> WidgetRegistry:
        """Return the widget lookup of a project: core widgets, then theme widgets."""
        return WidgetRegistry(
            [
                DirectoryWidgetSource(self.core_widgets_dir, "core"),
                DirectoryWidgetSource(stores.widgets_dir, "project", GLOBAL_WIDGET_TYPES),
            ]
        )

    def executor_for(self, stores: ProjectStores) -> TemplateExecutor:
        with self._executors_lock:
            executor = self._executors.get(stores.project_dir)
            if executor is None:
                executor = self._executor_factory(stores)
                self._executors[stores.project_dir] = executor
                while len(self._executors) > MAX_CACHED_EXECUTORS:
                    self._executors.popitem(last=False)
            else:
                self._executors.move_to_end(stores.project_dir)
            return executor

    def _base_context(
        self,
        stores: ProjectStores,
        context: RenderContext,
        theme_settings_raw: dict[str, Any] | None,
        render_mode: str,
    ) -> dict[str, Any]:
        """Build the variables shared by widget and layout templates.

        Theme and mode come from the call; the session only supplies its caches
        and the theme when the call passes none.
        """
        if theme_settings_raw is None:
            theme_settings_raw = context.theme_settings_raw
        assets = AssetUrlResolver(
            context.project_id, render_mode, self.server_url, self.export_version
        )
        media = context.media_files(stores.media)
        return {
            **context.template_vars(),
            "render_mode": render_mode,
            "theme_settings_raw": theme_settings_raw,
            "theme": preprocess_theme_settings(theme_settings_raw),
            "render_context": context,
            "assets": assets,
            "media_files": {record.filename: record.to_dict() for record in media},
            "media_matcher": MediaReferenceMatcher(media),
            "image_path": assets.media_base("image"),
            "video_path": assets.media_base("video"),
            "audio_path": assets.media_base("audio"),
        }

    def render_widget(
        self,
        project_id: str,
        widget_id: str,
        widget_data: Mapping[str, Any],
        theme_settings_raw: dict[str, Any] | None,
        render_mode: str = "preview",
        shared_context: RenderContext | None = None,
        page_index: int | None = None,
        scope: str | None = None,
    ) -> str:
        """Render one widget instance to HTML.

        Args:
            project_id: Project the widget belongs to.
            widget_id: Instance id of the widget.
            widget_data: Widget instance (type, settings, blocks, blocksOrder).
            theme_settings_raw: Raw theme settings document.
            render_mode: "preview" or "publish".
            shared_context: Render session to reuse; it is updated in place
                with cached lookups and enqueued assets. The theme and mode of
                this call still apply to this render.
            page_index: 1-based position of the widget on its page.
            scope: User scope of the project.

        Returns:
            Rendered HTML, or a ``widget-error`` fragment.

        Raises:
            ProjectNotFoundError: If the project cannot be resolved.
        """
        widget_type = ""
        if isinstance(widget_data, Mapping):
            widget_type = str(widget_data.get("type") or "")
        stores = self.workspace.project(project_id, scope)
        try:
            lookup = self.registry_for(stores).find(widget_type)
            if isinstance(lookup, WidgetNotFound):
                logger.warning("Widget template not found for type '%s' (widget %s)", widget_type, widget_id)
                return missing_widget_fragment(widget_id, widget_type)

            context = shared_context
            if context is None:
                context = self.create_context(project_id, theme_settings_raw, render_mode)

            instance = WidgetInstance.from_dict(widget_id, dict(widget_data))
            resolved = resolve_widget(instance, lookup.schema)
            resolver = ReferenceResolver(context, stores.pages, stores.menus)
            resolved = resolver.resolve_widget(resolved, lookup.schema)

            template_context = self._base_context(stores, context, theme_settings_raw, render_mode)
            template_context["widget"] = {
                "id": widget_id,
                "type": widget_type,
                "index": page_index,
                "settings": resolved.settings,
                "blocks": resolved.blocks,
                "blocksOrder": resolved.blocks_order,
            }
            return self.executor_for(stores).execute(lookup.template, template_context)
        except ProjectNotFoundError:
            raise
        except Exception as exc:
            logger.error(
                "Error rendering widget %s (type %s, project %s)",
                widget_id,
                widget_type or "unknown",
                project_id,
                exc_info=True,
            )
            return widget_error_fragment(widget_id, widget_type, f"{type(exc).__name__}: {exc}")

    def render_page_layout(
        self,
        project_id: str,
        sections: PageSections | Mapping[str, str],
        page: Mapping[str, Any] | None,
        theme_settings_raw: dict[str, Any] | None,
        render_mode: str = "preview",
        shared_context: RenderContext | None = None,
        scope: str | None = None,
    ) -> str:
        """Render a full document from rendered sections and page metadata.

        Args:
            project_id: Project the page belongs to.
            sections: PageSections, or a mapping with headerContent,
                mainContent and footerContent.
            page: Page metadata (name, slug, seo); None is tolerated.
            theme_settings_raw: Raw theme settings document.
            render_mode: "preview" or "publish".
            shared_context: Render session holding the enqueued assets.
            scope: User scope of the project.

        Returns:
            The rendered document, or an error document carrying the sections.

        Raises:
            ProjectNotFoundError: If the project cannot be resolved.
        """
        sections = _coerce_sections(sections)
        stores = self.workspace.project(project_id, scope)
        source = stores.layout_source()
        if source is None:
            logger.error("Layout template not found for project %s", project_id)
            return layout_error_document(
                "Error: Layout template not found",
                f"No layout template in {stores.project_dir}",
                sections.header_content,
                sections.main_content,
                sections.footer_content,
            )
        try:
            context = shared_context
            if context is None:
                context = self.create_context(project_id, theme_settings_raw, render_mode)
            page_data = _page_defaults(page)
            template_context = self._base_context(stores, context, theme_settings_raw, render_mode)
            template_context.update(
                {
                    "header": Markup(sections.header_content),
                    "main_content": Markup(sections.main_content),
                    "footer": Markup(sections.footer_content),
                    "page": page_data,
                    "body_class": page_data["slug"],
                }
            )
            template_context["seo"] = _seo_context(page_data, template_context["assets"])
            return self.executor_for(stores).execute(source, template_context)
        except Exception as exc:
            logger.error("Error rendering page layout for project %s", project_id, exc_info=True)
            return layout_error_document(
                "Error rendering page",
                f"{type(exc).__name__}: {exc}",
                sections.header_content,
                sections.main_content,
                sections.footer_content,
            )

    def render_page(
        self,
        project_id: str,
        page_id: str,
        render_mode: str = "preview",
        scope: str | None = None,
    ) -> str:
        """Render a stored page with its global header and footer.

        All widgets of the page share one render context.

        Raises:
            ProjectNotFoundError: If the project cannot be resolved.
            PageNotFoundError: If the page does not exist.
        """
        stores = self.workspace.project(project_id, scope)
        page = stores.pages.get_page(page_id)
        if page is None:
            raise PageNotFoundError(project_id, page_id)
        theme_raw = stores.theme.get_theme_settings()
        context = self.create_context(project_id, theme_raw, render_mode)

        def render_global(slot_id: str) -> str:
            data = stores.global_widgets.get_global_widget(slot_id)
            if not data:
                return ""
            return self.render_widget(
                project_id, slot_id, data, theme_raw, render_mode, context, None, scope
            )

        header = render_global("header")
        widgets = page.get("widgets") or {}
        order = page.get("widgetsOrder") or list(widgets)
        rendered = []
        for index, widget_id in enumerate((w for w in order if w in widgets), start=1):
            rendered.append(
                self.render_widget(
                    project_id, widget_id, widgets[widget_id], theme_raw, render_mode, context, index, scope
                )
            )
        footer = render_global("footer")
        return self.render_page_layout(
            project_id,
            PageSections(header, "\n".join(rendered), footer),
            page,
            theme_raw,
            render_mode,
            context,
            scope,
        )


def _coerce_sections(sections: PageSections | Mapping[str, str] | None) -> PageSections:
    if isinstance(sections, PageSections):
        return sections
    sections = sections or {}
    return PageSections(
        header_content=str(sections.get("headerContent") or ""),
        main_content=str(sections.get("mainContent") or ""),
        footer_content=str(sections.get("footerContent") or ""),
    )


def _page_defaults(page: Mapping[str, Any] | None) -> dict[str, Any]:
    data = dict(page or {})
    data["name"] = str(data.get("name") or "")
    data["slug"] = str(data.get("slug") or "")
    if not isinstance(data.get("seo"), Mapping):
        data["seo"] = {}
    return data


def _seo_context(page: Mapping[str, Any], assets: AssetUrlResolver) -> dict[str, Any]:
    seo = page["seo"]

    def text(key: str) -> str:
        value = seo.get(key)
        return value.strip() if isinstance(value, str) else ""

    title = page["name"] or "Untitled Page"
    og_image = text("og_image")
    return {
        "title": title,
        "description": text("description"),
        "robots": text("robots") or "index,follow",
        "canonical_url": text("canonical_url"),
        "og_title": text("og_title") or title,
        "og_type": text("og_type") or "website",
        "og_image": og_image,
        "og_image_url": assets.media_url(og_image, "image") if og_image else "",
        "twitter_card": (text("twitter_card") or "summary_large_image") if og_image else "summary",
    }
