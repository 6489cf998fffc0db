"""Protocol definitions for Widgetizer.

This module defines the interfaces (protocols) the rendering engine and the
media usage index depend on, following the Dependency Inversion Principle.

These protocols enable:
- Swapping the file-system stores for another backend
- Easy testing through fake implementations
- Treating the template language as an opaque execution strategy
"""

from __future__ import annotations

from abc import abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .models import MediaRecord
    from .registry import WidgetLookup


@runtime_checkable
class PageStore(Protocol):
    """Protocol for reading and writing the pages of one project."""

    @abstractmethod
    def exists(self) -> bool:
        """Return True if the project has a pages collection at all.

        A project with an existing but empty collection returns True.
        """
        ...

    @abstractmethod
    def list_pages(self) -> list[dict[str, Any]]:
        """Return every page of the project.

        Each page dict carries its store id under the ``id`` key.

        Raises:
            StoreError: If a page cannot be read.
        """
        ...

    @abstractmethod
    def get_page(self, page_id: str) -> dict[str, Any] | None:
        """Return one page by id, or None if it does not exist."""
        ...

    @abstractmethod
    def put_page(self, page_id: str, page: Mapping[str, Any]) -> None:
        """Create or replace a page."""
        ...


@runtime_checkable
class MenuStore(Protocol):
    """Protocol for reading the menus of one project."""

    @abstractmethod
    def list_menus(self) -> list[dict[str, Any]]:
        """Return every menu of the project."""
        ...

    @abstractmethod
    def get_menu(self, menu_id: str) -> dict[str, Any] | None:
        """Return a menu by its slug id, or None if it does not exist."""
        ...


@runtime_checkable
class MediaStore(Protocol):
    """Protocol for the persisted media collection of one project."""

    @abstractmethod
    def list_media(self) -> list[MediaRecord]:
        """Return every media record.

        Raises:
            StoreError: If the collection cannot be read.
        """
        ...

    @abstractmethod
    def write_media(self, records: list[MediaRecord]) -> None:
        """Persist the whole media collection."""
        ...


@runtime_checkable
class GlobalWidgetStore(Protocol):
    """Protocol for site-wide widget slots such as header and footer."""

    @abstractmethod
    def list_slots(self) -> list[str]:
        """Return the ids of the slots that currently hold a widget."""
        ...

    @abstractmethod
    def get_global_widget(self, slot_id: str) -> dict[str, Any] | None:
        """Return the widget instance in a slot, or None if the slot is empty."""
        ...

    @abstractmethod
    def put_global_widget(self, slot_id: str, widget: Mapping[str, Any]) -> None:
        """Create or replace the widget instance in a slot."""
        ...


@runtime_checkable
class ThemeSettingsStore(Protocol):
    """Protocol for the raw theme settings document of a project."""

    @abstractmethod
    def get_theme_settings(self) -> dict[str, Any] | None:
        """Return the raw theme settings, or None if the project has none."""
        ...


@runtime_checkable
class TemplateExecutor(Protocol):
    """Protocol for executing a template against a context.

    Implementations must auto-escape plain values on interpolation and emit
    values flagged as trusted markup unchanged.
    """

    @abstractmethod
    def execute(self, source: str, context: Mapping[str, Any]) -> str:
        """Execute template source.

        Args:
            source: Template source text.
            context: Variables available to the template.

        Returns:
            Rendered text.
        """
        ...


@runtime_checkable
class WidgetSource(Protocol):
    """Protocol for one tier of widget templates and schemas."""

    @abstractmethod
    def find(self, widget_type: str) -> WidgetLookup:
        """Look up the template and schema of a widget type.

        Returns:
            WidgetFound or WidgetNotFound.
        """
        ...

