"""Command-line interface for Widgetizer.

This module defines the CLI commands using the Click framework.

Commands:
- render: Render a stored page to HTML.
- media refresh: Rebuild the media usage index of a project.
- media usage: Show which entities use a media file.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from . import __version__
from .config import load_config, resolve_core_widgets_dir, resolve_data_dir
from .media_usage import MediaNotFoundError, MediaUsageIndex
from .rendering import PageNotFoundError, Renderer
from .stores import ProjectNotFoundError, StoreError, Workspace


class _Runtime:
    """Objects shared by the commands of one invocation."""

    def __init__(self, root: Path):
        self.root = root
        self.config = load_config(root)
        self.workspace = Workspace(resolve_data_dir(root, self.config))

    def renderer(self) -> Renderer:
        return Renderer(
            self.workspace,
            core_widgets_dir=resolve_core_widgets_dir(self.root, self.config),
            server_url=str(self.config.get("server_url") or ""),
            export_version=str(self.config.get("export_version") or ""),
        )

    def media_index(self) -> MediaUsageIndex:
        return MediaUsageIndex(self.workspace)


pass_runtime = click.make_pass_decorator(_Runtime)


@click.group()
@click.version_option(version=__version__, prog_name="widgetizer")
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Workspace root containing widgetizer.yaml",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output")
@click.pass_context
def cli(ctx: click.Context, root: Path, verbose: bool):
    """Widgetizer rendering and media usage tools."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = _Runtime(root.resolve())


@cli.command()
@click.argument("project_id")
@click.argument("page_id")
@click.option(
    "--mode",
    type=click.Choice(["preview", "publish"]),
    default="preview",
    show_default=True,
    help="Render mode",
)
@click.option("--scope", default=None, help="User scope of the project")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the HTML to this file instead of stdout",
)
@pass_runtime
def render(runtime: _Runtime, project_id: str, page_id: str, mode: str, scope: str | None, output: Path | None):
    """Render a stored page to HTML."""
    try:
        html = runtime.renderer().render_page(project_id, page_id, mode, scope)
    except (ProjectNotFoundError, PageNotFoundError, StoreError) as exc:
        raise click.ClickException(str(exc)) from exc
    if output is None:
        click.echo(html)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(html, encoding="utf-8")
    click.echo(f"Rendered {page_id} to {output}")


@cli.group()
def media():
    """Media usage index commands."""


@media.command()
@click.argument("project_id")
@click.option("--scope", default=None, help="User scope of the project")
@pass_runtime
def refresh(runtime: _Runtime, project_id: str, scope: str | None):
    """Rebuild the media usage index from all pages, global widgets and theme settings."""
    try:
        result = runtime.media_index().refresh_all_media_usage(project_id, scope)
    except (ProjectNotFoundError, StoreError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(result["message"])


@media.command()
@click.argument("project_id")
@click.argument("file_id")
@click.option("--scope", default=None, help="User scope of the project")
@pass_runtime
def usage(runtime: _Runtime, project_id: str, file_id: str, scope: str | None):
    """Show which pages and global widgets use a media file."""
    try:
        result = runtime.media_index().get_media_usage(project_id, file_id, scope)
    except (ProjectNotFoundError, MediaNotFoundError, StoreError) as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(json.dumps(result, indent=2))


def main():
    """Entry point for the CLI application."""
    cli()
