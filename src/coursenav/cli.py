"""CLI interface for Coursenav.

Command-line tool for serving and inspecting course navigation.
"""

import logging
import sys
from pathlib import Path

import click

from coursenav.config import Config
from coursenav.core.categories import CategoryAggregator
from coursenav.core.errors import CoursenavError
from coursenav.core.navigation import resolve_navigation
from coursenav.core.store import ContentStore
from coursenav.core.toc import TocNode, build_toc
from coursenav.core.types import PageId

config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: auto-discover coursenav.toml)",
)
index_option = click.option(
    "--index",
    "-i",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="Content index JSON file (overrides config)",
)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Coursenav - course navigation and ordering service."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@config_option
@index_option
@click.option("--host", default=None, help="Host to bind to (overrides config)")
@click.option("--port", "-p", type=int, default=None, help="Port to bind to (overrides config)")
@click.option(
    "--live-reload/--no-live-reload",
    default=None,
    help="Enable/disable live reload (overrides config, default: enabled)",
)
def serve(
    config_path: Path | None,
    index: Path | None,
    host: str | None,
    port: int | None,
    live_reload: bool | None,
) -> None:
    """Start the navigation server."""
    from coursenav.server import run_server

    config = _load_config(config_path).with_overrides(
        host=host,
        port=port,
        index=index,
        live_reload_enabled=live_reload,
    )

    click.echo(f"Starting server on {config.server.host}:{config.server.port}")
    click.echo(f"Content index: {config.content.index}")
    if config.live_reload.enabled:
        click.echo("Live reload: enabled")
    else:
        click.echo("Live reload: disabled")

    run_server(config)


@cli.command()
@config_option
@index_option
@click.argument("course_id", required=False)
def toc(config_path: Path | None, index: Path | None, course_id: str | None) -> None:
    """Print the table of contents."""
    try:
        snapshot = _open_store(config_path, index).snapshot()
        if course_id is not None and snapshot.course(course_id) is None:
            click.echo(click.style(f"Error: Course not found: {course_id}", fg="red"), err=True)
            sys.exit(1)

        pages = snapshot.pages if course_id is None else snapshot.pages_of(course_id)
        tree = build_toc(pages, snapshot.course_order())
    except (CoursenavError, ValueError, OSError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    if not tree:
        click.echo("No pages found.")
        return
    for node in tree:
        _echo_node(node, depth=0)


@cli.command()
@config_option
@index_option
@click.argument("page_id")
def nav(config_path: Path | None, index: Path | None, page_id: str) -> None:
    """Show previous and next pages of PAGE_ID."""
    try:
        pages = _open_store(config_path, index).get_pages()
        navigation = resolve_navigation(pages, PageId(page_id))
    except (CoursenavError, ValueError, OSError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    click.echo(f"Page {navigation.position} of {navigation.total} in course {navigation.course_id}")
    if navigation.previous is not None:
        click.echo(f"Previous: {navigation.previous.title} ({navigation.previous.id})")
    else:
        click.echo("Previous: -")
    if navigation.next is not None:
        click.echo(f"Next: {navigation.next.title} ({navigation.next.id})")
    else:
        click.echo("Next: -")


@cli.command()
@config_option
@index_option
def categories(config_path: Path | None, index: Path | None) -> None:
    """List categories with article counts and read time."""
    try:
        pages = _open_store(config_path, index).get_pages()
    except (CoursenavError, ValueError, OSError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)

    result = CategoryAggregator().aggregate(pages)
    if not result:
        click.echo("No categories found.")
        return
    for category in result:
        read_time = f"{category.read_time} min" if category.read_time is not None else "-"
        click.echo(f"{category.title}\t{category.article_count} articles\t{read_time}")


def _load_config(config_path: Path | None) -> Config:
    try:
        return Config.load(config_path)
    except (FileNotFoundError, ValueError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        sys.exit(1)


def _open_store(config_path: Path | None, index: Path | None) -> ContentStore:
    config = _load_config(config_path).with_overrides(index=index)
    return ContentStore(config.content.index)


def _echo_node(node: TocNode, depth: int) -> None:
    label = node.title if node.kind == "page" else click.style(node.title, bold=True)
    click.echo(f"{'  ' * depth}{label} [{node.id}]")
    for child in node.children:
        _echo_node(child, depth + 1)


if __name__ == "__main__":
    cli()
