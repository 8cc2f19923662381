"""
Gazette CLI - Main entry point

Usage:
    gazette generate [OWNER/NAME ...]   - Generate changelogs (default: all subscribed repos)
    gazette repos                       - List subscribed repositories
    gazette serve                       - Run the HTTP API
"""

import asyncio
import sys
from typing import List, Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gazette import __version__
from gazette.config import configure_logging, settings
from gazette.models import Repo, RepoResult, TimeWindow
from gazette.services import GazetteError, create_changelog_service

console = Console()


def _parse_window(value: Optional[str]) -> TimeWindow:
    if not value:
        return settings.get_time_window()
    try:
        return TimeWindow.parse(value)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--window")


def _parse_repos(names: List[str]) -> List[Repo]:
    try:
        return [Repo.from_full_name(name) for name in names]
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="REPOSITORIES")


def print_results(results: List[RepoResult]) -> None:
    table = Table(show_header=True)
    table.add_column("Repository", style="cyan")
    table.add_column("Result")

    for result in results:
        if result.ok:
            table.add_row(result.repo.full_name, f"[green]✔ Saved:[/green] {result.path}")
        else:
            table.add_row(result.repo.full_name, f"[red]✖ Error:[/red] {escape(str(result.error))}")

    console.print(table)


@click.group()
@click.version_option(version=__version__, prog_name="gazette")
def cli():
    """Gazette - AI changelogs from recently merged pull requests"""
    configure_logging(settings)


@cli.command("generate")
@click.argument("repositories", nargs=-1)
@click.option("--window", "-w", default=None, help="Time window: 1h, 6h, 12h, 24h or HH:MM:SS.")
def generate(repositories, window):
    """Generate changelogs.

    \b
    Examples:
        gazette generate
        gazette generate rust-lang/rust --window 6h
        gazette generate owner/a owner/b -w 01:30:00
    """
    period = _parse_window(window)
    repos = _parse_repos(list(repositories)) if repositories else settings.get_repositories()

    if not repos:
        console.print("[yellow]No subscribed repos. Subscribe to a repo first.[/yellow]")
        return

    try:
        service = create_changelog_service(settings)
    except GazetteError as e:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
        sys.exit(1)

    console.print(f"[dim]→ Fetching merged PRs from the {period.description()}...[/dim]")
    results = asyncio.run(service.generate_for_all(repos, period))
    print_results(results)

    if not any(result.ok for result in results):
        sys.exit(1)


@cli.command("repos")
def repos():
    """List subscribed repositories."""
    subscribed = settings.get_repositories()
    if not subscribed:
        console.print("[yellow]No subscribed repos.[/yellow]")
        return

    console.print("\n[underline]Subscribed repositories:[/underline]")
    for repo in subscribed:
        console.print(f"  [green]•[/green] [cyan]{repo.full_name}[/cyan]")
    console.print(f"\n[dim]Period: {settings.get_time_window()}  "
                  f"AI: {settings.get_ai_provider().short_name} ({settings.get_ai_model()})[/dim]\n")


@cli.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
def serve(host, port):
    """Run the HTTP API with uvicorn."""
    from gazette.main import run

    run(host=host, port=port)


def main():
    """Main entry point for the CLI"""
    cli()


if __name__ == "__main__":
    main()
