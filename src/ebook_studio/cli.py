"""Command line interface for Ebook Studio."""

import asyncio
import sys
from typing import Tuple

import click
from dotenv import find_dotenv, load_dotenv
from rich.console import Console
from rich.table import Table

from ebook_studio.capabilities import CapabilityResolver
from ebook_studio.context import get_default_context
from ebook_studio.models import BookStyle, Project, ProjectStatus
from ebook_studio.services.ai_service import AIService
from ebook_studio.services.orchestrator import GenerationOrchestrator
from ebook_studio.services.storage import ProjectStore

console = Console()

STATUS_COLOURS = {
    ProjectStatus.PENDING: "yellow",
    ProjectStatus.DRAFT: "cyan",
    ProjectStatus.GENERATING: "blue",
    ProjectStatus.COMPLETED: "green",
    ProjectStatus.FAILED: "red",
}


def _build_orchestrator() -> GenerationOrchestrator:
    store = ProjectStore()
    ai_service = AIService(CapabilityResolver(store, get_default_context()))
    return GenerationOrchestrator(store, ai_service)


def _status_table(project: Project) -> Table:
    colour = STATUS_COLOURS.get(project.status, "white")
    table = Table(title=project.title, show_header=False)
    table.add_row("Project", project.id)
    table.add_row("Mode", project.mode.value)
    table.add_row("Style", project.style.value)
    table.add_row("Status", f"[{colour}]{project.status.value}[/{colour}]")
    table.add_row("Progress", f"{project.generation_progress}%")
    table.add_row("Step", project.current_step or "-")
    return table


@click.group()
@click.option('--log-level', default=None, help='Logging level (default: LOG_LEVEL or INFO)')
def cli(log_level: str | None):
    """Ebook Studio - Draft, illustrate and package ebooks with AI."""
    load_dotenv(find_dotenv(usecwd=True))
    from ebook_studio.web.app import configure_logging

    configure_logging(log_level)


@cli.command()
@click.option('--host', default='127.0.0.1', help='Host to bind to (default: 127.0.0.1)')
@click.option('--port', default=8000, type=int, help='Port to bind to (default: 8000)')
@click.option('--reload', is_flag=True, help='Enable auto-reload for development')
def serve(host: str, port: int, reload: bool):
    """Start the REST API server."""
    from ebook_studio.web.app import run_server

    console.print(f"[bold green]Ebook Studio API[/bold green] on http://{host}:{port}")
    run_server(host=host, port=port, reload=reload)


@cli.command()
@click.option('--user-id', required=True, help='Owner of the new project')
@click.option(
    '--style',
    type=click.Choice([style.value for style in BookStyle]),
    default=BookStyle.MODERN_MAG.value,
    show_default=True,
    help='Visual style of the ebook',
)
@click.option('--language', 'primary_language', default='en', show_default=True, help='Primary language')
@click.option('--target', 'targets', multiple=True, help='Target language to translate into (repeatable)')
def generate(user_id: str, style: str, primary_language: str, targets: Tuple[str, ...]):
    """Run the autopilot pipeline for a new project in the foreground."""
    orchestrator = _build_orchestrator()
    project = orchestrator.create_autopilot_project(user_id, BookStyle(style), primary_language, targets)
    console.print(f"Created project [bold]{project.id}[/bold]")

    with console.status("Generating ebook...", spinner="dots"):
        asyncio.run(
            orchestrator.run_autopilot(
                project.id,
                project.user_id,
                project.style,
                project.primary_language,
                project.target_languages,
            )
        )

    project = orchestrator.store.require_project(project.id)
    console.print(_status_table(project))
    if project.status != ProjectStatus.COMPLETED:
        sys.exit(1)


@cli.command()
@click.argument('project_id')
def status(project_id: str):
    """Show the progress of a project."""
    project = _build_orchestrator().store.get_project(project_id)
    if project is None:
        console.print(f"[red]Project not found: {project_id}[/red]")
        raise click.exceptions.Exit(1)
    console.print(_status_table(project))


@cli.command(name='list')
@click.option('--user-id', required=True, help='Owner of the projects')
def list_projects(user_id: str):
    """List a user's projects, newest first."""
    projects = _build_orchestrator().store.list_projects(user_id)
    if not projects:
        console.print("[yellow]No projects found.[/yellow]")
        return

    table = Table(title=f"Projects for {user_id}")
    table.add_column("ID", style="dim")
    table.add_column("Title")
    table.add_column("Mode")
    table.add_column("Status")
    table.add_column("Progress", justify="right")
    for project in projects:
        colour = STATUS_COLOURS.get(project.status, "white")
        table.add_row(
            project.id,
            project.title,
            project.mode.value,
            f"[{colour}]{project.status.value}[/{colour}]",
            f"{project.generation_progress}%",
        )
    console.print(table)


@cli.command(name='init-db')
def init_db():
    """Create the MongoDB indexes."""
    ProjectStore().ensure_indexes()
    console.print("[green]Database indexes ensured.[/green]")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
