"""CLI for the newsletter agent."""

import json
import logging
from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import load_config
from .document import SECTION_KEYS, MetricsDashboard, StorySection
from .errors import NotFound
from .export import render_issue_html, render_issue_text, section_plain_text
from .history import format_entry
from .markup import render_rich
from .orchestrator import STEPS, PipelineState, ProgressEvent
from .workspace import Workspace

app = typer.Typer(
    name="newsletter",
    help="Newsletter agent CLI for generating and managing issues.",
    no_args_is_help=True,
)
history_app = typer.Typer(help="Inspect and restore previous issues.", no_args_is_help=True)
sources_app = typer.Typer(help="Manage preferred news sources.", no_args_is_help=True)
game_app = typer.Typer(help="Game of the week.", no_args_is_help=True)
app.add_typer(history_app, name="history")
app.add_typer(sources_app, name="sources")
app.add_typer(game_app, name="game")

console = Console()


class OutputFormat(str, Enum):
    table = "table"
    json = "json"


class ExportFormat(str, Enum):
    html = "html"
    text = "text"


DATA_DIR_OPTION = typer.Option(None, "--data-dir", "-d", help="Directory holding newsletter state (default: NEWSLETTER_DATA_DIR)")


def _workspace(data_dir: Optional[Path], test_mode: bool = False) -> Workspace:
    config = load_config()
    if test_mode:
        config = replace(config, test_mode=True)
    return Workspace(config, data_dir)


def _setup_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


def _make_progress_callback(status_obj=None):
    """Create a progress callback that updates console or status spinner."""
    def callback(event: ProgressEvent) -> None:
        if status_obj:
            status_obj.update(f"[bold blue]{event.status}[/bold blue]")
        else:
            console.print(f"[dim]→ {event.status}[/dim]")
    return callback


@app.command("generate")
def generate(
    data_dir: Optional[Path] = DATA_DIR_OPTION,
    topic: Optional[str] = typer.Option(None, "--topic", "-t", help="Topic hint for every section"),
    test_mode: bool = typer.Option(False, "--test-mode", help="Use the cheaper test model"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print each progress step"),
) -> None:
    """Generate a full issue, snapshotting the current one into history first."""
    _setup_logging(verbose)
    workspace = _workspace(data_dir, test_mode)

    try:
        if verbose:
            result = workspace.orchestrator(on_progress=_make_progress_callback()).run(topic)
        else:
            with console.status("[bold blue]Starting...[/bold blue]", spinner="dots") as status:
                result = workspace.orchestrator(on_progress=_make_progress_callback(status)).run(topic)
    finally:
        workspace.after_run()

    if result.state != PipelineState.COMPLETED:
        console.print(f"[red]Error:[/red] {result.status}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] {result.status}")
    if result.issues:
        table = Table(title="Sections kept from the previous issue")
        table.add_column("Section", style="cyan")
        table.add_column("Problem", style="yellow")
        table.add_column("Detail")
        for issue in result.issues:
            table.add_row(issue.section_key, issue.kind, issue.message)
        console.print(table)
    console.print(
        f"[dim]Tokens: {result.usage.input_tokens:,} in / {result.usage.output_tokens:,} out "
        f"(${result.usage.cost_usd:.4f})[/dim]"
    )


@app.command("refresh")
def refresh(
    section: str = typer.Argument(..., help="Section key to regenerate"),
    data_dir: Optional[Path] = DATA_DIR_OPTION,
    hint: Optional[str] = typer.Option(None, "--hint", "-h", help="Extra direction for the new content"),
    test_mode: bool = typer.Option(False, "--test-mode", help="Use the cheaper test model"),
) -> None:
    """Regenerate one section with a different topic."""
    if section not in STEPS:
        console.print(f"[red]Error:[/red] Unknown section '{section}'")
        console.print(f"[dim]Available: {', '.join(STEPS)}[/dim]")
        raise typer.Exit(1)

    workspace = _workspace(data_dir, test_mode)
    with console.status(f"[bold blue]Refreshing '{section}'...[/bold blue]", spinner="dots") as status:
        result = workspace.orchestrator(on_progress=_make_progress_callback(status)).refresh_section(section, hint)

    if not result.succeeded:
        console.print(f"[red]Error:[/red] {result.status}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] {result.status}")


@app.command("show")
def show(
    data_dir: Optional[Path] = DATA_DIR_OPTION,
    section: Optional[str] = typer.Option(None, "--section", "-s", help="Show only this section"),
) -> None:
    """Preview the current issue in the terminal."""
    workspace = _workspace(data_dir)
    document = workspace.store.get()
    keys = [section] if section else SECTION_KEYS
    if section and section not in SECTION_KEYS:
        console.print(f"[red]Error:[/red] Unknown section '{section}'")
        raise typer.Exit(1)

    for key in keys:
        item = document[key]
        if isinstance(item, StorySection) and item.headline:
            console.print(Panel(render_rich(item.content), title=item.headline, subtitle=item.label))
        elif isinstance(item, MetricsDashboard) and item.metrics:
            table = Table(title=f"{item.title} (as of {item.as_of})")
            table.add_column("Metric", style="cyan")
            table.add_column("Value", justify="right")
            table.add_column("Change", style="dim")
            for metric in item.metrics:
                table.add_row(metric.label, metric.value, metric.change)
            console.print(table)
        else:
            text = section_plain_text(document, key)
            if text:
                console.print(Panel(text, title=key))


@app.command("export")
def export(
    data_dir: Optional[Path] = DATA_DIR_OPTION,
    format: ExportFormat = typer.Option(ExportFormat.html, "--format", "-f", help="Export format"),
    section: Optional[str] = typer.Option(None, "--section", "-s", help="Export one section as plain text"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to this file instead of stdout"),
) -> None:
    """Export the issue as HTML or plain text."""
    workspace = _workspace(data_dir)
    document = workspace.store.get()

    if section:
        if section not in SECTION_KEYS:
            console.print(f"[red]Error:[/red] Unknown section '{section}'")
            raise typer.Exit(1)
        content = section_plain_text(document, section)
    elif format == ExportFormat.html:
        content = render_issue_html(document, workspace.game)
    else:
        content = render_issue_text(document)

    if output:
        output.write_text(content)
        console.print(f"[green]✓[/green] Exported to {output}")
    else:
        typer.echo(content)


@history_app.command("list")
def history_list(
    data_dir: Optional[Path] = DATA_DIR_OPTION,
    format: OutputFormat = typer.Option(OutputFormat.table, "--format", "-f", help="Output format"),
) -> None:
    """List saved issues, most recent first."""
    entries = _workspace(data_dir).history.list()

    if format == OutputFormat.json:
        output = [{"id": e.id, "captured_at": e.captured_at, "title": e.title} for e in entries]
        typer.echo(json.dumps(output, indent=2))
        return

    if not entries:
        console.print("[dim]No saved issues[/dim]")
        return

    table = Table(title="Issue history")
    table.add_column("ID", style="cyan")
    table.add_column("Captured", style="green")
    table.add_column("Title")
    for entry in entries:
        table.add_row(entry.id[:8], entry.captured_at[:16].replace("T", " "), entry.title)
    console.print(table)
    console.print(f"\n[dim]Total: {len(entries)} entries[/dim]")


def _resolve_entry_id(workspace: Workspace, entry_id: str) -> str:
    """Accept a full id or a unique prefix as shown by ``history list``."""
    matches = [e.id for e in workspace.history.list() if e.id.startswith(entry_id)]
    return matches[0] if len(matches) == 1 else entry_id


@history_app.command("restore")
def history_restore(
    entry_id: str = typer.Argument(..., help="Entry id (or unique prefix)"),
    data_dir: Optional[Path] = DATA_DIR_OPTION,
) -> None:
    """Replace the current issue with a saved one."""
    workspace = _workspace(data_dir)
    resolved = _resolve_entry_id(workspace, entry_id)
    try:
        workspace.restore(resolved)
    except NotFound as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    summary = next(e for e in workspace.history.list() if e.id == resolved)
    console.print(f"[green]✓[/green] Restored {format_entry(summary)}")


@history_app.command("delete")
def history_delete(
    entry_id: str = typer.Argument(..., help="Entry id (or unique prefix)"),
    data_dir: Optional[Path] = DATA_DIR_OPTION,
) -> None:
    """Delete a saved issue. Unknown ids are ignored."""
    workspace = _workspace(data_dir)
    workspace.remove_history(_resolve_entry_id(workspace, entry_id))
    console.print(f"[green]✓[/green] Deleted {entry_id}")


@history_app.command("clear")
def history_clear(
    data_dir: Optional[Path] = DATA_DIR_OPTION,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete every saved issue."""
    if not yes and not typer.confirm("Delete all saved issues?"):
        raise typer.Exit(1)
    _workspace(data_dir).clear_history()
    console.print("[green]✓[/green] History cleared")


@sources_app.command("list")
def sources_list(data_dir: Optional[Path] = DATA_DIR_OPTION) -> None:
    """List preferred sources."""
    table = Table(title="Preferred sources")
    table.add_column("Name", style="cyan")
    table.add_column("URL")
    table.add_column("Enabled", justify="center")
    for source in _workspace(data_dir).sources:
        table.add_row(source.name, source.url, "[green]yes[/green]" if source.enabled else "[dim]no[/dim]")
    console.print(table)


@sources_app.command("add")
def sources_add(
    name: str = typer.Argument(..., help="Display name"),
    url: str = typer.Argument(..., help="Source URL"),
    data_dir: Optional[Path] = DATA_DIR_OPTION,
) -> None:
    """Add a preferred source."""
    workspace = _workspace(data_dir)
    workspace.sources.add(name, url)
    workspace.save_sources()
    console.print(f"[green]✓[/green] Added {name}")


@sources_app.command("toggle")
def sources_toggle(
    name: str = typer.Argument(..., help="Source name or URL"),
    data_dir: Optional[Path] = DATA_DIR_OPTION,
) -> None:
    """Enable or disable a source."""
    workspace = _workspace(data_dir)
    try:
        source = workspace.sources.toggle(name)
    except KeyError:
        console.print(f"[red]Error:[/red] Source not found: {name}")
        raise typer.Exit(1)
    workspace.save_sources()
    state = "enabled" if source.enabled else "disabled"
    console.print(f"[green]✓[/green] {source.name} {state}")


@sources_app.command("remove")
def sources_remove(
    name: str = typer.Argument(..., help="Source name or URL"),
    data_dir: Optional[Path] = DATA_DIR_OPTION,
) -> None:
    """Remove a source."""
    workspace = _workspace(data_dir)
    try:
        workspace.sources.remove(name)
    except KeyError:
        console.print(f"[red]Error:[/red] Source not found: {name}")
        raise typer.Exit(1)
    workspace.save_sources()
    console.print(f"[green]✓[/green] Removed {name}")


@game_app.command("show")
def game_show(data_dir: Optional[Path] = DATA_DIR_OPTION) -> None:
    """Show the current game of the week."""
    game = _workspace(data_dir).game
    console.print(Panel(f"{game.intro}\n\n{game.content}\n\n[dim]Answer: {game.answer}[/dim]", title=game.title))


@game_app.command("rotate")
def game_rotate(data_dir: Optional[Path] = DATA_DIR_OPTION) -> None:
    """Switch to the next game template."""
    game = _workspace(data_dir).rotate_game()
    console.print(f"[green]✓[/green] Game of the week: {game.title}")


if __name__ == "__main__":
    app()
