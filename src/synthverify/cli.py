"""
SynthVerify CLI - Main command-line interface for SynthVerify.

Minimal CLI for offline duplicate cleanup, analytics and server management.
For interactive curation, use the web UI.
"""

import json
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from synthverify.logging_config import setup_logging
from synthverify.models.item import Item

app = typer.Typer(
    name="synthverify",
    help="SynthVerify - Curation tool for synthetic training data",
    no_args_is_help=True,
)

console = Console()


def _load_items(path: str) -> List[Item]:
    from synthverify.curation.importing import parse_items_from_text

    input_path = Path(path)
    if not input_path.exists():
        console.print(f"[bold red]Error:[/bold red] Path not found: {path}")
        raise typer.Exit(1)

    try:
        return parse_items_from_text(input_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[bold red]Error:[/bold red] Invalid JSON in {path}: {e}")
        raise typer.Exit(1)


@app.command()
def dedup(
    path: str = typer.Argument(..., help="Path to a JSON or JSONL item file"),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", "-o", help="Directory for the JSON export"
    ),
    auto_resolve: bool = typer.Option(
        False,
        "--auto-resolve",
        help="Discard all but the best item (score, then answer length) of each group",
    ),
    key_field: Optional[List[str]] = typer.Option(
        None, "--key-field", help="Dedup key field (repeat for fallbacks)"
    ),
) -> None:
    """
    Detect duplicates in an item file and write the curated export.

    Discarded items are left out of the export.
    """
    from synthverify.config import settings
    from synthverify.curation.collection import ItemCollection
    from synthverify.curation.dedup import DuplicateResolver, group_duplicates
    from synthverify.curation.export import default_export_columns, write_json_export

    setup_logging(context="cli")

    items = _load_items(path)
    if not items:
        console.print(f"[yellow]No items found in {path}[/yellow]")
        raise typer.Exit(0)

    console.print(f"[bold blue]Analyzing duplicates in:[/bold blue] {path}")
    console.print(f"  Items: {len(items)}")

    collection = ItemCollection()
    resolver = DuplicateResolver(collection, key_field or settings.dedup_key_fields)
    groups = resolver.analyze(items)
    try:
        collection.set_data(items)
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    table = Table(title="Duplicate Groups")
    table.add_column("Group", style="cyan")
    table.add_column("Items", justify="right")
    table.add_column("Key", overflow="fold")
    for group_id, members in group_duplicates(collection.items).items():
        table.add_row(group_id[:8], str(len(members)), members[0].query[:60])
    if groups:
        console.print(table)

    duplicate_count = sum(1 for item in collection.items if item.is_duplicate)
    console.print(f"  Duplicate groups: {groups}")
    console.print(f"  Duplicate items: {duplicate_count}")

    if auto_resolve:
        discarded = resolver.auto_resolve_duplicates()
        console.print(f"[green]✓ Auto-resolve discarded {len(discarded)} items[/green]")

    export_path = write_json_export(
        collection.items,
        default_export_columns(collection.items),
        Path(output_dir or settings.export_dir),
    )
    kept = sum(1 for item in collection.items if not item.is_discarded)
    console.print(f"[green]✓ Exported {kept} items to {export_path}[/green]")


@app.command()
def analytics(
    path: str = typer.Argument(..., help="Path to a JSON or JSONL item file"),
) -> None:
    """Print aggregate analytics for an item file."""
    from synthverify.curation.analytics import calculate_analytics

    setup_logging(context="cli")

    snapshot = calculate_analytics(_load_items(path))

    table = Table(title="Analytics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Total items", str(snapshot.total_items))
    table.add_row("Completed", str(snapshot.completed_items))
    table.add_row("Errors", str(snapshot.error_count))
    table.add_row("Total tokens", f"{snapshot.total_tokens:,.0f}")
    table.add_row("Total cost", f"${snapshot.total_cost:.4f}")
    table.add_row("Avg response time", f"{snapshot.avg_response_time:.2f}")
    table.add_row("Success rate", f"{snapshot.success_rate:.1f}%")
    console.print(table)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind to"),
    port: Optional[int] = typer.Option(None, help="Port to bind to"),
    reload: Optional[bool] = typer.Option(None, help="Enable auto-reload"),
) -> None:
    """Start the API server."""
    import uvicorn

    from synthverify.config import settings

    host = host or settings.api_host
    port = port or settings.api_port
    reload = settings.api_reload if reload is None else reload

    console.print("[bold green]Starting SynthVerify API server...[/bold green]")
    console.print(f"  Host: {host}")
    console.print(f"  Port: {port}")
    console.print(f"  Docs: http://{host}:{port}/docs")
    console.print()

    uvicorn.run("synthverify.api.app:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
