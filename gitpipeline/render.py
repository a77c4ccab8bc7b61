"""
Rendering functions for gitpipeline output.

Everything here prints to stderr; stdout belongs to the resource protocol.
"""

from rich.table import Table
from rich.console import Console
from rich import box
from typing import List

from .services.discovery_service import DiscoveryResult

console = Console(stderr=True)


def render_discovery_table(result: DiscoveryResult, written: List[str]) -> None:
    """
    Render kept and skipped pipelines as a table.

    Args:
        result: Discovery result
        written: Files present in the destination after materialization
    """
    if not result.aggregate.pipelines and not result.skipped:
        console.print(f"[yellow]No pipelines defined in {result.config_path}.[/yellow]")
        return

    table = Table(
        title=f"Pipelines from {result.config_path}",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta"
    )
    table.add_column("Pipeline", style="cyan")
    table.add_column("Status")
    table.add_column("Config")
    table.add_column("Vars files")

    for pipeline in result.aggregate.pipelines:
        table.add_row(
            pipeline.name,
            "[green]kept[/green]",
            pipeline.config,
            ", ".join(pipeline.vars_from) or "-",
        )
    for name in result.skipped:
        table.add_row(name, "[dim]skipped[/dim]", "-", "-")

    console.print(table)
    console.print(f"[dim]{len(written)} files written[/dim]")
