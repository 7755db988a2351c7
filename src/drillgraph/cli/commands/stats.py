"""
Stats Command - Summarize an enriched snapshot.
"""

import json
import sys
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.table import Table

from ...core.types import ComplexityClass
from ...model.enrich import GraphModel
from ..utils import load_engine_config, load_snapshot_file

console = Console()


@click.command()
@click.argument("snapshot", type=click.Path())
@click.option("-c", "--config", "config_path", default=None, help="Path to config YAML")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def stats(snapshot: str, config_path: Optional[str], as_json: bool):
    """
    Show node, edge and complexity statistics for SNAPSHOT.
    """
    loaded = load_snapshot_file(snapshot)
    if loaded is None:
        sys.exit(1)
    config = load_engine_config(config_path)
    if config is None:
        sys.exit(1)

    model = GraphModel(config.scoring)
    summary = model.summarize(model.enrich(*loaded))

    if as_json:
        click.echo(json.dumps(summary, indent=2))
        return

    _print_summary(summary)


def _print_summary(summary: Dict[str, Any]) -> None:
    table = Table(title="Graph Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Nodes", str(summary["total_nodes"]))
    table.add_row("Edges", str(summary["total_edges"]))
    table.add_row("Density", f"{summary['density']:.3f}")
    table.add_row("Orphans", str(summary["orphans"]))
    table.add_row("Circular edges", str(summary["circular_edges"]))
    console.print(table)

    breakdown = Table(title="Breakdown")
    breakdown.add_column("Group", style="cyan")
    breakdown.add_column("Value")
    breakdown.add_column("Count", justify="right")
    for title, key in (("Kind", "nodes_by_kind"), ("Relationship", "edges_by_relationship"), ("Layer", "layers")):
        for value, count in sorted(summary[key].items()):
            breakdown.add_row(title, value, str(count))
    for cls in ComplexityClass:
        count = summary["complexity"].get(cls.value, 0)
        if count:
            breakdown.add_row("Complexity", cls.value, str(count))
    console.print(breakdown)
