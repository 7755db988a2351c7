"""
Flows Command - Isolate flows and show their ordered paths.
"""

import json
import sys
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from ...flows.isolator import FlowIsolator, animation_schedule
from ...model.enrich import GraphModel
from ..utils import echo_error, echo_warning, load_engine_config, load_flows, load_snapshot_file

console = Console()


@click.command()
@click.argument("snapshot", type=click.Path())
@click.argument("flows_file", metavar="FLOWS", type=click.Path())
@click.option("--flow", "flow_id", default=None, help="Only this flow id")
@click.option("-c", "--config", "config_path", default=None, help="Path to config YAML")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def flows(snapshot: str, flows_file: str, flow_id: Optional[str], config_path: Optional[str], as_json: bool):
    """
    Trace the flows in FLOWS through SNAPSHOT.
    """
    loaded = load_snapshot_file(snapshot)
    if loaded is None:
        sys.exit(1)
    flow_list = load_flows(flows_file)
    if flow_list is None:
        sys.exit(1)
    config = load_engine_config(config_path)
    if config is None:
        sys.exit(1)

    if flow_id is not None:
        flow_list = [f for f in flow_list if f.id == flow_id]
        if not flow_list:
            echo_error(f"Unknown flow: {flow_id}")
            sys.exit(1)

    graph = GraphModel(config.scoring).enrich(*loaded)
    isolator = FlowIsolator()

    report = []
    for flow in flow_list:
        isolated = isolator.isolate(flow, graph)
        path = isolator.ordered_path(flow, graph)
        report.append({
            "id": flow.id,
            "name": flow.name,
            "is_critical": flow.is_critical,
            "nodes": isolated.node_ids,
            "path": [
                {"source": e.source, "target": e.target, "relationship": e.relationship.value}
                for e in path
            ],
            "animation": [step.model_dump() for step in animation_schedule(path)],
            "missing_hops": max(len(flow.ordered_file_ids) - 1 - len(path), 0),
        })

    if as_json:
        click.echo(json.dumps(report, indent=2))
        return

    for entry in report:
        table = Table(title=f"{entry['name'] or entry['id']}{' (critical)' if entry['is_critical'] else ''}")
        table.add_column("#", justify="right")
        table.add_column("Source", style="cyan")
        table.add_column("Target", style="cyan")
        table.add_column("Relationship", style="dim")
        for i, hop in enumerate(entry["path"]):
            table.add_row(str(i), hop["source"], hop["target"], hop["relationship"])
        console.print(table)
        if entry["missing_hops"]:
            echo_warning(f"{entry['id']}: {entry['missing_hops']} hop(s) have no connecting edge")
