"""
Layout Command - Compute a positioned render frame.

Lays out the visible subgraph of a snapshot at the requested level and
writes the frame as JSON, to stdout or a file.
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from ...core.types import Level, LayoutStrategy
from ...layout.selector import SMART_MODE
from ...view import GraphView
from ..utils import echo_error, echo_success, load_engine_config, load_snapshot_file


LEVEL_CHOICES = [Level.PROJECT.value, Level.MODULE.value, Level.FILE.value]
STRATEGY_CHOICES = ["auto"] + [s.value for s in LayoutStrategy]


@click.command()
@click.argument("snapshot", type=click.Path())
@click.option("--level", type=click.Choice(LEVEL_CHOICES), default=Level.PROJECT.value,
              help="Abstraction level to lay out")
@click.option("--focus", default=None, help="Focus node id for module/file level")
@click.option("--strategy", type=click.Choice(STRATEGY_CHOICES), default="auto",
              help="Layout strategy (auto picks from graph shape)")
@click.option("--width", type=float, default=800.0, help="Viewport width")
@click.option("--height", type=float, default=600.0, help="Viewport height")
@click.option("--seed", type=int, default=None, help="Random seed for force layouts")
@click.option("-c", "--config", "config_path", default=None, help="Path to config YAML")
@click.option("-o", "--output", default=None, help="Write the frame to this file instead of stdout")
def layout(
    snapshot: str,
    level: str,
    focus: Optional[str],
    strategy: str,
    width: float,
    height: float,
    seed: Optional[int],
    config_path: Optional[str],
    output: Optional[str],
):
    """
    Lay out SNAPSHOT and emit a JSON render frame.
    """
    loaded = load_snapshot_file(snapshot)
    if loaded is None:
        sys.exit(1)
    config = load_engine_config(config_path)
    if config is None:
        sys.exit(1)
    if seed is not None:
        config = config.model_copy(update={"layout": config.layout.model_copy(update={"seed": seed})})

    nodes, edges = loaded
    view = GraphView(nodes, edges, config=config)

    for step in (
        view.set_bounds(width, height),
        view.set_layout_mode(SMART_MODE if strategy == "auto" else strategy),
        view.open(level, focus),
    ):
        if step.is_err():
            echo_error(str(step.error))
            sys.exit(1)

    frame = view.frame()
    payload = json.dumps(frame.to_dict(), indent=2)

    if output:
        Path(output).write_text(payload)
        echo_success(
            f"Wrote {len(frame.nodes)} nodes ({frame.strategy.value if frame.strategy else 'empty'}) to {output}"
        )
    else:
        click.echo(payload)
