"""
CLI Utilities - Shared helper functions for command line operations.

Formatted printing plus loading of snapshot, flow and config files.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click
from pydantic import ValidationError

from ..config import EngineConfig, load_config
from ..core.types import Flow


def echo_success(message: str) -> None:
    """
    Print a success message with a green checkmark.

    Args:
        message (str): The message to display.
    """
    click.echo(click.style(f"✅ {message}", fg="green"))


def echo_error(message: str) -> None:
    """
    Print an error message with a red cross.

    Args:
        message (str): The error message to display.
    """
    click.echo(click.style(f"❌ {message}", fg="red"), err=True)


def echo_warning(message: str) -> None:
    click.echo(click.style(f"⚠️  {message}", fg="yellow"), err=True)


def echo_info(message: str) -> None:
    click.echo(click.style(f"   {message}", dim=True))


def _read_json(path: str) -> Optional[Any]:
    file_path = Path(path)
    if not file_path.exists():
        echo_error(f"File not found: {path}")
        return None
    try:
        return json.loads(file_path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        echo_error(f"Failed to read {path}: {e}")
        return None


def load_snapshot_file(path: str) -> Optional[Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]]:
    """
    Load raw scanner output from a JSON file.

    Args:
        path (str): File holding ``{"nodes": [...], "edges": [...]}``.

    Returns:
        Optional[Tuple[list, list]]: Raw nodes and edges, or None if loading failed.
    """
    data = _read_json(path)
    if data is None:
        return None
    if not isinstance(data, dict):
        echo_error(f"Snapshot file must hold an object with 'nodes' and 'edges': {path}")
        return None
    nodes = data.get("nodes") or []
    edges = data.get("edges") or []
    if not isinstance(nodes, list) or not isinstance(edges, list):
        echo_error(f"'nodes' and 'edges' must be lists: {path}")
        return None
    return nodes, edges


def load_flows(path: str) -> Optional[List[Flow]]:
    """Load a JSON list of flow definitions. Invalid entries are reported and skipped."""
    data = _read_json(path)
    if data is None:
        return None
    if isinstance(data, dict):
        data = data.get("flows") or []
    if not isinstance(data, list):
        echo_error(f"Flow file must hold a list of flows: {path}")
        return None

    flows = []
    for i, raw in enumerate(data):
        try:
            flows.append(Flow.model_validate(raw))
        except ValidationError as e:
            echo_warning(f"Skipping flow #{i}: {e.error_count()} validation errors")
    return flows


def load_engine_config(path: Optional[str]) -> Optional[EngineConfig]:
    result = load_config(path)
    if result.is_err():
        echo_error(str(result.error))
        return None
    return result.value
