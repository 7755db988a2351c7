"""
drillgraph CLI - Main entry point.

This module registers all CLI commands. Each command is implemented
in its own module under cli/commands/.
"""

import logging

import click

from .commands import flows, layout, stats


@click.group()
@click.version_option(package_name="drillgraph")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def main(verbose: bool):
    """drillgraph: Multi-level code dependency graph layouts.

    Lays out scanned code graphs at project, module and file level and
    traces flows through them.

    \b
    Quick Start:
      drillgraph stats graph.json
      drillgraph layout graph.json --level file -o frame.json
      drillgraph flows graph.json flows.json --flow checkout
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# Register commands
main.add_command(layout.layout)
main.add_command(stats.stats)
main.add_command(flows.flows)

if __name__ == "__main__":
    main()
