"""CLI output formatting helpers."""

from __future__ import annotations

import json
from typing import Any

import click
from rich.console import Console
from rich.table import Table

from .bootstrap import PodStatus, StepOutcome
from .config import BootstrapConfig, config_keys
from .errors import KubelaunchError


def print_error(error: KubelaunchError, json_output: bool = False) -> None:
    """Print an error to stderr."""
    if json_output:
        click.echo(json.dumps(error.to_dict()), err=True)
    else:
        click.echo(f"✗ {error.message}", err=True)


def print_step(outcome: StepOutcome) -> None:
    """Print a completed pipeline step."""
    marker = "+" if outcome.changed else "✓"
    click.echo(f"  {marker} {outcome.step.value}: {outcome.detail}")


def print_config(config: BootstrapConfig, json_output: bool = False) -> None:
    """Print config values with their sources."""
    if json_output:
        data: dict[str, Any] = {
            "values": config.to_dict(),
            "sources": {key: config.get_source(key) for key in config_keys()},
        }
        click.echo(json.dumps(data, indent=2))
        return

    click.echo("kubelaunch configuration:\n")
    width = max(len(key) for key in config_keys())
    for key in config_keys():
        value = getattr(config, key)
        value = "-" if value is None else value
        click.echo(f"  {key:<{width}}  {value}  ({config.get_source(key)})")


def print_pod_table(pods: list[PodStatus], console: Console | None = None) -> None:
    """Print pod readiness as a table."""
    console = console or Console()
    if not pods:
        console.print("[dim]No matching pods[/dim]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Pod")
    table.add_column("Phase")
    table.add_column("Ready")
    for pod in pods:
        ready = "[green]yes[/green]" if pod.ready else "[red]no[/red]"
        table.add_row(pod.name, pod.phase, ready)
    console.print(table)
