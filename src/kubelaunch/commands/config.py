"""Config commands: show, set and unset values in ~/.kubelaunch/config.yaml."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from ..config import get_config_path, load_config, save_config, unset_config
from ..errors import KubelaunchError
from ..formatters import print_config, print_error


def _config_path(ctx: click.Context) -> Path:
    config_path = ctx.obj.get("config_path")
    return Path(config_path) if config_path else get_config_path()


@click.group()
def config() -> None:
    """Manage kubelaunch configuration."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show effective configuration and where each value comes from."""
    try:
        effective = load_config(_config_path(ctx))
    except KubelaunchError as e:
        print_error(e, ctx.obj.get("json_output", False))
        sys.exit(e.exit_code)
    print_config(effective, ctx.obj.get("json_output", False))


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Set a config value."""
    path = _config_path(ctx)
    try:
        save_config(key, value, path)
    except KubelaunchError as e:
        print_error(e, ctx.obj.get("json_output", False))
        sys.exit(e.exit_code)
    click.echo(f"✓ Set {key} = {value} in {path}")


@config.command("unset")
@click.argument("key")
@click.pass_context
def config_unset(ctx: click.Context, key: str) -> None:
    """Remove a config value."""
    path = _config_path(ctx)
    if unset_config(key, path):
        click.echo(f"✓ Removed {key} from {path}")
    else:
        click.echo(f"{key} is not set in {path}")
