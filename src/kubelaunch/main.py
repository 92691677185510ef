"""CLI main entry point."""

import click

from .commands.bootstrap import down, forward, manifests, serve, status, up
from .commands.config import config
from .shared.logging import configure_logging, level_for_verbosity

__version__ = "0.1.0"  # Defined here to avoid circular import


@click.group()
@click.option("-c", "--config", "config_path", type=click.Path(), help="Config file path")
@click.option("-v", "--verbose", count=True, help="Increase verbosity")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.version_option(__version__, prog_name="kubelaunch")
@click.pass_context
def cli(ctx: click.Context, config_path: str, verbose: int, json_output: bool) -> None:
    """Bootstrap a sample web service onto Kubernetes."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose
    ctx.obj["json_output"] = json_output
    configure_logging(level_for_verbosity(verbose), json_output=json_output)


cli.add_command(up)
cli.add_command(down)
cli.add_command(status)
cli.add_command(forward)
cli.add_command(manifests)
cli.add_command(serve)
cli.add_command(config)


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
