"""Configuration inspection commands."""

import json

import click
import yaml
from rich.console import Console

from ..app import load_config
from ..display import config_table

console = Console()


@click.group()
def config() -> None:
    """Inspect the resolved governor configuration.

    Examples:

        bookhub-governor config show

        bookhub-governor -c governor.yaml config show --format yaml
    """


@config.command("show")
@click.option(
    "--format", "fmt",
    type=click.Choice(["table", "yaml", "json"]),
    default="table",
    help="Output format",
)
@click.pass_context
def config_show(ctx: click.Context, fmt: str) -> None:
    """Show configuration after defaults and file are merged."""
    try:
        cfg = load_config(ctx)
    except (ValueError, yaml.YAMLError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    if fmt == "json":
        click.echo(json.dumps(cfg.to_dict(), indent=2))
    elif fmt == "yaml":
        click.echo(yaml.safe_dump(cfg.to_dict(), sort_keys=False))
    else:
        console.print(config_table(cfg))


@config.command("blocklist")
@click.pass_context
def config_blocklist(ctx: click.Context) -> None:
    """List endpoints blocked by configuration."""
    cfg = load_config(ctx)
    if not cfg.blocked_endpoints:
        console.print("[dim]No blocked endpoints[/dim]")
        return
    for endpoint in cfg.blocked_endpoints:
        console.print(endpoint)
