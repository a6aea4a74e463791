"""BookHub governor CLI application."""

import logging

import click
import yaml
from rich.console import Console

from .. import __version__
from ..config import GovernorConfig, find_config
from ..utils.logging import setup_logging_from_dict

console = Console()


def load_config(ctx: click.Context) -> GovernorConfig:
    """Resolved configuration for the current invocation."""
    obj = ctx.obj or {}
    path = obj.get("config")
    cfg = GovernorConfig.load(path) if path else GovernorConfig()
    # Flags win over the file so governors built from cfg keep the chosen level
    if obj.get("debug"):
        cfg.log_level = "DEBUG"
    elif obj.get("verbose"):
        cfg.log_level = "INFO"
    return cfg


def _logging_section(path: str) -> dict:
    """The file's logging section, or {} when absent or unreadable."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError:
        # Reported by the subcommand that loads the config
        return {}
    if not isinstance(data, dict):
        return {}
    return data.get("logging") or {}


@click.group()
@click.version_option(version=__version__, prog_name="bookhub-governor")
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
@click.option("--no-config", is_flag=True, help="Disable config auto-loading")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--debug", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx: click.Context, config: str, no_config: bool, verbose: bool, debug: bool) -> None:
    """BookHub request governor: inspect configuration and probe endpoints.

    Config file locations (in priority order):

        1. -c/--config PATH (explicit)

        2. BOOKHUB_GOVERNOR_CONFIG env var

        3. .bookhub.yaml (project config)

        4. ~/.config/bookhub/governor.yaml (user config)

    Examples:

        bookhub-governor config show

        bookhub-governor probe /api/books --repeat 5
    """
    ctx.ensure_object(dict)

    if no_config:
        config = None
    elif config is None:
        config = find_config()
        if config and verbose:
            console.print(f"[dim]Using config: {config}[/dim]")

    if debug:
        setup_logging_from_dict({"level": "DEBUG"})
    elif verbose:
        setup_logging_from_dict({"level": "INFO"})
    else:
        section = _logging_section(config) if config else {}
        if section:
            setup_logging_from_dict(section)
        else:
            logging.getLogger("bookhub_governor").setLevel(logging.WARNING)

    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug


from .commands import config_cmd, probe, version  # noqa: E402

cli.add_command(config_cmd.config)
cli.add_command(probe.probe)
cli.add_command(version.version)
