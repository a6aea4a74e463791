"""Version command."""

import click
from rich.console import Console

from ... import __version__

console = Console()


@click.command()
def version() -> None:
    """Show BookHub governor version."""
    console.print(f"[bold]BookHub Governor[/bold] v{__version__}")
