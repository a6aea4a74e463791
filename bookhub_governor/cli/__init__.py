"""BookHub governor command line interface."""

from .app import cli

__all__ = ["cli"]
