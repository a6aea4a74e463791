"""Allow ``python -m bookhub_governor``."""

from .cli import cli

if __name__ == "__main__":
    cli()
