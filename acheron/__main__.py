"""Entry point for ``python -m acheron``."""

from acheron.cli.commands import app

if __name__ == "__main__":
    app()
