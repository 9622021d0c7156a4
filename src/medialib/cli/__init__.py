"""Command-line interface for medialib.

- app: The Typer application object behind the ``medialib`` entrypoint.
- console: Rich Console instance shared by every command for styled output.
"""

from medialib.cli.commands import app, console

__all__ = ["app", "console"]
