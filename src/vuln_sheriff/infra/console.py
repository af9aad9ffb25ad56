from __future__ import annotations

import typer


class TyperConsole:
    """Writes the console report to stdout."""

    def write(self, text: str) -> None:
        typer.echo(text)
