"""Colored status messages written to stderr.

The CLI, the sync driver and the sops adapter all report through these
helpers, so every status line carries the same [INFO]/[WARN]/[ERROR] prefix.
"""

import click


def info(message: str) -> None:
    """Print info message in green."""
    click.secho(f"[INFO] {message}", fg="green", err=True)


def warn(message: str) -> None:
    """Print warning message in yellow."""
    click.secho(f"[WARN] {message}", fg="yellow", err=True)


def error(message: str) -> None:
    """Print error message in red."""
    click.secho(f"[ERROR] {message}", fg="red", err=True)
