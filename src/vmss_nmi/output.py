"""Console output in the ``vmss-nmi: message`` form."""
from __future__ import annotations

import click

from .const import PROG


def verbose(config, msg: str) -> None:
    if not config.verbose:
        return
    click.echo(f"{PROG}: {msg}")


def warn(msg: str) -> None:
    click.echo(f"{PROG}: {msg}", err=True)


def fatal(msg: str) -> None:
    click.echo(f"FATAL: {msg}", err=True)
