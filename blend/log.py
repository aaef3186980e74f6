"""Logging and console setup shared by the CLI."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from rich.console import Console
from rich.logging import RichHandler


@dataclass
class Consoles:
    """Where the CLI writes.

    ``out`` carries command results (blend names, info text) and is never
    silenced. ``status`` carries progress messages and honours ``--quiet``.
    ``err`` goes to stderr.
    """

    out: Console
    status: Console
    err: Console


def make_consoles(quiet: bool = False) -> Consoles:
    return Consoles(
        out=Console(highlight=False, soft_wrap=True),
        status=Console(quiet=quiet, highlight=False, soft_wrap=True),
        err=Console(stderr=True, highlight=False, soft_wrap=True),
    )


def configure_logging(quiet: bool = False, verbose: bool = False) -> None:
    """Route ``blend.*`` loggers to stderr through rich.

    WARNING by default, DEBUG with ``verbose``, ERROR with ``quiet``.
    """
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=Console(stderr=True),
        show_time=verbose,
        show_path=verbose,
        markup=False,
    )
    root = logging.getLogger("blend")
    root.handlers[:] = [handler]
    root.setLevel(level)
    root.propagate = False
