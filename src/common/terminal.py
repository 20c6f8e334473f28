from __future__ import annotations

import logging
import sys
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.text import Text


_console = Console(soft_wrap=True)
_err_console = Console(stderr=True, soft_wrap=True)


def header(text: str, subtext: str = "") -> None:
    header_text = f"[bold cyan]==> {escape(text)}[/bold cyan]"
    _console.print(header_text, subtext)


def print(*objects: Any, **kwargs: Any) -> None:
    _console.print(*objects, **kwargs)


def detail(text: str, dim: bool = True, **kwargs: Any) -> None:
    style = "dim" if dim else ""
    _console.print(Text(text, style=style), **kwargs)


def success(text: str) -> None:
    _console.print(Text(text, style="bold green"))


def warn(text: str) -> None:
    _console.print(Text(f"WARNING: {text}", style="bold yellow"))


def error(text: str, exit: bool = True) -> None:
    _console.print(Text(f"ERROR: {text}", style="bold red"))

    if exit:
        sys.exit(1)


def prompt(*, text: str, default: Optional[str] = None) -> Optional[str]:
    prompt_text = f"{text} [{default}]: " if default is not None else f"{text}: "
    try:
        user_input = _console.input(prompt_text, markup=False).strip()
    except EOFError:
        return default
    return user_input if user_input else default


def configure_logging(verbose: bool = False) -> None:
    """Route stdlib logging through rich on stderr."""
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(console=_err_console, show_path=False, rich_tracebacks=verbose)
    logging.basicConfig(level=level, format="%(name)s %(message)s", handlers=[handler], force=True)
    # botocore is very chatty at DEBUG
    logging.getLogger("botocore").setLevel(logging.INFO if verbose else logging.WARNING)
