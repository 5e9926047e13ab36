"""Per-invocation CLI state and error handling.

Why a session object:
- The root callback resolves settings once (flags over env over .env) and
  every sub-command reads them from the Typer context.
- The API client is built lazily, so `config` and `doctor` work without a key.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from treasuredata.adapters.client import TreasureDataClient
from treasuredata.core.config import AppSettings, validate_api_key
from treasuredata.core.errors import TreasureDataError

_err_console = Console(stderr=True)


class CLIState:
    def __init__(self, settings: AppSettings, *, verbose: bool = False) -> None:
        self.settings = settings
        self.verbose = verbose

    def build_client(self) -> TreasureDataClient:
        try:
            api_key = validate_api_key(self.settings.api_key)
        except ValueError as exc:
            fail(f"{exc}. Set TD_API_KEY, pass --api-key or run `tdcli config init`.")
        return TreasureDataClient(api_key, settings=self.settings)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=verbose)],
        force=True,
    )
    # httpx logs every request at INFO; ours are enough.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def get_state(ctx: typer.Context) -> CLIState:
    state = ctx.find_object(CLIState)
    if state is None:
        # Sub-apps invoked directly (tests, embedding) fall back to the environment.
        try:
            state = CLIState(AppSettings())
        except ValidationError as exc:
            fail(f"invalid configuration: {exc}")
        ctx.obj = state
    return state


def fail(message: str) -> NoReturn:
    """Print an error in red and exit with status 1."""

    _err_console.print(f"[red]Error:[/red] {escape(message)}", highlight=False, soft_wrap=True)
    raise typer.Exit(code=1)


def info(message: str) -> None:
    """Status line on stderr, so stdout stays machine readable."""

    _err_console.print(message, highlight=False, soft_wrap=True)


@contextmanager
def client_session(ctx: typer.Context) -> Iterator[TreasureDataClient]:
    """Open a client for one command and turn library errors into exit 1."""

    state = get_state(ctx)
    try:
        with state.build_client() as client:
            yield client
    except TreasureDataError as exc:
        fail(str(exc))
