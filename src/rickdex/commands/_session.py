"""Glue between synchronous Typer commands and the async sync engine."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, NoReturn, Optional, TypeVar

import typer

from rickdex.exceptions import RickdexError
from rickdex.output import error, warning
from rickdex.session import Session, open_session
from rickdex.sync.state import LoadStatus, StatusKind

T = TypeVar("T")


def run_in_session(ctx: typer.Context, work: Callable[[Session], Awaitable[T]]) -> T:
    """Resolve config from *ctx*, open a session and run *work* to completion.

    ``ctx.obj["transport"]``, when present, replaces the network transport;
    the test suite uses it to inject :class:`httpx.MockTransport`.

    Raises:
        typer.Exit: With the error's exit code on any :class:`RickdexError`.
    """
    from rickdex.config import resolve_config

    obj = ctx.obj or {}
    try:
        config = resolve_config(cli_base_url=obj.get("base_url"))
    except RickdexError as exc:
        fail(exc)

    async def _run() -> T:
        async with open_session(config, transport=obj.get("transport")) as session:
            return await work(session)

    try:
        return asyncio.run(_run())
    except RickdexError as exc:
        fail(exc)


def fail(exc: RickdexError) -> NoReturn:
    error(str(exc))
    raise typer.Exit(code=exc.exit_code)


def report(status: LoadStatus, notice: Optional[str]) -> None:
    """Surface a notice as a warning, and exit if the load failed."""
    if notice:
        warning(notice)
    if status.kind is StatusKind.FAILED and status.error is not None:
        fail(status.error)
