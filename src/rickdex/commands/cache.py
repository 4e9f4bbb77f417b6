"""Cache commands -- inspect and clear the local store.

Provides the ``rickdex cache`` sub-command group. ``status`` reports what
is held locally and how old it is; ``clear`` deletes stored records and
sync metadata so the next load behaves like a first run.
"""

from __future__ import annotations

from typing import Optional

import typer

from rickdex.commands._session import report, run_in_session
from rickdex.models import Collection
from rickdex.output import info, print_table, success
from rickdex.session import Session
from rickdex.sync.staleness import days_since, is_stale, utcnow


cache_app = typer.Typer(no_args_is_help=True)


@cache_app.command("status")
def cache_status(ctx: typer.Context) -> None:
    """Show how many records are stored and when they were fetched.

    Example::

        rickdex cache status
        rickdex cache status --json
    """

    async def _work(session: Session) -> tuple[str, list[list[str]]]:
        now = utcnow()
        rows = []
        for collection, store in (
            (Collection.EPISODES, session.episode_store),
            (Collection.CHARACTERS, session.character_store),
        ):
            metadata = session.metadata.get(collection)
            fetched = metadata.last_fetched_at
            if collection is Collection.CHARACTERS and metadata.entity_fetched_at:
                fetched = min(metadata.entity_fetched_at.values())
            days = days_since(fetched, now)
            rows.append(
                [
                    collection.value,
                    str(len(store)),
                    fetched.isoformat(timespec="seconds") if fetched else "never",
                    "-" if days is None else str(days),
                    "yes" if is_stale(fetched, session.episodes.max_age, now) else "no",
                ]
            )
        return str(session.store_dir), rows

    store_dir, rows = run_in_session(ctx, _work)
    info(f"Store directory: {store_dir}")
    print_table(["Collection", "Records", "Fetched", "Age (days)", "Stale"], rows)


@cache_app.command("clear")
def cache_clear(
    ctx: typer.Context,
    collection: Optional[Collection] = typer.Option(
        None, "--collection", "-c", help="Only clear this collection."
    ),
) -> None:
    """Delete stored records and sync metadata.

    Asks for confirmation unless ``--force`` is active.

    Example::

        rickdex cache clear
        rickdex cache clear --collection characters --force
    """
    force = ctx.obj.get("force", False) if ctx.obj else False
    target = collection.value if collection else "all collections"
    if not force:
        confirmed = typer.confirm(f"Clear cached {target}?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    async def _work(session: Session) -> list:
        states = []
        if collection in (None, Collection.EPISODES):
            states.append(await session.episodes.clear())
        if collection in (None, Collection.CHARACTERS):
            states.append(await session.characters.clear())
        return states

    for state in run_in_session(ctx, _work):
        report(state.status, state.notice)
    success(f"Cleared {target}.")
