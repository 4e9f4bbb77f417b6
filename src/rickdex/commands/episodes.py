"""Episode commands -- list, page through and inspect episodes.

Provides the ``rickdex episodes`` sub-command group. Every command loads
the episode collection cache first: a fresh local copy is shown without
contacting the API, a stale or missing one is refreshed from page 1.
"""

from __future__ import annotations

from typing import Optional

import typer

from rickdex.commands._session import fail, report, run_in_session
from rickdex.exceptions import NotFoundError
from rickdex.models import Character, Episode
from rickdex.output import info, print_record, print_table, warning
from rickdex.session import Session
from rickdex.sync.state import CollectionState, EntityMapState


episodes_app = typer.Typer(no_args_is_help=True)

_HEADERS = ["ID", "Code", "Name", "Air date", "Characters"]


def _episode_row(episode: Episode) -> list[str]:
    return [
        str(episode.id),
        episode.episode_code or "",
        episode.name or "",
        episode.formatted_air_date or "",
        str(len(episode.character_refs)),
    ]


def _print_episodes(state: CollectionState[Episode]) -> None:
    print_table(
        _HEADERS,
        [_episode_row(episode) for episode in state.entities],
        title="Episodes",
    )
    shown = len(state.entities)
    total = state.remote_total_count or shown
    info(f"{shown} of {total} episodes (page {state.current_page})")
    if state.has_more:
        info("More episodes available: rickdex episodes more")


def _print_refresh_hint(days: Optional[int], show: bool) -> None:
    if show and days is not None:
        info(f"Episodes were fetched {days} days ago. Run: rickdex episodes list --refresh")


@episodes_app.command("list")
def episodes_list(
    ctx: typer.Context,
    refresh: bool = typer.Option(
        False, "--refresh", "-r", help="Discard the local copy and refetch."
    ),
    all_pages: bool = typer.Option(
        False, "--all", "-a", help="Keep fetching until every page is loaded."
    ),
) -> None:
    """List episodes, cache first.

    Example::

        rickdex episodes list
        rickdex episodes list --refresh --all
    """

    async def _work(session: Session) -> tuple[CollectionState[Episode], Optional[int], bool]:
        sync = session.episodes
        state = await sync.load_collection(force_refresh=refresh)
        while all_pages and state.has_more and state.notice is None:
            state = await sync.load_next_page()
        return state, sync.days_since_last_fetch(), sync.should_show_refresh_hint()

    state, days, show_hint = run_in_session(ctx, _work)
    report(state.status, state.notice)
    _print_episodes(state)
    _print_refresh_hint(days, show_hint)


@episodes_app.command("more")
def episodes_more(ctx: typer.Context) -> None:
    """Load the next page of episodes and list everything loaded so far.

    Example::

        rickdex episodes more
    """

    async def _work(session: Session) -> CollectionState[Episode]:
        state = await session.episodes.load_collection()
        if state.notice is not None or not state.has_more:
            return state
        return await session.episodes.load_next_page()

    state = run_in_session(ctx, _work)
    report(state.status, state.notice)
    if not state.has_more:
        info("All episodes are loaded.")
    _print_episodes(state)


@episodes_app.command("show")
def episodes_show(
    ctx: typer.Context,
    episode_id: int = typer.Argument(help="Episode id."),
) -> None:
    """Show one episode and its cast.

    Pages through the collection until the episode is found, then loads
    the characters appearing in it.

    Example::

        rickdex episodes show 28
    """

    async def _work(
        session: Session,
    ) -> tuple[CollectionState[Episode], Optional[Episode], Optional[EntityMapState[Character]]]:
        state = await session.episodes.load_collection()
        episode = _find(state, episode_id)
        while episode is None and state.has_more:
            previous_page = state.current_page
            state = await session.episodes.load_next_page()
            if state.current_page == previous_page:
                break
            episode = _find(state, episode_id)
        if episode is None:
            return state, None, None
        cast = await session.characters.load_entities(episode.character_ids)
        return state, episode, cast

    state, episode, cast = run_in_session(ctx, _work)
    report(state.status, state.notice)
    if episode is None:
        fail(NotFoundError(f"Episode {episode_id} not found"))

    print_record(
        {
            "ID": str(episode.id),
            "Code": episode.episode_code or "",
            "Season": str(episode.season_number),
            "Episode": str(episode.episode_number),
            "Name": episode.name or "",
            "Air date": episode.formatted_air_date or "",
        },
        title=episode.name,
    )
    if cast is None:
        return
    if cast.status.error is not None:
        warning(f"Could not load characters: {cast.status.error}")
    elif cast.notice:
        warning(cast.notice)
    rows = [
        [str(c.id), c.name or "", c.status.value, c.species or ""]
        for c in (cast.entities.get(i) for i in episode.character_ids)
        if c is not None
    ]
    print_table(["ID", "Name", "Status", "Species"], rows, title="Characters")


def _find(state: CollectionState[Episode], episode_id: int) -> Optional[Episode]:
    return next((e for e in state.entities if e.id == episode_id), None)
