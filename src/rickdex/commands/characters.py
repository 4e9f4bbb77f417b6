"""Character commands -- inspect and export a single character.

Provides the ``rickdex characters`` sub-command group. Characters are
cached individually; a character fetched within the last seven days is
shown without contacting the API.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from rickdex.commands._session import fail, report, run_in_session
from rickdex.exceptions import NotFoundError, StoreError
from rickdex.export import export_character
from rickdex.models import Character
from rickdex.output import print_record, success
from rickdex.session import Session
from rickdex.sync.state import EntityMapState


characters_app = typer.Typer(no_args_is_help=True)


def _character_fields(character: Character) -> dict[str, str]:
    fields = {
        "ID": str(character.id),
        "Name": character.name or "Unknown",
        "Status": character.status.value,
        "Species": character.species or "Unknown",
    }
    if character.display_type:
        fields["Type"] = character.display_type
    fields["Gender"] = character.gender.value
    if character.origin is not None and character.origin.name:
        fields["Origin"] = character.origin.name
    if character.location is not None and character.location.name:
        fields["Location"] = character.location.name
    fields["Episodes"] = str(len(character.episode_ids))
    return fields


@characters_app.command("show")
def characters_show(
    ctx: typer.Context,
    character_id: int = typer.Argument(help="Character id."),
    export: Optional[Path] = typer.Option(
        None,
        "--export",
        "-e",
        help="Also write a text sheet to this file (or directory).",
    ),
) -> None:
    """Show one character.

    Example::

        rickdex characters show 1
        rickdex characters show 1 --export ~/Desktop
    """

    async def _work(session: Session) -> tuple[Optional[Character], EntityMapState[Character]]:
        character = await session.characters.load_entity(character_id)
        return character, session.characters.state

    character, state = run_in_session(ctx, _work)
    report(state.status, state.notice)
    if character is None:
        fail(NotFoundError(f"Character {character_id} not found"))

    print_record(_character_fields(character), title=character.name)

    if export is not None:
        try:
            written = export_character(character, export.expanduser())
        except OSError as exc:
            fail(StoreError(f"Cannot write {export}: {exc}"))
        success(f"Exported {character.name or character.id} to {written}")
