"""Plain-text character sheet written by ``rickdex characters show --export``."""

from __future__ import annotations

from pathlib import Path

from rickdex.config import atomic_write
from rickdex.models import Character


def format_character_text(character: Character) -> str:
    """Render *character* as a short human-readable text sheet.

    Example::

        RICK & MORTY CHARACTER
        ====================

        Name: Rick Sanchez
        Status: Alive
        Species: Human
        Origin: Earth (C-137)
        Appears in 51 episodes
    """
    lines = [
        "RICK & MORTY CHARACTER",
        "====================",
        "",
        f"Name: {character.name or 'Unknown'}",
        f"Status: {character.status.value}",
        f"Species: {character.species or 'Unknown'}",
    ]
    if character.origin is not None and character.origin.name:
        lines.append(f"Origin: {character.origin.name}")
    count = len(character.episode_refs)
    if count:
        noun = "episode" if count == 1 else "episodes"
        lines.append(f"Appears in {count} {noun}")
    return "\n".join(lines) + "\n"


def default_export_name(character: Character) -> str:
    base = character.name or f"Character_{character.id}"
    safe = "".join(ch if ch.isalnum() or ch in " -_()" else "_" for ch in base).strip()
    return f"{safe or f'Character_{character.id}'}.txt"


def export_character(character: Character, destination: Path) -> Path:
    """Write the text sheet for *character* and return the file written.

    If *destination* is an existing directory the file is named after the
    character inside it.
    """
    path = destination / default_export_name(character) if destination.is_dir() else destination
    atomic_write(path, format_character_text(character))
    return path
