"""Built-in CLI sub-commands for rickdex.

* :mod:`~rickdex.commands.episodes` -- list, page through and inspect episodes.
* :mod:`~rickdex.commands.characters` -- inspect and export characters.
* :mod:`~rickdex.commands.cache` -- inspect and clear the local store.
* :mod:`~rickdex.commands.config` -- view and modify global settings.

Each module exports a :class:`typer.Typer` sub-application registered on
the root app in :func:`~rickdex.app.main`.
"""
