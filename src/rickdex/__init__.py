"""rickdex -- offline-first browser for the Rick & Morty reference API.

This package fetches paginated episode records and individual character
records from ``https://rickandmortyapi.com/api``, persists them locally,
and keeps the local copy in sync with the remote service. The sync engine
decides whether to serve from the local store or the network, merges pages
without duplicates, remembers pagination progress across restarts, and
falls back to stale data when the network is unavailable.

Typical workflow::

    rickdex episodes list          # first run: fetches page 1
    rickdex episodes more          # appends the next page
    rickdex characters show 1      # cached for 7 days

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models for entities, sync metadata and config.
    config: XDG-aware configuration loading and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
    client: httpx-based remote fetcher.
    store: diskcache entity store and JSON sync-metadata store.
    sync: staleness policy, single-flight guard, pagination tracker and
        the sync orchestrators.
"""

__version__ = "0.1.0"
