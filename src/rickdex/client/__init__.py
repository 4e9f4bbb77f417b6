"""Remote access layer for rickdex.

Classes:
    :class:`AsyncClient` -- httpx-backed client with retry and error
        mapping.
    :class:`RemoteFetcher` -- the abstract interface the sync engine
        depends on.
    :class:`ApiFetcher` -- the production fetcher for the Rick & Morty API.
    :class:`FetchedPage` -- one decoded page of a collection.

Example::

    from rickdex.client import ApiFetcher, AsyncClient

    async with AsyncClient(config) as client:
        fetcher = ApiFetcher(client)
        page = await fetcher.fetch_page(Collection.EPISODES, 1)
"""

from rickdex.client.async_client import AsyncClient
from rickdex.client.base import FetchedPage, RemoteFetcher
from rickdex.client.fetcher import ApiFetcher

__all__ = ["AsyncClient", "ApiFetcher", "FetchedPage", "RemoteFetcher"]
