"""Production :class:`~rickdex.client.base.RemoteFetcher` for the Rick & Morty API.

Endpoints used:

* ``GET /episode?page=N`` and ``GET /character?page=N`` -- paginated
  collections, 20 records per page, with an ``info`` block carrying
  ``count``, ``pages`` and the ``next``/``prev`` URLs.
* ``GET /character/{id}`` -- a single character object.
* ``GET /character/{id},{id},...`` -- a JSON array of the characters that
  exist; unknown ids are silently omitted by the server.
"""

from __future__ import annotations

from typing import Sequence

from rickdex.client.async_client import AsyncClient
from rickdex.client.base import FetchedPage, RemoteFetcher
from rickdex.client.response import decode_model, decode_model_list, extract_response_data
from rickdex.exceptions import InvalidRequestError, NotFoundError
from rickdex.models import Character, CharacterPage, Collection, EpisodePage

_PAGE_MODELS = {
    Collection.EPISODES: EpisodePage,
    Collection.CHARACTERS: CharacterPage,
}


class ApiFetcher(RemoteFetcher):
    """Fetch and decode records through an open :class:`AsyncClient`.

    Args:
        client: An entered :class:`~rickdex.client.async_client.AsyncClient`.
    """

    supports_batch = True

    def __init__(self, client: AsyncClient) -> None:
        self._client = client

    async def fetch_page(self, collection: Collection, page_index: int) -> FetchedPage:
        if page_index < 1:
            raise InvalidRequestError(f"Page index must be >= 1, got {page_index}")
        response = await self._client.get(
            f"/{collection.resource}", params={"page": page_index}
        )
        page = decode_model(_PAGE_MODELS[collection], extract_response_data(response))
        return FetchedPage(
            index=page_index,
            records=list(page.results),
            total_count=page.info.count,
            has_next=page.info.next is not None,
            next_cursor=page.info.next,
        )

    async def fetch_entity(self, entity_id: int) -> Character:
        response = await self._client.get(f"/character/{entity_id}")
        return decode_model(Character, extract_response_data(response))

    async def fetch_entities(self, entity_ids: Sequence[int]) -> list[Character]:
        ids = list(dict.fromkeys(entity_ids))
        if not ids:
            return []
        if len(ids) == 1:
            try:
                return [await self.fetch_entity(ids[0])]
            except NotFoundError:
                return []

        joined = ",".join(str(i) for i in ids)
        response = await self._client.get(f"/character/{joined}")
        data = extract_response_data(response)
        # A batch that collapses to one known id comes back as a bare object.
        if isinstance(data, dict):
            return [decode_model(Character, data)]
        return decode_model_list(Character, data)
