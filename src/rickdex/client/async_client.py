"""Asynchronous HTTP client for the remote API.

This module provides :class:`AsyncClient`, a thin wrapper around
:class:`httpx.AsyncClient` that adds:

- **Retry with backoff** -- retries on 5xx and network errors with
  exponential delay (1 s, 2 s, 4 s, ...) using :func:`asyncio.sleep`.
- **Error mapping** -- non-2xx statuses and transport failures become
  typed :class:`~rickdex.exceptions.NetworkError` subclasses, so callers
  never see raw httpx exceptions.

Decoding the body is left to :mod:`rickdex.client.response`, which turns
malformed payloads into :class:`~rickdex.exceptions.DecodeError`.

See Also:
    :class:`~rickdex.client.fetcher.ApiFetcher` -- the sync engine's
    view of the API, built on this client.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from rickdex.exceptions import InvalidRequestError, NetworkError, NotFoundError, ServerError
from rickdex.models import GlobalConfig
from rickdex.output import get_output


class AsyncClient:
    """Asynchronous HTTP client for API calls.

    Must be used as an async context manager so that the underlying
    connection pool is opened and closed properly.

    Args:
        config: Effective configuration; supplies ``base_url`` and the
            request settings (timeout, retries, SSL verify).
        transport: Optional httpx transport, e.g. :class:`httpx.MockTransport`
            in tests.

    Example::

        async with AsyncClient(config) as client:
            response = await client.get("/episode", params={"page": 2})
    """

    def __init__(
        self,
        config: GlobalConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> AsyncClient:
        request = self._config.request
        self._client = httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=request.timeout,
            verify=request.verify_ssl,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public request methods
    # ------------------------------------------------------------------ #

    async def get(
        self,
        path: str,
        params: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send a GET request with retry and error mapping.

        Args:
            path: URL path appended to ``base_url`` (e.g. ``/character/1``).
            params: Query parameters.

        Returns:
            The 2xx :class:`httpx.Response`.

        Raises:
            InvalidRequestError: On 4xx other than 404.
            NotFoundError: On 404.
            ServerError: On 5xx after all retries are exhausted.
            NetworkError: On connection / timeout errors after all retries.
        """
        response = await self._execute_with_retry("GET", path, dict(params or {}))
        self._map_response_error(response)
        return response

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _execute_with_retry(
        self,
        method: str,
        path: str,
        params: dict[str, Any],
    ) -> httpx.Response:
        """Execute the request, retrying 5xx and transport failures.

        The delay doubles each attempt: 1 s, 2 s, 4 s, ...
        """
        assert self._client is not None, "Client not initialised -- use as async context manager"

        max_retries = self._config.request.max_retries
        output = get_output()

        for attempt in range(max_retries + 1):
            try:
                response = await self._client.request(method, path, params=params)
            except httpx.TransportError as exc:
                if attempt < max_retries:
                    delay = 2 ** attempt
                    output.debug(
                        f"Connection error: {exc}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise NetworkError(
                    f"Connection failed after {max_retries + 1} attempts: {exc}"
                ) from exc

            if response.status_code >= 500 and attempt < max_retries:
                delay = 2 ** attempt
                output.debug(
                    f"Server error {response.status_code}, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                await asyncio.sleep(delay)
                continue

            return response

        raise ServerError("Request failed after all retries")  # pragma: no cover

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = detail.get("error") or detail.get("message") or ""
            else:
                msg = str(detail)
        except ValueError:
            msg = response.text[:200] if response.text else ""

        prefix = f"HTTP {status}"
        full_msg = f"{prefix}: {msg}" if msg else prefix

        if status == 404:
            raise NotFoundError(full_msg)
        if status >= 500:
            raise ServerError(full_msg)
        raise InvalidRequestError(full_msg)
