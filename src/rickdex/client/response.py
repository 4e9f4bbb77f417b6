"""Response decoding -- maps :class:`httpx.Response` bodies onto models.

This module is the boundary between "the server answered" and "the
server answered with something we understand". Any body that is not JSON,
or whose JSON does not validate against the expected Pydantic model, is
reported as :class:`~rickdex.exceptions.DecodeError` so the sync engine
can tell a contract violation apart from an outage.
"""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from rickdex.exceptions import DecodeError

ModelT = TypeVar("ModelT", bound=BaseModel)


def extract_response_data(response: httpx.Response) -> Any:
    """Parse the body of *response* as JSON.

    Raises:
        DecodeError: If the body is empty or not valid JSON.
    """
    if not response.content:
        raise DecodeError(f"Empty response body from {response.request.url}")
    try:
        return response.json()
    except ValueError as exc:
        raise DecodeError(f"Response from {response.request.url} is not JSON: {exc}") from exc


def decode_model(model: type[ModelT], data: Any) -> ModelT:
    """Validate *data* against *model*.

    Raises:
        DecodeError: If validation fails. The message names the model and
            the first failing field.
    """
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(_describe(model.__name__, exc)) from exc


def decode_model_list(model: type[ModelT], data: Any) -> list[ModelT]:
    """Validate *data* as a JSON array of *model*.

    Raises:
        DecodeError: If *data* is not a list or any element fails validation.
    """
    try:
        return TypeAdapter(list[model]).validate_python(data)  # type: ignore[valid-type]
    except ValidationError as exc:
        raise DecodeError(_describe(f"list[{model.__name__}]", exc)) from exc


def _describe(name: str, exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
    return f"Unexpected {name} payload at '{location}': {first.get('msg')}"
