"""Exception hierarchy for rickdex.

All exceptions inherit from :class:`RickdexError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`rickdex.exit_codes`.
The sync orchestrators catch :class:`NetworkError` and :class:`DecodeError`
to fall back to cached data, while :class:`StoreError` always fails the
operation. The CLI entry point catches ``RickdexError`` and exits with the
appropriate code.

Subclass hierarchy::

    RickdexError (exit 1)
    +-- NetworkError            (exit 6)
    |   +-- InvalidRequestError (exit 2)
    |   +-- NotFoundError       (exit 4)
    |   +-- ServerError         (exit 5)
    +-- DecodeError             (exit 7)
    +-- StoreError              (exit 8)
    +-- ConfigError             (exit 1)
"""

from rickdex.exit_codes import (
    EXIT_CONNECTION_ERROR,
    EXIT_DECODE_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_SERVER_ERROR,
    EXIT_STORE_ERROR,
)


class RickdexError(Exception):
    """Base exception for all rickdex errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`rickdex.exit_codes`.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class NetworkError(RickdexError):
    """Raised when the API cannot be reached or answers with a non-2xx status.

    Covers timeouts, DNS failures and refused connections directly; HTTP
    error statuses use the more specific subclasses below.
    """

    exit_code = EXIT_CONNECTION_ERROR


class InvalidRequestError(NetworkError):
    """Raised when the API rejects the request (HTTP 4xx other than 404)."""

    exit_code = EXIT_INVALID_USAGE


class NotFoundError(NetworkError):
    """Raised when the API returns HTTP 404 (no such page or record)."""

    exit_code = EXIT_NOT_FOUND


class ServerError(NetworkError):
    """Raised when the API returns an HTTP 5xx server error."""

    exit_code = EXIT_SERVER_ERROR


class DecodeError(RickdexError):
    """Raised when a response body is not valid JSON or does not match the model.

    Distinguished from :class:`NetworkError` so that callers can tell
    "server reachable but contract violated" from "server unreachable".
    """

    exit_code = EXIT_DECODE_ERROR


class StoreError(RickdexError):
    """Raised when the entity store or metadata file cannot be read or written."""

    exit_code = EXIT_STORE_ERROR


class ConfigError(RickdexError):
    """Raised for configuration problems (invalid JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
