"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~rickdex.exceptions.RickdexError` subclass.
Shell wrappers can inspect the exit code to tell "offline" apart from
"the API changed shape" without parsing stderr.

Example::

    $ rickdex characters show 99999
    $ echo $?
    4   # EXIT_NOT_FOUND -- the API has no such character
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments, or the API rejected the request (HTTP 4xx)."""

EXIT_NOT_FOUND = 4
"""The requested resource was not found (HTTP 404)."""

EXIT_SERVER_ERROR = 5
"""The remote API returned an HTTP 5xx server error."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_DECODE_ERROR = 7
"""The API answered, but the payload did not match the expected shape."""

EXIT_STORE_ERROR = 8
"""The local entity store or sync-metadata file could not be read or written."""
