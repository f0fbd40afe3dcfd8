"""
Error taxonomy shared by the parser, validator, service and routes.

Two families exist:
- `BadInput` (and its subclasses `ParseError`, `ValidationError`): the
  caller sent something we cannot accept. These map to HTTP 400 and carry
  the offending field name so clients can fix the request.
- `StorageFailure`: the persistence layer failed. Opaque to clients, maps
  to HTTP 500. The service never retries it.

Both subclass built-in exceptions (`ValueError` / `RuntimeError`) so code
written against plain Python errors keeps working.
"""


class BadInput(ValueError):
    """Client-caused, non-retryable failure."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class ParseError(BadInput):
    """A primitive value (timestamp, enum, integer, id) is malformed."""


class ValidationError(BadInput):
    """Well-formed values that form an invalid event."""


class StorageFailure(RuntimeError):
    """Infrastructure error raised by (or on behalf of) the event store."""
