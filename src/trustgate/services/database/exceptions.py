"""Exceptions raised by the database layer."""


class StoreUnavailableError(Exception):
    """Raised when the backing store cannot complete a request.

    The only error class in the service that callers may retry.
    """

    status_code = 503
    retryable = True


class DuplicateRecordError(Exception):
    """Raised when an insert violates a unique constraint."""

    retryable = False
