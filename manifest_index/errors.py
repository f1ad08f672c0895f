"""
Error kinds raised by the manifest index.

The HTTP layer maps each kind to a status code in ``main.py``; persistence
errors never reach a caller and are only logged.
"""

from typing import Optional


class ManifestIndexError(Exception):
    """Base class for every error raised by this package."""

    status_code = 500
    name = "Internal Server Error"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class ValidationError(ManifestIndexError):
    """Submission body is missing what a manifest submission needs."""

    status_code = 400
    name = "Bad Request"


class NotFoundError(ManifestIndexError):
    """No record with the requested id."""

    status_code = 404
    name = "Not Found"


class UpstreamFetchError(ManifestIndexError):
    """The web-app manifest could not be fetched or parsed."""


class ReadOnlyViolation(ManifestIndexError):
    """A mutation was attempted on the read-only works resource."""

    status_code = 400
    name = "Bad Request"


class PersistenceError(ManifestIndexError):
    """The remote blob store rejected or failed a request."""


class StoreError(ManifestIndexError):
    """A record cannot be placed in a collection (missing or duplicate id)."""
