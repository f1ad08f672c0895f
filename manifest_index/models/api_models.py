"""
Pydantic models for API responses.

Manifest and work records themselves are free-form JSON objects (the
pass-through fields of a fetched manifest are arbitrary), so only the
fixed-shape responses are modelled here.
"""

from pydantic import BaseModel


class ApiRoot(BaseModel):
    """
    Discovery document served at ``/`` and ``/api/``.

    Attributes:
        status: Always "ok" while the process is serving
        version: Major API version
        manifests_url: Absolute URL of the manifests collection
        works_url: Absolute URL of the works collection
    """
    status: str = "ok"
    version: int
    manifests_url: str
    works_url: str


class ErrorEnvelope(BaseModel):
    """
    Body of every error response raised by the manifest and work handlers.

    Attributes:
        error: Always True
        name: HTTP reason phrase, e.g. "Bad Request"
        message: Human-readable explanation
    """
    error: bool = True
    name: str
    message: str
