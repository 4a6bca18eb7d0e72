"""
Error types raised by the SCIM sync engine
"""

from typing import Optional


class SyncError(Exception):
    """Base class for all sync errors."""


class TransportError(SyncError):
    """The SCIM directory could not be reached (connection failure or timeout)."""


class StatusError(SyncError):
    """The SCIM directory answered with a non-success status code."""

    def __init__(self, status_code: int, body: str, method: Optional[str] = None, url: Optional[str] = None):
        self.status_code = status_code
        self.body = body
        self.method = method
        self.url = url
        target = f"{method} {url}: " if method and url else ""
        super().__init__(f"{target}HTTP {status_code}: {body}")


class MappingError(SyncError):
    """A remote record (or response envelope) is missing a mandatory field."""


class StoreError(SyncError):
    """A read or write against the local store failed."""
