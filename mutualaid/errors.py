"""
Exception types raised by the matching, resolution and splitting services.

Collaborator failures (geocoder, record store) surface as GeocodingError and
StoreError; caller mistakes surface as PreconditionError before any I/O.
"""


class MutualAidError(Exception):
    """Base class for errors raised by this package."""
    pass


class PreconditionError(MutualAidError, ValueError):
    """Raised when a caller passes arguments an operation cannot accept."""
    pass


class GeocodingError(MutualAidError):
    """Raised when an address cannot be turned into coordinates."""

    def __init__(self, message: str, address: str = "", status: str = ""):
        super().__init__(message)
        self.address = address
        self.status = status


class StoreError(MutualAidError):
    """Raised when the record store rejects a read or write."""

    def __init__(self, message: str, status_code=None, created=None):
        super().__init__(message)
        self.status_code = status_code
        # Records a multi-request write committed before it failed
        self.created = list(created or [])
