"""
Custom exception classes for the listing API.

Domain validation failures live in ``services.errors``; these cover the
infrastructure underneath them.
"""


class ListingError(Exception):
    """Base exception for listing-related errors."""

    pass


class StoreError(ListingError):
    """Exception raised when the persistence layer fails."""

    pass


class NotificationError(ListingError):
    """Raised when a message could not be relayed to the staff server."""

    pass
