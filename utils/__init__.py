"""
Utilities Package

Common utilities and helper functions for the listing API.
"""

from .errors import ListingError, NotificationError, StoreError
from .logging import get_logger, setup_logging

__all__ = [
    "ListingError",
    "NotificationError",
    "StoreError",
    "get_logger",
    "setup_logging",
]
