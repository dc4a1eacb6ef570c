"""
Database Package

Database access layer for the listing API.
"""

from .database import Database
from .repository import (
    BaseRepository,
    encode_json,
    parse_json_list,
    parse_snowflake,
)
from .schema import init_schema

__all__ = [
    "BaseRepository",
    "Database",
    "encode_json",
    "init_schema",
    "parse_json_list",
    "parse_snowflake",
]
