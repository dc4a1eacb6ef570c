"""
Test Factories Module

Centralized factory functions for seeding the store and faking the
capabilities that reach other services.
"""

from .db_factories import (
    CO_OWNER_ID,
    EXISTING_BOT_ID,
    EXPERIMENT_USER_ID,
    LONG_DESCRIPTION,
    NEW_BOT_ID,
    OTHER_ID,
    OWNER_ID,
    SECOND_BOT_ID,
    SERVER_ID,
    THIRD_BOT_ID,
    TOKENS,
    auth_headers,
    seed_bot,
    seed_listing,
    seed_server,
    seed_user,
    seed_vocabulary,
)
from .model_factories import make_candidate, make_owner, make_pack
from .fakes import (
    FakeApplicationLookup,
    FakeImageProbe,
    FakeNotifier,
    bad_content_type,
    client_id_needed,
)

__all__ = [
    "CO_OWNER_ID",
    "EXISTING_BOT_ID",
    "EXPERIMENT_USER_ID",
    "LONG_DESCRIPTION",
    "NEW_BOT_ID",
    "OTHER_ID",
    "OWNER_ID",
    "SECOND_BOT_ID",
    "SERVER_ID",
    "THIRD_BOT_ID",
    "TOKENS",
    "auth_headers",
    "FakeApplicationLookup",
    "FakeImageProbe",
    "FakeNotifier",
    "bad_content_type",
    "client_id_needed",
    "make_candidate",
    "make_owner",
    "make_pack",
    "seed_bot",
    "seed_listing",
    "seed_server",
    "seed_user",
    "seed_vocabulary",
]
