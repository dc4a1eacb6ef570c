import pytest
import pytest_asyncio
from services.listing_store import ListingStore
from services.models import Flags, UserExperiment
from tests.factories import (
    EXISTING_BOT_ID,
    EXPERIMENT_USER_ID,
    OWNER_ID,
    TOKENS,
    make_candidate,
    seed_server,
)


@pytest_asyncio.fixture()
async def store(seeded_db):
    return ListingStore(seeded_db)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "token,ok",
    [
        (TOKENS[OWNER_ID], True),
        (f"User {TOKENS[OWNER_ID]}", True),
        (TOKENS[EXPERIMENT_USER_ID], False),
        ("", False),
    ],
)
async def test_authorize_user(store, token, ok):
    assert await store.authorize_user(OWNER_ID, token) is ok


@pytest.mark.asyncio
async def test_unknown_user_cannot_authorize(store):
    assert await store.authorize_user(100000000000000999, "anything") is False


@pytest.mark.asyncio
async def test_user_experiments(store):
    assert await store.get_user_experiments(OWNER_ID) == []
    assert await store.get_user_experiments(EXPERIMENT_USER_ID) == [
        UserExperiment.BOT_REPORT,
        UserExperiment.SERVER_APPEAL_CERTIFICATION,
    ]


@pytest.mark.asyncio
async def test_placeholder_for_dangling_user(store):
    user = await store.get_user_or_placeholder(100000000000000999)
    assert user.username == "Unknown User"
    assert user.id == "100000000000000999"


@pytest.mark.asyncio
async def test_bot_tags_carry_display_names(store):
    bot = await store.get_bot(EXISTING_BOT_ID)
    assert [(tag.id, tag.name, tag.iconify_data) for tag in bot.tags] == [
        ("music", "Music", "fa:music")
    ]


@pytest.mark.asyncio
async def test_edit_keeps_staff_flags(store):
    await store.execute(
        "UPDATE bots SET flags = ? WHERE bot_id = ?",
        (f"[{int(Flags.VOTE_LOCKED)}]", EXISTING_BOT_ID),
    )
    candidate = make_candidate(
        EXISTING_BOT_ID, vanity="testbot", flags=[int(Flags.NSFW), int(Flags.SYSTEM)]
    )

    await store.edit_bot(candidate)

    bot = await store.get_bot(EXISTING_BOT_ID)
    assert sorted(bot.flags) == [int(Flags.VOTE_LOCKED), int(Flags.NSFW)]


@pytest.mark.asyncio
async def test_server_skips_unknown_tags(store, seeded_db):
    await seed_server(seeded_db, 300000000000000002, OWNER_ID, tags='["gaming", "gone"]')

    server = await store.get_server(300000000000000002)

    assert [tag.id for tag in server.tags] == ["gaming"]
