import uuid

import pytest
from services.errors import GenericCode, GenericError, PackCheckCode, PackCheckError
from tests.factories import (
    EXISTING_BOT_ID,
    OTHER_ID,
    OWNER_ID,
    SECOND_BOT_ID,
    THIRD_BOT_ID,
    make_pack,
)


@pytest.mark.asyncio
async def test_add_pack_owned_by_caller(app_context):
    pack_id = await app_context.packs.add_pack(
        OWNER_ID, make_pack([EXISTING_BOT_ID, SECOND_BOT_ID, EXISTING_BOT_ID])
    )

    stored = await app_context.store.get_pack(pack_id)
    assert str(uuid.UUID(pack_id)) == pack_id
    assert stored.owner.id == str(OWNER_ID)
    assert [bot.user.id for bot in stored.resolved_bots] == [
        str(EXISTING_BOT_ID),
        str(SECOND_BOT_ID),
    ]


@pytest.mark.asyncio
async def test_add_pack_error_context(app_context):
    with pytest.raises(PackCheckError) as exc_info:
        await app_context.packs.add_pack(OWNER_ID, make_pack([EXISTING_BOT_ID]))

    assert exc_info.value.code is PackCheckCode.TOO_FEW_BOTS
    assert exc_info.value.reason == "You must have at least 2 bots in a pack. Recheck the Bot IDs?"
    assert exc_info.value.context == "Add pack error"


@pytest.mark.asyncio
async def test_edit_pack(app_context):
    pack_id = await app_context.packs.add_pack(OWNER_ID, make_pack([EXISTING_BOT_ID, SECOND_BOT_ID]))

    await app_context.packs.edit_pack(
        OWNER_ID, make_pack([SECOND_BOT_ID, THIRD_BOT_ID], id=pack_id, name="Renamed")
    )

    stored = await app_context.store.get_pack(pack_id)
    assert stored.name == "Renamed"
    assert [bot.user.id for bot in stored.resolved_bots] == [str(SECOND_BOT_ID), str(THIRD_BOT_ID)]


@pytest.mark.asyncio
async def test_edit_pack_by_other_user(app_context):
    pack_id = await app_context.packs.add_pack(OWNER_ID, make_pack([EXISTING_BOT_ID, SECOND_BOT_ID]))

    with pytest.raises(GenericError) as exc_info:
        await app_context.packs.edit_pack(
            OTHER_ID, make_pack([SECOND_BOT_ID, THIRD_BOT_ID], id=pack_id)
        )
    assert exc_info.value.code is GenericCode.FORBIDDEN


@pytest.mark.asyncio
async def test_edit_pack_error_context(app_context):
    pack_id = await app_context.packs.add_pack(OWNER_ID, make_pack([EXISTING_BOT_ID, SECOND_BOT_ID]))

    with pytest.raises(PackCheckError) as exc_info:
        await app_context.packs.edit_pack(
            OWNER_ID, make_pack([EXISTING_BOT_ID, SECOND_BOT_ID], id=pack_id, icon="http://x")
        )
    assert exc_info.value.code is PackCheckCode.INVALID_ICON
    assert exc_info.value.context == "Edit pack error"


@pytest.mark.asyncio
async def test_pack_id_must_be_uuid(app_context):
    with pytest.raises(PackCheckError) as exc_info:
        await app_context.packs.delete_pack(OWNER_ID, "not-a-uuid")
    assert exc_info.value.code is PackCheckCode.INVALID_PACK_ID


@pytest.mark.asyncio
async def test_missing_pack(app_context):
    with pytest.raises(GenericError) as exc_info:
        await app_context.packs.delete_pack(OWNER_ID, str(uuid.uuid4()))
    assert exc_info.value.code is GenericCode.NOT_FOUND


@pytest.mark.asyncio
async def test_delete_pack(app_context):
    pack_id = await app_context.packs.add_pack(OWNER_ID, make_pack([EXISTING_BOT_ID, SECOND_BOT_ID]))

    with pytest.raises(GenericError):
        await app_context.packs.delete_pack(OTHER_ID, pack_id)

    await app_context.packs.delete_pack(OWNER_ID, pack_id)
    assert await app_context.store.get_pack(pack_id) is None
