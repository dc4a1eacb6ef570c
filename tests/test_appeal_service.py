"""
Tests for appeal, certification and report requests.
"""

import asyncio
import time

import pytest
from services.appeal_service import RELAY_FAILED, RELAY_OK, check_certification
from services.errors import (
    AppealRejected,
    CertificationCode,
    CertificationError,
    ExperimentNotEnabled,
    GenericCode,
    GenericError,
    RateLimited,
)
from services.models import Appeal, AppealType, Bot, Server, State, User
from tests.factories import (
    EXISTING_BOT_ID,
    EXPERIMENT_USER_ID,
    OTHER_ID,
    OWNER_ID,
    SERVER_ID,
    seed_bot,
)

APPEAL = Appeal(request_type=AppealType.APPEAL, appeal="Please take another look at my bot")
CERTIFY = Appeal(request_type=AppealType.CERTIFICATION, appeal="It is a unique bot")
REPORT = Appeal(request_type=AppealType.REPORT, appeal="This bot is spamming users")


@pytest.fixture
def clock(monkeypatch):
    now = [time.time()]
    monkeypatch.setattr("helpers.rate_limiter.time.time", lambda: now[0])
    return now


async def set_guild_count(database, bot_id: int, count: int) -> None:
    async with database.get_connection() as db:
        await db.execute("UPDATE bots SET guild_count = ? WHERE bot_id = ?", (count, bot_id))
        await db.commit()


@pytest.mark.asyncio
async def test_appeal_relayed(app_context, notifier, clock):
    result = await app_context.appeals.appeal_bot(OWNER_ID, EXISTING_BOT_ID, APPEAL)

    assert result.done is True
    assert result.reason == RELAY_OK
    assert len(notifier.sent) == 1
    embed = notifier.sent[0].embed
    assert embed.title == "Resubmission"
    assert embed.fields[0].value == APPEAL.appeal


@pytest.mark.asyncio
async def test_second_appeal_is_rate_limited(app_context, notifier, clock):
    await app_context.appeals.appeal_bot(OWNER_ID, EXISTING_BOT_ID, APPEAL)
    clock[0] += 5

    with pytest.raises(RateLimited) as exc_info:
        await app_context.appeals.appeal_bot(OWNER_ID, EXISTING_BOT_ID, APPEAL)

    assert exc_info.value.action == "appeal"
    assert exc_info.value.seconds_remaining == 25
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_appeal_allowed_after_cooldown(app_context, notifier, clock):
    await app_context.appeals.appeal_bot(OWNER_ID, EXISTING_BOT_ID, APPEAL)
    clock[0] += 31

    result = await app_context.appeals.appeal_bot(OWNER_ID, EXISTING_BOT_ID, APPEAL)

    assert result.done is True
    assert len(notifier.sent) == 2


@pytest.mark.asyncio
async def test_cooldown_is_per_user(app_context, clock):
    await app_context.appeals.appeal_bot(OWNER_ID, EXISTING_BOT_ID, APPEAL)
    result = await app_context.appeals.appeal_bot(OTHER_ID, EXISTING_BOT_ID, APPEAL)
    assert result.done is True


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["short", "x" * 4001])
async def test_appeal_length_does_not_consume_cooldown(app_context, clock, text):
    with pytest.raises(AppealRejected) as exc_info:
        await app_context.appeals.appeal_bot(
            OWNER_ID, EXISTING_BOT_ID, Appeal(request_type=AppealType.APPEAL, appeal=text)
        )
    assert str(exc_info.value) == "Appeal length must be between 7 and 4000 characters"

    result = await app_context.appeals.appeal_bot(OWNER_ID, EXISTING_BOT_ID, APPEAL)
    assert result.done is True


@pytest.mark.asyncio
async def test_appeal_length_bounds_inclusive(app_context, clock):
    result = await app_context.appeals.appeal_bot(
        OWNER_ID, EXISTING_BOT_ID, Appeal(request_type=AppealType.APPEAL, appeal="x" * 7)
    )
    assert result.done is True


@pytest.mark.asyncio
async def test_missing_bot(app_context):
    with pytest.raises(GenericError) as exc_info:
        await app_context.appeals.appeal_bot(OWNER_ID, 200000000000000999, APPEAL)
    assert exc_info.value.code is GenericCode.NOT_FOUND


@pytest.mark.asyncio
async def test_certification_needs_guilds(app_context, seeded_db, notifier, clock):
    with pytest.raises(CertificationError) as exc_info:
        await app_context.appeals.appeal_bot(OWNER_ID, EXISTING_BOT_ID, CERTIFY)

    assert exc_info.value.reason == "CertificationError.TooFewGuilds"
    assert "fewer than 100 guilds" in exc_info.value.context
    assert notifier.sent == []

    await set_guild_count(seeded_db, EXISTING_BOT_ID, 100)
    result = await app_context.appeals.appeal_bot(OWNER_ID, EXISTING_BOT_ID, CERTIFY)

    assert result.done is True
    assert notifier.sent[0].embed.title == "Certification Request"


@pytest.mark.asyncio
async def test_certification_needs_approval(app_context, seeded_db):
    pending_id = 200000000000000050
    await seed_bot(seeded_db, pending_id, [(OWNER_ID, True)], state=int(State.PENDING))

    with pytest.raises(CertificationError) as exc_info:
        await app_context.appeals.appeal_bot(OWNER_ID, pending_id, CERTIFY)
    assert exc_info.value.code is CertificationCode.BOT_NOT_APPROVED


@pytest.mark.asyncio
async def test_report_requires_experiment(app_context, clock):
    with pytest.raises(ExperimentNotEnabled) as exc_info:
        await app_context.appeals.appeal_bot(OWNER_ID, EXISTING_BOT_ID, REPORT)
    assert exc_info.value.experiment == "BotReport"

    result = await app_context.appeals.appeal_bot(EXPERIMENT_USER_ID, EXISTING_BOT_ID, REPORT)
    assert result.done is True


@pytest.mark.asyncio
async def test_relay_failure_reported(app_context, notifier, clock):
    notifier.fail = True

    result = await app_context.appeals.appeal_bot(OWNER_ID, EXISTING_BOT_ID, APPEAL)

    assert result.done is False
    assert result.reason == RELAY_FAILED


@pytest.mark.asyncio
async def test_concurrent_appeals_relay_once(app_context, notifier, clock):
    results = await asyncio.gather(
        app_context.appeals.appeal_bot(OWNER_ID, EXISTING_BOT_ID, APPEAL),
        app_context.appeals.appeal_bot(OWNER_ID, EXISTING_BOT_ID, APPEAL),
        return_exceptions=True,
    )

    relayed = [r for r in results if not isinstance(r, Exception)]
    limited = [r for r in results if isinstance(r, RateLimited)]
    assert len(relayed) == 1
    assert len(limited) == 1
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_server_appeal_requires_experiment(app_context):
    with pytest.raises(ExperimentNotEnabled) as exc_info:
        await app_context.appeals.appeal_server(OWNER_ID, SERVER_ID, APPEAL)
    assert exc_info.value.experiment == "ServerAppealCertification"


@pytest.mark.asyncio
async def test_server_appeal_relayed(app_context, notifier, clock):
    result = await app_context.appeals.appeal_server(EXPERIMENT_USER_ID, SERVER_ID, APPEAL)

    assert result.done is True
    assert notifier.sent[0].embed.url.endswith(f"/server/{SERVER_ID}")


@pytest.mark.asyncio
async def test_server_certification_gate(app_context):
    with pytest.raises(CertificationError) as exc_info:
        await app_context.appeals.appeal_server(EXPERIMENT_USER_ID, SERVER_ID, CERTIFY)
    assert exc_info.value.code is CertificationCode.NO_BANNER_CARD
    assert exc_info.value.context == "You cannot certify a server that has no banner card"


@pytest.mark.asyncio
async def test_missing_server(app_context):
    with pytest.raises(GenericError) as exc_info:
        await app_context.appeals.appeal_server(EXPERIMENT_USER_ID, 300000000000000999, APPEAL)
    assert exc_info.value.code is GenericCode.NOT_FOUND


def certifiable_bot(**overrides) -> Bot:
    fields = {
        "user": User(id="1"),
        "state": State.APPROVED,
        "banner_card": "https://cdn.example.com/card.png",
        "banner_page": "https://cdn.example.com/page.png",
        "guild_count": 100,
    }
    fields.update(overrides)
    return Bot(**fields)


@pytest.mark.parametrize(
    "overrides,code",
    [
        ({"state": State.CERTIFIED}, CertificationCode.BOT_NOT_APPROVED),
        ({"banner_card": None}, CertificationCode.NO_BANNER_CARD),
        ({"banner_card": "http://cdn.example.com/card.png"}, CertificationCode.NO_BANNER_CARD),
        ({"banner_page": ""}, CertificationCode.NO_BANNER_PAGE),
        ({"guild_count": 99}, CertificationCode.TOO_FEW_GUILDS),
    ],
)
def test_certification_requirements(overrides, code):
    with pytest.raises(CertificationError) as exc_info:
        check_certification(certifiable_bot(**overrides))
    assert exc_info.value.code is code


def test_certifiable_bot_passes():
    check_certification(certifiable_bot())


def test_server_member_requirement():
    server = Server(
        user=User(id="1"),
        state=State.APPROVED,
        banner_card="https://cdn.example.com/card.png",
        banner_page="https://cdn.example.com/page.png",
        guild_count=10,
    )
    with pytest.raises(CertificationError) as exc_info:
        check_certification(server)
    assert exc_info.value.code is CertificationCode.TOO_FEW_MEMBERS
