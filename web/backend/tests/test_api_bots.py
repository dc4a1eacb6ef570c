"""
API tests for bot submission, ownership and appeals.
"""

import time
from unittest.mock import AsyncMock

import pytest

from helpers.http_helper import NotFoundError
from tests.factories import (
    CO_OWNER_ID,
    EXISTING_BOT_ID,
    EXPERIMENT_USER_ID,
    LONG_DESCRIPTION,
    NEW_BOT_ID,
    OTHER_ID,
    OWNER_ID,
    auth_headers,
    make_candidate,
    make_owner,
)


def payload(bot_id=NEW_BOT_ID, **overrides) -> dict:
    return make_candidate(bot_id, **overrides).model_dump(mode="json")


def appeal(request_type: int, text: str = "Please take another look at this") -> dict:
    return {"request_type": request_type, "appeal": text}


@pytest.fixture
def clock(monkeypatch):
    now = [time.time()]
    monkeypatch.setattr("helpers.rate_limiter.time.time", lambda: now[0])
    return now


@pytest.mark.asyncio
async def test_add_bot_short_description(client):
    response = await client.post(
        f"/users/{OWNER_ID}/bots",
        json=payload(description="x" * 9),
        headers=auth_headers(OWNER_ID),
    )

    assert response.status_code == 400
    assert response.json() == {
        "done": False,
        "reason": "CheckBotError.ShortDescLengthErr",
        "context": None,
    }


@pytest.mark.asyncio
async def test_add_bot_enters_queue(client, notifier):
    response = await client.post(
        f"/users/{OWNER_ID}/bots", json=payload(), headers=auth_headers(OWNER_ID)
    )

    assert response.status_code == 200
    assert response.json() == {"done": True, "reason": None, "context": None}

    page = await client.get(f"/bots/{NEW_BOT_ID}")
    assert page.status_code == 200
    body = page.json()
    assert body["state"] == 1
    assert body["owners"][0]["user"]["id"] == str(OWNER_ID)
    assert body["owners"][0]["main"] is True
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_add_bot_reports_staff_log_failure(client, notifier):
    notifier.fail = True

    response = await client.post(
        f"/users/{OWNER_ID}/bots", json=payload(), headers=auth_headers(OWNER_ID)
    )

    assert response.status_code == 200
    assert response.json()["context"] == "Staff log message could not be posted"


@pytest.mark.asyncio
@pytest.mark.parametrize("headers", [{}, {"Authorization": "wrong"}, auth_headers(OTHER_ID)])
async def test_mutations_require_matching_token(client, headers):
    response = await client.post(f"/users/{OWNER_ID}/bots", json=payload(), headers=headers)

    assert response.status_code == 403
    assert response.json()["reason"] == "GenericError.Forbidden"


@pytest.mark.asyncio
async def test_invalid_body(client):
    response = await client.post(
        f"/users/{OWNER_ID}/bots", json={"description": "no user"}, headers=auth_headers(OWNER_ID)
    )

    assert response.status_code == 400
    assert response.json()["reason"] == "GenericError.InvalidFields"


@pytest.mark.asyncio
async def test_non_owner_edit(client):
    response = await client.patch(
        f"/users/{OTHER_ID}/bots",
        json=payload(EXISTING_BOT_ID, vanity="testbot"),
        headers=auth_headers(OTHER_ID),
    )

    assert response.status_code == 400
    assert response.json() == {
        "done": False,
        "reason": "You are not allowed to edit this bot!",
        "context": "Forbidden",
    }


@pytest.mark.asyncio
async def test_co_owner_edit(client):
    response = await client.patch(
        f"/users/{CO_OWNER_ID}/bots",
        json=payload(EXISTING_BOT_ID, vanity="testbot", description="Edited description"),
        headers=auth_headers(CO_OWNER_ID),
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_transfer_requires_main_owner(client):
    response = await client.patch(
        f"/users/{CO_OWNER_ID}/bots/{EXISTING_BOT_ID}/main-owner",
        json=make_owner(OTHER_ID, main=True).model_dump(mode="json"),
        headers=auth_headers(CO_OWNER_ID),
    )

    assert response.status_code == 403
    assert response.json()["reason"] == "CheckBotError.NotMainOwner"


@pytest.mark.asyncio
async def test_transfer_rejects_non_main_flag(client):
    response = await client.patch(
        f"/users/{OWNER_ID}/bots/{EXISTING_BOT_ID}/main-owner",
        json=make_owner(OTHER_ID, main=False).model_dump(mode="json"),
        headers=auth_headers(OWNER_ID),
    )

    assert response.status_code == 400
    assert response.json()["reason"] == "GenericError.InvalidFields"


@pytest.mark.asyncio
async def test_transfer_then_old_owner_cannot_delete(client):
    response = await client.patch(
        f"/users/{OWNER_ID}/bots/{EXISTING_BOT_ID}/main-owner",
        json=make_owner(OTHER_ID, main=True).model_dump(mode="json"),
        headers=auth_headers(OWNER_ID),
    )
    assert response.status_code == 200

    response = await client.delete(
        f"/users/{OWNER_ID}/bots/{EXISTING_BOT_ID}", headers=auth_headers(OWNER_ID)
    )
    assert response.status_code == 403

    response = await client.delete(
        f"/users/{OTHER_ID}/bots/{EXISTING_BOT_ID}", headers=auth_headers(OTHER_ID)
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_delete_missing_bot(client):
    response = await client.delete(
        f"/users/{OWNER_ID}/bots/{NEW_BOT_ID}", headers=auth_headers(OWNER_ID)
    )

    assert response.status_code == 404
    assert response.json()["reason"] == "GenericError.NotFound"


@pytest.mark.asyncio
async def test_bot_page(client):
    response = await client.get(f"/bots/{EXISTING_BOT_ID}")

    assert response.status_code == 200
    body = response.json()
    assert body["vanity"] == "testbot"
    assert f"client_id={EXISTING_BOT_ID}&permissions=0" in body["invite"]

    missing = await client.get("/bots/200000000000000999")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_certification_guild_threshold(client, context, clock):
    url = f"/users/{OWNER_ID}/bots/{EXISTING_BOT_ID}/appeal"

    response = await client.post(url, json=appeal(1), headers=auth_headers(OWNER_ID))
    assert response.status_code == 400
    assert response.json()["reason"] == "CertificationError.TooFewGuilds"

    await context.store.execute(
        "UPDATE bots SET guild_count = 100 WHERE bot_id = ?", (EXISTING_BOT_ID,)
    )
    response = await client.post(url, json=appeal(1), headers=auth_headers(OWNER_ID))
    assert response.status_code == 200
    assert response.json()["reason"] == "Successfully posted appeal request :)"


@pytest.mark.asyncio
async def test_appeal_rate_limit(client, clock):
    url = f"/users/{OWNER_ID}/bots/{EXISTING_BOT_ID}/appeal"

    first = await client.post(url, json=appeal(0), headers=auth_headers(OWNER_ID))
    assert first.status_code == 200

    second = await client.post(url, json=appeal(0), headers=auth_headers(OWNER_ID))
    assert second.status_code == 400
    assert second.json() == {
        "done": False,
        "reason": "Please wait 30 seconds before retrying this appeal!",
        "context": "Ratelimit",
    }

    clock[0] += 31
    third = await client.post(url, json=appeal(0), headers=auth_headers(OWNER_ID))
    assert third.status_code == 200


@pytest.mark.asyncio
async def test_appeal_too_short(client):
    response = await client.post(
        f"/users/{OWNER_ID}/bots/{EXISTING_BOT_ID}/appeal",
        json=appeal(0, "short"),
        headers=auth_headers(OWNER_ID),
    )

    assert response.status_code == 400
    assert response.json()["reason"] == "Appeal length must be between 7 and 4000 characters"


@pytest.mark.asyncio
async def test_report_behind_experiment(client, clock):
    url = f"/users/{{user}}/bots/{EXISTING_BOT_ID}/appeal"

    response = await client.post(
        url.format(user=OWNER_ID), json=appeal(2), headers=auth_headers(OWNER_ID)
    )
    assert response.status_code == 451
    assert response.json() == {"done": False, "reason": "ExpNotEnabled", "context": "BotReport"}

    response = await client.post(
        url.format(user=EXPERIMENT_USER_ID),
        json=appeal(2),
        headers=auth_headers(EXPERIMENT_USER_ID),
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_appeal_relay_failure(client, notifier, clock):
    notifier.fail = True

    response = await client.post(
        f"/users/{OWNER_ID}/bots/{EXISTING_BOT_ID}/appeal",
        json=appeal(0),
        headers=auth_headers(OWNER_ID),
    )

    assert response.status_code == 400
    assert response.json()["reason"] == "Failed to send appeal message. Please try again."


@pytest.mark.asyncio
async def test_import_sources(client):
    response = await client.get("/import-sources")

    assert response.status_code == 200
    assert [source["id"] for source in response.json()["sources"]] == ["Rdl", "Ibl", "Custom"]


@pytest.mark.asyncio
async def test_custom_import(client):
    response = await client.post(
        f"/users/{OWNER_ID}/bots/{NEW_BOT_ID}/import",
        params={"src": "Custom", "custom_source": "top.gg"},
        json={
            "ext_data": {
                "username": "NewBot",
                "description": "Imported from another list",
                "long_description": LONG_DESCRIPTION,
            }
        },
        headers=auth_headers(OWNER_ID),
    )

    assert response.status_code == 200
    assert response.json()["done"] is True


@pytest.mark.asyncio
async def test_import_unknown_upstream_bot(client, context, monkeypatch):
    monkeypatch.setattr(
        context.importer._http, "get_json", AsyncMock(side_effect=NotFoundError("gone"))
    )

    response = await client.post(
        f"/users/{OWNER_ID}/bots/{NEW_BOT_ID}/import",
        params={"src": "Rdl"},
        headers=auth_headers(OWNER_ID),
    )

    assert response.status_code == 404
    assert response.json()["reason"] == "GenericError.NotFound"


@pytest.mark.asyncio
async def test_bot_settings(client):
    response = await client.get(
        f"/users/{CO_OWNER_ID}/bots/{EXISTING_BOT_ID}/settings", headers=auth_headers(CO_OWNER_ID)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["bot"]["user"]["id"] == str(EXISTING_BOT_ID)
    assert {tag["id"] for tag in body["context"]["tags"]} == {"music", "utility", "fun"}

    response = await client.get(
        f"/users/{OTHER_ID}/bots/{EXISTING_BOT_ID}/settings", headers=auth_headers(OTHER_ID)
    )
    assert response.status_code == 400
    assert response.json()["reason"] == "GenericError.NotOwner"
