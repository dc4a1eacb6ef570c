import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from helpers.http_helper import HTTPResponse, RequestFailedError
from services.errors import BannerCheckCode, BannerCheckError, CheckBotCode, CheckBotError
from services.external_verifier import (
    ApplicationInfo,
    HTTPImageProbe,
    JAPIApplicationLookup,
    corroborate_application,
)
from tests.factories import FakeApplicationLookup


def make_http(response=None, error=None) -> MagicMock:
    http = MagicMock()
    http.request = AsyncMock(return_value=response, side_effect=error)
    return http


@pytest.mark.asyncio
async def test_empty_banner_skips_request() -> None:
    http = make_http()
    await HTTPImageProbe(http).check_banner("")
    http.request.assert_not_called()


@pytest.mark.asyncio
async def test_image_banner_passes() -> None:
    http = make_http(HTTPResponse(status=200, headers={"Content-Type": "image/png"}))
    await HTTPImageProbe(http).check_banner("https://cdn.example.com/banner.png")

    assert http.request.call_args.kwargs["read_body"] is False


@pytest.mark.asyncio
async def test_banner_bad_url() -> None:
    http = make_http(error=RequestFailedError("invalid URL"))
    with pytest.raises(BannerCheckError) as exc_info:
        await HTTPImageProbe(http).check_banner("not a url")
    assert exc_info.value.code is BannerCheckCode.BAD_URL
    assert str(exc_info.value) == "Bad banner url: invalid URL"


@pytest.mark.asyncio
async def test_banner_bad_status() -> None:
    http = make_http(HTTPResponse(status=403, headers={"Content-Type": "image/png"}))
    with pytest.raises(BannerCheckError) as exc_info:
        await HTTPImageProbe(http).check_banner("https://cdn.example.com/banner.png")
    assert str(exc_info.value) == "Got status code: 403 when requesting this banner"


@pytest.mark.asyncio
async def test_banner_wrong_content_type() -> None:
    http = make_http(HTTPResponse(status=200, headers={"content-type": "text/html; charset=utf-8"}))
    with pytest.raises(BannerCheckError) as exc_info:
        await HTTPImageProbe(http).check_banner("https://cdn.example.com/page")
    assert exc_info.value.code is BannerCheckCode.BAD_CONTENT_TYPE
    assert exc_info.value.detail == "text/html; charset=utf-8"


def japi_body(app_id="10", bot_id="10", public=True, guilds=250) -> bytes:
    return json.dumps(
        {
            "data": {
                "application": {"id": app_id, "bot_public": public},
                "bot": {"id": bot_id, "approximate_guild_count": guilds},
            }
        }
    ).encode()


@pytest.mark.asyncio
async def test_japi_lookup_parses_response() -> None:
    http = make_http(HTTPResponse(status=200, body=japi_body()))
    lookup = JAPIApplicationLookup(http, "https://japi.example/app/{id}", api_key="key")

    info = await lookup.lookup(10)

    assert info == ApplicationInfo(application_id="10", bot_id="10", bot_public=True, guild_count=250)
    args, kwargs = http.request.call_args
    assert args[0] == "https://japi.example/app/10"
    assert kwargs["headers"] == {"Authorization": "key"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response,error,code",
    [
        (None, RequestFailedError("timeout"), CheckBotCode.JAPI_ERROR),
        (HTTPResponse(status=404), None, CheckBotCode.CLIENT_ID_NEEDED),
        (HTTPResponse(status=200, body=b'{"data": {}}'), None, CheckBotCode.JAPI_DESER_ERROR),
    ],
)
async def test_japi_lookup_errors(response, error, code) -> None:
    lookup = JAPIApplicationLookup(make_http(response, error), "https://japi.example/app/{id}")
    with pytest.raises(CheckBotError) as exc_info:
        await lookup.lookup(10)
    assert exc_info.value.code is code


@pytest.mark.asyncio
async def test_corroborate_uses_client_id_when_given() -> None:
    lookup = FakeApplicationLookup(
        apps={55: ApplicationInfo(application_id="55", bot_id="10", bot_public=True, guild_count=7)}
    )
    assert await corroborate_application(lookup, 10, "55") == 7
    assert lookup.calls == [55]


@pytest.mark.asyncio
async def test_corroborate_defaults_to_bot_id() -> None:
    lookup = FakeApplicationLookup(guild_count=12)
    assert await corroborate_application(lookup, 10, "") == 12
    assert lookup.calls == [10]


@pytest.mark.asyncio
async def test_corroborate_unparsable_client_id() -> None:
    with pytest.raises(CheckBotError) as exc_info:
        await corroborate_application(FakeApplicationLookup(), 10, "abc")
    assert exc_info.value.code is CheckBotCode.BOT_NOT_FOUND
