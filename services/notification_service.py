"""
Staff channel relay.

Messages are built as ``discord.Embed`` objects and posted through the
Discord REST API with the bot token; no gateway connection is needed.
Callers treat every post as best-effort: a failed post raises
``NotificationError`` and never undoes the write that triggered it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Protocol

import discord
import httpx

from config.config_loader import ConfigLoader
from services.models import AppealType, Bot, ImportSource, Server
from utils.errors import NotificationError
from utils.logging import get_logger

logger = get_logger(__name__)

STAFF_COLOR = 0x00FF00

# Discord rejects embed field values longer than this
EMBED_FIELD_LIMIT = 1024


def user_mention(user_id: int | str) -> str:
    return f"<@{user_id}>"


def role_mention(role_id: int | str) -> str:
    return f"<@&{role_id}>"


@dataclass
class StaffMessage:
    """One message for a staff channel: optional ping plus a single embed."""

    channel: str
    embed: discord.Embed
    content: str | None = None
    mention_roles: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "embeds": [self.embed.to_dict()],
            "allowed_mentions": {"parse": ["users"], "roles": self.mention_roles},
        }
        if self.content:
            payload["content"] = self.content
        return payload


class Notifier(Protocol):
    async def send(self, message: StaffMessage) -> None:
        """Post ``message`` or raise NotificationError."""


def _site_url() -> str:
    return str(ConfigLoader.get_nested("site.url", "https://fateslist.xyz")).rstrip("/")


def _channel(name: str) -> str:
    return str(ConfigLoader.get_nested(f"discord.channels.{name}", 0))


def _staff_role() -> str:
    return str(ConfigLoader.get_nested("discord.roles.staff_ping_add_role", 0))


def _bot_embed(title: str, bot_id: int | str, description: str) -> discord.Embed:
    return discord.Embed(
        title=title,
        description=description,
        color=STAFF_COLOR,
        url=f"{_site_url()}/bot/{bot_id}",
    )


def import_source_label(source: ImportSource, custom_source: str | None = None) -> str:
    if source is ImportSource.CUSTOM:
        return f"{source.source_name}({custom_source or 'Unknown'})"
    return source.source_name


def new_bot_message(
    bot: Bot,
    user_id: int,
    source: ImportSource | None = None,
    custom_source: str | None = None,
) -> StaffMessage:
    """The queue announcement for a freshly added or imported bot."""
    role = _staff_role()
    text = (
        f"{user_mention(user_id)} has added {user_mention(bot.user.id)} "
        f"({bot.user.username}) to the queue"
    )
    if source is not None:
        text += f" through {import_source_label(source, custom_source)}"
    embed = _bot_embed("New Bot!", bot.user.id, text + "!")
    embed.add_field(name="Guild Count (approx)", value=str(bot.guild_count), inline=True)
    return StaffMessage(
        channel=_channel("bot_logs"),
        embed=embed,
        content=role_mention(role),
        mention_roles=[role],
    )


def edit_bot_message(bot: Bot, user_id: int) -> StaffMessage:
    embed = _bot_embed(
        "Bot Edit!",
        bot.user.id,
        f"{user_mention(user_id)} has edited {user_mention(bot.user.id)} ({bot.user.username})!",
    )
    return StaffMessage(channel=_channel("bot_logs"), embed=embed)


def transfer_message(bot_id: int, user_id: int, new_owner_id: int) -> StaffMessage:
    embed = _bot_embed(
        "Bot Ownership Transfer!",
        bot_id,
        f"{user_mention(user_id)} has transferred ownership of "
        f"{user_mention(bot_id)} to {user_mention(new_owner_id)}!",
    )
    return StaffMessage(channel=_channel("bot_logs"), embed=embed)


def delete_bot_message(bot: Bot, user_id: int) -> StaffMessage:
    embed = _bot_embed(
        "Bot Deleted :(",
        bot.user.id,
        f"{user_mention(user_id)} has deleted {user_mention(bot.user.id)} ({bot.user.username})",
    )
    return StaffMessage(channel=_channel("bot_logs"), embed=embed)


_APPEAL_LAYOUT = {
    AppealType.CERTIFICATION: ("Reason/What's Unique?", "Certification Request", "certification"),
    AppealType.APPEAL: ("Appeal", "Resubmission", "an appeal"),
    AppealType.REPORT: ("Report", "Report", "a staff member to look into a report on"),
}


def appeal_message(
    request_type: AppealType,
    appeal: str,
    user_id: int,
    target: Bot | Server,
) -> StaffMessage:
    field_name, title, request_text = _APPEAL_LAYOUT[request_type]
    if isinstance(target, Bot):
        url = f"{_site_url()}/bot/{target.user.id}"
        subject = f"{user_mention(target.user.id)} ({target.user.username})"
    else:
        url = f"{_site_url()}/server/{target.user.id}"
        subject = f"server {target.user.id} ({target.user.username})"

    embed = discord.Embed(
        title=title,
        url=url,
        color=STAFF_COLOR,
        description=(
            f"{user_mention(user_id)} has requested {request_text} for {subject}"
            "\n\n**Please check this bot again!**"
        ),
    )
    for index, start in enumerate(range(0, len(appeal), EMBED_FIELD_LIMIT)):
        name = field_name if index == 0 else f"{field_name} (cont.)"
        embed.add_field(name=name, value=appeal[start : start + EMBED_FIELD_LIMIT], inline=False)
    role = _staff_role()
    return StaffMessage(
        channel=_channel("appeals"),
        embed=embed,
        content=role_mention(role),
        mention_roles=[role],
    )


class DiscordNotifier:
    """
    Posts staff messages through the Discord REST API.

    The HTTP client is created lazily and must be closed on shutdown.
    """

    def __init__(self, token: str | None = None, api_base: str | None = None) -> None:
        self.token = token if token is not None else os.getenv("DISCORD_BOT_TOKEN", "")
        self.api_base = api_base or ConfigLoader.get_nested(
            "discord.api_base", "https://discord.com/api/v10"
        )
        self._client: httpx.AsyncClient | None = None

        if not self.token:
            logger.warning("DISCORD_BOT_TOKEN not set; staff messages will fail")

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_base,
                headers={"Authorization": f"Bot {self.token}"},
                timeout=10.0,
            )
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send(self, message: StaffMessage) -> None:
        if not message.channel or message.channel == "0":
            raise NotificationError("Staff channel is not configured")

        client = await self._get_client()
        try:
            response = await client.post(
                f"/channels/{message.channel}/messages", json=message.to_payload()
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(
                "Failed to post staff message",
                extra={"target_id": message.channel, "error": str(e)},
            )
            raise NotificationError(str(e)) from e

