# src/bot/gateway.py
from typing import Optional, Sequence, Union

import discord
from loguru import logger

from src.errors import PublishTargetUnresolvable, SourceUnavailable

Postable = Union[discord.TextChannel, discord.Thread]


class DiscordGateway:
    """Adapts a discord.py client to the history and publish capabilities."""

    def __init__(self, client: discord.Client):
        self.client = client

    async def _channel(self, channel_id: int) -> Postable:
        channel = self.client.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.client.fetch_channel(channel_id)
            except discord.NotFound as e:
                raise SourceUnavailable(channel_id, "not found") from e
            except discord.Forbidden as e:
                raise SourceUnavailable(channel_id, "missing access") from e
            except discord.HTTPException as e:
                raise SourceUnavailable(channel_id, f"HTTP {e.status}") from e
        if not isinstance(channel, (discord.TextChannel, discord.Thread)):
            raise SourceUnavailable(channel_id, f"unsupported channel type {type(channel).__name__}")
        return channel

    # --- HistoryReader ---

    async def fetch_page(
        self, channel_id: int, limit: int, before_id: Optional[int] = None
    ) -> Sequence[discord.Message]:
        channel = await self._channel(channel_id)
        before = discord.Object(id=before_id) if before_id else None
        logger.debug(f"Reading {limit} message(s) from channel {channel_id} before {before_id}")
        try:
            return [m async for m in channel.history(limit=limit, before=before)]
        except discord.Forbidden as e:
            raise SourceUnavailable(channel_id, "cannot read message history") from e

    # --- PublishGateway ---

    async def get_destination(self, channel_id: int) -> Postable:
        return await self._channel(channel_id)

    async def fetch_message(self, destination: Postable, message_id: int) -> discord.Message:
        try:
            message = await destination.fetch_message(message_id)
        except (discord.NotFound, discord.Forbidden, discord.HTTPException) as e:
            raise PublishTargetUnresolvable(
                f"Message {message_id} not reachable in channel {destination.id}"
            ) from e
        if self.client.user is None or message.author.id != self.client.user.id:
            raise PublishTargetUnresolvable(
                f"Message {message_id} in channel {destination.id} was not posted by this bot"
            )
        return message

    async def create_message(self, destination: Postable, text: str) -> discord.Message:
        try:
            return await destination.send(text)
        except (discord.Forbidden, discord.HTTPException) as e:
            raise SourceUnavailable(destination.id, "cannot post messages") from e

    async def edit_message(self, message: discord.Message, text: str) -> None:
        try:
            await message.edit(content=text)
        except (discord.Forbidden, discord.HTTPException) as e:
            raise PublishTargetUnresolvable(f"Failed to edit message {message.id}") from e
