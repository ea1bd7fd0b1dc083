# src/bot/client.py
from typing import Dict, Mapping

import discord
from discord import app_commands
from discord.ext import tasks
from loguru import logger

from src.bot.gateway import DiscordGateway
from src.config.settings import AppSettings
from src.errors import RefreshInProgress
from src.models.enums import DestinationKey, RefreshTrigger
from src.models.summary import RefreshReport
from src.pipeline.refresh import RefreshPipeline, build_pipeline
from src.resolvers.raid_helper import EventResolver


def describe_report(report: RefreshReport) -> str:
    """Short operator-facing summary of a refresh."""
    parts = [f"Refreshed {len(report.summaries)} team(s)."]
    if report.skipped_teams:
        skipped = ", ".join(f"{s.team_key} ({s.reason})" for s in report.skipped_teams)
        parts.append(f"Skipped: {skipped}.")
    for result in report.publish_results:
        if result.created:
            parts.append(
                f"New {result.destination.value} message {result.message_id}: "
                f"update {result.destination.value.upper()}_MESSAGE_ID."
            )
    if report.failed_destinations:
        failed = ", ".join(d.value for d in report.failed_destinations)
        parts.append(f"Could not publish: {failed}.")
    return " ".join(parts)


def pending_config_updates(created: Mapping[DestinationKey, int]) -> str:
    """Env assignments for messages created since startup, e.g. for /refresh replies."""
    if not created:
        return ""
    assignments = ", ".join(
        f"{key.value.upper()}_MESSAGE_ID={message_id}" for key, message_id in sorted(created.items())
    )
    return f"Not yet in config: {assignments}."


class RaidOversightBot(discord.Client):
    """Discord client that refreshes the oversight posts on a timer and on demand."""

    def __init__(self, settings: AppSettings, schedule: bool = True):
        intents = discord.Intents.default()
        # Raid-Helper links live in other bots' message bodies and embeds
        intents.message_content = True
        super().__init__(intents=intents)

        self.settings = settings
        self.schedule = schedule
        self.tree = app_commands.CommandTree(self)
        self.gateway = DiscordGateway(self)
        self.resolver = EventResolver(
            api_base=settings.raid_helper_api_base,
            timeout=settings.http_timeout_seconds,
            retry_attempts=settings.fetch_retry_attempts,
        )
        self.pipeline: RefreshPipeline = build_pipeline(
            settings, history=self.gateway, publish_gateway=self.gateway, resolver=self.resolver
        )
        # Settings are frozen; messages created since startup are tracked here
        self.created_message_ids: Dict[DestinationKey, int] = {}
        if self.pipeline.publisher is not None:
            self.pipeline.publisher.on_message_created(self._remember_created_message)

    def _remember_created_message(
        self, destination: DestinationKey, channel_id: int, message_id: int
    ) -> None:
        self.created_message_ids[destination] = message_id
        logger.info(f"Remembering new {destination.value} message {message_id} in channel {channel_id}")

    async def setup_hook(self) -> None:
        if not self.schedule:
            return
        guild = discord.Object(id=self.settings.guild_id) if self.settings.guild_id else None
        register_commands(self)
        if guild is not None:
            self.tree.copy_global_to(guild=guild)
        synced = await self.tree.sync(guild=guild)
        logger.info(f"Synced {len(synced)} application command(s)")

        self.refresh_loop.change_interval(minutes=self.settings.refresh_interval_minutes)
        self.refresh_loop.start()

    async def on_ready(self) -> None:
        logger.success(f"Logged in as {self.user} ({getattr(self.user, 'id', '?')})")

    async def refresh(self, trigger: RefreshTrigger) -> RefreshReport:
        return await self.pipeline.run(trigger=trigger)

    @tasks.loop(minutes=15)
    async def refresh_loop(self) -> None:
        try:
            await self.refresh(RefreshTrigger.SCHEDULED)
        except RefreshInProgress:
            # A manual refresh is already producing the same state
            logger.info("Scheduled refresh skipped: a refresh is already running")
        except Exception:
            logger.exception("Scheduled refresh failed")

    @refresh_loop.before_loop
    async def before_refresh_loop(self) -> None:
        await self.wait_until_ready()

    async def close(self) -> None:
        if self.refresh_loop.is_running():
            self.refresh_loop.cancel()
        await self.resolver.close()
        await super().close()


def register_commands(bot: RaidOversightBot) -> None:
    @bot.tree.command(name="refresh", description="Refresh the raid oversight posts now")
    async def refresh(interaction: discord.Interaction) -> None:
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            report = await bot.refresh(RefreshTrigger.MANUAL)
        except RefreshInProgress:
            await interaction.followup.send("Already refreshing, try again in a moment.", ephemeral=True)
            return
        except Exception:
            logger.exception("Manual refresh failed")
            await interaction.followup.send("Refresh failed; check the bot logs.", ephemeral=True)
            return
        reply = " ".join(
            part for part in (describe_report(report), pending_config_updates(bot.created_message_ids)) if part
        )
        await interaction.followup.send(reply, ephemeral=True)
