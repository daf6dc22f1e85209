"""Main Discord bot for the auction marketplace."""

from __future__ import annotations

import asyncio
import logging

import discord
import httpx
from discord import app_commands

from .config import settings
from .gateway import USER_AGENT, ApiGateway
from .guard import InFlightGuard
from .session import SessionStore

logger = logging.getLogger(__name__)


class AuctionBot(discord.Client):
    """Discord client exposing the auction API as slash commands."""

    def __init__(self, sessions: SessionStore | None = None) -> None:
        intents = discord.Intents.default()
        super().__init__(intents=intents)

        self.tree = app_commands.CommandTree(self)
        self.sessions = sessions or SessionStore()
        self.guard = InFlightGuard()
        self.http_client = httpx.AsyncClient(
            timeout=settings.request_timeout,
            headers={"User-Agent": USER_AGENT},
        )

    def gateway_for(self, user_id: int) -> ApiGateway:
        """Gateway bound to ``user_id``'s stored session; changes are saved back."""
        return ApiGateway(
            self.sessions.get(user_id),
            client=self.http_client,
            on_change=lambda session: self.sessions.save(user_id, session),
        )

    async def setup_hook(self) -> None:
        from .commands import setup_all_commands

        setup_all_commands(self)

        if settings.guild_ids:
            for guild_id in settings.guild_ids:
                guild = discord.Object(id=guild_id)
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
                logger.info("Synced commands to guild %s", guild_id)
        else:
            await self.tree.sync()
            logger.info("Synced commands globally")

    async def on_ready(self) -> None:
        logger.info("Logged in as %s (ID: %s)", self.user, self.user.id if self.user else "?")
        logger.info("Connected to %d guilds, %d stored sessions", len(self.guilds), len(self.sessions))

    async def close(self) -> None:
        """Clean up on shutdown."""
        await self.http_client.aclose()
        await super().close()


async def main() -> None:
    if not settings.discord_token:
        raise RuntimeError("DISCORD_TOKEN is required to start the bot")
    bot = AuctionBot()
    async with bot:
        await bot.start(settings.discord_token)


def run_bot() -> None:
    """Run the bot."""
    # No-op when run.py has already configured logging
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    asyncio.run(main())


if __name__ == "__main__":
    run_bot()
