"""Slash command groups and the shared per-interaction plumbing."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Optional

import discord

from auction_bot.embeds import build_error_embed
from auction_bot.errors import AuctionError
from auction_bot.gateway import ApiGateway

if TYPE_CHECKING:
    from auction_bot.bot import AuctionBot

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "Please wait for your previous request to finish."


@asynccontextmanager
async def user_action(
    bot: AuctionBot,
    interaction: discord.Interaction,
    failure_title: str,
    *,
    ephemeral: bool = True,
) -> AsyncIterator[Optional[ApiGateway]]:
    """Run one command for the invoking user.

    Yields that user's gateway, or None when they already have a command in
    flight. Errors raised in the body are reported back as an error embed;
    the session is left as it was.
    """
    user_id = interaction.user.id
    with bot.guard.hold(user_id) as acquired:
        if not acquired:
            await interaction.response.send_message(BUSY_MESSAGE, ephemeral=True)
            yield None
            return

        await interaction.response.defer(ephemeral=ephemeral, thinking=True)
        try:
            yield bot.gateway_for(user_id)
        except AuctionError as exc:
            logger.warning("%s for user %s: %s", failure_title, user_id, exc.message)
            await interaction.followup.send(
                embed=build_error_embed(failure_title, exc.message), ephemeral=True
            )
        except Exception:
            logger.exception("Unexpected error in %s for user %s", failure_title, user_id)
            await interaction.followup.send(
                embed=build_error_embed(failure_title, "Something went wrong. Please try again."),
                ephemeral=True,
            )


def setup_all_commands(bot: AuctionBot) -> None:
    from .account import setup_account_commands
    from .feed import setup_feed_commands
    from .listing import setup_listing_commands
    from .profile import setup_profile_commands

    setup_account_commands(bot)
    setup_feed_commands(bot)
    setup_listing_commands(bot)
    setup_profile_commands(bot)
