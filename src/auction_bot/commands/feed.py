"""Feed command: /feed [search]."""

from __future__ import annotations

from typing import Optional

import discord
from discord import app_commands

from auction_bot.embeds import build_feed_embed
from auction_bot.listings import feed_status, fetch_listings, filter_listings

from . import user_action


def setup_feed_commands(bot) -> None:
    """Set up /feed command on the bot."""

    @bot.tree.command(name="feed", description="Browse the newest auction listings")
    @app_commands.describe(search="Optional: filter by title, description or seller")
    async def feed(interaction: discord.Interaction, search: Optional[str] = None) -> None:
        async with user_action(bot, interaction, "Could not load listings") as gateway:
            if gateway is None:
                return
            listings = await fetch_listings(gateway)
            matches = filter_listings(listings, search)
            embed = build_feed_embed(matches, feed_status(len(matches), search))
            await interaction.followup.send(embed=embed, ephemeral=True)
