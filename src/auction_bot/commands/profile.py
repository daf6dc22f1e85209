"""Profile commands: /profile view|edit|bids."""

from __future__ import annotations

from typing import Optional

import discord
from discord import app_commands

from auction_bot.embeds import build_bid_activity_embed, build_profile_embed
from auction_bot.errors import ApiError
from auction_bot.gateway import NOT_AUTHENTICATED
from auction_bot.profiles import fetch_bid_activity, fetch_profile, update_profile

from . import user_action


def setup_profile_commands(bot) -> None:
    """Set up /profile commands on the bot."""

    profile_group = app_commands.Group(name="profile", description="Your auction profile")

    @profile_group.command(name="view", description="Show your profile, credits and listings")
    async def profile_view(interaction: discord.Interaction) -> None:
        async with user_action(bot, interaction, "Could not load profile") as gateway:
            if gateway is None:
                return
            profile = await fetch_profile(gateway)
            await interaction.followup.send(embed=build_profile_embed(profile), ephemeral=True)

    @profile_group.command(name="edit", description="Update your bio, avatar or banner")
    @app_commands.describe(
        bio="Optional: new bio",
        avatar_url="Optional: avatar image URL (http/https)",
        avatar_alt="Optional: avatar alt text",
        banner_url="Optional: banner image URL (http/https)",
        banner_alt="Optional: banner alt text",
    )
    async def profile_edit(
        interaction: discord.Interaction,
        bio: Optional[str] = None,
        avatar_url: Optional[str] = None,
        avatar_alt: Optional[str] = None,
        banner_url: Optional[str] = None,
        banner_alt: Optional[str] = None,
    ) -> None:
        async with user_action(bot, interaction, "Could not update profile") as gateway:
            if gateway is None:
                return
            profile = await fetch_profile(gateway)
            await update_profile(
                gateway, profile, bio, avatar_url, avatar_alt, banner_url, banner_alt
            )
            refreshed = await fetch_profile(gateway)
            await interaction.followup.send(
                content="Profile updated successfully.",
                embed=build_profile_embed(refreshed),
                ephemeral=True,
            )

    @profile_group.command(name="bids", description="Listings you have bid on")
    async def profile_bids(interaction: discord.Interaction) -> None:
        async with user_action(bot, interaction, "Could not load your bid activity") as gateway:
            if gateway is None:
                return
            if not gateway.is_logged_in:
                raise ApiError(NOT_AUTHENTICATED)
            entries = await fetch_bid_activity(gateway)
            await interaction.followup.send(embed=build_bid_activity_embed(entries), ephemeral=True)

    bot.tree.add_command(profile_group)
