"""Account commands: /account login|register|logout|whoami."""

from __future__ import annotations

from typing import Optional

import discord
from discord import app_commands

from auction_bot.auth import login, logout, register
from auction_bot.embeds import build_account_embed, build_success_embed

from . import user_action


def setup_account_commands(bot) -> None:
    """Set up /account commands on the bot."""

    account_group = app_commands.Group(name="account", description="Log in, register and log out")

    @account_group.command(name="login", description="Log in with your student account")
    @app_commands.describe(email="Your student email address", password="Your password")
    async def account_login(interaction: discord.Interaction, email: str, password: str) -> None:
        async with user_action(bot, interaction, "Login failed") as gateway:
            if gateway is None:
                return
            user = await login(gateway, email, password)
            await interaction.followup.send(
                embed=build_success_embed(
                    "Logged in",
                    f"Welcome back, **{user.name or 'friend'}**! "
                    f"You have **{user.credits:,}** credits. Try `/feed` to browse listings.",
                ),
                ephemeral=True,
            )

    @account_group.command(name="register", description="Create a new account")
    @app_commands.describe(
        name="Username",
        email="Your student email address",
        password="At least 8 characters",
        confirm_password="Type the password again",
        avatar="Optional: avatar image URL",
        banner="Optional: banner image URL",
    )
    async def account_register(
        interaction: discord.Interaction,
        name: str,
        email: str,
        password: str,
        confirm_password: str,
        avatar: Optional[str] = None,
        banner: Optional[str] = None,
    ) -> None:
        async with user_action(bot, interaction, "Registration failed") as gateway:
            if gateway is None:
                return
            await register(gateway, name, email, password, confirm_password, avatar, banner)
            await interaction.followup.send(
                embed=build_success_embed(
                    "Account created",
                    "Account created successfully! Log in with `/account login`.",
                ),
                ephemeral=True,
            )

    @account_group.command(name="logout", description="Log out and forget your session")
    async def account_logout(interaction: discord.Interaction) -> None:
        async with user_action(bot, interaction, "Logout failed") as gateway:
            if gateway is None:
                return
            logout(gateway)
            await interaction.followup.send(
                embed=build_success_embed("Logged out", "Your session has been cleared."),
                ephemeral=True,
            )

    @account_group.command(name="whoami", description="Show who you are logged in as and your credits")
    async def account_whoami(interaction: discord.Interaction) -> None:
        gateway = bot.gateway_for(interaction.user.id)
        user = gateway.user if gateway.is_logged_in else None
        await interaction.response.send_message(embed=build_account_embed(user), ephemeral=True)

    bot.tree.add_command(account_group)
