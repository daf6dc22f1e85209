"""Listing commands: /listing view|create|edit|delete and /bid."""

from __future__ import annotations

import logging
from typing import Optional

import discord
from discord import app_commands

from auction_bot.embeds import build_error_embed, build_listing_embed, build_success_embed
from auction_bot.errors import AuctionError, ValidationError
from auction_bot.listings import (
    create_listing,
    delete_listing,
    fetch_listing,
    is_seller,
    place_bid,
    update_listing,
)
from auction_bot.models import Listing

from . import user_action

logger = logging.getLogger(__name__)


class ConfirmDeleteView(discord.ui.View):
    """Delete / Cancel buttons shown before a listing is removed."""

    def __init__(self, bot, listing: Listing, owner_id: int) -> None:
        super().__init__(timeout=60)
        self.bot = bot
        self.listing = listing
        self.owner_id = owner_id
        self.message: Optional[discord.Message] = None

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        return interaction.user.id == self.owner_id

    def _set_disabled(self, disabled: bool) -> None:
        for child in self.children:
            if isinstance(child, discord.ui.Button):
                child.disabled = disabled

    async def on_timeout(self) -> None:
        self._set_disabled(True)
        if self.message is None:
            return
        try:
            await self.message.edit(view=self)
        except discord.HTTPException as exc:
            logger.debug("Could not disable delete buttons for %s: %s", self.listing.listing_id, exc)

    @discord.ui.button(label="Delete", style=discord.ButtonStyle.danger)
    async def confirm_button(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        """Delete the listing. On failure the buttons come back so the user can retry."""
        self._set_disabled(True)
        await interaction.response.edit_message(view=self)
        gateway = self.bot.gateway_for(self.owner_id)
        try:
            await delete_listing(gateway, self.listing.listing_id)
        except AuctionError as exc:
            logger.warning("Delete listing %s failed: %s", self.listing.listing_id, exc.message)
            self._set_disabled(False)
            await interaction.edit_original_response(view=self)
            await interaction.followup.send(
                embed=build_error_embed("Could not delete listing", exc.message), ephemeral=True
            )
            return
        self.stop()
        await interaction.followup.send(
            embed=build_success_embed(
                "Listing deleted", f"**{self.listing.title or 'Listing'}** has been deleted."
            ),
            ephemeral=True,
        )

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.secondary)
    async def cancel_button(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        self._set_disabled(True)
        button.label = "Cancelled"
        self.stop()
        await interaction.response.edit_message(view=self)


def setup_listing_commands(bot) -> None:
    """Set up /listing commands and /bid on the bot."""

    listing_group = app_commands.Group(name="listing", description="View and manage listings")

    @listing_group.command(name="view", description="Show a listing with its bid history")
    @app_commands.describe(listing_id="The listing ID")
    async def listing_view(interaction: discord.Interaction, listing_id: str) -> None:
        async with user_action(bot, interaction, "Could not load listing") as gateway:
            if gateway is None:
                return
            listing = await fetch_listing(gateway, listing_id)
            viewer = gateway.user if gateway.is_logged_in else None
            await interaction.followup.send(embed=build_listing_embed(listing, viewer), ephemeral=True)

    @listing_group.command(name="create", description="Put something up for auction")
    @app_commands.describe(
        title="Listing title",
        end_date="Auction end date, YYYY-MM-DD",
        end_time="Auction end time, HH:MM",
        description="Optional: description",
        tags="Optional: comma-separated tags",
        media_url="Optional: image URL",
        media_alt="Optional: image alt text",
    )
    async def listing_create(
        interaction: discord.Interaction,
        title: str,
        end_date: str,
        end_time: str,
        description: Optional[str] = None,
        tags: Optional[str] = None,
        media_url: Optional[str] = None,
        media_alt: Optional[str] = None,
    ) -> None:
        async with user_action(bot, interaction, "Could not create listing") as gateway:
            if gateway is None:
                return
            created = await create_listing(
                gateway,
                title,
                end_date,
                end_time,
                description=description,
                tags=tags,
                media_url=media_url,
                media_alt=media_alt,
            )
            if created.listing_id:
                message = f"Listing created successfully! View it with `/listing view listing_id:{created.listing_id}`."
            else:
                message = "Listing created successfully! Find it in `/feed`."
            await interaction.followup.send(
                embed=build_success_embed("Listing created", message), ephemeral=True
            )

    @listing_group.command(name="edit", description="Change the title, description or image of your listing")
    @app_commands.describe(
        listing_id="The listing ID",
        title="New title",
        description="Optional: new description",
        media_url="Optional: new image URL",
        media_alt="Optional: new image alt text",
    )
    async def listing_edit(
        interaction: discord.Interaction,
        listing_id: str,
        title: str,
        description: Optional[str] = None,
        media_url: Optional[str] = None,
        media_alt: Optional[str] = None,
    ) -> None:
        async with user_action(bot, interaction, "Could not update listing") as gateway:
            if gateway is None:
                return
            listing = await fetch_listing(gateway, listing_id)
            if not is_seller(listing, gateway.user):
                raise ValidationError("You can only edit your own listings.")
            updated = await update_listing(
                gateway, listing.listing_id, title, description, media_url, media_alt
            )
            viewer = gateway.user if gateway.is_logged_in else None
            await interaction.followup.send(
                content="Listing updated successfully.",
                embed=build_listing_embed(updated, viewer),
                ephemeral=True,
            )

    @listing_group.command(name="delete", description="Delete one of your listings")
    @app_commands.describe(listing_id="The listing ID")
    async def listing_delete(interaction: discord.Interaction, listing_id: str) -> None:
        async with user_action(bot, interaction, "Could not delete listing") as gateway:
            if gateway is None:
                return
            listing = await fetch_listing(gateway, listing_id)
            if not is_seller(listing, gateway.user):
                raise ValidationError("You can only delete your own listings.")
            view = ConfirmDeleteView(bot, listing, interaction.user.id)
            view.message = await interaction.followup.send(
                content=(
                    f"Are you sure you want to delete **{listing.title or 'this listing'}**? "
                    "This cannot be undone."
                ),
                view=view,
                ephemeral=True,
                wait=True,
            )

    bot.tree.add_command(listing_group)

    @bot.tree.command(name="bid", description="Place a bid on a listing")
    @app_commands.describe(listing_id="The listing ID", amount="Your bid in credits")
    async def bid(interaction: discord.Interaction, listing_id: str, amount: int) -> None:
        async with user_action(bot, interaction, "Could not place bid") as gateway:
            if gateway is None:
                return
            listing = await fetch_listing(gateway, listing_id)
            await place_bid(gateway, listing, amount)
            refreshed = await fetch_listing(gateway, listing.listing_id)
            viewer = gateway.user if gateway.is_logged_in else None
            await interaction.followup.send(
                content=f"Bid of **{amount:,} credits** placed successfully!",
                embed=build_listing_embed(refreshed, viewer),
                ephemeral=True,
            )
