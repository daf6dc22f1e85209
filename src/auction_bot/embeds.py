"""Discord embed builders for listings, profiles and status messages."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import discord

from .config import settings
from .listings import is_seller
from .models import Listing, Profile
from .profiles import BidActivity
from .session import StoredUser

# Color scheme
COLORS = {
    "success": discord.Color.green(),
    "error": discord.Color.red(),
    "info": discord.Color.blue(),
    "listing": discord.Color.gold(),
    "ended": discord.Color.dark_grey(),
}

MAX_BID_HISTORY = 10
# Discord rejects embeds whose text adds up to more than this
EMBED_LIMIT = 6000
FOOTER_RESERVE = 100


def clip(text: str, limit: int) -> str:
    """Shorten ``text`` to fit an embed field."""
    text = text or ""
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def format_dt(moment: Optional[datetime], empty: str = "") -> str:
    """Discord timestamp markup, rendered in each reader's own timezone."""
    if moment is None:
        return empty
    return discord.utils.format_dt(moment, style="f")


def format_credits(amount: int | float) -> str:
    return f"{amount:,} credits"


def _is_http(url: Optional[str]) -> bool:
    return bool(url) and url.startswith(("http://", "https://"))


def build_success_embed(title: str, description: str) -> discord.Embed:
    return discord.Embed(title=title, description=description, color=COLORS["success"])


def build_error_embed(title: str, description: str) -> discord.Embed:
    return discord.Embed(
        title=title,
        description=clip(description or "Something went wrong. Please try again later.", 4000),
        color=COLORS["error"],
    )


def build_feed_embed(
    listings: list[Listing], status: str, page_size: Optional[int] = None
) -> discord.Embed:
    """One embed with a field per listing, capped at ``page_size``.

    Fields stop early if another one would push the embed past Discord's
    total size limit.
    """
    page_size = page_size or settings.feed_page_size
    embed = discord.Embed(title="Auction feed", description=status, color=COLORS["info"])

    if not listings:
        embed.add_field(name="Nothing here", value="No listings match your search.", inline=False)
        return embed

    shown = 0
    for listing in listings[:page_size]:
        meta = f"Seller: **{listing.seller_name or 'Unknown seller'}** • Bids: **{listing.bids_count}**"
        if listing.ends_at:
            meta += f" • Ends: {format_dt(listing.ends_at)}"
        lines = [meta]
        if listing.description:
            lines.append(clip(listing.description, 200))
        lines.append(f"ID: `{listing.listing_id}`")
        name = clip(listing.title or "Untitled listing", 256)
        value = clip("\n".join(lines), 1024)
        if len(embed) + len(name) + len(value) > EMBED_LIMIT - FOOTER_RESERVE:
            break
        embed.add_field(name=name, value=value, inline=False)
        shown += 1

    if shown < len(listings):
        embed.set_footer(text=f"Showing {shown} of {len(listings)}. Narrow it down with /feed search:")
    return embed


def _bid_history(listing: Listing) -> str:
    bids = listing.sorted_bids()
    if not bids:
        return "No bids yet. Be the first!"
    lines = []
    for bid in bids[:MAX_BID_HISTORY]:
        amount = format_credits(bid.amount) if bid.amount is not None else "? credits"
        line = f"**{amount}** by {bid.bidder_name or 'Unknown bidder'}"
        if bid.created:
            line += f" • {format_dt(bid.created)}"
        lines.append(line)
    if len(bids) > MAX_BID_HISTORY:
        lines.append(f"…and {len(bids) - MAX_BID_HISTORY} earlier bids")
    return "\n".join(lines)


def build_listing_embed(listing: Listing, viewer: Optional[StoredUser] = None) -> discord.Embed:
    """Full listing view with bid history and the actions open to ``viewer``."""
    ended = listing.is_ended()
    embed = discord.Embed(
        title=clip(listing.title or "Untitled listing", 256),
        description=clip(listing.description or "No description provided.", 4000),
        color=COLORS["ended"] if ended else COLORS["listing"],
    )
    embed.add_field(name="Seller", value=listing.seller_name or "Unknown seller", inline=True)
    embed.add_field(
        name="Auction ends",
        value=format_dt(listing.ends_at, "No end date set") + (" (ended)" if ended else ""),
        inline=True,
    )
    embed.add_field(name="Highest bid", value=format_credits(listing.highest_bid), inline=True)
    embed.add_field(name="Total bids", value=str(len(listing.bids)), inline=True)

    created = format_dt(listing.created)
    if created:
        dates = f"Created: {created}"
        if listing.updated:
            dates += f" • Updated: {format_dt(listing.updated)}"
        embed.add_field(name="Dates", value=dates, inline=False)
    if listing.tags:
        embed.add_field(name="Tags", value=clip(", ".join(listing.tags), 1024), inline=False)

    embed.add_field(name="Bid history", value=clip(_bid_history(listing), 1024), inline=False)

    if is_seller(listing, viewer):
        hint = "You are the seller. Use `/listing edit` or `/listing delete` to manage it."
    elif viewer is None:
        hint = (
            f"Log in with your @{settings.student_email_domain} account "
            "(`/account login`) to place a bid on this listing."
        )
    else:
        hint = f"Current highest bid: **{format_credits(listing.highest_bid)}**"
        hint += f" • Your credits: **{viewer.credits:,}**"
        hint += f"\nPlace a bid with `/bid listing_id:{listing.listing_id} amount:`"
    embed.add_field(name="Bidding", value=hint, inline=False)

    main = listing.main_media
    if main and _is_http(main.url):
        embed.set_image(url=main.url)
    extra = len(listing.media) - 1
    footer = f"Listing ID: {listing.listing_id}"
    if extra > 0:
        footer += f" | {extra} more image{'s' if extra != 1 else ''}"
    embed.set_footer(text=footer)
    return embed


def build_profile_embed(profile: Profile) -> discord.Embed:
    embed = discord.Embed(
        title=profile.name or "Unknown user",
        description=clip(profile.bio or "No bio added yet.", 4000),
        color=COLORS["info"],
    )
    if profile.email:
        embed.add_field(name="Email", value=profile.email, inline=True)
    embed.add_field(name="Credits", value=format_credits(profile.credits), inline=True)

    if profile.listings:
        lines = [
            f"`{listing.listing_id}` **{clip(listing.title or 'Untitled listing', 80)}**"
            f" • Bids: {listing.bids_count}"
            + (f" • Ends: {format_dt(listing.ends_at)}" if listing.ends_at else "")
            for listing in profile.listings[:MAX_BID_HISTORY]
        ]
        value = "\n".join(lines)
    else:
        value = "No listings created yet."
    embed.add_field(name="Listings", value=clip(value, 1024), inline=False)

    if _is_http(profile.avatar_url):
        embed.set_thumbnail(url=profile.avatar_url)
    if _is_http(profile.banner_url):
        embed.set_image(url=profile.banner_url)
    return embed


def build_bid_activity_embed(entries: list[BidActivity]) -> discord.Embed:
    embed = discord.Embed(title="Your bids", color=COLORS["info"])
    if not entries:
        embed.description = "You haven’t placed any bids yet."
        return embed

    for entry in entries[: settings.feed_page_size]:
        listing = entry.listing
        value = (
            f"Seller: **{listing.seller_name or 'Unknown seller'}**\n"
            f"Auction ends: {format_dt(listing.ends_at, 'N/A')}\n"
            f"Highest bid: **{format_credits(entry.highest)}**"
        )
        if entry.my_highest:
            value += f" • Your highest bid: **{format_credits(entry.my_highest)}**"
        value += f"\nID: `{listing.listing_id}`"
        embed.add_field(
            name=clip(listing.title or "Untitled listing", 256), value=clip(value, 1024), inline=False
        )
    return embed


def build_account_embed(user: Optional[StoredUser]) -> discord.Embed:
    """Account badge: name and credits, or a login prompt."""
    if user is None:
        return discord.Embed(
            title="Not logged in",
            description="Use `/account login` to sign in.",
            color=COLORS["info"],
        )
    embed = discord.Embed(title=user.name, color=COLORS["info"])
    embed.add_field(name="Credits", value=format_credits(user.credits), inline=True)
    if user.email:
        embed.add_field(name="Email", value=user.email, inline=True)
    if _is_http(user.avatar):
        embed.set_thumbnail(url=user.avatar)
    return embed
