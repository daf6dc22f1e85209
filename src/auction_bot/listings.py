"""Feed, listing detail, listing CRUD and bidding."""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from typing import Any, Optional
from urllib.parse import quote

from .config import settings
from .errors import ApiError, ValidationError
from .gateway import ApiGateway
from .models import Listing, Media
from .session import StoredUser

logger = logging.getLogger(__name__)

LISTINGS_PATH = "/auction/listings"


def listing_path(listing_id: str) -> str:
    return f"{LISTINGS_PATH}/{quote(str(listing_id), safe='')}"


def listings_from_result(result: Any) -> list[Listing]:
    """Accept either a bare list or ``{"data": [...]}`` from the listings endpoint."""
    if isinstance(result, list):
        raw = result
    elif isinstance(result, dict) and isinstance(result.get("data"), list):
        raw = result["data"]
    else:
        raw = []
    return [Listing.from_api(item) for item in raw if isinstance(item, dict)]


async def fetch_listings(gateway: ApiGateway, limit: Optional[int] = None) -> list[Listing]:
    """Newest listings with sellers and bids included."""
    params = {
        "_seller": "true",
        "_bids": "true",
        "sort": "created",
        "sortOrder": "desc",
        "limit": limit or settings.feed_limit,
    }
    result = await gateway.request(LISTINGS_PATH, params=params)
    listings = listings_from_result(result)
    logger.debug("Loaded %d listings", len(listings))
    return listings


def filter_listings(listings: list[Listing], term: Optional[str]) -> list[Listing]:
    """Simple text search over title, description and seller name."""
    query = (term or "").strip().lower()
    if not query:
        return listings
    return [
        listing
        for listing in listings
        if query in listing.title.lower()
        or query in listing.description.lower()
        or query in listing.seller_name.lower()
    ]


def feed_status(count: int, term: Optional[str] = None) -> str:
    query = (term or "").strip()
    if query:
        return f"{count} result{'' if count == 1 else 's'} for “{query}”"
    return f"Showing {count} active listings"


async def fetch_listing(gateway: ApiGateway, listing_id: str) -> Listing:
    """Load one listing. Works without logging in."""
    listing_id = (listing_id or "").strip()
    if not listing_id:
        raise ValidationError("No listing ID provided.")
    data = await gateway.public_request(
        listing_path(listing_id),
        params={"_seller": "true", "_bids": "true"},
        failure="Failed to load listing",
    )
    if not isinstance(data, dict) or not data.get("id"):
        raise ApiError("Listing not found.")
    return Listing.from_api(data)


def parse_tags(value: Optional[str]) -> list[str]:
    """Parse comma-separated tags into a list."""
    if not value:
        return []
    return [tag.strip() for tag in value.split(",") if tag.strip()]


def build_media(url: Optional[str], alt: Optional[str] = None) -> list[dict[str, str]]:
    if not url or not url.strip():
        return []
    return [Media(url.strip(), (alt or "").strip()).as_dict()]


def build_ends_at(
    end_date: Optional[str], end_time: Optional[str], tz: Optional[tzinfo] = None
) -> Optional[datetime]:
    """Combine ``YYYY-MM-DD`` and ``HH:MM`` typed by the user into an aware datetime."""
    if not end_date or not end_time:
        return None
    try:
        naive = datetime.strptime(f"{end_date.strip()} {end_time.strip()}", "%Y-%m-%d %H:%M")
    except ValueError:
        return None
    return naive.replace(tzinfo=tz or settings.tzinfo)


def to_api_timestamp(moment: datetime) -> str:
    """Format as the API expects, e.g. ``2026-11-01T18:00:00.000Z``."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


async def create_listing(
    gateway: ApiGateway,
    title: str,
    end_date: str,
    end_time: str,
    description: Optional[str] = None,
    tags: Optional[str] = None,
    media_url: Optional[str] = None,
    media_alt: Optional[str] = None,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> Listing:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required.")

    ends_at = build_ends_at(end_date, end_time, tz)
    if ends_at is None:
        raise ValidationError("Please provide a valid end date and time.")
    if ends_at <= (now or datetime.now(timezone.utc)):
        raise ValidationError("End time must be in the future.")

    payload = {
        "title": title,
        "description": (description or "").strip(),
        "tags": parse_tags(tags),
        "media": build_media(media_url, media_alt),
        "endsAt": to_api_timestamp(ends_at),
    }
    created = await gateway.request(LISTINGS_PATH, method="POST", json=payload)
    listing = Listing.from_api(created) if isinstance(created, dict) else Listing(listing_id="")
    logger.info("Created listing %s (%s)", listing.listing_id or "?", title)
    return listing


async def update_listing(
    gateway: ApiGateway,
    listing_id: str,
    title: str,
    description: Optional[str] = None,
    media_url: Optional[str] = None,
    media_alt: Optional[str] = None,
) -> Listing:
    """Edit title, description and image. The end time is fixed by the API."""
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required.")

    payload: dict[str, Any] = {"title": title, "description": (description or "").strip()}
    media = build_media(media_url, media_alt)
    if media:
        payload["media"] = media

    updated = await gateway.request(listing_path(listing_id), method="PUT", json=payload)
    logger.info("Updated listing %s", listing_id)
    return Listing.from_api(updated) if isinstance(updated, dict) else Listing(listing_id=listing_id)


async def delete_listing(gateway: ApiGateway, listing_id: str) -> None:
    await gateway.request(listing_path(listing_id), method="DELETE")
    logger.info("Deleted listing %s", listing_id)


def is_seller(listing: Listing, user: Optional[StoredUser]) -> bool:
    """Whether ``user`` owns ``listing``, judged from the locally cached name.

    Only decides which controls to offer; the API enforces ownership.
    """
    if user is None or not user.name or not listing.seller_name:
        return False
    return user.name == listing.seller_name


async def place_bid(
    gateway: ApiGateway,
    listing: Listing,
    amount: Any,
    user: Optional[StoredUser] = None,
) -> Any:
    """Bid ``amount`` credits on ``listing``."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount <= 0:
        raise ValidationError("Please enter a valid bid amount.")
    if is_seller(listing, user if user is not None else gateway.user):
        raise ValidationError("You cannot bid on your own listing.")

    highest = listing.highest_bid
    if amount <= highest:
        raise ValidationError(
            f"Your bid must be higher than the current highest bid ({highest} credits)."
        )

    result = await gateway.request(
        f"{listing_path(listing.listing_id)}/bids", method="POST", json={"amount": amount}
    )
    logger.info("Bid %s on listing %s", amount, listing.listing_id)
    return result
