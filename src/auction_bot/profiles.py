"""Profile view, profile editing and bid activity."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

from .config import settings
from .errors import ApiError, ValidationError
from .gateway import NOT_AUTHENTICATED, ApiGateway
from .listings import LISTINGS_PATH, listings_from_result
from .models import Listing, Media, Profile, media_url

logger = logging.getLogger(__name__)

PROFILES_PATH = "/auction/profiles"


@dataclass
class BidActivity:
    """A listing the user has bid on."""

    listing: Listing
    highest: int | float
    my_highest: int | float


def profile_path(name: str) -> str:
    return f"{PROFILES_PATH}/{quote(name, safe='')}"


async def fetch_profile(gateway: ApiGateway, name: Optional[str] = None) -> Profile:
    """Load a profile (the logged-in user's by default) with listings and bids.

    Loading your own profile also refreshes the cached user record, which is
    where credits shown elsewhere come from.
    """
    user = gateway.user
    name = name or (user.name if user else None)
    if not name:
        raise ApiError(NOT_AUTHENTICATED)

    data = await gateway.request(
        profile_path(name), params={"_listings": "true", "_bids": "true"}
    )
    if not isinstance(data, dict) or not data.get("name"):
        raise ApiError("Profile data is missing or invalid.")

    profile = Profile.from_api(data)
    if user and user.name == profile.name:
        gateway.update_user(
            name=profile.name,
            email=profile.email,
            credits=profile.credits,
            avatar=profile.avatar_url or None,
            banner=profile.banner_url or None,
            bio=profile.bio or None,
        )
    return profile


async def fetch_bid_activity(gateway: ApiGateway, name: Optional[str] = None) -> list[BidActivity]:
    """Listings that ``name`` (default: the logged-in user) has bid on."""
    user = gateway.user
    name = name or (user.name if user else None)
    if not name:
        return []

    result = await gateway.request(
        LISTINGS_PATH,
        params={"_seller": "true", "_bids": "true", "limit": settings.feed_limit},
    )
    return [
        BidActivity(
            listing=listing,
            highest=listing.highest_bid,
            my_highest=listing.highest_bid_by(name),
        )
        for listing in listings_from_result(result)
        if listing.has_bid_from(name)
    ]


def _image_field(kind: str, url: Optional[str], alt: Optional[str]) -> Optional[dict[str, str]]:
    url = (url or "").strip()
    if not url:
        return None
    if not url.startswith("http"):
        raise ValidationError(f"{kind} URL must be a full link starting with http or https.")
    return Media(url, (alt or "").strip()).as_dict()


async def update_profile(
    gateway: ApiGateway,
    profile: Profile,
    bio: Optional[str] = None,
    avatar_url: Optional[str] = None,
    avatar_alt: Optional[str] = None,
    banner_url: Optional[str] = None,
    banner_alt: Optional[str] = None,
) -> Profile:
    """Update bio, avatar and banner.

    ``bio`` is always sent; ``None`` keeps the current text. Avatar and
    banner are only sent when a URL is given.
    """
    bio = profile.bio if bio is None else bio.strip()
    payload: dict[str, Any] = {"bio": bio}

    avatar = _image_field("Avatar", avatar_url, avatar_alt)
    if avatar:
        payload["avatar"] = avatar
    banner = _image_field("Banner", banner_url, banner_alt)
    if banner:
        payload["banner"] = banner

    if not avatar and not banner and bio == (profile.bio or ""):
        raise ValidationError("Please change your bio, avatar or banner before saving.")

    updated = await gateway.request(profile_path(profile.name), method="PUT", json=payload)
    data = updated if isinstance(updated, dict) else {}
    user = gateway.user
    if user and user.name == profile.name:
        gateway.update_user(
            bio=data.get("bio", bio) or None,
            avatar=media_url(data.get("avatar"), user.avatar or "") or None,
            banner=media_url(data.get("banner"), user.banner or "") or None,
        )
    logger.info("Updated profile %s", profile.name)
    return Profile.from_api({**data, "name": data.get("name") or profile.name})
