"""Data models for auction API records."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp from the API into an aware datetime."""
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _number(value: Any) -> Optional[int | float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def media_url(value: Any, fallback: str = "") -> str:
    """Get a URL from a media field that may be a plain string or ``{url, alt}``."""
    if not value:
        return fallback
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and value.get("url"):
        return str(value["url"])
    return fallback


@dataclass
class Media:
    """An image attached to a listing or profile."""

    url: str
    alt: str = ""

    @classmethod
    def from_api(cls, value: Any) -> Optional[Media]:
        url = media_url(value)
        if not url:
            return None
        alt = value.get("alt") if isinstance(value, dict) else ""
        return cls(url=url, alt=str(alt or ""))

    def as_dict(self) -> dict[str, str]:
        return {"url": self.url, "alt": self.alt}


@dataclass
class Bid:
    """A single bid on a listing."""

    amount: Optional[int | float]
    bidder_name: str = ""
    created: Optional[datetime] = None
    bid_id: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Bid:
        bidder = data.get("bidder")
        if isinstance(bidder, dict) and bidder.get("name"):
            name = str(bidder["name"])
        elif data.get("bidderName"):
            name = str(data["bidderName"])
        elif isinstance(bidder, str):
            name = bidder
        else:
            name = ""
        return cls(
            amount=_number(data.get("amount")),
            bidder_name=name,
            created=parse_timestamp(data.get("created")),
            bid_id=str(data.get("id") or ""),
        )


def _highest(bids: list[Bid]) -> int | float:
    return max((b.amount for b in bids if b.amount is not None and b.amount > 0), default=0)


@dataclass
class Listing:
    """An auction listing as returned by ``/auction/listings``."""

    listing_id: str
    title: str = ""
    description: str = ""
    tags: list[str] = field(default_factory=list)
    media: list[Media] = field(default_factory=list)
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    seller_name: str = ""
    bids: list[Bid] = field(default_factory=list)
    count_bids: Optional[int] = None  # from "_count", when the API includes it

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Listing:
        seller = data.get("seller")
        count = data.get("_count")
        count_bids = _number(count.get("bids")) if isinstance(count, dict) else None
        raw_media = data.get("media") if isinstance(data.get("media"), list) else []
        raw_bids = data.get("bids") if isinstance(data.get("bids"), list) else []
        raw_tags = data.get("tags") if isinstance(data.get("tags"), list) else []
        return cls(
            listing_id=str(data.get("id") or ""),
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            tags=[str(t) for t in raw_tags if t],
            media=[m for m in (Media.from_api(v) for v in raw_media) if m is not None],
            created=parse_timestamp(data.get("created")),
            updated=parse_timestamp(data.get("updated")),
            ends_at=parse_timestamp(data.get("endsAt")),
            seller_name=str(seller.get("name") or "") if isinstance(seller, dict) else "",
            bids=[Bid.from_api(b) for b in raw_bids if isinstance(b, dict)],
            count_bids=int(count_bids) if count_bids is not None else None,
        )

    @property
    def bids_count(self) -> int:
        """Bid total, preferring the API's ``_count`` over the embedded list."""
        if self.count_bids is not None:
            return self.count_bids
        return len(self.bids)

    @property
    def highest_bid(self) -> int | float:
        return _highest(self.bids)

    def highest_bid_by(self, name: str) -> int | float:
        if not name:
            return 0
        return _highest([b for b in self.bids if b.bidder_name == name])

    def has_bid_from(self, name: str) -> bool:
        return bool(name) and any(b.bidder_name == name for b in self.bids)

    @property
    def main_media(self) -> Optional[Media]:
        return self.media[0] if self.media else None

    def sorted_bids(self) -> list[Bid]:
        """Bids newest first; undated bids go last."""
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        return sorted(self.bids, key=lambda b: b.created or epoch, reverse=True)

    def is_ended(self, now: Optional[datetime] = None) -> bool:
        if self.ends_at is None:
            return False
        return self.ends_at <= (now or datetime.now(timezone.utc))


@dataclass
class Profile:
    """An auction profile from ``/auction/profiles/<name>``."""

    name: str
    email: str = ""
    credits: int = 0
    avatar: Optional[Media] = None
    banner: Optional[Media] = None
    bio: str = ""
    listings: list[Listing] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> Profile:
        credits = _number(data.get("credits"))
        raw_listings = data.get("listings") if isinstance(data.get("listings"), list) else []
        return cls(
            name=str(data.get("name") or ""),
            email=str(data.get("email") or ""),
            credits=int(credits) if credits is not None else 0,
            avatar=Media.from_api(data.get("avatar")),
            banner=Media.from_api(data.get("banner")),
            bio=str(data.get("bio") or ""),
            listings=[Listing.from_api(item) for item in raw_listings if isinstance(item, dict)],
        )

    @property
    def avatar_url(self) -> str:
        return self.avatar.url if self.avatar else ""

    @property
    def banner_url(self) -> str:
        return self.banner.url if self.banner else ""
