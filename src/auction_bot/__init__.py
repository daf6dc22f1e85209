"""Discord client for the student auction marketplace."""

from .errors import ApiError, AuctionError, ValidationError
from .gateway import ApiGateway
from .models import Bid, Listing, Media, Profile
from .session import Session, SessionStore, StoredUser

__all__ = [
    "ApiError",
    "ApiGateway",
    "AuctionError",
    "Bid",
    "Listing",
    "Media",
    "Profile",
    "Session",
    "SessionStore",
    "StoredUser",
    "ValidationError",
]
