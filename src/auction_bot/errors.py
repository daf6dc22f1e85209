from __future__ import annotations


class AuctionError(Exception):
    """Base auction client error."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ApiError(AuctionError):
    """Raised for any failed call through the gateway.

    Covers a missing login, an unreachable API, a non-2xx response and a
    successful response that lacks a field we rely on. ``str(error)`` is
    always the human-readable message; ``body`` keeps the raw response text
    when there was one.
    """

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class ValidationError(AuctionError):
    """Raised when user input is rejected before any request is made."""
