"""Authenticated request gateway for the auction API.

Every call that needs an identity goes through :class:`ApiGateway`. It owns
the user's :class:`~auction_bot.session.Session`, provisions the per-account
API key the first time one is needed, attaches both credentials and turns the
API's ``{data, errors?, message?}`` envelope into either a plain payload or an
:class:`~auction_bot.errors.ApiError`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import replace
from typing import Any

import httpx

from .config import settings
from .errors import ApiError
from .session import Session, StoredUser

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = "Not authenticated. Please log in again."
API_KEY_PATH = "/auth/create-api-key"
USER_AGENT = "auction-bot/0.1"
BODY_LOG_LIMIT = 500


def parse_body(text: str) -> Any:
    """Decode a JSON response body. An empty body means no payload."""
    return json.loads(text) if text else None


def body_excerpt(text: str, limit: int = BODY_LOG_LIMIT) -> str:
    """Raw response text for log lines, shortened to ``limit`` characters."""
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + f"... ({len(text) - limit} more chars)"


def unwrap(payload: Any) -> Any:
    """Return the envelope's ``data`` field, or the whole body if it has none."""
    if isinstance(payload, dict) and payload.get("data") is not None:
        return payload["data"]
    return payload


def error_message(payload: Any, fallback: str) -> str:
    """Pick the most specific message out of an error response.

    ``errors[0].message`` wins over a top-level ``message``; ``fallback`` is
    used when the body carries neither.
    """
    if isinstance(payload, dict):
        errors = payload.get("errors")
        if isinstance(errors, list) and errors:
            first = errors[0]
            if isinstance(first, dict) and first.get("message"):
                return str(first["message"])
        if payload.get("message"):
            return str(payload["message"])
    return fallback


class ApiGateway:
    """Session holder and request helper for one user.

    Args:
        session: The user's login state. Only this gateway mutates it.
        client: Optional shared ``httpx.AsyncClient``. A private one is
            created (and closed by :meth:`aclose`) if omitted.
        base_url: API root. Uses config value if not provided.
        api_key_header: Name of the vendor API-key header.
        timeout: Per-request timeout in seconds for a private client.
        on_change: Called with the session after every change so the owner
            can persist it.
    """

    def __init__(
        self,
        session: Session | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        api_key_header: str | None = None,
        timeout: float | None = None,
        on_change: Callable[[Session], None] | None = None,
    ) -> None:
        self._session = session or Session()
        self._client = client
        self._owns_client = client is None
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.api_key_header = api_key_header or settings.api_key_header
        self.timeout = timeout or settings.request_timeout
        self._on_change = on_change

    # -- session accessors -------------------------------------------------

    @property
    def session(self) -> Session:
        return self._session

    @property
    def token(self) -> str | None:
        return self._session.access_token

    @property
    def api_key(self) -> str | None:
        return self._session.api_key

    @property
    def user(self) -> StoredUser | None:
        return self._session.user

    @property
    def is_logged_in(self) -> bool:
        return self._session.is_logged_in

    def start_session(self, access_token: str, user: StoredUser) -> Session:
        """Replace the current session with a fresh login.

        Any key cached for a previous login is dropped; a new one is
        provisioned on the next authenticated call.
        """
        self._session = Session(access_token=access_token, user=user)
        self._changed()
        return self._session

    def update_user(self, **changes: Any) -> StoredUser | None:
        """Merge ``changes`` into the cached user record."""
        if self._session.user is None:
            return None
        self._session.user = replace(self._session.user, **changes)
        self._changed()
        return self._session.user

    def end_session(self) -> None:
        self._session = Session()
        self._changed()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self._session)

    # -- http --------------------------------------------------------------

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT},
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    def url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | httpx.Headers,
        json_body: Any = None,
        params: Mapping[str, Any] | None = None,
        action: str,
    ) -> tuple[httpx.Response, str, Any]:
        """Perform one HTTP call and decode its body.

        Transport failures and undecodable bodies both surface as a single
        "network error" ApiError naming ``action``.
        """
        client = await self._get_client()
        logger.debug("%s %s", method, url)
        try:
            response = await client.request(
                method, url, headers=headers, json=json_body, params=params
            )
            text = response.text
            payload = parse_body(text)
        except (httpx.HTTPError, httpx.InvalidURL, json.JSONDecodeError) as exc:
            logger.warning("Network error while %s (%s %s): %s", action, method, url, exc)
            raise ApiError(f"Network error while {action}: {str(exc) or type(exc).__name__}") from exc
        return response, text, payload

    async def ensure_api_key(self) -> str:
        """Return the session's API key, provisioning it on first use."""
        if self._session.api_key:
            return self._session.api_key

        token = self._session.access_token
        if not token:
            raise ApiError(NOT_AUTHENTICATED)

        logger.info("Provisioning API key for %s", self._who())
        response, text, payload = await self._send(
            "POST",
            self.url(API_KEY_PATH),
            headers={"Content-Type": "application/json", "Authorization": f"Bearer {token}"},
            json_body={},
            action="creating API key",
        )

        if not response.is_success:
            message = error_message(
                payload, f"Failed to create API key (HTTP {response.status_code})"
            )
            logger.warning(
                "API key provisioning failed (%s): %s | body=%s",
                response.status_code,
                message,
                body_excerpt(text),
            )
            raise ApiError(message, status=response.status_code, body=text)

        data = unwrap(payload)
        key = data.get("key") if isinstance(data, dict) else None
        if not key:
            raise ApiError(
                "API key creation succeeded but no key was returned.",
                status=response.status_code,
                body=text,
            )

        self._session.api_key = str(key)
        self._changed()
        logger.info("API key provisioned for %s", self._who())
        return self._session.api_key

    async def request(
        self,
        url: str,
        *,
        method: str = "GET",
        json: Any = None,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Make an authenticated call and return the unwrapped payload.

        Args:
            url: Absolute URL or a path below ``base_url``.
            method: HTTP method.
            json: Request body, sent as JSON.
            params: Query string parameters.
            headers: Extra headers; these override the defaults.

        Returns:
            The envelope's ``data``, the whole body if there is no ``data``,
            or None for an empty body.

        Raises:
            ApiError: Not logged in, network failure or non-2xx response.
        """
        token = self._session.access_token
        if not token:
            raise ApiError(NOT_AUTHENTICATED)

        api_key = await self.ensure_api_key()

        merged = httpx.Headers(
            {
                "Content-Type": "application/json",
                "Authorization": f"Bearer {token}",
                self.api_key_header: api_key,
            }
        )
        for name, value in (headers or {}).items():
            merged[name] = value

        response, text, payload = await self._send(
            method.upper(),
            self.url(url),
            headers=merged,
            json_body=json,
            params=params,
            action="calling API",
        )

        if not response.is_success:
            message = error_message(payload, f"Request failed (HTTP {response.status_code})")
            logger.warning(
                "%s %s failed (%s): %s | body=%s",
                method.upper(),
                url,
                response.status_code,
                message,
                body_excerpt(text),
            )
            raise ApiError(message, status=response.status_code, body=text)

        return unwrap(payload)

    async def public_request(
        self,
        url: str,
        *,
        method: str = "GET",
        json: Any = None,
        params: Mapping[str, Any] | None = None,
        failure: str = "Request failed",
    ) -> Any:
        """Call an endpoint that needs no credentials (login, register, listing view)."""
        response, text, payload = await self._send(
            method.upper(),
            self.url(url),
            headers={"Content-Type": "application/json"},
            json_body=json,
            params=params,
            action="calling API",
        )

        if not response.is_success:
            message = error_message(payload, f"{failure} (HTTP {response.status_code})")
            logger.warning(
                "%s %s failed (%s): %s | body=%s",
                method.upper(),
                url,
                response.status_code,
                message,
                body_excerpt(text),
            )
            raise ApiError(message, status=response.status_code, body=text)

        return unwrap(payload)

    def _who(self) -> str:
        user = self._session.user
        return user.name if user and user.name else "anonymous session"
