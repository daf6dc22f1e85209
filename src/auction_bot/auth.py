"""Login, registration and logout."""

from __future__ import annotations

import logging
from typing import Any

from .config import settings
from .errors import ApiError, ValidationError
from .gateway import ApiGateway
from .models import _number, media_url
from .session import StoredUser

logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth/login"
REGISTER_PATH = "/auth/register"
MIN_PASSWORD_LENGTH = 8


def is_valid_student_email(email: Any, domain: str | None = None) -> bool:
    """Check that ``email`` belongs to the student domain."""
    if not isinstance(email, str):
        return False
    suffix = f"@{domain or settings.student_email_domain}".lower()
    return email.strip().lower().endswith(suffix)


def user_from_auth(auth: dict[str, Any]) -> StoredUser:
    credits = _number(auth.get("credits"))
    return StoredUser(
        name=str(auth.get("name") or ""),
        email=str(auth.get("email") or ""),
        credits=int(credits) if credits is not None else 0,
        avatar=media_url(auth.get("avatar")) or None,
        banner=media_url(auth.get("banner")) or None,
        bio=auth.get("bio") or None,
    )


async def login(gateway: ApiGateway, email: str, password: str) -> StoredUser:
    """Log in and start a new session on ``gateway``.

    Raises:
        ValidationError: Missing fields or a non-student address.
        ApiError: The API rejected the credentials or could not be reached.
    """
    email = (email or "").strip()
    password = (password or "").strip()
    domain = settings.student_email_domain

    if not email or not password:
        raise ValidationError("Please enter both email and password.")
    if not is_valid_student_email(email, domain):
        raise ValidationError(f"Only @{domain} addresses may log in.")

    auth = await gateway.public_request(
        LOGIN_PATH,
        method="POST",
        json={"email": email, "password": password},
        failure="Login failed",
    )
    if not isinstance(auth, dict) or not auth.get("accessToken"):
        raise ApiError("Login succeeded but no access token was returned.")

    user = user_from_auth(auth)
    gateway.start_session(str(auth["accessToken"]), user)
    logger.info("Logged in as %s", user.name)
    return user


async def register(
    gateway: ApiGateway,
    name: str,
    email: str,
    password: str,
    confirm_password: str,
    avatar: str | None = None,
    banner: str | None = None,
) -> dict[str, Any]:
    """Create an account. The caller logs in separately afterwards."""
    name = (name or "").strip()
    email = (email or "").strip()
    password = (password or "").strip()
    confirm_password = (confirm_password or "").strip()
    avatar = (avatar or "").strip()
    banner = (banner or "").strip()
    domain = settings.student_email_domain

    if not name or not email or not password or not confirm_password:
        raise ValidationError("Please fill in all required fields.")
    if not is_valid_student_email(email, domain):
        raise ValidationError(f"Only @{domain} email addresses can register.")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if password != confirm_password:
        raise ValidationError("Passwords do not match.")

    payload: dict[str, Any] = {"name": name, "email": email, "password": password}
    if avatar:
        payload["avatar"] = {"url": avatar, "alt": ""}
    if banner:
        payload["banner"] = {"url": banner, "alt": ""}

    created = await gateway.public_request(
        REGISTER_PATH, method="POST", json=payload, failure="Register failed"
    )
    logger.info("Registered account %s", name)
    return created if isinstance(created, dict) else {}


def logout(gateway: ApiGateway) -> None:
    user = gateway.user
    gateway.end_session()
    if user:
        logger.info("Logged out %s", user.name)
