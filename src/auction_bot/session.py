"""Per-user login state and its JSON-backed store."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from .config import settings

logger = logging.getLogger(__name__)


@dataclass
class StoredUser:
    """Small cached copy of the logged-in account."""

    name: str
    email: str = ""
    credits: int = 0
    avatar: str | None = None
    banner: str | None = None
    bio: str | None = None


@dataclass
class Session:
    access_token: str | None = None
    api_key: str | None = None
    user: StoredUser | None = None

    @property
    def is_logged_in(self) -> bool:
        return bool(self.access_token and self.user and self.user.name)

    @property
    def is_empty(self) -> bool:
        return not (self.access_token or self.api_key or self.user)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        user_raw = data.get("user")
        user = StoredUser(**user_raw) if isinstance(user_raw, dict) else None
        return cls(
            access_token=data.get("access_token") or None,
            api_key=data.get("api_key") or None,
            user=user,
        )


class SessionStore:
    """Sessions keyed by Discord user id, persisted as one JSON file."""

    def __init__(self, path: Path | None = None) -> None:
        self.path = Path(path) if path else settings.sessions_path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._sessions: dict[str, dict[str, Any]] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            self._sessions = {}
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("session file must hold an object")
            self._sessions = data
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            self._sessions = {}

    def _save(self) -> None:
        self.path.write_text(json.dumps(self._sessions, indent=2), encoding="utf-8")

    def get(self, owner_id: int) -> Session:
        raw = self._sessions.get(str(owner_id))
        if not raw:
            return Session()
        try:
            return Session.from_dict(raw)
        except TypeError as e:
            logger.warning(f"Dropping malformed session for {owner_id}: {e}")
            return Session()

    def save(self, owner_id: int, session: Session) -> None:
        if session.is_empty:
            self.clear(owner_id)
            return
        self._sessions[str(owner_id)] = session.to_dict()
        self._save()

    def clear(self, owner_id: int) -> None:
        if self._sessions.pop(str(owner_id), None) is not None:
            self._save()

    def __len__(self) -> int:
        return len(self._sessions)
