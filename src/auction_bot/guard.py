from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager


class InFlightGuard:
    """Allows one outstanding command per user."""

    def __init__(self) -> None:
        self._busy: set[int] = set()

    def is_busy(self, user_id: int) -> bool:
        return user_id in self._busy

    @contextmanager
    def hold(self, user_id: int) -> Iterator[bool]:
        """Yield True if the slot was taken, False if the user is already busy."""
        if user_id in self._busy:
            yield False
            return
        self._busy.add(user_id)
        try:
            yield True
        finally:
            self._busy.discard(user_id)
