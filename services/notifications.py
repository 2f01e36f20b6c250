"""
Banner-level notification that expires on its own or when dismissed.
"""
import time
from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class Notification:
    message: str
    expires_at: float


class NotificationCenter:
    """Holds at most one notification; a newer one replaces the older."""

    def __init__(self, ttl_seconds: float = 5.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self._current: Optional[Notification] = None

    def show(self, message: str) -> Notification:
        self._current = Notification(message=message, expires_at=self.clock() + self.ttl_seconds)
        return self._current

    def current(self) -> Optional[Notification]:
        """Return the live notification, dropping it once expired."""
        if self._current is not None and self.clock() >= self._current.expires_at:
            self._current = None
        return self._current

    def remaining(self) -> float:
        notification = self.current()
        if notification is None:
            return 0.0
        return max(0.0, notification.expires_at - self.clock())

    def dismiss(self) -> None:
        self._current = None
