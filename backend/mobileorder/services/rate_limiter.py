import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from mobileorder.config import settings
from mobileorder.errors import RateLimitedError

log = logging.getLogger("rate_limiter")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LoginAttempt:
    attempts: int
    last_try: datetime
    blocked_at: Optional[datetime] = None


class RateLimiter:
    """
    Per-email login throttle kept in process memory.

    Counters are lost on restart and are not shared between worker processes.
    One lock guards the whole map; every method is safe to call from the
    request threads and the cleanup job at the same time.
    """

    def __init__(
        self,
        max_attempts: int = settings.RATE_LIMIT_MAX_ATTEMPTS,
        window_seconds: int = settings.RATE_LIMIT_WINDOW_SECONDS,
        block_seconds: int = settings.RATE_LIMIT_BLOCK_SECONDS,
        retention_hours: int = settings.RATE_LIMIT_RETENTION_HOURS,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.max_attempts = max_attempts
        self.window = timedelta(seconds=window_seconds)
        self.block = timedelta(seconds=block_seconds)
        self.retention = timedelta(hours=retention_hours)
        self.clock = clock
        self._attempts: Dict[str, LoginAttempt] = {}
        self._lock = threading.Lock()

    def check_rate_limit(self, email: str):
        """Raise RateLimitedError while `email` is blocked or has just exhausted its window."""
        now = self.clock()
        with self._lock:
            entry = self._attempts.get(email)
            if entry is None:
                self._attempts[email] = LoginAttempt(attempts=0, last_try=now)
                return

            if entry.blocked_at is not None:
                remaining = entry.blocked_at + self.block - now
                if remaining > timedelta(0):
                    raise RateLimitedError(
                        "too many login attempts, please try again later",
                        retry_after_seconds=_ceil_seconds(remaining),
                    )
                entry.blocked_at = None
                entry.attempts = 0

            since_last = now - entry.last_try
            if since_last < self.window and entry.attempts >= self.max_attempts:
                entry.blocked_at = now
                log.warning("login blocked for %s after %d failed attempts", email, entry.attempts)
                raise RateLimitedError(
                    "too many login attempts, please try again later",
                    retry_after_seconds=_ceil_seconds(self.block),
                )

            # sliding window: a quiet minute forgets earlier failures
            if since_last >= self.window:
                entry.attempts = 0

    def record_attempt(self, email: str, success: bool):
        now = self.clock()
        with self._lock:
            entry = self._attempts.get(email)
            if entry is None:
                entry = LoginAttempt(attempts=0, last_try=now)
                self._attempts[email] = entry
            entry.last_try = now
            if success:
                entry.attempts = 0
                entry.blocked_at = None
            else:
                entry.attempts += 1

    def cleanup_old_attempts(self) -> int:
        """Drop entries untouched for the retention period; returns how many were removed."""
        cutoff = self.clock() - self.retention
        with self._lock:
            stale = [email for email, a in self._attempts.items() if a.last_try < cutoff]
            for email in stale:
                del self._attempts[email]
        if stale:
            log.info("removed %d stale login attempt entries", len(stale))
        return len(stale)

    def get_attempt(self, email: str) -> Optional[LoginAttempt]:
        with self._lock:
            entry = self._attempts.get(email)
            if entry is None:
                return None
            return LoginAttempt(entry.attempts, entry.last_try, entry.blocked_at)

    def reset(self):
        with self._lock:
            self._attempts.clear()


def _ceil_seconds(delta: timedelta) -> int:
    whole = int(delta.total_seconds())
    if delta.total_seconds() > whole:
        whole += 1
    return max(whole, 1)
