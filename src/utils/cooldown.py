"""In-memory per-client throttles: request cooldowns, login lockout, in-flight guard."""

import time
from contextlib import contextmanager
from typing import Callable, Dict, Set, Tuple

from fastapi import HTTPException


class Cooldown:
    """
    Minimum interval between two actions by the same client.

    `check_and_arm` arms the cooldown before the caller does any work;
    `check` + `arm` lets the caller arm it only after a successful action.
    """

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self.seconds = seconds
        self._clock = clock
        self._last: Dict[str, float] = {}

    def remaining(self, key: str) -> float:
        last = self._last.get(key)
        if last is None:
            return 0.0
        left = self.seconds - (self._clock() - last)
        if left > 0:
            return left
        self._last.pop(key, None)
        return 0.0

    def prune(self) -> None:
        """Drop clients whose cooldown has run out."""
        cutoff = self._clock() - self.seconds
        for key in [k for k, last in self._last.items() if last <= cutoff]:
            del self._last[key]

    def check(self, key: str, message: str) -> None:
        """Raise 429 if the client is still cooling down."""
        left = self.remaining(key)
        if left > 0:
            raise HTTPException(
                status_code=429,
                detail=message.format(seconds=int(left) + 1),
            )

    def arm(self, key: str) -> None:
        self.prune()
        self._last[key] = self._clock()

    def check_and_arm(self, key: str, message: str) -> None:
        self.check(key, message)
        self.arm(key)

    def reset(self) -> None:
        self._last.clear()


class LoginLockout:
    """Locks an identity out after too many failed sign-in attempts."""

    def __init__(
        self,
        max_attempts: int = 5,
        lockout_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_attempts = max_attempts
        self.lockout_seconds = lockout_seconds
        self._clock = clock
        # key -> (failed attempts, locked until, last failure)
        self._state: Dict[str, Tuple[int, float, float]] = {}

    def _expired(self, entry: Tuple[int, float, float], now: float) -> bool:
        _, until, last = entry
        return until <= now and now - last >= self.lockout_seconds

    def prune(self) -> None:
        """Forget identities whose lockout and failure window have both lapsed."""
        now = self._clock()
        for key in [k for k, entry in self._state.items() if self._expired(entry, now)]:
            del self._state[key]

    def locked_for(self, key: str) -> float:
        entry = self._state.get(key)
        if entry is None:
            return 0.0
        now = self._clock()
        left = entry[1] - now
        if left > 0:
            return left
        if entry[1] or self._expired(entry, now):
            self._state.pop(key, None)
        return 0.0

    def register_failure(self, key: str) -> int:
        """Record a failed attempt. Returns attempts remaining before lockout."""
        self.prune()
        now = self._clock()
        attempts, _, _ = self._state.get(key, (0, 0.0, now))
        attempts += 1
        if attempts >= self.max_attempts:
            self._state[key] = (attempts, now + self.lockout_seconds, now)
            return 0
        self._state[key] = (attempts, 0.0, now)
        return self.max_attempts - attempts

    def register_success(self, key: str) -> None:
        self._state.pop(key, None)

    def reset(self) -> None:
        self._state.clear()


class InFlightGuard:
    """Rejects a second concurrent request from the same client."""

    def __init__(self, message: str = "A request is already in progress"):
        self.message = message
        self._active: Set[str] = set()

    @contextmanager
    def hold(self, key: str):
        if key in self._active:
            raise HTTPException(status_code=409, detail=self.message)
        self._active.add(key)
        try:
            yield
        finally:
            self._active.discard(key)

    def is_active(self, key: str) -> bool:
        return key in self._active
