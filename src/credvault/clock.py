"""
Clock and randomness collaborators.

Everything time- or entropy-dependent in credvault goes through these two
small interfaces so that tests can pin the current time and make token
and code generation reproducible.
"""

import secrets
import time
from typing import Optional, Protocol


class Clock(Protocol):
    def now(self) -> float:
        """Current Unix time in seconds."""
        ...


class RandomSource(Protocol):
    def token_bytes(self, n: int) -> bytes:
        """Return n cryptographically random bytes."""
        ...


class SystemClock:
    """Wall-clock time."""

    def now(self) -> float:
        return time.time()


class ManualClock:
    """
    Clock that only moves when told to.

    Example:
        >>> clock = ManualClock(1_700_000_000)
        >>> clock.advance(600)
        >>> clock.now()
        1700000600.0
    """

    def __init__(self, start: Optional[float] = None):
        self._now = float(time.time() if start is None else start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds

    def set(self, timestamp: float) -> None:
        self._now = float(timestamp)


class SystemRandomSource:
    """Operating-system CSPRNG via the secrets module."""

    def token_bytes(self, n: int) -> bytes:
        return secrets.token_bytes(n)
