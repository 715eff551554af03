"""Cooperative deadline for a conversion run."""

import time

from .errors import ConversionTimeout


class Deadline:
    """Monotonic-clock expiry checked between traversal steps."""

    def __init__(self, seconds: float | None) -> None:
        self.seconds = seconds
        self._expires_at = None if seconds is None else time.monotonic() + seconds

    @classmethod
    def unlimited(cls) -> "Deadline":
        return cls(None)

    def remaining(self) -> float | None:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - time.monotonic())

    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() >= self._expires_at

    def check(self, stage: str = "conversion") -> None:
        """Raise ConversionTimeout once the deadline has passed."""
        if self.expired():
            raise ConversionTimeout(f"{stage} exceeded deadline of {self.seconds}s")
