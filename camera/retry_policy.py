from __future__ import annotations

import time
from dataclasses import dataclass

from camera.errors import RetryExhaustedError


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bound and pacing for the raw camera retry loops.

    Attributes:
        max_attempts: Give up after this many failed attempts (None = never).
        max_duration: Give up once this many seconds have elapsed since the
            first attempt (None = never).
        backoff: Seconds to wait after a transport fault before retrying.

    The default policy never gives up. The Raw Cam Server does not announce
    readiness, so a booting AIBO looks exactly like an absent one.
    """

    max_attempts: int | None = None
    max_duration: float | None = None
    backoff: float = 0.5

    def __post_init__(self):
        if self.max_attempts is not None and self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1 or None")
        if self.max_duration is not None and self.max_duration <= 0:
            raise ValueError("max_duration must be > 0 or None")
        if self.backoff < 0:
            raise ValueError("backoff must be >= 0")

    @property
    def unbounded(self) -> bool:
        return self.max_attempts is None and self.max_duration is None

    def start(self, clock=time.monotonic) -> RetryBudget:
        """Begins a new sequence of attempts under this policy."""
        return RetryBudget(self, clock)


class RetryBudget:
    """Tracks the failures of one retry sequence against its policy."""

    def __init__(self, policy: RetryPolicy, clock=time.monotonic):
        self.policy = policy
        self._clock = clock
        self._started_at = clock()
        self.attempts = 0

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started_at

    def exhausted(self) -> bool:
        policy = self.policy
        if policy.max_attempts is not None and self.attempts >= policy.max_attempts:
            return True
        if policy.max_duration is not None and self.elapsed >= policy.max_duration:
            return True
        return False

    def record_failure(self, what: str, error_cls=RetryExhaustedError) -> None:
        """
        Counts one failed attempt.

        Raises:
            error_cls: If the policy bound is now exceeded.
        """
        self.attempts += 1
        if self.exhausted():
            raise error_cls(
                f"{what} failed after {self.attempts} attempts "
                f"in {self.elapsed:.1f}s",
                attempts=self.attempts,
                elapsed=self.elapsed,
            )

    def reset(self) -> None:
        self.attempts = 0
        self._started_at = self._clock()
