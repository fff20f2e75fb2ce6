"""
Retry delays for rate-limited (HTTP 429) Spotify calls.

The policy is a pure function over an immutable BackoffState: every retry
produces a new state, nothing is mutated, so a retry loop can carry the state
along without shared bookkeeping.

Reference values: first delay 1 s, doubling, at most 4 retries, i.e. the
delays 1, 2, 4, 8 seconds and then give up.

Usage:
    state = BackoffState.initial()
    while True:
        ...
        step = next_backoff(state)
        if step is None:
            raise RateLimitExceededError(...)
        delay, state = step
        time.sleep(delay)
"""

from dataclasses import dataclass


DEFAULT_INITIAL_DELAY = 1.0
DEFAULT_MAX_RETRIES = 4
BACKOFF_FACTOR = 2


@dataclass(frozen=True)
class BackoffState:
    """
    Position within the retry sequence.

    Attributes:
        attempt: Number of retries already granted.
        delay: Delay in seconds granted for the next retry.
        max_attempts: Number of retries allowed in total.
    """
    attempt: int
    delay: float
    max_attempts: int

    @classmethod
    def initial(
        cls,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        max_attempts: int = DEFAULT_MAX_RETRIES
    ) -> "BackoffState":
        return cls(attempt=0, delay=initial_delay, max_attempts=max_attempts)

    @property
    def exhausted(self) -> bool:
        return self.attempt >= self.max_attempts


def next_backoff(state: BackoffState) -> tuple[float, BackoffState] | None:
    """
    Compute the delay for the next retry.

    Args:
        state: Current position in the retry sequence.

    Returns:
        (delay, next_state) when another retry is allowed, None when all
        retries are used up. None is terminal: the caller must surface an
        error instead of retrying again.

    Example:
        next_backoff(BackoffState.initial())
        # (1.0, BackoffState(attempt=1, delay=2.0, max_attempts=4))
    """
    if state.exhausted:
        return None
    return state.delay, BackoffState(
        attempt=state.attempt + 1,
        delay=state.delay * BACKOFF_FACTOR,
        max_attempts=state.max_attempts
    )
