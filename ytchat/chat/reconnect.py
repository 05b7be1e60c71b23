"""
Retry policy for failed poll cycles.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class RetryPolicy:
    """
    Computes the delay before retrying a failed poll cycle.

    Implements the strategy:
    - 1st failure: retry after the last known polling interval
      (at least min_backoff)
    - consecutive failures: double the delay, up to max_backoff
    - reset on the next successful poll

    There is no attempt limit; polling is never abandoned.
    """

    def __init__(self, min_backoff: float = 1.0, max_backoff: float = 60.0):
        """
        Initialize retry policy.

        Args:
            min_backoff: Minimum delay between retries in seconds (must be > 0)
            max_backoff: Maximum delay between retries in seconds
        """
        if min_backoff <= 0:
            raise ValueError(f"min_backoff must be positive, got {min_backoff}")

        self._min_backoff = min_backoff
        self._max_backoff = max_backoff
        self._failures = 0
        self._current_backoff: Optional[float] = None

    def next_delay(self, interval: float) -> float:
        """
        Register a failure and return how long to wait before retrying.

        Args:
            interval: Last known polling interval in seconds
        """
        self._failures += 1

        if self._current_backoff is None:
            delay = max(interval, self._min_backoff)
        else:
            delay = min(self._current_backoff * 2.0, self._max_backoff)
            # Never shorten the provider-dictated interval
            delay = max(interval, self._min_backoff, delay)
        self._current_backoff = delay

        logger.info(f"Poll retry attempt {self._failures} in {delay:.1f}s")
        return delay

    def reset(self) -> None:
        """Reset retry state after a successful poll."""
        if self._failures > 0:
            logger.info(
                f"Poll succeeded after {self._failures} failures, "
                "resetting retry state"
            )
        self._failures = 0
        self._current_backoff = None

    @property
    def failures(self) -> int:
        """Get the number of consecutive failures."""
        return self._failures

    @property
    def current_backoff(self) -> Optional[float]:
        """Get the delay returned for the last failure."""
        return self._current_backoff
