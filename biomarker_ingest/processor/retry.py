import random
import time
from collections.abc import Callable

from biomarker_ingest.config.settings import Settings


class RetryPolicy:
    """Bounded exponential backoff with jitter.

    ``retry_count`` is the number of failures so far in the current run. The
    run is abandoned once it reaches ``max_attempts``.
    """

    def __init__(
        self,
        *,
        max_attempts: int = 3,
        base_delay_seconds: float = 1.0,
        max_delay_seconds: float = 30.0,
        jitter_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        uniform: Callable[[float, float], float] = random.uniform,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self._base_delay = base_delay_seconds
        self._max_delay = max_delay_seconds
        self._jitter = jitter_seconds
        self._sleep = sleep
        self._uniform = uniform

    @classmethod
    def from_settings(
        cls, settings: Settings, sleep: Callable[[float], None] = time.sleep
    ) -> "RetryPolicy":
        return cls(
            max_attempts=settings.pipeline_max_attempts,
            base_delay_seconds=settings.retry_base_delay_seconds,
            max_delay_seconds=settings.retry_max_delay_seconds,
            jitter_seconds=settings.retry_jitter_seconds,
            sleep=sleep,
        )

    def should_retry(self, retry_count: int) -> bool:
        return retry_count < self.max_attempts

    def delay_for(self, retry_count: int) -> float:
        backoff = min(self._base_delay * (2**retry_count), self._max_delay)
        jitter = self._uniform(0.0, self._jitter) if self._jitter > 0 else 0.0
        return backoff + jitter

    def wait(self, retry_count: int) -> float:
        """Block the calling thread for the backoff delay and return it."""
        delay = self.delay_for(retry_count)
        self._sleep(delay)
        return delay
