"""Retry-with-timeout policy for outbound AI calls."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from google.api_core import exceptions as google_exceptions

logger = logging.getLogger(__name__)


class AIServiceUnavailable(Exception):
    """The AI service kept reporting overload until the retry budget ran out."""


class AITimeout(Exception):
    """A single AI call exceeded the per-attempt timeout."""


def is_overloaded(error: BaseException) -> bool:
    """Gemini answers 503 when the model is temporarily overloaded."""
    return isinstance(error, google_exceptions.ServiceUnavailable)


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    delay: float = 2.0
    backoff: float = 1.0
    timeout: float = 30.0
    retry_on: Callable[[BaseException], bool] = field(default=is_overloaded)

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given (1-based) failed attempt."""
        return self.delay * self.backoff ** (attempt - 1)

    async def run(self, call: Callable[[], Awaitable]):
        """Await ``call()`` until it succeeds or the policy gives up.

        Each attempt is cancelled after ``timeout`` seconds. Only errors
        matching ``retry_on`` are retried; anything else is raised as is.
        """
        last_error = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await asyncio.wait_for(call(), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                raise AITimeout(f"AI call timed out after {self.timeout}s") from e
            except Exception as e:
                if not self.retry_on(e):
                    raise
                last_error = e
                if attempt < self.max_attempts:
                    wait = self.delay_for(attempt)
                    logger.warning(
                        "AI service unavailable (attempt %d/%d), retrying in %.1fs",
                        attempt, self.max_attempts, wait,
                    )
                    await asyncio.sleep(wait)
        raise AIServiceUnavailable(
            f"AI service unavailable after {self.max_attempts} attempts"
        ) from last_error
