"""Retry logic with exponential backoff for rate-limited upstream calls."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from mcqgen.ai.errors import RetryExhaustedError, is_rate_limited

T = TypeVar("T")
logger = logging.getLogger(__name__)

RetryHook = Callable[[int, int, BaseException], None]


async def retry_with_backoff(func: Callable[[], Awaitable[T]], *, max_attempts: int = 5, initial_delay_ms: int = 2000, label: str = "upstream call", on_retry: RetryHook | None = None) -> T:
  """
  Execute an async callable, retrying on HTTP 429 with doubling delays.

  Any other failure propagates immediately. When attempts run out the last
  rate-limit error propagates unchanged.
  """
  if max_attempts <= 0:
    raise ValueError("max_attempts must be positive.")

  delay_ms = initial_delay_ms
  last_error: BaseException | None = None

  for attempt in range(1, max_attempts + 1):
    try:
      return await func()
    except Exception as exc:
      if not is_rate_limited(exc):
        raise
      last_error = exc
      if attempt >= max_attempts:
        raise

      logger.warning("%s rate limited (attempt %d/%d). Retrying in %dms...", label, attempt, max_attempts, delay_ms)
      if on_retry is not None:
        on_retry(attempt, delay_ms, exc)
      await asyncio.sleep(delay_ms / 1000)
      delay_ms *= 2

  if last_error is not None:
    raise last_error
  raise RetryExhaustedError(f"{label} exhausted all retries.")
