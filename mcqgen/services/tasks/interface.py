from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol

JobWork = Callable[[], Awaitable[None]]


class TaskEnqueuer(Protocol):
  """Interface for handing job execution to a background worker."""

  async def enqueue(self, job_id: str, work: JobWork) -> None:
    """Schedule ``work`` for the given job and return without awaiting it."""
    ...

  async def drain(self) -> None:
    """Wait for every scheduled job to finish."""
    ...
