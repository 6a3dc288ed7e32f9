from __future__ import annotations

import asyncio
import logging

from mcqgen.services.tasks.interface import JobWork, TaskEnqueuer

logger = logging.getLogger(__name__)


class LocalTaskEnqueuer(TaskEnqueuer):
  """Runs job work as asyncio tasks on the server event loop."""

  def __init__(self) -> None:
    self._tasks: dict[str, asyncio.Task[None]] = {}

  @property
  def pending(self) -> int:
    return len(self._tasks)

  async def enqueue(self, job_id: str, work: JobWork) -> None:
    """Start the job in the background, keeping a reference until it finishes."""
    if job_id in self._tasks:
      raise RuntimeError(f"Job {job_id} is already scheduled.")

    task = asyncio.create_task(work(), name=f"mcq-job-{job_id}")
    self._tasks[job_id] = task
    task.add_done_callback(lambda finished: self._on_done(job_id, finished))
    logger.info(f"Dispatched job {job_id} to local task runner")

  def _on_done(self, job_id: str, task: asyncio.Task[None]) -> None:
    self._tasks.pop(job_id, None)
    if task.cancelled():
      logger.warning(f"Background task for job {job_id} was cancelled")
      return
    exc = task.exception()
    if exc is not None:
      logger.error(f"Background task for job {job_id} crashed", exc_info=exc)

  async def drain(self) -> None:
    if not self._tasks:
      return
    logger.info(f"Waiting for {len(self._tasks)} background job(s) to finish")
    await asyncio.gather(*self._tasks.values(), return_exceptions=True)
