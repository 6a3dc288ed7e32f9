"""In-process registry of MCQ job records."""

from __future__ import annotations

import logging

from mcqgen.jobs.models import JobPayload, JobRecord
from mcqgen.utils.ids import generate_job_id

logger = logging.getLogger(__name__)


class JobRegistry:
  """Own every job record of this process, keyed by job id."""

  def __init__(self) -> None:
    self._jobs: dict[str, JobRecord] = {}

  def create(self, payload: JobPayload) -> JobRecord:
    record = JobRecord(job_id=generate_job_id(), payload=payload)
    self._jobs[record.job_id] = record
    logger.info("Registered job %s with %d topic(s)", record.job_id, len(payload.topics))
    return record

  def get(self, job_id: str) -> JobRecord | None:
    return self._jobs.get(job_id)

  def __contains__(self, job_id: object) -> bool:
    return job_id in self._jobs

  def __len__(self) -> int:
    return len(self._jobs)
