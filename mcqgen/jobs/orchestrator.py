"""Job orchestrator driving generate, validate, balance and persist for MCQ jobs."""

from __future__ import annotations

import logging
import random
from collections.abc import Awaitable, Callable
from typing import Literal

from mcqgen.ai.agents.generator import McqGenerator, TopicRequest
from mcqgen.ai.backoff import RetryHook
from mcqgen.ai.balancer import new_letter_counts, rebalance_correct_options
from mcqgen.ai.errors import AllTopicsRejectedError, GenerationError, PersistenceError, ValidatorOutputError, is_overloaded
from mcqgen.ai.pipeline.contracts import OPTION_LETTERS, TopicMcqs
from mcqgen.ai.validation_loop import ValidationLoop
from mcqgen.jobs.models import FailureKind, JobPayload, JobRecord
from mcqgen.jobs.registry import JobRegistry
from mcqgen.services.csv_export import build_csv_bytes, output_filename
from mcqgen.storage.mcq_repo import ChapterContext, McqRepository

logger = logging.getLogger(__name__)

RetryKind = Literal["validation", "persistence"]
RejectReason = Literal["busy", "state", "snapshot", "not_allowed"]


class JobNotFoundError(LookupError):
  """Raised when a job id is not present in the registry."""


class RetryNotAllowedError(RuntimeError):
  """Raised when a retry entry point is invoked on a job that cannot resume."""

  def __init__(self, message: str, reason: RejectReason) -> None:
    super().__init__(message)
    self.reason = reason


def classify_failure(exc: BaseException) -> FailureKind:
  """Map an exception raised during a run onto the job failure taxonomy."""
  if is_overloaded(exc):
    return "overloaded"
  if isinstance(exc, PersistenceError):
    return "persistence"
  if isinstance(exc, AllTopicsRejectedError):
    return "rejected"
  if isinstance(exc, ValidatorOutputError):
    return "validation"
  if isinstance(exc, GenerationError):
    return "generation"
  return "internal"


def chapter_context(payload: JobPayload) -> ChapterContext:
  return ChapterContext(
    subject_id=payload.subject.id,
    class_level=payload.class_level,
    chapter_number=payload.chapter_number,
    chapter_title=payload.chapter_title,
    syllabus=payload.syllabus.name,
  )


def _clone_topics(topics: list[TopicMcqs]) -> list[TopicMcqs]:
  return [topic.model_copy(deep=True) for topic in topics]


class McqJobOrchestrator:
  """Own the lifecycle of MCQ jobs held by a registry."""

  def __init__(
    self,
    registry: JobRegistry,
    generator: McqGenerator,
    validation_loop: ValidationLoop,
    repository: McqRepository,
    *,
    rng_factory: Callable[[], random.Random] = random.Random,
  ) -> None:
    self._registry = registry
    self._generator = generator
    self._validation_loop = validation_loop
    self._repository = repository
    self._rng_factory = rng_factory

  def _require(self, job_id: str) -> JobRecord:
    record = self._registry.get(job_id)
    if record is None:
      raise JobNotFoundError(f"Job {job_id} not found.")
    return record

  async def run_job(self, job_id: str) -> None:
    """Run the full pipeline for a pending job; failures end in the failed state."""
    record = self._require(job_id)
    async with record.lock:
      # The enqueuer may deliver the same job twice; only a pending job starts.
      if record.status != "pending":
        logger.warning("Job %s is %s; skipping duplicate run", job_id, record.status)
        return
      await self._execute(record, self._run_pipeline)

  async def retry_validation(self, job_id: str) -> JobRecord:
    """Re-run validation, balancing and persistence from the stored snapshot."""
    record = self._require(job_id)
    self._check_retry(record, "validation")
    async with record.lock:
      record.validated_topics = None
      record.append_log("Validation retry requested; reusing generated MCQs.")
      await self._execute(record, self._validate_and_persist)
    return record

  async def retry_persistence(self, job_id: str) -> JobRecord:
    """Persist the last validated content again, or redo validation when none is cached."""
    record = self._require(job_id)
    self._check_retry(record, "persistence")
    async with record.lock:
      record.append_log("Persistence retry requested.")
      await self._execute(record, self._persist_again)
    return record

  def _check_retry(self, record: JobRecord, kind: RetryKind) -> None:
    # Without a snapshot nothing can be retried, whatever the job state.
    if not record.has_snapshot:
      raise RetryNotAllowedError("No generated MCQs available for retry.", "snapshot")
    if record.status == "processing" or record.lock.locked():
      raise RetryNotAllowedError("Job is already processing.", "busy")
    if record.status != "failed":
      raise RetryNotAllowedError(f"Job is {record.status}; only failed jobs can be retried.", "state")
    if kind == "persistence" and not record.allow_persistence_retry:
      raise RetryNotAllowedError("Persistence retry is not available for this job.", "not_allowed")

  async def _execute(self, record: JobRecord, step: Callable[[JobRecord], Awaitable[None]]) -> None:
    record.transition("processing")
    # Errors from the previous attempt no longer describe the job.
    record.error = None
    record.failure_kind = None
    # Nothing escapes a job run; every failure lands on the record.
    try:
      await step(record)
    except Exception as exc:  # noqa: BLE001
      self._fail(record, exc)

  def _fail(self, record: JobRecord, exc: Exception) -> None:
    kind = classify_failure(exc)
    message = str(exc) or exc.__class__.__name__
    record.error = message
    record.failure_kind = kind

    # Retry eligibility is recomputed from the failure kind and the snapshot on every attempt.
    has_snapshot = record.has_snapshot
    record.allow_validation_retry = kind == "overloaded" and has_snapshot
    record.allow_persistence_retry = kind in {"overloaded", "persistence"} and has_snapshot

    record.append_log(f"Job failed ({kind}): {message}")
    logger.error("Job %s failed (%s): %s", record.job_id, kind, message, exc_info=exc)
    record.transition("failed")

  def _retry_logger(self, record: JobRecord, provider: str) -> RetryHook:
    def _on_retry(attempt: int, delay_ms: int, exc: BaseException) -> None:
      record.append_log(f"{provider} rate limit hit (attempt {attempt}); retrying in {delay_ms}ms.")

    return _on_retry

  async def _run_pipeline(self, record: JobRecord) -> None:
    payload = record.payload
    total = len(payload.topics)
    generated: list[TopicMcqs] = []
    record.append_log(f'Starting MCQ generation for Chapter {payload.chapter_number} "{payload.chapter_title}" with {total} topic(s).')

    # Topics are generated strictly in order; a failure on any topic fails the job.
    for index, topic in enumerate(payload.topics):
      record.append_log(f'Generating MCQs for topic {index + 1} of {total}: "{topic.name}".')
      request = TopicRequest(
        name=topic.name,
        description=topic.description,
        chapter_number=payload.chapter_number,
        chapter_title=payload.chapter_title,
        vector_store_id=payload.vector_store_id,
        topic_index=index,
        total_topics=total,
      )
      result = await self._generator.generate_for_topic(request, on_retry=self._retry_logger(record, "OpenAI"))
      record.openai_usage.add(result.usage)
      generated.append(TopicMcqs(topic=topic.name, items=result.items))
      record.append_log(f'Generated {len(result.items)} MCQs for "{topic.name}".')

    record.generated_topics = _clone_topics(generated)
    record.append_log("Stored generated MCQs for retries.")
    await self._validate_and_persist(record)

  async def _validate_and_persist(self, record: JobRecord) -> None:
    # Validation always starts from a fresh copy of the generation snapshot.
    snapshot = record.generated_topics or []
    record.append_log(f"Validating {len(snapshot)} topic(s).")
    outcome = await self._validation_loop.run(
      _clone_topics(snapshot),
      on_log=record.append_log,
      on_usage=record.anthropic_usage.add,
      on_retry=self._retry_logger(record, "Anthropic"),
    )
    record.summary = outcome.summary
    if outcome.all_rejected:
      raise AllTopicsRejectedError("All topics failed validation; no MCQs were produced.")

    # Letter counts span the whole job, not a single topic.
    counts = new_letter_counts()
    rng = self._rng_factory()
    balanced = [TopicMcqs(topic=topic.topic, items=rebalance_correct_options(topic.items, counts, rng)) for topic in outcome.topics]
    distribution = ", ".join(f"{letter}={count}" for letter, count in zip(OPTION_LETTERS, counts))
    record.append_log(f"Balanced correct answers: {distribution}.")
    # Cached so a persistence retry writes exactly what this attempt tried to write.
    record.validated_topics = _clone_topics(balanced)
    await self._persist_and_finish(record, balanced)

  async def _persist_again(self, record: JobRecord) -> None:
    if record.validated_topics:
      record.append_log("Reusing validated MCQs from the previous attempt.")
      await self._persist_and_finish(record, _clone_topics(record.validated_topics))
      return
    await self._validate_and_persist(record)

  async def _persist_and_finish(self, record: JobRecord, topics: list[TopicMcqs]) -> None:
    payload = record.payload
    record.append_log(f"Persisting {sum(len(topic.items) for topic in topics)} MCQs across {len(topics)} topic(s).")
    try:
      report = await self._repository.persist_topics(chapter_context(payload), topics)
    except PersistenceError:
      raise
    # Any repository failure counts as a persistence failure for retry purposes.
    except Exception as exc:
      raise PersistenceError(f"Failed to persist MCQs: {exc}") from exc
    record.append_log(f"Persisted {report.question_count} questions to chapter {report.chapter_id}.")

    # The artifact and flags are only touched after the transaction committed.
    record.result_csv = build_csv_bytes(topics)
    record.output_filename = output_filename(payload.chapter_number)
    record.allow_validation_retry = False
    record.allow_persistence_retry = False

    excluded = record.summary.excluded_topics if record.summary else []
    if excluded:
      record.append_log(f"Completed with excluded topic(s) pending manual review: {', '.join(excluded)}.")
    else:
      record.append_log("Completed MCQ generation.")
    record.transition("succeeded")
    logger.info("Job %s succeeded with %d topic(s)", record.job_id, len(topics))
