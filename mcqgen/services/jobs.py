"""API-facing use cases for MCQ jobs."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from fastapi import HTTPException, status
from pydantic import ValidationError

from mcqgen.ai.agents.generator import McqGenerator
from mcqgen.ai.agents.validator import ValidatorAgent
from mcqgen.ai.providers.anthropic_messages import AnthropicMessagesModel
from mcqgen.ai.providers.base import GenerationModel, ValidationModel
from mcqgen.ai.providers.openai_responses import OpenAIResponsesModel
from mcqgen.ai.validation_loop import ValidationLoop
from mcqgen.api.models import CreateMcqJobRequest, JobCreateResponse, JobRetryRequest, JobRetryResponse, JobStatusResponse
from mcqgen.config import Settings
from mcqgen.jobs.models import JobRecord
from mcqgen.jobs.orchestrator import JobNotFoundError, McqJobOrchestrator, RetryNotAllowedError
from mcqgen.jobs.registry import JobRegistry
from mcqgen.services.tasks.interface import TaskEnqueuer
from mcqgen.services.tasks.local import LocalTaskEnqueuer
from mcqgen.storage.mcq_repo import McqRepository, PostgresMcqRepository

logger = logging.getLogger(__name__)

_JOB_NOT_FOUND_MSG = "Job not found."
_JOB_ID_REQUIRED_MSG = "jobId is required."
_MISSING_JOB_ID_PARAM_MSG = "Missing jobId parameter."
_JOB_NOT_READY_MSG = "Job is not ready."


@dataclass
class JobRuntime:
  """Process-wide job components, built once by the application lifespan."""

  registry: JobRegistry
  orchestrator: McqJobOrchestrator
  enqueuer: TaskEnqueuer
  validator: ValidatorAgent


def build_runtime(
  settings: Settings,
  *,
  generation_model: GenerationModel | None = None,
  validation_model: ValidationModel | None = None,
  repository: McqRepository | None = None,
  enqueuer: TaskEnqueuer | None = None,
) -> JobRuntime:
  """Wire the registry, agents, repository and enqueuer from settings."""
  registry = JobRegistry()
  generation_model = generation_model or OpenAIResponsesModel(settings.openai_model, api_key=settings.openai_api_key)
  validation_model = validation_model or AnthropicMessagesModel(settings.validator_model, api_key=settings.anthropic_api_key, max_tokens=settings.validator_max_tokens)
  generator = McqGenerator(
    generation_model,
    min_questions=settings.min_questions,
    max_questions=settings.max_questions,
    max_attempts=settings.generation_max_attempts,
    initial_delay_ms=settings.generation_initial_delay_ms,
  )
  validator = ValidatorAgent(validation_model, max_attempts=settings.generation_max_attempts, initial_delay_ms=settings.generation_initial_delay_ms)
  loop = ValidationLoop(validator, max_attempts=settings.validation_max_attempts)
  orchestrator = McqJobOrchestrator(registry, generator, loop, repository or PostgresMcqRepository())
  return JobRuntime(registry=registry, orchestrator=orchestrator, enqueuer=enqueuer or LocalTaskEnqueuer(), validator=validator)


def _get_record(runtime: JobRuntime, job_id: str) -> JobRecord:
  record = runtime.registry.get(job_id)
  if record is None:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG)
  return record


def _require_job_id(job_id: str | None, message: str) -> str:
  cleaned = (job_id or "").strip()
  if not cleaned:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)
  return cleaned


def _job_status_from_record(record: JobRecord) -> JobStatusResponse:
  """Convert a job record into the polled status document."""
  return JobStatusResponse(
    job_id=record.job_id,
    status=record.status,
    logs=list(record.logs),
    summary=record.summary,
    error=record.error,
    created_at=record.created_at,
    updated_at=record.updated_at,
    open_ai_usage=record.openai_usage.model_copy(),
    anthropic_usage=record.anthropic_usage.model_copy(),
    allow_validation_retry=record.allow_validation_retry,
    allow_persistence_retry=record.allow_persistence_retry,
    output_filename=record.output_filename,
  )


def _retry_response(record: JobRecord) -> JobRetryResponse:
  return JobRetryResponse(
    job_id=record.job_id,
    status=record.status,
    error=record.error,
    allow_validation_retry=record.allow_validation_retry,
    allow_persistence_retry=record.allow_persistence_retry,
  )


async def create_job(request: CreateMcqJobRequest, runtime: JobRuntime) -> JobCreateResponse:
  """Register a job and hand its pipeline to the background enqueuer."""
  try:
    payload = request.to_payload()
  except ValidationError as exc:
    message = "; ".join(str(error.get("msg")) for error in exc.errors()) or "Invalid job payload."
    raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=message) from exc

  record = runtime.registry.create(payload)
  record.append_log(f"Job created for Chapter {payload.chapter_number} with {len(payload.topics)} topic(s).")
  orchestrator = runtime.orchestrator

  async def _work() -> None:
    await orchestrator.run_job(record.job_id)

  await runtime.enqueuer.enqueue(record.job_id, _work)
  return JobCreateResponse(job_id=record.job_id)


def get_job_status(job_id: str | None, runtime: JobRuntime) -> JobStatusResponse:
  record = _get_record(runtime, _require_job_id(job_id, _MISSING_JOB_ID_PARAM_MSG))
  return _job_status_from_record(record)


def get_job_result(job_id: str | None, runtime: JobRuntime) -> tuple[bytes, str]:
  """Return the CSV bytes and filename of a succeeded job."""
  record = _get_record(runtime, _require_job_id(job_id, _MISSING_JOB_ID_PARAM_MSG))
  if record.status != "succeeded" or record.result_csv is None:
    raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=_JOB_NOT_READY_MSG)
  return record.result_csv, record.output_filename or "mcqs.csv"


def _retry_error(exc: RetryNotAllowedError) -> HTTPException:
  status_code = status.HTTP_400_BAD_REQUEST if exc.reason == "snapshot" else status.HTTP_409_CONFLICT
  return HTTPException(status_code=status_code, detail=str(exc))


async def retry_validation(payload: JobRetryRequest | None, runtime: JobRuntime) -> JobRetryResponse:
  """Re-run validation and persistence for a failed job from its snapshot."""
  job_id = _require_job_id(payload.job_id if payload else None, _JOB_ID_REQUIRED_MSG)
  _get_record(runtime, job_id)
  try:
    record = await runtime.orchestrator.retry_validation(job_id)
  except JobNotFoundError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG) from exc
  except RetryNotAllowedError as exc:
    raise _retry_error(exc) from exc
  logger.info("Validation retry for job %s finished with status %s", job_id, record.status)
  return _retry_response(record)


async def retry_persistence(payload: JobRetryRequest | None, runtime: JobRuntime) -> JobRetryResponse:
  """Re-run persistence for a failed job without regenerating."""
  job_id = _require_job_id(payload.job_id if payload else None, _JOB_ID_REQUIRED_MSG)
  _get_record(runtime, job_id)
  try:
    record = await runtime.orchestrator.retry_persistence(job_id)
  except JobNotFoundError as exc:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=_JOB_NOT_FOUND_MSG) from exc
  except RetryNotAllowedError as exc:
    raise _retry_error(exc) from exc
  logger.info("Persistence retry for job %s finished with status %s", job_id, record.status)
  return _retry_response(record)
