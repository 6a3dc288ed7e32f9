from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, StrictStr

from mcqgen.ai.pipeline.contracts import CamelModel, TokenUsageTotals, ValidatorSummary
from mcqgen.jobs.models import JobPayload, JobStatus, NamedRef, TopicSummary


class CreateMcqJobRequest(CamelModel):
  """Request payload for starting an MCQ job."""

  chapter_number: int
  chapter_title: StrictStr = Field(min_length=1)
  topics: list[TopicSummary] = Field(min_length=1, description="Topics to generate questions for, in order.")
  vector_store_id: StrictStr = Field(min_length=1, validation_alias=AliasChoices("vectorStoreId", "sourceRef", "vector_store_id"), description="Vector store holding the indexed book.")
  class_level: int
  subject: NamedRef
  syllabus: NamedRef
  book_fingerprint: StrictStr | None = None

  def to_payload(self) -> JobPayload:
    return JobPayload(
      chapter_number=self.chapter_number,
      chapter_title=self.chapter_title,
      class_level=self.class_level,
      subject=self.subject,
      syllabus=self.syllabus,
      topics=tuple(self.topics),
      vector_store_id=self.vector_store_id,
      book_fingerprint=self.book_fingerprint,
    )


class JobCreateResponse(CamelModel):
  """Response payload for job creation."""

  job_id: StrictStr


class JobRetryRequest(CamelModel):
  """Request payload for the retry endpoints."""

  job_id: str | None = None


class JobStatusResponse(CamelModel):
  """Status document polled by clients."""

  job_id: StrictStr
  status: JobStatus
  logs: list[str] = Field(default_factory=list)
  summary: ValidatorSummary | None = None
  error: str | None = None
  created_at: str
  updated_at: str
  open_ai_usage: TokenUsageTotals
  anthropic_usage: TokenUsageTotals
  allow_validation_retry: bool = False
  allow_persistence_retry: bool = False
  output_filename: str | None = None


class JobRetryResponse(CamelModel):
  """Outcome of a retry call."""

  job_id: StrictStr
  status: JobStatus
  error: str | None = None
  allow_validation_retry: bool = False
  allow_persistence_retry: bool = False


class HealthResponse(CamelModel):
  status: str
  version: str


class ValidateMcqsRequest(CamelModel):
  """Ad hoc validation request; item shapes are checked by the service for exact error messages."""

  items: Any = None


class ValidateMcqsResponse(CamelModel):
  """Validator summary plus the Anthropic usage of the run."""

  summary: ValidatorSummary
  usage_totals: TokenUsageTotals
