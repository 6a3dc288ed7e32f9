"""Domain models for asynchronous MCQ generation jobs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from mcqgen.ai.pipeline.contracts import TokenUsageTotals, TopicMcqs, ValidatorSummary

JobStatus = Literal["pending", "processing", "succeeded", "failed"]
FailureKind = Literal["generation", "validation", "overloaded", "persistence", "rejected", "internal"]

logger = logging.getLogger(__name__)

_ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
  "pending": frozenset({"processing"}),
  "processing": frozenset({"succeeded", "failed"}),
  "succeeded": frozenset(),
  "failed": frozenset({"processing"}),
}


def now_iso() -> str:
  return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class InvalidJobTransition(RuntimeError):
  """Raised when a job is moved along an edge the lifecycle does not allow."""

  def __init__(self, job_id: str, current: str, target: str) -> None:
    super().__init__(f"Job {job_id} cannot move from {current} to {target}.")
    self.job_id = job_id
    self.current = current
    self.target = target


class NamedRef(BaseModel):
  """Identifier plus display name of a subject or syllabus."""

  model_config = ConfigDict(frozen=True)

  id: int
  name: str


class TopicSummary(BaseModel):
  """Topic name and description as extracted from the chapter."""

  model_config = ConfigDict(frozen=True, populate_by_name=True)

  name: str = Field(min_length=1, validation_alias=AliasChoices("name", "topic"))
  description: str = ""

  @field_validator("name")
  @classmethod
  def strip_name(cls, value: str) -> str:
    stripped = value.strip()
    if not stripped:
      raise ValueError("Topic name must not be blank.")
    return stripped


class JobPayload(BaseModel):
  """Immutable input of one MCQ job."""

  model_config = ConfigDict(frozen=True)

  chapter_number: int
  chapter_title: str = Field(min_length=1)
  class_level: int
  subject: NamedRef
  syllabus: NamedRef
  topics: tuple[TopicSummary, ...] = Field(min_length=1)
  vector_store_id: str = Field(min_length=1)
  book_fingerprint: str | None = None

  @field_validator("chapter_title", "vector_store_id")
  @classmethod
  def reject_blank(cls, value: str) -> str:
    stripped = value.strip()
    if not stripped:
      raise ValueError("Value must not be blank.")
    return stripped

  @field_validator("topics")
  @classmethod
  def unique_topic_names(cls, value: tuple[TopicSummary, ...]) -> tuple[TopicSummary, ...]:
    names = [topic.name for topic in value]
    if len(set(names)) != len(names):
      raise ValueError("Topic names must be unique within a job.")
    return value


@dataclass
class JobRecord:
  """Represents one MCQ job and everything it produced so far."""

  job_id: str
  payload: JobPayload
  status: JobStatus = "pending"
  created_at: str = field(default_factory=now_iso)
  updated_at: str = field(default_factory=now_iso)
  logs: list[str] = field(default_factory=list)
  summary: ValidatorSummary | None = None
  openai_usage: TokenUsageTotals = field(default_factory=TokenUsageTotals)
  anthropic_usage: TokenUsageTotals = field(default_factory=TokenUsageTotals)
  error: str | None = None
  failure_kind: FailureKind | None = None
  result_csv: bytes | None = None
  output_filename: str | None = None
  generated_topics: list[TopicMcqs] | None = None
  validated_topics: list[TopicMcqs] | None = None
  allow_validation_retry: bool = False
  allow_persistence_retry: bool = False
  # Held by whichever coroutine is currently advancing this job.
  lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

  @property
  def has_snapshot(self) -> bool:
    return bool(self.generated_topics)

  def touch(self) -> None:
    self.updated_at = now_iso()

  def append_log(self, message: str) -> None:
    self.logs.append(f"[{now_iso()}] {message}")
    logger.info("Job %s: %s", self.job_id, message)
    self.touch()

  def transition(self, target: JobStatus) -> None:
    """Move to ``target`` or raise when the lifecycle forbids it."""
    if target not in _ALLOWED_TRANSITIONS[self.status]:
      raise InvalidJobTransition(self.job_id, self.status, target)
    self.status = target
    self.touch()
