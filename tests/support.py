"""Fakes and builders shared by the unit and integration tests."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from mcqgen.ai.pipeline.contracts import OPTION_LETTERS, McqItem, TopicMcqs
from mcqgen.ai.providers.base import ModelResponse
from mcqgen.jobs.models import JobPayload, NamedRef, TopicSummary
from mcqgen.storage.mcq_repo import ChapterContext, PersistenceReport


class StatusError(Exception):
  """Upstream error carrying an HTTP status like the SDK exceptions do."""

  def __init__(self, status_code: int, message: str = "upstream error") -> None:
    super().__init__(message)
    self.status_code = status_code


def rate_limited() -> StatusError:
  return StatusError(429, "rate_limit_error")


def overloaded() -> StatusError:
  return StatusError(529, "overloaded_error")


def mcq_dict(index: int, *, correct_index: int = 0, stem: str | None = None) -> dict[str, Any]:
  return {
    "bloom": "Remember",
    "difficulty": "Easy",
    "stem": stem or f"Question {index}?",
    "options": [f"Q{index} option {letter}" for letter in OPTION_LETTERS],
    "correct_index": correct_index,
    "explanation": f"Explanation for question {index}.",
    "type": "recall",
    "source_spans": [{"page": index, "text_snippet": f"Snippet {index}"}],
  }


def mcq_batch_json(count: int, *, correct_index: int = 0) -> str:
  return json.dumps({"mcqs": [mcq_dict(index, correct_index=correct_index) for index in range(count)]})


def make_item(index: int, *, correct_index: int = 0) -> McqItem:
  return McqItem.model_validate(mcq_dict(index, correct_index=correct_index))


def make_topic(name: str, count: int, *, correct_index: int = 0) -> TopicMcqs:
  return TopicMcqs(topic=name, items=[make_item(index, correct_index=correct_index) for index in range(count)])


def replacement_dict(stem: str, *, correct_index: int = 2) -> dict[str, Any]:
  return {
    "stem": stem,
    "options": ["Replacement A", "Replacement B", "Replacement C", "Replacement D"],
    "correct_index": correct_index,
    "explanation": "Replacement explanation.",
  }


def verdicts_json(topic: str, count: int, *, rejections: dict[int, dict[str, Any] | None] | None = None) -> str:
  """Build validator output approving every index except the rejected ones."""
  rejections = rejections or {}
  verdicts = []
  for index in range(count):
    if index in rejections:
      verdicts.append({"index": index, "verdict": "reject", "reasons": ["Answer not supported."], "replacement_mcq": rejections[index]})
    else:
      verdicts.append({"index": index, "verdict": "approve", "reasons": [], "explanationAlignment": "strong", "correctAnswerConfirmed": True, "confidence": "high"})
  return json.dumps({"topic": topic, "verdicts": verdicts})


def sample_payload(topics: tuple[str, ...] = ("Photosynthesis",), *, chapter_number: int = 3) -> JobPayload:
  return JobPayload(
    chapter_number=chapter_number,
    chapter_title="Life Processes",
    class_level=7,
    subject=NamedRef(id=11, name="Science"),
    syllabus=NamedRef(id=2, name="CBSE"),
    topics=tuple(TopicSummary(name=name, description=f"All about {name}.") for name in topics),
    vector_store_id="vs_test",
  )


@dataclass
class ScriptedGenerationModel:
  """Generation model that replays scripted responses or raises scripted errors."""

  script: list[ModelResponse | BaseException]
  name: str = "fake-generator"
  calls: list[dict[str, Any]] = field(default_factory=list)

  async def generate_structured(self, *, instructions: str, prompt: str, vector_store_id: str, schema: dict[str, Any], schema_name: str) -> ModelResponse:
    self.calls.append({"instructions": instructions, "prompt": prompt, "vector_store_id": vector_store_id, "schema_name": schema_name})
    step = self.script.pop(0)
    if isinstance(step, BaseException):
      raise step
    return step


@dataclass
class ScriptedValidationModel:
  """Validation model that replays scripted responses or raises scripted errors."""

  script: list[ModelResponse | BaseException]
  name: str = "fake-validator"
  prompts: list[str] = field(default_factory=list)

  async def generate(self, *, system: str, prompt: str) -> ModelResponse:
    self.prompts.append(prompt)
    step = self.script.pop(0)
    if isinstance(step, BaseException):
      raise step
    return step


def generation_response(count: int, *, correct_index: int = 0) -> ModelResponse:
  return ModelResponse(content=mcq_batch_json(count, correct_index=correct_index), usage={"input_tokens": 100, "output_tokens": 50, "total_tokens": 150})


def validation_response(content: str) -> ModelResponse:
  return ModelResponse(content=content, usage={"input_tokens": 20, "output_tokens": 10, "total_tokens": 30})


class InMemoryMcqRepository:
  """In-memory writer with the same full-replace semantics as the Postgres repository."""

  def __init__(self, failures: int = 0) -> None:
    self.failures = failures
    self.calls = 0
    self.questions: dict[tuple[int, str, int], list[dict[str, Any]]] = {}

  async def persist_topics(self, chapter: ChapterContext, topics: list[TopicMcqs]) -> PersistenceReport:
    self.calls += 1
    if self.failures > 0:
      self.failures -= 1
      raise ConnectionError("database connection lost")

    topic_ids: dict[str, int] = {}
    count = 0
    for position, topic in enumerate(topics, start=1):
      key = (chapter.subject_id, topic.topic, chapter.class_level)
      self.questions[key] = [{"question_text": item.stem, "options": list(item.options), "correct_answer": item.correct_letter, "explanation": item.explanation} for item in topic.items]
      topic_ids[topic.topic] = position
      count += len(topic.items)
    return PersistenceReport(chapter_id=1, topic_ids=topic_ids, question_count=count)
