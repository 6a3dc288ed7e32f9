"""Per-topic MCQ generation against the indexed book content."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import ValidationError

from mcqgen.ai.agents.prompts import build_instruction_prompt, build_mcq_schema, build_user_prompt, schema_name_for_topic
from mcqgen.ai.backoff import RetryHook, retry_with_backoff
from mcqgen.ai.errors import GenerationError
from mcqgen.ai.json_parser import parse_json_with_repair
from mcqgen.ai.pipeline.contracts import McqBatch, McqItem
from mcqgen.ai.providers.base import GenerationModel, ModelResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TopicRequest:
  """Everything the generator needs to know about one topic of a chapter."""

  name: str
  description: str
  chapter_number: int
  chapter_title: str
  vector_store_id: str
  topic_index: int
  total_topics: int


@dataclass
class GeneratedTopic:
  items: list[McqItem]
  usage: dict[str, int] | None = None


class McqGenerator:
  """Generate a validated MCQ list for a single topic."""

  def __init__(self, model: GenerationModel, *, min_questions: int = 10, max_questions: int = 15, max_attempts: int = 5, initial_delay_ms: int = 2000) -> None:
    if min_questions > max_questions:
      raise ValueError("min_questions must not exceed max_questions.")
    self._model = model
    self._min_questions = min_questions
    self._max_questions = max_questions
    self._max_attempts = max_attempts
    self._initial_delay_ms = initial_delay_ms

  async def generate_for_topic(self, request: TopicRequest, *, on_retry: RetryHook | None = None) -> GeneratedTopic:
    """Run the grounded generation call and parse its output into MCQ items."""
    instructions = build_instruction_prompt(
      topic_name=request.name,
      topic_description=request.description,
      chapter_number=request.chapter_number,
      chapter_title=request.chapter_title,
      topic_index=request.topic_index,
      total_topics=request.total_topics,
      min_questions=self._min_questions,
      max_questions=self._max_questions,
    )
    prompt = build_user_prompt(topic_name=request.name, topic_description=request.description)
    schema = build_mcq_schema(self._min_questions, self._max_questions)
    schema_name = schema_name_for_topic(request.topic_index)

    async def _call() -> ModelResponse:
      return await self._model.generate_structured(instructions=instructions, prompt=prompt, vector_store_id=request.vector_store_id, schema=schema, schema_name=schema_name)

    # Only the upstream call is retried; parse failures are final.
    response = await retry_with_backoff(_call, max_attempts=self._max_attempts, initial_delay_ms=self._initial_delay_ms, label=f'generation for topic "{request.name}"', on_retry=on_retry)
    items = self._parse_items(response.content, request.name)
    logger.info("Generated %d MCQs for topic %r", len(items), request.name)
    return GeneratedTopic(items=items, usage=response.usage)

  def _parse_items(self, content: str, topic_name: str) -> list[McqItem]:
    if not content or not content.strip():
      raise GenerationError(f'OpenAI returned an empty MCQ payload for topic "{topic_name}".')

    try:
      parsed = parse_json_with_repair(content, context=f'MCQ payload for topic "{topic_name}"')
    except ValueError as exc:
      raise GenerationError(f'Failed to parse MCQ JSON response for topic "{topic_name}".') from exc

    if not isinstance(parsed, dict) or not isinstance(parsed.get("mcqs"), list) or not parsed["mcqs"]:
      raise GenerationError(f'Model did not return any MCQs for topic "{topic_name}".')

    try:
      batch = McqBatch.model_validate(parsed)
    except ValidationError as exc:
      raise GenerationError(f'Model returned malformed MCQs for topic "{topic_name}": {exc.error_count()} invalid field(s).') from exc

    count = len(batch.mcqs)
    if count < self._min_questions or count > self._max_questions:
      raise GenerationError(f'Model returned {count} MCQs for topic "{topic_name}"; expected between {self._min_questions} and {self._max_questions}.')
    return batch.mcqs
