"""Single-topic call to the validation model."""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import ValidationError

from mcqgen.ai.agents.prompts import VALIDATOR_SYSTEM_PROMPT, build_validation_prompt
from mcqgen.ai.backoff import RetryHook, retry_with_backoff
from mcqgen.ai.errors import ValidatorOutputError
from mcqgen.ai.json_parser import parse_json_with_repair
from mcqgen.ai.pipeline.contracts import TopicValidationPayload, TopicValidationResult
from mcqgen.ai.providers.base import ModelResponse, ValidationModel

UsageHook = Callable[[dict[str, int] | None], None]

logger = logging.getLogger(__name__)


class ValidatorAgent:
  """Ask the validation model for a verdict on every question of a topic."""

  def __init__(self, model: ValidationModel, *, max_attempts: int = 5, initial_delay_ms: int = 2000) -> None:
    self._model = model
    self._max_attempts = max_attempts
    self._initial_delay_ms = initial_delay_ms

  async def validate_topic(self, payload: TopicValidationPayload, *, on_retry: RetryHook | None = None, on_usage: UsageHook | None = None) -> TopicValidationResult:
    """Validate one topic; ``on_usage`` sees the call's usage even when the reply is unusable."""
    prompt = build_validation_prompt(payload)

    async def _call() -> ModelResponse:
      return await self._model.generate(system=VALIDATOR_SYSTEM_PROMPT, prompt=prompt)

    response = await retry_with_backoff(_call, max_attempts=self._max_attempts, initial_delay_ms=self._initial_delay_ms, label=f'validation for topic "{payload.topic}"', on_retry=on_retry)
    # Usage is reported before parsing; unusable replies still count.
    if on_usage is not None:
      on_usage(response.usage)
    if not response.content.strip():
      raise ValidatorOutputError("Anthropic validator returned an empty body.")

    try:
      parsed = parse_json_with_repair(response.content, context=f'validation for topic "{payload.topic}"')
    except ValueError as exc:
      raise ValidatorOutputError(f'Unable to parse validator output for topic "{payload.topic}".') from exc

    if not isinstance(parsed, dict):
      raise ValidatorOutputError(f'Validator output for topic "{payload.topic}" is not a JSON object.')

    # The topic name we sent is authoritative; models sometimes paraphrase it.
    parsed["topic"] = payload.topic
    parsed["usage"] = response.usage
    if not isinstance(parsed.get("verdicts"), list):
      parsed["verdicts"] = []

    try:
      result = TopicValidationResult.model_validate(parsed)
    except ValidationError as exc:
      raise ValidatorOutputError(f'Validator output for topic "{payload.topic}" did not match the verdict schema.') from exc

    logger.debug("Validator returned %d verdict(s) for topic %r", len(result.verdicts), payload.topic)
    return result
