"""Ad hoc validation of caller-supplied MCQ sets, outside any job."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, status

from mcqgen.ai.errors import ValidatorOutputError, is_overloaded
from mcqgen.ai.pipeline.contracts import OPTION_COUNT, OPTION_LETTERS, TokenUsageTotals, TopicValidationPayload, TopicValidationResult, ValidationQuestion, ValidatorSummary
from mcqgen.api.models import ValidateMcqsRequest, ValidateMcqsResponse
from mcqgen.services.jobs import JobRuntime

logger = logging.getLogger(__name__)


def _bad_request(message: str) -> HTTPException:
  return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


def _optional_text(value: Any) -> str | None:
  return value if isinstance(value, str) and value else None


def _validate_question(position: int, question: Any) -> ValidationQuestion:
  """Check one question's shape and convert it into the validator contract."""
  if not isinstance(question, dict) or not isinstance(question.get("stem"), str) or not isinstance(question.get("explanation"), str):
    raise _bad_request("Each question requires stem and explanation.")
  options = question.get("options")
  if not isinstance(options, list) or len(options) != OPTION_COUNT:
    raise _bad_request("Each question must include exactly four options.")
  correct_letter = question.get("correctLetter")
  if not isinstance(correct_letter, str) or correct_letter not in OPTION_LETTERS:
    raise _bad_request("correctLetter must be one of A, B, C, D.")

  # Callers may number questions themselves; fall back to list position.
  index = question.get("index")
  return ValidationQuestion(
    index=index if isinstance(index, int) and not isinstance(index, bool) else position,
    stem=question["stem"],
    options=[str(option) for option in options],
    correct_letter=correct_letter,
    explanation=question["explanation"],
    source_snippet=_optional_text(question.get("sourceSnippet")),
    bloom=_optional_text(question.get("bloom")),
    difficulty=_optional_text(question.get("difficulty")),
    type=_optional_text(question.get("type")),
  )


def _validate_items(items: Any) -> list[TopicValidationPayload]:
  """Enforce the request shape, rejecting the first violation with a 400."""
  if not isinstance(items, list) or not items:
    raise _bad_request("Request must include a non-empty items array.")

  payloads: list[TopicValidationPayload] = []
  for item in items:
    if not isinstance(item, dict):
      raise _bad_request("Each item must be an object.")
    topic = item.get("topic")
    if not isinstance(topic, str) or not topic.strip():
      raise _bad_request("Each payload requires a topic.")
    questions = item.get("questions")
    if not isinstance(questions, list) or not questions:
      raise _bad_request("Each payload requires a non-empty questions array.")
    payloads.append(TopicValidationPayload(topic=topic.strip(), questions=[_validate_question(position, question) for position, question in enumerate(questions)]))
  return payloads


def _overall_status(results: list[TopicValidationResult]) -> str:
  rejected = [result for result in results if result.rejections]
  if not rejected:
    return "approved"
  if len(rejected) == len(results):
    return "rejected"
  return "mixed"


async def validate_mcqs(request: ValidateMcqsRequest | None, runtime: JobRuntime) -> ValidateMcqsResponse:
  """Run one validator pass per topic and report verdicts without repairing anything."""
  payloads = _validate_items(request.items if request else None)
  usage = TokenUsageTotals()
  results: list[TopicValidationResult] = []

  try:
    for payload in payloads:
      logger.info("Validating topic %r with %d question(s)", payload.topic, len(payload.questions))
      results.append(await runtime.validator.validate_topic(payload, on_usage=usage.add))
  except ValidatorOutputError as exc:
    raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
  except Exception as exc:
    # Overload is transient and worth a client retry; anything else is a server error.
    if is_overloaded(exc):
      raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Validator is overloaded; try again later.") from exc
    raise

  summary = ValidatorSummary(overall_status=_overall_status(results), topic_summaries=results)
  return ValidateMcqsResponse(summary=summary, usage_totals=usage)
