from __future__ import annotations

import json

import pytest

from mcqgen.ai.agents.validator import ValidatorAgent
from mcqgen.ai.errors import ValidatorOutputError
from mcqgen.ai.pipeline.contracts import TopicValidationPayload
from mcqgen.ai.providers.base import ModelResponse
from mcqgen.ai.validation_loop import ValidationLoop
from tests.support import ScriptedValidationModel, StatusError, make_topic, overloaded, rate_limited, replacement_dict, validation_response, verdicts_json


def _loop(model: ScriptedValidationModel, max_attempts: int = 2) -> ValidationLoop:
  return ValidationLoop(ValidatorAgent(model, initial_delay_ms=1), max_attempts=max_attempts)


@pytest.mark.anyio
async def test_validator_agent_repairs_fenced_output_and_keeps_sent_topic() -> None:
  raw = '```json\n{"topic": "cells (paraphrased)", "verdicts": [{"index": 0, "verdict": "approve",},]}\n```'
  model = ScriptedValidationModel([validation_response(raw)])
  agent = ValidatorAgent(model)

  result = await agent.validate_topic(TopicValidationPayload.from_topic(make_topic("Cells", 1)))

  assert result.topic == "Cells"
  assert result.verdicts[0].verdict == "approve"
  assert result.usage == {"input_tokens": 20, "output_tokens": 10, "total_tokens": 30}
  prompt = model.prompts[0]
  assert "Topic: Cells" in prompt
  assert "    A) Q0 option A" in prompt
  assert "Provided correct answer: A" in prompt
  assert "Source snippet: Snippet 0" in prompt


@pytest.mark.anyio
@pytest.mark.parametrize("content", ["", "[1, 2, 3]"])
async def test_validator_agent_rejects_unusable_output(content: str) -> None:
  agent = ValidatorAgent(ScriptedValidationModel([ModelResponse(content=content)]))

  with pytest.raises(ValidatorOutputError):
    await agent.validate_topic(TopicValidationPayload.from_topic(make_topic("Cells", 1)))


@pytest.mark.anyio
async def test_all_approved_on_first_attempt() -> None:
  model = ScriptedValidationModel([validation_response(verdicts_json("Cells", 12))])
  usage: list[dict | None] = []

  outcome = await _loop(model).run([make_topic("Cells", 12)], on_usage=usage.append)

  assert outcome.summary.overall_status == "approved"
  assert outcome.excluded_topics == []
  assert outcome.attempts == 1
  assert len(outcome.topics[0].items) == 12
  assert usage == [{"input_tokens": 20, "output_tokens": 10, "total_tokens": 30}]


@pytest.mark.anyio
async def test_replacement_is_merged_then_approved_on_second_attempt() -> None:
  topic = make_topic("Cells", 12)
  model = ScriptedValidationModel(
    [
      validation_response(verdicts_json("Cells", 12, rejections={3: replacement_dict("Which organelle makes ATP?")})),
      validation_response(verdicts_json("Cells", 12)),
    ]
  )
  logs: list[str] = []

  outcome = await _loop(model).run([topic], on_log=logs.append)

  assert outcome.attempts == 2
  assert outcome.replacements_applied == 1
  assert outcome.summary.overall_status == "approved"
  replaced = outcome.topics[0].items[3]
  assert replaced.stem == "Which organelle makes ATP?"
  assert replaced.options == ["Replacement A", "Replacement B", "Replacement C", "Replacement D"]
  assert replaced.source_spans == topic.items[3].source_spans
  # The caller's topics are untouched.
  assert topic.items[3].stem == "Question 3?"
  # The second request carries the replacement.
  assert "Stem: Which organelle makes ATP?" in model.prompts[1]
  assert any("Applied 1 replacement" in line for line in logs)


@pytest.mark.anyio
async def test_rejection_without_replacement_excludes_topic() -> None:
  model = ScriptedValidationModel(
    [
      validation_response(verdicts_json("Cells", 10, rejections={0: None})),
      validation_response(verdicts_json("Plants", 10)),
    ]
  )

  outcome = await _loop(model).run([make_topic("Cells", 10), make_topic("Plants", 10)])

  assert outcome.excluded_topics == ["Cells"]
  assert [topic.topic for topic in outcome.topics] == ["Plants"]
  assert outcome.summary.overall_status == "mixed"
  assert outcome.summary.excluded_topics == ["Cells"]
  # The failed topic is not resubmitted.
  assert outcome.attempts == 1


@pytest.mark.anyio
async def test_every_topic_excluded_reports_rejected() -> None:
  model = ScriptedValidationModel([validation_response(verdicts_json("Cells", 1, rejections={0: None}))])

  outcome = await _loop(model).run([make_topic("Cells", 1)])

  assert outcome.all_rejected
  assert outcome.summary.overall_status == "rejected"


@pytest.mark.anyio
async def test_out_of_range_reject_counts_as_missing_replacement() -> None:
  content = json.dumps({"topic": "Cells", "verdicts": [{"index": 40, "verdict": "reject", "replacement_mcq": replacement_dict("Ghost?")}]})
  model = ScriptedValidationModel([validation_response(content)])

  outcome = await _loop(model).run([make_topic("Cells", 10)])

  assert outcome.excluded_topics == ["Cells"]


@pytest.mark.anyio
async def test_replacements_on_final_attempt_are_kept() -> None:
  rejection = {1: replacement_dict("Final rewrite?")}
  model = ScriptedValidationModel([validation_response(verdicts_json("Cells", 10, rejections=rejection))])

  outcome = await _loop(model, max_attempts=1).run([make_topic("Cells", 10)])

  assert outcome.excluded_topics == []
  assert outcome.topics[0].items[1].stem == "Final rewrite?"
  assert outcome.summary.overall_status == "mixed"


@pytest.mark.anyio
async def test_rate_limited_validator_call_is_retried() -> None:
  model = ScriptedValidationModel([rate_limited(), validation_response(verdicts_json("Cells", 10))])
  waits: list[int] = []

  outcome = await _loop(model).run([make_topic("Cells", 10)], on_retry=lambda _attempt, delay, _exc: waits.append(delay))

  assert outcome.summary.overall_status == "approved"
  assert waits == [1]


@pytest.mark.anyio
async def test_overload_propagates() -> None:
  model = ScriptedValidationModel([overloaded()])

  with pytest.raises(StatusError):
    await _loop(model).run([make_topic("Cells", 10)])


@pytest.mark.anyio
async def test_validator_agent_reports_usage_before_rejecting_output() -> None:
  agent = ValidatorAgent(ScriptedValidationModel([validation_response("")]))
  usage: list[dict | None] = []

  with pytest.raises(ValidatorOutputError):
    await agent.validate_topic(TopicValidationPayload.from_topic(make_topic("Cells", 1)), on_usage=usage.append)

  assert usage == [{"input_tokens": 20, "output_tokens": 10, "total_tokens": 30}]


@pytest.mark.anyio
async def test_every_standing_topic_is_rechecked_after_a_replacement() -> None:
  model = ScriptedValidationModel(
    [
      validation_response(verdicts_json("Photosynthesis", 10)),
      validation_response(verdicts_json("Respiration", 10, rejections={4: replacement_dict("Where does glycolysis happen?")})),
      validation_response(verdicts_json("Photosynthesis", 10)),
      validation_response(verdicts_json("Respiration", 10)),
    ]
  )

  outcome = await _loop(model, max_attempts=3).run([make_topic("Photosynthesis", 10), make_topic("Respiration", 10)])

  assert len(model.prompts) == 4
  assert outcome.attempts == 2
  assert "Topic: Photosynthesis" in model.prompts[2]
  assert "Stem: Where does glycolysis happen?" in model.prompts[3]
  assert outcome.summary.overall_status == "approved"
