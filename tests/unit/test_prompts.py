from __future__ import annotations

from mcqgen.ai.agents.prompts import build_instruction_prompt, build_mcq_schema, build_rubric, build_user_prompt, build_validation_prompt, schema_name_for_topic
from mcqgen.ai.pipeline.contracts import TopicValidationPayload
from tests.support import make_topic


def test_rubric_carries_configured_bounds() -> None:
  rubric = build_rubric(10, 15)
  assert "Produce 10-15 MCQs" in rubric
  assert '"mcqs": [' in rubric


def test_instruction_prompt_appends_chapter_and_topic_focus() -> None:
  prompt = build_instruction_prompt(
    topic_name="Respiration", topic_description="Energy release in cells.", chapter_number=6, chapter_title="Life Processes", topic_index=0, total_topics=3, min_questions=10, max_questions=15
  )

  assert prompt.endswith('Chapter focus: Chapter 6 – "Life Processes".\nTopic focus (1 of 3): Respiration.\nTopic summary: Energy release in cells.')


def test_user_prompt_names_topic_and_description() -> None:
  prompt = build_user_prompt(topic_name="Respiration", topic_description="Energy release in cells")
  assert '"Respiration"' in prompt
  assert "Energy release in cells" in prompt


def test_schema_bounds_and_name() -> None:
  schema = build_mcq_schema(10, 15)
  mcqs = schema["properties"]["mcqs"]

  assert mcqs["minItems"] == 10
  assert mcqs["maxItems"] == 15
  assert schema["additionalProperties"] is False
  assert schema_name_for_topic(0) == "mcq_batch_topic_1"


def test_validation_prompt_lists_every_question() -> None:
  prompt = build_validation_prompt(TopicValidationPayload.from_topic(make_topic("Cells", 3, correct_index=1)))

  assert "Topic: Cells\nQuestions:\n" in prompt
  assert prompt.count("Provided correct answer: B") == 3
  assert "  - Index: 2" in prompt
  assert "    D) Q2 option D" in prompt
