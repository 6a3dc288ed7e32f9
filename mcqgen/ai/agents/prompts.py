"""Prompt builders and output schema for MCQ generation and validation."""

from __future__ import annotations

from typing import Any

from mcqgen.ai.pipeline.contracts import BLOOM_LEVELS, DIFFICULTIES, OPTION_COUNT, OPTION_LETTERS, QUESTION_TYPES, TopicValidationPayload

_RUBRIC_TEMPLATE = """You are a K-12 curriculum expert and assessment designer.

Goal: Generate high-quality MCQs strictly from the provided book PDF.

Quantity per topic
- Produce {min_questions}-{max_questions} MCQs (decide by topic size/complexity).
- Keep questions varied and non-redundant.

Diverse types (mix across the set)
- Direct recall
- Application / word problem
- Assertion-Reason
- Fill-in-the-blank (convert to 4 options; only one correct)
- (Optional) One diagram/figure-based if the text clearly supports it

Bloom's distribution (across the whole set)
- 20% Remember
- 25% Understand
- 25% Apply
- 20% Analyze
- 10% Evaluate/Create

Answer balancing
- Shuffle correct answers among A, B, C, D.
- No single option is correct > 40% of the time across the set.
- The "correct_index" must match the shuffled option (0=A, 1=B, 2=C, 3=D).
- This distribution rule is mandatory; adjust choices internally before responding so it is satisfied.

Explanations
- Friendly teacher tone, step-by-step, suitable for self-study.
- Do NOT prefix with "Correct option is...".
- Provide clear, slightly longer teaching-style notes (1-3 sentences).

Must Rules
- Use only facts present or logically entailed by the topic content in the book.
- Keep stems concise; avoid clues like "All/None of the above".
- Each MCQ must have exactly one correct choice.
- If the topic content is too thin, keep to the minimum count but keep Bloom balance as close as possible.

Formatting & schema (JSON only)
{{
  "mcqs": [
    {{
      "bloom": "Remember|Understand|Apply|Analyze|Evaluate|Create",
      "difficulty": "Easy|Medium|Hard",
      "stem": "string",
      "options": ["A text","B text","C text","D text"],
      "correct_index": 0,
      "explanation": "string",
      "type": "recall|application|assertion-reason|fill-blank|diagram",
      "source_spans": [{{"page": 0, "text_snippet": "string"}}]
    }}
  ]
}}"""

VALIDATOR_SYSTEM_PROMPT = "You are a rigorous assessment validator. Respond only with JSON following the provided schema."

_VALIDATION_HEADER = (
  "You are a meticulous educational assessor tasked with validating a set of multiple-choice questions for a single topic.",
  "For each question, determine whether the provided correct answer and explanation are fully justified by the supplied context.",
  "If a question is flawed, rewrite it so it satisfies the rubric before returning your decision.",
  "Respond in JSON only using this format:",
  "{",
  '  "topic": string,',
  '  "verdicts": [',
  "    {",
  '      "index": number,',
  '      "verdict": "approve" | "reject",',
  '      "reasons": string[],',
  '      "explanationAlignment": "strong" | "weak" | "missing",',
  '      "correctAnswerConfirmed": boolean,',
  '      "confidence": "high" | "medium" | "low",',
  '      "replacement_mcq": null | {',
  '        "bloom": string,',
  '        "difficulty": string,',
  '        "type": string,',
  '        "stem": string,',
  '        "options": string[4],',
  '        "correct_index": 0 | 1 | 2 | 3,',
  '        "explanation": string,',
  '        "source_spans": [{ "page": number | null, "text_snippet": string }]',
  "      }",
  "    }",
  "  ]",
  "}",
  "Each verdict must correspond to the question index provided in the input.",
)


def build_rubric(min_questions: int, max_questions: int) -> str:
  return _RUBRIC_TEMPLATE.format(min_questions=min_questions, max_questions=max_questions)


def build_instruction_prompt(*, topic_name: str, topic_description: str, chapter_number: int, chapter_title: str, topic_index: int, total_topics: int, min_questions: int, max_questions: int) -> str:
  """Build the system instructions for one topic's generation call."""
  rubric = build_rubric(min_questions, max_questions)
  return f'{rubric}\n\nChapter focus: Chapter {chapter_number} – "{chapter_title}".\nTopic focus ({topic_index + 1} of {total_topics}): {topic_name}.\nTopic summary: {topic_description}'


def build_user_prompt(*, topic_name: str, topic_description: str) -> str:
  return f'Create MCQs strictly for the topic "{topic_name}" using only the retrieved book context. Ensure the question set reflects the topic description: {topic_description}.'


def build_mcq_schema(min_questions: int, max_questions: int) -> dict[str, Any]:
  """Return the strict JSON schema the generation model must follow."""
  return {
    "type": "object",
    "additionalProperties": False,
    "required": ["mcqs"],
    "properties": {
      "mcqs": {
        "type": "array",
        "minItems": min_questions,
        "maxItems": max_questions,
        "items": {
          "type": "object",
          "additionalProperties": False,
          "required": ["bloom", "difficulty", "stem", "options", "correct_index", "explanation", "type", "source_spans"],
          "properties": {
            "bloom": {"type": "string", "enum": list(BLOOM_LEVELS)},
            "difficulty": {"type": "string", "enum": list(DIFFICULTIES)},
            "stem": {"type": "string", "minLength": 3},
            "options": {"type": "array", "minItems": OPTION_COUNT, "maxItems": OPTION_COUNT, "items": {"type": "string", "minLength": 1}},
            "correct_index": {"type": "integer", "minimum": 0, "maximum": OPTION_COUNT - 1},
            "explanation": {"type": "string", "minLength": 10},
            "type": {"type": "string", "enum": list(QUESTION_TYPES)},
            "source_spans": {
              "type": "array",
              "minItems": 1,
              "items": {
                "type": "object",
                "required": ["page", "text_snippet"],
                "properties": {"page": {"type": "integer", "minimum": 0}, "text_snippet": {"type": "string", "minLength": 5}},
                "additionalProperties": False,
              },
            },
          },
        },
      }
    },
  }


def schema_name_for_topic(topic_index: int) -> str:
  return f"mcq_batch_topic_{topic_index + 1}"


def build_validation_prompt(payload: TopicValidationPayload) -> str:
  """Render one topic's questions as the validator request."""
  blocks: list[str] = []
  for question in payload.questions:
    details = [f"  - Index: {question.index}", f"    Stem: {question.stem}"]
    details.extend(f"    {OPTION_LETTERS[position]}) {option}" for position, option in enumerate(question.options))
    details.append(f"    Provided correct answer: {question.correct_letter}")
    details.append(f"    Explanation: {question.explanation}")
    if question.bloom:
      details.append(f"    Bloom: {question.bloom}")
    if question.difficulty:
      details.append(f"    Difficulty: {question.difficulty}")
    if question.type:
      details.append(f"    Type: {question.type}")
    if question.source_snippet:
      details.append(f"    Source snippet: {question.source_snippet}")
    blocks.append("\n".join(details))

  header = "\n".join(_VALIDATION_HEADER)
  questions = "\n\n".join(blocks)
  return f"{header}\n\nTopic: {payload.topic}\nQuestions:\n{questions}"
