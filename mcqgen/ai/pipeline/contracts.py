"""Shared data contracts for the MCQ pipeline."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

BloomLevel = Literal["Remember", "Understand", "Apply", "Analyze", "Evaluate", "Create"]
Difficulty = Literal["Easy", "Medium", "Hard"]
QuestionType = Literal["recall", "application", "assertion-reason", "fill-blank", "diagram"]

BLOOM_LEVELS: tuple[str, ...] = ("Remember", "Understand", "Apply", "Analyze", "Evaluate", "Create")
DIFFICULTIES: tuple[str, ...] = ("Easy", "Medium", "Hard")
QUESTION_TYPES: tuple[str, ...] = ("recall", "application", "assertion-reason", "fill-blank", "diagram")
OPTION_LETTERS: tuple[str, ...] = ("A", "B", "C", "D")
OPTION_COUNT = 4


class CamelModel(BaseModel):
  """Base model that speaks camelCase on the wire."""

  model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def pad_options(options: list[Any]) -> list[str]:
  """Return exactly four option strings, padding short lists with blanks."""
  padded = ["" if option is None else str(option) for option in options[:OPTION_COUNT]]
  while len(padded) < OPTION_COUNT:
    padded.append("")
  return padded


def _coerce_page(value: Any) -> int | None:
  if value is None or isinstance(value, bool):
    return None
  if isinstance(value, int):
    return value
  try:
    return int(str(value).strip())
  except ValueError:
    return None


class SourceSpan(BaseModel):
  """Citation pointing at the page a question was drawn from."""

  page: int | None = None
  text_snippet: str = ""

  @field_validator("page", mode="before")
  @classmethod
  def coerce_page(cls, value: Any) -> int | None:
    return _coerce_page(value)

  @field_validator("text_snippet", mode="before")
  @classmethod
  def coerce_snippet(cls, value: Any) -> str:
    return "" if value is None else str(value)


class McqItem(BaseModel):
  """One generated multiple-choice question."""

  bloom: BloomLevel
  difficulty: Difficulty
  stem: str = Field(min_length=1)
  options: list[str]
  correct_index: int = Field(ge=0, le=OPTION_COUNT - 1)
  explanation: str
  type: QuestionType
  source_spans: list[SourceSpan] | None = None

  @field_validator("options", mode="before")
  @classmethod
  def normalize_options(cls, value: Any) -> list[str]:
    if not isinstance(value, list):
      raise ValueError("options must be a list.")
    if len(value) > OPTION_COUNT:
      raise ValueError(f"options must contain at most {OPTION_COUNT} entries.")
    return pad_options(value)

  @property
  def correct_letter(self) -> str:
    return OPTION_LETTERS[self.correct_index]


class McqBatch(BaseModel):
  """Structured payload returned by the generation model."""

  mcqs: list[McqItem]


class TopicMcqs(BaseModel):
  """MCQ set belonging to one topic of a job."""

  topic: str
  items: list[McqItem]


class ReplacementMcq(BaseModel):
  """Rewritten question offered by the validator for a rejected item."""

  bloom: str | None = None
  difficulty: str | None = None
  type: str | None = None
  stem: str = Field(min_length=1)
  options: list[str]
  correct_index: int = Field(ge=0, le=OPTION_COUNT - 1)
  explanation: str
  source_spans: list[SourceSpan] | None = Field(default=None, validation_alias=AliasChoices("source_spans", "sourceSpans", "sources"))

  @field_validator("options", mode="before")
  @classmethod
  def normalize_options(cls, value: Any) -> list[str]:
    if not isinstance(value, list):
      raise ValueError("options must be a list.")
    return pad_options(value)

  @field_validator("source_spans", mode="after")
  @classmethod
  def drop_empty_spans(cls, value: list[SourceSpan] | None) -> list[SourceSpan] | None:
    return value or None

  def merge_into(self, fallback: McqItem) -> McqItem:
    """Build a full item from this replacement, filling gaps from the fallback."""
    return McqItem(
      bloom=self.bloom if self.bloom in BLOOM_LEVELS else fallback.bloom,
      difficulty=self.difficulty if self.difficulty in DIFFICULTIES else fallback.difficulty,
      type=self.type if self.type in QUESTION_TYPES else fallback.type,
      stem=self.stem,
      options=list(self.options),
      correct_index=self.correct_index,
      explanation=self.explanation,
      source_spans=[span.model_copy() for span in self.source_spans] if self.source_spans else fallback.source_spans,
    )


class ValidationVerdict(CamelModel):
  """Validator judgment on one question."""

  index: int = 0
  verdict: Literal["approve", "reject"]
  reasons: list[str] = Field(default_factory=list)
  explanation_alignment: Literal["strong", "weak", "missing"]
  correct_answer_confirmed: bool
  confidence: Literal["high", "medium", "low"]
  replacement_mcq: ReplacementMcq | None = Field(default=None, validation_alias=AliasChoices("replacement_mcq", "replacementMcq"))

  @model_validator(mode="before")
  @classmethod
  def apply_defaults(cls, values: Any) -> Any:
    if not isinstance(values, dict):
      return values
    data = dict(values)
    replacement = data.get("replacement_mcq", data.get("replacementMcq"))
    # Discard replacements that do not form a usable question.
    if replacement is not None:
      try:
        ReplacementMcq.model_validate(replacement)
      except ValueError:
        replacement = None
      data.pop("replacementMcq", None)
      data["replacement_mcq"] = replacement
    has_replacement = replacement is not None

    verdict = str(data.get("verdict") or "").strip().lower()
    data["verdict"] = verdict if verdict in {"approve", "reject"} else ("reject" if has_replacement else "approve")

    alignment = data.pop("explanationAlignment", data.get("explanation_alignment"))
    data["explanation_alignment"] = alignment if alignment in {"strong", "weak", "missing"} else ("weak" if has_replacement else "strong")

    confirmed = data.pop("correctAnswerConfirmed", data.get("correct_answer_confirmed"))
    data["correct_answer_confirmed"] = confirmed if isinstance(confirmed, bool) else not has_replacement

    confidence = data.get("confidence")
    data["confidence"] = confidence if confidence in {"high", "medium", "low"} else ("medium" if has_replacement else "high")

    reasons = data.get("reasons")
    data["reasons"] = [str(reason) for reason in reasons] if isinstance(reasons, list) else []

    try:
      data["index"] = int(data.get("index") or 0)
    except (TypeError, ValueError):
      data["index"] = -1
    return data


class TokenUsageTotals(CamelModel):
  """Running token counters for one upstream provider."""

  input_tokens: int = 0
  output_tokens: int = 0
  total_tokens: int = 0

  def add(self, usage: dict[str, int] | None) -> None:
    """Accumulate a provider usage record into the totals."""
    if not usage:
      return
    input_tokens = int(usage.get("input_tokens") or 0)
    output_tokens = int(usage.get("output_tokens") or 0)
    self.input_tokens += input_tokens
    self.output_tokens += output_tokens
    self.total_tokens += int(usage.get("total_tokens") or (input_tokens + output_tokens))


class TopicValidationResult(CamelModel):
  """Validator response for one topic."""

  topic: str
  verdicts: list[ValidationVerdict] = Field(default_factory=list)
  usage: dict[str, int] | None = None

  @property
  def rejections(self) -> list[ValidationVerdict]:
    return [verdict for verdict in self.verdicts if verdict.verdict == "reject"]


class ValidatorSummary(CamelModel):
  """Aggregate validation outcome for a job."""

  overall_status: Literal["approved", "mixed", "rejected"]
  topic_summaries: list[TopicValidationResult] = Field(default_factory=list)
  excluded_topics: list[str] = Field(default_factory=list)


class ValidationQuestion(BaseModel):
  """Question as presented to the validator."""

  index: int
  stem: str
  options: list[str]
  correct_letter: str
  explanation: str
  source_snippet: str | None = None
  bloom: str | None = None
  difficulty: str | None = None
  type: str | None = None

  @classmethod
  def from_item(cls, index: int, item: McqItem) -> ValidationQuestion:
    snippet = item.source_spans[0].text_snippet if item.source_spans else None
    return cls(index=index, stem=item.stem, options=list(item.options), correct_letter=item.correct_letter, explanation=item.explanation, source_snippet=snippet or None, bloom=item.bloom, difficulty=item.difficulty, type=item.type)


class TopicValidationPayload(BaseModel):
  """Validator request for one topic."""

  topic: str
  questions: list[ValidationQuestion]

  @classmethod
  def from_topic(cls, topic: TopicMcqs) -> TopicValidationPayload:
    return cls(topic=topic.topic, questions=[ValidationQuestion.from_item(index, item) for index, item in enumerate(topic.items)])
