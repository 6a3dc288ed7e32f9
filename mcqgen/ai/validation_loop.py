"""Bounded validate-and-repair loop over generated topic batches."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from mcqgen.ai.agents.validator import UsageHook, ValidatorAgent
from mcqgen.ai.backoff import RetryHook
from mcqgen.ai.pipeline.contracts import TopicMcqs, TopicValidationPayload, TopicValidationResult, ValidatorSummary

logger = logging.getLogger(__name__)

LogHook = Callable[[str], None]


@dataclass
class ValidationOutcome:
  """Topics that survived validation plus the aggregate summary."""

  topics: list[TopicMcqs]
  excluded_topics: list[str]
  summary: ValidatorSummary
  attempts: int = 0
  replacements_applied: int = 0

  @property
  def all_rejected(self) -> bool:
    return not self.topics


def _summarize(results: dict[str, TopicValidationResult], topic_order: list[str], excluded: list[str]) -> ValidatorSummary:
  ordered = [results[name] for name in topic_order if name in results]
  if excluded and len(excluded) == len(topic_order):
    status = "rejected"
  elif excluded or any(result.rejections for result in ordered):
    status = "mixed"
  else:
    status = "approved"
  return ValidatorSummary(overall_status=status, topic_summaries=ordered, excluded_topics=list(excluded))


class ValidationLoop:
  """Validate every topic, merge offered replacements and retry up to a bound."""

  def __init__(self, agent: ValidatorAgent, *, max_attempts: int = 2) -> None:
    if max_attempts < 1:
      raise ValueError("max_attempts must be at least 1.")
    self._agent = agent
    self._max_attempts = max_attempts

  async def run(self, topics: list[TopicMcqs], *, on_log: LogHook | None = None, on_usage: UsageHook | None = None, on_retry: RetryHook | None = None) -> ValidationOutcome:
    """Run the loop on a private copy of ``topics``; the input is never mutated."""

    def _log(message: str) -> None:
      # Job logs are mirrored to the module logger by the job record itself.
      if on_log is None:
        logger.info(message)
        return
      on_log(message)

    working = [topic.model_copy(deep=True) for topic in topics]
    by_name = {topic.topic: topic for topic in working}
    topic_order = [topic.topic for topic in working]
    latest: dict[str, TopicValidationResult] = {}
    failed: set[str] = set()
    active = list(topic_order)
    attempts = 0
    replacements_total = 0
    repaired: list[str] = []

    while active and attempts < self._max_attempts:
      attempts += 1
      _log(f"Validation attempt {attempts} of {self._max_attempts} for {len(active)} topic(s).")
      applied_this_attempt = 0
      repaired = []

      for name in active:
        topic = by_name[name]
        result = await self._agent.validate_topic(TopicValidationPayload.from_topic(topic), on_retry=on_retry, on_usage=on_usage)
        latest[name] = result

        rejections = result.rejections
        if not rejections:
          _log(f'Topic "{name}" approved by validator.')
          continue

        # Overwrite rejected items in place; the fallback fills fields the replacement omits.
        applied = 0
        missing_replacement = False
        for verdict in rejections:
          position = verdict.index
          if verdict.replacement_mcq is None or position < 0 or position >= len(topic.items):
            missing_replacement = True
            continue
          topic.items[position] = verdict.replacement_mcq.merge_into(topic.items[position])
          applied += 1

        replacements_total += applied
        applied_this_attempt += applied
        # One rejection without a usable replacement fails the whole topic.
        if missing_replacement or applied == 0:
          failed.add(name)
          _log(f'Topic "{name}" failed validation: {len(rejections)} rejection(s), {applied} usable replacement(s).')
          continue

        _log(f'Applied {applied} replacement(s) for topic "{name}".')
        repaired.append(name)

      # Another attempt only follows a round that changed content, and it covers every topic still standing.
      if applied_this_attempt == 0:
        active = []
        break
      active = [name for name in topic_order if name not in failed]

    # Topics whose replacements landed on the final attempt are kept as repaired.
    if active and repaired:
      _log(f"Attempt limit reached; keeping repaired content for {len(repaired)} topic(s).")

    excluded = [name for name in topic_order if name in failed]
    surviving = [by_name[name] for name in topic_order if name not in failed]
    if excluded:
      _log(f"Excluded topic(s) after validation: {', '.join(excluded)}.")
    summary = _summarize(latest, topic_order, excluded)
    return ValidationOutcome(topics=surviving, excluded_topics=excluded, summary=summary, attempts=attempts, replacements_applied=replacements_total)
