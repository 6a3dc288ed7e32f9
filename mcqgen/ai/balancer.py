"""Greedy redistribution of correct-answer letters across a job."""

from __future__ import annotations

import random

from mcqgen.ai.pipeline.contracts import OPTION_COUNT, McqItem, pad_options


def new_letter_counts() -> list[int]:
  return [0] * OPTION_COUNT


def select_balanced_index(counts: list[int], rng: random.Random) -> int:
  """Pick a letter position with the lowest count, breaking ties at random."""
  lowest = min(counts)
  candidates = [position for position, count in enumerate(counts) if count == lowest]
  return rng.choice(candidates)


def rebalance_correct_options(items: list[McqItem], counts: list[int], rng: random.Random | None = None) -> list[McqItem]:
  """Move each correct option to the least used letter and shuffle the distractors.

  ``counts`` is updated in place so successive topics of one job balance globally.
  """
  if len(counts) != OPTION_COUNT:
    raise ValueError(f"counts must have {OPTION_COUNT} entries.")
  rng = rng or random.Random()

  balanced: list[McqItem] = []
  for item in items:
    options = pad_options(item.options)
    correct_text = options[item.correct_index]
    distractors = [option for position, option in enumerate(options) if position != item.correct_index]
    rng.shuffle(distractors)

    target = select_balanced_index(counts, rng)
    remaining = iter(distractors)
    reordered = [correct_text if position == target else next(remaining) for position in range(OPTION_COUNT)]
    counts[target] += 1
    balanced.append(item.model_copy(update={"options": reordered, "correct_index": target}, deep=True))
  return balanced
