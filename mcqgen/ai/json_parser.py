"""Lenient JSON parsing helpers for LLM outputs."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

import json_repair

logger = logging.getLogger(__name__)

_OPENING_FENCE_RE = re.compile(r"^```[a-zA-Z]*\n?")


def strip_json_fences(raw: str) -> str:
  """Remove a surrounding markdown code fence from model output."""
  trimmed = raw.strip()
  if not trimmed.startswith("```"):
    return trimmed

  body = _OPENING_FENCE_RE.sub("", trimmed, count=1)
  closing = body.rfind("```")
  if closing != -1:
    body = body[:closing]
  return body.strip()


def parse_json_with_repair(raw: str, *, context: str = "model output") -> Any:
  """Parse JSON strictly, falling back to a single json_repair pass."""
  cleaned = strip_json_fences(raw)
  if not cleaned:
    raise ValueError(f"Empty JSON payload in {context}.")

  try:
    return json.loads(cleaned)
  except json.JSONDecodeError as exc:
    logger.warning("Failed to parse %s as JSON (%s); attempting repair.", context, exc)

  repaired = json_repair.loads(cleaned)
  # json_repair returns an empty string when nothing JSON-shaped survived.
  if repaired in ("", None):
    raise ValueError(f"Unable to repair JSON in {context}.")
  logger.info("Repaired JSON for %s.", context)
  return repaired
