"""Error types and upstream status classification for the MCQ pipeline."""

from __future__ import annotations

RATE_LIMIT_STATUS = 429
OVERLOADED_STATUS = 529


class RetryExhaustedError(RuntimeError):
  """Raised when a retried operation ran out of attempts without a captured error."""


class GenerationError(RuntimeError):
  """Raised when the generation step returns unusable output for a topic."""


class ValidatorOutputError(RuntimeError):
  """Raised when the validator response cannot be parsed into verdicts."""


class AllTopicsRejectedError(RuntimeError):
  """Raised when validation excluded every topic of a job."""


class PersistenceError(RuntimeError):
  """Raised when the database transaction for a job was rolled back."""


def upstream_status(exc: BaseException) -> int | None:
  """Return the HTTP status carried by an SDK or HTTP exception, if any."""
  for attribute in ("status_code", "status"):
    value = getattr(exc, attribute, None)
    if isinstance(value, int):
      return value
  # httpx errors keep the status on the attached response.
  response = getattr(exc, "response", None)
  value = getattr(response, "status_code", None)
  if isinstance(value, int):
    return value
  return None


def is_rate_limited(exc: BaseException) -> bool:
  """Return True when the upstream asked us to slow down."""
  return upstream_status(exc) == RATE_LIMIT_STATUS


def is_overloaded(exc: BaseException) -> bool:
  """Return True when the upstream reported it is overloaded."""
  if upstream_status(exc) == OVERLOADED_STATUS:
    return True
  # Anthropic reports overload as an error type even on streaming paths.
  return "overloaded_error" in str(exc).lower()
