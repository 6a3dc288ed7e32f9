"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from mcqgen.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)

_DEFAULT_ORIGINS = "http://localhost:3000"


@dataclass(frozen=True)
class Settings:
  """Typed settings for the MCQ service."""

  environment: str
  allowed_origins: tuple[str, ...]
  debug: bool
  log_max_bytes: int
  log_backup_count: int
  log_http_4xx: bool
  pg_dsn: str | None
  pg_connect_timeout: int
  openai_api_key: str | None
  openai_model: str
  anthropic_api_key: str | None
  validator_model: str
  validator_max_tokens: int
  generation_max_attempts: int
  generation_initial_delay_ms: int
  validation_max_attempts: int
  min_questions: int
  max_questions: int


@dataclass(frozen=True)
class DatabaseSettings:
  """Typed settings for database connectivity."""

  debug: bool
  pg_dsn: str | None
  pg_connect_timeout: int


def _parse_origins(raw: str | None) -> tuple[str, ...]:
  origins = [origin.strip() for origin in (raw or _DEFAULT_ORIGINS).split(",") if origin.strip()]

  if not origins:
    raise ValueError("MCQGEN_ALLOWED_ORIGINS must include at least one origin.")

  if "*" in origins:
    raise ValueError("MCQGEN_ALLOWED_ORIGINS must not include wildcard origins.")

  return tuple(origins)


def _parse_bool(raw: str | None) -> bool:
  """Parse a boolean-ish string from environment variables."""

  if raw is None:
    return False

  normalized = raw.strip().lower()
  return normalized in {"1", "true", "yes", "on"}


def _positive_int(name: str, default: str) -> int:
  value = int(os.getenv(name, default))
  if value <= 0:
    raise ValueError(f"{name} must be a positive integer.")
  return value


def _optional_str(raw: str | None) -> str | None:
  if raw is None:
    return None
  value = raw.strip()
  if value == "":
    return None
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Load settings once per process."""

  environment = os.getenv("MCQGEN_ENV", "development").lower()
  debug = _parse_bool(os.getenv("MCQGEN_DEBUG"))

  log_max_bytes = _positive_int("MCQGEN_LOG_MAX_BYTES", "5242880")
  log_backup_count = int(os.getenv("MCQGEN_LOG_BACKUP_COUNT", "10"))
  if log_backup_count < 0:
    raise ValueError("MCQGEN_LOG_BACKUP_COUNT must be zero or a positive integer.")

  # Question count bounds feed the generation prompt and the output check.
  min_questions = _positive_int("MCQGEN_MIN_QUESTIONS", "10")
  max_questions = _positive_int("MCQGEN_MAX_QUESTIONS", "15")
  if min_questions > max_questions:
    raise ValueError("MCQGEN_MIN_QUESTIONS must not exceed MCQGEN_MAX_QUESTIONS.")

  return Settings(
    environment=environment,
    allowed_origins=_parse_origins(os.getenv("MCQGEN_ALLOWED_ORIGINS")),
    debug=debug,
    log_max_bytes=log_max_bytes,
    log_backup_count=log_backup_count,
    log_http_4xx=_parse_bool(os.getenv("MCQGEN_LOG_HTTP_4XX")),
    pg_dsn=_optional_str(os.getenv("MCQGEN_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL")),
    pg_connect_timeout=_positive_int("MCQGEN_PG_CONNECT_TIMEOUT", "5"),
    openai_api_key=_optional_str(os.getenv("OPENAI_API_KEY")),
    openai_model=os.getenv("MCQGEN_OPENAI_MODEL", "gpt-4.1"),
    anthropic_api_key=_optional_str(os.getenv("ANTHROPIC_API_KEY")),
    validator_model=os.getenv("MCQGEN_VALIDATOR_MODEL", "claude-3-haiku-20240307"),
    validator_max_tokens=_positive_int("MCQGEN_VALIDATOR_MAX_TOKENS", "4096"),
    generation_max_attempts=_positive_int("MCQGEN_GENERATION_MAX_ATTEMPTS", "5"),
    generation_initial_delay_ms=_positive_int("MCQGEN_GENERATION_INITIAL_DELAY_MS", "2000"),
    validation_max_attempts=_positive_int("MCQGEN_VALIDATION_MAX_ATTEMPTS", "2"),
    min_questions=min_questions,
    max_questions=max_questions,
  )


@lru_cache(maxsize=1)
def get_database_settings() -> DatabaseSettings:
  """Load database settings without requiring web-runtime configuration."""
  # Migrations and offline scripts only need connectivity settings.
  debug = _parse_bool(os.getenv("MCQGEN_DEBUG"))
  pg_connect_timeout = _positive_int("MCQGEN_PG_CONNECT_TIMEOUT", "5")
  pg_dsn = _optional_str(os.getenv("MCQGEN_PG_DSN")) or _optional_str(os.getenv("DATABASE_URL"))

  return DatabaseSettings(debug=debug, pg_dsn=pg_dsn, pg_connect_timeout=pg_connect_timeout)
