import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mcqgen.config import get_settings
from mcqgen.core.database import dispose_engine
from mcqgen.core.logging import initialize_logging
from mcqgen.services.jobs import build_runtime


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and the job runtime, and drain jobs on shutdown."""
  settings = get_settings()
  logger = logging.getLogger("mcqgen.core.lifespan")

  try:
    initialize_logging(settings)
    logger.info("Startup complete - logging verified.")
  except Exception:
    # Logging falls back to the default handlers; the service can still run.
    logger.warning("Initial logging setup failed.", exc_info=True)

  # Tests may install their own runtime before startup.
  runtime = getattr(app.state, "runtime", None)
  if runtime is None:
    runtime = build_runtime(settings)
    app.state.runtime = runtime
  if not settings.openai_api_key:
    logger.warning("OPENAI_API_KEY is not set; MCQ jobs will fail at generation.")
  if not settings.pg_dsn:
    logger.warning("No database DSN configured; MCQ jobs will fail at persistence.")

  yield

  await runtime.enqueuer.drain()
  await dispose_engine()
  logger.info("Shutdown complete.")
