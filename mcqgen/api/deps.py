"""Shared FastAPI dependencies."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from mcqgen.services.jobs import JobRuntime


def get_job_runtime(request: Request) -> JobRuntime:
  """Return the job runtime created by the application lifespan."""
  runtime = getattr(request.app.state, "runtime", None)
  if runtime is None:
    raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Job runtime is not initialized.")
  return runtime
