from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from mcqgen import __version__
from mcqgen.api.models import HealthResponse
from mcqgen.api.routes import mcqs, validate
from mcqgen.config import get_settings
from mcqgen.core.exceptions import global_exception_handler, http_exception_handler, request_validation_exception_handler
from mcqgen.core.lifespan import lifespan
from mcqgen.core.middleware import RequestLoggingMiddleware

settings = get_settings()

app = FastAPI(title="MCQ Generation Service", version=__version__, lifespan=lifespan)

app.add_middleware(CORSMiddleware, allow_origins=list(settings.allowed_origins), allow_credentials=True, allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["content-type"], expose_headers=["content-disposition", "x-request-id"])

# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", response_model=HealthResponse, include_in_schema=False)
async def health_check() -> HealthResponse:
  """Return a simple health status."""
  return HealthResponse(status="ok", version=__version__)


app.include_router(mcqs.router, prefix="/api/mcqs", tags=["mcqs"])
app.include_router(validate.router, prefix="/api/validate", tags=["validation"])
