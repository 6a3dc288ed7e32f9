from __future__ import annotations

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from httpx import ASGITransport, AsyncClient

from mcqgen.core.exceptions import _error_payload, _sanitize_validation_errors, _validation_message, global_exception_handler, http_exception_handler, request_validation_exception_handler
from mcqgen.core.middleware import RequestLoggingMiddleware


def _app() -> FastAPI:
  app = FastAPI()
  app.add_exception_handler(Exception, global_exception_handler)
  app.add_exception_handler(HTTPException, http_exception_handler)
  app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
  app.add_middleware(RequestLoggingMiddleware)

  @app.get("/boom")
  async def boom() -> None:
    raise RuntimeError("database password leaked in message")

  @app.get("/teapot")
  async def teapot() -> None:
    raise HTTPException(status_code=418, detail="Short and stout.")

  @app.get("/unavailable")
  async def unavailable() -> None:
    raise HTTPException(status_code=502, detail="upstream secret")

  return app


def test_error_payload_omits_empty_fields() -> None:
  assert _error_payload("Nope.") == {"error": "Nope."}
  assert _error_payload("Nope.", request_id="r1", details=[1]) == {"error": "Nope.", "details": [1], "requestId": "r1"}


def test_validation_errors_are_scrubbed_and_summarized() -> None:
  errors = [{"loc": ("body", "chapterTitle"), "msg": "Field required", "input": {"secret": "x"}, "ctx": {"input": "y", "limit": 1}}]

  sanitized = _sanitize_validation_errors(errors)

  assert "input" not in sanitized[0]
  assert sanitized[0]["ctx"] == {"limit": 1}
  assert _validation_message(sanitized) == "chapterTitle: Field required"


@pytest.mark.anyio
async def test_unhandled_errors_are_hidden() -> None:
  async with AsyncClient(transport=ASGITransport(app=_app(), raise_app_exceptions=False), base_url="http://test") as client:
    response = await client.get("/boom")

  assert response.status_code == 500
  assert response.json()["error"] == "Internal Server Error"
  assert "password" not in response.text


@pytest.mark.anyio
async def test_http_errors_keep_4xx_detail_and_hide_5xx() -> None:
  async with AsyncClient(transport=ASGITransport(app=_app()), base_url="http://test") as client:
    teapot = await client.get("/teapot")
    unavailable = await client.get("/unavailable")

  assert teapot.status_code == 418
  assert teapot.json()["error"] == "Short and stout."
  assert teapot.json()["requestId"] == teapot.headers["x-request-id"]
  assert unavailable.status_code == 502
  assert unavailable.json()["error"] == "Internal Server Error"
