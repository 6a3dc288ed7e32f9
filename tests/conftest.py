"""Shared fixtures for the MCQ service tests."""

from __future__ import annotations

import os
from unittest.mock import AsyncMock, MagicMock

# Ensure required settings are available before importing the app.
os.environ.setdefault("MCQGEN_ALLOWED_ORIGINS", "http://localhost")
os.environ.setdefault("MCQGEN_GENERATION_INITIAL_DELAY_MS", "1")

import pytest  # noqa: E402


@pytest.fixture
def anyio_backend() -> str:
  # Force anyio to use asyncio
  return "asyncio"


@pytest.fixture
def mock_db_session():
  session = AsyncMock()
  session.add = MagicMock()
  result = MagicMock()
  result.scalars.return_value.first.return_value = None
  result.scalar_one.return_value = 1
  session.execute.return_value = result
  return session


@pytest.fixture
def session_factory(mock_db_session):
  """Callable returning an async_sessionmaker-like object bound to the mock session."""
  context = MagicMock()
  context.__aenter__ = AsyncMock(return_value=mock_db_session)
  context.__aexit__ = AsyncMock(return_value=False)
  sessionmaker = MagicMock(return_value=context)
  return lambda: sessionmaker
