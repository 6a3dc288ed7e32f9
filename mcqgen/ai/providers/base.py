"""Base interfaces for the upstream model clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass
class ModelResponse:
  """Raw text returned by a model together with its usage record."""

  content: str
  usage: dict[str, int] | None = None


class GenerationModel(Protocol):
  """Model that answers with schema-constrained JSON grounded on a file search index."""

  name: str

  async def generate_structured(self, *, instructions: str, prompt: str, vector_store_id: str, schema: dict[str, Any], schema_name: str) -> ModelResponse:
    """Return the JSON text produced for the prompt."""


class ValidationModel(Protocol):
  """Model that reviews questions and answers in JSON."""

  name: str

  async def generate(self, *, system: str, prompt: str) -> ModelResponse:
    """Return the raw text produced for the prompt."""
