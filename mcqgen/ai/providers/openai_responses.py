"""OpenAI Responses API client used for grounded MCQ generation."""

from __future__ import annotations

import logging
from typing import Any

from openai import AsyncOpenAI

from mcqgen.ai.providers.base import ModelResponse

logger = logging.getLogger(__name__)


class OpenAIResponsesModel:
  """Generation model restricted to a single vector store through file_search."""

  def __init__(self, name: str, api_key: str | None = None, client: AsyncOpenAI | None = None) -> None:
    self.name = name
    self._api_key = api_key
    self._client = client

  def _get_client(self) -> AsyncOpenAI:
    if self._client is None:
      if not self._api_key:
        raise RuntimeError("OPENAI_API_KEY is not configured on the server.")
      self._client = AsyncOpenAI(api_key=self._api_key)
    return self._client

  async def generate_structured(self, *, instructions: str, prompt: str, vector_store_id: str, schema: dict[str, Any], schema_name: str) -> ModelResponse:
    """Run one grounded structured-output request."""
    client = self._get_client()
    response = await client.responses.create(
      model=self.name,
      instructions=instructions,
      input=[{"role": "user", "content": [{"type": "input_text", "text": prompt}]}],
      tool_choice="auto",
      tools=[{"type": "file_search", "vector_store_ids": [vector_store_id]}],
      text={"format": {"type": "json_schema", "name": schema_name, "schema": schema, "strict": True}},
    )

    content = (response.output_text or "").strip()
    logger.debug("OpenAI response %s (%d chars)", schema_name, len(content))
    usage = None
    if response.usage:
      usage = {"input_tokens": response.usage.input_tokens, "output_tokens": response.usage.output_tokens, "total_tokens": response.usage.total_tokens}

    return ModelResponse(content=content, usage=usage)
