"""Anthropic Messages API client used for MCQ validation."""

from __future__ import annotations

import logging

from anthropic import AsyncAnthropic

from mcqgen.ai.providers.base import ModelResponse

logger = logging.getLogger(__name__)


class AnthropicMessagesModel:
  """Validation model that answers with JSON text."""

  def __init__(self, name: str, api_key: str | None = None, max_tokens: int = 4096, client: AsyncAnthropic | None = None) -> None:
    self.name = name
    self._api_key = api_key
    self._max_tokens = max_tokens
    self._client = client

  def _get_client(self) -> AsyncAnthropic:
    if self._client is None:
      if not self._api_key:
        raise RuntimeError("ANTHROPIC_API_KEY is not configured on the server.")
      self._client = AsyncAnthropic(api_key=self._api_key)
    return self._client

  async def generate(self, *, system: str, prompt: str) -> ModelResponse:
    """Send one validation prompt and return the first text block."""
    client = self._get_client()
    message = await client.messages.create(model=self.name, max_tokens=self._max_tokens, system=system, messages=[{"role": "user", "content": [{"type": "text", "text": prompt}]}])

    text_blocks = [block.text for block in message.content if getattr(block, "type", None) == "text"]
    content = text_blocks[0] if text_blocks else ""
    logger.debug("Anthropic response (%d chars, stop_reason=%s)", len(content), message.stop_reason)
    usage = None
    if message.usage:
      input_tokens = int(message.usage.input_tokens or 0)
      output_tokens = int(message.usage.output_tokens or 0)
      usage = {"input_tokens": input_tokens, "output_tokens": output_tokens, "total_tokens": input_tokens + output_tokens}

    return ModelResponse(content=content, usage=usage)
