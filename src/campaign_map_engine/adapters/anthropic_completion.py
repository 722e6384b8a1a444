from __future__ import annotations

import base64
from typing import Any

import anthropic

from ..core.types import CompletionResult

DEFAULT_MODEL = "claude-sonnet-4-5"

# USD per token.
INPUT_TOKEN_COST = 3.0 / 1_000_000
OUTPUT_TOKEN_COST = 15.0 / 1_000_000


def usage_cost(input_tokens: int, output_tokens: int) -> float:
    return input_tokens * INPUT_TOKEN_COST + output_tokens * OUTPUT_TOKEN_COST


class AnthropicCompletion:
    """CompletionPort backed by the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str = DEFAULT_MODEL,
        client: Any | None = None,
    ):
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key)
        self._model = model

    async def complete(
        self,
        system_prompt: str,
        prompt: str,
        *,
        image: bytes | None = None,
        image_media_type: str = "image/webp",
        max_tokens: int = 4096,
        temperature: float = 0.4,
    ) -> CompletionResult:
        content: list[dict[str, Any]] = []
        if image is not None:
            content.append(
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": image_media_type,
                        "data": base64.b64encode(image).decode("ascii"),
                    },
                }
            )
        content.append({"type": "text", "text": prompt})

        message = await self._client.messages.create(
            model=self._model,
            max_tokens=max_tokens,
            temperature=temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": content}],
        )
        text = "".join(
            getattr(block, "text", "") for block in message.content if getattr(block, "type", "") == "text"
        )
        usage = message.usage
        return CompletionResult(
            text=text.strip(),
            cost=usage_cost(usage.input_tokens, usage.output_tokens),
        )
