from __future__ import annotations

from typing import Protocol

from .types import CompletionResult, ImageResult


class CompletionPort(Protocol):
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
        ...


class ImageGenerationPort(Protocol):
    async def generate(self, prompt: str, *, negative_prompt: str = "") -> ImageResult:
        ...


class BlobStorePort(Protocol):
    async def upload(self, data: bytes, path: str, *, content_type: str) -> str:
        ...

    async def download(self, url: str) -> bytes:
        ...
