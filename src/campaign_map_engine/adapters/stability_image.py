from __future__ import annotations

import asyncio
import uuid
from urllib import error as urllib_error
from urllib import request as urllib_request

from ..core.errors import ImageGenerationError
from ..core.types import ImageResult

STABILITY_API_URL = "https://api.stability.ai/v2beta/stable-image/generate/core"
COST_PER_IMAGE = 0.03


def encode_multipart(fields: dict[str, str]) -> tuple[bytes, str]:
    boundary = f"----campaign-maps-{uuid.uuid4().hex}"
    lines: list[bytes] = []
    for name, value in fields.items():
        lines.append(f"--{boundary}".encode("ascii"))
        lines.append(f'Content-Disposition: form-data; name="{name}"'.encode("ascii"))
        lines.append(b"")
        lines.append(value.encode("utf-8"))
    lines.append(f"--{boundary}--".encode("ascii"))
    lines.append(b"")
    return b"\r\n".join(lines), f"multipart/form-data; boundary={boundary}"


class StabilityImageGenerator:
    """ImageGenerationPort backed by Stability AI's stable-image core endpoint.

    Images come back as square webp files at a flat per-image cost.
    """

    def __init__(
        self,
        api_key: str,
        *,
        url: str = STABILITY_API_URL,
        timeout: float = 120.0,
        output_format: str = "webp",
        aspect_ratio: str = "1:1",
    ):
        if not api_key:
            raise ImageGenerationError("STABILITY_API_KEY is required for image generation")
        self._api_key = api_key
        self._url = url
        self._timeout = timeout
        self._output_format = output_format
        self._aspect_ratio = aspect_ratio

    async def generate(self, prompt: str, *, negative_prompt: str = "") -> ImageResult:
        image = await asyncio.to_thread(self._post, prompt, negative_prompt)
        return ImageResult(
            image=image,
            cost=COST_PER_IMAGE,
            media_type=f"image/{self._output_format}",
        )

    def _post(self, prompt: str, negative_prompt: str) -> bytes:
        fields = {
            "prompt": prompt,
            "output_format": self._output_format,
            "aspect_ratio": self._aspect_ratio,
        }
        if negative_prompt:
            fields["negative_prompt"] = negative_prompt
        body, content_type = encode_multipart(fields)
        request = urllib_request.Request(
            self._url,
            data=body,
            method="POST",
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Accept": "image/*",
                "Content-Type": content_type,
            },
        )
        try:
            with urllib_request.urlopen(request, timeout=self._timeout) as response:  # noqa: S310
                return response.read()
        except urllib_error.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace")
            raise ImageGenerationError(f"Stability AI request failed ({exc.code}): {detail}") from exc
        except urllib_error.URLError as exc:
            raise ImageGenerationError(f"Stability AI request failed: {exc.reason}") from exc
