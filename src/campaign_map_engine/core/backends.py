from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .errors import BackendExhaustedError
from .ports import CompletionPort
from .prompts import (
    TEXT_GRID_SYSTEM_PROMPT,
    VISION_GRID_SYSTEM_PROMPT,
    build_text_grid_prompt,
    build_vision_grid_prompt,
)
from .types import CombatMapSpec, GenerationResult, TileEncoding
from .validation import DEFAULT_MIN_WALKABLE_FRACTION, parse_model_output, validate_map_output


@dataclass(frozen=True)
class GenerationConfig:
    max_retries: int = 2
    max_tokens: int = 4096
    text_temperature: float = 0.4
    vision_temperature: float = 0.2
    min_walkable_fraction: float = DEFAULT_MIN_WALKABLE_FRACTION
    image_content_type: str = "image/webp"
    image_path_template: str = "campaign-maps/{campaign_id}/{map_spec_id}.webp"
    # Estimates used by dry-run previews only.
    estimated_image_cost: float = 0.03
    estimated_vision_cost: float = 0.03
    estimated_text_cost: float = 0.04


class _GridBackend:
    name = "grid"
    encoding = TileEncoding.EXTENDED
    system_prompt = ""

    def __init__(
        self,
        completion: CompletionPort,
        *,
        config: GenerationConfig | None = None,
        logger: logging.Logger | None = None,
    ):
        self._completion = completion
        self._config = config or GenerationConfig()
        self._logger = logger or logging.getLogger(__name__)

    async def _run(
        self,
        spec: CombatMapSpec,
        prompt: str,
        *,
        temperature: float,
        image: bytes | None = None,
        image_media_type: str = "image/webp",
    ) -> GenerationResult:
        cfg = self._config
        attempts = cfg.max_retries + 1
        total_cost = 0.0
        last_error = "no attempts made"

        for attempt in range(attempts):
            try:
                call_kwargs: dict[str, Any] = {
                    "max_tokens": cfg.max_tokens,
                    "temperature": temperature,
                }
                if image is not None:
                    call_kwargs["image"] = image
                    call_kwargs["image_media_type"] = image_media_type
                response = await self._completion.complete(self.system_prompt, prompt, **call_kwargs)
                total_cost += response.cost
                parsed = parse_model_output(response.text)
                validated = validate_map_output(
                    parsed,
                    spec,
                    encoding=self.encoding,
                    min_walkable_fraction=cfg.min_walkable_fraction,
                )
                self._logger.info(
                    "GRID GENERATED backend=%s spec=%s attempt=%s confidence=%s cost=%.4f",
                    self.name,
                    spec.id,
                    attempt + 1,
                    validated.confidence,
                    total_cost,
                )
                return GenerationResult(
                    validated=validated,
                    cost=total_cost,
                    backend=self.name,
                    attempts=attempt + 1,
                )
            except Exception as exc:
                last_error = str(exc) or exc.__class__.__name__
                if attempt < attempts - 1:
                    self._logger.warning(
                        "%s attempt %s/%s failed for %s: %s. Retrying...",
                        self.name,
                        attempt + 1,
                        attempts,
                        spec.id,
                        last_error,
                    )

        raise BackendExhaustedError(self.name, attempts, last_error, cost=total_cost)


class TextGridBackend(_GridBackend):
    """Layout prose to tile grid, using the extended five-tile encoding."""

    name = "text_to_grid"
    encoding = TileEncoding.EXTENDED
    system_prompt = TEXT_GRID_SYSTEM_PROMPT

    async def generate(self, spec: CombatMapSpec) -> GenerationResult:
        return await self._run(
            spec,
            build_text_grid_prompt(spec),
            temperature=self._config.text_temperature,
        )


class VisionGridBackend(_GridBackend):
    """Rendered map image to tile grid, using the legacy three-tile encoding.

    The map's required regions are sent as hints so the model reuses their
    ids; the validator still enforces the region contract on every attempt.
    """

    name = "image_to_grid"
    encoding = TileEncoding.LEGACY
    system_prompt = VISION_GRID_SYSTEM_PROMPT

    async def generate(
        self,
        spec: CombatMapSpec,
        image: bytes,
        *,
        media_type: str = "image/webp",
    ) -> GenerationResult:
        return await self._run(
            spec,
            build_vision_grid_prompt(spec),
            temperature=self._config.vision_temperature,
            image=image,
            image_media_type=media_type,
        )
