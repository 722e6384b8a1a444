from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from ..persistence.interfaces import UnitOfWork
from .backends import GenerationConfig, TextGridBackend, VisionGridBackend
from .errors import BackendExhaustedError, MapEngineError
from .planner import (
    MapAction,
    artifact_state,
    has_complete_grid,
    has_image,
    plan_combat_action,
    plan_exploration_action,
)
from .ports import BlobStorePort, ImageGenerationPort
from .prompts import IMAGE_NEGATIVE_PROMPT, build_combat_image_prompt, build_exploration_image_prompt
from .types import (
    DEFAULT_CONFIDENCE,
    GRID_SIZE,
    CombatMapSpec,
    ExplorationMapSpec,
    GenerationResult,
    MapOutcome,
    TileEncoding,
)

PATH_TEXT_FALLBACK = "text_fallback"


def map_document_id(campaign_id: str, map_spec_id: str) -> str:
    return f"{campaign_id}_{map_spec_id}"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MapRegenerationOrchestrator:
    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        text_backend: TextGridBackend,
        *,
        vision_backend: VisionGridBackend | None = None,
        image_generator: ImageGenerationPort | None = None,
        blob_store: BlobStorePort | None = None,
        config: GenerationConfig | None = None,
        clock: Callable[[], datetime] | None = None,
        logger: logging.Logger | None = None,
    ):
        self._uow_factory = uow_factory
        self._text_backend = text_backend
        self._vision_backend = vision_backend
        self._image_generator = image_generator
        self._blob_store = blob_store
        self._config = config or GenerationConfig()
        self._clock = clock or _utc_now
        self._logger = logger or logging.getLogger(__name__)

    @property
    def image_path_enabled(self) -> bool:
        return self._image_generator is not None and self._vision_backend is not None

    @property
    def exploration_images_enabled(self) -> bool:
        return self._image_generator is not None

    async def regenerate(self, campaign_id: str, spec: CombatMapSpec | ExplorationMapSpec) -> MapOutcome:
        if isinstance(spec, ExplorationMapSpec):
            return await self.regenerate_exploration(campaign_id, spec)
        return await self.regenerate_combat(campaign_id, spec)

    async def regenerate_combat(self, campaign_id: str, spec: CombatMapSpec) -> MapOutcome:
        doc_id = map_document_id(campaign_id, spec.id)
        existing = self._load(doc_id)
        state = artifact_state(existing)
        action = plan_combat_action(state, self.image_path_enabled)
        self._logger.info("COMBAT MAP %s state=%s action=%s", spec.id, state.value, action.value)

        outcome = MapOutcome(
            map_spec_id=spec.id,
            map_type=spec.map_type,
            status="reused" if action is MapAction.REUSE else "generated",
            path=action.value,
        )
        image_url = existing.get("backgroundImageUrl") if has_image(existing) else None
        fresh: GenerationResult | None = None

        try:
            if action is MapAction.VISION_BACKFILL:
                fresh = await self._vision_backfill(spec, image_url, outcome)
            elif action is MapAction.IMAGE_THEN_VISION:
                fresh, image_url = await self._image_then_vision(campaign_id, spec, outcome)
            elif action is MapAction.ATTACH_IMAGE:
                image_url = await self._attach_image(campaign_id, spec, outcome)
            elif action is MapAction.TEXT_TO_GRID:
                fresh = await self._run_text(spec, outcome)
        except MapEngineError as exc:
            self._logger.error("Combat map %s failed: %s", spec.id, exc)
            outcome.status = "failed"
            outcome.error = str(exc)
            return outcome

        document = self._build_combat_document(campaign_id, spec, existing, fresh, image_url)
        outcome.confidence = document.get("confidence")
        outcome.background_image_url = image_url
        outcome.written = self._save_if_changed(doc_id, campaign_id, spec, existing, document)
        return outcome

    async def regenerate_exploration(self, campaign_id: str, spec: ExplorationMapSpec) -> MapOutcome:
        doc_id = map_document_id(campaign_id, spec.id)
        existing = self._load(doc_id)
        state = artifact_state(existing)
        action = plan_exploration_action(state, self.exploration_images_enabled)
        self._logger.info("EXPLORATION MAP %s state=%s action=%s", spec.id, state.value, action.value)

        outcome = MapOutcome(
            map_spec_id=spec.id,
            map_type=spec.map_type,
            status="reused" if action is MapAction.REUSE else "generated",
            path=action.value,
        )

        if action is MapAction.UNAVAILABLE:
            outcome.status = "failed"
            outcome.error = "No image pipeline available; exploration maps require image generation"
            self._logger.warning("Exploration map %s skipped: %s", spec.id, outcome.error)
            return outcome

        image_url = existing.get("backgroundImageUrl") if has_image(existing) else None
        if action is MapAction.GENERATE_IMAGE:
            assert self._image_generator is not None
            try:
                image_result = await self._image_generator.generate(
                    build_exploration_image_prompt(spec),
                    negative_prompt=IMAGE_NEGATIVE_PROMPT,
                )
            except Exception as exc:
                self._logger.error("Exploration image generation failed for %s: %s", spec.id, exc)
                outcome.status = "failed"
                outcome.error = f"Image generation failed: {exc}"
                return outcome
            outcome.image_cost += image_result.cost
            image_url = await self._upload_best_effort(
                campaign_id, spec.id, image_result.image, image_result.media_type
            )

        document: dict[str, Any] = {
            "campaignId": campaign_id,
            "mapSpecId": spec.id,
            "mapType": spec.map_type,
            "name": spec.name,
            "feetPerSquare": spec.feet_per_square,
            "pointsOfInterest": [poi.to_dict() for poi in spec.points_of_interest],
        }
        if image_url:
            document["backgroundImageUrl"] = image_url
        outcome.background_image_url = image_url
        outcome.written = self._save_if_changed(doc_id, campaign_id, spec, existing, document)
        return outcome

    async def _run_text(self, spec: CombatMapSpec, outcome: MapOutcome) -> GenerationResult:
        try:
            result = await self._text_backend.generate(spec)
        except BackendExhaustedError as exc:
            outcome.completion_cost += exc.cost
            raise
        outcome.completion_cost += result.cost
        return result

    async def _run_vision(
        self,
        spec: CombatMapSpec,
        image: bytes,
        media_type: str,
        outcome: MapOutcome,
    ) -> GenerationResult:
        assert self._vision_backend is not None
        try:
            result = await self._vision_backend.generate(spec, image, media_type=media_type)
        except BackendExhaustedError as exc:
            outcome.completion_cost += exc.cost
            raise
        outcome.completion_cost += result.cost
        return result

    async def _fall_back_to_text(self, spec: CombatMapSpec, outcome: MapOutcome, reason: Exception) -> GenerationResult:
        self._logger.warning("Image path failed for %s: %s. Falling back to text-to-grid.", spec.id, reason)
        outcome.path = PATH_TEXT_FALLBACK
        return await self._run_text(spec, outcome)

    async def _vision_backfill(
        self,
        spec: CombatMapSpec,
        image_url: str | None,
        outcome: MapOutcome,
    ) -> GenerationResult:
        try:
            if self._blob_store is None or not image_url:
                raise MapEngineError("No blob store configured to fetch the existing image")
            image = await self._blob_store.download(image_url)
            self._logger.info("Downloaded existing image for %s (%s KB)", spec.id, len(image) // 1024)
            return await self._run_vision(spec, image, self._config.image_content_type, outcome)
        except Exception as exc:
            return await self._fall_back_to_text(spec, outcome, exc)

    async def _image_then_vision(
        self,
        campaign_id: str,
        spec: CombatMapSpec,
        outcome: MapOutcome,
    ) -> tuple[GenerationResult, str | None]:
        assert self._image_generator is not None
        try:
            image_result = await self._image_generator.generate(
                build_combat_image_prompt(spec),
                negative_prompt=IMAGE_NEGATIVE_PROMPT,
            )
            outcome.image_cost += image_result.cost
            self._logger.info("Image generated for %s (%s KB)", spec.id, len(image_result.image) // 1024)
            result = await self._run_vision(spec, image_result.image, image_result.media_type, outcome)
        except Exception as exc:
            return await self._fall_back_to_text(spec, outcome, exc), None

        url = await self._upload_best_effort(campaign_id, spec.id, image_result.image, image_result.media_type)
        return result, url

    async def _attach_image(self, campaign_id: str, spec: CombatMapSpec, outcome: MapOutcome) -> str | None:
        """Give a stored grid its missing image. No vision pass, the stored grid wins anyway."""
        assert self._image_generator is not None
        try:
            image_result = await self._image_generator.generate(
                build_combat_image_prompt(spec),
                negative_prompt=IMAGE_NEGATIVE_PROMPT,
            )
        except Exception as exc:
            self._logger.warning("Image generation failed for %s: %s. Keeping the stored grid.", spec.id, exc)
            outcome.status = "reused"
            outcome.path = MapAction.REUSE.value
            return None
        outcome.image_cost += image_result.cost
        self._logger.info("Image generated for %s (%s KB)", spec.id, len(image_result.image) // 1024)
        return await self._upload_best_effort(campaign_id, spec.id, image_result.image, image_result.media_type)

    async def _upload_best_effort(
        self,
        campaign_id: str,
        map_spec_id: str,
        image: bytes,
        content_type: str,
    ) -> str | None:
        if self._blob_store is None:
            self._logger.warning("No blob store configured; image for %s was not uploaded", map_spec_id)
            return None
        path = self._config.image_path_template.format(campaign_id=campaign_id, map_spec_id=map_spec_id)
        try:
            url = await self._blob_store.upload(image, path, content_type=content_type)
        except Exception as exc:
            self._logger.warning("Upload failed for %s: %s. Continuing without image URL.", map_spec_id, exc)
            return None
        self._logger.info("Uploaded %s -> %s", path, url)
        return url

    def _build_combat_document(
        self,
        campaign_id: str,
        spec: CombatMapSpec,
        existing: dict[str, Any] | None,
        fresh: GenerationResult | None,
        image_url: str | None,
    ) -> dict[str, Any]:
        document: dict[str, Any] = {
            "campaignId": campaign_id,
            "mapSpecId": spec.id,
            "mapType": spec.map_type,
            "name": spec.name,
            "gridSize": GRID_SIZE,
            "feetPerSquare": spec.feet_per_square,
        }
        if existing is not None and has_complete_grid(existing):
            document["tileData"] = list(existing["tileData"])
            document["regions"] = list(existing["regions"])
            document["tileEncoding"] = existing.get("tileEncoding") or TileEncoding.LEGACY.value
            document["confidence"] = existing.get("confidence") or DEFAULT_CONFIDENCE
            if fresh is not None:
                self._logger.info("Existing grid for %s preserved over freshly generated grid", spec.id)
        elif fresh is not None:
            validated = fresh.validated
            document["tileData"] = validated.grid.to_list()
            document["regions"] = [region.to_dict() for region in validated.regions]
            document["tileEncoding"] = validated.grid.encoding.value
            document["confidence"] = validated.confidence
        else:
            raise MapEngineError(f"No grid available for combat map {spec.id}")
        if image_url:
            document["backgroundImageUrl"] = image_url
        return document

    def _load(self, doc_id: str) -> dict[str, Any] | None:
        with self._uow_factory() as uow:
            return uow.maps.get(doc_id)

    def _save_if_changed(
        self,
        doc_id: str,
        campaign_id: str,
        spec: CombatMapSpec | ExplorationMapSpec,
        existing: dict[str, Any] | None,
        document: dict[str, Any],
    ) -> bool:
        if existing is not None:
            unchanged = dict(document)
            if "generatedAt" in existing:
                unchanged["generatedAt"] = existing["generatedAt"]
            if unchanged == existing:
                self._logger.info("Map %s unchanged; skipping write", doc_id)
                return False

        document["generatedAt"] = int(self._clock().timestamp() * 1000)
        with self._uow_factory() as uow:
            uow.maps.put(doc_id, campaign_id, spec.id, spec.map_type, document)
            uow.commit()
        self._logger.info("Saved campaign map %s", doc_id)
        return True
