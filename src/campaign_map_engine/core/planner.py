from __future__ import annotations

from enum import Enum
from typing import Any

from .types import CELL_COUNT


class ArtifactState(str, Enum):
    NO_ARTIFACT = "no_artifact"
    GRID_ONLY = "grid_only"
    IMAGE_ONLY = "image_only"
    IMAGE_AND_GRID = "image_and_grid"


class MapAction(str, Enum):
    REUSE = "reuse"
    VISION_BACKFILL = "vision_backfill"
    IMAGE_THEN_VISION = "image_then_vision"
    ATTACH_IMAGE = "attach_image"
    TEXT_TO_GRID = "text_to_grid"
    GENERATE_IMAGE = "generate_image"
    UNAVAILABLE = "unavailable"


def has_image(document: dict[str, Any] | None) -> bool:
    if not document:
        return False
    url = document.get("backgroundImageUrl")
    return isinstance(url, str) and bool(url.strip())


def has_complete_grid(document: dict[str, Any] | None) -> bool:
    if not document:
        return False
    tile_data = document.get("tileData")
    regions = document.get("regions")
    return (
        isinstance(tile_data, list)
        and len(tile_data) == CELL_COUNT
        and isinstance(regions, list)
        and len(regions) > 0
    )


def artifact_state(document: dict[str, Any] | None) -> ArtifactState:
    if document is None:
        return ArtifactState.NO_ARTIFACT
    image = has_image(document)
    grid = has_complete_grid(document)
    if image and grid:
        return ArtifactState.IMAGE_AND_GRID
    if image:
        return ArtifactState.IMAGE_ONLY
    if grid:
        return ArtifactState.GRID_ONLY
    return ArtifactState.NO_ARTIFACT


def plan_combat_action(state: ArtifactState, image_path_enabled: bool) -> MapAction:
    """Pick the generation path for a combat map.

    An existing image is never re-requested, and a complete grid is never
    regenerated. A stored grid without an image only gets the image attached.
    """
    if state is ArtifactState.IMAGE_AND_GRID:
        return MapAction.REUSE
    if state is ArtifactState.IMAGE_ONLY:
        return MapAction.VISION_BACKFILL if image_path_enabled else MapAction.TEXT_TO_GRID
    if state is ArtifactState.GRID_ONLY:
        return MapAction.ATTACH_IMAGE if image_path_enabled else MapAction.REUSE
    return MapAction.IMAGE_THEN_VISION if image_path_enabled else MapAction.TEXT_TO_GRID


def plan_exploration_action(state: ArtifactState, image_path_enabled: bool) -> MapAction:
    if state in (ArtifactState.IMAGE_ONLY, ArtifactState.IMAGE_AND_GRID):
        return MapAction.REUSE
    return MapAction.GENERATE_IMAGE if image_path_enabled else MapAction.UNAVAILABLE
