from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Optional

GRID_SIZE = 20
CELL_COUNT = GRID_SIZE * GRID_SIZE

TILE_FLOOR = 0
TILE_WALL = 1
TILE_DOOR = 2
TILE_WATER = 3
TILE_INDOOR = 4

REGION_TYPES = frozenset(
    {
        "tavern",
        "shop",
        "temple",
        "dungeon",
        "wilderness",
        "residential",
        "street",
        "guard_post",
        "danger",
        "safe",
        "custom",
    }
)
DEFAULT_REGION_TYPE = "custom"

CONFIDENCE_LEVELS = ("high", "medium", "low")
DEFAULT_CONFIDENCE = "medium"


class TileEncoding(str, Enum):
    """Tile code set a grid was produced with.

    ``LEGACY`` is floor/wall/door. ``EXTENDED`` adds water and indoor floor.
    """

    LEGACY = "legacy"
    EXTENDED = "extended"

    @property
    def max_value(self) -> int:
        return TILE_DOOR if self is TileEncoding.LEGACY else TILE_INDOOR

    def is_valid(self, value: int) -> bool:
        return 0 <= value <= self.max_value


@dataclass(frozen=True)
class TileGrid:
    cells: tuple[int, ...]
    encoding: TileEncoding

    def walkable_count(self) -> int:
        return sum(1 for value in self.cells if value != TILE_WALL)

    def walkable_fraction(self) -> float:
        if not self.cells:
            return 0.0
        return self.walkable_count() / len(self.cells)

    def to_list(self) -> list[int]:
        return list(self.cells)


@dataclass
class Region:
    id: str
    name: str
    type: str
    cells: list[int]
    dm_note: Optional[str] = None
    default_npc_slugs: Optional[list[str]] = None
    shop_inventory: Optional[list[str]] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "cells": list(self.cells),
        }
        if self.dm_note:
            out["dmNote"] = self.dm_note
        if self.default_npc_slugs:
            out["defaultNPCSlugs"] = list(self.default_npc_slugs)
        if self.shop_inventory:
            out["shopInventory"] = list(self.shop_inventory)
        return out


@dataclass(frozen=True)
class RequiredRegion:
    id: str
    name: str
    type: str
    size: str
    position: Optional[str] = None
    dm_note: Optional[str] = None


@dataclass(frozen=True)
class PointOfInterest:
    id: str
    number: int
    name: str
    description: str
    is_hidden: bool = False
    combat_map_spec_id: Optional[str] = None
    position: tuple[float, float] = (50.0, 50.0)
    act_numbers: tuple[int, ...] = ()
    location_tags: tuple[str, ...] = ()
    default_npc_slugs: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "number": self.number,
            "name": self.name,
            "description": self.description,
            "position": {"x": self.position[0], "y": self.position[1]},
            "combatMapSpecId": self.combat_map_spec_id or "",
            "isHidden": self.is_hidden,
            "actNumbers": list(self.act_numbers),
            "locationTags": list(self.location_tags),
        }
        if self.default_npc_slugs:
            out["defaultNPCSlugs"] = list(self.default_npc_slugs)
        return out


@dataclass(frozen=True)
class CombatMapSpec:
    map_type: ClassVar[str] = "combat"

    id: str
    name: str
    feet_per_square: int
    terrain: str
    lighting: str
    layout_description: str
    regions: tuple[RequiredRegion, ...] = ()
    atmosphere_notes: Optional[str] = None


@dataclass(frozen=True)
class ExplorationMapSpec:
    map_type: ClassVar[str] = "exploration"

    id: str
    name: str
    points_of_interest: tuple[PointOfInterest, ...] = ()
    feet_per_square: int = 100
    image_description: Optional[str] = None


@dataclass
class CampaignMapSet:
    campaign_id: str
    title: str
    exploration_specs: list[ExplorationMapSpec] = field(default_factory=list)
    combat_specs: list[CombatMapSpec] = field(default_factory=list)
    legacy: bool = False


@dataclass
class ValidatedMap:
    grid: TileGrid
    regions: list[Region]
    confidence: str = DEFAULT_CONFIDENCE


@dataclass
class CompletionResult:
    text: str
    cost: float = 0.0


@dataclass
class ImageResult:
    image: bytes
    cost: float = 0.0
    media_type: str = "image/webp"


@dataclass
class GenerationResult:
    validated: ValidatedMap
    cost: float
    backend: str
    attempts: int = 1


@dataclass
class MapOutcome:
    map_spec_id: str
    map_type: str
    status: str
    path: Optional[str] = None
    completion_cost: float = 0.0
    image_cost: float = 0.0
    confidence: Optional[str] = None
    background_image_url: Optional[str] = None
    written: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"

    @property
    def total_cost(self) -> float:
        return self.completion_cost + self.image_cost


@dataclass
class PhaseReport:
    name: str
    outcomes: list[MapOutcome] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def fail_count(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)

    @property
    def completion_cost(self) -> float:
        return sum(outcome.completion_cost for outcome in self.outcomes)

    @property
    def image_cost(self) -> float:
        return sum(outcome.image_cost for outcome in self.outcomes)


@dataclass
class RunReport:
    campaign_id: str
    dry_run: bool = False
    phases: list[PhaseReport] = field(default_factory=list)
    planned_map_ids: list[str] = field(default_factory=list)
    estimated_cost: float = 0.0

    @property
    def success_count(self) -> int:
        return sum(phase.success_count for phase in self.phases)

    @property
    def fail_count(self) -> int:
        return sum(phase.fail_count for phase in self.phases)

    @property
    def total_cost(self) -> float:
        return sum(phase.completion_cost + phase.image_cost for phase in self.phases)
