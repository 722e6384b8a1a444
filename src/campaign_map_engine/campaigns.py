"""Campaign map definitions loaded from JSON files.

A campaign file holds ``slug``, ``title`` and either the split
``explorationMapSpecs`` / ``combatMapSpecs`` lists or the older flat
``mapSpecs`` list. The flat list is adapted once on load: every entry is
treated as a combat map and no exploration maps are produced.
"""

from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any

from .core.errors import CampaignFormatError, CampaignNotFoundError
from .core.normalize import coerce_int, normalize_region_type
from .core.types import (
    CampaignMapSet,
    CombatMapSpec,
    ExplorationMapSpec,
    PointOfInterest,
    RequiredRegion,
)

logger = logging.getLogger(__name__)


def _require(raw: dict[str, Any], key: str, where: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise CampaignFormatError(f"{where} is missing required field {key!r}")
    return value.strip()


def _optional_str(raw: dict[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _str_tuple(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in value if isinstance(item, str))


def parse_required_region(raw: Any, where: str) -> RequiredRegion:
    if not isinstance(raw, dict):
        raise CampaignFormatError(f"{where} region entries must be objects")
    region_id = _require(raw, "id", where)
    return RequiredRegion(
        id=region_id,
        name=_optional_str(raw, "name") or region_id,
        type=normalize_region_type(raw.get("type")),
        size=_optional_str(raw, "approximateSize") or _optional_str(raw, "size") or "medium",
        position=_optional_str(raw, "position"),
        dm_note=_optional_str(raw, "dmNote"),
    )


def parse_combat_spec(raw: Any) -> CombatMapSpec:
    if not isinstance(raw, dict):
        raise CampaignFormatError("Combat map specs must be objects")
    spec_id = _require(raw, "id", "combat map spec")
    where = f"combat map spec {spec_id!r}"
    regions_raw = raw.get("regions") or []
    if not isinstance(regions_raw, list):
        raise CampaignFormatError(f"{where} regions must be a list")
    regions = tuple(parse_required_region(region, where) for region in regions_raw)
    seen: set[str] = set()
    for region in regions:
        if region.id in seen:
            raise CampaignFormatError(f"{where} declares region {region.id!r} twice")
        seen.add(region.id)
    return CombatMapSpec(
        id=spec_id,
        name=_require(raw, "name", where),
        feet_per_square=coerce_int(raw.get("feetPerSquare")) or 5,
        terrain=_optional_str(raw, "terrain") or "mixed",
        lighting=_optional_str(raw, "lighting") or "mixed",
        layout_description=_require(raw, "layoutDescription", where),
        regions=regions,
        atmosphere_notes=_optional_str(raw, "atmosphereNotes"),
    )


def parse_point_of_interest(raw: Any, index: int, where: str) -> PointOfInterest:
    if not isinstance(raw, dict):
        raise CampaignFormatError(f"{where} point of interest entries must be objects")
    position = raw.get("position")
    x, y = 50.0, 50.0
    if isinstance(position, dict):
        try:
            x = float(position.get("x", x))
            y = float(position.get("y", y))
        except (TypeError, ValueError):
            raise CampaignFormatError(f"{where} has a non-numeric point of interest position") from None
    act_numbers = raw.get("actNumbers") if isinstance(raw.get("actNumbers"), list) else []
    return PointOfInterest(
        id=_require(raw, "id", where),
        number=coerce_int(raw.get("number")) or index + 1,
        name=_require(raw, "name", where),
        description=_optional_str(raw, "description") or "",
        is_hidden=bool(raw.get("isHidden", False)),
        combat_map_spec_id=_optional_str(raw, "combatMapSpecId"),
        position=(x, y),
        act_numbers=tuple(n for n in (coerce_int(a) for a in act_numbers) if n is not None),
        location_tags=_str_tuple(raw.get("locationTags")),
        default_npc_slugs=_str_tuple(raw.get("defaultNPCSlugs")),
    )


def parse_exploration_spec(raw: Any) -> ExplorationMapSpec:
    if not isinstance(raw, dict):
        raise CampaignFormatError("Exploration map specs must be objects")
    spec_id = _require(raw, "id", "exploration map spec")
    where = f"exploration map spec {spec_id!r}"
    pois_raw = raw.get("pointsOfInterest") or []
    if not isinstance(pois_raw, list):
        raise CampaignFormatError(f"{where} pointsOfInterest must be a list")
    return ExplorationMapSpec(
        id=spec_id,
        name=_require(raw, "name", where),
        points_of_interest=tuple(
            parse_point_of_interest(poi, index, where) for index, poi in enumerate(pois_raw)
        ),
        feet_per_square=coerce_int(raw.get("feetPerSquare")) or 100,
        image_description=_optional_str(raw, "imageDescription"),
    )


def campaign_from_dict(data: dict[str, Any]) -> CampaignMapSet:
    if isinstance(data.get("campaign"), dict):
        data = data["campaign"]
    slug = _require(data, "slug", "campaign")
    title = _optional_str(data, "title") or slug

    exploration_raw = data.get("explorationMapSpecs") or []
    combat_raw = data.get("combatMapSpecs")
    legacy = combat_raw is None and isinstance(data.get("mapSpecs"), list)
    if legacy:
        logger.warning("Campaign %s uses legacy mapSpecs; treating all specs as combat maps", slug)
        combat_raw = data["mapSpecs"]
        exploration_raw = []

    if not isinstance(exploration_raw, list) or not isinstance(combat_raw or [], list):
        raise CampaignFormatError(f"Campaign {slug!r} map spec fields must be lists")

    return CampaignMapSet(
        campaign_id=slug,
        title=title,
        exploration_specs=[parse_exploration_spec(raw) for raw in exploration_raw],
        combat_specs=[parse_combat_spec(raw) for raw in combat_raw or []],
        legacy=legacy,
    )


def bundled_campaigns_dir() -> Path:
    return Path(str(resources.files("campaign_map_engine") / "campaign_data"))


class CampaignCatalog:
    """Campaign definitions stored as ``<slug>.json`` files in one directory."""

    def __init__(self, directory: Path | str | None = None):
        self._directory = Path(directory) if directory is not None else bundled_campaigns_dir()

    @property
    def directory(self) -> Path:
        return self._directory

    def list_ids(self) -> list[str]:
        if not self._directory.is_dir():
            return []
        return sorted(path.stem for path in self._directory.glob("*.json"))

    def load(self, campaign_id: str) -> CampaignMapSet:
        path = self._directory / f"{campaign_id}.json"
        if not path.is_file():
            raise CampaignNotFoundError(
                f'Campaign "{campaign_id}" not found. Available campaigns: '
                f"{', '.join(self.list_ids()) or 'none'}"
            )
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise CampaignFormatError(f"{path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise CampaignFormatError(f"{path} must contain a JSON object")
        return campaign_from_dict(data)
