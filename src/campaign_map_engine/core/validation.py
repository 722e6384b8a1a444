from __future__ import annotations

import json
import logging
from typing import Any

from .errors import (
    GridShapeError,
    MissingRegionsError,
    RegionBoundsError,
    RegionShapeError,
    ResponseParseError,
    WalkabilityError,
)
from .normalize import (
    clamp,
    coerce_int,
    extract_json,
    normalize_confidence,
    normalize_region_type,
    string_list,
)
from .types import (
    CELL_COUNT,
    GRID_SIZE,
    TILE_FLOOR,
    CombatMapSpec,
    Region,
    TileEncoding,
    TileGrid,
    ValidatedMap,
)

logger = logging.getLogger(__name__)

DEFAULT_MIN_WALKABLE_FRACTION = 0.30


def parse_model_output(raw_text: str | None) -> dict[str, Any]:
    """Strip markdown fencing from a completion and parse the JSON object."""
    json_text = extract_json(raw_text or "")
    if json_text is None:
        raise ResponseParseError("Response did not contain a JSON object")
    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as exc:
        raise ResponseParseError(f"Response JSON could not be parsed: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ResponseParseError("Response JSON must be an object")
    return parsed


def extract_tiles(parsed: dict[str, Any]) -> list[Any]:
    rows = parsed.get("rows")
    if isinstance(rows, list):
        if len(rows) != GRID_SIZE:
            raise GridShapeError(f'"rows" must have exactly {GRID_SIZE} rows, got {len(rows)}')
        flat: list[Any] = []
        for index, row in enumerate(rows):
            if not isinstance(row, list):
                raise GridShapeError(f"Row {index} must have exactly {GRID_SIZE} values, got non-array")
            if len(row) != GRID_SIZE:
                raise GridShapeError(f"Row {index} must have exactly {GRID_SIZE} values, got {len(row)}")
            flat.extend(row)
        return flat

    tile_data = parsed.get("tileData")
    if isinstance(tile_data, list):
        if len(tile_data) != CELL_COUNT:
            raise GridShapeError(
                f"tileData must be exactly {CELL_COUNT} elements "
                f"({GRID_SIZE}x{GRID_SIZE}), got {len(tile_data)}"
            )
        return list(tile_data)

    raise GridShapeError(
        f'Response must contain either "rows" ({GRID_SIZE}x{GRID_SIZE}) '
        f'or "tileData" ({CELL_COUNT}-element array)'
    )


def clamp_tiles(values: list[Any], encoding: TileEncoding) -> TileGrid:
    # Out-of-range tiles become floor, never wall.
    cells: list[int] = []
    for value in values:
        number = coerce_int(value)
        cells.append(number if number is not None and encoding.is_valid(number) else TILE_FLOOR)
    return TileGrid(cells=tuple(cells), encoding=encoding)


def check_walkability(grid: TileGrid, min_fraction: float = DEFAULT_MIN_WALKABLE_FRACTION) -> None:
    fraction = grid.walkable_fraction()
    if fraction < min_fraction:
        raise WalkabilityError(fraction * 100, min_fraction * 100)


def _bound(bounds: dict[str, Any], key: str, region_id: str) -> int:
    raw = bounds.get(key, 0)
    number = coerce_int(raw if raw is not None else 0)
    if number is None:
        raise RegionShapeError(f'Region "{region_id}" has a non-integer {key}: {raw!r}')
    return number


def _expand_bounds(bounds: Any, region_id: str) -> list[int]:
    if not isinstance(bounds, dict):
        raise RegionShapeError(f'Region "{region_id}" bounds must be an object')
    min_row = _bound(bounds, "minRow", region_id)
    max_row = _bound(bounds, "maxRow", region_id)
    min_col = _bound(bounds, "minCol", region_id)
    max_col = _bound(bounds, "maxCol", region_id)
    if min_row > max_row or min_col > max_col:
        raise RegionBoundsError(region_id)

    last = GRID_SIZE - 1
    min_row, max_row = clamp(min_row, 0, last), clamp(max_row, 0, last)
    min_col, max_col = clamp(min_col, 0, last), clamp(max_col, 0, last)
    return [
        row * GRID_SIZE + col
        for row in range(min_row, max_row + 1)
        for col in range(min_col, max_col + 1)
    ]


def _clamp_cells(raw_cells: list[Any]) -> list[int]:
    seen: set[int] = set()
    cells: list[int] = []
    for raw in raw_cells:
        number = coerce_int(raw)
        if number is None:
            continue
        cell = clamp(number, 0, CELL_COUNT - 1)
        if cell in seen:
            continue
        seen.add(cell)
        cells.append(cell)
    return cells


def normalize_regions(raw_regions: Any) -> list[Region]:
    if not isinstance(raw_regions, list):
        return []
    regions: list[Region] = []
    seen_ids: set[str] = set()
    for index, raw in enumerate(raw_regions):
        if not isinstance(raw, dict):
            continue
        has_cells = isinstance(raw.get("cells"), list)
        if not has_cells and not raw.get("bounds"):
            continue

        region_id = str(raw.get("id") or "").strip() or f"region_{index}"
        if region_id in seen_ids:
            raise RegionShapeError(f'Region id "{region_id}" appears more than once')
        seen_ids.add(region_id)

        if has_cells:
            cells = _clamp_cells(raw["cells"])
        else:
            cells = _expand_bounds(raw["bounds"], region_id)

        dm_note = raw.get("dmNote")
        regions.append(
            Region(
                id=region_id,
                name=str(raw.get("name") or "").strip() or f"Region {index + 1}",
                type=normalize_region_type(raw.get("type")),
                cells=cells,
                dm_note=str(dm_note).strip() if dm_note else None,
                default_npc_slugs=string_list(raw.get("defaultNPCSlugs")),
                shop_inventory=string_list(raw.get("shopInventory")),
            )
        )
    return regions


def check_required_regions(regions: list[Region], spec: CombatMapSpec) -> None:
    present = {region.id for region in regions}
    missing = [required.id for required in spec.regions if required.id not in present]
    if missing:
        raise MissingRegionsError(missing)


def validate_map_output(
    parsed: dict[str, Any],
    spec: CombatMapSpec,
    *,
    encoding: TileEncoding = TileEncoding.EXTENDED,
    min_walkable_fraction: float = DEFAULT_MIN_WALKABLE_FRACTION,
) -> ValidatedMap:
    """Turn untrusted model output into a conformant grid, regions and confidence.

    Raises a :class:`~campaign_map_engine.core.errors.MapValidationError`
    subclass naming the first violated invariant. Nothing is padded,
    truncated or invented beyond the documented defaults.
    """
    if not isinstance(parsed, dict):
        raise ResponseParseError("Model output must be a JSON object")

    grid = clamp_tiles(extract_tiles(parsed), encoding)
    check_walkability(grid, min_walkable_fraction)
    regions = normalize_regions(parsed.get("regions"))
    check_required_regions(regions, spec)
    confidence = normalize_confidence(parsed.get("confidence"))

    logger.debug(
        "MAP VALIDATED spec=%s walkable=%s regions=%s confidence=%s",
        spec.id,
        grid.walkable_count(),
        len(regions),
        confidence,
    )
    return ValidatedMap(grid=grid, regions=regions, confidence=confidence)
