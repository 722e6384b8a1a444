from __future__ import annotations

from .types import GRID_SIZE, CombatMapSpec, ExplorationMapSpec

_REGION_TYPE_LINE = (
    "Region types: tavern, shop, temple, dungeon, wilderness, residential, "
    "street, guard_post, danger, safe, custom."
)

_OUTPUT_SHAPE = """{
  "rows": [            // 20 arrays of 20 tile values, row 0 first
    [0,0,1,1,...],
    ...
  ],
  "regions": [
    {
      "id": "region_<short_snake_case>",
      "name": "Human-readable Area Name",
      "type": "<region_type>",
      "bounds": { "minRow": 0, "maxRow": 5, "minCol": 0, "maxCol": 5 },
      "dmNote": "Brief note on what is notable here"
    }
  ],
  "confidence": "high" | "medium" | "low"
}"""

TEXT_GRID_SYSTEM_PROMPT = f"""You are a tabletop RPG battle map layout generator. Given a text description of a location, produce a {GRID_SIZE}x{GRID_SIZE} tile grid with walls, doors and floors, plus named region bounds.

Return a single JSON object shaped like this:

{_OUTPUT_SHAPE}

Tile values: 0=outdoor floor, 1=wall, 2=door, 3=water (difficult terrain), 4=indoor floor.
{_REGION_TYPE_LINE}

Layout rules:
- Row 0 is north, row 19 is south. Column 0 is west, column 19 is east.
- Walls (1) outline rooms and building exteriors. Doors (2) connect rooms.
- Open outdoor ground and corridors are 0. Walkable interior space is 4.
- Rivers, ponds and canals are 3.
- Corridors between distant rooms are 1-2 tiles wide.
- Keep at least 30% of all tiles walkable.

Region sizes: small ~2-3 rows x 3-4 cols, medium ~4-5 rows x 5-6 cols, large ~6-8 rows x 6-10 cols.
Positions: north = rows 0-6, center = rows 7-12, south = rows 13-19; west = cols 0-6, east = cols 13-19.

Terrain styles:
- dungeon: thick walls, narrow corridors, many doors
- urban: buildings as wall blocks with streets between them
- interior: rooms divided by walls with doors
- underground: tunnels and irregular caverns
- wilderness: mostly open floor with scattered obstacles
- mixed: combine styles as described

Respond with ONLY valid JSON. No markdown fencing, no explanation."""

VISION_GRID_SYSTEM_PROMPT = f"""You are a tabletop RPG battle map analysis assistant. Given a map image, overlay a {GRID_SIZE}x{GRID_SIZE} grid and produce structured JSON.

Each cell covers exactly 5% of the image width and 5% of the image height. Row 0 is the top edge, column 0 is the left edge. Work row by row and classify what fills the majority of each cell.

Return a single JSON object shaped like this:

{_OUTPUT_SHAPE}

Tile values (only these three): 0=walkable floor, 1=wall or solid obstacle, 2=door or archway.
{_REGION_TYPE_LINE}

Rules:
- Exactly 20 rows of exactly 20 values.
- When in doubt, prefer 0. Mark 1 only for clearly solid walls or obstacles.
- Region bounds are inclusive minRow/maxRow/minCol/maxCol. Regions may overlap.
- Use confidence "low" when the image is ambiguous or abstract.
- You MUST use the exact region ids listed in the request.

Respond with ONLY valid JSON. No markdown fencing, no explanation."""

IMAGE_NEGATIVE_PROMPT = (
    "isometric, 3d perspective, character tokens, miniatures, dice, "
    "text, labels, grid lines, blurry, low quality, watermark"
)

TERRAIN_STYLES = {
    "urban": "city streets, cobblestone, buildings",
    "dungeon": "dark stone corridors, torchlit, dungeon walls",
    "underground": "cave tunnels, damp stone, stalactites",
    "interior": "wooden floors, stone walls, furnished rooms",
    "wilderness": "natural terrain, trees, rocks, grass",
    "mixed": "varied terrain, combination of indoor and outdoor areas",
}

LIGHTING_STYLES = {
    "bright": "well-lit, daylight, clear visibility",
    "dim": "low light, flickering lanterns, soft shadows",
    "dark": "very dark, minimal light, deep shadows",
    "mixed": "patches of light and shadow, varied illumination",
}


def build_text_grid_prompt(spec: CombatMapSpec) -> str:
    region_lines = []
    for region in spec.regions:
        parts = [f'  - {region.id}: "{region.name}" ({region.type}, {region.size})']
        if region.position:
            parts.append(f"position: {region.position}")
        if region.dm_note:
            parts.append(f"note: {region.dm_note}")
        region_lines.append(", ".join(parts))

    lines = [
        f'Generate a {GRID_SIZE}x{GRID_SIZE} map grid for: "{spec.name}"',
        "",
        f"Terrain: {spec.terrain}",
        f"Lighting: {spec.lighting}",
        f"Scale: {spec.feet_per_square} feet per square",
        "",
        "Layout Description:",
        spec.layout_description,
        "",
    ]
    if spec.atmosphere_notes:
        lines.extend([f"Atmosphere: {spec.atmosphere_notes}", ""])
    if region_lines:
        lines.append("Required Regions (each must appear in your output with the same id):")
        lines.extend(region_lines)
        lines.append("")
    lines.append(
        "Generate the rows and regions. Every region listed above MUST appear "
        "in the output regions array with the same id."
    )
    return "\n".join(lines)


def build_region_hints(spec: CombatMapSpec) -> str:
    hints = []
    for region in spec.regions:
        hint = (
            f"- {region.id} (type: {region.type}, approximate position: "
            f"{region.position or 'unspecified'}, size: {region.size})"
        )
        if region.name:
            hint += f'\n  name: "{region.name}"'
        if region.dm_note:
            hint += f"\n  note: {region.dm_note}"
        hints.append(hint)
    return "\n".join(hints)


def build_vision_grid_prompt(spec: CombatMapSpec) -> str:
    if spec.feet_per_square > 10:
        scale_hint = "This is a zone/overworld map. Expect large open areas with few walls."
    else:
        scale_hint = "This is a detailed dungeon/city map. Look for walls, doors and distinct rooms."

    prompt = (
        f"Analyze this map image on a {GRID_SIZE}x{GRID_SIZE} grid. "
        f"Scale: {spec.feet_per_square} feet per square. {scale_hint}"
    )
    hints = build_region_hints(spec)
    if hints:
        prompt += (
            "\n\nThis map must include the following named regions. "
            "Use these EXACT region ids and types:\n"
            f"{hints}\n\n"
            "Match each region's bounding box to where that area appears in the image. "
            "Every region listed above MUST appear in your output regions array with the same id."
        )
    return prompt


def build_combat_image_prompt(spec: CombatMapSpec) -> str:
    region_names = ", ".join(region.name for region in spec.regions)
    parts = [
        f"Top-down overhead view of a fantasy battle map: {spec.name}.",
        TERRAIN_STYLES.get(spec.terrain, spec.terrain) + ".",
        LIGHTING_STYLES.get(spec.lighting, spec.lighting) + ".",
        spec.layout_description,
        f"{spec.atmosphere_notes}." if spec.atmosphere_notes else "",
        f"Key areas: {region_names}." if region_names else "",
        "Detailed fantasy tabletop RPG battle map, top-down orthographic view,",
        "no characters or tokens, high detail textures, painted style.",
    ]
    return " ".join(part for part in parts if part)


def build_exploration_image_prompt(spec: ExplorationMapSpec) -> str:
    landmarks = ", ".join(poi.name for poi in spec.points_of_interest if not poi.is_hidden)
    parts = [
        f"Zoomed-out bird's-eye view of a fantasy region map: {spec.name}.",
        spec.image_description or "",
        f"Notable landmarks: {landmarks}." if landmarks else "",
        "Hand-painted fantasy cartography, top-down view, wide overview,",
        "no characters or tokens, no text labels, high detail.",
    ]
    return " ".join(part for part in parts if part)
