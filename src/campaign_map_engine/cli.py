"""Generate grid maps for a campaign.

Usage::

    campaign-maps --campaign the-crimson-accord --dry-run
    campaign-maps --campaign the-crimson-accord --map valdris-docks --no-images
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence, TextIO

from .adapters import AnthropicCompletion, LocalBlobStore, StabilityImageGenerator
from .campaigns import CampaignCatalog
from .config import Settings
from .core.backends import GenerationConfig, TextGridBackend, VisionGridBackend
from .core.driver import CampaignMapDriver
from .core.errors import MapEngineError
from .core.orchestrator import MapRegenerationOrchestrator
from .core.types import CampaignMapSet, CombatMapSpec, ExplorationMapSpec, RunReport
from .persistence.sqlalchemy import open_map_store


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="campaign-maps",
        description="Generate exploration and combat maps for a campaign.",
    )
    parser.add_argument("--campaign", required=True, help="Campaign slug to generate maps for")
    parser.add_argument("--map", dest="map_id", default=None, help="Only generate this map spec id")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Preview the generation plan without calling APIs or saving",
    )
    parser.add_argument(
        "--no-images",
        action="store_true",
        help="Skip image generation and use the text-to-grid pipeline only",
    )
    parser.add_argument("--campaigns-dir", default=None, help="Directory of <slug>.json campaign files")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL of the map store")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def format_plan(
    campaign: CampaignMapSet,
    exploration: Sequence[ExplorationMapSpec],
    combat: Sequence[CombatMapSpec],
    *,
    images: bool,
    dry_run: bool,
) -> list[str]:
    total = len(campaign.exploration_specs) + len(campaign.combat_specs)
    selected = len(exploration) + len(combat)
    lines = [
        "── Campaign Map Generation ──",
        f"Campaign: {campaign.title} ({campaign.campaign_id})",
        f"Maps to generate: {selected}/{total} ({len(exploration)} exploration, {len(combat)} combat)",
        "Pipeline: "
        + ("image-first (image generation -> vision grid)" if images else "text-to-grid"),
    ]
    if dry_run:
        lines.append("Mode: DRY RUN (no API calls, no store writes)")
    lines.append("")
    if exploration:
        lines.append("  ── Exploration Maps ──")
        for spec in exploration:
            names = ", ".join(poi.name for poi in spec.points_of_interest)
            lines.append(f"  {spec.id}")
            lines.append(f"    Name: {spec.name}")
            lines.append(f"    POIs: {len(spec.points_of_interest)} ({names})")
            lines.append("")
    if combat:
        lines.append("  ── Combat Maps ──")
        for spec in combat:
            names = ", ".join(region.name for region in spec.regions)
            lines.append(f"  {spec.id}")
            lines.append(f"    Name: {spec.name}")
            lines.append(
                f"    Terrain: {spec.terrain}, Lighting: {spec.lighting}, Scale: {spec.feet_per_square}ft/sq"
            )
            lines.append(f"    Regions: {len(spec.regions)} ({names})")
            lines.append("")
    return lines


def format_report(report: RunReport) -> list[str]:
    if report.dry_run:
        return [
            f"Dry run complete. {len(report.planned_map_ids)} maps would be generated.",
            f"Estimated cost: ${report.estimated_cost:.2f}",
        ]
    lines = ["── Summary ──"]
    for phase in report.phases:
        for outcome in phase.outcomes:
            detail = outcome.error if outcome.error else f"{outcome.status} via {outcome.path}"
            lines.append(f"  [{phase.name}] {outcome.map_spec_id}: {detail} (${outcome.total_cost:.4f})")
    completion_cost = sum(phase.completion_cost for phase in report.phases)
    image_cost = sum(phase.image_cost for phase in report.phases)
    lines.append(f"  Generated: {report.success_count}/{len(report.planned_map_ids)}")
    if report.fail_count:
        lines.append(f"  Failed: {report.fail_count}")
    lines.append(f"  Completion cost: ${completion_cost:.4f}")
    lines.append(f"  Image cost: ${image_cost:.4f}")
    lines.append(f"  Total cost: ${report.total_cost:.4f}")
    return lines


def build_orchestrator(
    settings: Settings,
    *,
    images: bool,
    database_url: Optional[str] = None,
    config: GenerationConfig | None = None,
) -> MapRegenerationOrchestrator:
    config = config or GenerationConfig()
    uow_factory = open_map_store(database_url or settings.database_url)
    completion = AnthropicCompletion(settings.anthropic_api_key, model=settings.model)
    text_backend = TextGridBackend(completion, config=config)
    vision_backend = None
    image_generator = None
    if images:
        assert settings.stability_api_key is not None
        vision_backend = VisionGridBackend(completion, config=config)
        image_generator = StabilityImageGenerator(settings.stability_api_key)
    blob_store = LocalBlobStore(settings.blob_root, base_url=settings.blob_base_url)
    return MapRegenerationOrchestrator(
        uow_factory,
        text_backend,
        vision_backend=vision_backend,
        image_generator=image_generator,
        blob_store=blob_store,
        config=config,
    )


def _emit(lines: Sequence[str], stream: TextIO) -> None:
    for line in lines:
        print(line, file=stream)


def main(argv: Optional[Sequence[str]] = None, *, settings: Settings | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = settings or Settings.from_env()
    out, err = sys.stdout, sys.stderr

    images = not args.no_images and settings.images_available
    if not args.no_images and not settings.images_available:
        print("STABILITY_API_KEY not set; falling back to text-to-grid pipeline.", file=out)

    try:
        campaign = CampaignCatalog(args.campaigns_dir).load(args.campaign)
    except MapEngineError as exc:
        print(str(exc), file=err)
        return 1
    if campaign.legacy:
        print("Campaign uses legacy mapSpecs; treating all specs as combat maps.", file=out)

    preview = CampaignMapDriver(image_path_enabled=images)
    try:
        exploration, combat = preview.select_specs(campaign, args.map_id)
    except MapEngineError as exc:
        print(str(exc), file=err)
        return 1
    _emit(format_plan(campaign, exploration, combat, images=images, dry_run=args.dry_run), out)

    if args.dry_run:
        report = asyncio.run(preview.run(campaign, map_id=args.map_id, dry_run=True))
        _emit(format_report(report), out)
        return 0

    if not settings.anthropic_api_key:
        print("ANTHROPIC_API_KEY environment variable not set.", file=err)
        return 1

    orchestrator = build_orchestrator(settings, images=images, database_url=args.database_url)
    driver = CampaignMapDriver(orchestrator)
    report = asyncio.run(driver.run(campaign, map_id=args.map_id))
    _emit(format_report(report), out)
    return 1 if report.fail_count else 0


if __name__ == "__main__":
    raise SystemExit(main())
