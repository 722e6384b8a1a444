from __future__ import annotations

import logging
from typing import Optional, Sequence, TypeVar

from .backends import GenerationConfig
from .errors import EmptyCampaignError, UnknownMapSpecError
from .orchestrator import MapRegenerationOrchestrator
from .types import CampaignMapSet, CombatMapSpec, ExplorationMapSpec, MapOutcome, PhaseReport, RunReport

SpecT = TypeVar("SpecT", CombatMapSpec, ExplorationMapSpec)

PHASE_EXPLORATION = "exploration"
PHASE_COMBAT = "combat"


def _filter(specs: Sequence[SpecT], map_id: Optional[str]) -> list[SpecT]:
    if map_id is None:
        return list(specs)
    return [spec for spec in specs if spec.id == map_id]


class CampaignMapDriver:
    """Runs every map spec of a campaign through the orchestrator, one at a time.

    Exploration maps go first, then combat maps. A failed map is recorded
    and the batch carries on.
    """

    def __init__(
        self,
        orchestrator: MapRegenerationOrchestrator | None = None,
        *,
        image_path_enabled: bool | None = None,
        config: GenerationConfig | None = None,
        logger: logging.Logger | None = None,
    ):
        self._orchestrator = orchestrator
        if image_path_enabled is None:
            image_path_enabled = orchestrator.image_path_enabled if orchestrator is not None else False
        self._image_path_enabled = image_path_enabled
        self._config = config or GenerationConfig()
        self._logger = logger or logging.getLogger(__name__)

    def select_specs(
        self,
        campaign: CampaignMapSet,
        map_id: Optional[str] = None,
    ) -> tuple[list[ExplorationMapSpec], list[CombatMapSpec]]:
        total = len(campaign.exploration_specs) + len(campaign.combat_specs)
        if total == 0:
            raise EmptyCampaignError(f'Campaign "{campaign.title}" has no map specs defined.')

        exploration = _filter(campaign.exploration_specs, map_id)
        combat = _filter(campaign.combat_specs, map_id)
        if map_id is not None and not exploration and not combat:
            available = [spec.id for spec in campaign.exploration_specs]
            available.extend(spec.id for spec in campaign.combat_specs)
            raise UnknownMapSpecError(map_id, available)
        return exploration, combat

    def estimate_cost(
        self,
        exploration: Sequence[ExplorationMapSpec],
        combat: Sequence[CombatMapSpec],
    ) -> float:
        cfg = self._config
        if self._image_path_enabled:
            per_combat = cfg.estimated_image_cost + cfg.estimated_vision_cost
            per_exploration = cfg.estimated_image_cost
        else:
            per_combat = cfg.estimated_text_cost
            per_exploration = 0.0
        return per_exploration * len(exploration) + per_combat * len(combat)

    async def run(
        self,
        campaign: CampaignMapSet,
        *,
        map_id: Optional[str] = None,
        dry_run: bool = False,
    ) -> RunReport:
        exploration, combat = self.select_specs(campaign, map_id)
        report = RunReport(
            campaign_id=campaign.campaign_id,
            dry_run=dry_run,
            planned_map_ids=[spec.id for spec in exploration] + [spec.id for spec in combat],
            estimated_cost=self.estimate_cost(exploration, combat),
        )
        self._logger.info(
            "CAMPAIGN %s maps=%s exploration=%s combat=%s image_path=%s dry_run=%s",
            campaign.campaign_id,
            len(report.planned_map_ids),
            len(exploration),
            len(combat),
            self._image_path_enabled,
            dry_run,
        )
        if dry_run:
            return report
        if self._orchestrator is None:
            raise ValueError("An orchestrator is required unless dry_run is set")

        if exploration:
            report.phases.append(await self._run_phase(PHASE_EXPLORATION, campaign.campaign_id, exploration))
        if combat:
            report.phases.append(await self._run_phase(PHASE_COMBAT, campaign.campaign_id, combat))
        return report

    async def _run_phase(
        self,
        name: str,
        campaign_id: str,
        specs: Sequence[CombatMapSpec | ExplorationMapSpec],
    ) -> PhaseReport:
        assert self._orchestrator is not None
        phase = PhaseReport(name=name)
        self._logger.info("PHASE %s (%s maps)", name, len(specs))
        for spec in specs:
            try:
                outcome = await self._orchestrator.regenerate(campaign_id, spec)
            except Exception as exc:
                self._logger.exception("Map %s failed unexpectedly", spec.id)
                outcome = MapOutcome(
                    map_spec_id=spec.id,
                    map_type=spec.map_type,
                    status="failed",
                    error=str(exc) or exc.__class__.__name__,
                )
            phase.outcomes.append(outcome)
            self._logger.info(
                "MAP %s status=%s path=%s cost=%.4f",
                spec.id,
                outcome.status,
                outcome.path,
                outcome.total_cost,
            )
        return phase
