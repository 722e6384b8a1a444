from __future__ import annotations

import asyncio

import pytest

from campaign_map_engine.core.backends import GenerationConfig
from campaign_map_engine.core.driver import CampaignMapDriver
from campaign_map_engine.core.errors import EmptyCampaignError, UnknownMapSpecError
from campaign_map_engine.core.types import CampaignMapSet, MapOutcome


class RecordingOrchestrator:
    image_path_enabled = True

    def __init__(self, fail_ids=(), crash_ids=()):
        self.fail_ids = set(fail_ids)
        self.crash_ids = set(crash_ids)
        self.seen = []

    async def regenerate(self, campaign_id, spec):
        self.seen.append((campaign_id, spec.id))
        if spec.id in self.crash_ids:
            raise RuntimeError("store offline")
        if spec.id in self.fail_ids:
            return MapOutcome(spec.id, spec.map_type, "failed", error="exhausted", completion_cost=0.02)
        return MapOutcome(spec.id, spec.map_type, "generated", path="x", completion_cost=0.01, image_cost=0.03)


@pytest.fixture()
def campaign(combat_spec, exploration_spec):
    return CampaignMapSet(
        campaign_id="the-crimson-accord",
        title="The Crimson Accord",
        exploration_specs=[exploration_spec],
        combat_specs=[combat_spec],
    )


def test_runs_exploration_before_combat(campaign):
    async def run_test():
        orchestrator = RecordingOrchestrator()
        report = await CampaignMapDriver(orchestrator).run(campaign)

        assert [spec_id for _, spec_id in orchestrator.seen] == ["valdris-city", "valdris-docks"]
        assert [phase.name for phase in report.phases] == ["exploration", "combat"]
        assert report.success_count == 2
        assert report.fail_count == 0
        assert report.total_cost == pytest.approx(0.08)

    asyncio.run(run_test())


def test_failures_are_counted_and_the_batch_continues(campaign, combat_spec):
    async def run_test():
        orchestrator = RecordingOrchestrator(crash_ids={"valdris-city"}, fail_ids={"valdris-docks"})
        report = await CampaignMapDriver(orchestrator).run(campaign)

        assert len(orchestrator.seen) == 2
        assert report.success_count == 0
        assert report.fail_count == 2
        crashed = report.phases[0].outcomes[0]
        assert crashed.status == "failed"
        assert crashed.error == "store offline"
        assert report.phases[1].completion_cost == pytest.approx(0.02)

    asyncio.run(run_test())


def test_map_filter_matches_either_phase(campaign):
    async def run_test():
        orchestrator = RecordingOrchestrator()
        report = await CampaignMapDriver(orchestrator).run(campaign, map_id="valdris-docks")
        assert orchestrator.seen == [("the-crimson-accord", "valdris-docks")]
        assert [phase.name for phase in report.phases] == ["combat"]
        assert report.planned_map_ids == ["valdris-docks"]

    asyncio.run(run_test())


def test_unknown_map_lists_available_ids(campaign):
    driver = CampaignMapDriver(RecordingOrchestrator())
    with pytest.raises(UnknownMapSpecError) as excinfo:
        driver.select_specs(campaign, "nowhere")
    assert excinfo.value.available == ["valdris-city", "valdris-docks"]
    assert "nowhere" in str(excinfo.value)


def test_empty_campaign_is_rejected():
    with pytest.raises(EmptyCampaignError, match="has no map specs"):
        CampaignMapDriver().select_specs(CampaignMapSet(campaign_id="empty", title="Empty"))


def test_dry_run_estimates_without_calls(campaign):
    async def run_test():
        orchestrator = RecordingOrchestrator()
        config = GenerationConfig(estimated_image_cost=0.03, estimated_vision_cost=0.02, estimated_text_cost=0.05)

        report = await CampaignMapDriver(orchestrator, config=config).run(campaign, dry_run=True)
        assert orchestrator.seen == []
        assert report.dry_run is True
        assert report.phases == []
        assert report.planned_map_ids == ["valdris-city", "valdris-docks"]
        assert report.estimated_cost == pytest.approx(0.03 + 0.05)

        text_only = CampaignMapDriver(image_path_enabled=False, config=config)
        report = await text_only.run(campaign, dry_run=True)
        assert report.estimated_cost == pytest.approx(0.05)

    asyncio.run(run_test())


def test_real_run_requires_an_orchestrator(campaign):
    with pytest.raises(ValueError):
        asyncio.run(CampaignMapDriver().run(campaign))
