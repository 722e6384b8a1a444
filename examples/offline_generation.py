from __future__ import annotations

import asyncio
import json

from campaign_map_engine.campaigns import CampaignCatalog
from campaign_map_engine.core.backends import TextGridBackend
from campaign_map_engine.core.driver import CampaignMapDriver
from campaign_map_engine.core.orchestrator import MapRegenerationOrchestrator
from campaign_map_engine.core.types import CompletionResult
from campaign_map_engine.persistence.sqlalchemy import open_map_store


class DemoCompletion:
    """Answers every grid request with a walled courtyard holding all requested regions."""

    async def complete(self, system_prompt, prompt, **kwargs):
        rows = [[1] * 20] + [[1] + [4] * 18 + [1] for _ in range(18)] + [[1] * 20]
        rows[19][10] = 2
        region_ids = [line.split(":")[0].strip(" -") for line in prompt.splitlines() if line.startswith("  - ")]
        regions = [
            {
                "id": region_id,
                "name": region_id.removeprefix("region_").replace("_", " "),
                "type": "custom",
                "bounds": {"minRow": 1 + 4 * (i % 4), "maxRow": 4 + 4 * (i % 4), "minCol": 1, "maxCol": 18},
            }
            for i, region_id in enumerate(region_ids)
        ]
        return CompletionResult(text=json.dumps({"rows": rows, "regions": regions, "confidence": "low"}))


async def main() -> None:
    uow_factory = open_map_store("sqlite+pysqlite:///:memory:")
    orchestrator = MapRegenerationOrchestrator(uow_factory, TextGridBackend(DemoCompletion()))
    campaign = CampaignCatalog().load("the-crimson-accord")

    report = await CampaignMapDriver(orchestrator).run(campaign, map_id="smuggler-warehouse")
    for phase in report.phases:
        for outcome in phase.outcomes:
            print(outcome.map_spec_id, outcome.status, outcome.path, outcome.confidence)

    with uow_factory() as uow:
        document = uow.maps.get("the-crimson-accord_smuggler-warehouse")
    print(json.dumps({key: document[key] for key in ("mapSpecId", "tileEncoding", "confidence")}, indent=2))
    print("regions:", [region["id"] for region in document["regions"]])


if __name__ == "__main__":
    asyncio.run(main())
