from __future__ import annotations

import json

import pytest

from campaign_map_engine.core.types import CombatMapSpec, ExplorationMapSpec, PointOfInterest, RequiredRegion
from campaign_map_engine.persistence.sqlalchemy.db import build_engine, build_session_factory, create_schema
from campaign_map_engine.persistence.sqlalchemy.uow import SQLAlchemyUnitOfWork


@pytest.fixture()
def session_factory():
    engine = build_engine("sqlite+pysqlite:///:memory:")
    create_schema(engine)
    return build_session_factory(engine)


@pytest.fixture()
def uow_factory(session_factory):
    def _factory():
        return SQLAlchemyUnitOfWork(session_factory)

    return _factory


@pytest.fixture()
def combat_spec():
    return CombatMapSpec(
        id="valdris-docks",
        name="Valdris Docks",
        feet_per_square=5,
        terrain="urban",
        lighting="dim",
        layout_description="A pier district with warehouses to the north and open water to the south.",
        regions=(
            RequiredRegion(id="region_a", name="main pier", type="street", size="large", position="south"),
            RequiredRegion(id="region_b", name="warehouse row", type="shop", size="medium", position="north"),
        ),
        atmosphere_notes="Rain-slicked planks.",
    )


@pytest.fixture()
def exploration_spec():
    return ExplorationMapSpec(
        id="valdris-city",
        name="Valdris",
        points_of_interest=(
            PointOfInterest(
                id="poi_docks",
                number=1,
                name="docks",
                description="The waterfront.",
                combat_map_spec_id="valdris-docks",
                position=(30.0, 80.0),
                act_numbers=(1,),
                location_tags=("docks",),
            ),
            PointOfInterest(
                id="poi_cellar",
                number=2,
                name="secret cellar",
                description="Hidden.",
                is_hidden=True,
            ),
        ),
    )


@pytest.fixture()
def grid_payload():
    """Build a model response for the combat spec fixture."""

    def _build(*, tile=0, region_ids=("region_a", "region_b"), confidence="high", fenced=False):
        rows = [[tile] * 20 for _ in range(20)]
        regions = [
            {
                "id": region_id,
                "name": region_id.replace("_", " "),
                "type": "street",
                "bounds": {"minRow": i * 5, "maxRow": i * 5 + 3, "minCol": 0, "maxCol": 4},
            }
            for i, region_id in enumerate(region_ids)
        ]
        text = json.dumps({"rows": rows, "regions": regions, "confidence": confidence})
        if fenced:
            text = f"```json\n{text}\n```"
        return text

    return _build
