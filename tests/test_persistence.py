from __future__ import annotations

from sqlalchemy import select

from campaign_map_engine.persistence.sqlalchemy.db import open_map_store
from campaign_map_engine.persistence.sqlalchemy.models import CampaignMapDocument


def test_put_inserts_then_updates(uow_factory, session_factory):
    with uow_factory() as uow:
        uow.maps.put("c_docks", "c", "docks", "combat", {"name": "Docks", "tileData": [0, 1]})
        uow.commit()

    with uow_factory() as uow:
        assert uow.maps.get("c_docks") == {"name": "Docks", "tileData": [0, 1]}
        uow.maps.put("c_docks", "c", "docks", "combat", {"name": "Docks v2"})
        uow.commit()

    with session_factory() as session:
        rows = session.execute(select(CampaignMapDocument)).scalars().all()
        assert len(rows) == 1
        assert rows[0].campaign_id == "c"
        assert rows[0].map_spec_id == "docks"
        assert rows[0].payload_json == '{"name":"Docks v2"}'


def test_uncommitted_work_is_rolled_back(uow_factory):
    try:
        with uow_factory() as uow:
            uow.maps.put("c_hall", "c", "hall", "combat", {"name": "Hall"})
            raise RuntimeError("boom")
    except RuntimeError:
        pass

    with uow_factory() as uow:
        assert uow.maps.get("c_hall") is None
        assert uow.maps.get_raw("c_hall") is None


def test_open_map_store_creates_schema(tmp_path):
    uow_factory = open_map_store(f"sqlite:///{tmp_path / 'maps.db'}")
    with uow_factory() as uow:
        uow.maps.put("c_x", "c", "x", "combat", {"ok": True})
        uow.commit()
    with uow_factory() as uow:
        assert uow.maps.get("c_x") == {"ok": True}
