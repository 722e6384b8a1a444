from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from ...core.normalize import dump_json, parse_json_dict
from .base import utcnow
from .models import CampaignMapDocument


class MapDocumentRepo:
    def __init__(self, session: Session):
        self.session = session

    def get(self, doc_id: str) -> dict[str, Any] | None:
        row = self.session.get(CampaignMapDocument, doc_id)
        if row is None:
            return None
        return parse_json_dict(row.payload_json)

    def get_raw(self, doc_id: str) -> str | None:
        row = self.session.get(CampaignMapDocument, doc_id)
        return row.payload_json if row is not None else None

    def put(
        self,
        doc_id: str,
        campaign_id: str,
        map_spec_id: str,
        map_type: str,
        document: dict[str, Any],
    ) -> CampaignMapDocument:
        payload = dump_json(document)
        row = self.session.get(CampaignMapDocument, doc_id)
        if row is None:
            row = CampaignMapDocument(
                id=doc_id,
                campaign_id=campaign_id,
                map_spec_id=map_spec_id,
                map_type=map_type,
                payload_json=payload,
            )
            self.session.add(row)
        else:
            row.map_type = map_type
            row.payload_json = payload
            row.updated_at = utcnow()
        self.session.flush()
        return row
