from __future__ import annotations

from sqlalchemy import CheckConstraint, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class CampaignMapDocument(TimestampMixin, Base):
    __tablename__ = "cme_campaign_maps"

    # "{campaign_id}_{map_spec_id}"
    id: Mapped[str] = mapped_column(String(200), primary_key=True)
    campaign_id: Mapped[str] = mapped_column(String(64), nullable=False)
    map_spec_id: Mapped[str] = mapped_column(String(128), nullable=False)
    map_type: Mapped[str] = mapped_column(String(16), nullable=False)
    payload_json: Mapped[str] = mapped_column(Text, nullable=False, default="{}")

    __table_args__ = (
        UniqueConstraint("campaign_id", "map_spec_id", name="uq_cme_campaign_map_spec"),
        CheckConstraint("map_type IN ('combat','exploration')", name="campaign_map_type_valid"),
    )


Index("ix_cme_campaign_map_campaign", CampaignMapDocument.campaign_id)
