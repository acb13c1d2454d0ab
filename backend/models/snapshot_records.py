# models/snapshot_records.py

from sqlalchemy import Column, Index, Integer, String, JSON
from db.base import Base


class SnapshotRecord(Base):
    __tablename__ = "snapshot_records"

    id = Column(Integer, primary_key=True, index=True)
    table_kind = Column(String, nullable=False, index=True)  # competitor_pins / pin_analysis / ...
    record_id = Column(String, nullable=False)                # Airtable "rec..." id
    created_time = Column(String)
    position = Column(Integer, nullable=False, default=0)     # order as returned by Airtable
    data = Column(JSON)                                       # raw record fields

    __table_args__ = (
        Index("ix_snapshot_records_kind_position", "table_kind", "position"),
    )
