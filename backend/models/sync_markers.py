from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint, func

from db.base import Base


class SyncMarker(Base):
    __tablename__ = "sync_markers"

    id = Column(Integer, primary_key=True, index=True)
    table_kind = Column(String, nullable=False, index=True)
    record_count = Column(Integer, nullable=False, default=0)
    synced_at = Column(DateTime(timezone=True), nullable=True)
    last_error = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("table_kind", name="uq_sync_marker_table_kind"),
    )
