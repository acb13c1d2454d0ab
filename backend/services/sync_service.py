import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from models.sync_markers import SyncMarker
from services.record_store import AirtableClient, RecordStoreError
from services.snapshot_repository import invalidate_records_cache, replace_snapshot
from services.tables.registry import SCHEMA_REGISTRY
from services.tables.schema import Record, TableKind

logger = logging.getLogger(__name__)


def _marker(db: Session, table_kind: TableKind) -> SyncMarker:
    marker = (
        db.query(SyncMarker)
        .filter(SyncMarker.table_kind == TableKind(table_kind).value)
        .first()
    )
    if marker is None:
        marker = SyncMarker(table_kind=TableKind(table_kind).value, record_count=0)
        db.add(marker)
    return marker


def mark_sync(db: Session, table_kind: TableKind, record_count: int) -> None:
    marker = _marker(db, table_kind)
    marker.record_count = record_count
    marker.synced_at = datetime.now(timezone.utc)
    marker.last_error = None
    db.flush()


def mark_sync_failure(db: Session, error: str) -> None:
    for kind in TableKind:
        _marker(db, kind).last_error = error
    db.flush()


def fetch_all_tables(client: AirtableClient) -> dict[TableKind, list[Record]]:
    # every table is fetched before anything is written
    return {
        kind: client.fetch_table(schema.remote_name, sort=list(schema.remote_sort) or None)
        for kind, schema in SCHEMA_REGISTRY.items()
    }


def refresh_snapshot(db: Session, client: AirtableClient) -> dict[TableKind, int]:
    """
    Pull every table from Airtable and atomically replace the local snapshot.
    On a transport error the stored records stay as they were.
    """
    logger.info("SYNC: refresh started base=%s", client.base_id)
    try:
        tables = fetch_all_tables(client)
    except RecordStoreError as exc:
        logger.warning("SYNC: refresh failed: %s", exc.message)
        db.rollback()
        mark_sync_failure(db, exc.message)
        db.commit()
        raise

    try:
        counts = replace_snapshot(db, tables)
        for kind, count in counts.items():
            mark_sync(db, kind, count)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("SYNC: snapshot write failed")
        raise
    invalidate_records_cache()

    logger.info(
        "SYNC: refresh finished %s",
        ", ".join(f"{k.value}={v}" for k, v in counts.items()),
    )
    return counts


def get_sync_status(db: Session) -> list[dict]:
    markers = {m.table_kind: m for m in db.query(SyncMarker).all()}
    items = []
    for kind in TableKind:
        marker = markers.get(kind.value)
        items.append(
            {
                "table": kind.value,
                "remote_name": SCHEMA_REGISTRY[kind].remote_name,
                "record_count": int(marker.record_count or 0) if marker else 0,
                "synced_at": marker.synced_at.isoformat() if marker and marker.synced_at else None,
                "last_error": marker.last_error if marker else None,
            }
        )
    return items
