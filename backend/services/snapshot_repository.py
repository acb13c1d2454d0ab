import os
import threading
import time
from typing import Mapping, Sequence

from sqlalchemy.orm import Session

from models.snapshot_records import SnapshotRecord
from services.tables.schema import Record, TableKind

_CACHE_TTL_SECONDS = int(os.getenv("SNAPSHOT_CACHE_TTL_SECONDS", "300"))
_records_cache_lock = threading.Lock()
_records_cache: dict[TableKind, tuple[float, tuple[Record, ...]]] = {}


def invalidate_records_cache(table_kind: TableKind | None = None) -> None:
    with _records_cache_lock:
        if table_kind is None:
            _records_cache.clear()
            return None
        _records_cache.pop(TableKind(table_kind), None)
    return None


def _to_record(row: SnapshotRecord) -> Record | None:
    data = row.data
    if not isinstance(data, dict):
        return None
    return Record(id=row.record_id, fields=data, created_time=row.created_time)


def get_records(db: Session, table_kind: TableKind) -> tuple[Record, ...]:
    """
    Records of one table in the order Airtable returned them.
    Cached per table until the TTL passes or a refresh invalidates it.
    """
    kind = TableKind(table_kind)
    now = time.time()
    with _records_cache_lock:
        cached = _records_cache.get(kind)
        if cached is not None:
            expires_at, records = cached
            if expires_at >= now:
                return records
            _records_cache.pop(kind, None)

    rows = (
        db.query(SnapshotRecord)
        .filter(SnapshotRecord.table_kind == kind.value)
        .order_by(SnapshotRecord.position, SnapshotRecord.id)
        .all()
    )
    records = tuple(r for r in (_to_record(row) for row in rows) if r is not None)

    with _records_cache_lock:
        _records_cache[kind] = (now + _CACHE_TTL_SECONDS, records)
    return records


def get_snapshot(db: Session) -> dict[TableKind, tuple[Record, ...]]:
    return {kind: get_records(db, kind) for kind in TableKind}


def replace_snapshot(db: Session, tables: Mapping[TableKind, Sequence[Record]]) -> dict[TableKind, int]:
    """
    Swap the stored records of every given table. Runs inside the caller's
    transaction: nothing is visible to readers until the caller commits.
    """
    counts: dict[TableKind, int] = {}
    for kind, records in tables.items():
        kind = TableKind(kind)
        db.query(SnapshotRecord).filter(SnapshotRecord.table_kind == kind.value).delete(
            synchronize_session=False
        )
        db.add_all(
            [
                SnapshotRecord(
                    table_kind=kind.value,
                    record_id=r.id,
                    created_time=r.created_time,
                    position=i,
                    data=dict(r.fields),
                )
                for i, r in enumerate(records)
            ]
        )
        counts[kind] = len(records)
    db.flush()
    return counts
