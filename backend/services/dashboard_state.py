# services/dashboard_state.py

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Mapping

from sqlalchemy.orm import Session

from services.analytics import ContentQueueEngine, PinAnalyticsEngine
from services.analytics.pin_engine import AggregateSnapshot
from services.record_store import AirtableClient, RecordStoreError
from services.snapshot_repository import get_snapshot
from services.sync_service import refresh_snapshot
from services.tables.registry import describe
from services.tables.schema import Record, TableKind
from services.tables.view_engine import RenderedPage, render_table, resolve_full_text
from services.tables.view_state import ViewState, ViewStateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardState:
    records: Mapping[TableKind, tuple[Record, ...]] = field(default_factory=dict)
    analytics: AggregateSnapshot = field(default_factory=AggregateSnapshot)
    dashboard: dict = field(default_factory=dict)
    content_queue: dict = field(default_factory=dict)
    loaded_at: datetime | None = None
    is_connected: bool = False
    error: str | None = None

    def table(self, kind: TableKind) -> tuple[Record, ...]:
        return self.records.get(TableKind(kind), ())


def build_state(records: Mapping[TableKind, tuple[Record, ...]], is_connected: bool = False) -> DashboardState:
    engine = PinAnalyticsEngine(records)
    return DashboardState(
        records=dict(records),
        analytics=engine.snapshot(),
        dashboard=engine.compute(),
        content_queue=ContentQueueEngine(records).compute(),
        loaded_at=datetime.now(timezone.utc),
        is_connected=is_connected,
    )


class DashboardController:
    """
    Owns the current DashboardState and the per-operator view states.
    The state is replaced wholesale; readers always see a complete snapshot.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._state: DashboardState | None = None
        self.views = ViewStateStore()

    def current(self, db: Session) -> DashboardState:
        with self._lock:
            state = self._state
        if state is not None:
            return state
        state = build_state(get_snapshot(db))
        with self._lock:
            if self._state is None:
                self._state = state
            return self._state

    def refresh(self, db: Session, client: AirtableClient) -> DashboardState:
        try:
            refresh_snapshot(db, client)
        except RecordStoreError as exc:
            previous = self.current(db)
            with self._lock:
                self._state = replace(previous, is_connected=False, error=exc.message)
            raise
        state = build_state(get_snapshot(db), is_connected=True)
        with self._lock:
            self._state = state
        logger.info("DASHBOARD: state replaced at %s", state.loaded_at.isoformat())
        return state

    def reset(self) -> None:
        with self._lock:
            self._state = None
        self.views.clear()

    # --------------------------------------------------
    # TABLE VIEWS
    # --------------------------------------------------
    def render(self, db: Session, owner: str, kind: TableKind) -> RenderedPage:
        state = self.current(db)
        page = render_table(describe(kind), state.table(kind), self.views.get(owner, kind))
        # keep the clamped page so the next render starts from it
        self.views.put(owner, kind, page.view_state)
        return page

    def apply(self, db: Session, owner: str, kind: TableKind, view_state: ViewState) -> RenderedPage:
        self.views.put(owner, kind, view_state)
        return self.render(db, owner, kind)

    def full_text(self, db: Session, kind: TableKind, ref: str) -> str | None:
        return resolve_full_text(describe(kind), self.current(db).table(kind), ref)


controller = DashboardController()


def get_controller() -> DashboardController:
    return controller
