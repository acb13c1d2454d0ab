# routers/sync.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from db.deps import get_db
from services.credentials import build_client
from services.dashboard_state import DashboardController, get_controller
from services.record_store import RecordStoreError
from services.sync_service import get_sync_status

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("/refresh")
def refresh(
    db: Session = Depends(get_db),
    controller: DashboardController = Depends(get_controller),
):
    client = build_client(db)
    if client is None:
        raise HTTPException(status_code=409, detail="Airtable API key is not configured")

    try:
        state = controller.refresh(db, client)
    except RecordStoreError as exc:
        raise HTTPException(status_code=502, detail=exc.message)

    return {
        "status": "ok",
        "loaded_at": state.loaded_at.isoformat() if state.loaded_at else None,
        "counts": {kind.value: len(records) for kind, records in state.records.items()},
    }


@router.get("/status")
def status(
    db: Session = Depends(get_db),
    controller: DashboardController = Depends(get_controller),
):
    state = controller.current(db)
    return {
        "is_connected": state.is_connected,
        "error": state.error,
        "tables": get_sync_status(db),
    }
