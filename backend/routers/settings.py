# routers/settings.py

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from authentication.deps import require_admin
from db.deps import get_db
from models.view_requests import ApiKeyRequest
from services.credentials import (
    build_client,
    clear_api_key,
    get_base_id,
    get_stored_base_id,
    is_api_key_set,
    set_api_key,
    set_base_id,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("/api-key")
def api_key_status(db: Session = Depends(get_db)):
    return {"is_set": is_api_key_set(db), "base_id": get_base_id(db)}


@router.put("/api-key", dependencies=[Depends(require_admin)])
def save_api_key(payload: ApiKeyRequest, db: Session = Depends(get_db)):
    previous_base_id = get_stored_base_id(db)
    set_api_key(db, payload.api_key)
    if payload.base_id:
        set_base_id(db, payload.base_id)
    db.commit()

    client = build_client(db)
    if client is None:
        raise HTTPException(status_code=400, detail="API key must not be empty")

    result = client.test_connection()
    if not result["success"]:
        # neither the key nor the base id of a failed test is kept
        clear_api_key(db)
        set_base_id(db, previous_base_id)
        db.commit()
        logger.warning("SETTINGS: API key rejected: %s", result["error"])
        raise HTTPException(status_code=400, detail=result["error"])

    logger.info("SETTINGS: API key saved base=%s", get_base_id(db))
    return {"is_set": True, "base_id": get_base_id(db)}


@router.delete("/api-key", dependencies=[Depends(require_admin)])
def delete_api_key(db: Session = Depends(get_db)):
    clear_api_key(db)
    db.commit()
    return {"is_set": is_api_key_set(db)}
