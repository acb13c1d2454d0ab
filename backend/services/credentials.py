# services/credentials.py

import os
import re

from sqlalchemy.orm import Session

from models.app_settings import AppSetting
from services.record_store import AIRTABLE_BASE_ID, AirtableClient

API_KEY_SETTING = "pinterest_dashboard_airtable_key"
BASE_ID_SETTING = "airtable_base_id"

_BASE_ID_RE = re.compile(r"(app[A-Za-z0-9]+)")


def _get_setting(db: Session, key: str) -> str | None:
    row = db.query(AppSetting).filter(AppSetting.key == key).first()
    if row is None or not row.value:
        return None
    return row.value


def _set_setting(db: Session, key: str, value: str | None) -> None:
    row = db.query(AppSetting).filter(AppSetting.key == key).first()
    if value is None:
        if row is not None:
            db.delete(row)
        db.flush()
        return
    if row is None:
        db.add(AppSetting(key=key, value=value))
    else:
        row.value = value
    db.flush()


def extract_base_id(raw: str | None) -> str:
    # a pasted Airtable URL is reduced to its appXXX id
    cleaned = (raw or "").strip()
    match = _BASE_ID_RE.search(cleaned)
    return match.group(1) if match else cleaned


def get_api_key(db: Session) -> str | None:
    return _get_setting(db, API_KEY_SETTING) or os.getenv("AIRTABLE_API_KEY") or None


def set_api_key(db: Session, api_key: str) -> None:
    _set_setting(db, API_KEY_SETTING, api_key.strip())


def clear_api_key(db: Session) -> None:
    _set_setting(db, API_KEY_SETTING, None)


def is_api_key_set(db: Session) -> bool:
    return bool(get_api_key(db))


def get_base_id(db: Session) -> str:
    return extract_base_id(_get_setting(db, BASE_ID_SETTING) or AIRTABLE_BASE_ID)


def get_stored_base_id(db: Session) -> str | None:
    return _get_setting(db, BASE_ID_SETTING)


def set_base_id(db: Session, base_id: str | None) -> str | None:
    # None drops the stored id; the env default applies again
    cleaned = extract_base_id(base_id) if base_id else None
    _set_setting(db, BASE_ID_SETTING, cleaned or None)
    return cleaned


def build_client(db: Session) -> AirtableClient | None:
    api_key = get_api_key(db)
    if not api_key:
        return None
    return AirtableClient(api_key=api_key, base_id=get_base_id(db))
