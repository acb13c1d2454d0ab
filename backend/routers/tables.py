# routers/tables.py

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from authentication.deps import get_current_user
from authentication.local_users import LocalUser
from db.deps import get_db
from models.view_requests import FilterRequest, PageRequest, PageSizeRequest, SearchRequest, SortRequest
from services.dashboard_state import DashboardController, get_controller
from services.tables.registry import SCHEMA_REGISTRY, describe
from services.tables.schema import TableKind
from services.tables.view_engine import RenderedPage

router = APIRouter(prefix="/tables", tags=["tables"])


def _resolve_kind(kind: str) -> TableKind:
    try:
        return TableKind(kind)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown table: {kind}")


def _page_payload(page: RenderedPage) -> dict:
    payload = asdict(page)
    payload["pagination"]["range_label"] = page.pagination.range_label
    return payload


@router.get("")
def list_tables():
    return [
        {
            "kind": kind.value,
            "remote_name": schema.remote_name,
            "count_label": schema.count_label,
            "facets": list(schema.facets),
            "columns": [asdict(c) for c in schema.columns],
        }
        for kind, schema in SCHEMA_REGISTRY.items()
    ]


@router.get("/{kind}")
def get_table(
    kind: str,
    db: Session = Depends(get_db),
    current_user: LocalUser = Depends(get_current_user),
    controller: DashboardController = Depends(get_controller),
):
    table_kind = _resolve_kind(kind)
    return _page_payload(controller.render(db, current_user.username, table_kind))


# --------------------------------------------------
# VIEW TRANSITIONS
# --------------------------------------------------
@router.post("/{kind}/search")
def search_table(
    kind: str,
    payload: SearchRequest,
    db: Session = Depends(get_db),
    current_user: LocalUser = Depends(get_current_user),
    controller: DashboardController = Depends(get_controller),
):
    table_kind = _resolve_kind(kind)
    state = controller.views.get(current_user.username, table_kind).set_search(payload.text)
    return _page_payload(controller.apply(db, current_user.username, table_kind, state))


@router.post("/{kind}/sort")
def sort_table(
    kind: str,
    payload: SortRequest,
    db: Session = Depends(get_db),
    current_user: LocalUser = Depends(get_current_user),
    controller: DashboardController = Depends(get_controller),
):
    table_kind = _resolve_kind(kind)
    if describe(table_kind).column(payload.column) is None:
        raise HTTPException(status_code=400, detail=f"Unknown column: {payload.column}")
    state = controller.views.get(current_user.username, table_kind).set_sort(payload.column)
    return _page_payload(controller.apply(db, current_user.username, table_kind, state))


@router.post("/{kind}/filter")
def filter_table(
    kind: str,
    payload: FilterRequest,
    db: Session = Depends(get_db),
    current_user: LocalUser = Depends(get_current_user),
    controller: DashboardController = Depends(get_controller),
):
    table_kind = _resolve_kind(kind)
    if payload.column not in describe(table_kind).facets:
        raise HTTPException(status_code=400, detail=f"Column cannot be filtered: {payload.column}")
    state = controller.views.get(current_user.username, table_kind).set_filter(payload.column, payload.value)
    return _page_payload(controller.apply(db, current_user.username, table_kind, state))


@router.post("/{kind}/clear-filters")
def clear_filters(
    kind: str,
    db: Session = Depends(get_db),
    current_user: LocalUser = Depends(get_current_user),
    controller: DashboardController = Depends(get_controller),
):
    table_kind = _resolve_kind(kind)
    state = controller.views.get(current_user.username, table_kind).clear_filters()
    return _page_payload(controller.apply(db, current_user.username, table_kind, state))


@router.post("/{kind}/page")
def go_to_page(
    kind: str,
    payload: PageRequest,
    db: Session = Depends(get_db),
    current_user: LocalUser = Depends(get_current_user),
    controller: DashboardController = Depends(get_controller),
):
    table_kind = _resolve_kind(kind)
    state = controller.views.get(current_user.username, table_kind).set_page(payload.page)
    return _page_payload(controller.apply(db, current_user.username, table_kind, state))


@router.post("/{kind}/page-size")
def set_page_size(
    kind: str,
    payload: PageSizeRequest,
    db: Session = Depends(get_db),
    current_user: LocalUser = Depends(get_current_user),
    controller: DashboardController = Depends(get_controller),
):
    table_kind = _resolve_kind(kind)
    state = controller.views.get(current_user.username, table_kind).set_page_size(payload.page_size)
    return _page_payload(controller.apply(db, current_user.username, table_kind, state))


@router.post("/{kind}/reset")
def reset_view(
    kind: str,
    db: Session = Depends(get_db),
    current_user: LocalUser = Depends(get_current_user),
    controller: DashboardController = Depends(get_controller),
):
    table_kind = _resolve_kind(kind)
    controller.views.reset(current_user.username, table_kind)
    return _page_payload(controller.render(db, current_user.username, table_kind))


@router.get("/{kind}/cells/{ref}")
def get_cell_text(
    kind: str,
    ref: str,
    db: Session = Depends(get_db),
    controller: DashboardController = Depends(get_controller),
):
    table_kind = _resolve_kind(kind)
    text = controller.full_text(db, table_kind, ref)
    if text is None:
        raise HTTPException(status_code=404, detail="Cell not found")
    return {"ref": ref, "text": text}
