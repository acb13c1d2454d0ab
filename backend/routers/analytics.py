# routers/analytics.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from db.deps import get_db
from services.analytics import ENGINE_REGISTRY
from services.analytics.pin_engine import TOP_KEYWORDS_DEFAULT
from services.dashboard_state import DashboardController, get_controller

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/summary")
def summary(
    db: Session = Depends(get_db),
    controller: DashboardController = Depends(get_controller),
):
    state = controller.current(db)
    return {
        **state.dashboard,
        "loaded_at": state.loaded_at.isoformat() if state.loaded_at else None,
        "is_connected": state.is_connected,
        "error": state.error,
    }


@router.get("/hooks")
def hooks(
    db: Session = Depends(get_db),
    controller: DashboardController = Depends(get_controller),
):
    snap = controller.current(db).analytics
    return {
        "top_hook": snap.top_hook,
        "top_hook_share": snap.top_hook_share,
        "analyzed_pins": snap.analyzed_pins,
        "hooks": [{"hook": h, "count": c} for h, c in snap.ranked_hooks()],
    }


@router.get("/keywords")
def keywords(
    limit: int = Query(TOP_KEYWORDS_DEFAULT, ge=1, le=200),
    db: Session = Depends(get_db),
    controller: DashboardController = Depends(get_controller),
):
    snap = controller.current(db).analytics
    return {
        "distinct_keywords": len(snap.keyword_frequency),
        "keywords": [{"keyword": k, "count": c} for k, c in snap.top_keywords(limit)],
    }


@router.get("/pillars")
def pillars(
    db: Session = Depends(get_db),
    controller: DashboardController = Depends(get_controller),
):
    snap = controller.current(db).analytics
    percentages = snap.pillar_percentages()
    return {
        "analyzed_pins": snap.analyzed_pins,
        "pillars": [
            {"pillar": p, "count": c, "percent": percentages[p]}
            for p, c in snap.pillar_distribution.items()
        ],
    }


@router.get("/gaps")
def gaps(
    limit: int | None = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
    controller: DashboardController = Depends(get_controller),
):
    snap = controller.current(db).analytics
    return {
        "gap_count": len(snap.gap_opportunities),
        "gaps": [{"gap": g, "count": c} for g, c in snap.gap_frequency(limit)],
    }


@router.get("/competitors")
def competitors(
    db: Session = Depends(get_db),
    controller: DashboardController = Depends(get_controller),
):
    engine = ENGINE_REGISTRY["pins"](controller.current(db).records)
    names = engine.unique_competitors()
    return {"competitors_tracked": len(names), "competitors": names}


@router.get("/intelligence/latest")
def latest_intelligence(
    db: Session = Depends(get_db),
    controller: DashboardController = Depends(get_controller),
):
    return {"report": controller.current(db).dashboard.get("latest_intelligence")}


@router.get("/content-queue")
def content_queue(
    db: Session = Depends(get_db),
    controller: DashboardController = Depends(get_controller),
):
    return controller.current(db).content_queue
