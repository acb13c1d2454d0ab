# services/analytics/content_queue_engine.py

import pandas as pd

from services.analytics.base_engine import BaseAnalyticsEngine
from services.analytics.pin_engine import round_half_up
from services.tables.registry import CONTENT_QUEUE
from services.tables.schema import TableKind, resolve_field

QUEUE_STATUSES = ("Queued", "Generating", "Ready", "Posted", "Archived", "Failed")
POSTED = "Posted"


class ContentQueueEngine(BaseAnalyticsEngine):
    def load_data(self) -> dict[str, pd.DataFrame]:
        rows = [
            {
                "status": resolve_field(r, CONTENT_QUEUE.aliases("status")),
                "engagement": resolve_field(r, CONTENT_QUEUE.aliases("engagement")),
            }
            for r in self.table(TableKind.CONTENT_QUEUE)
        ]
        return {"queue": pd.DataFrame(rows, columns=["status", "engagement"], dtype=object)}

    def count_by_status(self, queue: pd.DataFrame) -> dict[str, int]:
        status = queue["status"].fillna("").astype(str)
        counts = status.value_counts().reindex(list(QUEUE_STATUSES), fill_value=0)
        return {s: int(counts[s]) for s in QUEUE_STATUSES}

    def avg_engagement(self, queue: pd.DataFrame) -> tuple[float | None, int]:
        posted = queue[(queue["status"] == POSTED) & queue["engagement"].notna()]
        if posted.empty:
            return None, 0
        values = pd.to_numeric(posted["engagement"], errors="coerce").fillna(0)
        return round_half_up(float(values.mean()), 1), int(len(posted))

    def compute(self) -> dict:
        queue = self.load_data()["queue"]
        avg, posted_count = self.avg_engagement(queue)
        return {
            "total": int(len(queue)),
            "by_status": self.count_by_status(queue),
            "avg_engagement": avg,
            "avg_engagement_label": "—" if avg is None else f"{avg:.1f}",
            "engagement_sample": posted_count,
        }
