# services/analytics/pin_engine.py

import math
import re
from collections import Counter
from dataclasses import asdict, dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping, Sequence

import pandas as pd

from services.analytics.base_engine import BaseAnalyticsEngine
from services.tables.cells import stringify, to_epoch_ms
from services.tables.registry import COMPETITOR_INTELLIGENCE, COMPETITOR_PINS, PIN_ANALYSIS
from services.tables.schema import Record, TableKind, resolve_field

PILLAR_BUCKETS = ("Educational", "Proof", "Offer", "Behind-the-Scenes", "Other")
OTHER_PILLAR = "Other"
UNKNOWN_HOOK = "Unknown"
NO_DATA = "N/A"
NO_SUMMARY = "No summary available."
TOP_KEYWORDS_DEFAULT = 8

_LEADING_FLOAT_RE = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


def round_half_up(value: float, places: int = 1) -> float:
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def parse_leading_float(value: Any) -> float | None:
    """Parse the numeric prefix of a value ("7/10" -> 7.0); None when there is none."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num = float(value)
        return num if math.isfinite(num) else None
    match = _LEADING_FLOAT_RE.match(stringify(value))
    if not match:
        return None
    num = float(match.group(0))
    return num if math.isfinite(num) else None


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _ranked(counts: Mapping[str, int]) -> list[tuple[str, int]]:
    # sorted() is stable: equal counts keep first-insertion order
    return sorted(counts.items(), key=lambda kv: kv[1], reverse=True)


def _percent(count: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(round_half_up(count / total * 100, 0))


@dataclass(frozen=True)
class AggregateSnapshot:
    total_pins: int = 0
    analyzed_pins: int = 0
    top_hook: str | None = None
    hook_distribution: dict[str, int] = field(default_factory=dict)
    keyword_frequency: dict[str, int] = field(default_factory=dict)
    pillar_distribution: dict[str, int] = field(default_factory=lambda: {p: 0 for p in PILLAR_BUCKETS})
    avg_cta_strength: float | None = None
    gap_opportunities: list[str] = field(default_factory=list)

    @property
    def avg_cta_strength_label(self) -> str:
        if self.avg_cta_strength is None:
            return NO_DATA
        return f"{self.avg_cta_strength:.1f}"

    @property
    def top_hook_share(self) -> str:
        if not self.top_hook or self.analyzed_pins == 0:
            return "No data"
        count = self.hook_distribution.get(self.top_hook, 0)
        return f"{_percent(count, self.analyzed_pins)}% of pins"

    def ranked_hooks(self) -> list[tuple[str, int]]:
        return _ranked(self.hook_distribution)

    def top_keywords(self, limit: int = TOP_KEYWORDS_DEFAULT) -> list[tuple[str, int]]:
        return _ranked(self.keyword_frequency)[:limit]

    def pillar_percentages(self) -> dict[str, int]:
        return {p: _percent(c, self.analyzed_pins) for p, c in self.pillar_distribution.items()}

    def gap_frequency(self, limit: int | None = None) -> list[tuple[str, int]]:
        counts: Counter[str] = Counter(g.strip().lower() for g in self.gap_opportunities)
        ranked = _ranked(counts)
        return ranked if limit is None else ranked[:limit]

    def to_dict(self) -> dict:
        payload = asdict(self)
        payload["avg_cta_strength_label"] = self.avg_cta_strength_label
        return payload


class PinAnalyticsEngine(BaseAnalyticsEngine):
    # --------------------------------------------------
    # LOAD DATA
    # --------------------------------------------------
    def load_data(self) -> dict[str, pd.DataFrame]:
        analysis_fields = (
            "hook_technique",
            "primary_keywords",
            "secondary_keywords",
            "content_pillar",
            "cta_strength",
            "gap_opportunity",
        )
        analysis_rows = [
            {name: resolve_field(r, PIN_ANALYSIS.aliases(name)) for name in analysis_fields}
            for r in self.table(TableKind.PIN_ANALYSIS)
        ]
        pin_rows = [
            {"competitor_name": resolve_field(r, COMPETITOR_PINS.aliases("competitor_name"))}
            for r in self.table(TableKind.COMPETITOR_PINS)
        ]
        return {
            "pins": pd.DataFrame(pin_rows, columns=["competitor_name"], dtype=object),
            "analysis": pd.DataFrame(analysis_rows, columns=list(analysis_fields), dtype=object),
        }

    # --------------------------------------------------
    # STATISTICS
    # --------------------------------------------------
    def _hook_distribution(self, analysis: pd.DataFrame) -> dict[str, int]:
        hooks = analysis["hook_technique"].map(
            lambda v: UNKNOWN_HOOK if _is_missing(v) else stringify(v)
        )
        return dict(Counter(hooks))

    @staticmethod
    def _top_category(counts: Mapping[str, int]) -> str | None:
        # strictly greater: ties keep the first key seen
        top, best = None, 0
        for key, count in counts.items():
            if count > best:
                top, best = key, count
        return top

    def _keyword_frequency(self, analysis: pd.DataFrame) -> dict[str, int]:
        counts: Counter[str] = Counter()
        for primary, secondary in zip(analysis["primary_keywords"], analysis["secondary_keywords"]):
            joined = ",".join("" if _is_missing(v) else stringify(v) for v in (primary, secondary))
            counts.update(k for k in (t.strip().lower() for t in joined.split(",")) if k)
        return dict(counts)

    def _pillar_distribution(self, analysis: pd.DataFrame) -> dict[str, int]:
        pillars = analysis["content_pillar"].map(lambda v: None if _is_missing(v) else stringify(v))
        bucketed = pillars.where(pillars.isin(PILLAR_BUCKETS), OTHER_PILLAR)
        counts = bucketed.value_counts().reindex(list(PILLAR_BUCKETS), fill_value=0)
        return {pillar: int(counts[pillar]) for pillar in PILLAR_BUCKETS}

    def _avg_cta_strength(self, analysis: pd.DataFrame) -> float | None:
        values = analysis["cta_strength"].map(parse_leading_float).dropna()
        if values.empty:
            return None
        return round_half_up(float(values.astype(float).mean()), 1)

    def _gap_opportunities(self, analysis: pd.DataFrame) -> list[str]:
        return [stringify(g) for g in analysis["gap_opportunity"] if not _is_missing(g) and stringify(g)]

    def snapshot(self) -> AggregateSnapshot:
        frames = self.load_data()
        analysis = frames["analysis"]
        hooks = self._hook_distribution(analysis)
        return AggregateSnapshot(
            total_pins=len(frames["pins"]),
            analyzed_pins=len(analysis),
            top_hook=self._top_category(hooks),
            hook_distribution=hooks,
            keyword_frequency=self._keyword_frequency(analysis),
            pillar_distribution=self._pillar_distribution(analysis),
            avg_cta_strength=self._avg_cta_strength(analysis),
            gap_opportunities=self._gap_opportunities(analysis),
        )

    # --------------------------------------------------
    # DASHBOARD EXTRAS
    # --------------------------------------------------
    def unique_competitors(self) -> list[str]:
        names = self.load_data()["pins"]["competitor_name"]
        seen: dict[str, None] = {}
        for name in names:
            if not _is_missing(name):
                seen.setdefault(stringify(name), None)
        return list(seen)

    def latest_intelligence(self) -> dict | None:
        reports = list(self.table(TableKind.COMPETITOR_INTELLIGENCE))
        if not reports:
            return None

        def _report_date(record: Record) -> float:
            return to_epoch_ms(resolve_field(record, COMPETITOR_INTELLIGENCE.aliases("report_date")))

        latest = sorted(reports, key=_report_date, reverse=True)[0]
        summary = resolve_field(latest, COMPETITOR_INTELLIGENCE.aliases("week_summary")) or resolve_field(
            latest, COMPETITOR_INTELLIGENCE.aliases("executive_summary"), NO_SUMMARY
        )

        def _field(name: str) -> str | None:
            value = resolve_field(latest, COMPETITOR_INTELLIGENCE.aliases(name))
            return None if value is None else stringify(value)

        return {
            "record_id": latest.id,
            "report_date": _field("report_date"),
            "summary": stringify(summary),
            "top_hooks": _field("top_hooks"),
            "top_keywords": _field("top_keywords"),
            "strategy_recommendations": _field("strategy_recommendations"),
        }

    def compute(self) -> dict:
        snap = self.snapshot()
        return {
            **snap.to_dict(),
            "top_hook_share": snap.top_hook_share,
            "competitors_tracked": len(self.unique_competitors()),
            "gap_count": len(snap.gap_opportunities),
            "pillar_percentages": snap.pillar_percentages(),
            "top_keywords": [{"keyword": k, "count": c} for k, c in snap.top_keywords()],
            "latest_intelligence": self.latest_intelligence(),
        }


def compute_analytics(records: Mapping[TableKind, Sequence[Record]]) -> AggregateSnapshot:
    return PinAnalyticsEngine(records).snapshot()
