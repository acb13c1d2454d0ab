# services/tables/cells.py

import html
import math
import re
from dataclasses import dataclass
from typing import Any, Callable

import pandas as pd

from services.tables.schema import ColumnDescriptor, ColumnType, Record

PLACEHOLDER = "—"
ELLIPSIS = "…"
TEXT_TRUNCATE_AT = 80
URL_TRUNCATE_AT = 35
LINKED_VISIBLE = 3
CHECK_ON = "✓"
CHECK_OFF = "✗"
ATTACHMENT_ICON = "📎"

_NUMBER_RE = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$")

STATUS_KEYWORDS: dict[str, frozenset[str]] = {
    "active": frozenset({
        "active", "live", "posted", "published", "ready", "done",
        "complete", "completed", "approved", "yes", "tracked",
    }),
    "inactive": frozenset({
        "inactive", "paused", "failed", "rejected", "cancelled",
        "canceled", "error", "no", "blocked",
    }),
    "archived": frozenset({"archived", "deprecated", "closed", "retired"}),
}


@dataclass(frozen=True)
class RenderedCell:
    key: str
    type: ColumnType
    html: str
    expandable: bool = False
    ref: str | None = None
    sticky: bool = False


# --------------------------------------------------
# COERCION HELPERS
# --------------------------------------------------
def escape(value: Any) -> str:
    return html.escape(stringify(value), quote=True)


def stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return str(value)
    if isinstance(value, (list, tuple)):
        return ",".join(stringify(v) for v in value)
    if isinstance(value, dict):
        for key in ("name", "filename", "email", "url"):
            if value.get(key):
                return stringify(value[key])
        return ""
    return str(value)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    if isinstance(value, (list, tuple, dict)) and len(value) == 0:
        return True
    return False


def to_number(value: Any) -> float:
    """Numeric coercion used for sorting and number cells; NaN when not numeric."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        num = float(value)
        return num if math.isfinite(num) else math.nan
    text = stringify(value).strip()
    if text == "":
        return 0.0
    if not _NUMBER_RE.match(text):
        return math.nan
    num = float(text)
    return num if math.isfinite(num) else math.nan


def to_timestamp(value: Any) -> pd.Timestamp | None:
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = pd.to_datetime(value, unit="ms", errors="coerce", utc=True)
    else:
        parsed = pd.to_datetime(stringify(value), errors="coerce", utc=True)
    if parsed is None or pd.isna(parsed):
        return None
    return parsed


def to_epoch_ms(value: Any) -> float:
    parsed = to_timestamp(value)
    if parsed is None:
        return 0.0
    return parsed.value / 1_000_000


def format_number(num: float) -> str:
    if float(num).is_integer():
        return f"{int(num):,}"
    return f"{num:,.3f}".rstrip("0").rstrip(".")


def format_short_date(ts: pd.Timestamp) -> str:
    return f"{ts.strftime('%b')} {ts.day}, {ts.year}"


def status_category(label: str) -> str:
    normalized = re.sub(r"[\s\-]+", "", label.lower())
    for category, keywords in STATUS_KEYWORDS.items():
        if normalized in keywords:
            return category
    return "pending"


def truncate(text: str, limit: int) -> tuple[str, bool]:
    if len(text) > limit:
        return text[:limit] + ELLIPSIS, True
    return text, False


def cell_ref(record: Record, column: ColumnDescriptor) -> str:
    return f"{record.id}:{column.key}"


# --------------------------------------------------
# RENDERERS
# --------------------------------------------------
def _render_text(value: Any, record: Record, column: ColumnDescriptor) -> RenderedCell:
    text, truncated = truncate(stringify(value), TEXT_TRUNCATE_AT)
    if not truncated:
        return RenderedCell(column.key, column.type, html.escape(text))
    ref = cell_ref(record, column)
    body = (
        f'<span class="cell-text expandable" data-ref="{html.escape(ref)}">'
        f"{html.escape(text)}</span>"
    )
    return RenderedCell(column.key, column.type, body, expandable=True, ref=ref)


def _render_number(value: Any, record: Record, column: ColumnDescriptor) -> RenderedCell:
    num = to_number(value)
    if math.isnan(num):
        return RenderedCell(column.key, column.type, escape(value))
    return RenderedCell(column.key, column.type, f'<span class="cell-number">{format_number(num)}</span>')


def _render_date(value: Any, record: Record, column: ColumnDescriptor) -> RenderedCell:
    ts = to_timestamp(value)
    if ts is None:
        return RenderedCell(column.key, column.type, escape(value))
    return RenderedCell(column.key, column.type, f'<span class="cell-date">{format_short_date(ts)}</span>')


def _render_select(value: Any, record: Record, column: ColumnDescriptor) -> RenderedCell:
    label = stringify(value)
    category = status_category(label)
    return RenderedCell(
        column.key,
        column.type,
        f'<span class="status-chip status-{category}">{html.escape(label)}</span>',
    )


def _render_checkbox(value: Any, record: Record, column: ColumnDescriptor) -> RenderedCell:
    if value:
        body = f'<span class="cell-check on">{CHECK_ON}</span>'
    else:
        body = f'<span class="cell-check off">{CHECK_OFF}</span>'
    return RenderedCell(column.key, column.type, body)


def _render_url(value: Any, record: Record, column: ColumnDescriptor) -> RenderedCell:
    target = stringify(value)
    display, _ = truncate(target, URL_TRUNCATE_AT)
    body = (
        f'<a class="cell-link" href="{html.escape(target, quote=True)}" target="_blank" rel="noopener">'
        f"{html.escape(display)}</a>"
    )
    return RenderedCell(column.key, column.type, body)


def _attachment_url(item: Any) -> str | None:
    if not isinstance(item, dict):
        return None
    thumbnails = item.get("thumbnails") or {}
    for size in ("small", "large", "full"):
        thumb = thumbnails.get(size) if isinstance(thumbnails, dict) else None
        if isinstance(thumb, dict) and thumb.get("url"):
            return thumb["url"]
    return item.get("url") or None


def _render_attachment(value: Any, record: Record, column: ColumnDescriptor) -> RenderedCell:
    items = value if isinstance(value, (list, tuple)) else []
    src = _attachment_url(items[0]) if items else None
    if not src:
        return RenderedCell(column.key, column.type, f'<span class="cell-icon">{ATTACHMENT_ICON}</span>')
    alt = html.escape(stringify(items[0]), quote=True)
    body = f'<img class="cell-thumb" src="{html.escape(src, quote=True)}" alt="{alt}" loading="lazy">'
    return RenderedCell(column.key, column.type, body)


def _render_linked(value: Any, record: Record, column: ColumnDescriptor) -> RenderedCell:
    items = list(value) if isinstance(value, (list, tuple)) else [value]
    chips = [f'<span class="link-chip">{escape(item)}</span>' for item in items[:LINKED_VISIBLE]]
    hidden = len(items) - LINKED_VISIBLE
    if hidden > 0:
        chips.append(f'<span class="link-chip more">+{hidden} more</span>')
    return RenderedCell(column.key, column.type, "".join(chips))


Renderer = Callable[[Any, Record, ColumnDescriptor], RenderedCell]

RENDERERS: dict[ColumnType, Renderer] = {
    ColumnType.TEXT: _render_text,
    ColumnType.NUMBER: _render_number,
    ColumnType.DATE: _render_date,
    ColumnType.SELECT: _render_select,
    ColumnType.CHECKBOX: _render_checkbox,
    ColumnType.URL: _render_url,
    ColumnType.ATTACHMENT: _render_attachment,
    ColumnType.LINKED: _render_linked,
}

_missing = set(ColumnType) - set(RENDERERS)
if _missing:
    raise RuntimeError(f"No cell renderer for column types: {sorted(t.value for t in _missing)}")

# types whose output is computed even for absent values
COMPUTED_TYPES = frozenset({ColumnType.CHECKBOX})


def render_cell(record: Record, column: ColumnDescriptor) -> RenderedCell:
    value = record.get(column.key)
    if column.type not in COMPUTED_TYPES and is_blank(value):
        cell = RenderedCell(column.key, column.type, f'<span class="cell-empty">{PLACEHOLDER}</span>')
    else:
        cell = RENDERERS[column.type](value, record, column)
    if column.sticky:
        cell = RenderedCell(cell.key, cell.type, cell.html, cell.expandable, cell.ref, sticky=True)
    return cell
