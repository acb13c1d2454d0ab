# services/tables/view_engine.py
"""
Schema-driven table views.

`render_table` runs filter -> sort -> paginate -> cell render over one table's
records for a given ViewState. It is pure: the same records, schema and state
always produce the same RenderedPage.
"""

import math
from dataclasses import dataclass, field, replace
from functools import cmp_to_key
from typing import Any, Callable, Sequence

from services.tables.cells import (
    RenderedCell,
    escape,
    render_cell,
    stringify,
    to_epoch_ms,
    to_number,
)
from services.tables.schema import ColumnDescriptor, ColumnType, Record, TableSchema
from services.tables.view_state import SortDirection, ViewState

PAGE_WINDOW = 7


@dataclass(frozen=True)
class HeaderCell:
    key: str
    label: str
    type: ColumnType
    sticky: bool
    sorted: bool
    direction: SortDirection | None
    indicator: str


@dataclass(frozen=True)
class RenderedRow:
    record_id: str
    cells: list[RenderedCell]


@dataclass(frozen=True)
class Pagination:
    page: int
    page_size: int
    total_pages: int
    total_items: int
    start_item: int
    end_item: int
    pages: list[int]
    has_prev: bool
    has_next: bool

    @property
    def range_label(self) -> str:
        return f"Showing {self.start_item}–{self.end_item} of {self.total_items}"


@dataclass(frozen=True)
class EmptyState:
    kind: str  # "no_data" | "no_results"
    title: str
    message: str


@dataclass(frozen=True)
class FacetOption:
    value: str
    count: int


@dataclass(frozen=True)
class FacetGroup:
    column: str
    label: str
    selected: str | None
    total: int
    options: list[FacetOption]


@dataclass(frozen=True)
class RenderedPage:
    table: str
    header: list[HeaderCell]
    rows: list[RenderedRow]
    pagination: Pagination
    count_label: str
    total_records: int
    filtered_records: int
    view_state: ViewState
    empty_state: EmptyState | None = None
    expandable_refs: list[str] = field(default_factory=list)
    facets: list[FacetGroup] = field(default_factory=list)


# --------------------------------------------------
# FILTER
# --------------------------------------------------
def searchable_text(record: Record, schema: TableSchema) -> str:
    return " ".join(stringify(record.get(key)) for key in schema.column_keys).lower()


def filter_records(records: Sequence[Record], schema: TableSchema, search: str) -> list[Record]:
    needle = (search or "").lower()
    if not needle:
        return list(records)
    return [r for r in records if needle in searchable_text(r, schema)]


def apply_facets(records: Sequence[Record], filters: Sequence[tuple[str, str]]) -> list[Record]:
    """Keep records whose value in every filtered column equals the selected value."""
    if not filters:
        return list(records)
    return [
        r for r in records
        if all(stringify(r.get(column)) == value for column, value in filters)
    ]


def facet_groups(schema: TableSchema, records: Sequence[Record], state: ViewState) -> list[FacetGroup]:
    # options and counts come from the whole table, not the filtered view
    groups = []
    for key in schema.facets:
        counts: dict[str, int] = {}
        for record in records:
            value = stringify(record.get(key))
            if value:
                counts[value] = counts.get(value, 0) + 1
        groups.append(
            FacetGroup(
                column=key,
                label=schema.column(key).label,
                selected=state.filter_value(key),
                total=len(records),
                options=[FacetOption(value=v, count=c) for v, c in counts.items()],
            )
        )
    return groups


# --------------------------------------------------
# SORT
# --------------------------------------------------
def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _compare_numbers(a: float, b: float) -> int:
    # NaN equals NaN and sorts after every number
    a_nan, b_nan = math.isnan(a), math.isnan(b)
    if a_nan or b_nan:
        return _cmp(a_nan, b_nan)
    return _cmp(a, b)


def comparator_for(column: ColumnDescriptor) -> Callable[[Any, Any], int]:
    if column.type is ColumnType.NUMBER:
        return lambda a, b: _compare_numbers(to_number(a), to_number(b))
    if column.type is ColumnType.DATE:
        return lambda a, b: _cmp(to_epoch_ms(a), to_epoch_ms(b))
    return lambda a, b: _cmp(stringify(a), stringify(b))


def sort_records(
    records: Sequence[Record],
    schema: TableSchema,
    sort_column: str | None,
    direction: SortDirection = SortDirection.ASC,
) -> list[Record]:
    column = schema.column(sort_column)
    if column is None:
        return list(records)

    compare = comparator_for(column)
    multiplier = SortDirection(direction).multiplier

    def _record_cmp(left: Record, right: Record) -> int:
        return multiplier * compare(left.get(column.key), right.get(column.key))

    # sorted() is stable, ties keep snapshot order
    return sorted(records, key=cmp_to_key(_record_cmp))


# --------------------------------------------------
# PAGINATE
# --------------------------------------------------
def total_pages_for(count: int, page_size: int) -> int:
    return max(1, math.ceil(count / page_size))


def clamp_page(page: int, total_pages: int) -> int:
    return min(max(1, page), total_pages)


def page_window(page: int, total_pages: int, width: int = PAGE_WINDOW) -> list[int]:
    half = width // 2
    start = max(1, page - half)
    end = min(total_pages, start + width - 1)
    start = max(1, end - width + 1)
    return list(range(start, end + 1))


def paginate(records: Sequence[Record], page: int, page_size: int) -> tuple[list[Record], Pagination]:
    count = len(records)
    total_pages = total_pages_for(count, page_size)
    page = clamp_page(page, total_pages)
    start = (page - 1) * page_size
    sliced = list(records[start:start + page_size])

    pagination = Pagination(
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        total_items=count,
        start_item=start + 1 if sliced else 0,
        end_item=start + len(sliced),
        pages=page_window(page, total_pages),
        has_prev=page > 1,
        has_next=page < total_pages,
    )
    return sliced, pagination


# --------------------------------------------------
# RENDER
# --------------------------------------------------
def render_header(schema: TableSchema, state: ViewState) -> list[HeaderCell]:
    header = []
    for column in schema.columns:
        is_sorted = column.key == state.sort_column
        direction = state.sort_direction if is_sorted else None
        indicator = ""
        if direction is SortDirection.ASC:
            indicator = "▲"
        elif direction is SortDirection.DESC:
            indicator = "▼"
        header.append(
            HeaderCell(
                key=column.key,
                label=column.label,
                type=column.type,
                sticky=column.sticky,
                sorted=is_sorted,
                direction=direction,
                indicator=indicator,
            )
        )
    return header


def count_label(count: int, schema: TableSchema) -> str:
    return f"{count:,} {schema.count_label}"


def _empty_state(schema: TableSchema, total: int, search: str) -> EmptyState:
    if total == 0:
        return EmptyState(
            kind="no_data",
            title=f"No {schema.count_label} yet",
            message=f"The {schema.remote_name} table has no records. Refresh after adding data in Airtable.",
        )
    if not search:
        return EmptyState(
            kind="no_results",
            title=f"No {schema.count_label} match your filters",
            message="Try adjusting your filters.",
        )
    return EmptyState(
        kind="no_results",
        title=f"No {schema.count_label} match your search",
        message=f'Nothing matches "{escape(search)}". Try a different search term.',
    )


def render_table(schema: TableSchema, records: Sequence[Record], state: ViewState) -> RenderedPage:
    # facets narrow the table first; search then ORs across every column
    faceted = apply_facets(records, state.filters)
    filtered = filter_records(faceted, schema, state.search)
    ordered = sort_records(filtered, schema, state.sort_column, state.sort_direction)
    page_records, pagination = paginate(ordered, state.page, state.page_size)

    rows = [
        RenderedRow(record_id=r.id, cells=[render_cell(r, c) for c in schema.columns])
        for r in page_records
    ]
    refs = [cell.ref for row in rows for cell in row.cells if cell.expandable and cell.ref]

    empty = _empty_state(schema, len(records), state.search) if not filtered else None

    return RenderedPage(
        table=schema.kind.value,
        header=render_header(schema, state),
        rows=rows,
        pagination=pagination,
        count_label=count_label(len(filtered), schema),
        total_records=len(records),
        filtered_records=len(filtered),
        view_state=replace(state, page=pagination.page),
        empty_state=empty,
        expandable_refs=refs,
        facets=facet_groups(schema, records, state),
    )


def resolve_full_text(schema: TableSchema, records: Sequence[Record], ref: str) -> str | None:
    """Full value behind an expandable cell reference ("<record id>:<column key>")."""
    record_id, sep, column_key = ref.partition(":")
    if not sep or schema.column(column_key) is None:
        return None
    record = next((r for r in records if r.id == record_id), None)
    if record is None:
        return None
    return stringify(record.get(column_key))
