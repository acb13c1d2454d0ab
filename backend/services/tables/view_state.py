# services/tables/view_state.py

import os
import threading
from dataclasses import dataclass, replace
from enum import Enum

from services.tables.schema import TableKind

DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))
ALL_VALUES = "All"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @property
    def multiplier(self) -> int:
        return 1 if self is SortDirection.ASC else -1


@dataclass(frozen=True)
class ViewState:
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE
    search: str = ""
    sort_column: str | None = None
    sort_direction: SortDirection = SortDirection.ASC
    # (column, exact value) pairs, one per column
    filters: tuple[tuple[str, str], ...] = ()

    def __post_init__(self):
        if self.page_size < 1:
            raise ValueError("page_size must be a positive integer")
        object.__setattr__(self, "page", max(1, int(self.page)))
        object.__setattr__(self, "search", normalize_search(self.search))
        object.__setattr__(self, "sort_direction", SortDirection(self.sort_direction))
        object.__setattr__(self, "filters", tuple(dict(self.filters).items()))

    @property
    def is_filtered(self) -> bool:
        return bool(self.search or self.filters)

    def filter_value(self, column: str) -> str | None:
        return dict(self.filters).get(column)

    def set_search(self, text: str | None) -> "ViewState":
        return replace(self, search=normalize_search(text), page=1)

    def set_filter(self, column: str, value: str | None) -> "ViewState":
        filters = dict(self.filters)
        if value is None or value == "" or value == ALL_VALUES:
            filters.pop(column, None)
        else:
            filters[column] = value
        return replace(self, filters=tuple(filters.items()), page=1)

    def clear_filters(self) -> "ViewState":
        # sort and page size survive; search goes with the filters
        return replace(self, filters=(), search="", page=1)

    def set_sort(self, column: str) -> "ViewState":
        if column == self.sort_column:
            direction = SortDirection.DESC if self.sort_direction is SortDirection.ASC else SortDirection.ASC
        else:
            direction = SortDirection.ASC
        return replace(self, sort_column=column, sort_direction=direction, page=1)

    def set_page(self, page: int) -> "ViewState":
        # upper bound depends on the filtered row count; render clamps it
        return replace(self, page=max(1, int(page)))

    def set_page_size(self, page_size: int) -> "ViewState":
        return replace(self, page_size=page_size, page=1)


def normalize_search(text: str | None) -> str:
    return (text or "").strip().lower()


class ViewStateStore:
    """Holds one ViewState per (owner, table). Transitions replace the value."""

    def __init__(self):
        self._lock = threading.Lock()
        self._states: dict[tuple[str, TableKind], ViewState] = {}

    def get(self, owner: str, kind: TableKind) -> ViewState:
        with self._lock:
            return self._states.get((owner, kind)) or ViewState()

    def put(self, owner: str, kind: TableKind, state: ViewState) -> ViewState:
        with self._lock:
            self._states[(owner, kind)] = state
        return state

    def reset(self, owner: str, kind: TableKind) -> ViewState:
        with self._lock:
            self._states.pop((owner, kind), None)
        return ViewState()

    def clear(self) -> None:
        with self._lock:
            self._states.clear()
