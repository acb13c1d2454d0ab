# services/tables/schema.py

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping


class TableKind(str, Enum):
    COMPETITOR_PINS = "competitor_pins"
    PIN_ANALYSIS = "pin_analysis"
    COMPETITOR_INTELLIGENCE = "competitor_intelligence"
    CONTENT_QUEUE = "content_queue"


class ColumnType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    SELECT = "select"
    CHECKBOX = "checkbox"
    URL = "url"
    ATTACHMENT = "attachment"
    LINKED = "linked"


@dataclass(frozen=True)
class ColumnDescriptor:
    key: str
    label: str
    type: ColumnType = ColumnType.TEXT
    sticky: bool = False


@dataclass(frozen=True)
class TableSchema:
    kind: TableKind
    remote_name: str
    count_label: str
    columns: tuple[ColumnDescriptor, ...]
    # logical field -> accepted raw keys, looked up in order
    field_aliases: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    # columns offered as exact-match filters
    facets: tuple[str, ...] = ()
    # (field, "asc"|"desc") pairs sent with the remote fetch
    remote_sort: tuple[tuple[str, str], ...] = ()

    def __post_init__(self):
        seen: set[str] = set()
        for column in self.columns:
            if column.key in seen:
                raise ValueError(f"Duplicate column key {column.key!r} in {self.kind.value} schema")
            seen.add(column.key)
        unknown = [f for f in self.facets if f not in seen]
        if unknown:
            raise ValueError(f"Facets {unknown!r} are not columns of the {self.kind.value} schema")
        object.__setattr__(self, "field_aliases", MappingProxyType(dict(self.field_aliases)))

    @property
    def column_keys(self) -> tuple[str, ...]:
        return tuple(c.key for c in self.columns)

    def column(self, key: str | None) -> ColumnDescriptor | None:
        if key is None:
            return None
        return next((c for c in self.columns if c.key == key), None)

    def aliases(self, logical: str) -> tuple[str, ...]:
        return self.field_aliases[logical]


@dataclass(frozen=True)
class Record:
    """One row of a snapshot. Never mutated once loaded."""

    id: str
    fields: Mapping[str, Any]
    created_time: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields or {})))

    @classmethod
    def from_airtable(cls, payload: Mapping[str, Any]) -> "Record":
        return cls(
            id=str(payload.get("id") or ""),
            fields=payload.get("fields") or {},
            created_time=payload.get("createdTime"),
        )

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)


def is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and value == "":
        return False
    return True


def resolve_field(record: Record, aliases: tuple[str, ...], default: Any = None) -> Any:
    """Return the value of the first alias present on the record."""
    for key in aliases:
        value = record.fields.get(key)
        if is_present(value):
            return value
    return default
