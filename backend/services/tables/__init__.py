# services/tables/__init__.py

from services.tables.schema import (
    ColumnDescriptor,
    ColumnType,
    Record,
    TableKind,
    TableSchema,
)
from services.tables.registry import SCHEMA_REGISTRY, describe
