"""Schema object model, type mapping, diffing and DDL generation."""

from sqlsmo.schema.datatypes import (
    DataType,
    sql_type_declaration,
    to_driver_type,
    to_managed_type,
)
from sqlsmo.schema.models import (
    Column,
    Database,
    ExtendedProperty,
    ForeignKey,
    Index,
    StoredProcedure,
    StoredProcedureParameter,
    Table,
    View,
)

__all__ = [
    "Column",
    "DataType",
    "Database",
    "ExtendedProperty",
    "ForeignKey",
    "Index",
    "StoredProcedure",
    "StoredProcedureParameter",
    "Table",
    "View",
    "sql_type_declaration",
    "to_driver_type",
    "to_managed_type",
]
