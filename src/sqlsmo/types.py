"""Core type definitions for sqlsmo."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeAlias

TableName: TypeAlias = str
ColumnName: TypeAlias = str
SchemaName: TypeAlias = str
DatabaseName: TypeAlias = str

__all__ = [
    "TableName",
    "ColumnName",
    "SchemaName",
    "DatabaseName",
    "ManagedTypeCode",
    "DriverTypeCode",
    "GeneratedAlwaysType",
    "IndexKeyType",
    "IndexType",
    "ChangeType",
    "SchemaChange",
]


class ManagedTypeCode(Enum):
    """Column type categories of the schema-management object model."""

    NONE = "none"
    BIG_INT = "bigint"
    BINARY = "binary"
    BIT = "bit"
    CHAR = "char"
    DATE = "date"
    DATE_TIME = "datetime"
    DATE_TIME2 = "datetime2"
    DATE_TIME_OFFSET = "datetimeoffset"
    DECIMAL = "decimal"
    FLOAT = "float"
    GEOGRAPHY = "geography"
    GEOMETRY = "geometry"
    HIERARCHY_ID = "hierarchyid"
    IMAGE = "image"
    INT = "int"
    MONEY = "money"
    NCHAR = "nchar"
    NTEXT = "ntext"
    NUMERIC = "numeric"
    NVARCHAR = "nvarchar"
    NVARCHAR_MAX = "nvarcharmax"
    REAL = "real"
    SMALL_DATE_TIME = "smalldatetime"
    SMALL_INT = "smallint"
    SMALL_MONEY = "smallmoney"
    SYS_NAME = "sysname"
    TEXT = "text"
    TIME = "time"
    TIMESTAMP = "timestamp"
    TINY_INT = "tinyint"
    UNIQUE_IDENTIFIER = "uniqueidentifier"
    USER_DEFINED_DATA_TYPE = "userdefineddatatype"
    USER_DEFINED_TABLE_TYPE = "userdefinedtabletype"
    USER_DEFINED_TYPE = "userdefinedtype"
    VAR_BINARY = "varbinary"
    VAR_BINARY_MAX = "varbinarymax"
    VAR_CHAR = "varchar"
    VAR_CHAR_MAX = "varcharmax"
    VARIANT = "variant"
    XML = "xml"


class DriverTypeCode(Enum):
    """Parameter type codes understood by the client driver layer."""

    NONE = "none"
    BIG_INT = "bigint"
    BINARY = "binary"
    BIT = "bit"
    CHAR = "char"
    DATE = "date"
    DATE_TIME = "datetime"
    DATE_TIME2 = "datetime2"
    DATE_TIME_OFFSET = "datetimeoffset"
    DECIMAL = "decimal"
    FLOAT = "float"
    GEOGRAPHY = "geography"
    GEOMETRY = "geometry"
    HIERARCHY_ID = "hierarchyid"
    IMAGE = "image"
    INT = "int"
    MONEY = "money"
    NCHAR = "nchar"
    NTEXT = "ntext"
    NVARCHAR = "nvarchar"
    REAL = "real"
    SMALL_DATE_TIME = "smalldatetime"
    SMALL_INT = "smallint"
    SMALL_MONEY = "smallmoney"
    STRUCTURED = "structured"
    SYS_NAME = "sysname"
    TEXT = "text"
    TIME = "time"
    TIMESTAMP = "timestamp"
    TINY_INT = "tinyint"
    UDT = "udt"
    UNIQUE_IDENTIFIER = "uniqueidentifier"
    VAR_BINARY = "varbinary"
    VAR_CHAR = "varchar"
    VARIANT = "variant"
    XML = "xml"


class GeneratedAlwaysType(Enum):
    """How a temporal period column is populated by the server."""

    NONE = "none"
    AS_ROW_START = "as_row_start"
    AS_ROW_END = "as_row_end"


class IndexKeyType(Enum):
    NONE = "none"
    DRI_PRIMARY_KEY = "dri_primary_key"
    DRI_UNIQUE_KEY = "dri_unique_key"


class IndexType(Enum):
    CLUSTERED = "clustered"
    NONCLUSTERED = "nonclustered"


class ChangeType(Enum):
    """Types of schema changes that can be detected and applied."""

    CREATE_TABLE = "create_table"
    ADD_COLUMN = "add_column"
    DROP_COLUMN = "drop_column"
    ALTER_COLUMN_TYPE = "alter_column_type"
    ALTER_COLUMN_NULLABILITY = "alter_column_nullability"
    ALTER_COLUMN_HIDDEN = "alter_column_hidden"
    ADD_DEFAULT_CONSTRAINT = "add_default_constraint"
    ADD_PERIOD = "add_period"
    ADD_INDEX = "add_index"
    DROP_INDEX = "drop_index"
    ADD_FOREIGN_KEY = "add_foreign_key"
    DROP_FOREIGN_KEY = "drop_foreign_key"
    SET_EXTENDED_PROPERTY = "set_extended_property"
    SET_SYSTEM_VERSIONING = "set_system_versioning"


@dataclass
class SchemaChange:
    """Represents a single schema change detected by the differ."""

    change_type: ChangeType
    table_name: TableName
    schema_name: SchemaName = "dbo"
    details: dict[str, Any] = field(default_factory=dict)
    is_unsupported: bool = False
    error_message: str | None = None
