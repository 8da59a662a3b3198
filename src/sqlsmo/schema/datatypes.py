"""SQL Server data type descriptors and the type mapping tables.

Three tables live here and every ``ManagedTypeCode`` member is classified
by each of them, either mapped or explicitly rejected:

- ``MANAGED_TO_DRIVER`` and ``DRIVER_TO_MANAGED`` convert between the
  schema-management codes and the driver parameter codes.
- ``FIXED_DECLARATIONS``, ``LENGTH_DECLARATIONS``, ``MAX_DECLARATIONS`` and
  ``PRECISION_DECLARATIONS`` drive ``sql_type_declaration``.
"""

import datetime
import re
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, ClassVar, Optional

from sqlsmo.exceptions import InvalidArgumentError, UnsupportedTypeError
from sqlsmo.types import DriverTypeCode, ManagedTypeCode

__all__ = [
    "DataType",
    "MANAGED_TO_DRIVER",
    "DRIVER_TO_MANAGED",
    "UNSUPPORTED_DRIVER_MAPPINGS",
    "UNSUPPORTED_MANAGED_MAPPINGS",
    "FIXED_DECLARATIONS",
    "LENGTH_DECLARATIONS",
    "MAX_DECLARATIONS",
    "PRECISION_DECLARATIONS",
    "UNSUPPORTED_DECLARATIONS",
    "to_driver_type",
    "to_managed_type",
    "sql_type_declaration",
    "parse_sql_type",
    "managed_type_from_name",
    "python_type",
]

M = ManagedTypeCode
D = DriverTypeCode


MANAGED_TO_DRIVER: dict[ManagedTypeCode, DriverTypeCode] = {
    M.BIG_INT: D.BIG_INT,
    M.BINARY: D.BINARY,
    M.BIT: D.BIT,
    M.CHAR: D.CHAR,
    M.DATE: D.DATE,
    M.DATE_TIME: D.DATE_TIME,
    M.DATE_TIME2: D.DATE_TIME2,
    M.DATE_TIME_OFFSET: D.DATE_TIME_OFFSET,
    M.DECIMAL: D.DECIMAL,
    M.FLOAT: D.FLOAT,
    M.IMAGE: D.IMAGE,
    M.INT: D.INT,
    M.MONEY: D.MONEY,
    M.NCHAR: D.NCHAR,
    M.NTEXT: D.NTEXT,
    M.NUMERIC: D.DECIMAL,
    M.NVARCHAR: D.NVARCHAR,
    M.NVARCHAR_MAX: D.NVARCHAR,
    M.REAL: D.REAL,
    M.SMALL_DATE_TIME: D.SMALL_DATE_TIME,
    M.SMALL_INT: D.SMALL_INT,
    M.SMALL_MONEY: D.SMALL_MONEY,
    M.TEXT: D.TEXT,
    M.TIME: D.TIME,
    M.TIMESTAMP: D.TIMESTAMP,
    M.TINY_INT: D.TINY_INT,
    M.UNIQUE_IDENTIFIER: D.UNIQUE_IDENTIFIER,
    M.USER_DEFINED_DATA_TYPE: D.UDT,
    M.USER_DEFINED_TABLE_TYPE: D.STRUCTURED,
    M.VAR_BINARY: D.VAR_BINARY,
    M.VAR_BINARY_MAX: D.VAR_BINARY,
    M.VAR_CHAR: D.VAR_CHAR,
    M.VAR_CHAR_MAX: D.VAR_CHAR,
    M.VARIANT: D.VARIANT,
    M.XML: D.XML,
}

UNSUPPORTED_DRIVER_MAPPINGS: frozenset[ManagedTypeCode] = frozenset(
    {
        M.NONE,
        M.GEOGRAPHY,
        M.GEOMETRY,
        M.HIERARCHY_ID,
        M.SYS_NAME,
        M.USER_DEFINED_TYPE,
    }
)

DRIVER_TO_MANAGED: dict[DriverTypeCode, ManagedTypeCode] = {
    D.BIG_INT: M.BIG_INT,
    D.BINARY: M.BINARY,
    D.BIT: M.BIT,
    D.CHAR: M.CHAR,
    D.DATE: M.DATE,
    D.DATE_TIME: M.DATE_TIME,
    D.DATE_TIME2: M.DATE_TIME2,
    D.DATE_TIME_OFFSET: M.DATE_TIME_OFFSET,
    D.DECIMAL: M.DECIMAL,
    D.FLOAT: M.FLOAT,
    D.IMAGE: M.IMAGE,
    D.INT: M.INT,
    D.MONEY: M.MONEY,
    D.NCHAR: M.NCHAR,
    D.NTEXT: M.NTEXT,
    D.NVARCHAR: M.NVARCHAR,
    D.REAL: M.REAL,
    D.SMALL_DATE_TIME: M.SMALL_DATE_TIME,
    D.SMALL_INT: M.SMALL_INT,
    D.SMALL_MONEY: M.SMALL_MONEY,
    D.STRUCTURED: M.USER_DEFINED_TABLE_TYPE,
    D.TEXT: M.TEXT,
    D.TIME: M.TIME,
    D.TIMESTAMP: M.TIMESTAMP,
    D.TINY_INT: M.TINY_INT,
    D.UDT: M.USER_DEFINED_DATA_TYPE,
    D.UNIQUE_IDENTIFIER: M.UNIQUE_IDENTIFIER,
    D.VAR_BINARY: M.VAR_BINARY,
    D.VAR_CHAR: M.VAR_CHAR,
    D.VARIANT: M.VARIANT,
    D.XML: M.XML,
}

UNSUPPORTED_MANAGED_MAPPINGS: frozenset[DriverTypeCode] = frozenset(
    {D.NONE, D.SYS_NAME, D.HIERARCHY_ID, D.GEOMETRY, D.GEOGRAPHY}
)

FIXED_DECLARATIONS: dict[ManagedTypeCode, str] = {
    M.BIG_INT: "BIGINT",
    M.BIT: "BIT",
    M.DATE: "DATE",
    M.DATE_TIME: "DATETIME",
    M.DATE_TIME2: "DATETIME2",
    M.DATE_TIME_OFFSET: "DATETIMEOFFSET",
    M.FLOAT: "FLOAT",
    M.IMAGE: "IMAGE",
    M.INT: "INT",
    M.MONEY: "MONEY",
    M.NTEXT: "NTEXT",
    M.REAL: "REAL",
    M.SMALL_DATE_TIME: "SMALLDATETIME",
    M.SMALL_INT: "SMALLINT",
    M.SMALL_MONEY: "SMALLMONEY",
    M.SYS_NAME: "sysname",
    M.TEXT: "TEXT",
    M.TIME: "TIME",
    M.TIMESTAMP: "TIMESTAMP",
    M.TINY_INT: "TINYINT",
    M.UNIQUE_IDENTIFIER: "UNIQUEIDENTIFIER",
    M.VARIANT: "SQL_VARIANT",
    M.XML: "XML",
}

LENGTH_DECLARATIONS: dict[ManagedTypeCode, str] = {
    M.BINARY: "BINARY",
    M.CHAR: "CHAR",
    M.NCHAR: "NCHAR",
    M.NVARCHAR: "NVARCHAR",
    M.VAR_BINARY: "VARBINARY",
    M.VAR_CHAR: "VARCHAR",
}

MAX_DECLARATIONS: dict[ManagedTypeCode, str] = {
    M.NVARCHAR_MAX: "NVARCHAR",
    M.VAR_BINARY_MAX: "VARBINARY",
    M.VAR_CHAR_MAX: "VARCHAR",
}

PRECISION_DECLARATIONS: dict[ManagedTypeCode, str] = {
    M.DECIMAL: "DECIMAL",
    M.NUMERIC: "NUMERIC",
}

UNSUPPORTED_DECLARATIONS: frozenset[ManagedTypeCode] = frozenset(
    {
        M.NONE,
        M.USER_DEFINED_DATA_TYPE,
        M.USER_DEFINED_TYPE,
        M.USER_DEFINED_TABLE_TYPE,
        M.GEOGRAPHY,
        M.GEOMETRY,
        M.HIERARCHY_ID,
    }
)

_STRING_TYPES = frozenset(
    {
        M.CHAR,
        M.NCHAR,
        M.NTEXT,
        M.NVARCHAR,
        M.NVARCHAR_MAX,
        M.SYS_NAME,
        M.TEXT,
        M.VAR_CHAR,
        M.VAR_CHAR_MAX,
    }
)

_NUMERIC_TYPES = frozenset(
    {
        M.BIG_INT,
        M.DECIMAL,
        M.FLOAT,
        M.INT,
        M.MONEY,
        M.NUMERIC,
        M.REAL,
        M.SMALL_INT,
        M.SMALL_MONEY,
        M.TINY_INT,
    }
)


@dataclass(frozen=True)
class DataType:
    """Declared type of a column or parameter."""

    MAX_LENGTH: ClassVar[int] = -1

    sql_data_type: ManagedTypeCode
    maximum_length: int = 0
    numeric_precision: int = 0
    numeric_scale: int = 0

    @classmethod
    def of(cls, sql_data_type: ManagedTypeCode) -> "DataType":
        """Type without length, precision or scale qualifiers.

        Time types get SQL Server's default fractional-second scale of 7.
        """
        if sql_data_type in _TIME_SCALE_TYPES:
            return cls(sql_data_type, numeric_scale=7)
        return cls(sql_data_type)

    @classmethod
    def nvarchar(cls, length: int) -> "DataType":
        return cls(M.NVARCHAR, maximum_length=length)

    @classmethod
    def nvarchar_max(cls) -> "DataType":
        return cls(M.NVARCHAR_MAX, maximum_length=cls.MAX_LENGTH)

    @classmethod
    def varchar(cls, length: int) -> "DataType":
        return cls(M.VAR_CHAR, maximum_length=length)

    @classmethod
    def varchar_max(cls) -> "DataType":
        return cls(M.VAR_CHAR_MAX, maximum_length=cls.MAX_LENGTH)

    @classmethod
    def varbinary_max(cls) -> "DataType":
        return cls(M.VAR_BINARY_MAX, maximum_length=cls.MAX_LENGTH)

    @classmethod
    def decimal(cls, precision: int, scale: int) -> "DataType":
        return cls(M.DECIMAL, numeric_precision=precision, numeric_scale=scale)

    @classmethod
    def numeric(cls, precision: int, scale: int) -> "DataType":
        return cls(M.NUMERIC, numeric_precision=precision, numeric_scale=scale)

    @classmethod
    def datetime2(cls, scale: int = 7) -> "DataType":
        return cls(M.DATE_TIME2, numeric_scale=scale)

    @property
    def is_string_type(self) -> bool:
        return self.sql_data_type in _STRING_TYPES

    @property
    def is_numeric_type(self) -> bool:
        return self.sql_data_type in _NUMERIC_TYPES

    @property
    def declaration(self) -> str:
        """Canonical DDL fragment, see ``sql_type_declaration``."""
        return sql_type_declaration(self)


def to_driver_type(sql_data_type: ManagedTypeCode) -> DriverTypeCode:
    """Convert a managed type code to the driver parameter type code.

    Raises:
        UnsupportedTypeError: For codes with no driver equivalent
            (None, Geography, Geometry, HierarchyId, SysName, UserDefinedType).
    """
    try:
        return MANAGED_TO_DRIVER[sql_data_type]
    except KeyError:
        raise UnsupportedTypeError(
            sql_data_type,
            f"Managed type '{sql_data_type.name}' has no driver type equivalent",
        ) from None


def to_managed_type(driver_type: DriverTypeCode) -> ManagedTypeCode:
    """Convert a driver parameter type code to the managed type code.

    Raises:
        UnsupportedTypeError: For codes with no managed equivalent
            (None, SysName, HierarchyId, Geometry, Geography).
    """
    try:
        return DRIVER_TO_MANAGED[driver_type]
    except KeyError:
        raise UnsupportedTypeError(
            driver_type,
            f"Driver type '{driver_type.name}' has no managed type equivalent",
        ) from None


def sql_type_declaration(data_type: DataType) -> str:
    """Return the DDL type fragment for a data type.

    Examples::

        sql_type_declaration(DataType.decimal(18, 4))  ->  "DECIMAL(18, 4)"
        sql_type_declaration(DataType.varchar(50))     ->  "VARCHAR(50)"
        sql_type_declaration(DataType.nvarchar_max())  ->  "NVARCHAR(MAX)"
    """
    code = data_type.sql_data_type

    if code in FIXED_DECLARATIONS:
        return FIXED_DECLARATIONS[code]
    if code in LENGTH_DECLARATIONS:
        return f"{LENGTH_DECLARATIONS[code]}({data_type.maximum_length})"
    if code in MAX_DECLARATIONS:
        return f"{MAX_DECLARATIONS[code]}(MAX)"
    if code in PRECISION_DECLARATIONS:
        return (
            f"{PRECISION_DECLARATIONS[code]}"
            f"({data_type.numeric_precision}, {data_type.numeric_scale})"
        )

    raise UnsupportedTypeError(
        code, f"The SQL data type '{code.name}' is not supported."
    )


_NAME_TO_MANAGED: dict[str, ManagedTypeCode] = {
    "bigint": M.BIG_INT,
    "binary": M.BINARY,
    "bit": M.BIT,
    "char": M.CHAR,
    "date": M.DATE,
    "datetime": M.DATE_TIME,
    "datetime2": M.DATE_TIME2,
    "datetimeoffset": M.DATE_TIME_OFFSET,
    "decimal": M.DECIMAL,
    "float": M.FLOAT,
    "geography": M.GEOGRAPHY,
    "geometry": M.GEOMETRY,
    "hierarchyid": M.HIERARCHY_ID,
    "image": M.IMAGE,
    "int": M.INT,
    "integer": M.INT,
    "money": M.MONEY,
    "nchar": M.NCHAR,
    "ntext": M.NTEXT,
    "numeric": M.NUMERIC,
    "nvarchar": M.NVARCHAR,
    "real": M.REAL,
    "rowversion": M.TIMESTAMP,
    "smalldatetime": M.SMALL_DATE_TIME,
    "smallint": M.SMALL_INT,
    "smallmoney": M.SMALL_MONEY,
    "sql_variant": M.VARIANT,
    "sysname": M.SYS_NAME,
    "text": M.TEXT,
    "time": M.TIME,
    "timestamp": M.TIMESTAMP,
    "tinyint": M.TINY_INT,
    "uniqueidentifier": M.UNIQUE_IDENTIFIER,
    "varbinary": M.VAR_BINARY,
    "varchar": M.VAR_CHAR,
    "xml": M.XML,
}

_MAX_VARIANTS = {
    M.NVARCHAR: M.NVARCHAR_MAX,
    M.VAR_CHAR: M.VAR_CHAR_MAX,
    M.VAR_BINARY: M.VAR_BINARY_MAX,
}

_TIME_SCALE_TYPES = frozenset({M.DATE_TIME2, M.DATE_TIME_OFFSET, M.TIME})

_TYPE_PATTERN = re.compile(
    r"^\s*(?P<name>[A-Za-z_][A-Za-z0-9_]*)\s*"
    r"(?:\(\s*(?P<first>MAX|\d+)\s*(?:,\s*(?P<second>\d+)\s*)?\))?\s*$",
    re.IGNORECASE,
)


def managed_type_from_name(type_name: str, max_length: int = 0) -> ManagedTypeCode:
    """Map a ``sys.types`` name to a managed type code.

    A ``max_length`` of -1 selects the MAX variant of the variable-length types.

    Raises:
        UnsupportedTypeError: If the name is not a SQL Server system type.
    """
    code = _NAME_TO_MANAGED.get(type_name.strip().lower())
    if code is None:
        raise UnsupportedTypeError(
            M.NONE, f"Unknown SQL Server type name '{type_name}'"
        )
    if max_length == DataType.MAX_LENGTH and code in _MAX_VARIANTS:
        return _MAX_VARIANTS[code]
    return code


def parse_sql_type(text: str) -> DataType:
    """Parse a DDL type fragment such as ``NVARCHAR(50)`` into a DataType.

    Raises:
        InvalidArgumentError: If the text is not a type declaration.
        UnsupportedTypeError: If the base type is unknown.
    """
    match = _TYPE_PATTERN.match(text or "")
    if not match:
        raise InvalidArgumentError(f"Invalid SQL type declaration: {text!r}")

    first = match.group("first")
    second = match.group("second")
    is_max = first is not None and first.upper() == "MAX"
    code = managed_type_from_name(
        match.group("name"), DataType.MAX_LENGTH if is_max else 0
    )

    if is_max:
        if code not in MAX_DECLARATIONS:
            raise InvalidArgumentError(f"Type '{code.name}' does not accept MAX")
        return DataType(code, maximum_length=DataType.MAX_LENGTH)
    if code in PRECISION_DECLARATIONS:
        precision = int(first) if first else 18
        scale = int(second) if second else 0
        return DataType(code, numeric_precision=precision, numeric_scale=scale)
    if code in LENGTH_DECLARATIONS:
        return DataType(code, maximum_length=int(first) if first else 1)
    if code in _TIME_SCALE_TYPES:
        return DataType(code, numeric_scale=int(first) if first else 7)
    return DataType(code)


_PYTHON_TYPES: dict[DriverTypeCode, type] = {
    D.BIG_INT: int,
    D.INT: int,
    D.SMALL_INT: int,
    D.TINY_INT: int,
    D.BIT: bool,
    D.DECIMAL: Decimal,
    D.MONEY: Decimal,
    D.SMALL_MONEY: Decimal,
    D.FLOAT: float,
    D.REAL: float,
    D.CHAR: str,
    D.NCHAR: str,
    D.VAR_CHAR: str,
    D.NVARCHAR: str,
    D.TEXT: str,
    D.NTEXT: str,
    D.XML: str,
    D.BINARY: bytes,
    D.VAR_BINARY: bytes,
    D.IMAGE: bytes,
    D.TIMESTAMP: bytes,
    D.DATE: datetime.date,
    D.DATE_TIME: datetime.datetime,
    D.DATE_TIME2: datetime.datetime,
    D.SMALL_DATE_TIME: datetime.datetime,
    D.DATE_TIME_OFFSET: datetime.datetime,
    D.TIME: datetime.time,
    D.UNIQUE_IDENTIFIER: uuid.UUID,
}


def python_type(driver_type: DriverTypeCode, nullable: bool = False) -> Any:
    """Python type of the values a driver type carries.

    Variant, Udt and Structured values have no single type and give ``object``.
    When ``nullable`` is set the result is wrapped in ``Optional``.
    """
    result: Any = _PYTHON_TYPES.get(driver_type, object)
    if nullable:
        return Optional[result]
    return result
