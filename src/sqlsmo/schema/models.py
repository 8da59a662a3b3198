"""Schema object representation classes."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from typing import Any, Iterable, Optional

import inflect

from sqlsmo.constants import DEFAULT_SCHEMA, MS_DESCRIPTION
from sqlsmo.exceptions import ConflictError, InvalidArgumentError, NotFoundError
from sqlsmo.schema.datatypes import DataType, python_type, to_driver_type
from sqlsmo.types import (
    DriverTypeCode,
    GeneratedAlwaysType,
    IndexKeyType,
    IndexType,
)

_inflector = inflect.engine()

# Last word of a PascalCase or snake_case name.
_LAST_WORD = re.compile(r"[A-Z]?[a-z]+$")

# Singular endings that singular_noun() mistakes for plurals (Status, Address, Analysis).
_SINGULAR_ENDINGS = ("ss", "us", "is")


def require_name(value: Optional[str], kind: str) -> str:
    """Return ``value`` or raise if it is None, empty or whitespace."""
    if value is None or not str(value).strip():
        raise InvalidArgumentError(f"{kind} must be a non-empty name")
    return value


def pluralize(name: str) -> str:
    """Plural form of a name, left alone when it is already plural.

    Only the last word of a compound name changes, so ``OrderLine`` becomes
    ``OrderLines``. Words are inflected in lower case because inflect treats
    capitalized words as proper names.
    """
    match = _LAST_WORD.search(name)
    if match is None:
        return _inflector.plural_noun(name)
    word = match.group()
    lower = word.lower()
    if _inflector.singular_noun(lower) and not lower.endswith(_SINGULAR_ENDINGS):
        return name
    plural = _inflector.plural_noun(lower)
    if word[0].isupper():
        plural = plural[0].upper() + plural[1:]
    return name[: match.start()] + plural


def _matches(left: str, right: str) -> bool:
    return left.casefold() == right.casefold()


@dataclass
class ExtendedProperty:
    """Named value attached to a schema object."""

    name: str
    value: Any

    def is_ms_description(self) -> bool:
        return _matches(self.name, MS_DESCRIPTION)


class DescribedMixin:
    """Description helpers for objects carrying extended properties."""

    extended_properties: list[ExtendedProperty]

    @property
    def description(self) -> Optional[str]:
        for prop in self.extended_properties:
            if prop.is_ms_description():
                return None if prop.value is None else str(prop.value)
        return None

    @property
    def has_description(self) -> bool:
        return any(p.is_ms_description() for p in self.extended_properties)

    def add_description(self, description: str) -> None:
        """Set the MS_Description property, replacing an existing one."""
        for prop in self.extended_properties:
            if prop.is_ms_description():
                prop.value = description
                return
        self.extended_properties.append(ExtendedProperty(MS_DESCRIPTION, description))


@dataclass
class DefaultConstraint:
    name: str
    text: str


@dataclass
class Column(DescribedMixin):
    """Column of a table or view."""

    name: str
    data_type: DataType
    nullable: bool = True
    default_constraint: Optional[DefaultConstraint] = None
    extended_properties: list[ExtendedProperty] = field(default_factory=list)
    is_hidden: bool = False
    generated_always: GeneratedAlwaysType = GeneratedAlwaysType.NONE
    parent: Optional[Any] = field(default=None, repr=False, compare=False)

    @property
    def ordinal(self) -> int:
        """Zero-based position within the parent, -1 when detached."""
        if self.parent is None:
            return -1
        for i, column in enumerate(self.parent.columns):
            if column is self:
                return i
        raise NotFoundError(f"The ordinal of column '{self.name}' cannot be found.")

    @property
    def length(self) -> int:
        return self.data_type.maximum_length

    @property
    def is_string(self) -> bool:
        return self.data_type.is_string_type

    @property
    def is_numeric_type(self) -> bool:
        return self.data_type.is_numeric_type

    @property
    def numeric_precision(self) -> int:
        return self.data_type.numeric_precision

    @property
    def numeric_scale(self) -> int:
        return self.data_type.numeric_scale

    def to_driver_type(self) -> DriverTypeCode:
        return to_driver_type(self.data_type.sql_data_type)

    def python_type(self) -> Any:
        return python_type(self.to_driver_type(), self.nullable)

    def python_type_name(self) -> str:
        """Readable name of ``python_type``, e.g. ``int`` or ``Optional[Decimal]``."""
        base = python_type(self.to_driver_type())
        if self.nullable:
            return f"Optional[{base.__name__}]"
        return base.__name__

    def add_description(self, description: str) -> None:
        if not description.endswith("."):
            description += "."
        super().add_description(description)

    def set_default_constraint(
        self, default_value: str, constraint_name: Optional[str] = None
    ) -> None:
        """Attach a default constraint; an existing one is kept as is."""
        if self.default_constraint is not None:
            return
        table_name = self.parent.name if self.parent is not None else ""
        name = constraint_name or f"DF_{table_name}_{self.name}"
        self.default_constraint = DefaultConstraint(name=name, text=default_value)


@dataclass
class IndexedColumn:
    name: str
    descending: bool = False


@dataclass
class Index(DescribedMixin):
    name: str
    indexed_columns: list[IndexedColumn] = field(default_factory=list)
    index_key_type: IndexKeyType = IndexKeyType.NONE
    index_type: IndexType = IndexType.NONCLUSTERED
    is_unique: bool = False
    extended_properties: list[ExtendedProperty] = field(default_factory=list)

    def is_primary_key_index(self) -> bool:
        return self.index_key_type is IndexKeyType.DRI_PRIMARY_KEY

    def get_indexed_columns(self) -> list[IndexedColumn]:
        return list(self.indexed_columns)

    def get_indexed_column_names(self) -> list[str]:
        return [c.name for c in self.indexed_columns]


@dataclass
class ForeignKeyColumn:
    name: str
    referenced_column: str


@dataclass
class ForeignKey(DescribedMixin):
    """Foreign key constraint from a table to a referenced table."""

    name: str
    columns: list[ForeignKeyColumn] = field(default_factory=list)
    referenced_table: str = ""
    referenced_table_schema: str = DEFAULT_SCHEMA
    extended_properties: list[ExtendedProperty] = field(default_factory=list)


@dataclass
class PeriodForSystemTime:
    """Temporal period over two datetime2 columns."""

    start_column: str
    end_column: str
    system_time: bool = True

    @property
    def column_names(self) -> tuple[str, str]:
        return (self.start_column, self.end_column)


@dataclass
class Table(DescribedMixin):
    """Table definition."""

    name: str
    schema: str = DEFAULT_SCHEMA
    columns: list[Column] = field(default_factory=list)
    indexes: list[Index] = field(default_factory=list)
    foreign_keys: list[ForeignKey] = field(default_factory=list)
    extended_properties: list[ExtendedProperty] = field(default_factory=list)
    period: Optional[PeriodForSystemTime] = None
    history_table_schema: Optional[str] = None
    history_table_name: Optional[str] = None
    is_system_versioned: bool = False
    parent: Optional[Database] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        for column in self.columns:
            column.parent = self

    @property
    def full_name(self) -> str:
        return f"{self.schema}.{self.name}"

    @property
    def fully_qualified_name(self) -> str:
        return f"[{self.schema}].[{self.name}]"

    @property
    def plural_name(self) -> str:
        return pluralize(self.name)

    def get_column(self, name: str) -> Optional[Column]:
        """Get a column by name, ignoring case."""
        require_name(name, "Column name")
        for col in self.columns:
            if _matches(col.name, name):
                return col
        return None

    def get_index(self, name: str) -> Optional[Index]:
        """Get an index by name, ignoring case."""
        require_name(name, "Index name")
        for index in self.indexes:
            if _matches(index.name, name):
                return index
        return None

    def get_foreign_key(self, name: str) -> Optional[ForeignKey]:
        require_name(name, "Foreign key name")
        for fk in self.foreign_keys:
            if _matches(fk.name, name):
                return fk
        return None

    def has_foreign_key(self, name: str) -> bool:
        return self.get_foreign_key(name) is not None

    def add_column(self, column: Column) -> Column:
        """Stage a new column.

        Raises:
            ConflictError: If a column with the same name exists.
        """
        require_name(column.name, "Column name")
        if self.get_column(column.name) is not None:
            raise ConflictError(
                f"A column named '{column.name}' already exists in table '{self.full_name}'."
            )
        column.parent = self
        self.columns.append(column)
        return column

    def add_nonclustered_index(
        self,
        column_names: Iterable[str],
        index_name: Optional[str] = None,
        index_comment: Optional[str] = None,
    ) -> Index:
        """Stage a non-clustered index over ``column_names``.

        The default name is ``IX_<table>_<col1>_<col2>...``.
        """
        names = list(column_names)
        if not names:
            raise InvalidArgumentError("At least one column name is required for an index")
        for name in names:
            require_name(name, "Indexed column name")

        idx_name = (
            index_name
            if index_name and index_name.strip()
            else f"IX_{self.name}_{'_'.join(names)}"
        )
        index = Index(
            name=idx_name,
            indexed_columns=[IndexedColumn(name) for name in names],
            index_key_type=IndexKeyType.NONE,
            index_type=IndexType.NONCLUSTERED,
        )
        if index_comment and index_comment.strip():
            index.add_description(index_comment)

        self.indexes.append(index)
        return index

    def add_period_for_system_time(
        self, start_column: str, end_column: str, system_time: bool = True
    ) -> PeriodForSystemTime:
        """Stage the system-time period and mark its columns generated always.

        Raises:
            NotFoundError: If either column is missing from the table.
            ConflictError: If the table already has a period.
        """
        if self.period is not None:
            raise ConflictError(f"Table '{self.full_name}' already has a period.")
        start = self.get_column(start_column)
        end = self.get_column(end_column)
        for name, column in ((start_column, start), (end_column, end)):
            if column is None:
                raise NotFoundError(
                    f"Column '{name}' not found in table '{self.full_name}'."
                )
        start.generated_always = GeneratedAlwaysType.AS_ROW_START
        end.generated_always = GeneratedAlwaysType.AS_ROW_END
        self.period = PeriodForSystemTime(start.name, end.name, system_time)
        return self.period

    def restore_from(self, other: Table) -> None:
        """Replace this table's state with ``other``'s, keeping the parent."""
        for f in fields(self):
            if f.name != "parent":
                setattr(self, f.name, getattr(other, f.name))
        for column in self.columns:
            column.parent = self


@dataclass
class View(DescribedMixin):
    name: str
    schema: str = DEFAULT_SCHEMA
    columns: list[Column] = field(default_factory=list)
    extended_properties: list[ExtendedProperty] = field(default_factory=list)

    def __post_init__(self) -> None:
        for column in self.columns:
            column.parent = self

    @property
    def full_name(self) -> str:
        return f"{self.schema}.{self.name}"

    @property
    def fully_qualified_name(self) -> str:
        return f"[{self.schema}].[{self.name}]"

    @property
    def plural_name(self) -> str:
        return pluralize(self.name)

    def get_column(self, name: str) -> Optional[Column]:
        require_name(name, "Column name")
        for col in self.columns:
            if _matches(col.name, name):
                return col
        return None


@dataclass
class StoredProcedureParameter:
    name: str
    data_type: DataType

    @property
    def driver_type(self) -> DriverTypeCode:
        return to_driver_type(self.data_type.sql_data_type)


@dataclass
class StoredProcedure:
    name: str
    schema: str = DEFAULT_SCHEMA
    parameters: list[StoredProcedureParameter] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.schema}.{self.name}"

    @property
    def fully_qualified_name(self) -> str:
        return f"[{self.schema}].[{self.name}]"


@dataclass
class Database:
    """Complete database schema."""

    name: str
    tables: list[Table] = field(default_factory=list)
    views: list[View] = field(default_factory=list)
    stored_procedures: list[StoredProcedure] = field(default_factory=list)

    def __post_init__(self) -> None:
        for table in self.tables:
            table.parent = self

    def get_table(self, name: str, schema: str = DEFAULT_SCHEMA) -> Optional[Table]:
        """Get a table by schema and name, ignoring case."""
        require_name(name, "Table name")
        require_name(schema, "Schema name")
        for table in self.tables:
            if _matches(table.schema, schema) and _matches(table.name, name):
                return table
        return None

    def get_view(self, name: str, schema: str = DEFAULT_SCHEMA) -> Optional[View]:
        require_name(name, "View name")
        require_name(schema, "Schema name")
        for view in self.views:
            if _matches(view.schema, schema) and _matches(view.name, name):
                return view
        return None

    def get_stored_procedure(
        self, name: str, schema: str = DEFAULT_SCHEMA
    ) -> Optional[StoredProcedure]:
        require_name(name, "Procedure name")
        require_name(schema, "Schema name")
        for proc in self.stored_procedures:
            if _matches(proc.schema, schema) and _matches(proc.name, name):
                return proc
        return None

    def add_table(self, table: Table) -> Table:
        if self.get_table(table.name, table.schema) is None:
            self.tables.append(table)
        table.parent = self
        return table

    def table_names(self) -> list[str]:
        return [t.full_name for t in self.tables]
