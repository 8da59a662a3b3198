"""Generate T-SQL statements from schema changes."""

from datetime import datetime
from typing import Optional

from sqlsmo.constants import MS_DESCRIPTION
from sqlsmo.exceptions import CodegenError
from sqlsmo.schema.datatypes import FIXED_DECLARATIONS, DataType, sql_type_declaration
from sqlsmo.schema.models import Column, ForeignKey, Index, PeriodForSystemTime, Table
from sqlsmo.types import (
    ChangeType,
    GeneratedAlwaysType,
    IndexKeyType,
    IndexType,
    ManagedTypeCode,
    SchemaChange,
)


def escape_sql_string(value: str) -> str:
    """Escape single quotes for SQL string literals."""
    return value.replace("'", "''")


def quote_identifier(name: str) -> str:
    """Bracket-quote an identifier."""
    return "[" + name.replace("]", "]]") + "]"


_SCALED_TIME_TYPES = frozenset(
    {ManagedTypeCode.DATE_TIME2, ManagedTypeCode.DATE_TIME_OFFSET, ManagedTypeCode.TIME}
)

# CLR types with no driver code that SQL Server still declares by keyword.
_CLR_TYPE_KEYWORDS = {
    ManagedTypeCode.GEOGRAPHY: "GEOGRAPHY",
    ManagedTypeCode.GEOMETRY: "GEOMETRY",
    ManagedTypeCode.HIERARCHY_ID: "HIERARCHYID",
}


def column_type_sql(data_type: DataType) -> str:
    """Type as written in CREATE/ALTER TABLE, keeping fractional-second scale."""
    code = data_type.sql_data_type
    if code in _SCALED_TIME_TYPES:
        return f"{FIXED_DECLARATIONS[code]}({data_type.numeric_scale})"
    if code in _CLR_TYPE_KEYWORDS:
        return _CLR_TYPE_KEYWORDS[code]
    return sql_type_declaration(data_type)


class DdlGenerator:
    """Generate T-SQL statements from schema changes."""

    def generate(self, changes: list[SchemaChange]) -> list[str]:
        """Generate one statement per change, in the given order."""
        errors = [c for c in changes if c.is_unsupported]
        if errors:
            error_msgs = "\n".join(f"-- ERROR: {c.error_message}" for c in errors)
            raise CodegenError(
                f"Cannot generate DDL - unsupported changes:\n{error_msgs}"
            )
        return [self._generate_sql(change) for change in changes]

    def render_script(self, changes: list[SchemaChange], description: str) -> str:
        """Render changes as a reviewable script with GO batch separators."""
        lines = [
            "-- Generated by sqlsmo",
            f"-- Description: {description}",
            f"-- Generated: {datetime.now().isoformat()}",
            "",
        ]
        for change, sql in zip(changes, self.generate(changes)):
            lines.append(f"-- {change.change_type.value}: {change.schema_name}.{change.table_name}")
            lines.append(sql)
            lines.append("GO")
            lines.append("")
        return "\n".join(lines)

    def _generate_sql(self, change: SchemaChange) -> str:
        """Generate SQL for a single change."""
        generators = {
            ChangeType.CREATE_TABLE: self._gen_create_table,
            ChangeType.ADD_COLUMN: self._gen_add_column,
            ChangeType.ADD_PERIOD: self._gen_add_period,
            ChangeType.ADD_DEFAULT_CONSTRAINT: self._gen_add_default,
            ChangeType.ALTER_COLUMN_HIDDEN: self._gen_alter_hidden,
            ChangeType.ADD_INDEX: self._gen_add_index,
            ChangeType.ADD_FOREIGN_KEY: self._gen_add_foreign_key,
            ChangeType.SET_EXTENDED_PROPERTY: self._gen_extended_property,
            ChangeType.SET_SYSTEM_VERSIONING: self._gen_system_versioning,
        }
        generator = generators.get(change.change_type)
        if not generator:
            raise CodegenError(f"No generator for {change.change_type}")
        return generator(change)

    def _fqn(self, schema: str, name: str) -> str:
        return f"{quote_identifier(schema)}.{quote_identifier(name)}"

    def _column_definition(self, col: Column) -> str:
        col_def = f"{quote_identifier(col.name)} {column_type_sql(col.data_type)}"
        if col.generated_always is GeneratedAlwaysType.AS_ROW_START:
            col_def += " GENERATED ALWAYS AS ROW START"
        elif col.generated_always is GeneratedAlwaysType.AS_ROW_END:
            col_def += " GENERATED ALWAYS AS ROW END"
        if col.is_hidden:
            col_def += " HIDDEN"
        col_def += " NULL" if col.nullable else " NOT NULL"
        if col.default_constraint:
            col_def += (
                f" CONSTRAINT {quote_identifier(col.default_constraint.name)}"
                f" DEFAULT ({col.default_constraint.text})"
            )
        return col_def

    def _period_definition(self, period: PeriodForSystemTime) -> str:
        return (
            f"PERIOD FOR SYSTEM_TIME ({quote_identifier(period.start_column)}, "
            f"{quote_identifier(period.end_column)})"
        )

    def _gen_create_table(self, change: SchemaChange) -> str:
        """Generate CREATE TABLE statement."""
        table: Table = change.details["table"]
        fqn = self._fqn(table.schema, table.name)

        defs = [f"    {self._column_definition(col)}" for col in table.columns]
        if table.period is not None:
            defs.append(f"    {self._period_definition(table.period)}")
        if not defs:
            raise CodegenError(f"Cannot create table {fqn} without columns.")

        return f"CREATE TABLE {fqn} (\n" + ",\n".join(defs) + "\n);"

    def _gen_add_column(self, change: SchemaChange) -> str:
        """Generate ALTER TABLE ADD column."""
        col: Column = change.details["column"]
        fqn = self._fqn(change.schema_name, change.table_name)
        return f"ALTER TABLE {fqn} ADD {self._column_definition(col)};"

    def _gen_add_period(self, change: SchemaChange) -> str:
        """Generate ALTER TABLE ADD for the period and any new period columns."""
        period: PeriodForSystemTime = change.details["period"]
        columns: list[Column] = change.details.get("columns", [])
        fqn = self._fqn(change.schema_name, change.table_name)

        defs = [f"    {self._column_definition(col)}" for col in columns]
        defs.append(f"    {self._period_definition(period)}")
        return f"ALTER TABLE {fqn} ADD\n" + ",\n".join(defs) + ";"

    def _gen_add_default(self, change: SchemaChange) -> str:
        fqn = self._fqn(change.schema_name, change.table_name)
        constraint = change.details["constraint"]
        col_name = quote_identifier(change.details["column_name"])
        return (
            f"ALTER TABLE {fqn} ADD CONSTRAINT {quote_identifier(constraint.name)} "
            f"DEFAULT ({constraint.text}) FOR {col_name};"
        )

    def _gen_alter_hidden(self, change: SchemaChange) -> str:
        fqn = self._fqn(change.schema_name, change.table_name)
        col_name = quote_identifier(change.details["column_name"])
        action = "ADD" if change.details["hidden"] else "DROP"
        return f"ALTER TABLE {fqn} ALTER COLUMN {col_name} {action} HIDDEN;"

    def _gen_add_index(self, change: SchemaChange) -> str:
        """Generate CREATE INDEX, or a PRIMARY KEY / UNIQUE constraint."""
        index: Index = change.details["index"]
        fqn = self._fqn(change.schema_name, change.table_name)
        cols = ", ".join(
            quote_identifier(c.name) + (" DESC" if c.descending else "")
            for c in index.indexed_columns
        )
        kind = "CLUSTERED" if index.index_type is IndexType.CLUSTERED else "NONCLUSTERED"

        if index.index_key_type is IndexKeyType.DRI_PRIMARY_KEY:
            return (
                f"ALTER TABLE {fqn} ADD CONSTRAINT {quote_identifier(index.name)} "
                f"PRIMARY KEY {kind} ({cols});"
            )
        if index.index_key_type is IndexKeyType.DRI_UNIQUE_KEY:
            return (
                f"ALTER TABLE {fqn} ADD CONSTRAINT {quote_identifier(index.name)} "
                f"UNIQUE {kind} ({cols});"
            )

        unique = "UNIQUE " if index.is_unique else ""
        return f"CREATE {unique}{kind} INDEX {quote_identifier(index.name)} ON {fqn} ({cols});"

    def _gen_add_foreign_key(self, change: SchemaChange) -> str:
        fk: ForeignKey = change.details["foreign_key"]
        fqn = self._fqn(change.schema_name, change.table_name)
        if not fk.columns:
            raise CodegenError(f"Foreign key '{fk.name}' has no columns.")
        cols = ", ".join(quote_identifier(c.name) for c in fk.columns)
        ref_cols = ", ".join(quote_identifier(c.referenced_column) for c in fk.columns)
        ref_fqn = self._fqn(fk.referenced_table_schema, fk.referenced_table)
        return (
            f"ALTER TABLE {fqn} ADD CONSTRAINT {quote_identifier(fk.name)} "
            f"FOREIGN KEY ({cols}) REFERENCES {ref_fqn} ({ref_cols});"
        )

    def _gen_extended_property(self, change: SchemaChange) -> str:
        """Generate sp_addextendedproperty / sp_updateextendedproperty."""
        procedure = (
            "sp_updateextendedproperty"
            if change.details.get("exists")
            else "sp_addextendedproperty"
        )
        args = [
            f"@name = N'{MS_DESCRIPTION}'",
            f"@value = N'{escape_sql_string(str(change.details['value']))}'",
            "@level0type = N'SCHEMA'",
            f"@level0name = N'{escape_sql_string(change.schema_name)}'",
            "@level1type = N'TABLE'",
            f"@level1name = N'{escape_sql_string(change.table_name)}'",
        ]
        level2_type: Optional[str] = change.details.get("level2_type")
        if level2_type:
            args.append(f"@level2type = N'{level2_type}'")
            args.append(
                f"@level2name = N'{escape_sql_string(change.details['level2_name'])}'"
            )
        return f"EXEC sys.{procedure} " + ", ".join(args) + ";"

    def _gen_system_versioning(self, change: SchemaChange) -> str:
        fqn = self._fqn(change.schema_name, change.table_name)
        if not change.details["enabled"]:
            return f"ALTER TABLE {fqn} SET (SYSTEM_VERSIONING = OFF);"

        history_schema = change.details.get("history_schema")
        history_table = change.details.get("history_table")
        if not history_schema or not history_table:
            raise CodegenError(
                f"System versioning on {fqn} requires a history table schema and name."
            )
        history_fqn = self._fqn(history_schema, history_table)
        return (
            f"ALTER TABLE {fqn} SET "
            f"(SYSTEM_VERSIONING = ON (HISTORY_TABLE = {history_fqn}));"
        )
