"""Load schema definitions from YAML files."""

from pathlib import Path
from typing import Any, Optional

import yaml

from sqlsmo.constants import DEFAULT_SCHEMA
from sqlsmo.exceptions import SchemaLoadError, SqlSmoError
from sqlsmo.schema.datatypes import DataType, parse_sql_type
from sqlsmo.schema.models import (
    Column,
    Database,
    DefaultConstraint,
    ForeignKey,
    ForeignKeyColumn,
    Index,
    IndexedColumn,
    StoredProcedure,
    StoredProcedureParameter,
    Table,
    View,
)
from sqlsmo.types import IndexKeyType, IndexType

VALID_FILE_FIELDS = {"database", "tables", "views", "procedures"}

VALID_TABLE_FIELDS = {
    "table",
    "schema",
    "description",
    "columns",
    "primary_key",
    "indexes",
    "foreign_keys",
    "period",
    "system_versioning",
}

VALID_COLUMN_FIELDS = {
    "name",
    "type",
    "nullable",
    "default",
    "default_name",
    "description",
    "hidden",
}

VALID_VIEW_FIELDS = {"view", "schema", "description", "columns"}
VALID_PROCEDURE_FIELDS = {"procedure", "schema", "parameters"}

DEFAULT_DATABASE_NAME = "schema"


def load_schema(schema_path: Path, database_name: Optional[str] = None) -> Database:
    """Load a Database from a directory of YAML files or a single file."""
    if schema_path.is_file():
        files = [schema_path]
    elif schema_path.is_dir():
        files = sorted(schema_path.glob("*.yaml")) + sorted(schema_path.glob("*.yml"))
    else:
        raise SchemaLoadError(f"Schema path does not exist: {schema_path}")

    database = Database(name=database_name or DEFAULT_DATABASE_NAME)
    for file_path in files:
        _merge_file(database, file_path, named=database_name is not None)
    return database


def _read_yaml(file_path: Path) -> dict:
    with open(file_path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise SchemaLoadError(f"Invalid YAML in {file_path}: {e}") from e
    if data is None:
        raise SchemaLoadError(f"Empty YAML file: {file_path}")
    if not isinstance(data, dict):
        raise SchemaLoadError(f"Expected a mapping at the top of {file_path}")
    return data


def _merge_file(database: Database, file_path: Path, named: bool) -> None:
    data = _read_yaml(file_path)

    if "table" in data:
        _add_table(database, _parse_table_dict(data))
        return

    _check_fields(data, VALID_FILE_FIELDS, "schema file")
    if data.get("database") and not named:
        database.name = data["database"]
    for table_data in data.get("tables") or []:
        _add_table(database, _parse_table_dict(table_data))
    for view_data in data.get("views") or []:
        view = _parse_view_dict(view_data)
        if database.get_view(view.name, view.schema) is not None:
            raise SchemaLoadError(f"Duplicate view name '{view.full_name}'")
        database.views.append(view)
    for proc_data in data.get("procedures") or []:
        proc = _parse_procedure_dict(proc_data)
        if database.get_stored_procedure(proc.name, proc.schema) is not None:
            raise SchemaLoadError(f"Duplicate procedure name '{proc.full_name}'")
        database.stored_procedures.append(proc)


def _add_table(database: Database, table: Table) -> None:
    if database.get_table(table.name, table.schema) is not None:
        raise SchemaLoadError(f"Duplicate table name '{table.full_name}'")
    database.add_table(table)


def _check_fields(data: Any, valid: set[str], kind: str) -> None:
    if not isinstance(data, dict):
        raise SchemaLoadError(f"Expected a mapping for {kind}, got {type(data).__name__}")
    unknown_fields = set(data.keys()) - valid
    if unknown_fields:
        raise SchemaLoadError(
            f"Unknown field(s) in {kind}: {', '.join(sorted(unknown_fields))}"
        )


def _parse_type(text: Any, owner: str) -> DataType:
    if not text:
        raise SchemaLoadError(f"{owner} missing 'type' field")
    try:
        return parse_sql_type(str(text))
    except SqlSmoError as e:
        raise SchemaLoadError(f"{owner}: {e}") from e


def _parse_table_dict(data: dict) -> Table:
    """Parse a table definition from a dictionary."""
    _check_fields(data, VALID_TABLE_FIELDS, "table definition")

    name = data.get("table")
    if not name:
        raise SchemaLoadError("Table definition missing 'table' field")
    schema = data.get("schema") or DEFAULT_SCHEMA

    table = Table(name=name, schema=schema)
    for col_data in data.get("columns") or []:
        column = _parse_column(col_data, name)
        if table.get_column(column.name) is not None:
            raise SchemaLoadError(f"Duplicate column name '{column.name}' in table '{name}'")
        table.add_column(column)
        if default := col_data.get("default"):
            column.default_constraint = DefaultConstraint(
                name=col_data.get("default_name") or f"DF_{name}_{column.name}",
                text=str(default),
            )

    if description := data.get("description"):
        table.add_description(description)

    if pk_data := data.get("primary_key"):
        table.indexes.append(_parse_primary_key(pk_data, name))

    for idx_data in data.get("indexes") or []:
        table.indexes.append(_parse_index(idx_data, name))

    for fk_data in data.get("foreign_keys") or []:
        table.foreign_keys.append(_parse_foreign_key(fk_data, name))

    if period := data.get("period"):
        try:
            table.add_period_for_system_time(period["start"], period["end"])
        except (KeyError, SqlSmoError) as e:
            raise SchemaLoadError(f"Invalid period on table '{name}': {e}") from e

    if versioning := data.get("system_versioning"):
        if table.period is None:
            raise SchemaLoadError(
                f"Table '{name}' enables system versioning without a period"
            )
        table.is_system_versioned = True
        table.history_table_schema = versioning.get("history_schema")
        table.history_table_name = versioning.get("history_table")

    return table


def _parse_column(data: dict, table_name: str) -> Column:
    """Parse a column definition from a dictionary."""
    _check_fields(data, VALID_COLUMN_FIELDS, "column definition")

    name = data.get("name")
    if not name:
        raise SchemaLoadError(f"Column definition in table '{table_name}' missing 'name' field")

    column = Column(
        name=name,
        data_type=_parse_type(data.get("type"), f"Column '{name}'"),
        nullable=data.get("nullable", True),
        is_hidden=data.get("hidden", False),
    )
    if description := data.get("description"):
        column.add_description(description)
    return column


def _parse_primary_key(data: dict, table_name: str) -> Index:
    columns = data.get("columns") or []
    if not columns:
        raise SchemaLoadError(f"Primary key on table '{table_name}' has no columns")
    return Index(
        name=data.get("name") or f"PK_{table_name}",
        indexed_columns=[IndexedColumn(c) for c in columns],
        index_key_type=IndexKeyType.DRI_PRIMARY_KEY,
        index_type=IndexType.CLUSTERED if data.get("clustered", True) else IndexType.NONCLUSTERED,
        is_unique=True,
    )


def _parse_index(data: dict, table_name: str) -> Index:
    columns = data.get("columns") or []
    if not columns:
        raise SchemaLoadError(f"Index on table '{table_name}' has no columns")
    index = Index(
        name=data.get("name") or f"IX_{table_name}_{'_'.join(columns)}",
        indexed_columns=[IndexedColumn(c) for c in columns],
        index_type=IndexType.CLUSTERED if data.get("clustered") else IndexType.NONCLUSTERED,
        is_unique=data.get("unique", False),
    )
    if description := data.get("description"):
        index.add_description(description)
    return index


def _parse_foreign_key(data: dict, table_name: str) -> ForeignKey:
    columns = data.get("columns") or []
    references = data.get("references") or {}
    ref_columns = references.get("columns") or []
    if not columns or len(columns) != len(ref_columns):
        raise SchemaLoadError(
            f"Foreign key on table '{table_name}' needs matching 'columns' and "
            f"'references.columns'"
        )
    if not references.get("table"):
        raise SchemaLoadError(f"Foreign key on table '{table_name}' missing 'references.table'")

    fk = ForeignKey(
        name=data.get("name") or f"FK_{table_name}_{'_'.join(columns)}",
        columns=[ForeignKeyColumn(c, r) for c, r in zip(columns, ref_columns)],
        referenced_table=references["table"],
        referenced_table_schema=references.get("schema") or DEFAULT_SCHEMA,
    )
    if description := data.get("description"):
        fk.add_description(description)
    return fk


def _parse_view_dict(data: dict) -> View:
    _check_fields(data, VALID_VIEW_FIELDS, "view definition")
    name = data.get("view")
    if not name:
        raise SchemaLoadError("View definition missing 'view' field")
    view = View(
        name=name,
        schema=data.get("schema") or DEFAULT_SCHEMA,
        columns=[_parse_column(c, name) for c in data.get("columns") or []],
    )
    if description := data.get("description"):
        view.add_description(description)
    return view


def _parse_procedure_dict(data: dict) -> StoredProcedure:
    _check_fields(data, VALID_PROCEDURE_FIELDS, "procedure definition")
    name = data.get("procedure")
    if not name:
        raise SchemaLoadError("Procedure definition missing 'procedure' field")

    parameters = []
    for param in data.get("parameters") or []:
        param_name = (param.get("name") or "").lstrip("@")
        if not param_name:
            raise SchemaLoadError(f"Parameter of procedure '{name}' missing 'name' field")
        parameters.append(
            StoredProcedureParameter(
                name=param_name,
                data_type=_parse_type(param.get("type"), f"Parameter '@{param_name}'"),
            )
        )
    return StoredProcedure(
        name=name,
        schema=data.get("schema") or DEFAULT_SCHEMA,
        parameters=parameters,
    )
