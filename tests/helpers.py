"""Shared test helpers for sqlsmo tests."""

from unittest.mock import MagicMock

from sqlsmo.config import Config
from sqlsmo.schema.datatypes import (
    FIXED_DECLARATIONS,
    LENGTH_DECLARATIONS,
    MAX_DECLARATIONS,
    PRECISION_DECLARATIONS,
    DataType,
)
from sqlsmo.schema.models import Column, Database, Index, IndexedColumn, Table
from sqlsmo.types import GeneratedAlwaysType, IndexKeyType, IndexType, ManagedTypeCode


def make_test_config(
    connection_string: str = "Server=localhost;Database=Sales;User Id=sa;Password=pw;",
    database: str = "Sales",
    history_schema: str = "History",
) -> Config:
    """Create a Config for tests with sensible defaults."""
    return Config(
        connection_string=connection_string,
        database=database,
        history_schema=history_schema,
    )


def make_orders_table(schema: str = "dbo") -> Table:
    """Orders(Id INT NOT NULL PK, CustomerId INT, Total DECIMAL(18, 2), Notes NVARCHAR(MAX))."""
    id_column = Column(name="Id", data_type=DataType.of(ManagedTypeCode.INT), nullable=False)
    id_column.add_description("Order identifier")
    return Table(
        name="Orders",
        schema=schema,
        columns=[
            id_column,
            Column(name="CustomerId", data_type=DataType.of(ManagedTypeCode.INT)),
            Column(name="Total", data_type=DataType.decimal(18, 2), nullable=False),
            Column(name="Notes", data_type=DataType.nvarchar_max()),
        ],
        indexes=[
            Index(
                name="PK_Orders",
                indexed_columns=[IndexedColumn("Id")],
                index_key_type=IndexKeyType.DRI_PRIMARY_KEY,
                index_type=IndexType.CLUSTERED,
                is_unique=True,
            )
        ],
    )


def make_customers_table(schema: str = "dbo") -> Table:
    return Table(
        name="Customers",
        schema=schema,
        columns=[
            Column(name="Id", data_type=DataType.of(ManagedTypeCode.INT), nullable=False),
            Column(name="Name", data_type=DataType.nvarchar(100), nullable=False),
        ],
    )


def make_database(*tables: Table, name: str = "Sales") -> Database:
    """Database holding ``tables``, Orders and Customers by default."""
    if not tables:
        tables = (make_orders_table(), make_customers_table())
    return Database(name=name, tables=list(tables))


def _type_row(data_type: DataType) -> dict:
    """sys.types / sys.columns fields describing ``data_type``."""
    code = data_type.sql_data_type
    row = {
        "max_length": 0,
        "precision": 0,
        "scale": 0,
        "is_user_defined": False,
        "is_table_type": False,
        "is_assembly_type": False,
    }
    if code in MAX_DECLARATIONS:
        row["type_name"] = MAX_DECLARATIONS[code].lower()
        row["max_length"] = -1
    elif code in LENGTH_DECLARATIONS:
        row["type_name"] = LENGTH_DECLARATIONS[code].lower()
        unicode = code in (ManagedTypeCode.NCHAR, ManagedTypeCode.NVARCHAR)
        row["max_length"] = data_type.maximum_length * (2 if unicode else 1)
    elif code in PRECISION_DECLARATIONS:
        row["type_name"] = PRECISION_DECLARATIONS[code].lower()
        row["precision"] = data_type.numeric_precision
        row["scale"] = data_type.numeric_scale
    else:
        row["type_name"] = FIXED_DECLARATIONS[code].lower()
        row["scale"] = data_type.numeric_scale
    return row


def build_db_state_from_database(database: Database) -> dict:
    """Catalog rows that introspect back into ``database``'s tables.

    Returns kwargs for ``make_mock_client``.
    """
    tables_data = []
    columns_data = {}
    indexes_data = {}
    foreign_keys_data = {}
    periods_data = {}

    for table in database.tables:
        key = f"{table.schema}.{table.name}"
        tables_data.append(
            {
                "schema_name": table.schema,
                "table_name": table.name,
                "temporal_type": 2 if table.is_system_versioned else 0,
                "history_schema": table.history_table_schema,
                "history_table": table.history_table_name,
                "description": table.description,
            }
        )

        columns_data[key] = [
            {
                "column_name": col.name,
                "is_nullable": col.nullable,
                "is_hidden": col.is_hidden,
                "generated_always_type": {
                    GeneratedAlwaysType.NONE: 0,
                    GeneratedAlwaysType.AS_ROW_START: 1,
                    GeneratedAlwaysType.AS_ROW_END: 2,
                }[col.generated_always],
                "default_name": col.default_constraint.name if col.default_constraint else None,
                "default_definition": (
                    col.default_constraint.text if col.default_constraint else None
                ),
                "description": col.description,
                **_type_row(col.data_type),
            }
            for col in table.columns
        ]

        indexes_data[key] = [
            {
                "index_name": index.name,
                "type_desc": index.index_type.value.upper(),
                "is_primary_key": index.index_key_type is IndexKeyType.DRI_PRIMARY_KEY,
                "is_unique_constraint": index.index_key_type is IndexKeyType.DRI_UNIQUE_KEY,
                "is_unique": index.is_unique,
                "column_name": ic.name,
                "is_descending_key": ic.descending,
                "description": index.description,
            }
            for index in table.indexes
            for ic in index.indexed_columns
        ]

        foreign_keys_data[key] = [
            {
                "fk_name": fk.name,
                "column_name": fkc.name,
                "referenced_column": fkc.referenced_column,
                "referenced_schema": fk.referenced_table_schema,
                "referenced_table": fk.referenced_table,
                "description": fk.description,
            }
            for fk in table.foreign_keys
            for fkc in fk.columns
        ]

        if table.period is not None:
            periods_data[key] = [
                {
                    "start_column": table.period.start_column,
                    "end_column": table.period.end_column,
                }
            ]

    return {
        "tables_data": tables_data,
        "columns_data": columns_data,
        "indexes_data": indexes_data,
        "foreign_keys_data": foreign_keys_data,
        "periods_data": periods_data,
    }


def make_mock_client(
    tables_data: list[dict] | None = None,
    columns_data: dict[str, list[dict]] | None = None,
    indexes_data: dict[str, list[dict]] | None = None,
    foreign_keys_data: dict[str, list[dict]] | None = None,
    periods_data: dict[str, list[dict]] | None = None,
    views_data: list[dict] | None = None,
    procedures_data: list[dict] | None = None,
    parameters_data: dict[str, list[dict]] | None = None,
    databases: list[str] | None = None,
) -> MagicMock:
    """Create a mock SqlServerClient answering catalog queries with test data.

    Per-object data is keyed by ``"schema.name"``.
    """
    client = MagicMock()
    tables_data = tables_data or []
    columns_data = columns_data or {}
    indexes_data = indexes_data or {}
    foreign_keys_data = foreign_keys_data or {}
    periods_data = periods_data or {}
    views_data = views_data or []
    procedures_data = procedures_data or []
    parameters_data = parameters_data or {}
    databases = databases if databases is not None else ["master", "Sales"]

    def fetchall_side_effect(sql: str, params: dict | None = None):
        sql_lower = sql.lower()
        params = params or {}
        key = f"{params.get('schema')}.{params.get('name')}"

        if "sys.databases" in sql_lower:
            return [{"name": name} for name in databases]
        if "sys.periods" in sql_lower:
            return periods_data.get(key, [])
        if "sys.foreign_keys" in sql_lower:
            return foreign_keys_data.get(key, [])
        if "sys.indexes" in sql_lower:
            return indexes_data.get(key, [])
        if "sys.parameters" in sql_lower:
            return parameters_data.get(key, [])
        if "sys.procedures" in sql_lower:
            return procedures_data
        if "sys.views" in sql_lower:
            return views_data
        if "sys.columns" in sql_lower:
            return columns_data.get(key, [])
        if "sys.tables" in sql_lower:
            if params:
                return [
                    t
                    for t in tables_data
                    if t["schema_name"] == params["schema"]
                    and t["table_name"] == params["name"]
                ]
            return tables_data

        return []

    client.fetchall.side_effect = fetchall_side_effect
    return client


def strip_timestamp_line(sql: str) -> list[str]:
    """Strip the '-- Generated:' timestamp line for comparison.

    Returns list of lines with trailing whitespace stripped.
    """
    return [
        line.rstrip()
        for line in sql.splitlines()
        if not line.startswith("-- Generated:")
    ]
