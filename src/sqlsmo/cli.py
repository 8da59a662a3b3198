"""Command-line interface for sqlsmo."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from sqlsmo.config import Config
from sqlsmo.exceptions import ConfigError, NotFoundError, SqlSmoError, UnsupportedTypeError
from sqlsmo.schema.datatypes import sql_type_declaration
from sqlsmo.schema.editor import SchemaEditor
from sqlsmo.schema.loader import load_schema
from sqlsmo.schema.models import Column, Table
from sqlsmo.sqlserver.procedures import (
    build_exec_statement,
    build_parameters,
    get_sql_results,
)
from sqlsmo.store.base import BaseSchemaStore
from sqlsmo.store.memory import InMemorySchemaStore


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--schema-path",
        type=Path,
        help="Work offline against YAML schema files instead of a server",
    )
    common.add_argument("--profile", help="Profile name in ~/.sqlsmo.cfg")

    parser = argparse.ArgumentParser(
        prog="sqlsmo",
        description="SQL Server schema object helpers",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("tables", parents=[common], help="List tables")

    describe_parser = subparsers.add_parser(
        "describe", parents=[common], help="Show columns, indexes and keys of a table"
    )
    describe_parser.add_argument("table", help="Table name")
    describe_parser.add_argument("--schema", help="Table schema (default: dbo)")

    activate_parser = subparsers.add_parser(
        "activate-versioning",
        parents=[common],
        help="Turn a table into a system-versioned temporal table",
    )
    activate_parser.add_argument("table", help="Table name")
    activate_parser.add_argument("--schema", help="Table schema (default: dbo)")
    activate_parser.add_argument("--history-schema", help="History table schema")
    activate_parser.add_argument("--history-table", help="History table name")
    activate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the DDL without executing it",
    )

    probe_parser = subparsers.add_parser(
        "probe-procedure",
        parents=[common],
        help="Run a stored procedure with placeholder arguments",
    )
    probe_parser.add_argument("name", help="Stored procedure name")
    probe_parser.add_argument("--schema", help="Procedure schema (default: dbo)")

    args = parser.parse_args(argv)

    if args.command == "tables":
        return cmd_tables(args)
    elif args.command == "describe":
        return cmd_describe(args)
    elif args.command == "activate-versioning":
        return cmd_activate_versioning(args)
    elif args.command == "probe-procedure":
        return cmd_probe_procedure(args)
    else:
        print(f"Command '{args.command}' not yet implemented", file=sys.stderr)
        return 1


def _config(args: argparse.Namespace) -> Config:
    return Config.from_env(
        schema_path=str(args.schema_path) if getattr(args, "schema_path", None) else None,
        history_schema=getattr(args, "history_schema", None),
        profile=getattr(args, "profile", None),
    )


def _open_store(config: Config, dry_run: bool = False) -> BaseSchemaStore:
    """In-memory store over YAML files when a schema path is set, else the server."""
    if config.schema_path:
        return InMemorySchemaStore(load_schema(Path(config.schema_path), config.database))

    from sqlsmo.sqlserver.connection import open_store

    return open_store(config, dry_run=dry_run)


def _find_table(store: BaseSchemaStore, name: str, schema: str) -> Table:
    table = store.database.get_table(name, schema)
    if table is None:
        raise NotFoundError(f"Table '{schema}.{name}' not found")
    return table


def _type_text(column: Column) -> str:
    try:
        return sql_type_declaration(column.data_type)
    except UnsupportedTypeError:
        return column.data_type.sql_data_type.name


def cmd_tables(args: argparse.Namespace) -> int:
    """List tables."""
    try:
        config = _config(args)
        with _open_store(config) as store:
            tables = store.database.tables
            print(f"{store.database.name}: {len(tables)} tables")
            for table in sorted(tables, key=lambda t: t.full_name.casefold()):
                versioned = " [system-versioned]" if table.is_system_versioned else ""
                print(f"  - {table.full_name} ({len(table.columns)} columns){versioned}")
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except SqlSmoError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_describe(args: argparse.Namespace) -> int:
    """Show the structure of one table."""
    try:
        config = _config(args)
        with _open_store(config) as store:
            table = _find_table(store, args.table, args.schema or config.default_schema)

            print(table.fully_qualified_name)
            if table.description:
                print(f"  {table.description}")
            print("Columns:")
            for col in table.columns:
                nullable = "NULL" if col.nullable else "NOT NULL"
                extras = []
                if col.default_constraint:
                    extras.append(f"DEFAULT {col.default_constraint.text}")
                if col.is_hidden:
                    extras.append("HIDDEN")
                suffix = f" [{', '.join(extras)}]" if extras else ""
                print(f"  {col.ordinal}: {col.name} {_type_text(col)} {nullable}{suffix}")
                if col.description:
                    print(f"      {col.description}")

            if table.indexes:
                print("Indexes:")
                for index in table.indexes:
                    kind = "PK" if index.is_primary_key_index() else index.index_type.value
                    cols = ", ".join(index.get_indexed_column_names())
                    print(f"  {index.name} ({kind}): {cols}")

            if table.foreign_keys:
                print("Foreign keys:")
                for fk in table.foreign_keys:
                    cols = ", ".join(c.name for c in fk.columns)
                    ref_cols = ", ".join(c.referenced_column for c in fk.columns)
                    print(
                        f"  {fk.name}: ({cols}) -> "
                        f"{fk.referenced_table_schema}.{fk.referenced_table} ({ref_cols})"
                    )

            if table.is_system_versioned:
                print(
                    f"System-versioned, history: "
                    f"{table.history_table_schema}.{table.history_table_name}"
                )
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except SqlSmoError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def cmd_activate_versioning(args: argparse.Namespace) -> int:
    """Activate system versioning on a table."""
    try:
        config = _config(args)
        with _open_store(config, dry_run=args.dry_run) as store:
            table = _find_table(store, args.table, args.schema or config.default_schema)
            editor = SchemaEditor(store, config)
            history = editor.activate_system_versioning(
                table,
                history_schema=config.history_schema,
                history_table_name=args.history_table,
            )

            applied = not (args.dry_run or config.schema_path)
            if not applied:
                print("-- Dry run - no statements executed")
                for sql in store.statements:
                    print(sql)
                    print("GO")
            print(
                f"System versioning {'activated' if applied else 'planned'} on "
                f"{table.full_name} with history table {history.full_name} "
                f"({len(store.statements)} statements)"
            )
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except SqlSmoError as e:
        print(f"Activation error: {e}", file=sys.stderr)
        return 1


def cmd_probe_procedure(args: argparse.Namespace) -> int:
    """Run a stored procedure with placeholder arguments and show its results."""
    try:
        config = _config(args)
        with _open_store(config) as store:
            schema = args.schema or config.default_schema
            procedure = store.database.get_stored_procedure(args.name, schema)
            if procedure is None:
                raise NotFoundError(f"Stored procedure '{schema}.{args.name}' not found")

            params = build_parameters(procedure)
            print(build_exec_statement(procedure, [name for name, _ in params]))
            for name, value in params:
                print(f"  @{name} = {value!r}")

            if config.schema_path:
                print("Offline schema - procedure not executed")
                return 0

            result = get_sql_results(store.client, procedure)
            for i, result_set in enumerate(result.result_sets, start=1):
                print(f"Result set {i}: {len(result_set.rows)} rows")
                print("  " + " | ".join(result_set.columns))
                for row in result_set.rows:
                    print("  " + " | ".join(str(v) for v in row))
        return 0
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    except SqlSmoError as e:
        print(f"Probe error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
