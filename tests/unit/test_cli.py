"""Tests for CLI commands."""

import argparse
from pathlib import Path
from unittest.mock import MagicMock, patch

from sqlsmo.cli import (
    cmd_activate_versioning,
    cmd_describe,
    cmd_probe_procedure,
    cmd_tables,
    main,
)
from sqlsmo.schema.datatypes import DataType
from sqlsmo.schema.models import Database, StoredProcedure, StoredProcedureParameter
from sqlsmo.sqlserver.procedures import ResultSet, SqlResult
from sqlsmo.sqlserver.store import SqlServerSchemaStore
from sqlsmo.types import ManagedTypeCode
from tests.helpers import build_db_state_from_database, make_database, make_mock_client

FIXTURES_PATH = Path(__file__).parent.parent / "fixtures" / "schema"


def offline_args(**kwargs) -> argparse.Namespace:
    return argparse.Namespace(schema_path=FIXTURES_PATH, profile=None, **kwargs)


def printed(mock_print) -> list[str]:
    return [c.args[0] if c.args else "" for c in mock_print.call_args_list]


class TestCmdTables:
    """Test cmd_tables."""

    def test_lists_tables_offline(self):
        with patch("builtins.print") as mock_print:
            result = cmd_tables(offline_args())

        assert result == 0
        assert printed(mock_print) == [
            "Sales: 3 tables",
            "  - sales.Customers (2 columns)",
            "  - sales.Orders (4 columns)",
            "  - sales.Products (4 columns) [system-versioned]",
        ]

    def test_online_requires_connection_string(self):
        """Without a schema path the server config must be complete."""
        args = argparse.Namespace(schema_path=None, profile=None)

        with patch("builtins.print"):
            result = cmd_tables(args)

        assert result == 2  # ConfigError returns exit code 2

    def test_bad_schema_path_returns_error(self, tmp_path):
        args = argparse.Namespace(schema_path=tmp_path / "missing", profile=None)

        with patch("builtins.print") as mock_print:
            result = cmd_tables(args)

        assert result == 1
        assert "Schema path does not exist" in printed(mock_print)[0]


class TestCmdDescribe:
    """Test cmd_describe."""

    def test_describe_table(self):
        with patch("builtins.print") as mock_print:
            result = cmd_describe(offline_args(table="orders", schema="sales"))

        assert result == 0
        output = printed(mock_print)
        assert output[:3] == ["[sales].[Orders]", "  Customer orders.", "Columns:"]
        assert "  0: Id INT NOT NULL" in output
        assert "      Order identifier." in output
        assert "  2: Total DECIMAL(18, 2) NOT NULL [DEFAULT 0]" in output
        assert "  3: Notes NVARCHAR(MAX) NULL" in output
        assert "  PK_Orders (PK): Id" in output
        assert "  IX_Orders_CustomerId (nonclustered): CustomerId" in output
        assert "  FK_Orders_CustomerId: (CustomerId) -> sales.Customers (Id)" in output

    def test_describe_versioned_table(self):
        with patch("builtins.print") as mock_print:
            result = cmd_describe(offline_args(table="Products", schema="sales"))

        assert result == 0
        output = printed(mock_print)
        assert "  2: ValidFrom DATETIME2 NOT NULL [DEFAULT sysutcdatetime(), HIDDEN]" in output
        assert output[-1] == "System-versioned, history: History.ProductsHistory"

    def test_describe_missing_table(self):
        with patch("builtins.print") as mock_print:
            result = cmd_describe(offline_args(table="Invoices", schema=None))

        assert result == 1
        mock_print.assert_called_once()
        assert "Table 'dbo.Invoices' not found" in printed(mock_print)[0]


class TestCmdActivateVersioning:
    """Test cmd_activate_versioning."""

    def test_offline_prints_plan(self):
        args = offline_args(
            table="Orders",
            schema="sales",
            history_schema=None,
            history_table=None,
            dry_run=False,
        )

        with patch("builtins.print") as mock_print:
            result = cmd_activate_versioning(args)

        assert result == 0
        output = printed(mock_print)
        assert output[0] == "-- Dry run - no statements executed"
        assert output[1].startswith("CREATE TABLE [History].[OrdersHistory] (")
        assert output[2] == "GO"
        assert output[-1] == (
            "System versioning planned on sales.Orders with history table "
            "History.OrdersHistory (11 statements)"
        )

    def test_history_overrides(self):
        args = offline_args(
            table="Orders",
            schema="sales",
            history_schema="audit",
            history_table="OrdersLog",
            dry_run=True,
        )

        with patch("builtins.print") as mock_print:
            result = cmd_activate_versioning(args)

        assert result == 0
        assert "history table audit.OrdersLog" in printed(mock_print)[-1]

    def test_already_versioned_table_fails(self):
        args = offline_args(
            table="Products",
            schema="sales",
            history_schema=None,
            history_table=None,
            dry_run=False,
        )

        with patch("builtins.print") as mock_print:
            result = cmd_activate_versioning(args)

        assert result == 1
        assert printed(mock_print)[0].startswith("Activation error:")

    def test_online_executes_statements(self):
        client = make_mock_client(**build_db_state_from_database(make_database()))
        store = SqlServerSchemaStore(client, "Sales")
        args = argparse.Namespace(
            schema_path=None,
            profile=None,
            table="Orders",
            schema=None,
            history_schema=None,
            history_table=None,
            dry_run=False,
        )

        with patch("sqlsmo.cli._open_store", return_value=store) as mock_open:
            with patch("builtins.print") as mock_print:
                result = cmd_activate_versioning(args)

        assert result == 0
        assert mock_open.call_args.kwargs == {"dry_run": False}
        assert client.execute_many.call_count == 3
        assert printed(mock_print) == [
            "System versioning activated on dbo.Orders with history table "
            "History.OrdersHistory (11 statements)"
        ]
        client.close.assert_called_once()

    def test_online_dry_run(self):
        client = make_mock_client(**build_db_state_from_database(make_database()))
        store = SqlServerSchemaStore(client, "Sales", dry_run=True)
        args = argparse.Namespace(
            schema_path=None,
            profile=None,
            table="Orders",
            schema="dbo",
            history_schema=None,
            history_table=None,
            dry_run=True,
        )

        with patch("sqlsmo.cli._open_store", return_value=store):
            with patch("builtins.print") as mock_print:
                result = cmd_activate_versioning(args)

        assert result == 0
        client.execute_many.assert_not_called()
        assert printed(mock_print)[0] == "-- Dry run - no statements executed"


class TestCmdProbeProcedure:
    """Test cmd_probe_procedure."""

    def test_offline_shows_statement(self):
        with patch("builtins.print") as mock_print:
            result = cmd_probe_procedure(offline_args(name="GetOrders", schema="sales"))

        assert result == 0
        output = printed(mock_print)
        assert output[0] == "EXEC [sales].[GetOrders] @CustomerId = ?, @Since = ?, @Region = ?"
        assert "  @CustomerId = 1" in output
        assert "  @Region = 'A'" in output
        assert output[-1] == "Offline schema - procedure not executed"

    def test_missing_procedure(self):
        with patch("builtins.print") as mock_print:
            result = cmd_probe_procedure(offline_args(name="Missing", schema="sales"))

        assert result == 1
        assert printed(mock_print)[0].startswith("Probe error:")

    def test_online_prints_result_sets(self):
        procedure = StoredProcedure(
            name="CountOrders",
            parameters=[
                StoredProcedureParameter("CustomerId", DataType.of(ManagedTypeCode.INT))
            ],
        )
        store = MagicMock()
        store.__enter__.return_value = store
        store.database = Database(name="Sales", stored_procedures=[procedure])
        sql_result = SqlResult(
            procedure="dbo.CountOrders",
            result_sets=[ResultSet(columns=["CustomerId", "Orders"], rows=[(0, 4)])],
        )
        args = argparse.Namespace(schema_path=None, profile=None, name="CountOrders", schema=None)

        with patch("sqlsmo.cli._open_store", return_value=store):
            with patch("sqlsmo.cli.get_sql_results", return_value=sql_result) as mock_run:
                with patch("builtins.print") as mock_print:
                    result = cmd_probe_procedure(args)

        assert result == 0
        mock_run.assert_called_once_with(store.client, procedure)
        assert printed(mock_print)[-3:] == [
            "Result set 1: 1 rows",
            "  CustomerId | Orders",
            "  0 | 4",
        ]


class TestMain:
    def test_main_dispatches_tables(self):
        with patch("builtins.print") as mock_print:
            result = main(["tables", "--schema-path", str(FIXTURES_PATH)])

        assert result == 0
        assert printed(mock_print)[0] == "Sales: 3 tables"

    def test_main_describe_with_profile_option(self, tmp_path):
        (tmp_path / ".sqlsmo.cfg").write_text("[dev]\ndefault_schema = sales\n")

        with patch("builtins.print") as mock_print:
            result = main(
                ["describe", "Customers", "--schema-path", str(FIXTURES_PATH), "--profile", "dev"]
            )

        assert result == 0
        assert printed(mock_print)[0] == "[sales].[Customers]"
