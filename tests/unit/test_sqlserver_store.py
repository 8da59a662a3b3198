"""Tests for the SQL Server backed schema store."""

import pytest

from sqlsmo.exceptions import NotFoundError
from sqlsmo.schema.datatypes import DataType
from sqlsmo.schema.editor import SchemaEditor
from sqlsmo.sqlserver.store import SqlServerSchemaStore
from tests.helpers import (
    build_db_state_from_database,
    make_database,
    make_mock_client,
    make_orders_table,
    make_test_config,
)


@pytest.fixture
def client():
    return make_mock_client(**build_db_state_from_database(make_database()))


class TestSqlServerSchemaStore:
    """Test SqlServerSchemaStore with a mocked client."""

    def test_introspects_on_open(self, client):
        store = SqlServerSchemaStore(client, "Sales")

        assert store.database.name == "Sales"
        assert store.has_table("dbo", "Orders")

    def test_uses_given_database(self, client):
        database = make_database(make_orders_table(), name="Offline")

        store = SqlServerSchemaStore(client, "Sales", database=database)

        assert store.database is database
        client.fetchall.assert_not_called()

    def test_alter_executes_statements(self, client):
        store = SqlServerSchemaStore(client, "Sales")
        orders = store.database.get_table("Orders")
        SchemaEditor(store).add_column(orders, "Status", DataType.nvarchar(20))

        client.execute_many.assert_called_once_with(
            ["ALTER TABLE [dbo].[Orders] ADD [Status] NVARCHAR(20) NULL;"]
        )
        assert store.statements == ["ALTER TABLE [dbo].[Orders] ADD [Status] NVARCHAR(20) NULL;"]

    def test_dry_run_records_without_executing(self, client):
        store = SqlServerSchemaStore(client, "Sales", dry_run=True)
        orders = store.database.get_table("Orders")

        SchemaEditor(store).add_column(orders, "Status", DataType.nvarchar(20))

        client.execute_many.assert_not_called()
        assert len(store.statements) == 1

    def test_refresh_reads_catalog(self, client):
        store = SqlServerSchemaStore(client, "Sales")
        orders = store.database.get_table("Orders")
        orders.get_column("Notes").is_hidden = True
        calls_before = client.fetchall.call_count

        store.refresh(orders)

        assert client.fetchall.call_count > calls_before
        assert not orders.get_column("Notes").is_hidden
        assert orders.parent is store.database

    def test_refresh_picks_up_server_side_changes(self, client):
        store = SqlServerSchemaStore(client, "Sales")
        orders = store.database.get_table("Orders")
        changed = make_orders_table()
        changed.get_column("Notes").is_hidden = True
        state = build_db_state_from_database(make_database(changed))
        client.fetchall.side_effect = make_mock_client(**state).fetchall.side_effect

        store.refresh(orders)

        assert orders.get_column("Notes").is_hidden
        assert store.pending_changes(orders) == []

    def test_refresh_missing_table_raises(self, client):
        store = SqlServerSchemaStore(client, "Sales")
        orders = store.database.get_table("Orders")
        client.fetchall.side_effect = make_mock_client().fetchall.side_effect

        with pytest.raises(NotFoundError, match="dbo.Orders"):
            store.refresh(orders)

    def test_dry_run_refresh_uses_snapshot(self, client):
        store = SqlServerSchemaStore(client, "Sales", dry_run=True)
        orders = store.database.get_table("Orders")
        calls_before = client.fetchall.call_count

        store.refresh(orders)

        assert client.fetchall.call_count == calls_before

    def test_dry_run_activation_plans_every_statement(self, client):
        store = SqlServerSchemaStore(client, "Sales", dry_run=True)
        orders = store.database.get_table("Orders")

        SchemaEditor(store, make_test_config()).activate_system_versioning(orders)

        client.execute_many.assert_not_called()
        assert len(store.statements) == 11
        assert store.statements[-1].endswith(
            "(SYSTEM_VERSIONING = ON (HISTORY_TABLE = [History].[OrdersHistory]));"
        )

    def test_close_closes_client(self, client):
        with SqlServerSchemaStore(client, "Sales"):
            pass
        client.close.assert_called_once()
