"""Tests for connection strings, servers and database factories."""

from unittest.mock import MagicMock, patch
from urllib.parse import unquote_plus

import pytest

from sqlsmo.config import Config
from sqlsmo.exceptions import ConfigError, InvalidArgumentError, NotFoundError, StoreError
from sqlsmo.sqlserver.connection import Server, create_database, create_server, open_store
from sqlsmo.sqlserver.store import SqlServerSchemaStore
from sqlsmo.sqlserver.urls import (
    database_name_from_connection_string,
    normalize_connection_string,
)
from tests.helpers import (
    build_db_state_from_database,
    make_database,
    make_mock_client,
    make_test_config,
)


def odbc_part(url: str) -> str:
    return unquote_plus(url.split("odbc_connect=", 1)[1])


class TestNormalizeConnectionString:
    """Connection strings become SQLAlchemy URLs."""

    def test_ado_string_with_sql_login(self):
        url = normalize_connection_string(
            "Data Source=db,1433;Initial Catalog=Sales;User ID=app;Password=s3cret;"
        )
        assert odbc_part(url) == (
            "DRIVER={ODBC Driver 18 for SQL Server};SERVER=db,1433;DATABASE=Sales;"
            "UID=app;PWD=s3cret;Encrypt=yes;TrustServerCertificate=yes"
        )

    def test_integrated_security(self):
        url = normalize_connection_string(
            "Server=db;Database=Sales;Integrated Security=SSPI;User Id=ignored;"
        )
        odbc = odbc_part(url)
        assert "Trusted_Connection=yes" in odbc
        assert "UID=" not in odbc

    def test_encrypt_options_are_kept(self):
        url = normalize_connection_string(
            "Server=db;Encrypt=no;TrustServerCertificate=no;"
        )
        assert odbc_part(url).endswith("Encrypt=no;TrustServerCertificate=no")

    def test_explicit_driver_wins(self):
        url = normalize_connection_string(
            "Driver={ODBC Driver 17 for SQL Server};Server=db;", "ODBC Driver 18 for SQL Server"
        )
        assert odbc_part(url).startswith("DRIVER={ODBC Driver 17 for SQL Server};")

    def test_odbc_driver_argument(self):
        url = normalize_connection_string("Server=db;", "FreeTDS")
        assert odbc_part(url).startswith("DRIVER={FreeTDS};")

    def test_jdbc_string(self):
        url = normalize_connection_string(
            "jdbc:sqlserver://db.example.com:1433;databaseName=Sales;user=app;password=pw"
        )
        assert odbc_part(url) == (
            "DRIVER={ODBC Driver 18 for SQL Server};SERVER=db.example.com,1433;"
            "DATABASE=Sales;UID=app;PWD=pw;Encrypt=yes;TrustServerCertificate=yes"
        )

    def test_sqlalchemy_url_is_unchanged(self):
        url = "mssql+pyodbc://app:pw@dsn_name"
        assert normalize_connection_string(url) == url

    @pytest.mark.parametrize("value", ["", "   "])
    def test_empty_raises(self, value):
        with pytest.raises(ConfigError, match="empty"):
            normalize_connection_string(value)

    def test_missing_server_raises(self):
        with pytest.raises(ConfigError, match="does not name a server"):
            normalize_connection_string("Database=Sales;")

    def test_malformed_segment_raises(self):
        with pytest.raises(ConfigError, match="Malformed connection string segment"):
            normalize_connection_string("Server=db;garbage;")


class TestDatabaseNameFromConnectionString:
    @pytest.mark.parametrize(
        "connection_string, expected",
        [
            ("Server=db;Database=Sales;", "Sales"),
            ("Server=db;Initial Catalog=Sales;", "Sales"),
            ("jdbc:sqlserver://db:1433;databaseName=Sales", "Sales"),
            ("mssql+pyodbc://app:pw@db/Sales?driver=ODBC+Driver+18+for+SQL+Server", "Sales"),
            ("Server=db;", None),
            ("", None),
        ],
    )
    def test_database_name(self, connection_string, expected):
        assert database_name_from_connection_string(connection_string) == expected

    def test_odbc_connect_url(self):
        url = normalize_connection_string("Server=db;Database=Sales;")
        assert database_name_from_connection_string(url) == "Sales"


class TestServer:
    """Test Server against a mocked client."""

    def test_databases(self):
        server = Server(make_mock_client(databases=["master", "Sales"]))
        assert server.databases == ["master", "Sales"]

    def test_get_database_ignores_case(self):
        client = make_mock_client(**build_db_state_from_database(make_database()))

        database = Server(client).get_database("sales")

        assert database.name == "Sales"
        assert database.table_names() == ["dbo.Orders", "dbo.Customers"]

    def test_get_missing_database_raises(self):
        with pytest.raises(NotFoundError, match="Database 'Inventory' does not exist"):
            Server(make_mock_client()).get_database("Inventory")

    def test_blank_database_name_raises(self):
        with pytest.raises(InvalidArgumentError):
            Server(make_mock_client()).get_database(" ")

    def test_open_store(self):
        client = make_mock_client(**build_db_state_from_database(make_database()))

        store = Server(client).open_store("Sales", dry_run=True)

        assert isinstance(store, SqlServerSchemaStore)
        assert store.dry_run
        assert store.client is client

    def test_borrowed_client_is_not_closed(self):
        client = make_mock_client()
        with Server(client):
            pass
        client.close.assert_not_called()

    def test_owned_client_is_closed(self):
        client = make_mock_client()
        with Server(client, owns_client=True):
            pass
        client.close.assert_called_once()


class TestFactories:
    def test_create_server_from_client_borrows_it(self):
        client = make_mock_client()
        server = create_server(client)
        assert server.client is client
        server.close()
        client.close.assert_not_called()

    def test_create_server_from_string_owns_client(self):
        with patch("sqlsmo.sqlserver.connection.SqlServerClient") as mock_client_cls:
            server = create_server("Server=db;Database=Sales;")

        mock_client_cls.assert_called_once_with(
            "Server=db;Database=Sales;", odbc_driver="ODBC Driver 18 for SQL Server"
        )
        mock_client_cls.return_value.connect.assert_called_once()
        server.close()
        mock_client_cls.return_value.close.assert_called_once()

    def test_create_server_blank_string_raises(self):
        with pytest.raises(InvalidArgumentError):
            create_server("  ")

    def test_create_database_uses_connection_catalog(self):
        client = make_mock_client(**build_db_state_from_database(make_database()))
        client.database_name = "Sales"

        database = create_database(client)

        assert database.name == "Sales"

    def test_create_database_explicit_name(self):
        client = make_mock_client(databases=["master", "Sales", "Inventory"])
        client.database_name = "Sales"

        assert create_database(client, "Inventory").name == "Inventory"

    def test_create_database_without_name_raises(self):
        client = make_mock_client()
        client.database_name = None

        with pytest.raises(InvalidArgumentError, match="No database name"):
            create_database(client)


class TestOpenStore:
    def test_open_store_from_config(self):
        client = make_mock_client(**build_db_state_from_database(make_database()))
        with patch("sqlsmo.sqlserver.connection.SqlServerClient", return_value=client):
            store = open_store(make_test_config(), dry_run=True)

        client.connect.assert_called_once()
        assert store.database.name == "Sales"
        store.close()
        client.close.assert_called_once()

    def test_open_store_requires_connection_string(self):
        with pytest.raises(ConfigError, match="connection_string"):
            open_store(Config())

    def test_open_store_without_database_raises(self):
        client = MagicMock()
        client.database_name = None
        with patch("sqlsmo.sqlserver.connection.SqlServerClient", return_value=client):
            with pytest.raises(InvalidArgumentError, match="No database configured"):
                open_store(Config(connection_string="Server=db;"))
        client.close.assert_called_once()

    def test_open_store_closes_client_when_database_missing(self):
        client = make_mock_client(databases=["master"])
        with patch("sqlsmo.sqlserver.connection.SqlServerClient", return_value=client):
            with pytest.raises(NotFoundError, match="Database 'Sales' does not exist"):
                open_store(make_test_config())
        client.close.assert_called_once()

    def test_open_store_closes_client_on_store_error(self):
        client = make_mock_client(**build_db_state_from_database(make_database()))
        with patch("sqlsmo.sqlserver.connection.SqlServerClient", return_value=client):
            with patch.object(
                Server, "_resolve_name", side_effect=StoreError("Query failed")
            ):
                with pytest.raises(StoreError, match="Query failed"):
                    open_store(make_test_config())
        client.close.assert_called_once()
