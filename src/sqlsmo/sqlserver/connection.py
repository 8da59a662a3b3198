"""Open servers, databases and stores from a connection string or client."""

import logging
from typing import Any, Optional, Union

from sqlsmo.config import Config
from sqlsmo.constants import DEFAULT_ODBC_DRIVER
from sqlsmo.exceptions import InvalidArgumentError, NotFoundError
from sqlsmo.schema.models import Database, require_name
from sqlsmo.sqlserver.client import SqlServerClient
from sqlsmo.sqlserver.introspect import SchemaIntrospector
from sqlsmo.sqlserver.store import SqlServerSchemaStore

logger = logging.getLogger(__name__)

Connection = Union[str, SqlServerClient]


def _client_for(connection: Connection, odbc_driver: str) -> tuple[SqlServerClient, bool]:
    """Return a connected client and whether the caller owns it."""
    if not isinstance(connection, str):
        return connection, False
    require_name(connection, "Connection string")
    client = SqlServerClient(connection, odbc_driver=odbc_driver)
    client.connect()
    return client, True


class Server:
    """A SQL Server instance reached through one client."""

    def __init__(self, client: SqlServerClient, owns_client: bool = False) -> None:
        self._client = client
        self._owns_client = owns_client

    @property
    def client(self) -> SqlServerClient:
        return self._client

    @property
    def databases(self) -> list[str]:
        rows = self._client.fetchall("SELECT name FROM sys.databases ORDER BY name")
        return [row["name"] for row in rows]

    def _resolve_name(self, name: str) -> str:
        require_name(name, "Database name")
        for candidate in self.databases:
            if candidate.casefold() == name.casefold():
                return candidate
        raise NotFoundError(f"Database '{name}' does not exist on the server.")

    def get_database(self, name: str) -> Database:
        """Introspect the database called ``name``, ignoring case.

        Raises:
            NotFoundError: If the server has no such database.
        """
        return SchemaIntrospector(self._client, self._resolve_name(name)).introspect_database()

    def open_store(self, name: str, dry_run: bool = False) -> SqlServerSchemaStore:
        return SqlServerSchemaStore(self._client, self._resolve_name(name), dry_run=dry_run)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "Server":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()


def create_server(
    connection: Connection, odbc_driver: str = DEFAULT_ODBC_DRIVER
) -> Server:
    """Server for a connection string or an existing client.

    A server built from a connection string owns its client and closes it.
    """
    client, owned = _client_for(connection, odbc_driver)
    return Server(client, owns_client=owned)


def create_database(
    connection: Connection,
    database: Optional[str] = None,
    odbc_driver: str = DEFAULT_ODBC_DRIVER,
) -> Database:
    """Introspect one database.

    The name defaults to the initial catalog of the connection string.

    Raises:
        InvalidArgumentError: If no database name can be determined.
        NotFoundError: If the database does not exist.
    """
    with create_server(connection, odbc_driver) as server:
        name = database or server.client.database_name
        if not name:
            raise InvalidArgumentError(
                "No database name given and none found in the connection string"
            )
        return server.get_database(name)


def open_store(config: Config, dry_run: bool = False) -> SqlServerSchemaStore:
    """SQL Server store for the database named by ``config``.

    The store owns the client; close both with ``store.close()``.
    """
    config.validate_for_db_ops()
    client = SqlServerClient(config.connection_string, odbc_driver=config.odbc_driver)
    client.connect()
    name = config.database or client.database_name
    if not name:
        client.close()
        raise InvalidArgumentError(
            "No database configured (use --profile, SQLSMO_DATABASE or the connection string)"
        )
    logger.info(f"Opening database {name}")
    try:
        return Server(client).open_store(name, dry_run=dry_run)
    except Exception:
        client.close()
        raise
