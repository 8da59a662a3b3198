"""SQLAlchemy engine wrapper for running SQL against SQL Server."""

import logging
from typing import Any, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from sqlsmo.constants import DEFAULT_ODBC_DRIVER
from sqlsmo.exceptions import StoreError
from sqlsmo.sqlserver.urls import (
    database_name_from_connection_string,
    normalize_connection_string,
)

logger = logging.getLogger(__name__)


class SqlServerClient:
    """Thin wrapper around a SQLAlchemy engine for simple SQL execution.

    Accepts SQLAlchemy URLs, ``jdbc:sqlserver://`` strings and ADO.NET/ODBC
    ``key=value;`` strings. The latter two go through pyodbc with
    ``odbc_driver``.
    """

    def __init__(
        self,
        connection_string: str,
        odbc_driver: str = DEFAULT_ODBC_DRIVER,
        engine: Optional[Engine] = None,
    ) -> None:
        self._connection_string = connection_string
        self._odbc_driver = odbc_driver
        self._engine: Engine | None = engine

    @property
    def database_name(self) -> Optional[str]:
        """Initial catalog named by the connection string, if any."""
        return database_name_from_connection_string(self._connection_string)

    def connect(self) -> None:
        """Create the engine. Must be called before execute/fetchall."""
        if self._engine is not None:
            raise RuntimeError("Already connected. Call close() before reconnecting.")

        url = normalize_connection_string(self._connection_string, self._odbc_driver)
        logger.debug(f"Creating engine for database {self.database_name or '(default)'}")
        self._engine = create_engine(url, pool_pre_ping=True)

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Not connected. Call connect() first.")
        return self._engine

    def execute(self, sql_statement: str, params: Optional[dict[str, Any]] = None) -> None:
        self.execute_many([sql_statement], params)

    def execute_many(
        self, sql_statements: list[str], params: Optional[dict[str, Any]] = None
    ) -> None:
        """Run statements in order inside one transaction.

        Without ``params`` the text goes to the driver as is, so literals
        containing ``:name`` are not taken for bind parameters.
        """
        try:
            with self.engine.begin() as conn:
                for sql in sql_statements:
                    if params:
                        conn.execute(text(sql), params)
                    else:
                        conn.exec_driver_sql(sql)
        except SQLAlchemyError as e:
            raise StoreError(f"Statement failed: {e}") from e

    def fetchall(
        self, sql_statement: str, params: Optional[dict[str, Any]] = None
    ) -> list[dict[str, Any]]:
        try:
            with self.engine.connect() as conn:
                result = conn.execute(text(sql_statement), params or {})
                return [dict(row) for row in result.mappings()]
        except SQLAlchemyError as e:
            raise StoreError(f"Query failed: {e}") from e

    @property
    def dbapi_error(self) -> type:
        """Base exception class of the underlying DB-API driver (pyodbc)."""
        return self.engine.dialect.loaded_dbapi.Error

    def raw_connection(self) -> Any:
        """DB-API connection from the pool, for multi result set cursors."""
        return self.engine.raw_connection()

    def close(self) -> None:
        if self._engine is not None:
            try:
                self._engine.dispose()
            finally:
                self._engine = None

    def __enter__(self) -> "SqlServerClient":
        if self._engine is None:
            self.connect()
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()
