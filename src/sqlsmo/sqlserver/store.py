"""Schema store backed by a live SQL Server database."""

import logging
from typing import Optional

from sqlsmo.exceptions import NotFoundError
from sqlsmo.schema.models import Database, Table
from sqlsmo.sqlserver.client import SqlServerClient
from sqlsmo.sqlserver.introspect import SchemaIntrospector
from sqlsmo.store.base import BaseSchemaStore

logger = logging.getLogger(__name__)


class SqlServerSchemaStore(BaseSchemaStore):
    """Store that introspects and alters one database on a server.

    With ``dry_run`` statements are rendered and recorded in ``statements``
    but never sent to the server.
    """

    def __init__(
        self,
        client: SqlServerClient,
        database_name: str,
        dry_run: bool = False,
        database: Optional[Database] = None,
    ) -> None:
        self._client = client
        self._introspector = SchemaIntrospector(client, database_name)
        self._dry_run = dry_run
        super().__init__(database or self._introspector.introspect_database())

    @property
    def client(self) -> SqlServerClient:
        return self._client

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def refresh(self, table: Table) -> None:
        """Re-read ``table`` from the catalog, then reset it to that state."""
        if not self._dry_run:
            fresh = self._introspector.introspect_table(table.schema, table.name)
            if fresh is None:
                raise NotFoundError(
                    f"Table '{table.full_name}' does not exist in the database."
                )
            fresh.parent = self.database
            self._commit_snapshot(fresh)
        super().refresh(table)

    def _execute(self, statements: list[str]) -> None:
        if self._dry_run:
            for sql in statements:
                logger.info(f"[DRY RUN] {sql}")
            return
        self._client.execute_many(statements)

    def close(self) -> None:
        self._client.close()
