"""Two-phase schema store: stage changes in memory, then persist them."""

from __future__ import annotations

import copy
import logging
from typing import Any, Optional, Protocol, runtime_checkable

from sqlsmo.exceptions import DuplicateObjectError, NotFoundError
from sqlsmo.schema.codegen import DdlGenerator
from sqlsmo.schema.diff import SchemaDiffer
from sqlsmo.schema.models import Database, Table
from sqlsmo.types import SchemaChange

__all__ = ["SchemaStore", "BaseSchemaStore"]

logger = logging.getLogger(__name__)


@runtime_checkable
class SchemaStore(Protocol):
    """
    Persists staged schema objects.

    Semantics:
    - Callers mutate objects from ``database`` in memory (staging).
    - ``alter`` persists the staged difference of an existing table.
    - ``create`` persists a table that does not exist yet.
    - ``refresh`` throws staged changes away and reloads committed state.
    """

    @property
    def database(self) -> Database: ...

    def refresh(self, table: Table) -> None: ...

    def alter(self, table: Table) -> None: ...

    def create(self, table: Table) -> None: ...


def _key(schema: str, name: str) -> tuple[str, str]:
    return (schema.casefold(), name.casefold())


class BaseSchemaStore:
    """Snapshot bookkeeping shared by the concrete stores.

    Each committed table is kept as a detached copy. ``alter`` diffs that copy
    against the staged table and hands the rendered statements to ``_execute``.
    """

    def __init__(
        self,
        database: Database,
        differ: Optional[SchemaDiffer] = None,
        generator: Optional[DdlGenerator] = None,
    ) -> None:
        self._database = database
        self._differ = differ or SchemaDiffer()
        self._generator = generator or DdlGenerator()
        self._snapshots: dict[tuple[str, str], Table] = {}
        self.statements: list[str] = []
        for table in database.tables:
            table.parent = database
            self._commit_snapshot(table)

    @property
    def database(self) -> Database:
        return self._database

    def has_table(self, schema: str, name: str) -> bool:
        return _key(schema, name) in self._snapshots

    def pending_changes(self, table: Table) -> list[SchemaChange]:
        """Changes ``alter`` would apply to ``table``, without applying them."""
        return self._differ.diff_table(self._committed(table), table)

    def refresh(self, table: Table) -> None:
        committed = self._committed(table)
        table.restore_from(self._snapshot(committed))
        logger.debug(f"Refreshed {table.full_name}")

    def alter(self, table: Table) -> None:
        changes = self.pending_changes(table)
        if not changes:
            logger.debug(f"No changes to persist for {table.full_name}")
            return

        statements = self._generator.generate(changes)
        self._apply(statements)
        self._commit_snapshot(table)
        logger.info(f"Altered {table.full_name} ({len(statements)} statement(s))")

    def create(self, table: Table) -> None:
        if self.has_table(table.schema, table.name):
            raise DuplicateObjectError(
                f"A table named '{table.full_name}' already exists in the database."
            )

        statements = self._generator.generate(self._differ.diff_new_table(table))
        self._apply(statements)
        self._database.add_table(table)
        self._commit_snapshot(table)
        logger.info(f"Created {table.full_name}")

    def _committed(self, table: Table) -> Table:
        committed = self._snapshots.get(_key(table.schema, table.name))
        if committed is None:
            raise NotFoundError(
                f"Table '{table.full_name}' does not exist in the database."
            )
        return committed

    def _commit_snapshot(self, table: Table) -> None:
        self._snapshots[_key(table.schema, table.name)] = self._snapshot(table)

    def _snapshot(self, table: Table) -> Table:
        """Deep copy of ``table`` that shares, rather than copies, its parent."""
        return copy.deepcopy(table, {id(table.parent): table.parent})

    def _apply(self, statements: list[str]) -> None:
        for sql in statements:
            logger.debug(sql)
        self._execute(statements)
        self.statements.extend(statements)

    def _execute(self, statements: list[str]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> "BaseSchemaStore":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.close()
