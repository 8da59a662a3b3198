"""Persisting schema helpers built on a schema store."""

import logging
from typing import Optional

from sqlsmo.config import Config
from sqlsmo.constants import (
    HISTORY_INDEX_DESCRIPTION,
    HISTORY_INDEX_NAME,
    HISTORY_TABLE_DESCRIPTION,
    HISTORY_TABLE_SUFFIX,
    HISTORY_VALID_FROM_DESCRIPTION,
    HISTORY_VALID_TO_DESCRIPTION,
    MS_DESCRIPTION,
    PERIOD_COLUMN_SCALE,
    VALID_FROM_COLUMN,
    VALID_FROM_DEFAULT,
    VALID_FROM_DESCRIPTION,
    VALID_TO_COLUMN,
    VALID_TO_DEFAULT,
    VALID_TO_DESCRIPTION,
)
from sqlsmo.exceptions import DuplicateObjectError, NotFoundError
from sqlsmo.schema.datatypes import DataType
from sqlsmo.schema.models import (
    Column,
    ExtendedProperty,
    ForeignKey,
    ForeignKeyColumn,
    Table,
    require_name,
)
from sqlsmo.store.base import SchemaStore

logger = logging.getLogger(__name__)


class SchemaEditor:
    """Stage changes on tables and persist them through a store."""

    def __init__(self, store: SchemaStore, config: Optional[Config] = None) -> None:
        self._store = store
        self._config = config or Config()

    @property
    def store(self) -> SchemaStore:
        return self._store

    def add_column(
        self,
        table: Table,
        name: str,
        data_type: DataType,
        nullable: bool = True,
        description: Optional[str] = None,
        default_value: Optional[str] = None,
        persist: bool = True,
    ) -> Column:
        """Add a column to ``table``.

        With ``persist`` the table is refreshed first and altered afterwards,
        otherwise the column is only staged.

        Raises:
            InvalidArgumentError: If ``name`` is blank.
            ConflictError: If the table already has a column named ``name``.
        """
        require_name(name, "Column name")
        if persist:
            self._store.refresh(table)

        column = table.add_column(Column(name=name, data_type=data_type, nullable=nullable))
        if default_value is not None:
            column.set_default_constraint(default_value)
        if description and description.strip():
            column.add_description(description)

        if persist:
            self._store.alter(table)
            logger.info(f"Added column {name} to {table.full_name}")
        return column

    def add_foreign_key(
        self,
        table: Table,
        column_name: str,
        referenced_column: str,
        referenced_table: str,
        referenced_table_schema: Optional[str] = None,
        foreign_key_name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> ForeignKey:
        """Add a single-column foreign key and persist it.

        The default name is ``FK_<schema>_<table>_<column>``.

        Raises:
            InvalidArgumentError: If a required name is blank.
            NotFoundError: If ``column_name`` is not a column of ``table``.
            DuplicateObjectError: If a foreign key with the name exists.
        """
        require_name(column_name, "Column name")
        require_name(referenced_column, "Referenced column name")
        require_name(referenced_table, "Referenced table name")
        ref_schema = referenced_table_schema or self._config.default_schema
        require_name(ref_schema, "Referenced table schema")

        if table.get_column(column_name) is None:
            raise NotFoundError(
                f"Column '{column_name}' not found in table '{table.full_name}'."
            )

        fk_name = (
            foreign_key_name
            if foreign_key_name and foreign_key_name.strip()
            else f"FK_{table.schema}_{table.name}_{column_name}"
        )
        if table.has_foreign_key(fk_name):
            raise DuplicateObjectError(
                f"A foreign key named '{fk_name}' already exists on table '{table.full_name}'."
            )

        fk = ForeignKey(
            name=fk_name,
            columns=[ForeignKeyColumn(column_name, referenced_column)],
            referenced_table=referenced_table,
            referenced_table_schema=ref_schema,
        )
        if description and description.strip():
            fk.add_description(description)

        table.foreign_keys.append(fk)
        self._store.alter(table)
        logger.info(
            f"Added foreign key {fk_name} on {table.full_name} -> "
            f"{ref_schema}.{referenced_table}"
        )
        return fk

    def activate_system_versioning(
        self,
        table: Table,
        history_schema: Optional[str] = None,
        history_table_name: Optional[str] = None,
    ) -> Table:
        """Turn ``table`` into a system-versioned temporal table.

        Adds the ValidFrom/ValidTo period columns, creates the history table
        and links both through ``PERIOD FOR SYSTEM_TIME``. Nothing is undone
        when a step fails.

        Returns:
            The created history table.

        Raises:
            InvalidArgumentError: If ``history_schema`` resolves to a blank name.
            DuplicateObjectError: If the history table already exists. Raised
                before the table is modified.
        """
        if history_schema is None:
            history_schema = self._config.history_schema
        require_name(history_schema, "History schema")
        if not history_table_name or not history_table_name.strip():
            history_table_name = f"{table.name}{HISTORY_TABLE_SUFFIX}"

        logger.info(f"Activating system versioning on {table.full_name}")
        self._store.refresh(table)

        if self._store.database.get_table(history_table_name, history_schema) is not None:
            raise DuplicateObjectError(
                f"A table named '{history_schema}.{history_table_name}' already exists."
            )

        logger.info(f"Staging period columns {VALID_FROM_COLUMN}, {VALID_TO_COLUMN}")
        self.add_column(
            table,
            VALID_FROM_COLUMN,
            DataType.datetime2(PERIOD_COLUMN_SCALE),
            nullable=False,
            description=VALID_FROM_DESCRIPTION,
            default_value=VALID_FROM_DEFAULT,
            persist=False,
        )
        self.add_column(
            table,
            VALID_TO_COLUMN,
            DataType.datetime2(PERIOD_COLUMN_SCALE),
            nullable=False,
            description=VALID_TO_DESCRIPTION,
            default_value=VALID_TO_DEFAULT,
            persist=False,
        )

        logger.info(f"Creating history table {history_schema}.{history_table_name}")
        history = self._build_history_table(table, history_schema, history_table_name)
        self._store.create(history)
        history.add_nonclustered_index(
            [VALID_FROM_COLUMN, VALID_TO_COLUMN],
            index_name=HISTORY_INDEX_NAME.format(
                schema=history_schema, table=history_table_name
            ),
            index_comment=HISTORY_INDEX_DESCRIPTION,
        )
        self._store.alter(history)

        logger.info(f"Enabling SYSTEM_VERSIONING on {table.full_name}")
        table.add_period_for_system_time(VALID_FROM_COLUMN, VALID_TO_COLUMN, system_time=True)
        table.get_column(VALID_FROM_COLUMN).is_hidden = True
        table.get_column(VALID_TO_COLUMN).is_hidden = True
        table.history_table_schema = history_schema
        table.history_table_name = history_table_name
        table.is_system_versioned = True

        self._store.alter(table)
        self._store.refresh(table)
        logger.info(f"System versioning active on {table.full_name}")
        return history

    def _build_history_table(
        self, table: Table, history_schema: str, history_table_name: str
    ) -> Table:
        """History table shape: the source columns plus plain period columns."""
        history = Table(name=history_table_name, schema=history_schema)
        history.add_description(HISTORY_TABLE_DESCRIPTION.format(table=table.name))

        period_columns = {VALID_FROM_COLUMN.casefold(), VALID_TO_COLUMN.casefold()}
        for source in table.columns:
            if source.name.casefold() in period_columns:
                continue
            column = Column(
                name=source.name,
                data_type=source.data_type,
                nullable=source.nullable,
            )
            if source.description is not None:
                column.extended_properties.append(
                    ExtendedProperty(MS_DESCRIPTION, source.description)
                )
            history.add_column(column)

        for name, description in (
            (VALID_FROM_COLUMN, HISTORY_VALID_FROM_DESCRIPTION),
            (VALID_TO_COLUMN, HISTORY_VALID_TO_DESCRIPTION),
        ):
            column = history.add_column(
                Column(
                    name=name,
                    data_type=DataType.datetime2(PERIOD_COLUMN_SCALE),
                    nullable=False,
                )
            )
            column.add_description(description)

        return history
