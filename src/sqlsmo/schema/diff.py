"""Compare a committed table snapshot with its staged state."""

from typing import Optional

from sqlsmo.schema.models import Column, DescribedMixin, Table
from sqlsmo.types import ChangeType, SchemaChange

_CHANGE_ORDER = [
    ChangeType.CREATE_TABLE,
    ChangeType.ADD_COLUMN,
    ChangeType.ADD_PERIOD,
    ChangeType.ADD_DEFAULT_CONSTRAINT,
    ChangeType.ALTER_COLUMN_HIDDEN,
    ChangeType.ADD_INDEX,
    ChangeType.ADD_FOREIGN_KEY,
    ChangeType.SET_EXTENDED_PROPERTY,
    ChangeType.SET_SYSTEM_VERSIONING,
    ChangeType.DROP_COLUMN,
    ChangeType.ALTER_COLUMN_TYPE,
    ChangeType.ALTER_COLUMN_NULLABILITY,
    ChangeType.DROP_INDEX,
    ChangeType.DROP_FOREIGN_KEY,
]


def _key(name: str) -> str:
    return name.casefold()


class SchemaDiffer:
    """Compare two states of a table and generate list of changes."""

    def diff_table(self, source: Table, target: Table) -> list[SchemaChange]:
        """Compare source (committed) to target (staged) and return changes."""
        changes: list[SchemaChange] = []

        changes.extend(self._diff_columns(source, target))
        changes.extend(self._diff_indexes(source, target))
        changes.extend(self._diff_foreign_keys(source, target))
        changes.extend(self._diff_descriptions(source, target))
        changes.extend(self._diff_versioning(source, target))

        return self._order_changes(changes)

    def diff_new_table(self, table: Table) -> list[SchemaChange]:
        """Changes that bring a table which does not exist yet into being."""
        changes = [self._change(ChangeType.CREATE_TABLE, table, table=table)]

        for index in table.indexes:
            changes.append(self._change(ChangeType.ADD_INDEX, table, index=index))
        for fk in table.foreign_keys:
            changes.append(self._change(ChangeType.ADD_FOREIGN_KEY, table, foreign_key=fk))

        empty = Table(name=table.name, schema=table.schema)
        changes.extend(self._diff_descriptions(empty, table))
        return self._order_changes(changes)

    def _change(self, change_type: ChangeType, owner: Table, **details) -> SchemaChange:
        return SchemaChange(
            change_type=change_type,
            table_name=owner.name,
            schema_name=owner.schema,
            details=details,
        )

    def _unsupported(
        self, change_type: ChangeType, owner: Table, message: str, **details
    ) -> SchemaChange:
        change = self._change(change_type, owner, **details)
        change.is_unsupported = True
        change.error_message = message
        return change

    def _diff_columns(self, source: Table, target: Table) -> list[SchemaChange]:
        """Compare columns between tables."""
        changes: list[SchemaChange] = []

        source_cols = {_key(c.name): c for c in source.columns}
        target_cols = {_key(c.name): c for c in target.columns}

        new_period_columns: set[str] = set()
        if target.period is not None and source.period is None:
            period_names = [_key(n) for n in target.period.column_names]
            added = [target_cols[n] for n in period_names if n not in source_cols]
            new_period_columns = {_key(c.name) for c in added}
            changes.append(
                self._change(
                    ChangeType.ADD_PERIOD,
                    target,
                    period=target.period,
                    columns=added,
                )
            )

        for col in target.columns:
            key = _key(col.name)
            if key in source_cols or key in new_period_columns:
                continue
            changes.append(self._change(ChangeType.ADD_COLUMN, target, column=col))

        for key, col in source_cols.items():
            if key not in target_cols:
                changes.append(
                    self._unsupported(
                        ChangeType.DROP_COLUMN,
                        target,
                        f"Dropping column '{col.name}' is not supported.",
                        column_name=col.name,
                    )
                )

        for key in source_cols.keys() & target_cols.keys():
            changes.extend(self._diff_column(target, source_cols[key], target_cols[key]))

        return changes

    def _diff_column(
        self, table: Table, source: Column, target: Column
    ) -> list[SchemaChange]:
        """Compare two columns and return changes."""
        changes: list[SchemaChange] = []

        if source.data_type != target.data_type:
            changes.append(
                self._unsupported(
                    ChangeType.ALTER_COLUMN_TYPE,
                    table,
                    f"Changing the type of column '{target.name}' is not supported.",
                    column_name=target.name,
                    from_type=source.data_type,
                    to_type=target.data_type,
                )
            )

        if source.nullable != target.nullable:
            changes.append(
                self._unsupported(
                    ChangeType.ALTER_COLUMN_NULLABILITY,
                    table,
                    f"Changing the nullability of column '{target.name}' is not supported.",
                    column_name=target.name,
                )
            )

        if source.default_constraint is None and target.default_constraint is not None:
            changes.append(
                self._change(
                    ChangeType.ADD_DEFAULT_CONSTRAINT,
                    table,
                    column_name=target.name,
                    constraint=target.default_constraint,
                )
            )

        if source.is_hidden != target.is_hidden:
            changes.append(
                self._change(
                    ChangeType.ALTER_COLUMN_HIDDEN,
                    table,
                    column_name=target.name,
                    hidden=target.is_hidden,
                )
            )

        return changes

    def _diff_indexes(self, source: Table, target: Table) -> list[SchemaChange]:
        changes: list[SchemaChange] = []
        source_idx = {_key(i.name) for i in source.indexes}
        target_idx = {_key(i.name) for i in target.indexes}

        for index in target.indexes:
            if _key(index.name) not in source_idx:
                changes.append(self._change(ChangeType.ADD_INDEX, target, index=index))

        for index in source.indexes:
            if _key(index.name) not in target_idx:
                changes.append(
                    self._unsupported(
                        ChangeType.DROP_INDEX,
                        target,
                        f"Dropping index '{index.name}' is not supported.",
                        index_name=index.name,
                    )
                )

        return changes

    def _diff_foreign_keys(self, source: Table, target: Table) -> list[SchemaChange]:
        changes: list[SchemaChange] = []
        source_fks = {_key(fk.name) for fk in source.foreign_keys}
        target_fks = {_key(fk.name) for fk in target.foreign_keys}

        for fk in target.foreign_keys:
            if _key(fk.name) not in source_fks:
                changes.append(
                    self._change(ChangeType.ADD_FOREIGN_KEY, target, foreign_key=fk)
                )

        for fk in source.foreign_keys:
            if _key(fk.name) not in target_fks:
                changes.append(
                    self._unsupported(
                        ChangeType.DROP_FOREIGN_KEY,
                        target,
                        f"Dropping foreign key '{fk.name}' is not supported.",
                        foreign_key_name=fk.name,
                    )
                )

        return changes

    def _diff_descriptions(self, source: Table, target: Table) -> list[SchemaChange]:
        """MS_Description changes on the table and its columns, indexes and keys."""
        changes: list[SchemaChange] = []

        def compare(
            before: Optional[DescribedMixin],
            after: DescribedMixin,
            level2_type: Optional[str],
            level2_name: Optional[str],
        ) -> None:
            old = before.description if before is not None else None
            new = after.description
            if new is None or new == old:
                return
            changes.append(
                self._change(
                    ChangeType.SET_EXTENDED_PROPERTY,
                    target,
                    level2_type=level2_type,
                    level2_name=level2_name,
                    value=new,
                    exists=before is not None and before.has_description,
                )
            )

        compare(source, target, None, None)

        source_cols = {_key(c.name): c for c in source.columns}
        for col in target.columns:
            compare(source_cols.get(_key(col.name)), col, "COLUMN", col.name)

        source_idx = {_key(i.name): i for i in source.indexes}
        for index in target.indexes:
            compare(source_idx.get(_key(index.name)), index, "INDEX", index.name)

        source_fks = {_key(fk.name): fk for fk in source.foreign_keys}
        for fk in target.foreign_keys:
            compare(source_fks.get(_key(fk.name)), fk, "CONSTRAINT", fk.name)

        return changes

    def _diff_versioning(self, source: Table, target: Table) -> list[SchemaChange]:
        if source.is_system_versioned == target.is_system_versioned:
            return []
        return [
            self._change(
                ChangeType.SET_SYSTEM_VERSIONING,
                target,
                enabled=target.is_system_versioned,
                history_schema=target.history_table_schema,
                history_table=target.history_table_name,
            )
        ]

    def _order_changes(self, changes: list[SchemaChange]) -> list[SchemaChange]:
        """Order changes so dependent statements run after what they depend on."""
        return sorted(changes, key=lambda c: _CHANGE_ORDER.index(c.change_type))
