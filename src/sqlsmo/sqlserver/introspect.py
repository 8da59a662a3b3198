"""Schema introspection from SQL Server catalog views."""

import logging
from typing import Any, Optional, Protocol

from sqlsmo.constants import MS_DESCRIPTION
from sqlsmo.schema.codegen import quote_identifier
from sqlsmo.schema.datatypes import (
    LENGTH_DECLARATIONS,
    MAX_DECLARATIONS,
    PRECISION_DECLARATIONS,
    DataType,
    managed_type_from_name,
)
from sqlsmo.schema.models import (
    Column,
    Database,
    DefaultConstraint,
    ExtendedProperty,
    ForeignKey,
    ForeignKeyColumn,
    Index,
    IndexedColumn,
    PeriodForSystemTime,
    StoredProcedure,
    StoredProcedureParameter,
    Table,
    View,
)
from sqlsmo.types import GeneratedAlwaysType, IndexKeyType, IndexType, ManagedTypeCode

logger = logging.getLogger(__name__)

_UNICODE_TYPES = {ManagedTypeCode.NCHAR, ManagedTypeCode.NVARCHAR, ManagedTypeCode.NVARCHAR_MAX}
_TIME_SCALE_TYPES = {
    ManagedTypeCode.DATE_TIME2,
    ManagedTypeCode.DATE_TIME_OFFSET,
    ManagedTypeCode.TIME,
}
_GENERATED_ALWAYS = {
    1: GeneratedAlwaysType.AS_ROW_START,
    2: GeneratedAlwaysType.AS_ROW_END,
}
_SYSTEM_VERSIONED_TEMPORAL_TABLE = 2


class SQLClient(Protocol):
    """Protocol for SQL client used by introspector."""

    def fetchall(self, sql: str, params: Optional[dict[str, Any]] = None) -> list: ...


def data_type_from_row(row: dict[str, Any]) -> DataType:
    """Build a DataType from a ``sys.types`` / ``sys.columns`` row.

    ``max_length`` is in bytes, so unicode lengths are halved.
    """
    if row.get("is_table_type"):
        return DataType.of(ManagedTypeCode.USER_DEFINED_TABLE_TYPE)
    if row.get("is_user_defined"):
        if row.get("is_assembly_type"):
            return DataType.of(ManagedTypeCode.USER_DEFINED_TYPE)
        return DataType.of(ManagedTypeCode.USER_DEFINED_DATA_TYPE)

    max_length = row.get("max_length") or 0
    code = managed_type_from_name(row["type_name"], max_length)

    if code in MAX_DECLARATIONS:
        return DataType(code, maximum_length=DataType.MAX_LENGTH)
    if code in LENGTH_DECLARATIONS:
        length = max_length // 2 if code in _UNICODE_TYPES else max_length
        return DataType(code, maximum_length=length)
    if code in PRECISION_DECLARATIONS:
        return DataType(
            code,
            numeric_precision=row.get("precision") or 0,
            numeric_scale=row.get("scale") or 0,
        )
    if code in _TIME_SCALE_TYPES:
        return DataType(code, numeric_scale=row.get("scale") or 0)
    return DataType(code)


def _description(value: Any) -> list[ExtendedProperty]:
    if value is None:
        return []
    return [ExtendedProperty(MS_DESCRIPTION, value)]


class SchemaIntrospector:
    """Introspect tables, views and procedures of one database."""

    def __init__(self, client: SQLClient, database: str) -> None:
        self._client = client
        self._database = database
        self._db = quote_identifier(database)

    def introspect_database(self) -> Database:
        """Introspect all user tables, views and stored procedures."""
        tables = []
        for row in self._fetch_tables():
            tables.append(self._build_table(row))
        views = [self._build_view(row) for row in self._fetch_views()]
        procedures = [self._build_procedure(row) for row in self._fetch_procedures()]

        logger.info(
            f"Introspected {self._database}: {len(tables)} tables, "
            f"{len(views)} views, {len(procedures)} procedures"
        )
        return Database(
            name=self._database,
            tables=tables,
            views=views,
            stored_procedures=procedures,
        )

    def introspect_table(self, schema: str, name: str) -> Optional[Table]:
        """Introspect a single table. Returns None if not found."""
        rows = self._fetch_tables(schema, name)
        if not rows:
            return None
        return self._build_table(rows[0])

    def _fetch_tables(
        self, schema: Optional[str] = None, name: Optional[str] = None
    ) -> list[dict[str, Any]]:
        db = self._db
        sql = f"""
            SELECT s.name AS schema_name, t.name AS table_name, t.temporal_type,
                   hs.name AS history_schema, ht.name AS history_table,
                   CAST(ep.value AS NVARCHAR(MAX)) AS description
            FROM {db}.sys.tables t
            JOIN {db}.sys.schemas s ON t.schema_id = s.schema_id
            LEFT JOIN {db}.sys.tables ht ON t.history_table_id = ht.object_id
            LEFT JOIN {db}.sys.schemas hs ON ht.schema_id = hs.schema_id
            LEFT JOIN {db}.sys.extended_properties ep
              ON ep.class = 1 AND ep.major_id = t.object_id AND ep.minor_id = 0
             AND ep.name = '{MS_DESCRIPTION}'
            WHERE t.is_ms_shipped = 0
        """
        params: dict[str, Any] = {}
        if name is not None:
            sql += " AND s.name = :schema AND t.name = :name"
            params = {"schema": schema, "name": name}
        sql += " ORDER BY s.name, t.name"
        return self._client.fetchall(sql, params)

    def _build_table(self, row: dict[str, Any]) -> Table:
        schema = row["schema_name"]
        name = row["table_name"]
        versioned = row.get("temporal_type") == _SYSTEM_VERSIONED_TEMPORAL_TABLE

        table = Table(
            name=name,
            schema=schema,
            columns=self._fetch_columns(schema, name),
            indexes=self._fetch_indexes(schema, name),
            foreign_keys=self._fetch_foreign_keys(schema, name),
            extended_properties=_description(row.get("description")),
            period=self._fetch_period(schema, name),
            history_table_schema=row.get("history_schema") if versioned else None,
            history_table_name=row.get("history_table") if versioned else None,
            is_system_versioned=versioned,
        )
        logger.debug(f"Introspected table {table.full_name}")
        return table

    def _fetch_columns(self, schema: str, name: str) -> list[Column]:
        """Columns of a table or view, in ordinal order."""
        db = self._db
        sql = f"""
            SELECT c.name AS column_name, ty.name AS type_name, c.max_length,
                   c.precision, c.scale, c.is_nullable, c.is_hidden,
                   c.generated_always_type, ty.is_user_defined, ty.is_table_type,
                   ty.is_assembly_type, dc.name AS default_name,
                   dc.definition AS default_definition,
                   CAST(ep.value AS NVARCHAR(MAX)) AS description
            FROM {db}.sys.columns c
            JOIN {db}.sys.objects o ON c.object_id = o.object_id
            JOIN {db}.sys.schemas s ON o.schema_id = s.schema_id
            JOIN {db}.sys.types ty ON c.user_type_id = ty.user_type_id
            LEFT JOIN {db}.sys.default_constraints dc ON c.default_object_id = dc.object_id
            LEFT JOIN {db}.sys.extended_properties ep
              ON ep.class = 1 AND ep.major_id = c.object_id AND ep.minor_id = c.column_id
             AND ep.name = '{MS_DESCRIPTION}'
            WHERE s.name = :schema AND o.name = :name
            ORDER BY c.column_id
        """
        columns = []
        for row in self._client.fetchall(sql, {"schema": schema, "name": name}):
            default = None
            if row.get("default_name"):
                default = DefaultConstraint(
                    name=row["default_name"], text=row["default_definition"]
                )
            columns.append(
                Column(
                    name=row["column_name"],
                    data_type=data_type_from_row(row),
                    nullable=bool(row["is_nullable"]),
                    default_constraint=default,
                    extended_properties=_description(row.get("description")),
                    is_hidden=bool(row.get("is_hidden")),
                    generated_always=_GENERATED_ALWAYS.get(
                        row.get("generated_always_type") or 0, GeneratedAlwaysType.NONE
                    ),
                )
            )
        return columns

    def _fetch_indexes(self, schema: str, name: str) -> list[Index]:
        db = self._db
        sql = f"""
            SELECT i.name AS index_name, i.type_desc, i.is_primary_key,
                   i.is_unique_constraint, i.is_unique, c.name AS column_name,
                   ic.is_descending_key,
                   CAST(ep.value AS NVARCHAR(MAX)) AS description
            FROM {db}.sys.indexes i
            JOIN {db}.sys.tables t ON i.object_id = t.object_id
            JOIN {db}.sys.schemas s ON t.schema_id = s.schema_id
            JOIN {db}.sys.index_columns ic
              ON i.object_id = ic.object_id AND i.index_id = ic.index_id
            JOIN {db}.sys.columns c
              ON ic.object_id = c.object_id AND ic.column_id = c.column_id
            LEFT JOIN {db}.sys.extended_properties ep
              ON ep.class = 7 AND ep.major_id = i.object_id AND ep.minor_id = i.index_id
             AND ep.name = '{MS_DESCRIPTION}'
            WHERE s.name = :schema AND t.name = :name
              AND i.name IS NOT NULL AND ic.is_included_column = 0
            ORDER BY i.index_id, ic.key_ordinal
        """
        indexes: dict[str, Index] = {}
        for row in self._client.fetchall(sql, {"schema": schema, "name": name}):
            index = indexes.get(row["index_name"])
            if index is None:
                if row.get("is_primary_key"):
                    key_type = IndexKeyType.DRI_PRIMARY_KEY
                elif row.get("is_unique_constraint"):
                    key_type = IndexKeyType.DRI_UNIQUE_KEY
                else:
                    key_type = IndexKeyType.NONE
                index = Index(
                    name=row["index_name"],
                    index_key_type=key_type,
                    index_type=(
                        IndexType.CLUSTERED
                        if row.get("type_desc") == "CLUSTERED"
                        else IndexType.NONCLUSTERED
                    ),
                    is_unique=bool(row.get("is_unique")),
                    extended_properties=_description(row.get("description")),
                )
                indexes[index.name] = index
            index.indexed_columns.append(
                IndexedColumn(row["column_name"], bool(row.get("is_descending_key")))
            )
        return list(indexes.values())

    def _fetch_foreign_keys(self, schema: str, name: str) -> list[ForeignKey]:
        db = self._db
        sql = f"""
            SELECT fk.name AS fk_name, pc.name AS column_name,
                   rc.name AS referenced_column, rs.name AS referenced_schema,
                   rt.name AS referenced_table,
                   CAST(ep.value AS NVARCHAR(MAX)) AS description
            FROM {db}.sys.foreign_keys fk
            JOIN {db}.sys.tables t ON fk.parent_object_id = t.object_id
            JOIN {db}.sys.schemas s ON t.schema_id = s.schema_id
            JOIN {db}.sys.foreign_key_columns fkc ON fk.object_id = fkc.constraint_object_id
            JOIN {db}.sys.columns pc
              ON fkc.parent_object_id = pc.object_id AND fkc.parent_column_id = pc.column_id
            JOIN {db}.sys.columns rc
              ON fkc.referenced_object_id = rc.object_id
             AND fkc.referenced_column_id = rc.column_id
            JOIN {db}.sys.tables rt ON fk.referenced_object_id = rt.object_id
            JOIN {db}.sys.schemas rs ON rt.schema_id = rs.schema_id
            LEFT JOIN {db}.sys.extended_properties ep
              ON ep.class = 1 AND ep.major_id = fk.object_id AND ep.minor_id = 0
             AND ep.name = '{MS_DESCRIPTION}'
            WHERE s.name = :schema AND t.name = :name
            ORDER BY fk.name, fkc.constraint_column_id
        """
        foreign_keys: dict[str, ForeignKey] = {}
        for row in self._client.fetchall(sql, {"schema": schema, "name": name}):
            fk = foreign_keys.get(row["fk_name"])
            if fk is None:
                fk = ForeignKey(
                    name=row["fk_name"],
                    referenced_table=row["referenced_table"],
                    referenced_table_schema=row["referenced_schema"],
                    extended_properties=_description(row.get("description")),
                )
                foreign_keys[fk.name] = fk
            fk.columns.append(ForeignKeyColumn(row["column_name"], row["referenced_column"]))
        return list(foreign_keys.values())

    def _fetch_period(self, schema: str, name: str) -> Optional[PeriodForSystemTime]:
        db = self._db
        sql = f"""
            SELECT sc.name AS start_column, ec.name AS end_column
            FROM {db}.sys.periods p
            JOIN {db}.sys.tables t ON p.object_id = t.object_id
            JOIN {db}.sys.schemas s ON t.schema_id = s.schema_id
            JOIN {db}.sys.columns sc
              ON p.object_id = sc.object_id AND p.start_column_id = sc.column_id
            JOIN {db}.sys.columns ec
              ON p.object_id = ec.object_id AND p.end_column_id = ec.column_id
            WHERE s.name = :schema AND t.name = :name
        """
        rows = self._client.fetchall(sql, {"schema": schema, "name": name})
        if not rows:
            return None
        return PeriodForSystemTime(rows[0]["start_column"], rows[0]["end_column"])

    def _fetch_views(self) -> list[dict[str, Any]]:
        db = self._db
        sql = f"""
            SELECT s.name AS schema_name, v.name AS view_name,
                   CAST(ep.value AS NVARCHAR(MAX)) AS description
            FROM {db}.sys.views v
            JOIN {db}.sys.schemas s ON v.schema_id = s.schema_id
            LEFT JOIN {db}.sys.extended_properties ep
              ON ep.class = 1 AND ep.major_id = v.object_id AND ep.minor_id = 0
             AND ep.name = '{MS_DESCRIPTION}'
            WHERE v.is_ms_shipped = 0
            ORDER BY s.name, v.name
        """
        return self._client.fetchall(sql)

    def _build_view(self, row: dict[str, Any]) -> View:
        return View(
            name=row["view_name"],
            schema=row["schema_name"],
            columns=self._fetch_columns(row["schema_name"], row["view_name"]),
            extended_properties=_description(row.get("description")),
        )

    def _fetch_procedures(self) -> list[dict[str, Any]]:
        db = self._db
        sql = f"""
            SELECT s.name AS schema_name, p.name AS procedure_name
            FROM {db}.sys.procedures p
            JOIN {db}.sys.schemas s ON p.schema_id = s.schema_id
            WHERE p.is_ms_shipped = 0
            ORDER BY s.name, p.name
        """
        return self._client.fetchall(sql)

    def _build_procedure(self, row: dict[str, Any]) -> StoredProcedure:
        db = self._db
        sql = f"""
            SELECT pa.name AS parameter_name, ty.name AS type_name, pa.max_length,
                   pa.precision, pa.scale, ty.is_user_defined, ty.is_table_type,
                   ty.is_assembly_type
            FROM {db}.sys.parameters pa
            JOIN {db}.sys.objects o ON pa.object_id = o.object_id
            JOIN {db}.sys.schemas s ON o.schema_id = s.schema_id
            JOIN {db}.sys.types ty ON pa.user_type_id = ty.user_type_id
            WHERE s.name = :schema AND o.name = :name AND pa.parameter_id > 0
            ORDER BY pa.parameter_id
        """
        params = self._client.fetchall(
            sql, {"schema": row["schema_name"], "name": row["procedure_name"]}
        )
        return StoredProcedure(
            name=row["procedure_name"],
            schema=row["schema_name"],
            parameters=[
                StoredProcedureParameter(
                    name=p["parameter_name"].lstrip("@"),
                    data_type=data_type_from_row(p),
                )
                for p in params
            ],
        )
