"""Run stored procedures with placeholder arguments and collect their results."""

import datetime
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from sqlsmo.constants import (
    DEFAULT_ODBC_DRIVER,
    SENTINEL_BIG_INT,
    SENTINEL_BIT,
    SENTINEL_DECIMAL,
    SENTINEL_INT,
    SENTINEL_STRING,
    SENTINEL_UNIQUE_IDENTIFIER,
)
from sqlsmo.exceptions import StoreError, UnsupportedTypeError
from sqlsmo.schema.codegen import quote_identifier
from sqlsmo.schema.models import StoredProcedure, StoredProcedureParameter
from sqlsmo.sqlserver.client import SqlServerClient
from sqlsmo.types import DriverTypeCode

logger = logging.getLogger(__name__)

D = DriverTypeCode

_DATE_TYPES = {D.DATE, D.DATE_TIME, D.DATE_TIME2, D.SMALL_DATE_TIME, D.TIME}
_DECIMAL_TYPES = {D.DECIMAL, D.FLOAT, D.MONEY, D.SMALL_MONEY}
_STRING_TYPES = {D.NVARCHAR, D.VAR_CHAR, D.NCHAR, D.CHAR}


@dataclass
class ResultSet:
    """One tabular result: column names and rows in server order."""

    columns: list[str] = field(default_factory=list)
    rows: list[tuple] = field(default_factory=list)


@dataclass
class SqlResult:
    procedure: str
    result_sets: list[ResultSet] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return sum(len(rs.rows) for rs in self.result_sets)


def sentinel_value(driver_type: Optional[DriverTypeCode]) -> Any:
    """Placeholder argument for a parameter of ``driver_type``.

    Types outside the table, and ``None`` for unmappable types, give None.
    """
    if driver_type is D.BIG_INT:
        return SENTINEL_BIG_INT
    if driver_type is D.INT:
        return SENTINEL_INT
    if driver_type is D.BIT:
        return SENTINEL_BIT
    if driver_type in _DATE_TYPES:
        return datetime.datetime.now()
    if driver_type in _DECIMAL_TYPES:
        return SENTINEL_DECIMAL
    if driver_type in _STRING_TYPES:
        return SENTINEL_STRING
    if driver_type is D.UNIQUE_IDENTIFIER:
        return SENTINEL_UNIQUE_IDENTIFIER
    if driver_type is D.STRUCTURED:
        return []
    return None


def parameter_value(parameter: StoredProcedureParameter) -> Any:
    try:
        driver_type = parameter.driver_type
    except UnsupportedTypeError:
        logger.debug(f"Parameter @{parameter.name} has no driver type, binding NULL")
        return None
    return sentinel_value(driver_type)


def build_parameters(procedure: StoredProcedure) -> list[tuple[str, Any]]:
    """(name, value) pairs for every parameter of ``procedure``, in order."""
    return [(p.name.lstrip("@"), parameter_value(p)) for p in procedure.parameters]


def build_exec_statement(procedure: StoredProcedure, names: list[str]) -> str:
    """``EXEC [schema].[name] @a = ?, @b = ?`` with one marker per name."""
    target = f"{quote_identifier(procedure.schema)}.{quote_identifier(procedure.name)}"
    if not names:
        return f"EXEC {target}"
    return f"EXEC {target} " + ", ".join(f"@{name} = ?" for name in names)


def _run(client: SqlServerClient, procedure: StoredProcedure) -> SqlResult:
    params = build_parameters(procedure)
    sql = build_exec_statement(procedure, [name for name, _ in params])
    values = [value for _, value in params]
    logger.info(f"Executing {procedure.full_name} with {len(values)} placeholder argument(s)")
    logger.debug(sql)

    result = SqlResult(procedure=procedure.full_name)
    dbapi_error = client.dbapi_error
    connection = client.raw_connection()
    try:
        cursor = connection.cursor()
        cursor.execute(sql, values)
        while True:
            if cursor.description:
                result.result_sets.append(
                    ResultSet(
                        columns=[d[0] for d in cursor.description],
                        rows=[tuple(row) for row in cursor.fetchall()],
                    )
                )
            if not cursor.nextset():
                break
        connection.commit()
    except dbapi_error as e:
        raise StoreError(f"Executing {procedure.full_name} failed: {e}") from e
    finally:
        connection.close()

    logger.info(
        f"{procedure.full_name} returned {len(result.result_sets)} result set(s), "
        f"{result.row_count} row(s)"
    )
    return result


def get_sql_results(
    connection: Union[str, SqlServerClient],
    procedure: StoredProcedure,
    odbc_driver: str = DEFAULT_ODBC_DRIVER,
) -> SqlResult:
    """Execute ``procedure`` with placeholder arguments and return every result set.

    ``connection`` is either a connected client or a connection string, in
    which case a client is opened and closed around the call.
    """
    if isinstance(connection, str):
        with SqlServerClient(connection, odbc_driver=odbc_driver) as client:
            return _run(client, procedure)
    return _run(connection, procedure)
