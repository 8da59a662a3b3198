"""Connection string normalization for SQL Server."""

from typing import Optional
from urllib.parse import quote_plus

from sqlalchemy.engine import make_url

from sqlsmo.constants import DEFAULT_ODBC_DRIVER
from sqlsmo.exceptions import ConfigError

JDBC_PREFIX = "jdbc:sqlserver://"

_SERVER_KEYS = ("server", "data source", "address", "addr", "network address")
_DATABASE_KEYS = ("database", "initial catalog", "databasename")
_USER_KEYS = ("uid", "user id", "user", "username")
_PASSWORD_KEYS = ("pwd", "password")
_TRUSTED_KEYS = ("trusted_connection", "integrated security", "integratedsecurity")
_TRUE_VALUES = ("yes", "true", "sspi")


def _split_pairs(text: str) -> dict[str, str]:
    """``key=value;`` pairs keyed by lower-cased key. Values keep their case."""
    pairs = {}
    for part in text.split(";"):
        if not part.strip():
            continue
        key, sep, value = part.partition("=")
        if not sep:
            raise ConfigError(f"Malformed connection string segment: '{part}'")
        pairs[key.strip().lower()] = value.strip()
    return pairs


def _first(pairs: dict[str, str], keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        if key in pairs:
            return pairs[key]
    return None


def _is_url(connection_string: str) -> bool:
    return "://" in connection_string and not connection_string.startswith(JDBC_PREFIX)


def _jdbc_pairs(connection_string: str) -> dict[str, str]:
    rest = connection_string[len(JDBC_PREFIX):]
    host_port, _, params = rest.partition(";")
    host, _, port = host_port.partition(":")
    pairs = _split_pairs(params)
    pairs["server"] = f"{host},{port}" if port else host
    return pairs


def _odbc_connect(pairs: dict[str, str], odbc_driver: str) -> str:
    driver = pairs.get("driver", odbc_driver).strip("{}")
    odbc_parts = [f"DRIVER={{{driver}}}"]

    server = _first(pairs, _SERVER_KEYS)
    if not server:
        raise ConfigError("Connection string does not name a server")
    odbc_parts.append(f"SERVER={server}")

    database = _first(pairs, _DATABASE_KEYS)
    if database:
        odbc_parts.append(f"DATABASE={database}")

    trusted = (_first(pairs, _TRUSTED_KEYS) or "").lower() in _TRUE_VALUES
    if trusted:
        odbc_parts.append("Trusted_Connection=yes")
    else:
        user = _first(pairs, _USER_KEYS)
        password = _first(pairs, _PASSWORD_KEYS)
        if user:
            odbc_parts.append(f"UID={user}")
        if password:
            odbc_parts.append(f"PWD={password}")

    encrypt = pairs.get("encrypt", "yes")
    trust_cert = pairs.get("trustservercertificate", "yes")
    odbc_parts.append(f"Encrypt={encrypt}")
    odbc_parts.append(f"TrustServerCertificate={trust_cert}")
    return ";".join(odbc_parts)


def normalize_connection_string(
    connection_string: str, odbc_driver: str = DEFAULT_ODBC_DRIVER
) -> str:
    """Return a SQLAlchemy URL for ``connection_string``.

    SQLAlchemy URLs are returned unchanged. JDBC and ADO.NET/ODBC strings are
    rewritten to ``mssql+pyodbc:///?odbc_connect=...``.

    Raises:
        ConfigError: If the string is empty or cannot be parsed.
    """
    if not connection_string or not connection_string.strip():
        raise ConfigError("Connection string is empty")
    connection_string = connection_string.strip()

    if _is_url(connection_string):
        return connection_string

    if connection_string.startswith(JDBC_PREFIX):
        pairs = _jdbc_pairs(connection_string)
    else:
        pairs = _split_pairs(connection_string)

    odbc = _odbc_connect(pairs, odbc_driver)
    return f"mssql+pyodbc:///?odbc_connect={quote_plus(odbc)}"


def database_name_from_connection_string(connection_string: str) -> Optional[str]:
    """Initial catalog named by ``connection_string``, or None."""
    if not connection_string or not connection_string.strip():
        return None
    connection_string = connection_string.strip()

    if _is_url(connection_string):
        url = make_url(connection_string)
        if url.database:
            return url.database
        odbc = url.query.get("odbc_connect")
        if isinstance(odbc, tuple):
            odbc = odbc[0]
        if odbc:
            return _first(_split_pairs(odbc), _DATABASE_KEYS)
        return None

    if connection_string.startswith(JDBC_PREFIX):
        return _first(_jdbc_pairs(connection_string), _DATABASE_KEYS)
    return _first(_split_pairs(connection_string), _DATABASE_KEYS)
