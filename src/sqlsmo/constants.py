"""Fixed names, expressions and sentinel values used across sqlsmo."""

import uuid

DEFAULT_SCHEMA = "dbo"
DEFAULT_HISTORY_SCHEMA = "History"
DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"

MS_DESCRIPTION = "MS_Description"

# System-versioning period columns
VALID_FROM_COLUMN = "ValidFrom"
VALID_TO_COLUMN = "ValidTo"
PERIOD_COLUMN_SCALE = 7
VALID_FROM_DEFAULT = "sysutcdatetime()"
VALID_TO_DEFAULT = "CONVERT([datetime2],'9999-12-31 23:59:59')"
VALID_FROM_DESCRIPTION = (
    "The system recorded date on which the record was created or last updated."
)
VALID_TO_DESCRIPTION = (
    "The system recorded date on which the validity of the record expires."
)
HISTORY_VALID_FROM_DESCRIPTION = (
    "The system recorded date on which the original record was created or updated."
)
HISTORY_VALID_TO_DESCRIPTION = (
    "The system recorded date on which the validity of the original record expired."
)
HISTORY_TABLE_SUFFIX = "History"
HISTORY_TABLE_DESCRIPTION = "Historical records for the '{table}' table."
HISTORY_INDEX_NAME = "IX_{schema}_{table}_ID_PERIOD_COLUMNS"
HISTORY_INDEX_DESCRIPTION = "Performance index for historical records."

# Placeholder parameter values for probing stored procedures
SENTINEL_BIG_INT = 1
SENTINEL_INT = 0
SENTINEL_BIT = False
SENTINEL_DECIMAL = 0.0
SENTINEL_STRING = "A"
SENTINEL_UNIQUE_IDENTIFIER = uuid.UUID(int=0)
