"""Exception classes for sqlsmo."""

from sqlsmo.types import DriverTypeCode, ManagedTypeCode

__all__ = [
    "SqlSmoError",
    "InvalidArgumentError",
    "NotFoundError",
    "DuplicateObjectError",
    "UnsupportedTypeError",
    "ConflictError",
    "ConfigError",
    "SchemaLoadError",
    "CodegenError",
    "StoreError",
]


class SqlSmoError(Exception):
    """Base exception for sqlsmo."""


class InvalidArgumentError(SqlSmoError, ValueError):
    """A required identifier or argument is missing or blank."""


class NotFoundError(SqlSmoError):
    """A named object is absent from its parent collection."""


class DuplicateObjectError(SqlSmoError):
    """An object with the same name already exists."""


class UnsupportedTypeError(SqlSmoError):
    """A type code has no mapping or declaration rule."""

    def __init__(self, type_code: ManagedTypeCode | DriverTypeCode, message: str):
        self.type_code = type_code
        super().__init__(message)


class ConflictError(SqlSmoError):
    """A mutation clashes with the current state of the object."""


class ConfigError(SqlSmoError):
    """Error in configuration."""


class SchemaLoadError(SqlSmoError):
    """Error loading schema definition files."""


class CodegenError(SqlSmoError):
    """Error generating DDL for staged changes."""


class StoreError(SqlSmoError):
    """Error talking to the backing schema store."""
