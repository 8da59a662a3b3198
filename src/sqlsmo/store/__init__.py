"""Schema stores."""

from sqlsmo.store.base import BaseSchemaStore, SchemaStore
from sqlsmo.store.memory import InMemorySchemaStore

__all__ = ["BaseSchemaStore", "InMemorySchemaStore", "SchemaStore"]
