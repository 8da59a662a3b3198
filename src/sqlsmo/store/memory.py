"""Schema store that never leaves the process."""

from typing import Optional

from sqlsmo.schema.models import Database
from sqlsmo.store.base import BaseSchemaStore


class InMemorySchemaStore(BaseSchemaStore):
    """Store for offline use, dry runs and tests.

    Statements are rendered exactly as the SQL Server store would run them and
    are kept in ``statements``.
    """

    def __init__(self, database: Optional[Database] = None, **kwargs) -> None:
        super().__init__(database or Database(name="memory"), **kwargs)

    def _execute(self, statements: list[str]) -> None:
        pass
