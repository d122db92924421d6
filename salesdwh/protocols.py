"""
Module Protocols
================
Type contracts for the engine's I/O boundary and its table modules.
"""

from typing import Any, ContextManager, Protocol, runtime_checkable

from salesdwh.models import RawRecord


@runtime_checkable
class RawSource(Protocol):
    """
    Ingestion contract.

    Delivers every raw row of a named source table as optional strings.
    """

    def fetch_raw(self, source_table: str) -> list[RawRecord]:
        """Return all rows of ``source_table``. Raises SourceTableError if unreadable."""
        ...


@runtime_checkable
class TableSink(Protocol):
    """
    Persistence contract.

    Full-refresh targets are replaced wholesale; the versioned dimension and
    the key map are append-only. Writes made inside ``transaction()`` become
    visible together when the block exits, or not at all if it raises.
    """

    def transaction(self) -> ContextManager:
        """Group the writes of one refresh into a single atomic swap."""
        ...

    def replace_table(self, table_name: str, rows: list[dict], key_column: str) -> int:
        """Replace the table contents. Returns row count."""
        ...

    def upsert_versions(
        self,
        table_name: str,
        rows: list[dict],
        key_column: str,
        business_key: str,
        close_superseded: bool = True,
    ) -> int:
        """Append new versions and close superseded ones. Returns row count."""
        ...

    def upsert_rows(self, table_name: str, rows: list[dict], key_column: str) -> int:
        """Insert or update rows by key, never deleting. Returns row count."""
        ...


@runtime_checkable
class StagingTableModule(Protocol):
    """
    Contract for staging (cleansing) modules.

    Each module cleanses one raw source table into typed records.
    """

    TABLE_NAME: str
    SOURCE_TABLES: list[str]
    KEY_COLUMN: str

    def cleanse(self, record: RawRecord, today: Any = None) -> Any:
        """Cleanse one raw record. Returns a typed record or a Rejection."""
        ...


@runtime_checkable
class AnalyticsTableModule(Protocol):
    """
    Contract for analytics (dimensional) modules.

    Each module builds its target table from upstream outputs.
    """

    TABLE_NAME: str
    SOURCE_TABLES: list[str]
    KEY_COLUMN: str

    def transform(self, *args: Any) -> Any:
        """Transform upstream data to target rows."""
        ...
