"""
Raw Layer
=========
Ingestion boundary: raw schema → RawRecord (untyped, unvalidated).
"""

from salesdwh.raw.sources import (
    SOURCE_TABLES,
    SourceTableError,
    SupabaseSource,
    fetch_raw,
)

__all__ = [
    "SOURCE_TABLES",
    "SourceTableError",
    "SupabaseSource",
    "fetch_raw",
]
