"""
Cleansing Runner
================
Applies a staging module to a whole raw table.
"""

from dataclasses import dataclass, field
from datetime import date
from types import ModuleType
from typing import Optional

from salesdwh.models import RawRecord, Rejection


@dataclass
class CleanseResult:
    """Cleansed records and rejections for one source table."""

    table: str
    entity: str
    records: list = field(default_factory=list)
    rejections: list = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.records) + len(self.rejections)


def cleanse_table(
    module: ModuleType, records: list[RawRecord], today: Optional[date] = None
) -> CleanseResult:
    """
    Cleanse every record of one source table, preserving ingestion order.

    Args:
        module: Staging module (has ENTITY, TABLE_NAME, cleanse)
        records: Raw records of the module's source table
        today: Reference date for date-range rules

    Returns:
        CleanseResult
    """
    today = today or date.today()
    result = CleanseResult(table=module.TABLE_NAME, entity=module.ENTITY)

    for record in records:
        cleansed = module.cleanse(record, today=today)
        if isinstance(cleansed, Rejection):
            result.rejections.append(cleansed)
        else:
            result.records.append(cleansed)

    return result
