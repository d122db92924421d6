"""
Run Report
==========
Per-run counts and data-quality warnings emitted by the engine.

Nothing recorded here halts a run. Rejections and cross-entity
inconsistencies are aggregated so the flow can log and publish them.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from salesdwh.models import Rejection

# Warning kinds
UNREPAIRABLE_MEASURE = "unrepairable_measure"
MISSING_BUSINESS_KEY = "missing_business_key"
DUPLICATE_BUSINESS_KEY = "duplicate_business_key"
UNRESOLVED_REFERENCE = "unresolved_reference"
DUPLICATE_FACT_LINE = "duplicate_fact_line"
VERSION_CONFLICT = "version_conflict"


@dataclass(frozen=True)
class DataQualityWarning:
    kind: str
    entity: str
    key: Optional[str]
    detail: str = ""

    def to_dict(self) -> dict:
        return {"kind": self.kind, "entity": self.entity, "key": self.key, "detail": self.detail}


@dataclass
class EntityCounts:
    processed: int = 0
    cleansed: int = 0
    rejected: int = 0


@dataclass
class RunReport:
    """Counts per entity plus every non-fatal condition seen in the run."""

    counts: dict = field(default_factory=dict)
    warnings: list = field(default_factory=list)

    def entity(self, name: str) -> EntityCounts:
        if name not in self.counts:
            self.counts[name] = EntityCounts()
        return self.counts[name]

    def record_cleanse(
        self, entity: str, processed: int, cleansed: int, rejections: list[Rejection]
    ) -> None:
        counts = self.entity(entity)
        counts.processed += processed
        counts.cleansed += cleansed
        counts.rejected += len(rejections)

        for rejection in rejections:
            self.warn(rejection.reason, entity, rejection.key, f"{rejection.table}: {rejection.detail}")

    def warn(self, kind: str, entity: str, key: Optional[str], detail: str = "") -> None:
        self.warnings.append(DataQualityWarning(kind, entity, key, detail))

    def warnings_of(self, kind: str) -> list[DataQualityWarning]:
        return [w for w in self.warnings if w.kind == kind]

    @property
    def rejected(self) -> int:
        return sum(c.rejected for c in self.counts.values())

    def summary(self) -> dict:
        """JSON-ready summary for logging and event payloads."""
        return {
            "counts": {
                name: {
                    "processed": c.processed,
                    "cleansed": c.cleansed,
                    "rejected": c.rejected,
                }
                for name, c in self.counts.items()
            },
            "warnings_by_kind": dict(Counter(w.kind for w in self.warnings)),
            "warnings": [w.to_dict() for w in self.warnings],
        }
