"""
Analytics: dim_product
======================
Product dimension with SCD Type 2.

A version is identified by (product_number, effective_start). History is
append-only across runs: versions are added or closed, never deleted.

Versions of one product are sorted by effective_start, an unknown start
sorting first as the earliest possible version. Each version ends the day
before the next one starts; the last version is open-ended and current.
"""

from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import date, timedelta
from typing import Optional, Union

from salesdwh.models import MergedProduct, MergedProductVersion, ProductDimRow, start_order
from salesdwh.report import VERSION_CONFLICT, RunReport

TABLE_NAME = "analytics.dim_product"
SOURCE_TABLES = ["staging.crm_prd_info", "staging.erp_px_cat_g1v2", "analytics.dim_product"]
KEY_COLUMN = "product_key"
BUSINESS_KEY = "product_number"


@dataclass
class ProductDimension:
    """Full dimension after this run plus the rows that must be upserted."""

    rows: list = field(default_factory=list)
    changed: list = field(default_factory=list)


def _starts_after(start: Optional[date], other: Optional[date]) -> bool:
    """True when ``start`` is strictly later than ``other`` (unknown is earliest)."""
    if start is None:
        return False
    return other is None or start > other


def _attributes(version: MergedProductVersion) -> tuple:
    return (
        version.product_id,
        version.product_name,
        version.category_id,
        version.category,
        version.subcategory,
        version.maintenance,
        version.cost,
        version.product_line,
    )


def _current(history: dict) -> Optional[ProductDimRow]:
    """The stored current version, else the latest stored one."""
    if not history:
        return None
    for row in history.values():
        if row.is_current:
            return row
    return history[max(history, key=start_order)]


def _incoming_versions(
    product: MergedProduct, history: dict, as_of: date, report: RunReport
) -> dict:
    """
    Decide which incoming versions become new rows.

    Returns:
        effective_start → MergedProductVersion for versions to append
    """
    current = _current(history)
    latest = product.versions[-1]
    new_versions = {}

    # A version opened at an as-of date holds the snapshot state of the dated
    # version it closed, so that dated version may match either stored row
    incoming_starts = {v.start_date for v in product.versions}
    ordered = sorted(history, key=start_order)
    absorbed_by = {
        previous: history[start]
        for previous, start in zip(ordered, ordered[1:])
        if start not in incoming_starts
    }

    for version in product.versions:
        identity = f"{product.product_number}|{version.start_date or ''}"

        # Latest snapshot state against the stored current version
        if (
            version is latest
            and current is not None
            and not _starts_after(version.start_date, current.effective_start)
        ):
            if _attributes(version) == current.attributes():
                continue
            if _starts_after(as_of, current.effective_start):
                new_versions[as_of] = version
            else:
                report.warn(
                    VERSION_CONFLICT,
                    "product",
                    identity,
                    f"attributes changed but as-of {as_of} is not after current start "
                    f"{current.effective_start}; history kept",
                )
            continue

        existing = history.get(version.start_date)
        if existing is None:
            new_versions[version.start_date] = version
            continue

        stored = [existing]
        if version.start_date in absorbed_by:
            stored.append(absorbed_by[version.start_date])
        if all(_attributes(version) != row.attributes() for row in stored):
            report.warn(
                VERSION_CONFLICT,
                "product",
                identity,
                "stored version differs from snapshot; history kept",
            )

    return new_versions


def _new_row(
    key: int, product_number: str, start: Optional[date], version: MergedProductVersion
) -> ProductDimRow:
    return ProductDimRow(
        product_key=key,
        product_number=product_number,
        product_id=version.product_id,
        product_name=version.product_name,
        category_id=version.category_id,
        category=version.category,
        subcategory=version.subcategory,
        maintenance=version.maintenance,
        cost=version.cost,
        product_line=version.product_line,
        effective_start=start,
        effective_end=None,
        is_current=False,
    )


def transform(
    products: list[MergedProduct],
    prior_versions: Optional[list[ProductDimRow]],
    as_of: date,
    report: RunReport,
) -> ProductDimension:
    """
    Build dim_product (SCD Type 2) from merged products and stored history.

    Args:
        products: Merged products from this run's snapshot
        prior_versions: Every stored dim_product row (empty on first run)
        as_of: Run date; start of versions created by attribute changes
        report: RunReport receiving version conflicts

    Returns:
        ProductDimension with the full dimension and the changed rows
    """
    prior_versions = prior_versions or []
    next_key = max((r.product_key for r in prior_versions), default=0) + 1

    history_by_product: dict = defaultdict(dict)
    for row in prior_versions:
        history_by_product[row.product_number][row.effective_start] = row

    incoming_by_product = {p.product_number: p for p in products if p.versions}
    result = ProductDimension()

    for number in sorted(set(history_by_product) | set(incoming_by_product)):
        history = history_by_product.get(number, {})
        product = incoming_by_product.get(number)
        new_versions = _incoming_versions(product, history, as_of, report) if product else {}

        # Sort-then-scan over stored + new versions
        timeline: list[tuple[Optional[date], Union[ProductDimRow, MergedProductVersion]]] = [
            *history.items(),
            *new_versions.items(),
        ]
        timeline.sort(key=lambda item: start_order(item[0]))

        for i, (start, source) in enumerate(timeline):
            is_last = i == len(timeline) - 1
            end = None if is_last else timeline[i + 1][0] - timedelta(days=1)

            if isinstance(source, ProductDimRow):
                row = replace(source, effective_end=end, is_current=is_last)
                if row != source:
                    result.changed.append(row)
            else:
                row = replace(
                    _new_row(next_key, number, start, source), effective_end=end, is_current=is_last
                )
                next_key += 1
                result.changed.append(row)

            result.rows.append(row)

    return result


def versions_by_product(rows: list[ProductDimRow]) -> dict[str, list[ProductDimRow]]:
    """product_number → versions ordered by effective_start."""
    grouped: dict = defaultdict(list)
    for row in rows:
        grouped[row.product_number].append(row)
    return {
        number: sorted(versions, key=lambda r: start_order(r.effective_start))
        for number, versions in grouped.items()
    }
