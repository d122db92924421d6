"""
Entity Merger
=============
Combines cleansed records from the CRM and ERP into one view per business key.

Duplicate business keys inside one source keep the last row in ingestion
order and are reported.
"""

from collections import defaultdict
from typing import Callable, Hashable, Iterable, TypeVar

from salesdwh.models import (
    Category,
    CrmCustomer,
    ErpCustomer,
    Location,
    MergedCustomer,
    MergedProduct,
    MergedProductVersion,
    ProductVersion,
    start_order,
)
from salesdwh.report import DUPLICATE_BUSINESS_KEY, UNRESOLVED_REFERENCE, RunReport
from salesdwh.staging.rules import NOT_AVAILABLE

T = TypeVar("T")


def dedupe_last(
    records: Iterable[T],
    key: Callable[[T], Hashable],
    report: RunReport,
    entity: str,
    source: str,
) -> dict:
    """
    Index records by key; a later record replaces an earlier one.

    Args:
        records: Cleansed records in ingestion order
        key: Business key extractor
        report: RunReport receiving duplicate warnings
        entity: Entity name for warnings
        source: Source table name for warnings

    Returns:
        Dict key → last record, in first-seen key order
    """
    by_key: dict = {}
    seen_count: dict = defaultdict(int)

    for record in records:
        k = key(record)
        seen_count[k] += 1
        by_key[k] = record

    for k, count in seen_count.items():
        if count > 1:
            report.warn(
                DUPLICATE_BUSINESS_KEY,
                entity,
                _key_text(k),
                f"{source}: {count} rows, kept last in ingestion order",
            )

    return by_key


def _key_text(key: Hashable) -> str:
    if isinstance(key, tuple):
        return "|".join("" if part is None else str(part) for part in key)
    return str(key)


def _fill(primary, secondary):
    """First non-null value; 'n/a' counts as null."""
    if primary is not None and primary != NOT_AVAILABLE:
        return primary
    if secondary is not None:
        return secondary
    return primary


def merge_customers(
    crm_customers: list[CrmCustomer],
    erp_customers: list[ErpCustomer],
    locations: list[Location],
    report: RunReport,
) -> list[MergedCustomer]:
    """
    Merge customers by customer number (outer union of all three sources).

    Precedence: CRM attributes first; ERP fills only what the CRM left null
    (gender 'n/a' counts as null); country comes from the location source.

    Returns:
        MergedCustomers sorted by customer number
    """
    crm = dedupe_last(
        crm_customers, lambda c: c.customer_number, report, "customer", "crm_cust_info"
    )
    erp = dedupe_last(
        erp_customers, lambda c: c.customer_number, report, "customer", "erp_cust_az12"
    )
    loc = dedupe_last(locations, lambda r: r.customer_number, report, "location", "erp_loc_a101")

    merged = []
    for number in sorted(set(crm) | set(erp) | set(loc)):
        primary = crm.get(number)
        secondary = erp.get(number)
        location = loc.get(number)

        merged.append(
            MergedCustomer(
                customer_number=number,
                customer_id=primary.customer_id if primary else None,
                first_name=primary.first_name if primary else None,
                last_name=primary.last_name if primary else None,
                marital_status=primary.marital_status if primary else None,
                gender=_fill(
                    primary.gender if primary else None,
                    secondary.gender if secondary else None,
                ),
                birthdate=secondary.birthdate if secondary else None,
                country=location.country if location else None,
                create_date=primary.create_date if primary else None,
            )
        )

    return merged


def merge_products(
    product_versions: list[ProductVersion],
    categories: list[Category],
    report: RunReport,
) -> list[MergedProduct]:
    """
    Group product versions by product number and attach category attributes.

    A version is identified by (product_number, start_date); duplicates keep
    the last row. Versions are returned ordered by start date, unknown first.

    Returns:
        MergedProducts sorted by product number
    """
    category_by_id = dedupe_last(
        categories, lambda c: c.category_id, report, "category", "erp_px_cat_g1v2"
    )
    versions = dedupe_last(
        product_versions,
        lambda v: (v.product_number, v.start_date),
        report,
        "product",
        "crm_prd_info",
    )

    by_product: dict = defaultdict(list)
    missing_categories = set()

    for version in versions.values():
        category = category_by_id.get(version.category_id)
        if category is None:
            missing_categories.add((version.category_id, version.product_number))

        by_product[version.product_number].append(
            MergedProductVersion(
                product_id=version.product_id,
                product_name=version.product_name,
                category_id=version.category_id,
                category=category.category if category else None,
                subcategory=category.subcategory if category else None,
                maintenance=category.maintenance if category else None,
                cost=version.cost,
                product_line=version.product_line,
                start_date=version.start_date,
            )
        )

    for category_id, product_number in sorted(missing_categories):
        report.warn(
            UNRESOLVED_REFERENCE,
            "category",
            category_id,
            f"product {product_number} references an unknown category",
        )

    return [
        MergedProduct(
            product_number=number,
            versions=tuple(sorted(by_product[number], key=lambda v: start_order(v.start_date))),
        )
        for number in sorted(by_product)
    ]
