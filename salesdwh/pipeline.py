"""
Full-Refresh Engine
===================
Pure pipeline: (raw snapshot, prior dimensional state) → (dimensional model, report).

Stages run over complete snapshots with a strict barrier between them:
cleanse every source table → merge entities → build dimensions → build facts.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from salesdwh.analytics import dim_customer, dim_product, fact_sales
from salesdwh.analytics.dim_product import ProductDimension
from salesdwh.analytics.merge import merge_customers, merge_products
from salesdwh.models import CustomerDimRow, FactSalesRow, ProductDimRow, RawRecord
from salesdwh.protocols import RawSource, TableSink
from salesdwh.raw import SOURCE_TABLES, SourceTableError
from salesdwh.report import RunReport
from salesdwh.staging import MODULES, CleanseResult, cleanse_table


@dataclass(frozen=True)
class PriorState:
    """Dimensional state persisted by earlier refreshes."""

    customer_keys: dict = field(default_factory=dict)
    product_versions: list = field(default_factory=list)

    @classmethod
    def from_rows(
        cls,
        dim_customer_rows: list[dict],
        dim_product_rows: list[dict],
        key_map_rows: Optional[list[dict]] = None,
    ) -> "PriorState":
        """
        Rebuild prior state from stored rows.

        The customer key map is authoritative; dim_customer rows only add
        customers the map does not know yet.
        """
        customer_keys = {
            r["customer_number"]: int(r["customer_key"]) for r in dim_customer_rows
        }
        customer_keys.update(
            {r["customer_number"]: int(r["customer_key"]) for r in key_map_rows or []}
        )
        return cls(
            customer_keys=customer_keys,
            product_versions=[ProductDimRow.from_row(r) for r in dim_product_rows],
        )


@dataclass
class DimensionalModel:
    """Everything one refresh produces for persistence."""

    staging: dict = field(default_factory=dict)
    dim_customer: list = field(default_factory=list)
    customer_key_map: list = field(default_factory=list)
    dim_product: ProductDimension = field(default_factory=ProductDimension)
    fact_sales: list = field(default_factory=list)


def fetch_snapshot(source: RawSource) -> dict[str, list[RawRecord]]:
    """
    Read every raw source table. Any unreadable table aborts the run.

    Returns:
        Source table name → RawRecords
    """
    return {table: source.fetch_raw(table) for table in SOURCE_TABLES}


def cleanse_snapshot(
    snapshot: dict[str, list[RawRecord]], today: Optional[date] = None
) -> dict[str, CleanseResult]:
    """Cleanse every source table of a raw snapshot."""
    missing = [table for table in SOURCE_TABLES if table not in snapshot]
    if missing:
        raise SourceTableError(f"Snapshot is missing source tables: {', '.join(missing)}")

    return {table: cleanse_table(MODULES[table], snapshot[table], today) for table in SOURCE_TABLES}


def build_model(
    cleansed: dict[str, CleanseResult],
    prior: Optional[PriorState] = None,
    as_of: Optional[date] = None,
) -> tuple[DimensionalModel, RunReport]:
    """
    Merge, build dimensions, and build facts from complete cleansed output.

    Args:
        cleansed: Source table name → CleanseResult, for every source table
        prior: Persisted state from the previous refresh (None on first run)
        as_of: Run date for new SCD Type 2 versions (defaults to today)

    Returns:
        Tuple of (DimensionalModel, RunReport)
    """
    prior = prior or PriorState()
    as_of = as_of or date.today()
    report = RunReport()

    for result in cleansed.values():
        report.record_cleanse(
            result.entity, result.processed, len(result.records), result.rejections
        )

    def records(table: str) -> list:
        return cleansed[table].records

    customers = merge_customers(
        records("raw.crm_cust_info"),
        records("raw.erp_cust_az12"),
        records("raw.erp_loc_a101"),
        report,
    )
    products = merge_products(records("raw.crm_prd_info"), records("raw.erp_px_cat_g1v2"), report)

    customer_rows: list[CustomerDimRow] = dim_customer.transform(customers, prior.customer_keys)
    product_dimension = dim_product.transform(products, prior.product_versions, as_of, report)

    fact_rows: list[FactSalesRow] = fact_sales.transform(
        records("raw.crm_sales_details"),
        dim_customer.key_lookup(customer_rows),
        dim_product.versions_by_product(product_dimension.rows),
        report,
    )

    model = DimensionalModel(
        staging={MODULES[table].TABLE_NAME: result.records for table, result in cleansed.items()},
        dim_customer=customer_rows,
        customer_key_map=dim_customer.key_map_rows(customer_rows),
        dim_product=product_dimension,
        fact_sales=fact_rows,
    )

    return model, report


def run_pipeline(
    snapshot: dict[str, list[RawRecord]],
    prior: Optional[PriorState] = None,
    as_of: Optional[date] = None,
) -> tuple[DimensionalModel, RunReport]:
    """
    Run the whole engine over a raw snapshot.

    Args:
        snapshot: Source table name → RawRecords (every source table required)
        prior: Persisted state from the previous refresh
        as_of: Run date; also the upper bound for birthdates

    Returns:
        Tuple of (DimensionalModel, RunReport)

    Raises:
        SourceTableError: A source table is absent from the snapshot
    """
    as_of = as_of or date.today()
    return build_model(cleanse_snapshot(snapshot, today=as_of), prior, as_of)


def persist(model: DimensionalModel, sink: TableSink) -> dict:
    """
    Write a finished model in one sink transaction.

    Full-refresh tables are replaced, dim_product versions and the customer
    key map are upserted. Either every table reflects this run or none does.

    Returns:
        Table name → rows written
    """
    counts = {}

    with sink.transaction():
        counts[dim_customer.KEY_MAP_TABLE] = sink.upsert_rows(
            dim_customer.KEY_MAP_TABLE, model.customer_key_map, dim_customer.KEY_MAP_COLUMN
        )

        for module in MODULES.values():
            rows = [r.to_row() for r in model.staging.get(module.TABLE_NAME, [])]
            counts[module.TABLE_NAME] = sink.replace_table(module.TABLE_NAME, rows, module.KEY_COLUMN)

        counts[dim_customer.TABLE_NAME] = sink.replace_table(
            dim_customer.TABLE_NAME,
            [r.to_row() for r in model.dim_customer],
            dim_customer.KEY_COLUMN,
        )
        counts[dim_product.TABLE_NAME] = sink.upsert_versions(
            dim_product.TABLE_NAME,
            [r.to_row() for r in model.dim_product.changed],
            dim_product.KEY_COLUMN,
            dim_product.BUSINESS_KEY,
            close_superseded=True,
        )
        counts[fact_sales.TABLE_NAME] = sink.replace_table(
            fact_sales.TABLE_NAME,
            [r.to_row() for r in model.fact_sales],
            fact_sales.KEY_COLUMN,
        )

    return counts
