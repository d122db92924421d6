"""
Raw: Source Tables
==================
Declared column lists for the CRM and ERP raw tables, and the reader that
turns stored rows into RawRecords.
"""

from salesdwh.db import read_table
from salesdwh.models import RawRecord

# Serial assigned by the raw loader in arrival order. The business columns
# carry no ordering of their own (erp_px_cat_g1v2 even uses "id" for the
# category code).
INGESTION_ORDER = ["_ingested_id"]

SOURCE_TABLES: dict[str, list[str]] = {
    # CRM
    "raw.crm_cust_info": [
        "cst_id",
        "cst_key",
        "cst_firstname",
        "cst_lastname",
        "cst_marital_status",
        "cst_gndr",
        "cst_create_date",
    ],
    "raw.crm_prd_info": [
        "prd_id",
        "prd_key",
        "prd_nm",
        "prd_cost",
        "prd_line",
        "prd_start_dt",
        "prd_end_dt",
    ],
    "raw.crm_sales_details": [
        "sls_ord_num",
        "sls_prd_key",
        "sls_cust_id",
        "sls_order_dt",
        "sls_ship_dt",
        "sls_due_dt",
        "sls_sales",
        "sls_quantity",
        "sls_price",
    ],
    # ERP
    "raw.erp_cust_az12": ["cid", "bdate", "gen"],
    "raw.erp_loc_a101": ["cid", "cntry"],
    "raw.erp_px_cat_g1v2": ["id", "cat", "subcat", "maintenance"],
}


class SourceTableError(RuntimeError):
    """A raw source table is unknown, missing, or unreadable. Fatal for the run."""


def fetch_raw(source_table: str) -> list[RawRecord]:
    """
    Read every row of a raw table as RawRecords.

    Args:
        source_table: Full table name (e.g., 'raw.crm_cust_info')

    Returns:
        RawRecords in ingestion order

    Raises:
        SourceTableError: Unknown table, or the store could not read it
    """
    columns = SOURCE_TABLES.get(source_table)
    if columns is None:
        raise SourceTableError(f"Unknown source table: {source_table}")

    try:
        rows = read_table(source_table, order_by=INGESTION_ORDER)
    except Exception as e:
        raise SourceTableError(f"Could not read {source_table}: {e}") from e

    return [RawRecord.from_dict(source_table, row, columns) for row in rows]


class SupabaseSource:
    """RawSource backed by the raw schema."""

    def fetch_raw(self, source_table: str) -> list[RawRecord]:
        return fetch_raw(source_table)
