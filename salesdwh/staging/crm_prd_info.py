"""
Staging: crm_prd_info
=====================
CRM product versions → ProductVersion.

The raw end date is dropped: version end dates are recomputed from the
ordered start dates when the product dimension is built.
"""

from datetime import date
from typing import Optional, Union

from salesdwh.models import ProductVersion, RawRecord, Rejection
from salesdwh.report import MISSING_BUSINESS_KEY
from salesdwh.staging.rules import (
    clean_text,
    parse_int,
    parse_iso_date,
    split_product_key,
    standardize_cost,
    standardize_product_line,
)

TABLE_NAME = "staging.crm_prd_info"
SOURCE_TABLES = ["raw.crm_prd_info"]
KEY_COLUMN = "product_number"
ENTITY = "product"


def cleanse(record: RawRecord, today: Optional[date] = None) -> Union[ProductVersion, Rejection]:
    raw_key = clean_text(record.get("prd_key"))
    if raw_key is None:
        return Rejection(
            table=record.table,
            reason=MISSING_BUSINESS_KEY,
            key=record.get("prd_id"),
            detail="prd_key is required",
        )

    category_id, product_number = split_product_key(raw_key)

    return ProductVersion(
        product_id=parse_int(record.get("prd_id")),
        product_number=product_number,
        category_id=category_id,
        product_name=clean_text(record.get("prd_nm")),
        cost=standardize_cost(record.get("prd_cost")),
        product_line=standardize_product_line(record.get("prd_line")),
        start_date=parse_iso_date(record.get("prd_start_dt")),
    )
