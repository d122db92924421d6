"""
Staging: erp_px_cat_g1v2
========================
ERP product category reference → Category.
"""

from datetime import date
from typing import Optional, Union

from salesdwh.models import Category, RawRecord, Rejection
from salesdwh.report import MISSING_BUSINESS_KEY
from salesdwh.staging.rules import clean_text, standardize_maintenance

TABLE_NAME = "staging.erp_px_cat_g1v2"
SOURCE_TABLES = ["raw.erp_px_cat_g1v2"]
KEY_COLUMN = "category_id"
ENTITY = "category"


def cleanse(record: RawRecord, today: Optional[date] = None) -> Union[Category, Rejection]:
    category_id = clean_text(record.get("id"))
    if category_id is None:
        return Rejection(
            table=record.table,
            reason=MISSING_BUSINESS_KEY,
            key=None,
            detail="id is required",
        )

    return Category(
        category_id=category_id,
        category=clean_text(record.get("cat")),
        subcategory=clean_text(record.get("subcat")),
        maintenance=standardize_maintenance(record.get("maintenance")),
    )
