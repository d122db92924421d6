"""
Staging: erp_loc_a101
=====================
ERP customer locations → Location.
"""

from datetime import date
from typing import Optional, Union

from salesdwh.models import Location, RawRecord, Rejection
from salesdwh.report import MISSING_BUSINESS_KEY
from salesdwh.staging.rules import normalize_customer_number, standardize_country

TABLE_NAME = "staging.erp_loc_a101"
SOURCE_TABLES = ["raw.erp_loc_a101"]
KEY_COLUMN = "customer_number"
ENTITY = "location"


def cleanse(record: RawRecord, today: Optional[date] = None) -> Union[Location, Rejection]:
    customer_number = normalize_customer_number(record.get("cid"))
    if customer_number is None:
        return Rejection(
            table=record.table,
            reason=MISSING_BUSINESS_KEY,
            key=None,
            detail="cid is required",
        )

    return Location(
        customer_number=customer_number,
        country=standardize_country(record.get("cntry")),
    )
