"""
Staging: erp_cust_az12
======================
ERP customer demographics → ErpCustomer.
"""

from datetime import date
from typing import Optional, Union

from salesdwh.models import ErpCustomer, RawRecord, Rejection
from salesdwh.report import MISSING_BUSINESS_KEY
from salesdwh.staging.rules import (
    bounded_birthdate,
    normalize_customer_number,
    standardize_gender,
)

TABLE_NAME = "staging.erp_cust_az12"
SOURCE_TABLES = ["raw.erp_cust_az12"]
KEY_COLUMN = "customer_number"
ENTITY = "customer"


def cleanse(record: RawRecord, today: Optional[date] = None) -> Union[ErpCustomer, Rejection]:
    customer_number = normalize_customer_number(record.get("cid"))
    if customer_number is None:
        return Rejection(
            table=record.table,
            reason=MISSING_BUSINESS_KEY,
            key=None,
            detail="cid is required",
        )

    return ErpCustomer(
        customer_number=customer_number,
        birthdate=bounded_birthdate(record.get("bdate"), today or date.today()),
        gender=standardize_gender(record.get("gen")),
    )
