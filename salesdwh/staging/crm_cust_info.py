"""
Staging: crm_cust_info
======================
CRM customer master → CrmCustomer.
"""

from datetime import date
from typing import Optional, Union

from salesdwh.models import CrmCustomer, RawRecord, Rejection
from salesdwh.report import MISSING_BUSINESS_KEY
from salesdwh.staging.rules import (
    clean_text,
    parse_int,
    parse_iso_date,
    standardize_gender,
    standardize_marital_status,
)

TABLE_NAME = "staging.crm_cust_info"
SOURCE_TABLES = ["raw.crm_cust_info"]
KEY_COLUMN = "customer_number"
ENTITY = "customer"


def cleanse(record: RawRecord, today: Optional[date] = None) -> Union[CrmCustomer, Rejection]:
    """
    Cleanse one CRM customer.

    Both the numeric id (referenced by sales) and the customer number
    (shared with the ERP) are required.
    """
    customer_id = parse_int(record.get("cst_id"))
    customer_number = clean_text(record.get("cst_key"))

    if customer_id is None or customer_number is None:
        return Rejection(
            table=record.table,
            reason=MISSING_BUSINESS_KEY,
            key=customer_number or record.get("cst_id"),
            detail="cst_id and cst_key are required",
        )

    return CrmCustomer(
        customer_id=customer_id,
        customer_number=customer_number,
        first_name=clean_text(record.get("cst_firstname")),
        last_name=clean_text(record.get("cst_lastname")),
        marital_status=standardize_marital_status(record.get("cst_marital_status")),
        gender=standardize_gender(record.get("cst_gndr")),
        create_date=parse_iso_date(record.get("cst_create_date")),
    )
