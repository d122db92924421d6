"""
Staging: crm_sales_details
==========================
CRM sales order lines → SalesLine.

Measures are reconciled so that quantity, price and sales amount are all
positive and amount = quantity × price; a line that cannot get there is
rejected.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Union

from salesdwh.models import RawRecord, Rejection, SalesLine
from salesdwh.report import MISSING_BUSINESS_KEY, UNREPAIRABLE_MEASURE
from salesdwh.staging.rules import (
    clean_text,
    parse_decimal,
    parse_int,
    parse_yyyymmdd,
    to_cents,
)

TABLE_NAME = "staging.crm_sales_details"
SOURCE_TABLES = ["raw.crm_sales_details"]
KEY_COLUMN = "order_number"
ENTITY = "sales_line"


def reconcile_measures(
    quantity: Optional[int],
    price: Optional[Decimal],
    sales_amount: Optional[Decimal],
) -> Optional[tuple[int, Decimal, Decimal]]:
    """
    Repair (quantity, price, sales_amount) or return None when unrepairable.

    - sales amount null, ≤ 0, or inconsistent with a given price → quantity × |price|
    - price null or ≤ 0 → sales amount ÷ quantity
    """
    if quantity is None or quantity <= 0:
        return None

    unit_price = abs(price) if price else None

    if (
        sales_amount is None
        or sales_amount <= 0
        or (unit_price is not None and sales_amount != quantity * unit_price)
    ):
        sales_amount = quantity * unit_price if unit_price is not None else None

    if sales_amount is None:
        return None

    if price is None or price <= 0:
        price = sales_amount / quantity

    price, sales_amount = to_cents(price), to_cents(sales_amount)
    if price <= 0 or sales_amount <= 0:
        return None

    return quantity, price, sales_amount


def cleanse(record: RawRecord, today: Optional[date] = None) -> Union[SalesLine, Rejection]:
    order_number = clean_text(record.get("sls_ord_num"))
    if order_number is None:
        return Rejection(
            table=record.table,
            reason=MISSING_BUSINESS_KEY,
            key=None,
            detail="sls_ord_num is required",
        )

    measures = reconcile_measures(
        parse_int(record.get("sls_quantity")),
        parse_decimal(record.get("sls_price")),
        parse_decimal(record.get("sls_sales")),
    )
    if measures is None:
        return Rejection(
            table=record.table,
            reason=UNREPAIRABLE_MEASURE,
            key=order_number,
            detail=(
                f"quantity={record.get('sls_quantity')}, price={record.get('sls_price')}, "
                f"sales={record.get('sls_sales')}"
            ),
        )

    quantity, price, sales_amount = measures

    return SalesLine(
        order_number=order_number,
        product_number=clean_text(record.get("sls_prd_key")),
        customer_id=parse_int(record.get("sls_cust_id")),
        order_date=parse_yyyymmdd(record.get("sls_order_dt")),
        ship_date=parse_yyyymmdd(record.get("sls_ship_dt")),
        due_date=parse_yyyymmdd(record.get("sls_due_dt")),
        quantity=quantity,
        price=price,
        sales_amount=sales_amount,
    )
