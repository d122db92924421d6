"""
Analytics: fact_sales
=====================
Sales fact (grain: one row per cleansed sales order line).

Product keys resolve to the version valid on the order date; customer keys
to the single customer row. Unresolvable references stay null and are
reported instead of failing the run.
"""

from collections import Counter, defaultdict
from datetime import date
from typing import Optional

from salesdwh.models import FactSalesRow, ProductDimRow, SalesLine
from salesdwh.report import DUPLICATE_FACT_LINE, UNRESOLVED_REFERENCE, RunReport

TABLE_NAME = "analytics.fact_sales"
SOURCE_TABLES = ["staging.crm_sales_details", "analytics.dim_customer", "analytics.dim_product"]
KEY_COLUMN = "order_number"


def resolve_product_key(
    versions: Optional[list[ProductDimRow]], order_date: Optional[date]
) -> Optional[int]:
    """
    Surrogate key of the version valid on ``order_date``.

    A line without an order date resolves to the current version.
    """
    if not versions:
        return None

    if order_date is None:
        current = [v for v in versions if v.is_current]
        return current[0].product_key if current else None

    for version in versions:
        if version.covers(order_date):
            return version.product_key

    return None


def transform(
    sales_lines: list[SalesLine],
    customer_keys: dict[int, int],
    product_versions: dict[str, list[ProductDimRow]],
    report: RunReport,
) -> list[FactSalesRow]:
    """
    Build fact_sales rows.

    Args:
        sales_lines: Cleansed sales lines in ingestion order
        customer_keys: customer_id → customer_key
        product_versions: product_number → versions ordered by effective_start
        report: RunReport receiving unresolved references and duplicate lines

    Returns:
        One FactSalesRow per sales line
    """
    fact_sales = []
    line_counter: dict = defaultdict(int)
    line_identities: Counter = Counter()

    for line in sales_lines:
        line_counter[line.order_number] += 1
        line_identities[(line.order_number, line.product_number)] += 1

        customer_key = customer_keys.get(line.customer_id) if line.customer_id is not None else None
        if customer_key is None:
            report.warn(
                UNRESOLVED_REFERENCE,
                "customer",
                line.order_number,
                f"customer_id={line.customer_id} not in dim_customer",
            )

        versions = product_versions.get(line.product_number) if line.product_number else None
        product_key = resolve_product_key(versions, line.order_date)
        if product_key is None:
            reason = (
                "not in dim_product"
                if not versions
                else f"no version valid on {line.order_date}"
            )
            report.warn(
                UNRESOLVED_REFERENCE,
                "product",
                line.order_number,
                f"product_number={line.product_number} {reason}",
            )

        fact_sales.append(
            FactSalesRow(
                order_number=line.order_number,
                line_number=line_counter[line.order_number],
                customer_key=customer_key,
                product_key=product_key,
                customer_id=line.customer_id,
                product_number=line.product_number,
                order_date=line.order_date,
                ship_date=line.ship_date,
                due_date=line.due_date,
                quantity=line.quantity,
                price=line.price,
                sales_amount=line.sales_amount,
            )
        )

    for (order_number, product_number), count in line_identities.items():
        if count > 1:
            report.warn(
                DUPLICATE_FACT_LINE,
                "sales_line",
                order_number,
                f"product_number={product_number} appears {count} times; all lines kept",
            )

    return fact_sales
