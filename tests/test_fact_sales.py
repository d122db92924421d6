"""
fact_sales Tests
================
Point-in-time key resolution and line numbering.
"""

from datetime import date
from decimal import Decimal

from salesdwh.analytics import fact_sales
from salesdwh.models import ProductDimRow, SalesLine
from salesdwh.report import DUPLICATE_FACT_LINE, UNRESOLVED_REFERENCE, RunReport


def version(key, start, end, is_current):
    return ProductDimRow(
        product_key=key,
        product_number="BK-1",
        product_id=1,
        product_name="Road-150",
        category_id="BI_RB",
        category="Bikes",
        subcategory="Road Bikes",
        maintenance="No",
        cost=Decimal("10"),
        product_line="Road",
        effective_start=start,
        effective_end=end,
        is_current=is_current,
    )


VERSIONS = {
    "BK-1": [
        version(1, None, date(2011, 6, 30), False),
        version(2, date(2011, 7, 1), date(2012, 6, 30), False),
        version(3, date(2012, 7, 1), None, True),
    ]
}


def line(order_number, product_number="BK-1", customer_id=11000, order_date=date(2012, 1, 1)):
    return SalesLine(
        order_number=order_number,
        product_number=product_number,
        customer_id=customer_id,
        order_date=order_date,
        ship_date=None,
        due_date=None,
        quantity=1,
        price=Decimal("10.00"),
        sales_amount=Decimal("10.00"),
    )


class TestResolveProductKey:
    def test_version_valid_on_order_date(self):
        versions = VERSIONS["BK-1"]
        assert fact_sales.resolve_product_key(versions, date(2010, 1, 1)) == 1
        assert fact_sales.resolve_product_key(versions, date(2011, 7, 1)) == 2
        assert fact_sales.resolve_product_key(versions, date(2012, 6, 30)) == 2
        assert fact_sales.resolve_product_key(versions, date(2030, 1, 1)) == 3

    def test_missing_order_date_uses_current(self):
        assert fact_sales.resolve_product_key(VERSIONS["BK-1"], None) == 3

    def test_no_covering_version(self):
        versions = [version(2, date(2011, 7, 1), None, True)]
        assert fact_sales.resolve_product_key(versions, date(2010, 1, 1)) is None

    def test_unknown_product(self):
        assert fact_sales.resolve_product_key(None, date(2010, 1, 1)) is None


class TestTransform:
    def test_keys_and_line_numbers(self):
        report = RunReport()

        rows = fact_sales.transform(
            [line("SO1"), line("SO2", order_date=date(2013, 1, 1)), line("SO1", order_date=None)],
            {11000: 5},
            VERSIONS,
            report,
        )

        assert [(r.order_number, r.line_number) for r in rows] == [("SO1", 1), ("SO2", 1), ("SO1", 2)]
        assert [r.product_key for r in rows] == [2, 3, 3]
        assert all(r.customer_key == 5 for r in rows)
        assert report.warnings_of(DUPLICATE_FACT_LINE)[0].key == "SO1"
        assert report.warnings_of(UNRESOLVED_REFERENCE) == []

    def test_unresolved_references_kept_with_null_keys(self):
        report = RunReport()

        rows = fact_sales.transform(
            [line("SO1", product_number="XX-9", customer_id=99999), line("SO2", customer_id=None)],
            {11000: 5},
            VERSIONS,
            report,
        )

        assert len(rows) == 2
        assert rows[0].customer_key is None
        assert rows[0].product_key is None
        assert rows[1].customer_key is None
        assert rows[1].product_key == 2
        entities = sorted(w.entity for w in report.warnings_of(UNRESOLVED_REFERENCE))
        assert entities == ["customer", "customer", "product"]

    def test_measures_carried_through(self):
        (row,) = fact_sales.transform([line("SO1")], {11000: 5}, VERSIONS, RunReport())

        assert row.quantity == 1
        assert row.price == Decimal("10.00")
        assert row.sales_amount == Decimal("10.00")
        assert row.to_row()["sales_amount"] == 10.0
