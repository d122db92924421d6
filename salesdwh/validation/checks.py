"""
Data Quality Checks
===================
Individual check functions over the persisted (dict) form of the model.
"""

from collections import Counter, defaultdict
from datetime import date, timedelta
from typing import Optional

from salesdwh.staging.rules import MIN_BIRTHDATE, NOT_AVAILABLE
from salesdwh.validation.core import DQReport, add_check, add_stat

GENDERS = {"Male", "Female", NOT_AVAILABLE}


def _as_date(value) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _pct(part: int, whole: int) -> str:
    return f"{part:,}/{whole:,} ({part / whole * 100:.1f}%)" if whole else "0/0"


def check_required_fields(
    report: DQReport,
    dim_customer: list[dict],
    dim_product: list[dict],
    fact_sales: list[dict],
) -> None:
    """Check that required fields are populated."""
    if dim_customer:
        add_check(
            report,
            "REQUIRED_FIELD",
            "dim_customer.customer_number NOT NULL",
            sum(1 for c in dim_customer if c.get("customer_number")),
            len(dim_customer),
        )

    if dim_product:
        add_check(
            report,
            "REQUIRED_FIELD",
            "dim_product.product_number NOT NULL",
            sum(1 for p in dim_product if p.get("product_number")),
            len(dim_product),
        )

    if fact_sales:
        add_check(
            report,
            "REQUIRED_FIELD",
            "fact_sales.order_number NOT NULL",
            sum(1 for f in fact_sales if f.get("order_number")),
            len(fact_sales),
        )


def check_uniqueness(
    report: DQReport,
    dim_customer: list[dict],
    dim_product: list[dict],
    fact_sales: list[dict],
) -> None:
    """Check surrogate and natural key uniqueness."""
    if dim_customer:
        add_check(
            report,
            "UNIQUENESS",
            "dim_customer.customer_key is unique",
            len(set(c["customer_key"] for c in dim_customer)),
            len(dim_customer),
        )
        add_check(
            report,
            "UNIQUENESS",
            "dim_customer.customer_number is unique",
            len(set(c["customer_number"] for c in dim_customer)),
            len(dim_customer),
        )

    if dim_product:
        add_check(
            report,
            "UNIQUENESS",
            "dim_product.product_key is unique",
            len(set(p["product_key"] for p in dim_product)),
            len(dim_product),
        )
        add_check(
            report,
            "UNIQUENESS",
            "dim_product (product_number, effective_start) is unique",
            len(set((p["product_number"], p.get("effective_start")) for p in dim_product)),
            len(dim_product),
            message="SCD Type 2 version identity must be unique",
        )

    if fact_sales:
        add_check(
            report,
            "UNIQUENESS",
            "fact_sales (order_number, line_number) is unique",
            len(set((f["order_number"], f["line_number"]) for f in fact_sales)),
            len(fact_sales),
        )


def check_scd2(report: DQReport, dim_product: list[dict]) -> None:
    """
    Check version history per product.

    Exactly one current version with an open end, and contiguous,
    non-overlapping intervals in effective_start order.
    """
    if not dim_product:
        return

    versions_by_product = defaultdict(list)
    for p in dim_product:
        versions_by_product[p["product_number"]].append(p)

    one_current = 0
    contiguous = 0

    for versions in versions_by_product.values():
        current = [v for v in versions if v.get("is_current")]
        if len(current) == 1 and current[0].get("effective_end") is None:
            one_current += 1

        ordered = sorted(
            versions,
            key=lambda v: (v.get("effective_start") is not None, _as_date(v.get("effective_start"))),
        )
        ok = ordered[-1].get("effective_end") is None and ordered[-1].get("is_current")
        for this, following in zip(ordered, ordered[1:]):
            next_start = _as_date(following.get("effective_start"))
            end = _as_date(this.get("effective_end"))
            if next_start is None or end != next_start - timedelta(days=1) or this.get("is_current"):
                ok = False
        contiguous += 1 if ok else 0

    products = len(versions_by_product)
    add_check(
        report,
        "SCD2",
        "dim_product: 1 open current version per product_number",
        one_current,
        products,
        message=f"{products - one_current} products violate" if one_current != products else "OK",
    )
    add_check(
        report,
        "SCD2",
        "dim_product: contiguous, non-overlapping intervals",
        contiguous,
        products,
    )


def check_referential_integrity(
    report: DQReport,
    dim_customer: list[dict],
    dim_product: list[dict],
    fact_sales: list[dict],
) -> None:
    """Non-null fact keys must exist; product keys must be valid on the order date."""
    if not fact_sales:
        return

    valid_customer_keys = set(c["customer_key"] for c in dim_customer)
    product_by_key = {p["product_key"]: p for p in dim_product}

    with_customer = [f for f in fact_sales if f.get("customer_key") is not None]
    valid = sum(1 for f in with_customer if f["customer_key"] in valid_customer_keys)
    add_check(
        report,
        "REFERENTIAL_INTEGRITY",
        "fact_sales.customer_key → dim_customer",
        valid,
        len(with_customer),
        message=f"{valid}/{len(with_customer)} match ({len(fact_sales) - len(with_customer)} NULL)",
    )

    with_product = [f for f in fact_sales if f.get("product_key") is not None]
    in_interval = 0
    for f in with_product:
        version = product_by_key.get(f["product_key"])
        if version is None:
            continue
        order_date = _as_date(f.get("order_date"))
        if order_date is None:
            in_interval += 1 if version.get("is_current") else 0
            continue
        start = _as_date(version.get("effective_start"))
        end = _as_date(version.get("effective_end"))
        if (start is None or start <= order_date) and (end is None or order_date <= end):
            in_interval += 1

    add_check(
        report,
        "REFERENTIAL_INTEGRITY",
        "fact_sales.product_key → dim_product version valid on order_date",
        in_interval,
        len(with_product),
        message=f"{len(fact_sales) - len(with_product)} NULL",
    )


def check_measures(report: DQReport, fact_sales: list[dict]) -> None:
    """quantity, price, sales_amount > 0 and sales_amount = quantity × price."""
    if not fact_sales:
        return

    positive = sum(
        1
        for f in fact_sales
        if f["quantity"] > 0 and f["price"] > 0 and f["sales_amount"] > 0
    )
    add_check(report, "BUSINESS_LOGIC", "Measures are all > 0", positive, len(fact_sales))

    # Price is rounded to cents, so allow half a cent per unit
    consistent = sum(
        1
        for f in fact_sales
        if abs(f["sales_amount"] - f["quantity"] * f["price"]) <= f["quantity"] * 0.005 + 0.005
    )
    add_check(
        report,
        "BUSINESS_LOGIC",
        "sales_amount = quantity × price",
        consistent,
        len(fact_sales),
    )


def check_customer_domains(
    report: DQReport, dim_customer: list[dict], as_of: Optional[date] = None
) -> None:
    """Gender in {Male, Female, n/a}; birthdate null or within range."""
    if not dim_customer:
        return

    as_of = as_of or date.today()

    add_check(
        report,
        "DOMAIN",
        "dim_customer.gender in (Male, Female, n/a)",
        sum(1 for c in dim_customer if c.get("gender") in GENDERS),
        len(dim_customer),
    )

    in_range = 0
    for c in dim_customer:
        birthdate = _as_date(c.get("birthdate"))
        if birthdate is None or MIN_BIRTHDATE <= birthdate <= as_of:
            in_range += 1
    add_check(
        report,
        "DOMAIN",
        f"dim_customer.birthdate null or in [{MIN_BIRTHDATE}, {as_of}]",
        in_range,
        len(dim_customer),
    )


def collect_statistics(
    report: DQReport,
    dim_customer: list[dict],
    dim_product: list[dict],
    fact_sales: list[dict],
) -> None:
    """Collect informational statistics."""
    if dim_customer:
        with_country = sum(1 for c in dim_customer if c.get("country") != NOT_AVAILABLE)
        add_stat(report, "COMPLETENESS", "dim_customer.country", _pct(with_country, len(dim_customer)))

        with_birthdate = sum(1 for c in dim_customer if c.get("birthdate"))
        add_stat(
            report, "COMPLETENESS", "dim_customer.birthdate", _pct(with_birthdate, len(dim_customer))
        )

    if dim_product:
        version_counts = Counter(p["product_number"] for p in dim_product)
        multi = sum(1 for count in version_counts.values() if count > 1)
        add_stat(
            report,
            "HISTORY",
            "Products with 2+ versions",
            _pct(multi, len(version_counts)),
        )

    if fact_sales:
        # Malformed order dates are repaired to null, never a failure
        with_order_date = sum(1 for f in fact_sales if f.get("order_date"))
        add_stat(
            report,
            "COMPLETENESS",
            "fact_sales.order_date",
            _pct(with_order_date, len(fact_sales)),
        )

        for column in ("customer_key", "product_key"):
            resolved = sum(1 for f in fact_sales if f.get(column) is not None)
            add_stat(
                report,
                "COVERAGE",
                f"fact_sales.{column} resolved",
                _pct(resolved, len(fact_sales)),
            )
