"""
Analytics: dim_customer
=======================
Customer dimension (one row per customer number, replaced every run).

Surrogate keys are persisted: a customer number keeps the key it was given
in an earlier refresh. New customer numbers get keys after the highest key
already issued, in sorted customer-number order.

Issued keys live in an append-only key map (KEY_MAP_TABLE) that outlives the
dimension rows, so a key freed by a removed customer is never handed out again.
"""

from typing import Optional

from salesdwh.models import CustomerDimRow, MergedCustomer
from salesdwh.staging.rules import NOT_AVAILABLE

TABLE_NAME = "analytics.dim_customer"
SOURCE_TABLES = ["staging.crm_cust_info", "staging.erp_cust_az12", "staging.erp_loc_a101"]
KEY_COLUMN = "customer_key"

KEY_MAP_TABLE = "analytics.customer_key_map"
KEY_MAP_COLUMN = "customer_number"


def assign_keys(business_keys: list[str], prior_keys: dict[str, int]) -> dict[str, int]:
    """
    Map every business key to a surrogate key.

    Args:
        business_keys: Customer numbers in this run
        prior_keys: customer_number → customer_key from the previous refresh

    Returns:
        customer_number → customer_key for this run
    """
    next_key = max(prior_keys.values(), default=0) + 1
    keys = {}

    for number in sorted(set(business_keys)):
        if number in prior_keys:
            keys[number] = prior_keys[number]
        else:
            keys[number] = next_key
            next_key += 1

    return keys


def full_name(first_name: Optional[str], last_name: Optional[str]) -> Optional[str]:
    parts = [p for p in (first_name, last_name) if p]
    return " ".join(parts) or None


def transform(
    customers: list[MergedCustomer], prior_keys: Optional[dict[str, int]] = None
) -> list[CustomerDimRow]:
    """
    Build dim_customer rows.

    Args:
        customers: Merged customers
        prior_keys: customer_number → customer_key from the previous refresh

    Returns:
        CustomerDimRows ordered by customer_key
    """
    keys = assign_keys([c.customer_number for c in customers], prior_keys or {})

    rows = [
        CustomerDimRow(
            customer_key=keys[c.customer_number],
            customer_id=c.customer_id,
            customer_number=c.customer_number,
            first_name=c.first_name,
            last_name=c.last_name,
            full_name=full_name(c.first_name, c.last_name),
            marital_status=c.marital_status or NOT_AVAILABLE,
            gender=c.gender or NOT_AVAILABLE,
            birthdate=c.birthdate,
            country=c.country or NOT_AVAILABLE,
            create_date=c.create_date,
        )
        for c in customers
    ]

    return sorted(rows, key=lambda r: r.customer_key)


def key_lookup(rows: list[CustomerDimRow]) -> dict[int, int]:
    """customer_id → customer_key, for rows carrying a CRM id."""
    return {r.customer_id: r.customer_key for r in rows if r.customer_id is not None}


def key_map_rows(rows: list[CustomerDimRow]) -> list[dict]:
    """Key map entries for this run. Upserting them never removes an issued key."""
    return [{"customer_number": r.customer_number, "customer_key": r.customer_key} for r in rows]
