"""
Cleansing Rules
===============
Field-level coercion and standardization shared by the staging modules.

Every function takes a raw optional string and never raises: a value that
cannot be parsed becomes the documented default (usually None).
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

NOT_AVAILABLE = "n/a"

MIN_BIRTHDATE = date(1924, 1, 1)

CENT = Decimal("0.01")

GENDERS = {
    "M": "Male",
    "MALE": "Male",
    "F": "Female",
    "FEMALE": "Female",
}

MARITAL_STATUSES = {
    "S": "Single",
    "SINGLE": "Single",
    "M": "Married",
    "MARRIED": "Married",
}

PRODUCT_LINES = {
    "M": "Mountain",
    "R": "Road",
    "S": "Other Sales",
    "T": "Touring",
}

# Keys are upper-cased, whitespace-collapsed raw values
COUNTRY_SYNONYMS = {
    "DE": "Germany",
    "DEU": "Germany",
    "GERMANY": "Germany",
    "US": "United States",
    "USA": "United States",
    "U.S.": "United States",
    "U.S.A.": "United States",
    "UNITED STATES": "United States",
    "UNITED STATES OF AMERICA": "United States",
    "UK": "United Kingdom",
    "GB": "United Kingdom",
    "GBR": "United Kingdom",
    "UNITED KINGDOM": "United Kingdom",
    "GREAT BRITAIN": "United Kingdom",
    "FR": "France",
    "FRA": "France",
    "CA": "Canada",
    "CAN": "Canada",
    "AU": "Australia",
    "AUS": "Australia",
}

MAINTENANCE_YES = {"Y", "YES", "TRUE", "1"}


# =============================================================================
# Text
# =============================================================================


def clean_text(value: Optional[str]) -> Optional[str]:
    """Trim and collapse internal whitespace. Empty → None."""
    if value is None:
        return None
    cleaned = " ".join(value.split())
    return cleaned or None


# =============================================================================
# Type coercion
# =============================================================================


def parse_int(value: Optional[str]) -> Optional[int]:
    """Parse an integer ("5", "5.0"). Non-integral or malformed → None."""
    number = parse_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)


def parse_decimal(value: Optional[str]) -> Optional[Decimal]:
    """Parse a finite decimal. Malformed → None."""
    text = clean_text(value)
    if text is None:
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse 'YYYY-MM-DD' (a trailing time part is ignored). Malformed → None."""
    text = clean_text(value)
    if text is None:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_yyyymmdd(value: Optional[str]) -> Optional[date]:
    """Parse an integer-encoded YYYYMMDD date. 0, wrong length, or impossible dates → None."""
    number = parse_int(value)
    if number is None or number <= 0:
        return None
    text = str(number)
    if len(text) != 8:
        return None
    try:
        return datetime.strptime(text, "%Y%m%d").date()
    except ValueError:
        return None


def to_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# Domain standardization
# =============================================================================


def standardize_gender(value: Optional[str]) -> str:
    text = clean_text(value)
    if text is None:
        return NOT_AVAILABLE
    return GENDERS.get(text.upper(), NOT_AVAILABLE)


def standardize_marital_status(value: Optional[str]) -> str:
    text = clean_text(value)
    if text is None:
        return NOT_AVAILABLE
    return MARITAL_STATUSES.get(text.upper(), NOT_AVAILABLE)


def standardize_product_line(value: Optional[str]) -> str:
    text = clean_text(value)
    if text is None:
        return NOT_AVAILABLE
    return PRODUCT_LINES.get(text.upper(), NOT_AVAILABLE)


def standardize_country(value: Optional[str]) -> str:
    """Known synonyms → canonical name; unknown passes through trimmed; empty → n/a."""
    text = clean_text(value)
    if text is None:
        return NOT_AVAILABLE
    return COUNTRY_SYNONYMS.get(text.upper(), text)


def standardize_maintenance(value: Optional[str]) -> str:
    text = clean_text(value)
    if text is not None and text.upper() in MAINTENANCE_YES:
        return "Yes"
    return "No"


def standardize_cost(value: Optional[str]) -> Decimal:
    """Null, malformed, or negative → 0."""
    cost = parse_decimal(value)
    if cost is None or cost < 0:
        return Decimal("0.00")
    return to_cents(cost)


def bounded_birthdate(value: Optional[str], today: date) -> Optional[date]:
    """Birthdate within [MIN_BIRTHDATE, today]; anything else → None."""
    birthdate = parse_iso_date(value)
    if birthdate is None or not MIN_BIRTHDATE <= birthdate <= today:
        return None
    return birthdate


def split_product_key(value: str) -> tuple[str, str]:
    """
    Split a raw CRM product key into (category_id, product_number).

    'CO-RF-FR-R92B-58' → ('CO_RF', 'FR-R92B-58'): the first 5 characters are
    the category prefix when a '-' follows them. A key without that prefix is
    category-coded as a whole: 'AB-12345' → ('AB_12345', 'AB-12345').
    """
    if len(value) > 6 and value[5] == "-":
        return value[:5].replace("-", "_"), value[6:]
    return value.replace("-", "_"), value


def normalize_customer_number(value: Optional[str]) -> Optional[str]:
    """ERP customer ids → CRM customer numbers ('NASAW00011000', 'AW-00011000' → 'AW00011000')."""
    text = clean_text(value)
    if text is None:
        return None
    if text.upper().startswith("NAS"):
        text = text[3:]
    return text.replace("-", "") or None
