"""
Record Types
============
Typed records flowing raw → staging → merged → analytics.

Raw records are uniformly optional strings. Everything downstream carries
domain types (date, Decimal, int) and is immutable for the life of a run.
Persisted rows are produced with ``to_row()`` as JSON-ready dicts.
"""

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Mapping, Optional


def _jsonable(value: Any) -> Any:
    """Convert a typed value to something the Supabase client can send."""
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def _parse_date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _parse_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(str(value))


def start_order(start: Optional[date]) -> tuple:
    """Sort key for version start dates; an unknown start sorts first."""
    return (start is not None, start)


# =============================================================================
# Raw
# =============================================================================


@dataclass(frozen=True)
class RawRecord:
    """One untyped row from a raw source table."""

    table: str
    values: Mapping[str, Optional[str]]

    @classmethod
    def from_dict(cls, table: str, data: Mapping[str, Any], columns: list[str]) -> "RawRecord":
        """Project a stored row onto the declared columns as optional strings."""
        projected = {}
        for column in columns:
            value = data.get(column)
            projected[column] = None if value is None else str(value)
        return cls(table=table, values=MappingProxyType(projected))

    def get(self, column: str) -> Optional[str]:
        return self.values.get(column)


@dataclass(frozen=True)
class Rejection:
    """A raw record that could not be repaired into a cleansed record."""

    table: str
    reason: str
    key: Optional[str]
    detail: str = ""


# =============================================================================
# Cleansed (staging)
# =============================================================================


@dataclass(frozen=True)
class CrmCustomer:
    customer_id: int
    customer_number: str
    first_name: Optional[str]
    last_name: Optional[str]
    marital_status: str
    gender: str
    create_date: Optional[date]

    def to_row(self) -> dict:
        return {k: _jsonable(v) for k, v in asdict(self).items()}


@dataclass(frozen=True)
class ErpCustomer:
    customer_number: str
    birthdate: Optional[date]
    gender: str

    def to_row(self) -> dict:
        return {k: _jsonable(v) for k, v in asdict(self).items()}


@dataclass(frozen=True)
class Location:
    customer_number: str
    country: str

    def to_row(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Category:
    category_id: str
    category: Optional[str]
    subcategory: Optional[str]
    maintenance: str

    def to_row(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ProductVersion:
    product_id: Optional[int]
    product_number: str
    category_id: str
    product_name: Optional[str]
    cost: Decimal
    product_line: str
    start_date: Optional[date]

    def to_row(self) -> dict:
        return {k: _jsonable(v) for k, v in asdict(self).items()}


@dataclass(frozen=True)
class SalesLine:
    order_number: str
    product_number: Optional[str]
    customer_id: Optional[int]
    order_date: Optional[date]
    ship_date: Optional[date]
    due_date: Optional[date]
    quantity: int
    price: Decimal
    sales_amount: Decimal

    def to_row(self) -> dict:
        return {k: _jsonable(v) for k, v in asdict(self).items()}


# =============================================================================
# Merged
# =============================================================================


@dataclass(frozen=True)
class MergedCustomer:
    customer_number: str
    customer_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    marital_status: Optional[str] = None
    gender: Optional[str] = None
    birthdate: Optional[date] = None
    country: Optional[str] = None
    create_date: Optional[date] = None


@dataclass(frozen=True)
class MergedProductVersion:
    product_id: Optional[int]
    product_name: Optional[str]
    category_id: str
    category: Optional[str]
    subcategory: Optional[str]
    maintenance: Optional[str]
    cost: Decimal
    product_line: str
    start_date: Optional[date]


@dataclass(frozen=True)
class MergedProduct:
    """All incoming versions of one product, ordered by start date (null first)."""

    product_number: str
    versions: tuple[MergedProductVersion, ...] = field(default_factory=tuple)


# =============================================================================
# Analytics (dimensional)
# =============================================================================


@dataclass(frozen=True)
class CustomerDimRow:
    customer_key: int
    customer_id: Optional[int]
    customer_number: str
    first_name: Optional[str]
    last_name: Optional[str]
    full_name: Optional[str]
    marital_status: str
    gender: str
    birthdate: Optional[date]
    country: str
    create_date: Optional[date]

    def to_row(self) -> dict:
        return {k: _jsonable(v) for k, v in asdict(self).items()}


# Attributes compared to detect a changed product version
PRODUCT_ATTRIBUTES = (
    "product_id",
    "product_name",
    "category_id",
    "category",
    "subcategory",
    "maintenance",
    "cost",
    "product_line",
)


@dataclass(frozen=True)
class ProductDimRow:
    """
    One version of a product in dim_product.

    category_id is stored because product_number no longer carries it: the
    category prefix is cut off the raw key (see staging.rules.split_product_key).
    """

    product_key: int
    product_number: str
    product_id: Optional[int]
    product_name: Optional[str]
    category_id: str
    category: Optional[str]
    subcategory: Optional[str]
    maintenance: Optional[str]
    cost: Decimal
    product_line: str
    effective_start: Optional[date]
    effective_end: Optional[date]
    is_current: bool

    def attributes(self) -> tuple:
        return tuple(getattr(self, name) for name in PRODUCT_ATTRIBUTES)

    def covers(self, day: date) -> bool:
        """True when ``day`` lies in [effective_start, effective_end], null bounds open."""
        if self.effective_start is not None and day < self.effective_start:
            return False
        if self.effective_end is not None and day > self.effective_end:
            return False
        return True

    def to_row(self) -> dict:
        return {k: _jsonable(v) for k, v in asdict(self).items()}

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ProductDimRow":
        """Rebuild a persisted version (dates as ISO strings, money as numbers)."""
        product_id = row.get("product_id")
        return cls(
            product_key=int(row["product_key"]),
            product_number=row["product_number"],
            product_id=int(product_id) if product_id is not None else None,
            product_name=row.get("product_name"),
            category_id=row["category_id"],
            category=row.get("category"),
            subcategory=row.get("subcategory"),
            maintenance=row.get("maintenance"),
            cost=_parse_decimal(row.get("cost")) or Decimal("0"),
            product_line=row.get("product_line") or "n/a",
            effective_start=_parse_date(row.get("effective_start")),
            effective_end=_parse_date(row.get("effective_end")),
            is_current=bool(row.get("is_current")),
        )


@dataclass(frozen=True)
class FactSalesRow:
    order_number: str
    line_number: int
    customer_key: Optional[int]
    product_key: Optional[int]
    customer_id: Optional[int]
    product_number: Optional[str]
    order_date: Optional[date]
    ship_date: Optional[date]
    due_date: Optional[date]
    quantity: int
    price: Decimal
    sales_amount: Decimal

    def to_row(self) -> dict:
        return {k: _jsonable(v) for k, v in asdict(self).items()}
