"""
Database Client
===============
Supabase client helpers for raw, staging, and analytics schemas.

Environment-aware routing:
    ENVIRONMENT=dev  → all tables go to 'dev' schema
    ENVIRONMENT=prod → tables go to their defined schema (raw, staging, analytics)
"""

from contextlib import contextmanager
from functools import lru_cache

from salesdwh.config import get_settings

PAGE_SIZE = 1000


@lru_cache
def get_supabase_client():
    """
    Get Supabase client.

    Returns:
        Supabase client instance
    """
    # Import here to avoid requiring supabase for pure engine use
    from supabase import create_client

    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_service_key)


def _resolve_table(table_name: str) -> tuple[str, str]:
    """
    Resolve table name to (schema, table) based on environment.

    In dev: all tables route to 'dev' schema with original table name
    In prod: tables use their defined schema (raw, staging, analytics)

    Args:
        table_name: Full table name (e.g., 'raw.crm_cust_info')

    Returns:
        Tuple of (schema, table)

    Examples:
        ENVIRONMENT=prod: 'raw.crm_cust_info' → ('raw', 'crm_cust_info')
        ENVIRONMENT=dev:  'raw.crm_cust_info' → ('dev', 'raw_crm_cust_info')
    """
    settings = get_settings()

    # Parse schema.table
    if "." in table_name:
        schema, table = table_name.split(".", 1)
    else:
        schema, table = "public", table_name

    # In dev, route everything to 'dev' schema with schema prefix on table name
    if settings.environment == "dev":
        return "dev", f"{schema}_{table}"

    return schema, table


def insert_batch(
    table_name: str,
    records: list[dict],
    batch_size: int | None = None,
) -> int:
    """
    Insert records in batches.

    Args:
        table_name: Full table name (e.g., 'analytics.fact_sales')
        records: List of records to insert
        batch_size: Records per batch (defaults to settings.batch_size)

    Returns:
        Number of records inserted
    """
    if not records:
        return 0

    batch_size = batch_size or get_settings().batch_size
    client = get_supabase_client()
    schema, table = _resolve_table(table_name)
    total = 0

    for i in range(0, len(records), batch_size):
        batch = records[i : i + batch_size]
        client.schema(schema).table(table).insert(batch).execute()
        total += len(batch)

    return total



def read_table(
    table_name: str,
    columns: str = "*",
    filters: dict | None = None,
    limit: int | None = None,
    order_by: list[str] | None = None,
) -> list[dict]:
    """
    Read records from a table, paging through the whole result.

    Pages are only stable when ``order_by`` names a unique ordering; without
    it the store may return rows in a different order for each page.

    Args:
        table_name: Full table name (e.g., 'raw.crm_cust_info')
        columns: Columns to select (default: all)
        filters: Optional filters as {column: value}
        limit: Optional row limit
        order_by: Columns to sort by, ascending

    Returns:
        List of records, sorted by ``order_by`` when given
    """
    client = get_supabase_client()
    schema, table = _resolve_table(table_name)
    records: list[dict] = []
    offset = 0

    while True:
        query = client.schema(schema).table(table).select(columns)

        if filters:
            for col, val in filters.items():
                query = query.eq(col, val)

        for column in order_by or []:
            query = query.order(column)

        end = offset + PAGE_SIZE - 1
        if limit is not None:
            end = min(end, limit - 1)

        page = list(query.range(offset, end).execute().data)  # type: ignore[arg-type]
        records.extend(page)

        if len(page) < end - offset + 1 or (limit is not None and len(records) >= limit):
            break
        offset += PAGE_SIZE

    return records


# =============================================================================
# Loads
# =============================================================================
#
# Writes never touch a target table directly. Rows go to a shadow table
# (<table>__load, same columns) and one call to the database function in
# sql/apply_table_loads.sql moves every staged table into place inside a
# single transaction, so readers see either the previous refresh or the new
# one.

LOAD_SUFFIX = "__load"
APPLY_FUNCTION = "apply_table_loads"


def stage_rows(table_name: str, records: list[dict], key_column: str) -> int:
    """
    Clear the shadow table of ``table_name`` and insert ``records`` into it.

    Args:
        table_name: Full target table name (e.g., 'analytics.dim_customer')
        records: Rows to stage
        key_column: Non-null column used to match every leftover staged row

    Returns:
        Number of records staged
    """
    client = get_supabase_client()
    shadow_name = table_name + LOAD_SUFFIX
    schema, shadow = _resolve_table(shadow_name)

    client.schema(schema).table(shadow).delete().filter(key_column, "not.is", "null").execute()

    return insert_batch(shadow_name, records)


def load_operation(
    table_name: str,
    mode: str,
    key_column: str,
    business_key: str | None = None,
    close_superseded: bool = False,
) -> dict:
    """
    Describe how a staged table is applied to its target.

    Args:
        table_name: Full target table name
        mode: 'replace' (target becomes the staged rows) or 'upsert'
            (staged rows inserted or updated by key, nothing deleted)
        key_column: Key used for conflicts
        business_key: Natural key of an SCD Type 2 dimension
        close_superseded: Clear is_current on stored versions of a business
            key that arrives with a new current version

    Returns:
        JSON-serializable operation for apply_loads
    """
    schema, table = _resolve_table(table_name)
    return {
        "schema": schema,
        "table": table,
        "shadow": table + LOAD_SUFFIX,
        "mode": mode,
        "key_column": key_column,
        "business_key": business_key,
        "close_superseded": close_superseded,
    }


def apply_loads(operations: list[dict]) -> None:
    """Apply staged tables to their targets in one database transaction."""
    if not operations:
        return

    get_supabase_client().rpc(APPLY_FUNCTION, {"operations": operations}).execute()


class SupabaseSink:
    """
    TableSink backed by the staging and analytics schemas.

    Outside ``transaction()`` each write is applied as soon as it is staged.
    Inside it, operations are collected and applied together when the block
    exits cleanly; on an exception nothing reaches the target tables.
    """

    def __init__(self):
        self._pending: list[dict] | None = None

    @contextmanager
    def transaction(self):
        self._pending = []
        try:
            yield self
            apply_loads(self._pending)
        finally:
            self._pending = None

    def _load(self, table_name: str, rows: list[dict], operation: dict) -> int:
        count = stage_rows(table_name, rows, operation["key_column"])
        if self._pending is None:
            apply_loads([operation])
        else:
            self._pending.append(operation)
        return count

    def replace_table(self, table_name: str, rows: list[dict], key_column: str) -> int:
        return self._load(table_name, rows, load_operation(table_name, "replace", key_column))

    def upsert_versions(
        self,
        table_name: str,
        rows: list[dict],
        key_column: str,
        business_key: str,
        close_superseded: bool = True,
    ) -> int:
        operation = load_operation(
            table_name, "upsert", key_column, business_key, close_superseded
        )
        return self._load(table_name, rows, operation)

    def upsert_rows(self, table_name: str, rows: list[dict], key_column: str) -> int:
        return self._load(table_name, rows, load_operation(table_name, "upsert", key_column))
