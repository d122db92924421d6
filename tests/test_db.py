"""
Database Client Tests
=====================
Table routing, paging, and write helpers against a fake Supabase client.
"""

import pytest

from salesdwh import db
from salesdwh.config import get_settings
from salesdwh.raw import SourceTableError, fetch_raw


class FakeQuery:
    def __init__(self, client, schema, table):
        self.client = client
        self.target = (schema, table)
        self.ops: list[tuple] = []

    def _op(self, *op):
        self.ops.append(op)
        return self

    def select(self, columns):
        return self._op("select", columns)

    def insert(self, rows):
        return self._op("insert", rows)

    def upsert(self, rows, on_conflict=None):
        return self._op("upsert", rows, on_conflict)

    def update(self, values):
        return self._op("update", values)

    def delete(self):
        return self._op("delete")

    def eq(self, column, value):
        return self._op("eq", column, value)

    def neq(self, column, value):
        return self._op("neq", column, value)

    def filter(self, column, operator, value):
        return self._op("filter", column, operator, value)

    def order(self, column):
        return self._op("order", column)

    def range(self, start, end):
        return self._op("range", start, end)

    def execute(self):
        self.client.executed.append((self.target, self.ops))
        data = []
        for op in self.ops:
            if op[0] == "range":
                data = self.client.rows[op[1] : op[2] + 1]
        return type("Response", (), {"data": data})()


class FakeClient:
    def __init__(self, rows=None):
        self.rows = rows or []
        self.executed: list = []
        self.rpcs: list = []
        self._schema = None

    def schema(self, name):
        self._schema = name
        return self

    def table(self, name):
        return FakeQuery(self, self._schema, name)

    def rpc(self, function, params):
        self.rpcs.append((function, params))
        return type("Call", (), {"execute": lambda call: None})()


@pytest.fixture
def env(monkeypatch):
    """Set ENVIRONMENT for one test and reset cached settings around it."""

    def set_environment(value):
        monkeypatch.setenv("ENVIRONMENT", value)
        get_settings.cache_clear()

    yield set_environment
    get_settings.cache_clear()


@pytest.fixture
def client(monkeypatch):
    fake = FakeClient()
    monkeypatch.setattr(db, "get_supabase_client", lambda: fake)
    return fake


class TestResolveTable:
    def test_dev_routes_to_dev_schema(self, env):
        env("dev")
        assert db._resolve_table("raw.crm_cust_info") == ("dev", "raw_crm_cust_info")

    def test_prod_keeps_schema(self, env):
        env("prod")
        assert db._resolve_table("analytics.dim_product") == ("analytics", "dim_product")

    def test_unqualified_name_uses_public(self, env):
        env("prod")
        assert db._resolve_table("events") == ("public", "events")


class TestReadTable:
    def test_pages_through_all_rows(self, env, client, monkeypatch):
        env("prod")
        monkeypatch.setattr(db, "PAGE_SIZE", 2)
        client.rows = [{"id": i} for i in range(5)]

        rows = db.read_table("raw.erp_loc_a101")

        assert [r["id"] for r in rows] == [0, 1, 2, 3, 4]
        assert len(client.executed) == 3

    def test_limit(self, env, client):
        env("prod")
        client.rows = [{"id": i} for i in range(10)]

        assert len(db.read_table("raw.erp_loc_a101", limit=3)) == 3

    def test_every_page_is_ordered(self, env, client, monkeypatch):
        env("prod")
        monkeypatch.setattr(db, "PAGE_SIZE", 2)
        client.rows = [{"id": i} for i in range(3)]

        db.read_table("analytics.fact_sales", order_by=["order_number", "line_number"])

        for _, ops in client.executed:
            assert [op for op in ops if op[0] == "order"] == [
                ("order", "order_number"),
                ("order", "line_number"),
            ]


class TestWrites:
    def test_insert_batches(self, env, client):
        env("prod")

        count = db.insert_batch("analytics.fact_sales", [{"n": i} for i in range(5)], batch_size=2)

        assert count == 5
        assert len(client.executed) == 3

    def test_stage_rows_refills_shadow_table(self, env, client):
        env("prod")

        count = db.stage_rows("analytics.dim_customer", [{"customer_key": 1}], "customer_key")

        assert count == 1
        (target, delete_ops), (_, insert_ops) = client.executed
        assert target == ("analytics", "dim_customer__load")
        assert delete_ops == [("delete",), ("filter", "customer_key", "not.is", "null")]
        assert insert_ops == [("insert", [{"customer_key": 1}])]

    def test_dev_shadow_table_routes_to_dev_schema(self, env, client):
        env("dev")

        db.stage_rows("analytics.dim_customer", [], "customer_key")

        assert client.executed[0][0] == ("dev", "analytics_dim_customer__load")
        assert db.load_operation("analytics.dim_customer", "replace", "customer_key")["shadow"] == (
            "analytics_dim_customer__load"
        )

    def test_write_outside_transaction_applies_at_once(self, env, client):
        env("prod")

        db.SupabaseSink().replace_table("analytics.dim_customer", [{"customer_key": 1}], "customer_key")

        ((function, params),) = client.rpcs
        assert function == db.APPLY_FUNCTION
        assert params["operations"] == [
            {
                "schema": "analytics",
                "table": "dim_customer",
                "shadow": "dim_customer__load",
                "mode": "replace",
                "key_column": "customer_key",
                "business_key": None,
                "close_superseded": False,
            }
        ]

    def test_transaction_applies_every_table_in_one_call(self, env, client):
        env("prod")
        sink = db.SupabaseSink()
        rows = [
            {"product_key": 2, "product_number": "BK-1", "is_current": False},
            {"product_key": 3, "product_number": "BK-1", "is_current": True},
        ]

        with sink.transaction():
            sink.upsert_rows("analytics.customer_key_map", [{"customer_number": "AW1"}], "customer_number")
            sink.replace_table("analytics.fact_sales", [], "order_number")
            assert sink.upsert_versions("analytics.dim_product", rows, "product_key", "product_number") == 2
            assert client.rpcs == []

        ((_, params),) = client.rpcs
        operations = params["operations"]
        assert [(op["table"], op["mode"]) for op in operations] == [
            ("customer_key_map", "upsert"),
            ("fact_sales", "replace"),
            ("dim_product", "upsert"),
        ]
        assert operations[2]["business_key"] == "product_number"
        assert operations[2]["close_superseded"] is True

    def test_failed_transaction_applies_nothing(self, env, client):
        env("prod")
        sink = db.SupabaseSink()

        with pytest.raises(ConnectionError):
            with sink.transaction():
                sink.replace_table("analytics.dim_customer", [{"customer_key": 1}], "customer_key")
                raise ConnectionError("connection reset")

        assert client.rpcs == []

    def test_empty_writes_are_noops(self, client):
        assert db.insert_batch("analytics.fact_sales", []) == 0
        db.apply_loads([])
        assert client.executed == []
        assert client.rpcs == []

class TestFetchRaw:
    def test_projects_declared_columns_as_strings(self, env, client):
        env("prod")
        client.rows = [{"cid": "AW-00011000", "cntry": "DE", "_loaded_at": "2025-01-01"}, {"cid": 7}]

        records = fetch_raw("raw.erp_loc_a101")

        assert records[0].values == {"cid": "AW-00011000", "cntry": "DE"}
        assert records[1].get("cid") == "7"
        assert records[1].get("cntry") is None

    def test_reads_in_ingestion_order(self, env, client):
        env("prod")

        fetch_raw("raw.erp_px_cat_g1v2")

        ((target, ops),) = client.executed
        assert target == ("raw", "erp_px_cat_g1v2")
        assert ("order", "_ingested_id") in ops

    def test_unknown_table(self):
        with pytest.raises(SourceTableError):
            fetch_raw("raw.unknown")

    def test_read_failure_wrapped(self, monkeypatch):
        def broken(*args, **kwargs):
            raise ConnectionError("relation does not exist")

        monkeypatch.setattr("salesdwh.raw.sources.read_table", broken)

        with pytest.raises(SourceTableError, match="raw.crm_cust_info"):
            fetch_raw("raw.crm_cust_info")
