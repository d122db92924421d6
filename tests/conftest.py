"""
Pytest Configuration
====================
Shared fixtures for all tests.
"""

import copy
import os
from contextlib import contextmanager

import pytest

from salesdwh.models import RawRecord
from salesdwh.raw import SOURCE_TABLES


@pytest.fixture(scope="session", autouse=True)
def set_test_env():
    """Set up test environment variables before any tests run."""
    # Set required env vars for testing
    os.environ["SUPABASE_URL"] = os.environ.get("SUPABASE_URL", "https://test.supabase.co")
    os.environ["SUPABASE_SERVICE_KEY"] = os.environ.get("SUPABASE_SERVICE_KEY", "test-key")
    os.environ["ENVIRONMENT"] = os.environ.get("ENVIRONMENT", "dev")

    # Clear any cached settings
    from salesdwh.config import get_settings

    get_settings.cache_clear()

    yield

    # Clean up after tests
    get_settings.cache_clear()


@pytest.fixture
def settings():
    """Provide settings instance for tests."""
    from salesdwh.config import get_settings

    return get_settings()


def make_record(table: str, **values) -> RawRecord:
    """RawRecord for ``table`` with unspecified columns null."""
    return RawRecord.from_dict(table, values, SOURCE_TABLES[table])


@pytest.fixture
def raw():
    """Factory: raw("raw.crm_cust_info", cst_id="1", ...) → RawRecord."""
    return make_record


def sample_snapshot() -> dict:
    """
    Small raw snapshot covering the common repairs.

    Customers: AW00011000 (CRM+ERP+location), AW00011001 (duplicated in CRM,
    gender from ERP), AW00011002 (ERP only), plus one CRM row with no keys.
    Products: FR-R92B-58 (one version), BK-R93R-62 (two versions).
    Sales: five lines, one unrepairable, one with unknown references.
    """
    return {
        "raw.crm_cust_info": [
            make_record(
                "raw.crm_cust_info",
                cst_id="11000",
                cst_key="AW00011000",
                cst_firstname=" Jon ",
                cst_lastname="Yang  ",
                cst_marital_status="M",
                cst_gndr="M",
                cst_create_date="2025-10-06",
            ),
            make_record(
                "raw.crm_cust_info",
                cst_id="11001",
                cst_key="AW00011001",
                cst_firstname="Eugene",
                cst_lastname="Huang",
                cst_marital_status="S",
                cst_create_date="2025-10-06",
            ),
            make_record(
                "raw.crm_cust_info",
                cst_id="11001",
                cst_key="AW00011001",
                cst_firstname="Eugene",
                cst_lastname="Huang",
                cst_marital_status="M",
                cst_create_date="2025-10-07",
            ),
            make_record("raw.crm_cust_info", cst_firstname="Nobody"),
        ],
        "raw.crm_prd_info": [
            make_record(
                "raw.crm_prd_info",
                prd_id="210",
                prd_key="CO-RF-FR-R92B-58",
                prd_nm="HL Road Frame - Black- 58",
                prd_cost="",
                prd_line="R ",
                prd_start_dt="2003-07-01",
            ),
            make_record(
                "raw.crm_prd_info",
                prd_id="212",
                prd_key="BI-RB-BK-R93R-62",
                prd_nm="Road-150 Red- 62",
                prd_cost="2171",
                prd_line="R",
                prd_start_dt="2011-07-01",
                prd_end_dt="2011-12-28",
            ),
            make_record(
                "raw.crm_prd_info",
                prd_id="213",
                prd_key="BI-RB-BK-R93R-62",
                prd_nm="Road-150 Red- 62",
                prd_cost="2200",
                prd_line="R",
                prd_start_dt="2012-07-01",
            ),
        ],
        "raw.crm_sales_details": [
            make_record(
                "raw.crm_sales_details",
                sls_ord_num="SO43697",
                sls_prd_key="BK-R93R-62",
                sls_cust_id="11000",
                sls_order_dt="20110715",
                sls_ship_dt="20110722",
                sls_due_dt="20110727",
                sls_sales="3578",
                sls_quantity="1",
                sls_price="3578",
            ),
            make_record(
                "raw.crm_sales_details",
                sls_ord_num="SO43698",
                sls_prd_key="BK-R93R-62",
                sls_cust_id="11001",
                sls_order_dt="20130101",
                sls_ship_dt="20130108",
                sls_due_dt="20130113",
                sls_sales="",
                sls_quantity="2",
                sls_price="2200",
            ),
            make_record(
                "raw.crm_sales_details",
                sls_ord_num="SO43698",
                sls_prd_key="FR-R92B-58",
                sls_cust_id="11001",
                sls_order_dt="0",
                sls_sales="-10",
                sls_quantity="1",
                sls_price="-1000",
            ),
            make_record(
                "raw.crm_sales_details",
                sls_ord_num="SO43699",
                sls_prd_key="XX-UNKNOWN",
                sls_cust_id="99999",
                sls_order_dt="20130105",
                sls_sales="100",
                sls_quantity="0",
                sls_price="100",
            ),
            make_record(
                "raw.crm_sales_details",
                sls_ord_num="SO43700",
                sls_prd_key="XX-UNKNOWN",
                sls_cust_id="99999",
                sls_order_dt="20130105",
                sls_sales="50",
                sls_quantity="1",
                sls_price="",
            ),
        ],
        "raw.erp_cust_az12": [
            make_record("raw.erp_cust_az12", cid="NASAW00011000", bdate="1971-10-06", gen="Male"),
            make_record("raw.erp_cust_az12", cid="AW00011001", bdate="2099-01-01", gen="F"),
            make_record("raw.erp_cust_az12", cid="AW00011002", bdate="1980-01-01", gen="M"),
        ],
        "raw.erp_loc_a101": [
            make_record("raw.erp_loc_a101", cid="AW-00011000", cntry="DE"),
            make_record("raw.erp_loc_a101", cid="AW-00011001", cntry="USA "),
        ],
        "raw.erp_px_cat_g1v2": [
            make_record(
                "raw.erp_px_cat_g1v2",
                id="CO_RF",
                cat="Components",
                subcat="Road Frames",
                maintenance="Yes",
            ),
            make_record(
                "raw.erp_px_cat_g1v2",
                id="BI_RB",
                cat="Bikes",
                subcat="Road Bikes",
                maintenance="No",
            ),
        ],
    }


@pytest.fixture
def snapshot():
    """Fresh sample raw snapshot."""
    return sample_snapshot()


class InMemorySink:
    """TableSink keeping every table as a list of dicts."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = {}
        self.calls: list[tuple] = []

    @contextmanager
    def transaction(self):
        """Restore every table when the block raises."""
        saved = copy.deepcopy(self.tables)
        self.calls.append(("begin",))
        try:
            yield self
        except Exception:
            self.tables = saved
            self.calls.append(("rollback",))
            raise
        self.calls.append(("commit",))

    def replace_table(self, table_name: str, rows: list[dict], key_column: str) -> int:
        self.calls.append(("replace", table_name))
        self.tables[table_name] = list(rows)
        return len(rows)

    def upsert_versions(
        self,
        table_name: str,
        rows: list[dict],
        key_column: str,
        business_key: str,
        close_superseded: bool = True,
    ) -> int:
        self.calls.append(("upsert", table_name))
        stored = {r[key_column]: r for r in self.tables.get(table_name, [])}
        for row in rows:
            if close_superseded and row.get("is_current"):
                for other in stored.values():
                    if other[business_key] == row[business_key] and other[key_column] != row[key_column]:
                        other["is_current"] = False
            stored[row[key_column]] = row
        self.tables[table_name] = sorted(stored.values(), key=lambda r: r[key_column])
        return len(rows)

    def upsert_rows(self, table_name: str, rows: list[dict], key_column: str) -> int:
        self.calls.append(("upsert", table_name))
        stored = {r[key_column]: r for r in self.tables.get(table_name, [])}
        stored.update((row[key_column], row) for row in rows)
        self.tables[table_name] = list(stored.values())
        return len(rows)


@pytest.fixture
def sink():
    return InMemorySink()
