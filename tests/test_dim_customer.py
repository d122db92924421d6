"""
dim_customer Tests
==================
"""

from datetime import date

from salesdwh.analytics import dim_customer
from salesdwh.models import MergedCustomer


class TestAssignKeys:
    def test_first_run_numbers_in_sorted_order(self):
        assert dim_customer.assign_keys(["AW3", "AW1", "AW2"], {}) == {"AW1": 1, "AW2": 2, "AW3": 3}

    def test_prior_keys_reused_and_new_keys_follow_max(self):
        keys = dim_customer.assign_keys(["AW1", "AW0", "AW9"], {"AW1": 7, "AW5": 12})

        assert keys["AW1"] == 7
        assert keys["AW0"] == 13
        assert keys["AW9"] == 14
        assert "AW5" not in keys


class TestTransform:
    def test_defaults_and_full_name(self):
        rows = dim_customer.transform(
            [
                MergedCustomer("AW2", customer_id=2, first_name="Jon", last_name="Yang", gender="Male"),
                MergedCustomer("AW1", birthdate=date(1970, 1, 1)),
            ]
        )

        assert [r.customer_key for r in rows] == [1, 2]
        erp_only, crm = rows

        assert erp_only.customer_number == "AW1"
        assert erp_only.gender == "n/a"
        assert erp_only.marital_status == "n/a"
        assert erp_only.country == "n/a"
        assert erp_only.full_name is None
        assert crm.full_name == "Jon Yang"

    def test_rows_sorted_by_key(self):
        rows = dim_customer.transform(
            [MergedCustomer("AW1"), MergedCustomer("AW2")], prior_keys={"AW2": 1}
        )
        assert [(r.customer_number, r.customer_key) for r in rows] == [("AW2", 1), ("AW1", 2)]

    def test_key_lookup_skips_rows_without_crm_id(self):
        rows = dim_customer.transform([MergedCustomer("AW1", customer_id=11000), MergedCustomer("AW2")])
        assert dim_customer.key_lookup(rows) == {11000: 1}
