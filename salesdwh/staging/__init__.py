"""
Staging Layer
=============
Cleansing modules: raw schema → staging schema (typed, standardized).
"""

from salesdwh.staging import (
    crm_cust_info,
    crm_prd_info,
    crm_sales_details,
    erp_cust_az12,
    erp_loc_a101,
    erp_px_cat_g1v2,
)
from salesdwh.staging.cleanse import CleanseResult, cleanse_table

# Raw source table → staging module
MODULES = {
    module.SOURCE_TABLES[0]: module
    for module in (
        crm_cust_info,
        crm_prd_info,
        crm_sales_details,
        erp_cust_az12,
        erp_loc_a101,
        erp_px_cat_g1v2,
    )
}

__all__ = [
    "CleanseResult",
    "MODULES",
    "cleanse_table",
    "crm_cust_info",
    "crm_prd_info",
    "crm_sales_details",
    "erp_cust_az12",
    "erp_loc_a101",
    "erp_px_cat_g1v2",
]
