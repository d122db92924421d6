"""
Analytics Layer
===============
Transform modules: staging → analytics schema (dimensional model).
"""

from salesdwh.analytics import dim_customer, dim_product, fact_sales, merge

__all__ = [
    "dim_customer",
    "dim_product",
    "fact_sales",
    "merge",
]
