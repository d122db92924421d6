#!/usr/bin/env python3
"""
Validate Flow
=============
Runs data quality checks on the persisted analytics tables.

Emits Prefect events on DQ failures for alerting.

Usage:
    salesdwh-validate
    salesdwh-validate --as-of 2025-01-31
"""

import argparse
from dataclasses import asdict
from datetime import date
from typing import Optional

from prefect import flow, get_run_logger
from prefect.events import emit_event

from salesdwh.db import read_table
from salesdwh.validation import validate_data_quality


@flow(name="validate-analytics", log_prints=True)
def validate_flow(as_of: Optional[str] = None) -> dict:
    """
    Run data quality checks on analytics tables.

    Reads current state from the analytics schema and validates:
    - Required fields
    - Surrogate and version key uniqueness
    - SCD Type 2 history
    - Point-in-time referential integrity
    - Measure consistency and customer domains

    Returns:
        DQ report summary
    """
    logger = get_run_logger()
    logger.info("🔍 Starting validate-analytics flow")

    # ==================== READ ANALYTICS TABLES ====================
    logger.info("\n📊 Reading analytics tables")
    logger.info("-" * 40)

    dim_customer = read_table("analytics.dim_customer", order_by=["customer_key"])
    logger.info(f"   dim_customer: {len(dim_customer):,} rows")

    dim_product = read_table("analytics.dim_product", order_by=["product_key"])
    logger.info(f"   dim_product: {len(dim_product):,} rows")

    fact_sales = read_table("analytics.fact_sales", order_by=["order_number", "line_number"])
    logger.info(f"   fact_sales: {len(fact_sales):,} rows")

    # ==================== RUN DQ CHECKS ====================
    logger.info("\n✅ Running data quality checks")
    logger.info("-" * 40)

    dq_report = validate_data_quality(
        dim_customer=dim_customer,
        dim_product=dim_product,
        fact_sales=fact_sales,
        as_of=date.fromisoformat(as_of) if as_of else None,
    )

    # ==================== HANDLE RESULTS ====================
    summary = {
        "total_checks": dq_report.total,
        "passed": dq_report.passed,
        "warnings": dq_report.warnings,
        "failed": dq_report.failed,
        "checks": [asdict(c) for c in dq_report.checks],
        "statistics": dq_report.statistics,
    }

    if dq_report.failed > 0:
        logger.error(f"❌ DQ FAILED: {dq_report.failed} checks failed")

        # Emit failure event for Prefect Automations
        emit_event(
            event="salesdwh.dq.failure",
            resource={"prefect.resource.id": "salesdwh.validate-analytics"},
            payload={
                "failed_count": dq_report.failed,
                "total_checks": dq_report.total,
                "failed_checks": [
                    {"check": c.check, "percentage": c.percentage} for c in dq_report.failed_checks()
                ],
            },
        )
    else:
        logger.info(f"✅ DQ PASSED: {dq_report.passed}/{dq_report.total} checks passed")

        emit_event(
            event="salesdwh.dq.success",
            resource={"prefect.resource.id": "salesdwh.validate-analytics"},
            payload=summary,
        )

    return summary


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Validate the sales DWH analytics tables")
    parser.add_argument("--as-of", help="Upper bound for birthdates (YYYY-MM-DD), defaults to today")
    args = parser.parse_args()

    result = validate_flow(as_of=args.as_of)

    print("\nValidation complete!")
    print(f"Passed: {result['passed']}/{result['total_checks']}")
    print(f"Failed: {result['failed']}")


if __name__ == "__main__":
    main()
