"""
Data Quality Validation
=======================
Invariant checks for the finished dimensional model.
"""

from datetime import date
from typing import Optional

from prefect import get_run_logger, task
from prefect.cache_policies import NO_CACHE

from salesdwh.validation.checks import (
    check_customer_domains,
    check_measures,
    check_referential_integrity,
    check_required_fields,
    check_scd2,
    check_uniqueness,
    collect_statistics,
)
from salesdwh.validation.core import DQReport


def run_checks(
    dim_customer: list[dict],
    dim_product: list[dict],
    fact_sales: list[dict],
    as_of: Optional[date] = None,
) -> DQReport:
    """
    Run every check over the persisted form of the model.

    Args:
        dim_customer: dim_customer rows
        dim_product: Every dim_product version
        fact_sales: fact_sales rows
        as_of: Upper bound for birthdates (defaults to today)

    Returns:
        DQReport with all checks and statistics
    """
    report = DQReport()

    check_required_fields(report, dim_customer, dim_product, fact_sales)
    check_uniqueness(report, dim_customer, dim_product, fact_sales)
    check_scd2(report, dim_product)
    check_referential_integrity(report, dim_customer, dim_product, fact_sales)
    check_measures(report, fact_sales)
    check_customer_domains(report, dim_customer, as_of)
    collect_statistics(report, dim_customer, dim_product, fact_sales)

    return report


@task(name="validate-data-quality", cache_policy=NO_CACHE)
def validate_data_quality(
    dim_customer: list[dict],
    dim_product: list[dict],
    fact_sales: list[dict],
    as_of: Optional[date] = None,
) -> DQReport:
    """
    Run data quality validation and log the outcome.

    Returns:
        DQReport with all checks and statistics
    """
    logger = get_run_logger()
    logger.info("🔍 Running data quality validation...")

    report = run_checks(dim_customer, dim_product, fact_sales, as_of)

    logger.info("✅ DQ validation complete:")
    logger.info(f"   Total checks: {report.total}")
    logger.info(f"   ✅ Passed: {report.passed}")
    logger.info(f"   ⚠️  Warnings: {report.warnings}")
    logger.info(f"   ❌ Failed: {report.failed}")

    for check in report.failed_checks():
        logger.warning(f"   - {check.check}: {check.percentage} {check.message}")

    return report
