#!/usr/bin/env python3
"""
Full Refresh Flow
=================
Rebuilds the sales star schema from the complete raw snapshot.

Tables populated:
- staging.* (one per raw source table)
- analytics.customer_key_map (upserted, never shrinks)
- analytics.dim_customer (replaced)
- analytics.dim_product (SCD Type 2, append-only)
- analytics.fact_sales (replaced)

Usage:
    salesdwh-refresh
    salesdwh-refresh --as-of 2025-01-31 --dry-run
"""

import argparse
from datetime import date
from typing import Optional

from prefect import flow, get_run_logger, task
from prefect.cache_policies import NO_CACHE
from prefect.events import emit_event

from salesdwh.analytics import dim_customer, dim_product
from salesdwh.config import get_settings
from salesdwh.db import SupabaseSink, read_table
from salesdwh.models import RawRecord
from salesdwh.pipeline import (
    DimensionalModel,
    PriorState,
    build_model,
    fetch_snapshot,
    persist,
)
from salesdwh.raw import SupabaseSource
from salesdwh.report import RunReport
from salesdwh.staging import MODULES, CleanseResult, cleanse_table
from salesdwh.validation import DQReport, validate_data_quality

# Warnings listed individually in the log before summarizing
MAX_LOGGED_WARNINGS = 20


@task(name="fetch-raw-snapshot", cache_policy=NO_CACHE)
def fetch_raw_snapshot() -> dict[str, list[RawRecord]]:
    """Read every raw source table. Raises SourceTableError on a missing table."""
    logger = get_run_logger()

    snapshot = fetch_snapshot(SupabaseSource())
    for table, records in snapshot.items():
        logger.info(f"   {table}: {len(records):,} rows")

    return snapshot


@task(name="read-prior-state", cache_policy=NO_CACHE)
def read_prior_state() -> PriorState:
    """Read surrogate keys and version history from the previous refresh."""
    logger = get_run_logger()

    customer_rows = read_table(
        dim_customer.TABLE_NAME,
        columns="customer_number, customer_key",
        order_by=[dim_customer.KEY_COLUMN],
    )
    key_map = read_table(dim_customer.KEY_MAP_TABLE, order_by=[dim_customer.KEY_MAP_COLUMN])
    product_rows = read_table(dim_product.TABLE_NAME, order_by=[dim_product.KEY_COLUMN])

    logger.info(f"   Prior customer keys: {len(key_map):,} issued, {len(customer_rows):,} in dimension")
    logger.info(f"   Prior product versions: {len(product_rows):,}")

    return PriorState.from_rows(customer_rows, product_rows, key_map)


@task(name="cleanse-source-table", cache_policy=NO_CACHE)
def cleanse_source(source_table: str, records: list[RawRecord], today: date) -> CleanseResult:
    """Cleanse one raw source table."""
    logger = get_run_logger()

    result = cleanse_table(MODULES[source_table], records, today)
    logger.info(
        f"   {source_table}: {result.processed:,} processed | "
        f"{len(result.records):,} cleansed | {len(result.rejections):,} rejected"
    )

    return result


@task(name="build-dimensional-model", cache_policy=NO_CACHE)
def build_dimensional_model(
    cleansed: dict[str, CleanseResult], prior: PriorState, as_of: date
) -> tuple[DimensionalModel, RunReport]:
    """Merge, build dimensions and facts."""
    logger = get_run_logger()
    logger.info("🔨 Building dimensional model...")

    model, report = build_model(cleansed, prior, as_of)

    logger.info(f"✅ dim_customer: {len(model.dim_customer):,} rows")
    logger.info(
        f"✅ dim_product: {len(model.dim_product.rows):,} versions "
        f"({len(model.dim_product.changed):,} new or closed)"
    )
    logger.info(f"✅ fact_sales: {len(model.fact_sales):,} rows")

    return model, report


@task(name="persist-model", cache_policy=NO_CACHE)
def persist_model(model: DimensionalModel) -> dict:
    """Replace full-refresh tables and upsert product versions."""
    logger = get_run_logger()
    logger.info("📤 Loading to Supabase...")

    counts = persist(model, SupabaseSink())
    for table, count in counts.items():
        logger.info(f"   {table}: {count:,} rows")

    return counts


def log_run_report(report: RunReport) -> None:
    logger = get_run_logger()

    for entity, counts in report.counts.items():
        logger.info(
            f"   {entity}: {counts.processed:,} processed | "
            f"{counts.cleansed:,} cleansed | {counts.rejected:,} rejected"
        )

    if not report.warnings:
        logger.info("   No data-quality warnings")
        return

    for warning in report.warnings[:MAX_LOGGED_WARNINGS]:
        logger.warning(
            f"   ⚠️  {warning.kind} [{warning.entity}] {warning.key}: {warning.detail}"
        )
    if len(report.warnings) > MAX_LOGGED_WARNINGS:
        logger.warning(f"   ... {len(report.warnings) - MAX_LOGGED_WARNINGS:,} more warnings")

    for kind, count in report.summary()["warnings_by_kind"].items():
        logger.warning(f"   {kind}: {count:,}")


def build_summary(
    run_date: date,
    report: RunReport,
    model: DimensionalModel,
    dq_report: DQReport,
    load_result: dict,
) -> dict:
    """
    Run summary returned by the flow and emitted with salesdwh.refresh.complete.

    Carries every run warning; the log lists only the first MAX_LOGGED_WARNINGS.
    """
    run_summary = report.summary()
    return {
        "as_of": run_date.isoformat(),
        "counts": run_summary["counts"],
        "warnings_by_kind": run_summary["warnings_by_kind"],
        "warnings": run_summary["warnings"],
        "transformation": {
            "dim_customer": len(model.dim_customer),
            "dim_product": len(model.dim_product.rows),
            "dim_product_changed": len(model.dim_product.changed),
            "fact_sales": len(model.fact_sales),
        },
        "data_quality": {
            "total": dq_report.total,
            "passed": dq_report.passed,
            "warnings": dq_report.warnings,
            "failed": dq_report.failed,
        },
        "load": load_result,
    }


@flow(name="full-refresh", log_prints=True)
def full_refresh_flow(as_of: Optional[str] = None, dry_run: bool = False) -> dict:
    """
    Full-refresh the dimensional model from the raw schema.

    Order matters:
    1. Read the raw snapshot and prior state (a missing table aborts here)
    2. Cleanse every source table (in parallel)
    3. Merge, build dim_customer, dim_product, fact_sales
    4. Validate model invariants
    5. Load (skipped on dry run, or on DQ failure unless configured)

    Args:
        as_of: Run date (YYYY-MM-DD), defaults to today
        dry_run: Build and validate without writing

    Returns:
        Summary of counts, warnings, DQ results, and load
    """
    logger = get_run_logger()
    settings = get_settings()
    run_date = date.fromisoformat(as_of) if as_of else date.today()

    logger.info("=" * 60)
    logger.info("SALES DWH FULL REFRESH")
    logger.info("=" * 60)
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"As of: {run_date}")
    logger.info("=" * 60)

    # ==================== PHASE 1: EXTRACT ====================
    logger.info("\n📥 PHASE 1: EXTRACT")
    logger.info("-" * 40)

    snapshot = fetch_raw_snapshot()
    prior = read_prior_state()

    # ==================== PHASE 2: CLEANSE ====================
    logger.info("\n🧹 PHASE 2: CLEANSE")
    logger.info("-" * 40)

    futures = {
        table: cleanse_source.submit(table, records, run_date) for table, records in snapshot.items()
    }
    cleansed = {table: future.result() for table, future in futures.items()}

    # ==================== PHASE 3: BUILD ====================
    logger.info("\n🔄 PHASE 3: BUILD")
    logger.info("-" * 40)

    model, report = build_dimensional_model(cleansed, prior, run_date)

    logger.info("\n📊 Run Report:")
    log_run_report(report)

    # ==================== PHASE 4: VALIDATE ====================
    logger.info("\n✅ PHASE 4: VALIDATE")
    logger.info("-" * 40)

    dq_report = validate_data_quality(
        dim_customer=[r.to_row() for r in model.dim_customer],
        dim_product=[r.to_row() for r in model.dim_product.rows],
        fact_sales=[r.to_row() for r in model.fact_sales],
        as_of=run_date,
    )

    # ==================== PHASE 5: LOAD ====================
    logger.info("\n📤 PHASE 5: LOAD")
    logger.info("-" * 40)

    if dq_report.failed > 0:
        logger.error(f"❌ DATA QUALITY FAILED: {dq_report.failed} checks failed")
        for check in dq_report.failed_checks():
            logger.error(f"   ❌ {check.check}: {check.percentage} - {check.message}")

        emit_event(
            event="salesdwh.dq.failure",
            resource={"prefect.resource.id": "salesdwh.full-refresh"},
            payload={
                "as_of": run_date.isoformat(),
                "failed_count": dq_report.failed,
                "total_checks": dq_report.total,
                "failed_checks": [
                    {"check": c.check, "percentage": c.percentage} for c in dq_report.failed_checks()
                ],
            },
        )

    if dry_run:
        load_result = {"skipped": True, "reason": "dry run"}
    elif dq_report.failed > 0 and not settings.load_on_dq_failure:
        load_result = {"skipped": True, "reason": f"{dq_report.failed} DQ failures"}
    else:
        load_result = persist_model(model)

    # ==================== SUMMARY ====================
    logger.info("\n" + "=" * 60)
    logger.info("REFRESH COMPLETE")
    logger.info("=" * 60)

    summary = build_summary(run_date, report, model, dq_report, load_result)

    logger.info(f"✅ DQ Passed: {dq_report.passed}/{dq_report.total}")
    logger.info(f"⚠️  Run warnings: {len(report.warnings):,}")
    logger.info(f"❌ Rejected rows: {report.rejected:,}")

    emit_event(
        event="salesdwh.refresh.complete",
        resource={"prefect.resource.id": "salesdwh.full-refresh"},
        payload=summary,
    )

    return summary


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Sales DWH full refresh")
    parser.add_argument("--as-of", help="Run date (YYYY-MM-DD), defaults to today")
    parser.add_argument("--dry-run", action="store_true", help="Build and validate without loading")
    args = parser.parse_args()

    result = full_refresh_flow(as_of=args.as_of, dry_run=args.dry_run)

    print(f"\n{'=' * 60}")
    print("RESULT SUMMARY")
    print(f"{'=' * 60}")
    print(f"As of: {result['as_of']}")
    for entity, counts in result["counts"].items():
        print(f"{entity}: {counts['cleansed']:,} cleansed, {counts['rejected']:,} rejected")
    print(f"fact_sales: {result['transformation']['fact_sales']:,}")
    print(f"DQ: {result['data_quality']['passed']}/{result['data_quality']['total']} passed")
    print(f"Load: {result['load']}")
    print()


if __name__ == "__main__":
    main()
