"""
Prefect Workflow Orchestration - Superstore Batch ETL

Production workflow for the full-snapshot batch with:
- Retries on output writes
- Load failures (missing files, aborted batches) fail the flow without retry
- Run summary for monitoring
"""

from typing import Optional

from prefect import flow, task, get_run_logger
from prefect.cache_policies import NONE

from superstore.config import LoadPolicy, OutputFormat, TieBreak, ZeroGapScope
from superstore.ingestion.batch_loader import LoadedBatch
from superstore.transformation.transformers import BatchTransformer


# =============================================================================
# TASKS
# =============================================================================

@task(
    name="load_batch_files",
    description="Load, clean and deduplicate the source files",
    cache_policy=NONE,
)
def load_batch_files(transformer: BatchTransformer) -> LoadedBatch:
    """Load the three source datasets"""
    logger = get_run_logger()

    batch = transformer.loader.load()

    for dataset, result in batch.report.results.items():
        logger.info(
            f"{dataset}: {result.rows_loaded}/{result.rows_read} rows loaded "
            f"({result.rows_rejected} rejected)"
        )
    logger.info(f"Canonical products: {batch.dedup_stats.distinct_keys} "
                f"({batch.dedup_stats.conflicting_keys} with conflicting names)")
    return batch


@task(
    name="transform_data",
    description="Run the reorder analysis and aggregate reports",
    cache_policy=NONE,
)
def transform_data(transformer: BatchTransformer, batch: LoadedBatch) -> dict:
    """Build every published table"""
    logger = get_run_logger()

    tables = transformer.analyze(batch)

    logger.info(f"Built {len(tables)} tables")
    return tables


@task(
    name="persist_outputs",
    description="Write tables to the curated zone and database",
    retries=2,
    retry_delay_seconds=30,
    cache_policy=NONE,
)
def persist_outputs(transformer: BatchTransformer, batch: LoadedBatch, tables: dict) -> dict:
    """Publish the derived tables"""
    logger = get_run_logger()

    output_paths, database_rows = transformer.persist(batch, tables)

    logger.info(f"Wrote {len(output_paths)} files to {transformer.writer.output_path}")
    if database_rows:
        logger.info(f"Database rows: {database_rows}")
    return {"output_paths": output_paths, "database_rows": database_rows}


# =============================================================================
# FLOWS
# =============================================================================

@flow(
    name="superstore_batch_etl",
    description="Full-snapshot batch ETL for the Superstore dataset",
)
def superstore_batch_etl(
    source_dir: Optional[str] = None,
    output_dir: Optional[str] = None,
    output_format: Optional[str] = None,
    database_url: Optional[str] = None,
    zero_gap_scope: Optional[str] = None,
    tie_break: Optional[str] = None,
    abort_on_reject: bool = False,
) -> dict:
    """
    Superstore batch ETL pipeline.

    Steps:
    1. Load, clean and deduplicate the source files
    2. Run the reorder analysis and aggregate reports
    3. Write outputs
    """
    logger = get_run_logger()

    transformer = BatchTransformer(
        source_dir=source_dir,
        output_path=output_dir,
        output_format=OutputFormat(output_format) if output_format else None,
        database_url=database_url,
        zero_gap_scope=ZeroGapScope(zero_gap_scope) if zero_gap_scope else None,
        tie_break=TieBreak(tie_break) if tie_break else None,
        load_policy=LoadPolicy.ABORT_BATCH if abort_on_reject else None,
    )

    logger.info(f"Starting Superstore batch from {transformer.loader.source_dir}")

    batch = load_batch_files(transformer)
    tables = transform_data(transformer, batch)
    persisted = persist_outputs(transformer, batch, tables)

    results = {
        "status": "success",
        "rows_rejected": len(batch.report.rejected),
        "conflicting_products": batch.dedup_stats.conflicting_keys,
        "tables": {name: len(df) for name, df in tables.items()},
        **persisted,
    }
    logger.info(f"Batch complete: {len(tables)} tables, {results['rows_rejected']} rejected records")
    return results


if __name__ == "__main__":
    superstore_batch_etl()
