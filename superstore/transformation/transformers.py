"""
Batch Transformer

Main orchestrator that combines loading, deduplication, reorder analysis,
aggregate reports and persistence into one batch run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import polars as pl
import structlog

from superstore.analytics.intervals import ReorderAnalysis, ReorderIntervalAnalyzer
from superstore.analytics.reports import build_reports
from superstore.config import LoadPolicy, OutputFormat, TieBreak, ZeroGapScope, get_settings
from superstore.config.logging import batch_context
from superstore.database.connection import close_database, init_database
from superstore.ingestion.batch_loader import BatchLoader, LoadedBatch, LoadReport
from superstore.storage.writer import DatabaseWriter, OutputWriter
from superstore.transformation.deduplicator import DedupStats

logger = structlog.get_logger(__name__)


@dataclass
class TransformResult:
    """Result of one batch run"""
    started_at: datetime
    completed_at: datetime
    duration_seconds: float
    load_report: LoadReport
    dedup_stats: DedupStats
    tables: Dict[str, pl.DataFrame]
    output_paths: Dict[str, str] = field(default_factory=dict)
    database_rows: Dict[str, int] = field(default_factory=dict)

    @property
    def rows_rejected(self) -> int:
        return len(self.load_report.rejected)

    def summary(self) -> Dict[str, object]:
        """Plain-dict summary for logs and flow results"""
        return {
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_seconds": self.duration_seconds,
            "rows_rejected": self.rows_rejected,
            "conflicting_products": self.dedup_stats.conflicting_keys,
            "tables": {name: len(df) for name, df in self.tables.items()},
            "output_paths": self.output_paths,
            "database_rows": self.database_rows,
        }


class BatchTransformer:
    """
    Batch pipeline orchestrator.

    Coordinates loading, analysis and output generation for one full
    snapshot of the Superstore data. Every run rebuilds all outputs.

    Example:
        transformer = BatchTransformer(source_dir="data/raw")
        result = transformer.run()
        result.tables["customer_reorder_frequency"]
    """

    def __init__(
        self,
        source_dir: Optional[Union[str, Path]] = None,
        output_path: Optional[Union[str, Path]] = None,
        output_format: Optional[OutputFormat] = None,
        database_url: Optional[str] = None,
        zero_gap_scope: Optional[ZeroGapScope] = None,
        tie_break: Optional[TieBreak] = None,
        load_policy: Optional[LoadPolicy] = None,
        dead_letter_path: Optional[Union[str, Path]] = None,
        top_n: Optional[int] = None,
    ):
        settings = get_settings()
        self.loader = BatchLoader(
            source_dir=source_dir,
            load_policy=load_policy,
            dead_letter_path=dead_letter_path,
            tie_break=tie_break,
        )
        self.analyzer = ReorderIntervalAnalyzer(zero_gap_scope=zero_gap_scope)
        self.writer = OutputWriter(output_path=output_path, output_format=output_format)
        self.top_n = top_n
        self.database_url = database_url or (settings.database.url if settings.database.enabled else None)

    def analyze(self, batch: LoadedBatch) -> Dict[str, pl.DataFrame]:
        """
        Build every published table from a loaded batch.

        Returns:
            Derived tables keyed by published name, canonical products first
        """
        analysis: ReorderAnalysis = self.analyzer.analyze(batch.orders, batch.customers, batch.products)
        reports = build_reports(batch.orders, batch.customers, batch.products, top_n=self.top_n)

        tables: Dict[str, pl.DataFrame] = {"canonical_products": batch.products}
        tables.update(analysis.tables())
        tables.update(reports)
        return tables

    def persist(self, batch: LoadedBatch, tables: Dict[str, pl.DataFrame]) -> Tuple[Dict[str, str], Dict[str, int]]:
        """
        Write tables to the curated zone and, when configured, the database.

        Returns:
            (file path per table, rows inserted per core database table)
        """
        output_paths = self.writer.write_tables(tables)
        database_rows: Dict[str, int] = {}

        if self.database_url:
            engine = init_database(self.database_url)
            try:
                db_writer = DatabaseWriter(engine)
                database_rows = db_writer.write_core(batch.customers, batch.products, batch.orders)
                db_writer.write_derived({k: v for k, v in tables.items() if k != "canonical_products"})
            finally:
                close_database()

        return output_paths, database_rows

    def process(self, batch: LoadedBatch, started_at: Optional[datetime] = None) -> TransformResult:
        """Analyze and persist an already-loaded batch"""
        started_at = started_at or datetime.utcnow()
        tables = self.analyze(batch)
        output_paths, database_rows = self.persist(batch, tables)
        completed_at = datetime.utcnow()

        return TransformResult(
            started_at=started_at,
            completed_at=completed_at,
            duration_seconds=(completed_at - started_at).total_seconds(),
            load_report=batch.report,
            dedup_stats=batch.dedup_stats,
            tables=tables,
            output_paths=output_paths,
            database_rows=database_rows,
        )

    def run(self) -> TransformResult:
        """
        Run the batch once from the raw zone.

        Pipeline:
        1. Load, clean and deduplicate the source files
        2. Enforce integrity rules per the load policy
        3. Run the reorder analysis and aggregate reports
        4. Write outputs

        Raises:
            IngestionError: Source files unusable, or a rejection under abort_batch
        """
        started_at = datetime.utcnow()
        with batch_context():
            logger.info("Starting batch run", source_dir=str(self.loader.source_dir))

            batch = self.loader.load()
            result = self.process(batch, started_at=started_at)

            logger.info(
                "Batch run complete",
                duration_seconds=result.duration_seconds,
                tables=len(result.tables),
                rows_rejected=result.rows_rejected,
            )
        return result

