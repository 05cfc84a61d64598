"""
Batch Command Line Entry Point

Runs the Superstore batch once: load, analyze, publish.

    superstore-batch --source-dir data/raw --format csv
"""

import argparse
import sys
from typing import List, Optional

import structlog

from superstore.config import LoadPolicy, OutputFormat, TieBreak, ZeroGapScope, get_settings
from superstore.config.logging import configure_logging
from superstore.errors import IngestionError
from superstore.transformation.transformers import BatchTransformer

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="superstore-batch",
        description="Run the Superstore analytics batch once",
    )
    parser.add_argument("--source-dir", help="Directory holding orders, customers and products files")
    parser.add_argument("--output-dir", help="Curated zone for the published tables")
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=[f.value for f in OutputFormat],
        help="Output file format",
    )
    parser.add_argument("--database-url", help="Also write tables to this SQLAlchemy database")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], type=str.upper)
    parser.add_argument(
        "--zero-gap-scope",
        choices=[s.value for s in ZeroGapScope],
        help="Where same-day gaps are excluded",
    )
    parser.add_argument(
        "--tie-break",
        choices=[t.value for t in TieBreak],
        help="How equally frequent product variants are ranked",
    )
    parser.add_argument(
        "--abort-on-reject",
        action="store_true",
        help="Abort the whole batch on the first rejected record",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run the batch.

    Returns:
        0 on success, 1 when the load was aborted
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    settings = get_settings()
    logger.info("Starting Superstore batch", version=settings.version, environment=settings.app_env)

    transformer = BatchTransformer(
        source_dir=args.source_dir,
        output_path=args.output_dir,
        output_format=OutputFormat(args.output_format) if args.output_format else None,
        database_url=args.database_url,
        zero_gap_scope=ZeroGapScope(args.zero_gap_scope) if args.zero_gap_scope else None,
        tie_break=TieBreak(args.tie_break) if args.tie_break else None,
        load_policy=LoadPolicy.ABORT_BATCH if args.abort_on_reject else None,
    )

    try:
        result = transformer.run()
    except IngestionError as e:
        for record in e.rejected:
            logger.error("Rejected record", dataset=record.dataset, key=record.key, reason=record.reason)
        logger.error("Batch aborted", error=e.message, **e.details)
        return 1

    logger.info("Batch finished", **result.summary())
    return 0


if __name__ == "__main__":
    sys.exit(main())
