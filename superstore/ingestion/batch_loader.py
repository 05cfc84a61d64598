"""
Batch Data Loader

Loads the three Superstore source datasets as one batch:
- reads CSV or Parquet files from the raw zone
- cleans and normalizes each dataset
- deduplicates raw products into the canonical product table
- enforces key, value and referential integrity rules

Rejected records are reported in the LoadReport and written to the
dead-letter directory. Under the abort_batch policy the first rejection
raises instead, so a batch is either clean or not loaded at all.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union
import hashlib

import polars as pl
import structlog
from pydantic import BaseModel, Field

from superstore.config import LoadPolicy, TieBreak, get_settings
from superstore.errors import IngestionError, ReferentialIntegrityError
from superstore.quality.validators import (
    ERROR_COLUMN,
    DataValidator,
    create_customers_validator,
    create_order_references_validator,
    create_orders_validator,
    create_products_validator,
    create_raw_products_validator,
)
from superstore.transformation.cleaners import DataCleaner
from superstore.transformation.deduplicator import DedupStats, deduplicate_products

logger = structlog.get_logger(__name__)


class FileFormat(str, Enum):
    """Supported file formats"""
    CSV = "csv"
    PARQUET = "parquet"


class LoadStatus(str, Enum):
    """Dataset load status"""
    COMPLETED = "completed"
    PARTIAL = "partial"


REQUIRED_COLUMNS: Dict[str, List[str]] = {
    "orders": ["order_id", "order_date", "customer_id", "product_id", "sales", "quantity", "discount", "profit"],
    "customers": ["customer_id", "customer_name", "segment", "country", "city", "state", "postal_code", "region"],
    "products": ["product_id", "product_name", "category", "sub_category"],
}

OPTIONAL_COLUMNS: Dict[str, List[str]] = {
    "orders": ["line_id", "ship_date", "ship_mode"],
    "customers": [],
    "products": [],
}

KEY_COLUMNS: Dict[str, List[str]] = {
    "orders": ["order_id", "line_id"],
    "customers": ["customer_id"],
    "products": ["product_id"],
}


class RejectedRecord(BaseModel):
    """One source record refused at load time"""
    dataset: str
    key: str
    reason: str


class LoadResult(BaseModel):
    """Result of loading one dataset"""
    dataset: str
    file_path: Optional[str] = None
    status: LoadStatus
    rows_read: int = 0
    rows_loaded: int = 0
    rows_rejected: int = 0
    file_hash: Optional[str] = None


class LoadReport(BaseModel):
    """Outcome of loading the whole batch"""
    results: Dict[str, LoadResult] = Field(default_factory=dict)
    rejected: List[RejectedRecord] = Field(default_factory=list)
    started_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def has_rejections(self) -> bool:
        return bool(self.rejected)

    def rejected_for(self, dataset: str) -> List[RejectedRecord]:
        return [r for r in self.rejected if r.dataset == dataset]


@dataclass
class LoadedBatch:
    """Clean, integrity-checked tables ready for analysis"""
    orders: pl.DataFrame
    customers: pl.DataFrame
    raw_products: pl.DataFrame
    products: pl.DataFrame
    dedup_stats: DedupStats
    report: LoadReport


class BatchLoader:
    """
    Batch loader for the transaction, customer and product datasets.

    Example:
        loader = BatchLoader(source_dir="data/raw")
        batch = loader.load()
        batch.report.rejected
    """

    def __init__(
        self,
        source_dir: Optional[Union[str, Path]] = None,
        load_policy: Optional[LoadPolicy] = None,
        dead_letter_path: Optional[Union[str, Path]] = None,
        tie_break: Optional[TieBreak] = None,
        source_date_format: Optional[str] = None,
        enable_validation: Optional[bool] = None,
    ):
        settings = get_settings()
        self.source_dir = Path(source_dir or settings.data_lake.raw_path)
        self.load_policy = LoadPolicy(load_policy or settings.data_quality.load_policy)
        self.dead_letter_path = Path(dead_letter_path or settings.data_lake.dead_letter_path)
        self.tie_break = tie_break
        self.enable_validation = (
            settings.data_quality.enable_data_quality_checks if enable_validation is None else enable_validation
        )
        self.file_names = {
            "orders": settings.data_lake.orders_file,
            "customers": settings.data_lake.customers_file,
            "products": settings.data_lake.products_file,
        }
        self.cleaner = DataCleaner(source_date_format=source_date_format)

    def _compute_file_hash(self, file_path: Path) -> str:
        """Compute MD5 hash of file for the audit trail"""
        hash_md5 = hashlib.md5()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(4096), b""):
                hash_md5.update(chunk)
        return hash_md5.hexdigest()

    def _read_file(self, file_path: Path) -> pl.DataFrame:
        """Read file based on its extension; CSV columns are read as text"""
        suffix = file_path.suffix.lstrip(".").lower()
        try:
            file_format = FileFormat(suffix)
        except ValueError:
            raise IngestionError(f"Unsupported file format: {file_path.suffix}", details={"file": str(file_path)})

        if file_format == FileFormat.PARQUET:
            return pl.read_parquet(file_path)
        return pl.read_csv(
            file_path,
            infer_schema_length=0,
            null_values=["", "NULL", "null", "None", "NA", "N/A"],
            encoding="utf8-lossy",
        )

    def _require_columns(self, df: pl.DataFrame, dataset: str) -> pl.DataFrame:
        """Fail on missing required columns and drop columns we do not model"""
        missing = [c for c in REQUIRED_COLUMNS[dataset] if c not in df.columns]
        if missing:
            raise IngestionError(
                f"Missing required columns: {missing}",
                dataset=dataset,
                details={"columns_found": df.columns},
            )
        keep = REQUIRED_COLUMNS[dataset] + [c for c in OPTIONAL_COLUMNS[dataset] if c in df.columns]
        return df.select([c for c in df.columns if c in keep])

    def _record_key(self, row: Dict, dataset: str) -> str:
        return "/".join(str(row.get(c)) for c in KEY_COLUMNS[dataset] if c in row)

    def _write_dead_letter(self, dataset: str, rejected: pl.DataFrame) -> None:
        """Replace the dataset's dead-letter file with this run's rejections"""
        dead_letter_file = self.dead_letter_path / f"{dataset}_rejected.parquet"
        if rejected.is_empty():
            dead_letter_file.unlink(missing_ok=True)
            return

        self.dead_letter_path.mkdir(parents=True, exist_ok=True)
        rejected.with_columns(pl.lit(datetime.utcnow()).alias("_failed_at")).write_parquet(dead_letter_file)
        logger.warning(
            "Written rejected records to dead letter",
            file=str(dead_letter_file),
            records=len(rejected),
        )

    def _apply(
        self,
        df: pl.DataFrame,
        dataset: str,
        validators: Sequence[Tuple[DataValidator, type]],
        report: LoadReport,
    ) -> pl.DataFrame:
        """
        Run validators in order, rejecting failing rows per the load policy.

        Each validator is paired with the exception raised for its rejections
        under abort_batch.
        """
        rejected_frames = []
        for validator, error_cls in validators:
            if self.enable_validation:
                validator.validate(df)
            df, rejected = validator.split(df)
            if rejected.is_empty():
                continue

            records = [
                RejectedRecord(dataset=dataset, key=self._record_key(row, dataset), reason=row[ERROR_COLUMN])
                for row in rejected.iter_rows(named=True)
            ]
            if self.load_policy == LoadPolicy.ABORT_BATCH:
                self._write_dead_letter(dataset, rejected)
                raise error_cls(
                    f"{len(records)} {dataset} records rejected, batch aborted",
                    dataset=dataset,
                    rejected=records,
                )
            report.rejected.extend(records)
            rejected_frames.append(rejected)

        rejected_all = pl.concat(rejected_frames, how="diagonal_relaxed") if rejected_frames else df.clear()
        self._write_dead_letter(dataset, rejected_all)
        return df

    def _result(self, dataset: str, file_path: Optional[Path], rows_read: int, rows_loaded: int, report: LoadReport) -> None:
        rows_rejected = len(report.rejected_for(dataset))
        report.results[dataset] = LoadResult(
            dataset=dataset,
            file_path=str(file_path) if file_path else None,
            status=LoadStatus.PARTIAL if rows_rejected else LoadStatus.COMPLETED,
            rows_read=rows_read,
            rows_loaded=rows_loaded,
            rows_rejected=rows_rejected,
            file_hash=self._compute_file_hash(file_path) if file_path else None,
        )
        logger.info(
            "Dataset loaded",
            dataset=dataset,
            rows_read=rows_read,
            rows_loaded=rows_loaded,
            rows_rejected=rows_rejected,
        )

    def load_frames(
        self,
        orders: pl.DataFrame,
        customers: pl.DataFrame,
        raw_products: pl.DataFrame,
        file_paths: Optional[Dict[str, Path]] = None,
    ) -> LoadedBatch:
        """
        Clean, deduplicate and integrity-check already-read source frames.

        Args:
            orders: Raw transaction records
            customers: Raw customer records
            raw_products: Raw product records (ids may repeat)
            file_paths: Source file per dataset, for the audit trail

        Returns:
            LoadedBatch

        Raises:
            IngestionError: Required columns missing, or a rejection under abort_batch
            ReferentialIntegrityError: Unknown customer/product under abort_batch
        """
        paths = file_paths or {}
        report = LoadReport(started_at=datetime.utcnow())

        customers_clean = self._require_columns(self.cleaner.clean_customers(customers), "customers")
        customers_clean = self._apply(
            customers_clean, "customers", [(create_customers_validator(), IngestionError)], report
        )
        self._result("customers", paths.get("customers"), len(customers), len(customers_clean), report)

        products_clean = self._require_columns(self.cleaner.clean_raw_products(raw_products), "products")
        products_clean = self._apply(
            products_clean, "products", [(create_raw_products_validator(), IngestionError)], report
        )
        canonical, dedup_stats = deduplicate_products(products_clean, tie_break=self.tie_break)
        if self.enable_validation:
            create_products_validator().validate(canonical)
        self._result("products", paths.get("products"), len(raw_products), len(canonical), report)

        orders_clean = self._require_columns(self.cleaner.clean_orders(orders), "orders")
        orders_clean = self._apply(
            orders_clean,
            "orders",
            [
                (create_orders_validator(), IngestionError),
                (create_order_references_validator(customers_clean, canonical), ReferentialIntegrityError),
            ],
            report,
        )
        self._result("orders", paths.get("orders"), len(orders), len(orders_clean), report)

        report.completed_at = datetime.utcnow()
        if report.has_rejections:
            logger.warning("Batch loaded with rejections", rejected=len(report.rejected))

        return LoadedBatch(
            orders=orders_clean,
            customers=customers_clean,
            raw_products=products_clean,
            products=canonical,
            dedup_stats=dedup_stats,
            report=report,
        )

    def load(self) -> LoadedBatch:
        """
        Read the three source files from the raw zone and load them.

        Raises:
            IngestionError: A file is missing or unreadable
        """
        paths = {dataset: self.source_dir / name for dataset, name in self.file_names.items()}
        frames = {}

        for dataset, file_path in paths.items():
            if not file_path.exists():
                raise IngestionError(f"File not found: {file_path}", dataset=dataset)
            try:
                frames[dataset] = self._read_file(file_path)
            except (pl.exceptions.PolarsError, OSError) as e:
                raise IngestionError(f"Could not read {file_path}: {e}", dataset=dataset) from e
            logger.info("Read source file", dataset=dataset, file=str(file_path), rows=len(frames[dataset]))

        return self.load_frames(
            frames["orders"],
            frames["customers"],
            frames["products"],
            file_paths=paths,
        )
