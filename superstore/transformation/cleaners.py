"""
Data Cleaning Module

Cleaning transformations for the Superstore source datasets.
Handles:
- Column name normalization
- Whitespace trimming
- Date parsing from the source locale format
- Numeric type standardization
- Exact-duplicate removal

Rows that are invalid after cleaning are not dropped here; load-time
validation decides what to reject so every rejection can be reported.
"""

from typing import Any, Dict, List, Optional
import re

import polars as pl
import structlog

from superstore.config import get_settings

logger = structlog.get_logger(__name__)

ISO_DATE_FORMAT = "%Y-%m-%d"

# Source headers that do not map directly onto our column names
COLUMN_ALIASES = {
    "row_id": "line_id",
}


def normalize_column_name(name: str) -> str:
    """Map a source header such as 'Sub-Category' or 'Order ID' to snake_case"""
    snake = re.sub(r"[^0-9a-zA-Z]+", "_", name.strip()).strip("_").lower()
    return COLUMN_ALIASES.get(snake, snake)


class DataCleaner:
    """
    Data cleaner for the transaction, customer and raw product datasets.

    Example:
        cleaner = DataCleaner()
        orders = cleaner.clean_orders(raw_orders)
    """

    def __init__(self, source_date_format: Optional[str] = None):
        self.source_date_format = source_date_format or get_settings().data_lake.source_date_format

    def _normalize_columns(self, df: pl.DataFrame) -> pl.DataFrame:
        """Rename source headers to snake_case column names"""
        mapping = {col: normalize_column_name(col) for col in df.columns}
        return df.rename({k: v for k, v in mapping.items() if k != v})

    def _trim_strings(self, df: pl.DataFrame, columns: Optional[List[str]] = None) -> pl.DataFrame:
        """Trim whitespace from string columns, turning blank values into nulls"""
        string_cols = columns or [
            col for col, dtype in zip(df.columns, df.dtypes)
            if dtype == pl.Utf8
        ]

        for col in string_cols:
            if col in df.columns:
                trimmed = pl.col(col).str.strip_chars()
                df = df.with_columns(
                    pl.when(trimmed == "").then(None).otherwise(trimmed).alias(col)
                )

        return df

    def _remove_duplicates(
        self,
        df: pl.DataFrame,
        subset: Optional[List[str]] = None,
        keep: str = "first"
    ) -> pl.DataFrame:
        """Remove duplicate rows, keeping input order"""
        if subset:
            return df.unique(subset=subset, keep=keep, maintain_order=True)
        return df.unique(keep=keep, maintain_order=True)

    def _fill_nulls(
        self,
        df: pl.DataFrame,
        fill_values: Dict[str, Any]
    ) -> pl.DataFrame:
        """Fill null values with specified defaults"""
        for col, value in fill_values.items():
            if col in df.columns:
                df = df.with_columns(pl.col(col).fill_null(value).alias(col))

        return df

    def _standardize_dates(
        self,
        df: pl.DataFrame,
        date_columns: List[str],
        format: Optional[str] = None,
    ) -> pl.DataFrame:
        """
        Parse date columns into pl.Date.

        The source format is tried first, then ISO. Values matching neither
        become null and are caught by validation.
        """
        source_format = format or self.source_date_format
        for col in date_columns:
            if col not in df.columns:
                continue
            dtype = df.schema[col]
            if dtype == pl.Date:
                continue
            if dtype == pl.Datetime:
                df = df.with_columns(pl.col(col).dt.date().alias(col))
                continue
            text = pl.col(col).cast(pl.Utf8)
            df = df.with_columns(
                pl.coalesce(
                    text.str.to_date(source_format, strict=False),
                    text.str.to_date(ISO_DATE_FORMAT, strict=False),
                ).alias(col)
            )

        return df

    def _normalize_numeric(
        self,
        df: pl.DataFrame,
        columns: List[str],
        dtype: Any = pl.Float64,
    ) -> pl.DataFrame:
        """Strip currency symbols and thousands separators, then cast"""
        for col in columns:
            if col in df.columns:
                df = df.with_columns(
                    pl.col(col)
                    .cast(pl.Utf8)
                    .str.replace_all(r"[$€£¥,]", "")
                    .str.strip_chars()
                    .cast(pl.Float64, strict=False)
                    .cast(dtype, strict=False)
                    .alias(col)
                )

        return df

    def clean_orders(self, df: pl.DataFrame) -> pl.DataFrame:
        """Apply transaction-specific cleaning transformations"""
        df = self._normalize_columns(df)

        # Composite key needs a line identifier even when the file has none
        if "line_id" not in df.columns:
            df = df.with_row_index("line_id", offset=1)
        df = self._normalize_numeric(df, ["line_id"], pl.Int64)

        df = self._trim_strings(df)
        df = self._standardize_dates(df, [c for c in ("order_date", "ship_date") if c in df.columns])

        df = self._normalize_numeric(df, [c for c in ("sales", "discount", "profit") if c in df.columns])
        if "quantity" in df.columns:
            df = self._normalize_numeric(df, ["quantity"], pl.Int64)

        df = self._fill_nulls(df, {"discount": 0.0})

        before = len(df)
        df = self._remove_duplicates(df)
        if len(df) < before:
            logger.info("Removed exact duplicate transactions", removed=before - len(df))

        return df

    def clean_customers(self, df: pl.DataFrame) -> pl.DataFrame:
        """Apply customer-specific cleaning transformations"""
        df = self._normalize_columns(df)

        # Postal codes are identifiers, not numbers
        if "postal_code" in df.columns:
            df = df.with_columns(pl.col("postal_code").cast(pl.Utf8))

        df = self._trim_strings(df)

        before = len(df)
        df = self._remove_duplicates(df)
        if len(df) < before:
            logger.info("Removed exact duplicate customers", removed=before - len(df))

        return df

    def clean_raw_products(self, df: pl.DataFrame) -> pl.DataFrame:
        """
        Apply product-specific cleaning transformations.

        Duplicate rows are kept: every raw row is a vote for its name variant
        during deduplication.
        """
        df = self._normalize_columns(df)
        return self._trim_strings(df)
