"""
Output Writers

Publishes clean and derived tables for reporting tools. Every run rebuilds
its outputs wholesale: files are overwritten under fixed names and database
tables are replaced.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union

import polars as pl
import structlog
from sqlalchemy import Engine, insert

from superstore.config import OutputFormat, get_settings
from superstore.database.connection import get_db
from superstore.database.models import Base, Customer, Order, Product

logger = structlog.get_logger(__name__)


class OutputWriter:
    """
    Writes DataFrames to the curated zone.

    Example:
        writer = OutputWriter("data/curated")
        writer.write_tables({"canonical_products": products})
    """

    def __init__(
        self,
        output_path: Optional[Union[str, Path]] = None,
        output_format: Optional[OutputFormat] = None,
    ):
        settings = get_settings()
        self.output_path = Path(output_path or settings.data_lake.curated_path)
        self.output_format = OutputFormat(output_format or settings.data_lake.output_format)

        # Ensure output directory exists
        self.output_path.mkdir(parents=True, exist_ok=True)

    def write_table(self, df: pl.DataFrame, name: str) -> str:
        """Write one table, replacing any previous version"""
        output_file = self.output_path / f"{name}.{self.output_format.value}"
        temp_file = output_file.with_name(f".{output_file.name}.tmp")

        if self.output_format == OutputFormat.CSV:
            df.write_csv(temp_file)
        else:
            df.write_parquet(temp_file)
        temp_file.replace(output_file)

        logger.debug("Table written", table=name, rows=len(df), file=str(output_file))
        return str(output_file)

    def write_tables(self, tables: Dict[str, pl.DataFrame]) -> Dict[str, str]:
        """Write every table; returns the file path per table name"""
        paths = {name: self.write_table(df, name) for name, df in tables.items()}
        logger.info("Curated outputs written", tables=len(paths), path=str(self.output_path))
        return paths


class DatabaseWriter:
    """
    Writes the clean core tables with their keys and the derived tables to SQL.

    Requires init_database() to have been called.
    """

    CORE_MODELS = [(Customer, "customers"), (Product, "products"), (Order, "orders")]

    def __init__(self, engine: Engine, chunk_size: int = 1000):
        self.engine = engine
        self.chunk_size = chunk_size

    def _insert(self, model, df: pl.DataFrame) -> int:
        columns = [c.name for c in model.__table__.columns if c.name in df.columns]
        records = df.select(columns).to_dicts()
        if not records:
            return 0

        with get_db() as db:
            for i in range(0, len(records), self.chunk_size):
                db.execute(insert(model), records[i:i + self.chunk_size])

        logger.info(f"Inserted {len(records)} records into {model.__tablename__}")
        return len(records)

    def write_core(
        self,
        customers: pl.DataFrame,
        products: pl.DataFrame,
        orders: pl.DataFrame,
    ) -> Dict[str, int]:
        """
        Recreate customers, products and orders and load them.

        Foreign keys are enforced by the database, so a transaction with an
        unknown customer or product fails the whole write.
        """
        Base.metadata.drop_all(self.engine)
        Base.metadata.create_all(self.engine)

        frames = {"customers": customers, "products": products, "orders": orders}
        return {table: self._insert(model, frames[table]) for model, table in self.CORE_MODELS}

    def write_derived(self, tables: Dict[str, pl.DataFrame]) -> List[str]:
        """Replace each derived table"""
        for name, df in tables.items():
            df.write_database(name, connection=self.engine, if_table_exists="replace")
        logger.info("Derived tables written", tables=len(tables))
        return list(tables)
