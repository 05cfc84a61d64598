"""
Reorder-Interval Analysis

Computes the number of days between each customer's chronologically
consecutive transactions and derives loyalty metrics from them:

- per-customer reorder frequency (average / min / max gap)
- average reorder cycle per region, segment and product category
- single-purchase vs repeat customer classification and its distribution
- an enriched interval view for slicing by segment, region and category

Gaps are computed once per run, at transaction-line grain. The first
transaction of every customer has a null gap. Same-day transactions (for
example, several lines of one order) give a zero gap, which never counts
towards a customer's average reorder cycle.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

import polars as pl
import structlog

from superstore.config import ZeroGapScope, get_settings
from .common import round_half_up

logger = structlog.get_logger(__name__)

GAP = "days_between_orders"
ORDER_SORT_KEYS = ["customer_id", "order_date", "order_id", "line_id"]

ENRICHED_VIEW_COLUMNS = [
    "order_date",
    GAP,
    "customer_id",
    "segment",
    "region",
    "product_id",
    "category",
    "sub_category",
    "order_id",
    "previous_order_date",
]


class CustomerType(str, Enum):
    """Purchase-frequency class of a customer"""
    SINGLE_PURCHASE = "single_purchase"
    REPEAT = "repeat"


@dataclass
class ReorderAnalysis:
    """All tables produced by one reorder-interval run"""
    intervals: pl.DataFrame
    enriched_view: pl.DataFrame
    customer_reorder: pl.DataFrame
    region_reorder: pl.DataFrame
    segment_reorder: pl.DataFrame
    category_reorder: pl.DataFrame
    classification: pl.DataFrame
    distribution: pl.DataFrame

    def tables(self) -> Dict[str, pl.DataFrame]:
        """Output tables keyed by their published name"""
        return {
            "reorder_intervals_enriched": self.enriched_view,
            "customer_reorder_frequency": self.customer_reorder,
            "reorder_by_region": self.region_reorder,
            "reorder_by_segment": self.segment_reorder,
            "reorder_by_category": self.category_reorder,
            "customer_classification": self.classification,
            "customer_type_distribution": self.distribution,
        }


class ReorderIntervalAnalyzer:
    """
    Partition, sort and pairwise-difference pipeline over transactions.

    Example:
        analyzer = ReorderIntervalAnalyzer()
        analysis = analyzer.analyze(orders, customers, products)
        analysis.customer_reorder
    """

    def __init__(
        self,
        zero_gap_scope: Optional[ZeroGapScope] = None,
        percent_precision: Optional[int] = None,
    ):
        settings = get_settings()
        self.zero_gap_scope = ZeroGapScope(zero_gap_scope or settings.analytics.zero_gap_scope)
        self.percent_precision = (
            settings.analytics.percent_precision if percent_precision is None else percent_precision
        )

    def _usable_gap(self, exclude_zero: bool) -> pl.Expr:
        condition = pl.col(GAP).is_not_null()
        if exclude_zero:
            condition = condition & (pl.col(GAP) > 0)
        return condition

    @property
    def _excludes_zero_everywhere(self) -> bool:
        return self.zero_gap_scope == ZeroGapScope.ALL

    def compute_intervals(self, orders: pl.DataFrame) -> pl.DataFrame:
        """
        Attach previous_order_date and days_between_orders to every transaction.

        Rows are ordered by customer, then order date, order id and line id so
        same-date transactions always produce the same intervals.
        """
        sort_keys = [c for c in ORDER_SORT_KEYS if c in orders.columns]

        return (
            orders.sort(sort_keys)
            .with_columns(
                pl.col("order_date").shift(1).over("customer_id").alias("previous_order_date")
            )
            .with_columns(
                (pl.col("order_date") - pl.col("previous_order_date"))
                .dt.total_days()
                .alias(GAP)
            )
        )

    def customer_reorder_stats(self, intervals: pl.DataFrame) -> pl.DataFrame:
        """
        Per-customer average, minimum and maximum days between orders.

        Null and zero gaps are ignored. Customers without a positive gap are
        not reported at all.
        """
        transactions = intervals.group_by("customer_id").agg(
            pl.len().cast(pl.Int64).alias("transaction_count")
        )

        return (
            intervals.filter(self._usable_gap(exclude_zero=True))
            .group_by("customer_id")
            .agg([
                pl.len().cast(pl.Int64).alias("interval_count"),
                pl.col(GAP).mean().alias("_mean_gap"),
                pl.col(GAP).min().alias("min_days_between_orders"),
                pl.col(GAP).max().alias("max_days_between_orders"),
            ])
            .join(transactions, on="customer_id", how="left")
            .with_columns(
                round_half_up(pl.col("_mean_gap"), 0).cast(pl.Int64).alias("avg_days_between_orders")
            )
            .select([
                "customer_id",
                "transaction_count",
                "interval_count",
                "avg_days_between_orders",
                "min_days_between_orders",
                "max_days_between_orders",
            ])
            .sort(["avg_days_between_orders", "customer_id"])
        )

    def build_enriched_view(
        self,
        intervals: pl.DataFrame,
        customers: pl.DataFrame,
        products: pl.DataFrame,
    ) -> pl.DataFrame:
        """Interval rows joined with customer and product attributes, null gaps removed"""
        return (
            intervals.filter(self._usable_gap(exclude_zero=self._excludes_zero_everywhere))
            .join(customers.select(["customer_id", "segment", "region"]), on="customer_id", how="inner")
            .join(products.select(["product_id", "category", "sub_category"]), on="product_id", how="inner")
            .sort(ORDER_SORT_KEYS)
            .select(ENRICHED_VIEW_COLUMNS)
        )

    def _average_by(
        self,
        view: pl.DataFrame,
        groups: pl.DataFrame,
        column: str,
    ) -> pl.DataFrame:
        """Average gap per group; groups with no intervals keep null metrics"""
        aggregated = view.group_by(column).agg([
            pl.len().cast(pl.Int64).alias("interval_count"),
            pl.col(GAP).mean().alias("_mean_gap"),
        ])

        return (
            groups.select(column).drop_nulls().unique()
            .join(aggregated, on=column, how="left")
            .with_columns([
                pl.col("interval_count").fill_null(0),
                round_half_up(pl.col("_mean_gap"), 0).cast(pl.Int64).alias("avg_days_between_orders"),
            ])
            .select([column, "interval_count", "avg_days_between_orders"])
            .sort(["avg_days_between_orders", column], nulls_last=True)
        )

    def region_averages(self, view: pl.DataFrame, customers: pl.DataFrame) -> pl.DataFrame:
        """Average reorder cycle per customer region"""
        return self._average_by(view, customers, "region")

    def category_averages(self, view: pl.DataFrame, products: pl.DataFrame) -> pl.DataFrame:
        """Average reorder cycle per product category"""
        return self._average_by(view, products, "category")

    def segment_averages(
        self,
        view: pl.DataFrame,
        orders: pl.DataFrame,
        customers: pl.DataFrame,
    ) -> pl.DataFrame:
        """
        Reorder cycle per customer segment alongside the segment's raw totals.

        transaction_count and total_revenue cover every transaction, including
        first orders and same-day repeats.
        """
        totals = (
            orders.join(customers.select(["customer_id", "segment"]), on="customer_id", how="inner")
            .group_by("segment")
            .agg([
                pl.len().cast(pl.Int64).alias("transaction_count"),
                pl.col("sales").sum().alias("total_revenue"),
            ])
        )
        gaps = view.group_by("segment").agg([
            pl.len().cast(pl.Int64).alias("interval_count"),
            pl.col(GAP).mean().alias("_mean_gap"),
            pl.col(GAP).min().alias("min_days_between_orders"),
            pl.col(GAP).max().alias("max_days_between_orders"),
        ])

        return (
            customers.select("segment").drop_nulls().unique()
            .join(totals, on="segment", how="left")
            .join(gaps, on="segment", how="left")
            .with_columns([
                pl.col("transaction_count").fill_null(0),
                pl.col("total_revenue").fill_null(0.0),
                pl.col("interval_count").fill_null(0),
                round_half_up(pl.col("_mean_gap"), 0).cast(pl.Int64).alias("avg_days_between_orders"),
            ])
            .select([
                "segment",
                "transaction_count",
                "total_revenue",
                "interval_count",
                "avg_days_between_orders",
                "min_days_between_orders",
                "max_days_between_orders",
            ])
            .sort(["avg_days_between_orders", "segment"], nulls_last=True)
        )

    def classify_customers(self, orders: pl.DataFrame) -> pl.DataFrame:
        """Label each ordering customer single_purchase (one distinct order) or repeat"""
        return (
            orders.group_by("customer_id")
            .agg(pl.col("order_id").n_unique().cast(pl.Int64).alias("order_count"))
            .with_columns(
                pl.when(pl.col("order_count") == 1)
                .then(pl.lit(CustomerType.SINGLE_PURCHASE.value))
                .otherwise(pl.lit(CustomerType.REPEAT.value))
                .alias("customer_type")
            )
            .select(["customer_id", "customer_type", "order_count"])
            .sort("customer_id")
        )

    def classification_distribution(self, classification: pl.DataFrame) -> pl.DataFrame:
        """
        Count and percentage of customers per class.

        An empty population yields an empty table rather than a division by zero.
        """
        total = len(classification)
        if total == 0:
            logger.warning("No customers to classify, distribution is empty")
            return pl.DataFrame(schema={
                "customer_type": pl.Utf8,
                "customer_count": pl.Int64,
                "percent_customers": pl.Float64,
            })

        counts = classification.group_by("customer_type").agg(
            pl.len().cast(pl.Int64).alias("customer_count")
        )

        return (
            pl.DataFrame({"customer_type": [t.value for t in CustomerType]})
            .join(counts, on="customer_type", how="left")
            .with_columns(pl.col("customer_count").fill_null(0))
            .with_columns(
                round_half_up(
                    pl.col("customer_count") * 100.0 / total,
                    self.percent_precision,
                ).alias("percent_customers")
            )
        )

    def analyze(
        self,
        orders: pl.DataFrame,
        customers: pl.DataFrame,
        products: pl.DataFrame,
    ) -> ReorderAnalysis:
        """
        Run the full reorder-interval analysis over a clean batch.

        Args:
            orders: Transactions that passed load-time validation
            customers: Customer reference table
            products: Canonical product table

        Returns:
            ReorderAnalysis with every derived table
        """
        intervals = self.compute_intervals(orders)
        view = self.build_enriched_view(intervals, customers, products)
        classification = self.classify_customers(orders)

        analysis = ReorderAnalysis(
            intervals=intervals,
            enriched_view=view,
            customer_reorder=self.customer_reorder_stats(intervals),
            region_reorder=self.region_averages(view, customers),
            segment_reorder=self.segment_averages(view, orders, customers),
            category_reorder=self.category_averages(view, products),
            classification=classification,
            distribution=self.classification_distribution(classification),
        )

        logger.info(
            "Reorder analysis complete",
            transactions=len(orders),
            interval_rows=len(view),
            customers_with_reorders=len(analysis.customer_reorder),
            classified_customers=len(classification),
            zero_gap_scope=self.zero_gap_scope.value,
        )

        return analysis
