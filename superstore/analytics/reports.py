"""
Aggregate Reports

Group-by reports feeding the sales, customer and operations dashboards.
Every function takes the clean tables and returns a polars DataFrame.
Ratios with a zero denominator come back as null rather than raising.
"""

from typing import Callable, Dict, Optional

import polars as pl
import structlog

from superstore.config import get_settings
from .common import round_half_up, round_signed, safe_ratio

logger = structlog.get_logger(__name__)

PROFIT_BINS = ["<$100", "$100–$500", "$501–$1000", ">$1000"]


def _with_customers(orders: pl.DataFrame, customers: pl.DataFrame) -> pl.DataFrame:
    return orders.join(customers, on="customer_id", how="inner")


def _with_products(orders: pl.DataFrame, products: pl.DataFrame) -> pl.DataFrame:
    return orders.join(products, on="product_id", how="inner")


def _sales_metrics() -> list:
    return [
        pl.col("order_id").n_unique().cast(pl.Int64).alias("number_of_orders"),
        pl.col("sales").sum().alias("total_sales"),
        pl.col("profit").sum().alias("total_profit"),
    ]


def sales_by_region(orders: pl.DataFrame, customers: pl.DataFrame) -> pl.DataFrame:
    """Orders, sales and profit per region"""
    return (
        _with_customers(orders, customers)
        .group_by("region")
        .agg(_sales_metrics())
        .sort(["total_sales", "region"], descending=[True, False])
    )


def sales_by_segment(orders: pl.DataFrame, customers: pl.DataFrame) -> pl.DataFrame:
    """Orders, sales, profit and profit margin per customer segment"""
    return (
        _with_customers(orders, customers)
        .group_by("segment")
        .agg(_sales_metrics())
        .with_columns(safe_ratio(pl.col("total_profit"), pl.col("total_sales")).alias("profit_margin"))
        .sort(["total_sales", "segment"], descending=[True, False])
    )


def sales_by_category(orders: pl.DataFrame, products: pl.DataFrame) -> pl.DataFrame:
    """Orders, sales and profit per category and sub-category"""
    return (
        _with_products(orders, products)
        .group_by(["category", "sub_category"])
        .agg(_sales_metrics())
        .sort(["total_sales", "category", "sub_category"], descending=[True, False, False])
    )


def monthly_revenue_trend(orders: pl.DataFrame) -> pl.DataFrame:
    """Sales, profit and order count per calendar month"""
    return (
        orders.with_columns(pl.col("order_date").dt.strftime("%Y-%m").alias("order_month"))
        .group_by("order_month")
        .agg([
            pl.col("sales").sum().alias("total_sales"),
            pl.col("profit").sum().alias("total_profit"),
            pl.col("order_id").n_unique().cast(pl.Int64).alias("number_of_orders"),
        ])
        .sort("order_month")
    )


def top_products(orders: pl.DataFrame, products: pl.DataFrame, limit: int = 10) -> pl.DataFrame:
    """Best-selling products by sales"""
    return (
        _with_products(orders, products)
        .group_by(["product_id", "product_name"])
        .agg([
            pl.col("sales").sum().alias("total_sales"),
            pl.col("profit").sum().alias("total_profit"),
        ])
        .sort(["total_sales", "product_id"], descending=[True, False])
        .head(limit)
    )


def top_customers(orders: pl.DataFrame, customers: pl.DataFrame, limit: int = 10) -> pl.DataFrame:
    """Highest-revenue customers with their order counts"""
    return (
        _with_customers(orders, customers)
        .group_by(["customer_id", "customer_name"])
        .agg([
            pl.col("sales").sum().alias("total_sales"),
            pl.col("profit").sum().alias("total_profit"),
            pl.col("order_id").n_unique().cast(pl.Int64).alias("number_of_orders"),
        ])
        .sort(["total_sales", "customer_id"], descending=[True, False])
        .head(limit)
    )


def subcategory_margins(orders: pl.DataFrame, products: pl.DataFrame, limit: int = 5) -> pl.DataFrame:
    """Sub-categories ranked by profit margin percentage"""
    return (
        _with_products(orders, products)
        .group_by(["category", "sub_category"])
        .agg([
            pl.col("sales").sum().alias("total_sales"),
            pl.col("profit").sum().alias("total_profit"),
            pl.col("order_id").n_unique().cast(pl.Int64).alias("number_of_orders"),
        ])
        .with_columns(
            round_signed(
                safe_ratio(pl.col("total_profit"), pl.col("total_sales")) * 100, 2
            ).alias("profit_margin_percent")
        )
        .select(["category", "sub_category", "total_sales", "total_profit", "profit_margin_percent", "number_of_orders"])
        .sort(["profit_margin_percent", "sub_category"], descending=[True, False], nulls_last=True)
        .head(limit)
    )


def segment_region_performance(orders: pl.DataFrame, customers: pl.DataFrame) -> pl.DataFrame:
    """Sales and profit per region and segment"""
    return (
        _with_customers(orders, customers)
        .group_by(["region", "segment"])
        .agg([
            pl.col("sales").sum().alias("total_sales"),
            pl.col("profit").sum().alias("total_profit"),
        ])
        .sort(["region", "total_sales", "segment"], descending=[False, True, False])
    )


def order_frequency(orders: pl.DataFrame, customers: pl.DataFrame, limit: int = 10) -> pl.DataFrame:
    """Most frequent buyers with first and last purchase dates"""
    return (
        _with_customers(orders, customers)
        .group_by(["customer_id", "customer_name"])
        .agg([
            pl.col("order_id").n_unique().cast(pl.Int64).alias("orders_placed"),
            pl.col("order_date").min().alias("first_order"),
            pl.col("order_date").max().alias("last_order"),
        ])
        .sort(["orders_placed", "customer_id"], descending=[True, False])
        .head(limit)
    )


def top_cities(orders: pl.DataFrame, customers: pl.DataFrame, limit: int = 10) -> pl.DataFrame:
    """Cities ranked by sales, then profit"""
    return (
        _with_customers(orders, customers)
        .group_by("city")
        .agg([
            pl.col("sales").sum().alias("total_sales"),
            pl.col("profit").sum().alias("total_profit"),
        ])
        .sort(["total_sales", "total_profit", "city"], descending=[True, True, False])
        .head(limit)
    )


def _delivery_days(df: pl.DataFrame) -> pl.DataFrame:
    return df.filter(pl.col("ship_date").is_not_null()).with_columns(
        (pl.col("ship_date") - pl.col("order_date")).dt.total_days().alias("delivery_days")
    )


def delivery_time_by_region_segment(orders: pl.DataFrame, customers: pl.DataFrame) -> pl.DataFrame:
    """Average days from order to shipment per region and segment"""
    if "ship_date" not in orders.columns:
        return pl.DataFrame(schema={"region": pl.Utf8, "segment": pl.Utf8, "avg_delivery_days": pl.Float64})

    return (
        _delivery_days(_with_customers(orders, customers))
        .group_by(["region", "segment"])
        .agg(pl.col("delivery_days").mean().alias("_mean_days"))
        .with_columns(round_signed(pl.col("_mean_days"), 2).alias("avg_delivery_days"))
        .select(["region", "segment", "avg_delivery_days"])
        .sort(["avg_delivery_days", "region", "segment"])
    )


def delivery_performance_by_region(orders: pl.DataFrame, customers: pl.DataFrame) -> pl.DataFrame:
    """Share of shipments within 3 days, within 5 days and later, per region"""
    columns = ["percent_within_3_days", "percent_within_5_days", "percent_delayed_over_5_days"]
    if "ship_date" not in orders.columns:
        return pl.DataFrame(schema={"region": pl.Utf8, **{c: pl.Float64 for c in columns}})

    def share(condition: pl.Expr, name: str) -> pl.Expr:
        return round_half_up(condition.sum() * 100.0 / pl.len(), 2).alias(name)

    days = pl.col("delivery_days")
    return (
        _delivery_days(_with_customers(orders, customers))
        .group_by("region")
        .agg([
            share(days <= 3, columns[0]),
            share(days <= 5, columns[1]),
            share(days > 5, columns[2]),
        ])
        .sort([columns[0], "region"], descending=[True, False])
    )


def product_bundles(orders: pl.DataFrame, limit: int = 10) -> pl.DataFrame:
    """Product pairs most often bought in the same order"""
    lines = orders.select(["order_id", "product_id"]).unique()
    return (
        lines.join(lines, on="order_id", suffix="_other")
        .filter(pl.col("product_id") < pl.col("product_id_other"))
        .group_by(["product_id", "product_id_other"])
        .agg(pl.len().cast(pl.Int64).alias("times_bought_together"))
        .rename({"product_id": "product_1", "product_id_other": "product_2"})
        .sort(["times_bought_together", "product_1", "product_2"], descending=[True, False, False])
        .head(limit)
    )


def customer_profit_bins(orders: pl.DataFrame) -> pl.DataFrame:
    """Customers bucketed by total profit contribution"""
    profit = pl.col("total_profit")
    return (
        orders.group_by("customer_id")
        .agg(pl.col("profit").sum().alias("total_profit"))
        .with_columns(
            pl.when(profit < 100).then(pl.lit(PROFIT_BINS[0]))
            .when(profit <= 500).then(pl.lit(PROFIT_BINS[1]))
            .when(profit <= 1000).then(pl.lit(PROFIT_BINS[2]))
            .otherwise(pl.lit(PROFIT_BINS[3]))
            .alias("profit_bin")
        )
        .group_by("profit_bin")
        .agg(pl.len().cast(pl.Int64).alias("customer_count"))
        .sort(["customer_count", "profit_bin"], descending=[True, False])
    )


def yoy_sales_growth(orders: pl.DataFrame) -> pl.DataFrame:
    """Annual sales with growth over the previous year"""
    return (
        orders.with_columns(pl.col("order_date").dt.year().alias("year"))
        .group_by("year")
        .agg(pl.col("sales").sum().alias("total_sales"))
        .sort("year")
        .with_columns(pl.col("total_sales").shift(1).alias("previous_year_sales"))
        .with_columns(
            round_signed(
                safe_ratio(
                    (pl.col("total_sales") - pl.col("previous_year_sales")) * 100.0,
                    pl.col("previous_year_sales"),
                ),
                2,
            ).alias("yoy_growth_percent")
        )
    )


def build_reports(
    orders: pl.DataFrame,
    customers: pl.DataFrame,
    products: pl.DataFrame,
    top_n: Optional[int] = None,
) -> Dict[str, pl.DataFrame]:
    """
    Run every aggregate report.

    Args:
        orders: Clean transactions
        customers: Customer reference table
        products: Canonical product table
        top_n: Row limit for top-N reports (subcategory margins keep their own limit of 5)

    Returns:
        Report DataFrames keyed by published name
    """
    limit = top_n or get_settings().analytics.top_n

    builders: Dict[str, Callable[[], pl.DataFrame]] = {
        "sales_by_region": lambda: sales_by_region(orders, customers),
        "sales_by_segment": lambda: sales_by_segment(orders, customers),
        "sales_by_category": lambda: sales_by_category(orders, products),
        "monthly_revenue_trend": lambda: monthly_revenue_trend(orders),
        "top_products": lambda: top_products(orders, products, limit),
        "top_customers": lambda: top_customers(orders, customers, limit),
        "subcategory_margins": lambda: subcategory_margins(orders, products),
        "segment_region_performance": lambda: segment_region_performance(orders, customers),
        "order_frequency": lambda: order_frequency(orders, customers, limit),
        "top_cities": lambda: top_cities(orders, customers, limit),
        "delivery_time_by_region_segment": lambda: delivery_time_by_region_segment(orders, customers),
        "delivery_performance_by_region": lambda: delivery_performance_by_region(orders, customers),
        "product_bundles": lambda: product_bundles(orders, limit),
        "customer_profit_bins": lambda: customer_profit_bins(orders),
        "yoy_sales_growth": lambda: yoy_sales_growth(orders),
    }

    reports = {name: build() for name, build in builders.items()}
    logger.info("Aggregate reports built", reports=len(reports))
    return reports
