"""
Unit Tests - Aggregate Reports
"""
import polars as pl
import pytest

from superstore.analytics import reports
from superstore.analytics.common import round_half_up, round_signed, safe_ratio


def _by(df: pl.DataFrame, key: str) -> dict:
    return {row[key]: row for row in df.iter_rows(named=True)}


class TestCommonExpressions:
    """Tests for shared rounding and ratio helpers"""

    def test_round_half_up(self):
        df = pl.DataFrame({"x": [0.5, 1.5, 2.5, 33.335, None]})

        result = df.select(round_half_up(pl.col("x"), 0).alias("r"))["r"].to_list()

        assert result == [1.0, 2.0, 3.0, 33.0, None]

    def test_round_signed(self):
        df = pl.DataFrame({"x": [-2.5, 2.5, -0.125]})

        result = df.select(round_signed(pl.col("x"), 0).alias("r"))["r"].to_list()

        assert result == [-3.0, 3.0, -0.0]

    def test_safe_ratio_null_on_zero(self):
        df = pl.DataFrame({"n": [1.0, 1.0, 1.0], "d": [2.0, 0.0, None]})

        result = df.select(safe_ratio(pl.col("n"), pl.col("d")).alias("r"))["r"].to_list()

        assert result == [0.5, None, None]


class TestSalesReports:
    """Tests for sales breakdowns"""

    def test_sales_by_region(self, sample_orders_df, sample_customers_df):
        result = _by(reports.sales_by_region(sample_orders_df, sample_customers_df), "region")

        assert result["East"]["total_sales"] == pytest.approx(600.0)
        assert result["East"]["number_of_orders"] == 3
        assert result["Central"]["number_of_orders"] == 2
        assert result["West"]["total_profit"] == pytest.approx(5.0)
        assert "South" not in result

    def test_sales_by_segment_margin(self, sample_orders_df, sample_customers_df):
        result = _by(reports.sales_by_segment(sample_orders_df, sample_customers_df), "segment")

        assert result["Consumer"]["profit_margin"] == pytest.approx(60.0 / 600.0)

    def test_sales_by_category(self, sample_orders_df, sample_products_df):
        result = _by(reports.sales_by_category(sample_orders_df, sample_products_df), "sub_category")

        assert result["Phones"]["total_sales"] == pytest.approx(700.0)
        assert result["Fasteners"]["number_of_orders"] == 3

    def test_monthly_revenue_trend(self, sample_orders_df):
        result = reports.monthly_revenue_trend(sample_orders_df)

        assert result["order_month"].to_list() == ["2024-01", "2024-02", "2024-03"]
        assert result["total_sales"].to_list() == pytest.approx([900.0, 50.0, 300.0])
        assert result["number_of_orders"].to_list() == [4, 1, 1]

    def test_segment_region_performance(self, sample_orders_df, sample_customers_df):
        result = reports.segment_region_performance(sample_orders_df, sample_customers_df)

        assert result.columns == ["region", "segment", "total_sales", "total_profit"]
        assert len(result) == 3


class TestRankings:
    """Tests for top-N reports"""

    def test_top_products(self, sample_orders_df, sample_products_df):
        result = reports.top_products(sample_orders_df, sample_products_df, limit=2)

        assert result["product_id"].to_list() == ["P3", "P2"]

    def test_top_customers(self, sample_orders_df, sample_customers_df):
        result = reports.top_customers(sample_orders_df, sample_customers_df, limit=1)

        # C1 and C3 both total 600; ties go to the smaller id
        assert result["customer_id"].to_list() == ["C1"]
        assert result["number_of_orders"].to_list() == [3]

    def test_order_frequency(self, sample_orders_df, sample_customers_df):
        result = reports.order_frequency(sample_orders_df, sample_customers_df)

        assert result["customer_id"].to_list() == ["C1", "C3", "C2"]
        assert result["orders_placed"].to_list() == [3, 2, 1]

    def test_top_cities(self, sample_orders_df, sample_customers_df):
        result = reports.top_cities(sample_orders_df, sample_customers_df, limit=1)

        # Tied on sales, Chicago has more profit
        assert result["city"].to_list() == ["Chicago"]

    def test_subcategory_margins(self, sample_orders_df, sample_products_df):
        result = _by(reports.subcategory_margins(sample_orders_df, sample_products_df), "sub_category")

        assert result["Chairs"]["profit_margin_percent"] == 25.0
        assert result["Fasteners"]["profit_margin_percent"] == pytest.approx(15.22)

    def test_subcategory_margin_null_when_no_sales(self, sample_orders_df, sample_products_df):
        """Test a zero-sales sub-category gets a null margin instead of an error"""
        free = sample_orders_df.with_columns(
            pl.when(pl.col("product_id") == "P2").then(0.0).otherwise(pl.col("sales")).alias("sales")
        )

        result = reports.subcategory_margins(free, sample_products_df)

        assert result.filter(pl.col("sub_category") == "Chairs")["profit_margin_percent"].to_list() == [None]
        assert result["sub_category"].to_list()[-1] == "Chairs"


class TestOperationsReports:
    """Tests for delivery, bundle, profit-bin and growth reports"""

    def test_delivery_time(self, sample_orders_df, sample_customers_df):
        result = _by(reports.delivery_time_by_region_segment(sample_orders_df, sample_customers_df), "region")

        # East: 2, 5 and 7 days
        assert result["East"]["avg_delivery_days"] == pytest.approx(4.67)

    def test_delivery_performance(self, sample_orders_df, sample_customers_df):
        result = _by(reports.delivery_performance_by_region(sample_orders_df, sample_customers_df), "region")

        assert result["East"]["percent_within_3_days"] == pytest.approx(33.33)
        assert result["East"]["percent_within_5_days"] == pytest.approx(66.67)
        assert result["East"]["percent_delayed_over_5_days"] == pytest.approx(33.33)
        assert result["West"]["percent_within_3_days"] == 100.0

    def test_delivery_reports_without_ship_date(self, sample_orders_df, sample_customers_df):
        orders = sample_orders_df.drop("ship_date")

        assert reports.delivery_time_by_region_segment(orders, sample_customers_df).is_empty()
        assert reports.delivery_performance_by_region(orders, sample_customers_df).is_empty()

    def test_product_bundles(self, sample_orders_df):
        result = reports.product_bundles(sample_orders_df)

        assert result.to_dicts() == [{"product_1": "P1", "product_2": "P2", "times_bought_together": 1}]

    def test_customer_profit_bins(self, sample_orders_df):
        result = _by(reports.customer_profit_bins(sample_orders_df), "profit_bin")

        # C1 60, C2 5, C3 100
        assert result["<$100"]["customer_count"] == 2
        assert result["$100–$500"]["customer_count"] == 1

    def test_profit_bin_boundaries(self):
        orders = pl.DataFrame({
            "customer_id": ["A", "B", "C", "D", "E"],
            "profit": [99.99, 500.0, 500.5, 1000.0, 1000.01],
        })

        result = _by(reports.customer_profit_bins(orders), "profit_bin")

        assert result["<$100"]["customer_count"] == 1
        assert result["$100–$500"]["customer_count"] == 1
        assert result["$501–$1000"]["customer_count"] == 2
        assert result[">$1000"]["customer_count"] == 1

    def test_yoy_sales_growth(self, sample_orders_df):
        later = sample_orders_df.with_columns(
            pl.col("order_date").dt.offset_by("1y"),
            (pl.col("sales") * 1.1).alias("sales"),
        )

        result = reports.yoy_sales_growth(pl.concat([sample_orders_df, later]))

        assert result["year"].to_list() == [2024, 2025]
        assert result["yoy_growth_percent"].to_list()[0] is None
        assert result["yoy_growth_percent"].to_list()[1] == pytest.approx(10.0)


def test_build_reports(sample_orders_df, sample_customers_df, sample_products_df):
    result = reports.build_reports(sample_orders_df, sample_customers_df, sample_products_df, top_n=2)

    assert len(result) == 15
    assert len(result["top_products"]) == 2
    assert all(isinstance(df, pl.DataFrame) for df in result.values())
