"""
Test Suite Configuration
"""
from datetime import date
from pathlib import Path
from typing import Dict

import polars as pl
import pytest

from superstore.config import Settings
from superstore.database.connection import close_database


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture(autouse=True)
def reset_database():
    """Dispose of any engine a test left initialized"""
    yield
    close_database()


@pytest.fixture
def sample_customers_df() -> pl.DataFrame:
    """Four customers; C4 never orders"""
    return pl.DataFrame({
        "customer_id": ["C1", "C2", "C3", "C4"],
        "customer_name": ["Alice Adams", "Bob Brown", "Carol Clark", "Dan Dunn"],
        "segment": ["Consumer", "Corporate", "Home Office", "Consumer"],
        "country": ["United States"] * 4,
        "city": ["New York City", "Seattle", "Chicago", "Miami"],
        "state": ["New York", "Washington", "Illinois", "Florida"],
        "postal_code": ["10024", "98103", "60610", "33142"],
        "region": ["East", "West", "Central", "South"],
    })


@pytest.fixture
def sample_products_df() -> pl.DataFrame:
    """Canonical products"""
    return pl.DataFrame({
        "product_id": ["P1", "P2", "P3"],
        "product_name": ["Swingline Stapler", "Hon Task Chair", "Polycom Phone"],
        "category": ["Office Supplies", "Furniture", "Technology"],
        "sub_category": ["Fasteners", "Chairs", "Phones"],
    })


@pytest.fixture
def sample_raw_products_df() -> pl.DataFrame:
    """Raw products: P1 has a 2-1 majority, P2 is a 1-1 tie"""
    return pl.DataFrame({
        "product_id": ["P1", "P2", "P1", "P2", "P1", "P3"],
        "product_name": [
            "Swingline Stapler",
            "Hon Task Chair, Black",
            "Swingline Stapler",
            "Hon Task Chair",
            "Swingline Stapler, Red",
            "Polycom Phone",
        ],
        "category": ["Office Supplies", "Furniture", "Office Supplies", "Furniture", "Office Supplies", "Technology"],
        "sub_category": ["Fasteners", "Chairs", "Fasteners", "Chairs", "Fasteners", "Phones"],
    })


@pytest.fixture
def sample_orders_df() -> pl.DataFrame:
    """
    Clean transactions.

    C1: three orders 14 and 46 days apart
    C2: a single order
    C3: a two-line order, then another order 20 days later
    """
    return pl.DataFrame({
        "line_id": [1, 2, 3, 4, 5, 6, 7],
        "order_id": ["O1", "O2", "O3", "O4", "O5", "O5", "O6"],
        "order_date": [
            date(2024, 1, 1), date(2024, 1, 15), date(2024, 3, 1),
            date(2024, 2, 10),
            date(2024, 1, 5), date(2024, 1, 5), date(2024, 1, 25),
        ],
        "ship_date": [
            date(2024, 1, 3), date(2024, 1, 20), date(2024, 3, 8),
            date(2024, 2, 12),
            date(2024, 1, 6), date(2024, 1, 6), date(2024, 1, 30),
        ],
        "ship_mode": ["Second Class", "Standard Class", "Standard Class", "First Class",
                      "First Class", "First Class", "Standard Class"],
        "customer_id": ["C1", "C1", "C1", "C2", "C3", "C3", "C3"],
        "product_id": ["P1", "P2", "P3", "P1", "P1", "P2", "P3"],
        "sales": [100.0, 200.0, 300.0, 50.0, 80.0, 120.0, 400.0],
        "quantity": [2, 1, 1, 5, 1, 1, 2],
        "discount": [0.0, 0.0, 0.1, 0.0, 0.0, 0.0, 0.2],
        "profit": [20.0, 50.0, -10.0, 5.0, 10.0, 30.0, 60.0],
    })


def _to_source(df: pl.DataFrame, headers: Dict[str, str]) -> pl.DataFrame:
    """Render a clean frame the way the source extracts look"""
    dates = [c for c, dtype in df.schema.items() if dtype == pl.Date]
    return df.with_columns([pl.col(c).dt.strftime("%m/%d/%Y") for c in dates]).rename(headers)


ORDER_HEADERS = {
    "line_id": "Row ID",
    "order_id": "Order ID",
    "order_date": "Order Date",
    "ship_date": "Ship Date",
    "ship_mode": "Ship Mode",
    "customer_id": "Customer ID",
    "product_id": "Product ID",
    "sales": "Sales",
    "quantity": "Quantity",
    "discount": "Discount",
    "profit": "Profit",
}

CUSTOMER_HEADERS = {
    "customer_id": "Customer ID",
    "customer_name": "Customer Name",
    "segment": "Segment",
    "country": "Country",
    "city": "City",
    "state": "State",
    "postal_code": "Postal Code",
    "region": "Region",
}

PRODUCT_HEADERS = {
    "product_id": "Product ID",
    "product_name": "Product Name",
    "category": "Category",
    "sub_category": "Sub-Category",
}


@pytest.fixture
def write_source_files(tmp_path):
    """Factory writing orders/customers/products CSVs with source headers"""
    def write(orders: pl.DataFrame, customers: pl.DataFrame, raw_products: pl.DataFrame) -> Path:
        source_dir = tmp_path / "raw"
        source_dir.mkdir(exist_ok=True)
        _to_source(orders, ORDER_HEADERS).write_csv(source_dir / "orders.csv")
        _to_source(customers, CUSTOMER_HEADERS).write_csv(source_dir / "customers.csv")
        _to_source(raw_products, PRODUCT_HEADERS).write_csv(source_dir / "products.csv")
        return source_dir

    return write


@pytest.fixture
def source_dir(write_source_files, sample_orders_df, sample_customers_df, sample_raw_products_df) -> Path:
    """Raw zone holding the sample batch"""
    return write_source_files(sample_orders_df, sample_customers_df, sample_raw_products_df)


@pytest.fixture
def orders_with_unknown_customer(sample_orders_df) -> pl.DataFrame:
    """Sample transactions plus one line for a customer that does not exist"""
    extra = pl.DataFrame({
        "line_id": [8],
        "order_id": ["O7"],
        "order_date": [date(2024, 4, 1)],
        "ship_date": [date(2024, 4, 3)],
        "ship_mode": ["First Class"],
        "customer_id": ["C9"],
        "product_id": ["P1"],
        "sales": [10.0],
        "quantity": [1],
        "discount": [0.0],
        "profit": [1.0],
    })
    return pl.concat([sample_orders_df, extra])
